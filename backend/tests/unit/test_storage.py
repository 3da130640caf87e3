import pytest

from oilshop_admin.config.settings import Settings
from oilshop_admin.services.storage_service import (
    LocalInvoiceStorage,
    StorageError,
    SupabaseInvoiceStorage,
    build_invoice_storage,
    filename_from_url,
)

pytestmark = pytest.mark.unit


class TestLocalInvoiceStorage:

    @pytest.mark.asyncio
    async def test_upload_overwrites_and_returns_public_url(self, tmp_path):
        storage = LocalInvoiceStorage(tmp_path, "https://files.example.com/invoices/")

        url = await storage.upload("rechnung_HO-1_de.pdf", b"%PDF-first")
        url_again = await storage.upload("rechnung_HO-1_de.pdf", b"%PDF-second")

        assert url == "https://files.example.com/invoices/rechnung_HO-1_de.pdf"
        assert url_again == url
        assert await storage.download("rechnung_HO-1_de.pdf") == b"%PDF-second"

    @pytest.mark.asyncio
    async def test_url_quotes_reserved_characters(self, tmp_path):
        storage = LocalInvoiceStorage(tmp_path, "http://test/invoices")
        name = "rechnung_HO #7?x_de.pdf"

        url = await storage.upload(name, b"%PDF")

        assert url == "http://test/invoices/rechnung_HO%20%237%3Fx_de.pdf"
        assert filename_from_url(url) == name
        assert await storage.download(filename_from_url(url)) == b"%PDF"

    @pytest.mark.asyncio
    async def test_rejects_paths(self, tmp_path):
        storage = LocalInvoiceStorage(tmp_path, "http://test")
        with pytest.raises(StorageError):
            await storage.upload("../escape.pdf", b"x")

    @pytest.mark.asyncio
    async def test_missing_object(self, tmp_path):
        storage = LocalInvoiceStorage(tmp_path, "http://test")
        with pytest.raises(StorageError):
            await storage.download("missing.pdf")


def test_filename_from_url():
    url = "https://x.supabase.co/storage/v1/object/public/invoices/rechnung_HO-2024_0042_de.pdf"
    assert filename_from_url(url) == "rechnung_HO-2024_0042_de.pdf"
    assert filename_from_url("http://test/invoices/a%20b.pdf") == "a b.pdf"


def test_build_invoice_storage_local(tmp_path):
    settings = Settings(INVOICE_STORAGE_BACKEND="local", INVOICE_STORAGE_DIR=str(tmp_path),
                        PUBLIC_BASE_URL="http://files")
    assert isinstance(build_invoice_storage(settings), LocalInvoiceStorage)


def test_supabase_requires_credentials():
    settings = Settings(INVOICE_STORAGE_BACKEND="supabase", SUPABASE_URL=None,
                        SUPABASE_SERVICE_ROLE_KEY=None)
    with pytest.raises(StorageError):
        SupabaseInvoiceStorage.from_settings(settings)


def test_unknown_backend():
    with pytest.raises(StorageError):
        build_invoice_storage(Settings(INVOICE_STORAGE_BACKEND="ftp"))
