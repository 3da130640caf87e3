"""Blob storage for generated invoice PDFs.

Two backends share the same small interface: uploads overwrite an existing
object of the same name and return its public URL.

- ``local``: files under ``INVOICE_STORAGE_DIR``, served from ``PUBLIC_BASE_URL``
- ``supabase``: a Supabase Storage bucket (``INVOICE_BUCKET``)
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional, Protocol
from urllib.parse import quote, unquote, urlparse

from supabase import Client, create_client

from ..config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


class StorageError(Exception):
    """Upload or download of an invoice object failed."""


class InvoiceStorage(Protocol):
    async def upload(self, filename: str, data: bytes) -> str: ...

    async def download(self, filename: str) -> bytes: ...


def filename_from_url(url: str) -> str:
    """Object name of a stored invoice: the last path segment of its URL."""
    path = urlparse(url).path
    return unquote(path.rstrip("/").rsplit("/", 1)[-1])


class LocalInvoiceStorage:
    def __init__(self, directory: str | Path, base_url: str):
        self.directory = Path(directory)
        self.base_url = base_url.rstrip("/")

    def _path(self, filename: str) -> Path:
        # Object names are flat; refuse anything that would escape the directory.
        name = Path(filename).name
        if not name or name != filename:
            raise StorageError(f"Invalid object name: {filename!r}")
        return self.directory / name

    async def upload(self, filename: str, data: bytes) -> str:
        path = self._path(filename)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Failed to store {filename}") from exc
        logger.info("Stored invoice %s (%d bytes)", filename, len(data))
        return f"{self.base_url}/{quote(filename)}"

    async def download(self, filename: str) -> bytes:
        path = self._path(filename)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise StorageError(f"Failed to read {filename}") from exc


class SupabaseInvoiceStorage:
    """Supabase Storage bucket; the client is synchronous so calls run in a thread."""

    def __init__(self, client: Client, bucket: str = "invoices"):
        self.client = client
        self.bucket = bucket

    @classmethod
    def from_settings(cls, settings: Settings) -> "SupabaseInvoiceStorage":
        if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
            raise StorageError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required")
        client = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
        return cls(client, settings.INVOICE_BUCKET)

    def _upload(self, filename: str, data: bytes) -> str:
        bucket = self.client.storage.from_(self.bucket)
        bucket.upload(
            filename,
            data,
            file_options={"content-type": PDF_CONTENT_TYPE, "upsert": "true"},
        )
        return bucket.get_public_url(filename)

    async def upload(self, filename: str, data: bytes) -> str:
        try:
            url = await asyncio.to_thread(self._upload, filename, data)
        except Exception as exc:  # noqa: BLE001 - storage3 raises its own hierarchy
            raise StorageError(f"Failed to upload {filename}") from exc
        logger.info("Uploaded invoice %s to bucket %s", filename, self.bucket)
        return url

    async def download(self, filename: str) -> bytes:
        try:
            return await asyncio.to_thread(
                self.client.storage.from_(self.bucket).download, filename)
        except Exception as exc:  # noqa: BLE001
            raise StorageError(f"Failed to download {filename}") from exc


_storage: Optional[InvoiceStorage] = None


def build_invoice_storage(settings: Settings) -> InvoiceStorage:
    backend = settings.INVOICE_STORAGE_BACKEND
    if backend == "supabase":
        return SupabaseInvoiceStorage.from_settings(settings)
    if backend == "local":
        return LocalInvoiceStorage(settings.INVOICE_STORAGE_DIR, settings.PUBLIC_BASE_URL)
    raise StorageError(f"Unknown INVOICE_STORAGE_BACKEND: {backend}")


def get_invoice_storage() -> InvoiceStorage:
    """FastAPI dependency returning the process-wide storage backend."""
    global _storage
    if _storage is None:
        _storage = build_invoice_storage(get_settings())
    return _storage


__all__ = [
    "StorageError",
    "InvoiceStorage",
    "LocalInvoiceStorage",
    "SupabaseInvoiceStorage",
    "filename_from_url",
    "build_invoice_storage",
    "get_invoice_storage",
]
