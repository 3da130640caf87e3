from datetime import date
from decimal import Decimal
import uuid

import httpx
import pytest

from oilshop_admin.models.database import BankAccount, Order, Shop
from oilshop_admin.services import pdf_service
from oilshop_admin.services.bank_accounts import ResolvedBankAccount, SOURCE_SHOP_DEFAULT
from oilshop_admin.services.pdf_service import (
    PdfGenerationError,
    build_invoice_document,
    build_invoice_pdf,
    compute_vat,
    fetch_logo,
)

pytestmark = pytest.mark.unit


def _shop(**overrides) -> Shop:
    values = dict(
        id=uuid.uuid4(),
        company_name="Heizöl Nord GmbH",
        company_address="Hafenstraße 12",
        company_postcode="20457",
        company_city="Hamburg",
        company_email="info@heizoel-nord.de",
        company_phone="040 123456",
        vat_number="DE123456789",
        currency="EUR",
        vat_rate=Decimal("19"),
        language="de",
    )
    values.update(overrides)
    return Shop(**values)


def _order(**overrides) -> Order:
    values = dict(
        id=uuid.uuid4(),
        order_number="HO-2024/0042",
        customer_name="Erika Mustermann",
        customer_email="erika@example.com",
        delivery_street="Lindenweg 5",
        delivery_postcode="22085",
        delivery_city="Hamburg",
        use_same_address=True,
        product="heating_oil",
        liters=Decimal("3000"),
        price_per_liter=Decimal("0.9875"),
        base_price=Decimal("2962.50"),
        delivery_fee=Decimal("29.90"),
        total_amount=Decimal("2992.40"),
    )
    values.update(overrides)
    return Order(**values)


def _resolved() -> ResolvedBankAccount:
    account = BankAccount(
        id=uuid.uuid4(), account_name="Hauptkonto", account_holder="Heizöl Nord GmbH",
        bank_name="Hamburger Sparkasse", iban="DE89370400440532013000",
        bic="HASPDEHHXXX", active=True, is_temporary=False, use_anyname=False,
    )
    return ResolvedBankAccount(account, SOURCE_SHOP_DEFAULT)


def test_compute_vat_splits_gross():
    net, vat = compute_vat(Decimal("119.00"), 19)
    assert net == Decimal("100.00")
    assert vat == Decimal("19.00")


def test_compute_vat_zero_rate():
    net, vat = compute_vat(Decimal("50.00"), 0)
    assert net == Decimal("50.00")
    assert vat == Decimal("0.00")


def test_document_lines_and_totals():
    doc = build_invoice_document(
        _order(), _shop(), _resolved(),
        language="de", invoice_number="2024-0001", invoice_date=date(2024, 3, 1),
    )

    assert [line.description for line in doc.lines] == ["Heizöllieferung", "Liefergebühr"]
    assert doc.lines[0].quantity == "3000 Liter"
    assert doc.lines[0].unit_price == "€0.988"
    assert doc.lines[0].total == "€2962.50"
    assert doc.gross == "€2992.40"
    assert doc.net == "€2514.62"
    assert doc.vat == "€477.78"
    assert doc.vat_rate == "19"
    assert doc.invoice_date == "01.03.2024"
    assert doc.due_date == "15.03.2024"


def test_document_without_delivery_fee_has_single_line():
    doc = build_invoice_document(
        _order(delivery_fee=Decimal("0")), _shop(), None,
        language="en", invoice_number="2024-0002", invoice_date=date(2024, 3, 1),
    )
    assert len(doc.lines) == 1
    assert doc.payment is None


def test_payment_details_use_grouped_iban_and_reference():
    doc = build_invoice_document(
        _order(), _shop(), _resolved(),
        language="en", invoice_number="2024-0003", invoice_date=date(2024, 3, 1),
        payment_term_days=10,
    )
    assert doc.payment.iban == "DE89 3704 0044 0532 0130 00"
    assert doc.payment.reference == "2024-0003"
    assert doc.payment.terms == "10 days"


def test_separate_billing_address():
    order = _order(use_same_address=False, billing_first_name="Hans",
                   billing_last_name="Muster", billing_street="Marktplatz 1",
                   billing_postcode="20095", billing_city="Hamburg")
    doc = build_invoice_document(
        order, _shop(), None,
        language="de", invoice_number="2024-0004", invoice_date=date(2024, 3, 1),
    )
    assert doc.customer_lines[0] == "Hans Muster"
    assert doc.delivery_lines[1] == "Lindenweg 5"


def test_build_invoice_pdf_returns_pdf_bytes():
    doc = build_invoice_document(
        _order(), _shop(), _resolved(),
        language="de", invoice_number="2024-0005", invoice_date=date(2024, 3, 1),
    )
    pdf = build_invoice_pdf(doc)
    assert pdf.startswith(b"%PDF")
    assert len(pdf) > 1000


def test_undecodable_logo_is_skipped():
    doc = build_invoice_document(
        _order(), _shop(), None,
        language="de", invoice_number="2024-0006", invoice_date=date(2024, 3, 1),
        logo=b"definitely not an image",
    )
    assert build_invoice_pdf(doc).startswith(b"%PDF")


def test_renderer_failure_is_wrapped(monkeypatch):
    def broken_canvas(*args, **kwargs):
        raise RuntimeError("font cache corrupted")

    monkeypatch.setattr(pdf_service.canvas, "Canvas", broken_canvas)
    doc = build_invoice_document(
        _order(), _shop(), None,
        language="de", invoice_number="2024-0007", invoice_date=date(2024, 3, 1),
    )
    with pytest.raises(PdfGenerationError):
        build_invoice_pdf(doc)


@pytest.mark.asyncio
async def test_fetch_logo_without_url():
    assert await fetch_logo(None) is None
    assert await fetch_logo("") is None


@pytest.mark.asyncio
async def test_fetch_logo_error_status_raises(monkeypatch):
    real_client = httpx.AsyncClient

    def unavailable(**kwargs):
        transport = httpx.MockTransport(lambda request: httpx.Response(503))
        return real_client(transport=transport, **kwargs)

    monkeypatch.setattr(pdf_service.httpx, "AsyncClient", unavailable)

    with pytest.raises(PdfGenerationError):
        await fetch_logo("https://cdn.heizoel-nord.de/logo.png")
