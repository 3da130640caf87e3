"""Invoice PDF assembly.

Draws a single A4 invoice with the reportlab canvas. Vertical positions come
from ``invoice_layout.compute_layout``; every offset inside a section is
multiplied by the layout scale so an overfull invoice shrinks as a whole.

``build_invoice_document`` turns an order into the flat strings drawn on the
page, ``build_invoice_pdf`` renders them.
"""
from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Tuple

import httpx
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from ..models.database import Order, Shop
from ..utils.formatting import (
    currency_symbol,
    format_amount,
    format_date,
    format_iban,
    format_money,
    to_decimal,
)
from .bank_accounts import ResolvedBankAccount, display_recipient
from .invoice_layout import (
    MARGIN_MM,
    PAGE_HEIGHT_MM,
    PAGE_WIDTH_MM,
    InvoiceLayout,
    compute_layout,
    fit_image,
    invoice_sections,
)
from .translations import get_translations, product_name

logger = logging.getLogger(__name__)

CONTENT_WIDTH_MM = PAGE_WIDTH_MM - 2 * MARGIN_MM
LOGO_BOX_MM = (50.0, 30.0)
DEFAULT_ACCENT = colors.HexColor("#1f3a5f")
TABLE_FILL = colors.HexColor("#eeeeee")
MIN_FONT_SIZE = 5.0


class PdfGenerationError(Exception):
    """Raised when the PDF library fails to render an invoice."""


@dataclass
class InvoiceLine:
    description: str
    quantity: str
    unit_price: str
    total: str


@dataclass
class PaymentDetails:
    recipient: str
    iban: str
    bic: Optional[str]
    bank_name: Optional[str]
    reference: str
    terms: str


@dataclass
class InvoiceDocument:
    """Everything printed on one invoice, already formatted."""
    language: str
    labels: Dict[str, str]
    company_name: str
    company_lines: List[str]
    customer_lines: List[str]
    delivery_lines: List[str]
    invoice_number: str
    invoice_date: str
    due_date: str
    order_number: str
    order_date: str
    lines: List[InvoiceLine]
    net: str
    vat: str
    gross: str
    vat_rate: str
    payment: Optional[PaymentDetails] = None
    footer_columns: List[Tuple[str, List[str]]] = field(default_factory=list)
    logo: Optional[bytes] = None
    accent_color: Optional[str] = None


def compute_vat(total, rate) -> Tuple[Decimal, Decimal]:
    """Split a gross total into (net, vat) for a VAT rate in percent."""
    gross = to_decimal(total)
    net = (gross / (1 + to_decimal(rate) / 100)).quantize(
        Decimal("0.01"), rounding=ROUND_HALF_UP)
    return net, gross - net


def _format_rate(rate) -> str:
    return format(to_decimal(rate).normalize(), "f")


def _format_liters(liters) -> str:
    value = to_decimal(liters)
    if value == value.to_integral_value():
        return format_amount(value, 0)
    return format_amount(value, 2)


def _name(first: Optional[str], last: Optional[str], fallback: str) -> str:
    full = " ".join(part for part in (first, last) if part)
    return full or fallback


def _address_block(order: Order) -> Tuple[List[str], List[str]]:
    delivery = [
        _name(order.delivery_first_name, order.delivery_last_name, order.customer_name),
        order.delivery_street,
        f"{order.delivery_postcode} {order.delivery_city}",
    ]
    if order.use_same_address or not order.billing_street:
        return list(delivery), delivery
    billing = [
        _name(order.billing_first_name, order.billing_last_name, order.customer_name),
        order.billing_street,
        f"{order.billing_postcode or ''} {order.billing_city or ''}".strip(),
    ]
    return billing, delivery


def _company_lines(shop: Shop, labels: Dict[str, str]) -> List[str]:
    lines = [shop.company_address, f"{shop.company_postcode} {shop.company_city}"]
    if shop.company_phone:
        lines.append(f"{labels['phone']}: {shop.company_phone}")
    lines.append(f"{labels['email']}: {shop.company_email}")
    if shop.company_website:
        lines.append(f"{labels['website']}: {shop.company_website}")
    if shop.vat_number:
        lines.append(f"{labels['vat_label']}: {shop.vat_number}")
    return lines


def _footer_columns(shop: Shop, payment: Optional[PaymentDetails],
                    labels: Dict[str, str]) -> List[Tuple[str, List[str]]]:
    contact = [line for line in (
        shop.support_phone or shop.company_phone,
        shop.company_email,
        shop.company_website,
    ) if line]
    bank: List[str] = []
    if payment is not None:
        bank = [line for line in (
            payment.bank_name,
            payment.iban,
            f"{labels['bic']}: {payment.bic}" if payment.bic else None,
        ) if line]
    business = [line for line in (
        shop.business_owner,
        shop.court_name,
        shop.registration_number,
        f"{labels['vat_label']}: {shop.vat_number}" if shop.vat_number else None,
    ) if line]
    return [
        (labels["contact"], contact),
        (labels["bank_information"], bank),
        (labels["business_data"], business),
    ]


def build_invoice_document(
    order: Order,
    shop: Shop,
    resolved: Optional[ResolvedBankAccount],
    *,
    language: str,
    invoice_number: str,
    invoice_date: date,
    vat_rate=None,
    payment_term_days: int = 14,
    logo: Optional[bytes] = None,
) -> InvoiceDocument:
    labels = get_translations(language)
    symbol = currency_symbol(shop.currency)
    rate = vat_rate if vat_rate is not None else shop.vat_rate
    net, vat = compute_vat(order.total_amount, rate)

    description = labels["heating_oil_delivery"]
    product = product_name(order.product, language)
    if product and order.product != "heating_oil":
        description = f"{description} ({product})"
    lines = [InvoiceLine(
        description=description,
        quantity=f"{_format_liters(order.liters)} {labels['liters']}",
        unit_price=format_money(order.price_per_liter, symbol, decimals=3),
        total=format_money(order.base_price, symbol),
    )]
    if to_decimal(order.delivery_fee) > 0:
        fee = format_money(order.delivery_fee, symbol)
        lines.append(InvoiceLine(labels["delivery_fee"], "1", fee, fee))

    payment = None
    if resolved is not None:
        account = resolved.account
        payment = PaymentDetails(
            recipient=display_recipient(account, shop),
            iban=format_iban(account.iban),
            bic=account.bic,
            bank_name=account.bank_name,
            reference=invoice_number,
            terms=labels["due_days"].format(days=payment_term_days),
        )

    customer_lines, delivery_lines = _address_block(order)
    order_date = order.created_at.date() if order.created_at else invoice_date
    return InvoiceDocument(
        language=language,
        labels=labels,
        company_name=shop.company_name,
        company_lines=_company_lines(shop, labels),
        customer_lines=customer_lines,
        delivery_lines=delivery_lines,
        invoice_number=invoice_number,
        invoice_date=format_date(invoice_date, language),
        due_date=format_date(invoice_date + timedelta(days=payment_term_days), language),
        order_number=order.order_number,
        order_date=format_date(order_date, language),
        lines=lines,
        net=format_money(net, symbol),
        vat=format_money(vat, symbol),
        gross=format_money(order.total_amount, symbol),
        vat_rate=_format_rate(rate),
        payment=payment,
        footer_columns=_footer_columns(shop, payment, labels),
        logo=logo,
        accent_color=shop.accent_color,
    )


class _Page:
    """Canvas wrapper working in millimetres from the top-left corner."""

    def __init__(self, pdf: canvas.Canvas, layout: InvoiceLayout):
        self.pdf = pdf
        self.scale = layout.scale

    def y(self, top_mm: float) -> float:
        return (PAGE_HEIGHT_MM - top_mm) * mm

    def font(self, size: float, bold: bool = False) -> None:
        name = "Helvetica-Bold" if bold else "Helvetica"
        self.pdf.setFont(name, max(size * self.scale, MIN_FONT_SIZE))

    def text(self, x_mm: float, top_mm: float, value: str) -> None:
        self.pdf.drawString(x_mm * mm, self.y(top_mm), str(value or ""))

    def right(self, x_mm: float, top_mm: float, value: str) -> None:
        self.pdf.drawRightString(x_mm * mm, self.y(top_mm), str(value or ""))


def _accent(value: Optional[str]):
    if not value:
        return DEFAULT_ACCENT
    try:
        return colors.HexColor(value)
    except ValueError:
        logger.warning("Ignoring invalid accent colour %r", value)
        return DEFAULT_ACCENT


def _draw_logo(page: _Page, logo: bytes, top: float) -> None:
    try:
        image = ImageReader(io.BytesIO(logo))
        width, height = image.getSize()
    except Exception as exc:  # noqa: BLE001 - PIL raises a variety of errors
        logger.warning("Logo could not be decoded, drawing invoice without it: %s", exc)
        return
    box_w = LOGO_BOX_MM[0] * page.scale
    box_h = LOGO_BOX_MM[1] * page.scale
    drawn_w, drawn_h, offset = fit_image(width, height, box_w, box_h)
    x = MARGIN_MM + CONTENT_WIDTH_MM - drawn_w
    page.pdf.drawImage(image, x * mm, page.y(top + offset + drawn_h),
                       width=drawn_w * mm, height=drawn_h * mm, mask="auto")


def _draw_header(page: _Page, doc: InvoiceDocument, top: float, accent) -> None:
    s = page.scale
    page.pdf.setFillColor(accent)
    page.font(18, bold=True)
    page.text(MARGIN_MM, top + 8 * s, doc.company_name)
    page.pdf.setFillColor(colors.black)
    page.font(9)
    for index, line in enumerate(doc.company_lines[:6]):
        page.text(MARGIN_MM, top + (14 + 4 * index) * s, line)
    if doc.logo:
        _draw_logo(page, doc.logo, top + 2 * s)


def _draw_invoice_info(page: _Page, doc: InvoiceDocument, top: float, accent) -> None:
    s = page.scale
    t = doc.labels
    page.pdf.setFillColor(accent)
    page.font(20, bold=True)
    page.text(MARGIN_MM, top + 8 * s, t["invoice"])
    page.pdf.setFillColor(colors.black)
    page.font(10)
    rows = [
        (t["invoice_number"], doc.invoice_number),
        (t["invoice_date"], doc.invoice_date),
        (t["due_date"], doc.due_date),
        (t["order_number"], doc.order_number),
        (t["order_date"], doc.order_date),
    ]
    for index, (label, value) in enumerate(rows):
        y = top + (15 + 4.5 * index) * s
        page.text(MARGIN_MM, y, f"{label}:")
        page.text(MARGIN_MM + 45, y, value)


def _draw_addresses(page: _Page, doc: InvoiceDocument, top: float) -> None:
    s = page.scale
    t = doc.labels
    columns = ((MARGIN_MM, t["billing_address"], doc.customer_lines),
               (MARGIN_MM + CONTENT_WIDTH_MM / 2, t["delivery_address"], doc.delivery_lines))
    for x, title, lines in columns:
        page.font(9, bold=True)
        page.text(x, top + 5 * s, title)
        page.font(10)
        for index, line in enumerate(lines):
            page.text(x, top + (10 + 4.5 * index) * s, line)


def _column_x() -> Tuple[float, float, float, float]:
    return (MARGIN_MM + 2,
            MARGIN_MM + CONTENT_WIDTH_MM * 0.55,
            MARGIN_MM + CONTENT_WIDTH_MM * 0.70,
            MARGIN_MM + CONTENT_WIDTH_MM - 2)


def _draw_table(page: _Page, doc: InvoiceDocument, header_top: float,
                header_height: float, rows_top: float, rows_height: float) -> None:
    s = page.scale
    t = doc.labels
    desc_x, qty_x, price_x, total_x = _column_x()
    page.pdf.setFillColor(TABLE_FILL)
    page.pdf.rect(MARGIN_MM * mm, page.y(header_top + header_height),
                  CONTENT_WIDTH_MM * mm, header_height * mm, stroke=0, fill=1)
    page.pdf.setFillColor(colors.black)
    baseline = header_top + header_height * 0.65
    page.font(9, bold=True)
    page.text(desc_x, baseline, t["description"])
    page.text(qty_x, baseline, t["quantity"])
    page.text(price_x, baseline, t["unit_price"])
    page.right(total_x, baseline, t["total"])

    page.font(9)
    for index, line in enumerate(doc.lines):
        y = rows_top + (5.5 + 8 * index) * s
        page.text(desc_x, y, line.description)
        page.text(qty_x, y, line.quantity)
        page.text(price_x, y, line.unit_price)
        page.right(total_x, y, line.total)
    page.pdf.rect(MARGIN_MM * mm, page.y(rows_top + rows_height),
                  CONTENT_WIDTH_MM * mm, (header_height + rows_height) * mm,
                  stroke=1, fill=0)


def _draw_summary(page: _Page, doc: InvoiceDocument, top: float) -> None:
    s = page.scale
    t = doc.labels
    label_x = MARGIN_MM + CONTENT_WIDTH_MM * 0.55
    value_x = MARGIN_MM + CONTENT_WIDTH_MM - 2
    page.font(10)
    page.text(label_x, top + 6 * s, f"{t['subtotal']}:")
    page.right(value_x, top + 6 * s, doc.net)
    page.text(label_x, top + 12 * s, f"{t['vat']} ({doc.vat_rate}%):")
    page.right(value_x, top + 12 * s, doc.vat)
    page.font(12, bold=True)
    page.text(label_x, top + 19 * s, f"{t['grand_total']}:")
    page.right(value_x, top + 19 * s, doc.gross)


def _draw_payment(page: _Page, doc: InvoiceDocument, top: float, accent) -> None:
    s = page.scale
    t = doc.labels
    payment = doc.payment
    page.pdf.setFillColor(accent)
    page.font(12, bold=True)
    page.text(MARGIN_MM, top + 6 * s, t["payment_details"])
    page.pdf.setFillColor(colors.black)
    page.font(10)
    rows = [(t["account_holder"], payment.recipient), (t["iban"], payment.iban)]
    if payment.bic:
        rows.append((t["bic"], payment.bic))
    if payment.bank_name:
        rows.append((t["bank"], payment.bank_name))
    rows.append((t["payment_reference"], payment.reference))
    rows.append((t["payment_terms"], payment.terms))
    for index, (label, value) in enumerate(rows):
        y = top + (12 + 5 * index) * s
        page.text(MARGIN_MM, y, f"{label}:")
        page.text(MARGIN_MM + 40, y, value)


def _draw_footer(page: _Page, doc: InvoiceDocument, top: float) -> None:
    s = page.scale
    page.pdf.setStrokeColor(colors.grey)
    page.pdf.line(MARGIN_MM * mm, page.y(top + 2 * s),
                  (MARGIN_MM + CONTENT_WIDTH_MM) * mm, page.y(top + 2 * s))
    page.pdf.setStrokeColor(colors.black)
    page.font(10)
    page.text(MARGIN_MM, top + 7 * s, doc.labels["thank_you"])
    width = CONTENT_WIDTH_MM / 3
    for column, (title, lines) in enumerate(doc.footer_columns):
        x = MARGIN_MM + width * column
        page.font(7, bold=True)
        page.text(x, top + 13 * s, title)
        page.font(7)
        for index, line in enumerate(lines[:3]):
            page.text(x, top + (17 + 3.5 * index) * s, line)


def build_invoice_pdf(doc: InvoiceDocument) -> bytes:
    """Render ``doc`` to PDF bytes."""
    layout = compute_layout(invoice_sections(len(doc.lines), doc.payment is not None))
    if layout.scale < 1.0:
        logger.info("Invoice %s scaled to %.3f to fit one page",
                    doc.invoice_number, layout.scale)
    buffer = io.BytesIO()
    try:
        pdf = canvas.Canvas(buffer, pagesize=A4)
        pdf.setTitle(f"{doc.labels['invoice']} {doc.invoice_number}")
        pdf.setAuthor(doc.company_name)
        page = _Page(pdf, layout)
        accent = _accent(doc.accent_color)

        _draw_header(page, doc, layout.box("header").top, accent)
        _draw_invoice_info(page, doc, layout.box("invoice_info").top, accent)
        _draw_addresses(page, doc, layout.box("addresses").top)
        header = layout.box("table_header")
        rows = layout.box("table_rows")
        _draw_table(page, doc, header.top, header.height, rows.top, rows.height)
        _draw_summary(page, doc, layout.box("summary").top)
        if layout.has("payment"):
            _draw_payment(page, doc, layout.box("payment").top, accent)
        _draw_footer(page, doc, layout.box("footer").top)

        pdf.showPage()
        pdf.save()
    except Exception as exc:
        logger.error("Failed to render invoice %s: %s", doc.invoice_number, exc)
        raise PdfGenerationError("PDF generation failed") from exc
    return buffer.getvalue()


async def fetch_logo(url: Optional[str]) -> Optional[bytes]:
    """Download the shop logo, or None when the shop has none.

    Raises:
        PdfGenerationError: the download failed or returned an error status
    """
    if not url:
        return None
    try:
        async with httpx.AsyncClient(follow_redirects=True) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.content
    except httpx.HTTPError as exc:
        logger.error("Logo download failed for %s: %s", url, exc)
        raise PdfGenerationError(f"Logo download failed: {url}") from exc


__all__ = [
    "PdfGenerationError",
    "InvoiceLine",
    "PaymentDetails",
    "InvoiceDocument",
    "compute_vat",
    "build_invoice_document",
    "build_invoice_pdf",
    "fetch_logo",
]
