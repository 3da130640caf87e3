"""Invoice generation flow.

Loads an order with its shop, resolves language and bank account, renders the
PDF, uploads it and writes the invoice fields back onto the order.

Design notes:
 - Regenerating an invoice keeps the order's invoice number and overwrites
   the stored object of the same name.
 - Numbers are ``YYYY-NNNN``, one sequence per calendar year. Allocation is
   read-then-write without locking; two concurrent first generations may
   pick the same number and the last write wins.
 - A failed upload after a successful render leaves nothing written back;
   a failed write-back after a successful upload leaves the object behind.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config.observability import (
    invoice_generated_counter,
    invoice_generation_failed_counter,
)
from ..config.settings import Settings, get_settings
from ..models.database import Order, Shop
from ..utils.errors import InvoiceGenerationError, OrderNotFound, ShopNotFound
from .bank_accounts import ResolvedBankAccount, display_recipient, resolve_order_bank_account
from .pdf_service import PdfGenerationError, build_invoice_document, build_invoice_pdf, fetch_logo
from .storage_service import InvoiceStorage, StorageError
from .translations import get_translations, resolve_language

logger = logging.getLogger(__name__)


@dataclass
class GeneratedInvoice:
    invoice_number: str
    invoice_url: str
    filename: str
    language: str
    generated_at: datetime
    bank_account: Optional[Dict[str, Any]]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "invoice_number": self.invoice_number,
            "invoice_url": self.invoice_url,
            "filename": self.filename,
            "language": self.language,
            "generated_at": self.generated_at.isoformat(),
            "bank_account": self.bank_account,
        }


def invoice_filename(invoice_word: str, order_number: str, language: str) -> str:
    """Storage object name, e.g. ``rechnung_HO-2024_0042_de.pdf``."""
    return f"{invoice_word.lower()}_{order_number.replace('/', '_')}_{language}.pdf"


async def next_invoice_number(db: AsyncSession, today: Optional[date] = None) -> str:
    """Highest number issued this year plus one."""
    year = (today or date.today()).year
    prefix = f"{year}-"
    result = await db.execute(
        select(Order.invoice_number).where(Order.invoice_number.like(f"{prefix}%"))
    )
    highest = 0
    for number in result.scalars():
        suffix = number[len(prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"{prefix}{highest + 1:04d}"


def _bank_account_summary(resolved: Optional[ResolvedBankAccount],
                          shop: Shop) -> Optional[Dict[str, Any]]:
    if resolved is None:
        return None
    account = resolved.account
    return {
        "id": str(account.id),
        "source": resolved.source,
        "account_name": account.account_name,
        "recipient": display_recipient(account, shop),
    }


async def generate_invoice(
    db: AsyncSession,
    storage: InvoiceStorage,
    order_id: UUID,
    language: Optional[str] = None,
    *,
    settings: Optional[Settings] = None,
    today: Optional[date] = None,
) -> GeneratedInvoice:
    """Render, store and record the invoice for ``order_id``.

    Raises:
        OrderNotFound: unknown order id
        ShopNotFound: the order's shop no longer exists
        InvoiceGenerationError: rendering, upload or write-back failed
    """
    settings = settings or get_settings()
    order = await db.get(Order, order_id)
    if order is None:
        raise OrderNotFound()
    shop = await db.get(Shop, order.shop_id)
    if shop is None:
        raise ShopNotFound()

    language = resolve_language(language, shop, settings.DEFAULT_LANGUAGE)
    resolved = await resolve_order_bank_account(db, order, shop)
    invoice_date = today or date.today()
    invoice_number = order.invoice_number or await next_invoice_number(db, invoice_date)
    filename = invoice_filename(get_translations(language)["invoice"],
                                order.order_number, language)
    bank_account = _bank_account_summary(resolved, shop)
    vat_rate = shop.vat_rate if shop.vat_rate is not None else settings.DEFAULT_VAT_RATE

    try:
        logo = await fetch_logo(shop.logo_url)
        document = build_invoice_document(
            order, shop, resolved,
            language=language,
            invoice_number=invoice_number,
            invoice_date=invoice_date,
            vat_rate=vat_rate,
            payment_term_days=settings.PAYMENT_TERM_DAYS,
            logo=logo,
        )
        pdf = build_invoice_pdf(document)
        url = await storage.upload(filename, pdf)

        generated_at = datetime.now(UTC)
        order.invoice_number = invoice_number
        order.invoice_date = invoice_date
        order.invoice_generation_date = generated_at
        order.invoice_pdf_generated = True
        order.invoice_pdf_url = url
        await db.commit()
        await db.refresh(order)
    except (PdfGenerationError, StorageError, SQLAlchemyError) as exc:
        await db.rollback()
        invoice_generation_failed_counter.add(1, {"stage": type(exc).__name__})
        logger.error("Invoice generation failed for order %s: %s", order_id, exc)
        raise InvoiceGenerationError(details={"order_id": str(order_id)}) from exc

    invoice_generated_counter.add(1, {"language": language})
    logger.info("Invoice %s generated for order %s (%s, %d bytes)",
                invoice_number, order.order_number, language, len(pdf))
    return GeneratedInvoice(
        invoice_number=invoice_number,
        invoice_url=url,
        filename=filename,
        language=language,
        generated_at=generated_at,
        bank_account=bank_account,
    )


__all__ = [
    "GeneratedInvoice",
    "invoice_filename",
    "next_invoice_number",
    "generate_invoice",
]
