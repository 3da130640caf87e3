"""Customer e-mails and the instant/manual processing flows.

Two confirmation types exist:

- ``instant_confirmation``: the order was processed automatically; the
  invoice PDF may be attached
- ``manual_confirmation``: the order was received and will be checked by
  hand; never carries an attachment

Mail goes out through the shop's Resend configuration. The SDK keeps its key
in a module global, so each send holds a lock while it swaps the shop's key
in and back out.
"""
from __future__ import annotations

import asyncio
import base64
import html
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional
from uuid import UUID

import resend
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config.observability import email_failed_counter, email_sent_counter
from ..models.database import BankAccount, EmailConfig, Order, OrderStatus, Shop
from ..utils.errors import (
    BankAccountNotFound,
    EmailConfigMissing,
    EmailDeliveryError,
    OrderNotFound,
    ShopNotFound,
    ValidationFailed,
)
from ..utils.formatting import currency_symbol, format_money
from .invoice_service import generate_invoice
from .storage_service import InvoiceStorage, StorageError, filename_from_url
from .translations import get_translations, product_name, resolve_language

logger = logging.getLogger(__name__)

INSTANT_CONFIRMATION = "instant_confirmation"
MANUAL_CONFIRMATION = "manual_confirmation"
EMAIL_TYPES = (INSTANT_CONFIRMATION, MANUAL_CONFIRMATION)

# Guards resend.api_key across concurrent sends for different shops
_resend_key_lock = threading.Lock()


@dataclass
class SentEmail:
    email_id: str
    email_type: str
    recipient: str
    attachment: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "email_id": self.email_id,
            "email_type": self.email_type,
            "recipient": self.recipient,
            "attachment": self.attachment,
        }


def attachment_filename(order: Order) -> str:
    return f"Rechnung-{order.invoice_number or order.order_number}.pdf"


def build_email_html(order: Order, shop: Shop, email_type: str, language: str) -> str:
    t = get_translations(language)
    symbol = currency_symbol(shop.currency)
    esc = html.escape
    heading = t["order_confirmation"] if email_type == INSTANT_CONFIRMATION else t["order_received"]
    product = product_name(order.product, language) or order.product
    items = [
        (t["order_number"], order.order_number),
        (t["description"], product),
        (t["quantity"], f"{order.liters} {t['liters']}"),
        (t["grand_total"], format_money(order.total_amount, symbol)),
    ]
    if email_type == INSTANT_CONFIRMATION and order.invoice_number:
        items.insert(1, (t["invoice_number"], order.invoice_number))
    rows = "".join(
        f"<li><strong>{esc(label)}:</strong> {esc(str(value))}</li>" for label, value in items
    )
    return (
        f"<html><body>"
        f"<h1>{esc(heading)}</h1>"
        f"<p>{esc(order.customer_name)},</p>"
        f"<ul>{rows}</ul>"
        f"<p>{esc(t['delivery_address'])}: {esc(order.delivery_street)}, "
        f"{esc(order.delivery_postcode)} {esc(order.delivery_city)}</p>"
        f"<p>{esc(t['thank_you'])}</p>"
        f"<p>{esc(shop.company_name)} &middot; {esc(shop.company_email)}</p>"
        f"</body></html>"
    )


def build_email_payload(order: Order, shop: Shop, config: EmailConfig,
                        email_type: str, language: str) -> Dict[str, Any]:
    t = get_translations(language)
    word = t["order_confirmation"] if email_type == INSTANT_CONFIRMATION else t["order_received"]
    return {
        "from": f"{config.from_name} <{config.from_email}>",
        "to": [order.customer_email],
        "subject": f"{word} {order.order_number}",
        "html": build_email_html(order, shop, email_type, language),
    }


def send_via_resend(payload: Dict[str, Any], api_key: str) -> str:
    """Send one e-mail and return the provider message id."""
    with _resend_key_lock:
        previous_api_key = getattr(resend, "api_key", None)
        resend.api_key = api_key
        try:
            response = resend.Emails.send(payload)
        except Exception as exc:  # noqa: BLE001 - resend raises ResendError and transport errors
            raise EmailDeliveryError(str(exc)) from exc
        finally:
            resend.api_key = previous_api_key

    email_id = response.get("id") if isinstance(response, dict) else getattr(response, "id", None)
    if not email_id:
        raise EmailDeliveryError(f"Unexpected provider response: {response!r}")
    return email_id


async def _load_email_config(db: AsyncSession, shop: Shop) -> EmailConfig:
    if shop.resend_config_id is None:
        raise EmailConfigMissing()
    result = await db.execute(
        select(EmailConfig).where(EmailConfig.id == shop.resend_config_id,
                                  EmailConfig.active.is_(True))
    )
    config = result.scalar_one_or_none()
    if config is None or not config.resend_api_key:
        raise EmailConfigMissing()
    return config


async def _invoice_attachment(storage: Optional[InvoiceStorage],
                              order: Order) -> Optional[Dict[str, Any]]:
    if storage is None or not order.invoice_pdf_url:
        return None
    filename = filename_from_url(order.invoice_pdf_url)
    try:
        data = await storage.download(filename)
    except StorageError as exc:
        logger.warning("Could not download invoice %s for order %s, sending without attachment: %s",
                       filename, order.order_number, exc)
        return None
    return {
        "filename": attachment_filename(order),
        "content": base64.b64encode(data).decode("ascii"),
        "content_type": "application/pdf",
    }


async def send_order_email(
    db: AsyncSession,
    storage: Optional[InvoiceStorage],
    order_id: UUID,
    email_type: str = INSTANT_CONFIRMATION,
    include_invoice: bool = False,
) -> SentEmail:
    """Send the confirmation e-mail for ``order_id``.

    Raises:
        ValidationFailed: unknown ``email_type``
        OrderNotFound / ShopNotFound: missing rows
        EmailConfigMissing: the shop has no active Resend configuration
        EmailDeliveryError: the provider rejected the message
    """
    if email_type not in EMAIL_TYPES:
        raise ValidationFailed(f"Unknown email_type: {email_type}")
    order = await db.get(Order, order_id)
    if order is None:
        raise OrderNotFound()
    shop = await db.get(Shop, order.shop_id)
    if shop is None:
        raise ShopNotFound()
    config = await _load_email_config(db, shop)

    language = resolve_language(None, shop)
    payload = build_email_payload(order, shop, config, email_type, language)
    with_invoice = email_type == INSTANT_CONFIRMATION and include_invoice
    attachment = await _invoice_attachment(storage, order) if with_invoice else None
    if attachment is not None:
        payload["attachments"] = [attachment]

    try:
        email_id = await asyncio.to_thread(send_via_resend, payload, config.resend_api_key)
    except EmailDeliveryError as exc:
        email_failed_counter.add(1, {"email_type": email_type})
        logger.error("E-mail for order %s failed: %s", order.order_number, exc.message)
        raise

    email_sent_counter.add(1, {"email_type": email_type})
    logger.info("Sent %s for order %s to %s (id=%s, attachment=%s)", email_type,
                order.order_number, order.customer_email, email_id, attachment is not None)

    if with_invoice:
        order.status = OrderStatus.INVOICE_SENT.value
        order.invoice_sent = True
        await db.commit()
        await db.refresh(order)

    return SentEmail(
        email_id=email_id,
        email_type=email_type,
        recipient=order.customer_email,
        attachment=attachment["filename"] if attachment else None,
    )


async def process_instant_order(db: AsyncSession, storage: InvoiceStorage,
                                order_id: UUID) -> Dict[str, Any]:
    """Generate the invoice and mail it to the customer.

    Invoice failures propagate; an e-mail failure is logged and reported.
    """
    invoice = await generate_invoice(db, storage, order_id)
    order = await db.get(Order, order_id)
    order.processing_mode = "instant"
    await db.commit()

    email_sent = False
    try:
        await send_order_email(db, storage, order_id,
                               email_type=INSTANT_CONFIRMATION, include_invoice=True)
        email_sent = True
    except (EmailConfigMissing, EmailDeliveryError) as exc:
        logger.warning("Instant order %s processed without e-mail: %s",
                       invoice.invoice_number, exc.message)
    return {
        "order_number": order.order_number,
        "invoice_generated": True,
        "invoice": invoice.as_dict(),
        "email_sent": email_sent,
    }


async def process_manual_order(
    db: AsyncSession,
    order_id: UUID,
    temp_order_number: Optional[str] = None,
    bank_account_id: Optional[UUID] = None,
) -> Dict[str, Any]:
    """Record manual-processing data and send the receipt confirmation."""
    order = await db.get(Order, order_id)
    if order is None:
        raise OrderNotFound()
    if bank_account_id is not None:
        account = await db.get(BankAccount, bank_account_id)
        if account is None:
            raise BankAccountNotFound()
        order.selected_bank_account_id = account.id
    if temp_order_number:
        order.temp_order_number = temp_order_number
    order.processing_mode = "manual"
    await db.commit()
    await db.refresh(order)

    email_sent = False
    try:
        await send_order_email(db, None, order_id, email_type=MANUAL_CONFIRMATION)
        email_sent = True
    except (EmailConfigMissing, EmailDeliveryError) as exc:
        logger.warning("Manual order %s processed without e-mail: %s",
                       order.order_number, exc.message)
    return {
        "order_number": order.order_number,
        "temp_order_number": temp_order_number or order.order_number,
        "processing_mode": "manual",
        "email_sent": email_sent,
    }


__all__ = [
    "INSTANT_CONFIRMATION",
    "MANUAL_CONFIRMATION",
    "EMAIL_TYPES",
    "SentEmail",
    "attachment_filename",
    "build_email_html",
    "build_email_payload",
    "send_via_resend",
    "send_order_email",
    "process_instant_order",
    "process_manual_order",
]
