"""Order lookup and back-office updates."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.database import BankAccount, Order, OrderStatus
from ..utils.errors import BankAccountNotFound, OrderNotFound, ValidationFailed

logger = logging.getLogger(__name__)

# Marks "argument not given" where None is a meaningful value (clear selection).
UNSET: Any = object()


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _num(value) -> Optional[float]:
    return float(value) if value is not None else None


def serialize_order(order: Order) -> Dict[str, Any]:
    return {
        "id": str(order.id),
        "order_number": order.order_number,
        "temp_order_number": order.temp_order_number,
        "shop_id": str(order.shop_id),
        "customer_name": order.customer_name,
        "customer_email": order.customer_email,
        "customer_phone": order.customer_phone,
        "delivery_address": {
            "first_name": order.delivery_first_name,
            "last_name": order.delivery_last_name,
            "street": order.delivery_street,
            "postcode": order.delivery_postcode,
            "city": order.delivery_city,
            "phone": order.delivery_phone,
        },
        "use_same_address": order.use_same_address,
        "billing_address": None if order.use_same_address else {
            "first_name": order.billing_first_name,
            "last_name": order.billing_last_name,
            "street": order.billing_street,
            "postcode": order.billing_postcode,
            "city": order.billing_city,
        },
        "product": order.product,
        "liters": _num(order.liters),
        "price_per_liter": _num(order.price_per_liter),
        "base_price": _num(order.base_price),
        "delivery_fee": _num(order.delivery_fee),
        "total_amount": _num(order.total_amount),
        "payment_method": order.payment_method,
        "processing_mode": order.processing_mode,
        "status": order.status,
        "selected_bank_account_id": str(order.selected_bank_account_id) if order.selected_bank_account_id else None,
        "invoice_number": order.invoice_number,
        "invoice_date": _iso(order.invoice_date),
        "invoice_generation_date": _iso(order.invoice_generation_date),
        "invoice_pdf_generated": order.invoice_pdf_generated,
        "invoice_pdf_url": order.invoice_pdf_url,
        "invoice_sent": order.invoice_sent,
        "bank_details_shown": order.bank_details_shown,
        "hidden": order.hidden,
        "created_at": _iso(order.created_at),
        "updated_at": _iso(order.updated_at),
    }


async def get_order(db: AsyncSession, order_id: UUID) -> Order:
    order = await db.get(Order, order_id)
    if order is None:
        raise OrderNotFound()
    return order


async def list_orders(
    db: AsyncSession,
    shop_id: Optional[UUID] = None,
    status: Optional[str] = None,
    include_hidden: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> List[Order]:
    """Newest first."""
    stmt = select(Order)
    if shop_id is not None:
        stmt = stmt.where(Order.shop_id == shop_id)
    if status is not None:
        stmt = stmt.where(Order.status == _validated_status(status))
    if not include_hidden:
        stmt = stmt.where(Order.hidden.is_(False))
    stmt = stmt.order_by(Order.created_at.desc()).limit(limit).offset(offset)
    result = await db.execute(stmt)
    return list(result.scalars().all())


def _validated_status(status: str) -> str:
    try:
        return OrderStatus(status).value
    except ValueError:
        raise ValidationFailed(f"Invalid order status: {status}") from None


async def update_order(
    db: AsyncSession,
    order_id: UUID,
    *,
    status: Optional[str] = None,
    selected_bank_account_id: Optional[UUID] = UNSET,
    hidden: Optional[bool] = None,
    bank_details_shown: Optional[bool] = None,
) -> Order:
    """Apply back-office field updates; ``selected_bank_account_id=None`` clears the selection."""
    order = await get_order(db, order_id)
    if status is not None:
        order.status = _validated_status(status)
    if selected_bank_account_id is not UNSET:
        if selected_bank_account_id is not None:
            account = await db.get(BankAccount, selected_bank_account_id)
            if account is None:
                raise BankAccountNotFound()
        order.selected_bank_account_id = selected_bank_account_id
    if hidden is not None:
        order.hidden = hidden
    if bank_details_shown is not None:
        order.bank_details_shown = bank_details_shown
    await db.commit()
    await db.refresh(order)
    logger.info("Order %s updated (status=%s)", order.order_number, order.status)
    return order


__all__ = [
    "UNSET",
    "serialize_order",
    "get_order",
    "list_orders",
    "update_order",
]
