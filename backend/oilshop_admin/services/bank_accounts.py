"""Bank account resolution and shop bank data.

Which account an invoice shows is decided by a fixed priority:

1. the account explicitly selected on the order, if active
2. an active temporary account created for this order
3. the shop's default account, if active
4. none (the invoice omits payment details)

``resolve_bank_account`` is a pure function over already-loaded rows so it
can be unit tested without a database; ``resolve_order_bank_account`` loads
the candidates and applies it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.database import BankAccount, Order, Shop
from ..utils.errors import BankAccountNotFound, OrderNotFound, ShopNotFound
from ..utils.formatting import normalize_iban

logger = logging.getLogger(__name__)

SOURCE_SELECTED = "selected"
SOURCE_TEMPORARY = "temporary"
SOURCE_SHOP_DEFAULT = "shop_default"


@dataclass(frozen=True)
class ResolvedBankAccount:
    account: BankAccount
    source: str


def _created_key(account: BankAccount) -> float:
    created = account.created_at
    return created.timestamp() if created is not None else float("-inf")


def resolve_bank_account(
    order: Order,
    shop: Optional[Shop],
    candidates: Iterable[BankAccount],
) -> Optional[ResolvedBankAccount]:
    """Return the account an invoice for ``order`` should show, or None."""
    accounts = list(candidates)
    by_id = {account.id: account for account in accounts}

    selected = None
    if order.selected_bank_account_id is not None:
        selected = by_id.get(order.selected_bank_account_id)
    if selected is not None and selected.active:
        return ResolvedBankAccount(selected, SOURCE_SELECTED)

    temporary = [
        account for account in accounts
        if account.is_temporary and account.active
        and account.used_for_order_id == order.id
    ]
    if temporary:
        newest = max(temporary, key=_created_key)
        return ResolvedBankAccount(newest, SOURCE_TEMPORARY)

    default_id = getattr(shop, "bank_account_id", None)
    default = by_id.get(default_id) if default_id is not None else None
    if default is not None and default.active:
        return ResolvedBankAccount(default, SOURCE_SHOP_DEFAULT)

    return None


def display_recipient(account: BankAccount, shop: Optional[Shop]) -> str:
    """Name printed as payment recipient.

    ``use_anyname`` swaps in the shop's company name; routing is unchanged.
    """
    if account.use_anyname:
        company = getattr(shop, "company_name", None)
        if company:
            return company
    return account.account_holder


async def load_bank_account_candidates(
    db: AsyncSession, order: Order, shop: Optional[Shop]
) -> List[BankAccount]:
    """Fetch every row the resolution could pick, newest first."""
    ids = {
        account_id for account_id in (
            order.selected_bank_account_id,
            getattr(shop, "bank_account_id", None),
        ) if account_id is not None
    }
    conditions = [
        and_(BankAccount.is_temporary.is_(True),
             BankAccount.used_for_order_id == order.id)
    ]
    if ids:
        conditions.append(BankAccount.id.in_(ids))
    stmt = (
        select(BankAccount)
        .where(or_(*conditions))
        .order_by(BankAccount.created_at.desc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def resolve_order_bank_account(
    db: AsyncSession, order: Order, shop: Optional[Shop]
) -> Optional[ResolvedBankAccount]:
    candidates = await load_bank_account_candidates(db, order, shop)
    resolved = resolve_bank_account(order, shop, candidates)
    if resolved is None:
        logger.info("No active bank account for order %s; invoice without payment details",
                    order.order_number)
    else:
        logger.info("Order %s uses %s bank account %s", order.order_number,
                    resolved.source, resolved.account.id)
    return resolved


def serialize_bank_account(account: BankAccount) -> Dict[str, Any]:
    return {
        "id": str(account.id),
        "account_name": account.account_name,
        "account_holder": account.account_holder,
        "bank_name": account.bank_name,
        "iban": account.iban,
        "bic": account.bic,
        "currency": account.currency,
        "active": account.active,
        "is_temporary": account.is_temporary,
        "temp_order_number": account.temp_order_number,
        "use_anyname": account.use_anyname,
        "used_for_order_id": str(account.used_for_order_id) if account.used_for_order_id else None,
    }


async def get_shop_bank_data(db: AsyncSession, shop_id: UUID) -> Dict[str, Any]:
    """Default payment details of an active shop (shown at checkout)."""
    result = await db.execute(
        select(Shop).where(Shop.id == shop_id, Shop.active.is_(True))
    )
    shop = result.scalar_one_or_none()
    if shop is None:
        raise ShopNotFound()
    if shop.bank_account_id is None:
        raise BankAccountNotFound()
    account = await db.get(BankAccount, shop.bank_account_id)
    if account is None or not account.active:
        raise BankAccountNotFound()
    return {
        "shop_name": shop.company_name,
        "bank_data": {
            "account_name": account.account_name,
            "account_holder": account.account_holder,
            "bank_name": account.bank_name,
            "iban": account.iban,
            "bic": account.bic,
            "currency": account.currency,
        },
    }


async def create_temporary_bank_account(
    db: AsyncSession,
    order_id: UUID,
    *,
    account_name: str,
    account_holder: str,
    bank_name: str,
    iban: str,
    bic: Optional[str] = None,
    currency: str = "EUR",
    temp_order_number: Optional[str] = None,
    use_anyname: bool = False,
) -> BankAccount:
    """Create a single-use account tied to ``order_id``."""
    order = await db.get(Order, order_id)
    if order is None:
        raise OrderNotFound()
    account = BankAccount(
        account_name=account_name,
        account_holder=account_holder,
        bank_name=bank_name,
        iban=normalize_iban(iban),
        bic=bic.strip().upper() if bic else None,
        currency=currency.upper(),
        active=True,
        is_temporary=True,
        use_anyname=use_anyname,
        temp_order_number=temp_order_number or order.order_number,
        used_for_order_id=order.id,
    )
    db.add(account)
    await db.commit()
    await db.refresh(account)
    logger.info("Temporary bank account %s created for order %s",
                account.id, order.order_number)
    return account


__all__ = [
    "SOURCE_SELECTED",
    "SOURCE_TEMPORARY",
    "SOURCE_SHOP_DEFAULT",
    "ResolvedBankAccount",
    "resolve_bank_account",
    "display_recipient",
    "load_bank_account_candidates",
    "resolve_order_bank_account",
    "serialize_bank_account",
    "get_shop_bank_data",
    "create_temporary_bank_account",
]
