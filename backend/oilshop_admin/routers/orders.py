"""Order management router.

Listing, detail and back-office updates, temporary bank accounts, and the
instant/manual processing flows.
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from ..config.database import get_async_db_dependency
from ..config.observability import trace_operation
from ..services import order_service
from ..services.bank_accounts import create_temporary_bank_account, serialize_bank_account
from ..services.email_service import process_instant_order, process_manual_order
from ..services.storage_service import InvoiceStorage, get_invoice_storage
from ..utils.api_shapes import raise_for_domain_error, success
from ..utils.errors import DomainError
from ..utils.formatting import normalize_iban
from .auth import get_current_user, User

router = APIRouter()


class OrderUpdate(BaseModel):
    model_config = ConfigDict(extra='ignore')

    status: Optional[str] = None
    selected_bank_account_id: Optional[UUID] = None
    hidden: Optional[bool] = None
    bank_details_shown: Optional[bool] = None


class TemporaryBankAccountCreate(BaseModel):
    account_name: str = Field(min_length=1, max_length=100)
    account_holder: str = Field(min_length=1, max_length=150)
    bank_name: str = Field(min_length=1, max_length=150)
    iban: str
    bic: Optional[str] = Field(default=None, max_length=11)
    currency: str = Field(default="EUR", min_length=3, max_length=3)
    temp_order_number: Optional[str] = Field(default=None, max_length=50)
    use_anyname: bool = False

    @field_validator("iban")
    @classmethod
    def iban_shape(cls, value):
        compact = normalize_iban(value)
        if not 15 <= len(compact) <= 34 or not compact[:2].isalpha():
            raise ValueError("IBAN must start with a country code and have 15-34 characters")
        return compact


class ManualProcessRequest(BaseModel):
    model_config = ConfigDict(extra='ignore')

    temp_order_number: Optional[str] = Field(default=None, max_length=50)
    bank_account_id: Optional[UUID] = None


@router.get('')
@router.get('/')
async def list_orders(
    shop_id: Optional[UUID] = None,
    status_filter: Optional[str] = Query(default=None, alias="status"),
    include_hidden: bool = False,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_async_db_dependency),
    _current_user: User = Depends(get_current_user)
):
    try:
        orders = await order_service.list_orders(
            db, shop_id=shop_id, status=status_filter,
            include_hidden=include_hidden, limit=limit, offset=offset,
        )
    except DomainError as exc:
        raise_for_domain_error(exc)
    data = [order_service.serialize_order(order) for order in orders]
    return success(data, total=len(data), limit=limit, offset=offset)


@router.get('/{order_id}')
async def get_order_detail(
    order_id: UUID,
    db: AsyncSession = Depends(get_async_db_dependency),
    _current_user: User = Depends(get_current_user)
):
    try:
        order = await order_service.get_order(db, order_id)
    except DomainError as exc:
        raise_for_domain_error(exc)
    return success(order_service.serialize_order(order))


@router.patch('/{order_id}')
async def update_order(
    order_id: UUID,
    payload: OrderUpdate,
    db: AsyncSession = Depends(get_async_db_dependency),
    _current_user: User = Depends(get_current_user)
):
    """Update status, selected bank account, visibility flags.

    Sending ``selected_bank_account_id: null`` explicitly clears the selection.
    """
    changes = payload.model_dump(exclude_unset=True)
    selected = changes.get("selected_bank_account_id", order_service.UNSET)
    with trace_operation("order_update", order_id=order_id):
        try:
            order = await order_service.update_order(
                db, order_id,
                status=changes.get("status"),
                selected_bank_account_id=selected,
                hidden=changes.get("hidden"),
                bank_details_shown=changes.get("bank_details_shown"),
            )
        except DomainError as exc:
            raise_for_domain_error(exc)
    return success(order_service.serialize_order(order))


@router.post('/{order_id}/temporary-bank-account', status_code=status.HTTP_201_CREATED)
async def add_temporary_bank_account(
    order_id: UUID,
    payload: TemporaryBankAccountCreate,
    db: AsyncSession = Depends(get_async_db_dependency),
    _current_user: User = Depends(get_current_user)
):
    with trace_operation("temporary_bank_account_create", order_id=order_id):
        try:
            account = await create_temporary_bank_account(db, order_id, **payload.model_dump())
        except DomainError as exc:
            raise_for_domain_error(exc)
    return success(serialize_bank_account(account))


@router.post('/{order_id}/process-instant')
async def process_instant(
    order_id: UUID,
    db: AsyncSession = Depends(get_async_db_dependency),
    storage: InvoiceStorage = Depends(get_invoice_storage),
    _current_user: User = Depends(get_current_user)
):
    """Generate the invoice and e-mail it to the customer."""
    with trace_operation("order_process_instant", order_id=order_id):
        try:
            result = await process_instant_order(db, storage, order_id)
        except DomainError as exc:
            raise_for_domain_error(exc)
    return success(result)


@router.post('/{order_id}/process-manual')
async def process_manual(
    order_id: UUID,
    payload: ManualProcessRequest,
    db: AsyncSession = Depends(get_async_db_dependency),
    _current_user: User = Depends(get_current_user)
):
    """Store manual-processing data and send the receipt confirmation."""
    with trace_operation("order_process_manual", order_id=order_id):
        try:
            result = await process_manual_order(
                db, order_id,
                temp_order_number=payload.temp_order_number,
                bank_account_id=payload.bank_account_id,
            )
        except DomainError as exc:
            raise_for_domain_error(exc)
    return success(result)
