"""Invoice router: generate the invoice PDF for an order and e-mail customers.

Business rules live in ``services.invoice_service`` / ``services.email_service``;
this module only validates input and maps domain errors onto HTTP errors.
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from ..config.database import get_async_db_dependency
from ..config.observability import trace_operation
from ..services.email_service import EMAIL_TYPES, INSTANT_CONFIRMATION, send_order_email
from ..services.invoice_service import generate_invoice
from ..services.storage_service import InvoiceStorage, get_invoice_storage
from ..utils.api_shapes import raise_for_domain_error, success
from ..utils.errors import DomainError
from .auth import get_current_user, User

router = APIRouter()


class GenerateInvoiceRequest(BaseModel):
    model_config = ConfigDict(extra='ignore')

    order_id: UUID
    language: Optional[str] = None

    @field_validator("language")
    @classmethod
    def blank_language_is_none(cls, value):
        if value is None:
            return None
        return value.strip().lower() or None


class SendEmailRequest(BaseModel):
    model_config = ConfigDict(extra='ignore')

    order_id: UUID
    email_type: str = INSTANT_CONFIRMATION
    include_invoice: bool = False

    @field_validator("email_type")
    @classmethod
    def known_email_type(cls, value):
        if value not in EMAIL_TYPES:
            raise ValueError(f"email_type must be one of {', '.join(EMAIL_TYPES)}")
        return value


@router.post('/generate')
async def generate_invoice_endpoint(
    payload: GenerateInvoiceRequest,
    db: AsyncSession = Depends(get_async_db_dependency),
    storage: InvoiceStorage = Depends(get_invoice_storage),
    _current_user: User = Depends(get_current_user)
):
    """Generate (or regenerate) the invoice PDF for an order.

    Unsupported languages fall back to the shop's language; a missing bank
    account produces an invoice without payment details.
    """
    with trace_operation("invoice_generate", order_id=payload.order_id,
                         language=payload.language):
        try:
            generated = await generate_invoice(db, storage, payload.order_id, payload.language)
        except DomainError as exc:
            raise_for_domain_error(exc)
    return success(generated.as_dict())


@router.post('/send')
async def send_invoice_email(
    payload: SendEmailRequest,
    db: AsyncSession = Depends(get_async_db_dependency),
    storage: InvoiceStorage = Depends(get_invoice_storage),
    _current_user: User = Depends(get_current_user)
):
    with trace_operation("invoice_send_email", order_id=payload.order_id,
                         email_type=payload.email_type):
        try:
            sent = await send_order_email(
                db, storage, payload.order_id,
                email_type=payload.email_type,
                include_invoice=payload.include_invoice,
            )
        except DomainError as exc:
            raise_for_domain_error(exc)
    status_updated = payload.include_invoice and payload.email_type == INSTANT_CONFIRMATION
    return success(sent.as_dict(), status_updated=status_updated)
