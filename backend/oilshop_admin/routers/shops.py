"""Shop router: default payment details shown at checkout."""
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..config.database import get_async_db_dependency
from ..services.bank_accounts import get_shop_bank_data
from ..utils.api_shapes import raise_for_domain_error, success
from ..utils.errors import DomainError
from .auth import get_current_user, User

router = APIRouter()


@router.get('/{shop_id}/bank-data')
async def shop_bank_data(
    shop_id: UUID,
    db: AsyncSession = Depends(get_async_db_dependency),
    _current_user: User = Depends(get_current_user)
):
    try:
        data = await get_shop_bank_data(db, shop_id)
    except DomainError as exc:
        raise_for_domain_error(exc)
    return success(data)
