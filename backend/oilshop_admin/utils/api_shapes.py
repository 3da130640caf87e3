"""Shared API shape helpers.

  - success(): standard success envelope
  - raise_for_domain_error(): map service-layer exceptions onto HTTP errors
"""
from __future__ import annotations
import time
from typing import Any, NoReturn

from fastapi import status

from .errors import (
    DomainError,
    OrderNotFound,
    ShopNotFound,
    BankAccountNotFound,
    EmailConfigMissing,
    ValidationFailed,
    http_error,
)

# Service exception -> HTTP status. Anything else derived from DomainError is a 500.
DOMAIN_STATUS = {
    OrderNotFound: status.HTTP_404_NOT_FOUND,
    ShopNotFound: status.HTTP_404_NOT_FOUND,
    BankAccountNotFound: status.HTTP_404_NOT_FOUND,
    EmailConfigMissing: status.HTTP_400_BAD_REQUEST,
    ValidationFailed: status.HTTP_400_BAD_REQUEST,
}


def success(data: Any, **meta) -> dict:
    return {"status": "success", "data": data, "meta": meta or None, "timestamp": time.time()}


def raise_for_domain_error(exc: DomainError) -> NoReturn:
    """Re-raise a domain exception as an HTTPException with its code.

    Server-side failures keep their generic class message; the cause stays in
    the logs.
    """
    status_code = DOMAIN_STATUS.get(
        type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    message = exc.message if status_code < 500 else type(exc).default_message
    raise http_error(status_code, exc.code, message) from exc
