"""Centralized error response helpers and exception utilities.

Every error leaving the API uses the same envelope:
``{"status": "error", "error": {"code", "message", "details"?}, "timestamp", "path"?}``.
"""
from __future__ import annotations
from fastapi import HTTPException
from typing import Any, Dict
import time

ERROR_CODES = {
    "validation": "VALIDATION_ERROR",
    "not_found": "NOT_FOUND",
    "order_not_found": "ORDER_NOT_FOUND",
    "shop_not_found": "SHOP_NOT_FOUND",
    "bank_account_not_found": "BANK_ACCOUNT_NOT_FOUND",
    "email_config_missing": "EMAIL_CONFIG_MISSING",
    "invoice_generation": "INVOICE_GENERATION_FAILED",
    "email_delivery": "EMAIL_DELIVERY_FAILED",
    "auth_invalid": "AUTH_INVALID_CREDENTIALS",
    "auth_expired": "AUTH_TOKEN_EXPIRED",
    "db": "DB_ERROR",
    "internal": "INTERNAL_SERVER_ERROR",
}


def error_payload(code: str, message: str, details: Any | None = None, path: str | None = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "status": "error",
        "error": {
            "code": code,
            "message": message,
        },
        "timestamp": time.time(),
    }
    if details is not None:
        payload["error"]["details"] = details
    if path:
        payload["path"] = path
    return payload


def http_error(status_code: int, code: str, message: str, headers: Dict[str, str] | None = None) -> HTTPException:
    """Build an HTTPException carrying a standardized error code.

    The global HTTPException handler reads the ``code`` attribute.
    """
    exc = HTTPException(status_code=status_code,
                        detail=message, headers=headers)
    setattr(exc, "code", code)
    return exc


class DomainError(Exception):
    """Base domain error storing standardized fields.

    Subclasses set ``code`` (and optionally ``default_message``) at class level.
    """
    code = ERROR_CODES["internal"]
    default_message = "Domain error"

    def __init__(self, message: str | None = None, details: Any | None = None):  # noqa: D401
        self.message = message or self.default_message
        super().__init__(self.message)
        self.details = details


class OrderNotFound(DomainError):
    """Raised when an order id does not exist."""
    code = ERROR_CODES["order_not_found"]
    default_message = "Order not found"


class ShopNotFound(DomainError):
    """Raised when a shop is unknown or inactive."""
    code = ERROR_CODES["shop_not_found"]
    default_message = "Shop not found or inactive"


class BankAccountNotFound(DomainError):
    """Raised when a referenced bank account is missing or inactive."""
    code = ERROR_CODES["bank_account_not_found"]
    default_message = "No active bank account configured"


class EmailConfigMissing(DomainError):
    code = ERROR_CODES["email_config_missing"]
    default_message = "No email configuration found"


class InvoiceGenerationError(DomainError):
    """PDF assembly, storage upload or order write-back failed."""
    code = ERROR_CODES["invoice_generation"]
    default_message = "Failed to generate invoice"


class EmailDeliveryError(DomainError):
    code = ERROR_CODES["email_delivery"]
    default_message = "Failed to send email"


class ValidationFailed(DomainError):
    """Raised when a payload passes schema validation but breaks a business rule."""
    code = ERROR_CODES["validation"]
    default_message = "Validation failed"


__all__ = [
    "ERROR_CODES",
    "error_payload",
    "http_error",
    "DomainError",
    "OrderNotFound",
    "ShopNotFound",
    "BankAccountNotFound",
    "EmailConfigMissing",
    "InvoiceGenerationError",
    "EmailDeliveryError",
    "ValidationFailed",
]
