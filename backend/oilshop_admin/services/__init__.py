"""Service layer package.

Services hold persistence and business rules; they raise domain exceptions
and never HTTP errors.
"""

__all__ = [
    "bank_accounts",
    "email_service",
    "invoice_layout",
    "invoice_service",
    "order_service",
    "pdf_service",
    "storage_service",
    "translations",
]
