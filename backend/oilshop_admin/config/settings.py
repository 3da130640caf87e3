"""Application settings module.

Provides centralized configuration using environment variables with sane defaults.
Invoice defaults (language, VAT rate, payment term) apply when a shop leaves
the corresponding field empty.
"""
from __future__ import annotations

from functools import lru_cache
import os

from pydantic import BaseModel


class Settings(BaseModel):
    # Invoice domain defaults
    DEFAULT_LANGUAGE: str = "de"
    DEFAULT_VAT_RATE: float = 19.0
    PAYMENT_TERM_DAYS: int = 14

    # Blob storage for generated PDFs
    INVOICE_STORAGE_BACKEND: str = "local"
    INVOICE_BUCKET: str = "invoices"
    INVOICE_STORAGE_DIR: str = "./invoices"
    PUBLIC_BASE_URL: str = "http://localhost:8000/invoices"
    SUPABASE_URL: str | None = None
    SUPABASE_SERVICE_ROLE_KEY: str | None = None

    # Observability toggles
    ENABLE_TRACING: bool = False

    @classmethod
    def load(cls) -> "Settings":
        """Load settings from environment with type coercion and defaults."""
        def _get_float(name: str, default: float) -> float:
            raw = os.getenv(name)
            if raw is None:
                return default
            try:
                return float(raw)
            except ValueError:
                return default

        def _get_bool(name: str, default: bool) -> bool:
            raw = os.getenv(name)
            if raw is None:
                return default
            return raw.lower() in {"1", "true", "yes", "on"}

        return cls(
            DEFAULT_LANGUAGE=os.getenv("DEFAULT_LANGUAGE", "de").lower(),
            DEFAULT_VAT_RATE=_get_float("DEFAULT_VAT_RATE", 19.0),
            PAYMENT_TERM_DAYS=int(os.getenv("PAYMENT_TERM_DAYS", "14")),
            INVOICE_STORAGE_BACKEND=os.getenv(
                "INVOICE_STORAGE_BACKEND", "local").lower(),
            INVOICE_BUCKET=os.getenv("INVOICE_BUCKET", "invoices"),
            INVOICE_STORAGE_DIR=os.getenv("INVOICE_STORAGE_DIR", "./invoices"),
            PUBLIC_BASE_URL=os.getenv(
                "PUBLIC_BASE_URL", "http://localhost:8000/invoices").rstrip("/"),
            SUPABASE_URL=os.getenv("SUPABASE_URL"),
            SUPABASE_SERVICE_ROLE_KEY=os.getenv("SUPABASE_SERVICE_ROLE_KEY"),
            ENABLE_TRACING=_get_bool("ENABLE_TRACING", False),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached Settings instance (singleton pattern)."""
    return Settings.load()


__all__ = ["Settings", "get_settings"]
