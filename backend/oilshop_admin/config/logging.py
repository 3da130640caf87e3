"""Structured logging configuration.

JSON-formatted logs with optional request_id and trace correlation fields.
structlog renders the service's own events; stdlib records (uvicorn,
SQLAlchemy, services using ``logging.getLogger``) go through ``JsonFormatter``.
"""
from __future__ import annotations

import json
import logging as _logging
import os
import sys
import time
from typing import Any, Dict

import structlog

DEFAULT_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CONTEXT_FIELDS = ("request_id", "trace_id", "span_id", "order_id")


class JsonFormatter(_logging.Formatter):
    def format(self, record) -> str:  # noqa: D401 - record is LogRecord
        base: Dict[str, Any] = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for attr in CONTEXT_FIELDS:
            if hasattr(record, attr):
                base[attr] = getattr(record, attr)
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False, default=str)


def configure_logging(level: str | None = None) -> None:
    """Configure structlog and the root logger for application startup."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    handler = _logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    root = _logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level or DEFAULT_LEVEL)


__all__ = ["JsonFormatter", "configure_logging"]
