"""
FastAPI application factory and configuration.
"""

import json
import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, UTC

import structlog
from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import Counter, Gauge, Histogram
from sqlalchemy import select
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from .config.database import (
    async_engine,
    check_async_database_connection,
    async_database_health_check,
    get_async_db,
)
from .config.logging import configure_logging
from .config.observability import (
    instrument_fastapi,
    instrument_sqlalchemy,
    setup_observability,
    trace_operation,
    performance_monitor,
)
from .config.settings import get_settings
from .models.database import User
from .routers.auth import get_password_hash, router as auth_router
from .routers.invoices import router as invoice_router
from .routers.metrics import router as metrics_router
from .routers.orders import router as orders_router
from .routers.shops import router as shops_router
from .routers.system import router as system_router
from .utils.errors import ERROR_CODES, error_payload

logger = logging.getLogger(__name__)

VERSION = "1.0.0"

# Native Prometheus collectors for HTTP traffic; domain counters come through OTEL.
APP_REQUEST_COUNT = Counter(
    "app_requests_total",
    "Total HTTP requests processed",
    ["method", "path", "status"],
)
APP_REQUEST_LATENCY = Histogram(
    "app_request_duration_seconds",
    "Request latency in seconds",
    ["method", "path", "status"],
)
APP_UPTIME_SECONDS = Gauge(
    "app_uptime_seconds",
    "Application uptime in seconds",
)

APP_START_TIME = datetime.now(UTC)
SLOW_RESPONSE_MS = 500


class ResponseTimeMiddleware(BaseHTTPMiddleware):
    """Adds X-Response-Time and records request metrics."""

    async def dispatch(self, request: Request, call_next):  # noqa: D401
        start_time = time.time()
        response = await call_next(request)
        duration_s = time.time() - start_time
        response_time_ms = duration_s * 1000
        response.headers["X-Response-Time"] = f"{response_time_ms:.1f}ms"

        status = str(response.status_code)
        path = request.url.path
        performance_monitor.record_request(
            endpoint=path,
            method=request.method,
            duration_ms=response_time_ms,
            status_code=response.status_code,
        )
        APP_REQUEST_COUNT.labels(request.method, path, status).inc()
        APP_REQUEST_LATENCY.labels(request.method, path, status).observe(duration_s)
        APP_UPTIME_SECONDS.set((datetime.now(UTC) - APP_START_TIME).total_seconds())

        # PDF rendering and e-mail calls are slow by nature; only flag outliers
        if response_time_ms > SLOW_RESPONSE_MS:
            logger.info(
                "Slow response: %.1fms for %s %s",
                response_time_ms,
                request.method,
                path,
            )
        return response


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Generate a per-request ID and bind it to the logging context."""

    async def dispatch(self, request: Request, call_next):  # noqa: D401
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")
        response.headers["X-Request-ID"] = request_id
        return response


def _is_testing() -> bool:
    return os.getenv("FAST_TESTS") == "1" or os.getenv("TESTING", "false").lower() == "true"


async def create_default_admin_user():
    """Create the bootstrap admin account if no user with its e-mail exists."""
    if _is_testing():
        # Test fixtures seed the users they need.
        return
    email = os.getenv("ADMIN_EMAIL", "admin@example.com")
    password = os.getenv("ADMIN_PASSWORD", "admin123")
    try:
        async with get_async_db() as db:
            result = await db.execute(select(User).where(User.email == email))
            if result.scalar_one_or_none() is not None:
                logger.info("Admin user already exists")
                return
            db.add(User(
                username=os.getenv("ADMIN_USERNAME", "admin"),
                email=email,
                password_hash=get_password_hash(password),
                full_name="Administrator",
                is_active=True,
                is_admin=True,
            ))
        logger.info("Default admin user created: %s", email)
    except Exception as e:  # noqa: BLE001 - seeding must not block startup
        logger.error("Error creating default admin user: %s", e)


@asynccontextmanager
async def lifespan(app: FastAPI):  # noqa: ARG001
    """Application lifespan management."""
    configure_logging()
    logger.info("Starting up oil shop admin API...")

    # Lightweight fast-test mode: skip OTEL setup, DB check and seeding
    if os.getenv("FAST_TESTS") == "1":
        logger.info("FAST_TESTS=1: skipping observability setup, DB check and seeding")
        yield
        return

    try:
        setup_observability()
        logger.info("Observability setup complete")

        if not await check_async_database_connection():
            logger.error("Failed to connect to database")
            raise RuntimeError("Database connection failed")

        # Schema is managed by Alembic migrations; tests create tables in fixtures.
        await create_default_admin_user()
        logger.info("Application startup complete")
    except Exception as e:  # noqa: BLE001
        logger.error("Application startup failed: %s", e)
        raise

    yield

    logger.info("Shutting down oil shop admin API...")


def create_application() -> FastAPI:
    """Create and configure FastAPI application."""

    application_obj = FastAPI(
        title="Heating Oil Shop Admin",
        description="Back-office API for heating-oil shops: orders, bank accounts, invoices and customer e-mail",
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/api/v1/openapi.json",
        lifespan=lifespan
    )

    setup_middleware(application_obj)
    setup_exception_handlers(application_obj)
    setup_routes(application_obj)

    # Instrumentation adds middleware, which must happen before the first request
    if get_settings().ENABLE_TRACING and not _is_testing():
        instrument_fastapi(application_obj)
        instrument_sqlalchemy(async_engine.sync_engine)

    return application_obj


def setup_middleware(app: FastAPI) -> None:
    """Setup application middleware."""
    origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(ResponseTimeMiddleware)
    app.add_middleware(RequestIDMiddleware)


def _json_safe(errors):
    sanitized = []
    for err in errors:
        cleaned = {}
        for k, v in err.items():
            try:
                json.dumps(v)
                cleaned[k] = v
            except (TypeError, ValueError):
                cleaned[k] = str(v)
        sanitized.append(cleaned)
    return sanitized


def setup_exception_handlers(app: FastAPI) -> None:
    """Setup global exception handlers."""

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=error_payload(
                ERROR_CODES["validation"],
                "Request validation failed",
                details=_json_safe(exc.errors()),
                path=str(request.url.path),
            ),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_payload(getattr(exc, 'code', 'HTTP_ERROR'), exc.detail,
                                  path=str(request.url.path)),
            headers=exc.headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def starlette_exception_handler(request: Request, exc: StarletteHTTPException):
        code = ERROR_CODES["not_found"] if exc.status_code == 404 else "HTTP_ERROR"
        return JSONResponse(
            status_code=exc.status_code,
            content=error_payload(code, exc.detail, path=str(request.url.path)),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled exception: %s", exc, exc_info=True)
        performance_monitor.record_error()
        return JSONResponse(
            status_code=500,
            content=error_payload(ERROR_CODES["internal"], "An unexpected error occurred",
                                  path=str(request.url.path)),
        )


def setup_routes(app: FastAPI) -> None:
    """Setup application routes."""

    @app.get("/health")
    async def health_check():
        """Health check endpoint for monitoring."""
        with trace_operation("health_check"):
            db_health = await async_database_health_check()
            return {
                "status": "healthy" if db_health["status"] == "healthy" else "unhealthy",
                "timestamp": time.time(),
                "database": db_health,
                "version": VERSION,
            }

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "status": "success",
            "data": {
                "message": "Heating Oil Shop Admin API",
                "version": VERSION,
                "docs": "/docs",
                "health": "/health"
            },
            "timestamp": time.time()
        }

    @app.get("/api/v1/system/runtime-metrics", tags=["System"], summary="Runtime JSON metrics")
    async def runtime_metrics():
        """Runtime JSON metrics (internal diagnostic view, not Prometheus format)."""
        with trace_operation("runtime_metrics"):
            db_health = await async_database_health_check()
            monitor = performance_monitor
            return {
                "status": "success",
                "data": {
                    "database": db_health,
                    "performance": {
                        "request_count": monitor.request_count_value,
                        "avg_response_time_ms": monitor.avg_response_time_ms,
                        "error_count": monitor.error_count_value,
                        "uptime_seconds": (datetime.now(UTC) - APP_START_TIME).total_seconds(),
                    },
                    "service": {"version": VERSION},
                },
                "timestamp": time.time()
            }

    app.include_router(auth_router, prefix="/api/v1/auth", tags=["Authentication"])
    app.include_router(orders_router, prefix="/api/v1/orders", tags=["Orders"])
    app.include_router(invoice_router, prefix="/api/v1/invoices", tags=["Invoices"])
    app.include_router(shops_router, prefix="/api/v1/shops", tags=["Shops"])
    app.include_router(system_router, prefix="/api/v1/system", tags=["System"])
    # Prometheus exposition at /metrics, outside the API prefix
    app.include_router(metrics_router)


app = create_application()


__all__ = ["app", "create_application"]
