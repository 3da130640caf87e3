"""
OpenTelemetry configuration for the shop administration backend.

Provides distributed tracing, OTEL metrics exported through the Prometheus
registry (served by the /metrics router), and the ``trace_operation`` helper
used by routers and services to wrap business operations.
"""

import os
from typing import Optional

import structlog
from opentelemetry import trace, metrics
from opentelemetry.exporter.prometheus import PrometheusMetricReader
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.resources import Resource
from prometheus_client import start_http_server

from .logging import configure_logging

SERVICE_NAME = "oilshop-admin"


def configure_observability(
    service_name: str = SERVICE_NAME,
    environment: str | None = None,
    prometheus_port: int | None = None,
) -> None:
    """
    Configure structured logging, OpenTelemetry tracing and metrics.

    Args:
        service_name: Name of the service for tracing
        environment: Environment (development, staging, production); defaults to $ENVIRONMENT
        prometheus_port: Start a dedicated Prometheus HTTP server on this port.
            When omitted, OTEL metrics are only served by the app's /metrics route.
    """
    environment = environment or os.getenv("ENVIRONMENT", "development")

    configure_logging()
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        service_name=service_name,
        environment=environment
    )

    configure_tracing(service_name, environment)
    configure_metrics(prometheus_port)

    structlog.get_logger().info(
        "Observability configured",
        service_name=service_name,
        environment=environment,
        prometheus_port=prometheus_port,
    )


def setup_observability(**kwargs):  # noqa: D401
    return configure_observability(**kwargs)


def configure_tracing(service_name: str, environment: str) -> None:
    """Configure OpenTelemetry distributed tracing."""
    resource = Resource.create({
        "service.name": service_name,
        "service.version": "1.0.0",
        "environment": environment,
    })

    tracer_provider = TracerProvider(resource=resource)
    trace.set_tracer_provider(tracer_provider)

    if environment == "development" and os.getenv("OTEL_CONSOLE_EXPORT") == "1":
        tracer_provider.add_span_processor(
            BatchSpanProcessor(ConsoleSpanExporter()))


def configure_metrics(prometheus_port: int | None) -> None:
    """Configure OpenTelemetry metrics with Prometheus export."""
    meter_provider = MeterProvider(metric_readers=[PrometheusMetricReader()])
    metrics.set_meter_provider(meter_provider)

    if prometheus_port:
        start_http_server(prometheus_port)


def instrument_fastapi(app) -> None:
    """Instrument FastAPI application with OpenTelemetry."""
    FastAPIInstrumentor.instrument_app(app)


def instrument_sqlalchemy(engine) -> None:
    """Instrument SQLAlchemy engine with OpenTelemetry."""
    SQLAlchemyInstrumentor().instrument(engine=engine)


def get_tracer(name: str) -> trace.Tracer:
    """Get OpenTelemetry tracer for manual instrumentation."""
    return trace.get_tracer(name)


def get_meter(name: str) -> metrics.Meter:
    """Get OpenTelemetry meter for custom metrics."""
    return metrics.get_meter(name)


class trace_operation:
    """Context manager for tracing business operations with structured logging."""

    def __init__(self, operation_name: str, **attributes):
        self.operation_name = operation_name
        self.attributes = {k: str(v) for k, v in attributes.items()
                           if v is not None}
        self.tracer = get_tracer(__name__)
        self.logger = structlog.get_logger()
        self.span: Optional[trace.Span] = None

    def __enter__(self):
        self.span = self.tracer.start_span(
            self.operation_name,
            attributes=self.attributes
        )
        self.logger.info(
            "Operation started",
            operation=self.operation_name,
            **self.attributes
        )
        return self.span

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.logger.error(
                "Operation failed",
                operation=self.operation_name,
                error_type=exc_type.__name__,
                error_message=str(exc_val),
                **self.attributes
            )
            if self.span:
                self.span.record_exception(exc_val)
                self.span.set_status(trace.Status(
                    trace.StatusCode.ERROR, str(exc_val)))
        else:
            self.logger.info(
                "Operation completed",
                operation=self.operation_name,
                **self.attributes
            )
            if self.span:
                self.span.set_status(trace.Status(trace.StatusCode.OK))

        if self.span:
            self.span.end()


class PerformanceMonitor:
    """Request latency / error accounting for the runtime metrics view."""

    def __init__(self):
        self.meter = get_meter(__name__)
        self.request_duration = self.meter.create_histogram(
            name="api_request_duration_ms",
            description="API request duration in milliseconds",
            unit="ms"
        )
        self.request_count = self.meter.create_counter(
            name="api_request_count",
            description="Total number of API requests"
        )
        self.request_count_value = 0
        self.error_count_value = 0
        self._total_duration_ms = 0.0

    @property
    def avg_response_time_ms(self) -> float:
        if not self.request_count_value:
            return 0.0
        return self._total_duration_ms / self.request_count_value

    def record_request(self, endpoint: str, method: str, duration_ms: float, status_code: int):
        """Record API request metrics."""
        attributes = {
            "endpoint": endpoint,
            "method": method,
            "status_code": str(status_code)
        }
        self.request_duration.record(duration_ms, attributes)
        self.request_count.add(1, attributes)
        self.request_count_value += 1
        self._total_duration_ms += duration_ms

    def record_error(self) -> None:
        self.error_count_value += 1


performance_monitor = PerformanceMonitor()

# Domain counters
_domain_meter = get_meter("oilshop_admin.domain")
invoice_generated_counter = _domain_meter.create_counter(
    name="invoice_generated_total",
    description="Invoice PDFs generated and stored"
)
invoice_generation_failed_counter = _domain_meter.create_counter(
    name="invoice_generation_failed_total",
    description="Invoice generation attempts that failed"
)
email_sent_counter = _domain_meter.create_counter(
    name="email_sent_total",
    description="Customer e-mails accepted by the e-mail provider"
)
email_failed_counter = _domain_meter.create_counter(
    name="email_failed_total",
    description="Customer e-mails that could not be sent"
)
auth_login_counter = _domain_meter.create_counter(
    name="auth_login_total",
    description="Total number of successful logins"
)
auth_login_failed_counter = _domain_meter.create_counter(
    name="auth_login_failed_total",
    description="Total number of failed login attempts"
)

__all__ = [
    "configure_observability",
    "setup_observability",
    "configure_tracing",
    "configure_metrics",
    "instrument_fastapi",
    "instrument_sqlalchemy",
    "get_tracer",
    "get_meter",
    "trace_operation",
    "PerformanceMonitor",
    "performance_monitor",
    "invoice_generated_counter",
    "invoice_generation_failed_counter",
    "email_sent_counter",
    "email_failed_counter",
    "auth_login_counter",
    "auth_login_failed_counter",
]
