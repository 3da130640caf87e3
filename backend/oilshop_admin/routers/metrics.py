"""Prometheus metrics exposition router.

Serves the default prometheus_client registry, which holds both the HTTP
collectors registered in ``main`` and the domain counters fed through the
OpenTelemetry PrometheusMetricReader.
"""
from fastapi import APIRouter, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

router = APIRouter()


@router.get("/metrics", include_in_schema=False)
async def prometheus_metrics() -> Response:  # noqa: D401
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
