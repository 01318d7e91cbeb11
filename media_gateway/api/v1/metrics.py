"""Prometheus metrics endpoint and metric definitions."""

from fastapi import APIRouter, Response
from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    Info,
    generate_latest,
    CONTENT_TYPE_LATEST,
    REGISTRY,
)


router = APIRouter(tags=["metrics"])


# Service info metric (populated by create_app)
service_info = Info(
    'service',
    'Service information',
    registry=REGISTRY
)


# HTTP Request Metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['service', 'method', 'endpoint', 'status'],
    registry=REGISTRY
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['service', 'method', 'endpoint'],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.075, 0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0, 7.5, 10.0),
    registry=REGISTRY
)

http_requests_in_progress = Gauge(
    'http_requests_in_progress',
    'HTTP requests currently in progress',
    ['service', 'method'],
    registry=REGISTRY
)


# Asset Gateway Metrics
asset_operations_total = Counter(
    'asset_operations_total',
    'Total gateway asset operations',
    ['service', 'backend', 'operation', 'outcome'],  # operation: create, list, delete
    registry=REGISTRY
)

asset_operation_duration_seconds = Histogram(
    'asset_operation_duration_seconds',
    'Gateway asset operation duration in seconds',
    ['service', 'backend', 'operation'],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
    registry=REGISTRY
)

backend_errors_total = Counter(
    'backend_errors_total',
    'Classified gateway errors by kind',
    ['service', 'backend', 'kind'],  # kind: ErrorCode value
    registry=REGISTRY
)


# Error Tracking Metrics
errors_total = Counter(
    'errors_total',
    'Total unhandled errors',
    ['service', 'error_type', 'endpoint'],
    registry=REGISTRY
)


@router.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint.

    Returns:
        Response: Prometheus metrics in text format
    """
    return Response(
        content=generate_latest(REGISTRY),
        media_type=CONTENT_TYPE_LATEST
    )
