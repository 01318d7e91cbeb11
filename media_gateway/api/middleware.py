"""
FastAPI Middleware for CORS policy, request tracking and metrics

Features:
- Fixed CORS policy headers on every response
- Request trace IDs for distributed tracing
- Request/response logging with duration
- Slow request warnings
- Prometheus metrics collection
"""

import time
import uuid
from typing import Callable, Dict
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from media_gateway.core.logging_config import get_logger, set_trace_id, clear_trace_id


logger = get_logger(__name__)


class CORSPolicyMiddleware(BaseHTTPMiddleware):
    """Stamp the gateway's CORS headers on every response.

    Unlike Starlette's CORSMiddleware this does not negotiate: the same
    headers go out on successes, errors and preflights alike.
    """

    def __init__(self, app: ASGIApp, headers: Dict[str, str]):
        super().__init__(app)
        self.headers = dict(headers)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        response.headers.update(self.headers)
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request trace IDs and request logging.

    1. Takes the trace ID from X-Trace-ID / X-Correlation-ID or generates one
    2. Injects it into the logging context
    3. Logs request start and completion with duration
    4. Echoes the trace ID in X-Trace-ID and X-Correlation-ID
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        trace_id = (
            request.headers.get("X-Trace-ID") or
            request.headers.get("X-Correlation-ID") or
            str(uuid.uuid4())
        )
        set_trace_id(trace_id)

        start_time = time.time()
        method = request.method
        path = request.url.path

        logger.info(
            "request_started",
            method=method,
            path=path,
            client_host=request.client.host if request.client else "unknown",
            user_agent=request.headers.get("user-agent", "unknown"),
        )

        try:
            response = await call_next(request)

            logger.info(
                "request_completed",
                method=method,
                path=path,
                status_code=response.status_code,
                duration_ms=round((time.time() - start_time) * 1000, 2),
            )

            response.headers["X-Trace-ID"] = trace_id
            response.headers["X-Correlation-ID"] = trace_id
            return response

        except Exception as exc:
            logger.error(
                "request_failed",
                method=method,
                path=path,
                duration_ms=round((time.time() - start_time) * 1000, 2),
                error_type=type(exc).__name__,
                error_message=str(exc),
                exc_info=True,
            )
            # Re-raise exception to be handled by FastAPI exception handlers
            raise

        finally:
            clear_trace_id()


class PerformanceLoggingMiddleware(BaseHTTPMiddleware):
    """Logs warnings for requests exceeding a duration threshold.

    Remote backends are the usual cause; a stalled vendor call holds the
    request open with no timeout beyond the client's own.
    """

    def __init__(self, app: ASGIApp, slow_request_threshold_ms: float = 1000.0):
        super().__init__(app)
        self.slow_request_threshold_ms = slow_request_threshold_ms

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000
        if duration_ms > self.slow_request_threshold_ms:
            logger.warning(
                "slow_request_detected",
                method=request.method,
                path=request.url.path,
                duration_ms=round(duration_ms, 2),
                threshold_ms=self.slow_request_threshold_ms,
                status_code=response.status_code,
            )

        return response


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Middleware for automatic Prometheus metrics collection.

    Tracks request counts, durations, in-flight requests and unhandled
    errors, labelled by method and path.
    """

    def __init__(self, app: ASGIApp, service_name: str):
        super().__init__(app)
        self.service_name = service_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Import here to avoid circular imports
        from media_gateway.api.v1.metrics import (
            http_requests_total,
            http_request_duration_seconds,
            http_requests_in_progress,
            errors_total,
        )

        method = request.method
        path = request.url.path

        # Skip metrics for /metrics endpoint to avoid recursion
        if path == "/metrics":
            return await call_next(request)

        http_requests_in_progress.labels(service=self.service_name, method=method).inc()

        start_time = time.time()
        status_code = 500  # Default to error if something goes wrong

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response

        except Exception as exc:
            errors_total.labels(
                service=self.service_name,
                error_type=type(exc).__name__,
                endpoint=path
            ).inc()
            raise

        finally:
            duration = time.time() - start_time

            http_requests_in_progress.labels(service=self.service_name, method=method).dec()
            http_requests_total.labels(
                service=self.service_name,
                method=method,
                endpoint=path,
                status=status_code
            ).inc()
            http_request_duration_seconds.labels(
                service=self.service_name,
                method=method,
                endpoint=path
            ).observe(duration)
