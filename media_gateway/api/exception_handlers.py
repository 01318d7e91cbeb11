"""
Custom FastAPI exception handlers.

Render every failure as the gateway's JSON error envelope and log it with
full context.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from media_gateway.api.dependencies import has_valid_api_key
from media_gateway.core.errors import ErrorCode, ServiceError, unauthorized_error
from media_gateway.core.logging_config import get_logger


logger = get_logger(__name__)


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Handle classified gateway errors.

    Returns:
        JSON envelope with error, code and optional message/details
    """
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "service_error",
        method=request.method,
        path=str(request.url.path),
        status_code=exc.status_code,
        code=exc.code.value,
        error=exc.error,
        details=exc.error_details,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_envelope(),
        headers=exc.headers,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle router-level HTTP exceptions (unknown path, unrouted method).

    An unrouted method is still an authenticated request: without the
    credential it gets 401, not 405.
    """
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        if not has_valid_api_key(request, request.app.state.settings):
            return await service_error_handler(request, unauthorized_error())

    logger.warning(
        "http_exception",
        method=request.method,
        path=str(request.url.path),
        status_code=exc.status_code,
        detail=exc.detail,
        client_host=request.client.host if request.client else "unknown",
    )

    content = {"error": exc.detail}
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        content["code"] = ErrorCode.METHOD_NOT_ALLOWED.value

    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler for anything that escaped a route.

    Runs outside the middleware stack, so the CORS headers are added here
    directly.
    """
    logger.error(
        "unhandled_exception",
        method=request.method,
        path=str(request.url.path),
        error_type=type(exc).__name__,
        error_message=str(exc),
        client_host=request.client.host if request.client else "unknown",
        exc_info=True,
    )

    settings = getattr(request.app.state, "settings", None)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Server error",
            "code": ErrorCode.INTERNAL_ERROR.value,
            "details": str(exc) or type(exc).__name__,
        },
        headers=settings.cors_headers if settings is not None else None,
    )
