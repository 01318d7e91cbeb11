"""
Asset gateway endpoint: one path, routed by method.

- OPTIONS: CORS preflight, no auth
- POST:    upload one file (multipart field "file")
- GET:     list up to 50 assets
- DELETE:  remove one asset by id (JSON body)

Router handles HTTP concerns (parsing, envelopes, status codes); the
service layer validates and drives the backend. Every handler runs its
whole dispatch, body parsing included, inside `gateway_boundary`, so any
unclassified failure becomes an InternalError envelope.
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile

from media_gateway.api.dependencies import get_asset_service, get_settings, require_api_key
from media_gateway.api.v1.metrics import (
    asset_operations_total,
    asset_operation_duration_seconds,
    backend_errors_total,
)
from media_gateway.core.config import Settings
from media_gateway.core.errors import ServiceError, internal_error, method_not_allowed_error
from media_gateway.core.logging_config import get_logger
from media_gateway.services.asset_service import AssetGatewayService


logger = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["upload"])


@asynccontextmanager
async def gateway_boundary(operation: str, backend: str, service: str) -> AsyncIterator[None]:
    """Classify and count everything raised while handling one request."""
    start_time = time.time()
    outcome = "success"

    try:
        yield
    except ServiceError as exc:
        outcome = exc.code.value
        raise
    except Exception as exc:
        outcome = "InternalError"
        logger.error(
            "gateway_operation_failed",
            operation=operation,
            backend=backend,
            error_type=type(exc).__name__,
            error=str(exc),
            exc_info=True,
        )
        raise internal_error(str(exc) or type(exc).__name__) from exc
    finally:
        if outcome != "success":
            backend_errors_total.labels(service=service, backend=backend, kind=outcome).inc()
        asset_operations_total.labels(
            service=service, backend=backend, operation=operation, outcome=outcome
        ).inc()
        asset_operation_duration_seconds.labels(
            service=service, backend=backend, operation=operation
        ).observe(time.time() - start_time)


@router.options("/upload", status_code=status.HTTP_204_NO_CONTENT)
async def preflight():
    """CORS preflight. Never authenticated, never touches the backend."""
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/upload", dependencies=[Depends(require_api_key)])
async def create_asset(
    request: Request,
    service: AssetGatewayService = Depends(get_asset_service),
    settings: Settings = Depends(get_settings),
):
    """Upload one file into the "uploads" namespace.

    Returns:
        200 `{"success": true, "data": AssetDescriptor}`

    Raises:
        ServiceError: 400 no file, 401 bad credential, 429 vendor quota,
            500 backend or parsing failure
    """
    async with gateway_boundary("create", service.backend.name, settings.SERVICE_NAME):
        async with request.form() as form:
            upload = form.get("file")
            if not isinstance(upload, UploadFile):
                upload = None
            asset = await service.create_asset(upload)

    return JSONResponse({"success": True, "data": asset.to_json()})


@router.get("/upload", dependencies=[Depends(require_api_key)])
async def list_assets(
    service: AssetGatewayService = Depends(get_asset_service),
    settings: Settings = Depends(get_settings),
):
    """List up to 50 assets in backend-native order.

    Returns:
        200 `{"files": [AssetDescriptor, ...]}`; a degraded local listing
        also carries `error` and `details`
    """
    async with gateway_boundary("list", service.backend.name, settings.SERVICE_NAME):
        listing = await service.list_assets()

    return JSONResponse(listing.to_json())


@router.delete("/upload", dependencies=[Depends(require_api_key)])
async def delete_asset(
    request: Request,
    service: AssetGatewayService = Depends(get_asset_service),
    settings: Settings = Depends(get_settings),
):
    """Delete one asset named by `id` (or the backend's own key) in a JSON body.

    Returns:
        200 `{"success": true, "message": "Deleted successfully", "result"?: ...}`

    Raises:
        ServiceError: 400 missing id, 401 bad credential, 404 unknown local
            file, 429 vendor quota, 500 backend or parsing failure
    """
    async with gateway_boundary("delete", service.backend.name, settings.SERVICE_NAME):
        payload = await request.json()
        result = await service.delete_asset(payload)

    body = {"success": True, "message": "Deleted successfully"}
    if result is not None:
        body["result"] = result
    return JSONResponse(body)


@router.api_route("/upload", methods=["PUT", "PATCH"], dependencies=[Depends(require_api_key)])
async def unsupported_method():
    """Authenticated, but outside the gateway contract."""
    raise method_not_allowed_error()
