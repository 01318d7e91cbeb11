"""FastAPI dependencies for settings, backend injection and API-key auth."""

import hmac

from fastapi import Depends, Request

from media_gateway.core.config import Settings
from media_gateway.core.errors import unauthorized_error
from media_gateway.core.logging_config import get_logger
from media_gateway.services.asset_service import AssetGatewayService
from media_gateway.storage import AssetBackend


logger = get_logger(__name__)


def get_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_backend(request: Request) -> AssetBackend:
    """Storage backend selected at startup."""
    return request.app.state.backend


def get_asset_service(backend: AssetBackend = Depends(get_backend)) -> AssetGatewayService:
    """Factory for AssetGatewayService with the active backend injected.

    Usage in endpoint:
        @router.get("/upload")
        async def list_assets(
            service: AssetGatewayService = Depends(get_asset_service)
        ):
            listing = await service.list_assets()
    """
    return AssetGatewayService(backend)


def has_valid_api_key(request: Request, settings: Settings) -> bool:
    """Check the shared secret header, logging the reason for a rejection.

    The header is compared byte-for-byte in constant time. With no secret
    configured every request is rejected.
    """
    provided = request.headers.get(settings.API_KEY_HEADER)
    expected = settings.UPLOAD_API_KEY

    if provided is None or not expected:
        reason = "missing_header" if provided is None else "not_configured"
    # Starlette decodes header values as latin-1; re-encoding gives the raw bytes
    elif not hmac.compare_digest(provided.encode("latin-1"), expected.encode("utf-8")):
        reason = "mismatch"
    else:
        return True

    logger.warning(
        "api_key_rejected",
        reason=reason,
        method=request.method,
        path=request.url.path,
    )
    return False


def require_api_key(request: Request, settings: Settings = Depends(get_settings)) -> None:
    """Reject the request unless it carries the shared secret.

    Raises:
        ServiceError: 401 Unauthorized, before any backend I/O
    """
    if not has_valid_api_key(request, settings):
        raise unauthorized_error()
