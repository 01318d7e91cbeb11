"""Health API endpoint."""

from fastapi import APIRouter, Depends
from datetime import datetime, timezone

from media_gateway.api.dependencies import get_backend, get_settings
from media_gateway.core.config import Settings
from media_gateway.storage import AssetBackend


router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("")
async def health_check(
    settings: Settings = Depends(get_settings),
    backend: AssetBackend = Depends(get_backend),
):
    """Basic health check endpoint.

    Use for load balancer health checks. Does not call the backend.

    Returns:
        dict: Health status with service info and timestamp
    """
    return {
        "status": "healthy",
        "service": settings.SERVICE_NAME,
        "version": settings.VERSION,
        "storage_backend": backend.name,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
