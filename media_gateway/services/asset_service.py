"""
Asset Gateway Service - Business Logic Layer

Validates gateway requests and drives the active storage backend.
The service never sees HTTP objects beyond the uploaded file, and never
branches on which backend is active.
"""

from typing import Any, Optional, Protocol

from media_gateway.core.errors import validation_error
from media_gateway.core.logging_config import get_logger
from media_gateway.storage import AssetBackend, AssetDescriptor, AssetListing


logger = get_logger(__name__)

# Logical namespace all gateway assets live in
UPLOAD_FOLDER = "uploads"

# Upper bound on descriptors returned by one list call
LIST_LIMIT = 50


class UploadedFile(Protocol):
    """The part of an uploaded multipart file the service needs."""

    filename: Optional[str]

    async def read(self, size: int = -1) -> bytes: ...


class AssetGatewayService:
    """Create, list and delete assets on one storage backend.

    Example:
        >>> service = AssetGatewayService(LocalAssetBackend("/srv/media"))
        >>> asset = await service.create_asset(upload)
        >>> listing = await service.list_assets()
    """

    def __init__(self, backend: AssetBackend):
        self.backend = backend

    async def create_asset(self, upload: Optional[UploadedFile]) -> AssetDescriptor:
        """Store one uploaded file in the uploads namespace.

        Args:
            upload: File from the multipart `file` field, or None if absent

        Raises:
            ServiceError: ValidationError if no file was uploaded, or
                whatever the backend raises
        """
        if upload is None:
            logger.warning("asset_upload_missing_file", backend=self.backend.name)
            raise validation_error("No file uploaded.")

        content = await upload.read()
        filename = upload.filename or "upload"

        logger.info(
            "asset_upload_started",
            backend=self.backend.name,
            filename=filename,
            size_bytes=len(content),
        )

        asset = await self.backend.store(content, filename, UPLOAD_FOLDER)

        logger.info("asset_upload_completed", backend=self.backend.name, asset_id=asset.id)
        return asset

    async def list_assets(self) -> AssetListing:
        """List up to LIST_LIMIT assets in backend-native order."""
        listing = await self.backend.list(UPLOAD_FOLDER, LIST_LIMIT)

        if listing.degraded:
            logger.warning(
                "asset_list_degraded",
                backend=self.backend.name,
                error=listing.error,
                details=listing.details,
            )
        else:
            logger.info("asset_list_completed", backend=self.backend.name, count=len(listing.files))
        return listing

    def resolve_asset_id(self, payload: Any) -> str:
        """Pull the delete target out of a JSON body.

        Accepts the canonical "id" key or the backend's historical key
        ("filename", "fileId" or "public_id").

        Raises:
            ServiceError: ValidationError if no non-empty id is present
        """
        if isinstance(payload, dict):
            for key in ("id", self.backend.id_field):
                value = payload.get(key)
                if isinstance(value, str) and value.strip():
                    return value.strip()

        logger.warning("asset_delete_missing_id", backend=self.backend.name)
        raise validation_error("id is required")

    async def delete_asset(self, payload: Any) -> Optional[Any]:
        """Delete the asset named in `payload`.

        Returns:
            Backend confirmation payload, or None
        """
        asset_id = self.resolve_asset_id(payload)

        logger.info("asset_delete_started", backend=self.backend.name, asset_id=asset_id)
        result = await self.backend.remove(asset_id)
        logger.info("asset_delete_completed", backend=self.backend.name, asset_id=asset_id)
        return result
