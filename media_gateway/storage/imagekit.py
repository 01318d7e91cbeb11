"""ImageKit media storage backend."""

from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from media_gateway.core.errors import internal_error
from media_gateway.core.logging_config import get_logger
from .models import AssetDescriptor, AssetListing
from .remote import RemoteAssetBackend


logger = get_logger(__name__)


class ImageKitAssetBackend(RemoteAssetBackend):
    """ImageKit implementation using its REST API.

    Folders map to ImageKit folder paths ("uploads" -> "/uploads"). The
    vendor `fileId` is the descriptor id. All vendor errors surface as
    InternalError with ImageKit's message attached.
    """

    name = "imagekit"
    id_field = "fileId"

    def __init__(
        self,
        private_key: str,
        public_key: Optional[str] = None,
        url_endpoint: Optional[str] = None,
        api_url: str = "https://api.imagekit.io/v1",
        upload_url: str = "https://upload.imagekit.io/api/v1/files/upload",
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize ImageKit backend.

        Args:
            private_key: Private API key, used as the basic-auth username
            public_key: Public API key (client-side uploads only, logged)
            url_endpoint: Account URL endpoint (e.g. "https://ik.imagekit.io/demo")
            api_url: Management API base URL
            upload_url: Upload API URL
            timeout: Per-request timeout in seconds
            client: Optional preconfigured HTTP client
        """
        super().__init__(timeout=timeout, client=client)
        self._auth = httpx.BasicAuth(private_key, "")
        self.public_key = public_key
        self.url_endpoint = url_endpoint
        self.api_url = api_url.rstrip("/")
        self.upload_url = upload_url

        logger.info(
            "imagekit_storage_backend_initialized",
            api_url=self.api_url,
            url_endpoint=self.url_endpoint,
            public_key_configured=bool(public_key),
        )

    @staticmethod
    def _to_descriptor(file: Dict[str, Any]) -> AssetDescriptor:
        # Upload responses say "thumbnailUrl", list responses say "thumbnail"
        return AssetDescriptor(
            id=file["fileId"],
            display_name=file.get("name") or file["fileId"],
            url=file["url"],
            thumbnail_url=file.get("thumbnailUrl") or file.get("thumbnail"),
            width=file.get("width"),
            height=file.get("height"),
            size=file.get("size"),
            created_at=file.get("createdAt"),
        )

    def _parse_file(self, file: Any, operation: str) -> AssetDescriptor:
        try:
            return self._to_descriptor(file)
        except (TypeError, KeyError, ValidationError) as exc:
            logger.error("imagekit_unexpected_payload", operation=operation, error=str(exc))
            raise internal_error(f"{operation.capitalize()} failed: unexpected response from imagekit")

    async def store(self, content: bytes, filename: str, folder: str) -> AssetDescriptor:
        """Upload one file into `/<folder>`."""
        response = await self._request(
            "upload",
            "POST",
            self.upload_url,
            auth=self._auth,
            data={
                "fileName": filename,
                "folder": f"/{folder}",
                "useUniqueFileName": "true",
            },
            files={"file": (filename, content)},
        )
        asset = self._parse_file(self._json(response, "upload"), "upload")

        logger.info(
            "imagekit_storage_store_success",
            asset_id=asset.id,
            folder=folder,
            bytes_written=len(content),
        )
        return asset

    async def list(self, folder: str, limit: int) -> AssetListing:
        """List files under `/<folder>`; `limit` is passed through verbatim."""
        response = await self._request(
            "list",
            "GET",
            f"{self.api_url}/files",
            auth=self._auth,
            params={"path": f"/{folder}", "type": "file", "limit": limit},
        )
        payload = self._json(response, "list")
        if not isinstance(payload, list):
            raise internal_error("List failed: unexpected response from imagekit")

        files = [self._parse_file(item, "list") for item in payload]
        logger.info("imagekit_storage_list_success", folder=folder, count=len(files), limit=limit)
        return AssetListing(files=files)

    async def remove(self, asset_id: str) -> None:
        """Delete one file by ImageKit file id."""
        await self._request(
            "delete",
            "DELETE",
            f"{self.api_url}/files/{quote(asset_id, safe='')}",
            auth=self._auth,
        )
        logger.info("imagekit_storage_remove_success", asset_id=asset_id)
        return None
