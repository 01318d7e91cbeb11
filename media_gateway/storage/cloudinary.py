"""Cloudinary media storage backend."""

import hashlib
import time
from typing import Any, Callable, Dict, Optional

import httpx
from pydantic import ValidationError

from media_gateway.core.errors import ServiceError, internal_error, rate_limited_error
from media_gateway.core.logging_config import get_logger
from .models import AssetDescriptor, AssetListing
from .remote import RemoteAssetBackend


logger = get_logger(__name__)

# Cloudinary answers "420 Enhance Your Calm" when an account quota is used up
RATE_LIMIT_STATUS = 420

# Never part of the string to sign
_UNSIGNED_PARAMS = {"file", "api_key", "resource_type", "cloud_name", "signature"}


def sign_params(params: Dict[str, Any], api_secret: str) -> str:
    """Compute a Cloudinary request signature.

    Parameters are sorted by name, joined as `k=v&k2=v2`, the API secret is
    appended and the result is SHA-1 hashed.
    """
    to_sign = "&".join(
        f"{key}={params[key]}"
        for key in sorted(params)
        if key not in _UNSIGNED_PARAMS and params[key] not in (None, "")
    )
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


def thumbnail_url(secure_url: str, size: int = 300) -> str:
    """Derive a square thumbnail delivery URL from an upload URL."""
    return secure_url.replace("/upload/", f"/upload/c_fill,w_{size},h_{size}/", 1)


class CloudinaryAssetBackend(RemoteAssetBackend):
    """Cloudinary implementation using the Upload and Admin REST APIs.

    Behaves like the other remote backend, with one extra rule: a 420
    response means the account quota is exhausted, which is reported as
    RateLimited (429) with the daily reset time, so callers can tell a
    retryable condition from a backend fault.
    """

    name = "cloudinary"
    id_field = "public_id"

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        api_url: str = "https://api.cloudinary.com/v1_1",
        quota_reset_utc: str = "09:00",
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize Cloudinary backend.

        Args:
            cloud_name: Account cloud name
            api_key: API key
            api_secret: API secret, used for signing and Admin API auth
            api_url: API base URL
            quota_reset_utc: Daily quota reset time ("HH:MM", UTC) for retry hints
            timeout: Per-request timeout in seconds
            client: Optional preconfigured HTTP client
            clock: Source of the signing timestamp
        """
        super().__init__(timeout=timeout, client=client)
        self.cloud_name = cloud_name
        self.api_key = api_key
        self._api_secret = api_secret
        self._admin_auth = httpx.BasicAuth(api_key, api_secret)
        self.base_url = f"{api_url.rstrip('/')}/{cloud_name}"
        self.quota_reset_utc = quota_reset_utc
        self._clock = clock

        logger.info(
            "cloudinary_storage_backend_initialized",
            cloud_name=cloud_name,
            base_url=self.base_url,
            quota_reset_utc=quota_reset_utc,
        )

    @property
    def retry_hint(self) -> str:
        return f"Daily quota exhausted, please try again after {self.quota_reset_utc} UTC."

    def _handle_error(self, response: httpx.Response, operation: str) -> ServiceError:
        if response.status_code == RATE_LIMIT_STATUS:
            message = self._vendor_message(response)
            logger.warning(
                "cloudinary_rate_limited",
                operation=operation,
                error=message,
                reset_utc=self.quota_reset_utc,
            )
            return rate_limited_error(self.retry_hint, details=message)
        return super()._handle_error(response, operation)

    def _signed(self, params: Dict[str, Any]) -> Dict[str, str]:
        """Add timestamp, api_key and signature to upload API params."""
        params = {**params, "timestamp": str(int(self._clock()))}
        signature = sign_params(params, self._api_secret)
        return {**params, "api_key": self.api_key, "signature": signature}

    @staticmethod
    def _display_name(resource: Dict[str, Any]) -> str:
        if resource.get("display_name"):
            return resource["display_name"]
        if resource.get("original_filename"):
            extension = resource.get("format")
            return f"{resource['original_filename']}.{extension}" if extension else resource["original_filename"]
        return resource["public_id"].rsplit("/", 1)[-1]

    def _to_descriptor(self, resource: Any, operation: str) -> AssetDescriptor:
        try:
            url = resource.get("secure_url") or resource["url"]
            return AssetDescriptor(
                id=resource["public_id"],
                display_name=self._display_name(resource),
                url=url,
                thumbnail_url=thumbnail_url(url),
                width=resource.get("width"),
                height=resource.get("height"),
                size=resource.get("bytes"),
                created_at=resource.get("created_at"),
            )
        except (AttributeError, TypeError, KeyError, ValidationError) as exc:
            logger.error("cloudinary_unexpected_payload", operation=operation, error=str(exc))
            raise internal_error(f"{operation.capitalize()} failed: unexpected response from cloudinary")

    async def store(self, content: bytes, filename: str, folder: str) -> AssetDescriptor:
        """Signed upload into `folder`, keeping the original filename as a base."""
        response = await self._request(
            "upload",
            "POST",
            f"{self.base_url}/image/upload",
            data=self._signed({
                "folder": folder,
                "use_filename": "true",
                "unique_filename": "true",
            }),
            files={"file": (filename, content)},
        )
        asset = self._to_descriptor(self._json(response, "upload"), "upload")

        logger.info(
            "cloudinary_storage_store_success",
            asset_id=asset.id,
            folder=folder,
            bytes_written=len(content),
        )
        return asset

    async def list(self, folder: str, limit: int) -> AssetListing:
        """List image resources whose public id starts with `<folder>/`."""
        response = await self._request(
            "list",
            "GET",
            f"{self.base_url}/resources/image/upload",
            auth=self._admin_auth,
            params={"prefix": f"{folder}/", "max_results": limit},
        )
        payload = self._json(response, "list")
        resources = payload.get("resources") if isinstance(payload, dict) else None
        if not isinstance(resources, list):
            raise internal_error("List failed: unexpected response from cloudinary")

        files = [self._to_descriptor(resource, "list") for resource in resources]
        logger.info("cloudinary_storage_list_success", folder=folder, count=len(files), limit=limit)
        return AssetListing(files=files)

    async def remove(self, asset_id: str) -> Dict[str, Any]:
        """Destroy one image by public id.

        Cloudinary answers `{"result": "not found"}` for unknown ids; that is
        returned as-is rather than raised.
        """
        response = await self._request(
            "delete",
            "POST",
            f"{self.base_url}/image/destroy",
            data=self._signed({"public_id": asset_id}),
        )
        result = self._json(response, "delete")

        logger.info(
            "cloudinary_storage_remove_success",
            asset_id=asset_id,
            result=result.get("result") if isinstance(result, dict) else None,
        )
        return result
