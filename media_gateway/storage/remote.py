"""Shared plumbing for backends that talk to a vendor REST API."""

from typing import Any, Optional

import httpx

from media_gateway.core.errors import ServiceError, internal_error
from media_gateway.core.logging_config import get_logger


logger = get_logger(__name__)


class RemoteAssetBackend:
    """Base class for object-storage backends reached over HTTPS.

    Owns one `httpx.AsyncClient` for the process lifetime. Every vendor call
    goes through `_request`, which turns transport failures and non-2xx
    responses into `ServiceError` so nothing vendor-specific escapes.
    Subclasses refine `_handle_error` to classify special status codes.
    """

    name = "remote"
    id_field = "id"

    def __init__(self, timeout: float = 30.0, client: Optional[httpx.AsyncClient] = None):
        """
        Args:
            timeout: Per-request timeout in seconds
            client: Preconfigured client (tests inject a mock transport here)
        """
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def _request(self, operation: str, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Perform one vendor call; return the response only on 2xx."""
        logger.debug(
            "remote_storage_request",
            backend=self.name,
            operation=operation,
            method=method,
            url=url,
        )

        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            message = str(exc) or type(exc).__name__
            logger.error(
                "remote_storage_request_failed",
                backend=self.name,
                operation=operation,
                url=url,
                error_type=type(exc).__name__,
                error=message,
            )
            raise internal_error(f"{operation.capitalize()} failed: {message}")

        if response.is_success:
            return response

        raise self._handle_error(response, operation)

    def _handle_error(self, response: httpx.Response, operation: str) -> ServiceError:
        """Convert a non-2xx vendor response into a gateway error."""
        message = self._vendor_message(response)
        logger.error(
            "remote_storage_error_response",
            backend=self.name,
            operation=operation,
            http_status=response.status_code,
            error=message,
        )
        return internal_error(message)

    @staticmethod
    def _vendor_message(response: httpx.Response) -> str:
        """Best human-readable message from a vendor error body."""
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
            if body.get("message"):
                return str(body["message"])
            if isinstance(error, str) and error:
                return error

        text = response.text.strip()
        if text:
            return text[:200]
        return f"HTTP {response.status_code} {response.reason_phrase}".strip()

    def _json(self, response: httpx.Response, operation: str) -> Any:
        """Decode a success body, treating garbage as a backend fault."""
        try:
            return response.json()
        except ValueError as exc:
            logger.error(
                "remote_storage_invalid_response",
                backend=self.name,
                operation=operation,
                http_status=response.status_code,
                error=str(exc),
            )
            raise internal_error(f"{operation.capitalize()} failed: invalid response from {self.name}")

    async def close(self) -> None:
        await self._client.aclose()
