"""Storage backend protocol definition."""

from typing import Any, Optional, Protocol

from .models import AssetDescriptor, AssetListing


class AssetBackend(Protocol):
    """Protocol defining the interface for asset storage backends.

    Every backend takes and returns the same shapes, so the gateway never
    branches on which backend is active. Backends raise only
    `ServiceError`; vendor and OS exceptions stay inside the adapter.
    """

    #: Short backend name used in logs and metrics
    name: str

    #: Historical request key for the delete target (accepted alongside "id")
    id_field: str

    async def store(self, content: bytes, filename: str, folder: str) -> AssetDescriptor:
        """Persist one payload in `folder`.

        Args:
            content: Complete file contents
            filename: Original client-side filename
            folder: Logical namespace (e.g. "uploads")

        Returns:
            AssetDescriptor: Descriptor of the new asset
        """
        ...

    async def list(self, folder: str, limit: int) -> AssetListing:
        """List at most `limit` assets in `folder`, in backend-native order."""
        ...

    async def remove(self, asset_id: str) -> Optional[Any]:
        """Delete one asset by id.

        Returns:
            Backend confirmation payload, or None when there is nothing to report
        """
        ...

    async def close(self) -> None:
        """Release network clients or other resources."""
        ...
