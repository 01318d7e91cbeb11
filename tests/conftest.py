"""
Pytest configuration and shared fixtures for media-gateway tests.

This module provides:
- Settings fixtures
- An in-memory storage backend that records every call
- Test client fixtures (fake backend and real local backend)
- Authentication headers
- Sample image data
"""

import io
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from media_gateway.core.config import Settings
from media_gateway.main import create_app
from media_gateway.storage import AssetDescriptor, AssetListing, LocalAssetBackend


API_KEY = "test-upload-key"
GATEWAY_URL = "/api/upload"


# ============================================================================
# Fake backend
# ============================================================================

class InMemoryAssetBackend:
    """Storage backend kept in a dict.

    `calls` records every backend operation so tests can assert that a
    request performed no backend I/O. Set `fail_with` to make every
    operation raise.
    """

    name = "memory"
    id_field = "fileId"

    def __init__(self):
        self.assets: Dict[str, AssetDescriptor] = {}
        self.calls: List[str] = []
        self.list_args: Optional[tuple] = None
        self.fail_with: Optional[Exception] = None
        self.closed = False
        self._next_id = 0

    def _record(self, operation: str) -> None:
        self.calls.append(operation)
        if self.fail_with is not None:
            raise self.fail_with

    async def store(self, content: bytes, filename: str, folder: str) -> AssetDescriptor:
        self._record("store")
        self._next_id += 1
        asset = AssetDescriptor(
            id=f"file-{self._next_id}",
            display_name=filename,
            url=f"https://cdn.example.test/{folder}/{filename}",
            size=len(content),
        )
        self.assets[asset.id] = asset
        return asset

    async def list(self, folder: str, limit: int) -> AssetListing:
        self._record("list")
        self.list_args = (folder, limit)
        return AssetListing(files=list(self.assets.values())[:limit])

    async def remove(self, asset_id: str) -> Dict[str, Any]:
        self._record("remove")
        if self.assets.pop(asset_id, None) is None:
            return {"result": "not found"}
        return {"result": "ok"}

    async def close(self) -> None:
        self.closed = True


# ============================================================================
# Settings fixtures
# ============================================================================

@pytest.fixture
def storage_path(tmp_path: Path) -> Path:
    """Isolated storage root for each test."""
    return tmp_path / "storage"


@pytest.fixture
def settings(storage_path: Path) -> Settings:
    """Local-backend settings with a known API key."""
    return Settings(
        UPLOAD_API_KEY=API_KEY,
        STORAGE_BACKEND="local",
        STORAGE_PATH=str(storage_path),
        ENVIRONMENT="test",
    )


# ============================================================================
# Backend fixtures
# ============================================================================

@pytest.fixture
def memory_backend() -> InMemoryAssetBackend:
    return InMemoryAssetBackend()


@pytest.fixture
def local_backend(storage_path: Path) -> LocalAssetBackend:
    """Local backend rooted in a temporary directory."""
    return LocalAssetBackend(base_path=str(storage_path))


# ============================================================================
# API Client fixtures
# ============================================================================

@pytest.fixture
def client(settings: Settings, memory_backend: InMemoryAssetBackend) -> TestClient:
    """Test client for an app wired to the in-memory backend."""
    app = create_app(settings=settings, backend=memory_backend)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def local_client(settings: Settings) -> TestClient:
    """Test client for an app using the real local-disk backend."""
    app = create_app(settings=settings)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_headers() -> dict:
    """Headers carrying the configured API key."""
    return {"x-api-key": API_KEY}


# ============================================================================
# Test data fixtures
# ============================================================================

@pytest.fixture
def sample_image_bytes() -> bytes:
    """A 4x3 PNG image."""
    buffer = io.BytesIO()
    Image.new("RGB", (4, 3), color=(200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


# ============================================================================
# Utility functions
# ============================================================================

def assert_cors_headers(response) -> None:
    """Assert the gateway CORS policy headers are present."""
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.headers["access-control-allow-methods"] == "GET, POST, DELETE, OPTIONS"
    assert response.headers["access-control-allow-headers"] == "Content-Type, x-api-key"
