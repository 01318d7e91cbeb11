"""
Service layer tests for media-gateway.

Tests business logic in the service layer without HTTP concerns.
"""

import pytest
from unittest.mock import AsyncMock

from conftest import InMemoryAssetBackend
from media_gateway.core.errors import ErrorCode, ServiceError
from media_gateway.services import LIST_LIMIT, UPLOAD_FOLDER, AssetGatewayService
from media_gateway.storage import AssetListing


def make_upload(content: bytes = b"image-bytes", filename="cat.png") -> AsyncMock:
    upload = AsyncMock()
    upload.filename = filename
    upload.read.return_value = content
    return upload


# ============================================================================
# create_asset
# ============================================================================

@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_asset_stores_in_uploads(memory_backend: InMemoryAssetBackend):
    # Arrange
    service = AssetGatewayService(memory_backend)

    # Act
    asset = await service.create_asset(make_upload())

    # Assert
    assert asset.display_name == "cat.png"
    assert asset.url == f"https://cdn.example.test/{UPLOAD_FOLDER}/cat.png"
    assert asset.size == len(b"image-bytes")
    assert memory_backend.calls == ["store"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_asset_without_filename(memory_backend: InMemoryAssetBackend):
    service = AssetGatewayService(memory_backend)

    asset = await service.create_asset(make_upload(filename=None))

    assert asset.display_name == "upload"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_asset_missing_file(memory_backend: InMemoryAssetBackend):
    service = AssetGatewayService(memory_backend)

    with pytest.raises(ServiceError) as exc_info:
        await service.create_asset(None)

    assert exc_info.value.code == ErrorCode.VALIDATION_ERROR
    assert exc_info.value.error == "No file uploaded."
    assert memory_backend.calls == []


# ============================================================================
# list_assets
# ============================================================================

@pytest.mark.unit
@pytest.mark.asyncio
async def test_list_assets_uses_fixed_folder_and_limit(memory_backend: InMemoryAssetBackend):
    service = AssetGatewayService(memory_backend)
    await service.create_asset(make_upload())

    listing = await service.list_assets()

    assert memory_backend.list_args == (UPLOAD_FOLDER, LIST_LIMIT)
    assert [f.display_name for f in listing.files] == ["cat.png"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_list_assets_passes_degraded_listing_through():
    backend = AsyncMock()
    backend.name = "mock"
    backend.list.return_value = AssetListing(error="Unable to read upload directory", details="EACCES")
    service = AssetGatewayService(backend)

    listing = await service.list_assets()

    assert listing.degraded
    assert listing.to_json() == {
        "files": [],
        "error": "Unable to read upload directory",
        "details": "EACCES",
    }


# ============================================================================
# delete_asset
# ============================================================================

@pytest.mark.unit
@pytest.mark.parametrize(
    "payload, expected",
    [
        ({"id": "file-1"}, "file-1"),
        ({"fileId": "file-2"}, "file-2"),
        ({"id": "  file-3  "}, "file-3"),
        ({"id": "", "fileId": "file-4"}, "file-4"),
    ],
)
def test_resolve_asset_id(memory_backend: InMemoryAssetBackend, payload, expected):
    service = AssetGatewayService(memory_backend)

    assert service.resolve_asset_id(payload) == expected


@pytest.mark.unit
@pytest.mark.parametrize(
    "payload",
    [{}, {"id": ""}, {"id": "   "}, {"id": 42}, {"public_id": "x"}, ["file-1"], "file-1", None],
)
def test_resolve_asset_id_rejects(memory_backend: InMemoryAssetBackend, payload):
    service = AssetGatewayService(memory_backend)

    with pytest.raises(ServiceError) as exc_info:
        service.resolve_asset_id(payload)

    assert exc_info.value.status_code == 400
    assert exc_info.value.error == "id is required"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_delete_asset_returns_backend_result(memory_backend: InMemoryAssetBackend):
    service = AssetGatewayService(memory_backend)
    asset = await service.create_asset(make_upload())

    result = await service.delete_asset({"id": asset.id})

    assert result == {"result": "ok"}
    assert memory_backend.assets == {}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_delete_asset_without_id_skips_backend(memory_backend: InMemoryAssetBackend):
    service = AssetGatewayService(memory_backend)

    with pytest.raises(ServiceError):
        await service.delete_asset({})

    assert memory_backend.calls == []
