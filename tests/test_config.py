"""
Configuration tests for media-gateway.

Tests the type-safe Pydantic configuration system and backend selection.
"""

import pytest
from pydantic import ValidationError

from media_gateway.core.config import Settings
from media_gateway.storage import LocalAssetBackend, create_backend
from media_gateway.storage.cloudinary import CloudinaryAssetBackend
from media_gateway.storage.imagekit import ImageKitAssetBackend


def make_settings(**overrides) -> Settings:
    """Settings that ignore any .env file in the working directory."""
    return Settings(_env_file=None, **overrides)


# ============================================================================
# Defaults and validation
# ============================================================================

@pytest.mark.unit
def test_settings_defaults():
    settings = make_settings()

    assert settings.SERVICE_NAME == "media-gateway"
    assert settings.STORAGE_BACKEND == "local"
    assert settings.API_KEY_HEADER == "x-api-key"
    assert settings.LOCAL_PUBLIC_PATH == "/storage"
    assert settings.CLOUDINARY_QUOTA_RESET_UTC == "09:00"


@pytest.mark.unit
def test_settings_are_frozen():
    settings = make_settings()

    with pytest.raises(ValidationError):
        settings.STORAGE_BACKEND = "imagekit"


@pytest.mark.unit
def test_unknown_backend_rejected():
    with pytest.raises(ValidationError):
        make_settings(STORAGE_BACKEND="s3")


@pytest.mark.unit
def test_imagekit_requires_private_key():
    with pytest.raises(ValidationError) as exc_info:
        make_settings(STORAGE_BACKEND="imagekit")

    assert "IMAGEKIT_PRIVATE_KEY must be set" in str(exc_info.value)


@pytest.mark.unit
def test_cloudinary_lists_missing_credentials():
    with pytest.raises(ValidationError) as exc_info:
        make_settings(STORAGE_BACKEND="cloudinary", CLOUDINARY_CLOUD_NAME="demo")

    message = str(exc_info.value)
    assert "CLOUDINARY_API_KEY, CLOUDINARY_API_SECRET must be set" in message
    assert "CLOUDINARY_CLOUD_NAME," not in message


@pytest.mark.unit
@pytest.mark.parametrize("value", ["9:00", "24:00", "09:60", "noon"])
def test_invalid_quota_reset_time(value: str):
    with pytest.raises(ValidationError):
        make_settings(CLOUDINARY_QUOTA_RESET_UTC=value)


@pytest.mark.unit
def test_public_path_normalized():
    assert make_settings(LOCAL_PUBLIC_PATH="/files/").LOCAL_PUBLIC_PATH == "/files"

    with pytest.raises(ValidationError):
        make_settings(LOCAL_PUBLIC_PATH="files")


@pytest.mark.unit
def test_remote_url_must_be_http():
    with pytest.raises(ValidationError):
        make_settings(CLOUDINARY_API_URL="ftp://api.cloudinary.com")

    settings = make_settings(IMAGEKIT_API_URL="https://api.imagekit.io/v1/")
    assert settings.IMAGEKIT_API_URL == "https://api.imagekit.io/v1"


@pytest.mark.unit
@pytest.mark.parametrize("field", ["IMAGEKIT_API_URL", "IMAGEKIT_UPLOAD_URL", "CLOUDINARY_API_URL"])
def test_empty_api_url_rejected(field: str):
    with pytest.raises(ValidationError) as exc_info:
        make_settings(**{field: ""})

    assert f"{field} must not be empty" in str(exc_info.value)


@pytest.mark.unit
def test_empty_url_endpoint_is_unset():
    assert make_settings(IMAGEKIT_URL_ENDPOINT="").IMAGEKIT_URL_ENDPOINT is None


@pytest.mark.unit
def test_timeout_must_be_positive():
    with pytest.raises(ValidationError):
        make_settings(REMOTE_TIMEOUT_SECONDS=0)


@pytest.mark.unit
def test_cors_headers_follow_key_header():
    settings = make_settings(API_KEY_HEADER="x-upload-token", CORS_ALLOW_ORIGIN="https://app.example.test")

    assert settings.cors_headers == {
        "Access-Control-Allow-Origin": "https://app.example.test",
        "Access-Control-Allow-Methods": "GET, POST, DELETE, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type, x-upload-token",
    }


@pytest.mark.unit
def test_json_logs_forced_in_production():
    assert make_settings(ENVIRONMENT="production", DEBUG=True, LOG_JSON=False).use_json_logs
    assert not make_settings(ENVIRONMENT="development", DEBUG=True, LOG_JSON=False).use_json_logs


# ============================================================================
# Backend selection
# ============================================================================

@pytest.mark.unit
def test_create_backend_local(tmp_path):
    backend = create_backend(make_settings(STORAGE_PATH=str(tmp_path / "storage")))

    assert isinstance(backend, LocalAssetBackend)
    assert backend.name == "local"
    assert (tmp_path / "storage").is_dir()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_backend_imagekit():
    backend = create_backend(make_settings(STORAGE_BACKEND="imagekit", IMAGEKIT_PRIVATE_KEY="private_test"))
    try:
        assert isinstance(backend, ImageKitAssetBackend)
        assert backend.id_field == "fileId"
    finally:
        await backend.close()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_backend_cloudinary():
    backend = create_backend(make_settings(
        STORAGE_BACKEND="cloudinary",
        CLOUDINARY_CLOUD_NAME="demo",
        CLOUDINARY_API_KEY="123456",
        CLOUDINARY_API_SECRET="shh",
        CLOUDINARY_QUOTA_RESET_UTC="07:30",
    ))
    try:
        assert isinstance(backend, CloudinaryAssetBackend)
        assert backend.base_url == "https://api.cloudinary.com/v1_1/demo"
        assert backend.retry_hint == "Daily quota exhausted, please try again after 07:30 UTC."
    finally:
        await backend.close()
