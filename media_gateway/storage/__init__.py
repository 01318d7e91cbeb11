"""Storage abstraction layer for local and hosted media storage."""

from media_gateway.core.config import Settings
from .models import AssetDescriptor, AssetListing
from .protocol import AssetBackend
from .local import LocalAssetBackend
# Remote backends imported lazily when selected


def create_backend(settings: Settings) -> AssetBackend:
    """Factory function for the storage backend.

    Returns the backend named by STORAGE_BACKEND. Called once at startup;
    the instance lives for the process lifetime.

    Raises:
        ValueError: If unknown storage backend is configured
    """
    if settings.STORAGE_BACKEND == "local":
        return LocalAssetBackend(settings.STORAGE_PATH, public_path=settings.LOCAL_PUBLIC_PATH)
    elif settings.STORAGE_BACKEND == "imagekit":
        from .imagekit import ImageKitAssetBackend
        return ImageKitAssetBackend(
            private_key=settings.IMAGEKIT_PRIVATE_KEY,
            public_key=settings.IMAGEKIT_PUBLIC_KEY,
            url_endpoint=settings.IMAGEKIT_URL_ENDPOINT,
            api_url=settings.IMAGEKIT_API_URL,
            upload_url=settings.IMAGEKIT_UPLOAD_URL,
            timeout=settings.REMOTE_TIMEOUT_SECONDS,
        )
    elif settings.STORAGE_BACKEND == "cloudinary":
        from .cloudinary import CloudinaryAssetBackend
        return CloudinaryAssetBackend(
            cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            api_key=settings.CLOUDINARY_API_KEY,
            api_secret=settings.CLOUDINARY_API_SECRET,
            api_url=settings.CLOUDINARY_API_URL,
            quota_reset_utc=settings.CLOUDINARY_QUOTA_RESET_UTC,
            timeout=settings.REMOTE_TIMEOUT_SECONDS,
        )
    else:
        raise ValueError(f"Unknown storage backend: {settings.STORAGE_BACKEND}")


__all__ = [
    "create_backend",
    "AssetBackend",
    "AssetDescriptor",
    "AssetListing",
    "LocalAssetBackend",
]
