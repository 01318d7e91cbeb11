"""Application configuration using Pydantic Settings."""

import os
import re
from functools import lru_cache
from typing import Dict, Literal, Optional

from pydantic import ValidationInfo, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


StorageBackendName = Literal["local", "imagekit", "cloudinary"]


class Settings(BaseSettings):
    """Process-wide settings, loaded once at startup and never mutated."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        frozen=True,
        extra="ignore",
    )

    # Service Identity
    SERVICE_NAME: str = "media-gateway"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # development, staging, production

    # Logging Configuration
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    LOG_JSON: bool = True    # JSON logs (prod) vs pretty console (dev)
    DEBUG: bool = False

    # Access control - single shared secret
    UPLOAD_API_KEY: Optional[str] = None
    API_KEY_HEADER: str = "x-api-key"

    # CORS policy applied to every gateway response
    CORS_ALLOW_ORIGIN: str = "*"

    # Storage Backend Configuration
    STORAGE_BACKEND: StorageBackendName = "local"
    STORAGE_PATH: str = os.path.join(os.getcwd(), "storage")
    LOCAL_PUBLIC_PATH: str = "/storage"  # Mount point for local files

    # ImageKit
    IMAGEKIT_PUBLIC_KEY: Optional[str] = None
    IMAGEKIT_PRIVATE_KEY: Optional[str] = None
    IMAGEKIT_URL_ENDPOINT: Optional[str] = None
    IMAGEKIT_API_URL: str = "https://api.imagekit.io/v1"
    IMAGEKIT_UPLOAD_URL: str = "https://upload.imagekit.io/api/v1/files/upload"

    # Cloudinary
    CLOUDINARY_CLOUD_NAME: Optional[str] = None
    CLOUDINARY_API_KEY: Optional[str] = None
    CLOUDINARY_API_SECRET: Optional[str] = None
    CLOUDINARY_API_URL: str = "https://api.cloudinary.com/v1_1"
    CLOUDINARY_QUOTA_RESET_UTC: str = "09:00"  # Daily quota reset, HH:MM

    # Remote calls
    REMOTE_TIMEOUT_SECONDS: float = 30.0

    @field_validator("LOCAL_PUBLIC_PATH")
    @classmethod
    def validate_public_path(cls, v: str) -> str:
        """Mount path must be absolute and have no trailing slash."""
        if not v.startswith("/"):
            raise ValueError(f"LOCAL_PUBLIC_PATH must start with '/', got '{v}'")
        return v.rstrip("/") or "/"

    @field_validator("IMAGEKIT_URL_ENDPOINT", "IMAGEKIT_API_URL", "IMAGEKIT_UPLOAD_URL", "CLOUDINARY_API_URL")
    @classmethod
    def validate_url(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        """Validate URL format. Only the optional endpoint may be left empty."""
        if v is None or v == "":
            if info.field_name == "IMAGEKIT_URL_ENDPOINT":
                return None
            raise ValueError(f"{info.field_name} must not be empty")
        if not re.match(r'^https?://.+', v):
            raise ValueError(f"URL must start with http:// or https://, got '{v}'")
        return v.rstrip("/")

    @field_validator("CLOUDINARY_QUOTA_RESET_UTC")
    @classmethod
    def validate_reset_time(cls, v: str) -> str:
        if not re.match(r'^([01]\d|2[0-3]):[0-5]\d$', v):
            raise ValueError(f"CLOUDINARY_QUOTA_RESET_UTC must be HH:MM, got '{v}'")
        return v

    @field_validator("REMOTE_TIMEOUT_SECONDS")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"REMOTE_TIMEOUT_SECONDS must be positive, got {v}")
        return v

    @model_validator(mode='after')
    def validate_backend_configuration(self):
        """Ensure the selected backend has its credentials."""
        if self.STORAGE_BACKEND == "imagekit":
            if not self.IMAGEKIT_PRIVATE_KEY:
                raise ValueError(
                    "IMAGEKIT_PRIVATE_KEY must be set when STORAGE_BACKEND=imagekit"
                )
        elif self.STORAGE_BACKEND == "cloudinary":
            missing = [
                name for name in ("CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET")
                if not getattr(self, name)
            ]
            if missing:
                raise ValueError(
                    f"{', '.join(missing)} must be set when STORAGE_BACKEND=cloudinary"
                )
        return self

    @property
    def is_debug_mode(self) -> bool:
        """Check if application is in debug mode."""
        return self.DEBUG or self.LOG_LEVEL.upper() == "DEBUG"

    @property
    def use_json_logs(self) -> bool:
        """Determine if JSON logging should be used.

        In production, always use JSON logs.
        In development, allow override via LOG_JSON setting.
        """
        if self.ENVIRONMENT == "production":
            return True
        if self.DEBUG:
            return self.LOG_JSON
        return True

    @property
    def cors_headers(self) -> Dict[str, str]:
        """CORS policy headers attached to every gateway response."""
        return {
            "Access-Control-Allow-Origin": self.CORS_ALLOW_ORIGIN,
            "Access-Control-Allow-Methods": "GET, POST, DELETE, OPTIONS",
            "Access-Control-Allow-Headers": f"Content-Type, {self.API_KEY_HEADER}",
        }


@lru_cache()
def get_settings() -> Settings:
    """Build the process settings from the environment (once)."""
    return Settings()
