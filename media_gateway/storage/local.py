"""Local filesystem storage backend."""

import io
import os
import time
from stat import S_ISREG
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import quote

import aiofiles
import aiofiles.os
from PIL import Image, UnidentifiedImageError

from media_gateway.core.errors import internal_error, not_found_error, validation_error
from media_gateway.core.logging_config import get_logger
from .models import AssetDescriptor, AssetListing


logger = get_logger(__name__)

# Timestamp bumps tried before a store gives up on finding a free name
MAX_NAME_ATTEMPTS = 1000


def _safe_filename(filename: str) -> str:
    """Strip any client-supplied directory components."""
    name = os.path.basename(filename.replace("\\", "/")).strip()
    return name or "upload"


def _image_size(content: bytes) -> Tuple[Optional[int], Optional[int]]:
    """Read pixel dimensions from the image header, if it is an image."""
    try:
        with Image.open(io.BytesIO(content)) as image:
            return image.width, image.height
    except (UnidentifiedImageError, OSError):
        return None, None


class LocalAssetBackend:
    """Local filesystem storage implementation.

    Stores files as `<base_path>/<folder>/<epoch-millis>-<filename>`. The
    descriptor id is the path relative to `base_path`; the URL is that path
    under `public_path`, where the application serves the directory.
    Suitable for development and single-server deployments.
    """

    name = "local"
    id_field = "filename"

    def __init__(self, base_path: str, public_path: str = "/storage"):
        """Initialize local storage backend.

        Args:
            base_path: Root directory for file storage
            public_path: URL path the root directory is served under
        """
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.public_path = public_path.rstrip("/")

    def _url_for(self, relative_path: str) -> str:
        return f"{self.public_path}/{quote(relative_path)}"

    async def store(self, content: bytes, filename: str, folder: str) -> AssetDescriptor:
        """Write the payload under `folder` with a timestamp-prefixed name.

        The file is created exclusively. When the name is taken (same
        filename within the same millisecond) the timestamp is bumped until
        a free name is found, so ids stay unique and newest-first order holds.
        """
        display_name = _safe_filename(filename)
        directory = self.base_path / folder
        millis = int(time.time() * 1000)

        logger.debug(
            "local_storage_store_started",
            folder=folder,
            filename=display_name,
            directory=str(directory),
        )

        try:
            directory.mkdir(parents=True, exist_ok=True)
            for _ in range(MAX_NAME_ATTEMPTS):
                stored_name = f"{millis}-{display_name}"
                try:
                    async with aiofiles.open(directory / stored_name, 'xb') as f:
                        await f.write(content)
                    break
                except FileExistsError:
                    logger.debug("local_storage_name_taken", stored_name=stored_name)
                    millis += 1
            else:
                raise FileExistsError(f"No free name for {display_name} in {folder}")
        except OSError as exc:
            logger.error(
                "local_storage_store_failed",
                folder=folder,
                filename=display_name,
                error_type=type(exc).__name__,
                error=str(exc),
                exc_info=True,
            )
            raise internal_error(str(exc))

        relative_path = f"{folder}/{stored_name}"
        width, height = _image_size(content)

        logger.info(
            "local_storage_store_success",
            asset_id=relative_path,
            bytes_written=len(content),
            width=width,
            height=height,
        )

        return AssetDescriptor(
            id=relative_path,
            display_name=display_name,
            url=self._url_for(relative_path),
            width=width,
            height=height,
            size=len(content),
            created_at=datetime.now(timezone.utc).isoformat(),
        )

    async def list(self, folder: str, limit: int) -> AssetListing:
        """List files in `folder`, newest first.

        A missing directory is an empty namespace. Any other read failure
        degrades to an empty listing carrying the error instead of failing
        the request.
        """
        directory = self.base_path / folder

        try:
            names = await aiofiles.os.listdir(directory)
        except FileNotFoundError:
            logger.debug("local_storage_list_empty_namespace", folder=folder)
            return AssetListing()
        except OSError as exc:
            logger.error(
                "local_storage_list_failed",
                folder=folder,
                directory=str(directory),
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return AssetListing(error="Unable to read upload directory", details=str(exc))

        files = []
        # Stored names start with epoch millis, so reverse name order is newest first
        for stored_name in sorted(names, reverse=True):
            if len(files) >= limit:
                break
            if stored_name.startswith("."):
                continue

            try:
                info = await aiofiles.os.stat(directory / stored_name)
            except FileNotFoundError:
                # Removed by a concurrent delete
                continue
            except OSError as exc:
                logger.warning(
                    "local_storage_list_entry_skipped",
                    folder=folder,
                    stored_name=stored_name,
                    error_type=type(exc).__name__,
                    error=str(exc),
                )
                continue
            if not S_ISREG(info.st_mode):
                continue

            relative_path = f"{folder}/{stored_name}"
            prefix, sep, original = stored_name.partition("-")
            files.append(AssetDescriptor(
                id=relative_path,
                display_name=original if sep and prefix.isdigit() else stored_name,
                url=self._url_for(relative_path),
                size=info.st_size,
                created_at=datetime.fromtimestamp(info.st_mtime, tz=timezone.utc).isoformat(),
            ))

        logger.info("local_storage_list_success", folder=folder, count=len(files), limit=limit)
        return AssetListing(files=files)

    async def remove(self, asset_id: str) -> None:
        """Delete one file by its relative path.

        Raises:
            ServiceError: ValidationError if the id escapes the storage root,
                NotFound if there is no such file
        """
        root = self.base_path.resolve()
        target = (self.base_path / asset_id).resolve()

        if root not in target.parents:
            logger.warning("local_storage_remove_rejected", asset_id=asset_id)
            raise validation_error("Invalid id", details={"id": asset_id})

        if not target.is_file():
            logger.warning("local_storage_remove_not_found", asset_id=asset_id)
            raise not_found_error(asset_id)

        try:
            await aiofiles.os.remove(target)
        except FileNotFoundError:
            # Lost a race with a concurrent delete
            logger.warning("local_storage_remove_not_found", asset_id=asset_id)
            raise not_found_error(asset_id)
        except OSError as exc:
            logger.error(
                "local_storage_remove_failed",
                asset_id=asset_id,
                error_type=type(exc).__name__,
                error=str(exc),
                exc_info=True,
            )
            raise internal_error(str(exc))

        logger.info("local_storage_remove_success", asset_id=asset_id)
        return None

    async def close(self) -> None:
        return None
