"""
Media service for user profile pictures and product images.

Contains:
- validate_image: MIME type and size checks for uploads
- generate_user_profile_key / generate_product_image_key: object key layout
- MediaService: uploads through the storage provider and reads through the
  signed URL cache
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import Callable

from storage.errors import FileUploadError, InvalidImageError, StorageError
from storage.gcs import StorageProvider
from storage.storage_config import (
    ALLOWED_MIME_TYPES,
    DEFAULT_PROFILE_PICTURE_KEY,
    MAX_FILE_SIZE,
    PRODUCT_IMAGES_PATH,
    USER_PROFILE_PATH,
)
from storage.url_cache import SignedUrlCache

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
}


def _now_ms() -> int:
    return int(time.time() * 1000)


def validate_image(content_type: str | None, size: int) -> None:
    """Raise InvalidImageError if the upload is not an accepted image."""
    if content_type not in ALLOWED_MIME_TYPES:
        raise InvalidImageError(
            f"Invalid file type. Allowed types: {', '.join(ALLOWED_MIME_TYPES)}"
        )
    if size > MAX_FILE_SIZE:
        raise InvalidImageError(
            f"File too large. Maximum size: {MAX_FILE_SIZE // (1024 * 1024)}MB"
        )


def extension_for(content_type: str) -> str:
    return _EXTENSIONS.get(content_type, "bin")


def generate_user_profile_key(user_id: str, file_extension: str, *, now_ms: int | None = None) -> str:
    timestamp = _now_ms() if now_ms is None else now_ms
    return f"{USER_PROFILE_PATH}/{user_id}-{timestamp}.{file_extension}"


def generate_product_image_key(product_id: str, file_extension: str, *, now_ms: int | None = None) -> str:
    timestamp = _now_ms() if now_ms is None else now_ms
    return f"{PRODUCT_IMAGES_PATH}/{product_id}-{timestamp}.{file_extension}"


def is_user_profile_key(user_id: str, key: str) -> bool:
    """True if ``key`` is a profile picture generated for ``user_id``."""
    pattern = rf"{re.escape(USER_PROFILE_PATH)}/{re.escape(user_id)}-\d+\.(?:jpg|png)"
    return re.fullmatch(pattern, key) is not None


class MediaService:
    """Uploads images and resolves readable URLs for them."""

    def __init__(
        self,
        provider: StorageProvider,
        url_cache: SignedUrlCache,
        *,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._provider = provider
        self._url_cache = url_cache
        self._clock = clock

    @property
    def url_cache(self) -> SignedUrlCache:
        return self._url_cache

    async def upload_file(self, data: bytes, key: str, content_type: str) -> str:
        """Write ``data`` under ``key`` and return the key."""
        try:
            return await asyncio.to_thread(self._provider.upload_bytes, data, key, content_type)
        except Exception as exc:
            logger.error("Error uploading file %s: %s", key, exc)
            raise FileUploadError("Failed to upload file") from exc

    async def upload_profile_picture(
        self,
        user_id: str,
        data: bytes,
        content_type: str,
        previous_key: str | None = None,
    ) -> tuple[str, str]:
        """
        Store a new profile picture for a user.

        The previous picture, when given and not the shared default, is deleted
        after the new one is stored so its cached URL goes away with it. It must
        be one of this user's own profile pictures; anything else is rejected
        before the upload.

        Returns:
            (key, signed_url) of the new picture
        """
        validate_image(content_type, len(data))
        replaced = previous_key if previous_key != DEFAULT_PROFILE_PICTURE_KEY else None
        if replaced and not is_user_profile_key(user_id, replaced):
            logger.warning("User %s tried to replace foreign object %s", user_id, replaced)
            raise InvalidImageError("previous_key is not a profile picture of this user")

        key = generate_user_profile_key(user_id, extension_for(content_type), now_ms=self._clock())
        await self.upload_file(data, key, content_type)

        if replaced:
            try:
                await self._url_cache.delete_file(replaced)
            except StorageError as exc:
                logger.warning("Could not delete previous profile picture %s: %s", replaced, exc)

        url = await self._url_cache.get_signed_url(key)
        logger.info("Profile picture updated for user %s: %s", user_id, key)
        return key, url

    async def upload_product_image(
        self,
        product_id: str,
        data: bytes,
        content_type: str,
    ) -> tuple[str, str]:
        """Store a product image and return (key, signed_url)."""
        validate_image(content_type, len(data))
        key = generate_product_image_key(product_id, extension_for(content_type), now_ms=self._clock())
        await self.upload_file(data, key, content_type)
        url = await self._url_cache.get_signed_url(key)
        logger.info("Image uploaded for product %s: %s", product_id, key)
        return key, url

    async def get_default_profile_picture_url(self) -> str:
        return await self._url_cache.get_signed_url(DEFAULT_PROFILE_PICTURE_KEY)

    async def resolve_profile_picture_url(self, key: str | None) -> str:
        """Signed URL for a user's picture, falling back to the default one."""
        if key:
            return await self._url_cache.get_signed_url(key)
        return await self.get_default_profile_picture_url()


__all__ = [
    "MediaService",
    "validate_image",
    "extension_for",
    "generate_user_profile_key",
    "generate_product_image_key",
    "is_user_profile_key",
]
