"""In-memory TTL cache of signed URLs for bucket objects.

Entries are keyed by object key and expire ``margin_ms`` before the provider
itself would reject the URL. All mutations happen on the event loop thread;
the only await point is the provider call, so two concurrent misses on the
same key may both sign a URL (both remain valid, the last one wins).
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict

from storage.errors import FileDeletionError, SignedUrlGenerationError
from storage.gcs import StorageProvider
from storage.storage_config import (
    DEFAULT_SIGNED_URL_MARGIN_SECONDS,
    DEFAULT_SIGNED_URL_TTL_SECONDS,
)

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(slots=True)
class SignedUrlCacheEntry:
    """Represents a cached signed URL with its expiry in epoch milliseconds."""

    key: str
    url: str
    expires_at: int


class SignedUrlCache:
    """Memoizes provider-signed URLs per object key until they near expiry."""

    def __init__(
        self,
        provider: StorageProvider,
        *,
        ttl_seconds: int = DEFAULT_SIGNED_URL_TTL_SECONDS,
        margin_seconds: int = DEFAULT_SIGNED_URL_MARGIN_SECONDS,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._provider = provider
        self._ttl_seconds = ttl_seconds
        self._margin_ms = margin_seconds * 1000
        self._clock = clock
        self._cache: Dict[str, SignedUrlCacheEntry] = {}

        if ttl_seconds <= margin_seconds:
            logger.warning(
                "Signed URL TTL (%d s) does not exceed the safety margin (%d s); "
                "cached URLs will always be treated as expired",
                ttl_seconds,
                margin_seconds,
            )

    @property
    def ttl_seconds(self) -> int:
        """Return the lifetime requested from the provider for each URL."""

        return self._ttl_seconds

    def get_entry(self, key: str) -> SignedUrlCacheEntry | None:
        """Return the raw entry for ``key`` without checking expiry."""

        return self._cache.get(key)

    async def get_signed_url(self, key: str, force_refresh: bool = False) -> str:
        """Return a cached URL for ``key`` or sign a new one."""

        now = self._clock()
        entry = self._cache.get(key)
        if entry is not None and not force_refresh and now < entry.expires_at:
            logger.debug("Using cached signed URL for: %s", key)
            return entry.url

        try:
            url = await asyncio.to_thread(self._provider.generate_signed_url, key, self._ttl_seconds)
        except Exception as exc:
            logger.error("Error generating signed URL for %s: %s", key, exc)
            raise SignedUrlGenerationError("Failed to generate signed URL") from exc

        expires_at = now + self._ttl_seconds * 1000 - self._margin_ms
        self._cache[key] = SignedUrlCacheEntry(key=key, url=url, expires_at=expires_at)
        logger.debug("New signed URL generated and cached for: %s", key)
        return url

    async def refresh_signed_url(self, key: str) -> str:
        """Sign a new URL for ``key`` regardless of cache state."""

        return await self.get_signed_url(key, force_refresh=True)

    async def delete_file(self, key: str) -> None:
        """Delete the object from the bucket and drop its cached URL."""

        try:
            await asyncio.to_thread(self._provider.delete_object, key)
        except Exception as exc:
            logger.error("Error deleting file %s: %s", key, exc)
            raise FileDeletionError("Failed to delete file") from exc

        if self._cache.pop(key, None) is not None:
            logger.debug("Signed URL removed from cache for: %s", key)

    def clean_expired_cache(self) -> int:
        """Remove expired entries and return how many were dropped."""

        now = self._clock()
        expired_keys = [key for key, entry in self._cache.items() if entry.expires_at <= now]
        for key in expired_keys:
            self._cache.pop(key, None)

        if expired_keys:
            logger.debug("Removed %d expired signed URLs from cache", len(expired_keys))
        return len(expired_keys)

    def get_cache_size(self) -> int:
        return len(self._cache)


__all__ = ["SignedUrlCache", "SignedUrlCacheEntry"]
