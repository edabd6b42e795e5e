"""
Single-slot TTL cache for the national weather alerts feed.

The feed is one dataset for every caller, so there is exactly one cached item.
Reads serve fresh data directly, refetch when stale and fall back to the stale
item if that refetch fails. Forced refreshes never fall back.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

CACHE_TTL_MS = 60 * 60 * 1000  # 1 hour

AlertsFetcher = Callable[[], Awaitable[Any]]


def _now_ms() -> int:
    return int(time.time() * 1000)


class CacheState(str, Enum):
    EMPTY = "empty"
    FRESH = "fresh"
    STALE = "stale"


@dataclass(slots=True)
class WeatherAlertsCacheItem:
    data: Any
    timestamp: int


@dataclass(frozen=True)
class AlertsCacheStatus:
    """Read-only snapshot of the cache for monitoring endpoints."""

    exists: bool
    age: int | None
    is_valid: bool
    last_updated: datetime | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "exists": self.exists,
            "age": self.age,
            "isValid": self.is_valid,
            "lastUpdated": self.last_updated.isoformat() if self.last_updated else None,
        }


class WeatherAlertsCache:
    """Caches the latest alerts payload returned by ``fetcher``."""

    def __init__(
        self,
        fetcher: AlertsFetcher,
        *,
        ttl_ms: int = CACHE_TTL_MS,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._fetcher = fetcher
        self._ttl_ms = ttl_ms
        self._clock = clock
        self._item: WeatherAlertsCacheItem | None = None

    def state(self) -> CacheState:
        if self._item is None:
            return CacheState.EMPTY
        if self._clock() - self._item.timestamp < self._ttl_ms:
            return CacheState.FRESH
        return CacheState.STALE

    async def get_weather_alerts(self) -> Any:
        """Return alerts from cache, refetching when empty or expired."""
        state = self.state()

        if state is CacheState.FRESH:
            logger.debug("Using cached weather alerts data")
            return self._item.data

        if state is CacheState.EMPTY:
            return await self.refresh_alerts_cache()

        stale_item = self._item
        try:
            return await self.refresh_alerts_cache()
        except Exception:
            logger.warning(
                "Returning expired cached alerts due to API error (age %d ms)",
                self._clock() - stale_item.timestamp,
            )
            return stale_item.data

    async def refresh_alerts_cache(self) -> Any:
        """Fetch fresh alerts and overwrite the slot; errors propagate."""
        logger.info("Refreshing weather alerts cache from AEMET API")
        try:
            data = await self._fetcher()
        except Exception as exc:
            logger.error("Failed to refresh weather alerts cache: %s", exc)
            raise

        self._item = WeatherAlertsCacheItem(data=data, timestamp=self._clock())
        logger.info("Weather alerts cache successfully refreshed")
        return data

    def get_cache_status(self) -> AlertsCacheStatus:
        if self._item is None:
            return AlertsCacheStatus(exists=False, age=None, is_valid=False, last_updated=None)

        age = self._clock() - self._item.timestamp
        return AlertsCacheStatus(
            exists=True,
            age=age,
            is_valid=age < self._ttl_ms,
            last_updated=datetime.fromtimestamp(self._item.timestamp / 1000, tz=timezone.utc),
        )


__all__ = [
    "WeatherAlertsCache",
    "WeatherAlertsCacheItem",
    "AlertsCacheStatus",
    "CacheState",
    "CACHE_TTL_MS",
]
