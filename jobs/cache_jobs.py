"""Housekeeping jobs for the in-memory caches."""

import logging

from alerts.cache import WeatherAlertsCache
from storage.url_cache import SignedUrlCache

logger = logging.getLogger(__name__)


async def clean_signed_url_cache_job(url_cache: SignedUrlCache) -> int:
    """Drop expired signed URLs so the cache does not grow without bound."""
    try:
        logger.info("Starting signed URL cache cleanup")
        removed = url_cache.clean_expired_cache()
        logger.info(
            "Signed URL cache cleanup completed. Removed: %d, current size: %d entries.",
            removed,
            url_cache.get_cache_size(),
        )
        return removed
    except Exception as exc:
        logger.error("Error cleaning signed URL cache: %s", exc)
        raise


async def refresh_weather_alerts_job(alerts_cache: WeatherAlertsCache) -> bool:
    """
    Refresh the weather alerts cache.

    Returns:
        True on success, False if the refresh failed (the next run retries)
    """
    try:
        logger.info("Starting scheduled weather alerts cache refresh job")
        before = alerts_cache.get_cache_status()

        await alerts_cache.refresh_alerts_cache()

        after = alerts_cache.get_cache_status()
        previous_age = f"{before.age // 1000 // 60} minutes" if before.age is not None else "N/A"
        logger.info(
            "Weather alerts cache refreshed successfully. Previous age: %s, Updated at: %s",
            previous_age,
            after.last_updated.isoformat() if after.last_updated else "N/A",
        )
        return True
    except Exception as exc:
        logger.error("Error in weather alerts cache refresh job: %s", exc)
        return False
