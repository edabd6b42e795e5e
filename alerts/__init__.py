"""
Weather alerts module.

Contains:
- aemet: AEMET OpenData client (CAP alerts -> GeoJSON)
- cache: Single-slot alerts cache with stale-on-error reads
"""

from alerts.aemet import AemetApiError, AemetClient
from alerts.aemet_config import AemetSettings, get_aemet_settings
from alerts.cache import AlertsCacheStatus, CacheState, WeatherAlertsCache

__all__ = [
    "AemetClient",
    "AemetApiError",
    "AemetSettings",
    "get_aemet_settings",
    "WeatherAlertsCache",
    "AlertsCacheStatus",
    "CacheState",
]
