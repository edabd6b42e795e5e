"""
Service Container Module.

Holds the process-wide service instances (storage, caches, auth, scheduler).
The container is built once in the application lifespan, stored on
``app.state.services`` and handed to route handlers through ``get_services``.
"""

import logging
from dataclasses import dataclass

from fastapi import Request

from alerts.aemet import AemetClient
from alerts.aemet_config import get_aemet_settings
from alerts.cache import WeatherAlertsCache
from auth.tokens import AccessTokenManager, get_token_settings
from jobs.cache_jobs import clean_signed_url_cache_job, refresh_weather_alerts_job
from jobs.scheduler import JobScheduler, SchedulerSettings, get_scheduler_settings
from storage.gcs import GCSStorageManager
from storage.media import MediaService
from storage.storage_config import get_storage_settings
from storage.url_cache import SignedUrlCache

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    url_cache: SignedUrlCache
    media: MediaService
    alerts_cache: WeatherAlertsCache
    tokens: AccessTokenManager
    scheduler: JobScheduler


def register_cache_jobs(services: ServiceContainer, settings: SchedulerSettings) -> None:
    """Register the signed URL sweep and the alerts refresh on the scheduler."""
    services.scheduler.add_job(
        "signed-url-cache-cleanup",
        lambda: clean_signed_url_cache_job(services.url_cache),
        settings.cache_cleanup_interval_seconds,
    )
    services.scheduler.add_job(
        "weather-alerts-refresh",
        lambda: refresh_weather_alerts_job(services.alerts_cache),
        settings.alerts_refresh_interval_seconds,
    )


def build_services() -> ServiceContainer:
    """Construct every service from environment configuration."""
    storage_settings = get_storage_settings()
    provider = GCSStorageManager.from_settings(storage_settings)
    url_cache = SignedUrlCache(
        provider,
        ttl_seconds=storage_settings.signed_url_ttl_seconds,
        margin_seconds=storage_settings.signed_url_margin_seconds,
    )

    aemet_client = AemetClient(get_aemet_settings())

    services = ServiceContainer(
        url_cache=url_cache,
        media=MediaService(provider, url_cache),
        alerts_cache=WeatherAlertsCache(aemet_client.fetch_alerts_geojson),
        tokens=AccessTokenManager(get_token_settings()),
        scheduler=JobScheduler(),
    )
    register_cache_jobs(services, get_scheduler_settings())
    logger.info("Services initialized")
    return services


def get_services(request: Request) -> ServiceContainer:
    """FastAPI dependency returning the container built at startup."""
    return request.app.state.services


__all__ = [
    "ServiceContainer",
    "build_services",
    "register_cache_jobs",
    "get_services",
]
