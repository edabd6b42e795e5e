"""
Alert Routes Module.

Exposes the weather alerts cache:
- GET /alerts/weather: Current alerts (GeoJSON FeatureCollection)
- GET /alerts/cache/status: Cache age/validity (admin)
- POST /alerts/cache/refresh: Force a refetch from AEMET (admin)
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from api.middleware import require_admin, require_user
from api.services.container import ServiceContainer, get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/alerts", tags=["alerts"])


def _error_response(message: str, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": message, "error": str(exc)},
    )


@router.get("/weather", dependencies=[Depends(require_user)])
async def get_weather_alerts(services: ServiceContainer = Depends(get_services)):
    """Latest weather alerts, served from cache when fresh."""
    try:
        return await services.alerts_cache.get_weather_alerts()
    except Exception as exc:
        logger.error("Error retrieving weather alerts: %s", exc, exc_info=True)
        return _error_response("Error retrieving weather alerts", exc)


@router.get("/cache/status", dependencies=[Depends(require_admin)])
async def get_alerts_cache_status(services: ServiceContainer = Depends(get_services)):
    try:
        return services.alerts_cache.get_cache_status().to_dict()
    except Exception as exc:
        logger.error("Error retrieving cache status: %s", exc, exc_info=True)
        return _error_response("Error retrieving cache status", exc)


@router.post("/cache/refresh", dependencies=[Depends(require_admin)])
async def refresh_alerts_cache(services: ServiceContainer = Depends(get_services)):
    """Refetch alerts regardless of cache validity; failures are not masked."""
    try:
        await services.alerts_cache.refresh_alerts_cache()
    except Exception as exc:
        logger.error("Error refreshing alerts cache: %s", exc, exc_info=True)
        return _error_response("Error refreshing alerts cache", exc)

    return {
        "message": "Alerts cache refreshed successfully",
        "status": services.alerts_cache.get_cache_status().to_dict(),
    }


__all__ = ["router"]
