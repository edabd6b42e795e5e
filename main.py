"""
Main Entry Point - FastAPI Application.

This file contains:
- FastAPI app factory and lifespan (service construction, cache warm-up,
  scheduled jobs)
- Route mounting from api/routes/
- Middleware setup from api/middleware.py
- Health check endpoints

NO BUSINESS LOGIC - just wiring and setup.

Usage:
    uvicorn main:app --reload
    python main.py
"""

import os
import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.responses import JSONResponse

# Load environment variables with explicit path (works when run from any directory)
_env_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), ".env")
load_dotenv(_env_path)

# ============================================================================
# NON-BLOCKING LOGGING SETUP (MUST BE BEFORE OTHER IMPORTS)
# ============================================================================
from utils.logger_config import configure_non_blocking_logging

_log_listener = configure_non_blocking_logging(level=os.getenv("LOG_LEVEL"))

from api.routes import alerts_router, files_router
from api.middleware import setup_middlewares
from api.services.container import ServiceContainer, build_services
from jobs.scheduler import get_scheduler_settings

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"


# =============================================================================
# LIFESPAN EVENTS
# =============================================================================

async def _populate_alerts_cache(services: ServiceContainer) -> None:
    try:
        await services.alerts_cache.refresh_alerts_cache()
        logger.info("Initial weather alerts cache populated successfully")
    except Exception as exc:
        logger.warning("Failed to populate initial weather alerts cache: %s", exc)
        logger.info("Will retry on first request or scheduled job")


def _make_lifespan(services: ServiceContainer | None, start_jobs: bool | None):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        logger.info("Agro market API starting up...")
        container = services if services is not None else build_services()
        app.state.services = container

        await _populate_alerts_cache(container)

        run_jobs = get_scheduler_settings().enabled if start_jobs is None else start_jobs
        if run_jobs:
            container.scheduler.start()

        try:
            yield
        finally:
            await container.scheduler.stop()
            logger.info("Agro market API shutting down...")

    return lifespan


# =============================================================================
# FASTAPI APPLICATION
# =============================================================================

def create_app(
    services: ServiceContainer | None = None,
    start_jobs: bool | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        services: Prebuilt service container (built from env when None)
        start_jobs: Force scheduled jobs on/off (ENABLE_SCHEDULED_JOBS when None)
    """
    app = FastAPI(
        title="Agro Market API",
        description="Signed image URLs and cached AEMET weather alerts",
        version=APP_VERSION,
        lifespan=_make_lifespan(services, start_jobs),
    )

    setup_middlewares(app)

    app.include_router(alerts_router, tags=["Alerts"])
    app.include_router(files_router, tags=["Files"])

    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint - health check."""
        return {"status": "ok", "version": APP_VERSION, "service": "agromarket-api"}

    @app.get("/healthz", include_in_schema=False)
    async def healthz():
        """Kubernetes liveness probe."""
        return {"status": "healthy"}

    @app.get("/readyz", include_in_schema=False)
    async def readyz():
        """Kubernetes readiness probe."""
        return {"status": "ready"}

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """Global exception handler for unhandled errors."""
        logger.exception("Unhandled exception: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"message": "Internal server error", "error": str(exc)},
        )

    return app


app = create_app()


# =============================================================================
# MAIN
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    # Suppress health check access logs
    class _HealthCheckFilter(logging.Filter):
        _SUPPRESSED = {"/healthz", "/readyz", "/"}
        def filter(self, record: logging.LogRecord) -> bool:
            msg = record.getMessage()
            return not any(f'"{path} ' in msg or f" {path} " in msg for path in self._SUPPRESSED)

    logging.getLogger("uvicorn.access").addFilter(_HealthCheckFilter())

    port = int(os.getenv("PORT", "8000"))

    # Caches and jobs are per process, so a single worker keeps one copy of each.
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=port,
        workers=1,
        log_level=os.getenv("UVICORN_LOG_LEVEL", "info").lower(),
    )
