"""
API Security Module

Provides bearer-token authentication dependencies and middleware setup:
- Access token validation for authenticated routes
- Admin-only route guard
- CORS and request logging middlewares
"""

import os
import time
import logging

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.middleware.base import BaseHTTPMiddleware

from api.services.container import ServiceContainer, get_services
from auth.tokens import AuthenticatedUser

logger = logging.getLogger("agromarket.api_security")

_bearer_scheme = HTTPBearer(auto_error=False)


# =============================================================================
# Dependencies for Route-Level Access
# =============================================================================

async def require_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
    services: ServiceContainer = Depends(get_services),
) -> AuthenticatedUser:
    """
    FastAPI dependency that requires a valid bearer token.

    Returns:
        The authenticated user

    Raises:
        HTTPException: 401 if the token is missing, invalid or expired
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return services.tokens.verify(credentials.credentials)
    except ValueError as exc:
        logger.debug("[SECURITY] Rejected token: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc


async def require_admin(user: AuthenticatedUser = Depends(require_user)) -> AuthenticatedUser:
    """FastAPI dependency that additionally requires admin privileges."""
    if not user.is_admin:
        logger.warning("Admin access denied for user ID: %s (%s)", user.id, user.username)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: Admin access required",
        )
    logger.info("Admin access granted for user ID: %s (%s)", user.id, user.username)
    return user


# =============================================================================
# Middleware Setup
# =============================================================================

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, path, status and duration of non-health requests."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time

        if request.url.path not in ("/", "/healthz", "/readyz"):
            logger.debug(
                "%s %s - %d (%.3fs)",
                request.method,
                request.url.path,
                response.status_code,
                process_time,
            )

        return response


def setup_middlewares(app) -> None:
    """
    Configure all middlewares for the FastAPI application.

    Adds:
    - CORS middleware for cross-origin requests
    - Request logging middleware
    """
    from fastapi.middleware.cors import CORSMiddleware

    cors_origins = os.getenv("CORS_ORIGINS", "*").split(",")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    logger.info("Middlewares configured: CORS (origins=%s), request logging", cors_origins)


__all__ = [
    "require_user",
    "require_admin",
    "setup_middlewares",
    "RequestLoggingMiddleware",
]
