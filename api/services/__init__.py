"""
API Services Module.

Contains the service container shared by route handlers and jobs.
"""

from .container import (
    ServiceContainer,
    build_services,
    register_cache_jobs,
    get_services,
)


__all__ = [
    "ServiceContainer",
    "build_services",
    "register_cache_jobs",
    "get_services",
]
