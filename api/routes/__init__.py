"""
API Routes Module.

Contains route handlers with kebab-case naming:
- alerts: Weather alerts and cache admin (/alerts/*)
- files: Image uploads and signed URLs (/files/*)
"""

from .alerts import router as alerts_router
from .files import router as files_router

__all__ = [
    "alerts_router",
    "files_router",
]
