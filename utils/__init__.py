"""
Shared utilities module.

Contains:
- logger_config: Non-blocking logging configuration
"""

from utils.logger_config import (
    configure_non_blocking_logging,
    stop_logging,
    is_logging_configured,
    resolve_log_level,
    DEFAULT_LOG_FORMAT,
    DEFAULT_DATE_FORMAT,
)

__all__ = [
    "configure_non_blocking_logging",
    "stop_logging",
    "is_logging_configured",
    "resolve_log_level",
    "DEFAULT_LOG_FORMAT",
    "DEFAULT_DATE_FORMAT",
]
