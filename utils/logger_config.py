"""
Non-Blocking Logging Configuration

Routes every log record through a QueueHandler so request handlers on the
event loop only enqueue records; a QueueListener thread does the console I/O.

Usage:
    from utils.logger_config import configure_non_blocking_logging

    # At application startup (before any logging)
    listener = configure_non_blocking_logging()
"""

import atexit
import logging
import logging.handlers
import os
import queue
import sys
from typing import Optional

_log_listener: Optional[logging.handlers.QueueListener] = None

DEFAULT_LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%H:%M:%S"

NOISY_LOGGERS = (
    "httpcore",
    "httpx",
    "urllib3",
    "google.auth",
    "google.auth.transport",
    "google.cloud.storage",
    "multipart",
)

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def resolve_log_level(value: str | int | None) -> int:
    """Resolve a level name or number, defaulting to INFO."""
    if value is None:
        return logging.INFO
    if isinstance(value, int):
        return value

    stripped = value.strip().upper()
    if stripped in _LEVELS:
        return _LEVELS[stripped]

    try:
        return int(stripped)
    except ValueError:
        return logging.INFO


def configure_non_blocking_logging(
    level: str | int | None = None,
    log_format: str = DEFAULT_LOG_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
    silence_noisy_libs: bool = True,
) -> logging.handlers.QueueListener:
    """
    Replace root handlers with a queue-backed console handler.

    Args:
        level: Log level name or number (default: LOG_LEVEL env var or INFO)
        log_format: Format string for log messages
        date_format: Format string for timestamps
        silence_noisy_libs: If True, set HTTP/GCS client loggers to WARNING

    Returns:
        The started QueueListener (stopped automatically at exit)
    """
    global _log_listener

    resolved = resolve_log_level(level if level is not None else os.getenv("LOG_LEVEL"))

    if _log_listener is not None:
        _log_listener.stop()

    log_queue: queue.Queue = queue.Queue(-1)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(resolved)
    console_handler.setFormatter(logging.Formatter(log_format, datefmt=date_format))

    listener = logging.handlers.QueueListener(log_queue, console_handler, respect_handler_level=True)
    listener.start()

    root = logging.getLogger()
    root.setLevel(resolved)
    for handler in list(root.handlers):
        if isinstance(handler, logging.handlers.QueueHandler):
            root.removeHandler(handler)
    root.addHandler(logging.handlers.QueueHandler(log_queue))

    if silence_noisy_libs:
        for logger_name in NOISY_LOGGERS:
            logging.getLogger(logger_name).setLevel(logging.WARNING)

    atexit.register(stop_logging)
    _log_listener = listener
    return listener


def stop_logging() -> None:
    """Stop the background logging thread and flush remaining records."""
    global _log_listener
    if _log_listener is not None:
        try:
            _log_listener.stop()
        except RuntimeError:
            pass
        _log_listener = None


def is_logging_configured() -> bool:
    return _log_listener is not None
