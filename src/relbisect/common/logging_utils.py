"""Centralized logging helpers.

Every module logs through ``logging.getLogger(__name__)``; this module owns the
root configuration plus the small helpers used to attach structured context
to DEBUG traces without paying for it when DEBUG is off.
"""
from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

from relbisect.constants import Constants

_SENSITIVE_QUERY_KEYS = ("token", "key", "secret", "password", "sig")


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once.

    The level comes from ``level`` when given, otherwise from the
    ``RELBISECT_LOG_LEVEL`` environment variable, defaulting to INFO.
    """
    level_name = (level or os.environ.get(Constants.LOG_LEVEL_ENV) or "INFO").upper()
    level_value = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level_value)


def add_file_handler(path: str) -> logging.Handler:
    """Attach a file handler to the root logger and return it."""
    file_handler = logging.FileHandler(path)
    file_handler.setFormatter(logging.Formatter(Constants.LOG_FILE_FORMAT))
    logging.getLogger().addHandler(file_handler)
    return file_handler


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records would be emitted by ``logger``."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build an ``extra=`` mapping for structured log records.

    ``None`` values are dropped so records only carry what is known.
    """
    return {key: value for key, value in fields.items() if value is not None}


def redact(value: str) -> str:
    """Mask all but the first two characters of a secret."""
    if len(value) <= 2:
        return "***"
    return value[:2] + "***"


def safe_url(url: str) -> str:
    """Return ``url`` with userinfo and sensitive query values masked."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url

    netloc = parts.netloc
    if "@" in netloc:
        netloc = "***@" + netloc.rsplit("@", 1)[1]

    query_items = []
    for item in parts.query.split("&") if parts.query else []:
        name, sep, value = item.partition("=")
        if sep and any(key in name.lower() for key in _SENSITIVE_QUERY_KEYS):
            value = redact(value)
        query_items.append(f"{name}{sep}{value}")

    return urlunsplit((parts.scheme, netloc, parts.path, "&".join(query_items), parts.fragment))


class Timer:
    """Context manager measuring wall-clock duration in milliseconds."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        self._end = None
        return self

    def __exit__(self, *exc_info: Any) -> bool:
        self._end = time.perf_counter()
        return False

    def duration_ms(self) -> float:
        """Elapsed milliseconds, measured up to now while still running."""
        end = self._end if self._end is not None else time.perf_counter()
        return round((end - self._start) * 1000.0, 2)
