"""Centralized logging helpers.

Every module logs through ``logging.getLogger(__name__)``; this module only
configures the root logger and offers helpers for structured DEBUG traces.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict

from constants import Constants

_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def configure_logging() -> None:
    """Configure the root logger from MONOBOOT_LOG_LEVEL (default INFO).

    Safe to call more than once; an existing handler is reused.
    """
    level_name = os.environ.get(Constants.ENV_LOG_LEVEL, "INFO").upper()
    if level_name not in _LEVELS:
        level_name = "INFO"

    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(getattr(logging, level_name))


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True if DEBUG records would be emitted by this logger."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build an ``extra=`` payload, dropping unset fields."""
    return {key: value for key, value in fields.items() if value is not None}


class Timer:
    """Context manager measuring wall-clock duration."""

    def __init__(self):
        self._start = 0.0
        self._end = None

    def __enter__(self) -> "Timer":
        self._start = time.monotonic()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._end = time.monotonic()

    def duration_ms(self) -> int:
        """Elapsed milliseconds, up to now if still running."""
        end = self._end if self._end is not None else time.monotonic()
        return int((end - self._start) * 1000)
