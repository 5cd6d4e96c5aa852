"""Per-run progress tracking shared by concurrent units of work."""

from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)


class ProgressTracker:
    """Thread-safe work counter.

    One tracker is created per stage and handed explicitly to each
    concurrent unit; units only add or complete work.
    """

    def __init__(self, name: str, total: int = 0):
        self.name = name
        self._lock = threading.Lock()
        self._total = total
        self._completed = 0
        self._finished = False

    @property
    def total(self) -> int:
        with self._lock:
            return self._total

    @property
    def completed(self) -> int:
        with self._lock:
            return self._completed

    @property
    def finished(self) -> bool:
        with self._lock:
            return self._finished

    def add_work(self, count: int) -> None:
        with self._lock:
            self._total += count

    def complete_work(self, count: int = 1, item: str = "") -> None:
        with self._lock:
            self._completed += count
            completed, total = self._completed, self._total
        logger.debug("%s: %d/%d %s", self.name, completed, total, item)

    def finish(self) -> None:
        """Mark the tracker done; idempotent."""
        with self._lock:
            if self._finished:
                return
            self._finished = True
            completed, total = self._completed, self._total
        logger.debug("%s: finished (%d/%d)", self.name, completed, total)
