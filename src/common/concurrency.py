"""Bounded, fail-fast fan-out over a thread pool."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Iterable, List, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def run_bounded(items: Iterable[T], func: Callable[[T], R], concurrency: int) -> List[R]:
    """Apply ``func`` to every item with at most ``concurrency`` in flight.

    Work is started in item order. The first exception cancels every
    not-yet-started item, waits for running ones, and is re-raised.

    Returns:
        Results in item order.
    """
    items = list(items)
    if not items:
        return []

    workers = max(1, min(int(concurrency or 1), len(items)))
    results: List[R] = [None] * len(items)  # type: ignore[list-item]

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {executor.submit(func, item): index for index, item in enumerate(items)}
        try:
            for future in as_completed(futures):
                results[futures[future]] = future.result()
        except BaseException:
            cancelled = sum(1 for future in futures if future.cancel())
            if cancelled:
                logger.debug("Cancelled %d pending task(s) after failure", cancelled)
            raise
    return results


def run_parallel_batches(
    batches: Sequence[Sequence[T]], concurrency: int, func: Callable[[T], R]
) -> List[List[R]]:
    """Run batches strictly in order; members of one batch run in parallel."""
    return [run_bounded(batch, func, concurrency) for batch in batches]
