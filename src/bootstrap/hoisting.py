"""Hoist pattern construction and matching."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Union

from common.globs import glob_match

from .models import HoistConfig

logger = logging.getLogger(__name__)

HOIST_ALL = "**"


def build_hoist_patterns(
    hoist: Union[bool, str, Sequence[str], None], nohoist: Union[str, Sequence[str], None] = None
) -> Optional[List[str]]:
    """Combine hoist/nohoist options into one ordered pattern list.

    ``True`` hoists everything; ``nohoist`` entries are appended negated.
    Returns None when hoisting is disabled.
    """
    if not hoist:
        return None
    if hoist is True:
        patterns = [HOIST_ALL]
    elif isinstance(hoist, str):
        patterns = [hoist]
    else:
        patterns = [str(p) for p in hoist]

    if nohoist:
        excludes = [nohoist] if isinstance(nohoist, str) else list(nohoist)
        patterns.extend(f"!{p}" for p in excludes)

    logger.debug("hoist: using globs %s", patterns)
    return patterns


def patterns_for(config: HoistConfig) -> Optional[List[str]]:
    return build_hoist_patterns(config.include, config.exclude)


def matches_hoist_pattern(name: str, patterns: Optional[Sequence[str]]) -> bool:
    """Return True if ``name`` is selected by ``patterns``.

    Patterns apply in order: a plain glob selects, ``!glob`` deselects.
    ``*`` does not cross the ``/`` of a scoped name; ``**`` does.
    """
    if not patterns:
        return False
    selected = False
    for pattern in patterns:
        if pattern.startswith("!"):
            if selected and _glob_match(name, pattern[1:]):
                selected = False
        elif _glob_match(name, pattern):
            selected = True
    return selected


def _glob_match(name: str, pattern: str) -> bool:
    return pattern == HOIST_ALL or glob_match(name, pattern)
