"""Topological batching of packages by their local dependencies."""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence, Set

from common.errors import CycleError

from .models import Package
from .package_graph import PackageGraph

logger = logging.getLogger(__name__)


def batch_packages(
    packages: Sequence[Package], graph: PackageGraph, reject_cycles: bool = False
) -> List[List[Package]]:
    """Partition ``packages`` into topological levels.

    For every local edge A -> B within ``packages``, B lands in an earlier
    batch than A. Edges leaving the subset are ignored.

    Args:
        packages: Filtered package subset.
        graph: Graph providing local edges.
        reject_cycles: Raise CycleError instead of collapsing a cycle. A
            collapsed cycle becomes one batch; packages depending on it
            still come later.

    Returns:
        Ordered list of batches; members keep the order of ``packages``.

    Raises:
        CycleError: a cycle exists and ``reject_cycles`` is set.
    """
    by_name: Dict[str, Package] = {pkg.name: pkg for pkg in packages}
    pending: Dict[str, Set[str]] = {}
    for pkg in packages:
        node = graph.get(pkg.name)
        local = node.local_dependencies if node is not None else {}
        pending[pkg.name] = {dep for dep in local if dep in by_name and dep != pkg.name}

    batches: List[List[Package]] = []
    while pending:
        ready = [name for name, deps in pending.items() if not deps]
        if not ready:
            reach = {name: _reachable(name, pending) for name in pending}
            cyclic = [name for name in pending if name in reach[name]]
            if reject_cycles:
                raise CycleError(cyclic)
            # cycles that depend on nothing outside themselves go first
            ready = [
                name for name in cyclic
                if all(name in reach[other] for other in reach[name])
            ]
            logger.warning(
                "ECYCLE: Dependency cycle detected among %s; running them as one batch",
                ", ".join(ready),
            )

        batches.append([by_name[name] for name in ready])
        for name in ready:
            del pending[name]
        for deps in pending.values():
            deps.difference_update(ready)

    return batches


def _reachable(start: str, pending: Dict[str, Set[str]]) -> Set[str]:
    """Names reachable from ``start`` through unresolved local dependencies."""
    seen: Set[str] = set()
    stack = list(pending[start])
    while stack:
        name = stack.pop()
        if name in seen:
            continue
        seen.add(name)
        stack.extend(pending[name])
    return seen
