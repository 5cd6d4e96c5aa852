"""Dependency aggregation and placement planning.

The aggregation map has the shape::

    {
        "<external name>": {
            "<version range>": ["<dependent 1>", "<dependent 2>", ...],
        },
    }

for example::

    {
        "react": {
            "15.x": ["my-component1", "my-component2", "my-component3"],
            "^0.14.0": ["my-component4"],
        },
    }

External names appear in root-manifest order first, then discovery order.
Version ranges and dependents keep first-seen order, which is what the
common-version tie-break relies on.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from common.logging_utils import Timer, extra_context, is_debug_enabled
from graph.models import Package
from graph.package_graph import PackageGraph
from versioning.satisfaction import is_dependency_satisfied

from .hoisting import matches_hoist_pattern, patterns_for
from .models import (
    DependencyRequests,
    Diagnostic,
    HoistConfig,
    HoistDecision,
    InstallPlan,
    LeafDependency,
    RootDependency,
)

logger = logging.getLogger(__name__)

SatisfactionCheck = Callable[[Package, str, str], bool]
HoistPredicate = Callable[[str, Sequence[str]], bool]


def common_version(versions: Dict[str, List[str]]) -> Optional[str]:
    """Version requested by the most dependents; ties go to the first seen.

    Returns None when no version has any dependent (root-only request).
    """
    chosen, best = None, 0
    for version, dependents in versions.items():
        if len(dependents) > best:
            chosen, best = version, len(dependents)
    return chosen


class DependencyAggregator:
    """Builds an InstallPlan from the filtered packages and the root manifest."""

    def __init__(
        self,
        graph: PackageGraph,
        is_satisfied: SatisfactionCheck = is_dependency_satisfied,
        matches_hoist: HoistPredicate = matches_hoist_pattern,
    ):
        self._graph = graph
        self._is_satisfied = is_satisfied
        self._matches_hoist = matches_hoist

    def collect(self, filtered_packages: Sequence[Package], root_package: Package) -> DependencyRequests:
        """Aggregate external requirements: name -> range -> dependents."""
        requests: DependencyRequests = {}

        for name, version in root_package.all_dependencies.items():
            requests[name] = {version: []}

        for pkg in filtered_packages:
            node = self._graph.get(pkg.name)
            if node is None:
                continue
            for name, version in node.external_dependencies.items():
                dependents = requests.setdefault(name, {}).setdefault(version, [])
                if pkg.name not in dependents:
                    dependents.append(pkg.name)

        return requests

    def plan(
        self,
        filtered_packages: Sequence[Package],
        root_package: Package,
        hoist_config: Optional[HoistConfig] = None,
    ) -> InstallPlan:
        """Decide root vs. leaf placement and check on-disk satisfaction.

        Checks run one at a time, root placements first, after every
        placement has been decided.
        """
        with Timer() as t:
            patterns = patterns_for(hoist_config) if hoist_config else None
            root_versions = root_package.all_dependencies
            requests = self.collect(filtered_packages, root_package)
            plan = InstallPlan()

            root_checks: List[Tuple[RootDependency, Package]] = []
            leaf_checks: List[Tuple[LeafDependency, Package]] = []

            for name, versions in requests.items():
                root_version = None

                if patterns and self._matches_hoist(name, patterns):
                    root_version = self._choose_root_version(name, versions, root_versions, plan)
                    dependents = versions.pop(root_version, [])
                    plan.decisions[name] = HoistDecision(
                        name=name, placement="root", version=root_version, dependents=list(dependents),
                    )
                    entry = RootDependency(
                        name=name,
                        version_range=root_version,
                        dependents=[self._graph.get(leaf).package for leaf in dependents],
                    )
                    plan.root_set.append(entry)
                    root_checks.append((entry, root_package))
                else:
                    plan.decisions[name] = HoistDecision(name=name, placement="none")

                for leaf_version, leaf_dependents in versions.items():
                    for leaf_name in leaf_dependents:
                        if root_version is not None:
                            self._warn(
                                plan,
                                "EHOIST_PKG_VERSION",
                                f'"{leaf_name}" package depends on {name}@{leaf_version}, '
                                f"which differs from the hoisted {name}@{root_version}.",
                            )
                        leaf_pkg = self._graph.get(leaf_name).package
                        entry = LeafDependency(name=name, version_range=leaf_version)
                        plan.leaves.setdefault(leaf_pkg, []).append(entry)
                        leaf_checks.append((entry, leaf_pkg))

            for entry, target in root_checks + leaf_checks:
                entry.is_satisfied = self._is_satisfied(target, entry.name, entry.version_range)

        if is_debug_enabled(logger):
            logger.debug(
                "Planned %d root and %d leaf dependencies",
                len(plan.root_set),
                sum(len(deps) for deps in plan.leaves.values()),
                extra=extra_context(
                    event="function_exit", component="aggregator", action="plan",
                    count=len(root_checks) + len(leaf_checks), duration_ms=t.duration_ms(),
                ),
            )
        return plan

    def _choose_root_version(
        self, name: str, versions: Dict[str, List[str]], root_versions: Dict[str, str], plan: InstallPlan
    ) -> str:
        common = common_version(versions)
        root_version = root_versions[name] if name in root_versions else common
        if common is not None and root_version != common:
            self._warn(
                plan,
                "EHOIST_ROOT_VERSION",
                f"The repository root depends on {name}@{root_version}, "
                f"which differs from the more common {name}@{common}.",
            )
        return root_version

    @staticmethod
    def _warn(plan: InstallPlan, code: str, message: str) -> None:
        logger.warning("%s: %s", code, message)
        plan.warnings.append(Diagnostic(code, message))
