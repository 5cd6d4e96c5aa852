"""Package graph: packages plus their local and external dependency edges."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Optional, Set

from versioning.models import SpecType
from versioning.parser import classify_spec, resolve_directory_spec
from versioning.satisfaction import satisfies

from .models import Package

logger = logging.getLogger(__name__)


class PackageGraphNode:
    """One package and its resolved edges."""

    def __init__(self, package: Package):
        self.package = package
        self.local_dependencies: Dict[str, str] = {}
        self.external_dependencies: Dict[str, str] = {}
        self.local_dependents: Set[str] = set()

    @property
    def name(self) -> str:
        return self.package.name

    def __repr__(self) -> str:
        return (
            f"PackageGraphNode({self.name}, local={list(self.local_dependencies)}, "
            f"external={list(self.external_dependencies)})"
        )


class PackageGraph:
    """Read-only graph built once from discovered packages.

    A dependency on another graph member is a local edge when the member's
    version satisfies the requested range, when a directory spec points
    at the member, or when ``force_local`` is set. Anything else is
    external and will be fetched by the installation client.
    """

    def __init__(
        self,
        packages: Iterable[Package],
        force_local: bool = False,
    ):
        self.force_local = force_local
        self._nodes: Dict[str, PackageGraphNode] = {}

        for package in packages:
            if package.name in self._nodes:
                raise ValueError(f"Package name '{package.name}' used more than once")
            self._nodes[package.name] = PackageGraphNode(package)

        for node in self._nodes.values():
            self._resolve_edges(node)

    def _resolve_edges(self, node: PackageGraphNode) -> None:
        for name, raw_spec in node.package.all_dependencies.items():
            target = self._nodes.get(name)
            if target is None or target is node:
                node.external_dependencies[name] = raw_spec
                continue

            if self._is_local_match(node.package, target.package, raw_spec):
                node.local_dependencies[name] = raw_spec
                target.local_dependents.add(node.name)
            else:
                logger.warning(
                    "EDEPVERSION: %s depends on %s@%s, which does not match the local %s@%s; "
                    "it will be installed from the registry",
                    node.name, name, raw_spec, name, target.package.version,
                )
                node.external_dependencies[name] = raw_spec

    def _is_local_match(self, dependent: Package, target: Package, raw_spec: str) -> bool:
        if self.force_local:
            return True
        if classify_spec(raw_spec) is SpecType.DIRECTORY:
            return resolve_directory_spec(raw_spec, dependent.location) == target.location
        return satisfies(target.version, raw_spec)

    def get(self, name: str) -> Optional[PackageGraphNode]:
        return self._nodes.get(name)

    def has(self, name: str) -> bool:
        return name in self._nodes

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def __iter__(self) -> Iterator[PackageGraphNode]:
        return iter(self._nodes.values())

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def packages(self) -> List[Package]:
        return [node.package for node in self._nodes.values()]
