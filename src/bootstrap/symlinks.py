"""Linking of local (intra-repository) dependencies."""

from __future__ import annotations

import logging
import os
import threading
from typing import Callable, List, Sequence, Tuple

from common.concurrency import run_bounded
from common.errors import LinkFailure
from common.fs_utils import create_symlink, remove_directory, resolve_symlink, symlink_binary
from common.progress import ProgressTracker
from graph.models import Package
from graph.package_graph import PackageGraph

from .models import Diagnostic

logger = logging.getLogger(__name__)


class SymlinkCoordinator:
    """Links every local dependency into its dependent's node_modules.

    Each edge owns its own destination path, so edges are processed in
    parallel. Failures are reported as diagnostics and never stop other
    edges.
    """

    def __init__(
        self,
        graph: PackageGraph,
        concurrency: int,
        make_symlink: Callable[[str, str], bool] = create_symlink,
        link_binary: Callable[[str, Package], List[str]] = symlink_binary,
    ):
        self._graph = graph
        self._concurrency = concurrency
        self._make_symlink = make_symlink
        self._link_binary = link_binary
        self._lock = threading.Lock()
        self._diagnostics: List[Diagnostic] = []

    def edges(self, filtered_packages: Sequence[Package]) -> List[Tuple[Package, Package]]:
        """(dependent, dependency) pairs for every local edge."""
        pairs = []
        for pkg in filtered_packages:
            node = self._graph.get(pkg.name)
            if node is None:
                continue
            for dep_name in node.local_dependencies:
                pairs.append((pkg, self._graph.get(dep_name).package))
        return pairs

    def link(self, filtered_packages: Sequence[Package]) -> List[Diagnostic]:
        edges = self.edges(filtered_packages)
        tracker = ProgressTracker("bootstrap dependencies", len(edges))
        with self._lock:
            self._diagnostics = []

        def link_edge(edge: Tuple[Package, Package]) -> None:
            self._link_edge(*edge)
            tracker.complete_work(1, edge[0].name)

        try:
            run_bounded(edges, link_edge, self._concurrency)
        finally:
            tracker.finish()

        with self._lock:
            return list(self._diagnostics)

    def _link_edge(self, dependent: Package, dependency: Package) -> None:
        destination = os.path.join(dependent.node_modules_location, *dependency.name.split("/"))
        try:
            self._clear_destination(dependent, dependency, destination)
            if self._make_symlink(dependency.location, destination):
                logger.debug("linked %s -> %s", destination, dependency.location)
            self._link_binary(dependency.location, dependent)
        except LinkFailure as exc:
            logger.warning("%s", exc)
            self._record(Diagnostic(exc.code, str(exc.args[0])))

    def _clear_destination(self, dependent: Package, dependency: Package, destination: str) -> None:
        if not os.path.lexists(destination):
            return
        target = resolve_symlink(destination)
        if target == os.path.normpath(dependency.location):
            return
        if target is False:
            message = (
                f"Symlinking {dependency.name} in {dependent.name} replaces an installed copy "
                f"at {destination}"
            )
            code = "EREPLACE_EXIST"
        else:
            message = (
                f"Symlinking {dependency.name} in {dependent.name} replaces a link to {target}"
            )
            code = "EREPLACE_OTHER"
        logger.warning("%s: %s", code, message)
        self._record(Diagnostic(code, message))
        try:
            remove_directory(destination)
        except OSError as exc:
            raise LinkFailure(dependency.location, destination, str(exc)) from exc

    def _record(self, diagnostic: Diagnostic) -> None:
        with self._lock:
            self._diagnostics.append(diagnostic)
