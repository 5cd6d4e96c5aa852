"""Execution of an InstallPlan through the installation client."""

from __future__ import annotations

import logging
import os
import threading
from typing import Callable, Dict, List, Optional

from common.concurrency import run_bounded
from common.errors import LinkFailure
from common.fs_utils import read_installed_manifest, remove_directory, symlink_binary
from common.progress import ProgressTracker
from graph.models import Package
from installer.npm_install import install_dependencies
from run_wrappers import ClientConfig
from versioning.satisfaction import installed_location

from .models import Diagnostic, InstallPlan, LeafDependency, RootDependency

logger = logging.getLogger(__name__)

Installer = Callable[[Package, List[str], ClientConfig], None]


class InstallOrchestrator:
    """Runs root and leaf installs with bounded parallelism.

    The root install is submitted first since it is usually the longest; its
    completion gates binary linking and pruning of stale copies, but leaf
    installs run alongside it. Installs and prune removals share one
    semaphore, so at most ``concurrency`` of them are in flight together.
    """

    def __init__(
        self,
        root_package: Package,
        client_config: ClientConfig,
        concurrency: int,
        hoisting: bool = False,
        installer: Installer = install_dependencies,
        read_manifest: Callable[[str], Dict] = read_installed_manifest,
        remove_dir: Callable[[str], bool] = remove_directory,
        link_binary: Callable[[str, Package], List[str]] = symlink_binary,
    ):
        self._root = root_package
        self._client_config = client_config
        self._leaf_config = client_config.with_options(global_style=hoisting)
        self._concurrency = concurrency
        self._installer = installer
        self._read_manifest = read_manifest
        self._remove_dir = remove_dir
        self._link_binary = link_binary
        self._lock = threading.Lock()
        self._slots = threading.BoundedSemaphore(max(1, concurrency))
        self._diagnostics: List[Diagnostic] = []

    def hoisted_directory(self, name: str) -> str:
        return installed_location(self._root.location, name)

    def apply(self, plan: InstallPlan, tracker: Optional[ProgressTracker] = None) -> List[Diagnostic]:
        """Install everything the plan marks as needed.

        Returns:
            Non-fatal diagnostics (link and prune failures).

        Raises:
            InstallFailure: the first failing install; pending actions are
                cancelled, completed ones are kept.
        """
        tracker = tracker or ProgressTracker("install dependencies")
        actions: List[Callable[[], None]] = []

        if plan.root_set:
            actions.append(lambda: self._bootstrap_root(plan.root_set, tracker))

        for leaf, deps in plan.leaves.items():
            if any(not dep.is_satisfied for dep in deps):
                actions.append(self._leaf_action(leaf, deps, tracker))
            else:
                logger.debug("%s: all leaf dependencies satisfied", leaf.name)

        if actions:
            logger.info("Installing external dependencies")
            logger.debug("%d actions, concurrency %d", len(actions), self._concurrency)
            tracker.add_work(len(actions))

        try:
            run_bounded(actions, lambda action: action(), self._concurrency)
        finally:
            tracker.finish()

        with self._lock:
            return list(self._diagnostics)

    def _bootstrap_root(self, root_set: List[RootDependency], tracker: ProgressTracker) -> None:
        # Anything missing means everything is installed together, so the
        # client resolves the whole root set consistently.
        with self._slots:
            if any(not dep.is_satisfied for dep in root_set):
                logger.info("Installing hoisted dependencies into root")
                self._installer(self._root, [dep.dependency for dep in root_set], self._client_config)

            for dep in root_set:
                self._link_hoisted_binaries(dep)

        # the slot is released first; each removal takes its own
        self._prune(root_set)
        logger.info("Finished bootstrapping root")
        tracker.complete_work(1, self._root.name)

    def _link_hoisted_binaries(self, dep: RootDependency) -> None:
        if not dep.dependents:
            return
        source = self.hoisted_directory(dep.name)
        if not self._read_manifest(source).get("bin"):
            return
        for pkg in dep.dependents:
            try:
                self._link_binary(source, pkg)
            except LinkFailure as exc:
                logger.warning("%s", exc)
                self._record(Diagnostic(exc.code, str(exc.args[0])))

    def _prune(self, root_set: List[RootDependency]) -> None:
        root_modules = self._root.node_modules_location
        candidates = [
            os.path.join(pkg.node_modules_location, *dep.name.split("/"))
            for dep in root_set
            for pkg in dep.dependents
            if pkg.node_modules_location != root_modules
        ]
        if not candidates:
            logger.debug("hoist: nothing to prune")
            return

        logger.info("Pruning hoisted dependencies")
        run_bounded(candidates, self._prune_one, self._concurrency)
        logger.info("Finished pruning hoisted dependencies")

    def _prune_one(self, path: str) -> None:
        try:
            with self._slots:
                removed = self._remove_dir(path)
            if removed:
                logger.debug("prune: %s", path)
        except OSError as exc:
            logger.warning("EPRUNE: Unable to remove %s: %s", path, exc)
            self._record(Diagnostic("EPRUNE", f"Unable to remove {path}: {exc}"))

    def _leaf_action(self, leaf: Package, deps: List[LeafDependency], tracker: ProgressTracker):
        def install_leaf() -> None:
            with self._slots:
                self._installer(leaf, [dep.dependency for dep in deps], self._leaf_config)
            logger.debug("installed leaf %s", leaf.name)
            tracker.complete_work(1, leaf.name)

        return install_leaf

    def _record(self, diagnostic: Diagnostic) -> None:
        with self._lock:
            self._diagnostics.append(diagnostic)
