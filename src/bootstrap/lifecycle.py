"""Lifecycle script execution across batches and at the root."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional, Sequence, Union

from common.concurrency import run_parallel_batches
from common.progress import ProgressTracker
from graph.models import Package
from installer.scripts import run_script

from .models import InvocationContext, LifecycleStage

logger = logging.getLogger(__name__)

ScriptRunner = Callable[[Package, str, Optional[Dict[str, str]]], bool]


def _stage_name(stage: Union[LifecycleStage, str]) -> str:
    return stage.value if isinstance(stage, LifecycleStage) else LifecycleStage(stage).value


class LifecycleRunner:
    """Runs one lifecycle stage for the leaves (batched) and the root."""

    def __init__(
        self,
        root_package: Package,
        context: InvocationContext,
        concurrency: int,
        script_runner: ScriptRunner = run_script,
    ):
        self._root = root_package
        self._context = context
        self._concurrency = concurrency
        self._run_script = script_runner

    def run_root(self, stage: Union[LifecycleStage, str]) -> bool:
        """Run the root manifest's script for ``stage`` once.

        Skipped when this process was itself launched by a root lifecycle
        event, which would otherwise recurse.
        """
        name = _stage_name(stage)
        if self._context.launched_by_root_lifecycle:
            logger.info("lifecycle: Skipping root %r because it has already been called", name)
            return False
        env = self._context.script_env(self._root, self._root.location, name)
        return self._run_script(self._root, name, env)

    def run_in_packages(
        self, stage: Union[LifecycleStage, str], batches: Sequence[Sequence[Package]]
    ) -> ProgressTracker:
        """Run ``stage`` batch by batch; packages within a batch run in parallel."""
        name = _stage_name(stage)
        logger.debug("lifecycle: %s", name)
        tracker = ProgressTracker(name)
        tracker.add_work(sum(len(batch) for batch in batches))

        def run_one(pkg: Package) -> bool:
            env = self._context.script_env(pkg, self._root.location, name)
            ran = self._run_script(pkg, name, env)
            tracker.complete_work(1, pkg.name)
            return ran

        try:
            run_parallel_batches(batches, self._concurrency, run_one)
        finally:
            tracker.finish()
        return tracker

    def run(self, stage: Union[LifecycleStage, str], batches: Sequence[Sequence[Package]]) -> None:
        """Run ``stage`` everywhere: root first for preinstall, leaves first otherwise."""
        if _stage_name(stage) == LifecycleStage.PREINSTALL.value:
            self.run_root(stage)
            self.run_in_packages(stage, batches)
        else:
            self.run_in_packages(stage, batches)
            self.run_root(stage)
