"""The bootstrap command: validation, planning and the install waterfall."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence

from cli_config import BootstrapOptions
from common.errors import ConfigurationError
from common.fs_utils import read_installed_manifest, remove_directory, symlink_binary
from common.logging_utils import Timer, extra_context, is_debug_enabled
from common.progress import ProgressTracker
from constants import NpmClients
from graph.batcher import batch_packages
from graph.models import Package
from graph.package_graph import PackageGraph
from installer.npm_install import install_dependencies, npm_install
from installer.scripts import run_script
from run_wrappers import ClientConfig, build_client_config, default_mutex
from versioning.parser import resolve_directory_spec
from versioning.satisfaction import is_dependency_satisfied
from workspace.scan import Project

from .aggregator import DependencyAggregator
from .lifecycle import LifecycleRunner
from .models import BootstrapResult, Diagnostic, HoistConfig, InstallPlan, InvocationContext, LifecycleStage
from .orchestrator import InstallOrchestrator
from .symlinks import SymlinkCoordinator

logger = logging.getLogger(__name__)

YARN_HOIST_MESSAGE = (
    "--hoist is not supported with --npm-client=yarn, use yarn workspaces instead"
)
YARN_WORKSPACES_MESSAGE = (
    "Yarn workspaces are configured in package.json, but not enabled in the monoboot config! "
    "Please choose one: useWorkspaces = true, or remove package.json workspaces config"
)


class BootstrapCommand:
    """Installs and links dependencies for the filtered packages.

    Collaborators default to the real client and filesystem helpers and can
    be replaced (tests pass fakes).
    """

    def __init__(
        self,
        project: Project,
        graph: PackageGraph,
        filtered_packages: Sequence[Package],
        options: BootstrapOptions,
        context: Optional[InvocationContext] = None,
        *,
        installer: Callable = install_dependencies,
        root_installer: Callable = npm_install,
        script_runner: Callable = run_script,
        is_satisfied: Callable = is_dependency_satisfied,
        read_manifest: Callable = read_installed_manifest,
        remove_dir: Callable = remove_directory,
        link_binary: Callable = symlink_binary,
        make_symlink: Optional[Callable] = None,
        mutex_factory: Callable[[], str] = default_mutex,
    ):
        self.project = project
        self.graph = graph
        self.filtered_packages: List[Package] = list(filtered_packages)
        self.options = options
        self.context = context or InvocationContext()
        self._installer = installer
        self._root_installer = root_installer
        self._script_runner = script_runner
        self._is_satisfied = is_satisfied
        self._read_manifest = read_manifest
        self._remove_dir = remove_dir
        self._link_binary = link_binary
        self._make_symlink = make_symlink
        self._mutex_factory = mutex_factory

        self.client_config: Optional[ClientConfig] = None
        self.batched_packages: List[List[Package]] = []
        self.lifecycle: Optional[LifecycleRunner] = None
        self.warnings: List[Diagnostic] = []

    @property
    def root_package(self) -> Package:
        return self.project.manifest

    @property
    def scripts_enabled(self) -> bool:
        return not self.options.ignore_scripts

    # ---------- initialize ----------

    def validate(self) -> None:
        """Reject incompatible options before anything touches the disk.

        Raises:
            ConfigurationError: incompatible client/hoist/workspaces options.
        """
        options = self.options
        if options.npm_client == NpmClients.YARN.value and options.hoist:
            raise ConfigurationError(YARN_HOIST_MESSAGE, code="EWORKSPACES")

        if (
            options.npm_client == NpmClients.YARN.value
            and self.root_package.manifest.get("workspaces")
            and options.use_workspaces is not True
        ):
            raise ConfigurationError(YARN_WORKSPACES_MESSAGE, code="EWORKSPACES")

    def initialize(self) -> bool:
        """Validate, configure the client and batch packages.

        Returns:
            False when this is a recursive invocation and nothing should run.
        """
        self.validate()

        if self.context.nested:
            logger.warning("bootstrap: Skipping recursive execution")
            return False

        options = self.options
        client_args = list(options.npm_client_args) + list(options.double_dash_args)
        if options.ignore_scripts:
            client_args.insert(0, "--ignore-scripts")

        sub_command = "install"
        if options.npm_client == NpmClients.NPM.value and options.ci:
            sub_command = "ci"

        mutex = options.mutex
        if options.npm_client == NpmClients.YARN.value and not mutex:
            mutex = self._mutex_factory()

        self.client_config = build_client_config(
            options.npm_client,
            client_args=client_args,
            sub_command=sub_command,
            registry=options.registry,
            mutex=mutex,
        )
        logger.debug("npmConfig: %s", self.client_config)

        if options.sort:
            self.batched_packages = batch_packages(
                self.filtered_packages, self.graph, options.reject_cycles
            )
        else:
            self.batched_packages = [list(self.filtered_packages)]

        self.lifecycle = LifecycleRunner(
            self.root_package, self.context, options.concurrency, self._script_runner
        )
        return True

    # ---------- execute ----------

    def root_has_local_file_dependencies(self) -> bool:
        """True if the root depends on a graph package through a directory spec."""
        for name, raw_spec in self.root_package.dependencies.items():
            if not self.graph.has(name):
                continue
            if resolve_directory_spec(raw_spec, self.project.root_path) is not None:
                return True
        return False

    def install_root_package_only(self) -> BootstrapResult:
        logger.info("bootstrap: root only")
        config = self.client_config.with_options(inherit_stdio=True)
        self._root_installer(self.root_package, config)
        return BootstrapResult(packages=len(self.filtered_packages), root_only=True)

    def hoist_config(self) -> HoistConfig:
        return HoistConfig(include=self.options.hoist, exclude=list(self.options.nohoist))

    def get_dependencies_to_install(self) -> InstallPlan:
        aggregator = DependencyAggregator(self.graph, is_satisfied=self._is_satisfied)
        plan = aggregator.plan(self.filtered_packages, self.root_package, self.hoist_config())
        self.warnings.extend(plan.warnings)
        return plan

    def install_external_dependencies(self, plan: InstallPlan) -> None:
        if plan.is_empty:
            logger.info("No external dependencies to install")
            return
        orchestrator = InstallOrchestrator(
            self.root_package,
            self.client_config,
            self.options.concurrency,
            hoisting=bool(self.options.hoist),
            installer=self._installer,
            read_manifest=self._read_manifest,
            remove_dir=self._remove_dir,
            link_binary=self._link_binary,
        )
        self.warnings.extend(orchestrator.apply(plan, ProgressTracker("install dependencies")))

    def symlink_packages(self) -> None:
        kwargs = {"link_binary": self._link_binary}
        if self._make_symlink is not None:
            kwargs["make_symlink"] = self._make_symlink
        coordinator = SymlinkCoordinator(self.graph, self.options.concurrency, **kwargs)
        self.warnings.extend(coordinator.link(self.filtered_packages))

    def tasks(self) -> List[Callable[[], None]]:
        """The waterfall, in order."""
        lifecycle = self.lifecycle
        batches = self.batched_packages
        tasks: List[Callable[[], None]] = []

        if self.scripts_enabled:
            # preinstall runs in the root before all leaves
            tasks.append(lambda: lifecycle.run(LifecycleStage.PREINSTALL, batches))

        plan_holder: List[InstallPlan] = []
        tasks.extend([
            lambda: plan_holder.append(self.get_dependencies_to_install()),
            lambda: self.install_external_dependencies(plan_holder[-1]),
            self.symlink_packages,
        ])

        if self.scripts_enabled:
            # install and postinstall run in all leaves before the root
            tasks.extend([
                lambda: lifecycle.run_in_packages(LifecycleStage.INSTALL, batches),
                lambda: lifecycle.run_in_packages(LifecycleStage.POSTINSTALL, batches),
                lambda: lifecycle.run_root(LifecycleStage.INSTALL),
                lambda: lifecycle.run_root(LifecycleStage.POSTINSTALL),
            ])
            if not self.options.ignore_prepublish:
                tasks.append(lambda: lifecycle.run(LifecycleStage.PREPUBLISH, batches))
            # prepare runs after prepublish, as on a plain local install
            tasks.append(lambda: lifecycle.run(LifecycleStage.PREPARE, batches))
        return tasks

    def execute(self) -> BootstrapResult:
        if self.options.use_workspaces or self.root_has_local_file_dependencies():
            return self.install_root_package_only()

        count = len(self.filtered_packages)
        label = f"{count} package{'s' if count != 1 else ''}"
        logger.info("Bootstrapping %s", label)

        with Timer() as t:
            for task in self.tasks():
                task()

        logger.info("Bootstrapped %s", label)
        if is_debug_enabled(logger):
            logger.debug(
                "Bootstrap finished",
                extra=extra_context(
                    event="function_exit", component="bootstrap", action="execute",
                    count=count, duration_ms=t.duration_ms(),
                ),
            )
        return BootstrapResult(packages=count, warnings=list(self.warnings))

    def run(self) -> BootstrapResult:
        """Initialize and execute; fatal errors propagate to the caller."""
        if not self.initialize():
            return BootstrapResult(skipped=True)
        return self.execute()
