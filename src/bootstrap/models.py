"""Data models shared by the bootstrap planner and executors."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Union

from constants import Constants
from graph.models import Package


class LifecycleStage(Enum):
    """Lifecycle points at which package scripts may run."""
    PREINSTALL = "preinstall"
    INSTALL = "install"
    POSTINSTALL = "postinstall"
    PREPUBLISH = "prepublish"
    PREPARE = "prepare"


ROOT_LIFECYCLE_EVENTS = frozenset(stage.value for stage in LifecycleStage)

# external name -> version range -> requesting package names (insertion ordered)
DependencyRequests = Dict[str, Dict[str, List[str]]]


@dataclass(frozen=True)
class InvocationContext:
    """How this process was launched.

    Derived once at the entry point and threaded through the call tree.

    Attributes:
        nested: a root lifecycle script of ours re-invoked this process.
        lifecycle_event: package-manager lifecycle event that launched us.
    """
    nested: bool = False
    lifecycle_event: Optional[str] = None

    @classmethod
    def from_environ(cls, environ: Mapping[str, str]) -> "InvocationContext":
        exec_path = environ.get(Constants.ENV_EXEC_PATH, "leaf")
        root_path = environ.get(Constants.ENV_ROOT_PATH, "root")
        return cls(
            nested=exec_path == root_path,
            lifecycle_event=environ.get(Constants.ENV_LIFECYCLE_EVENT) or None,
        )

    @property
    def launched_by_root_lifecycle(self) -> bool:
        return self.lifecycle_event in ROOT_LIFECYCLE_EVENTS

    def script_env(self, package: Package, root_path: str, stage: str) -> Dict[str, str]:
        """Markers exported to a lifecycle script run for ``package``."""
        return {
            Constants.ENV_EXEC_PATH: os.path.normpath(package.location),
            Constants.ENV_ROOT_PATH: os.path.normpath(root_path),
            Constants.ENV_LIFECYCLE_EVENT: stage,
        }


@dataclass
class HoistConfig:
    """Which external dependencies are installed once at the root.

    ``include`` is True ("hoist everything"), a list of globs, or None.
    """
    include: Union[bool, Sequence[str], None] = None
    exclude: Sequence[str] = field(default_factory=list)

    @property
    def enabled(self) -> bool:
        return bool(self.include)


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal finding reported after the run."""
    code: str
    message: str

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


@dataclass
class HoistDecision:
    """Placement chosen for one external name."""
    name: str
    placement: str  # "root" | "none"
    version: Optional[str] = None
    dependents: List[str] = field(default_factory=list)


@dataclass
class RootDependency:
    name: str
    version_range: str
    dependents: List[Package]
    is_satisfied: bool = False

    @property
    def dependency(self) -> str:
        return f"{self.name}@{self.version_range}"


@dataclass
class LeafDependency:
    name: str
    version_range: str
    is_satisfied: bool = False

    @property
    def dependency(self) -> str:
        return f"{self.name}@{self.version_range}"


@dataclass
class InstallPlan:
    """Where each external dependency goes and whether it is already there."""
    root_set: List[RootDependency] = field(default_factory=list)
    leaves: Dict[Package, List[LeafDependency]] = field(default_factory=dict)
    decisions: Dict[str, HoistDecision] = field(default_factory=dict)
    warnings: List[Diagnostic] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.root_set and not self.leaves


@dataclass
class BootstrapResult:
    packages: int = 0
    warnings: List[Diagnostic] = field(default_factory=list)
    skipped: bool = False
    root_only: bool = False

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)
