"""Bootstrap core package.

This package decides what external dependencies to install where, runs the
installs, links local packages and runs lifecycle scripts:
- aggregator.py: dependency aggregation, hoisting and satisfaction checks
- orchestrator.py: root/leaf installs, pruning and hoisted binary links
- symlinks.py: local dependency links
- lifecycle.py: batched lifecycle script execution
- command.py: validation and the install waterfall
"""

from .aggregator import DependencyAggregator, common_version
from .command import BootstrapCommand
from .hoisting import build_hoist_patterns, matches_hoist_pattern
from .lifecycle import LifecycleRunner
from .models import (
    BootstrapResult,
    Diagnostic,
    HoistConfig,
    InstallPlan,
    InvocationContext,
    LeafDependency,
    LifecycleStage,
    RootDependency,
)
from .orchestrator import InstallOrchestrator
from .symlinks import SymlinkCoordinator

__all__ = [
    "DependencyAggregator",
    "common_version",
    "BootstrapCommand",
    "build_hoist_patterns",
    "matches_hoist_pattern",
    "LifecycleRunner",
    "BootstrapResult",
    "Diagnostic",
    "HoistConfig",
    "InstallPlan",
    "InvocationContext",
    "LeafDependency",
    "LifecycleStage",
    "RootDependency",
    "InstallOrchestrator",
    "SymlinkCoordinator",
]
