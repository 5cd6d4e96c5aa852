"""Configuration loading and CLI overrides for bootstrap runs.

Precedence is CLI flags, then the config file, then ``Constants`` defaults.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import yaml

from common.errors import ConfigurationError
from constants import Constants, NpmClients

logger = logging.getLogger(__name__)

# config file key -> BootstrapOptions attribute
_CONFIG_KEYS = {
    "packages": "packages",
    "npmClient": "npm_client",
    "npmClientArgs": "npm_client_args",
    "hoist": "hoist",
    "nohoist": "nohoist",
    "concurrency": "concurrency",
    "rejectCycles": "reject_cycles",
    "sort": "sort",
    "ignoreScripts": "ignore_scripts",
    "ignorePrepublish": "ignore_prepublish",
    "useWorkspaces": "use_workspaces",
    "forceLocal": "force_local",
    "ci": "ci",
    "mutex": "mutex",
    "registry": "registry",
    "scope": "scope",
    "ignore": "ignore",
}


@dataclass
class BootstrapOptions:
    """Effective options for one bootstrap run."""

    packages: List[str] = field(default_factory=lambda: list(Constants.DEFAULT_PACKAGE_GLOBS))
    npm_client: str = NpmClients.NPM.value
    npm_client_args: List[str] = field(default_factory=list)
    hoist: Union[bool, List[str], None] = None
    nohoist: List[str] = field(default_factory=list)
    concurrency: int = Constants.DEFAULT_CONCURRENCY
    reject_cycles: bool = False
    sort: bool = True
    ignore_scripts: bool = False
    ignore_prepublish: bool = False
    use_workspaces: bool = False
    force_local: bool = False
    ci: bool = False
    mutex: Optional[str] = None
    registry: Optional[str] = None
    scope: List[str] = field(default_factory=list)
    ignore: List[str] = field(default_factory=list)
    double_dash_args: List[str] = field(default_factory=list)


def find_config_file(root_path: str) -> Optional[str]:
    """First existing default config file under ``root_path``."""
    for name in Constants.CONFIG_FILES:
        candidate = os.path.join(root_path, name)
        if os.path.isfile(candidate):
            return candidate
    return None


def load_config(config_path: Optional[str]) -> Dict[str, Any]:
    """Load configuration from a YAML or JSON file.

    A top-level ``bootstrap:`` section is used when present.

    Raises:
        ConfigurationError: the file is missing or malformed.
    """
    if not config_path:
        return {}
    if not os.path.isfile(config_path):
        raise ConfigurationError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to load config {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")

    section = data.get(Constants.CONFIG_SECTION)
    return section if isinstance(section, dict) else data


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def options_from_config(config: Dict[str, Any]) -> BootstrapOptions:
    options = BootstrapOptions()
    for key, value in config.items():
        attr = _CONFIG_KEYS.get(key)
        if attr is None:
            logger.debug("Ignoring unknown config key: %s", key)
            continue
        setattr(options, attr, value)

    if options.hoist is not None and not isinstance(options.hoist, bool):
        options.hoist = _as_list(options.hoist)
    for attr in ("packages", "npm_client_args", "nohoist", "scope", "ignore"):
        setattr(options, attr, _as_list(getattr(options, attr)))
    return options


def resolve_options(args: Any, config: Optional[Dict[str, Any]] = None) -> BootstrapOptions:
    """Merge parsed CLI arguments over file configuration.

    Raises:
        ConfigurationError: an option value is invalid.
    """
    options = options_from_config(config or {})

    hoist = getattr(args, "HOIST", None)
    if hoist:
        options.hoist = True if hoist == ["**"] else list(hoist)
    if getattr(args, "NOHOIST", None):
        options.nohoist = list(args.NOHOIST)

    scalar_overrides = {
        "NPM_CLIENT": "npm_client",
        "CONCURRENCY": "concurrency",
        "MUTEX": "mutex",
        "REGISTRY": "registry",
    }
    for dest, attr in scalar_overrides.items():
        value = getattr(args, dest, None)
        if value is not None:
            setattr(options, attr, value)

    for dest, attr in {"SCOPE": "scope", "IGNORE": "ignore", "PACKAGES": "packages"}.items():
        value = getattr(args, dest, None)
        if value:
            setattr(options, attr, list(value))

    flags = {
        "REJECT_CYCLES": "reject_cycles",
        "IGNORE_SCRIPTS": "ignore_scripts",
        "IGNORE_PREPUBLISH": "ignore_prepublish",
        "USE_WORKSPACES": "use_workspaces",
        "FORCE_LOCAL": "force_local",
        "CI": "ci",
    }
    for dest, attr in flags.items():
        if getattr(args, dest, False):
            setattr(options, attr, True)
    if getattr(args, "NO_SORT", False):
        options.sort = False

    options.double_dash_args = list(getattr(args, "DOUBLE_DASH_ARGS", None) or [])

    if options.npm_client not in Constants.SUPPORTED_CLIENTS:
        raise ConfigurationError(
            f"Unsupported npm client '{options.npm_client}'; "
            f"expected one of {', '.join(Constants.SUPPORTED_CLIENTS)}"
        )
    try:
        options.concurrency = int(options.concurrency)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid concurrency: {options.concurrency}") from e
    if options.concurrency < 1:
        raise ConfigurationError(f"Concurrency must be at least 1, got {options.concurrency}")
    return options
