"""Workspace discovery: root manifest, package manifests and filtering."""

from __future__ import annotations

import glob
import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from common.globs import glob_match
from constants import Constants
from graph.models import Package

logger = logging.getLogger(__name__)


def load_manifest(path: str) -> Dict[str, Any]:
    """Load a package.json file.

    Raises:
        FileNotFoundError: the manifest does not exist.
        ValueError: the manifest is not a JSON object.
    """
    with open(path, "r", encoding="utf-8") as file:
        data = json.load(file)
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a JSON object")
    return data


def workspace_globs(manifest: Dict[str, Any]) -> List[str]:
    """Package globs from a root manifest ``workspaces`` field (array or object form)."""
    workspaces = manifest.get("workspaces")
    if isinstance(workspaces, dict):
        workspaces = workspaces.get("packages")
    if isinstance(workspaces, list):
        return [str(pattern) for pattern in workspaces]
    return []


def discover_packages(root_path: str, package_globs: Sequence[str]) -> List[Package]:
    """Find every package.json matched by ``package_globs`` under ``root_path``.

    Results are sorted by location within each glob, globs in order,
    duplicates dropped.
    """
    seen = set()
    packages: List[Package] = []
    for pattern in package_globs:
        manifest_glob = os.path.join(root_path, pattern, Constants.PACKAGE_JSON_FILE)
        for manifest_path in sorted(glob.glob(manifest_glob, recursive=True)):
            location = os.path.dirname(os.path.abspath(manifest_path))
            if location in seen or Constants.NODE_MODULES_DIR in location.split(os.sep):
                continue
            seen.add(location)
            try:
                manifest = load_manifest(manifest_path)
            except (OSError, ValueError) as exc:
                logger.warning("Skipping unreadable manifest %s: %s", manifest_path, exc)
                continue
            packages.append(Package.from_manifest(manifest, location))
    logger.debug("Discovered %d package(s) under %s", len(packages), root_path)
    return packages


def filter_packages(
    packages: Sequence[Package], scope: Sequence[str] = (), ignore: Sequence[str] = ()
) -> List[Package]:
    """Keep packages matching any ``scope`` glob and no ``ignore`` glob."""
    result = []
    for pkg in packages:
        if scope and not any(glob_match(pkg.name, pattern) for pattern in scope):
            continue
        if any(glob_match(pkg.name, pattern) for pattern in ignore):
            continue
        result.append(pkg)
    return result


@dataclass
class Project:
    """The repository root and its discovered packages."""

    root_path: str
    manifest: Package
    packages: List[Package] = field(default_factory=list)

    @classmethod
    def load(
        cls,
        root_path: str,
        package_globs: Optional[Sequence[str]] = None,
        use_workspaces: bool = False,
    ) -> "Project":
        """Read the root manifest and discover packages.

        With ``use_workspaces`` the root manifest's ``workspaces`` globs are
        used instead of ``package_globs``.
        """
        root_path = os.path.abspath(root_path)
        raw = load_manifest(os.path.join(root_path, Constants.PACKAGE_JSON_FILE))
        manifest = Package.from_manifest(raw, root_path)

        globs = workspace_globs(raw) if use_workspaces else []
        if not globs:
            globs = list(package_globs or Constants.DEFAULT_PACKAGE_GLOBS)
        return cls(root_path=root_path, manifest=manifest, packages=discover_packages(root_path, globs))
