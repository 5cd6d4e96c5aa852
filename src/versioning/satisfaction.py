"""On-disk satisfaction checks using npm semantic versioning."""

from __future__ import annotations

import logging
import os
from typing import Optional

import semantic_version

from common.fs_utils import read_installed_manifest
from constants import Constants

logger = logging.getLogger(__name__)


def satisfies(version: Optional[str], version_range: str) -> bool:
    """Return True if ``version`` matches the npm ``version_range``.

    Anything that is not a valid semver version or npm range (tags, git
    urls, tarballs) never satisfies.
    """
    if not version:
        return False
    try:
        spec = semantic_version.NpmSpec(version_range.strip() or "*")
        return spec.match(semantic_version.Version(version.strip().lstrip("v=")))
    except ValueError:
        return False


def installed_location(base_location: str, name: str) -> str:
    """Directory where ``name`` would be installed under ``base_location``."""
    return os.path.join(base_location, Constants.NODE_MODULES_DIR, *name.split("/"))


def is_dependency_satisfied(package, name: str, version_range: str) -> bool:
    """Check whether ``package`` already has a compatible copy of ``name``.

    Args:
        package: Package whose node_modules is inspected.
        name: External dependency name.
        version_range: Requested npm range.

    Returns:
        True when an installed manifest exists and its version matches.
    """
    manifest = read_installed_manifest(installed_location(package.location, name))
    installed = manifest.get("version")
    result = satisfies(installed, version_range)
    logger.debug(
        "check %s in %s: installed=%s wanted=%s satisfied=%s",
        name, package.name, installed, version_range, result,
    )
    return result
