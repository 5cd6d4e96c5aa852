"""Filesystem primitives: manifest reads, directory removal and symlinks.

All link helpers are idempotent: a link that already points at the right
target is left untouched.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import stat
from typing import Any, Dict, List

from common.errors import LinkFailure
from constants import Constants

logger = logging.getLogger(__name__)


def read_installed_manifest(location: str) -> Dict[str, Any]:
    """Read ``<location>/package.json``.

    Fails closed: a missing or unreadable manifest yields ``{}``.
    """
    path = os.path.join(location, Constants.PACKAGE_JSON_FILE)
    try:
        with open(path, "r", encoding="utf-8") as file:
            data = json.load(file)
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def normalize_bin(name: str, bin_field: Any) -> Dict[str, str]:
    """Normalize a manifest ``bin`` field to ``{command: relative path}``."""
    if isinstance(bin_field, str):
        command = name.split("/")[-1]
        return {command: bin_field} if command else {}
    if isinstance(bin_field, dict):
        return {str(k): str(v) for k, v in bin_field.items() if isinstance(v, str)}
    return {}


def remove_directory(path: str) -> bool:
    """Recursively delete ``path``. Returns False when nothing was there."""
    if os.path.islink(path):
        os.unlink(path)
        return True
    if not os.path.exists(path):
        return False
    shutil.rmtree(path)
    return True


def resolve_symlink(path: str):
    """Return the absolute target of a symlink, or False if ``path`` is not one."""
    if not os.path.islink(path):
        return False
    target = os.readlink(path)
    return os.path.normpath(os.path.join(os.path.dirname(path), target))


def create_symlink(source: str, destination: str) -> bool:
    """Create ``destination`` as a relative symlink to ``source``.

    Returns:
        True if a link was created, False if the correct link already existed.

    Raises:
        LinkFailure: the link could not be created.
    """
    source = os.path.normpath(os.path.abspath(source))
    if resolve_symlink(destination) == source:
        return False

    try:
        os.makedirs(os.path.dirname(destination), exist_ok=True)
        if os.path.lexists(destination):
            remove_directory(destination)
        relative = os.path.relpath(source, os.path.dirname(destination))
        os.symlink(relative, destination, target_is_directory=os.path.isdir(source))
    except OSError as exc:
        raise LinkFailure(source, destination, str(exc)) from exc
    return True


def _make_executable(path: str) -> None:
    mode = os.stat(path).st_mode
    wanted = mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH
    if mode != wanted:
        os.chmod(path, wanted)


def symlink_binary(source_location: str, destination) -> List[str]:
    """Link every executable declared by the package at ``source_location``.

    Args:
        source_location: Directory of the package declaring ``bin``.
        destination: Package whose ``node_modules/.bin`` receives the links.

    Returns:
        Paths of the links that were created (existing correct links are skipped).

    Raises:
        LinkFailure: a link could not be created.
    """
    manifest = read_installed_manifest(source_location)
    bins = normalize_bin(manifest.get("name", ""), manifest.get("bin"))
    created: List[str] = []

    for command, relative in bins.items():
        source = os.path.join(source_location, relative)
        if not os.path.isfile(source):
            logger.debug("Skipping missing executable %s", source)
            continue
        link = os.path.join(destination.bin_location, command)
        try:
            _make_executable(source)
        except OSError as exc:
            raise LinkFailure(source, link, str(exc)) from exc
        if create_symlink(source, link):
            created.append(link)
    return created
