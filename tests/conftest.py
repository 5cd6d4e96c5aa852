"""Shared fixtures for bootstrap tests."""

import json
import os

import pytest

from graph.models import Package


def make_package(name, version="1.0.0", location=None, **fields):
    """Build an in-memory Package; ``location`` defaults to /repo/packages/<name>."""
    manifest = {"name": name, "version": version}
    manifest.update(fields)
    return Package.from_manifest(manifest, location or os.path.join("/repo/packages", name))


def write_manifest(directory, manifest):
    """Write ``manifest`` as package.json in ``directory`` (created if needed)."""
    os.makedirs(directory, exist_ok=True)
    with open(os.path.join(directory, "package.json"), "w", encoding="utf-8") as f:
        json.dump(manifest, f)
    return directory


def install_fake(package_location, name, version, **fields):
    """Simulate an installed dependency under <package_location>/node_modules."""
    manifest = {"name": name, "version": version}
    manifest.update(fields)
    return write_manifest(os.path.join(package_location, "node_modules", *name.split("/")), manifest)


@pytest.fixture
def repo(tmp_path):
    """A repository root with a root package.json and a packages/ directory."""
    write_manifest(str(tmp_path), {"name": "root", "version": "0.0.0", "private": True})
    (tmp_path / "packages").mkdir()
    return tmp_path
