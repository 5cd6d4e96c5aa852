"""Package model: an immutable snapshot of one on-disk manifest."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from common.fs_utils import normalize_bin
from constants import Constants


def _frozen(mapping: Optional[Mapping[str, Any]]) -> Mapping[str, str]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True, eq=False)
class Package:
    """A package in the repository.

    Identity is the object itself; the graph creates exactly one per name.
    """

    name: str
    version: str
    location: str
    dependencies: Mapping[str, str] = field(default_factory=dict)
    dev_dependencies: Mapping[str, str] = field(default_factory=dict)
    optional_dependencies: Mapping[str, str] = field(default_factory=dict)
    peer_dependencies: Mapping[str, str] = field(default_factory=dict)
    scripts: Mapping[str, str] = field(default_factory=dict)
    bin: Mapping[str, str] = field(default_factory=dict)
    manifest: Mapping[str, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self):
        for attr in ("dependencies", "dev_dependencies", "optional_dependencies",
                     "peer_dependencies", "scripts", "bin", "manifest"):
            object.__setattr__(self, attr, _frozen(getattr(self, attr)))

    @classmethod
    def from_manifest(cls, manifest: Dict[str, Any], location: str) -> "Package":
        name = manifest.get("name") or os.path.basename(os.path.normpath(location))
        return cls(
            name=name,
            version=str(manifest.get("version", "")),
            location=os.path.abspath(location),
            dependencies=manifest.get("dependencies") or {},
            dev_dependencies=manifest.get("devDependencies") or {},
            optional_dependencies=manifest.get("optionalDependencies") or {},
            peer_dependencies=manifest.get("peerDependencies") or {},
            scripts=manifest.get("scripts") or {},
            bin=normalize_bin(name, manifest.get("bin")),
            manifest=manifest,
        )

    @property
    def node_modules_location(self) -> str:
        return os.path.join(self.location, Constants.NODE_MODULES_DIR)

    @property
    def bin_location(self) -> str:
        return os.path.join(self.node_modules_location, Constants.BIN_DIR)

    @property
    def manifest_location(self) -> str:
        return os.path.join(self.location, Constants.PACKAGE_JSON_FILE)

    @property
    def all_dependencies(self) -> Dict[str, str]:
        """dev, then optional, then runtime; later maps win on value only."""
        merged: Dict[str, str] = {}
        merged.update(self.dev_dependencies)
        merged.update(self.optional_dependencies)
        merged.update(self.dependencies)
        return merged

    def get_script(self, stage: str) -> Optional[str]:
        """Script text for ``stage``, or None when the package has none."""
        script = self.scripts.get(stage)
        return script if script else None

    def __repr__(self) -> str:
        return f"Package({self.name}@{self.version})"
