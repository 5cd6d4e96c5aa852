"""Data models for dependency specifiers."""

from dataclasses import dataclass
from enum import Enum


class SpecType(Enum):
    """Kind of raw spec found in a manifest dependency map."""
    VERSION = "version"
    RANGE = "range"
    TAG = "tag"
    DIRECTORY = "directory"
    FILE = "file"
    GIT = "git"
    REMOTE = "remote"
    ALIAS = "alias"


@dataclass(frozen=True)
class DependencySpec:
    """A single ``name@raw_spec`` requirement."""
    name: str
    raw_spec: str
    spec_type: SpecType
