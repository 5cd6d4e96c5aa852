"""Specifier parsing utilities for npm-style dependency maps."""

import os
import re
from typing import Optional, Tuple

from .models import DependencySpec, SpecType

_GIT_PREFIXES = ("git+", "git://", "github:", "gitlab:", "bitbucket:", "gist:")
_REMOTE_PREFIXES = ("http://", "https://")
_TARBALL_SUFFIXES = (".tgz", ".tar.gz", ".tar")
_PATH_PREFIXES = ("./", "../", "/", "~/", ".\\", "..\\")
_GITHUB_SHORTHAND = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+(#.*)?$")
_EXACT_VERSION = re.compile(r"^v?=?\d+\.\d+\.\d+(-[0-9A-Za-z.-]+)?(\+[0-9A-Za-z.-]+)?$")
_RANGE_CHARS = set("^~*xX<>=| ")


def tokenize_rightmost_at(token: str) -> Tuple[str, Optional[str]]:
    """Return (name, spec or None) using the rightmost-'@' rule.

    A leading '@' belongs to a scoped name, never to the version part.
    """
    token = token.strip()
    at = token.rfind("@")
    if at <= 0:
        return token, None
    name = token[:at].strip()
    spec = token[at + 1:].strip()
    return name, spec or None


def classify_spec(raw_spec: str) -> SpecType:
    """Classify a raw manifest spec without consulting any registry."""
    spec = (raw_spec or "").strip()
    lowered = spec.lower()

    if lowered.startswith("npm:"):
        return SpecType.ALIAS
    if lowered.startswith(("file:", "link:")) or spec.startswith(_PATH_PREFIXES):
        path = spec.split(":", 1)[1] if lowered.startswith(("file:", "link:")) else spec
        return SpecType.FILE if path.lower().endswith(_TARBALL_SUFFIXES) else SpecType.DIRECTORY
    if lowered.startswith(_GIT_PREFIXES) or lowered.endswith(".git"):
        return SpecType.GIT
    if lowered.startswith(_REMOTE_PREFIXES):
        return SpecType.REMOTE
    if _GITHUB_SHORTHAND.match(spec):
        return SpecType.GIT
    if spec == "" or _EXACT_VERSION.match(spec):
        return SpecType.VERSION if spec else SpecType.RANGE
    if any(ch in _RANGE_CHARS for ch in spec) or spec[0].isdigit():
        return SpecType.RANGE
    return SpecType.TAG


def parse_specifier(token: str) -> DependencySpec:
    """Parse a ``name@spec`` CLI/list token."""
    name, spec = tokenize_rightmost_at(token)
    raw = spec or ""
    return DependencySpec(name=name, raw_spec=raw, spec_type=classify_spec(raw))


def resolve_directory_spec(raw_spec: str, base_dir: str) -> Optional[str]:
    """Return the absolute directory a ``file:``/path spec points at, if any."""
    if classify_spec(raw_spec) is not SpecType.DIRECTORY:
        return None
    spec = raw_spec.strip()
    if spec.lower().startswith(("file:", "link:")):
        spec = spec.split(":", 1)[1]
    return os.path.normpath(os.path.join(base_dir, os.path.expanduser(spec)))
