"""Error types raised by the bootstrap core.

Fatal kinds unwind the whole waterfall; LinkFailure is caught by the link
coordinators and reported as a diagnostic instead.
"""

from __future__ import annotations

from typing import List, Optional, Sequence


class BootstrapError(Exception):
    """Base class for all bootstrap errors."""

    code = "EBOOTSTRAP"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        if code is not None:
            self.code = code

    def __str__(self) -> str:
        return f"{self.code}: {self.args[0]}"


class ConfigurationError(BootstrapError):
    """Mutually incompatible options; raised before any filesystem mutation."""

    code = "EOPTIONS"


class CycleError(BootstrapError):
    """Topological batching cannot make progress."""

    code = "ECYCLE"

    def __init__(self, names: Sequence[str]):
        self.names: List[str] = list(names)
        super().__init__(
            "Dependency cycle detected among packages: " + ", ".join(self.names)
        )


class InstallFailure(BootstrapError):
    """The package installation client reported a non-zero outcome."""

    code = "EINSTALL"

    def __init__(self, target: str, command: Sequence[str], returncode: int):
        self.target = target
        self.command = list(command)
        self.returncode = returncode
        super().__init__(
            f"'{' '.join(self.command)}' failed in {target} (exit code {returncode})"
        )


class ScriptFailure(BootstrapError):
    """A lifecycle script exited non-zero."""

    code = "ELIFECYCLE"

    def __init__(self, package_name: str, stage: str, returncode: int):
        self.package_name = package_name
        self.stage = stage
        self.returncode = returncode
        super().__init__(
            f"{package_name}: '{stage}' script exited with code {returncode}"
        )


class LinkFailure(BootstrapError):
    """A symlink or binary link could not be created."""

    code = "ELINK"

    def __init__(self, source: str, destination: str, reason: str):
        self.source = source
        self.destination = destination
        super().__init__(f"Unable to link {source} -> {destination}: {reason}")
