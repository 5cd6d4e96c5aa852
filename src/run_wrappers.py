"""Per-client wrapper configurations for dependency installation.

Each supported client gets its command line, extra CLI arguments and
environment variables for a bootstrap install.
"""

from __future__ import annotations

import dataclasses
import logging
import os
import socket
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from constants import Constants, NpmClients

logger = logging.getLogger(__name__)

SUPPORTED_CLIENTS = list(Constants.SUPPORTED_CLIENTS)


@dataclass
class ClientConfig:
    """Configuration for invoking a package installation client."""

    client: str = NpmClients.NPM.value
    client_args: List[str] = field(default_factory=list)
    sub_command: str = "install"
    registry: Optional[str] = None
    mutex: Optional[str] = None
    global_style: bool = False
    inherit_stdio: bool = False
    env_vars: Dict[str, str] = field(default_factory=dict)
    extra_args: List[str] = field(default_factory=list)

    def install_command(self) -> List[str]:
        """Full argv for an install in the target directory."""
        return [self.client, self.sub_command] + self.extra_args + self.client_args

    def with_options(self, **changes) -> "ClientConfig":
        """Copy of this config with ``changes`` applied and flags rebuilt."""
        updated = dataclasses.replace(self, **changes)
        return build_client_config(
            updated.client,
            client_args=updated.client_args,
            sub_command=updated.sub_command,
            registry=updated.registry,
            mutex=updated.mutex,
            global_style=updated.global_style,
            inherit_stdio=updated.inherit_stdio,
        )


def build_client_config(
    client: str,
    *,
    client_args: Optional[List[str]] = None,
    sub_command: str = "install",
    registry: Optional[str] = None,
    mutex: Optional[str] = None,
    global_style: bool = False,
    inherit_stdio: bool = False,
) -> ClientConfig:
    """Build a ClientConfig for the given client.

    Args:
        client: Client executable name ("npm", "yarn", "pnpm").
        client_args: Extra arguments passed through verbatim.
        sub_command: Install sub-command ("install" or "ci").
        registry: Optional registry URL override.
        mutex: yarn mutex token, e.g. "network:42424".
        global_style: Use the client's non-flattened layout (leaf installs
            while hoisting).
        inherit_stdio: Let the client write straight to the terminal.

    Raises:
        ValueError: the client is not supported.
    """
    name = os.path.basename(client).lower()

    builders = {
        NpmClients.NPM.value: _build_npm,
        NpmClients.YARN.value: _build_yarn,
        NpmClients.PNPM.value: _build_pnpm,
    }

    builder = builders.get(name)
    if builder is None:
        raise ValueError(f"Unsupported npm client: {client}")

    config = ClientConfig(
        client=client,
        client_args=list(client_args or []),
        sub_command=sub_command,
        registry=registry,
        mutex=mutex,
        global_style=global_style,
        inherit_stdio=inherit_stdio,
    )
    builder(config)
    if registry:
        config.env_vars["npm_config_registry"] = registry
    return config


# ---------- clients ----------


def _build_npm(config: ClientConfig) -> None:
    if config.global_style:
        config.extra_args.append("--global-style")


def _build_yarn(config: ClientConfig) -> None:
    # yarn has no `ci`; the lockfile is honoured by a regular install
    config.sub_command = "install"
    if config.mutex:
        config.extra_args.extend(["--mutex", config.mutex])
    config.extra_args.append("--non-interactive")
    if config.registry:
        config.env_vars["YARN_REGISTRY"] = config.registry


def _build_pnpm(config: ClientConfig) -> None:
    if config.sub_command == "ci":
        config.sub_command = "install"
        config.extra_args.append("--frozen-lockfile")


# ---------- yarn mutex ----------


def _port_is_free(host: str, port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind((host, port))
        except OSError:
            return False
    return True


def find_mutex_port(
    base_port: int = Constants.MUTEX_BASE_PORT,
    host: str = Constants.MUTEX_HOST,
    attempts: int = Constants.MUTEX_PORT_ATTEMPTS,
) -> int:
    """Return the first free TCP port at or above ``base_port``."""
    for port in range(base_port, base_port + attempts):
        if _port_is_free(host, port):
            return port
    raise OSError(f"No free port found in range {base_port}-{base_port + attempts - 1}")


def default_mutex() -> str:
    """yarn mutex token for serializing concurrent yarn processes."""
    return f"network:{find_mutex_port()}"
