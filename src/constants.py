"""Constants used in the project."""

import os
from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    BOOTSTRAP_FAILED = 1
    CONFIG_ERROR = 2
    EXIT_WARNINGS = 3


class NpmClients(Enum):
    """Package installation clients supported by the program.

    Args:
        Enum (string): Client executable names.
    """

    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    SUPPORTED_CLIENTS = [
        NpmClients.NPM.value,
        NpmClients.YARN.value,
        NpmClients.PNPM.value,
    ]
    PACKAGE_JSON_FILE = "package.json"
    NODE_MODULES_DIR = "node_modules"
    BIN_DIR = ".bin"
    CONFIG_FILES = ["monoboot.yml", "monoboot.yaml", "monoboot.json"]
    CONFIG_SECTION = "bootstrap"
    DEFAULT_PACKAGE_GLOBS = ["packages/*"]
    DEFAULT_CONCURRENCY = os.cpu_count() or 4
    LOG_FORMAT = "[%(levelname)s] %(message)s"

    # yarn serializes concurrent invocations through a network mutex
    MUTEX_BASE_PORT = 42424
    MUTEX_PORT_ATTEMPTS = 100
    MUTEX_HOST = "0.0.0.0"

    # Paired markers exported to lifecycle scripts; equal values mean a
    # root script re-invoked us.
    ENV_EXEC_PATH = "MONOBOOT_EXEC_PATH"
    ENV_ROOT_PATH = "MONOBOOT_ROOT_PATH"
    ENV_LIFECYCLE_EVENT = "npm_lifecycle_event"
    ENV_LOG_LEVEL = "MONOBOOT_LOG_LEVEL"
