"""Lifecycle script execution."""

from __future__ import annotations

import logging
import os
import subprocess
from typing import Dict, Optional

from common.errors import ScriptFailure
from graph.models import Package

logger = logging.getLogger(__name__)


def run_script(package: Package, stage: str, env: Optional[Dict[str, str]] = None) -> bool:
    """Run ``package``'s script for ``stage`` through the shell.

    The package's ``node_modules/.bin`` is prepended to PATH, the same way
    npm runs lifecycle scripts.

    Returns:
        False when the package declares no script for the stage.

    Raises:
        ScriptFailure: the script exited non-zero.
    """
    script = package.get_script(stage)
    if script is None:
        return False

    run_env = os.environ.copy()
    run_env.update(env or {})
    run_env["PATH"] = os.pathsep.join([package.bin_location, run_env.get("PATH", "")])

    logger.info("%s: running %s script: %s", package.name, stage, script)
    result = subprocess.run(  # noqa: S602
        script, shell=True, cwd=package.location, env=run_env, check=False
    )
    if result.returncode != 0:
        raise ScriptFailure(package.name, stage, result.returncode)
    return True
