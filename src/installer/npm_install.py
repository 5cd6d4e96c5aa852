"""Package installation client invocation.

``install_dependencies`` installs an exact list of specifiers into a target
package: the manifest is temporarily rewritten to declare only those
specifiers, the client runs a plain install, and the original manifest is
restored whatever the outcome.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import subprocess
from typing import Any, Dict, List, Optional, Sequence

from common.errors import InstallFailure
from common.logging_utils import Timer, extra_context, is_debug_enabled
from graph.models import Package
from run_wrappers import ClientConfig
from versioning.parser import parse_specifier

logger = logging.getLogger(__name__)

_DEPENDENCY_FIELDS = ("dependencies", "devDependencies", "optionalDependencies")
_BUNDLED_FIELDS = ("bundledDependencies", "bundleDependencies")


def transform_manifest(manifest: Dict[str, Any], specifiers: Sequence[str]) -> Dict[str, Any]:
    """Return a copy of ``manifest`` declaring exactly ``specifiers``.

    Entries keep the dependency map they were declared in; anything not in
    ``specifiers`` is dropped, and new names go under ``dependencies``.
    Scripts are removed so the client does not run them during the install.
    """
    json_data = copy.deepcopy(dict(manifest))
    wanted: Dict[str, str] = {}
    for token in specifiers:
        spec = parse_specifier(token)
        wanted[spec.name] = spec.raw_spec

    json_data.pop("scripts", None)

    for field_name in _DEPENDENCY_FIELDS:
        collection = json_data.get(field_name)
        if not isinstance(collection, dict):
            continue
        for name in list(collection):
            if name in wanted:
                collection[name] = wanted.pop(name)
            else:
                del collection[name]

    for field_name in _BUNDLED_FIELDS:
        bundled = json_data.get(field_name)
        if isinstance(bundled, list):
            json_data[field_name] = [name for name in bundled if name in wanted or _declared(json_data, name)]

    if wanted:
        json_data.setdefault("dependencies", {})
        if not isinstance(json_data["dependencies"], dict):
            json_data["dependencies"] = {}
        json_data["dependencies"].update(wanted)

    return json_data


def _declared(json_data: Dict[str, Any], name: str) -> bool:
    return any(isinstance(json_data.get(f), dict) and name in json_data[f] for f in _DEPENDENCY_FIELDS)


def npm_install(package: Package, config: ClientConfig) -> None:
    """Run a plain client install in ``package.location``.

    Raises:
        InstallFailure: the client could not be started or exited non-zero.
    """
    command = config.install_command()
    env = os.environ.copy()
    env.update(config.env_vars)

    with Timer() as t:
        logger.info("Running %s in %s", " ".join(command), package.location)
        try:
            result = subprocess.run(  # noqa: S603
                command,
                cwd=package.location,
                env=env,
                stdout=None if config.inherit_stdio else subprocess.PIPE,
                stderr=None if config.inherit_stdio else subprocess.PIPE,
                text=True,
                check=False,
            )
        except OSError as exc:
            logger.error("Unable to start %s: %s", config.client, exc)
            raise InstallFailure(package.location, command, 127) from exc

    if is_debug_enabled(logger):
        logger.debug(
            "Client finished",
            extra=extra_context(
                event="subprocess_exit", component="installer", action=config.sub_command,
                target=package.name, outcome=str(result.returncode), duration_ms=t.duration_ms(),
            ),
        )

    if result.returncode != 0:
        if result.stderr:
            logger.error("%s", result.stderr.strip())
        raise InstallFailure(package.location, command, result.returncode)


def _read_text(path: str) -> Optional[str]:
    try:
        with open(path, "r", encoding="utf-8") as file:
            return file.read()
    except FileNotFoundError:
        return None


def install_dependencies(package: Package, specifiers: List[str], config: ClientConfig) -> None:
    """Install exactly ``specifiers`` into ``package``; no-op when empty.

    Raises:
        InstallFailure: the client failed.
    """
    if not specifiers:
        return

    manifest_path = package.manifest_location
    original = _read_text(manifest_path)
    manifest = json.loads(original) if original else {"name": package.name, "version": package.version}
    temporary = transform_manifest(manifest, specifiers)

    logger.debug("Installing %s into %s", ", ".join(specifiers), package.name)
    try:
        with open(manifest_path, "w", encoding="utf-8") as file:
            json.dump(temporary, file, indent=2)
            file.write("\n")
        npm_install(package, config)
    finally:
        if original is None:
            if os.path.exists(manifest_path):
                os.remove(manifest_path)
        else:
            with open(manifest_path, "w", encoding="utf-8") as file:
                file.write(original)
