"""monoboot - Install and link dependencies across a multi-package repository

    Raises:
        SystemExit: with an ExitCodes value once the run is over.
"""
import logging
import os
import sys

from args import parse_args
from bootstrap.command import BootstrapCommand
from bootstrap.models import InvocationContext
from cli_config import find_config_file, load_config, resolve_options
from common.errors import BootstrapError, ConfigurationError
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from constants import Constants, ExitCodes
from graph.package_graph import PackageGraph
from workspace.scan import Project, filter_packages

logger = logging.getLogger(__name__)


def _setup_logging(args):
    """Configure logging based on CLI arguments.

    Args:
        args: Parsed CLI arguments.
    """
    # Honor CLI --loglevel by passing it to centralized logger via env
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.ENV_LOG_LEVEL] = str(args.LOG_LEVEL).upper()
    configure_logging()

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def bootstrap(args, environ=None):
    """Run one bootstrap from parsed arguments.

    Returns:
        BootstrapResult

    Raises:
        BootstrapError: any fatal error from validation, planning or installs.
    """
    root_path = os.path.abspath(args.ROOT)
    config_path = args.CONFIG or find_config_file(root_path)
    config = load_config(config_path)
    if config_path:
        logger.info("Loaded config from: %s", config_path)
    options = resolve_options(args, config)

    context = InvocationContext.from_environ(os.environ if environ is None else environ)
    try:
        project = Project.load(root_path, options.packages, options.use_workspaces)
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Unable to read the root manifest in {root_path}: {e}") from e

    try:
        graph = PackageGraph(project.packages, force_local=options.force_local)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e
    filtered = filter_packages(project.packages, options.scope, options.ignore)
    if is_debug_enabled(logger):
        logger.debug(
            "Filtered packages",
            extra=extra_context(
                event="decision", component="cli", action="filter_packages",
                count=len(filtered), outcome="empty" if not filtered else "non_empty",
            ),
        )

    return BootstrapCommand(project, graph, filtered, options, context).run()


def main():
    """Main function of the program."""
    args = parse_args()
    _setup_logging(args)

    try:
        result = bootstrap(args)
    except ConfigurationError as e:
        logger.error("%s", e)
        sys.exit(ExitCodes.CONFIG_ERROR.value)
    except BootstrapError as e:
        logger.error("%s", e)
        sys.exit(ExitCodes.BOOTSTRAP_FAILED.value)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)

    if result.has_warnings:
        logger.warning("Finished with %d warning(s):", len(result.warnings))
        for warning in result.warnings:
            logger.warning("  %s", warning)
        if args.ERROR_ON_WARNINGS:
            sys.exit(ExitCodes.EXIT_WARNINGS.value)
    sys.exit(ExitCodes.SUCCESS.value)


if __name__ == "__main__":
    main()
