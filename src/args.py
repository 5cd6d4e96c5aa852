"""Argument parsing functionality for monoboot."""

import argparse
import sys
from constants import Constants


def split_double_dash(argv):
    """Split argv at the first '--'; the tail is forwarded to the npm client."""
    if "--" in argv:
        index = argv.index("--")
        return argv[:index], argv[index + 1:]
    return argv, []


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    own_args, client_args = split_double_dash(list(sys.argv[1:] if argv is None else argv))

    parser = argparse.ArgumentParser(
        prog="monoboot",
        description=(
            "monoboot - Install and link dependencies across a multi-package repository"
        ),
        add_help=True,
    )

    parser.add_argument("-C", "--root",
                        dest="ROOT",
                        help="Repository root containing the root package.json (default: cwd)",
                        action="store",
                        type=str,
                        default=".")
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("--packages",
                        dest="PACKAGES",
                        help="Glob locating packages, relative to the root (repeatable)",
                        action="append",
                        type=str)

    parser.add_argument("--hoist",
                        dest="HOIST",
                        help="Install external dependencies matching [glob] to the repo root "
                             "(all of them when no glob is given)",
                        action="append",
                        nargs="?",
                        const="**",
                        type=str)
    parser.add_argument("--nohoist",
                        dest="NOHOIST",
                        help="Don't hoist external dependencies matching [glob] (repeatable)",
                        action="append",
                        type=str)
    parser.add_argument("--npm-client",
                        dest="NPM_CLIENT",
                        help="Executable used to install dependencies",
                        action="store",
                        type=str,
                        choices=Constants.SUPPORTED_CLIENTS)
    parser.add_argument("--mutex",
                        dest="MUTEX",
                        help="Mutex token passed to yarn, e.g. network:42424",
                        action="store",
                        type=str)
    parser.add_argument("--registry",
                        dest="REGISTRY",
                        help="Use the specified registry for all installs",
                        action="store",
                        type=str)
    parser.add_argument("--ci",
                        dest="CI",
                        help="Use 'npm ci' instead of 'npm install'",
                        action="store_true")
    parser.add_argument("--concurrency",
                        dest="CONCURRENCY",
                        help="How many installs or scripts to run in parallel",
                        action="store",
                        type=int)

    parser.add_argument("--ignore-scripts",
                        dest="IGNORE_SCRIPTS",
                        help="Don't run any lifecycle scripts in bootstrapped packages",
                        action="store_true")
    parser.add_argument("--ignore-prepublish",
                        dest="IGNORE_PREPUBLISH",
                        help="Don't run prepublish lifecycle scripts",
                        action="store_true")
    parser.add_argument("--reject-cycles",
                        dest="REJECT_CYCLES",
                        help="Fail if a cycle is found among local dependencies",
                        action="store_true")
    parser.add_argument("--no-sort",
                        dest="NO_SORT",
                        help="Don't sort packages topologically",
                        action="store_true")
    parser.add_argument("--use-workspaces",
                        dest="USE_WORKSPACES",
                        help="Let the client's workspaces feature do the bootstrap",
                        action="store_true")
    parser.add_argument("--force-local",
                        dest="FORCE_LOCAL",
                        help="Link local packages regardless of version range match",
                        action="store_true")

    parser.add_argument("--scope",
                        dest="SCOPE",
                        help="Include only packages with names matching the given glob (repeatable)",
                        action="append",
                        type=str)
    parser.add_argument("--ignore",
                        dest="IGNORE",
                        help="Exclude packages with names matching the given glob (repeatable)",
                        action="append",
                        type=str)

    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("--error-on-warnings",
                        dest="ERROR_ON_WARNINGS",
                        help="Exit with a non-zero status code if warnings are present.",
                        action="store_true")

    args = parser.parse_args(own_args)
    args.DOUBLE_DASH_ARGS = client_args
    return args
