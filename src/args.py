"""Argument parsing functionality for the dotnet buildpack."""

import argparse
from typing import List, Optional

from constants import Constants


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default=None)
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to buildpack configuration file (YAML)",
                        action="store",
                        type=str)


def _add_staging(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("app_dir",
                        metavar="APP_DIR",
                        help="Application directory")
    parser.add_argument("-m", "--manifest",
                        dest="MANIFEST",
                        help=f"Buildpack manifest listing available dependencies (default: {Constants.MANIFEST_FILE})",
                        action="store",
                        type=str,
                        default=Constants.MANIFEST_FILE)
    parser.add_argument("-s", "--stack",
                        dest="STACK",
                        help="Platform stack used to filter the manifest",
                        action="store",
                        type=str)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="dotnet-buildpack",
        description="Stage .NET applications: detect, resolve dependency versions, install and launch",
        add_help=True,
    )
    sub = parser.add_subparsers(dest="action", required=True)

    detect = sub.add_parser("detect", help="Print the deployment mode of an application")
    detect.add_argument("app_dir", metavar="APP_DIR", help="Application directory")
    _add_common(detect)

    plan = sub.add_parser("plan", help="Resolve versions and print the staging plan as JSON")
    _add_staging(plan)
    _add_common(plan)
    plan.add_argument("--precedence",
                      dest="PRECEDENCE",
                      help="Comma-separated source precedence, highest first",
                      action="store",
                      type=str)

    supply = sub.add_parser("supply", help="Resolve, install dependencies and build the application")
    _add_staging(supply)
    _add_common(supply)
    supply.add_argument("-d", "--deps-dir",
                        dest="DEPS_DIR",
                        help="Directory receiving installed dependencies",
                        action="store",
                        type=str,
                        required=True)
    supply.add_argument("--skip-build",
                        dest="SKIP_BUILD",
                        help="Install dependencies but do not run the publish step",
                        action="store_true")
    supply.add_argument("--precedence",
                        dest="PRECEDENCE",
                        help="Comma-separated source precedence, highest first",
                        action="store",
                        type=str)

    release = sub.add_parser("release", help="Write the release YAML with the start command")
    _add_staging(release)
    _add_common(release)
    release.add_argument("-o", "--output",
                         dest="OUTPUT",
                         help="Write the release YAML to this path instead of stdout",
                         action="store",
                         type=str)

    launch = sub.add_parser("launch", help="Run the application, relaying shutdown signals")
    _add_common(launch)
    launch.add_argument("--timeout",
                        dest="SHUTDOWN_TIMEOUT",
                        help="Seconds to wait for the application after a shutdown signal",
                        action="store",
                        type=float)
    launch.add_argument("--shutdown-marker",
                        dest="SHUTDOWN_MARKER",
                        help="Output line the application prints when it shuts down gracefully",
                        action="store",
                        type=str)
    launch.add_argument("LAUNCH_COMMAND",
                        nargs=argparse.REMAINDER,
                        help="Command to run, after '--'")

    latest = sub.add_parser("latest-version", help="Print the catalog version matching a constraint")
    _add_common(latest)
    latest.add_argument("name", metavar="NAME", help="Dependency name, e.g. dotnet-sdk")
    latest.add_argument("constraint", metavar="CONSTRAINT", help="Constraint such as 2.1.x or <2.1.9")
    latest.add_argument("-m", "--manifest",
                        dest="MANIFEST",
                        action="store",
                        type=str,
                        default=Constants.MANIFEST_FILE)
    latest.add_argument("-s", "--stack",
                        dest="STACK",
                        action="store",
                        type=str)

    return parser.parse_args(argv)
