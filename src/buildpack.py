"""dotnet-buildpack - stage .NET applications for a cloud application platform.

    Returns:
        int: Exit code
"""
import json
import logging
import os
import sys
from typing import List, Optional

from args import parse_args
from cli_config import apply_cli_overrides, load_config
from common.errors import (
    BuildpackError,
    DetectionError,
    InstallError,
    PlanAbortedError,
    VersionNotFoundError,
)
from common.logging_utils import add_file_handler, configure_logging
from constants import Constants, ExitCodes
from detection.mode import detect_mode
from launcher import run_supervised
from layout.executor import PlanExecutor
from layout.installer import Installer
from layout.release import write_release
from staging import build_plan
from versioning.catalog import load_catalog
from versioning.models import Component
from versioning.parser import parse_constraint
from versioning.resolver import resolve

logger = logging.getLogger(__name__)


def _setup_logging(args) -> None:
    configure_logging(getattr(args, "LOG_LEVEL", None))
    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        add_file_handler(log_file)


def cmd_detect(args) -> int:
    detection = detect_mode(args.app_dir)
    print(detection.mode.value)
    return ExitCodes.SUCCESS.value


def _plan(args):
    catalog = load_catalog(args.MANIFEST, Constants.DEFAULT_STACK)
    _, plan = build_plan(args.app_dir, catalog, Constants.SOURCE_PRECEDENCE)
    return catalog, plan


def cmd_plan(args) -> int:
    _, plan = _plan(args)
    print(json.dumps(plan.to_dict(), indent=2))
    return ExitCodes.SUCCESS.value


def cmd_supply(args) -> int:
    catalog, plan = _plan(args)
    os.makedirs(args.DEPS_DIR, exist_ok=True)
    installer = Installer(catalog, args.DEPS_DIR)
    PlanExecutor(installer, args.app_dir, skip_build=args.SKIP_BUILD).run(plan)
    return ExitCodes.SUCCESS.value


def cmd_release(args) -> int:
    _, plan = _plan(args)
    text = write_release(plan, args.OUTPUT)
    if not args.OUTPUT:
        sys.stdout.write(text)
    return ExitCodes.SUCCESS.value


def cmd_launch(args) -> int:
    command = list(args.LAUNCH_COMMAND or [])
    if command and command[0] == "--":
        command = command[1:]
    if not command:
        sys.stderr.write("Error: No command provided.\nUsage: dotnet-buildpack launch [options] -- <command> [args...]\n")
        return 2
    outcome = run_supervised(command)
    return outcome.exit_code


def cmd_latest_version(args) -> int:
    try:
        component = Component(args.name)
    except ValueError:
        logger.error("Unknown dependency name: %s", args.name)
        return ExitCodes.FILE_ERROR.value
    catalog = load_catalog(args.MANIFEST, Constants.DEFAULT_STACK)
    constraint = parse_constraint(args.constraint)
    version = resolve(component, constraint, catalog)
    if version is None:
        err = VersionNotFoundError(component.title, constraint.raw)
        logger.error(str(err))
        return ExitCodes.RESOLUTION_ERROR.value
    print(version)
    return ExitCodes.SUCCESS.value


COMMANDS = {
    "detect": cmd_detect,
    "plan": cmd_plan,
    "supply": cmd_supply,
    "release": cmd_release,
    "launch": cmd_launch,
    "latest-version": cmd_latest_version,
}


def run(argv: Optional[List[str]] = None) -> int:
    """Parse arguments, run one subcommand, and map errors to exit codes."""
    args = parse_args(argv)
    _setup_logging(args)
    try:
        load_config(args)
        apply_cli_overrides(args)
    except (OSError, ValueError) as e:
        logger.error("Invalid configuration: %s", e)
        return ExitCodes.FILE_ERROR.value

    try:
        return COMMANDS[args.action](args)
    except DetectionError as e:
        logger.error(str(e))
        return ExitCodes.DETECTION_ERROR.value
    except PlanAbortedError:
        # each cause was already logged where it was collected
        return ExitCodes.RESOLUTION_ERROR.value
    except InstallError as e:
        logger.error(str(e))
        return ExitCodes.CONNECTION_ERROR.value
    except BuildpackError as e:
        logger.error(str(e))
        return ExitCodes.FILE_ERROR.value


def main() -> None:
    """Console script entry point."""
    sys.exit(run())


if __name__ == "__main__":
    main()
