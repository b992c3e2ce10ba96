"""Run a resolved plan's actions in order."""
from __future__ import annotations

import logging
import os
import subprocess
from typing import Callable, Dict, Optional

from common.errors import BuildpackError
from .assembler import ActionKind, PlanAction, ResolvedPlan
from .installer import Installer

logger = logging.getLogger(__name__)


class PlanExecutor:
    """Execute install, build and removal steps against the staging directories.

    The plan is fully resolved before anything runs, so an aborted resolution
    never leaves partial installs behind.
    """

    def __init__(
        self,
        installer: Installer,
        app_dir: str,
        runner: Optional[Callable[..., subprocess.CompletedProcess]] = None,
        skip_build: bool = False,
    ):
        self.installer = installer
        self.app_dir = app_dir
        self.runner = runner or subprocess.run
        self.skip_build = skip_build

    def build_env(self) -> Dict[str, str]:
        env = os.environ.copy()
        root = self.installer.dotnet_root
        env["DOTNET_ROOT"] = root
        env["PATH"] = f"{root}{os.pathsep}{env.get('PATH', '')}"
        env["DOTNET_CLI_TELEMETRY_OPTOUT"] = "1"
        env["DOTNET_SKIP_FIRST_TIME_EXPERIENCE"] = "1"
        return env

    def _build(self, action: PlanAction) -> None:
        if self.skip_build:
            logger.info("Skipping build: %s", " ".join(action.command))
            return
        logger.info("Publishing application: %s", " ".join(action.command))
        try:
            self.runner(list(action.command), cwd=self.app_dir, env=self.build_env(), check=True)
        except subprocess.CalledProcessError as e:
            raise BuildpackError(f"Build failed with exit code {e.returncode}") from e
        except OSError as e:
            raise BuildpackError(f"Couldn't run build: {e}") from e

    def run(self, plan: ResolvedPlan) -> None:
        """Apply every action of ``plan``; the first failure stops execution."""
        for action in plan.actions:
            if action.kind == ActionKind.INSTALL:
                self.installer.install(action.component, action.version)
            elif action.kind == ActionKind.INSTALL_IF_ABSENT:
                if self.installer.is_installed(action.component, action.version):
                    logger.info("Using %s %s", action.component.value, action.version)
                else:
                    self.installer.install(action.component, action.version)
            elif action.kind == ActionKind.BUILD:
                self._build(action)
            elif action.kind == ActionKind.REMOVE_IF_PRESENT:
                self.installer.remove(action.component)
