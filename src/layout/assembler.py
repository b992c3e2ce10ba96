"""Turn resolved versions and the deployment mode into an install plan and launch command."""
from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from constants import Constants
from detection.mode import DeploymentMode, Detection
from versioning.models import Component


class ActionKind(Enum):
    """What the executor does with a plan step."""
    INSTALL = "install"
    INSTALL_IF_ABSENT = "install-if-absent"
    BUILD = "build"
    REMOVE_IF_PRESENT = "remove-if-present"


@dataclass(frozen=True)
class PlanAction:
    """One ordered step of the staging plan."""
    kind: ActionKind
    component: Optional[Component] = None
    version: Optional[str] = None
    command: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"action": self.kind.value}
        if self.component is not None:
            data["component"] = self.component.value
        if self.version is not None:
            data["version"] = self.version
        if self.command:
            data["command"] = list(self.command)
        return data


def _render_arg(arg: str) -> str:
    """Shell-quote an argument, leaving ``${VAR}`` references expandable."""
    if "${" in arg:
        return f'"{arg}"'
    return shlex.quote(arg)


@dataclass
class LaunchConfig:
    """Process the platform starts for the ``web`` process type.

    ``workdir`` is relative to the application root.
    """
    command: List[str]
    workdir: str = "."

    @property
    def start_command(self) -> str:
        """Shell command that runs the app under the shutdown relay."""
        app = " ".join(_render_arg(arg) for arg in self.command)
        return f"cd {shlex.quote(self.workdir)} && exec {Constants.LAUNCHER_COMMAND} -- {app}"


@dataclass
class ResolvedPlan:
    """Everything downstream collaborators need to stage and launch the app."""
    mode: DeploymentMode
    publish_target: DeploymentMode
    versions: Dict[Component, str]
    actions: List[PlanAction]
    launch: LaunchConfig
    warnings: List[str] = field(default_factory=list)

    def components(self, kind: ActionKind) -> List[Component]:
        return [a.component for a in self.actions if a.kind == kind and a.component is not None]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "publish_target": self.publish_target.value,
            "versions": {c.value: v for c, v in self.versions.items()},
            "actions": [a.to_dict() for a in self.actions],
            "start_command": self.launch.start_command,
            "warnings": list(self.warnings),
        }


def required_components(detection: Detection) -> List[Component]:
    """Dotnet components that must be resolved for the detected mode."""
    required: List[Component] = []
    if detection.requires_sdk:
        required.append(Component.SDK)
    if not detection.needs_shared_runtime:
        return required
    required.append(Component.RUNTIME)
    web = detection.project is not None and detection.project.is_web
    if web or (detection.runtime_config is not None and detection.runtime_config.aspnetcore_version):
        required.append(Component.ASPNETCORE)
    return required


class LayoutAssembler:
    """Decide install, build and removal steps and the start command."""

    def __init__(self, detection: Detection):
        self.detection = detection

    def _build_command(self) -> Tuple[str, ...]:
        project = self.detection.project
        rel = os.path.relpath(project.path, self.detection.app_dir)
        cmd = ["dotnet", "publish", rel, "-c", Constants.BUILD_CONFIGURATION, "-o", Constants.PUBLISH_DIR]
        if self.detection.publish_target == DeploymentMode.SELF_CONTAINED:
            cmd += ["-r", project.runtime_identifier, "--self-contained", "true"]
        return tuple(cmd)

    def _launch(self) -> LaunchConfig:
        name = self.detection.app_name
        if self.detection.publish_target == DeploymentMode.SELF_CONTAINED:
            command = [f"./{name}"]
        else:
            command = ["dotnet", f"{name}.dll"]
        command += ["--server.urls", Constants.SERVER_URLS_ARG]
        workdir = Constants.PUBLISH_DIR if self.detection.mode == DeploymentMode.SOURCE_BUILD else "."
        return LaunchConfig(command=command, workdir=workdir)

    def assemble(
        self,
        versions: Dict[Component, str],
        native: Optional[Dict[Component, str]] = None,
        warnings: Optional[List[str]] = None,
    ) -> ResolvedPlan:
        """Build the ordered plan.

        ``versions`` must hold every component from ``required_components``;
        ``native`` holds resolved native libraries from the adviser.
        """
        actions: List[PlanAction] = []
        mode = self.detection.mode

        if mode == DeploymentMode.SOURCE_BUILD:
            actions.append(PlanAction(ActionKind.INSTALL_IF_ABSENT, Component.SDK, versions[Component.SDK]))
        if self.detection.needs_shared_runtime:
            for component in (Component.RUNTIME, Component.ASPNETCORE):
                if component in versions:
                    actions.append(PlanAction(ActionKind.INSTALL, component, versions[component]))
        for component, version in (native or {}).items():
            actions.append(PlanAction(ActionKind.INSTALL, component, version))
        if mode == DeploymentMode.SOURCE_BUILD:
            actions.append(PlanAction(ActionKind.BUILD, command=self._build_command()))
        if self.detection.publish_target == DeploymentMode.SELF_CONTAINED:
            actions.append(PlanAction(ActionKind.REMOVE_IF_PRESENT, Component.SDK))

        all_versions = dict(versions)
        all_versions.update(native or {})
        return ResolvedPlan(
            mode=mode,
            publish_target=self.detection.publish_target,
            versions=all_versions,
            actions=actions,
            launch=self._launch(),
            warnings=list(warnings or []),
        )
