"""Deployment mode detection over the application tree."""
from __future__ import annotations

import configparser
import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from common.errors import DetectionError, ModeDetectionAmbiguous
from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants
from manifest.project import ProjectInfo, find_project_files, parse_project
from manifest.runtimeconfig import RuntimeConfigInfo, find_runtimeconfig_files, parse_runtimeconfig

logger = logging.getLogger(__name__)


class DeploymentMode(Enum):
    """How the application reaches the platform."""
    SOURCE_BUILD = "source-build"
    FRAMEWORK_DEPENDENT = "framework-dependent"
    SELF_CONTAINED = "self-contained"


@dataclass(frozen=True)
class Detection:
    """Result of mode detection; decided once per staging run.

    ``publish_target`` is the shape of the output that gets launched. For
    published applications it equals ``mode``; for source builds it is
    SELF_CONTAINED when the project declares a runtime identifier.
    """
    mode: DeploymentMode
    publish_target: DeploymentMode
    app_dir: str
    app_name: str
    project: Optional[ProjectInfo] = None
    runtime_config: Optional[RuntimeConfigInfo] = None

    @property
    def requires_sdk(self) -> bool:
        return self.mode == DeploymentMode.SOURCE_BUILD

    @property
    def needs_shared_runtime(self) -> bool:
        return self.publish_target == DeploymentMode.FRAMEWORK_DEPENDENT


def _deployment_project(app_dir: str) -> Optional[str]:
    """Project path named by a ``.deployment`` file, if present."""
    path = os.path.join(app_dir, Constants.DEPLOYMENT_FILE)
    if not os.path.isfile(path):
        return None
    parser = configparser.ConfigParser()
    try:
        parser.read(path, encoding="utf-8")
    except configparser.Error as e:
        raise DetectionError(f"Couldn't parse {Constants.DEPLOYMENT_FILE}: {e}") from e
    project = parser.get("config", "project", fallback=None)
    if not project:
        return None
    full = os.path.normpath(os.path.join(app_dir, project.strip()))
    if not os.path.isfile(full):
        raise DetectionError(f"Project {project} named in {Constants.DEPLOYMENT_FILE} does not exist")
    return full


def _pick_runtime_config(app_dir: str) -> Optional[RuntimeConfigInfo]:
    """Parse the runtime config belonging to the published entry point."""
    paths = find_runtimeconfig_files(app_dir)
    if not paths:
        return None
    if len(paths) > 1:
        for path in paths:
            stem = os.path.basename(path)[: -len(Constants.RUNTIMECONFIG_SUFFIX)]
            if os.path.isfile(os.path.join(app_dir, f"{stem}.dll")):
                return parse_runtimeconfig(path)
    return parse_runtimeconfig(paths[0])


def _find_project(app_dir: str, nested: bool) -> Optional[str]:
    explicit = _deployment_project(app_dir)
    if explicit:
        return explicit
    found = find_project_files(app_dir)
    if not found and nested:
        found = find_project_files(app_dir, nested=True)
    if len(found) > 1:
        raise DetectionError(
            f"Found {len(found)} project files; name the one to build in {Constants.DEPLOYMENT_FILE}"
        )
    return found[0] if found else None


def detect_mode(app_dir: str) -> Detection:
    """Classify the application tree into a deployment mode.

    Raises:
        ModeDetectionAmbiguous: when more than one mode signature is present.
        DetectionError: when no signature is present.
    """
    runtime_config = _pick_runtime_config(app_dir)
    has_coreclr = os.path.isfile(os.path.join(app_dir, Constants.SELF_CONTAINED_MARKER))

    signatures: List[DeploymentMode] = []
    if has_coreclr or (runtime_config is not None and runtime_config.is_self_contained):
        signatures.append(DeploymentMode.SELF_CONTAINED)
    if runtime_config is not None and runtime_config.frameworks:
        signatures.append(DeploymentMode.FRAMEWORK_DEPENDENT)

    project_path = _find_project(app_dir, nested=not signatures)
    if project_path:
        signatures.append(DeploymentMode.SOURCE_BUILD)

    if is_debug_enabled(logger):
        logger.debug("Mode signatures", extra=extra_context(
            event="decision", component="detection", action="detect_mode",
            target=app_dir, outcome=",".join(s.value for s in signatures) or "none"
        ))

    if len(signatures) > 1:
        raise ModeDetectionAmbiguous([s.value for s in signatures])
    if not signatures:
        raise DetectionError(f"No .NET project or published output found in {app_dir}")

    mode = signatures[0]
    if mode == DeploymentMode.SOURCE_BUILD:
        project = parse_project(project_path)
        target = DeploymentMode.SELF_CONTAINED if project.runtime_identifier else DeploymentMode.FRAMEWORK_DEPENDENT
        return Detection(
            mode=mode,
            publish_target=target,
            app_dir=app_dir,
            app_name=project.app_name,
            project=project,
        )

    if runtime_config is not None:
        app_name = runtime_config.app_name
    else:
        app_name = _self_contained_executable(app_dir)
    return Detection(
        mode=mode,
        publish_target=mode,
        app_dir=app_dir,
        app_name=app_name,
        runtime_config=runtime_config,
    )


def _self_contained_executable(app_dir: str) -> str:
    """Guess the entry point of a self-contained publish without a runtime config."""
    for name in sorted(os.listdir(app_dir)):
        path = os.path.join(app_dir, name)
        if os.path.isfile(os.path.join(app_dir, f"{name}.dll")) and os.access(path, os.X_OK):
            return name
    raise DetectionError(f"Couldn't find the self-contained entry point in {app_dir}")
