"""Source readers: each returns the version requests found in one input file."""
from __future__ import annotations

import logging
import os
import re
from typing import Dict, List, Optional

import yaml

from common.errors import BuildpackError, ConstraintParseError
from constants import Constants
from versioning.catalog import VersionCatalog
from versioning.models import Component, Constraint, ConstraintKind, VersionRequest, VersionRequestSource
from versioning.parser import float_line, parse_constraint
from . import jsonc
from .project import ProjectInfo
from .runtimeconfig import RuntimeConfigInfo

logger = logging.getLogger(__name__)

_LINE_RE = re.compile(r'(\d+)\.(\d+)')

_OVERRIDE_KEYS = {
    "sdk": Component.SDK,
    "runtime": Component.RUNTIME,
    "aspnetcore": Component.ASPNETCORE,
}


class SourceReader:
    """Base class for version request sources.

    Malformed constraints from the override file are fatal; from any other
    source they are logged and the component falls through to lower tiers.
    """

    source: VersionRequestSource

    def __init__(self, location: Optional[str] = None):
        self.location = location
        self.errors: List[BuildpackError] = []

    def read(self) -> Dict[Component, VersionRequest]:
        raise NotImplementedError

    def _request(self, component: Component, raw: str) -> Optional[VersionRequest]:
        try:
            constraint = parse_constraint(raw)
        except ConstraintParseError as e:
            if self.source == VersionRequestSource.OVERRIDE_FILE:
                logger.error("%s in %s", e, self.location)
                self.errors.append(e)
            else:
                logger.warning("Ignoring %s %s in %s: %s", component.label, raw, self.location, e)
            return None
        return self._wrap(component, constraint)

    def _wrap(self, component: Component, constraint: Constraint) -> VersionRequest:
        return VersionRequest(component=component, constraint=constraint, source=self.source, location=self.location)


class OverrideFileReader(SourceReader):
    """``buildpack.yml``: explicit user pins under the ``dotnet-core`` key."""

    source = VersionRequestSource.OVERRIDE_FILE

    def __init__(self, app_dir: str):
        super().__init__(Constants.BUILDPACK_YML_FILE)
        self.path = os.path.join(app_dir, Constants.BUILDPACK_YML_FILE)

    def read(self) -> Dict[Component, VersionRequest]:
        if not os.path.isfile(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as fh:
            try:
                data = yaml.safe_load(fh) or {}
            except yaml.YAMLError as e:
                error = BuildpackError(f"Couldn't parse {self.location}: {e}")
                logger.error(str(error))
                self.errors.append(error)
                return {}
        section = data.get(Constants.BUILDPACK_YML_KEY) if isinstance(data, dict) else None
        if not isinstance(section, dict):
            return {}
        requests: Dict[Component, VersionRequest] = {}
        for key, component in _OVERRIDE_KEYS.items():
            raw = section.get(key)
            if raw is None:
                continue
            req = self._request(component, str(raw))
            if req:
                requests[component] = req
        return requests


class GlobalJsonReader(SourceReader):
    """``global.json``: the SDK version the project was developed against."""

    source = VersionRequestSource.GLOBAL_MANIFEST

    def __init__(self, app_dir: str):
        super().__init__(Constants.GLOBAL_JSON_FILE)
        self.path = os.path.join(app_dir, Constants.GLOBAL_JSON_FILE)

    def read(self) -> Dict[Component, VersionRequest]:
        if not os.path.isfile(self.path):
            return {}
        try:
            data = jsonc.load_file(self.path)
        except (OSError, ValueError) as e:
            logger.warning("Couldn't parse %s: %s", self.location, e)
            return {}
        sdk = data.get("sdk") if isinstance(data, dict) else None
        version = sdk.get("version") if isinstance(sdk, dict) else None
        if not version:
            return {}
        req = self._request(Component.SDK, str(version))
        return {Component.SDK: req} if req else {}


class ProjectMetadataReader(SourceReader):
    """Project file: runtime pins and the ASP.NET Core metapackage line."""

    source = VersionRequestSource.PROJECT_METADATA

    def __init__(self, project: ProjectInfo):
        super().__init__(project.file_name)
        self.project = project

    def read(self) -> Dict[Component, VersionRequest]:
        requests: Dict[Component, VersionRequest] = {}
        line = self.project.framework_line

        if self.project.runtime_framework_version:
            req = self._request(Component.RUNTIME, self.project.runtime_framework_version)
            if req:
                requests[Component.RUNTIME] = req
        if Component.RUNTIME not in requests and line:
            requests[Component.RUNTIME] = self._wrap(Component.RUNTIME, float_line(*line))

        aspnet = self.project.aspnetcore_reference
        if aspnet is not None or self.project.is_web:
            aspnet_line = None
            if aspnet is not None and aspnet[1]:
                m = _LINE_RE.search(aspnet[1])
                if m:
                    aspnet_line = (int(m.group(1)), int(m.group(2)))
            aspnet_line = aspnet_line or line
            if aspnet_line:
                requests[Component.ASPNETCORE] = self._wrap(Component.ASPNETCORE, float_line(*aspnet_line))
        return requests


class RuntimeConfigReader(SourceReader):
    """Generated runtime config: exact framework versions plus the patch policy."""

    source = VersionRequestSource.GENERATED_RUNTIME_CONFIG

    def __init__(self, runtime_config: RuntimeConfigInfo):
        super().__init__(runtime_config.file_name)
        self.runtime_config = runtime_config

    def _framework_request(self, component: Component, version: str) -> Optional[VersionRequest]:
        if self.runtime_config.apply_patches:
            m = _LINE_RE.match(version)
            if m:
                return self._wrap(component, float_line(int(m.group(1)), int(m.group(2))))
        return self._request(component, version)

    def read(self) -> Dict[Component, VersionRequest]:
        requests: Dict[Component, VersionRequest] = {}
        aspnet_version = self.runtime_config.aspnetcore_version
        runtime_version = self.runtime_config.runtime_version or aspnet_version
        if runtime_version:
            req = self._framework_request(Component.RUNTIME, runtime_version)
            if req:
                requests[Component.RUNTIME] = req
        if aspnet_version:
            req = self._framework_request(Component.ASPNETCORE, aspnet_version)
            if req:
                requests[Component.ASPNETCORE] = req
        return requests


class DefaultsReader(SourceReader):
    """Lowest tier: SDK line implied by the target framework, then manifest defaults."""

    source = VersionRequestSource.BUILDPACK_DEFAULT

    def __init__(self, catalog: VersionCatalog, project: Optional[ProjectInfo] = None):
        super().__init__(Constants.MANIFEST_FILE)
        self.catalog = catalog
        self.project = project

    def read(self) -> Dict[Component, VersionRequest]:
        requests: Dict[Component, VersionRequest] = {}
        line = self.project.framework_line if self.project else None
        if line:
            requests[Component.SDK] = self._wrap(Component.SDK, float_line(*line))
        for component in Component:
            if component in requests:
                continue
            raw = self.catalog.default_version(component.value)
            if not raw:
                continue
            if raw in self.catalog.versions(component.value):
                # manifest defaults may name versions that are not semver, e.g. "4.2"
                requests[component] = self._wrap(component, Constraint(ConstraintKind.EXACT, raw, version=raw))
                continue
            req = self._request(component, raw)
            if req:
                requests[component] = req
        return requests
