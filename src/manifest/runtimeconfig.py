"""Parsing for generated ``*.runtimeconfig.json`` files."""

import os
from dataclasses import dataclass, field
from glob import glob
from typing import Dict, List, Optional

from common.errors import DetectionError
from constants import Constants
from . import jsonc

NETCORE_APP = "Microsoft.NETCore.App"
ASPNETCORE_FRAMEWORKS = ("Microsoft.AspNetCore.App", "Microsoft.AspNetCore.All")


@dataclass
class RuntimeConfigInfo:
    """Frameworks and patch policy declared by a runtime config."""
    path: str
    frameworks: Dict[str, str] = field(default_factory=dict)
    included_frameworks: Dict[str, str] = field(default_factory=dict)
    apply_patches: bool = True

    @property
    def file_name(self) -> str:
        return os.path.basename(self.path)

    @property
    def app_name(self) -> str:
        return self.file_name[: -len(Constants.RUNTIMECONFIG_SUFFIX)]

    @property
    def is_self_contained(self) -> bool:
        return bool(self.included_frameworks) and not self.frameworks

    @property
    def runtime_version(self) -> Optional[str]:
        return self.frameworks.get(NETCORE_APP)

    @property
    def aspnetcore_version(self) -> Optional[str]:
        for name in ASPNETCORE_FRAMEWORKS:
            if name in self.frameworks:
                return self.frameworks[name]
        return None


def _framework_map(entries) -> Dict[str, str]:
    result: Dict[str, str] = {}
    for item in entries or []:
        if isinstance(item, dict) and item.get("name") and item.get("version"):
            result[str(item["name"])] = str(item["version"])
    return result


def parse_runtimeconfig(path: str) -> RuntimeConfigInfo:
    """Parse a runtime config; both ``framework`` and ``frameworks`` forms are read.

    Raises:
        DetectionError: if the file is not valid (commented) JSON.
    """
    try:
        data = jsonc.load_file(path)
    except (OSError, ValueError) as e:
        raise DetectionError(f"Couldn't parse runtime config {path}: {e}") from e
    options = data.get("runtimeOptions", {}) if isinstance(data, dict) else {}
    if not isinstance(options, dict):
        options = {}

    declared = []
    if isinstance(options.get("framework"), dict):
        declared.append(options["framework"])
    declared.extend(options.get("frameworks") or [])

    apply_patches = options.get("applyPatches", True)
    if isinstance(apply_patches, str):
        apply_patches = apply_patches.strip().lower() != "false"

    return RuntimeConfigInfo(
        path=path,
        frameworks=_framework_map(declared),
        included_frameworks=_framework_map(options.get("includedFrameworks")),
        apply_patches=bool(apply_patches),
    )


def find_runtimeconfig_files(dir_name: str) -> List[str]:
    """Runtime configs at the top of ``dir_name``."""
    return sorted(glob(os.path.join(dir_name, f"*{Constants.RUNTIMECONFIG_SUFFIX}")))
