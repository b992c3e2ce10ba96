"""Detect native library requirements that must be installed alongside the app."""

import logging
import os
from glob import glob
from typing import Dict, List, Tuple

from constants import Constants
from detection.mode import Detection
from manifest import jsonc
from versioning.models import Component

logger = logging.getLogger(__name__)

# Managed packages whose presence means the native library is loaded at runtime.
NATIVE_REFERENCES: Dict[Component, Tuple[str, ...]] = {
    Component.LIBGDIPLUS: ("System.Drawing.Common",),
}


def _deps_json_libraries(app_dir: str) -> List[str]:
    """Library names (without versions) declared by published ``*.deps.json`` files."""
    names: List[str] = []
    for path in glob(os.path.join(app_dir, f"*{Constants.DEPS_JSON_SUFFIX}")):
        try:
            data = jsonc.load_file(path)
        except (OSError, ValueError) as e:
            logger.warning("Couldn't parse %s: %s", os.path.basename(path), e)
            continue
        libraries = data.get("libraries", {}) if isinstance(data, dict) else {}
        for key in libraries if isinstance(libraries, dict) else []:
            names.append(key.split('/', 1)[0])
    return names


class NativeDependencyAdviser:
    """Append native components to the install set only when they are referenced."""

    def __init__(self, detection: Detection):
        self.detection = detection

    def _referenced_packages(self) -> List[str]:
        if self.detection.project is not None:
            return list(self.detection.project.package_references)
        names = _deps_json_libraries(self.detection.app_dir)
        for path in glob(os.path.join(self.detection.app_dir, "*.dll")):
            names.append(os.path.splitext(os.path.basename(path))[0])
        return names

    def advise(self) -> List[Component]:
        """Native components required by the application, in a stable order."""
        referenced = {name.lower() for name in self._referenced_packages()}
        required = []
        for component, packages in NATIVE_REFERENCES.items():
            if any(pkg.lower() in referenced for pkg in packages):
                logger.debug("%s required by %s", component.value, ", ".join(packages))
                required.append(component)
        return required
