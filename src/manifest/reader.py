"""Fold per-source version requests into one effective request per component."""

import logging
from typing import List, Optional, Sequence, Tuple

from common.errors import BuildpackError
from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants
from detection.mode import DeploymentMode, Detection
from versioning.catalog import VersionCatalog
from versioning.models import RequestMap, VersionRequestSource
from .readers import (
    DefaultsReader,
    GlobalJsonReader,
    OverrideFileReader,
    ProjectMetadataReader,
    RuntimeConfigReader,
    SourceReader,
)

logger = logging.getLogger(__name__)


def _rank(source: VersionRequestSource, precedence: Sequence[str]) -> int:
    """Position in the precedence list; unknown sources sort last."""
    try:
        return precedence.index(source.value)
    except ValueError:
        return len(precedence)


class ManifestReader:
    """Apply source precedence per component.

    Readers are folded from the lowest to the highest precedence tier; a
    higher tier replaces the request of a lower one for the same component
    and never merges with it.
    """

    def __init__(self, readers: List[SourceReader], precedence: Optional[Sequence[str]] = None):
        self.readers = readers
        self.precedence = list(precedence or Constants.SOURCE_PRECEDENCE)

    def read(self) -> Tuple[RequestMap, List[BuildpackError]]:
        """Return the effective requests and any fatal errors raised by readers."""
        ordered = sorted(self.readers, key=lambda r: _rank(r.source, self.precedence), reverse=True)
        effective: RequestMap = {}
        errors: List[BuildpackError] = []
        for reader in ordered:
            requests = reader.read()
            errors.extend(reader.errors)
            effective.update(requests)
        if is_debug_enabled(logger):
            for component, req in effective.items():
                logger.debug("Effective request", extra=extra_context(
                    event="decision", component=component.value, action="fold_sources",
                    target=req.constraint.raw, outcome=req.source.value if req.source else None
                ))
        return effective, errors


def readers_for(detection: Detection, catalog: VersionCatalog) -> List[SourceReader]:
    """Source readers consulted for the detected mode."""
    app_dir = detection.app_dir
    if detection.mode == DeploymentMode.SELF_CONTAINED:
        return []
    if detection.mode == DeploymentMode.FRAMEWORK_DEPENDENT:
        readers: List[SourceReader] = [OverrideFileReader(app_dir)]
        if detection.runtime_config is not None:
            readers.append(RuntimeConfigReader(detection.runtime_config))
        readers.append(DefaultsReader(catalog))
        return readers
    readers = [OverrideFileReader(app_dir)]
    if detection.project is not None:
        readers.append(ProjectMetadataReader(detection.project))
    readers.append(GlobalJsonReader(app_dir))
    readers.append(DefaultsReader(catalog, detection.project))
    return readers
