"""Staging pipeline: detect mode, fold version requests, resolve, assemble the plan."""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from common.errors import BuildpackError, PlanAbortedError, VersionNotFoundError
from detection.mode import Detection, detect_mode
from layout.assembler import LayoutAssembler, ResolvedPlan, required_components
from layout.native import NativeDependencyAdviser
from manifest.reader import ManifestReader, readers_for
from versioning.catalog import VersionCatalog
from versioning.models import LATEST, Component, ResolutionResult, VersionRequest
from versioning.resolver import VersionResolutionService

logger = logging.getLogger(__name__)


def build_plan(
    app_dir: str,
    catalog: VersionCatalog,
    precedence: Optional[Sequence[str]] = None,
) -> Tuple[Detection, ResolvedPlan]:
    """Produce the staging plan for the application in ``app_dir``.

    Every required component is resolved before the plan is returned; all
    fatal errors are collected and raised together.

    Raises:
        DetectionError: when the deployment mode cannot be decided.
        PlanAbortedError: when any version request is unsatisfiable.
    """
    detection = detect_mode(app_dir)
    logger.info("Detected %s application %s", detection.mode.value, detection.app_name)

    requests, reader_errors = ManifestReader(readers_for(detection, catalog), precedence).read()
    errors: List[BuildpackError] = list(reader_errors)
    service = VersionResolutionService(catalog)

    versions: Dict[Component, str] = {}
    results: List[ResolutionResult] = []
    try:
        versions, results = service.resolve_all(requests, required_components(detection))
    except PlanAbortedError as e:
        errors.extend(e.errors)

    native: Dict[Component, str] = {}
    for component in NativeDependencyAdviser(detection).advise():
        req = requests.get(component) or VersionRequest(component=component, constraint=LATEST, source=None)
        try:
            result = service.resolve_request(req)
        except VersionNotFoundError as e:
            logger.error(str(e))
            errors.append(e)
            continue
        results.append(result)
        native[component] = result.resolved_version

    if errors:
        raise PlanAbortedError(errors)

    warnings = [w for r in results for w in r.warnings]
    plan = LayoutAssembler(detection).assemble(versions, native, warnings)
    return detection, plan
