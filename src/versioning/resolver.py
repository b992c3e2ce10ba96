"""Version resolution against the catalog, with fallback and roll-forward policy."""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

import semantic_version

from common.errors import BuildpackError, PlanAbortedError, VersionNotFoundError
from common.logging_utils import extra_context, is_debug_enabled
from .catalog import VersionCatalog, parse_version
from .models import (
    LATEST,
    Component,
    Constraint,
    ConstraintKind,
    RequestMap,
    ResolutionResult,
    VersionRequest,
)
from .parser import float_line, float_major

logger = logging.getLogger(__name__)

FALLBACK_LINE_MSG = "falling back to latest version in version line"
ROLL_FORWARD_MSG = "rolling forward to latest version in major line"


def _identity(ver: semantic_version.Version) -> tuple:
    return (ver.major, ver.minor, ver.patch, tuple(ver.prerelease), tuple(ver.build))


def _matches(constraint: Constraint, ver: semantic_version.Version) -> bool:
    """Check whether a parsed catalog version satisfies a non-exact constraint."""
    kind = constraint.kind
    if kind == ConstraintKind.LATEST:
        return True
    if kind == ConstraintKind.FLOAT_MINOR_PATCH:
        if ver.major != constraint.prefix[0]:
            return False
        return len(constraint.prefix) < 2 or ver.minor == constraint.prefix[1]
    if kind == ConstraintKind.FLOAT_PATCH:
        if (ver.major, ver.minor) != constraint.prefix[:2]:
            return False
        patch = str(ver.patch)
        if constraint.patch_width is not None and len(patch) != constraint.patch_width:
            return False
        return patch.startswith(constraint.patch_prefix)
    if kind == ConstraintKind.LESS_THAN:
        return ver < semantic_version.Version(constraint.version)
    return False


def resolve(
    component: Component, constraint: Constraint, catalog: VersionCatalog, prefer_stable: bool = False
) -> Optional[str]:
    """Return the best catalog version for ``constraint``, or None when nothing matches.

    Exact constraints only ever return the requested version. All other kinds
    return the maximum matching version under semver ordering. The implicit
    latest constraint, and any call with ``prefer_stable``, picks a stable
    release when one matches.
    """
    candidates: List[Tuple[semantic_version.Version, str]] = []
    for raw in catalog.versions(component.value):
        parsed = parse_version(raw)
        if parsed is not None:
            candidates.append((parsed, raw))

    if constraint.kind == ConstraintKind.EXACT:
        if any(raw == constraint.version for _, raw in candidates):
            return constraint.version
        wanted = semantic_version.Version(constraint.version)
        for parsed, raw in candidates:
            if _identity(parsed) == _identity(wanted):
                return raw
        return None

    matching = [(p, raw) for p, raw in candidates if _matches(constraint, p)]
    if prefer_stable or constraint.kind == ConstraintKind.LATEST:
        stable = [(p, raw) for p, raw in matching if not p.prerelease]
        matching = stable or matching
    if not matching:
        return None
    return max(matching, key=lambda pair: pair[0])[1]


class VersionResolutionService:
    """Resolve effective requests into concrete versions.

    Requests from the override file must resolve as written. Lower-tier
    requests that miss widen to the latest version in their major.minor line,
    then (for components that roll forward) to the latest in their major.
    """

    def __init__(self, catalog: VersionCatalog):
        self.catalog = catalog

    @staticmethod
    def _warn(req: VersionRequest, result: ResolutionResult, *follow_up: str) -> None:
        origin = req.location or (req.source.value if req.source else "buildpack defaults")
        lines = [f"{req.component.label} {req.constraint.raw} in {origin} is not available", *follow_up]
        for line in lines:
            logger.warning(line)
            result.warnings.append(line)

    @staticmethod
    def _widenings(req: VersionRequest) -> List[Tuple[Constraint, str]]:
        line = req.constraint.line
        if line is None:
            return []
        steps = [(float_line(*line), FALLBACK_LINE_MSG)]
        if req.component.rolls_forward:
            steps.append((float_major(line[0]), ROLL_FORWARD_MSG))
        return steps

    def resolve_request(self, req: VersionRequest) -> ResolutionResult:
        """Resolve one request, applying the fallback policy.

        Raises:
            VersionNotFoundError: when the request cannot be satisfied at all.
        """
        result = ResolutionResult(
            component=req.component,
            requested=req.constraint.raw,
            resolved_version=None,
            source=req.source,
        )
        version = resolve(req.component, req.constraint, self.catalog)
        if version is not None:
            result.resolved_version = version
            logger.info("Installing %s %s", req.component.value, version)
            if is_debug_enabled(logger):
                logger.debug("Resolved component", extra=extra_context(
                    event="resolve", component=req.component.value, action="resolve_request",
                    target=req.constraint.raw, outcome=version
                ))
            return result

        if req.is_explicit:
            self._warn(req, result)
            raise VersionNotFoundError(req.component.title, req.constraint.raw, req.location)

        for widened, message in self._widenings(req):
            if widened.raw == req.constraint.raw:
                continue
            version = resolve(req.component, widened, self.catalog, prefer_stable=True)
            if version is not None:
                self._warn(req, result, message)
                logger.info("Installing %s %s", req.component.value, version)
                result.resolved_version = version
                result.fell_back = True
                return result

        raise VersionNotFoundError(req.component.title, req.constraint.raw, req.location)

    def resolve_all(
        self, requests: RequestMap, required: Iterable[Component]
    ) -> Tuple[Dict[Component, str], List[ResolutionResult]]:
        """Resolve every required component, collecting fatal errors.

        Components with no request resolve to the latest available version.

        Raises:
            PlanAbortedError: when any required component failed to resolve.
        """
        versions: Dict[Component, str] = {}
        results: List[ResolutionResult] = []
        errors: List[BuildpackError] = []
        for component in required:
            req = requests.get(component) or VersionRequest(component=component, constraint=LATEST, source=None)
            try:
                result = self.resolve_request(req)
            except VersionNotFoundError as e:
                logger.error(str(e))
                errors.append(e)
                results.append(ResolutionResult(
                    component=component,
                    requested=req.constraint.raw,
                    resolved_version=None,
                    source=req.source,
                    error=str(e),
                ))
                continue
            versions[component] = result.resolved_version
            results.append(result)
        if errors:
            raise PlanAbortedError(errors)
        return versions, results
