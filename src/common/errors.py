"""Exception hierarchy for buildpack staging."""

from typing import List, Optional


class BuildpackError(Exception):
    """Base class for errors surfaced to the user during staging."""


class ConstraintParseError(BuildpackError):
    """A version constraint string could not be parsed."""

    def __init__(self, raw: str, reason: str = "malformed version"):
        super().__init__(f"Invalid version constraint '{raw}': {reason}")
        self.raw = raw


class VersionNotFoundError(BuildpackError):
    """No catalog entry satisfies a request and no fallback is allowed."""

    def __init__(self, title: str, requested: str, location: Optional[str] = None):
        super().__init__(f"Unable to install {title}: no match found for {requested}")
        self.title = title
        self.requested = requested
        self.location = location


class DetectionError(BuildpackError):
    """The application tree does not look like a .NET application."""


class ModeDetectionAmbiguous(DetectionError):
    """The application tree matches more than one deployment mode signature."""

    def __init__(self, signatures: List[str]):
        joined = ", ".join(signatures)
        super().__init__(
            f"Application matches more than one deployment mode ({joined}); "
            "remove the stale build output or source files"
        )
        self.signatures = signatures


class PlanAbortedError(BuildpackError):
    """One or more required components could not be resolved."""

    def __init__(self, errors: List[BuildpackError]):
        super().__init__("; ".join(str(e) for e in errors))
        self.errors = errors


class InstallError(BuildpackError):
    """A component could not be downloaded, verified or extracted."""
