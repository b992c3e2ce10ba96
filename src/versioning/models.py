"""Data models for versioning and component resolution."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class Component(Enum):
    """Installable components known to the buildpack."""
    SDK = "dotnet-sdk"
    RUNTIME = "dotnet-runtime"
    ASPNETCORE = "dotnet-aspnetcore"
    LIBGDIPLUS = "libgdiplus"

    @property
    def label(self) -> str:
        """Short name used in availability warnings."""
        return _LABELS[self]

    @property
    def title(self) -> str:
        """Human name used in fatal install messages."""
        return _TITLES[self]

    @property
    def rolls_forward(self) -> bool:
        """Whether a missing version line may roll forward to a newer minor."""
        return self in (Component.RUNTIME, Component.ASPNETCORE)

    @property
    def is_dotnet(self) -> bool:
        """Whether the component is extracted into the shared dotnet root."""
        return self is not Component.LIBGDIPLUS


_LABELS = {
    Component.SDK: "SDK",
    Component.RUNTIME: "Runtime",
    Component.ASPNETCORE: "ASP.NET Core",
    Component.LIBGDIPLUS: "libgdiplus",
}

_TITLES = {
    Component.SDK: "Dotnet SDK",
    Component.RUNTIME: "Dotnet Runtime",
    Component.ASPNETCORE: "Dotnet ASP.NET Core",
    Component.LIBGDIPLUS: "libgdiplus",
}


class ConstraintKind(Enum):
    """Shape of a version constraint."""
    EXACT = "exact"
    FLOAT_MINOR_PATCH = "float-minor-patch"
    FLOAT_PATCH = "float-patch"
    LESS_THAN = "less-than"
    LATEST = "latest"


@dataclass(frozen=True)
class Constraint:
    """Normalized version constraint.

    ``prefix`` holds the fixed numeric segments for floating kinds. For
    FLOAT_PATCH, ``patch_prefix`` is the leading digits of the patch number and
    ``patch_width`` the total digit count when the pattern spelled it out
    (``4xx`` -> prefix "4", width 3).
    """
    kind: ConstraintKind
    raw: str
    version: Optional[str] = None
    prefix: tuple = ()
    patch_prefix: str = ""
    patch_width: Optional[int] = None

    @property
    def line(self) -> Optional[tuple]:
        """(major, minor) this constraint is anchored to, if any."""
        if self.kind == ConstraintKind.FLOAT_MINOR_PATCH and len(self.prefix) >= 2:
            return self.prefix[0], self.prefix[1]
        if self.kind == ConstraintKind.FLOAT_PATCH:
            return self.prefix[0], self.prefix[1]
        if self.kind == ConstraintKind.EXACT and len(self.prefix) >= 2:
            return self.prefix[0], self.prefix[1]
        return None


LATEST = Constraint(kind=ConstraintKind.LATEST, raw="latest")


class VersionRequestSource(Enum):
    """Where a version request came from."""
    OVERRIDE_FILE = "override-file"
    GENERATED_RUNTIME_CONFIG = "generated-runtime-config"
    PROJECT_METADATA = "project-metadata"
    GLOBAL_MANIFEST = "global-manifest"
    BUILDPACK_DEFAULT = "buildpack-default"


@dataclass
class VersionRequest:
    """A constraint for one component, tagged with the source it came from."""
    component: Component
    constraint: Constraint
    source: Optional[VersionRequestSource]
    location: Optional[str] = None  # file name shown to users, e.g. "global.json"

    @property
    def is_explicit(self) -> bool:
        """Requests from the override file are explicit user choices."""
        return self.source == VersionRequestSource.OVERRIDE_FILE


@dataclass
class ResolutionResult:
    """Resolution outcome for one component."""
    component: Component
    requested: str
    resolved_version: Optional[str]
    source: Optional[VersionRequestSource]
    fell_back: bool = False
    warnings: List[str] = field(default_factory=list)
    error: Optional[str] = None


# Mapping from component to the effective request after precedence folding.
RequestMap = Dict[Component, VersionRequest]
