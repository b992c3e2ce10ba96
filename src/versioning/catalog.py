"""Version catalog built from the buildpack manifest."""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

import semantic_version
import yaml

from common.errors import BuildpackError
from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogEntry:
    """One downloadable dependency listed in the manifest."""
    name: str
    version: str
    uri: Optional[str] = None
    sha256: Optional[str] = None
    stacks: tuple = ()


def parse_version(v: str) -> Optional[semantic_version.Version]:
    """Parse a catalog version, coercing non-semver forms such as ``4.2``."""
    try:
        return semantic_version.Version(v)
    except ValueError:
        try:
            return semantic_version.Version.coerce(v)
        except ValueError:
            return None


@dataclass
class VersionCatalog:
    """Read-only collection of available versions per component name."""
    entries: List[CatalogEntry] = field(default_factory=list)
    default_versions: Dict[str, str] = field(default_factory=dict)

    def versions(self, name: str) -> List[str]:
        """Catalog versions for ``name`` in ascending semver order."""
        pairs = []
        for entry in self.entries:
            if entry.name != name:
                continue
            parsed = parse_version(entry.version)
            if parsed is None:
                if is_debug_enabled(logger):
                    logger.debug("Skipping unparsable catalog version", extra=extra_context(
                        event="decision", component=name, action="catalog_versions",
                        target=entry.version, outcome="skipped"
                    ))
                continue
            pairs.append((parsed, entry.version))
        pairs.sort(key=lambda p: p[0])
        return [raw for _, raw in pairs]

    def entry(self, name: str, version: str) -> Optional[CatalogEntry]:
        """Return the entry for an exact (name, version) pair."""
        for e in self.entries:
            if e.name == name and e.version == version:
                return e
        return None

    def default_version(self, name: str) -> Optional[str]:
        """Default constraint string declared in the manifest, if any."""
        return self.default_versions.get(name)

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple], default_versions: Optional[Dict[str, str]] = None) -> "VersionCatalog":
        """Build a catalog from (name, version) pairs."""
        entries = [CatalogEntry(name=n, version=v) for n, v in pairs]
        return cls(entries=entries, default_versions=dict(default_versions or {}))

    @classmethod
    def from_manifest_data(cls, data: Dict[str, Any], stack: Optional[str] = None) -> "VersionCatalog":
        """Build a catalog from parsed manifest data, keeping entries for ``stack``.

        Entries without a ``cf_stacks`` list are available on every stack.
        """
        entries: List[CatalogEntry] = []
        for dep in data.get("dependencies") or []:
            if not isinstance(dep, dict) or not dep.get("name") or dep.get("version") is None:
                logger.warning("Ignoring malformed manifest dependency: %s", dep)
                continue
            stacks = tuple(dep.get("cf_stacks") or ())
            if stack and stacks and stack not in stacks:
                continue
            entries.append(CatalogEntry(
                name=str(dep["name"]),
                version=str(dep["version"]),
                uri=dep.get("uri"),
                sha256=dep.get("sha256"),
                stacks=stacks,
            ))
        defaults: Dict[str, str] = {}
        for item in data.get("default_versions") or []:
            if isinstance(item, dict) and item.get("name") and item.get("version") is not None:
                defaults[str(item["name"])] = str(item["version"])
        return cls(entries=entries, default_versions=defaults)


def load_catalog(path: str, stack: Optional[str] = None) -> VersionCatalog:
    """Load the catalog from a buildpack ``manifest.yml``.

    Raises:
        BuildpackError: when the manifest is missing or not a mapping.
    """
    stack = stack or Constants.DEFAULT_STACK
    if not os.path.isfile(path):
        raise BuildpackError(f"Buildpack manifest not found: {path}")
    with open(path, "r", encoding="utf-8") as fh:
        try:
            data = yaml.safe_load(fh) or {}
        except yaml.YAMLError as e:
            raise BuildpackError(f"Couldn't parse buildpack manifest {path}: {e}") from e
    if not isinstance(data, dict):
        raise BuildpackError(f"Buildpack manifest {path} must be a mapping")
    catalog = VersionCatalog.from_manifest_data(data, stack)
    logger.debug("Loaded %d catalog entries for stack %s", len(catalog.entries), stack)
    return catalog
