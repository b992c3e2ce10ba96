"""Download, verify and extract catalog components into the dependency directory."""
from __future__ import annotations

import logging
import os
import shutil
import tarfile
import tempfile
import zipfile
from glob import glob
from typing import Callable, List, Optional

from common.errors import InstallError
from common.http_client import download_file
from constants import Constants
from versioning.catalog import VersionCatalog
from versioning.models import Component

logger = logging.getLogger(__name__)

Downloader = Callable[..., str]

_EXTRACTION_FILTERS = hasattr(tarfile, "data_filter")


def _checked_members(tf: tarfile.TarFile, dest: str) -> List[tarfile.TarInfo]:
    """Members that stay inside ``dest``; for interpreters without extraction filters."""
    root = os.path.realpath(dest)
    members = tf.getmembers()
    for member in members:
        target = os.path.realpath(os.path.join(root, member.name))
        if os.path.commonpath([root, target]) != root:
            raise InstallError(f"Archive member {member.name} escapes the install directory")
        if member.issym() or member.islnk():
            base = os.path.dirname(target) if member.issym() else root
            link = os.path.realpath(os.path.join(base, member.linkname))
            if os.path.commonpath([root, link]) != root:
                raise InstallError(f"Archive link {member.name} points outside the install directory")
    return members


def _extract(archive: str, dest: str) -> None:
    name = os.path.basename(archive)
    try:
        if zipfile.is_zipfile(archive):
            with zipfile.ZipFile(archive) as zf:
                zf.extractall(dest)
            return
        with tarfile.open(archive, "r:*") as tf:
            if _EXTRACTION_FILTERS:
                tf.extractall(dest, filter="data")
            else:
                tf.extractall(dest, members=_checked_members(tf, dest))
    except (tarfile.TarError, zipfile.BadZipFile) as e:
        raise InstallError(f"Couldn't extract {name}: {e}") from e


class Installer:
    """Install collaborator: ``install(component, version) -> path``.

    Dotnet components share one root (``<deps>/dotnet``) so the host finds the
    SDK, runtime and ASP.NET Core side by side. Native libraries get their own
    directory. A marker file per installed version makes install-if-absent
    checks cheap.
    """

    def __init__(self, catalog: VersionCatalog, deps_dir: str, downloader: Optional[Downloader] = None):
        self.catalog = catalog
        self.deps_dir = deps_dir
        self.download = downloader or download_file

    @property
    def dotnet_root(self) -> str:
        return os.path.join(self.deps_dir, Constants.DOTNET_ROOT_DIR)

    def install_dir(self, component: Component) -> str:
        if component.is_dotnet:
            return self.dotnet_root
        return os.path.join(self.deps_dir, component.value)

    def _marker_dir(self, component: Component) -> str:
        return os.path.join(self.install_dir(component), Constants.INSTALLED_MARKER_DIR)

    def _marker(self, component: Component, version: str) -> str:
        return os.path.join(self._marker_dir(component), f"{component.value}-{version}")

    def is_installed(self, component: Component, version: Optional[str] = None) -> bool:
        """Whether ``component`` (optionally at ``version``) is already staged."""
        if version is not None:
            return os.path.isfile(self._marker(component, version))
        return bool(glob(os.path.join(self._marker_dir(component), f"{component.value}-*")))

    def install(self, component: Component, version: str) -> str:
        """Download and extract one component, returning its install directory.

        Raises:
            InstallError: when the catalog has no download for the pair or the
                download/extraction fails.
        """
        entry = self.catalog.entry(component.value, version)
        if entry is None or not entry.uri:
            raise InstallError(f"No download available for {component.value} {version}")
        logger.info("Downloading %s %s", component.value, version)
        dest = self.install_dir(component)
        os.makedirs(dest, exist_ok=True)
        with tempfile.TemporaryDirectory() as tmp:
            archive = os.path.join(tmp, os.path.basename(entry.uri.split("?", 1)[0]) or "archive")
            self.download(entry.uri, archive, sha256=entry.sha256)
            _extract(archive, dest)
        os.makedirs(self._marker_dir(component), exist_ok=True)
        with open(self._marker(component, version), "w", encoding="utf-8") as fh:
            fh.write(version)
        return dest

    def remove(self, component: Component) -> bool:
        """Remove a staged component; returns False when nothing was present."""
        if component is Component.SDK:
            targets = [os.path.join(self.dotnet_root, "sdk")]
        elif component.is_dotnet:
            raise InstallError(f"Removing {component.value} is not supported")
        else:
            targets = [self.install_dir(component)]
        targets += glob(os.path.join(self._marker_dir(component), f"{component.value}-*"))
        present = [t for t in targets if os.path.exists(t)]
        if not present:
            return False
        logger.info("Removing %s", component.value)
        for target in present:
            if os.path.isdir(target):
                shutil.rmtree(target)
            elif os.path.exists(target):
                os.remove(target)
        return True
