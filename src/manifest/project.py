"""Project file parsing: target framework, runtime pins and package references."""
from __future__ import annotations

import os
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from glob import glob
from typing import Dict, List, Optional, Tuple

from common.errors import DetectionError
from constants import Constants

_TFM_RE = re.compile(r'^net(?:coreapp)?(\d+)\.(\d+)$', re.IGNORECASE)
ASPNETCORE_PACKAGES = ("Microsoft.AspNetCore.App", "Microsoft.AspNetCore.All")
WEB_SDK = "Microsoft.NET.Sdk.Web"


@dataclass
class ProjectInfo:
    """The parts of a project file that influence staging."""
    path: str
    sdk: Optional[str] = None
    target_frameworks: List[str] = field(default_factory=list)
    runtime_framework_version: Optional[str] = None
    runtime_identifiers: List[str] = field(default_factory=list)
    assembly_name: Optional[str] = None
    package_references: Dict[str, Optional[str]] = field(default_factory=dict)

    @property
    def file_name(self) -> str:
        return os.path.basename(self.path)

    @property
    def app_name(self) -> str:
        """Output assembly name: AssemblyName when set, else the project file stem."""
        if self.assembly_name:
            return self.assembly_name
        return os.path.splitext(self.file_name)[0]

    @property
    def framework_line(self) -> Optional[Tuple[int, int]]:
        """(major, minor) of the first .NET Core target framework."""
        for tfm in self.target_frameworks:
            m = _TFM_RE.match(tfm.strip())
            if m:
                return int(m.group(1)), int(m.group(2))
        return None

    @property
    def aspnetcore_reference(self) -> Optional[Tuple[str, Optional[str]]]:
        """(package, version) of the ASP.NET Core metapackage reference, if any."""
        for name in ASPNETCORE_PACKAGES:
            for ref, version in self.package_references.items():
                if ref.lower() == name.lower():
                    return ref, version
        return None

    @property
    def is_web(self) -> bool:
        return self.sdk == WEB_SDK or self.aspnetcore_reference is not None

    @property
    def runtime_identifier(self) -> Optional[str]:
        return self.runtime_identifiers[0] if self.runtime_identifiers else None

    def references(self, package: str) -> bool:
        """Case-insensitive check for a PackageReference."""
        return any(ref.lower() == package.lower() for ref in self.package_references)


def _strip_namespaces(root: ET.Element) -> None:
    for elem in root.iter():
        if '}' in elem.tag:
            elem.tag = elem.tag.split('}')[1]


def _split_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(';') if part.strip()]


def parse_project(path: str) -> ProjectInfo:
    """Parse a .csproj/.fsproj/.vbproj file.

    Raises:
        DetectionError: if the file is not well-formed XML.
    """
    try:
        tree = ET.parse(path)
    except (ET.ParseError, OSError) as e:
        raise DetectionError(f"Couldn't parse project file {path}: {e}") from e
    root = tree.getroot()
    _strip_namespaces(root)

    info = ProjectInfo(path=path, sdk=root.get("Sdk"))
    for group in root.findall("PropertyGroup"):
        for prop in group:
            text = (prop.text or "").strip()
            if not text:
                continue
            if prop.tag == "TargetFramework":
                info.target_frameworks.insert(0, text)
            elif prop.tag == "TargetFrameworks":
                info.target_frameworks.extend(_split_list(text))
            elif prop.tag == "RuntimeFrameworkVersion":
                info.runtime_framework_version = text
            elif prop.tag == "RuntimeIdentifier":
                info.runtime_identifiers.insert(0, text)
            elif prop.tag == "RuntimeIdentifiers":
                info.runtime_identifiers.extend(_split_list(text))
            elif prop.tag == "AssemblyName":
                info.assembly_name = text

    for package_ref in root.findall(".//PackageReference"):
        include_attr = package_ref.get("Include")
        if not include_attr:
            continue
        version = package_ref.get("Version")
        if version is None:
            child = package_ref.find("Version")
            version = child.text.strip() if child is not None and child.text else None
        info.package_references[include_attr] = version
    return info


def find_project_files(dir_name: str, nested: bool = False) -> List[str]:
    """Project files in ``dir_name``, plus one directory down when ``nested``."""
    found: List[str] = []
    for ext in Constants.PROJECT_EXTENSIONS:
        found.extend(glob(os.path.join(dir_name, f"*{ext}")))
        if nested:
            found.extend(glob(os.path.join(dir_name, "*", f"*{ext}")))
    return sorted(set(found))
