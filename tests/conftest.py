"""Shared fixtures: a sample catalog and helpers that lay out application trees."""

import json
import logging
import os
import textwrap

import pytest

from constants import Constants
from versioning.catalog import VersionCatalog

SDK_VERSIONS = ["2.1.502", "2.1.504", "2.2.102", "2.2.104", "3.0.100-preview5-011568"]
RUNTIME_VERSIONS = ["2.1.6", "2.1.8", "2.2.2", "2.2.3", "3.0.0-preview5-27626-15"]
ASPNETCORE_VERSIONS = ["2.1.6", "2.1.8", "2.2.2", "2.2.3", "3.0.0-preview5-19227-01"]


def manifest_data():
    """Buildpack manifest in the shape shipped with the buildpack."""
    deps = []
    for name, versions in (
        ("dotnet-sdk", SDK_VERSIONS),
        ("dotnet-runtime", RUNTIME_VERSIONS),
        ("dotnet-aspnetcore", ASPNETCORE_VERSIONS),
        ("libgdiplus", ["4.2"]),
    ):
        for v in versions:
            deps.append({
                "name": name,
                "version": v,
                "uri": f"https://buildpacks.example.com/{name}/{name}.{v}.linux-amd64.tar.xz",
                "sha256": None,
                "cf_stacks": ["cflinuxfs3"],
            })
    return {
        "language": "dotnet-core",
        "default_versions": [{"name": "libgdiplus", "version": "4.2"}],
        "dependencies": deps,
    }


@pytest.fixture
def catalog():
    return VersionCatalog.from_manifest_data(manifest_data(), "cflinuxfs3")


@pytest.fixture
def manifest_file(tmp_path):
    import yaml

    path = tmp_path / "manifest.yml"
    path.write_text(yaml.safe_dump(manifest_data()), encoding="utf-8")
    return str(path)


@pytest.fixture(autouse=True)
def restore_constants():
    """Tests (and the CLI) mutate Constants; put the defaults back afterwards."""
    saved = {k: v for k, v in vars(Constants).items() if k.isupper()}
    yield
    for key, value in saved.items():
        setattr(Constants, key, value)


def write_file(root, rel, content):
    path = os.path.join(str(root), rel)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(textwrap.dedent(content).lstrip())
    return path


def csproj(target="netcoreapp2.1", sdk="Microsoft.NET.Sdk.Web", properties="", items=""):
    """Minimal SDK-style project file."""
    return f"""
    <Project Sdk="{sdk}">
      <PropertyGroup>
        <TargetFramework>{target}</TargetFramework>
        {properties}
      </PropertyGroup>
      <ItemGroup>
        {items}
      </ItemGroup>
    </Project>
    """


def runtimeconfig(frameworks, apply_patches=None, included=False):
    """Generated runtime config; ``frameworks`` maps name -> version."""
    entries = [{"name": n, "version": v} for n, v in frameworks.items()]
    options = {"tfm": "netcoreapp2.1"}
    if included:
        options["includedFrameworks"] = entries
    elif len(entries) == 1:
        options["framework"] = entries[0]
    else:
        options["frameworks"] = entries
    if apply_patches is not None:
        options["applyPatches"] = apply_patches
    return json.dumps({"runtimeOptions": options}, indent=2)


@pytest.fixture(autouse=True)
def drop_staging_handlers():
    """Remove handlers the CLI attaches to the root logger."""
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_buildpack_handler", False):
            root.removeHandler(handler)
