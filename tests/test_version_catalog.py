"""Tests for the manifest-backed version catalog."""

import pytest

from common.errors import BuildpackError
from versioning.catalog import VersionCatalog, load_catalog, parse_version

from conftest import SDK_VERSIONS


class TestParseVersion:
    def test_semver(self):
        assert str(parse_version("2.1.502")) == "2.1.502"

    def test_coerces_short_versions(self):
        v = parse_version("4.2")
        assert (v.major, v.minor, v.patch) == (4, 2, 0)

    def test_garbage_returns_none(self):
        assert parse_version("not-a-version") is None


class TestVersionCatalog:
    """Catalog lookups and manifest loading."""

    def test_versions_sorted_by_semver(self):
        catalog = VersionCatalog.from_pairs([
            ("dotnet-runtime", "2.2.10"),
            ("dotnet-runtime", "2.2.9"),
            ("dotnet-runtime", "2.2.10-preview1"),
        ])
        assert catalog.versions("dotnet-runtime") == ["2.2.9", "2.2.10-preview1", "2.2.10"]

    def test_unparsable_versions_are_skipped(self):
        catalog = VersionCatalog.from_pairs([("dotnet-sdk", "2.1.502"), ("dotnet-sdk", "nightly")])
        assert catalog.versions("dotnet-sdk") == ["2.1.502"]

    def test_unknown_name_is_empty(self, catalog):
        assert catalog.versions("dotnet-nothing") == []

    def test_entry_lookup(self, catalog):
        entry = catalog.entry("dotnet-sdk", "2.1.502")
        assert entry is not None
        assert entry.uri.endswith("dotnet-sdk.2.1.502.linux-amd64.tar.xz")
        assert catalog.entry("dotnet-sdk", "9.9.9") is None

    def test_default_versions(self, catalog):
        assert catalog.default_version("libgdiplus") == "4.2"
        assert catalog.default_version("dotnet-sdk") is None

    def test_stack_filter(self):
        data = {"dependencies": [
            {"name": "dotnet-sdk", "version": "2.1.502", "cf_stacks": ["cflinuxfs2"]},
            {"name": "dotnet-sdk", "version": "2.1.504", "cf_stacks": ["cflinuxfs3"]},
            {"name": "dotnet-sdk", "version": "2.2.102"},
        ]}
        catalog = VersionCatalog.from_manifest_data(data, "cflinuxfs3")
        assert catalog.versions("dotnet-sdk") == ["2.1.504", "2.2.102"]

    def test_malformed_dependencies_are_ignored(self):
        data = {"dependencies": [{"name": "dotnet-sdk"}, "junk", {"name": "dotnet-sdk", "version": "2.1.502"}]}
        catalog = VersionCatalog.from_manifest_data(data)
        assert catalog.versions("dotnet-sdk") == ["2.1.502"]

    def test_load_catalog(self, manifest_file):
        catalog = load_catalog(manifest_file, "cflinuxfs3")
        assert catalog.versions("dotnet-sdk") == SDK_VERSIONS

    def test_load_catalog_other_stack_is_empty(self, manifest_file):
        catalog = load_catalog(manifest_file, "cflinuxfs4")
        assert catalog.versions("dotnet-sdk") == []

    def test_missing_manifest(self, tmp_path):
        with pytest.raises(BuildpackError, match="not found"):
            load_catalog(str(tmp_path / "manifest.yml"))

    def test_invalid_manifest(self, tmp_path):
        path = tmp_path / "manifest.yml"
        path.write_text("dependencies: [unclosed", encoding="utf-8")
        with pytest.raises(BuildpackError, match="Couldn't parse"):
            load_catalog(str(path))

    def test_manifest_must_be_mapping(self, tmp_path):
        path = tmp_path / "manifest.yml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(BuildpackError, match="mapping"):
            load_catalog(str(path))
