"""Tests for the command line entry point."""

import json
import sys
from unittest.mock import patch

import pytest
import yaml

from args import parse_args
from buildpack import run
from constants import Constants, ExitCodes
from launcher import ShutdownOutcome

from conftest import csproj, runtimeconfig, write_file


@pytest.fixture
def app_dir(tmp_path):
    write_file(tmp_path, "app/simple.csproj", csproj("netcoreapp2.1"))
    return str(tmp_path / "app")


class TestParseArgs:
    def test_requires_subcommand(self):
        with pytest.raises(SystemExit):
            parse_args([])

    def test_loglevel_is_uppercased(self):
        args = parse_args(["detect", ".", "--loglevel", "debug"])
        assert args.LOG_LEVEL == "DEBUG"

    def test_launch_collects_remainder(self):
        args = parse_args(["launch", "--timeout", "5", "--", "dotnet", "app.dll", "--urls", "x"])
        assert args.SHUTDOWN_TIMEOUT == 5.0
        assert args.LAUNCH_COMMAND[-3:] == ["app.dll", "--urls", "x"]

    def test_supply_requires_deps_dir(self):
        with pytest.raises(SystemExit):
            parse_args(["supply", "."])


class TestCommands:
    """Subcommands and exit codes."""

    def test_detect(self, app_dir, capsys):
        assert run(["detect", app_dir]) == ExitCodes.SUCCESS.value
        assert capsys.readouterr().out.strip() == "source-build"

    def test_detect_failure(self, tmp_path):
        assert run(["detect", str(tmp_path)]) == ExitCodes.DETECTION_ERROR.value

    def test_plan(self, app_dir, manifest_file, capsys):
        assert run(["plan", app_dir, "-m", manifest_file]) == ExitCodes.SUCCESS.value
        data = json.loads(capsys.readouterr().out)
        assert data["versions"] == {
            "dotnet-sdk": "2.1.504",
            "dotnet-runtime": "2.1.8",
            "dotnet-aspnetcore": "2.1.8",
        }
        assert data["start_command"].startswith("cd dotnet_publish && exec dotnet-buildpack launch -- dotnet")

    def test_plan_resolution_failure(self, app_dir, manifest_file):
        write_file(app_dir, "buildpack.yml", "dotnet-core:\n  sdk: 1.0.0\n")
        assert run(["plan", app_dir, "-m", manifest_file]) == ExitCodes.RESOLUTION_ERROR.value

    def test_plan_with_precedence_flag(self, app_dir, manifest_file, capsys):
        write_file(app_dir, "global.json", '{"sdk": {"version": "2.1.502"}}')
        write_file(app_dir, "buildpack.yml", "dotnet-core:\n  sdk: 2.2.x\n")
        code = run(["plan", app_dir, "-m", manifest_file,
                    "--precedence", "global-manifest,override-file,project-metadata,buildpack-default"])
        assert code == ExitCodes.SUCCESS.value
        assert json.loads(capsys.readouterr().out)["versions"]["dotnet-sdk"] == "2.1.502"

    def test_unknown_precedence_source(self, app_dir, manifest_file):
        code = run(["plan", app_dir, "-m", manifest_file, "--precedence", "override-file,nuget"])
        assert code == ExitCodes.FILE_ERROR.value

    def test_missing_manifest(self, app_dir, tmp_path):
        assert run(["plan", app_dir, "-m", str(tmp_path / "nope.yml")]) == ExitCodes.FILE_ERROR.value

    def test_release_to_file(self, tmp_path, manifest_file):
        write_file(tmp_path, "app/fdd.runtimeconfig.json", runtimeconfig({"Microsoft.NETCore.App": "2.1.6"}))
        out = tmp_path / "release.yml"
        code = run(["release", str(tmp_path / "app"), "-m", manifest_file, "-o", str(out)])
        assert code == ExitCodes.SUCCESS.value
        web = yaml.safe_load(out.read_text(encoding="utf-8"))["default_process_types"]["web"]
        assert web.startswith("cd . && exec dotnet-buildpack launch -- dotnet fdd.dll")

    def test_supply_skip_build(self, app_dir, manifest_file, tmp_path):
        deps = tmp_path / "deps"
        with patch("layout.installer.download_file") as mock_download, \
                patch("layout.installer._extract") as mock_extract:
            code = run(["supply", app_dir, "-m", manifest_file, "-d", str(deps), "--skip-build"])
        assert code == ExitCodes.SUCCESS.value
        assert mock_download.call_count == 3
        assert mock_extract.call_count == 3

    def test_latest_version(self, manifest_file, capsys):
        assert run(["latest-version", "dotnet-runtime", "2.1.x", "-m", manifest_file]) == 0
        assert capsys.readouterr().out.strip() == "2.1.8"

    def test_latest_version_not_found(self, manifest_file):
        code = run(["latest-version", "dotnet-runtime", "1.0.x", "-m", manifest_file])
        assert code == ExitCodes.RESOLUTION_ERROR.value

    def test_latest_version_unknown_name(self, manifest_file):
        assert run(["latest-version", "nodejs", "10.x", "-m", manifest_file]) == ExitCodes.FILE_ERROR.value

    def test_launch_without_command(self):
        assert run(["launch"]) == 2

    def test_launch_passes_settings(self):
        outcome = ShutdownOutcome(0, None, False, False, False)
        with patch("buildpack.run_supervised", return_value=outcome) as mock_run:
            code = run(["launch", "--timeout", "3", "--shutdown-marker", "bye", "--", sys.executable, "-V"])
        assert code == 0
        mock_run.assert_called_once_with([sys.executable, "-V"])
        assert Constants.SHUTDOWN_TIMEOUT_SEC == 3.0
        assert Constants.SHUTDOWN_MARKER == "bye"
