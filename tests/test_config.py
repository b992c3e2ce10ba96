"""Tests for YAML configuration and CLI overrides."""

import argparse
import logging

import pytest

from cli_config import apply_cli_overrides, load_config, validate_precedence
from common.logging_utils import StagingFormatter, extra_context
from constants import Constants, _load_yaml_config, apply_config


def namespace(**kwargs):
    return argparse.Namespace(**kwargs)


class TestYamlConfig:
    """Config file discovery and application."""

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("stack: cflinuxfs4\nhttp_retry_max: 5\n", encoding="utf-8")
        assert _load_yaml_config(str(path)) == {"stack": "cflinuxfs4", "http_retry_max": 5}

    def test_env_path(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yml"
        path.write_text("shutdown_timeout_sec: 2.5\n", encoding="utf-8")
        monkeypatch.setenv(Constants.ENV_CONFIG, str(path))
        assert _load_yaml_config() == {"shutdown_timeout_sec": 2.5}

    def test_missing_file_is_empty(self, tmp_path):
        assert _load_yaml_config(str(tmp_path / "nope.yml")) == {}

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("stack: [a\n", encoding="utf-8")
        with pytest.raises(ValueError, match="Couldn't parse config file"):
            _load_yaml_config(str(path))

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("- a\n", encoding="utf-8")
        with pytest.raises(ValueError, match="mapping"):
            _load_yaml_config(str(path))

    def test_apply_config_casts_values(self):
        apply_config({"request_timeout": "12", "shutdown_marker": "bye", "source_precedence": ["override-file"]})
        assert Constants.REQUEST_TIMEOUT == 12
        assert Constants.SHUTDOWN_MARKER == "bye"
        assert Constants.SOURCE_PRECEDENCE == ["override-file"]

    def test_apply_config_unknown_key(self, caplog):
        with caplog.at_level(logging.WARNING):
            apply_config({"colour": "blue"})
        assert "Ignoring unknown config key: colour" in caplog.text

    def test_precedence_must_be_list(self):
        with pytest.raises(ValueError, match="must be a list"):
            apply_config({"source_precedence": "override-file"})


class TestCliOverrides:
    def test_cli_wins_over_config(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("stack: cflinuxfs2\nshutdown_timeout_sec: 30\n", encoding="utf-8")
        args = namespace(CONFIG=str(path), STACK="cflinuxfs3", SHUTDOWN_TIMEOUT=None, PRECEDENCE=None)
        load_config(args)
        apply_cli_overrides(args)
        assert Constants.DEFAULT_STACK == "cflinuxfs3"
        assert Constants.SHUTDOWN_TIMEOUT_SEC == 30.0

    def test_precedence_flag(self):
        apply_cli_overrides(namespace(PRECEDENCE=" project-metadata , override-file "))
        assert Constants.SOURCE_PRECEDENCE == ["project-metadata", "override-file"]

    def test_validate_precedence(self):
        validate_precedence(["override-file", "buildpack-default"])
        with pytest.raises(ValueError, match="nuget"):
            validate_precedence(["override-file", "nuget"])


class TestStagingFormatter:
    """Buildpack-style output lines."""

    def _format(self, level, msg, **extra):
        record = logging.LogRecord("buildpack", level, __file__, 1, msg, None, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return StagingFormatter().format(record)

    def test_info(self):
        assert self._format(logging.INFO, "Installing dotnet-sdk 2.1.504") == "-----> Installing dotnet-sdk 2.1.504"

    def test_warning(self):
        assert self._format(logging.WARNING, "careful") == "       **WARNING** careful"

    def test_error(self):
        assert self._format(logging.ERROR, "broken") == "       **ERROR** broken"

    def test_debug_context(self):
        text = self._format(logging.DEBUG, "Resolved", **extra_context(event="resolve", target=None, outcome="2.1.8"))
        assert text == "[DEBUG] buildpack: Resolved (event=resolve outcome=2.1.8)"
