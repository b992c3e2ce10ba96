"""Constants used in the project."""

import logging
import os
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    RESOLUTION_ERROR = 3
    DETECTION_ERROR = 4


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    # Application files
    MANIFEST_FILE = "manifest.yml"
    BUILDPACK_YML_FILE = "buildpack.yml"
    GLOBAL_JSON_FILE = "global.json"
    DEPLOYMENT_FILE = ".deployment"
    RUNTIMECONFIG_SUFFIX = ".runtimeconfig.json"
    DEPS_JSON_SUFFIX = ".deps.json"
    PROJECT_EXTENSIONS = (".csproj", ".fsproj", ".vbproj")
    SELF_CONTAINED_MARKER = "libcoreclr.so"
    BUILDPACK_YML_KEY = "dotnet-core"

    # Staging layout
    DEFAULT_STACK = "cflinuxfs3"
    DOTNET_ROOT_DIR = "dotnet"
    PUBLISH_DIR = "dotnet_publish"
    INSTALLED_MARKER_DIR = ".installed"
    BUILD_CONFIGURATION = "Release"
    SERVER_URLS_ARG = "http://0.0.0.0:${PORT}"
    LAUNCHER_COMMAND = "dotnet-buildpack launch"

    # Resolution
    SOURCE_PRECEDENCE = [
        "override-file",
        "generated-runtime-config",
        "project-metadata",
        "global-manifest",
        "buildpack-default",
    ]

    # Logging
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "DOTNET_BUILDPACK_LOG_LEVEL"
    ENV_CONFIG = "DOTNET_BUILDPACK_CONFIG"

    # HTTP
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    DOWNLOAD_CHUNK_SIZE = 64 * 1024

    # Process supervision
    SHUTDOWN_TIMEOUT_SEC = 10.0
    SHUTDOWN_MARKER: Optional[str] = None


# Config keys accepted in the YAML file, mapped to Constants attributes.
_CONFIG_KEYS = {
    "stack": ("DEFAULT_STACK", str),
    "request_timeout": ("REQUEST_TIMEOUT", int),
    "http_retry_max": ("HTTP_RETRY_MAX", int),
    "http_retry_base_delay_sec": ("HTTP_RETRY_BASE_DELAY_SEC", float),
    "shutdown_timeout_sec": ("SHUTDOWN_TIMEOUT_SEC", float),
    "shutdown_marker": ("SHUTDOWN_MARKER", str),
    "source_precedence": ("SOURCE_PRECEDENCE", list),
}


def _default_config_paths():
    """Return candidate config locations in priority order."""
    paths = []
    env_path = os.environ.get(Constants.ENV_CONFIG)
    if env_path:
        paths.append(env_path)
    paths.append(os.path.join(os.path.expanduser("~"), ".config", "dotnet-buildpack", "config.yml"))
    return paths


def _load_yaml_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load the buildpack YAML config from an explicit path or default locations.

    Returns an empty dict when no config file exists. A file that exists but
    cannot be parsed raises, since silently running with defaults would hide
    the mistake.
    """
    import yaml  # pylint: disable=import-outside-toplevel

    candidates = [path] if path else _default_config_paths()
    for candidate in candidates:
        if not candidate or not os.path.isfile(candidate):
            continue
        with open(candidate, "r", encoding="utf-8") as fh:
            try:
                data = yaml.safe_load(fh) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Couldn't parse config file {candidate}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Config file {candidate} must contain a mapping")
        logger.debug("Loaded config from %s", candidate)
        return data
    return {}


def apply_config(cfg: Dict[str, Any]) -> None:
    """Apply known config keys onto Constants; unknown keys are reported and ignored."""
    for key, value in cfg.items():
        target = _CONFIG_KEYS.get(key)
        if target is None:
            logger.warning("Ignoring unknown config key: %s", key)
            continue
        attr, cast = target
        if cast is list:
            if not isinstance(value, list):
                raise ValueError(f"Config key {key} must be a list")
            setattr(Constants, attr, [str(v) for v in value])
        else:
            setattr(Constants, attr, cast(value))
