"""CLI configuration overrides for runtime tunables.

Extracted from buildpack.py to keep the entrypoint slim. Loads the YAML
config file first, then applies CLI flags with highest precedence.
"""

from __future__ import annotations

import logging

from constants import Constants, _load_yaml_config, apply_config
from versioning.models import VersionRequestSource

logger = logging.getLogger(__name__)


def load_config(args) -> None:
    """Apply the YAML config (explicit --config or default locations) onto Constants."""
    cfg = _load_yaml_config(getattr(args, "CONFIG", None))
    if cfg:
        apply_config(cfg)


def apply_cli_overrides(args) -> None:
    """Apply CLI overrides for tunables; these win over the config file."""
    if getattr(args, "STACK", None):
        Constants.DEFAULT_STACK = args.STACK
    if getattr(args, "SHUTDOWN_TIMEOUT", None) is not None:
        Constants.SHUTDOWN_TIMEOUT_SEC = float(args.SHUTDOWN_TIMEOUT)
    if getattr(args, "SHUTDOWN_MARKER", None):
        Constants.SHUTDOWN_MARKER = args.SHUTDOWN_MARKER
    precedence = getattr(args, "PRECEDENCE", None)
    if precedence:
        order = [p.strip() for p in precedence.split(",") if p.strip()]
        logger.debug("Source precedence overridden: %s", order)
        Constants.SOURCE_PRECEDENCE = order
    validate_precedence(Constants.SOURCE_PRECEDENCE)


def validate_precedence(order) -> None:
    """Reject precedence lists naming unknown sources.

    Raises:
        ValueError: when an entry is not a known source name.
    """
    known = {s.value for s in VersionRequestSource}
    unknown = [name for name in order if name not in known]
    if unknown:
        raise ValueError(
            f"Unknown version sources in precedence: {', '.join(unknown)} "
            f"(expected some of: {', '.join(sorted(known))})"
        )
