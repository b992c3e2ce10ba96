"""Logging helpers shared across the buildpack.

Staging output follows the platform buildpack conventions: progress lines are
prefixed with an arrow, warnings and errors are indented and tagged. Debug
records carry structured context supplied through ``extra_context``.
"""
from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

from constants import Constants

_INDENT = " " * 7
_CONTEXT_KEYS = ("event", "component", "action", "target", "outcome")


class StagingFormatter(logging.Formatter):
    """Render records the way buildpack staging logs are read by the platform."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.levelno >= logging.ERROR:
            text = f"{_INDENT}**ERROR** {message}"
        elif record.levelno >= logging.WARNING:
            text = f"{_INDENT}**WARNING** {message}"
        elif record.levelno >= logging.INFO:
            text = f"-----> {message}"
        else:
            context = " ".join(
                f"{key}={getattr(record, key)}"
                for key in _CONTEXT_KEYS
                if getattr(record, key, None) is not None
            )
            text = f"[DEBUG] {record.name}: {message}"
            if context:
                text = f"{text} ({context})"
        if record.exc_info:
            text = f"{text}\n{self.formatException(record.exc_info)}"
        return text


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once for staging output.

    The level is taken from the argument, then the environment, then INFO.
    """
    level_name = (level or os.environ.get(Constants.ENV_LOG_LEVEL) or "INFO").upper()
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_buildpack_handler", False):
            root.removeHandler(handler)
    handler = logging.StreamHandler()
    handler.setFormatter(StagingFormatter())
    handler._buildpack_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(getattr(logging, level_name, logging.INFO))


def add_file_handler(path: str) -> None:
    """Mirror log output to a file with timestamps."""
    file_handler = logging.FileHandler(path)
    file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    logging.getLogger().addHandler(file_handler)


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when the logger would emit DEBUG records."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**kwargs: Any) -> Dict[str, Any]:
    """Build an ``extra=`` mapping, dropping empty values."""
    return {key: value for key, value in kwargs.items() if value is not None}


def safe_url(url: str) -> str:
    """Strip credentials and query strings from a URL before logging it."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    netloc = parts.hostname or ""
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    return urlunsplit((parts.scheme, netloc, parts.path, "", ""))


class Timer:
    """Context manager measuring elapsed wall time."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.monotonic()
        return self

    def __exit__(self, *exc: Any) -> None:
        self._end = time.monotonic()

    def duration_ms(self) -> int:
        """Elapsed milliseconds, measured up to now while still running."""
        end = self._end if self._end is not None else time.monotonic()
        return int((end - self._start) * 1000)
