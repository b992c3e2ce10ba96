"""Shared HTTP helpers used by the installer.

Encapsulates request/timeout error handling and retry so callers avoid
duplicating try/except blocks.
"""
from __future__ import annotations

import hashlib
import logging
import os
import time
from typing import Optional

import requests

from common.errors import InstallError
from common.logging_utils import Timer, extra_context, is_debug_enabled, safe_url
from constants import Constants

logger = logging.getLogger(__name__)


def _backoff(attempt: int) -> None:
    time.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** attempt))


def download_file(url: str, dest: str, *, sha256: Optional[str] = None) -> str:
    """Stream ``url`` to ``dest`` with retries, verifying the checksum when given.

    Server errors, timeouts and connection errors are retried up to
    ``Constants.HTTP_RETRY_MAX`` times. Client errors and checksum mismatches
    are not.

    Raises:
        InstallError: when the file could not be fetched or verified.
    """
    safe_target = safe_url(url)
    last_error = None
    for attempt in range(Constants.HTTP_RETRY_MAX):
        with Timer() as t:
            if is_debug_enabled(logger):
                logger.debug("HTTP request", extra=extra_context(
                    event="http_request", component="http_client", action="GET",
                    target=safe_target, outcome=f"attempt {attempt + 1}"
                ))
            try:
                with requests.get(url, stream=True, timeout=Constants.REQUEST_TIMEOUT) as res:
                    if res.status_code >= 500:
                        last_error = f"HTTP {res.status_code}"
                        _backoff(attempt)
                        continue
                    if res.status_code != 200:
                        raise InstallError(f"Download of {safe_target} failed: HTTP {res.status_code}")
                    digest = hashlib.sha256()
                    with open(dest, "wb") as fh:
                        for chunk in res.iter_content(chunk_size=Constants.DOWNLOAD_CHUNK_SIZE):
                            if chunk:
                                fh.write(chunk)
                                digest.update(chunk)
            except requests.Timeout:
                last_error = "timeout"
                _backoff(attempt)
                continue
            except requests.RequestException as exc:  # includes ConnectionError
                last_error = str(exc)
                _backoff(attempt)
                continue
            if is_debug_enabled(logger):
                logger.debug("HTTP response ok", extra=extra_context(
                    event="http_response", component="http_client", action="GET",
                    target=safe_target, outcome=f"{t.duration_ms()}ms"
                ))
        if sha256 and digest.hexdigest() != sha256.lower():
            os.remove(dest)
            raise InstallError(f"Checksum mismatch for {safe_target}")
        return dest

    raise InstallError(
        f"Download of {safe_target} failed after {Constants.HTTP_RETRY_MAX} attempts: {last_error}"
    )
