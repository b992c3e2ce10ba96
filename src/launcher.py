"""Launch the application under a shutdown relay.

The platform delivers SIGTERM to the process it started. The supervisor
forwards that signal to the application, keeps relaying its output, and waits
(bounded) for it to exit on its own before killing it. Shutdown counts as
graceful when the application exits within the bound after the signal, and,
when a shutdown marker is configured, printed that marker first.
"""
from __future__ import annotations

import logging
import signal
import subprocess
import sys
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, TextIO

from constants import Constants

logger = logging.getLogger(__name__)

RELAYED_SIGNALS = (signal.SIGTERM, signal.SIGINT)
_POLL_INTERVAL_SEC = 0.1


@dataclass(frozen=True)
class ShutdownOutcome:
    """How the supervised process ended."""
    returncode: Optional[int]
    signal_forwarded: Optional[int]
    marker_expected: bool
    marker_seen: bool
    killed: bool

    @property
    def graceful(self) -> bool:
        if self.killed or self.returncode is None:
            return False
        if self.signal_forwarded is None:
            return self.returncode == 0
        if self.marker_expected:
            return self.marker_seen
        return self.returncode in (0, -self.signal_forwarded, 128 + self.signal_forwarded)

    @property
    def exit_code(self) -> int:
        """Exit status the launcher itself should report."""
        if self.signal_forwarded is not None:
            return 0 if self.graceful else 1
        if self.returncode is None:
            return 1
        if self.returncode < 0:
            return 128 - self.returncode
        return self.returncode


class ProcessSupervisor:
    """Scoped owner of the application process.

    On every exit from the ``with`` block the child is signalled (if still
    running), waited for, killed after ``shutdown_timeout`` and reaped, and the
    previous signal handlers are restored.
    """

    def __init__(
        self,
        argv: List[str],
        *,
        cwd: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        shutdown_timeout: Optional[float] = None,
        shutdown_marker: Optional[str] = None,
        output: Optional[TextIO] = None,
    ):
        self.argv = argv
        self.cwd = cwd
        self.env = env
        self.shutdown_timeout = Constants.SHUTDOWN_TIMEOUT_SEC if shutdown_timeout is None else shutdown_timeout
        self.shutdown_marker = shutdown_marker if shutdown_marker is not None else Constants.SHUTDOWN_MARKER
        self.output = output or sys.stdout
        self.process: Optional[subprocess.Popen] = None
        self._pump: Optional[threading.Thread] = None
        self._previous_handlers: Dict[int, object] = {}
        self._forwarded: Optional[int] = None
        self._killed = False
        self._marker_seen = threading.Event()
        self._shutdown_requested = threading.Event()
        self._output_lock = threading.Lock()

    def __enter__(self) -> "ProcessSupervisor":
        # handlers must be in place before the child can report readiness
        self._install_handlers()
        try:
            self.process = subprocess.Popen(  # noqa: S603
                self.argv,
                cwd=self.cwd,
                env=self.env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                bufsize=1,
            )
        except OSError:
            self._restore_handlers()
            raise
        logger.debug("Started pid %s: %s", self.process.pid, " ".join(self.argv))
        self._pump = threading.Thread(target=self._relay_output, name="output-relay", daemon=True)
        self._pump.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            self._stop()
        finally:
            self._restore_handlers()
            if self._pump is not None:
                self._pump.join(timeout=self.shutdown_timeout)
        return False

    def _relay_output(self) -> None:
        assert self.process is not None and self.process.stdout is not None
        for line in self.process.stdout:
            with self._output_lock:
                self.output.write(line)
                self.output.flush()
            if self.shutdown_marker and self.shutdown_marker in line:
                self._marker_seen.set()
        self.process.stdout.close()

    def _install_handlers(self) -> None:
        # signal.signal only works from the main thread
        if threading.current_thread() is not threading.main_thread():
            return
        for sig in RELAYED_SIGNALS:
            self._previous_handlers[sig] = signal.signal(sig, self._on_signal)

    def _restore_handlers(self) -> None:
        for sig, handler in self._previous_handlers.items():
            signal.signal(sig, handler)
        self._previous_handlers.clear()

    def _on_signal(self, signum, _frame) -> None:
        logger.info("Received signal %s, forwarding to application", signum)
        self.forward(signum)
        self._shutdown_requested.set()

    def forward(self, signum: int) -> None:
        """Deliver ``signum`` to the application if it is still running."""
        if self.process is None or self.process.poll() is not None:
            return
        self._forwarded = signum
        self.process.send_signal(signum)

    def wait(self, timeout: Optional[float] = None) -> int:
        """Block until the application exits.

        Raises:
            subprocess.TimeoutExpired: when ``timeout`` elapses first.
        """
        assert self.process is not None
        return self.process.wait(timeout=timeout)

    def supervise(self) -> Optional[int]:
        """Wait for the application to exit on its own or after a relayed signal.

        Once a shutdown signal has reached the launcher the remaining wait is
        bounded by ``shutdown_timeout``; past it the application is killed.
        """
        assert self.process is not None
        while not self._shutdown_requested.is_set():
            try:
                return self.process.wait(timeout=_POLL_INTERVAL_SEC)
            except subprocess.TimeoutExpired:
                continue
        self._stop()
        return self.process.returncode

    def _stop(self) -> None:
        if self.process is None:
            return
        if self.process.poll() is None and self._forwarded is None:
            self.forward(signal.SIGTERM)
        try:
            self.process.wait(timeout=self.shutdown_timeout)
        except subprocess.TimeoutExpired:
            logger.warning(
                "Application did not exit within %s seconds of the shutdown signal; killing it",
                self.shutdown_timeout,
            )
            self._killed = True
            self.process.kill()
            self.process.wait()

    @property
    def outcome(self) -> ShutdownOutcome:
        """Outcome so far; final once the ``with`` block has exited."""
        return ShutdownOutcome(
            returncode=self.process.returncode if self.process else None,
            signal_forwarded=self._forwarded,
            marker_expected=bool(self.shutdown_marker),
            marker_seen=self._marker_seen.is_set(),
            killed=self._killed,
        )


def run_supervised(
    argv: List[str],
    *,
    cwd: Optional[str] = None,
    shutdown_timeout: Optional[float] = None,
    shutdown_marker: Optional[str] = None,
    output: Optional[TextIO] = None,
) -> ShutdownOutcome:
    """Run ``argv`` to completion under the relay and report how it ended."""
    with ProcessSupervisor(
        argv,
        cwd=cwd,
        shutdown_timeout=shutdown_timeout,
        shutdown_marker=shutdown_marker,
        output=output,
    ) as supervisor:
        supervisor.supervise()
    outcome = supervisor.outcome
    if outcome.signal_forwarded is not None:
        if outcome.graceful:
            logger.info("Application shut down gracefully")
        else:
            logger.warning("Application did not shut down gracefully (exit code %s)", outcome.returncode)
    return outcome
