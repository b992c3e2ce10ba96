"""Tests for the shutdown relay."""

import io
import os
import signal
import sys
import textwrap
import threading
import time

import pytest

from launcher import ProcessSupervisor, ShutdownOutcome, run_supervised

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals required")

GRACEFUL_APP = textwrap.dedent("""
    import signal, sys, time

    def stop(signum, frame):
        print("Goodbye, cruel world!", flush=True)
        sys.exit(0)

    signal.signal(signal.SIGTERM, stop)
    print("ready", flush=True)
    while True:
        time.sleep(0.05)
""")

STUBBORN_APP = textwrap.dedent("""
    import signal, time
    signal.signal(signal.SIGTERM, signal.SIG_IGN)
    print("ready", flush=True)
    time.sleep(8)
""")


def wait_for(predicate, timeout=10.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return False


class TestShutdownOutcome:
    """Graceful classification."""

    def test_clean_exit_without_signal(self):
        outcome = ShutdownOutcome(0, None, False, False, False)
        assert outcome.graceful
        assert outcome.exit_code == 0

    def test_failed_exit_without_signal(self):
        outcome = ShutdownOutcome(3, None, False, False, False)
        assert not outcome.graceful
        assert outcome.exit_code == 3

    def test_killed_by_signal_without_forwarding(self):
        assert ShutdownOutcome(-9, None, False, False, False).exit_code == 137

    def test_default_termination_counts_as_graceful(self):
        assert ShutdownOutcome(-signal.SIGTERM, signal.SIGTERM, False, False, False).graceful

    def test_marker_required_when_configured(self):
        assert not ShutdownOutcome(0, signal.SIGTERM, True, False, False).graceful
        assert ShutdownOutcome(0, signal.SIGTERM, True, True, False).graceful

    def test_killed_is_never_graceful(self):
        outcome = ShutdownOutcome(-9, signal.SIGTERM, False, False, True)
        assert not outcome.graceful
        assert outcome.exit_code == 1


class TestProcessSupervisor:
    """Signal forwarding against real child processes."""

    def test_output_is_relayed(self):
        out = io.StringIO()
        outcome = run_supervised([sys.executable, "-c", "print('hello')"], shutdown_timeout=5)
        assert outcome.returncode == 0
        with ProcessSupervisor([sys.executable, "-c", "print('hello')"], output=out) as sup:
            sup.wait(timeout=10)
        assert "hello" in out.getvalue()
        assert sup.outcome.signal_forwarded is None

    def test_forwarded_sigterm_with_marker(self):
        out = io.StringIO()
        with ProcessSupervisor([sys.executable, "-c", GRACEFUL_APP], output=out,
                               shutdown_timeout=10, shutdown_marker="Goodbye, cruel world!") as sup:
            assert wait_for(lambda: "ready" in out.getvalue())
            sup.forward(signal.SIGTERM)
            sup.wait(timeout=10)
        outcome = sup.outcome
        assert outcome.signal_forwarded == signal.SIGTERM
        assert outcome.marker_seen
        assert outcome.graceful
        assert outcome.exit_code == 0
        assert "Goodbye, cruel world!" in out.getvalue()

    def test_stubborn_child_is_killed_after_timeout(self):
        out = io.StringIO()
        start = time.monotonic()
        with ProcessSupervisor([sys.executable, "-c", STUBBORN_APP], output=out, shutdown_timeout=0.5) as sup:
            assert wait_for(lambda: "ready" in out.getvalue())
        assert time.monotonic() - start < 10
        outcome = sup.outcome
        assert outcome.killed
        assert not outcome.graceful
        assert sup.process.poll() is not None

    def test_exit_from_block_terminates_child(self):
        out = io.StringIO()
        with ProcessSupervisor([sys.executable, "-c", GRACEFUL_APP], output=out, shutdown_timeout=10) as sup:
            assert wait_for(lambda: "ready" in out.getvalue())
        assert sup.outcome.graceful
        assert sup.process.returncode == 0

    def test_handlers_are_restored(self):
        before = signal.getsignal(signal.SIGTERM)
        with ProcessSupervisor([sys.executable, "-c", "pass"], output=io.StringIO()) as sup:
            sup.wait(timeout=10)
        assert signal.getsignal(signal.SIGTERM) == before


def signal_when_ready(out, signum=signal.SIGTERM):
    """Send ``signum`` to this process once the child has printed ``ready``."""
    def deliver():
        if wait_for(lambda: "ready" in out.getvalue()):
            os.kill(os.getpid(), signum)

    sender = threading.Thread(target=deliver, daemon=True)
    sender.start()
    return sender


class TestSignalRelay:
    """Signals delivered to the launcher itself, as the platform sends them."""

    def test_graceful_app_prints_marker(self):
        out = io.StringIO()
        sender = signal_when_ready(out)
        outcome = run_supervised([sys.executable, "-c", GRACEFUL_APP], shutdown_timeout=10,
                                 shutdown_marker="Goodbye, cruel world!", output=out)
        sender.join(timeout=5)
        assert outcome.signal_forwarded == signal.SIGTERM
        assert outcome.marker_seen
        assert outcome.graceful
        assert outcome.exit_code == 0
        assert "Goodbye, cruel world!" in out.getvalue()

    def test_stubborn_app_is_killed_within_timeout(self):
        out = io.StringIO()
        sender = signal_when_ready(out)
        start = time.monotonic()
        outcome = run_supervised([sys.executable, "-c", STUBBORN_APP], shutdown_timeout=1.0, output=out)
        elapsed = time.monotonic() - start
        sender.join(timeout=5)
        assert elapsed < 5
        assert outcome.signal_forwarded == signal.SIGTERM
        assert outcome.killed
        assert not outcome.graceful
        assert outcome.exit_code == 1

    def test_sigint_is_forwarded(self):
        out = io.StringIO()
        sender = signal_when_ready(out, signal.SIGINT)
        outcome = run_supervised([sys.executable, "-c", GRACEFUL_APP], shutdown_timeout=10, output=out)
        sender.join(timeout=5)
        assert outcome.signal_forwarded == signal.SIGINT
        assert not outcome.killed
