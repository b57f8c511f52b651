"""
Unit tests for deadline enforcement.

Tests the one-shot cancellation token, cooperative mode and the
APScheduler-driven DeadlineTimer.
"""

import time
from datetime import UTC, datetime, timedelta
from unittest.mock import Mock

import pytest

from replica_watch.watcher import CancellationToken, DeadlineTimer

START = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


class FakeClock:
    def __init__(self, now=START):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class TestCancellationToken:
    """Test CancellationToken."""

    def test_initial_state(self):
        token = CancellationToken()

        assert not token.cancelled
        assert not token.is_cooperative
        assert token.reason is None

    def test_cancel_once(self):
        """Only the first cancel reports having cancelled."""
        token = CancellationToken()

        assert token.cancel("deadline") is True
        assert token.cancel("again") is False
        assert token.cancelled
        assert token.reason == "deadline"

    def test_cooperative_block(self):
        token = CancellationToken()

        with token.cooperative():
            assert token.is_cooperative
            with token.cooperative():
                assert token.is_cooperative
            assert token.is_cooperative

        assert not token.is_cooperative

    def test_cooperative_reset_on_error(self):
        token = CancellationToken()

        with pytest.raises(RuntimeError):
            with token.cooperative():
                raise RuntimeError("scan failed")

        assert not token.is_cooperative


class TestDeadlineTimer:
    """Test DeadlineTimer expiry handling."""

    def setup_method(self):
        self.clock = FakeClock()
        self.token = CancellationToken()
        self.on_expire = Mock()

    def timer(self, minutes=10):
        return DeadlineTimer.after(minutes, self.token, on_expire=self.on_expire, clock=self.clock)

    def test_deadline_from_minutes(self):
        assert self.timer(minutes=10).deadline == START + timedelta(minutes=10)

    def test_check_before_deadline(self):
        timer = self.timer()
        self.clock.advance(minutes=9, seconds=59)

        assert timer.check() is False
        assert not self.token.cancelled
        assert timer.remaining() == timedelta(seconds=1)
        self.on_expire.assert_not_called()

    def test_expiry_outside_watch_is_fatal(self):
        """Outside cooperative mode the expire handler runs."""
        timer = self.timer()
        self.clock.advance(minutes=10)

        assert timer.check() is True
        assert self.token.cancelled
        assert self.token.reason == "deadline"
        self.on_expire.assert_called_once_with()

    def test_expiry_inside_watch_only_cancels(self):
        """In cooperative mode the token is cancelled and nothing else happens."""
        timer = self.timer()
        self.clock.advance(minutes=11)

        with self.token.cooperative():
            timer.check()

        assert self.token.cancelled
        self.on_expire.assert_not_called()

    def test_expires_once(self):
        """Repeated polls after expiry do not fire again."""
        timer = self.timer()
        self.clock.advance(minutes=20)

        timer.check()
        timer.check()
        timer.check()

        self.on_expire.assert_called_once()
        assert timer.remaining() == timedelta(0)

    def test_invalid_poll_interval(self):
        with pytest.raises(ValueError, match="poll_interval"):
            DeadlineTimer(START, self.token, poll_interval=0)

    def test_background_expiry(self):
        """The scheduler job cancels the token once the deadline has passed."""
        token = CancellationToken()
        timer = DeadlineTimer(datetime.now(UTC) - timedelta(seconds=1), token, poll_interval=0.05)

        with timer:
            for _ in range(100):
                if token.cancelled:
                    break
                time.sleep(0.05)

        assert token.cancelled

    def test_start_stop(self):
        timer = DeadlineTimer(datetime.now(UTC) + timedelta(hours=1), self.token)

        timer.start()
        timer.start()
        assert timer._scheduler.running
        timer.stop()
        timer.stop()

        assert timer._scheduler is None
        assert not self.token.cancelled
