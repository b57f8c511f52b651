"""
Wall-clock deadline enforcement.

A DeadlineTimer polls the clock from an APScheduler background job and
cancels a CancellationToken once the deadline passes. Code that can stop
at a safe point (the watch loop) marks the token cooperative and checks it
between iterations; anywhere else expiry is handed to ``on_expire``, which
the command line turns into a fatal exit.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)


class CancellationToken:
    """Thread-safe, one-shot cancellation flag."""

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._cooperative_depth = 0
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def is_cooperative(self) -> bool:
        with self._lock:
            return self._cooperative_depth > 0

    def cancel(self, reason: str = "cancelled") -> bool:
        """
        Cancel the token.

        Returns:
            True for the call that cancelled it, False if already cancelled
        """
        with self._lock:
            if self._event.is_set():
                return False
            self.reason = reason
            self._event.set()
            return True

    @contextmanager
    def cooperative(self):
        """Mark the enclosed block as checking the token itself."""
        with self._lock:
            self._cooperative_depth += 1
        try:
            yield self
        finally:
            with self._lock:
                self._cooperative_depth -= 1


class DeadlineTimer:
    """
    Background timer that cancels a token when the deadline is reached.

    Usage:
        token = CancellationToken()
        with DeadlineTimer.after(minutes=10, token=token, on_expire=abort):
            watcher.watch(token=token)
    """

    def __init__(
        self,
        deadline: datetime,
        token: CancellationToken,
        on_expire: Callable[[], None] | None = None,
        poll_interval: float = 1.0,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize the timer

        Args:
            deadline: Timezone-aware point in time at which to cancel
            token: Token to cancel on expiry
            on_expire: Called on expiry when the token is not cooperative
            poll_interval: Seconds between clock checks (default: 1.0)
            clock: Returns the current time (default: UTC now)
        """
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")

        self.deadline = deadline
        self.token = token
        self.on_expire = on_expire
        self.poll_interval = poll_interval
        self._clock = clock or (lambda: datetime.now(UTC))
        self._scheduler: BackgroundScheduler | None = None

    @classmethod
    def after(cls, minutes: float, token: CancellationToken, **kwargs) -> "DeadlineTimer":
        """Timer whose deadline is ``minutes`` from now."""
        clock = kwargs.get("clock") or (lambda: datetime.now(UTC))
        return cls(clock() + timedelta(minutes=minutes), token, **kwargs)

    @property
    def expired(self) -> bool:
        return self._clock() >= self.deadline

    def remaining(self) -> timedelta:
        return max(self.deadline - self._clock(), timedelta(0))

    def check(self) -> bool:
        """
        Poll the clock once; expire when the deadline has passed.

        Returns:
            True if the deadline has passed
        """
        if not self.expired:
            return False
        self.expire()
        return True

    def expire(self) -> None:
        if not self.token.cancel("deadline"):
            return

        cooperative = self.token.is_cooperative
        logger.warning(
            f"deadline {self.deadline.isoformat()} reached"
            f"{', finishing current watch iteration' if cooperative else ''}"
        )
        if not cooperative and self.on_expire is not None:
            self.on_expire()

    def start(self) -> None:
        if self._scheduler is not None:
            logger.warning("Deadline timer already running")
            return

        self._scheduler = BackgroundScheduler(daemon=True)
        self._scheduler.add_job(
            self.check,
            trigger=IntervalTrigger(seconds=self.poll_interval),
            id="deadline",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.debug(f"Deadline timer started, expires at {self.deadline.isoformat()}")

    def stop(self) -> None:
        if self._scheduler is None:
            return
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None

    def __enter__(self) -> "DeadlineTimer":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
