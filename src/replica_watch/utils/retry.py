"""
Retry executor with jittered exponential backoff for remote calls

Provides resilient retry logic for transient failures with:
- Full jitter: each wait is drawn uniformly from [0, current_wait]
- Exponential backoff (the wait ceiling doubles after every retry)
- A set of non-retryable exception types that fail immediately
- Optional fallback invoked with the terminal exception

Usage:
    from replica_watch.utils.retry import RetryExecutor

    executor = RetryExecutor(retry_count=5, retry_wait=2.0,
                             no_retry=(psycopg2.ProgrammingError,))
    rows = executor.execute(lambda: cursor.execute("SELECT 1"))
"""

import logging
import random
import time
from functools import wraps
from typing import Any, Callable, Iterable

from .metrics import RETRY_ATTEMPTS

DEFAULT_RETRY_COUNT = 5
DEFAULT_RETRY_WAIT = 2.0


class RetryExecutor:
    """
    Run operations synchronously, retrying failures with a jittered back-off.

    A failure whose type is in ``no_retry`` is never retried. Any other
    failure is retried until ``retry_count`` retries have been spent, so an
    operation that never succeeds is attempted ``retry_count + 1`` times.
    Terminal failures go to the fallback when one is registered, otherwise
    they propagate to the caller.
    """

    DEFAULT_RETRY_COUNT = DEFAULT_RETRY_COUNT
    DEFAULT_RETRY_WAIT = DEFAULT_RETRY_WAIT

    def __init__(
        self,
        retry_count: int = DEFAULT_RETRY_COUNT,
        retry_wait: float = DEFAULT_RETRY_WAIT,
        no_retry: Iterable[type[BaseException]] = (),
        fallback: Callable[[Exception], Any] | None = None,
        logger: logging.Logger | None = None,
        sleep: Callable[[float], None] | None = None,
        rng: random.Random | None = None,
    ):
        """
        Initialize retry executor

        Args:
            retry_count: Number of retries after the first attempt (default: 5)
            retry_wait: Initial wait ceiling in seconds (default: 2.0)
            no_retry: Exception types that must not be retried
            fallback: Callable(exception) invoked on terminal failure
            logger: Logger to use (default: module logger)
            sleep: Sleep function (default: time.sleep)
            rng: Random source for jitter
        """
        self.retry_count = int(retry_count)
        self.retry_wait = float(retry_wait)
        self.no_retry = tuple(no_retry)
        self.fallback = fallback
        self.logger = logger or logging.getLogger(__name__)
        self._sleep = sleep
        self._random = rng or random.Random()

    def execute(
        self,
        operation: Callable[[], Any],
        retry_count: int | None = None,
        retry_wait: float | None = None,
        fallback: Callable[[Exception], Any] | None = None,
        operation_name: str | None = None,
    ) -> Any:
        """
        Execute an operation, retrying transient failures

        Per-call ``retry_count``, ``retry_wait`` and ``fallback`` take
        precedence over the instance defaults.

        Args:
            operation: Zero-argument callable to run
            retry_count: Override for the number of retries
            retry_wait: Override for the initial wait ceiling
            fallback: Override for the terminal-failure callable
            operation_name: Label used in logs and metrics

        Returns:
            The operation's return value, or the fallback's on terminal failure

        Raises:
            Exception: The terminal failure when no fallback is registered
        """
        remaining = self.retry_count if retry_count is None else int(retry_count)
        wait = self.retry_wait if retry_wait is None else float(retry_wait)
        on_fail = fallback if fallback is not None else self.fallback
        name = operation_name or getattr(operation, "__name__", "operation")

        while True:
            try:
                return operation()
            except Exception as e:
                self.logger.error(f"caught error in {name}: {type(e).__name__}: {e}")

                if isinstance(e, self.no_retry):
                    self.logger.error(f"Non-retryable exception in {name}, giving up")
                    if on_fail is None:
                        raise
                    return on_fail(e)

                if remaining <= 0:
                    self.logger.error(f"Retries exhausted for {name}")
                    if on_fail is None:
                        raise
                    return on_fail(e)

                remaining -= 1
                delay = self._random.uniform(0, wait)
                wait = 2 * wait

                RETRY_ATTEMPTS.labels(operation=name).inc()
                self.logger.debug(
                    f"{remaining} retries left for {name}, sleeping {delay:.2f}s before trying again"
                )
                (self._sleep or time.sleep)(delay)


def retry_with_backoff(
    retry_count: int = DEFAULT_RETRY_COUNT,
    retry_wait: float = DEFAULT_RETRY_WAIT,
    no_retry: Iterable[type[BaseException]] = (),
    fallback: Callable[[Exception], Any] | None = None,
):
    """
    Decorator that runs a function through a RetryExecutor

    Args:
        retry_count: Number of retries after the first attempt
        retry_wait: Initial wait ceiling in seconds
        no_retry: Exception types that must not be retried
        fallback: Callable(exception) invoked on terminal failure

    Example:
        @retry_with_backoff(retry_count=3, no_retry=(ValueError,))
        def fetch_secret(url):
            return requests.get(url, timeout=10).json()
    """
    executor = RetryExecutor(
        retry_count=retry_count,
        retry_wait=retry_wait,
        no_retry=no_retry,
        fallback=fallback,
    )

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            return executor.execute(
                lambda: func(*args, **kwargs),
                operation_name=getattr(func, "__name__", "function"),
            )

        wrapper.executor = executor
        return wrapper

    return decorator
