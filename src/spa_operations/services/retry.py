"""Composable retry and fallback wrappers for remote calls.

Wrappers take a zero-argument callable and return another one, so they can be
stacked at the call site::

    load = compose(with_retry(policy), with_fallback(cached_rooms))(fetch_rooms)
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from spa_operations.errors import AppError, classify_error

logger = logging.getLogger(__name__)

T = TypeVar("T")
Call = Callable[[], T]
Wrapper = Callable[[Callable[[], object]], Callable[[], object]]


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded attempts with capped exponential backoff."""

    max_attempts: int = 3
    initial_delay: float = 0.5
    max_delay: float = 5.0
    backoff: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.initial_delay < 0:
            raise ValueError("initial_delay must not be negative")

    def delay_for(self, attempt: int, error: AppError | None = None) -> float:
        """Delay before retrying after the ``attempt``-th failure (1-indexed)."""
        if error is not None and error.retry_after is not None:
            return min(error.retry_after, self.max_delay)
        return min(self.initial_delay * self.backoff ** (attempt - 1), self.max_delay)


def call_with_retry(
    func: Call[T],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``func``, retrying retryable failures up to the policy's limit.

    Non-retryable failures and the final retryable failure are raised as
    classified ``AppError`` instances.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return func()
        except Exception as exc:
            error = classify_error(exc)
            if not error.retryable or attempt >= policy.max_attempts:
                raise error from exc
            delay = policy.delay_for(attempt, error)
            logger.warning(
                "Attempt %s/%s failed (%s), retrying in %.1fs",
                attempt,
                policy.max_attempts,
                error.message,
                delay,
            )
            sleep(delay)


def with_retry(
    policy: RetryPolicy, *, sleep: Callable[[float], None] = time.sleep
) -> Wrapper:
    def wrap(func: Callable[[], object]) -> Callable[[], object]:
        return lambda: call_with_retry(func, policy, sleep=sleep)

    return wrap


def with_fallback(fallback: Callable[[], object]) -> Wrapper:
    """Return ``fallback()`` when the wrapped call fails."""

    def wrap(func: Callable[[], object]) -> Callable[[], object]:
        def call() -> object:
            try:
                return func()
            except Exception as exc:
                error = classify_error(exc)
                logger.warning("Using fallback after failure: %s", error.message)
                return fallback()

        return call

    return wrap


def compose(*wrappers: Wrapper) -> Wrapper:
    """Apply wrappers so that the first one listed is innermost."""

    def wrap(func: Callable[[], object]) -> Callable[[], object]:
        for wrapper in wrappers:
            func = wrapper(func)
        return func

    return wrap
