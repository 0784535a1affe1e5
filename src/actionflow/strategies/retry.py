"""Retry logic with exponential backoff for action execution."""

import asyncio
import re
from collections.abc import Awaitable, Callable
from typing import TypeVar

from actionflow.core.errors import BaseError

# Default retry configuration (milliseconds)
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_DELAY_MS = 1000
DEFAULT_BACKOFF_MULTIPLIER = 2.0

# Messages that mark a failure as permanent
NON_RETRYABLE_PATTERNS = [
    re.compile(r"validation", re.IGNORECASE),
    re.compile(r"security", re.IGNORECASE),
    re.compile(r"unauthorized", re.IGNORECASE),
    re.compile(r"forbidden", re.IGNORECASE),
    re.compile(r"not found", re.IGNORECASE),
    re.compile(r"already exists", re.IGNORECASE),
]

T = TypeVar("T")


def calculate_delay(
    attempt: int,
    retry_delay_ms: float = DEFAULT_RETRY_DELAY_MS,
    multiplier: float = DEFAULT_BACKOFF_MULTIPLIER,
    max_delay_ms: float | None = None,
) -> float:
    """Calculate the wait after a failed attempt using exponential backoff.

    Delay pattern: 1000ms, 2000ms, 4000ms (with default settings).

    Args:
        attempt: The attempt that just failed (1-indexed).
        retry_delay_ms: Base delay in milliseconds.
        multiplier: Multiplier for each subsequent attempt.
        max_delay_ms: Optional cap in milliseconds.

    Returns:
        Delay in milliseconds.
    """
    delay = retry_delay_ms * (multiplier ** (attempt - 1))
    if max_delay_ms is not None:
        return min(delay, max_delay_ms)
    return delay


def is_non_retryable_error(error: BaseException) -> bool:
    """Determine if an error must not be retried.

    Args:
        error: The exception that occurred.

    Returns:
        True if the message matches a permanent-failure pattern or the
        error is a taxonomy error flagged as not retryable.
    """
    if isinstance(error, BaseError) and not error.retryable:
        return True

    message = str(error)
    return any(pattern.search(message) for pattern in NON_RETRYABLE_PATTERNS)


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        retry_delay_ms: float = DEFAULT_RETRY_DELAY_MS,
        backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER,
        max_delay_ms: float | None = None,
    ) -> None:
        """Initialize RetryConfig.

        Args:
            max_attempts: Total attempts, including the first.
            retry_delay_ms: Base delay in milliseconds.
            backoff_multiplier: Multiplier for exponential backoff.
            max_delay_ms: Optional cap on a single delay.
        """
        self.max_attempts = max(1, max_attempts)
        self.retry_delay_ms = retry_delay_ms
        self.backoff_multiplier = backoff_multiplier
        self.max_delay_ms = max_delay_ms

    def delay_after(self, attempt: int) -> float:
        """Delay in milliseconds after the given failed attempt."""
        return calculate_delay(
            attempt,
            self.retry_delay_ms,
            self.backoff_multiplier,
            self.max_delay_ms,
        )

    def calculate_total_wait_time(self) -> float:
        """Calculate the maximum total wait time for all retries.

        Returns:
            Total wait time in milliseconds.
        """
        # No wait after the last attempt
        return sum(self.delay_after(attempt) for attempt in range(1, self.max_attempts))


async def retry_async(
    func: Callable[[int], Awaitable[T]],
    config: RetryConfig,
    on_retry: Callable[[int, float, Exception], None] | None = None,
) -> T:
    """Execute an async function with retry logic.

    Permanent failures (see is_non_retryable_error) are re-raised at once.
    After the last attempt the last error is re-raised unchanged.

    Args:
        func: Coroutine function receiving the 1-indexed attempt number.
        config: Attempt count and backoff settings.
        on_retry: Called with (attempt, delay_ms, error) before each wait.

    Returns:
        Result of the function.
    """
    for attempt in range(1, config.max_attempts + 1):
        try:
            return await func(attempt)
        except Exception as e:
            if is_non_retryable_error(e) or attempt == config.max_attempts:
                raise

            delay_ms = config.delay_after(attempt)
            if on_retry is not None:
                on_retry(attempt, delay_ms, e)
            await asyncio.sleep(delay_ms / 1000)

    # max_attempts is at least 1, so the loop always returns or raises
    raise RuntimeError("retry loop exited without a result")
