"""
Bounded retry with exponential backoff.

Used for filesystem operations that fail transiently (a just-deleted path
that briefly refuses recreation, a rename racing an antivirus scan). The
caller decides which errors are transient through a predicate.
"""

from __future__ import annotations

import random
import time
from typing import Callable, TypeVar

from .common import vlog

T = TypeVar("T")


class RetryExhausted(Exception):
    """
    Raised when every attempt failed with a retryable error.

    Attributes:
        attempts: Number of attempts made
        last_error: Exception raised by the final attempt
    """
    def __init__(self, attempts: int, last_error: BaseException):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"gave up after {attempts} attempts: {last_error}")


def calculate_backoff_delay(attempt: int, base_delay: float = 0.05, max_delay: float = 2.0) -> float:
    """
    Calculate exponential backoff delay with jitter.

    Args:
        attempt: Retry attempt number (0-indexed)
        base_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds

    Returns:
        Delay in seconds with jitter applied
    """
    delay = min(base_delay * (2 ** attempt), max_delay)
    jitter = delay * 0.2 * (random.random() * 2 - 1)
    return max(0.0, delay + jitter)


def retry_call(
    func: Callable[[], T],
    should_retry: Callable[[BaseException], bool],
    attempts: int = 5,
    base_delay: float = 0.05,
    max_delay: float = 2.0,
    sleep: Callable[[float], None] = time.sleep,
    verbose: bool = False,
) -> T:
    """
    Call ``func`` until it succeeds or a non-retryable error occurs.

    Args:
        func: Zero-argument callable to run
        should_retry: Predicate classifying an exception as transient
        attempts: Maximum number of attempts (at least 1)
        base_delay: Initial backoff delay in seconds
        max_delay: Backoff ceiling in seconds
        sleep: Sleep function (injectable for tests)
        verbose: Enable verbose logging

    Returns:
        Whatever ``func`` returns

    Raises:
        RetryExhausted: If the last allowed attempt failed with a retryable error
        Exception: Any non-retryable error from ``func``, unchanged
    """
    attempts = max(1, attempts)
    for attempt in range(attempts):
        try:
            return func()
        except Exception as e:
            if not should_retry(e):
                raise
            if attempt == attempts - 1:
                vlog(f"Max retries reached: {e}", verbose)
                raise RetryExhausted(attempts, e) from e
            delay = calculate_backoff_delay(attempt, base_delay, max_delay)
            vlog(f"Attempt {attempt + 1}/{attempts} failed ({e}), retrying after {delay:.2f}s", verbose)
            sleep(delay)

    raise AssertionError("unreachable")
