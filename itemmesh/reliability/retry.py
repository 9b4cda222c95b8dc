"""
Retry Policy: Exponential Backoff with Jitter

Implements the retry strategy used by remote executors:
- Exponential backoff: 100ms x 2^n, capped
- Full jitter: random(0, backoff) to prevent thundering herd
- Only errors classified as transient are retried; everything else
  is returned on the first failure

The result-set engine itself never retries or times out; this wraps
individual requests inside an executor.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from itemmesh.core import constants as C
from itemmesh.core.types import Err, Ok, Result

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration."""

    max_retries: int = C.RETRY_MAX_ATTEMPTS
    base_delay_ms: int = C.RETRY_BASE_MS
    max_delay_ms: int = C.RETRY_MAX_DELAY_MS
    exponential_base: float = 2.0
    jitter: bool = True

    @classmethod
    def default(cls) -> RetryPolicy:
        return cls()

    @classmethod
    def no_retry(cls) -> RetryPolicy:
        """No retries (for non-idempotent operations)."""
        return cls(max_retries=0)


@dataclass
class RetryStats:
    """Retry attempt statistics."""
    total_attempts: int = 0
    failed_attempts: int = 0
    total_delay_ms: float = 0.0
    last_error: Optional[str] = None


def calculate_backoff(
    attempt: int,
    base_delay_ms: int,
    max_delay_ms: int,
    exponential_base: float,
    jitter: bool,
) -> float:
    """
    Calculate backoff delay in milliseconds.

    Full jitter: random(0, min(cap, base * 2^attempt))
    """
    delay = min(max_delay_ms, base_delay_ms * (exponential_base ** attempt))
    if jitter:
        delay = random.uniform(0, delay)
    return delay


def retry_call(
    func: Callable[[], T],
    is_retryable: Callable[[Exception], bool],
    policy: Optional[RetryPolicy] = None,
    sleep: Callable[[float], None] = time.sleep,
    stats: Optional[RetryStats] = None,
) -> Result[T, Exception]:
    """
    Call `func` until it succeeds, fails permanently, or retries run out.

    Args:
        func: Zero-argument callable performing one request
        is_retryable: Classifies an exception as transient
        policy: Retry configuration (default if None)
        sleep: Sleep function taking seconds (injectable for tests)
        stats: Optional accumulator for attempt statistics

    Returns:
        Ok with the call's return value, or Err with the last exception
    """
    if policy is None:
        policy = RetryPolicy.default()
    if stats is None:
        stats = RetryStats()

    for attempt in range(policy.max_retries + 1):
        stats.total_attempts += 1
        try:
            return Ok(func())
        except Exception as e:
            stats.failed_attempts += 1
            stats.last_error = str(e)

            if not is_retryable(e) or attempt >= policy.max_retries:
                return Err(e)

            delay = calculate_backoff(
                attempt=attempt,
                base_delay_ms=policy.base_delay_ms,
                max_delay_ms=policy.max_delay_ms,
                exponential_base=policy.exponential_base,
                jitter=policy.jitter,
            )
            stats.total_delay_ms += delay
            logger.debug(f"Attempt {attempt + 1} failed ({e}); retrying in {delay:.0f}ms")
            sleep(delay / 1000)

    # Unreachable: the loop returns on the last attempt
    raise AssertionError("retry loop exited without a result")
