"""
Retry - Exponential backoff combinator.

Single retry policy for every provider call:
    delay(attempt) = base_delay * 2 ** attempt

The cache wraps the whole retry sequence, so a sequence that
eventually succeeds is not repeated by later callers within TTL.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from data_sources.exceptions import DataSourceError, RateLimitError


logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 2
DEFAULT_BASE_DELAY = 1.0
MAX_RETRY_AFTER = 10.0


def default_is_retriable(error: Exception) -> bool:
    """
    Timeouts, 429s, 5xx and connection failures are worth retrying.
    Other 4xx and malformed payloads are not.
    """
    if isinstance(error, asyncio.TimeoutError):
        return True
    if isinstance(error, DataSourceError):
        return error.retriable
    return False


def backoff_delay(attempt: int, base_delay: float) -> float:
    return base_delay * (2 ** attempt)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY,
    is_retriable: Callable[[Exception], bool] = default_is_retriable,
    operation_name: str = "operation",
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
) -> T:
    """
    Run operation, retrying retriable failures with exponential backoff.

    Args:
        operation: Zero-arg coroutine factory
        max_attempts: Total attempts including the first (>= 1)
        base_delay: Delay before the first retry, in seconds
        is_retriable: Predicate deciding whether an error is retried
        operation_name: Label for log lines
        sleep: Injectable sleep (tests)

    Returns:
        The operation's result

    Raises:
        The last error once attempts are exhausted, or the first
        non-retriable error immediately.
    """
    sleeper = sleep or asyncio.sleep
    attempts = max(1, max_attempts)

    for attempt in range(attempts):
        try:
            return await operation()
        except Exception as e:
            last_attempt = attempt == attempts - 1
            if last_attempt or not is_retriable(e):
                raise
            wait_time = backoff_delay(attempt, base_delay)
            if isinstance(e, RateLimitError) and e.retry_after_seconds:
                wait_time = max(wait_time, min(float(e.retry_after_seconds), MAX_RETRY_AFTER))
            logger.warning(
                f"[retry] {operation_name} failed ({e}), "
                f"retrying in {wait_time:.1f}s (attempt {attempt + 1}/{attempts})"
            )
            await sleeper(wait_time)

    raise RuntimeError("unreachable")  # pragma: no cover
