"""Exponential backoff for RPC reads that hit provider rate limits."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Substrings public RPC providers put in throttling errors
RATE_LIMIT_SIGNATURES = (
    "rate limit",
    "429",
    "too many requests",
    "over rate limit",
)


class MaxRetriesExceededError(Exception):
    """Raised when every attempt of a retried operation was rate limited."""

    pass


def is_rate_limited(error: BaseException) -> bool:
    """Check whether an error message carries a rate-limit signature."""
    message = str(error).lower()
    return any(signature in message for signature in RATE_LIMIT_SIGNATURES)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 5,
    base_delay_ms: int = 2000,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Await ``operation()`` until it succeeds, backing off on rate limits.

    Rate-limited attempts sleep ``base_delay_ms * 2**attempt`` before the next
    try (2s, 4s, 8s, 16s with defaults). Any other error is re-raised at once.
    The sleep is an ordinary await, so cancelling the calling task aborts it.

    Args:
        operation: Zero-argument factory returning a fresh awaitable per attempt
        max_attempts: Total attempts including the first one
        base_delay_ms: Delay before the second attempt, in milliseconds
        sleep: Sleep coroutine (seconds), injectable for tests

    Raises:
        MaxRetriesExceededError: When the last attempt is still rate limited
    """
    last_error: Exception | None = None

    for attempt in range(max_attempts):
        try:
            return await operation()
        except Exception as e:
            if not is_rate_limited(e):
                raise
            last_error = e
            if attempt == max_attempts - 1:
                break

            delay_ms = base_delay_ms * 2**attempt
            logger.warning(
                f"Rate limited, retrying in {delay_ms}ms "
                f"(attempt {attempt + 1}/{max_attempts})"
            )
            await sleep(delay_ms / 1000)

    raise MaxRetriesExceededError(
        f"Max retries exceeded after {max_attempts} attempts: {last_error}"
    ) from last_error
