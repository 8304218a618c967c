"""Tests for the rate-limit retry wrapper."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from app.services.retry import (
    MaxRetriesExceededError,
    is_rate_limited,
    retry_with_backoff,
)


class TestIsRateLimited:
    """Tests for rate-limit detection."""

    @pytest.mark.parametrize(
        "message",
        [
            "429 Client Error: Too Many Requests for url: https://mainnet.base.org",
            "over rate limit",
            "Rate limit exceeded, slow down",
            "HTTP 429",
        ],
    )
    def test_rate_limit_signatures(self, message):
        assert is_rate_limited(Exception(message)) is True

    @pytest.mark.parametrize(
        "message",
        [
            "execution reverted: ERC721NonexistentToken(12)",
            "Connection refused",
            "",
        ],
    )
    def test_other_errors(self, message):
        assert is_rate_limited(Exception(message)) is False


class TestRetryWithBackoff:
    """Tests for retry_with_backoff."""

    @pytest.mark.asyncio
    async def test_success_first_attempt(self):
        """Test no sleep when the first call succeeds."""
        operation = AsyncMock(return_value=42)
        sleep = AsyncMock()

        result = await retry_with_backoff(operation, sleep=sleep)

        assert result == 42
        assert operation.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_backoff_doubles_each_attempt(self):
        """Test four rate limits then success sleep base, 2x, 4x, 8x."""
        operation = AsyncMock(
            side_effect=[Exception("429 Too Many Requests")] * 4 + ["ok"]
        )
        sleep = AsyncMock()

        result = await retry_with_backoff(
            operation, max_attempts=5, base_delay_ms=2000, sleep=sleep
        )

        assert result == "ok"
        assert operation.await_count == 5
        assert [call.args[0] for call in sleep.await_args_list] == [2.0, 4.0, 8.0, 16.0]

    @pytest.mark.asyncio
    async def test_non_rate_limit_error_fails_fast(self):
        """Test other errors are re-raised without retry."""
        operation = AsyncMock(side_effect=ValueError("execution reverted"))
        sleep = AsyncMock()

        with pytest.raises(ValueError, match="execution reverted"):
            await retry_with_backoff(operation, sleep=sleep)

        assert operation.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_max_retries_exceeded(self):
        """Test exhausting every attempt raises MaxRetriesExceededError."""
        error = Exception("over rate limit")
        operation = AsyncMock(side_effect=error)
        sleep = AsyncMock()

        with pytest.raises(MaxRetriesExceededError) as exc_info:
            await retry_with_backoff(operation, max_attempts=3, base_delay_ms=100, sleep=sleep)

        assert "Max retries exceeded" in str(exc_info.value)
        assert exc_info.value.__cause__ is error
        assert operation.await_count == 3
        # No sleep after the final attempt
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_backoff_sleep_is_cancellable(self):
        """Test cancelling the caller aborts a pending backoff."""
        operation = AsyncMock(side_effect=Exception("429"))

        task = asyncio.create_task(
            retry_with_backoff(operation, max_attempts=5, base_delay_ms=60_000)
        )
        await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert operation.await_count == 1
