"""
Tests for retry and timeout helpers.
"""

import asyncio

import pytest

from adaptive_resolver.exceptions import ElementNotFoundError
from adaptive_resolver.utils.retry import RetryConfig, retry_async, with_timeout


class TestRetryAsync:
    """Test retry_async."""

    @pytest.mark.asyncio
    async def test_retries_until_success(self):
        calls = []

        async def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise ElementNotFoundError("Login")
            return "ok"

        result = await retry_async(flaky, RetryConfig(max_attempts=3, initial_delay_ms=0))

        assert result == "ok"
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_other_errors_not_retried(self):
        calls = []

        async def broken():
            calls.append(1)
            raise ValueError("bad selector")

        config = RetryConfig(max_attempts=3, initial_delay_ms=0, retry_on=(ElementNotFoundError,))
        with pytest.raises(ValueError):
            await retry_async(broken, config)

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_on_retry_callback(self):
        seen = []

        async def missing():
            raise ElementNotFoundError("Login")

        config = RetryConfig(
            max_attempts=2,
            initial_delay_ms=0,
            on_retry=lambda attempt, error: seen.append(attempt),
        )
        with pytest.raises(ElementNotFoundError):
            await retry_async(missing, config)

        assert seen == [1]

    def test_backoff_schedule(self):
        config = RetryConfig(max_attempts=5, initial_delay_ms=100, max_delay_ms=300, backoff_multiplier=2.0)

        assert list(config.delays()) == [100, 200, 300, 300]

    def test_single_attempt_has_no_pause(self):
        assert list(RetryConfig(max_attempts=1).delays()) == []


class TestWithTimeout:
    """Test with_timeout."""

    @pytest.mark.asyncio
    async def test_returns_result(self):
        async def quick():
            return 3

        assert await with_timeout(quick(), 1000) == 3

    @pytest.mark.asyncio
    async def test_times_out(self):
        with pytest.raises(asyncio.TimeoutError, match="Count timed out"):
            await with_timeout(asyncio.sleep(1), 10, "Count timed out")
