"""Unit tests for retry utility with exponential backoff."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from common.gpt_utils import ModelJSONParsingError
from common.retry_utils import (
    calculate_exponential_backoff_delay,
    is_transient_error,
    retry_with_exponential_backoff,
)


class TestCalculateExponentialBackoffDelay:
    """Test cases for exponential backoff delay calculation."""

    @pytest.mark.parametrize(
        "attempt,minimum,maximum",
        [
            (0, 1.0, 1.5),
            (1, 2.0, 3.0),
            (2, 4.0, 6.0),
            (3, 8.0, 12.0),
        ],
    )
    def test_calculates_increasing_delays(self, attempt, minimum, maximum):
        """Should double the base delay per attempt, plus up to 50% jitter."""
        delay = calculate_exponential_backoff_delay(1, attempt, 2, 60)
        assert minimum <= delay <= maximum

    def test_respects_max_delay_cap(self):
        """Should cap the base delay at max_delay before adding jitter."""
        delay = calculate_exponential_backoff_delay(1, 10, 2, 10)
        assert 10.0 <= delay <= 15.0


class TestIsTransientError:
    """Test cases for transient error detection."""

    @pytest.mark.parametrize(
        "error,expected",
        [
            (ConnectionError("Connection refused"), True),
            (TimeoutError("timed out"), True),
            (asyncio.TimeoutError(), True),
            (ModelJSONParsingError("bad json"), True),
            (ValueError("bad value"), False),
            (RuntimeError("Gemini Error (401): API key not valid"), False),
        ],
    )
    def test_identifies_transient_errors(self, error, expected):
        """Network failures and unparsable output are transient."""
        assert is_transient_error(error) is expected

    def test_follows_exception_cause(self):
        """A wrapped connection error is still transient."""
        try:
            try:
                raise ConnectionError("reset by peer")
            except ConnectionError as inner:
                raise RuntimeError("request failed") from inner
        except RuntimeError as outer:
            assert is_transient_error(outer) is True


class TestRetryWithExponentialBackoff:
    """Test cases for the retry decorator."""

    @pytest.mark.asyncio
    async def test_returns_result_without_retry_on_success(self):
        """Should not sleep when the first attempt succeeds."""
        sleep = AsyncMock()
        func = AsyncMock(return_value="ok")
        func.__name__ = "func"

        decorated = retry_with_exponential_backoff(max_retries=3, sleep_func=sleep)(func)

        assert await decorated() == "ok"
        assert func.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_retries_transient_errors_until_success(self):
        """Should retry transient errors and return the eventual result."""
        sleep = AsyncMock()
        func = AsyncMock(side_effect=[ConnectionError("down"), ConnectionError("down"), "ok"])
        func.__name__ = "func"

        decorated = retry_with_exponential_backoff(
            max_retries=3, initial_delay=1.0, sleep_func=sleep
        )(func)

        assert await decorated() == "ok"
        assert func.await_count == 3
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_raises_after_max_retries(self):
        """Should re-raise the last error once retries are exhausted."""
        sleep = AsyncMock()
        func = AsyncMock(side_effect=ConnectionError("down"))
        func.__name__ = "func"

        decorated = retry_with_exponential_backoff(max_retries=2, sleep_func=sleep)(func)

        with pytest.raises(ConnectionError):
            await decorated()
        assert func.await_count == 3
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_does_not_retry_permanent_errors(self):
        """Should fail immediately on errors the predicate rejects."""
        sleep = AsyncMock()
        func = AsyncMock(side_effect=ValueError("permanent"))
        func.__name__ = "func"

        decorated = retry_with_exponential_backoff(max_retries=3, sleep_func=sleep)(func)

        with pytest.raises(ValueError):
            await decorated()
        assert func.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_uses_custom_retry_predicate(self):
        """Should consult is_retryable instead of the default predicate."""
        sleep = AsyncMock()
        func = AsyncMock(side_effect=[ValueError("flaky"), "ok"])
        func.__name__ = "func"

        decorated = retry_with_exponential_backoff(
            max_retries=1,
            is_retryable=lambda e: isinstance(e, ValueError),
            sleep_func=sleep,
        )(func)

        assert await decorated() == "ok"
        assert sleep.await_count == 1
