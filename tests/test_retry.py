"""Tests for tradedesk.resilience.retry."""

import asyncio
from unittest.mock import patch

import pytest

from tradedesk.config import RetryConfig
from tradedesk.exceptions import BreakerOpenError, RetryExhaustedError
from tradedesk.resilience import with_retry

FAST = RetryConfig(max_retries=3, initial_backoff=0.001, max_backoff=0.004)


class Flaky:
    """Fails ``failures`` times, then returns ``value``."""

    def __init__(self, failures, error=None, value="ok"):
        self.failures = failures
        self.error = error or ConnectionError("connection reset")
        self.value = value
        self.calls = 0

    async def __call__(self, *args, **kwargs):
        self.calls += 1
        self.args = args
        self.kwargs = kwargs
        if self.calls <= self.failures:
            raise self.error
        return self.value


class TestBackoff:
    """Test the waits tenacity actually sleeps between attempts."""

    @staticmethod
    def _record_sleeps():
        sleeps = []

        def record(retry_state):
            sleeps.append(retry_state.next_action.sleep)

        return sleeps, patch("tradedesk.resilience.retry._log_failed_attempt", side_effect=record)

    @pytest.mark.asyncio
    async def test_doubles_from_initial(self):
        fn = Flaky(3)
        config = RetryConfig(max_retries=3, initial_backoff=0.01, max_backoff=1.0)
        sleeps, recorder = self._record_sleeps()

        with recorder:
            assert await with_retry(fn, config=config) == "ok"

        assert sleeps == pytest.approx([0.01, 0.02, 0.04])

    @pytest.mark.asyncio
    async def test_capped_and_elapsed(self):
        """Third call succeeds after waiting initial, then the capped double."""
        fn = Flaky(2)
        config = RetryConfig(max_retries=3, initial_backoff=0.05, max_backoff=0.06)
        sleeps, recorder = self._record_sleeps()

        loop = asyncio.get_running_loop()
        start = loop.time()
        with recorder:
            assert await with_retry(fn, config=config) == "ok"
        elapsed = loop.time() - start

        assert fn.calls == 3
        assert sleeps == pytest.approx([0.05, 0.06])
        assert elapsed >= 0.1
        assert elapsed < 0.5

    @pytest.mark.asyncio
    async def test_no_wait_without_retries(self):
        sleeps, recorder = self._record_sleeps()
        with recorder, pytest.raises(RetryExhaustedError):
            await with_retry(Flaky(1), config=RetryConfig(max_retries=0))
        assert sleeps == []


class TestWithRetry:
    """Test retry-with-backoff semantics."""

    @pytest.mark.asyncio
    async def test_first_attempt_success(self):
        fn = Flaky(0)
        assert await with_retry(fn, "a", config=FAST, key="b") == "ok"
        assert fn.calls == 1
        assert fn.args == ("a",)
        assert fn.kwargs == {"key": "b"}

    @pytest.mark.asyncio
    async def test_recovers_after_failures(self):
        fn = Flaky(2)
        assert await with_retry(fn, config=FAST) == "ok"
        assert fn.calls == 3

    @pytest.mark.asyncio
    async def test_exhaustion(self):
        """max_retries=3 means four attempts before giving up."""
        fn = Flaky(10)
        with pytest.raises(RetryExhaustedError) as exc_info:
            await with_retry(fn, config=FAST)

        assert fn.calls == 4
        assert exc_info.value.attempts == 4
        assert exc_info.value.last_error is fn.error
        assert exc_info.value.__cause__ is fn.error
        assert "failed after 4 attempts" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_zero_retries_single_attempt(self):
        fn = Flaky(10)
        with pytest.raises(RetryExhaustedError) as exc_info:
            await with_retry(fn, config=RetryConfig(max_retries=0))
        assert fn.calls == 1
        assert exc_info.value.attempts == 1

    @pytest.mark.asyncio
    async def test_non_matching_error_propagates(self):
        fn = Flaky(10, error=ValueError("bad input"))
        with pytest.raises(ValueError):
            await with_retry(fn, config=FAST, retry_on=(ConnectionError,))
        assert fn.calls == 1

    @pytest.mark.asyncio
    async def test_give_up_on_breaker_rejection(self):
        fn = Flaky(10, error=BreakerOpenError("llm"))
        with pytest.raises(BreakerOpenError):
            await with_retry(fn, config=FAST, give_up_on=(BreakerOpenError,))
        assert fn.calls == 1

    @pytest.mark.asyncio
    async def test_cancellation_stops_backoff(self):
        """Cancelling the caller during a backoff wait aborts the loop."""
        fn = Flaky(10)
        slow = RetryConfig(max_retries=3, initial_backoff=10.0, max_backoff=10.0)

        task = asyncio.create_task(with_retry(fn, config=slow))
        await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert fn.calls == 1
