"""
Tests for retry primitives.

Tests cover:
- retry_with_backoff success, exhaustion and predicate filtering
- Delay schedule (exponential, fixed, capped)
"""

from typing import List

import pytest

from clickup_mcp.core.resilience import retry_with_backoff


def _recorder():
    delays: List[float] = []

    async def sleep(delay: float) -> None:
        delays.append(delay)

    return delays, sleep


class TestRetryWithBackoff:
    """Test retry_with_backoff function."""

    @pytest.mark.asyncio
    async def test_successful_first_attempt(self):
        call_count = 0
        delays, sleep = _recorder()

        async def succeed():
            nonlocal call_count
            call_count += 1
            return "success"

        result = await retry_with_backoff(succeed, max_retries=3, sleep=sleep)

        assert result == "success"
        assert call_count == 1
        assert delays == []

    @pytest.mark.asyncio
    async def test_retries_on_failure(self):
        call_count = 0
        _, sleep = _recorder()

        async def fail_twice():
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise ValueError("Temporary error")
            return "success"

        result = await retry_with_backoff(fail_twice, max_retries=3, sleep=sleep)

        assert result == "success"
        assert call_count == 3

    @pytest.mark.asyncio
    async def test_raises_last_error_after_max_retries(self):
        call_count = 0
        _, sleep = _recorder()

        async def always_fail():
            nonlocal call_count
            call_count += 1
            raise ConnectionError(f"Attempt {call_count}")

        with pytest.raises(ConnectionError, match="Attempt 3"):
            await retry_with_backoff(always_fail, max_retries=2, sleep=sleep)

        assert call_count == 3

    @pytest.mark.asyncio
    async def test_predicate_stops_retries(self):
        call_count = 0
        _, sleep = _recorder()

        async def fail():
            nonlocal call_count
            call_count += 1
            raise ValueError("Not retryable")

        with pytest.raises(ValueError):
            await retry_with_backoff(
                fail,
                max_retries=3,
                should_retry=lambda e: isinstance(e, ConnectionError),
                sleep=sleep,
            )

        assert call_count == 1

    @pytest.mark.asyncio
    async def test_zero_retries_attempts_once(self):
        call_count = 0
        _, sleep = _recorder()

        async def fail():
            nonlocal call_count
            call_count += 1
            raise ValueError("fail")

        with pytest.raises(ValueError):
            await retry_with_backoff(fail, max_retries=0, sleep=sleep)

        assert call_count == 1


class TestDelaySchedule:
    @pytest.mark.asyncio
    async def test_exponential(self):
        delays, sleep = _recorder()

        async def fail():
            raise ValueError("fail")

        with pytest.raises(ValueError):
            await retry_with_backoff(fail, max_retries=3, base_delay=0.5, sleep=sleep)

        assert delays == [0.5, 1.0, 2.0]

    @pytest.mark.asyncio
    async def test_fixed(self):
        delays, sleep = _recorder()

        async def fail():
            raise ValueError("fail")

        with pytest.raises(ValueError):
            await retry_with_backoff(
                fail, max_retries=2, base_delay=1.0, exponential_base=1.0, sleep=sleep
            )

        assert delays == [1.0, 1.0]

    @pytest.mark.asyncio
    async def test_max_delay_cap(self):
        delays, sleep = _recorder()

        async def fail():
            raise ValueError("fail")

        with pytest.raises(ValueError):
            await retry_with_backoff(
                fail,
                max_retries=3,
                base_delay=1.0,
                max_delay=5.0,
                exponential_base=10.0,
                sleep=sleep,
            )

        assert delays == [1.0, 5.0, 5.0]

    @pytest.mark.asyncio
    async def test_zero_delay_skips_sleep(self):
        delays, sleep = _recorder()

        async def fail():
            raise ValueError("fail")

        with pytest.raises(ValueError):
            await retry_with_backoff(fail, max_retries=2, base_delay=0.0, sleep=sleep)

        assert delays == []

    @pytest.mark.asyncio
    async def test_jitter_stays_in_range(self):
        delays, sleep = _recorder()

        async def fail():
            raise ValueError("fail")

        with pytest.raises(ValueError):
            await retry_with_backoff(
                fail, max_retries=1, base_delay=1.0, jitter=True, sleep=sleep
            )

        assert 0.5 <= delays[0] <= 1.5
