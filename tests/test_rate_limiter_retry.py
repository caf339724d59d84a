import asyncio

import pytest

from netescola.utils.rate_limiter import ConcurrencyGate
from netescola.utils.retry import AIErrorKind, AIServiceError, exponential_backoff, retry_with_backoff


def fast_gate(**kwargs) -> ConcurrencyGate:
    kwargs.setdefault('min_interval', 0)
    return ConcurrencyGate(poll_interval=0, **kwargs)


class TestConcurrencyGate:

    @pytest.mark.asyncio
    async def test_release_never_goes_below_zero(self):
        gate = fast_gate()
        gate.release()
        gate.release()
        assert gate.in_flight == 0

        await gate.acquire()
        assert gate.in_flight == 1
        gate.release()
        gate.release()
        assert gate.in_flight == 0

    @pytest.mark.asyncio
    async def test_second_acquire_waits_for_release(self):
        gate = fast_gate(max_concurrent=1)
        await gate.acquire()

        waiter = asyncio.ensure_future(gate.acquire())
        await asyncio.sleep(0.01)
        assert not waiter.done()

        gate.release()
        await asyncio.wait_for(waiter, timeout=1)
        assert gate.in_flight == 1

    @pytest.mark.asyncio
    async def test_min_interval_between_starts(self):
        now = [100.0]
        gate = ConcurrencyGate(max_concurrent=5, min_interval=3.0, poll_interval=0, clock=lambda: now[0])
        await gate.acquire()

        waiter = asyncio.ensure_future(gate.acquire())
        await asyncio.sleep(0.01)
        assert not waiter.done()

        now[0] = 103.0
        await asyncio.wait_for(waiter, timeout=1)
        assert gate.in_flight == 2

    @pytest.mark.asyncio
    async def test_context_manager_releases(self):
        gate = fast_gate()
        async with gate:
            assert gate.in_flight == 1
        assert gate.in_flight == 0


class TestRetryWithBackoff:

    @pytest.mark.asyncio
    async def test_permanent_rate_limit_attempted_max_retries_plus_one(self):
        gate = fast_gate()
        attempts = []

        async def operation():
            attempts.append(gate.in_flight)
            raise AIServiceError(AIErrorKind.RATE_LIMITED, "quota exceeded")

        with pytest.raises(AIServiceError) as exc_info:
            await retry_with_backoff(operation, gate, max_retries=2, base_delay=0)

        assert exc_info.value.kind is AIErrorKind.RATE_LIMITED
        assert len(attempts) == 3
        # Every attempt held the gate, and none leaked it
        assert attempts == [1, 1, 1]
        assert gate.in_flight == 0

    @pytest.mark.asyncio
    async def test_non_rate_limit_error_fails_fast(self):
        gate = fast_gate()
        attempts = []

        async def operation():
            attempts.append(1)
            raise AIServiceError(AIErrorKind.INVALID_RESPONSE, "bad json")

        with pytest.raises(AIServiceError):
            await retry_with_backoff(operation, gate, max_retries=5, base_delay=0)

        assert len(attempts) == 1
        assert gate.in_flight == 0

    @pytest.mark.asyncio
    async def test_recovers_after_transient_rate_limit(self):
        gate = fast_gate()
        attempts = []

        async def operation():
            attempts.append(1)
            if len(attempts) < 2:
                raise AIServiceError(AIErrorKind.RATE_LIMITED, "429")
            return "ok"

        assert await retry_with_backoff(operation, gate, max_retries=2, base_delay=0) == "ok"
        assert len(attempts) == 2
        assert gate.in_flight == 0


def test_exponential_backoff_grows_and_is_capped():
    assert 1.0 <= exponential_backoff(0, base_delay=1.0) <= 1.1
    assert 4.0 <= exponential_backoff(2, base_delay=1.0) <= 4.4
    assert exponential_backoff(20, base_delay=1.0, max_delay=60.0) <= 66.0
