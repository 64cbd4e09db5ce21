import time

import pytest

from docvault.core.errors import NetworkError, NotReady, ValidationError
from docvault.core.retry import retry_call, retry_with_backoff


@pytest.fixture
def recorded_sleeps(monkeypatch):
    delays = []

    async def fake_sleep(delay):
        delays.append(delay)

    monkeypatch.setattr("docvault.core.retry.asyncio.sleep", fake_sleep)
    return delays


async def test_succeeds_after_retryable_failures():
    attempts = []

    async def operation(attempt):
        attempts.append(attempt)
        if attempt < 3:
            raise NotReady("Signing state not initialized")
        return "done"

    started = time.monotonic()
    result = await retry_with_backoff(operation, max_attempts=4, base_delay=0.05, backoff_multiplier=2.0)
    elapsed = time.monotonic() - started

    assert result == "done"
    assert attempts == [1, 2, 3]
    # base_delay * (1 + backoff_multiplier)
    assert elapsed >= 0.05 * (1 + 2.0) - 1e-3


async def test_backoff_schedule(recorded_sleeps):
    async def operation(attempt):
        raise NotReady("Signing state not initialized")

    with pytest.raises(NotReady):
        await retry_with_backoff(operation, max_attempts=4, base_delay=0.1, backoff_multiplier=2.0)

    assert recorded_sleeps == pytest.approx([0.1, 0.2, 0.4])


async def test_non_retryable_error_propagates_immediately(recorded_sleeps):
    attempts = []

    async def operation(attempt):
        attempts.append(attempt)
        raise ValidationError("Title is required")

    with pytest.raises(ValidationError):
        await retry_with_backoff(operation)

    assert attempts == [1]
    assert recorded_sleeps == []


async def test_exhausted_foreign_error_becomes_network_error(recorded_sleeps):
    async def operation(attempt):
        raise RuntimeError("peer not ready")

    with pytest.raises(NetworkError) as exc_info:
        await retry_with_backoff(operation, max_attempts=2)

    assert isinstance(exc_info.value.__cause__, RuntimeError)
    assert len(recorded_sleeps) == 1


async def test_custom_substrings(recorded_sleeps):
    attempts = []

    async def operation(attempt):
        attempts.append(attempt)
        if attempt == 1:
            raise RuntimeError("temporarily busy")
        return attempt

    assert await retry_with_backoff(operation, retryable_substrings=("busy",)) == 2
    assert attempts == [1, 2]


async def test_retry_call_wraps_zero_argument_operation(recorded_sleeps):
    calls = []

    async def operation():
        calls.append(1)
        if len(calls) < 2:
            raise NotReady("Signing state not initialized")
        return "ok"

    assert await retry_call(operation, {"base_delay": 0.0}) == "ok"
    assert len(calls) == 2


async def test_invalid_attempt_budget():
    async def operation(attempt):
        return attempt

    with pytest.raises(ValueError):
        await retry_with_backoff(operation, max_attempts=0)
