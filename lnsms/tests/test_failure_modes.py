"""
Failure Injection Tests.

Validates the circuit breaker guarding the provider listing call.
"""

import pytest

from lnsms.app.core.reliability import CircuitBreaker, CircuitOpenError


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


async def failing_func():
    raise ValueError("Boom")


async def ok_func():
    return "ok"


@pytest.mark.asyncio
async def test_circuit_breaker_activates():
    """Test that circuit breaker opens after threshold failures."""
    cb = CircuitBreaker("test", failure_threshold=2, reset_timeout=1)

    # Fail 1
    with pytest.raises(ValueError):
        await cb.call(failing_func)

    # Fail 2 (Threshold reached)
    with pytest.raises(ValueError):
        await cb.call(failing_func)

    # Call 3 (Should be CircuitOpenError)
    with pytest.raises(CircuitOpenError):
        await cb.call(ok_func)
    assert cb.state == "OPEN"


@pytest.mark.asyncio
async def test_success_resets_failure_count():
    cb = CircuitBreaker("test", failure_threshold=2)

    with pytest.raises(ValueError):
        await cb.call(failing_func)
    assert await cb.call(ok_func) == "ok"
    with pytest.raises(ValueError):
        await cb.call(failing_func)

    assert cb.state == "CLOSED"


@pytest.mark.asyncio
async def test_half_open_recovers_on_success():
    clock = FakeClock()
    cb = CircuitBreaker("test", failure_threshold=1, reset_timeout=30, clock=clock)

    with pytest.raises(ValueError):
        await cb.call(failing_func)
    clock.now = 29
    with pytest.raises(CircuitOpenError):
        await cb.call(ok_func)

    clock.now = 31
    assert await cb.call(ok_func) == "ok"
    assert cb.state == "CLOSED"
    assert cb.failures == 0


@pytest.mark.asyncio
async def test_half_open_failure_reopens():
    clock = FakeClock()
    cb = CircuitBreaker("test", failure_threshold=3, reset_timeout=30, clock=clock)

    for _ in range(3):
        with pytest.raises(ValueError):
            await cb.call(failing_func)

    clock.now = 30
    with pytest.raises(ValueError):
        await cb.call(failing_func)

    assert cb.state == "OPEN"
    assert cb.opened_at == 30
    with pytest.raises(CircuitOpenError):
        await cb.call(ok_func)
