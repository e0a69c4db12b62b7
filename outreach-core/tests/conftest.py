import asyncio

import pytest

from outreach_core.circuit_breaker import CircuitBreakerRegistry


class FakeClock:
    """Manually advanced clock; sleep() advances it instead of waiting."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds

    async def sleep(self, seconds: float):
        self.sleeps.append(seconds)
        self.now += seconds
        # Still yield so concurrent tasks interleave like real sleeps
        await asyncio.sleep(0)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(clock):
    return CircuitBreakerRegistry(clock=clock)
