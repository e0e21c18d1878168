"""Shared fixtures for research gate tests."""

import pytest

from research_gate.app.rate_limit import RateLimiter, reset_rate_limit_store
from research_gate.app.services.auto_research import reset_auto_research_trigger


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def reset_globals():
    """Reset global state before each test."""
    reset_rate_limit_store()
    reset_auto_research_trigger()
    yield
    reset_rate_limit_store()
    reset_auto_research_trigger()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    """In-memory limiter with a 24h window and the default ceiling of 10."""
    return RateLimiter(ttl_seconds=86400, max_triggers=10, use_redis=False, clock=clock)
