"""Shared fixtures for the rate limiter tests."""

import pytest

from gcra.services.rate_limiter import reset_rate_limiter
from gcra.stores import InMemoryStore, reset_store


class FakeClock:
    """Manually advanced nanosecond clock."""

    def __init__(self, now: int = 0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, nanos: int) -> None:
        self.now += nanos


@pytest.fixture(autouse=True)
def reset_globals():
    """Reset global store and limiter before each test."""
    reset_store()
    reset_rate_limiter()
    yield
    reset_store()
    reset_rate_limiter()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_store(clock):
    return InMemoryStore(clock=clock)
