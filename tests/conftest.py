"""Shared fixtures for tutorgate tests."""

import pytest

from tutorgate.app.providers.mock import MockProvider
from tutorgate.app.providers.retry import RetryPolicy
from tutorgate.app.services.gateway import RequestGateway
from tutorgate.app.services.rate_limit import (
    DAY_MS,
    HOUR_MS,
    MINUTE_MS,
    QuotaStore,
    RateLimiter,
    WindowSpec,
)


class FakeClock:
    """Manually advanced clock returning seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _small_windows(minute: int = 3, hour: int = 5, day: int = 8):
    return (
        WindowSpec("minute", minute, MINUTE_MS),
        WindowSpec("hour", hour, HOUR_MS),
        WindowSpec("day", day, DAY_MS),
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_clock():
    return FakeClock


@pytest.fixture
def small_windows():
    """Window specs with low caps and the standard durations."""
    return _small_windows


@pytest.fixture
def limiter(clock):
    """Limiter with the default 15/250/500 windows and a fake clock."""
    return RateLimiter(QuotaStore(), clock=clock)


@pytest.fixture
def mock_provider():
    return MockProvider()


@pytest.fixture
def fast_policy():
    """Three attempts without waiting between them."""
    return RetryPolicy(max_attempts=3, initial_delay=0.0, backoff_multiplier=1.0)


@pytest.fixture
def make_gateway(limiter, fast_policy):
    """Build a gateway around a given provider."""
    def _make(provider, rate_limiter=None):
        return RequestGateway(
            limiter=rate_limiter or limiter,
            provider=provider,
            one_shot_policy=fast_policy,
            stream_policy=fast_policy,
        )
    return _make
