from datetime import timedelta

import pytest

from ratewatch.core.config import Settings
from ratewatch.models.constants import CurrencyCode
from ratewatch.models.rates import ControllerState
from ratewatch.services.rates.cache_service import RateCacheStore
from ratewatch.services.rates.limiter import RateLimiter
from ratewatch.services.rates.orchestrator import FetchOrchestrator

from tests.fakes import FakeClock, FakeProvider, RecordingSleeper


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def sleeper(clock) -> RecordingSleeper:
    return RecordingSleeper(clock)


@pytest.fixture
def settings() -> Settings:
    s = Settings(
        rate_provider="static",
        default_base_currency=CurrencyCode.EUR,
        rates_cache_ttl_seconds=300,
        min_fetch_interval_seconds=10,
        refresh_interval_seconds=300,
        preload_delay_seconds=6,
        preload_on_startup=False,
    )
    s.init_post_load()
    return s


@pytest.fixture
def orchestrator(provider) -> FetchOrchestrator:
    state = ControllerState(active_base=CurrencyCode.EUR)
    return FetchOrchestrator(
        provider,
        RateCacheStore(timedelta(seconds=300)),
        RateLimiter(timedelta(seconds=10)),
        state,
    )
