"""Shared fixtures for the Websets client tests."""

import pytest

from exa_websets.app.core.config import Settings
from exa_websets.app.services import reset_services

BASE_URL = "https://api.test/websets/v0"
SEARCH_URL = "https://search.test"


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: float = 0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def test_settings():
    return Settings(
        api_key="test-key",
        base_url=BASE_URL,
        search_base_url=SEARCH_URL,
        retry_attempts=2,
        retry_delay=10,
        max_retry_delay=100,
        rate_limit=100,
        circuit_breaker_threshold=5,
        enable_logging=False,
    )


@pytest.fixture(autouse=True)
def _clear_service_cache():
    reset_services()
    yield
    reset_services()
