from unittest.mock import AsyncMock, Mock

import httpx
import pytest
from whenever import Instant

from imdbuddy.cache import ResultCache
from imdbuddy.config import Settings
from imdbuddy.coordinator import RequestCoordinator
from imdbuddy.models import CandidateRecord
from imdbuddy.rate_limiter import RateLimiter
from imdbuddy.storage import MemoryStorage

INCEPTION = {
    "id": "tt1375666",
    "type": "movie",
    "primaryTitle": "Inception",
    "originalTitle": "Inception",
    "startYear": 2010,
    "rating": {"aggregateRating": 8.8, "voteCount": 2300000},
}

THE_OFFICE = {
    "id": "tt0386676",
    "type": "tvSeries",
    "primaryTitle": "The Office",
    "startYear": 2005,
    "rating": {"aggregateRating": 9.0, "voteCount": 780000},
}


@pytest.fixture
def fixed_time():
    """Provide a fixed time for testing."""
    return Instant.from_utc(2025, 1, 1, 12, 0, 0)


@pytest.fixture
def storage():
    """Empty in-memory storage backend."""
    return MemoryStorage()


@pytest.fixture
def cache(storage, fixed_time):
    """Loaded, empty result cache on in-memory storage."""
    result_cache = ResultCache(storage, now_func=lambda: fixed_time)
    result_cache.load()
    return result_cache


@pytest.fixture
def inception():
    return CandidateRecord.model_validate(INCEPTION)


@pytest.fixture
def the_office():
    return CandidateRecord.model_validate(THE_OFFICE)


@pytest.fixture
def fake_sleep():
    """Stand-in for asyncio.sleep that records delays without waiting."""
    return AsyncMock()


@pytest.fixture
def fake_client():
    """Lookup client whose search method is an AsyncMock."""
    client = Mock()
    client.search = AsyncMock(return_value=[])
    return client


@pytest.fixture
def coordinator(cache, fake_client, fake_sleep):
    """Coordinator wired to the fake client with no real waiting."""
    return RequestCoordinator(
        cache,
        fake_client,
        RateLimiter(0.0, sleep=fake_sleep),
        max_concurrent=5,
        request_delay=0.11,
        max_retries=2,
        sleep=fake_sleep,
    )


@pytest.fixture
def test_settings():
    """Settings with delays removed."""
    return Settings(request_delay_ms=0, batch_delay_ms=0, batch_size=2)


@pytest.fixture
def make_http_client():
    """Factory for AsyncClients that answer every request with a handler."""

    def factory(handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory


@pytest.fixture
def search_payload():
    """Search response body containing both sample titles."""
    return {"titles": [INCEPTION, THE_OFFICE]}
