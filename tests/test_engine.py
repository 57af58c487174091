import json

import httpx
import pytest

from imdbuddy.config import SCHEMA_VERSION, SCHEMA_VERSION_KEY, STORAGE_KEY
from imdbuddy.engine import Engine
from imdbuddy.models import CacheEntry, RatingRecord, TitleQuery
from imdbuddy.storage import MemoryStorage


@pytest.fixture
def api_calls():
    return []


@pytest.fixture
def http_client(make_http_client, search_payload, api_calls):
    """HTTP client answering every search with the sample payload."""

    def handler(request: httpx.Request) -> httpx.Response:
        api_calls.append(request.url.params["query"])
        return httpx.Response(200, json=search_payload)

    return make_http_client(handler)


@pytest.fixture
def make_engine(test_settings, http_client, fixed_time, fake_sleep):
    def factory(storage):
        return Engine(
            storage,
            config=test_settings,
            http_client=http_client,
            now_func=lambda: fixed_time,
            sleep=fake_sleep,
        )

    return factory


@pytest.mark.asyncio
async def test_resolve_and_persist(make_engine, storage, api_calls):
    async with make_engine(storage) as engine:
        record = await engine.resolve("Inception", "movie")

    assert record.title == "Inception"
    assert record.votes == "2.3M"
    assert api_calls == ["Inception"]

    blob = json.loads(storage.get(STORAGE_KEY))
    assert blob["inception_movie"]["data"]["url"] == (
        "https://www.imdb.com/title/tt1375666/"
    )
    assert blob[SCHEMA_VERSION_KEY] == {"value": SCHEMA_VERSION}


@pytest.mark.asyncio
async def test_cache_survives_restart(make_engine, storage, api_calls):
    async with make_engine(storage) as engine:
        first = await engine.resolve("Inception", "movie")

    async with make_engine(storage) as engine:
        assert engine.is_cached("Inception", "movie")
        second = await engine.resolve("Inception", "movie")

    assert second == first
    assert api_calls == ["Inception"]


@pytest.mark.asyncio
async def test_schema_mismatch_discards_before_lookup(
    make_engine, api_calls, fixed_time
):
    stale_payload = {
        SCHEMA_VERSION_KEY: {"value": SCHEMA_VERSION - 1},
        "inception_movie": {
            "data": {
                "score": 1.0,
                "votes": "1",
                "title": "Wrong",
                "category": "movie",
                "year": 1900,
                "url": "https://example.test/",
            },
            "timestamp": fixed_time.timestamp_millis(),
        },
    }
    storage = MemoryStorage({STORAGE_KEY: json.dumps(stale_payload).encode()})

    async with make_engine(storage) as engine:
        assert not engine.is_cached("Inception", "movie")
        record = await engine.resolve("Inception", "movie")

    assert record.title == "Inception"
    assert api_calls == ["Inception"]


@pytest.mark.asyncio
async def test_resolve_many_keeps_order_and_dedups(
    make_engine, storage, api_calls, fake_sleep, test_settings
):
    test_settings.batch_delay_ms = 200
    queries = [
        TitleQuery(title="Inception", category="movie"),
        TitleQuery(title="The Offfice", category="tvSeries"),
        TitleQuery(title="Zzzqx Nonexistent"),
        TitleQuery(title="Inception", category="movie"),
    ]

    async with make_engine(storage) as engine:
        results = await engine.resolve_many(queries)

    assert results[0].title == "Inception"
    assert results[1].title == "The Office"
    assert results[2] is None
    assert results[3] == results[0]
    assert sorted(api_calls) == ["Inception", "The Offfice", "Zzzqx Nonexistent"]
    # batch_size=2 gives two batches with one pause between them
    fake_sleep.assert_any_await(0.2)


@pytest.mark.asyncio
async def test_resolve_many_empty(make_engine, storage):
    async with make_engine(storage) as engine:
        assert await engine.resolve_many([]) == []


@pytest.mark.asyncio
async def test_clear_cache(make_engine, storage, api_calls):
    async with make_engine(storage) as engine:
        await engine.resolve("Inception", "movie")
        engine.clear_cache()

        assert not engine.is_cached("Inception", "movie")
        assert engine.get_cached("Inception", "movie") is None
        await engine.resolve("Inception", "movie")

    assert api_calls == ["Inception", "Inception"]


@pytest.mark.asyncio
async def test_stats(make_engine, storage):
    async with make_engine(storage) as engine:
        await engine.resolve("Inception", "movie")
        stats = engine.stats()

    assert stats["cache_size"] == 1
    assert stats["queued"] == 0
    assert stats["pending_keys"] == []
    assert stats["requests_last_second"] == 1


@pytest.mark.asyncio
async def test_remote_failure_never_raises(
    make_http_client, test_settings, storage, fixed_time, fake_sleep
):
    http_client = make_http_client(lambda request: httpx.Response(503))
    engine = Engine(
        storage,
        config=test_settings,
        http_client=http_client,
        now_func=lambda: fixed_time,
        sleep=fake_sleep,
    )

    async with engine:
        assert await engine.resolve("Inception", "movie") is None


def test_is_cached_ignores_stale_entries(make_engine, storage, fixed_time):
    engine = make_engine(storage)
    engine.cache.load()
    record = RatingRecord(
        score=8.8,
        votes="2.3M",
        title="Inception",
        category="movie",
        year=2010,
        url="https://www.imdb.com/title/tt1375666/",
    )
    month_ms = 31 * 24 * 60 * 60 * 1000
    engine.cache.put(
        "inception_movie",
        CacheEntry(data=record, timestamp=fixed_time.timestamp_millis() - month_ms),
    )

    assert "inception_movie" in engine.cache
    assert not engine.is_cached("Inception", "movie")

    engine.cache.put("inception_movie", engine.cache.new_entry(record))

    assert engine.is_cached("Inception", "movie")
