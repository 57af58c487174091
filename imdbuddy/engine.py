"""Title resolution engine: the single owned entry point for callers."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

import httpx
from whenever import Instant, hours

from .api_client import LookupClient
from .cache import ResultCache
from .config import Settings, settings
from .coordinator import RequestCoordinator
from .models import RatingRecord, TitleQuery
from .rate_limiter import RateLimiter
from .selector import CandidateSelector
from .storage import StorageBackend

logger = logging.getLogger(__name__)


class Engine:
    """Cache-backed, rate-limited resolver of titles to ratings.

    Construct one per process and share it; it owns the cache map, the
    request queue and the rate limiter state.

    Usage:
        async with Engine(storage) as engine:
            rating = await engine.resolve("Inception", "movie")
    """

    def __init__(
        self,
        storage: StorageBackend,
        config: Settings = settings,
        http_client: httpx.AsyncClient | None = None,
        now_func: Callable[[], Instant] = Instant.now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config
        self.sleep = sleep
        self.cache = ResultCache(
            storage,
            max_age=hours(24 * config.cache_max_age_days),
            now_func=now_func,
        )
        self.client = LookupClient(
            config.api_url,
            client=http_client,
            timeout=config.request_timeout_seconds,
        )
        self.rate_limiter = RateLimiter(config.request_delay, sleep=sleep)
        self.coordinator = RequestCoordinator(
            self.cache,
            self.client,
            self.rate_limiter,
            selector=CandidateSelector(config.min_match_score),
            max_concurrent=config.max_concurrent_requests,
            request_delay=config.request_delay,
            max_retries=config.max_retries,
            url_template=config.title_url_template,
            sleep=sleep,
        )
        self._started = False

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def start(self) -> None:
        """Load the persisted cache and open the HTTP client."""
        if self._started:
            return
        self.cache.load()
        self.client.open()
        self._started = True

    async def aclose(self) -> None:
        """Finish in-flight lookups and release the HTTP client."""
        await self.coordinator.drain()
        await self.client.aclose()
        self._started = False

    async def resolve(
        self, title: str, category: str | None = None
    ) -> RatingRecord | None:
        """Resolve one title; never raises for lookup failures."""
        return await self.coordinator.resolve(title, category)

    async def resolve_many(
        self, queries: list[TitleQuery]
    ) -> list[RatingRecord | None]:
        """Resolve titles in batches, returning results in input order.

        Each batch of `batch_size` titles is resolved concurrently, with a
        short pause between batches so a page full of titles does not flood
        the queue at once.

        Args:
            queries: Titles to resolve

        Returns:
            One result per query, None where nothing matched
        """
        results: list[RatingRecord | None] = []
        batch_size = max(1, self.config.batch_size)

        for i in range(0, len(queries), batch_size):
            batch = queries[i : i + batch_size]
            results.extend(
                await asyncio.gather(
                    *(self.resolve(query.title, query.category) for query in batch)
                )
            )

            if i + batch_size < len(queries):
                await self.sleep(self.config.batch_delay)

        matched = sum(1 for result in results if result is not None)
        if queries:
            logger.info(
                f"Resolved {matched}/{len(queries)} titles "
                f"({matched / len(queries) * 100:.1f}%)"
            )
        return results

    def get_cached(
        self, title: str, category: str | None = None
    ) -> RatingRecord | None:
        """Return a cached rating if one is still valid."""
        return self.coordinator.get_cached(title, category)

    def is_cached(self, title: str, category: str | None = None) -> bool:
        return self.get_cached(title, category) is not None

    def clear_cache(self) -> None:
        """Wipe every cached rating, in memory and in storage."""
        self.cache.clear()

    def stats(self) -> dict:
        """Get current engine status."""
        return {
            "cache_size": len(self.cache),
            "queued": self.coordinator.queued,
            "in_flight": self.coordinator.in_flight,
            "pending_keys": self.coordinator.pending_keys(),
            "requests_last_second": self.rate_limiter.recent_request_count(),
        }
