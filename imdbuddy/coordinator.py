"""Request coordination: cache lookup, deduplication, queueing and retry."""

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from .api_client import LookupClient
from .cache import ResultCache
from .config import settings
from .exceptions import TerminalLookupError, TransientLookupError
from .formatting import to_rating_record
from .models import CandidateRecord, RatingRecord, lookup_key
from .rate_limiter import RateLimiter
from .selector import CandidateSelector

logger = logging.getLogger(__name__)


@dataclass
class PendingRequest:
    """A queued lookup and the future its callers are waiting on."""

    key: str
    title: str
    category: str | None
    future: asyncio.Future


class RequestCoordinator:
    """Resolve titles to ratings through a bounded pool of lookup workers.

    Each lookup key moves through UNSEEN -> QUEUED -> IN_FLIGHT and ends
    either cached or discarded. Callers asking for a key that is already
    queued or in flight share the existing future, so a key never has two
    outbound requests at once. Queue and pending state are owned by the
    event loop the coordinator runs on.
    """

    def __init__(
        self,
        cache: ResultCache,
        client: LookupClient,
        rate_limiter: RateLimiter,
        selector: CandidateSelector | None = None,
        max_concurrent: int = settings.max_concurrent_requests,
        request_delay: float = settings.request_delay,
        max_retries: int = settings.max_retries,
        url_template: str = settings.title_url_template,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.cache = cache
        self.client = client
        self.rate_limiter = rate_limiter
        self.selector = selector or CandidateSelector()
        self.max_concurrent = max_concurrent
        self.request_delay = request_delay
        self.max_retries = max_retries
        self.url_template = url_template
        self._sleep = sleep

        self._queue: deque[PendingRequest] = deque()
        self._pending: dict[str, asyncio.Future] = {}
        self._active = 0
        self._tasks: set[asyncio.Task] = set()

    @property
    def queued(self) -> int:
        return len(self._queue)

    @property
    def in_flight(self) -> int:
        return self._active

    def pending_keys(self) -> list[str]:
        return list(self._pending)

    def get_cached(
        self, title: str, category: str | None = None
    ) -> RatingRecord | None:
        """Return a still-valid cached rating without touching the network."""
        entry = self.cache.get(lookup_key(title, category))
        if self.cache.is_valid(entry):
            return entry.data
        return None

    async def resolve(
        self, title: str, category: str | None = None
    ) -> RatingRecord | None:
        """Resolve a title to a rating.

        Args:
            title: Title scraped from the page
            category: Expected category, e.g. "movie" or "tvSeries"

        Returns:
            RatingRecord, or None when nothing confident was found or the
            lookup failed
        """
        if not title:
            return None

        key = lookup_key(title, category)
        entry = self.cache.get(key)
        if self.cache.is_valid(entry):
            logger.info(f"Cache hit for: '{title}'")
            return entry.data

        future = self._pending.get(key)
        if future is None:
            future = asyncio.get_running_loop().create_future()
            self._pending[key] = future
            self._queue.append(PendingRequest(key, title, category, future))
            logger.info(f"Queueing fetch for: '{title}'")
            self._process_queue()
        else:
            logger.info(f"Joining pending fetch for: '{title}'")

        # Shield so a cancelled caller does not cancel work other callers share
        return await asyncio.shield(future)

    def _process_queue(self) -> None:
        """Start workers for queued requests while below the concurrency bound."""
        while self._active < self.max_concurrent and self._queue:
            request = self._queue.popleft()
            self._active += 1
            task = asyncio.create_task(self._run(request))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _run(self, request: PendingRequest) -> None:
        result = None
        try:
            result = await self._process_request(request)
        except Exception:
            logger.exception(f"Unexpected error resolving '{request.title}'")
        finally:
            self._active -= 1
            self._pending.pop(request.key, None)
            if not request.future.done():
                request.future.set_result(result)

        await self._sleep(self.request_delay)
        self._process_queue()

    async def _process_request(self, request: PendingRequest) -> RatingRecord | None:
        await self.rate_limiter.await_slot()

        logger.info(f"Fetching from API: '{request.title}'")
        candidates = await self._search_with_retry(request.title)
        if not candidates:
            logger.warning(f"No results found for: '{request.title}'")
            return None

        match = self.selector.select(request.title, candidates, request.category)
        if match is None:
            # Not cached, so the title is looked up again on the next request
            logger.warning(f"No suitable match found for: '{request.title}'")
            return None

        record = to_rating_record(match.candidate, self.url_template)
        logger.debug(f"Matched '{request.title}' to {record.url} ({match.score:.3f})")

        self.cache.put(request.key, self.cache.new_entry(record))
        return record

    async def _search_with_retry(self, title: str) -> list[CandidateRecord] | None:
        """Search with exponential backoff on transient failures."""
        attempts = self.max_retries + 1
        for attempt in range(attempts):
            try:
                return await self.client.search(title)
            except TransientLookupError as e:
                if attempt < attempts - 1:
                    wait_time = 2**attempt  # Exponential backoff: 1s, 2s, ...
                    logger.warning(
                        f"Lookup error for '{title}' "
                        f"(attempt {attempt + 1}/{attempts}): "
                        f"{e}. Retrying in {wait_time}s..."
                    )
                    await self._sleep(wait_time)
                else:
                    logger.error(
                        f"Lookup for '{title}' failed after {attempts} attempts: {e}"
                    )
            except TerminalLookupError as e:
                logger.error(f"Lookup for '{title}' failed: {e}")
                return None
        return None

    async def drain(self) -> None:
        """Wait until every queued and in-flight request has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
