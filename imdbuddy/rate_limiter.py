import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class RateLimiter:
    """Enforce a minimum spacing between outbound requests.

    Every worker gates on the same "last permitted" timestamp, but each one
    checks and stamps it independently. Spacing is guaranteed relative to the
    previous grant a worker observed, not as a strict global ceiling when
    several workers wait at the same time.
    """

    def __init__(
        self,
        delay: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.delay = delay
        self.clock = clock
        self.sleep = sleep
        self.last_request_time: float | None = None
        self._recent: list[float] = []

    async def await_slot(self) -> None:
        """Wait until at least `delay` seconds have passed since the last grant."""
        if self.last_request_time is not None:
            elapsed = self.clock() - self.last_request_time
            if elapsed < self.delay:
                wait_time = self.delay - elapsed
                logger.debug(f"Rate limit: waiting {wait_time * 1000:.0f}ms")
                await self.sleep(wait_time)

        self.last_request_time = self.clock()

        # Keep only grants from the last second
        self._recent.append(self.last_request_time)
        self._recent = [t for t in self._recent if self.last_request_time - t < 1.0]

    def recent_request_count(self) -> int:
        """Number of slots granted during the second before the latest grant."""
        return len(self._recent)
