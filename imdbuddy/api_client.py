"""Title search API client."""

import logging

import httpx
from pydantic import ValidationError

from .config import TRANSIENT_STATUS_CODES, USER_AGENT, settings
from .exceptions import TerminalLookupError, TransientLookupError
from .models import CandidateRecord

logger = logging.getLogger(__name__)


class LookupClient:
    """Client for the remote title search endpoint.

    A single search attempt per call; retrying is left to the caller, which
    can tell transient failures apart by exception type.
    """

    def __init__(
        self,
        api_url: str = settings.api_url,
        client: httpx.AsyncClient | None = None,
        timeout: float = settings.request_timeout_seconds,
    ):
        """Initialize lookup client.

        Args:
            api_url: Search endpoint URL
            client: Preconfigured HTTP client; one is created if omitted
            timeout: Request timeout in seconds for a created client
        """
        self.api_url = api_url
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self):
        """Async context manager entry."""
        self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.aclose()

    def open(self) -> None:
        """Create the HTTP client if none was supplied."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"User-Agent": USER_AGENT},
                follow_redirects=True,
            )

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def search(self, title: str) -> list[CandidateRecord]:
        """Search the remote service for a title.

        Args:
            title: Free-text title to search for

        Returns:
            Parsed candidates, possibly empty

        Raises:
            TransientLookupError: Rate limited or server error
            TerminalLookupError: Any other failure
        """
        if self._client is None:
            self.open()

        try:
            response = await self._client.get(self.api_url, params={"query": title})
        except httpx.HTTPError as e:
            raise TerminalLookupError(f"Request for '{title}' failed: {e}") from e

        logger.debug(f"API response status for '{title}': {response.status_code}")

        if not response.is_success:
            if response.status_code in TRANSIENT_STATUS_CODES:
                raise TransientLookupError(response.status_code, response.reason_phrase)
            raise TerminalLookupError(
                f"HTTP {response.status_code}: {response.reason_phrase}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise TerminalLookupError(f"Malformed response for '{title}': {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("titles"), list):
            raise TerminalLookupError(f"Response for '{title}' has no titles array")

        return self._parse_candidates(data["titles"])

    def _parse_candidates(self, raw_titles: list) -> list[CandidateRecord]:
        """Parse raw result objects, skipping ones that fail validation."""
        candidates = []
        for raw in raw_titles:
            try:
                candidates.append(CandidateRecord.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Skipping malformed search result: {e}")
        return candidates
