"""Persisted rating cache with TTL expiry and a schema version guard."""

import json
import logging
import threading
from collections.abc import Callable

from pydantic import ValidationError
from whenever import Instant, TimeDelta, hours

from .config import SCHEMA_VERSION, SCHEMA_VERSION_KEY, STORAGE_KEY, settings
from .models import CacheEntry
from .storage import StorageBackend

logger = logging.getLogger(__name__)


class ResultCache:
    """Mapping from lookup key to CacheEntry, written through to storage.

    The whole map is serialized as one JSON object under a single storage
    key. A reserved marker key inside that object records the schema
    version; on load, a mismatch discards every entry.
    """

    def __init__(
        self,
        storage: StorageBackend,
        max_age: TimeDelta = hours(24 * settings.cache_max_age_days),
        storage_key: str = STORAGE_KEY,
        schema_version: int = SCHEMA_VERSION,
        now_func: Callable[[], Instant] = Instant.now,
    ):
        self.storage = storage
        self.max_age = max_age
        self.storage_key = storage_key
        self.schema_version = schema_version
        self.now_func = now_func
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def _read_blob(self) -> dict:
        """Read and decode the persisted map; unreadable blobs count as empty."""
        blob = self.storage.get(self.storage_key)
        if not blob:
            return {}

        try:
            data = json.loads(blob)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"Discarding unreadable cache blob: {e}")
            return {}

        if not isinstance(data, dict):
            logger.error("Discarding cache blob that is not a JSON object")
            return {}
        return data

    def load(self) -> None:
        """Load the cache from storage, applying schema and TTL invalidation."""
        raw = self._read_blob()
        marker = raw.pop(SCHEMA_VERSION_KEY, None)
        stored_version = marker.get("value") if isinstance(marker, dict) else None

        with self._lock:
            self._entries = {}

            if stored_version != self.schema_version:
                logger.info(
                    f"Cache schema version {stored_version} does not match "
                    f"{self.schema_version}, discarding {len(raw)} entries"
                )
                self.save()
                return

            removed = 0
            for key, value in raw.items():
                try:
                    entry = CacheEntry.model_validate(value)
                except ValidationError:
                    removed += 1
                    continue
                if not self.is_valid(entry):
                    removed += 1
                    continue
                self._entries[key] = entry

            if removed:
                logger.info(f"Removed {removed} expired or invalid cache entries")
                self.save()

        logger.info(f"Loaded {len(self._entries)} cached ratings")

    def is_valid(self, entry: CacheEntry | None) -> bool:
        """Check whether an entry is younger than the maximum age."""
        if entry is None:
            return False
        age = self.now_func() - Instant.from_timestamp_millis(entry.timestamp)
        return age <= self.max_age

    def get(self, key: str) -> CacheEntry | None:
        """Return the stored entry for key, valid or not."""
        return self._entries.get(key)

    def put(self, key: str, entry: CacheEntry) -> None:
        """Store an entry, replacing any previous one, and persist."""
        with self._lock:
            self._entries[key] = entry
            self.save()

    def new_entry(self, data) -> CacheEntry:
        """Stamp data with the current time."""
        return CacheEntry(data=data, timestamp=self.now_func().timestamp_millis())

    def clear(self) -> None:
        """Drop every entry and persist the empty cache immediately."""
        with self._lock:
            self._entries = {}
            self.save()
        logger.info("Cache cleared")

    def save(self) -> None:
        """Write the full map, including the schema marker, to storage."""
        with self._lock:
            payload = {
                key: entry.model_dump(mode="json")
                for key, entry in self._entries.items()
            }
            payload[SCHEMA_VERSION_KEY] = {"value": self.schema_version}
            self.storage.set(self.storage_key, json.dumps(payload).encode())
