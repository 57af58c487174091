"""Key-value storage backends for the persisted rating cache.

The cache only needs get/set of an opaque blob by key. Backends never raise
on I/O failure: errors are logged, reads return None and writes are dropped,
so the engine keeps working from memory.
"""

import logging
import sqlite3
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Protocol

from whenever import Instant

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,
    value BLOB NOT NULL,
    updated_at INTEGER NOT NULL
);
"""


class StorageBackend(Protocol):
    def get(self, key: str) -> bytes | None: ...

    def set(self, key: str, value: bytes) -> None: ...


class MemoryStorage:
    """Dict-backed storage for tests and throwaway sessions."""

    def __init__(self, initial: dict[str, bytes] | None = None):
        self.data: dict[str, bytes] = dict(initial or {})

    def get(self, key: str) -> bytes | None:
        return self.data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self.data[key] = value


class SqliteStorage:
    """SQLite-backed storage with one row per key."""

    def __init__(
        self,
        db_path: str = "imdbuddy.db",
        now_func: Callable[[], Instant] = Instant.now,
    ):
        self.db_path = db_path
        self._memory_conn = None
        self.now_func = now_func
        self.init_db()

    def init_db(self) -> None:
        """Initialize the database with schema."""
        try:
            with self.get_conn() as conn:
                # Only enable WAL mode for file-based databases, not in-memory
                if self.db_path != ":memory:":
                    conn.execute("PRAGMA journal_mode=WAL")
                    conn.execute("PRAGMA synchronous=NORMAL")

                conn.executescript(SCHEMA)
                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Failed to initialize storage at {self.db_path}: {e}")

    @contextmanager
    def get_conn(self) -> Iterator[sqlite3.Connection]:
        """Get a database connection."""
        if self.db_path == ":memory:":
            # For in-memory databases, maintain a persistent connection
            if self._memory_conn is None:
                self._memory_conn = sqlite3.connect(
                    self.db_path, check_same_thread=False
                )
            yield self._memory_conn
        else:
            # For file databases, create new connections as needed
            conn = sqlite3.connect(self.db_path)
            try:
                yield conn
            finally:
                conn.close()

    def get(self, key: str) -> bytes | None:
        """Read the blob stored under key, or None if absent or unreadable."""
        try:
            with self.get_conn() as conn:
                cursor = conn.execute("SELECT value FROM kv WHERE key = ?", (key,))
                row = cursor.fetchone()
        except sqlite3.Error as e:
            logger.error(f"Storage get error for '{key}': {e}")
            return None

        if row is None:
            return None
        value = row[0]
        return value.encode() if isinstance(value, str) else bytes(value)

    def set(self, key: str, value: bytes) -> None:
        """Store value under key, replacing any previous blob."""
        try:
            with self.get_conn() as conn:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO kv (key, value, updated_at)
                    VALUES (?, ?, ?)
                    """,
                    (key, value, self.now_func().timestamp_millis()),
                )
                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Storage set error for '{key}': {e}")

    def close(self) -> None:
        """Close the persistent in-memory connection, if any."""
        if self._memory_conn is not None:
            self._memory_conn.close()
            self._memory_conn = None
