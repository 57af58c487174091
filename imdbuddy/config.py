from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Persisted cache layout. Bump SCHEMA_VERSION whenever the cache entry format
# changes; a mismatch discards every stored entry on load.
STORAGE_KEY = "imdb_cache"
SCHEMA_VERSION_KEY = "imdb_cache_schema_version"
SCHEMA_VERSION = 2

UNKNOWN_CATEGORY = "unknown"

# Remote status codes worth retrying
TRANSIENT_STATUS_CODES = frozenset({429, 500})

USER_AGENT = "imdbuddy/3.0 Title Resolver"


class Settings(BaseSettings):
    """Configuration settings for imdbuddy."""

    model_config = SettingsConfigDict(env_prefix="IMDBUDDY_", case_sensitive=False)

    # Remote lookup service
    api_url: str = Field(
        default="https://api.imdbapi.dev/search/titles",
        description="Title search endpoint, queried with ?query=<title>",
    )
    title_url_template: str = Field(
        default="https://www.imdb.com/title/{id}/",
        description="Canonical page URL for a resolved title id",
    )
    request_timeout_seconds: float = Field(
        default=30.0, description="Timeout for a single remote request"
    )

    # Request coordination
    request_delay_ms: int = Field(
        default=110,
        description="Minimum spacing between outbound requests in milliseconds",
    )
    max_concurrent_requests: int = Field(
        default=5, description="Number of lookups allowed in flight at once"
    )
    max_retries: int = Field(
        default=2, description="Additional attempts after a transient failure"
    )

    # Matching
    min_match_score: float = Field(
        default=0.7, description="Minimum similarity for a candidate to be accepted"
    )

    # Cache
    cache_max_age_days: int = Field(
        default=30, description="Age after which a cached rating is refetched"
    )
    db_path: str = Field(
        default="imdbuddy.db", description="Path to SQLite file backing the cache"
    )

    # Batch resolution
    batch_size: int = Field(
        default=10, description="Number of titles resolved concurrently per batch"
    )
    batch_delay_ms: int = Field(
        default=200, description="Pause between batches in milliseconds"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    @property
    def request_delay(self) -> float:
        return self.request_delay_ms / 1000

    @property
    def batch_delay(self) -> float:
        return self.batch_delay_ms / 1000


settings = Settings()
