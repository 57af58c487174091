"""Pydantic models for imdbuddy data structures."""

from pydantic import BaseModel, ConfigDict, Field

from .config import UNKNOWN_CATEGORY


def lookup_key(title: str, category: str | None = None) -> str:
    """Build the cache key for a (title, category) lookup."""
    return f"{title.lower()}_{category or UNKNOWN_CATEGORY}"


class CandidateRating(BaseModel):
    """Aggregate rating attached to a search result."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    aggregate_rating: float | None = Field(default=None, alias="aggregateRating")
    vote_count: int | None = Field(default=None, alias="voteCount")


class CandidateRecord(BaseModel):
    """A single raw result returned by the title search service."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    type: str | None = None
    title_type: str | None = Field(default=None, alias="titleType")
    primary_title: str | None = Field(default=None, alias="primaryTitle")
    original_title: str | None = Field(default=None, alias="originalTitle")
    start_year: int | None = Field(default=None, alias="startYear")
    rating: CandidateRating | None = None

    @property
    def category(self) -> str | None:
        """Lower-cased category tag, preferring titleType over type."""
        tag = self.title_type or self.type
        return tag.lower() if tag else None


class RatingRecord(BaseModel):
    """Canonical rating returned to callers."""

    model_config = ConfigDict(frozen=True)

    score: float | str
    votes: str
    title: str
    category: str | None = None
    year: int | None = None
    url: str


class CacheEntry(BaseModel):
    """A cached rating stamped with its write time (Unix epoch milliseconds)."""

    model_config = ConfigDict(frozen=True)

    data: RatingRecord | None = None
    timestamp: int


class TitleQuery(BaseModel):
    """A title to resolve, as supplied by an upstream scraper."""

    model_config = ConfigDict(extra="forbid")

    title: str
    category: str | None = None
