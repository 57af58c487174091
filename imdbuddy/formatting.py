"""Conversion of matched search results into rating records."""

from .config import settings
from .models import CandidateRecord, RatingRecord

NOT_AVAILABLE = "N/A"


def format_votes(votes: int | None) -> str:
    """Abbreviate a vote count for display (e.g. 1500000 -> "1.5M")."""
    if votes is None:
        return "0"
    if votes >= 1_000_000:
        return f"{votes / 1_000_000:.1f}M"
    if votes >= 1_000:
        return f"{votes / 1_000:.1f}K"
    return str(votes)


def to_rating_record(
    candidate: CandidateRecord,
    url_template: str = settings.title_url_template,
) -> RatingRecord:
    """Build the caller-facing record for a selected candidate."""
    rating = candidate.rating
    score = rating.aggregate_rating if rating else None
    vote_count = rating.vote_count if rating else None

    return RatingRecord(
        score=score if score is not None else NOT_AVAILABLE,
        votes=format_votes(vote_count),
        title=candidate.primary_title or candidate.original_title or "",
        category=candidate.title_type or candidate.type,
        year=candidate.start_year,
        url=url_template.format(id=candidate.id),
    )
