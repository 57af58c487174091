"""Tests for rating record formatting."""

import pytest
from pydantic import ValidationError

from imdbuddy.formatting import format_votes, to_rating_record
from imdbuddy.models import CandidateRecord


@pytest.mark.parametrize(
    "votes, expected",
    [
        (2_300_000, "2.3M"),
        (1_000_000, "1.0M"),
        (999_999, "1000.0K"),
        (1_500, "1.5K"),
        (1_000, "1.0K"),
        (999, "999"),
        (0, "0"),
        (None, "0"),
    ],
)
def test_format_votes(votes, expected):
    assert format_votes(votes) == expected


def test_missing_rating_is_not_available():
    candidate = CandidateRecord.model_validate(
        {"id": "tt0000001", "primaryTitle": "Obscure Short", "type": "short"}
    )

    record = to_rating_record(candidate)

    assert record.score == "N/A"
    assert record.votes == "0"
    assert record.year is None
    assert record.category == "short"


def test_falls_back_to_original_title():
    candidate = CandidateRecord.model_validate(
        {"id": "tt0245429", "originalTitle": "Sen to Chihiro no kamikakushi"}
    )

    record = to_rating_record(candidate)

    assert record.title == "Sen to Chihiro no kamikakushi"


def test_custom_url_template(inception):
    record = to_rating_record(inception, url_template="https://example.test/{id}")

    assert record.url == "https://example.test/tt1375666"


def test_record_is_immutable(inception):
    record = to_rating_record(inception)

    with pytest.raises(ValidationError):
        record.score = 1.0


def test_category_prefers_title_type():
    candidate = CandidateRecord.model_validate(
        {
            "id": "tt0386676",
            "primaryTitle": "The Office",
            "type": "tv",
            "titleType": "tvSeries",
        }
    )

    record = to_rating_record(candidate)

    assert record.category == "tvSeries"
    assert candidate.category == record.category.lower()
