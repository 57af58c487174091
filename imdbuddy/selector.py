"""Fuzzy selection of the best search result for a scraped title."""

import logging
from dataclasses import dataclass

from .config import settings
from .models import CandidateRecord
from .similarity import similarity

logger = logging.getLogger(__name__)


@dataclass
class TitleMatch:
    """Result of fuzzy candidate selection."""

    candidate: CandidateRecord
    score: float


class CandidateSelector:
    """Pick the search result whose title best matches a scraped title."""

    def __init__(self, threshold: float = settings.min_match_score):
        """Initialize selector.

        Args:
            threshold: Minimum similarity (0-1) for a candidate to be accepted
        """
        self.threshold = threshold

    def _filter_by_category(
        self, candidates: list[CandidateRecord], expected_category: str | None
    ) -> list[CandidateRecord]:
        """Narrow candidates to the expected category when any match it.

        A hint that matches nothing falls back to the full list so a wrong
        category guess never turns into a total miss.
        """
        if not expected_category:
            return candidates

        expected = expected_category.lower()
        filtered = [c for c in candidates if c.category == expected]
        if filtered:
            logger.debug(
                f"Filtered by category '{expected}', {len(filtered)} of "
                f"{len(candidates)} candidates remain"
            )
            return filtered

        return candidates

    def select(
        self,
        search_title: str,
        candidates: list[CandidateRecord],
        expected_category: str | None = None,
    ) -> TitleMatch | None:
        """Select the best matching candidate.

        Args:
            search_title: Title scraped from the page
            candidates: Raw search results
            expected_category: Category hint such as "movie" or "tvseries"

        Returns:
            TitleMatch if the best score reaches the threshold, None otherwise
        """
        if not candidates:
            logger.debug(f"No candidates to match for '{search_title}'")
            return None

        best_match = None
        best_score = 0.0

        for candidate in self._filter_by_category(candidates, expected_category):
            if not candidate.primary_title:
                continue

            score = similarity(search_title, candidate.primary_title)
            # Strict comparison keeps the first candidate on ties
            if score > best_score:
                best_score = score
                best_match = TitleMatch(candidate=candidate, score=score)
                logger.debug(
                    f"Best match for '{search_title}' is now "
                    f"'{candidate.primary_title}' ({score:.3f})"
                )

        if best_match and best_score >= self.threshold:
            return best_match

        logger.debug(
            f"No confident match for '{search_title}', best score {best_score:.3f}"
        )
        return None
