"""String similarity scoring for fuzzy title matching.

The composite score blends four measures computed on normalized titles:

    0.3 * edit-distance similarity
    0.3 * Jaro similarity
    0.2 * longest-common-substring score
    0.2 * word-overlap (Jaccard) score
"""

import re

from rapidfuzz.distance import Levenshtein

EDIT_WEIGHT = 0.3
JARO_WEIGHT = 0.3
SUBSTRING_WEIGHT = 0.2
WORD_OVERLAP_WEIGHT = 0.2

# Score given when one title contains the other outright
CONTAINMENT_SCORE = 0.9

_NON_WORD_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize(title: str) -> str:
    """Normalize a title for comparison.

    Lower-cases, drops everything that is not a word character or whitespace,
    collapses whitespace runs and trims.

    Args:
        title: Raw title string

    Returns:
        Normalized title
    """
    title = title.lower()
    title = _NON_WORD_RE.sub("", title)
    return _WHITESPACE_RE.sub(" ", title).strip()


def edit_similarity(s1: str, s2: str) -> float:
    """Levenshtein distance scaled to [0, 1] by the longer length."""
    max_length = max(len(s1), len(s2))
    if max_length == 0:
        return 1.0
    return 1.0 - Levenshtein.distance(s1, s2) / max_length


def jaro_similarity(s1: str, s2: str) -> float:
    """Jaro similarity; 0 when either string is empty.

    Each character of s1 takes the first unmatched equal character of s2
    within floor(max_len / 2) - 1 positions. Transpositions are matched
    pairs that are out of order, counted as halves.
    """
    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0

    window = max(len(s1), len(s2)) // 2 - 1
    s1_matched = [False] * len(s1)
    s2_matched = [False] * len(s2)

    matches = 0
    for i, ch in enumerate(s1):
        start = max(0, i - window)
        end = min(i + window + 1, len(s2))
        for j in range(start, end):
            if s2_matched[j] or s2[j] != ch:
                continue
            s1_matched[i] = s2_matched[j] = True
            matches += 1
            break

    if matches == 0:
        return 0.0

    s1_sequence = [ch for ch, matched in zip(s1, s1_matched) if matched]
    s2_sequence = [ch for ch, matched in zip(s2, s2_matched) if matched]
    transpositions = sum(a != b for a, b in zip(s1_sequence, s2_sequence))

    return (
        matches / len(s1)
        + matches / len(s2)
        + (matches - transpositions / 2) / matches
    ) / 3


def _longest_common_substring(s1: str, s2: str) -> int:
    """Length of the longest contiguous run shared by both strings."""
    shorter, longer = (s1, s2) if len(s1) <= len(s2) else (s2, s1)
    best = 0
    previous = [0] * (len(shorter) + 1)
    for ch in longer:
        current = [0] * (len(shorter) + 1)
        for j, other in enumerate(shorter, start=1):
            if ch == other:
                current[j] = previous[j - 1] + 1
                if current[j] > best:
                    best = current[j]
        previous = current
    return best


def substring_score(s1: str, s2: str) -> float:
    """Score shared contiguous text between two titles.

    Containment of one title in the other short-circuits to
    CONTAINMENT_SCORE; otherwise the longest common substring is scaled by
    the longer length.
    """
    if s1 in s2 or s2 in s1:
        return CONTAINMENT_SCORE
    return _longest_common_substring(s1, s2) / max(len(s1), len(s2))


def word_overlap_score(s1: str, s2: str) -> float:
    """Jaccard similarity of the word sets, ignoring single-character words."""
    words1 = {word for word in s1.split(" ") if len(word) > 1}
    words2 = {word for word in s2.split(" ") if len(word) > 1}

    if not words1 or not words2:
        return 0.0

    return len(words1 & words2) / len(words1 | words2)


def similarity(title1: str, title2: str) -> float:
    """Composite similarity between two titles in [0, 1].

    Args:
        title1: First title (raw)
        title2: Second title (raw)

    Returns:
        1.0 when the normalized titles are identical, otherwise the weighted
        blend of the four sub-scores
    """
    normalized1 = normalize(title1)
    normalized2 = normalize(title2)

    if normalized1 == normalized2:
        return 1.0

    return (
        edit_similarity(normalized1, normalized2) * EDIT_WEIGHT
        + jaro_similarity(normalized1, normalized2) * JARO_WEIGHT
        + substring_score(normalized1, normalized2) * SUBSTRING_WEIGHT
        + word_overlap_score(normalized1, normalized2) * WORD_OVERLAP_WEIGHT
    )
