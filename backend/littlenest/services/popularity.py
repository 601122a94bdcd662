"""
LittleNest Backend: Popularity & Similarity Scoring
=====================================================

What:  The popularity score formula and the similarity indicator sum used by name recommendations.
How:   Plain functions over plain values. The same formula is also exposed
       as a SQL expression so counters can be bumped and rescored in one
       atomic UPDATE (see NameService.record_view).

Score:
    score = views * 0.6 + search_appearances * 0.3 + trend * 0.1

    Computed from the counters AFTER the increment is applied. Trend
    updates overwrite `trend` without touching `score`; the two only agree
    again on the next view or search event.

Similarity:
    +2 same origin, +1 same length, +1 same numerology number (max 4).
"""

from dataclasses import dataclass
from typing import Any, Callable, List, Sequence, Tuple, TypeVar

VIEW_WEIGHT = 0.6
SEARCH_WEIGHT = 0.3
TREND_WEIGHT = 0.1

ORIGIN_MATCH_POINTS = 2
LENGTH_MATCH_POINTS = 1
NUMEROLOGY_MATCH_POINTS = 1

T = TypeVar("T")


def popularity_score(views: Any, search_appearances: Any, trend: Any) -> Any:
    """
    Weighted popularity score.

    Works for Python numbers and for SQLAlchemy column expressions alike,
    which is how the atomic UPDATE statements reuse it.
    """
    return views * VIEW_WEIGHT + search_appearances * SEARCH_WEIGHT + trend * TREND_WEIGHT


# ══════════════════════════════════════════════════════════════════════════
# Similarity
# ══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SimilarityProfile:
    """The three attributes name similarity is judged on."""
    origin: str
    length: int
    numerology_number: int


def similarity_score(source: SimilarityProfile, candidate: SimilarityProfile) -> int:
    score = 0
    if candidate.origin == source.origin:
        score += ORIGIN_MATCH_POINTS
    if candidate.length == source.length:
        score += LENGTH_MATCH_POINTS
    if candidate.numerology_number == source.numerology_number:
        score += NUMEROLOGY_MATCH_POINTS
    return score


def rank_by_similarity(
    source: SimilarityProfile,
    candidates: Sequence[T],
    profile_of: Callable[[T], SimilarityProfile],
) -> List[Tuple[T, int]]:
    """
    Score candidates against the source and sort by score descending.

    The sort is stable, so equal scores keep their sampled order.
    """
    scored = [(candidate, similarity_score(source, profile_of(candidate))) for candidate in candidates]
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return scored
