"""Tiered keyword scoring, sorting and deduplication."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from rankscout.services.keywords.types import KeywordCandidate

MIN_SIGNIFICANT_VOLUME = 1000
# Must dwarf any plausible search volume so the tier always dominates
TIER_MULTIPLIER = 10_000_000

_DIFFICULTY_TIERS = {
    "LOW": 2,
    "MEDIUM": 1,
    "HIGH": 0,
    "UNKNOWN": 0,
}


def score_keyword(keyword: KeywordCandidate) -> int:
    """Score a keyword: difficulty tier first, search volume as tie-break.

    Keywords below `MIN_SIGNIFICANT_VOLUME` sit in tier -1, under every
    significant keyword whatever their difficulty.
    """
    volume = keyword.search_volume or 0
    if volume < MIN_SIGNIFICANT_VOLUME:
        tier = -1
    else:
        tier = _DIFFICULTY_TIERS.get(keyword.difficulty, 0)
    return tier * TIER_MULTIPLIER + volume


def sort_keywords_by_score(keywords: Iterable[KeywordCandidate]) -> list[KeywordCandidate]:
    """Return keywords ordered by descending score; ties keep input order."""
    return sorted(keywords, key=score_keyword, reverse=True)


def create_deduplication_filter() -> Callable[[KeywordCandidate], bool]:
    """Build a predicate that passes only the first keyword seen for each text."""
    seen: set[str] = set()

    def _is_first_occurrence(keyword: KeywordCandidate) -> bool:
        if keyword.keyword in seen:
            return False
        seen.add(keyword.keyword)
        return True

    return _is_first_occurrence


def filter_by_thresholds(
    keywords: Iterable[KeywordCandidate],
    *,
    min_search_volume: int = 100,
) -> list[KeywordCandidate]:
    """Keep keywords with enough volume and LOW or MEDIUM difficulty."""
    return [
        keyword
        for keyword in keywords
        if keyword.search_volume >= min_search_volume and keyword.difficulty in ("LOW", "MEDIUM")
    ]


def group_by_difficulty(keywords: Iterable[KeywordCandidate]) -> dict[str, list[KeywordCandidate]]:
    """Split keywords into easy / medium / hard buckets; UNKNOWN is left out."""
    groups: dict[str, list[KeywordCandidate]] = {"easy": [], "medium": [], "hard": []}
    bucket_for = {"LOW": "easy", "MEDIUM": "medium", "HIGH": "hard"}
    for keyword in keywords:
        bucket = bucket_for.get(keyword.difficulty)
        if bucket is not None:
            groups[bucket].append(keyword)
    return groups
