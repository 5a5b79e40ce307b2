"""Keyword enrichment: fan out vendor lookups, then filter, dedupe and rank."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Protocol

from rankscout.config import settings
from rankscout.services.keywords.progress import log_progress
from rankscout.services.keywords.rate_limiter import FetchOutcome, RateLimitedFetcher, RateLimiter
from rankscout.services.keywords.scoring import create_deduplication_filter, sort_keywords_by_score
from rankscout.services.keywords.types import (
    DIFFICULTY_HIGH,
    DIFFICULTY_LOW,
    DIFFICULTY_MEDIUM,
    DIFFICULTY_UNKNOWN,
    KeywordCandidate,
    KeywordDifficulty,
    RawKeywordSuggestion,
    RawSource,
)

logger = logging.getLogger(__name__)

_VOLUME_SUFFIXES = {"k": 1_000, "K": 1_000, "M": 1_000_000}
_DIFFICULTY_LABELS: dict[str, KeywordDifficulty] = {
    "easy": DIFFICULTY_LOW,
    "medium": DIFFICULTY_MEDIUM,
    "hard": DIFFICULTY_HIGH,
}


class KeywordLookup(Protocol):
    """Vendor lookup that expands one seed keyword into result rows."""

    provider: str

    async def lookup(self, keyword: str) -> list[RawKeywordSuggestion]:
        """Return zero or more suggestions for `keyword`; may raise."""
        ...


def parse_volume(raw_volume: str | None) -> int:
    """Map a vendor volume string such as "1.2k", "<500" or ">10k" to an int.

    `<` keeps the bound as the value and `>` adds one to it. Values that
    cannot be parsed, or are negative, become 0 and are logged as a
    data-quality event.
    """
    if raw_volume is None or not raw_volume.strip():
        return 0

    cleaned = raw_volume.replace("<", "").replace(">", "").replace(",", "").strip()
    # Ranges such as "0-10" count as their lower bound
    if "-" in cleaned[1:]:
        cleaned = cleaned[0] + cleaned[1:].split("-", 1)[0]
        cleaned = cleaned.strip()
    multiplier = 1
    if cleaned and cleaned[-1] in _VOLUME_SUFFIXES:
        multiplier = _VOLUME_SUFFIXES[cleaned[-1]]
        cleaned = cleaned[:-1].strip()

    try:
        number = Decimal(cleaned)
    except InvalidOperation:
        number = None

    if number is None or not number.is_finite() or number < 0:
        logger.warning(
            "Unparsable keyword volume, defaulting to 0",
            extra={"event": "data_quality", "raw_volume": raw_volume},
        )
        return 0

    value = int(number * multiplier)
    if raw_volume.lstrip().startswith(">"):
        return value + 1
    return value


def map_difficulty(raw_difficulty: str | None) -> KeywordDifficulty:
    """Map the vendor's Easy/Medium/Hard label; anything else is UNKNOWN."""
    if not raw_difficulty:
        return DIFFICULTY_UNKNOWN
    return _DIFFICULTY_LABELS.get(raw_difficulty.strip().lower(), DIFFICULTY_UNKNOWN)


def _parse_last_updated(raw: str | None) -> datetime | None:
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Ignoring unparsable keyword timestamp", extra={"last_updated": raw})
        return None


def to_keyword_candidate(suggestion: RawKeywordSuggestion, *, provider: str) -> KeywordCandidate:
    """Convert one raw vendor row into a scored-ready keyword candidate."""
    return KeywordCandidate(
        keyword=suggestion.text,
        search_volume=parse_volume(suggestion.raw_volume),
        difficulty=map_difficulty(suggestion.raw_difficulty),
        last_updated=_parse_last_updated(suggestion.last_updated),
        provider=provider,
        raw_source=RawSource(provider=provider, payload=dict(suggestion.payload)),
    )


class KeywordEnrichmentPipeline:
    """Turn seed keyword texts into a deduplicated, ranked keyword list."""

    def __init__(
        self,
        lookup: KeywordLookup,
        *,
        limiter: RateLimiter | None = None,
        min_volume: int | None = None,
        progress_interval_seconds: float | None = None,
    ) -> None:
        self.lookup = lookup
        self.limiter = limiter
        self.min_volume = settings.keyword_min_volume if min_volume is None else min_volume
        self.progress_interval_seconds = (
            settings.progress_log_interval_seconds
            if progress_interval_seconds is None
            else progress_interval_seconds
        )

    async def enrich(self, keywords: Sequence[str]) -> list[KeywordCandidate]:
        """Look up every seed keyword and return the merged ranked candidates."""
        if not keywords:
            return []

        logger.info("Keyword enrichment started", extra={"seed_count": len(keywords)})

        async with log_progress(
            logger,
            "Keyword enrichment progress",
            total=len(keywords),
            interval_seconds=self.progress_interval_seconds,
        ) as progress:
            fetcher: RateLimitedFetcher[list[RawKeywordSuggestion]] = RateLimitedFetcher(
                self.lookup.lookup,
                limiter=self.limiter or RateLimiter.from_settings(),
                on_settled=lambda _outcome: progress.advance(),
            )
            outcomes = await fetcher.fetch_all(list(keywords))

        candidates = self._flatten(outcomes)
        ranked = self.process_candidates(candidates)

        logger.info(
            "Keyword enrichment completed",
            extra={
                "seed_count": len(keywords),
                "failed_lookups": sum(1 for outcome in outcomes if not outcome.ok),
                "candidate_count": len(candidates),
                "result_count": len(ranked),
            },
        )
        return ranked

    def _flatten(
        self,
        outcomes: list[FetchOutcome[list[RawKeywordSuggestion]]],
    ) -> list[KeywordCandidate]:
        provider = getattr(self.lookup, "provider", None) or "unknown"
        candidates: list[KeywordCandidate] = []
        for outcome in outcomes:
            if not outcome.ok or not outcome.value:
                continue
            for suggestion in outcome.value:
                if suggestion.text:
                    candidates.append(to_keyword_candidate(suggestion, provider=provider))
        return candidates

    def process_candidates(self, candidates: list[KeywordCandidate]) -> list[KeywordCandidate]:
        """Volume filter, first-seen dedupe, then stable tier-score sort."""
        is_first = create_deduplication_filter()
        kept = [
            candidate
            for candidate in candidates
            if candidate.search_volume >= self.min_volume and is_first(candidate)
        ]
        return sort_keywords_by_score(kept)
