"""Lean keyword expansion: seed keywords through an LLM expander, batch by batch."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from rankscout.config import settings
from rankscout.services.keywords.types import BusinessContext, KeywordExpansion

logger = logging.getLogger(__name__)

MAX_EXPANDED_KEYWORD_LENGTH = 80


class KeywordExpander(Protocol):
    async def expand(self, keywords: list[str], context: BusinessContext) -> list[KeywordExpansion]:
        """Return variations per seed keyword; may raise."""
        ...


def _dedupe(values: Sequence[str]) -> list[str]:
    return list(dict.fromkeys(values))


def clean_expansion(expansion: KeywordExpansion) -> KeywordExpansion:
    """Drop blank or overlong variations and make sure the seed itself is kept."""
    kept = [
        variation.strip()
        for variation in expansion.expanded
        if variation.strip() and len(variation.strip()) <= MAX_EXPANDED_KEYWORD_LENGTH
    ]
    return KeywordExpansion(original=expansion.original, expanded=_dedupe([*kept, expansion.original]))


def flatten_expansions(expansions: Sequence[KeywordExpansion]) -> list[str]:
    """All variations across seeds, first occurrence wins."""
    return _dedupe([variation for expansion in expansions for variation in expansion.expanded])


class KeywordExpansionPipeline:
    """Expand seed keywords into lean keywords.

    Batches run one after another. A batch the expander fails on keeps its
    seeds unexpanded, and so does any seed the expander left out.
    """

    def __init__(self, expander: KeywordExpander, *, batch_size: int | None = None) -> None:
        self.expander = expander
        self.batch_size = batch_size or settings.keyword_expansion_batch_size
        if self.batch_size < 1:
            raise ValueError("batch_size must be >= 1")

    async def _expand_batch(
        self,
        batch_index: int,
        batch: list[str],
        context: BusinessContext,
    ) -> dict[str, KeywordExpansion]:
        fallback = {seed: KeywordExpansion(original=seed, expanded=[seed]) for seed in batch}
        try:
            expansions = await self.expander.expand(batch, context)
        except Exception:
            logger.error(
                "Keyword expansion batch failed, keeping seeds unexpanded",
                exc_info=True,
                extra={"batch_index": batch_index, "keywords": batch, "domain": context.domain},
            )
            return fallback

        result = dict(fallback)
        invented: list[str] = []
        for expansion in expansions:
            if expansion.original not in fallback:
                invented.append(expansion.original)
                continue
            result[expansion.original] = clean_expansion(expansion)
        if invented:
            logger.warning(
                "Expander returned unknown seed keywords",
                extra={"batch_index": batch_index, "unknown_keywords": invented[:20]},
            )
        return result

    async def expand(self, seed_keywords: Sequence[str], context: BusinessContext) -> list[KeywordExpansion]:
        """Return one cleaned expansion per distinct seed keyword, in seed order."""
        seeds = _dedupe([seed.strip() for seed in seed_keywords if seed.strip()])
        if not seeds:
            return []

        expanded: dict[str, KeywordExpansion] = {}
        for batch_index, start in enumerate(range(0, len(seeds), self.batch_size)):
            batch = seeds[start:start + self.batch_size]
            logger.info(
                "Expanding keyword batch",
                extra={"batch_index": batch_index, "keywords": batch, "domain": context.domain},
            )
            expanded.update(await self._expand_batch(batch_index, batch, context))

        expansions = [expanded[seed] for seed in seeds]
        logger.info(
            "Keyword expansion completed",
            extra={
                "domain": context.domain,
                "seed_count": len(seeds),
                "keyword_count": len(flatten_expansions(expansions)),
            },
        )
        return expansions
