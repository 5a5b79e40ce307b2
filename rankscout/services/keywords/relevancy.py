"""Relevancy filtering: batch keywords through a classifier and reconcile."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Protocol

from rankscout.config import settings
from rankscout.services.keywords.progress import ProgressCounter, log_progress
from rankscout.services.keywords.scoring import sort_keywords_by_score
from rankscout.services.keywords.types import (
    BusinessContext,
    KeywordCandidate,
    RelevancyResult,
    RelevancyVerdict,
)

logger = logging.getLogger(__name__)


class RelevancyClassifier(Protocol):
    async def classify(self, keywords: list[str], context: BusinessContext) -> RelevancyVerdict:
        """Split keyword texts into relevant and irrelevant; may raise."""
        ...


def reconcile_batch(
    batch: Sequence[KeywordCandidate],
    verdict: RelevancyVerdict,
    *,
    batch_index: int = 0,
) -> RelevancyResult:
    """Map classifier texts back onto the original keyword objects.

    Relevant membership is checked first, so a text the classifier put in
    both lists counts as relevant. Items in neither list are dropped and
    logged.
    """
    relevant_texts = set(verdict.relevant)
    irrelevant_texts = set(verdict.irrelevant)
    result = RelevancyResult()
    unaccounted: list[str] = []

    for candidate in batch:
        if candidate.keyword in relevant_texts:
            result.relevant.append(candidate)
        elif candidate.keyword in irrelevant_texts:
            result.irrelevant.append(candidate)
        else:
            unaccounted.append(candidate.keyword)

    if unaccounted:
        logger.warning(
            "Classifier left keywords unaccounted for",
            extra={
                "batch_index": batch_index,
                "unaccounted_count": len(unaccounted),
                "unaccounted_keywords": unaccounted[:20],
            },
        )
    return result


class KeywordRelevancyPipeline:
    """Filter keywords down to those relevant to a business."""

    def __init__(
        self,
        classifier: RelevancyClassifier,
        *,
        batch_size: int | None = None,
        progress_interval_seconds: float | None = None,
    ) -> None:
        self.classifier = classifier
        self.batch_size = batch_size or settings.relevancy_batch_size
        self.progress_interval_seconds = (
            settings.progress_log_interval_seconds
            if progress_interval_seconds is None
            else progress_interval_seconds
        )
        if self.batch_size < 1:
            raise ValueError("batch_size must be >= 1")

    def _batches(self, keywords: Sequence[KeywordCandidate]) -> list[list[KeywordCandidate]]:
        return [
            list(keywords[start:start + self.batch_size])
            for start in range(0, len(keywords), self.batch_size)
        ]

    async def _classify_batch(
        self,
        batch_index: int,
        batch: list[KeywordCandidate],
        context: BusinessContext,
        progress: ProgressCounter,
    ) -> RelevancyResult:
        try:
            verdict = await self.classifier.classify([item.keyword for item in batch], context)
        except Exception:
            logger.warning(
                "Relevancy batch failed, keeping whole batch as relevant",
                exc_info=True,
                extra={"batch_index": batch_index, "batch_size": len(batch), "domain": context.domain},
            )
            return RelevancyResult(relevant=list(batch))
        finally:
            progress.advance()
        return reconcile_batch(batch, verdict, batch_index=batch_index)

    async def filter_relevant(
        self,
        keywords: Sequence[KeywordCandidate],
        context: BusinessContext,
    ) -> RelevancyResult:
        """Return relevant keywords sorted by score and irrelevant ones in input order."""
        if not keywords:
            logger.warning("No keywords to filter for relevancy", extra={"domain": context.domain})
            return RelevancyResult()

        batches = self._batches(keywords)
        logger.info(
            "Relevancy filtering started",
            extra={"domain": context.domain, "keyword_count": len(keywords), "batch_count": len(batches)},
        )

        async with log_progress(
            logger,
            "Relevancy filtering progress",
            total=len(batches),
            interval_seconds=self.progress_interval_seconds,
            domain=context.domain,
        ) as progress:
            batch_results = await asyncio.gather(
                *(
                    self._classify_batch(index, batch, context, progress)
                    for index, batch in enumerate(batches)
                )
            )

        relevant: list[KeywordCandidate] = []
        irrelevant: list[KeywordCandidate] = []
        for batch_result in batch_results:
            relevant.extend(batch_result.relevant)
            irrelevant.extend(batch_result.irrelevant)

        result = RelevancyResult(relevant=sort_keywords_by_score(relevant), irrelevant=irrelevant)
        logger.info(
            "Relevancy filtering completed",
            extra={
                "domain": context.domain,
                "relevant_count": len(result.relevant),
                "irrelevant_count": len(result.irrelevant),
                "unaccounted_count": len(keywords) - len(result.relevant) - len(result.irrelevant),
            },
        )
        return result
