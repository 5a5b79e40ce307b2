"""Keyword enrichment and relevancy endpoints."""

import logging

from fastapi import APIRouter

from rankscout.dependencies import EnrichmentPipelineDep, RelevancyPipelineDep
from rankscout.schemas.keyword import (
    KeywordEnrichRequest,
    KeywordListResponse,
    KeywordRelevancyRequest,
    KeywordRelevancyResponse,
    KeywordResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/enrich",
    response_model=KeywordListResponse,
    summary="Enrich keywords",
    description=(
        "Look up suggestions and metrics for each seed keyword and return the merged list, "
        "filtered by minimum volume, deduplicated and ranked by difficulty tier then volume."
    ),
)
async def enrich_keywords(
    request: KeywordEnrichRequest,
    pipeline: EnrichmentPipelineDep,
) -> KeywordListResponse:
    keywords = await pipeline.enrich(request.keywords)
    return KeywordListResponse(
        items=[KeywordResponse.from_candidate(keyword) for keyword in keywords],
        total=len(keywords),
    )


@router.post(
    "/filter-relevant",
    response_model=KeywordRelevancyResponse,
    summary="Filter keywords by relevancy",
    description="Split keywords into relevant and irrelevant for the given business context.",
)
async def filter_relevant_keywords(
    request: KeywordRelevancyRequest,
    pipeline: RelevancyPipelineDep,
) -> KeywordRelevancyResponse:
    result = await pipeline.filter_relevant(
        [keyword.to_candidate() for keyword in request.keywords],
        request.context.to_context(),
    )
    return KeywordRelevancyResponse(
        relevant=[KeywordResponse.from_candidate(keyword) for keyword in result.relevant],
        irrelevant=[KeywordResponse.from_candidate(keyword) for keyword in result.irrelevant],
    )
