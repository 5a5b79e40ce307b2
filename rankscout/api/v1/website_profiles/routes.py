"""Website profile and profile workflow endpoints."""

import logging

from fastapi import APIRouter, HTTPException, status

from rankscout.core.exceptions import (
    ExternalAPIError,
    IncompleteProfileError,
    RankScoutError,
    ScrapeJobError,
    WebsiteProfileNotFoundError,
)
from rankscout.dependencies import (
    KeywordWorkflowDep,
    ProfileAnalysisWorkflowDep,
    ScrapeWorkflowDep,
    WebsiteProfileRepositoryDep,
)
from rankscout.models.website_profile import WebsiteProfile
from rankscout.schemas.keyword import (
    KeywordListResponse,
    KeywordResponse,
    LeanKeywordsRequest,
    LeanKeywordsResponse,
    ValidatedKeywordsRequest,
)
from rankscout.schemas.scrape_job import ScrapedPageResponse
from rankscout.schemas.website_profile import (
    ProfileAnalysisResponse,
    WebsiteProfileCreate,
    WebsiteProfileResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_http_error(exc: RankScoutError) -> HTTPException:
    if isinstance(exc, WebsiteProfileNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)
    if isinstance(exc, IncompleteProfileError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    if isinstance(exc, ExternalAPIError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.message)


@router.post(
    "",
    response_model=WebsiteProfileResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create website profile",
)
async def create_website_profile(
    payload: WebsiteProfileCreate,
    profiles: WebsiteProfileRepositoryDep,
) -> WebsiteProfile:
    return await profiles.create(payload.domain)


@router.get(
    "/{profile_id}",
    response_model=WebsiteProfileResponse,
    summary="Get website profile",
)
async def get_website_profile(profile_id: str, profiles: WebsiteProfileRepositoryDep) -> WebsiteProfile:
    try:
        return await profiles.get(profile_id)
    except WebsiteProfileNotFoundError as e:
        raise _to_http_error(e) from e


@router.post(
    "/{profile_id}/scrape",
    response_model=list[ScrapedPageResponse],
    summary="Scrape website",
    description=(
        "Crawl the profile's website, reusing a crawl started within the reuse window, wait "
        "for it to finish and return the stored pages."
    ),
)
async def scrape_website(profile_id: str, workflow: ScrapeWorkflowDep) -> list[ScrapedPageResponse]:
    try:
        pages = await workflow.scrape_website(profile_id)
    except (WebsiteProfileNotFoundError, ExternalAPIError, ScrapeJobError) as e:
        raise _to_http_error(e) from e
    return [ScrapedPageResponse.model_validate(page) for page in pages]


@router.post(
    "/{profile_id}/analyze",
    response_model=ProfileAnalysisResponse,
    summary="Analyze website",
    description=(
        "Extract business insights from the profile's scraped pages and store the overview, "
        "ICPs, intents and seed keywords on the profile."
    ),
)
async def analyze_website_profile(
    profile_id: str,
    workflow: ProfileAnalysisWorkflowDep,
) -> ProfileAnalysisResponse:
    try:
        analysis = await workflow.analyze_profile(profile_id)
    except (WebsiteProfileNotFoundError, IncompleteProfileError) as e:
        raise _to_http_error(e) from e
    return ProfileAnalysisResponse.model_validate(analysis)


@router.post(
    "/{profile_id}/keywords/lean",
    response_model=LeanKeywordsResponse,
    summary="Generate lean keywords",
)
async def generate_lean_keywords(
    profile_id: str,
    workflow: KeywordWorkflowDep,
    request: LeanKeywordsRequest | None = None,
) -> LeanKeywordsResponse:
    try:
        keywords = await workflow.generate_lean_keywords(
            profile_id,
            request.seed_keywords if request else None,
        )
    except (WebsiteProfileNotFoundError, IncompleteProfileError) as e:
        raise _to_http_error(e) from e
    return LeanKeywordsResponse(keywords=keywords, total=len(keywords))


@router.post(
    "/{profile_id}/keywords/validated",
    response_model=KeywordListResponse,
    summary="Generate validated keywords",
)
async def generate_validated_keywords(
    profile_id: str,
    workflow: KeywordWorkflowDep,
    request: ValidatedKeywordsRequest | None = None,
) -> KeywordListResponse:
    try:
        keywords = await workflow.generate_validated_keywords(
            profile_id,
            request.lean_keywords if request else None,
        )
    except (WebsiteProfileNotFoundError, IncompleteProfileError) as e:
        raise _to_http_error(e) from e
    return KeywordListResponse(
        items=[KeywordResponse.from_candidate(keyword) for keyword in keywords],
        total=len(keywords),
    )


@router.post(
    "/{profile_id}/keywords/relevant",
    response_model=KeywordListResponse,
    summary="Filter relevant keywords",
)
async def filter_relevant_keywords(profile_id: str, workflow: KeywordWorkflowDep) -> KeywordListResponse:
    try:
        keywords = await workflow.filter_relevant_keywords(profile_id)
    except (WebsiteProfileNotFoundError, IncompleteProfileError) as e:
        raise _to_http_error(e) from e
    return KeywordListResponse(
        items=[KeywordResponse.from_candidate(keyword) for keyword in keywords],
        total=len(keywords),
    )
