"""Scrape job API endpoints."""

import logging

from fastapi import APIRouter, HTTPException, Query, status

from rankscout.api.v1.scrape_jobs.constants import (
    SCRAPE_JOB_NOT_FOUND_DETAIL,
    SCRAPE_START_FAILED_DETAIL,
    WEBSITE_PROFILE_NOT_FOUND_DETAIL,
)
from rankscout.core.exceptions import (
    ExternalAPIError,
    ScrapeJobNotFoundError,
    WebsiteProfileNotFoundError,
)
from rankscout.dependencies import ScrapeJobManagerDep
from rankscout.models.scrape_job import ScrapeJob
from rankscout.schemas.scrape_job import (
    LatestScrapeJobResponse,
    ScrapeJobCreate,
    ScrapeJobResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=ScrapeJobResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create scrape job",
    description=(
        "Start a crawl for the domain and return the new job. The crawl is tracked to "
        "completion in the background; poll the job for its outcome."
    ),
)
async def create_scrape_job(
    payload: ScrapeJobCreate,
    manager: ScrapeJobManagerDep,
) -> ScrapeJob:
    try:
        job = await manager.create_job(payload.website_profile_id, payload.domain)
    except WebsiteProfileNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=WEBSITE_PROFILE_NOT_FOUND_DETAIL,
        ) from e
    except ExternalAPIError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"{SCRAPE_START_FAILED_DETAIL}: {e.message}",
        ) from e

    manager.schedule(job.id)
    return job


@router.get(
    "/latest",
    response_model=LatestScrapeJobResponse,
    summary="Latest scrape job for a profile",
)
async def get_latest_scrape_job(
    manager: ScrapeJobManagerDep,
    website_profile_id: str = Query(..., min_length=1),
) -> LatestScrapeJobResponse:
    job = await manager.get_latest_job(website_profile_id)
    return LatestScrapeJobResponse(job=ScrapeJobResponse.model_validate(job) if job else None)


@router.get(
    "/{job_id}",
    response_model=ScrapeJobResponse,
    summary="Get scrape job",
    description="Return the status, result page ids and error of a scrape job.",
)
async def get_scrape_job(job_id: str, manager: ScrapeJobManagerDep) -> ScrapeJob:
    try:
        return await manager.get_job(job_id)
    except ScrapeJobNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=SCRAPE_JOB_NOT_FOUND_DETAIL,
        ) from e
