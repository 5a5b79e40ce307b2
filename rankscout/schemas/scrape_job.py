"""Scrape job and scraped page schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class ScrapeJobCreate(BaseModel):
    """Schema for creating a scrape job."""

    website_profile_id: str = Field(min_length=1)
    domain: str = Field(min_length=1, max_length=255)


class ScrapeJobResponse(BaseModel):
    """Schema for scrape job status."""

    id: str
    website_profile_id: str
    domain: str
    status: str
    job_id: str | None
    processing_started_at: datetime | None
    result_page_ids: list[str]
    error: str | None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class LatestScrapeJobResponse(BaseModel):
    job: ScrapeJobResponse | None


class ScrapedPageResponse(BaseModel):
    """Schema for a stored crawl page."""

    id: str
    website_profile_id: str
    url: str
    type: str
    context: dict[str, Any]

    model_config = {"from_attributes": True}
