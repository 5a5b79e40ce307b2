"""Website profile and profile analysis schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class WebsiteProfileCreate(BaseModel):
    """Schema for creating a website profile."""

    domain: str = Field(min_length=1, max_length=255)

    model_config = {"str_strip_whitespace": True}


class WebsiteProfileResponse(BaseModel):
    """Schema for a website profile and its cached research state."""

    id: str
    domain: str
    job_id: str | None = None
    last_scraped_at: datetime | None = None
    summary: str | None = None
    business_overview: str | None = None
    value_props: list[str] | None = None
    intents: list[str] | None = None
    icps: list[str] | None = None
    seed_keywords: list[str] | None = None
    lean_keywords: list[str] | None = None
    seo_validated_keyword_ids: list[str] | None = None
    relevant_keyword_ids: list[str] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class ProfileAnalysisResponse(BaseModel):
    """Business insights extracted from the profile's crawled pages."""

    short_about: str
    business_overview: str
    value_props: list[str]
    intents: list[str]
    icps: list[str]
    seed_keywords: list[str]

    model_config = {"from_attributes": True}
