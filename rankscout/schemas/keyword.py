"""Keyword enrichment and relevancy schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from rankscout.services.keywords.types import BusinessContext, KeywordCandidate, KeywordDifficulty, RawSource


class KeywordResponse(BaseModel):
    """Keyword with its enrichment metrics."""

    keyword: str
    search_volume: int
    difficulty: KeywordDifficulty
    last_updated: datetime | None = None
    provider: str | None = None
    raw_source: dict[str, Any] | None = None

    @classmethod
    def from_candidate(cls, candidate: KeywordCandidate) -> "KeywordResponse":
        return cls(
            keyword=candidate.keyword,
            search_volume=candidate.search_volume,
            difficulty=candidate.difficulty,
            last_updated=candidate.last_updated,
            provider=candidate.provider,
            raw_source=candidate.raw_source.to_json() if candidate.raw_source else None,
        )

    def to_candidate(self) -> KeywordCandidate:
        return KeywordCandidate(
            keyword=self.keyword,
            search_volume=self.search_volume,
            difficulty=self.difficulty,
            last_updated=self.last_updated,
            provider=self.provider,
            raw_source=RawSource.from_json(self.raw_source),
        )


class KeywordEnrichRequest(BaseModel):
    """Seed keyword texts to enrich."""

    keywords: list[str] = Field(min_length=1)


class KeywordListResponse(BaseModel):
    items: list[KeywordResponse]
    total: int


class BusinessContextSchema(BaseModel):
    """Business description the relevancy classifier judges against."""

    domain: str
    business_overview: str = ""
    icps: list[str] = Field(default_factory=list)

    def to_context(self) -> BusinessContext:
        return BusinessContext(
            domain=self.domain,
            business_overview=self.business_overview,
            icps=tuple(self.icps),
        )


class KeywordRelevancyRequest(BaseModel):
    keywords: list[KeywordResponse]
    context: BusinessContextSchema


class KeywordRelevancyResponse(BaseModel):
    relevant: list[KeywordResponse]
    irrelevant: list[KeywordResponse]


class ValidatedKeywordsRequest(BaseModel):
    """Optional lean keywords overriding the profile's own."""

    lean_keywords: list[str] | None = None


class LeanKeywordsRequest(BaseModel):
    """Optional seed keywords overriding the profile's own."""

    seed_keywords: list[str] | None = None


class LeanKeywordsResponse(BaseModel):
    keywords: list[str]
    total: int
