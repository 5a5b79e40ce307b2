"""Unit tests for API routes with service dependencies overridden."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from fastapi.testclient import TestClient

from rankscout.agents.semantic_analyzer import SemanticAnalysisOutput
from rankscout.core.exceptions import (
    IncompleteProfileError,
    ScrapeJobNotFoundError,
    VendorRejectedError,
    WebsiteProfileNotFoundError,
)
from rankscout.dependencies import (
    get_enrichment_pipeline,
    get_keyword_workflow,
    get_profile_analysis_workflow,
    get_relevancy_pipeline,
    get_scrape_job_manager,
    get_website_profile_repository,
)
from rankscout.main import create_app
from rankscout.models.scrape_job import ScrapeJob
from rankscout.models.website_profile import WebsiteProfile
from rankscout.services.keywords.types import (
    BusinessContext,
    KeywordCandidate,
    RelevancyResult,
)

API = "/api/v1"


def _job(**overrides: Any) -> ScrapeJob:
    values: dict[str, Any] = {
        "id": "job-1",
        "website_profile_id": "profile-1",
        "domain": "example.com",
        "status": "processing",
        "job_id": "vendor-1",
        "processing_started_at": None,
        "result_page_ids": [],
        "error": None,
        "created_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
    }
    values.update(overrides)
    return ScrapeJob(**values)


class _FakeManager:
    def __init__(
        self,
        *,
        reject: bool = False,
        jobs: dict[str, ScrapeJob] | None = None,
        profile_ids: tuple[str, ...] = ("profile-1",),
    ) -> None:
        self.reject = reject
        self.profile_ids = profile_ids
        self.jobs = jobs or {}
        self.scheduled: list[str] = []

    async def create_job(self, website_profile_id: str, domain: str) -> ScrapeJob:
        if website_profile_id not in self.profile_ids:
            raise WebsiteProfileNotFoundError(website_profile_id)
        if self.reject:
            raise VendorRejectedError(domain, "Insufficient credits")
        return _job(website_profile_id=website_profile_id, domain=domain)

    def schedule(self, job_id: str) -> None:
        self.scheduled.append(job_id)

    async def get_job(self, job_id: str) -> ScrapeJob:
        if job_id not in self.jobs:
            raise ScrapeJobNotFoundError(job_id)
        return self.jobs[job_id]

    async def get_latest_job(self, website_profile_id: str) -> ScrapeJob | None:
        return next(iter(self.jobs.values()), None)


def _client_with(overrides: dict[Any, Any]) -> TestClient:
    app = create_app()
    app.dependency_overrides.update(overrides)
    return TestClient(app)


def test_health_reports_version() -> None:
    response = TestClient(create_app()).get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_create_scrape_job_returns_processing_job_and_schedules_it() -> None:
    manager = _FakeManager()
    client = _client_with({get_scrape_job_manager: lambda: manager})

    response = client.post(f"{API}/scrape-jobs", json={"website_profile_id": "profile-1", "domain": "example.com"})

    assert response.status_code == 201
    payload = response.json()
    assert payload["status"] == "processing"
    assert payload["job_id"] == "vendor-1"
    assert payload["processing_started_at"] is None
    assert manager.scheduled == ["job-1"]


def test_create_scrape_job_vendor_rejection_is_bad_gateway() -> None:
    manager = _FakeManager(reject=True)
    client = _client_with({get_scrape_job_manager: lambda: manager})

    response = client.post(f"{API}/scrape-jobs", json={"website_profile_id": "profile-1", "domain": "example.com"})

    assert response.status_code == 502
    assert response.json()["detail"].startswith("Failed to start scrape")
    assert "Insufficient credits" in response.json()["detail"]
    assert manager.scheduled == []


def test_create_scrape_job_for_unknown_profile_is_not_found() -> None:
    manager = _FakeManager()
    client = _client_with({get_scrape_job_manager: lambda: manager})

    response = client.post(f"{API}/scrape-jobs", json={"website_profile_id": "missing", "domain": "example.com"})

    assert response.status_code == 404
    assert response.json()["detail"] == "Website profile not found"
    assert manager.scheduled == []


def test_get_scrape_job_returns_terminal_outcome() -> None:
    job = _job(status="complete", result_page_ids=["page-1", "page-2"])
    client = _client_with({get_scrape_job_manager: lambda: _FakeManager(jobs={"job-1": job})})

    response = client.get(f"{API}/scrape-jobs/job-1")

    assert response.status_code == 200
    assert response.json()["result_page_ids"] == ["page-1", "page-2"]


def test_get_unknown_scrape_job_is_not_found() -> None:
    client = _client_with({get_scrape_job_manager: lambda: _FakeManager()})

    response = client.get(f"{API}/scrape-jobs/missing")

    assert response.status_code == 404
    assert response.json()["detail"] == "Scrape job not found"


def test_latest_scrape_job_may_be_empty() -> None:
    client = _client_with({get_scrape_job_manager: lambda: _FakeManager()})

    response = client.get(f"{API}/scrape-jobs/latest", params={"website_profile_id": "profile-1"})

    assert response.status_code == 200
    assert response.json() == {"job": None}


def test_scrape_routes_unavailable_without_manager() -> None:
    app = create_app()
    app.state.scrape_job_manager = None

    response = TestClient(app).get(f"{API}/scrape-jobs/job-1")

    assert response.status_code == 503


class _FakeEnrichment:
    async def enrich(self, keywords: Sequence[str]) -> list[KeywordCandidate]:
        return [KeywordCandidate(keyword=k, search_volume=1000, difficulty="LOW", provider="ahrefs") for k in keywords]


class _FakeRelevancy:
    async def filter_relevant(self, keywords: Sequence[KeywordCandidate], context: BusinessContext) -> RelevancyResult:
        return RelevancyResult(
            relevant=[k for k in keywords if context.domain.split(".")[0] in k.keyword],
            irrelevant=[k for k in keywords if context.domain.split(".")[0] not in k.keyword],
        )


def test_enrich_keywords_returns_ranked_list() -> None:
    client = _client_with({get_enrichment_pipeline: lambda: _FakeEnrichment()})

    response = client.post(f"{API}/keywords/enrich", json={"keywords": ["crm", "sales"]})

    assert response.status_code == 200
    payload = response.json()
    assert payload["total"] == 2
    assert [item["keyword"] for item in payload["items"]] == ["crm", "sales"]
    assert payload["items"][0]["difficulty"] == "LOW"


def test_enrich_keywords_rejects_empty_list() -> None:
    client = _client_with({get_enrichment_pipeline: lambda: _FakeEnrichment()})

    response = client.post(f"{API}/keywords/enrich", json={"keywords": []})

    assert response.status_code == 422


def test_filter_relevant_splits_keywords() -> None:
    client = _client_with({get_relevancy_pipeline: lambda: _FakeRelevancy()})
    body = {
        "keywords": [
            {"keyword": "acme crm", "search_volume": 500, "difficulty": "LOW"},
            {"keyword": "pizza", "search_volume": 900, "difficulty": "HIGH"},
        ],
        "context": {"domain": "acme.com", "business_overview": "CRM", "icps": ["sales teams"]},
    }

    response = client.post(f"{API}/keywords/filter-relevant", json=body)

    assert response.status_code == 200
    assert [k["keyword"] for k in response.json()["relevant"]] == ["acme crm"]
    assert [k["keyword"] for k in response.json()["irrelevant"]] == ["pizza"]


class _FakeKeywordWorkflow:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.lean_keywords: list[Any] = []
        self.seed_keywords: list[Any] = []

    async def generate_lean_keywords(self, profile_id: str, seed_keywords: Sequence[str] | None = None) -> list[str]:
        self.seed_keywords.append(seed_keywords)
        if self.error:
            raise self.error
        return ["crm", "crm software"]

    async def generate_validated_keywords(
        self,
        profile_id: str,
        lean_keywords: Sequence[str] | None = None,
    ) -> list[KeywordCandidate]:
        self.lean_keywords.append(lean_keywords)
        if self.error:
            raise self.error
        return [KeywordCandidate(keyword="crm", search_volume=300, difficulty="MEDIUM")]

    async def filter_relevant_keywords(self, profile_id: str) -> list[KeywordCandidate]:
        if self.error:
            raise self.error
        return []


def test_validated_keywords_passes_optional_lean_keywords() -> None:
    workflow = _FakeKeywordWorkflow()
    client = _client_with({get_keyword_workflow: lambda: workflow})

    with_body = client.post(f"{API}/website-profiles/profile-1/keywords/validated", json={"lean_keywords": ["crm"]})
    without_body = client.post(f"{API}/website-profiles/profile-1/keywords/validated")

    assert with_body.status_code == 200
    assert without_body.status_code == 200
    assert workflow.lean_keywords == [["crm"], None]


def test_validated_keywords_incomplete_profile_is_bad_request() -> None:
    workflow = _FakeKeywordWorkflow(IncompleteProfileError("profile-1", "lean or seed keywords"))
    client = _client_with({get_keyword_workflow: lambda: workflow})

    response = client.post(f"{API}/website-profiles/profile-1/keywords/validated")

    assert response.status_code == 400


def test_relevant_keywords_unknown_profile_is_not_found() -> None:
    workflow = _FakeKeywordWorkflow(WebsiteProfileNotFoundError("profile-1"))
    client = _client_with({get_keyword_workflow: lambda: workflow})

    response = client.post(f"{API}/website-profiles/profile-1/keywords/relevant")

    assert response.status_code == 404


class _FakeProfileRepository:
    def __init__(self) -> None:
        self.profiles: dict[str, WebsiteProfile] = {}

    async def create(self, domain: str) -> WebsiteProfile:
        profile = WebsiteProfile(
            id=f"profile-{len(self.profiles) + 1}",
            domain=domain,
            created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
            updated_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )
        self.profiles[profile.id] = profile
        return profile

    async def get(self, profile_id: str) -> WebsiteProfile:
        if profile_id not in self.profiles:
            raise WebsiteProfileNotFoundError(profile_id)
        return self.profiles[profile_id]


def test_create_website_profile_returns_created_profile() -> None:
    repository = _FakeProfileRepository()
    client = _client_with({get_website_profile_repository: lambda: repository})

    response = client.post(f"{API}/website-profiles", json={"domain": "  acme.com "})

    assert response.status_code == 201
    payload = response.json()
    assert payload["id"] == "profile-1"
    assert payload["domain"] == "acme.com"
    assert payload["lean_keywords"] is None
    assert repository.profiles["profile-1"].domain == "acme.com"


def test_create_website_profile_requires_domain() -> None:
    client = _client_with({get_website_profile_repository: lambda: _FakeProfileRepository()})

    assert client.post(f"{API}/website-profiles", json={"domain": ""}).status_code == 422
    assert client.post(f"{API}/website-profiles", json={}).status_code == 422


def test_get_website_profile_round_trips_created_profile() -> None:
    repository = _FakeProfileRepository()
    client = _client_with({get_website_profile_repository: lambda: repository})
    created = client.post(f"{API}/website-profiles", json={"domain": "acme.com"}).json()

    found = client.get(f"{API}/website-profiles/{created['id']}")
    missing = client.get(f"{API}/website-profiles/nope")

    assert found.status_code == 200
    assert found.json()["domain"] == "acme.com"
    assert missing.status_code == 404


class _FakeAnalysisWorkflow:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error

    async def analyze_profile(self, profile_id: str) -> SemanticAnalysisOutput:
        if self.error:
            raise self.error
        return SemanticAnalysisOutput(
            short_about="So I took a look at Acme...",
            business_overview="Acme sells CRM software to plumbers.",
            value_props=["job scheduling"],
            intents=["book more jobs"],
            icps=["plumbers"],
            seed_keywords=["plumbing crm"],
        )


def test_analyze_website_profile_returns_insights() -> None:
    client = _client_with({get_profile_analysis_workflow: lambda: _FakeAnalysisWorkflow()})

    response = client.post(f"{API}/website-profiles/profile-1/analyze")

    assert response.status_code == 200
    assert response.json()["icps"] == ["plumbers"]
    assert response.json()["seed_keywords"] == ["plumbing crm"]


def test_analyze_unscraped_profile_is_bad_request() -> None:
    workflow = _FakeAnalysisWorkflow(IncompleteProfileError("profile-1", "scraped pages"))
    client = _client_with({get_profile_analysis_workflow: lambda: workflow})

    response = client.post(f"{API}/website-profiles/profile-1/analyze")

    assert response.status_code == 400


def test_lean_keywords_passes_optional_seed_keywords() -> None:
    workflow = _FakeKeywordWorkflow()
    client = _client_with({get_keyword_workflow: lambda: workflow})

    with_body = client.post(f"{API}/website-profiles/profile-1/keywords/lean", json={"seed_keywords": ["crm"]})
    without_body = client.post(f"{API}/website-profiles/profile-1/keywords/lean")

    assert with_body.status_code == 200
    assert with_body.json() == {"keywords": ["crm", "crm software"], "total": 2}
    assert without_body.status_code == 200
    assert workflow.seed_keywords == [["crm"], None]


def test_lean_keywords_without_seeds_is_bad_request() -> None:
    workflow = _FakeKeywordWorkflow(IncompleteProfileError("profile-1", "seed keywords"))
    client = _client_with({get_keyword_workflow: lambda: workflow})

    response = client.post(f"{API}/website-profiles/profile-1/keywords/lean")

    assert response.status_code == 400
