"""Unit tests for the synchronous website scrape workflow."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from rankscout.core.exceptions import VendorTerminalFailureError, WebsiteProfileNotFoundError
from rankscout.integrations.firecrawl import CrawlStartResult, CrawlStatus
from rankscout.models.website_profile import WebsiteProfile
from rankscout.services.scrape_jobs import ScrapeJobManager
from rankscout.services.scrape_workflow import WebsiteScrapeWorkflow

NOW = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


class _Profiles:
    def __init__(self, profile: WebsiteProfile | None) -> None:
        self.profile = profile
        self.patches: list[dict[str, Any]] = []

    async def get(self, profile_id: str) -> WebsiteProfile:
        if self.profile is None or self.profile.id != profile_id:
            raise WebsiteProfileNotFoundError(profile_id)
        return self.profile

    async def patch(self, profile_id: str, updates: dict[str, Any]) -> None:
        self.patches.append(dict(updates))


class _Crawl:
    def __init__(self, statuses: dict[str, CrawlStatus]) -> None:
        self.statuses = statuses
        self.started: list[str] = []

    async def start_crawl(self, domain: str, *, max_depth: int | None = None, limit: int | None = None) -> CrawlStartResult:
        self.started.append(domain)
        return CrawlStartResult(job_id="vendor-new")

    async def check_crawl_status(self, job_id: str) -> CrawlStatus:
        return self.statuses[job_id]


class _Ingestor:
    def __init__(self) -> None:
        self.ingested: list[tuple[int, str]] = []

    async def ingest(self, documents: list[dict[str, Any]], website_profile_id: str) -> list[str]:
        self.ingested.append((len(documents), website_profile_id))
        return [doc["metadata"]["url"] for doc in documents]


async def _no_sleep(seconds: float) -> None:
    return None


def _profile(**overrides: Any) -> WebsiteProfile:
    values: dict[str, Any] = {"id": "profile-1", "domain": "example.com", "job_id": None, "last_scraped_at": None}
    values.update(overrides)
    return WebsiteProfile(**values)


def _workflow(profiles: _Profiles, crawl: _Crawl, ingestor: _Ingestor) -> WebsiteScrapeWorkflow:
    manager = ScrapeJobManager(object(), crawl, ingestor, profiles, sleep=_no_sleep)  # type: ignore[arg-type]
    return WebsiteScrapeWorkflow(profiles, crawl, ingestor, manager, now=lambda: NOW)


PAGES = CrawlStatus(status="completed", data=[{"metadata": {"url": "https://example.com/"}}])


@pytest.mark.asyncio
async def test_starts_new_crawl_and_records_it_on_profile() -> None:
    profiles = _Profiles(_profile())
    crawl = _Crawl({"vendor-new": PAGES})
    ingestor = _Ingestor()

    pages = await _workflow(profiles, crawl, ingestor).scrape_website("profile-1")

    assert pages == ["https://example.com/"]
    assert crawl.started == ["example.com"]
    assert profiles.patches == [{"job_id": "vendor-new", "last_scraped_at": NOW}]
    assert ingestor.ingested == [(1, "profile-1")]


@pytest.mark.asyncio
async def test_reuses_crawl_started_within_seven_days() -> None:
    profiles = _Profiles(_profile(job_id="vendor-old", last_scraped_at=NOW - timedelta(days=6)))
    crawl = _Crawl({"vendor-old": PAGES})

    await _workflow(profiles, crawl, _Ingestor()).scrape_website("profile-1")

    assert crawl.started == []
    assert profiles.patches == []


@pytest.mark.asyncio
async def test_old_crawl_is_replaced() -> None:
    profiles = _Profiles(_profile(job_id="vendor-old", last_scraped_at=NOW - timedelta(days=8)))
    crawl = _Crawl({"vendor-new": PAGES})

    await _workflow(profiles, crawl, _Ingestor()).scrape_website("profile-1")

    assert crawl.started == ["example.com"]


@pytest.mark.asyncio
async def test_no_pages_returns_empty_list() -> None:
    ingestor = _Ingestor()
    crawl = _Crawl({"vendor-new": CrawlStatus(status="completed", data=[])})

    pages = await _workflow(_Profiles(_profile()), crawl, ingestor).scrape_website("profile-1")

    assert pages == []
    assert ingestor.ingested == []


@pytest.mark.asyncio
async def test_missing_profile_raises() -> None:
    with pytest.raises(WebsiteProfileNotFoundError):
        await _workflow(_Profiles(None), _Crawl({}), _Ingestor()).scrape_website("profile-1")


@pytest.mark.asyncio
async def test_vendor_failure_propagates() -> None:
    crawl = _Crawl({"vendor-new": CrawlStatus(status="cancelled")})

    with pytest.raises(VendorTerminalFailureError):
        await _workflow(_Profiles(_profile()), crawl, _Ingestor()).scrape_website("profile-1")
