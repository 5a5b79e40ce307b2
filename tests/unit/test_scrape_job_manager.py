"""Unit tests for the scrape job lifecycle manager."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from rankscout.core.exceptions import (
    ScrapeJobNotFoundError,
    ScrapeTimeoutError,
    VendorRejectedError,
    VendorTerminalFailureError,
    WebsiteProfileNotFoundError,
)
from rankscout.integrations.firecrawl import CrawlStartResult, CrawlStatus
from rankscout.models.scrape_job import ScrapeJob
from rankscout.models.website_profile import WebsiteProfile
from rankscout.services.scrape_jobs import ScrapeJobManager

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class _Clock:
    """Wall clock and monotonic clock advanced only by fake sleeps."""

    def __init__(self) -> None:
        self.wall = T0
        self.mono = 0.0
        self.sleeps: list[float] = []

    def now(self) -> datetime:
        return self.wall

    def monotonic(self) -> float:
        return self.mono

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.mono += seconds
        self.wall += timedelta(seconds=seconds)
        await asyncio.sleep(0)


class _InMemoryStore:
    def __init__(self) -> None:
        self.jobs: dict[str, ScrapeJob] = {}
        self.fail_batch_claim = False
        self._next = 0

    def add(self, *, processing_started_at: datetime | None = None, vendor_job_id: str = "vendor-1") -> ScrapeJob:
        self._next += 1
        job = ScrapeJob(
            id=f"job-{self._next}",
            website_profile_id="profile-1",
            domain="example.com",
            status="processing",
            job_id=vendor_job_id,
            processing_started_at=processing_started_at,
            result_page_ids=[],
            error=None,
        )
        job.created_at = T0
        self.jobs[job.id] = job
        return job

    async def create(self, *, website_profile_id: str, domain: str, vendor_job_id: str) -> ScrapeJob:
        job = self.add(vendor_job_id=vendor_job_id)
        job.website_profile_id = website_profile_id
        job.domain = domain
        return job

    async def get(self, job_id: str) -> ScrapeJob | None:
        return self.jobs.get(job_id)

    async def get_latest_for_profile(self, website_profile_id: str) -> ScrapeJob | None:
        jobs = [job for job in self.jobs.values() if job.website_profile_id == website_profile_id]
        return jobs[-1] if jobs else None

    def _claimable(self, job: ScrapeJob, stale_before: datetime) -> bool:
        return job.status == "processing" and (
            job.processing_started_at is None or job.processing_started_at < stale_before
        )

    async def claim(self, job_id: str, *, now: datetime, stale_before: datetime) -> ScrapeJob | None:
        await asyncio.sleep(0)
        job = self.jobs.get(job_id)
        if job is None or not self._claimable(job, stale_before):
            return None
        job.processing_started_at = now
        return job

    async def claim_stale_batch(self, *, now: datetime, stale_before: datetime, limit: int) -> list[ScrapeJob]:
        if self.fail_batch_claim:
            raise ConnectionError("database unavailable")
        await asyncio.sleep(0)
        jobs = [job for job in self.jobs.values() if self._claimable(job, stale_before)][:limit]
        for job in jobs:
            job.processing_started_at = now
        return jobs

    async def mark_complete(self, job_id: str, page_ids: list[str]) -> None:
        job = self.jobs[job_id]
        job.status, job.result_page_ids, job.error = "complete", list(page_ids), None
        job.processing_started_at = None

    async def mark_failed(self, job_id: str, error: str) -> None:
        job = self.jobs[job_id]
        job.status, job.result_page_ids, job.error = "failed", [], error
        job.processing_started_at = None


class _FakeCrawlClient:
    def __init__(self) -> None:
        self.statuses: dict[str, list[CrawlStatus]] = {}
        self.errors: dict[str, Exception] = {}
        self.start_error: Exception | None = None
        self.started: list[dict[str, Any]] = []
        self.status_calls: list[str] = []

    async def start_crawl(self, domain: str, *, max_depth: int | None = None, limit: int | None = None) -> CrawlStartResult:
        if self.start_error is not None:
            raise self.start_error
        self.started.append({"domain": domain, "max_depth": max_depth, "limit": limit})
        return CrawlStartResult(job_id=f"vendor-{len(self.started)}")

    async def check_crawl_status(self, job_id: str) -> CrawlStatus:
        self.status_calls.append(job_id)
        if job_id in self.errors:
            raise self.errors[job_id]
        queue = self.statuses.get(job_id) or [CrawlStatus(status="scraping")]
        return queue.pop(0) if len(queue) > 1 else queue[0]


@dataclass
class _Page:
    id: str


class _FakeIngestor:
    def __init__(self) -> None:
        self.calls: list[tuple[list[dict[str, Any]], str]] = []
        self.error: Exception | None = None

    async def ingest(self, documents: list[dict[str, Any]], website_profile_id: str) -> list[_Page]:
        if self.error is not None:
            raise self.error
        self.calls.append((list(documents), website_profile_id))
        return [_Page(id=f"page-{i}") for i, _ in enumerate(documents)]


class _Profiles:
    def __init__(self, *profile_ids: str) -> None:
        self.profile_ids = set(profile_ids)

    async def get(self, profile_id: str) -> WebsiteProfile:
        if profile_id not in self.profile_ids:
            raise WebsiteProfileNotFoundError(profile_id)
        return WebsiteProfile(id=profile_id, domain="example.com")


def _doc(url: str) -> dict[str, Any]:
    return {"markdown": "# hi", "metadata": {"url": url}}


@pytest.fixture
def clock() -> _Clock:
    return _Clock()


@pytest.fixture
def store() -> _InMemoryStore:
    return _InMemoryStore()


@pytest.fixture
def crawl() -> _FakeCrawlClient:
    return _FakeCrawlClient()


@pytest.fixture
def ingestor() -> _FakeIngestor:
    return _FakeIngestor()


@pytest.fixture
def profiles() -> _Profiles:
    return _Profiles("profile-1", "profile-9")


@pytest.fixture
def manager(
    store: _InMemoryStore,
    crawl: _FakeCrawlClient,
    ingestor: _FakeIngestor,
    profiles: _Profiles,
    clock: _Clock,
) -> ScrapeJobManager:
    return ScrapeJobManager(
        store,
        crawl,
        ingestor,
        profiles,
        poll_interval_seconds=3.0,
        poll_timeout_seconds=180.0,
        claim_stale_seconds=600,
        sweep_stale_seconds=300,
        sweep_batch_size=5,
        crawl_max_depth=3,
        crawl_page_limit=25,
        now=clock.now,
        clock=clock.monotonic,
        sleep=clock.sleep,
    )


@pytest.mark.asyncio
async def test_create_job_starts_crawl_and_persists_processing_job(
    manager: ScrapeJobManager, store: _InMemoryStore, crawl: _FakeCrawlClient
) -> None:
    job = await manager.create_job("profile-9", "example.com")

    assert crawl.started == [{"domain": "example.com", "max_depth": 3, "limit": 25}]
    assert job.status == "processing"
    assert job.job_id == "vendor-1"
    assert job.result_page_ids == []
    assert job.error is None
    assert store.jobs[job.id].website_profile_id == "profile-9"


@pytest.mark.asyncio
async def test_create_job_vendor_rejection_persists_nothing(
    manager: ScrapeJobManager, store: _InMemoryStore, crawl: _FakeCrawlClient
) -> None:
    crawl.start_error = VendorRejectedError("example.com", "invalid url")

    with pytest.raises(VendorRejectedError):
        await manager.create_job("profile-1", "example.com")

    assert store.jobs == {}


@pytest.mark.asyncio
async def test_concurrent_claims_yield_exactly_one_winner(manager: ScrapeJobManager, store: _InMemoryStore) -> None:
    job = store.add()

    results = await asyncio.gather(*(manager.claim_job(job.id) for _ in range(5)))

    assert sum(result is not None for result in results) == 1
    assert job.processing_started_at == T0


@pytest.mark.asyncio
async def test_fresh_claim_blocks_and_stale_claim_is_reclaimed(
    manager: ScrapeJobManager, store: _InMemoryStore
) -> None:
    fresh = store.add(processing_started_at=T0 - timedelta(seconds=599))
    stale = store.add(processing_started_at=T0 - timedelta(seconds=601))

    assert await manager.claim_job(fresh.id) is None
    claimed = await manager.claim_job(stale.id)
    assert claimed is not None
    assert claimed.processing_started_at == T0


@pytest.mark.asyncio
async def test_terminal_jobs_are_never_claimed(manager: ScrapeJobManager, store: _InMemoryStore) -> None:
    job = store.add()
    job.status = "complete"

    assert await manager.claim_job(job.id) is None


@pytest.mark.asyncio
async def test_process_job_completes_with_ingested_page_ids(
    manager: ScrapeJobManager,
    store: _InMemoryStore,
    crawl: _FakeCrawlClient,
    ingestor: _FakeIngestor,
    clock: _Clock,
) -> None:
    job = store.add(vendor_job_id="vendor-a")
    crawl.statuses["vendor-a"] = [
        CrawlStatus(status="scraping"),
        CrawlStatus(status="scraping"),
        CrawlStatus(status="completed", data=[_doc("https://example.com/"), _doc("https://example.com/pricing")]),
    ]

    await manager.process_job(job.id)

    assert job.status == "complete"
    assert job.result_page_ids == ["page-0", "page-1"]
    assert job.error is None
    assert job.processing_started_at is None
    assert clock.sleeps == [3.0, 3.0]
    assert ingestor.calls[0][1] == "profile-1"


@pytest.mark.asyncio
async def test_zero_pages_completes_with_empty_results(
    manager: ScrapeJobManager, store: _InMemoryStore, crawl: _FakeCrawlClient, ingestor: _FakeIngestor
) -> None:
    job = store.add(vendor_job_id="vendor-a")
    crawl.statuses["vendor-a"] = [CrawlStatus(status="completed", data=[])]

    await manager.process_job(job.id)

    assert job.status == "complete"
    assert job.result_page_ids == []
    assert ingestor.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("vendor_status", ["failed", "cancelled"])
async def test_vendor_terminal_failure_marks_job_failed(
    manager: ScrapeJobManager, store: _InMemoryStore, crawl: _FakeCrawlClient, vendor_status: str
) -> None:
    job = store.add(vendor_job_id="vendor-a")
    crawl.statuses["vendor-a"] = [CrawlStatus(status=vendor_status)]

    await manager.process_job(job.id)

    assert job.status == "failed"
    assert vendor_status in (job.error or "")
    assert job.result_page_ids == []


@pytest.mark.asyncio
async def test_poll_times_out_after_wall_clock_limit(
    manager: ScrapeJobManager, store: _InMemoryStore, crawl: _FakeCrawlClient, clock: _Clock
) -> None:
    job = store.add(vendor_job_id="vendor-slow")

    await manager.process_job(job.id)

    assert job.status == "failed"
    assert "did not complete within 180 seconds" in (job.error or "")
    assert len(crawl.status_calls) == 60
    assert clock.mono == pytest.approx(180.0)


@pytest.mark.asyncio
async def test_poll_to_completion_raises_typed_errors(manager: ScrapeJobManager, crawl: _FakeCrawlClient) -> None:
    crawl.statuses["v-failed"] = [CrawlStatus(status="failed")]

    with pytest.raises(VendorTerminalFailureError):
        await manager.poll_to_completion("v-failed")
    with pytest.raises(ScrapeTimeoutError):
        await manager.poll_to_completion("v-never")


@pytest.mark.asyncio
async def test_ingestion_failure_marks_job_failed(
    manager: ScrapeJobManager, store: _InMemoryStore, crawl: _FakeCrawlClient, ingestor: _FakeIngestor
) -> None:
    job = store.add(vendor_job_id="vendor-a")
    crawl.statuses["vendor-a"] = [CrawlStatus(status="completed", data=[_doc("https://example.com/")])]
    ingestor.error = RuntimeError("unique violation")

    await manager.process_job(job.id)

    assert job.status == "failed"
    assert job.error == "unique violation"


@pytest.mark.asyncio
async def test_process_job_skips_job_claimed_elsewhere(
    manager: ScrapeJobManager, store: _InMemoryStore, crawl: _FakeCrawlClient
) -> None:
    job = store.add(processing_started_at=T0 - timedelta(seconds=10))

    await manager.process_job(job.id)

    assert crawl.status_calls == []
    assert job.status == "processing"


@pytest.mark.asyncio
async def test_sweep_picks_up_stale_jobs_and_isolates_failures(
    manager: ScrapeJobManager, store: _InMemoryStore, crawl: _FakeCrawlClient
) -> None:
    ok = store.add(processing_started_at=T0 - timedelta(seconds=301), vendor_job_id="vendor-ok")
    broken = store.add(processing_started_at=None, vendor_job_id="vendor-broken")
    fresh = store.add(processing_started_at=T0 - timedelta(seconds=100), vendor_job_id="vendor-fresh")
    crawl.statuses["vendor-ok"] = [CrawlStatus(status="completed", data=[_doc("https://example.com/")])]
    crawl.errors["vendor-broken"] = ConnectionError("vendor unreachable")

    picked = await manager.sweep()
    await manager.drain()

    assert picked == 2
    assert ok.status == "complete"
    assert broken.status == "failed"
    assert broken.error == "vendor unreachable"
    assert fresh.status == "processing"
    assert manager.pending_tasks == 0


@pytest.mark.asyncio
async def test_sweep_respects_batch_limit(manager: ScrapeJobManager, store: _InMemoryStore, crawl: _FakeCrawlClient) -> None:
    for i in range(7):
        store.add(vendor_job_id=f"vendor-{i}")
        crawl.statuses[f"vendor-{i}"] = [CrawlStatus(status="completed")]

    assert await manager.sweep() == 5
    await manager.drain()

    assert sum(job.status == "complete" for job in store.jobs.values()) == 5


@pytest.mark.asyncio
async def test_sweep_never_raises(manager: ScrapeJobManager, store: _InMemoryStore) -> None:
    store.fail_batch_claim = True

    assert await manager.sweep() == 0


@pytest.mark.asyncio
async def test_schedule_runs_in_background_until_drained(
    manager: ScrapeJobManager, store: _InMemoryStore, crawl: _FakeCrawlClient
) -> None:
    job = store.add(vendor_job_id="vendor-a")
    crawl.statuses["vendor-a"] = [CrawlStatus(status="scraping"), CrawlStatus(status="completed")]

    manager.schedule(job.id)
    assert manager.pending_tasks == 1
    await manager.drain()

    assert job.status == "complete"


@pytest.mark.asyncio
async def test_get_job_raises_when_missing(manager: ScrapeJobManager) -> None:
    with pytest.raises(ScrapeJobNotFoundError):
        await manager.get_job("nope")


def test_sweep_threshold_may_not_exceed_claim_threshold(
    store: _InMemoryStore, crawl: _FakeCrawlClient, ingestor: _FakeIngestor, profiles: _Profiles
) -> None:
    with pytest.raises(ValueError):
        ScrapeJobManager(store, crawl, ingestor, profiles, claim_stale_seconds=300, sweep_stale_seconds=600)


def test_poll_timeout_must_be_below_sweep_threshold(
    store: _InMemoryStore, crawl: _FakeCrawlClient, ingestor: _FakeIngestor, profiles: _Profiles
) -> None:
    with pytest.raises(ValueError):
        ScrapeJobManager(
            store,
            crawl,
            ingestor,
            profiles,
            poll_timeout_seconds=300,
            claim_stale_seconds=600,
            sweep_stale_seconds=300,
        )


@pytest.mark.asyncio
async def test_create_job_for_unknown_profile_starts_no_crawl(
    manager: ScrapeJobManager, store: _InMemoryStore, crawl: _FakeCrawlClient
) -> None:
    with pytest.raises(WebsiteProfileNotFoundError):
        await manager.create_job("missing-profile", "example.com")

    assert crawl.started == []
    assert store.jobs == {}


class _HangingCrawlClient(_FakeCrawlClient):
    async def check_crawl_status(self, job_id: str) -> CrawlStatus:
        self.status_calls.append(job_id)
        await asyncio.sleep(2)
        return CrawlStatus(status="scraping")


@pytest.mark.asyncio
async def test_poll_deadline_bounds_a_hanging_status_call(
    store: _InMemoryStore, ingestor: _FakeIngestor, profiles: _Profiles
) -> None:
    crawl = _HangingCrawlClient()
    manager = ScrapeJobManager(
        store,
        crawl,
        ingestor,
        profiles,
        poll_interval_seconds=0.1,
        poll_timeout_seconds=0.5,
        claim_stale_seconds=600,
        sweep_stale_seconds=300,
    )
    loop = asyncio.get_running_loop()
    started = loop.time()

    with pytest.raises(ScrapeTimeoutError):
        await manager.poll_to_completion("vendor-hung")

    assert loop.time() - started < 1.0
    assert crawl.status_calls == ["vendor-hung"]


def test_explicit_zero_overrides_are_kept(
    store: _InMemoryStore, crawl: _FakeCrawlClient, ingestor: _FakeIngestor, profiles: _Profiles
) -> None:
    manager = ScrapeJobManager(store, crawl, ingestor, profiles, poll_interval_seconds=0)

    assert manager.poll_interval_seconds == 0
    assert manager.poll_timeout_seconds == 180
