"""Scrape job lifecycle: create, claim, poll, finalize and sweep.

A job is created in ``processing`` once the crawl vendor accepts the crawl.
Whoever wins the atomic claim (ad hoc trigger or the periodic sweep) polls
the vendor to a terminal state and writes the single terminal outcome.
Claims go stale after a threshold so jobs abandoned by a crashed process
are picked up again.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol, TypeVar

from rankscout.config import settings
from rankscout.core.exceptions import (
    ScrapeJobNotFoundError,
    ScrapeTimeoutError,
    VendorTerminalFailureError,
)
from rankscout.integrations.firecrawl import (
    CRAWL_COMPLETED,
    CRAWL_TERMINAL_FAILURES,
    CrawlStartResult,
    CrawlStatus,
)
from rankscout.models.scrape_job import ScrapeJob
from rankscout.models.website_profile import WebsiteProfile
from rankscout.repositories.scrape_job_repository import ScrapeJobRepository
from rankscout.repositories.scraped_page_repository import ScrapedPageRepository
from rankscout.repositories.website_profile_repository import WebsiteProfileRepository
from rankscout.services import page_ingestion

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CrawlClient(Protocol):
    async def start_crawl(
        self,
        domain: str,
        *,
        max_depth: int | None = None,
        limit: int | None = None,
    ) -> CrawlStartResult: ...

    async def check_crawl_status(self, job_id: str) -> CrawlStatus: ...


class ScrapeJobStore(Protocol):
    async def create(self, *, website_profile_id: str, domain: str, vendor_job_id: str) -> ScrapeJob: ...

    async def get(self, job_id: str) -> ScrapeJob | None: ...

    async def get_latest_for_profile(self, website_profile_id: str) -> ScrapeJob | None: ...

    async def claim(self, job_id: str, *, now: datetime, stale_before: datetime) -> ScrapeJob | None: ...

    async def claim_stale_batch(
        self,
        *,
        now: datetime,
        stale_before: datetime,
        limit: int,
    ) -> list[ScrapeJob]: ...

    async def mark_complete(self, job_id: str, page_ids: list[str]) -> None: ...

    async def mark_failed(self, job_id: str, error: str) -> None: ...


class PageIngestor(Protocol):
    async def ingest(self, documents: Sequence[dict[str, Any]], website_profile_id: str) -> list[Any]: ...


class ProfileLookup(Protocol):
    async def get(self, profile_id: str) -> WebsiteProfile: ...


class ScrapeJobManager:
    """Drives scrape jobs to exactly one terminal outcome."""

    def __init__(
        self,
        store: ScrapeJobStore,
        crawl_client: CrawlClient,
        page_ingestor: PageIngestor,
        profiles: ProfileLookup,
        *,
        poll_interval_seconds: float | None = None,
        poll_timeout_seconds: float | None = None,
        claim_stale_seconds: float | None = None,
        sweep_stale_seconds: float | None = None,
        sweep_batch_size: int | None = None,
        crawl_max_depth: int | None = None,
        crawl_page_limit: int | None = None,
        now: Callable[[], datetime] = _utc_now,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.store = store
        self.crawl_client = crawl_client
        self.page_ingestor = page_ingestor
        self.profiles = profiles
        self.poll_interval_seconds = _or_default(poll_interval_seconds, settings.scrape_poll_interval_seconds)
        self.poll_timeout_seconds = _or_default(poll_timeout_seconds, settings.scrape_poll_timeout_seconds)
        self.claim_stale_seconds = _or_default(claim_stale_seconds, settings.scrape_claim_stale_seconds)
        self.sweep_stale_seconds = _or_default(sweep_stale_seconds, settings.scrape_sweep_stale_seconds)
        self.sweep_batch_size = _or_default(sweep_batch_size, settings.scrape_sweep_batch_size)
        self.crawl_max_depth = _or_default(crawl_max_depth, settings.scrape_crawl_max_depth)
        self.crawl_page_limit = _or_default(crawl_page_limit, settings.scrape_crawl_page_limit)
        if self.sweep_stale_seconds > self.claim_stale_seconds:
            raise ValueError("sweep_stale_seconds must not exceed claim_stale_seconds")
        # A live poll must give up before the sweep treats its claim as abandoned.
        if self.poll_timeout_seconds >= self.sweep_stale_seconds:
            raise ValueError("poll_timeout_seconds must be below sweep_stale_seconds")
        self._now = now
        self._clock = clock
        self._sleep = sleep
        self._tasks: set[asyncio.Task[None]] = set()

    async def create_job(self, website_profile_id: str, domain: str) -> ScrapeJob:
        """Start a vendor crawl and persist the job; nothing is stored if the vendor refuses.

        Raises:
            WebsiteProfileNotFoundError: No such profile; no crawl is started.
        """
        await self.profiles.get(website_profile_id)
        started = await self.crawl_client.start_crawl(
            domain,
            max_depth=self.crawl_max_depth,
            limit=self.crawl_page_limit,
        )
        job = await self.store.create(
            website_profile_id=website_profile_id,
            domain=domain,
            vendor_job_id=started.job_id,
        )
        logger.info(
            "Scrape job created",
            extra={"scrape_job_id": job.id, "vendor_job_id": started.job_id, "domain": domain},
        )
        return job

    async def get_job(self, job_id: str) -> ScrapeJob:
        job = await self.store.get(job_id)
        if job is None:
            raise ScrapeJobNotFoundError(job_id)
        return job

    async def get_latest_job(self, website_profile_id: str) -> ScrapeJob | None:
        return await self.store.get_latest_for_profile(website_profile_id)

    async def claim_job(self, job_id: str) -> ScrapeJob | None:
        now = self._now()
        return await self.store.claim(
            job_id,
            now=now,
            stale_before=now - timedelta(seconds=self.claim_stale_seconds),
        )

    async def poll_to_completion(self, vendor_job_id: str) -> list[dict[str, Any]]:
        """Poll the vendor until the crawl completes and return its page documents.

        Raises:
            VendorTerminalFailureError: The vendor reported failed or cancelled.
            ScrapeTimeoutError: No terminal state within the poll timeout.
        """
        started_at = self._clock()
        try:
            # The deadline also bounds a status call that hangs mid-flight.
            async with asyncio.timeout(self.poll_timeout_seconds):
                while self._clock() - started_at < self.poll_timeout_seconds:
                    status = await self.crawl_client.check_crawl_status(vendor_job_id)
                    if status.status == CRAWL_COMPLETED:
                        return list(status.data)
                    if status.status in CRAWL_TERMINAL_FAILURES:
                        raise VendorTerminalFailureError(vendor_job_id, status.status)
                    logger.debug(
                        "Crawl still running",
                        extra={"vendor_job_id": vendor_job_id, "vendor_status": status.status},
                    )
                    await self._sleep(self.poll_interval_seconds)
        except TimeoutError as exc:
            raise ScrapeTimeoutError(vendor_job_id, self.poll_timeout_seconds) from exc
        raise ScrapeTimeoutError(vendor_job_id, self.poll_timeout_seconds)

    async def process_job(self, job_id: str) -> None:
        """Claim and run one job; a job someone else holds is left alone."""
        job = await self.claim_job(job_id)
        if job is None:
            logger.info("Scrape job not claimable, skipping", extra={"scrape_job_id": job_id})
            return
        await self._run_claimed(job)

    async def _run_claimed(self, job: ScrapeJob) -> None:
        log_context = {"scrape_job_id": job.id, "vendor_job_id": job.job_id, "domain": job.domain}
        try:
            if not job.job_id:
                raise ValueError("Scrape job has no vendor job id")
            documents = await self.poll_to_completion(job.job_id)
            page_ids: list[str] = []
            if documents:
                pages = await self.page_ingestor.ingest(documents, job.website_profile_id)
                page_ids = [str(page.id) for page in pages]
            else:
                logger.warning("Crawl completed with no pages", extra=log_context)
            await self.store.mark_complete(job.id, page_ids)
        except Exception as exc:
            logger.warning(
                "Scrape job failed",
                extra={**log_context, "failure_class": type(exc).__name__, "error": str(exc)},
            )
            await self.store.mark_failed(job.id, str(exc) or type(exc).__name__)
            return

        logger.info("Scrape job complete", extra={**log_context, "page_count": len(page_ids)})

    def schedule(self, job_id: str) -> asyncio.Task[None]:
        """Run `process_job` in the background as a supervised task."""
        return self._spawn(self.process_job(job_id), job_id=job_id)

    def _spawn(self, coro: Awaitable[None], *, job_id: str) -> asyncio.Task[None]:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(lambda done: self._on_task_done(done, job_id))
        return task

    def _on_task_done(self, task: asyncio.Task[None], job_id: str) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Scrape job task cancelled", extra={"scrape_job_id": job_id})
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Scrape job task crashed",
                exc_info=(type(exc), exc, exc.__traceback__),
                extra={"scrape_job_id": job_id},
            )

    async def sweep(self) -> int:
        """Claim a batch of unclaimed or stale jobs and process each in the background.

        Never raises; returns the number of jobs picked up.
        """
        now = self._now()
        try:
            jobs = await self.store.claim_stale_batch(
                now=now,
                stale_before=now - timedelta(seconds=self.sweep_stale_seconds),
                limit=self.sweep_batch_size,
            )
        except Exception:
            logger.exception("Scrape job sweep failed")
            return 0

        for job in jobs:
            self._spawn(self._run_claimed(job), job_id=job.id)
        if jobs:
            logger.info("Scrape job sweep picked up jobs", extra={"count": len(jobs)})
        return len(jobs)

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every background job task to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


def _or_default(value: _T | None, default: _T) -> _T:
    return default if value is None else value


def build_scrape_job_manager(crawl_client: CrawlClient) -> ScrapeJobManager:
    """Manager backed by the database repositories and configured limits."""
    return ScrapeJobManager(
        ScrapeJobRepository(),
        crawl_client,
        page_ingestion.PageIngestor(ScrapedPageRepository()),
        WebsiteProfileRepository(),
    )
