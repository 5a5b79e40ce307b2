"""Synchronous website scrape: start or reuse a crawl, wait for it, store pages."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

from rankscout.config import settings
from rankscout.models.website_profile import WebsiteProfile
from rankscout.services.scrape_jobs import CrawlClient, PageIngestor, ScrapeJobManager

logger = logging.getLogger(__name__)


class WebsiteProfileStore(Protocol):
    async def get(self, profile_id: str) -> WebsiteProfile: ...

    async def patch(self, profile_id: str, updates: dict[str, Any]) -> None: ...


class WebsiteScrapeWorkflow:
    """Scrape a profile's website inline, reusing a recent crawl when there is one."""

    def __init__(
        self,
        profiles: WebsiteProfileStore,
        crawl_client: CrawlClient,
        page_ingestor: PageIngestor,
        manager: ScrapeJobManager,
        *,
        reuse_window: timedelta | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self.profiles = profiles
        self.crawl_client = crawl_client
        self.page_ingestor = page_ingestor
        self.manager = manager
        self.reuse_window = reuse_window or timedelta(days=settings.scrape_job_reuse_days)
        self._now = now or (lambda: datetime.now(timezone.utc))

    def is_recent(self, last_scraped_at: datetime | None) -> bool:
        if last_scraped_at is None:
            return False
        if last_scraped_at.tzinfo is None:
            last_scraped_at = last_scraped_at.replace(tzinfo=timezone.utc)
        return self._now() - last_scraped_at < self.reuse_window

    async def scrape_website(self, profile_id: str) -> list[Any]:
        """Return the stored pages of the profile's latest crawl.

        Raises:
            WebsiteProfileNotFoundError: Unknown profile.
            VendorRejectedError: A new crawl was needed and the vendor refused it.
            VendorTerminalFailureError, ScrapeTimeoutError: The crawl did not complete.
        """
        profile = await self.profiles.get(profile_id)
        vendor_job_id = profile.job_id

        if not vendor_job_id or not self.is_recent(profile.last_scraped_at):
            started = await self.crawl_client.start_crawl(
                profile.domain,
                max_depth=self.manager.crawl_max_depth,
                limit=self.manager.crawl_page_limit,
            )
            vendor_job_id = started.job_id
            await self.profiles.patch(
                profile_id,
                {"job_id": vendor_job_id, "last_scraped_at": self._now()},
            )
            logger.info(
                "Started crawl for website profile",
                extra={"website_profile_id": profile_id, "vendor_job_id": vendor_job_id},
            )
        else:
            logger.info(
                "Reusing recent crawl for website profile",
                extra={"website_profile_id": profile_id, "vendor_job_id": vendor_job_id},
            )

        documents = await self.manager.poll_to_completion(vendor_job_id)
        if not documents:
            logger.warning(
                "No pages found in crawl result",
                extra={"website_profile_id": profile_id, "domain": profile.domain},
            )
            return []

        pages = await self.page_ingestor.ingest(documents, profile_id)
        logger.info(
            "Website scrape stored pages",
            extra={"website_profile_id": profile_id, "document_count": len(documents), "page_count": len(pages)},
        )
        return pages
