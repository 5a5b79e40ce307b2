"""Repository for ScrapeJob claims and terminal writes."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import Select, Update, or_, select, update

from rankscout.core.database import get_session_context
from rankscout.core.db_retry import run_with_transient_db_retry
from rankscout.models.scrape_job import (
    SCRAPE_JOB_COMPLETE,
    SCRAPE_JOB_FAILED,
    SCRAPE_JOB_PROCESSING,
    ScrapeJob,
)

logger = logging.getLogger(__name__)


def _claimable(stale_before: datetime):
    return (
        ScrapeJob.status == SCRAPE_JOB_PROCESSING,
        or_(
            ScrapeJob.processing_started_at.is_(None),
            ScrapeJob.processing_started_at < stale_before,
        ),
    )


def build_claim_statement(job_id: str, *, now: datetime, stale_before: datetime) -> Update:
    """Conditional UPDATE ... RETURNING that claims one job or matches nothing."""
    return (
        update(ScrapeJob)
        .where(ScrapeJob.id == job_id, *_claimable(stale_before))
        .values(processing_started_at=now)
        .returning(ScrapeJob)
    )


def build_stale_batch_statement(*, stale_before: datetime, limit: int) -> Select:
    """Row-locking SELECT of claimable jobs, skipping rows another claimer holds."""
    return (
        select(ScrapeJob)
        .where(*_claimable(stale_before))
        .order_by(ScrapeJob.processing_started_at.asc().nulls_first(), ScrapeJob.created_at.asc())
        .limit(max(1, int(limit)))
        .with_for_update(skip_locked=True)
    )


class ScrapeJobRepository:
    """ScrapeJob persistence via short-lived sessions."""

    async def create(
        self,
        *,
        website_profile_id: str,
        domain: str,
        vendor_job_id: str,
    ) -> ScrapeJob:
        async with get_session_context() as session:
            job = ScrapeJob(
                website_profile_id=website_profile_id,
                domain=domain,
                status=SCRAPE_JOB_PROCESSING,
                job_id=vendor_job_id,
                processing_started_at=None,
                result_page_ids=[],
                error=None,
            )
            session.add(job)
            await session.flush()
            await session.refresh(job)
            return job

    async def get(self, job_id: str) -> ScrapeJob | None:
        async with get_session_context(commit_on_exit=False) as session:
            return await session.get(ScrapeJob, job_id)

    async def get_latest_for_profile(self, website_profile_id: str) -> ScrapeJob | None:
        async with get_session_context(commit_on_exit=False) as session:
            result = await session.execute(
                select(ScrapeJob)
                .where(ScrapeJob.website_profile_id == website_profile_id)
                .order_by(ScrapeJob.created_at.desc())
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def claim(self, job_id: str, *, now: datetime, stale_before: datetime) -> ScrapeJob | None:
        """Atomically claim one job; None when it is not claimable."""
        async with get_session_context() as session:
            result = await session.execute(
                build_claim_statement(job_id, now=now, stale_before=stale_before),
                execution_options={"synchronize_session": False},
            )
            return result.scalar_one_or_none()

    async def claim_stale_batch(
        self,
        *,
        now: datetime,
        stale_before: datetime,
        limit: int,
    ) -> list[ScrapeJob]:
        """Claim up to `limit` claimable jobs with row-level locking."""
        async with get_session_context() as session:
            result = await session.execute(
                build_stale_batch_statement(stale_before=stale_before, limit=limit)
            )
            jobs = list(result.scalars().all())
            for job in jobs:
                job.processing_started_at = now
            await session.flush()
            return jobs

    async def _finalize(self, job_id: str, *, operation_name: str, **values: object) -> None:
        async def _write_once() -> None:
            async with get_session_context() as session:
                await session.execute(
                    update(ScrapeJob)
                    .where(ScrapeJob.id == job_id)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )

        await run_with_transient_db_retry(
            _write_once,
            operation_name=operation_name,
            log_context={"scrape_job_id": job_id},
        )

    async def mark_complete(self, job_id: str, page_ids: list[str]) -> None:
        await self._finalize(
            job_id,
            operation_name="scrape_job_complete",
            status=SCRAPE_JOB_COMPLETE,
            result_page_ids=list(page_ids),
            error=None,
            processing_started_at=None,
        )

    async def mark_failed(self, job_id: str, error: str) -> None:
        await self._finalize(
            job_id,
            operation_name="scrape_job_failed",
            status=SCRAPE_JOB_FAILED,
            result_page_ids=[],
            error=error or "Unknown error",
            processing_started_at=None,
        )
