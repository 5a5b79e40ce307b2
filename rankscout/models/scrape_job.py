"""Scrape job model: one crawl-vendor attempt for one website profile."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from rankscout.models.base import Base, IDMixin, StringID, TimestampMixin

ScrapeJobStatus = Literal["pending", "processing", "complete", "failed"]

SCRAPE_JOB_PENDING: ScrapeJobStatus = "pending"
SCRAPE_JOB_PROCESSING: ScrapeJobStatus = "processing"
SCRAPE_JOB_COMPLETE: ScrapeJobStatus = "complete"
SCRAPE_JOB_FAILED: ScrapeJobStatus = "failed"
SCRAPE_JOB_TERMINAL_STATUSES = {SCRAPE_JOB_COMPLETE, SCRAPE_JOB_FAILED}


class ScrapeJob(Base, IDMixin, TimestampMixin):
    """Tracks the status and result of a crawl for a website profile.

    `processing_started_at` is the claim marker: a job is claimable while it is
    `processing` and the marker is either unset or older than the stale
    threshold of whoever is claiming.
    """

    __tablename__ = "scrape_jobs"
    __table_args__ = (
        Index("ix_scrape_jobs_status_processing_started_at", "status", "processing_started_at"),
    )

    website_profile_id: Mapped[str] = mapped_column(
        StringID(),
        ForeignKey("website_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    domain: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=SCRAPE_JOB_PENDING, nullable=False)

    # Vendor crawl token, set once the vendor accepts the crawl
    job_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    processing_started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    result_page_ids: Mapped[list[str]] = mapped_column(JSONB, default=list, nullable=False)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<ScrapeJob {self.id} {self.status}>"
