"""Website profile model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from rankscout.models.base import Base, IDMixin, TimestampMixin


class WebsiteProfile(Base, IDMixin, TimestampMixin):
    """Website under analysis, with cached crawl and keyword research state."""

    __tablename__ = "website_profiles"

    domain: Mapped[str] = mapped_column(String(255), nullable=False)

    # Latest crawl started for the synchronous scrape workflow
    job_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_scraped_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Semantic analysis
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    business_overview: Mapped[str | None] = mapped_column(Text, nullable=True)
    value_props: Mapped[list[str] | None] = mapped_column(JSONB, nullable=True)
    intents: Mapped[list[str] | None] = mapped_column(JSONB, nullable=True)
    icps: Mapped[list[str] | None] = mapped_column(JSONB, nullable=True)
    seed_keywords: Mapped[list[str] | None] = mapped_column(JSONB, nullable=True)
    lean_keywords: Mapped[list[str] | None] = mapped_column(JSONB, nullable=True)

    # Keyword references (ids into `keywords`), ordered
    seo_validated_keyword_ids: Mapped[list[str] | None] = mapped_column(JSONB, nullable=True)
    relevant_keyword_ids: Mapped[list[str] | None] = mapped_column(JSONB, nullable=True)

    def __repr__(self) -> str:
        return f"<WebsiteProfile {self.domain}>"
