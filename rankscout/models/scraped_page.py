"""Scraped page model."""

from __future__ import annotations

from typing import Any

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from rankscout.models.base import Base, IDMixin, StringID, TimestampMixin


class ScrapedPage(Base, IDMixin, TimestampMixin):
    """A crawled page of a website profile, unique per (profile, url)."""

    __tablename__ = "scraped_pages"
    __table_args__ = (
        UniqueConstraint("website_profile_id", "url", name="uq_scraped_pages_profile_url"),
    )

    website_profile_id: Mapped[str] = mapped_column(
        StringID(),
        ForeignKey("website_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    url: Mapped[str] = mapped_column(String(2000), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    context: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)

    def __repr__(self) -> str:
        return f"<ScrapedPage {self.type} {self.url}>"
