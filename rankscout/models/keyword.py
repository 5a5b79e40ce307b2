"""Keyword model with SEO metrics."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from rankscout.models.base import Base, IDMixin, TimestampMixin


class Keyword(Base, IDMixin, TimestampMixin):
    """Keyword candidate, unique by its text."""

    __tablename__ = "keywords"

    keyword: Mapped[str] = mapped_column(String(500), nullable=False, unique=True, index=True)
    search_volume: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    difficulty: Mapped[str] = mapped_column(String(20), default="UNKNOWN", nullable=False)
    last_updated: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    provider: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # {"provider": ..., "payload": {...}} as returned by the metrics vendor
    raw_source: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)

    def __repr__(self) -> str:
        return f"<Keyword {self.keyword}>"
