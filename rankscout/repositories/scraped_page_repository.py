"""Repository for ScrapedPage upserts."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert

from rankscout.core.database import get_session_context
from rankscout.models.base import generate_id
from rankscout.models.scraped_page import ScrapedPage

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PageRecord:
    url: str
    type: str
    context: dict[str, Any]


def build_page_upsert_statement(website_profile_id: str, records: Sequence[PageRecord]):
    """Insert pages or overwrite type and context of existing (profile, url) rows."""
    # One row per url; Postgres rejects a statement that updates the same row twice.
    latest = {record.url: record for record in records}
    insert_stmt = pg_insert(ScrapedPage).values(
        [
            {
                "id": generate_id(),
                "website_profile_id": website_profile_id,
                "url": record.url,
                "type": record.type,
                "context": record.context,
            }
            for record in latest.values()
        ]
    )
    return insert_stmt.on_conflict_do_update(
        index_elements=["website_profile_id", "url"],
        set_={
            "type": insert_stmt.excluded.type,
            "context": insert_stmt.excluded.context,
            "updated_at": func.now(),
        },
    ).returning(ScrapedPage)


class ScrapedPageRepository:
    """Stores crawled pages, one row per (profile, url)."""

    async def upsert_many(self, website_profile_id: str, records: Sequence[PageRecord]) -> list[ScrapedPage]:
        if not records:
            return []

        async with get_session_context() as session:
            result = await session.scalars(
                build_page_upsert_statement(website_profile_id, records),
                execution_options={"populate_existing": True},
            )
            pages = list(result.all())

        logger.info(
            "Scraped pages stored",
            extra={"website_profile_id": website_profile_id, "page_count": len(pages)},
        )
        return pages

    async def list_for_profile(self, website_profile_id: str) -> list[ScrapedPage]:
        async with get_session_context(commit_on_exit=False) as session:
            result = await session.execute(
                select(ScrapedPage)
                .where(ScrapedPage.website_profile_id == website_profile_id)
                .order_by(ScrapedPage.created_at.asc())
            )
            return list(result.scalars().all())
