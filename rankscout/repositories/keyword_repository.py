"""Repository for Keyword upserts and reference resolution."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert

from rankscout.core.database import get_session_context
from rankscout.models.base import generate_id
from rankscout.models.keyword import Keyword
from rankscout.services.keywords.types import KeywordCandidate, KeywordRefs, RawSource

logger = logging.getLogger(__name__)

_METRIC_COLUMNS = ("search_volume", "difficulty", "last_updated", "provider", "raw_source")


def keyword_to_candidate(row: Keyword) -> KeywordCandidate:
    return KeywordCandidate(
        keyword=row.keyword,
        search_volume=row.search_volume or 0,
        difficulty=row.difficulty or "UNKNOWN",  # type: ignore[arg-type]
        last_updated=row.last_updated,
        provider=row.provider,
        raw_source=RawSource.from_json(row.raw_source),
    )


def candidate_values(candidate: KeywordCandidate) -> dict[str, Any]:
    """Column values for a keyword row built from a candidate."""
    return {
        "keyword": candidate.keyword,
        "search_volume": candidate.search_volume,
        "difficulty": candidate.difficulty,
        "last_updated": candidate.last_updated,
        "provider": candidate.provider,
        "raw_source": candidate.raw_source.to_json() if candidate.raw_source else None,
    }


def build_keyword_upsert_statement(candidate: KeywordCandidate):
    """Insert a keyword or overwrite the metrics of the existing row, returning its id."""
    insert_stmt = pg_insert(Keyword).values(id=generate_id(), **candidate_values(candidate))
    return insert_stmt.on_conflict_do_update(
        index_elements=["keyword"],
        set_={
            **{column: insert_stmt.excluded[column] for column in _METRIC_COLUMNS},
            "updated_at": func.now(),
        },
    ).returning(Keyword.id)


class KeywordRepository:
    """Keyword persistence keyed by keyword text."""

    async def upsert_many(self, candidates: Sequence[KeywordCandidate]) -> KeywordRefs:
        """Upsert each keyword by text and return the ids of those that were saved.

        A failing keyword is logged and skipped; the rest are still saved.
        """
        ids: list[str] = []
        async with get_session_context() as session:
            for candidate in candidates:
                try:
                    async with session.begin_nested():
                        result = await session.execute(build_keyword_upsert_statement(candidate))
                        ids.append(str(result.scalar_one()))
                except Exception:
                    logger.warning(
                        "Keyword upsert failed, skipping",
                        exc_info=True,
                        extra={"keyword": candidate.keyword},
                    )
        logger.info(
            "Keywords upserted",
            extra={"requested": len(candidates), "saved": len(ids)},
        )
        return KeywordRefs.from_ids(ids)

    async def resolve(self, refs: KeywordRefs) -> list[KeywordCandidate]:
        """Load keyword values for stored ids, in reference order."""
        if not refs:
            return []
        async with get_session_context(commit_on_exit=False) as session:
            result = await session.execute(select(Keyword).where(Keyword.id.in_(refs.ids)))
            rows = {str(row.id): row for row in result.scalars().all()}

        missing = [keyword_id for keyword_id in refs.ids if keyword_id not in rows]
        if missing:
            logger.warning("Keyword references not found", extra={"missing_ids": missing[:20]})
        return [keyword_to_candidate(rows[keyword_id]) for keyword_id in refs.ids if keyword_id in rows]
