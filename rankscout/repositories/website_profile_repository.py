"""Repository for WebsiteProfile reads and cached-state writes."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from rankscout.core.database import get_session_context
from rankscout.core.db_retry import run_with_transient_db_retry
from rankscout.core.exceptions import WebsiteProfileNotFoundError
from rankscout.models.website_profile import WebsiteProfile

logger = logging.getLogger(__name__)

_PATCHABLE_FIELDS = frozenset(
    {
        "job_id",
        "last_scraped_at",
        "summary",
        "business_overview",
        "value_props",
        "intents",
        "icps",
        "seed_keywords",
        "lean_keywords",
        "seo_validated_keyword_ids",
        "relevant_keyword_ids",
    }
)


def check_patchable(updates: Mapping[str, Any]) -> None:
    unknown = set(updates) - _PATCHABLE_FIELDS
    if unknown:
        raise ValueError(f"Unsupported website profile fields: {sorted(unknown)}")


class WebsiteProfileRepository:
    """Handles WebsiteProfile access via short-lived sessions."""

    async def create(self, domain: str) -> WebsiteProfile:
        async with get_session_context() as session:
            profile = WebsiteProfile(domain=domain)
            session.add(profile)
            await session.flush()
            await session.refresh(profile)
        logger.info("Website profile created", extra={"website_profile_id": profile.id, "domain": domain})
        return profile

    async def get(self, profile_id: str) -> WebsiteProfile:
        async with get_session_context(commit_on_exit=False) as session:
            profile = await session.get(WebsiteProfile, profile_id)
        if profile is None:
            raise WebsiteProfileNotFoundError(profile_id)
        return profile

    async def patch(self, profile_id: str, updates: Mapping[str, Any]) -> None:
        """Update cached profile fields with transient connection retries."""
        if not updates:
            return
        check_patchable(updates)

        async def _patch_once() -> None:
            async with get_session_context() as session:
                profile = await session.get(WebsiteProfile, profile_id)
                if profile is None:
                    raise WebsiteProfileNotFoundError(profile_id)
                for key, value in updates.items():
                    setattr(profile, key, value)

        await run_with_transient_db_retry(
            _patch_once,
            operation_name="website_profile_patch",
            log_context={"website_profile_id": profile_id, "fields": sorted(updates)},
        )
