"""Profile keyword workflow: lean, validated and relevant keyword lists cached on the profile."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from rankscout.core.exceptions import IncompleteProfileError
from rankscout.models.website_profile import WebsiteProfile
from rankscout.services.keywords.enrichment import KeywordEnrichmentPipeline
from rankscout.services.keywords.expansion import KeywordExpansionPipeline, flatten_expansions
from rankscout.services.keywords.relevancy import KeywordRelevancyPipeline
from rankscout.services.keywords.scoring import sort_keywords_by_score
from rankscout.services.keywords.types import BusinessContext, KeywordCandidate, KeywordRefs
from rankscout.services.scrape_workflow import WebsiteProfileStore

logger = logging.getLogger(__name__)


class KeywordStore(Protocol):
    async def upsert_many(self, candidates: Sequence[KeywordCandidate]) -> KeywordRefs: ...

    async def resolve(self, refs: KeywordRefs) -> list[KeywordCandidate]: ...


class KeywordWorkflow:
    def __init__(
        self,
        profiles: WebsiteProfileStore,
        keywords: KeywordStore,
        enrichment: KeywordEnrichmentPipeline,
        relevancy: KeywordRelevancyPipeline,
        expansion: KeywordExpansionPipeline,
    ) -> None:
        self.profiles = profiles
        self.keywords = keywords
        self.enrichment = enrichment
        self.relevancy = relevancy
        self.expansion = expansion

    async def generate_lean_keywords(
        self,
        profile_id: str,
        seed_keywords: Sequence[str] | None = None,
    ) -> list[str]:
        """Return the profile's lean keywords, expanding its seed keywords on first use."""
        profile = await self.profiles.get(profile_id)

        if profile.lean_keywords:
            logger.info(
                "Using cached lean keywords",
                extra={"website_profile_id": profile_id, "count": len(profile.lean_keywords)},
            )
            return list(profile.lean_keywords)

        seeds = list(seed_keywords or profile.seed_keywords or [])
        if not seeds:
            raise IncompleteProfileError(profile_id, "seed keywords")

        expansions = await self.expansion.expand(seeds, _business_context(profile))
        lean_keywords = flatten_expansions(expansions)
        await self.profiles.patch(profile_id, {"lean_keywords": lean_keywords})

        logger.info(
            "Lean keywords generated",
            extra={"website_profile_id": profile_id, "seed_count": len(seeds), "count": len(lean_keywords)},
        )
        return lean_keywords

    async def generate_validated_keywords(
        self,
        profile_id: str,
        lean_keywords: Sequence[str] | None = None,
    ) -> list[KeywordCandidate]:
        """Return the profile's SEO-validated keywords, enriching them on first use."""
        profile = await self.profiles.get(profile_id)

        cached = KeywordRefs.from_ids(profile.seo_validated_keyword_ids)
        if cached:
            logger.info(
                "Using cached validated keywords",
                extra={"website_profile_id": profile_id, "count": len(cached)},
            )
            return await self.keywords.resolve(cached)

        seeds = list(lean_keywords or profile.lean_keywords or profile.seed_keywords or [])
        if not seeds:
            raise IncompleteProfileError(profile_id, "lean or seed keywords")

        validated = await self.enrichment.enrich(seeds)
        refs = await self.keywords.upsert_many(validated)
        await self.profiles.patch(profile_id, {"seo_validated_keyword_ids": list(refs.ids)})

        logger.info(
            "Validated keywords generated",
            extra={"website_profile_id": profile_id, "seed_count": len(seeds), "count": len(validated)},
        )
        return validated

    async def filter_relevant_keywords(
        self,
        profile_id: str,
        validated: Sequence[KeywordCandidate] | None = None,
    ) -> list[KeywordCandidate]:
        """Return the profile's relevant keywords sorted by score, filtering on first use."""
        profile = await self.profiles.get(profile_id)

        cached = KeywordRefs.from_ids(profile.relevant_keyword_ids)
        if cached:
            logger.info(
                "Using cached relevant keywords",
                extra={"website_profile_id": profile_id, "count": len(cached)},
            )
            return sort_keywords_by_score(await self.keywords.resolve(cached))

        if validated is None:
            validated = await self.generate_validated_keywords(profile_id)
        to_filter = sort_keywords_by_score(validated)
        if not to_filter:
            logger.warning("No validated keywords to filter", extra={"website_profile_id": profile_id})
            return []

        result = await self.relevancy.filter_relevant(to_filter, _business_context(profile))
        relevant = sort_keywords_by_score(result.relevant)

        refs = await self.keywords.upsert_many(relevant)
        await self.profiles.patch(profile_id, {"relevant_keyword_ids": list(refs.ids)})

        logger.info(
            "Relevant keywords generated",
            extra={
                "website_profile_id": profile_id,
                "validated_count": len(to_filter),
                "relevant_count": len(relevant),
            },
        )
        return relevant


def _business_context(profile: WebsiteProfile) -> BusinessContext:
    return BusinessContext(
        domain=profile.domain,
        business_overview=profile.business_overview or "",
        icps=tuple(profile.icps or ()),
        intents=tuple(profile.intents or ()),
    )
