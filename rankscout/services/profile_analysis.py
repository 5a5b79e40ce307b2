"""Profile analysis: understand the business from its crawled pages."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Protocol

from rankscout.agents.semantic_analyzer import SemanticAnalysisInput, SemanticAnalysisOutput
from rankscout.config import settings
from rankscout.core.exceptions import IncompleteProfileError
from rankscout.models.scraped_page import ScrapedPage
from rankscout.services.scrape_workflow import WebsiteProfileStore

logger = logging.getLogger(__name__)


class PageLister(Protocol):
    async def list_for_profile(self, website_profile_id: str) -> list[ScrapedPage]: ...


class SemanticAnalyzer(Protocol):
    async def run(self, input_data: SemanticAnalysisInput) -> SemanticAnalysisOutput: ...


def build_page_content(pages: Sequence[ScrapedPage], *, page_chars: int) -> str:
    """Join page titles, descriptions and markdown into one prompt-ready document."""
    parts: list[str] = []
    for page in pages:
        context: dict[str, Any] = page.context if isinstance(page.context, dict) else {}
        metadata = context.get("metadata")
        metadata = metadata if isinstance(metadata, dict) else {}

        parts.append(f"## {page.url} ({page.type})")
        if metadata.get("title"):
            parts.append(f"Title: {metadata['title']}")
        if metadata.get("description"):
            parts.append(f"Description: {metadata['description']}")
        text = str(context.get("markdown") or "").strip()
        if text:
            parts.append(text[:page_chars])
        parts.append("")
    return "\n".join(parts)


class ProfileAnalysisWorkflow:
    def __init__(
        self,
        profiles: WebsiteProfileStore,
        pages: PageLister,
        analyzer: SemanticAnalyzer,
        *,
        page_chars: int | None = None,
    ) -> None:
        self.profiles = profiles
        self.pages = pages
        self.analyzer = analyzer
        self.page_chars = page_chars or settings.semantic_analysis_page_chars

    async def analyze_profile(self, profile_id: str) -> SemanticAnalysisOutput:
        """Analyze the profile's stored pages and save the insights on the profile.

        Raises:
            WebsiteProfileNotFoundError: No such profile.
            IncompleteProfileError: The website has not been scraped yet.
        """
        profile = await self.profiles.get(profile_id)
        pages = await self.pages.list_for_profile(profile_id)
        if not pages:
            raise IncompleteProfileError(profile_id, "scraped pages")

        analysis = await self.analyzer.run(
            SemanticAnalysisInput(
                domain=profile.domain,
                scraped_content=build_page_content(pages, page_chars=self.page_chars),
            )
        )
        await self.profiles.patch(
            profile_id,
            {
                "summary": analysis.short_about,
                "business_overview": analysis.business_overview,
                "value_props": list(analysis.value_props),
                "intents": list(analysis.intents),
                "icps": list(analysis.icps),
                "seed_keywords": list(analysis.seed_keywords),
            },
        )

        logger.info(
            "Website profile analyzed",
            extra={
                "website_profile_id": profile_id,
                "page_count": len(pages),
                "icp_count": len(analysis.icps),
                "seed_keyword_count": len(analysis.seed_keywords),
            },
        )
        return analysis
