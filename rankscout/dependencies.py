"""FastAPI dependencies wiring services to their clients and repositories."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from rankscout.agents.keyword_expander import KeywordExpanderAgent
from rankscout.agents.keyword_relevancy import KeywordRelevancyAgent
from rankscout.agents.semantic_analyzer import SemanticAnalyzerAgent
from rankscout.core.exceptions import APIKeyMissingError
from rankscout.integrations.keyword_suggestions import KeywordSuggestionsClient
from rankscout.repositories.keyword_repository import KeywordRepository
from rankscout.repositories.scraped_page_repository import ScrapedPageRepository
from rankscout.repositories.website_profile_repository import WebsiteProfileRepository
from rankscout.services.keyword_workflow import KeywordWorkflow
from rankscout.services.keywords.enrichment import KeywordEnrichmentPipeline
from rankscout.services.keywords.expansion import KeywordExpansionPipeline
from rankscout.services.keywords.relevancy import KeywordRelevancyPipeline
from rankscout.services.profile_analysis import ProfileAnalysisWorkflow
from rankscout.services.scrape_jobs import ScrapeJobManager
from rankscout.services.scrape_workflow import WebsiteScrapeWorkflow


def _unavailable(exc: APIKeyMissingError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.message)


def get_scrape_job_manager(request: Request) -> ScrapeJobManager:
    """Return the app-wide manager created in the lifespan."""
    manager = getattr(request.app.state, "scrape_job_manager", None)
    if manager is None:
        raise _unavailable(APIKeyMissingError("Firecrawl"))
    return manager


def get_website_profile_repository() -> WebsiteProfileRepository:
    return WebsiteProfileRepository()


async def get_keyword_lookup() -> AsyncGenerator[KeywordSuggestionsClient, None]:
    try:
        client = KeywordSuggestionsClient()
    except APIKeyMissingError as e:
        raise _unavailable(e) from e
    async with client:
        yield client


def get_enrichment_pipeline(
    lookup: Annotated[KeywordSuggestionsClient, Depends(get_keyword_lookup)],
) -> KeywordEnrichmentPipeline:
    return KeywordEnrichmentPipeline(lookup)


def get_relevancy_pipeline() -> KeywordRelevancyPipeline:
    return KeywordRelevancyPipeline(KeywordRelevancyAgent())


def get_expansion_pipeline() -> KeywordExpansionPipeline:
    return KeywordExpansionPipeline(KeywordExpanderAgent())


def get_keyword_workflow(
    profiles: Annotated[WebsiteProfileRepository, Depends(get_website_profile_repository)],
    enrichment: Annotated[KeywordEnrichmentPipeline, Depends(get_enrichment_pipeline)],
    relevancy: Annotated[KeywordRelevancyPipeline, Depends(get_relevancy_pipeline)],
    expansion: Annotated[KeywordExpansionPipeline, Depends(get_expansion_pipeline)],
) -> KeywordWorkflow:
    return KeywordWorkflow(profiles, KeywordRepository(), enrichment, relevancy, expansion)


def get_profile_analysis_workflow(
    profiles: Annotated[WebsiteProfileRepository, Depends(get_website_profile_repository)],
) -> ProfileAnalysisWorkflow:
    return ProfileAnalysisWorkflow(profiles, ScrapedPageRepository(), SemanticAnalyzerAgent())


def get_scrape_workflow(
    manager: Annotated[ScrapeJobManager, Depends(get_scrape_job_manager)],
    profiles: Annotated[WebsiteProfileRepository, Depends(get_website_profile_repository)],
) -> WebsiteScrapeWorkflow:
    return WebsiteScrapeWorkflow(
        profiles,
        manager.crawl_client,
        manager.page_ingestor,
        manager,
    )


ScrapeJobManagerDep = Annotated[ScrapeJobManager, Depends(get_scrape_job_manager)]
WebsiteProfileRepositoryDep = Annotated[WebsiteProfileRepository, Depends(get_website_profile_repository)]
EnrichmentPipelineDep = Annotated[KeywordEnrichmentPipeline, Depends(get_enrichment_pipeline)]
RelevancyPipelineDep = Annotated[KeywordRelevancyPipeline, Depends(get_relevancy_pipeline)]
KeywordWorkflowDep = Annotated[KeywordWorkflow, Depends(get_keyword_workflow)]
ProfileAnalysisWorkflowDep = Annotated[ProfileAnalysisWorkflow, Depends(get_profile_analysis_workflow)]
ScrapeWorkflowDep = Annotated[WebsiteScrapeWorkflow, Depends(get_scrape_workflow)]
