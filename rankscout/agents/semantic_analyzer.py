"""Semantic analyzer agent: business insights from crawled website content."""

import logging

from pydantic import BaseModel, Field

from rankscout.agents.base_agent import BaseAgent
from rankscout.config import settings

logger = logging.getLogger(__name__)


class SemanticAnalysisInput(BaseModel):
    """Input for the semantic analyzer agent."""

    domain: str
    scraped_content: str


class SemanticAnalysisOutput(BaseModel):
    """Business insights for SEO and marketing strategy."""

    short_about: str = Field(
        description=(
            "Friendly, Slack-style feedback to the business owner in short paragraphs "
            "separated by blank lines. Start with 'So I took a look at [Business Name]...', "
            "compliment specific products or services, highlight standout customer-friendly "
            "features, suggest blog content ideas for the niche, and say what the target "
            "audience is likely looking for."
        ),
    )
    business_overview: str = Field(
        description=(
            "3-4 detailed paragraphs on the business built only from facts found on its pages: "
            "company name and business model, concrete products and services, target market, "
            "geographic coverage with evidence (global if nothing is specified), differentiators "
            "with quoted claims, maturity and scale indicators, and SEO opportunities. "
            "No generic 'from X to Y' phrasing."
        ),
    )
    value_props: list[str] = Field(
        default_factory=list,
        description="10 unique, highly specific value propositions that differentiate the product",
    )
    intents: list[str] = Field(
        default_factory=list,
        description="10 distinct user intents: what people try to achieve, solve or improve with the product",
    )
    icps: list[str] = Field(
        default_factory=list,
        description=(
            "10 ideal customer profiles, each a few words without 'and', 'or' or 'etc', "
            "e.g. 'urban runners', 'tech workers'"
        ),
    )
    seed_keywords: list[str] = Field(
        default_factory=list,
        description="5 very short tail search keywords a savvy marketer would target, used as expansion seeds",
    )


class SemanticAnalyzerAgent(BaseAgent[SemanticAnalysisInput, SemanticAnalysisOutput]):
    """Agent for understanding a business from its crawled pages.

    The output seeds the profile's keyword research: the overview and ICPs
    feed the relevancy classifier and the seed keywords feed lean keyword
    expansion.
    """

    @property
    def system_prompt(self) -> str:
        return """You are a world-class product marketer, SEO expert and content strategist.
Analyze website content and return structured business insights for SEO and marketing strategy.

Guidelines:
- Only state what can be DIRECTLY inferred from the content
- Be hyper-specific: name actual products, services, prices and claims found on the pages
- Follow the field descriptions of the schema exactly, including item counts
"""

    @property
    def output_type(self) -> type[SemanticAnalysisOutput]:
        return SemanticAnalysisOutput

    def _build_prompt(self, input_data: SemanticAnalysisInput) -> str:
        logger.info(
            "Building semantic analysis prompt",
            extra={"domain": input_data.domain, "content_length": len(input_data.scraped_content)},
        )
        content = input_data.scraped_content
        if len(content) > settings.semantic_analysis_max_chars:
            content = content[: settings.semantic_analysis_max_chars] + "\n\n[Content truncated...]"

        return f"""Analyze the following website content from {input_data.domain}.

## Website Content

{content}
"""
