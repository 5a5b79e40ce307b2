"""Keyword relevancy agent used by the relevancy filtering pipeline."""

import logging

from pydantic import BaseModel, Field

from rankscout.agents.base_agent import BaseAgent
from rankscout.services.keywords.types import BusinessContext, RelevancyVerdict

logger = logging.getLogger(__name__)


class KeywordRelevancyInput(BaseModel):
    """Input for the keyword relevancy agent."""

    domain: str
    business_overview: str = ""
    icps: list[str] = Field(default_factory=list)
    keywords: list[str]


class KeywordRelevancyOutput(BaseModel):
    """Keyword texts split by relevance to the business."""

    relevant_keywords: list[str] = Field(
        default_factory=list,
        description="Keywords a potential customer of this business would search for",
    )
    irrelevant_keywords: list[str] = Field(
        default_factory=list,
        description="Keywords unrelated to the business or its customers",
    )


class KeywordRelevancyAgent(BaseAgent[KeywordRelevancyInput, KeywordRelevancyOutput]):
    """Classify keywords as relevant or irrelevant for one business."""

    @property
    def system_prompt(self) -> str:
        return (
            "You are an SEO strategist. Given a business description and a list of "
            "search keywords, put every keyword into exactly one of relevant_keywords "
            "or irrelevant_keywords. Copy keyword text exactly as given."
        )

    @property
    def output_type(self) -> type[KeywordRelevancyOutput]:
        return KeywordRelevancyOutput

    def _build_prompt(self, input_data: KeywordRelevancyInput) -> str:
        icps = "\n".join(f"- {icp}" for icp in input_data.icps) or "- (not provided)"
        keywords = "\n".join(input_data.keywords)
        return (
            f"Domain: {input_data.domain}\n\n"
            f"Business overview:\n{input_data.business_overview or '(not provided)'}\n\n"
            f"Ideal customer profiles:\n{icps}\n\n"
            f"Keywords ({len(input_data.keywords)}):\n{keywords}"
        )

    async def classify(self, keywords: list[str], context: BusinessContext) -> RelevancyVerdict:
        output = await self.run(
            KeywordRelevancyInput(
                domain=context.domain,
                business_overview=context.business_overview,
                icps=list(context.icps),
                keywords=keywords,
            )
        )
        return RelevancyVerdict(
            relevant=list(output.relevant_keywords),
            irrelevant=list(output.irrelevant_keywords),
        )
