"""Keyword expander agent: seed keywords to short searchable variations."""

import logging

from pydantic import BaseModel, Field

from rankscout.agents.base_agent import BaseAgent
from rankscout.services.keywords.types import BusinessContext, KeywordExpansion

logger = logging.getLogger(__name__)


class KeywordExpanderInput(BaseModel):
    """Input for the keyword expander agent."""

    keywords: list[str]
    domain: str
    business_overview: str = ""
    icps: list[str] = Field(default_factory=list)
    intents: list[str] = Field(default_factory=list)


class KeywordPair(BaseModel):
    """One seed keyword and its variations."""

    original: str = Field(description="The original seed keyword")
    expanded: list[str] = Field(
        default_factory=list,
        description="Expanded keyword variations (1-3 words each)",
    )


class KeywordExpanderOutput(BaseModel):
    """Expansions for every seed keyword in the batch."""

    keyword_expansions: list[KeywordPair] = Field(
        default_factory=list,
        description="Keyword pairs with original keywords and their expanded variations",
    )


class KeywordExpanderAgent(BaseAgent[KeywordExpanderInput, KeywordExpanderOutput]):
    """Expand seed keywords into lean variations a customer would search for."""

    @property
    def system_prompt(self) -> str:
        return """You are an SEO keyword researcher.
Expand seed keywords into short variations that the business's target customers
would actually type into Google.

Rules:
- Each expanded keyword should be 1-3 words maximum
- Consider the business context, target audience and customer pain points
- Include synonyms, related terms and different search intents
- Cover different stages of the customer journey
- Avoid long descriptive phrases; keep it lean and searchable
- Return one keyword_expansions item per seed keyword, copying the seed text exactly into `original`
"""

    @property
    def output_type(self) -> type[KeywordExpanderOutput]:
        return KeywordExpanderOutput

    def _build_prompt(self, input_data: KeywordExpanderInput) -> str:
        prompt = f"""## Business Context

Domain: {input_data.domain}

"""
        if input_data.business_overview:
            prompt += f"Business overview:\n{input_data.business_overview}\n\n"
        if input_data.icps:
            prompt += "Ideal customer profiles:\n" + "\n".join(f"- {icp}" for icp in input_data.icps) + "\n\n"
        if input_data.intents:
            prompt += "User intents:\n" + "\n".join(f"- {intent}" for intent in input_data.intents) + "\n\n"

        prompt += f"""## Task

Expand each of these keywords into 6-8 contextually relevant variations: {", ".join(input_data.keywords)}

Example:
- original: "startup consulting" -> expanded: ["consulting", "startup help", "business advice", "startup mentor"]
- original: "web development" -> expanded: ["web dev", "website building", "coding services", "web design"]
"""
        return prompt

    async def expand(self, keywords: list[str], context: BusinessContext) -> list[KeywordExpansion]:
        output = await self.run(
            KeywordExpanderInput(
                keywords=keywords,
                domain=context.domain,
                business_overview=context.business_overview,
                icps=list(context.icps),
                intents=list(context.intents),
            )
        )
        return [
            KeywordExpansion(original=pair.original, expanded=list(pair.expanded))
            for pair in output.keyword_expansions
        ]
