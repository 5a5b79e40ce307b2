"""Base class for Pydantic AI agents."""

import logging
import time
from abc import ABC, abstractmethod
from typing import Generic, TypeVar, cast

from pydantic import BaseModel
from pydantic_ai import Agent

from rankscout.config import settings

logger = logging.getLogger(__name__)

InputT = TypeVar("InputT", bound=BaseModel)
OutputT = TypeVar("OutputT", bound=BaseModel)


class BaseAgent(ABC, Generic[InputT, OutputT]):
    """Abstract base class for Pydantic AI agents.

    Subclasses define `system_prompt`, `output_type` and `_build_prompt`.
    The model is taken from the constructor argument, then the `model`
    class attribute, then `settings.relevancy_llm_model`.
    """

    model: str | None = None
    max_retries: int = settings.llm_max_retries

    def __init__(self, model_override: str | None = None) -> None:
        self._model = model_override or self.model or settings.relevancy_llm_model
        self._agent: Agent[None, OutputT] | None = None

        logger.info(
            "Agent initialized",
            extra={"agent": self.__class__.__name__, "model": self._model},
        )

    @property
    def agent(self) -> Agent[None, OutputT]:
        """Lazily initialize and return the Pydantic AI agent."""
        if self._agent is None:
            self._agent = cast(
                Agent[None, OutputT],
                Agent(
                    model=self._model,
                    output_type=self.output_type,
                    system_prompt=self.system_prompt,
                    retries=self.max_retries,
                ),
            )
        return self._agent

    @property
    @abstractmethod
    def system_prompt(self) -> str:
        """System prompt for the agent."""

    @property
    @abstractmethod
    def output_type(self) -> type[OutputT]:
        """Pydantic model type for structured output."""

    @abstractmethod
    def _build_prompt(self, input_data: InputT) -> str:
        """Build the user prompt from input data."""

    async def run(self, input_data: InputT) -> OutputT:
        """Run the agent and return its structured output."""
        agent_name = self.__class__.__name__
        prompt = self._build_prompt(input_data)
        logger.info(
            "Agent run started",
            extra={"agent": agent_name, "prompt_length": len(prompt), "model": self._model},
        )

        t0 = time.perf_counter()
        result = await self.agent.run(prompt)
        elapsed = time.perf_counter() - t0

        usage = result.usage()
        logger.info(
            "Agent run completed",
            extra={
                "agent": agent_name,
                "duration_s": round(elapsed, 2),
                "total_tokens": usage.total_tokens,
            },
        )
        return result.output
