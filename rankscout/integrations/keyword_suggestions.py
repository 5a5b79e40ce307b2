"""Ahrefs keyword suggestions via RapidAPI."""

import logging
from typing import Any

import httpx

from rankscout.config import settings
from rankscout.core.exceptions import APIKeyMissingError, ExternalAPIError, RateLimitExceededError
from rankscout.services.keywords.types import RawKeywordSuggestion

logger = logging.getLogger(__name__)

API_NAME = "Ahrefs"


def parse_suggestions_response(payload: dict[str, Any]) -> list[RawKeywordSuggestion]:
    """Merge the `Ideas` and `Questions` lists into raw suggestion rows."""
    rows: list[RawKeywordSuggestion] = []
    for section in ("Ideas", "Questions"):
        for item in payload.get(section) or []:
            if not isinstance(item, dict) or not item.get("keyword"):
                continue
            volume = item.get("volume")
            rows.append(
                RawKeywordSuggestion(
                    text=str(item["keyword"]),
                    raw_volume=None if volume is None else str(volume),
                    raw_difficulty=item.get("difficulty"),
                    last_updated=item.get("lastUpdated"),
                    payload=dict(item),
                )
            )
    return rows


class KeywordSuggestionsClient:
    """Client for the RapidAPI-hosted Ahrefs keyword suggestions endpoint.

    Must be used as an async context manager.
    """

    provider = "ahrefs"

    def __init__(
        self,
        api_key: str | None = None,
        host: str | None = None,
        country: str | None = None,
        search_engine: str | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.api_key = api_key or settings.rapidapi_key
        self.host = host or settings.keyword_suggestions_host
        self.country = country or settings.keyword_suggestions_country
        self.search_engine = search_engine or settings.keyword_suggestions_search_engine
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

        if not self.api_key:
            raise APIKeyMissingError("RapidAPI")

    async def __aenter__(self) -> "KeywordSuggestionsClient":
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            headers={"x-rapidapi-host": self.host, "x-rapidapi-key": self.api_key},
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("Client must be used as async context manager")
        return self._client

    async def lookup(self, keyword: str) -> list[RawKeywordSuggestion]:
        """Return suggestion rows for one seed keyword."""
        url = f"https://{self.host}/keyword_suggestions"
        params = {"keyword": keyword, "country": self.country, "se": self.search_engine}

        try:
            response = await self.client.get(url, params=params)
            if response.status_code == 429:
                logger.warning("Keyword suggestions rate limit hit", extra={"keyword": keyword})
                raise RateLimitExceededError(API_NAME)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise ExternalAPIError(API_NAME, str(e)) from e

        if not isinstance(payload, dict):
            raise ExternalAPIError(API_NAME, "Unexpected response body")

        rows = parse_suggestions_response(payload)
        logger.debug("Keyword suggestions fetched", extra={"keyword": keyword, "rows": len(rows)})
        return rows
