"""Firecrawl API integration for asynchronous site crawls."""

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from rankscout.config import settings
from rankscout.core.exceptions import (
    APIKeyMissingError,
    ExternalAPIError,
    RateLimitExceededError,
    VendorRejectedError,
)

logger = logging.getLogger(__name__)

API_NAME = "Firecrawl"

CRAWL_COMPLETED = "completed"
CRAWL_FAILED = "failed"
CRAWL_CANCELLED = "cancelled"
CRAWL_TERMINAL_FAILURES = frozenset({CRAWL_FAILED, CRAWL_CANCELLED})


@dataclass(slots=True)
class CrawlStartResult:
    job_id: str


@dataclass(slots=True)
class CrawlStatus:
    """Vendor crawl status; `data` holds page documents once completed."""

    status: str
    data: list[dict[str, Any]] = field(default_factory=list)
    total: int | None = None
    completed: int | None = None


def crawl_target_url(domain: str) -> str:
    """Return a crawlable URL for a bare domain or a full URL."""
    value = domain.strip()
    if value.startswith(("http://", "https://")):
        return value
    return f"https://{value}"


class FirecrawlClient:
    """Client for the Firecrawl crawl endpoints.

    Must be used as an async context manager.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.api_key = api_key or settings.firecrawl_api_key
        self.base_url = (base_url or settings.firecrawl_base_url).rstrip("/")
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

        if not self.api_key:
            raise APIKeyMissingError(API_NAME)

    async def __aenter__(self) -> "FirecrawlClient":
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
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

    async def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self.client.request(method, url, **kwargs)
            if response.status_code == 429:
                logger.warning("Firecrawl rate limit hit", extra={"url": url})
                raise RateLimitExceededError(API_NAME)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            logger.warning("Firecrawl HTTP error", extra={"url": url, "error": str(e)})
            raise ExternalAPIError(API_NAME, str(e)) from e

        if not isinstance(payload, dict):
            raise ExternalAPIError(API_NAME, "Unexpected response body")
        return payload

    async def start_crawl(
        self,
        domain: str,
        *,
        max_depth: int | None = None,
        limit: int | None = None,
    ) -> CrawlStartResult:
        """Start an asynchronous crawl and return the vendor job id.

        Raises:
            VendorRejectedError: If the vendor refuses the crawl for any reason.
        """
        body = {
            "url": crawl_target_url(domain),
            "maxDepth": settings.scrape_crawl_max_depth if max_depth is None else max_depth,
            "limit": settings.scrape_crawl_page_limit if limit is None else limit,
        }
        logger.info("Starting crawl", extra={"domain": domain, "max_depth": body["maxDepth"], "limit": body["limit"]})

        try:
            payload = await self._request("POST", f"{self.base_url}/crawl", json=body)
        except ExternalAPIError as e:
            raise VendorRejectedError(domain, e.message) from e

        job_id = payload.get("id")
        if not payload.get("success") or not job_id:
            raise VendorRejectedError(domain, str(payload.get("error") or "Unknown error"))
        return CrawlStartResult(job_id=str(job_id))

    async def check_crawl_status(self, job_id: str) -> CrawlStatus:
        """Fetch crawl status, following result pagination once completed."""
        payload = await self._request("GET", f"{self.base_url}/crawl/{job_id}")
        status = CrawlStatus(
            status=str(payload.get("status") or "unknown"),
            data=list(payload.get("data") or []),
            total=payload.get("total"),
            completed=payload.get("completed"),
        )

        next_url = payload.get("next")
        while status.status == CRAWL_COMPLETED and next_url:
            page = await self._request("GET", next_url)
            status.data.extend(page.get("data") or [])
            next_url = page.get("next")

        return status
