"""Turn vendor crawl documents into stored, classified scraped pages."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import Any, Literal, Protocol
from urllib.parse import urlparse

from rankscout.repositories.scraped_page_repository import PageRecord

logger = logging.getLogger(__name__)

PageType = Literal["home", "pricing", "blog", "about", "contact", "product", "other"]

PAGE_TYPE_RULES: tuple[tuple[PageType, re.Pattern[str]], ...] = (
    ("pricing", re.compile(r"/(pricing|plans|buy|subscribe)", re.IGNORECASE)),
    ("blog", re.compile(r"/(blog|news|articles|post)s?", re.IGNORECASE)),
    ("about", re.compile(r"/(about|company|our-story)", re.IGNORECASE)),
    ("contact", re.compile(r"/(contact|contact-us|support|help)", re.IGNORECASE)),
    ("product", re.compile(r"/(product|item|service|store|shop)s?", re.IGNORECASE)),
    ("home", re.compile(r"^/$")),
)


def classify_page_url(url: str) -> PageType:
    """Tag a page URL by its path; the first matching rule wins."""
    path = urlparse(url).path or "/"
    for page_type, pattern in PAGE_TYPE_RULES:
        if pattern.search(path):
            return page_type
    return "other"


def page_url(document: dict[str, Any]) -> str | None:
    metadata = document.get("metadata")
    if not isinstance(metadata, dict):
        return None
    url = metadata.get("url") or metadata.get("sourceURL")
    return str(url) if url else None


class PageStore(Protocol):
    async def upsert_many(self, website_profile_id: str, records: Sequence[PageRecord]) -> list[Any]: ...


class PageIngestor:
    """Classify and store crawl documents for one website profile."""

    def __init__(self, store: PageStore) -> None:
        self.store = store

    def to_records(self, documents: Sequence[dict[str, Any]]) -> list[PageRecord]:
        records: list[PageRecord] = []
        skipped = 0
        for document in documents:
            url = page_url(document)
            if url is None:
                skipped += 1
                continue
            records.append(PageRecord(url=url, type=classify_page_url(url), context=dict(document)))
        if skipped:
            logger.info("Skipped crawl documents without a URL", extra={"skipped": skipped})
        return records

    async def ingest(self, documents: Sequence[dict[str, Any]], website_profile_id: str) -> list[Any]:
        """Store the documents and return the saved pages."""
        records = self.to_records(documents)
        if not records:
            return []
        return await self.store.upsert_many(website_profile_id, records)
