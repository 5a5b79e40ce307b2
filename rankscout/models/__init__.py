"""SQLAlchemy database models."""
from rankscout.models.base import Base
from rankscout.models.keyword import Keyword
from rankscout.models.scrape_job import ScrapeJob
from rankscout.models.scraped_page import ScrapedPage
from rankscout.models.website_profile import WebsiteProfile

__all__ = [
    "Base",
    "Keyword",
    "ScrapeJob",
    "ScrapedPage",
    "WebsiteProfile",
]
