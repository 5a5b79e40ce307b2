"""Custom exception classes for the application."""

from typing import Any


class RankScoutError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


# Lookup Errors
class NotFoundError(RankScoutError):
    """Referenced record does not exist."""

    pass


class ScrapeJobNotFoundError(NotFoundError):
    """Scrape job not found."""

    def __init__(self, job_id: str) -> None:
        super().__init__(f"Scrape job not found: {job_id}")


class WebsiteProfileNotFoundError(NotFoundError):
    """Website profile not found."""

    def __init__(self, profile_id: str) -> None:
        super().__init__(f"Website profile not found: {profile_id}")


class IncompleteProfileError(RankScoutError):
    """Website profile lacks data required by a workflow step."""

    def __init__(self, profile_id: str, missing: str) -> None:
        super().__init__(
            f"Website profile {profile_id} is missing {missing}",
            details={"profile_id": profile_id, "missing": missing},
        )


# External API Errors
class ExternalAPIError(RankScoutError):
    """Error calling external API."""

    def __init__(self, api_name: str, message: str) -> None:
        self.api_name = api_name
        super().__init__(f"{api_name} API error: {message}")


class RateLimitExceededError(ExternalAPIError):
    """Rate limit exceeded for external API."""

    def __init__(self, api_name: str) -> None:
        super().__init__(api_name, "Rate limit exceeded")


class APIKeyMissingError(ExternalAPIError):
    """API key not configured."""

    def __init__(self, api_name: str) -> None:
        super().__init__(api_name, "API key not configured")


class VendorRejectedError(ExternalAPIError):
    """Crawl vendor refused to start a crawl."""

    def __init__(self, domain: str, reason: str) -> None:
        self.domain = domain
        super().__init__("Firecrawl", f"failed to start crawl for {domain}: {reason}")


# Scrape Job Errors
class ScrapeJobError(RankScoutError):
    """Base class for failures that terminate a claimed scrape job."""

    pass


class VendorTerminalFailureError(ScrapeJobError):
    """Crawl vendor reported the crawl as failed or cancelled."""

    def __init__(self, vendor_job_id: str, vendor_status: str) -> None:
        self.vendor_job_id = vendor_job_id
        self.vendor_status = vendor_status
        super().__init__(f"Scrape error: crawl {vendor_job_id} {vendor_status}")


class ScrapeTimeoutError(ScrapeJobError):
    """Crawl did not reach a terminal state within the poll timeout."""

    def __init__(self, vendor_job_id: str, timeout_seconds: float) -> None:
        self.vendor_job_id = vendor_job_id
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Scrape did not complete within {timeout_seconds:g} seconds (crawl {vendor_job_id})"
        )
