"""Constants for scrape job routes."""

SCRAPE_JOB_NOT_FOUND_DETAIL = "Scrape job not found"
SCRAPE_START_FAILED_DETAIL = "Failed to start scrape"
WEBSITE_PROFILE_NOT_FOUND_DETAIL = "Website profile not found"
