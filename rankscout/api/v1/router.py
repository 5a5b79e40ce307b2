"""API v1 router aggregator."""

from fastapi import APIRouter

from rankscout.api.v1.keywords.routes import router as keywords_router
from rankscout.api.v1.scrape_jobs.routes import router as scrape_jobs_router
from rankscout.api.v1.website_profiles.routes import router as website_profiles_router

api_router = APIRouter()

api_router.include_router(scrape_jobs_router, prefix="/scrape-jobs", tags=["Scrape Jobs"])
api_router.include_router(keywords_router, prefix="/keywords", tags=["Keywords"])
api_router.include_router(website_profiles_router, prefix="/website-profiles", tags=["Website Profiles"])
