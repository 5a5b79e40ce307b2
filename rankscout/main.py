"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, cast

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rankscout.api.v1.router import api_router
from rankscout.config import settings
from rankscout.core.database import close_db, init_db
from rankscout.core.exceptions import APIKeyMissingError
from rankscout.core.logging import setup_logging
from rankscout.integrations.firecrawl import FirecrawlClient
from rankscout.services.scrape_jobs import build_scrape_job_manager

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    setup_logging()

    logger.info(
        "Starting RankScout",
        extra={
            "environment": settings.environment,
            "version": settings.app_version,
            "relevancy_model": settings.relevancy_llm_model,
        },
    )

    if settings.environment == "development":
        await init_db()
        logger.info("Development database initialized")

    async with AsyncExitStack() as stack:
        app.state.scrape_job_manager = None
        try:
            crawl_client = await stack.enter_async_context(FirecrawlClient())
        except APIKeyMissingError:
            logger.warning("Firecrawl API key missing, scrape endpoints disabled")
        else:
            app.state.scrape_job_manager = build_scrape_job_manager(crawl_client)

        yield

        logger.info("Shutting down RankScout")
        manager = app.state.scrape_job_manager
        if manager is not None:
            await manager.drain()

    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description=(
            "Crawl job tracking and keyword enrichment service: tracks vendor crawls to "
            "completion and ranks keyword candidates by difficulty tier and volume."
        ),
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        cast(Any, CORSMiddleware),
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix=settings.api_v1_prefix)

    @app.get(
        "/health",
        summary="Health check",
        description="Return service health status and version information.",
    )
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy", "version": settings.app_version}

    return app


app = create_app()
