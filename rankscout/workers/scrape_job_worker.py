"""Scrape job sweep worker entrypoint."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from contextlib import suppress

from rankscout.config import settings
from rankscout.core.database import close_db
from rankscout.core.logging import setup_logging
from rankscout.integrations.firecrawl import FirecrawlClient
from rankscout.services.scrape_jobs import ScrapeJobManager, build_scrape_job_manager

logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    """Parse worker runtime arguments."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--interval",
        type=float,
        default=settings.scrape_sweep_interval_seconds,
        help="Seconds between sweeps for unclaimed or stalled scrape jobs.",
    )
    return parser.parse_args()


async def sweep_until_stopped(
    manager: ScrapeJobManager,
    stop_event: asyncio.Event,
    *,
    interval: float,
) -> None:
    """Sweep on a fixed interval until `stop_event` is set, then drain."""
    try:
        while not stop_event.is_set():
            await manager.sweep()
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=max(0.1, float(interval)))
            except asyncio.TimeoutError:
                continue
    finally:
        if manager.pending_tasks:
            logger.info("Waiting for in-flight scrape jobs", extra={"count": manager.pending_tasks})
        await manager.drain()


async def run_worker(*, interval: float) -> None:
    """Run the sweep loop until a shutdown signal arrives."""
    setup_logging()
    logger.info("Scrape job worker started", extra={"interval": interval})

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def _request_stop() -> None:
        if not stop_event.is_set():
            logger.info("Scrape job worker received shutdown signal")
            stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        with suppress(NotImplementedError):
            loop.add_signal_handler(sig, _request_stop)

    try:
        async with FirecrawlClient() as crawl_client:
            manager = build_scrape_job_manager(crawl_client)
            await sweep_until_stopped(manager, stop_event, interval=interval)
    finally:
        logger.info("Scrape job worker stopping")
        await close_db()


def main() -> int:
    """CLI entrypoint."""
    args = parse_args()
    try:
        asyncio.run(run_worker(interval=args.interval))
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
