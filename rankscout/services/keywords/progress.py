"""Periodic progress logging for long fan-out operations."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress


class ProgressCounter:
    """Completed/total counter shared between a fan-out and its reporter."""

    def __init__(self, total: int) -> None:
        self.total = total
        self.completed = 0

    def advance(self, amount: int = 1) -> None:
        self.completed += amount

    @property
    def percentage(self) -> int:
        if self.total <= 0:
            return 100
        return round(self.completed / self.total * 100)


@asynccontextmanager
async def log_progress(
    logger: logging.Logger,
    message: str,
    *,
    total: int,
    interval_seconds: float,
    **context: object,
) -> AsyncIterator[ProgressCounter]:
    """Log `message` with completion counts every `interval_seconds` until exit."""
    counter = ProgressCounter(total)

    async def _report() -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            logger.info(
                message,
                extra={
                    **context,
                    "completed": counter.completed,
                    "total": counter.total,
                    "percentage": counter.percentage,
                },
            )

    reporter = asyncio.create_task(_report())
    try:
        yield counter
    finally:
        reporter.cancel()
        with suppress(asyncio.CancelledError):
            await reporter
        logger.info(
            f"{message} finished",
            extra={**context, "completed": counter.completed, "total": counter.total},
        )
