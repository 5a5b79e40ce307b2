"""Retries for database writes that must not be lost to a dropped connection."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator, Mapping
from typing import Any, TypeVar

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError

from rankscout.config import settings

logger = logging.getLogger(__name__)

_ResultT = TypeVar("_ResultT")

_DROPPED_CONNECTION_MARKERS = (
    "connection is closed",
    "connection was closed",
    "server closed the connection unexpectedly",
    "connection reset by peer",
    "connectiondoesnotexisterror",
)


def _exception_chain(exc: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__


def is_transient_connection_error(exc: BaseException) -> bool:
    """True when `exc`, or anything it was raised from, is a dropped DB connection."""
    for link in _exception_chain(exc):
        if isinstance(link, (InterfaceError, OperationalError)):
            return True
        if isinstance(link, DBAPIError) and link.connection_invalidated:
            return True
        text = f"{type(link).__name__} {link}".lower()
        if any(marker in text for marker in _DROPPED_CONNECTION_MARKERS):
            return True
    return False


async def run_with_transient_db_retry(
    operation: Callable[[], Awaitable[_ResultT]],
    *,
    operation_name: str,
    attempts: int | None = None,
    base_delay_seconds: float | None = None,
    log_context: Mapping[str, Any] | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> _ResultT:
    """Run `operation`, retrying it with linear backoff on dropped connections only.

    `operation` must open its own session on every call. Permanent errors and
    the last transient error propagate unchanged.
    """
    max_attempts = settings.db_write_retry_attempts if attempts is None else attempts
    delay = settings.db_write_retry_base_delay_seconds if base_delay_seconds is None else base_delay_seconds
    if max_attempts < 1:
        raise ValueError("attempts must be >= 1")

    context = {**(log_context or {}), "operation": operation_name, "max_attempts": max_attempts}
    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as exc:
            if not is_transient_connection_error(exc):
                raise
            if attempt >= max_attempts:
                logger.error(
                    "Database operation failed after retries",
                    extra={**context, "attempt": attempt, "error": str(exc)},
                )
                raise
            logger.warning(
                "Dropped database connection, retrying",
                extra={**context, "attempt": attempt},
            )
        await sleep(delay * attempt)
        attempt += 1
