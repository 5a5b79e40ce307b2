"""Unit tests for scrape job claim statements and terminal writes."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from rankscout.repositories.scrape_job_repository import (
    ScrapeJobRepository,
    build_claim_statement,
    build_stale_batch_statement,
)

NOW = datetime(2026, 2, 1, 12, 0, tzinfo=timezone.utc)
STALE_BEFORE = NOW - timedelta(minutes=10)


def _compile(statement: Any) -> Any:
    return statement.compile(dialect=postgresql.dialect())


def test_claim_statement_is_conditional_update_returning() -> None:
    compiled = _compile(build_claim_statement("job-1", now=NOW, stale_before=STALE_BEFORE))
    sql = str(compiled)

    assert sql.startswith("UPDATE scrape_jobs SET processing_started_at=")
    assert "scrape_jobs.status = " in sql
    assert "scrape_jobs.processing_started_at IS NULL OR scrape_jobs.processing_started_at < " in sql
    assert "RETURNING" in sql
    assert "job-1" in compiled.params.values()
    assert "processing" in compiled.params.values()
    assert NOW in compiled.params.values()
    assert STALE_BEFORE in compiled.params.values()


def test_stale_batch_statement_locks_and_skips_locked_rows() -> None:
    compiled = _compile(build_stale_batch_statement(stale_before=STALE_BEFORE, limit=5))
    sql = str(compiled)

    assert "FOR UPDATE SKIP LOCKED" in sql
    assert "ORDER BY scrape_jobs.processing_started_at ASC NULLS FIRST, scrape_jobs.created_at ASC" in sql
    assert "LIMIT" in sql
    assert 5 in compiled.params.values()


def test_stale_batch_limit_is_at_least_one() -> None:
    compiled = _compile(build_stale_batch_statement(stale_before=STALE_BEFORE, limit=0))

    assert 1 in compiled.params.values()


class _RecordingSession:
    def __init__(self, failures: list[Exception] | None = None) -> None:
        self.failures = failures or []
        self.statements: list[Any] = []

    async def execute(self, statement: Any, *args: Any, **kwargs: Any) -> None:
        if self.failures:
            raise self.failures.pop(0)
        self.statements.append(statement)


def _patch_sessions(monkeypatch: pytest.MonkeyPatch, session: _RecordingSession) -> None:
    @asynccontextmanager
    async def _fake_context(*, commit_on_exit: bool = True):
        yield session

    monkeypatch.setattr("rankscout.repositories.scrape_job_repository.get_session_context", _fake_context)


@pytest.mark.asyncio
async def test_mark_failed_clears_results_and_claim(monkeypatch: pytest.MonkeyPatch) -> None:
    session = _RecordingSession()
    _patch_sessions(monkeypatch, session)

    await ScrapeJobRepository().mark_failed("job-1", "Scrape error: crawl vendor-1 failed")

    params = _compile(session.statements[0]).params
    assert params["status"] == "failed"
    assert params["result_page_ids"] == []
    assert params["error"] == "Scrape error: crawl vendor-1 failed"
    assert params["processing_started_at"] is None


@pytest.mark.asyncio
async def test_mark_complete_is_retried_on_dropped_connection(monkeypatch: pytest.MonkeyPatch) -> None:
    session = _RecordingSession(failures=[OperationalError("UPDATE", {}, Exception("connection reset by peer"))])
    _patch_sessions(monkeypatch, session)

    await ScrapeJobRepository().mark_complete("job-1", ["page-1", "page-2"])

    params = _compile(session.statements[0]).params
    assert params["status"] == "complete"
    assert params["result_page_ids"] == ["page-1", "page-2"]
    assert params["error"] is None
