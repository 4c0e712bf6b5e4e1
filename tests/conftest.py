"""
Shared fixtures: an in-memory SQLite schema, a fixed clock and catalog helpers.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import db.models  # noqa: F401  registers all ORM models on Base.metadata
from app.indexing.client import IndexingClient, PublishResult
from db.base import Base
from db.models.indexing_attempt import IndexingAttempt
from db.models.job import Job

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
SITE_URL = "https://jobs.example.test"


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def session(engine) -> Iterator[Session]:
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    db = factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def clock() -> Callable[[], datetime]:
    return lambda: NOW


@pytest.fixture()
def add_job(session: Session) -> Callable[..., Job]:
    def _add(
        job_id: int,
        *,
        status: str = "Active",
        posted_ago: timedelta | None = timedelta(days=1),
        updated_ago: timedelta | None = None,
        title: str | None = None,
    ) -> Job:
        job = Job(
            id=job_id,
            title=title or f"Engineer {job_id}",
            status=status,
            posted_date=NOW - posted_ago if posted_ago is not None else None,
            updated_at=NOW - updated_ago if updated_ago is not None else None,
        )
        session.add(job)
        session.flush()
        return job

    return _add


@pytest.fixture()
def add_attempt(session: Session) -> Callable[..., IndexingAttempt]:
    def _add(
        job_id: int,
        *,
        action: str = "index",
        success: bool = True,
        ago: timedelta = timedelta(hours=1),
        message: str = "Cron: Success",
    ) -> IndexingAttempt:
        row = IndexingAttempt(
            job_id=job_id,
            action=action,
            success=success,
            message=message,
            created_at=NOW - ago,
        )
        session.add(row)
        session.flush()
        return row

    return _add


@pytest.fixture()
def fake_client() -> MagicMock:
    """IndexingClient double whose submit() succeeds unless reconfigured."""
    client = MagicMock(spec=IndexingClient)
    client.item_url.side_effect = lambda item_id: f"{SITE_URL}/job-details.php?id={item_id}"
    client.submit.side_effect = lambda url, notification_type: PublishResult(
        url=url,
        type=notification_type,
        response={},
    )
    return client
