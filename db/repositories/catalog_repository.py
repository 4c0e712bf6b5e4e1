"""
SQLAlchemy-backed catalog store over the job board's ``jobs`` table.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from sqlalchemy import Select, or_, select
from sqlalchemy.orm import Session

from app.domain.indexing import AttemptAction, CatalogItem, CatalogStatus
from app.indexing.catalog import CatalogStore, OrphanCandidate
from db.models.indexing_attempt import IndexingAttempt
from db.models.job import Job
from db.repositories.attempt_log_repository import as_utc


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _successful_attempt_exists(action: AttemptAction, job_id_column):
    return (
        select(IndexingAttempt.id)
        .where(
            IndexingAttempt.job_id == job_id_column,
            IndexingAttempt.action == action.value,
            IndexingAttempt.success.is_(True),
        )
        .exists()
    )


class SQLAlchemyCatalogStore(CatalogStore):
    def __init__(
        self,
        session: Session,
        *,
        new_item_lookback: timedelta = timedelta(days=7),
        updated_item_lookback: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._session = session
        self._new_item_lookback = new_item_lookback
        self._updated_item_lookback = updated_item_lookback
        self._clock = clock

    def get_item(self, item_id: int) -> CatalogItem | None:
        job = self._session.get(Job, item_id)
        if job is None:
            return None
        return self._to_item(job)

    def query_new_active(self, limit: int) -> list[CatalogItem]:
        if limit <= 0:
            return []
        since = self._clock() - self._new_item_lookback
        stmt: Select[tuple[Job]] = (
            select(Job)
            .where(
                Job.status == CatalogStatus.ACTIVE.value,
                Job.posted_date.is_not(None),
                Job.posted_date >= since,
                ~_successful_attempt_exists(AttemptAction.INDEX, Job.id),
            )
            .order_by(Job.posted_date.asc(), Job.id.asc())
            .limit(limit)
        )
        return [self._to_item(job) for job in self._session.scalars(stmt).all()]

    def query_recently_updated_active(self, limit: int) -> list[CatalogItem]:
        if limit <= 0:
            return []
        since = self._clock() - self._updated_item_lookback
        stmt: Select[tuple[Job]] = (
            select(Job)
            .where(
                Job.status == CatalogStatus.ACTIVE.value,
                Job.updated_at.is_not(None),
                Job.updated_at >= since,
                or_(Job.posted_date.is_(None), Job.updated_at > Job.posted_date),
            )
            .order_by(Job.updated_at.desc(), Job.id.asc())
            .limit(limit)
        )
        return [self._to_item(job) for job in self._session.scalars(stmt).all()]

    def query_orphaned_indexed(self, limit: int) -> list[OrphanCandidate]:
        if limit <= 0:
            return []
        indexed_ids = (
            select(IndexingAttempt.job_id)
            .where(
                IndexingAttempt.action == AttemptAction.INDEX.value,
                IndexingAttempt.success.is_(True),
            )
            .distinct()
            .subquery()
        )
        stmt = (
            select(indexed_ids.c.job_id, Job)
            .select_from(indexed_ids)
            .outerjoin(Job, Job.id == indexed_ids.c.job_id)
            .where(
                or_(Job.id.is_(None), Job.status != CatalogStatus.ACTIVE.value),
                ~_successful_attempt_exists(AttemptAction.REMOVE, indexed_ids.c.job_id),
            )
            .order_by(indexed_ids.c.job_id.asc())
            .limit(limit)
        )
        return [
            OrphanCandidate(
                item_id=row.job_id,
                item=self._to_item(row.Job) if row.Job is not None else None,
            )
            for row in self._session.execute(stmt)
        ]

    @staticmethod
    def _to_item(job: Job) -> CatalogItem:
        try:
            status: CatalogStatus | str = CatalogStatus(job.status)
        except ValueError:
            status = job.status
        return CatalogItem(
            id=job.id,
            status=status,
            posted_at=as_utc(job.posted_date),
            updated_at=as_utc(job.updated_at),
            title=job.title,
        )
