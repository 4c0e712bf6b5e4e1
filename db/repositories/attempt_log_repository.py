"""
Repository for the append-only indexing attempt log.

This is the only state the decision engine consults. Every read goes to the
database; nothing is cached between calls so decisions always reflect the
latest appended attempt.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from sqlalchemy import Select, case, delete, func, select
from sqlalchemy.orm import Session

from app.domain.indexing import (
    AttemptAction,
    AttemptRecord,
    FailedAttemptGroup,
    ItemIndexingStats,
)
from db.models.indexing_attempt import IndexingAttempt


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """
    Return ``value`` as an aware UTC datetime. Naive values are assumed UTC.
    """

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class AttemptLogRepository:
    def __init__(
        self,
        session: Session,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._session = session
        self._clock = clock

    def append(
        self,
        *,
        item_id: int,
        action: AttemptAction,
        success: bool,
        message: str,
    ) -> AttemptRecord:
        """
        Write one attempt row and flush it so later reads in the session see it.
        """

        row = IndexingAttempt(
            job_id=item_id,
            action=AttemptAction(action).value,
            success=success,
            message=message,
            created_at=self._clock(),
        )
        self._session.add(row)
        self._session.flush()
        return self._to_record(row)

    def last_successful(self, *, item_id: int, action: AttemptAction) -> datetime | None:
        stmt = select(func.max(IndexingAttempt.created_at)).where(
            IndexingAttempt.job_id == item_id,
            IndexingAttempt.action == AttemptAction(action).value,
            IndexingAttempt.success.is_(True),
        )
        return as_utc(self._session.scalar(stmt))

    def exists_successful_within(
        self,
        *,
        item_id: int,
        action: AttemptAction,
        window: timedelta,
    ) -> bool:
        last = self.last_successful(item_id=item_id, action=action)
        if last is None:
            return False
        return self._clock() - last < window

    def failed_attempts_within(
        self,
        *,
        window: timedelta,
        max_tries: int,
    ) -> list[FailedAttemptGroup]:
        """
        Group failed attempts newer than ``window`` by (item, action).

        Only groups with fewer than ``max_tries`` failures are returned,
        ordered by most recent failure first.
        """

        since = self._clock() - window
        failures = (
            select(
                IndexingAttempt.job_id.label("job_id"),
                IndexingAttempt.action.label("action"),
                func.count().label("attempt_count"),
                func.max(IndexingAttempt.created_at).label("last_failed_at"),
            )
            .where(
                IndexingAttempt.success.is_(False),
                IndexingAttempt.created_at >= since,
            )
            .group_by(IndexingAttempt.job_id, IndexingAttempt.action)
            .having(func.count() < max_tries)
            .subquery()
        )
        stmt = (
            select(failures.c.job_id, failures.c.action, failures.c.attempt_count)
            .order_by(failures.c.last_failed_at.desc(), failures.c.job_id)
        )
        return [
            FailedAttemptGroup(
                catalog_item_id=row.job_id,
                action=AttemptAction(row.action),
                attempt_count=int(row.attempt_count),
            )
            for row in self._session.execute(stmt)
        ]

    def item_stats(self, *, item_id: int) -> ItemIndexingStats:
        stmt = select(
            func.count(IndexingAttempt.id),
            func.coalesce(func.sum(case((IndexingAttempt.success.is_(True), 1), else_=0)), 0),
            func.coalesce(
                func.sum(case((IndexingAttempt.action == AttemptAction.INDEX.value, 1), else_=0)),
                0,
            ),
            func.coalesce(
                func.sum(case((IndexingAttempt.action == AttemptAction.REMOVE.value, 1), else_=0)),
                0,
            ),
            func.max(IndexingAttempt.created_at),
        ).where(IndexingAttempt.job_id == item_id)
        total, successful, index_attempts, remove_attempts, last_attempt = self._session.execute(
            stmt
        ).one()
        return ItemIndexingStats(
            catalog_item_id=item_id,
            total_attempts=int(total or 0),
            successful=int(successful or 0),
            index_attempts=int(index_attempts or 0),
            remove_attempts=int(remove_attempts or 0),
            last_attempt=as_utc(last_attempt),
            last_successful_index=self.last_successful(item_id=item_id, action=AttemptAction.INDEX),
        )

    def totals(self, *, since: datetime | None = None) -> dict[str, int]:
        """
        Aggregate counters over the whole log, or over attempts newer than ``since``.
        """

        stmt = select(
            func.count(IndexingAttempt.id),
            func.coalesce(func.sum(case((IndexingAttempt.success.is_(True), 1), else_=0)), 0),
            func.coalesce(
                func.sum(case((IndexingAttempt.action == AttemptAction.INDEX.value, 1), else_=0)),
                0,
            ),
            func.coalesce(
                func.sum(case((IndexingAttempt.action == AttemptAction.REMOVE.value, 1), else_=0)),
                0,
            ),
        )
        if since is not None:
            stmt = stmt.where(IndexingAttempt.created_at >= since)
        total, successful, index_attempts, remove_attempts = self._session.execute(stmt).one()
        total = int(total or 0)
        successful = int(successful or 0)
        return {
            "total": total,
            "successful": successful,
            "failed": total - successful,
            "index_attempts": int(index_attempts or 0),
            "remove_attempts": int(remove_attempts or 0),
        }

    def recent(
        self,
        *,
        limit: int = 50,
        action: AttemptAction | None = None,
        success: bool | None = None,
    ) -> list[AttemptRecord]:
        stmt: Select[tuple[IndexingAttempt]] = select(IndexingAttempt)
        if action is not None:
            stmt = stmt.where(IndexingAttempt.action == AttemptAction(action).value)
        if success is not None:
            stmt = stmt.where(IndexingAttempt.success.is_(success))
        stmt = stmt.order_by(IndexingAttempt.created_at.desc(), IndexingAttempt.id.desc()).limit(
            max(1, limit)
        )
        return [self._to_record(row) for row in self._session.scalars(stmt).all()]

    def prune_older_than(self, *, days: int) -> int:
        """
        Delete attempts older than ``days``. Returns the number of deleted rows.
        """

        cutoff = self._clock() - timedelta(days=days)
        result = self._session.execute(
            delete(IndexingAttempt).where(IndexingAttempt.created_at < cutoff)
        )
        return int(result.rowcount or 0)

    @staticmethod
    def _to_record(row: IndexingAttempt) -> AttemptRecord:
        return AttemptRecord(
            id=row.id,
            catalog_item_id=row.job_id,
            action=AttemptAction(row.action),
            success=bool(row.success),
            message=row.message or "",
            created_at=as_utc(row.created_at) or _utcnow(),
        )
