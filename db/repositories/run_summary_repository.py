"""
Repository for indexing run summaries.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from app.domain.indexing import RunResult
from db.models.indexing_run import IndexingRun, IndexingRunType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RunSummaryRepository:
    def __init__(
        self,
        session: Session,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._session = session
        self._clock = clock

    def record(self, result: RunResult) -> IndexingRun:
        run = IndexingRun(
            run_type=IndexingRunType.INDEXING,
            processed_count=result.processed,
            successful_count=result.successful,
            skipped_count=result.skipped,
            failed_count=result.failed,
            execution_time_seconds=round(result.execution_time_seconds, 2),
            aborted=result.aborted,
            abort_reason=result.abort_reason,
            created_at=self._clock(),
        )
        self._session.add(run)
        self._session.flush()
        return run

    def get_run(self, run_id: int) -> IndexingRun | None:
        return self._session.get(IndexingRun, run_id)

    def list_runs(self, *, limit: int = 20) -> list[IndexingRun]:
        stmt: Select[tuple[IndexingRun]] = (
            select(IndexingRun)
            .where(IndexingRun.run_type == IndexingRunType.INDEXING)
            .order_by(IndexingRun.created_at.desc(), IndexingRun.id.desc())
            .limit(max(1, limit))
        )
        return list(self._session.scalars(stmt).all())
