"""
Repository for the run-level mutual exclusion lease.

Acquisition is a single INSERT, or a conditional UPDATE of an expired row,
so two processes racing for the same lease cannot both win.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, insert, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db.models.indexing_run_lease import IndexingRunLease


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RunLeaseRepository:
    def __init__(
        self,
        session: Session,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._session = session
        self._clock = clock

    def try_acquire(self, *, name: str, holder: str, ttl: timedelta) -> bool:
        """
        Take the lease if it is free or expired. Commits on success.
        """

        now = self._clock()
        expires_at = now + ttl
        try:
            self._session.execute(
                insert(IndexingRunLease).values(
                    name=name,
                    holder=holder,
                    expires_at=expires_at,
                    created_at=now,
                    updated_at=now,
                )
            )
            self._session.commit()
            return True
        except IntegrityError:
            self._session.rollback()

        result = self._session.execute(
            update(IndexingRunLease)
            .where(
                IndexingRunLease.name == name,
                IndexingRunLease.expires_at < now,
            )
            .values(holder=holder, expires_at=expires_at, updated_at=now)
        )
        self._session.commit()
        return (result.rowcount or 0) == 1

    def release(self, *, name: str, holder: str) -> None:
        self._session.execute(
            delete(IndexingRunLease).where(
                IndexingRunLease.name == name,
                IndexingRunLease.holder == holder,
            )
        )
        self._session.commit()
