"""
tests/test_repositories.py

Attempt log, catalog, run summary and lease repositories on SQLite.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from app.domain.indexing import (
    AttemptAction,
    CatalogStatus,
    Decision,
    Outcome,
    PhaseSummary,
    RunResult,
    SkipReason,
)
from db.repositories.attempt_log_repository import AttemptLogRepository, as_utc
from db.repositories.catalog_repository import SQLAlchemyCatalogStore
from db.repositories.run_lease_repository import RunLeaseRepository
from db.repositories.run_summary_repository import RunSummaryRepository
from tests.conftest import NOW


class TestAsUtc:
    def test_naive_values_are_assumed_utc(self) -> None:
        assert as_utc(datetime(2026, 1, 1, 8, 0)) == datetime(2026, 1, 1, 8, 0, tzinfo=timezone.utc)

    def test_none_passes_through(self) -> None:
        assert as_utc(None) is None


# ---------------------------------------------------------------------------
# Attempt log
# ---------------------------------------------------------------------------


class TestAttemptLogRepository:
    def test_append_returns_record_visible_to_later_reads(self, session, clock) -> None:
        repo = AttemptLogRepository(session, clock=clock)

        record = repo.append(item_id=3, action=AttemptAction.INDEX, success=True, message="Cron: Success")

        assert record.id is not None
        assert record.created_at == NOW
        assert repo.last_successful(item_id=3, action=AttemptAction.INDEX) == NOW
        assert repo.last_successful(item_id=3, action=AttemptAction.REMOVE) is None

    def test_exists_successful_within_is_strict(self, session, clock, add_attempt) -> None:
        add_attempt(4, ago=timedelta(hours=6))
        repo = AttemptLogRepository(session, clock=clock)

        assert not repo.exists_successful_within(
            item_id=4, action=AttemptAction.INDEX, window=timedelta(hours=6)
        )
        assert repo.exists_successful_within(
            item_id=4, action=AttemptAction.INDEX, window=timedelta(hours=7)
        )

    def test_totals_and_item_stats(self, session, clock, add_attempt) -> None:
        add_attempt(1, ago=timedelta(days=3))
        add_attempt(1, success=False, ago=timedelta(hours=2), message="Cron: HTTP 500: x")
        add_attempt(2, action="remove", ago=timedelta(hours=1))
        repo = AttemptLogRepository(session, clock=clock)

        assert repo.totals() == {
            "total": 3,
            "successful": 2,
            "failed": 1,
            "index_attempts": 2,
            "remove_attempts": 1,
        }
        assert repo.totals(since=NOW - timedelta(hours=24))["total"] == 2

        stats = repo.item_stats(item_id=1)
        assert stats.total_attempts == 2
        assert stats.successful == 1
        assert stats.last_attempt == NOW - timedelta(hours=2)
        assert stats.last_successful_index == NOW - timedelta(days=3)

    def test_recent_filters_and_orders_newest_first(self, session, clock, add_attempt) -> None:
        add_attempt(1, ago=timedelta(hours=3))
        add_attempt(2, success=False, ago=timedelta(hours=2))
        add_attempt(3, success=False, ago=timedelta(hours=1))
        repo = AttemptLogRepository(session, clock=clock)

        assert [r.catalog_item_id for r in repo.recent(limit=10)] == [3, 2, 1]
        assert [r.catalog_item_id for r in repo.recent(limit=1, success=False)] == [3]

    def test_prune_older_than(self, session, clock, add_attempt) -> None:
        add_attempt(1, ago=timedelta(days=91))
        add_attempt(2, ago=timedelta(days=1))
        repo = AttemptLogRepository(session, clock=clock)

        assert repo.prune_older_than(days=90) == 1
        assert repo.totals()["total"] == 1


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class TestSQLAlchemyCatalogStore:
    def test_new_active_excludes_indexed_old_and_inactive(
        self,
        session,
        clock,
        add_job,
        add_attempt,
    ) -> None:
        add_job(1, posted_ago=timedelta(days=1))
        add_job(2, posted_ago=timedelta(days=2))
        add_job(3, posted_ago=timedelta(days=8))
        add_job(4, status="Inactive")
        add_job(5, posted_ago=timedelta(hours=1))
        add_attempt(2)
        add_attempt(5, success=False)

        items = SQLAlchemyCatalogStore(session, clock=clock).query_new_active(50)

        assert [item.id for item in items] == [1, 5]
        assert items[0].status is CatalogStatus.ACTIVE
        assert items[0].posted_at == NOW - timedelta(days=1)

    def test_new_active_respects_limit(self, session, clock, add_job) -> None:
        for job_id in range(1, 6):
            add_job(job_id, posted_ago=timedelta(hours=job_id))

        assert len(SQLAlchemyCatalogStore(session, clock=clock).query_new_active(3)) == 3

    def test_recently_updated_requires_edit_after_posting(self, session, clock, add_job) -> None:
        add_job(1, posted_ago=timedelta(days=3), updated_ago=timedelta(hours=2))
        add_job(2, posted_ago=timedelta(hours=2), updated_ago=timedelta(hours=2))
        add_job(3, posted_ago=timedelta(days=3), updated_ago=timedelta(hours=30))
        add_job(4, status="Closed", posted_ago=timedelta(days=3), updated_ago=timedelta(hours=1))

        items = SQLAlchemyCatalogStore(session, clock=clock).query_recently_updated_active(30)

        assert [item.id for item in items] == [1]

    def test_orphaned_includes_missing_and_closed_not_yet_removed(
        self,
        session,
        clock,
        add_job,
        add_attempt,
    ) -> None:
        add_job(1, status="Closed")
        add_job(2, status="Active")
        add_job(3, status="Inactive")
        for job_id in (1, 2, 3, 99):
            add_attempt(job_id, ago=timedelta(days=2))
        add_attempt(1, ago=timedelta(days=1, hours=12))
        add_attempt(3, action="remove", ago=timedelta(days=1))

        candidates = SQLAlchemyCatalogStore(session, clock=clock).query_orphaned_indexed(20)

        assert [(c.item_id, c.item is None) for c in candidates] == [(1, False), (99, True)]

    def test_unknown_status_is_kept_verbatim(self, session, add_job) -> None:
        add_job(7, status="Draft")

        item = SQLAlchemyCatalogStore(session).get_item(7)

        assert item is not None
        assert item.status == "Draft"
        assert not item.is_active


# ---------------------------------------------------------------------------
# Run summaries and lease
# ---------------------------------------------------------------------------


class TestRunSummaryRepository:
    def test_record_and_list(self, session, clock) -> None:
        phase = PhaseSummary(name="new")
        phase.record(Outcome(1, AttemptAction.INDEX, Decision.proceed(), True, "Cron: Success"))
        phase.record(Outcome(2, AttemptAction.INDEX, Decision.skip(SkipReason.NO_CHANGES), True, ""))
        phase.record(Outcome(3, AttemptAction.INDEX, Decision.proceed(), False, "Cron: HTTP 500: x"))
        result = RunResult(
            run_id=None,
            phases=[phase],
            execution_time_seconds=1.234,
            started_at=NOW,
        )
        repo = RunSummaryRepository(session, clock=clock)

        run = repo.record(result)
        session.commit()

        assert (run.processed_count, run.successful_count, run.skipped_count, run.failed_count) == (
            3,
            1,
            1,
            1,
        )
        assert run.execution_time_seconds == 1.23
        assert [r.id for r in repo.list_runs(limit=5)] == [run.id]


class TestRunLeaseRepository:
    def test_second_holder_is_refused_until_release(self, session, clock) -> None:
        leases = RunLeaseRepository(session, clock=clock)

        assert leases.try_acquire(name="sync", holder="a", ttl=timedelta(minutes=15))
        assert not leases.try_acquire(name="sync", holder="b", ttl=timedelta(minutes=15))

        leases.release(name="sync", holder="a")
        assert leases.try_acquire(name="sync", holder="b", ttl=timedelta(minutes=15))

    def test_expired_lease_can_be_taken_over(self, session) -> None:
        start = NOW
        RunLeaseRepository(session, clock=lambda: start).try_acquire(
            name="sync", holder="a", ttl=timedelta(minutes=15)
        )
        later = RunLeaseRepository(session, clock=lambda: start + timedelta(minutes=16))

        assert later.try_acquire(name="sync", holder="b", ttl=timedelta(minutes=15))
