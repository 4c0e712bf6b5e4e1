"""
app/services/indexing_sync_service.py

Batch orchestration for search index synchronization.

One run executes the new, updated, orphaned-removal and retry phases in
order, each bounded by its own cap. Item failures are outcomes, never
exceptions; only credential problems found while preparing the token issuer
stop a run before it touches any item.
"""

from __future__ import annotations

import dataclasses
import logging
import os
import socket
import time
import uuid
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta, timezone
from functools import lru_cache

import requests
from sqlalchemy.orm import Session

from app.config import (
    IndexingAPISettings,
    IndexingSyncSettings,
    get_indexing_api_settings,
    get_indexing_sync_settings,
)
from app.domain.indexing import (
    AttemptAction,
    Outcome,
    PhaseSummary,
    RequestSource,
    RunResult,
)
from app.indexing.client import IndexingClient, UrlMetadata
from app.indexing.decision_engine import DecisionEngine
from app.indexing.errors import AuthError, ConfigError
from app.indexing.phases import (
    NewItemsPhase,
    OrphanedRemovalPhase,
    Phase,
    PhaseTarget,
    RetryPhase,
    UpdatedItemsPhase,
)
from app.indexing.run_log import RunLog
from app.indexing.token_issuer import ServiceAccountCredentials, TokenCache, TokenIssuer
from app.logging_utils import log_event
from db.repositories.attempt_log_repository import AttemptLogRepository
from db.repositories.catalog_repository import SQLAlchemyCatalogStore
from db.repositories.run_lease_repository import RunLeaseRepository
from db.repositories.run_summary_repository import RunSummaryRepository

logger = logging.getLogger(__name__)

LEASE_NAME = "indexing-sync"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RunAlreadyInProgressError(RuntimeError):
    """
    Raised when another process holds the sync lease.
    """


class IndexingSyncRunner:
    """
    Runs phases in order, aggregates outcomes and records the run summary.
    """

    def __init__(
        self,
        *,
        session: Session,
        setup: Callable[[], Sequence[Phase]],
        run_summaries: RunSummaryRepository,
        run_log: RunLog,
        deadline_seconds: float | None = None,
        should_abort: Callable[[], bool] | None = None,
        run_log_retention_days: int = 30,
        clock: Callable[[], datetime] = _utcnow,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._session = session
        self._setup = setup
        self._run_summaries = run_summaries
        self._run_log = run_log
        self._deadline_seconds = deadline_seconds
        self._should_abort = should_abort
        self._run_log_retention_days = run_log_retention_days
        self._clock = clock
        self._monotonic = monotonic

    def run(self) -> RunResult:
        started_at = self._clock()
        start = self._monotonic()
        self._run_log.line("=" * 40)
        self._run_log.line("Starting Indexing Cron Job")
        self._run_log.line("=" * 40)

        summaries: list[PhaseSummary] = []
        abort_reason: str | None = None
        phases: Sequence[Phase] = []
        try:
            phases = self._setup()
            self._run_log.line("Indexing API initialized")
        except (AuthError, ConfigError) as exc:
            abort_reason = f"{type(exc).__name__}: {exc}"
            log_event(logger, logging.ERROR, "indexing_run_setup_failed", error=abort_reason)
            self._run_log.line(f"ERROR: {abort_reason}")

        for phase in phases:
            abort_reason = self._stop_reason(start)
            if abort_reason is not None:
                break
            summary = PhaseSummary(name=phase.name)
            summaries.append(summary)
            abort_reason = self._run_phase(phase, summary, start)
            if abort_reason is not None:
                break

        execution_time = self._monotonic() - start
        result = RunResult(
            run_id=None,
            phases=summaries,
            execution_time_seconds=execution_time,
            started_at=started_at,
            aborted=abort_reason is not None,
            abort_reason=abort_reason,
        )
        run = self._run_summaries.record(result)
        self._session.commit()
        result = dataclasses.replace(result, run_id=run.id)

        self._log_summary(result)
        written = self._run_log.flush()
        if written is not None:
            logger.info("Indexing run log saved to %s", written)
        self._run_log.prune(retention_days=self._run_log_retention_days)
        return result

    def _run_phase(self, phase: Phase, summary: PhaseSummary, start: float) -> str | None:
        self._run_log.line(f"--- {phase.description} ---")
        targets = phase.select(phase.limit)
        abort_reason: str | None = None
        for target in targets:
            abort_reason = self._stop_reason(start)
            if abort_reason is not None:
                self._run_log.line(f"Stopping early: {abort_reason}")
                break
            self._run_log.line(self._target_line(phase, target))
            outcome = phase.apply(target)
            self._session.commit()
            summary.record(outcome)
            self._run_log.line(self._outcome_line(outcome))

        self._run_log.line(
            f"{phase.name.capitalize()} jobs processed: {summary.processed} | "
            f"Success: {summary.successful} | Skipped: {summary.skipped} | Failed: {summary.failed}"
        )
        log_event(
            logger,
            logging.INFO,
            "indexing_phase_completed",
            phase=phase.name,
            processed=summary.processed,
            successful=summary.successful,
            skipped=summary.skipped,
            failed=summary.failed,
        )
        return abort_reason

    def _stop_reason(self, start: float) -> str | None:
        if self._should_abort is not None and self._should_abort():
            return "abort requested"
        if (
            self._deadline_seconds is not None
            and self._monotonic() - start >= self._deadline_seconds
        ):
            return f"deadline of {self._deadline_seconds:g}s exceeded"
        return None

    @staticmethod
    def _target_line(phase: Phase, target: PhaseTarget) -> str:
        if isinstance(phase, RetryPhase):
            return (
                f"Retrying Job #{target.item_id}: {target.title} "
                f"({target.action.value}, attempt #{target.attempt_count})"
            )
        verb = "Removing" if target.action is AttemptAction.REMOVE else "Indexing"
        return f"{verb} Job #{target.item_id}: {target.title}"

    @staticmethod
    def _outcome_line(outcome: Outcome) -> str:
        if outcome.skipped:
            return f"  Skipped: {outcome.decision.reason.value}"
        if outcome.success:
            return "  Success"
        return f"  Failed: {outcome.message}"

    def _log_summary(self, result: RunResult) -> None:
        self._run_log.line("=" * 40)
        if result.aborted:
            self._run_log.line(f"Cron Job Aborted: {result.abort_reason}")
        else:
            self._run_log.line("Cron Job Completed Successfully")
        self._run_log.line("=" * 40)
        self._run_log.line(f"Execution Time: {result.execution_time_seconds:.2f}s")
        self._run_log.line(f"Total Processed: {result.processed}")
        self._run_log.line(f"Total Success: {result.successful}")
        self._run_log.line(f"Success Rate: {result.success_rate}%")
        log_event(
            logger,
            logging.WARNING if result.aborted else logging.INFO,
            "indexing_run_completed",
            run_id=result.run_id,
            processed=result.processed,
            successful=result.successful,
            skipped=result.skipped,
            failed=result.failed,
            execution_time_seconds=round(result.execution_time_seconds, 2),
            aborted=result.aborted,
            abort_reason=result.abort_reason,
        )


class IndexingSyncService:
    """
    Wires settings, repositories and the indexing API into sync runs and
    one-off item operations.
    """

    def __init__(
        self,
        *,
        api_settings: IndexingAPISettings,
        sync_settings: IndexingSyncSettings,
        http_session: requests.Session | None = None,
        token_cache: TokenCache | None = None,
    ) -> None:
        self._api_settings = api_settings
        self._sync_settings = sync_settings
        self._http_session = http_session or requests.Session()
        self._token_cache = token_cache if token_cache is not None else TokenCache()
        self._holder = f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex[:8]}"

    @property
    def sync_settings(self) -> IndexingSyncSettings:
        return self._sync_settings

    # ------------------------------------------------------------------
    # Component factories
    # ------------------------------------------------------------------

    def build_token_issuer(self) -> TokenIssuer:
        credentials = ServiceAccountCredentials.from_file(self._api_settings.service_account_path)
        return TokenIssuer(
            credentials=credentials,
            token_url=self._api_settings.token_url,
            scope=self._api_settings.scope,
            cache=self._token_cache,
            session=self._http_session,
            timeout_seconds=self._api_settings.timeout_seconds,
        )

    def build_client(self, token_issuer: TokenIssuer) -> IndexingClient:
        return IndexingClient(
            token_issuer=token_issuer,
            publish_url=self._api_settings.publish_url,
            metadata_url=self._api_settings.metadata_url,
            site_url=self._api_settings.site_url,
            item_url_template=self._api_settings.item_url_template,
            session=self._http_session,
            timeout_seconds=self._api_settings.timeout_seconds,
        )

    def build_catalog(self, db: Session) -> SQLAlchemyCatalogStore:
        return SQLAlchemyCatalogStore(
            db,
            new_item_lookback=timedelta(days=self._sync_settings.new_item_lookback_days),
            updated_item_lookback=timedelta(hours=self._sync_settings.updated_item_lookback_hours),
        )

    def build_engine(
        self,
        *,
        db: Session,
        client: IndexingClient,
        catalog: SQLAlchemyCatalogStore | None = None,
    ) -> DecisionEngine:
        settings = self._sync_settings
        return DecisionEngine(
            attempt_log=AttemptLogRepository(db),
            catalog=catalog or self.build_catalog(db),
            client=client,
            cooldown_hours=settings.cooldown_hours,
            content_change_window_hours=settings.content_change_window_hours,
            remove_dedup_hours=settings.remove_dedup_hours,
            inter_request_delay_seconds=settings.inter_request_delay_seconds,
        )

    def build_phases(
        self,
        *,
        db: Session,
        client: IndexingClient,
        force: bool = False,
    ) -> list[Phase]:
        settings = self._sync_settings
        catalog = self.build_catalog(db)
        engine = self.build_engine(db=db, client=client, catalog=catalog)
        return [
            NewItemsPhase(
                engine=engine,
                catalog=catalog,
                limit=settings.new_items_limit,
                force=force,
            ),
            UpdatedItemsPhase(
                engine=engine,
                catalog=catalog,
                limit=settings.updated_items_limit,
                force=force,
            ),
            OrphanedRemovalPhase(
                engine=engine,
                catalog=catalog,
                limit=settings.orphaned_items_limit,
            ),
            RetryPhase(
                engine=engine,
                catalog=catalog,
                limit=settings.retry_items_limit,
                window=timedelta(hours=settings.retry_window_hours),
                max_tries=settings.retry_max_tries,
            ),
        ]

    # ------------------------------------------------------------------
    # Sync run
    # ------------------------------------------------------------------

    def run(
        self,
        *,
        db: Session,
        force: bool = False,
        should_abort: Callable[[], bool] | None = None,
    ) -> RunResult:
        """
        Execute one sync run under the run lease.

        Raises RunAlreadyInProgressError when another run holds the lease.
        """

        leases = RunLeaseRepository(db)
        acquired = leases.try_acquire(
            name=LEASE_NAME,
            holder=self._holder,
            ttl=timedelta(seconds=self._sync_settings.lease_ttl_seconds),
        )
        if not acquired:
            log_event(logger, logging.WARNING, "indexing_run_skipped_lease_held", holder=self._holder)
            raise RunAlreadyInProgressError("Another indexing sync run is in progress.")

        try:
            result = self._run_locked(db=db, force=force, should_abort=should_abort)
        except Exception:
            db.rollback()
            raise
        finally:
            leases.release(name=LEASE_NAME, holder=self._holder)
        return result

    def _run_locked(
        self,
        *,
        db: Session,
        force: bool,
        should_abort: Callable[[], bool] | None,
    ) -> RunResult:
        settings = self._sync_settings

        def setup() -> list[Phase]:
            token_issuer = self.build_token_issuer()
            token_issuer.get_token()
            client = self.build_client(token_issuer)
            return self.build_phases(db=db, client=client, force=force)

        runner = IndexingSyncRunner(
            session=db,
            setup=setup,
            run_summaries=RunSummaryRepository(db),
            run_log=RunLog(settings.run_log_dir),
            deadline_seconds=settings.run_deadline_seconds,
            should_abort=should_abort,
            run_log_retention_days=settings.run_log_retention_days,
        )
        result = runner.run()

        if settings.attempt_log_retention_days is not None:
            deleted = AttemptLogRepository(db).prune_older_than(
                days=settings.attempt_log_retention_days
            )
            db.commit()
            logger.info(
                "Pruned indexing attempts older than %s days deleted=%s",
                settings.attempt_log_retention_days,
                deleted,
            )
        return result

    # ------------------------------------------------------------------
    # One-off operations
    # ------------------------------------------------------------------

    def index_item(
        self,
        *,
        db: Session,
        item_id: int,
        source: RequestSource = RequestSource.ADMIN,
        force: bool = False,
    ) -> Outcome:
        engine = self.build_engine(db=db, client=self.build_client(self.build_token_issuer()))
        outcome = engine.index_by_id(item_id, source, force)
        db.commit()
        return outcome

    def remove_item(
        self,
        *,
        db: Session,
        item_id: int,
        source: RequestSource = RequestSource.ADMIN,
    ) -> Outcome:
        engine = self.build_engine(db=db, client=self.build_client(self.build_token_issuer()))
        outcome = engine.remove_decision(item_id, source)
        db.commit()
        return outcome

    def url_status(self, url: str) -> UrlMetadata:
        return self.build_client(self.build_token_issuer()).status(url)


@lru_cache(maxsize=1)
def get_indexing_sync_service() -> IndexingSyncService:
    """
    Build and cache the indexing sync service.
    """

    return IndexingSyncService(
        api_settings=get_indexing_api_settings(),
        sync_settings=get_indexing_sync_settings(),
    )
