"""
app/api/routers/indexing_router.py

Indexing sync trigger, report and per-item endpoints.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.dependencies import require_cron_key
from app.domain.indexing import AttemptRecord, Outcome, RequestSource, RunResult
from app.indexing.errors import (
    AuthError,
    ConfigError,
    NotFoundError,
    ProtocolError,
    TransportError,
)
from app.schemas.indexing import (
    AttemptResponse,
    IndexingReportResponse,
    IndexingTotalsResponse,
    ItemStatsResponse,
    OutcomeResponse,
    PhaseSummaryResponse,
    RunHistoryEntryResponse,
    RunSummaryResponse,
    UrlStatusResponse,
)
from app.services.indexing_sync_service import (
    IndexingSyncService,
    RunAlreadyInProgressError,
    get_indexing_sync_service,
)
from db.repositories.attempt_log_repository import AttemptLogRepository, as_utc
from db.repositories.run_summary_repository import RunSummaryRepository
from db.session import get_db

router = APIRouter(
    prefix="/indexing",
    tags=["indexing"],
    dependencies=[Depends(require_cron_key)],
)


def _run_response(result: RunResult) -> RunSummaryResponse:
    return RunSummaryResponse(
        run_id=result.run_id,
        processed=result.processed,
        successful=result.successful,
        skipped=result.skipped,
        failed=result.failed,
        success_rate=result.success_rate,
        execution_time_seconds=max(0.0, result.execution_time_seconds),
        aborted=result.aborted,
        abort_reason=result.abort_reason,
        phases=[
            PhaseSummaryResponse(
                name=phase.name,
                processed=phase.processed,
                successful=phase.successful,
                skipped=phase.skipped,
                failed=phase.failed,
            )
            for phase in result.phases
        ],
    )


def _outcome_response(outcome: Outcome) -> OutcomeResponse:
    return OutcomeResponse(
        item_id=outcome.catalog_item_id,
        action=outcome.action.value,
        decision=outcome.decision.kind.value,
        success=outcome.success,
        skipped=outcome.skipped,
        message=outcome.message,
    )


def _attempt_response(record: AttemptRecord) -> AttemptResponse:
    return AttemptResponse(
        item_id=record.catalog_item_id,
        action=record.action.value,
        success=record.success,
        message=record.message,
        created_at=record.created_at,
    )


@router.post("/run", response_model=RunSummaryResponse)
def run_indexing_sync(
    force: bool = Query(default=False, description="Bypass cooldown and change checks"),
    db: Session = Depends(get_db),
    service: IndexingSyncService = Depends(get_indexing_sync_service),
) -> RunSummaryResponse:
    """
    Run one indexing sync. Item failures are reported in the summary, not as errors.
    """

    try:
        result = service.run(db=db, force=force)
    except RunAlreadyInProgressError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return _run_response(result)


@router.get("/runs", response_model=list[RunHistoryEntryResponse])
def list_indexing_runs(
    limit: int = Query(default=20, ge=1, le=200),
    db: Session = Depends(get_db),
) -> list[RunHistoryEntryResponse]:
    runs = RunSummaryRepository(db).list_runs(limit=limit)
    return [
        RunHistoryEntryResponse(
            run_id=run.id,
            processed=run.processed_count,
            successful=run.successful_count,
            skipped=run.skipped_count,
            failed=run.failed_count,
            execution_time_seconds=run.execution_time_seconds,
            aborted=run.aborted,
            abort_reason=run.abort_reason,
            created_at=as_utc(run.created_at),
        )
        for run in runs
    ]


@router.get("/report", response_model=IndexingReportResponse)
def indexing_report(
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
) -> IndexingReportResponse:
    """
    Attempt log totals with the most recent attempts and failures.
    """

    attempts = AttemptLogRepository(db)
    since = datetime.now(timezone.utc) - timedelta(hours=24)
    return IndexingReportResponse(
        all_time=IndexingTotalsResponse(**attempts.totals()),
        last_24_hours=IndexingTotalsResponse(**attempts.totals(since=since)),
        recent_attempts=[_attempt_response(record) for record in attempts.recent(limit=limit)],
        recent_failures=[
            _attempt_response(record) for record in attempts.recent(limit=limit, success=False)
        ],
    )


@router.get("/items/{item_id}/stats", response_model=ItemStatsResponse)
def item_indexing_stats(item_id: int, db: Session = Depends(get_db)) -> ItemStatsResponse:
    stats = AttemptLogRepository(db).item_stats(item_id=item_id)
    return ItemStatsResponse(
        item_id=stats.catalog_item_id,
        total_attempts=stats.total_attempts,
        successful=stats.successful,
        index_attempts=stats.index_attempts,
        remove_attempts=stats.remove_attempts,
        last_attempt=stats.last_attempt,
        last_successful_index=stats.last_successful_index,
    )


@router.post("/items/{item_id}/index", response_model=OutcomeResponse)
def index_item(
    item_id: int,
    force: bool = Query(default=False),
    db: Session = Depends(get_db),
    service: IndexingSyncService = Depends(get_indexing_sync_service),
) -> OutcomeResponse:
    try:
        outcome = service.index_item(db=db, item_id=item_id, source=RequestSource.ADMIN, force=force)
    except (AuthError, ConfigError) as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    return _outcome_response(outcome)


@router.post("/items/{item_id}/remove", response_model=OutcomeResponse)
def remove_item(
    item_id: int,
    db: Session = Depends(get_db),
    service: IndexingSyncService = Depends(get_indexing_sync_service),
) -> OutcomeResponse:
    try:
        outcome = service.remove_item(db=db, item_id=item_id, source=RequestSource.ADMIN)
    except (AuthError, ConfigError) as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    return _outcome_response(outcome)


@router.get("/status", response_model=UrlStatusResponse)
def url_indexing_status(
    url: str = Query(..., min_length=1, description="Public URL to look up"),
    service: IndexingSyncService = Depends(get_indexing_sync_service),
) -> UrlStatusResponse:
    """
    Proxy the index's notification metadata for one URL.
    """

    try:
        metadata = service.url_status(url)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except (AuthError, ConfigError) as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    except (TransportError, ProtocolError) as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    return UrlStatusResponse(
        url=metadata.url,
        latest_update=metadata.latest_update,
        latest_remove=metadata.latest_remove,
    )
