"""
app/schemas/indexing.py

Response schemas for indexing sync runs, reports and item operations.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class PhaseSummaryResponse(BaseModel):
    name: str
    processed: int = Field(..., ge=0)
    successful: int = Field(..., ge=0)
    skipped: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)


class RunSummaryResponse(BaseModel):
    """
    API response model for one completed or aborted sync run.
    """

    run_id: int | None = None
    processed: int = Field(..., ge=0)
    successful: int = Field(..., ge=0)
    skipped: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    success_rate: float = Field(..., ge=0.0, le=100.0)
    execution_time_seconds: float = Field(..., ge=0.0)
    aborted: bool = False
    abort_reason: str | None = None
    phases: list[PhaseSummaryResponse] = Field(default_factory=list)


class RunHistoryEntryResponse(BaseModel):
    run_id: int
    processed: int
    successful: int
    skipped: int
    failed: int
    execution_time_seconds: float
    aborted: bool
    abort_reason: str | None = None
    created_at: datetime


class OutcomeResponse(BaseModel):
    """
    Result of one index or remove decision.
    """

    item_id: int
    action: str
    decision: str
    success: bool
    skipped: bool
    message: str


class AttemptResponse(BaseModel):
    item_id: int
    action: str
    success: bool
    message: str
    created_at: datetime


class IndexingTotalsResponse(BaseModel):
    total: int = Field(..., ge=0)
    successful: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    index_attempts: int = Field(..., ge=0)
    remove_attempts: int = Field(..., ge=0)


class IndexingReportResponse(BaseModel):
    """
    Attempt log overview: all-time and trailing-day totals plus recent activity.
    """

    all_time: IndexingTotalsResponse
    last_24_hours: IndexingTotalsResponse
    recent_attempts: list[AttemptResponse] = Field(default_factory=list)
    recent_failures: list[AttemptResponse] = Field(default_factory=list)


class ItemStatsResponse(BaseModel):
    item_id: int
    total_attempts: int = Field(..., ge=0)
    successful: int = Field(..., ge=0)
    index_attempts: int = Field(..., ge=0)
    remove_attempts: int = Field(..., ge=0)
    last_attempt: datetime | None = None
    last_successful_index: datetime | None = None


class UrlStatusResponse(BaseModel):
    url: str
    latest_update: dict[str, Any] | None = None
    latest_remove: dict[str, Any] | None = None
