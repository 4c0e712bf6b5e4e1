"""
app/domain/indexing.py

Domain models for search index synchronization.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class CatalogStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    CLOSED = "Closed"


class AttemptAction(str, Enum):
    INDEX = "index"
    REMOVE = "remove"


class RequestSource(str, Enum):
    """
    Origin of an indexing request. Only ``cron`` enables the content-change check.
    """

    CRON = "cron"
    ADMIN = "admin"
    EMPLOYER = "employer"
    SYSTEM = "system"


class DecisionKind(str, Enum):
    PROCEED = "proceed"
    SKIP = "skip"


class SkipReason(str, Enum):
    NOT_ACTIVE = "not active"
    RECENTLY_INDEXED = "recently indexed"
    NO_CHANGES = "no changes"
    ALREADY_REMOVED = "already removed recently"


@dataclass(frozen=True)
class CatalogItem:
    """
    Read-only view of one catalog posting.
    """

    id: int
    status: CatalogStatus | str
    posted_at: datetime | None = None
    updated_at: datetime | None = None
    title: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status == CatalogStatus.ACTIVE


@dataclass(frozen=True)
class AttemptRecord:
    """
    One immutable entry of the attempt log.
    """

    id: int
    catalog_item_id: int
    action: AttemptAction
    success: bool
    message: str
    created_at: datetime


@dataclass(frozen=True)
class FailedAttemptGroup:
    """
    Failed attempts for one (item, action) pair inside the retry window.
    """

    catalog_item_id: int
    action: AttemptAction
    attempt_count: int


@dataclass(frozen=True)
class RetryCandidate:
    item: CatalogItem
    action: AttemptAction
    attempt_count: int


@dataclass(frozen=True)
class Decision:
    kind: DecisionKind
    reason: SkipReason | None = None

    @classmethod
    def proceed(cls) -> "Decision":
        return cls(kind=DecisionKind.PROCEED)

    @classmethod
    def skip(cls, reason: SkipReason) -> "Decision":
        return cls(kind=DecisionKind.SKIP, reason=reason)

    @property
    def is_skip(self) -> bool:
        return self.kind is DecisionKind.SKIP


@dataclass(frozen=True)
class Outcome:
    """
    Result of applying one decision to one catalog item.

    ``success`` is only meaningful when the decision proceeded; skipped
    outcomes never touched the external API.
    """

    catalog_item_id: int
    action: AttemptAction
    decision: Decision
    success: bool = False
    message: str = ""

    @property
    def skipped(self) -> bool:
        return self.decision.is_skip

    @property
    def failed(self) -> bool:
        return not self.skipped and not self.success


@dataclass(frozen=True)
class ItemIndexingStats:
    catalog_item_id: int
    total_attempts: int
    successful: int
    index_attempts: int
    remove_attempts: int
    last_attempt: datetime | None
    last_successful_index: datetime | None


@dataclass
class PhaseSummary:
    """
    Counters for one orchestrator phase.
    """

    name: str
    processed: int = 0
    successful: int = 0
    skipped: int = 0
    failed: int = 0
    outcomes: list[Outcome] = field(default_factory=list)

    def record(self, outcome: Outcome) -> None:
        self.processed += 1
        self.outcomes.append(outcome)
        if outcome.skipped:
            self.skipped += 1
        elif outcome.success:
            self.successful += 1
        else:
            self.failed += 1


@dataclass(frozen=True)
class RunResult:
    """
    Outcome of one orchestrator invocation.
    """

    run_id: int | None
    phases: list[PhaseSummary]
    execution_time_seconds: float
    started_at: datetime
    aborted: bool = False
    abort_reason: str | None = None

    @property
    def processed(self) -> int:
        return sum(phase.processed for phase in self.phases)

    @property
    def successful(self) -> int:
        return sum(phase.successful for phase in self.phases)

    @property
    def skipped(self) -> int:
        return sum(phase.skipped for phase in self.phases)

    @property
    def failed(self) -> int:
        return sum(phase.failed for phase in self.phases)

    @property
    def success_rate(self) -> float:
        if self.processed == 0:
            return 0.0
        return round(self.successful / self.processed * 100, 1)
