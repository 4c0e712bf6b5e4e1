"""
Scan-and-act phases of one indexing sync run.

Each phase selects a bounded batch of targets and applies one decision per
target. Phases hold no counters; the runner aggregates outcomes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta

from app.domain.indexing import (
    AttemptAction,
    CatalogItem,
    Outcome,
    RequestSource,
)
from app.indexing.catalog import CatalogStore
from app.indexing.decision_engine import DecisionEngine


@dataclass(frozen=True)
class PhaseTarget:
    item_id: int
    item: CatalogItem | None = None
    action: AttemptAction = AttemptAction.INDEX
    attempt_count: int = 0

    @property
    def title(self) -> str:
        if self.item is None:
            return "Deleted Job"
        return self.item.title or f"Job #{self.item_id}"


class Phase(ABC):
    """
    One bounded unit of sync work.
    """

    name: str
    description: str

    def __init__(self, *, engine: DecisionEngine, limit: int) -> None:
        self._engine = engine
        self.limit = max(0, limit)

    @abstractmethod
    def select(self, limit: int) -> list[PhaseTarget]:
        """
        Return at most ``limit`` targets for this run.
        """

    @abstractmethod
    def apply(self, target: PhaseTarget) -> Outcome:
        """
        Decide and act on one target.
        """


class NewItemsPhase(Phase):
    name = "new"
    description = "Indexing New Jobs"

    def __init__(
        self,
        *,
        engine: DecisionEngine,
        catalog: CatalogStore,
        limit: int = 50,
        force: bool = False,
    ) -> None:
        super().__init__(engine=engine, limit=limit)
        self._catalog = catalog
        self._force = force

    def select(self, limit: int) -> list[PhaseTarget]:
        return [
            PhaseTarget(item_id=item.id, item=item)
            for item in self._catalog.query_new_active(limit)
        ]

    def apply(self, target: PhaseTarget) -> Outcome:
        # Re-read so a posting closed since selection is skipped, not indexed.
        current = self._catalog.get_item(target.item_id)
        return self._engine.index_decision(
            current,
            RequestSource.CRON,
            self._force,
            item_id=target.item_id,
        )


class UpdatedItemsPhase(NewItemsPhase):
    name = "updated"
    description = "Re-indexing Updated Jobs"

    def __init__(
        self,
        *,
        engine: DecisionEngine,
        catalog: CatalogStore,
        limit: int = 30,
        force: bool = False,
    ) -> None:
        super().__init__(engine=engine, catalog=catalog, limit=limit, force=force)

    def select(self, limit: int) -> list[PhaseTarget]:
        return [
            PhaseTarget(item_id=item.id, item=item)
            for item in self._catalog.query_recently_updated_active(limit)
        ]


class OrphanedRemovalPhase(Phase):
    name = "orphaned"
    description = "Removing Inactive Jobs"

    def __init__(
        self,
        *,
        engine: DecisionEngine,
        catalog: CatalogStore,
        limit: int = 20,
    ) -> None:
        super().__init__(engine=engine, limit=limit)
        self._catalog = catalog

    def select(self, limit: int) -> list[PhaseTarget]:
        return [
            PhaseTarget(
                item_id=candidate.item_id,
                item=candidate.item,
                action=AttemptAction.REMOVE,
            )
            for candidate in self._catalog.query_orphaned_indexed(limit)
        ]

    def apply(self, target: PhaseTarget) -> Outcome:
        return self._engine.remove_decision(target.item_id, RequestSource.CRON)


class RetryPhase(Phase):
    name = "retry"
    description = "Retrying Failed Attempts"

    def __init__(
        self,
        *,
        engine: DecisionEngine,
        catalog: CatalogStore,
        limit: int = 10,
        window: timedelta = timedelta(hours=48),
        max_tries: int = 3,
    ) -> None:
        super().__init__(engine=engine, limit=limit)
        self._catalog = catalog
        self._window = window
        self._max_tries = max_tries

    def select(self, limit: int) -> list[PhaseTarget]:
        return [
            PhaseTarget(
                item_id=candidate.item.id,
                item=candidate.item,
                action=candidate.action,
                attempt_count=candidate.attempt_count,
            )
            for candidate in self._engine.retry_selection(
                window=self._window,
                max_tries=self._max_tries,
                limit=limit,
            )
        ]

    def apply(self, target: PhaseTarget) -> Outcome:
        if target.action is AttemptAction.INDEX:
            current = self._catalog.get_item(target.item_id)
            return self._engine.index_decision(
                current,
                RequestSource.CRON,
                True,
                item_id=target.item_id,
            )
        return self._engine.remove_decision(target.item_id, RequestSource.CRON)
