"""
Skip/proceed policy for index and remove notifications.

The engine reads attempt history, decides, and when a decision proceeds it
calls the indexing API and appends exactly one attempt record, whatever the
outcome. Failures are returned as typed outcomes; nothing raised while talking
to the API escapes an item.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from app.domain.indexing import (
    AttemptAction,
    CatalogItem,
    Decision,
    Outcome,
    RequestSource,
    RetryCandidate,
    SkipReason,
)
from app.indexing.catalog import CatalogStore
from app.indexing.client import IndexingClient, NotificationType
from app.indexing.errors import IndexingError, ProtocolError
from app.logging_utils import log_event
from db.repositories.attempt_log_repository import AttemptLogRepository

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DecisionEngine:
    def __init__(
        self,
        *,
        attempt_log: AttemptLogRepository,
        catalog: CatalogStore,
        client: IndexingClient,
        cooldown_hours: float = 6.0,
        content_change_window_hours: float = 1.0,
        remove_dedup_hours: float = 24.0,
        inter_request_delay_seconds: float = 0.1,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._attempt_log = attempt_log
        self._catalog = catalog
        self._client = client
        self._cooldown = timedelta(hours=cooldown_hours)
        self._content_change_window = timedelta(hours=content_change_window_hours)
        self._remove_dedup = timedelta(hours=remove_dedup_hours)
        self._inter_request_delay_seconds = max(0.0, inter_request_delay_seconds)
        self._clock = clock
        self._sleep = sleep
        self._last_call_monotonic: float | None = None

    # ------------------------------------------------------------------
    # Index
    # ------------------------------------------------------------------

    def evaluate_index(
        self,
        item: CatalogItem | None,
        source: RequestSource | str,
        force: bool = False,
    ) -> Decision:
        source = RequestSource(source)
        if item is None or not item.is_active:
            return Decision.skip(SkipReason.NOT_ACTIVE)

        if not force and self._attempt_log.exists_successful_within(
            item_id=item.id,
            action=AttemptAction.INDEX,
            window=self._cooldown,
        ):
            return Decision.skip(SkipReason.RECENTLY_INDEXED)

        if source is RequestSource.CRON and not force and not self._content_changed(item):
            return Decision.skip(SkipReason.NO_CHANGES)

        return Decision.proceed()

    def index_decision(
        self,
        item: CatalogItem | None,
        source: RequestSource | str,
        force: bool = False,
        *,
        item_id: int | None = None,
    ) -> Outcome:
        """
        Decide for one item and, on proceed, publish ``URL_UPDATED``.

        ``item_id`` identifies the outcome when ``item`` could not be loaded.
        """

        source = RequestSource(source)
        target_id = item.id if item is not None else item_id
        if target_id is None:
            raise ValueError("index_decision needs an item or an item_id.")

        decision = self.evaluate_index(item, source, force)
        if decision.is_skip:
            return self._skipped(target_id, AttemptAction.INDEX, decision, source)
        return self._execute(target_id, AttemptAction.INDEX, decision, source)

    def index_by_id(
        self,
        item_id: int,
        source: RequestSource | str,
        force: bool = False,
    ) -> Outcome:
        return self.index_decision(self._catalog.get_item(item_id), source, force, item_id=item_id)

    # ------------------------------------------------------------------
    # Remove
    # ------------------------------------------------------------------

    def evaluate_remove(self, item_id: int) -> Decision:
        if self._attempt_log.exists_successful_within(
            item_id=item_id,
            action=AttemptAction.REMOVE,
            window=self._remove_dedup,
        ):
            return Decision.skip(SkipReason.ALREADY_REMOVED)
        return Decision.proceed()

    def remove_decision(self, item_id: int, source: RequestSource | str) -> Outcome:
        """
        Publish ``URL_DELETED`` unless a removal already succeeded recently.
        """

        source = RequestSource(source)
        decision = self.evaluate_remove(item_id)
        if decision.is_skip:
            return self._skipped(item_id, AttemptAction.REMOVE, decision, source)
        return self._execute(item_id, AttemptAction.REMOVE, decision, source)

    # ------------------------------------------------------------------
    # Retry
    # ------------------------------------------------------------------

    def retry_selection(
        self,
        *,
        window: timedelta = timedelta(hours=48),
        max_tries: int = 3,
        limit: int = 10,
    ) -> list[RetryCandidate]:
        """
        Failed (item, action) pairs still eligible for another attempt.

        Pairs are taken from the attempt log in order, and kept only while
        the catalog item is still Active, up to ``limit``.
        """

        if limit <= 0:
            return []

        candidates: list[RetryCandidate] = []
        for group in self._attempt_log.failed_attempts_within(window=window, max_tries=max_tries):
            item = self._catalog.get_item(group.catalog_item_id)
            if item is None or not item.is_active:
                continue
            candidates.append(
                RetryCandidate(
                    item=item,
                    action=group.action,
                    attempt_count=group.attempt_count,
                )
            )
            if len(candidates) >= limit:
                break
        return candidates

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _content_changed(self, item: CatalogItem) -> bool:
        # Approximation: any edit inside the window counts as a content change.
        if item.updated_at is None:
            return True
        return self._clock() - item.updated_at < self._content_change_window

    def _skipped(
        self,
        item_id: int,
        action: AttemptAction,
        decision: Decision,
        source: RequestSource,
    ) -> Outcome:
        log_event(
            logger,
            logging.INFO,
            "indexing_decision_skipped",
            item_id=item_id,
            action=action.value,
            source=source.value,
            reason=decision.reason.value,
        )
        return Outcome(
            catalog_item_id=item_id,
            action=action,
            decision=decision,
            success=True,
            message=f"Skipped: {decision.reason.value}",
        )

    def _execute(
        self,
        item_id: int,
        action: AttemptAction,
        decision: Decision,
        source: RequestSource,
    ) -> Outcome:
        label = source.value.capitalize()
        notification_type = (
            NotificationType.URL_UPDATED if action is AttemptAction.INDEX else NotificationType.URL_DELETED
        )

        self._throttle()
        try:
            self._client.submit(self._client.item_url(item_id), notification_type)
            success = True
            message = f"{label}: Success"
        except ProtocolError as exc:
            success = False
            message = f"{label}: {exc}"
        except IndexingError as exc:
            success = False
            message = f"{label} Exception: {exc}"
        except Exception as exc:  # noqa: BLE001
            success = False
            message = f"{label} Exception: {exc}"
            logger.exception(
                "Unexpected indexing failure item_id=%s action=%s", item_id, action.value
            )

        self._attempt_log.append(
            item_id=item_id,
            action=action,
            success=success,
            message=message,
        )
        log_event(
            logger,
            logging.INFO if success else logging.WARNING,
            "indexing_attempt_recorded",
            item_id=item_id,
            action=action.value,
            source=source.value,
            success=success,
            message=message,
        )
        return Outcome(
            catalog_item_id=item_id,
            action=action,
            decision=decision,
            success=success,
            message=message,
        )

    def _throttle(self) -> None:
        """
        Keep at least the configured delay between consecutive API calls.
        """

        if self._inter_request_delay_seconds <= 0:
            return
        if self._last_call_monotonic is not None:
            elapsed = time.monotonic() - self._last_call_monotonic
            remaining = self._inter_request_delay_seconds - elapsed
            if remaining > 0:
                self._sleep(remaining)
        self._last_call_monotonic = time.monotonic()
