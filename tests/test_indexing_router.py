"""
tests/test_indexing_router.py

HTTP trigger and report endpoints with dependency overrides.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.routers import indexing_router
from app.config import IndexingSyncSettings
from app.domain.indexing import (
    AttemptAction,
    Decision,
    Outcome,
    PhaseSummary,
    RunResult,
    SkipReason,
)
from app.indexing.client import UrlMetadata
from app.indexing.errors import ConfigError, NotFoundError
from app.services.indexing_sync_service import (
    RunAlreadyInProgressError,
    get_indexing_sync_service,
)
from db.session import get_db

SECRET = "s3cret-key"


@pytest.fixture()
def service() -> MagicMock:
    return MagicMock()


@pytest.fixture()
def api(session, service, monkeypatch) -> TestClient:
    monkeypatch.setattr(
        "app.api.dependencies.get_indexing_sync_settings",
        lambda: IndexingSyncSettings(cron_secret=SECRET),
    )
    application = FastAPI()
    application.include_router(indexing_router)
    application.dependency_overrides[get_db] = lambda: session
    application.dependency_overrides[get_indexing_sync_service] = lambda: service
    return TestClient(application)


def _result(*, aborted: bool = False) -> RunResult:
    phase = PhaseSummary(name="new")
    phase.record(Outcome(1, AttemptAction.INDEX, Decision.proceed(), True, "Cron: Success"))
    phase.record(Outcome(2, AttemptAction.INDEX, Decision.proceed(), False, "Cron: HTTP 403: x"))
    return RunResult(
        run_id=7,
        phases=[phase],
        execution_time_seconds=2.5,
        started_at=datetime(2026, 10, 19, tzinfo=timezone.utc),
        aborted=aborted,
        abort_reason="abort requested" if aborted else None,
    )


class TestKeyGate:
    @pytest.mark.parametrize("query", ["", "?key=wrong"])
    def test_bad_or_missing_key_is_forbidden(self, api: TestClient, service, query: str) -> None:
        response = api.post(f"/indexing/run{query}")

        assert response.status_code == 403
        service.run.assert_not_called()

    def test_unconfigured_secret_rejects_everything(self, session, service, monkeypatch) -> None:
        monkeypatch.setattr(
            "app.api.dependencies.get_indexing_sync_settings",
            lambda: IndexingSyncSettings(cron_secret=None),
        )
        application = FastAPI()
        application.include_router(indexing_router)
        application.dependency_overrides[get_db] = lambda: session

        response = TestClient(application).get("/indexing/report?key=")

        assert response.status_code == 403


class TestRunEndpoint:
    def test_returns_summary_even_with_failed_items(self, api: TestClient, service) -> None:
        service.run.return_value = _result()

        response = api.post(f"/indexing/run?key={SECRET}&force=true")

        assert response.status_code == 200
        body = response.json()
        assert body["run_id"] == 7
        assert (body["processed"], body["successful"], body["failed"]) == (2, 1, 1)
        assert body["success_rate"] == 50.0
        assert body["phases"][0]["name"] == "new"
        _, kwargs = service.run.call_args
        assert kwargs["force"] is True

    def test_concurrent_run_is_conflict(self, api: TestClient, service) -> None:
        service.run.side_effect = RunAlreadyInProgressError("busy")

        response = api.post(f"/indexing/run?key={SECRET}")

        assert response.status_code == 409


class TestReportEndpoints:
    def test_report_and_item_stats(self, api: TestClient, add_attempt) -> None:
        add_attempt(3, ago=timedelta(hours=30))
        add_attempt(3, success=False, ago=timedelta(hours=1), message="Cron: HTTP 500: x")

        report = api.get(f"/indexing/report?key={SECRET}").json()
        stats = api.get(f"/indexing/items/3/stats?key={SECRET}").json()

        assert report["all_time"]["total"] == 2
        assert report["recent_failures"][0]["message"] == "Cron: HTTP 500: x"
        assert stats["total_attempts"] == 2
        assert stats["successful"] == 1

    def test_runs_history_is_listed(self, api: TestClient, session) -> None:
        from db.repositories.run_summary_repository import RunSummaryRepository

        RunSummaryRepository(session).record(_result(aborted=True))
        session.commit()

        runs = api.get(f"/indexing/runs?key={SECRET}").json()

        assert len(runs) == 1
        assert runs[0]["aborted"] is True
        assert runs[0]["abort_reason"] == "abort requested"


class TestItemEndpoints:
    def test_manual_remove(self, api: TestClient, service) -> None:
        service.remove_item.return_value = Outcome(
            5, AttemptAction.REMOVE, Decision.skip(SkipReason.ALREADY_REMOVED), True, "Skipped"
        )

        body = api.post(f"/indexing/items/5/remove?key={SECRET}").json()

        assert body["skipped"] is True
        assert body["decision"] == "skip"

    def test_manual_index_without_credentials_is_unavailable(
        self,
        api: TestClient,
        service,
    ) -> None:
        service.index_item.side_effect = ConfigError("Service account JSON file not found")

        response = api.post(f"/indexing/items/5/index?key={SECRET}")

        assert response.status_code == 503

    def test_url_status(self, api: TestClient, service) -> None:
        service.url_status.return_value = UrlMetadata(
            url="https://site.test/a",
            payload={"latestUpdate": {"type": "URL_UPDATED"}},
        )

        body = api.get(f"/indexing/status?key={SECRET}&url=https://site.test/a").json()

        assert body["latest_update"] == {"type": "URL_UPDATED"}

    def test_url_status_not_found(self, api: TestClient, service) -> None:
        service.url_status.side_effect = NotFoundError("No indexing metadata")

        response = api.get(f"/indexing/status?key={SECRET}&url=https://site.test/b")

        assert response.status_code == 404
