"""
tests/test_migrations.py

Pytest tests for the initial indexing migration.

Coverage
--------
- Fresh database gets all three tables and the attempt log indexes
- An existing site-owned indexing_log table is adopted, not recreated
- Downgrade keeps the indexing_log table
"""

from __future__ import annotations

import importlib.util
from pathlib import Path
from types import ModuleType
from unittest.mock import MagicMock

import pytest

MIGRATION_PATH = (
    Path(__file__).resolve().parents[1]
    / "alembic"
    / "versions"
    / "20261019_0001_create_indexing_tables.py"
)


def _load_migration() -> ModuleType:
    spec = importlib.util.spec_from_file_location("create_indexing_tables", MIGRATION_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture()
def migration(monkeypatch) -> ModuleType:
    module = _load_migration()
    monkeypatch.setattr(module, "op", MagicMock())
    return module


def _use_inspector(monkeypatch, module: ModuleType, *, has_log: bool, indexes: list[str]) -> None:
    inspector = MagicMock()
    inspector.has_table.side_effect = lambda name: has_log and name == "indexing_log"
    inspector.get_indexes.return_value = [{"name": name} for name in indexes]
    monkeypatch.setattr(module.sa, "inspect", lambda bind: inspector)


def _created_tables(module: ModuleType) -> list[str]:
    return [call.args[0] for call in module.op.create_table.call_args_list]


def _created_indexes(module: ModuleType, table: str) -> list[str]:
    return [
        call.args[0]
        for call in module.op.create_index.call_args_list
        if call.args[1] == table
    ]


# ---------------------------------------------------------------------------
# Upgrade
# ---------------------------------------------------------------------------


class TestUpgrade:
    def test_fresh_database_creates_all_tables(self, migration, monkeypatch) -> None:
        _use_inspector(monkeypatch, migration, has_log=False, indexes=[])

        migration.upgrade()

        assert _created_tables(migration) == [
            "indexing_log",
            "indexing_runs",
            "indexing_run_leases",
        ]
        assert _created_indexes(migration, "indexing_log") == list(migration.INDEXING_LOG_INDEXES)

    def test_existing_indexing_log_is_adopted(self, migration, monkeypatch) -> None:
        _use_inspector(
            monkeypatch,
            migration,
            has_log=True,
            indexes=["ix_indexing_log_job_id"],
        )

        migration.upgrade()

        assert "indexing_log" not in _created_tables(migration)
        assert _created_indexes(migration, "indexing_log") == [
            "ix_indexing_log_created_at",
            "ix_indexing_log_job_id_action_success",
        ]
        assert "indexing_runs" in _created_tables(migration)


# ---------------------------------------------------------------------------
# Downgrade
# ---------------------------------------------------------------------------


class TestDowngrade:
    def test_indexing_log_table_is_kept(self, migration) -> None:
        migration.downgrade()

        dropped = [call.args[0] for call in migration.op.drop_table.call_args_list]
        assert dropped == ["indexing_run_leases", "indexing_runs"]
        dropped_log_indexes = [
            call.args[0]
            for call in migration.op.drop_index.call_args_list
            if call.kwargs.get("table_name") == "indexing_log"
        ]
        assert dropped_log_indexes == list(migration.INDEXING_LOG_INDEXES)
