from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI

from app.logging_utils import configure_logging


def _validate_env() -> None:
    """
    Validate all required environment variables at startup.

    Runs before any service or database connection is initialised.
    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.

    Rules:
    - A database URL must be configured.
    - INDEXING_CRON_SECRET must be set and non-empty.
    - The service account file must exist unless INDEXING_SERVICE_ACCOUNT_CHECK=false.
    """

    from db.config import load_env_files

    load_env_files()

    errors: list[str] = []

    # --- Database URL ---------------------------------------------------
    database_url = os.getenv("DATABASE_URL", "").strip()
    cloud_database_url = os.getenv("CLOUD_DATABASE_URL", "").strip()
    local_database_url = os.getenv("LOCAL_DATABASE_URL", "").strip()
    if not database_url and not cloud_database_url and not local_database_url:
        errors.append(
            "No database URL configured. Set DATABASE_URL, CLOUD_DATABASE_URL "
            "or LOCAL_DATABASE_URL."
        )

    # --- Cron secret ----------------------------------------------------
    if not os.getenv("INDEXING_CRON_SECRET", "").strip():
        errors.append(
            "INDEXING_CRON_SECRET is not set. The indexing endpoints require a shared key. "
            "Empty strings are not permitted."
        )

    # --- Service account ------------------------------------------------
    check_raw = os.getenv("INDEXING_SERVICE_ACCOUNT_CHECK", "true").strip().lower()
    if check_raw in {"1", "true", "yes", "on"}:
        path = os.getenv("INDEXING_SERVICE_ACCOUNT_PATH", "secure/service-account.json").strip()
        if not os.path.isfile(path):
            errors.append(
                f"Service account file not found at '{path}'. Set INDEXING_SERVICE_ACCOUNT_PATH "
                "or disable the check with INDEXING_SERVICE_ACCOUNT_CHECK=false."
            )

    if errors:
        raise RuntimeError(
            "Startup validation failed, missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import SessionLocal

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Compare Base.metadata table names against the live DB schema.

    Every table registered on Base.metadata must exist in the database.
    The catalog ``jobs`` table is owned by the site and is checked the same
    way; the indexing tables come from ``alembic upgrade head``.

    Does NOT auto-migrate.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401  registers all ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    inspector = sa_inspect(get_engine())
    actual: set[str] = set(inspector.get_table_names())
    expected: set[str] = set(Base.metadata.tables.keys())
    missing = expected - actual

    if missing:
        log = logging.getLogger(__name__)
        log.critical(
            "Schema mismatch: %d table(s) defined in ORM metadata are absent from "
            "the database: %s. Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate DB connectivity and schema, start the scheduler on boot; shut it down on exit."""
    _check_db()
    logging.getLogger(__name__).info("Database connectivity confirmed")
    _check_schema()
    logging.getLogger(__name__).info("Database schema validated")

    from app.config import get_indexing_scheduler_settings

    if not get_indexing_scheduler_settings().enabled:
        logging.getLogger(__name__).info("Scheduler disabled by INDEXING_SCHEDULER_ENABLED")
        yield
        return

    from app.scheduler.jobs import build_scheduler

    scheduler = build_scheduler()
    scheduler.start()
    logging.getLogger(__name__).info("Scheduler started with %d jobs", len(scheduler.get_jobs()))
    try:
        yield
    finally:
        scheduler.shutdown(wait=True)
        logging.getLogger(__name__).info("Scheduler shut down")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    configure_logging()

    application = FastAPI(
        title="Indexing Sync API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import indexing_router

    application.include_router(indexing_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
