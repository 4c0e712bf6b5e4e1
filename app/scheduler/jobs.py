"""
app/scheduler/jobs.py

APScheduler-based scheduler for the periodic indexing sync.

Schedule (all times UTC)
--------------------------
  indexing_sync: minute ``INDEXING_SCHEDULER_CRON_MINUTE`` of every hour matching
  ``INDEXING_SCHEDULER_CRON_HOUR`` (default: top of every hour)

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from app.config import get_indexing_scheduler_settings
from app.services.indexing_sync_service import (
    RunAlreadyInProgressError,
    get_indexing_sync_service,
)
from db.session import session_scope

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Job: Hourly indexing sync
# ---------------------------------------------------------------------------


def run_indexing_sync() -> None:
    """
    Run one indexing sync. The service commits per item and records the summary.
    """
    logger.info("Scheduler: indexing_sync starting")

    with session_scope() as db:
        try:
            result = get_indexing_sync_service().run(db=db)
        except RunAlreadyInProgressError:
            logger.info("Scheduler: indexing_sync skipped, another run holds the lease")
            return
        except Exception as exc:  # noqa: BLE001
            logger.warning("Scheduler: indexing_sync failed: %s", exc)
            return

    logger.info(
        "Scheduler: indexing_sync complete run_id=%s processed=%s successful=%s "
        "failed=%s aborted=%s",
        result.run_id,
        result.processed,
        result.successful,
        result.failed,
        result.aborted,
    )


# ---------------------------------------------------------------------------
# Scheduler factory
# ---------------------------------------------------------------------------


def build_scheduler() -> BackgroundScheduler:
    """
    Build and register the indexing sync job.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points.
    """
    settings = get_indexing_scheduler_settings()
    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        run_indexing_sync,
        trigger="cron",
        hour=settings.cron_hour,
        minute=settings.cron_minute,
        id="indexing_sync",
        name="Hourly indexing sync",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=settings.misfire_grace_seconds,
    )

    return scheduler
