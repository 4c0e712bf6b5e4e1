"""
Run one indexing sync from CLI (cron entry point).

Exit codes: 0 when the run completed (item failures included), 1 when the run
was aborted before processing items or another run holds the lease.
"""

from __future__ import annotations

import argparse
import json
import logging
import signal
import threading
from typing import Any

from app.logging_utils import configure_logging
from app.services.indexing_sync_service import (
    RunAlreadyInProgressError,
    get_indexing_sync_service,
)
from db.session import session_scope

logger = logging.getLogger(__name__)


def _install_abort_handlers(abort: threading.Event) -> None:
    def _handle(signum: int, _frame: Any) -> None:
        logger.warning("Received signal %s, stopping after the current item", signum)
        abort.set()

    signal.signal(signal.SIGTERM, _handle)
    signal.signal(signal.SIGINT, _handle)


def main() -> int:
    parser = argparse.ArgumentParser(description="Synchronize job postings with the search index.")
    parser.add_argument(
        "--force",
        action="store_true",
        help="Bypass cooldown and change checks for new and updated jobs.",
    )
    args = parser.parse_args()

    configure_logging()
    abort = threading.Event()
    _install_abort_handlers(abort)

    service = get_indexing_sync_service()
    with session_scope() as db:
        try:
            result = service.run(db=db, force=args.force, should_abort=abort.is_set)
        except RunAlreadyInProgressError as exc:
            print(json.dumps({"status": "skipped", "reason": str(exc)}, indent=2))
            return 1

    payload = {
        "run_id": result.run_id,
        "processed": result.processed,
        "successful": result.successful,
        "skipped": result.skipped,
        "failed": result.failed,
        "success_rate": result.success_rate,
        "execution_time_seconds": round(result.execution_time_seconds, 2),
        "aborted": result.aborted,
        "abort_reason": result.abort_reason,
        "phases": [
            {
                "name": phase.name,
                "processed": phase.processed,
                "successful": phase.successful,
                "skipped": phase.skipped,
                "failed": phase.failed,
            }
            for phase in result.phases
        ],
    }
    print(json.dumps(payload, indent=2))
    if result.aborted and not result.phases:
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
