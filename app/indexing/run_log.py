"""
Human-readable daily run log files for the indexing sync.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

RUN_LOG_PREFIX = "indexing-cron-"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RunLog:
    """
    Collects timestamped lines for one run and appends them to the day's file.
    """

    def __init__(
        self,
        log_dir: str | Path,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._log_dir = Path(log_dir)
        self._clock = clock
        self._lines: list[str] = []

    @property
    def lines(self) -> list[str]:
        return list(self._lines)

    def line(self, message: str) -> None:
        timestamp = self._clock().strftime("[%Y-%m-%d %H:%M:%S]")
        self._lines.append(f"{timestamp} {message}")
        logger.info(message)

    def path_for_today(self) -> Path:
        return self._log_dir / f"{RUN_LOG_PREFIX}{self._clock().strftime('%Y-%m-%d')}.log"

    def flush(self) -> Path | None:
        """
        Append collected lines to today's file. Returns the path written, if any.
        """

        if not self._lines:
            return None
        path = self.path_for_today()
        try:
            self._log_dir.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8") as handle:
                handle.write("\n".join(self._lines) + "\n")
        except OSError as exc:
            logger.error("Failed to write indexing run log path=%s error=%s", path, exc)
            return None
        self._lines.clear()
        return path

    def prune(self, *, retention_days: int, now: float | None = None) -> int:
        """
        Delete run log files last modified more than ``retention_days`` ago.
        """

        if not self._log_dir.is_dir():
            return 0
        cutoff = (time.time() if now is None else now) - retention_days * 86400
        removed = 0
        for path in self._log_dir.glob(f"{RUN_LOG_PREFIX}*.log"):
            try:
                if path.stat().st_mtime < cutoff:
                    path.unlink()
                    removed += 1
            except OSError as exc:
                logger.warning("Failed to prune indexing run log path=%s error=%s", path, exc)
        return removed
