from __future__ import annotations

import os
import tempfile
import time
import unittest
from datetime import datetime, timezone
from pathlib import Path

from app.indexing.run_log import RunLog


class TestRunLog(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.log_dir = Path(self._tmp.name) / "logs"
        self.clock = lambda: datetime(2026, 10, 19, 9, 30, 5, tzinfo=timezone.utc)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_lines_are_timestamped(self) -> None:
        run_log = RunLog(self.log_dir, clock=self.clock)
        run_log.line("Starting Indexing Cron Job")

        self.assertEqual(run_log.lines, ["[2026-10-19 09:30:05] Starting Indexing Cron Job"])

    def test_flush_appends_to_daily_file(self) -> None:
        for message in ("first run", "second run"):
            run_log = RunLog(self.log_dir, clock=self.clock)
            run_log.line(message)
            path = run_log.flush()

        self.assertEqual(path, self.log_dir / "indexing-cron-2026-10-19.log")
        content = path.read_text(encoding="utf-8").splitlines()
        self.assertEqual(len(content), 2)
        self.assertTrue(content[1].endswith("second run"))

    def test_flush_without_lines_writes_nothing(self) -> None:
        self.assertIsNone(RunLog(self.log_dir, clock=self.clock).flush())
        self.assertFalse(self.log_dir.exists())

    def test_prune_removes_only_old_run_logs(self) -> None:
        self.log_dir.mkdir(parents=True)
        old = self.log_dir / "indexing-cron-2026-08-01.log"
        fresh = self.log_dir / "indexing-cron-2026-10-18.log"
        unrelated = self.log_dir / "app.log"
        for path in (old, fresh, unrelated):
            path.write_text("x", encoding="utf-8")
        now = time.time()
        forty_days_ago = now - 40 * 86400
        os.utime(old, (forty_days_ago, forty_days_ago))
        os.utime(unrelated, (forty_days_ago, forty_days_ago))

        removed = RunLog(self.log_dir, clock=self.clock).prune(retention_days=30, now=now)

        self.assertEqual(removed, 1)
        self.assertFalse(old.exists())
        self.assertTrue(fresh.exists())
        self.assertTrue(unrelated.exists())

    def test_prune_missing_directory_is_noop(self) -> None:
        self.assertEqual(RunLog(self.log_dir).prune(retention_days=30), 0)


if __name__ == "__main__":
    unittest.main()
