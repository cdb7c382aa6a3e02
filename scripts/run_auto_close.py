#!/usr/bin/env python3
"""
Entry point for an external cron job.

Runs one auto-close sweep under the same scheduling contract as the in-process
scheduler (bounded retries, fixed backoff). Exits non-zero when the sweep
gives up, so the cron runner surfaces the failure. A trigger dropped because
another sweep holds the lock exits zero.
"""

import logging
import os
import sys
from typing import Optional

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from db.session import engine
from services.auto_close import run_auto_close_once
from services.scheduling import ScheduledJobRunner, SchedulingContract


def main(runner: Optional[ScheduledJobRunner] = None) -> int:
    logging.basicConfig(
        level=os.getenv("APP_LOG_LEVEL", "info").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if runner is None:
        runner = ScheduledJobRunner(
            SchedulingContract.auto_close_from_env(),
            lambda: run_auto_close_once(engine),
        )

    try:
        report = runner.trigger()
    except Exception as e:
        print(f"[AUTO_CLOSE] Sweep failed: {e}", file=sys.stderr)
        return 1

    if report is None:
        print("[AUTO_CLOSE] Skipped: another sweep is still running")
        return 0

    print(
        f"[AUTO_CLOSE] closed={report.closed_count} "
        f"failed={report.failed_count} skipped={report.skipped_count}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
