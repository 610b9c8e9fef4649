"""One-shot task runner for a CronJob or ad-hoc use.

Run with:
  python -m cider_app.app.tasks run

Runs :func:`cider_app.app.jobs.run_due_jobs` once under a Postgres advisory
lock so overlapping invocations across replicas are skipped.
"""
from __future__ import annotations

import logging
import sys

from . import create_app
from .jobs import run_due_jobs
from .utils.pg_lock import pg_try_advisory_lock

logger = logging.getLogger("tasks")

LOCK_NAME = "run_due_jobs"


def _run_app_tasks() -> bool:
    app = create_app()
    with app.app_context():
        logger.info("Starting tasks runner")
        with pg_try_advisory_lock(LOCK_NAME) as locked:
            if not locked:
                logger.info("Lock not acquired for %s, skipping", LOCK_NAME)
                return False
            logger.info("Lock acquired for %s, running jobs", LOCK_NAME)
            results = run_due_jobs()
            logger.info("Jobs finished: %s", results)
    return True


def main(argv: list[str] | None = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    if not argv or argv[0] != "run":
        print("Usage: python -m cider_app.app.tasks run")
        return 2
    logging.basicConfig(level=logging.INFO)
    _run_app_tasks()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
