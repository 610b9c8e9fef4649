"""Dedicated scheduler process using APScheduler.

Runs separately from the WSGI workers (its own container or systemd
service). Job definitions live in a SQLAlchemyJobStore and each job holds a
Postgres advisory lock while it runs, so several scheduler replicas never
execute the same job at once.
"""
from __future__ import annotations

import importlib
import inspect
import logging
import time
from logging.handlers import RotatingFileHandler
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore
from flask import Flask
from . import create_app

logger = logging.getLogger("scheduler")

INTERVAL_KEYS = ("weeks", "days", "hours", "minutes", "seconds")


def setup_logging(path: str = "/tmp/scheduler.log"):
    handler = RotatingFileHandler(path, maxBytes=10 * 1024 * 1024, backupCount=3)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


def get_scheduler(app: Flask) -> BackgroundScheduler:
    jobstores = {"default": SQLAlchemyJobStore(url=app.config.get("SQLALCHEMY_DATABASE_URI"))}
    return BackgroundScheduler(jobstores=jobstores)


def run_job_in_app_context(module_name: str, func_name: str, *a, **kw):
    """Import ``module_name.func_name`` and call it inside a fresh app context.

    Stored by APScheduler as the textual reference ``cider_app.app.scheduler:run_job_in_app_context``
    so persisted jobs survive restarts.
    """
    app = create_app()
    fn = getattr(importlib.import_module(module_name), func_name)
    try:
        with app.app_context():
            return fn(*a, **kw)
    except Exception:
        logger.exception("Failed to run job %s.%s in app context", module_name, func_name)
        raise


def discover_jobs(module) -> list[tuple[str, dict]]:
    """Names and metadata of the functions in ``module`` marked with ``@job``."""
    found = []
    for name, fn in sorted(vars(module).items()):
        if not inspect.isfunction(fn):
            continue
        meta = getattr(fn, "job_meta", None)
        if meta:
            found.append((name, meta))
    return found


def register_jobs(scheduler: BackgroundScheduler) -> int:
    from . import jobs as jobs_module

    # persisted jobs from an older deploy may point at callables that no longer exist
    scheduler.remove_all_jobs()
    registered = 0
    for name, meta in discover_jobs(jobs_module):
        schedule_type = meta.get("schedule", "interval")
        job_id = meta.get("id", name)
        if schedule_type != "interval":
            logger.info("Unsupported schedule type %s for job %s", schedule_type, name)
            continue
        interval = {k: meta[k] for k in INTERVAL_KEYS if k in meta} or {"minutes": 15}
        scheduler.add_job(
            f"{__name__}:run_job_in_app_context",
            "interval",
            args=[jobs_module.__name__, name],
            id=job_id,
            replace_existing=True,
            **interval,
        )
        registered += 1
        logger.info("Registered job %s schedule=%s meta=%s", job_id, schedule_type, meta)
    if registered == 0:
        logger.info("No decorated jobs found to register")
    return registered


def run():
    app = create_app()
    setup_logging()

    scheduler = get_scheduler(app)
    with app.app_context():
        register_jobs(scheduler)
        scheduler.start()
        logger.info("Scheduler started")
        try:
            while True:
                time.sleep(60)
        except (KeyboardInterrupt, SystemExit):
            logger.info("Shutting down scheduler")
            scheduler.shutdown()
