"""Postgres advisory locks for maintenance jobs.

A named job takes ``pg_try_advisory_lock`` on a 64-bit key derived from its
name, so only one scheduler or task runner executes it at a time. Other
backends (SQLite in development and tests) have no advisory locks and
always get the lock.
"""
from __future__ import annotations

import hashlib
from contextlib import contextmanager
from functools import wraps
from typing import Generator
from sqlalchemy import text
from .. import db


def _job_key(job_id: str) -> int:
    h = hashlib.sha256(job_id.encode("utf-8")).digest()
    # bigint is signed
    return int.from_bytes(h[:8], byteorder="big", signed=True)


@contextmanager
def pg_try_advisory_lock(job_id: str) -> Generator[bool, None, None]:
    """Yield True if the lock for ``job_id`` was acquired, False if another process holds it.

    Usage:
        with pg_try_advisory_lock('send_packaging_reminders') as locked:
            if not locked:
                return
            ...
    """
    if db.engine.dialect.name != "postgresql":
        yield True
        return
    key = _job_key(job_id)
    conn = db.engine.connect()
    locked = False
    try:
        locked = bool(conn.execute(text("SELECT pg_try_advisory_lock(:k)"), {"k": key}).scalar())
        conn.commit()
        yield locked
    finally:
        if locked:
            conn.execute(text("SELECT pg_advisory_unlock(:k)"), {"k": key})
            conn.commit()
        conn.close()


def single_instance(job_id: str):
    """Run the wrapped function only while holding the lock for ``job_id``; otherwise return None."""

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            with pg_try_advisory_lock(job_id) as locked:
                if not locked:
                    return None
                return func(*args, **kwargs)

        return wrapper

    return decorator
