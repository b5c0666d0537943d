"""
shopgauge/scheduler.py

APScheduler wiring for background work owned by browser sessions.

Jobs
----
  session heartbeat      — ``interval`` job, one per browser session
  suggestion refresh     — one-shot ``date`` job after a discovery trigger

Lifecycle
---------
One ``BackgroundScheduler`` serves the whole Streamlit process. Job ids are
prefixed with the id of the browser session that owns them, so signing out
removes exactly that session's jobs (``remove_session_jobs``).
"""

from __future__ import annotations

import atexit
import logging
from functools import lru_cache

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler

logger = logging.getLogger(__name__)


def build_scheduler() -> BackgroundScheduler:
    """
    Return a configured but *not yet started* ``BackgroundScheduler``.

    A late heartbeat is coalesced into a single run rather than replayed.
    """

    return BackgroundScheduler(
        timezone="UTC",
        job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 30},
    )


@lru_cache(maxsize=1)
def get_scheduler() -> BackgroundScheduler:
    """
    Process-wide scheduler, started on first use and shut down at exit.
    """

    scheduler = build_scheduler()
    scheduler.start()
    atexit.register(scheduler.shutdown, wait=False)
    logger.info("Background scheduler started")
    return scheduler


def session_job_id(session_id: str, name: str, key: str | None = None) -> str:
    parts = [session_id, name] if key is None else [session_id, name, key]
    return ":".join(parts)


def remove_job(scheduler: BaseScheduler, job_id: str) -> bool:
    """
    Remove `job_id` if it is still scheduled. Returns False when it was not.
    """

    try:
        scheduler.remove_job(job_id)
    except JobLookupError:
        return False
    return True


def remove_session_jobs(scheduler: BaseScheduler, session_id: str) -> int:
    prefix = f"{session_id}:"
    removed = 0
    for job in scheduler.get_jobs():
        if job.id.startswith(prefix) and remove_job(scheduler, job.id):
            removed += 1
    if removed:
        logger.info("Removed %d scheduled job(s) for session %s", removed, session_id)
    return removed
