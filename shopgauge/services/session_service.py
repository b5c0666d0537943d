"""
shopgauge/services/session_service.py

Session keep-alive heartbeat and the concurrent-session limit check.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler

from shopgauge.clients.errors import (
    ApiError,
    ApiRequestError,
    AuthenticationRequiredError,
    NotFoundError,
    RateLimitedError,
    ServiceUnavailableError,
)
from shopgauge.clients.sessions import SessionsClient
from shopgauge.config import SessionSettings, get_session_settings
from shopgauge.logging_utils import log_event
from shopgauge.retry import RetryExhaustedError, retry_with_backoff
from shopgauge.scheduler import remove_job
from shopgauge.schemas.auth import HeartbeatResult, SessionInfo, SessionLimit

logger = logging.getLogger(__name__)

LIMIT_UNAVAILABLE_MESSAGE = "Session management temporarily unavailable"
LIMIT_RETRY_INITIAL_SECONDS = 2.0


class SessionHeartbeat:
    """
    Periodically tells the API this browser session is still alive.

    Runs as an ``interval`` job on the shared scheduler under `job_id`.
    A failed beat reschedules the job to the short retry delay; after
    `heartbeat_max_retries` consecutive failures the job is removed and
    `on_invalidated` is called. A browser session that stops rendering
    pages (`touch`) for `idle_timeout_seconds` has its job removed too.
    """

    def __init__(
        self,
        *,
        client: SessionsClient,
        scheduler: BaseScheduler,
        job_id: str = "session-heartbeat",
        settings: SessionSettings | None = None,
        on_invalidated: Callable[[], object] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._scheduler = scheduler
        self._settings = settings or get_session_settings()
        self._on_invalidated = on_invalidated
        self._clock = clock
        self._lock = threading.Lock()
        self._delay: float | None = None
        self.job_id = job_id
        self.failures = 0
        self.is_active = False
        self.invalidated = False
        self.last_beat_at: float | None = None
        self.last_seen_at = clock()
        self.last_result: HeartbeatResult | None = None

    def beat(self) -> bool:
        """
        Send one heartbeat. Returns True when the server accepted it.
        """

        try:
            result = self._client.heartbeat()
        except ApiError as exc:
            return self._record_failure(str(exc))
        if not result.success:
            return self._record_failure(result.error or "Unknown error")

        with self._lock:
            self.failures = 0
            self.last_beat_at = self._clock()
            self.last_result = result
        logger.debug(
            "Session heartbeat ok session_id=%s active_sessions=%s",
            result.session_id,
            result.active_session_count,
        )
        return True

    def start(self) -> None:
        with self._lock:
            if self.is_active:
                return
            self.is_active = True
            self.invalidated = False
            self.failures = 0
            self.last_seen_at = self._clock()
            self._delay = self._settings.heartbeat_interval_seconds
        self._scheduler.add_job(
            self._tick,
            trigger="interval",
            seconds=self._delay,
            id=self.job_id,
            name="Session heartbeat",
            replace_existing=True,
        )

    def stop(self) -> None:
        with self._lock:
            self.is_active = False
            self._delay = None
        remove_job(self._scheduler, self.job_id)

    def touch(self) -> None:
        """
        Record that the browser session rendered a page.
        """

        with self._lock:
            self.last_seen_at = self._clock()

    def _tick(self) -> None:
        if not self.is_active:
            return
        idle = self._clock() - self.last_seen_at
        if idle >= self._settings.idle_timeout_seconds:
            log_event(logger, logging.INFO, "session_heartbeat_idle", job_id=self.job_id, idle_seconds=round(idle))
            self.stop()
            return

        ok = self.beat()
        if not self.is_active:
            return
        delay = (
            self._settings.heartbeat_interval_seconds
            if ok
            else self._settings.heartbeat_retry_delay_seconds
        )
        self._reschedule(delay)

    def _reschedule(self, delay: float) -> None:
        with self._lock:
            if not self.is_active or delay == self._delay:
                return
            self._delay = delay
        try:
            self._scheduler.reschedule_job(self.job_id, trigger="interval", seconds=delay)
        except JobLookupError:
            logger.debug("Heartbeat job %s was removed before rescheduling", self.job_id)

    def _record_failure(self, reason: str) -> bool:
        with self._lock:
            self.failures += 1
            failures = self.failures
        limit = self._settings.heartbeat_max_retries
        if failures < limit:
            logger.warning("Session heartbeat retry %d/%d after error: %s", failures, limit, reason)
            return False

        log_event(logger, logging.ERROR, "session_invalidated", failures=failures, reason=reason)
        self.stop()
        self.invalidated = True
        if self._on_invalidated is not None:
            self._on_invalidated()
        return False


class SessionLimitService:
    """
    Cached view of `/sessions/limit-check` plus session termination.
    """

    def __init__(
        self,
        *,
        client: SessionsClient,
        settings: SessionSettings | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._settings = settings or get_session_settings()
        self._sleep = sleep
        self._clock = clock
        self._lock = threading.Lock()
        self._cached: tuple[float, SessionLimit] | None = None
        self.error: str | None = None

    def check(self, *, force: bool = False) -> SessionLimit | None:
        """
        Return the session limit, served from cache for five minutes.

        Missing endpoints (404) and anonymous visitors (401) are treated as
        "no limit information", not as errors.
        """

        with self._lock:
            cached = self._cached
        if (
            not force
            and cached is not None
            and self._clock() - cached[0] < self._settings.limit_cache_seconds
        ):
            return cached[1]

        try:
            limit = retry_with_backoff(
                self._client.limit_check,
                max_retries=3,
                backoff_initial_seconds=LIMIT_RETRY_INITIAL_SECONDS,
                retry_on=(ServiceUnavailableError, RateLimitedError, ApiRequestError),
                sleep=self._sleep,
                label="session_limit_check",
            )
        except (NotFoundError, AuthenticationRequiredError) as exc:
            logger.info("Session limit information unavailable: %s", exc)
            self.error = None
            return None
        except (RetryExhaustedError, ApiError) as exc:
            logger.warning("Session limit check failed: %s", exc)
            self.error = LIMIT_UNAVAILABLE_MESSAGE
            return None

        self.error = None
        with self._lock:
            self._cached = (self._clock(), limit)
        return limit

    def active_sessions(self) -> list[SessionInfo]:
        return self._client.active_sessions()

    def delete_session(self, session_id: str) -> bool:
        try:
            self._client.terminate(session_id)
        except ApiError as exc:
            logger.error("Terminating session %s failed: %s", session_id, exc)
            return False
        self.invalidate()
        return True

    def terminate_others(self) -> bool:
        try:
            self._client.terminate_others()
        except ApiError as exc:
            logger.error("Terminating other sessions failed: %s", exc)
            return False
        self.invalidate()
        return True

    def invalidate(self) -> None:
        with self._lock:
            self._cached = None
