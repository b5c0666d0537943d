"""
shopgauge/services/discovery_service.py

Manual trigger for server-side competitor discovery.

Discovery is expensive on the server (search API quota), so the client
refuses redundant triggers: one in flight per shop, a cooldown between
successful triggers, and at most three attempts when the API is busy.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Literal

from apscheduler.schedulers.base import BaseScheduler

from shopgauge.clients.base import LOGIN_REQUIRED_MESSAGE
from shopgauge.clients.competitors import CompetitorsClient
from shopgauge.clients.errors import (
    ApiError,
    AuthenticationRequiredError,
    RateLimitedError,
    ServiceUnavailableError,
)
from shopgauge.config import DiscoverySettings, RetrySettings, get_discovery_settings, get_retry_settings
from shopgauge.logging_utils import log_event
from shopgauge.notifications import NotificationCenter
from shopgauge.rate_limiter import ShopCooldown
from shopgauge.retry import RetryExhaustedError, retry_with_backoff
from shopgauge.scheduler import remove_job, session_job_id

logger = logging.getLogger(__name__)

DISCOVERY_CATEGORY = "Discovery"

DEMO_UNAVAILABLE_MESSAGE = "Manual discovery not available in demo mode"
STARTED_MESSAGE = "Competitor discovery started! Check back in a few minutes for new suggestions."
FAILED_MESSAGE = "Failed to trigger competitor discovery"
IN_PROGRESS_MESSAGE = "Competitor discovery is already running for this store"

DiscoveryStatus = Literal["unavailable", "in_progress", "throttled", "started", "failed"]


@dataclass(frozen=True)
class DiscoveryOutcome:
    status: DiscoveryStatus
    message: str
    attempts: int = 0
    retry_after_seconds: float = 0.0

    @property
    def started(self) -> bool:
        return self.status == "started"


class DiscoveryService:
    """
    Guards and retries `POST /competitors/discovery/trigger`.
    """

    def __init__(
        self,
        *,
        client: CompetitorsClient,
        notifications: NotificationCenter,
        scheduler: BaseScheduler,
        settings: DiscoverySettings | None = None,
        retry_settings: RetrySettings | None = None,
        cooldown: ShopCooldown | None = None,
        sleep: Callable[[float], None] = time.sleep,
        session_id: str = "local",
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._client = client
        self._notifications = notifications
        self._settings = settings or get_discovery_settings()
        self._retry_settings = retry_settings or get_retry_settings()
        self._cooldown = cooldown or ShopCooldown(cooldown_seconds=self._settings.cooldown_seconds)
        self._sleep = sleep
        self._scheduler = scheduler
        self._session_id = session_id
        self._now = now
        self._in_flight: set[str] = set()
        self._jobs: dict[str, str] = {}
        self._lock = threading.Lock()

    def trigger(
        self,
        shop: str,
        *,
        demo_mode: bool = False,
        shop_id: int | None = None,
        on_refresh: Callable[[], object] | None = None,
    ) -> DiscoveryOutcome:
        """
        Ask the server to run discovery for `shop`.

        `on_refresh` runs once as a scheduled job after a successful
        trigger, typically to refresh the suggestion count.
        """

        if demo_mode:
            self._notifications.info(DEMO_UNAVAILABLE_MESSAGE, category=DISCOVERY_CATEGORY)
            return DiscoveryOutcome(status="unavailable", message=DEMO_UNAVAILABLE_MESSAGE)

        key = shop.strip().lower()
        with self._lock:
            if key in self._in_flight:
                already_running = True
            else:
                already_running = False
                self._in_flight.add(key)
        if already_running:
            self._notifications.info(IN_PROGRESS_MESSAGE, category=DISCOVERY_CATEGORY)
            return DiscoveryOutcome(status="in_progress", message=IN_PROGRESS_MESSAGE)

        try:
            if not self._cooldown.acquire(key):
                remaining = self._cooldown.remaining(key)
                minutes = max(1, math.ceil(remaining / 60))
                message = f"Discovery was triggered recently. Try again in {minutes} minute(s)."
                log_event(
                    logger,
                    logging.INFO,
                    "discovery_throttled",
                    shop=key,
                    retry_after_seconds=round(remaining, 1),
                )
                self._notifications.warning(message, category=DISCOVERY_CATEGORY)
                return DiscoveryOutcome(
                    status="throttled",
                    message=message,
                    retry_after_seconds=remaining,
                )
            return self._send(key, shop_id=shop_id, on_refresh=on_refresh)
        finally:
            with self._lock:
                self._in_flight.discard(key)

    def cancel_pending_refresh(self, shop: str) -> bool:
        with self._lock:
            job_id = self._jobs.pop(shop.strip().lower(), None)
        if job_id is None:
            return False
        return remove_job(self._scheduler, job_id)

    def has_pending_refresh(self, shop: str) -> bool:
        with self._lock:
            return shop.strip().lower() in self._jobs

    def shutdown(self) -> None:
        with self._lock:
            job_ids = list(self._jobs.values())
            self._jobs.clear()
        for job_id in job_ids:
            remove_job(self._scheduler, job_id)

    def _send(
        self,
        shop: str,
        *,
        shop_id: int | None,
        on_refresh: Callable[[], object] | None,
    ) -> DiscoveryOutcome:
        attempts = 0

        def _call() -> str:
            nonlocal attempts
            attempts += 1
            return self._client.trigger_discovery(shop_id=shop_id)

        try:
            retry_with_backoff(
                _call,
                max_retries=self._settings.max_attempts - 1,
                backoff_initial_seconds=self._retry_settings.backoff_initial_seconds,
                backoff_multiplier=self._retry_settings.backoff_multiplier,
                retry_on=(RateLimitedError, ServiceUnavailableError),
                sleep=self._sleep,
                label="discovery_trigger",
            )
        except AuthenticationRequiredError:
            self._cooldown.reset(shop)
            log_event(logger, logging.WARNING, "discovery_failed", shop=shop, reason="unauthenticated")
            self._notifications.error(LOGIN_REQUIRED_MESSAGE, category=DISCOVERY_CATEGORY)
            return DiscoveryOutcome(status="failed", message=LOGIN_REQUIRED_MESSAGE, attempts=attempts)
        except (RetryExhaustedError, ApiError) as exc:
            self._cooldown.reset(shop)
            log_event(
                logger,
                logging.ERROR,
                "discovery_failed",
                shop=shop,
                attempts=attempts,
                error=str(exc),
            )
            self._notifications.error(FAILED_MESSAGE, category=DISCOVERY_CATEGORY)
            return DiscoveryOutcome(status="failed", message=FAILED_MESSAGE, attempts=attempts)

        log_event(logger, logging.INFO, "discovery_started", shop=shop, attempts=attempts)
        self._notifications.success(STARTED_MESSAGE, category=DISCOVERY_CATEGORY)
        if on_refresh is not None:
            self._schedule_refresh(shop, on_refresh)
        return DiscoveryOutcome(status="started", message=STARTED_MESSAGE, attempts=attempts)

    def _schedule_refresh(self, shop: str, on_refresh: Callable[[], object]) -> None:
        job_id = session_job_id(self._session_id, "suggestion-refresh", shop)

        def _run() -> None:
            with self._lock:
                if self._jobs.get(shop) == job_id:
                    del self._jobs[shop]
            try:
                on_refresh()
            except Exception:  # noqa: BLE001
                logger.exception("Delayed suggestion refresh failed for shop=%s", shop)

        run_date = self._now() + timedelta(seconds=self._settings.refresh_delay_seconds)
        with self._lock:
            self._jobs[shop] = job_id
        self._scheduler.add_job(
            _run,
            trigger="date",
            run_date=run_date,
            id=job_id,
            name="Suggestion count refresh",
            replace_existing=True,
        )
        logger.debug("Suggestion refresh for shop=%s scheduled at %s", shop, run_date.isoformat())
