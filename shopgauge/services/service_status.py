"""
shopgauge/services/service_status.py

Debounced API availability check behind the service-unavailable banner.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from shopgauge.clients.errors import ApiError
from shopgauge.clients.sessions import HealthClient
from shopgauge.config import ServiceStatusSettings, get_service_status_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceStatus:
    available: bool
    checked_at: datetime
    error: str | None = None
    degraded: bool = False


class ServiceStatusMonitor:
    def __init__(
        self,
        *,
        client: HealthClient,
        settings: ServiceStatusSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._settings = settings or get_service_status_settings()
        self._clock = clock
        self._lock = threading.Lock()
        self._last_checked: float | None = None
        self.status: ServiceStatus | None = None

    def check(self, *, force: bool = False) -> ServiceStatus:
        """
        Ping `/health/summary`, reusing the last result inside the debounce window.
        """

        with self._lock:
            if (
                not force
                and self.status is not None
                and self._last_checked is not None
                and self._clock() - self._last_checked < self._settings.min_interval_seconds
            ):
                return self.status
            self._last_checked = self._clock()

        try:
            summary = self._client.summary()
        except ApiError as exc:
            logger.warning("Service health check failed: %s", exc)
            status = ServiceStatus(
                available=False,
                checked_at=datetime.now(timezone.utc),
                error=exc.message,
            )
        else:
            status = ServiceStatus(
                available=True,
                checked_at=datetime.now(timezone.utc),
                degraded=summary.is_degraded,
            )

        with self._lock:
            self.status = status
        return status
