"""
shopgauge/services

Page services and their per-session wiring.

Every browser session gets its own bundle: its own `requests.Session` (and
so its own shop cookie), cache and notification centre. Only the
background scheduler is shared; its jobs are namespaced by `session_id`.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from apscheduler.schedulers.base import BaseScheduler

from shopgauge.cache import DashboardCache
from shopgauge.clients import ApiClients, build_api_clients
from shopgauge.config import ApiSettings
from shopgauge.logging_utils import log_event
from shopgauge.notifications import NotificationCenter
from shopgauge.scheduler import get_scheduler, remove_session_jobs, session_job_id
from shopgauge.services.admin_service import AdminService
from shopgauge.services.auth_service import AuthService
from shopgauge.services.competitors_service import CompetitorsService
from shopgauge.services.dashboard_service import DashboardService
from shopgauge.services.discovery_service import DiscoveryOutcome, DiscoveryService
from shopgauge.services.privacy_service import PrivacyService
from shopgauge.services.service_status import ServiceStatus, ServiceStatusMonitor
from shopgauge.services.session_service import SessionHeartbeat, SessionLimitService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Services:
    """
    Every page service for one browser session.
    """

    session_id: str
    clients: ApiClients
    scheduler: BaseScheduler
    notifications: NotificationCenter
    cache: DashboardCache
    auth: AuthService
    dashboard: DashboardService
    competitors: CompetitorsService
    discovery: DiscoveryService
    admin: AdminService
    privacy: PrivacyService
    session_limit: SessionLimitService
    heartbeat: SessionHeartbeat
    service_status: ServiceStatusMonitor

    def shutdown(self) -> None:
        """
        Stop this session's background work (sign-out or session end).
        """

        self.heartbeat.stop()
        self.discovery.shutdown()
        removed = remove_session_jobs(self.scheduler, self.session_id)
        log_event(logger, logging.INFO, "session_shutdown", session_id=self.session_id, jobs_removed=removed)


def build_services(
    clients: ApiClients,
    *,
    scheduler: BaseScheduler | None = None,
    session_id: str | None = None,
    notifications: NotificationCenter | None = None,
    cache: DashboardCache | None = None,
) -> Services:
    scheduler = scheduler if scheduler is not None else get_scheduler()
    session_id = session_id or uuid.uuid4().hex
    notifications = notifications or NotificationCenter()
    cache = cache or DashboardCache()
    discovery = DiscoveryService(
        client=clients.competitors,
        notifications=notifications,
        scheduler=scheduler,
        session_id=session_id,
    )
    return Services(
        session_id=session_id,
        clients=clients,
        scheduler=scheduler,
        notifications=notifications,
        cache=cache,
        auth=AuthService(client=clients.auth, cache=cache, notifications=notifications),
        dashboard=DashboardService(client=clients.analytics, cache=cache, notifications=notifications),
        competitors=CompetitorsService(
            client=clients.competitors,
            notifications=notifications,
            discovery=discovery,
        ),
        discovery=discovery,
        admin=AdminService(client=clients.admin, notifications=notifications),
        privacy=PrivacyService(client=clients.privacy, admin=clients.admin, notifications=notifications),
        session_limit=SessionLimitService(client=clients.sessions),
        heartbeat=SessionHeartbeat(
            client=clients.sessions,
            scheduler=scheduler,
            job_id=session_job_id(session_id, "session-heartbeat"),
        ),
        service_status=ServiceStatusMonitor(client=clients.health),
    )


def open_browser_session(
    *,
    api_settings: ApiSettings | None = None,
    scheduler: BaseScheduler | None = None,
    shop: str | None = None,
) -> Services:
    """
    Build a fresh bundle for a new browser session.

    `shop` is the store the browser already knows about (its `shop` cookie
    or the `?shop=` OAuth redirect parameter); it is carried into the new
    session's cookie jar so API calls are made on that store's behalf.
    """

    services = build_services(build_api_clients(api_settings), scheduler=scheduler)
    if shop:
        services.auth.adopt_shop(shop)
    log_event(logger, logging.INFO, "browser_session_opened", session_id=services.session_id)
    return services


__all__ = [
    "AdminService",
    "AuthService",
    "CompetitorsService",
    "DashboardService",
    "DiscoveryOutcome",
    "DiscoveryService",
    "PrivacyService",
    "ServiceStatus",
    "ServiceStatusMonitor",
    "Services",
    "SessionHeartbeat",
    "SessionLimitService",
    "build_services",
    "open_browser_session",
]
