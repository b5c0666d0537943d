"""
shopgauge/clients package marker.
"""

from __future__ import annotations

from dataclasses import dataclass

import requests

from shopgauge.clients.admin import AdminClient
from shopgauge.clients.analytics import AnalyticsClient
from shopgauge.clients.auth import AuthClient
from shopgauge.clients.base import BaseApiClient, build_session
from shopgauge.clients.competitors import CompetitorsClient
from shopgauge.clients.errors import (
    ApiError,
    ApiRequestError,
    AuthenticationRequiredError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitedError,
    ServiceUnavailableError,
)
from shopgauge.clients.privacy import PrivacyClient
from shopgauge.clients.sessions import HealthClient, SessionsClient
from shopgauge.config import ApiSettings, get_api_settings


@dataclass(frozen=True)
class ApiClients:
    """
    Every resource client, sharing one cookie-carrying session.
    """

    session: requests.Session
    auth: AuthClient
    competitors: CompetitorsClient
    analytics: AnalyticsClient
    admin: AdminClient
    privacy: PrivacyClient
    sessions: SessionsClient
    health: HealthClient


def build_api_clients(
    settings: ApiSettings | None = None,
    session: requests.Session | None = None,
) -> ApiClients:
    """
    Build the client bundle for one browser session.
    """

    resolved = settings or get_api_settings()
    shared = session or build_session()
    return ApiClients(
        session=shared,
        auth=AuthClient(settings=resolved, session=shared),
        competitors=CompetitorsClient(settings=resolved, session=shared),
        analytics=AnalyticsClient(settings=resolved, session=shared),
        admin=AdminClient(settings=resolved, session=shared),
        privacy=PrivacyClient(settings=resolved, session=shared),
        sessions=SessionsClient(settings=resolved, session=shared),
        health=HealthClient(settings=resolved, session=shared),
    )


__all__ = [
    "AdminClient",
    "AnalyticsClient",
    "ApiClients",
    "ApiError",
    "ApiRequestError",
    "AuthClient",
    "AuthenticationRequiredError",
    "BaseApiClient",
    "CompetitorsClient",
    "HealthClient",
    "NotFoundError",
    "PermissionDeniedError",
    "PrivacyClient",
    "RateLimitedError",
    "ServiceUnavailableError",
    "SessionsClient",
    "build_api_clients",
]
