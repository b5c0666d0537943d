"""
shopgauge/clients/sessions.py

Browser-session management and health endpoints.
"""

from __future__ import annotations

from shopgauge.clients.base import BaseApiClient
from shopgauge.schemas.auth import HealthSummary, HeartbeatResult, SessionInfo, SessionLimit


class SessionsClient(BaseApiClient):
    """
    Client for `/sessions/*`.
    """

    def heartbeat(self) -> HeartbeatResult:
        payload = self._request_json(method="POST", path="/sessions/heartbeat")
        return self._parse(HeartbeatResult, payload if isinstance(payload, dict) else {})

    def active_sessions(self) -> list[SessionInfo]:
        payload = self._request_json(method="GET", path="/sessions/active")
        rows = payload.get("sessions", []) if isinstance(payload, dict) else []
        return [self._parse(SessionInfo, row) for row in rows]

    def limit_check(self) -> SessionLimit:
        payload = self._request_json(method="GET", path="/sessions/limit-check")
        return self._parse(SessionLimit, payload if isinstance(payload, dict) else {})

    def terminate(self, session_id: str) -> None:
        self._request_json(method="POST", path="/sessions/terminate", json={"sessionId": session_id})

    def terminate_others(self) -> None:
        self._request_json(method="POST", path="/sessions/terminate-others")


class HealthClient(BaseApiClient):
    """
    Client for `/health/*`. Health checks never need the auth cookie.
    """

    def summary(self) -> HealthSummary:
        payload = self._request_json(method="GET", path="/health/summary")
        return self._parse(HealthSummary, payload if isinstance(payload, dict) else {})
