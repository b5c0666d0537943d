"""
shopgauge/schemas/auth.py

Authentication and session metadata DTOs.
"""

from __future__ import annotations

from pydantic import Field

from shopgauge.schemas.base import ApiModel


class AuthStatus(ApiModel):
    """
    Response of `/auth/shopify/me` for the current browser session.
    """

    shop: str | None = None
    authenticated: bool = False
    session_id: str | None = None


class RefreshResult(ApiModel):
    success: bool = False
    shop: str | None = None
    message: str | None = None
    error: str | None = None


class HeartbeatResult(ApiModel):
    success: bool = False
    message: str | None = None
    session_id: str | None = None
    shop: str | None = None
    active_session_count: int | None = None
    timestamp: int | None = None
    error: str | None = None


class SessionInfo(ApiModel):
    session_id: str
    is_current_session: bool = False
    created_at: str | None = None
    last_accessed_at: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    is_expired: bool = False
    expires_at: str | None = None


class SessionLimit(ApiModel):
    """
    Response of `/sessions/limit-check`.
    """

    limit_reached: bool = False
    max_sessions: int = 0
    current_session_count: int = 0
    shop: str | None = None
    current_session_id: str | None = None
    sessions: list[SessionInfo] = Field(default_factory=list)
    success: bool = True
    error: str | None = None


class HealthSummary(ApiModel):
    """
    Response of `/health/summary`; extra fields are kept for display.
    """

    model_config = ApiModel.model_config | {"extra": "allow"}

    application: str | None = None
    status: str = "unknown"

    @property
    def is_degraded(self) -> bool:
        return self.status.lower() != "healthy"
