"""
shopgauge/schemas/admin.py

Admin panel DTOs: secrets, integration status and audit logs.
"""

from __future__ import annotations

from pydantic import AliasChoices, Field

from shopgauge.schemas.base import ApiModel, SnakeApiModel


class Secret(ApiModel):
    key: str
    value: str = ""

    @property
    def masked_value(self) -> str:
        """
        Value safe for display: last four characters only.
        """

        if len(self.value) <= 4:
            return "*" * len(self.value)
        return "*" * min(len(self.value) - 4, 12) + self.value[-4:]


class IntegrationStatus(SnakeApiModel):
    """
    Response of `/admin/integrations/status`.
    """

    sendgrid_enabled: bool | None = Field(
        default=None,
        validation_alias=AliasChoices("sendGridEnabled", "sendgridEnabled", "sendgrid_enabled"),
    )
    twilio_enabled: bool | None = Field(
        default=None,
        validation_alias=AliasChoices("twilioEnabled", "twilio_enabled"),
    )


class AuditLogEntry(ApiModel):
    id: int | None = None
    shop_id: int | None = None
    action: str = ""
    details: str = ""
    user_agent: str | None = None
    ip_address: str | None = None
    created_at: str | None = Field(
        default=None,
        validation_alias=AliasChoices("createdAt", "created_at", "timestamp"),
    )


class AuditLogPage(SnakeApiModel):
    audit_logs: list[AuditLogEntry] = Field(default_factory=list)
    page: int = 0
    size: int = 0
    total_count: int = 0
    shop: str | None = None
    filtered_by_action: str | None = None
    note: str | None = None
