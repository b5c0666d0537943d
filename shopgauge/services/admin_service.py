"""
shopgauge/services/admin_service.py

Integration secrets, notification channel tests and audit logs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from shopgauge.clients.admin import AdminClient, AuditScope
from shopgauge.clients.errors import ApiError
from shopgauge.notifications import NotificationCenter
from shopgauge.schemas.admin import AuditLogEntry, AuditLogPage

logger = logging.getLogger(__name__)

ADMIN_CATEGORY = "Admin"

IntegrationState = Literal["enabled", "disabled", "unknown"]

INTEGRATION_LABELS: dict[str, str] = {
    "shopify.api.key": "Shopify API Key",
    "shopify.api.secret": "Shopify API Secret",
    "serpapi.api.key": "SerpAPI Key",
    "sendgrid.api.key": "SendGrid API Key",
    "twilio.account.sid": "Twilio Account SID",
    "twilio.auth.token": "Twilio Auth Token",
}


@dataclass(frozen=True)
class SecretView:
    key: str
    label: str
    masked_value: str
    exists: bool
    is_integration: bool


@dataclass(frozen=True)
class IntegrationView:
    sendgrid: IntegrationState = "unknown"
    twilio: IntegrationState = "unknown"


@dataclass(frozen=True)
class AuditLogView:
    entries: list[AuditLogEntry]
    total_count: int
    page: int
    size: int
    actions: list[str]


class AdminService:
    def __init__(self, *, client: AdminClient, notifications: NotificationCenter) -> None:
        self._client = client
        self._notifications = notifications

    def secrets(self) -> list[SecretView]:
        """
        Known integration keys first (present or not), then any other secrets.
        """

        try:
            stored = {secret.key: secret for secret in self._client.list_secrets()}
        except ApiError as exc:
            logger.error("Failed to fetch secrets: %s", exc)
            self._notifications.error("Failed to fetch secrets", category=ADMIN_CATEGORY)
            return []

        views = []
        for key, label in INTEGRATION_LABELS.items():
            secret = stored.get(key)
            views.append(
                SecretView(
                    key=key,
                    label=label,
                    masked_value=secret.masked_value if secret else "",
                    exists=secret is not None,
                    is_integration=True,
                )
            )
        for key in sorted(set(stored) - set(INTEGRATION_LABELS)):
            views.append(
                SecretView(
                    key=key,
                    label=key,
                    masked_value=stored[key].masked_value,
                    exists=True,
                    is_integration=False,
                )
            )
        return views

    def reveal_secret(self, key: str) -> str | None:
        try:
            return self._client.get_secret(key).value
        except ApiError as exc:
            logger.error("Failed to read secret key=%s: %s", key, exc)
            self._notifications.error("Failed to read secret", category=ADMIN_CATEGORY)
            return None

    def save_secret(self, key: str, value: str, *, is_update: bool = False) -> bool:
        key = key.strip()
        if not key or not value.strip():
            self._notifications.error("Secret key and value are required", category=ADMIN_CATEGORY)
            return False

        try:
            self._client.store_secret(key, value)
        except ApiError as exc:
            logger.error("Failed to store secret key=%s: %s", key, exc)
            message = "Failed to update secret" if is_update else "Failed to add secret"
            self._notifications.error(message, category=ADMIN_CATEGORY)
            return False

        message = "Secret updated successfully" if is_update else "Secret added successfully"
        self._notifications.success(message, category=ADMIN_CATEGORY)
        return True

    def delete_secret(self, key: str) -> bool:
        try:
            self._client.delete_secret(key)
        except ApiError as exc:
            logger.error("Failed to delete secret key=%s: %s", key, exc)
            self._notifications.error("Failed to delete secret", category=ADMIN_CATEGORY)
            return False
        self._notifications.success("Secret deleted successfully", category=ADMIN_CATEGORY)
        return True

    def integration_status(self) -> IntegrationView:
        try:
            status = self._client.integration_status()
        except ApiError as exc:
            logger.warning("Integration status unavailable: %s", exc)
            return IntegrationView()
        return IntegrationView(
            sendgrid="enabled" if status.sendgrid_enabled else "disabled",
            twilio="enabled" if status.twilio_enabled else "disabled",
        )

    def send_test_email(self, to: str) -> bool:
        return self._send_test("email", to)

    def send_test_sms(self, to: str) -> bool:
        return self._send_test("SMS", to)

    def audit_logs(
        self,
        *,
        scope: AuditScope = "active",
        page: int = 0,
        size: int = 25,
        action: str | None = None,
        search: str = "",
    ) -> AuditLogView:
        try:
            result = self._client.audit_logs(scope=scope, page=page, size=size)
        except ApiError as exc:
            logger.error("Failed to load audit logs scope=%s: %s", scope, exc)
            self._notifications.error("Failed to load audit logs", category=ADMIN_CATEGORY)
            result = AuditLogPage(page=page, size=size)
        return filter_audit_logs(result, action=action, search=search)

    def _send_test(self, channel: str, to: str) -> bool:
        to = to.strip()
        if not to:
            self._notifications.error(f"Enter a recipient for the test {channel}", category=ADMIN_CATEGORY)
            return False

        send = self._client.test_email if channel == "email" else self._client.test_sms
        try:
            payload = send(to)
        except ApiError as exc:
            logger.error("Test %s failed to=%s: %s", channel, to, exc)
            self._notifications.error(f"Failed to send test {channel}", category=ADMIN_CATEGORY)
            return False

        # The endpoint may answer 200 with success=false.
        if payload.get("success") is False:
            detail = payload.get("error") or payload.get("message") or f"Failed to send test {channel}"
            self._notifications.error(str(detail), category=ADMIN_CATEGORY)
            return False

        self._notifications.success(f"Test {channel} sent successfully!", category=ADMIN_CATEGORY)
        return True


def filter_audit_logs(
    result: AuditLogPage,
    *,
    action: str | None = None,
    search: str = "",
) -> AuditLogView:
    """
    Apply the page's local action filter and free-text search.

    Search matches action, details or IP address, case-insensitively.
    """

    needle = search.strip().lower()
    entries = []
    for entry in result.audit_logs:
        if action and action != "all" and entry.action != action:
            continue
        if needle and not (
            needle in entry.action.lower()
            or needle in entry.details.lower()
            or (entry.ip_address and needle in entry.ip_address.lower())
        ):
            continue
        entries.append(entry)

    return AuditLogView(
        entries=entries,
        total_count=result.total_count,
        page=result.page,
        size=result.size,
        actions=sorted({entry.action for entry in result.audit_logs}),
    )
