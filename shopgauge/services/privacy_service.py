"""
shopgauge/services/privacy_service.py

GDPR/CCPA privacy-rights actions for the Privacy page.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from shopgauge.clients.admin import AdminClient
from shopgauge.clients.errors import ApiError
from shopgauge.clients.privacy import PrivacyClient
from shopgauge.notifications import NotificationCenter
from shopgauge.schemas.admin import AuditLogPage
from shopgauge.schemas.privacy import ComplianceReport, DataDeletionResult, DataExport

logger = logging.getLogger(__name__)

PRIVACY_CATEGORY = "Privacy"


@dataclass(frozen=True)
class ExportDownload:
    export: DataExport
    content: bytes
    file_name: str
    mime: str = "application/json"


def export_file_name(shop: str | None) -> str:
    return f"shopgauge-data-export-{shop or 'store'}.json"


class PrivacyService:
    def __init__(
        self,
        *,
        client: PrivacyClient,
        admin: AdminClient,
        notifications: NotificationCenter,
    ) -> None:
        self._client = client
        self._admin = admin
        self._notifications = notifications

    def compliance_report(self) -> ComplianceReport | None:
        try:
            return self._client.compliance_report()
        except ApiError as exc:
            logger.error("Compliance report unavailable: %s", exc)
            self._notifications.error("Failed to load compliance report", category=PRIVACY_CATEGORY)
            return None

    def request_data_deletion(self, customer_id: str) -> DataDeletionResult | None:
        """
        Ask the server to erase one customer's data.

        Raises:
            ValueError: If `customer_id` is blank.
        """

        customer_id = customer_id.strip()
        if not customer_id:
            raise ValueError("customer_id is required")

        try:
            result = self._client.request_data_deletion(customer_id)
        except ApiError as exc:
            logger.error("Data deletion request failed customer_id=%s: %s", customer_id, exc)
            self._notifications.error(
                exc.message or "Failed to process data deletion request",
                category=PRIVACY_CATEGORY,
            )
            return None

        self._notifications.success(
            result.message or f"Data deletion completed for customer {customer_id}",
            category=PRIVACY_CATEGORY,
            persistent=True,
        )
        return result

    def export_data(self, shop: str | None = None) -> ExportDownload | None:
        try:
            export = self._client.export_data()
        except ApiError as exc:
            logger.error("Data export failed: %s", exc)
            self._notifications.error("Failed to export data", category=PRIVACY_CATEGORY)
            return None

        content = json.dumps(export.model_dump(mode="json"), indent=2, sort_keys=True).encode("utf-8")
        self._notifications.success("Data export ready for download", category=PRIVACY_CATEGORY)
        return ExportDownload(
            export=export,
            content=content,
            file_name=export_file_name(shop or export.shop),
        )

    def audit_logs(self, *, page: int = 0, size: int = 25) -> AuditLogPage:
        try:
            return self._admin.audit_logs(scope="active", page=page, size=size)
        except ApiError as exc:
            logger.error("Failed to load audit logs: %s", exc)
            self._notifications.error("Failed to load audit logs", category=PRIVACY_CATEGORY)
            return AuditLogPage(page=page, size=size)
