"""
shopgauge/clients/privacy.py

GDPR/CCPA privacy-rights endpoints.
"""

from __future__ import annotations

from shopgauge.clients.base import BaseApiClient
from shopgauge.schemas.privacy import ComplianceReport, DataDeletionResult, DataExport


class PrivacyClient(BaseApiClient):
    """
    Client for `/analytics/privacy/*`.
    """

    def compliance_report(self) -> ComplianceReport:
        payload = self._request_json(method="GET", path="/analytics/privacy/compliance-report")
        return self._parse(ComplianceReport, payload if isinstance(payload, dict) else {})

    def request_data_deletion(self, customer_id: str) -> DataDeletionResult:
        payload = self._request_json(
            method="POST",
            path="/analytics/privacy/data-deletion",
            json={"customer_id": customer_id},
        )
        return self._parse(DataDeletionResult, payload if isinstance(payload, dict) else {})

    def export_data(self) -> DataExport:
        payload = self._request_json(method="GET", path="/analytics/privacy/data-export")
        return self._parse(DataExport, payload if isinstance(payload, dict) else {})
