"""
shopgauge/clients/admin.py

Admin secrets, integration and audit-log endpoints.
"""

from __future__ import annotations

from typing import Any, Literal

from shopgauge.clients.base import BaseApiClient
from shopgauge.schemas.admin import AuditLogPage, IntegrationStatus, Secret

AuditScope = Literal["active", "deleted", "all"]

AUDIT_LOG_PATHS: dict[str, str] = {
    "active": "/analytics/audit-logs",
    "deleted": "/admin/audit-logs/deleted-shops",
    "all": "/admin/audit-logs/all",
}


class AdminClient(BaseApiClient):
    """
    Client for `/admin/*`.
    """

    def list_secrets(self) -> list[Secret]:
        payload = self._request_json(method="GET", path="/admin/secrets")
        rows = payload if isinstance(payload, list) else []
        return [self._parse(Secret, row) for row in rows]

    def get_secret(self, key: str) -> Secret:
        payload = self._request_json(method="GET", path=f"/admin/secrets/{key}")
        value = payload.get("value", "") if isinstance(payload, dict) else ""
        return Secret(key=key, value=value)

    def store_secret(self, key: str, value: str) -> None:
        self._request_json(method="POST", path="/admin/secrets", json={"key": key, "value": value})

    def delete_secret(self, key: str) -> None:
        self._request_json(method="DELETE", path=f"/admin/secrets/{key}")

    def integration_status(self) -> IntegrationStatus:
        payload = self._request_json(method="GET", path="/admin/integrations/status")
        return self._parse(IntegrationStatus, payload if isinstance(payload, dict) else {})

    def test_email(self, to: str) -> dict[str, Any]:
        return self._post_dict("/admin/integrations/test-email", {"to": to})

    def test_sms(self, to: str) -> dict[str, Any]:
        return self._post_dict("/admin/integrations/test-sms", {"to": to})

    def audit_logs(self, *, scope: AuditScope = "active", page: int = 0, size: int = 25) -> AuditLogPage:
        try:
            path = AUDIT_LOG_PATHS[scope]
        except KeyError as exc:
            raise ValueError(f"Unknown audit log scope: {scope!r}") from exc
        payload = self._request_json(method="GET", path=path, params={"page": page, "size": size})
        return self._parse(AuditLogPage, payload if isinstance(payload, dict) else {})

    def _post_dict(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        payload = self._request_json(method="POST", path=path, json=body)
        return payload if isinstance(payload, dict) else {}
