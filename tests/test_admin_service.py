"""
tests/test_admin_service.py

Admin panel: secrets, integration checks and audit log filtering.
"""

from __future__ import annotations

import pytest

from shopgauge.schemas.admin import AuditLogEntry, AuditLogPage
from shopgauge.services.admin_service import INTEGRATION_LABELS, AdminService, filter_audit_logs


@pytest.fixture()
def admin(clients, notifications) -> AdminService:
    return AdminService(client=clients.admin, notifications=notifications)


# ---------------------------------------------------------------------------
# Secrets
# ---------------------------------------------------------------------------


class TestSecrets:
    def test_integration_keys_listed_first(self, admin, session, respond) -> None:
        session.queue(
            respond(
                200,
                [
                    {"key": "zeta.token", "value": "zzzzzzzz"},
                    {"key": "sendgrid.api.key", "value": "SG.abcdefgh1234"},
                    {"key": "alpha.token", "value": "abc"},
                ],
            )
        )
        views = admin.secrets()
        assert [view.key for view in views[: len(INTEGRATION_LABELS)]] == list(INTEGRATION_LABELS)
        assert [view.key for view in views[len(INTEGRATION_LABELS):]] == ["alpha.token", "zeta.token"]

        sendgrid = next(view for view in views if view.key == "sendgrid.api.key")
        assert sendgrid.exists
        assert sendgrid.masked_value.endswith("1234")
        assert "SG." not in sendgrid.masked_value
        twilio = next(view for view in views if view.key == "twilio.auth.token")
        assert not twilio.exists
        assert views[-1].masked_value == "****zzzz"

    def test_list_failure(self, admin, session, respond, notifications) -> None:
        session.queue(respond(500, {}))
        assert admin.secrets() == []
        assert notifications.all()[-1].message == "Failed to fetch secrets"

    def test_reveal(self, admin, session, respond) -> None:
        session.queue(respond(200, {"key": "serpapi.api.key", "value": "plain-value"}))
        assert admin.reveal_secret("serpapi.api.key") == "plain-value"
        assert session.paths() == ["/api/admin/secrets/serpapi.api.key"]

    def test_save_requires_key_and_value(self, admin, session, notifications) -> None:
        assert not admin.save_secret("key", "   ")
        assert session.calls == []
        assert notifications.all()[-1].level == "error"

    @pytest.mark.parametrize(
        "is_update,message",
        [(False, "Secret added successfully"), (True, "Secret updated successfully")],
    )
    def test_save(self, admin, session, respond, notifications, is_update, message) -> None:
        session.queue(respond(200, {}))
        assert admin.save_secret(" custom.key ", "value", is_update=is_update)
        assert session.calls[0]["json"] == {"key": "custom.key", "value": "value"}
        assert notifications.all()[-1].message == message

    def test_delete_failure(self, admin, session, respond, notifications) -> None:
        session.queue(respond(404, {"error": "missing"}))
        assert not admin.delete_secret("custom.key")
        assert notifications.all()[-1].message == "Failed to delete secret"


# ---------------------------------------------------------------------------
# Integrations
# ---------------------------------------------------------------------------


class TestIntegrations:
    def test_status(self, admin, session, respond) -> None:
        session.queue(respond(200, {"sendGridEnabled": True, "twilioEnabled": False}))
        view = admin.integration_status()
        assert view.sendgrid == "enabled"
        assert view.twilio == "disabled"

    def test_status_unknown_on_error(self, admin, session, respond) -> None:
        session.queue(respond(503, {}))
        view = admin.integration_status()
        assert (view.sendgrid, view.twilio) == ("unknown", "unknown")

    def test_email_success(self, admin, session, respond, notifications) -> None:
        session.queue(respond(200, {"success": True}))
        assert admin.send_test_email("ops@example.com")
        assert session.calls[0]["json"] == {"to": "ops@example.com"}
        assert notifications.all()[-1].message == "Test email sent successfully!"

    def test_sms_reported_failure(self, admin, session, respond, notifications) -> None:
        session.queue(respond(200, {"success": False, "error": "Twilio not configured"}))
        assert not admin.send_test_sms("+15550100")
        assert notifications.all()[-1].message == "Twilio not configured"

    def test_blank_recipient(self, admin, session) -> None:
        assert not admin.send_test_sms("  ")
        assert session.calls == []


# ---------------------------------------------------------------------------
# Audit logs
# ---------------------------------------------------------------------------


def _page() -> AuditLogPage:
    return AuditLogPage(
        audit_logs=[
            AuditLogEntry(id=1, action="LOGIN", details="Merchant logged in", ip_address="10.0.0.1"),
            AuditLogEntry(id=2, action="DATA_EXPORT", details="Export requested", ip_address="10.0.0.2"),
            AuditLogEntry(id=3, action="LOGIN", details="Second device", ip_address="192.168.1.9"),
        ],
        page=0,
        size=25,
        total_count=3,
    )


class TestAuditLogs:
    def test_action_filter(self) -> None:
        view = filter_audit_logs(_page(), action="LOGIN")
        assert [entry.id for entry in view.entries] == [1, 3]
        assert view.actions == ["DATA_EXPORT", "LOGIN"]

    def test_all_action_keeps_everything(self) -> None:
        assert len(filter_audit_logs(_page(), action="all").entries) == 3

    @pytest.mark.parametrize(
        "search,expected",
        [("export", [2]), ("192.168", [3]), ("login", [1, 3]), ("", [1, 2, 3])],
    )
    def test_search(self, search: str, expected: list[int]) -> None:
        assert [entry.id for entry in filter_audit_logs(_page(), search=search).entries] == expected

    def test_scope_paths(self, admin, session, respond) -> None:
        session.route("GET", "/api/analytics/audit-logs", respond(200, {"audit_logs": [], "total_count": 0}))
        session.route("GET", "/api/admin/audit-logs/deleted-shops", respond(200, {"audit_logs": []}))
        admin.audit_logs(scope="active")
        admin.audit_logs(scope="deleted", page=2, size=10)
        assert session.paths() == ["/api/analytics/audit-logs", "/api/admin/audit-logs/deleted-shops"]
        assert session.calls[1]["params"] == {"page": 2, "size": 10}

    def test_load_failure_returns_empty_view(self, admin, session, respond, notifications) -> None:
        session.queue(respond(500, {}))
        view = admin.audit_logs(scope="all", page=1, size=5)
        assert view.entries == []
        assert (view.page, view.size) == (1, 5)
        assert notifications.all()[-1].message == "Failed to load audit logs"
