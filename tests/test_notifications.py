"""
tests/test_notifications.py

Notification centre used for toasts and the sidebar inbox.
"""

from __future__ import annotations

from shopgauge.notifications import NotificationCenter


class TestNotificationCenter:
    def test_levels_and_categories(self, notifications) -> None:
        notifications.success("Saved", category="Admin")
        notifications.error("Broken")
        levels = [(item.level, item.category) for item in notifications.all()]
        assert levels == [("success", "Admin"), ("error", "General")]

    def test_drain_keeps_persistent_items(self, notifications) -> None:
        notifications.info("toast")
        notifications.warning("sticky", persistent=True)
        drained = notifications.drain()
        assert [item.message for item in drained] == ["toast"]
        assert [item.message for item in notifications.all()] == ["sticky"]

    def test_mark_all_read(self, notifications) -> None:
        notifications.info("one")
        notifications.info("two")
        notifications.mark_all_read()
        assert notifications.unread() == []

    def test_dismiss(self, notifications) -> None:
        item = notifications.info("one")
        assert notifications.dismiss(item.id)
        assert not notifications.dismiss(item.id)

    def test_clear_respects_persistent_flag(self, notifications) -> None:
        notifications.info("toast")
        notifications.success("sticky", persistent=True)
        notifications.clear()
        assert [item.message for item in notifications.all()] == ["sticky"]
        notifications.clear(include_persistent=True)
        assert notifications.all() == []

    def test_oldest_items_are_dropped_when_full(self) -> None:
        center = NotificationCenter(max_notifications=2)
        for message in ("a", "b", "c"):
            center.info(message)
        assert [item.message for item in center.all()] == ["b", "c"]

    def test_ids_are_unique(self, notifications) -> None:
        ids = {notifications.info(str(i)).id for i in range(5)}
        assert len(ids) == 5
