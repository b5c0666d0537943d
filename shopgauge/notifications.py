"""
shopgauge/notifications.py

User-facing notification centre shared by every page.
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Literal

logger = logging.getLogger(__name__)

NotificationLevel = Literal["success", "error", "info", "warning"]

DEFAULT_MAX_NOTIFICATIONS = 50


@dataclass(frozen=True)
class Notification:
    id: int
    level: NotificationLevel
    message: str
    category: str = "General"
    persistent: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    read: bool = False


class NotificationCenter:
    """
    Bounded, thread-safe list of notifications.

    Transient notifications are drained by the UI and rendered as toasts;
    persistent ones stay in the list until dismissed or cleared explicitly.
    """

    def __init__(self, *, max_notifications: int = DEFAULT_MAX_NOTIFICATIONS) -> None:
        self._max_notifications = max(1, max_notifications)
        self._items: list[Notification] = []
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def notify(
        self,
        level: NotificationLevel,
        message: str,
        *,
        category: str = "General",
        persistent: bool = False,
    ) -> Notification:
        with self._lock:
            item = Notification(
                id=next(self._ids),
                level=level,
                message=message,
                category=category,
                persistent=persistent,
            )
            self._items.append(item)
            overflow = len(self._items) - self._max_notifications
            if overflow > 0:
                del self._items[:overflow]
        logger.debug("Notification level=%s category=%s message=%s", level, category, message)
        return item

    def success(self, message: str, *, category: str = "General", persistent: bool = False) -> Notification:
        return self.notify("success", message, category=category, persistent=persistent)

    def error(self, message: str, *, category: str = "General", persistent: bool = False) -> Notification:
        return self.notify("error", message, category=category, persistent=persistent)

    def info(self, message: str, *, category: str = "General", persistent: bool = False) -> Notification:
        return self.notify("info", message, category=category, persistent=persistent)

    def warning(self, message: str, *, category: str = "General", persistent: bool = False) -> Notification:
        return self.notify("warning", message, category=category, persistent=persistent)

    def all(self) -> list[Notification]:
        with self._lock:
            return list(self._items)

    def unread(self) -> list[Notification]:
        with self._lock:
            return [item for item in self._items if not item.read]

    def mark_all_read(self) -> None:
        with self._lock:
            self._items = [replace(item, read=True) for item in self._items]

    def dismiss(self, notification_id: int) -> bool:
        with self._lock:
            before = len(self._items)
            self._items = [item for item in self._items if item.id != notification_id]
            return len(self._items) != before

    def clear(self, *, include_persistent: bool = False) -> None:
        with self._lock:
            if include_persistent:
                self._items = []
            else:
                self._items = [item for item in self._items if item.persistent]

    def drain(self) -> list[Notification]:
        """
        Remove and return transient notifications, oldest first.
        """

        with self._lock:
            drained = [item for item in self._items if not item.persistent]
            self._items = [item for item in self._items if item.persistent]
        return drained
