"""
Per-shop cooldown for expensive server-side jobs.
"""

from __future__ import annotations

import threading
import time
from typing import Callable


class ShopCooldown:
    """
    Enforces a minimum interval between triggers per shop domain.

    Never sleeps: a call inside the cooldown window is refused.
    """

    def __init__(
        self,
        *,
        cooldown_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cooldown_seconds = max(0.0, cooldown_seconds)
        self._clock = clock
        self._last_trigger_by_shop: dict[str, float] = {}
        self._lock = threading.Lock()

    def acquire(self, shop: str) -> bool:
        """
        Record a trigger for `shop` if the cooldown has elapsed.
        """

        key = shop.strip().lower()
        with self._lock:
            now = self._clock()
            last_time = self._last_trigger_by_shop.get(key)
            if last_time is not None and now - last_time < self._cooldown_seconds:
                return False
            self._last_trigger_by_shop[key] = now
            return True

    def remaining(self, shop: str) -> float:
        """
        Seconds until `shop` may trigger again (0 when allowed now).
        """

        key = shop.strip().lower()
        with self._lock:
            last_time = self._last_trigger_by_shop.get(key)
            if last_time is None:
                return 0.0
            return max(0.0, self._cooldown_seconds - (self._clock() - last_time))

    def reset(self, shop: str) -> None:
        with self._lock:
            self._last_trigger_by_shop.pop(shop.strip().lower(), None)
