"""
shopgauge/cache.py

Per-shop cache for dashboard API responses.

Entries live under one key per shop domain (`dashboard_cache_<shop>_v3`),
expire after the configured TTL (two hours, matching the server cache) and
are invalidated wholesale on logout, disconnect or reconnect.
"""

from __future__ import annotations

import copy
import logging
import threading
import time
from collections.abc import MutableMapping
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Callable, Literal

from shopgauge.config import CacheSettings, get_cache_settings
from shopgauge.logging_utils import log_event

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "dashboard_cache"

CacheSource = Literal["session", "redis", "api"]

_RESERVED_KEYS = frozenset({"version", "shop"})


def cache_key(shop: str) -> str:
    """
    Storage key holding every cached card for one shop.
    """

    return f"{CACHE_KEY_PREFIX}_{shop}_v3"


@dataclass(frozen=True)
class CacheEntry:
    """
    One cached API payload.
    """

    data: Any
    timestamp: float
    last_updated: datetime
    version: str
    shop: str
    source: CacheSource = "api"
    ttl_seconds: float | None = None


@dataclass(frozen=True)
class CacheMetadata:
    """
    Monitoring view of one cache entry.
    """

    age_minutes: int
    is_expired: bool
    source: CacheSource
    last_updated: datetime
    shop: str


class DashboardCache:
    """
    Thread-safe TTL cache keyed by shop domain and card name.
    """

    def __init__(
        self,
        *,
        settings: CacheSettings | None = None,
        store: MutableMapping[str, dict[str, Any]] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings or get_cache_settings()
        self._store: MutableMapping[str, dict[str, Any]] = store if store is not None else {}
        self._clock = clock
        self._lock = threading.RLock()

    @property
    def version(self) -> str:
        return self._settings.version

    # -- freshness -------------------------------------------------------

    def age_seconds(self, entry: CacheEntry) -> float:
        return max(0.0, self._clock() - entry.timestamp)

    def age_minutes(self, entry: CacheEntry) -> int:
        return int(round(self.age_seconds(entry) / 60))

    def is_expired(self, entry: CacheEntry) -> bool:
        ttl = entry.ttl_seconds if entry.ttl_seconds is not None else self._settings.ttl_seconds
        return self.age_seconds(entry) > ttl

    def is_fresh(self, entry: CacheEntry | None) -> bool:
        return (
            entry is not None
            and entry.version == self._settings.version
            and not self.is_expired(entry)
        )

    def should_warn(self, entry: CacheEntry) -> bool:
        """
        True when the entry is getting old but has not yet expired.
        """

        age = self.age_seconds(entry)
        return self._settings.warning_seconds < age and not self.is_expired(entry)

    # -- reads and writes ------------------------------------------------

    def get(
        self,
        shop: str,
        key: str,
        fallback: Callable[[], Any] | None = None,
    ) -> CacheEntry | None:
        """
        Return a fresh entry, or populate one from `fallback` on a miss.

        Entries found here are reported with source `session`; data obtained
        through `fallback` (the server-side cache) is stored with source
        `redis`. A failing fallback is logged and treated as a miss.
        """

        if not shop:
            logger.warning("Cache read for key=%s without a shop", key)
            return None

        entry = self._read(shop, key)
        if entry is not None and self.is_fresh(entry):
            log_event(
                logger,
                logging.DEBUG,
                "cache_hit",
                shop=shop,
                key=key,
                age_minutes=self.age_minutes(entry),
            )
            return replace(entry, data=copy.deepcopy(entry.data), source="session")

        if entry is not None:
            log_event(
                logger,
                logging.INFO,
                "cache_stale",
                shop=shop,
                key=key,
                age_minutes=self.age_minutes(entry),
                version=entry.version,
            )

        if fallback is not None:
            try:
                data = fallback()
            except Exception as exc:
                log_event(
                    logger,
                    logging.WARNING,
                    "cache_fallback_failed",
                    shop=shop,
                    key=key,
                    error=str(exc),
                )
            else:
                if data:
                    return self.set(shop, key, data, source="redis")

        log_event(logger, logging.DEBUG, "cache_miss", shop=shop, key=key)
        return None

    def set(
        self,
        shop: str,
        key: str,
        data: Any,
        *,
        source: CacheSource = "api",
        ttl_seconds: float | None = None,
    ) -> CacheEntry | None:
        if not shop:
            logger.warning("Cache write for key=%s without a shop; ignoring", key)
            return None
        if key in _RESERVED_KEYS:
            raise ValueError(f"'{key}' is a reserved cache key")

        now = self._clock()
        entry = CacheEntry(
            data=data,
            timestamp=now,
            last_updated=datetime.fromtimestamp(now, tz=timezone.utc),
            version=self._settings.version,
            shop=shop,
            source=source,
            ttl_seconds=ttl_seconds,
        )
        with self._lock:
            bucket = self._store.get(cache_key(shop)) or {}
            bucket[key] = entry
            bucket["version"] = self._settings.version
            bucket["shop"] = shop
            self._store[cache_key(shop)] = bucket
        log_event(logger, logging.DEBUG, "cache_set", shop=shop, key=key, source=source)
        return entry

    def get_or_fetch(
        self,
        shop: str,
        key: str,
        fetch: Callable[[], Any],
        *,
        force_refresh: bool = False,
    ) -> Any:
        """
        Return cached data while fresh, otherwise fetch, store and return.

        Errors raised by `fetch` propagate; nothing is cached for them.
        """

        if not force_refresh:
            entry = self._read(shop, key) if shop else None
            if self.is_fresh(entry):
                return copy.deepcopy(entry.data)

        data = fetch()
        self.set(shop, key, data, source="api")
        return copy.deepcopy(data)

    # -- inspection ------------------------------------------------------

    def metadata(self, shop: str, key: str) -> CacheMetadata | None:
        entry = self._read(shop, key) if shop else None
        if entry is None:
            return None
        return CacheMetadata(
            age_minutes=self.age_minutes(entry),
            is_expired=self.is_expired(entry),
            source=entry.source,
            last_updated=entry.last_updated,
            shop=entry.shop,
        )

    def keys(self, shop: str) -> list[str]:
        if not shop:
            return []
        with self._lock:
            bucket = self._store.get(cache_key(shop)) or {}
            return [name for name in bucket if name not in _RESERVED_KEYS]

    def stats(self, shop: str) -> dict[str, Any] | None:
        if not shop:
            return None
        names = self.keys(shop)
        return {
            "shop": shop,
            "total_keys": len(names),
            "keys": {name: self.metadata(shop, name) for name in names},
        }

    def most_recent_update(self, shop: str) -> datetime | None:
        updates = [
            entry.last_updated
            for entry in (self._read(shop, name) for name in self.keys(shop))
            if entry is not None
        ]
        return max(updates) if updates else None

    def has_aging_entries(self, shop: str) -> bool:
        """
        True when any card for `shop` is close to expiry.
        """

        entries = (self._read(shop, name) for name in self.keys(shop))
        return any(entry is not None and self.should_warn(entry) for entry in entries)

    def last_updated_text(self, shop: str) -> str:
        last_update = self.most_recent_update(shop)
        if last_update is None:
            return "Never updated"
        return describe_age(self._clock() - last_update.timestamp(), since=last_update)

    # -- invalidation ----------------------------------------------------

    def invalidate(self, shop: str) -> None:
        """
        Drop every cached card for `shop` (logout, disconnect, reconnect).
        """

        if not shop:
            logger.warning("Attempted to invalidate cache without a shop name")
            return
        with self._lock:
            self._store.pop(cache_key(shop), None)
        log_event(logger, logging.INFO, "cache_invalidated", shop=shop)

    def invalidate_key(self, shop: str, key: str) -> None:
        if not shop:
            return
        with self._lock:
            bucket = self._store.get(cache_key(shop))
            if bucket is not None:
                bucket.pop(key, None)
        log_event(logger, logging.INFO, "cache_key_invalidated", shop=shop, key=key)

    def _read(self, shop: str, key: str) -> CacheEntry | None:
        with self._lock:
            bucket = self._store.get(cache_key(shop)) or {}
            entry = bucket.get(key)
        return entry if isinstance(entry, CacheEntry) else None


def describe_age(seconds: float, *, since: datetime | None = None) -> str:
    """
    Human-readable "last updated" text for an age in seconds.

    From one day on the text switches to the absolute time `since`, for
    example "Jan 15, 3:04 PM".
    """

    minutes = int(max(0.0, seconds) // 60)
    if minutes < 1:
        return "Just updated"
    if minutes == 1:
        return "1 minute ago"
    if minutes < 60:
        return f"{minutes} minutes ago"
    hours = minutes // 60
    if hours == 1:
        return "1 hour ago"
    if hours < 24:
        return f"{hours} hours ago"
    if since is None:
        days = hours // 24
        return "1 day ago" if days == 1 else f"{days} days ago"
    return f"{since:%b} {since.day}, {since.hour % 12 or 12}:{since:%M} {since:%p}"

