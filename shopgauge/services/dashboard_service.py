"""
shopgauge/services/dashboard_service.py

Loads the analytics dashboard card by card through the shop cache.

Each card fails independently: one card's permission or rate-limit problem
never blanks the others. Only when the API is unreachable for every card
does the dashboard fall back to demo data.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Mapping

from shopgauge.cache import DashboardCache
from shopgauge.clients.analytics import AnalyticsClient
from shopgauge.clients.base import LOGIN_REQUIRED_MESSAGE
from shopgauge.clients.errors import (
    ApiError,
    AuthenticationRequiredError,
    PermissionDeniedError,
    ServiceUnavailableError,
)
from shopgauge.config import AppSettings, RetrySettings, get_app_settings, get_retry_settings
from shopgauge.demo import demo_dashboard
from shopgauge.domain.analytics import (
    DEFAULT_PERIOD_DAYS,
    UNIFIED_CACHE_PREFIX,
    AnalyticsDataError,
    UnifiedAnalytics,
    build_unified_analytics,
    unified_cache_key,
    validate_unified_analytics,
)
from shopgauge.domain.dashboard import (
    DASHBOARD_CARDS,
    PERMISSION_DENIED_MESSAGE,
    DashboardInsights,
    DashboardSnapshot,
    card_failure_message,
)
from shopgauge.logging_utils import log_event
from shopgauge.notifications import NotificationCenter
from shopgauge.retry import RetryExhaustedError, retry_from_settings
from shopgauge.schemas.analytics import OrdersPayload, RevenuePayload
from shopgauge.schemas.base import AnalyticsEnvelope

logger = logging.getLogger(__name__)

API_ACCESS_LIMITED = "API_ACCESS_LIMITED"

ORDERS_PAGE_LIMIT = 50
ORDERS_MAX_PAGES = 5
ORDERS_PAGE_DELAY_SECONDS = 0.5
RECENT_ORDERS = 5

# Insight fields owned by each card; reset to zero when the card has no data.
CARD_FIELDS: dict[str, tuple[str, ...]] = {
    "revenue": ("total_revenue", "revenue_timeseries"),
    "products": ("top_products",),
    "inventory": ("low_inventory",),
    "new_products": ("new_products",),
    "insights": ("conversion_rate", "conversion_rate_delta"),
    "orders": ("orders", "recent_orders"),
    "abandoned_carts": ("abandoned_carts",),
}

CONNECTION_EVENTS: tuple[tuple[str, str, str, str, bool], ...] = (
    ("reauth", "success", "Re-authentication successful!", "Authentication", True),
    ("connected", "true", "New store connected successfully!", "Store Connection", True),
    ("reconnected", "true", "Store reconnected successfully!", "Store Connection", False),
)


class DashboardService:
    def __init__(
        self,
        *,
        client: AnalyticsClient,
        cache: DashboardCache,
        notifications: NotificationCenter,
        settings: AppSettings | None = None,
        retry_settings: RetrySettings | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._cache = cache
        self._notifications = notifications
        self._settings = settings or get_app_settings()
        self._retry_settings = retry_settings or get_retry_settings()
        self._sleep = sleep
        self._clock = clock
        self._refresh_lock = threading.Lock()
        self._last_refresh_at: float | None = None
        self.snapshot: DashboardSnapshot | None = None

        self._fetchers: dict[str, Callable[[], AnalyticsEnvelope]] = {
            "revenue": self._fetch_revenue,
            "products": self._client.products,
            "inventory": self._client.low_inventory,
            "new_products": self._client.new_products,
            "insights": self._client.conversion,
            "orders": self._fetch_orders,
            "abandoned_carts": self._client.abandoned_carts,
        }

    def load(self, shop: str, *, force_refresh: bool = False) -> DashboardSnapshot:
        """
        Load every card for `shop`, reading through the cache.
        """

        if force_refresh:
            self._drop_unified(shop)
        snapshot = DashboardSnapshot(shop=shop)
        unreachable = 0
        for card in DASHBOARD_CARDS:
            if self._load_card(snapshot, card, force_refresh=force_refresh) == "unreachable":
                unreachable += 1

        if unreachable == len(DASHBOARD_CARDS) and self._settings.demo_fallback:
            log_event(logger, logging.WARNING, "dashboard_demo_fallback", shop=shop)
            self._notifications.warning(
                "ShopGauge is unreachable; showing demo data.", category="Dashboard"
            )
            snapshot = demo_dashboard(shop)
        else:
            self._stamp(snapshot)

        self.snapshot = snapshot
        return snapshot

    def refresh_card(self, shop: str, card: str) -> DashboardSnapshot:
        """
        Force-refresh one card, keeping the rest of the current snapshot.
        """

        if card not in self._fetchers:
            raise ValueError(f"Unknown dashboard card: {card!r}")

        snapshot = self.snapshot
        if snapshot is None or snapshot.shop != shop or snapshot.is_demo:
            snapshot = DashboardSnapshot(shop=shop)
        self._drop_unified(shop)
        self._load_card(snapshot, card, force_refresh=True)
        self._stamp(snapshot)
        self.snapshot = snapshot
        return snapshot

    def refresh_all(self, shop: str) -> DashboardSnapshot:
        """
        The dashboard's "Refresh all" action: drop every cached card for
        `shop` and reload from the API.

        Clicks within `refresh_debounce_seconds` of the last accepted one do
        not fetch; the current snapshot is returned instead.
        """

        now = self._clock()
        with self._refresh_lock:
            last = self._last_refresh_at
            debounced = last is not None and now - last < self._settings.refresh_debounce_seconds
            if not debounced:
                self._last_refresh_at = now

        if debounced:
            log_event(
                logger,
                logging.DEBUG,
                "refresh_all_debounced",
                shop=shop,
                remaining_seconds=round(self.refresh_cooldown_remaining(), 2),
            )
            if self.snapshot is not None and self.snapshot.shop == shop:
                return self.snapshot
            return self.load(shop)

        log_event(logger, logging.INFO, "refresh_all", shop=shop)
        self._cache.invalidate(shop)
        return self.load(shop, force_refresh=True)

    def refresh_cooldown_remaining(self) -> float:
        """
        Seconds until "Refresh all" accepts another click.
        """

        if self._last_refresh_at is None:
            return 0.0
        elapsed = self._clock() - self._last_refresh_at
        return max(0.0, self._settings.refresh_debounce_seconds - elapsed)

    def unified_analytics(
        self,
        shop: str,
        *,
        period_days: int = DEFAULT_PERIOD_DAYS,
        include_predictions: bool = True,
    ) -> UnifiedAnalytics:
        """
        Daily revenue, orders and conversion for `shop` plus the forecast.

        Built from the current snapshot (loaded first when missing) and
        cached per shop under `unified_analytics_<days>d_<with|no>_predictions`.
        Demo snapshots are never cached.
        """

        snapshot = self.snapshot
        if snapshot is None or snapshot.shop != shop:
            snapshot = self.load(shop)

        def build() -> dict[str, Any]:
            insights = snapshot.insights
            return build_unified_analytics(
                insights.revenue_timeseries,
                insights.orders,
                conversion_rate=insights.conversion_rate,
                period_days=period_days,
                prediction_days=self._settings.prediction_days,
                include_predictions=include_predictions,
            ).to_dict()

        if snapshot.is_demo:
            return validate_unified_analytics(build())

        key = unified_cache_key(period_days, include_predictions)
        data = self._cache.get_or_fetch(shop, key, build)
        try:
            return validate_unified_analytics(data)
        except AnalyticsDataError as exc:
            log_event(logger, logging.WARNING, "unified_analytics_invalid", shop=shop, key=key, error=str(exc))
            self._cache.invalidate_key(shop, key)
            return validate_unified_analytics(self._cache.get_or_fetch(shop, key, build, force_refresh=True))

    def handle_connection_event(self, shop: str, params: Mapping[str, str]) -> bool:
        """
        React to the redirect query parameters set after OAuth flows.

        Returns True when an event was recognised; the cache for `shop` is
        then invalidated so the next load shows data for the new grant.
        """

        for name, expected, message, category, persistent in CONNECTION_EVENTS:
            if params.get(name) != expected:
                continue
            self._notifications.success(message, category=category, persistent=persistent)
            if shop:
                self._cache.invalidate(shop)
            self.snapshot = None
            log_event(logger, logging.INFO, "connection_event", shop=shop, connection=name)
            return True
        return False

    # -- cards -----------------------------------------------------------

    def _load_card(self, snapshot: DashboardSnapshot, card: str, *, force_refresh: bool) -> str:
        snapshot.card_errors.pop(card, None)
        try:
            payload = self._cache.get_or_fetch(
                snapshot.shop,
                card,
                lambda: self._fetch(card),
                force_refresh=force_refresh,
            )
        except PermissionDeniedError:
            self._zero(snapshot.insights, card)
            snapshot.card_errors[card] = PERMISSION_DENIED_MESSAGE
            snapshot.needs_reauthentication = True
            return "permission"
        except AuthenticationRequiredError:
            self._zero(snapshot.insights, card)
            snapshot.card_errors[card] = LOGIN_REQUIRED_MESSAGE
            snapshot.needs_reauthentication = True
            return "unauthenticated"
        except (RetryExhaustedError, ApiError) as exc:
            log_event(logger, logging.WARNING, "card_failed", card=card, shop=snapshot.shop, error=str(exc))
            self._zero(snapshot.insights, card)
            snapshot.card_errors[card] = card_failure_message(card)
            return "unreachable" if isinstance(exc, ServiceUnavailableError) else "failed"

        if payload.error_code == API_ACCESS_LIMITED:
            logger.info("Card %s unavailable for this plan; showing zeros", card)
            self._zero(snapshot.insights, card)
            return "limited"
        if payload.rate_limited:
            self._zero(snapshot.insights, card)
            snapshot.has_rate_limit = True
            return "rate_limited"

        self._apply(snapshot.insights, card, payload)
        return "ok"

    def _fetch(self, card: str) -> AnalyticsEnvelope:
        payload = retry_from_settings(
            self._fetchers[card],
            settings=self._retry_settings,
            sleep=self._sleep,
            label=f"dashboard_{card}",
        )
        if payload.needs_reauthentication:
            # Permission errors arrive with HTTP 200; never cache them.
            raise PermissionDeniedError(
                payload.error or PERMISSION_DENIED_MESSAGE,
                status_code=403,
                payload=payload.model_dump(),
            )
        return payload

    def _fetch_revenue(self) -> RevenuePayload:
        payload = self._client.revenue()
        if payload.rate_limited or payload.timeseries or payload.total_revenue <= 0:
            return payload
        try:
            series = retry_from_settings(
                self._client.revenue_timeseries,
                settings=self._retry_settings,
                sleep=self._sleep,
                label="dashboard_revenue_timeseries",
            )
        except (RetryExhaustedError, ApiError) as exc:
            logger.warning("Revenue timeseries fetch failed: %s", exc)
            return payload
        return payload.model_copy(update={"timeseries": series.timeseries})

    def _fetch_orders(self) -> OrdersPayload:
        first = self._client.orders_timeseries(page=1, limit=ORDERS_PAGE_LIMIT)
        if first.needs_reauthentication or first.error_code == API_ACCESS_LIMITED:
            return first

        collected = list(first.timeseries or first.orders)
        if not first.rate_limited and first.has_more:
            for page in range(2, ORDERS_MAX_PAGES + 1):
                self._sleep(ORDERS_PAGE_DELAY_SECONDS)
                try:
                    extra = self._client.orders_timeseries(page=page, limit=ORDERS_PAGE_LIMIT)
                except ApiError as exc:
                    logger.warning("Fetching orders page %d failed: %s", page, exc)
                    break
                collected.extend(extra.timeseries or extra.orders)
                if not extra.has_more:
                    break

        collected.sort(key=lambda order: str(order.get("created_at") or ""), reverse=True)
        return first.model_copy(update={"orders": collected, "timeseries": collected})

    @staticmethod
    def _apply(insights: DashboardInsights, card: str, payload: Any) -> None:
        if card == "revenue":
            insights.total_revenue = payload.total_revenue
            insights.revenue_timeseries = list(payload.timeseries)
        elif card == "products":
            insights.top_products = list(payload.products)
        elif card == "inventory":
            insights.low_inventory = payload.count
        elif card == "new_products":
            insights.new_products = payload.new_products
        elif card == "insights":
            insights.conversion_rate = payload.conversion_rate
            insights.conversion_rate_delta = payload.conversion_rate_delta
        elif card == "orders":
            insights.orders = list(payload.orders)
            insights.recent_orders = insights.orders[:RECENT_ORDERS]
        elif card == "abandoned_carts":
            insights.abandoned_carts = payload.abandoned_carts

    @staticmethod
    def _zero(insights: DashboardInsights, card: str) -> None:
        defaults = DashboardInsights()
        for name in CARD_FIELDS.get(card, ()):
            setattr(insights, name, getattr(defaults, name))

    def _drop_unified(self, shop: str) -> None:
        for key in self._cache.keys(shop):
            if key.startswith(UNIFIED_CACHE_PREFIX):
                self._cache.invalidate_key(shop, key)

    def _stamp(self, snapshot: DashboardSnapshot) -> None:
        snapshot.last_updated_text = self._cache.last_updated_text(snapshot.shop)
        snapshot.cache_warning = self._cache.has_aging_entries(snapshot.shop)
