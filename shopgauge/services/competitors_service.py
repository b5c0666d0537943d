"""
shopgauge/services/competitors_service.py

State and actions behind the Competitors page.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Literal

from shopgauge.clients.competitors import CompetitorsClient
from shopgauge.clients.errors import ApiError
from shopgauge.config import AppSettings, DiscoverySettings, get_app_settings, get_discovery_settings
from shopgauge.demo import demo_competitors, demo_suggestion_count, demo_suggestions
from shopgauge.domain.competitors import CompetitorInsights
from shopgauge.logging_utils import log_event
from shopgauge.notifications import NotificationCenter
from shopgauge.schemas.competitors import Competitor, CompetitorSuggestion, SuggestionStatus
from shopgauge.services.discovery_service import DiscoveryOutcome, DiscoveryService

logger = logging.getLogger(__name__)

COMPETITORS_CATEGORY = "Competitors"
DEMO_CATEGORY = "Demo"

StockFilter = Literal["all", "in_stock", "out_of_stock"]


class CompetitorsService:
    """
    Page state for one shop: tracked competitors, the pending-suggestion
    badge and whether sample data is being shown instead of live data.
    """

    def __init__(
        self,
        *,
        client: CompetitorsClient,
        notifications: NotificationCenter,
        discovery: DiscoveryService | None = None,
        settings: AppSettings | None = None,
        discovery_settings: DiscoverySettings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._notifications = notifications
        self._discovery = discovery
        self._settings = settings or get_app_settings()
        self._discovery_settings = discovery_settings or get_discovery_settings()
        self._clock = clock
        self._lock = threading.RLock()
        self._count_cache: dict[str, tuple[float, int]] = {}

        self.shop: str | None = None
        self.competitors: list[Competitor] = []
        self.suggestion_count = 0
        self.is_demo_mode = False
        self._demo_suggestions: list[CompetitorSuggestion] = []

    # -- loading ---------------------------------------------------------

    def load(self, shop: str | None) -> list[Competitor]:
        """
        Load competitors and the suggestion badge for `shop`.

        No data at all, or an API failure, switches the page to demo mode
        when the demo fallback is enabled.
        """

        if not shop:
            self._reset()
            return []

        with self._lock:
            self.shop = shop
        try:
            competitors = self._client.list_competitors()
            count = self.debounced_suggestion_count(shop)
        except ApiError as exc:
            log_event(logger, logging.WARNING, "competitors_load_failed", shop=shop, error=str(exc))
            if self._settings.demo_fallback:
                self._enter_demo_mode()
                return list(self.competitors)
            with self._lock:
                self.competitors = []
                self.suggestion_count = 0
                self.is_demo_mode = False
            self._notifications.error(exc.message, category=COMPETITORS_CATEGORY)
            return []

        if not competitors and count == 0 and self._settings.demo_fallback:
            logger.info("No competitors or suggestions for shop=%s; showing demo data", shop)
            self._enter_demo_mode()
            return list(self.competitors)

        with self._lock:
            self.competitors = competitors
            self.suggestion_count = count
            self.is_demo_mode = False
        return list(competitors)

    def debounced_suggestion_count(self, shop: str, *, force: bool = False) -> int:
        """
        Suggestion count for `shop`, fetched at most once per debounce window.
        """

        key = shop.strip().lower()
        window = self._discovery_settings.suggestion_count_debounce_seconds
        with self._lock:
            cached = self._count_cache.get(key)
            if not force and cached is not None and self._clock() - cached[0] < window:
                return cached[1]

        count = self._client.suggestion_count().new_suggestions
        with self._lock:
            self._count_cache[key] = (self._clock(), count)
        return count

    # -- views -----------------------------------------------------------

    def filtered(self, status: StockFilter = "all", query: str = "") -> list[Competitor]:
        with self._lock:
            rows = list(self.competitors)

        if status == "in_stock":
            rows = [row for row in rows if row.in_stock]
        elif status == "out_of_stock":
            rows = [row for row in rows if not row.in_stock]

        needle = query.strip().lower()
        if needle:
            rows = [row for row in rows if needle in row.label.lower() or needle in row.url.lower()]
        return rows

    def insights(self, competitors: list[Competitor] | None = None) -> CompetitorInsights:
        if competitors is None:
            with self._lock:
                competitors = list(self.competitors)
        return CompetitorInsights.from_competitors(competitors)

    # -- actions ---------------------------------------------------------

    def add(self, url: str, product_id: str) -> Competitor | None:
        url = url.strip()
        product_id = product_id.strip()
        if not url or not product_id:
            self._notifications.error(
                "Competitor URL and product ID are required", category=COMPETITORS_CATEGORY
            )
            return None

        try:
            competitor = self._client.add_competitor(url, product_id)
        except ApiError as exc:
            logger.warning("Adding competitor failed url=%s error=%s", url, exc)
            self._notifications.error(
                exc.message or "Failed to add competitor", category=COMPETITORS_CATEGORY
            )
            return None

        with self._lock:
            self.competitors = [*self.competitors, competitor]
        self._notifications.success("Competitor added successfully", category=COMPETITORS_CATEGORY)
        return competitor

    def delete(self, competitor_id: str) -> bool:
        if self.is_demo_mode:
            self._remove_local(competitor_id)
            self._notifications.success("Demo competitor removed", category=COMPETITORS_CATEGORY)
            return True

        try:
            self._client.delete_competitor(competitor_id)
        except ApiError as exc:
            logger.warning("Deleting competitor failed id=%s error=%s", competitor_id, exc)
            self._notifications.error("Failed to delete competitor", category=COMPETITORS_CATEGORY)
            return False

        self._remove_local(competitor_id)
        self._notifications.success("Competitor deleted successfully", category=COMPETITORS_CATEGORY)
        return True

    def toggle_demo_mode(self) -> bool:
        """
        Switch between sample data and an empty live view. Returns the new mode.
        """

        if self.is_demo_mode:
            with self._lock:
                self.competitors = []
                self.suggestion_count = 0
                self.is_demo_mode = False
                self._demo_suggestions = []
            self._notifications.success("Demo mode disabled", category=DEMO_CATEGORY)
            return False

        self._enter_demo_mode()
        self._notifications.success("Demo mode enabled", category=DEMO_CATEGORY)
        return True

    def refresh_suggestion_count(self) -> int:
        """
        Force a fresh count; falls back to the debounced count on failure.
        """

        if self.is_demo_mode:
            with self._lock:
                self.suggestion_count = len(self._demo_suggestions)
                return self.suggestion_count

        try:
            count = self._client.refresh_suggestion_count().new_suggestions
        except ApiError as exc:
            logger.warning("Manual suggestion count refresh failed: %s", exc)
            if not self.shop:
                return self.suggestion_count
            try:
                count = self.debounced_suggestion_count(self.shop)
            except ApiError as fallback_exc:
                logger.error("Fallback suggestion count also failed: %s", fallback_exc)
                return self.suggestion_count
        else:
            if self.shop:
                with self._lock:
                    self._count_cache[self.shop.strip().lower()] = (self._clock(), count)

        with self._lock:
            self.suggestion_count = count
        return count

    def suggestions(
        self,
        status: SuggestionStatus = "NEW",
        *,
        page: int = 0,
        size: int = 20,
    ) -> list[CompetitorSuggestion]:
        if self.is_demo_mode:
            with self._lock:
                return [row for row in self._demo_suggestions if row.status == status]

        try:
            result = self._client.list_suggestions(page=page, size=size, status=status)
        except ApiError as exc:
            logger.warning("Loading suggestions failed: %s", exc)
            self._notifications.error("Failed to load suggestions", category=COMPETITORS_CATEGORY)
            return []
        return result.content

    def approve(self, suggestion_id: int) -> bool:
        if self.is_demo_mode:
            self._drop_demo_suggestion(suggestion_id)
            self._notifications.success(
                "Demo: Competitor approved - now tracking prices!", category=COMPETITORS_CATEGORY
            )
            return True

        try:
            self._client.approve_suggestion(suggestion_id)
        except ApiError as exc:
            logger.warning("Approving suggestion failed id=%s error=%s", suggestion_id, exc)
            self._notifications.error(
                "Failed to approve suggestion", category=COMPETITORS_CATEGORY, persistent=True
            )
            return False

        self._notifications.success(
            "Competitor approved - now tracking prices!",
            category=COMPETITORS_CATEGORY,
            persistent=True,
        )
        self.refresh_suggestion_count()
        return True

    def ignore(self, suggestion_id: int) -> bool:
        if self.is_demo_mode:
            self._drop_demo_suggestion(suggestion_id)
            self._notifications.success("Demo: Suggestion ignored", category=COMPETITORS_CATEGORY)
            return True

        try:
            self._client.ignore_suggestion(suggestion_id)
        except ApiError as exc:
            logger.warning("Ignoring suggestion failed id=%s error=%s", suggestion_id, exc)
            self._notifications.error(
                "Failed to ignore suggestion", category=COMPETITORS_CATEGORY, persistent=True
            )
            return False

        self._notifications.success("Suggestion ignored", category=COMPETITORS_CATEGORY)
        self.refresh_suggestion_count()
        return True

    def trigger_discovery(self, *, shop_id: int | None = None) -> DiscoveryOutcome:
        if self._discovery is None:
            raise RuntimeError("CompetitorsService was built without a DiscoveryService")
        return self._discovery.trigger(
            self.shop or "",
            demo_mode=self.is_demo_mode,
            shop_id=shop_id,
            on_refresh=self.refresh_suggestion_count,
        )

    # -- internals -------------------------------------------------------

    def _enter_demo_mode(self) -> None:
        with self._lock:
            self.competitors = demo_competitors()
            self._demo_suggestions = demo_suggestions()
            self.suggestion_count = demo_suggestion_count()
            self.is_demo_mode = True

    def _reset(self) -> None:
        with self._lock:
            if self._discovery is not None and self.shop:
                self._discovery.cancel_pending_refresh(self.shop)
            self.shop = None
            self.competitors = []
            self.suggestion_count = 0
            self.is_demo_mode = False
            self._demo_suggestions = []

    def _remove_local(self, competitor_id: str) -> None:
        with self._lock:
            self.competitors = [row for row in self.competitors if row.id != competitor_id]

    def _drop_demo_suggestion(self, suggestion_id: int) -> None:
        with self._lock:
            self._demo_suggestions = [
                row for row in self._demo_suggestions if row.id != suggestion_id
            ]
            self.suggestion_count = len(self._demo_suggestions)
