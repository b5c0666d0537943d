"""
tests/test_dashboard_service.py

Dashboard loading: per-card failure isolation, plan limits, reauth payloads,
order paging, demo fallback and redirect connection events.
"""

from __future__ import annotations

import pytest
import requests

from shopgauge.config import AppSettings, RetrySettings
from shopgauge.domain.dashboard import PERMISSION_DENIED_MESSAGE
from shopgauge.services.dashboard_service import DashboardService

SHOP = "my-store.myshopify.com"

REVENUE = "/api/analytics/revenue"
REVENUE_SERIES = "/api/analytics/revenue/timeseries"
PRODUCTS = "/api/analytics/products"
INVENTORY = "/api/analytics/inventory/low"
NEW_PRODUCTS = "/api/analytics/new_products"
CONVERSION = "/api/analytics/conversion"
ORDERS = "/api/analytics/orders/timeseries"
CARTS = "/api/analytics/abandoned_carts"


def _order(id: int, created_at: str) -> dict:
    return {"id": id, "name": f"#{id}", "created_at": created_at}


@pytest.fixture()
def service(clients, cache, notifications, sleeps, clock) -> DashboardService:
    return DashboardService(
        client=clients.analytics,
        cache=cache,
        notifications=notifications,
        settings=AppSettings(demo_fallback=True),
        retry_settings=RetrySettings(max_retries=2, backoff_initial_seconds=1.0),
        sleep=sleeps.append,
        clock=clock,
    )


@pytest.fixture()
def healthy(session, respond):
    """Register a successful response for every card."""

    def _install() -> None:
        session.route(
            "GET",
            REVENUE,
            respond(
                200,
                {"totalRevenue": 250.0, "timeseries": [{"created_at": "2024-01-15", "total_price": 250.0}]},
            ),
        )
        session.route(
            "GET",
            PRODUCTS,
            respond(200, {"products": [{"id": 1, "title": "Mug", "sales": "N/A - Orders access restricted"}]}),
        )
        session.route("GET", INVENTORY, respond(200, {"lowInventory": [{"id": 1}, {"id": 2}]}))
        session.route("GET", NEW_PRODUCTS, respond(200, {"newProducts": 4}))
        session.route("GET", CONVERSION, respond(200, {"conversionRate": 2.5, "conversionRateDelta": -0.4}))
        session.route("GET", ORDERS, respond(200, {"timeseries": [_order(1, "2024-01-15")], "has_more": False}))
        session.route("GET", CARTS, respond(200, {"abandonedCarts": 6}))

    _install()
    return _install


class TestLoad:
    def test_all_cards_populate(self, service, healthy) -> None:
        snapshot = service.load(SHOP)
        insights = snapshot.insights
        assert insights.total_revenue == 250.0
        assert insights.revenue_timeseries[0].created_at == "2024-01-15"
        assert insights.revenue_timeseries[0].total_price == 250.0
        assert insights.top_products[0].title == "Mug"
        assert insights.top_products[0].sales_value is None
        assert insights.low_inventory == 2
        assert insights.new_products == 4
        assert insights.conversion_rate == 2.5
        assert insights.conversion_rate_delta == -0.4
        assert insights.abandoned_carts == 6
        assert insights.recent_orders[0]["id"] == 1
        assert not snapshot.has_errors
        assert snapshot.last_updated_text == "Just updated"
        assert service.snapshot is snapshot

    def test_second_load_reads_from_cache(self, service, session, healthy) -> None:
        service.load(SHOP)
        calls = len(session.calls)
        service.load(SHOP)
        assert len(session.calls) == calls

    def test_force_refresh_refetches(self, service, session, healthy) -> None:
        service.load(SHOP)
        calls = len(session.calls)
        service.load(SHOP, force_refresh=True)
        assert len(session.calls) == 2 * calls

    def test_cache_warning_when_entries_age(self, service, healthy, clock) -> None:
        service.load(SHOP)
        clock.advance(6100)
        assert service.load(SHOP).cache_warning


class TestCardFailures:
    def test_one_failed_card_keeps_the_others(self, service, session, respond, healthy) -> None:
        session.route("GET", PRODUCTS, respond(400, {"error": "bad"}))
        snapshot = service.load(SHOP)
        assert snapshot.card_errors == {"products": "Failed to load products data"}
        assert snapshot.insights.top_products == []
        assert snapshot.insights.total_revenue == 250.0
        assert not snapshot.is_demo

    def test_plan_limited_card_shows_zero_without_error(self, service, session, respond, healthy) -> None:
        session.route("GET", CARTS, respond(200, {"error_code": "API_ACCESS_LIMITED", "abandonedCarts": 9}))
        snapshot = service.load(SHOP)
        assert snapshot.insights.abandoned_carts == 0
        assert "abandoned_carts" not in snapshot.card_errors

    def test_unexpected_payload_fails_only_its_card(self, service, session, respond, healthy) -> None:
        session.route("GET", CONVERSION, respond(200, {"conversionRate": "n/a"}))
        snapshot = service.load(SHOP)
        assert snapshot.card_errors == {"insights": "Failed to load insights data"}
        assert snapshot.insights.conversion_rate == 0.0
        assert snapshot.insights.total_revenue == 250.0
        assert not snapshot.is_demo

    def test_rate_limited_payload_sets_flag(self, service, session, respond, healthy) -> None:
        session.route("GET", NEW_PRODUCTS, respond(200, {"rate_limited": True}))
        snapshot = service.load(SHOP)
        assert snapshot.has_rate_limit
        assert snapshot.insights.new_products == 0

    def test_http_429_is_retried(self, service, session, respond, healthy, sleeps) -> None:
        session.route("GET", CONVERSION, respond(429, {}), respond(200, {"conversionRate": 1.5}))
        snapshot = service.load(SHOP)
        assert snapshot.insights.conversion_rate == 1.5
        assert sleeps == [1.0]

    def test_permission_payload_is_not_cached(self, service, session, respond, healthy) -> None:
        session.route("GET", INVENTORY, respond(200, {"error_code": "INSUFFICIENT_PERMISSIONS"}))
        snapshot = service.load(SHOP)
        assert snapshot.needs_reauthentication
        assert snapshot.card_errors["inventory"] == PERMISSION_DENIED_MESSAGE
        session.route("GET", INVENTORY, respond(200, {"lowInventoryCount": 3}))
        assert service.load(SHOP).insights.low_inventory == 3

    def test_http_403_marks_reauthentication(self, service, session, respond, healthy) -> None:
        session.route("GET", REVENUE, respond(403, {"error": "scope missing"}))
        snapshot = service.load(SHOP)
        assert snapshot.needs_reauthentication
        assert snapshot.insights.total_revenue == 0.0

    def test_unauthenticated_card(self, service, session, respond, healthy) -> None:
        session.route("GET", ORDERS, respond(401, {}))
        snapshot = service.load(SHOP)
        assert snapshot.needs_reauthentication
        assert "orders" in snapshot.card_errors


class TestRevenue:
    def test_missing_timeseries_is_fetched_separately(self, service, session, respond, healthy) -> None:
        session.route("GET", REVENUE, respond(200, {"totalRevenue": 80.0}))
        session.route("GET", REVENUE_SERIES, respond(200, {"timeseries": [{"created_at": "2024-01-14", "total_price": 80.0}]}))
        snapshot = service.load(SHOP)
        assert [point.created_at for point in snapshot.insights.revenue_timeseries] == ["2024-01-14"]

    def test_timeseries_failure_keeps_total(self, service, session, respond, healthy) -> None:
        session.route("GET", REVENUE, respond(200, {"totalRevenue": 80.0}))
        session.route("GET", REVENUE_SERIES, respond(500, {}))
        snapshot = service.load(SHOP)
        assert snapshot.insights.total_revenue == 80.0
        assert snapshot.insights.revenue_timeseries == []
        assert "revenue" not in snapshot.card_errors

    def test_zero_revenue_skips_timeseries(self, service, session, respond, healthy) -> None:
        session.route("GET", REVENUE, respond(200, {"totalRevenue": 0}))
        service.load(SHOP)
        assert REVENUE_SERIES not in session.paths()


class TestOrders:
    def test_pages_until_has_more_is_false(self, service, session, respond, healthy, sleeps) -> None:
        session.route(
            "GET",
            ORDERS,
            respond(200, {"timeseries": [_order(1, "2024-01-10")], "has_more": True}),
            respond(200, {"timeseries": [_order(2, "2024-01-12")], "hasMore": True}),
            respond(200, {"timeseries": [_order(3, "2024-01-11")], "has_more": False}),
        )
        snapshot = service.load(SHOP)
        assert [order["id"] for order in snapshot.insights.orders] == [2, 3, 1]
        assert session.paths().count(ORDERS) == 3
        assert sleeps == [0.5, 0.5]
        assert [call["params"]["page"] for call in session.calls if call["url"].endswith(ORDERS)] == [1, 2, 3]

    def test_stops_after_five_pages(self, service, session, respond, healthy) -> None:
        session.route("GET", ORDERS, respond(200, {"timeseries": [_order(1, "2024-01-10")], "has_more": True}))
        service.load(SHOP)
        assert session.paths().count(ORDERS) == 5

    def test_later_page_failure_keeps_earlier_orders(self, service, session, respond, healthy) -> None:
        session.route(
            "GET",
            ORDERS,
            respond(200, {"timeseries": [_order(1, "2024-01-10")], "has_more": True}),
            respond(503, {}),
        )
        snapshot = service.load(SHOP)
        assert [order["id"] for order in snapshot.insights.orders] == [1]
        assert "orders" not in snapshot.card_errors

    def test_recent_orders_are_the_newest_five(self, service, session, respond, healthy) -> None:
        rows = [_order(index, f"2024-01-{index:02d}") for index in range(1, 9)]
        session.route("GET", ORDERS, respond(200, {"timeseries": rows, "has_more": False}))
        snapshot = service.load(SHOP)
        assert [order["id"] for order in snapshot.insights.recent_orders] == [8, 7, 6, 5, 4]


class TestDemoFallback:
    def test_unreachable_api_shows_demo(self, service, session, notifications) -> None:
        session.queue(*[requests.ConnectionError("refused") for _ in range(7)])
        snapshot = service.load(SHOP)
        assert snapshot.is_demo
        assert snapshot.last_updated_text == "Demo data"
        assert snapshot.insights.total_revenue > 0
        assert notifications.all()[-1].level == "warning"

    def test_partial_outage_is_not_demo(self, service, session, respond, healthy) -> None:
        session.route("GET", REVENUE, respond(503, {}))
        snapshot = service.load(SHOP)
        assert not snapshot.is_demo
        assert "revenue" in snapshot.card_errors

    def test_demo_fallback_disabled(self, clients, cache, notifications, session, sleeps) -> None:
        service = DashboardService(
            client=clients.analytics,
            cache=cache,
            notifications=notifications,
            settings=AppSettings(demo_fallback=False),
            retry_settings=RetrySettings(max_retries=0),
            sleep=sleeps.append,
        )
        session.queue(*[requests.ConnectionError("refused") for _ in range(7)])
        snapshot = service.load(SHOP)
        assert not snapshot.is_demo
        assert len(snapshot.card_errors) == 7


class TestRefreshCard:
    def test_refresh_one_card(self, service, session, respond, healthy) -> None:
        service.load(SHOP)
        session.route("GET", CARTS, respond(200, {"abandonedCarts": 11}))
        snapshot = service.refresh_card(SHOP, "abandoned_carts")
        assert snapshot.insights.abandoned_carts == 11
        assert snapshot.insights.new_products == 4

    def test_unknown_card(self, service) -> None:
        with pytest.raises(ValueError):
            service.refresh_card(SHOP, "weather")


class TestConnectionEvents:
    @pytest.mark.parametrize(
        "params,message,persistent",
        [
            ({"reauth": "success"}, "Re-authentication successful!", True),
            ({"connected": "true"}, "New store connected successfully!", True),
            ({"reconnected": "true"}, "Store reconnected successfully!", False),
        ],
    )
    def test_events_notify_and_clear_cache(
        self, service, cache, notifications, params, message, persistent
    ) -> None:
        cache.set(SHOP, "revenue", {"totalRevenue": 1})
        assert service.handle_connection_event(SHOP, params)
        assert cache.keys(SHOP) == []
        item = notifications.all()[-1]
        assert item.message == message
        assert item.persistent is persistent

    def test_unrelated_params_are_ignored(self, service, cache, notifications) -> None:
        cache.set(SHOP, "revenue", {"totalRevenue": 1})
        assert not service.handle_connection_event(SHOP, {"reauth": "failed", "tab": "orders"})
        assert cache.keys(SHOP) == ["revenue"]
        assert notifications.all() == []

class TestRefreshAll:
    def test_refetches_every_card(self, service, session, healthy, cache) -> None:
        service.load(SHOP)
        calls = len(session.calls)
        snapshot = service.refresh_all(SHOP)
        assert len(session.calls) == 2 * calls
        assert service.snapshot is snapshot

    def test_clicks_inside_the_window_do_not_fetch(self, service, session, healthy, clock) -> None:
        first = service.refresh_all(SHOP)
        calls = len(session.calls)
        clock.advance(1.5)
        assert service.refresh_all(SHOP) is first
        assert len(session.calls) == calls
        assert service.refresh_cooldown_remaining() == pytest.approx(0.5)

    def test_window_reopens_after_two_seconds(self, service, session, healthy, clock) -> None:
        service.refresh_all(SHOP)
        calls = len(session.calls)
        clock.advance(2.0)
        service.refresh_all(SHOP)
        assert len(session.calls) == 2 * calls
        assert service.refresh_cooldown_remaining() == 2.0

    def test_no_cooldown_before_first_refresh(self, service) -> None:
        assert service.refresh_cooldown_remaining() == 0.0


class TestUnifiedAnalytics:
    def test_history_and_forecast_from_snapshot(self, service, healthy, cache) -> None:
        service.load(SHOP)
        analytics = service.unified_analytics(SHOP)
        day = analytics.historical[0]
        assert (day.date, day.revenue, day.orders_count) == ("2024-01-15", 250.0, 1)
        assert day.conversion_rate == 2.5
        assert day.avg_order_value == 250.0
        assert len(analytics.predictions) == 60
        assert analytics.predictions[0].date == "2024-01-16"
        assert analytics.predictions[0].confidence_interval.revenue_max == 350.0
        assert (analytics.total_revenue, analytics.total_orders) == (250.0, 1)
        assert "unified_analytics_60d_with_predictions" in cache.keys(SHOP)

    def test_prediction_days_setting_caps_the_horizon(
        self, clients, cache, notifications, healthy, sleeps
    ) -> None:
        service = DashboardService(
            client=clients.analytics,
            cache=cache,
            notifications=notifications,
            settings=AppSettings(prediction_days=7),
            sleep=sleeps.append,
        )
        assert len(service.unified_analytics(SHOP).predictions) == 7

    def test_without_predictions(self, service, healthy, cache) -> None:
        analytics = service.unified_analytics(SHOP, include_predictions=False)
        assert analytics.predictions == []
        assert "unified_analytics_60d_no_predictions" in cache.keys(SHOP)

    def test_malformed_cache_entry_is_rebuilt(self, service, healthy, cache) -> None:
        service.load(SHOP)
        cache.set(SHOP, "unified_analytics_60d_with_predictions", {"historical": "corrupt"})
        analytics = service.unified_analytics(SHOP)
        assert analytics.has_data
        assert analytics.total_revenue == 250.0

    def test_card_refresh_drops_cached_analytics(self, service, session, respond, healthy, cache) -> None:
        service.unified_analytics(SHOP)
        session.route(
            "GET",
            REVENUE,
            respond(200, {"totalRevenue": 90.0, "timeseries": [{"created_at": "2024-01-15", "total_price": 90.0}]}),
        )
        service.refresh_card(SHOP, "revenue")
        assert "unified_analytics_60d_with_predictions" not in cache.keys(SHOP)
        assert service.unified_analytics(SHOP).total_revenue == 90.0

    def test_demo_snapshot_is_not_cached(self, service, session, cache) -> None:
        session.queue(*[requests.ConnectionError("refused") for _ in range(7)])
        analytics = service.unified_analytics(SHOP)
        assert analytics.has_data
        assert cache.keys(SHOP) == []
