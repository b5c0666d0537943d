"""
shopgauge/clients/analytics.py

Dashboard analytics endpoints.
"""

from __future__ import annotations

from typing import Any

from shopgauge.clients.base import BaseApiClient
from shopgauge.schemas.analytics import (
    AbandonedCartsPayload,
    ConversionPayload,
    InventoryPayload,
    NewProductsPayload,
    OrdersPayload,
    ProductsPayload,
    RevenuePayload,
    RevenueTimeseriesPayload,
)


class AnalyticsClient(BaseApiClient):
    """
    Client for `/analytics/*` dashboard cards.
    """

    def revenue(self) -> RevenuePayload:
        return self._parse(RevenuePayload, self._get("/analytics/revenue"))

    def revenue_timeseries(self) -> RevenueTimeseriesPayload:
        return self._parse(RevenueTimeseriesPayload, self._get("/analytics/revenue/timeseries"))

    def products(self) -> ProductsPayload:
        return self._parse(ProductsPayload, self._get("/analytics/products"))

    def low_inventory(self) -> InventoryPayload:
        return self._parse(InventoryPayload, self._get("/analytics/inventory/low"))

    def new_products(self) -> NewProductsPayload:
        return self._parse(NewProductsPayload, self._get("/analytics/new_products"))

    def conversion(self) -> ConversionPayload:
        return self._parse(ConversionPayload, self._get("/analytics/conversion"))

    def abandoned_carts(self) -> AbandonedCartsPayload:
        return self._parse(AbandonedCartsPayload, self._get("/analytics/abandoned_carts"))

    def orders(self) -> OrdersPayload:
        return self._parse(OrdersPayload, self._get("/analytics/orders"))

    def orders_timeseries(self, *, page: int = 1, limit: int = 50) -> OrdersPayload:
        payload = self._get("/analytics/orders/timeseries", params={"page": page, "limit": limit})
        return self._parse(OrdersPayload, payload)

    def insights(self) -> dict[str, Any]:
        payload = self._get("/insights")
        return payload if isinstance(payload, dict) else {}

    def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        payload = self._request_json(method="GET", path=path, params=params)
        return payload if isinstance(payload, dict) else {}
