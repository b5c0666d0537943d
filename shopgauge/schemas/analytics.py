"""
shopgauge/schemas/analytics.py

Dashboard analytics payloads. Field names follow the server, which mixes
camelCase and snake_case across endpoints.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import AliasChoices, Field, field_validator

from shopgauge.schemas.base import AnalyticsEnvelope, SnakeApiModel

_MONEY_RE = re.compile(r"-?\d+(?:\.\d+)?")


def _money(value: Any) -> Any:
    # "$1,200.50" -> 1200.5; placeholder text such as "N/A" -> 0.0
    if not isinstance(value, str):
        return value
    match = _MONEY_RE.search(value.replace(",", ""))
    return float(match.group()) if match else 0.0


class TimeseriesPoint(SnakeApiModel):
    """
    One day of revenue. The server sends `created_at`/`total_price`; older
    deployments used `date`/`revenue`.
    """

    created_at: str = Field(validation_alias=AliasChoices("created_at", "date"))
    total_price: float = Field(
        default=0.0,
        validation_alias=AliasChoices("total_price", "revenue"),
    )
    orders_count: int | None = None

    @field_validator("total_price", mode="before")
    @classmethod
    def _parse_total_price(cls, value: Any) -> Any:
        return 0.0 if value is None else _money(value)

    @property
    def day(self) -> str:
        return self.created_at[:10]


class RevenuePayload(AnalyticsEnvelope):
    total_revenue: float = Field(
        default=0.0,
        validation_alias=AliasChoices("totalRevenue", "total_revenue", "revenue"),
    )
    timeseries: list[TimeseriesPoint] = Field(default_factory=list)
    period_days: int | None = None
    orders_count: int | None = None

    @field_validator("total_revenue", mode="before")
    @classmethod
    def _parse_total_revenue(cls, value: Any) -> Any:
        return 0.0 if value is None else _money(value)


class RevenueTimeseriesPayload(AnalyticsEnvelope):
    timeseries: list[TimeseriesPoint] = Field(default_factory=list)


class TopProduct(SnakeApiModel):
    """
    A product row. `sales` and `revenue` are text such as
    "N/A - Orders access restricted" when the store has no orders scope.
    """

    id: int | str | None = None
    title: str = ""
    price: float | str | None = None
    inventory: int | None = None
    status: str | None = None
    sales: float | str | None = None
    revenue: float | str | None = None
    delta: float = 0.0
    quantity: int | None = None

    @property
    def sales_value(self) -> float | None:
        return float(self.sales) if isinstance(self.sales, (int, float)) else None


class ProductsPayload(AnalyticsEnvelope):
    products: list[TopProduct] = Field(default_factory=list)


class InventoryPayload(AnalyticsEnvelope):
    low_inventory: list[dict[str, Any]] | None = Field(
        default=None,
        validation_alias=AliasChoices("lowInventory", "low_inventory"),
    )
    low_inventory_count: int = Field(
        default=0,
        validation_alias=AliasChoices("lowInventoryCount", "low_inventory_count"),
    )

    @property
    def count(self) -> int:
        if self.low_inventory is not None:
            return len(self.low_inventory)
        return self.low_inventory_count


class NewProductsPayload(AnalyticsEnvelope):
    new_products: int = Field(
        default=0,
        validation_alias=AliasChoices("newProducts", "new_products"),
    )


class ConversionPayload(AnalyticsEnvelope):
    conversion_rate: float = Field(
        default=0.0,
        validation_alias=AliasChoices("conversionRate", "conversion_rate"),
    )
    conversion_rate_delta: float = Field(
        default=0.0,
        validation_alias=AliasChoices("conversionRateDelta", "conversion_rate_delta"),
    )


class AbandonedCartsPayload(AnalyticsEnvelope):
    abandoned_carts: int = Field(
        default=0,
        validation_alias=AliasChoices("abandonedCarts", "abandoned_carts", "abandonedCartCount"),
    )


class OrdersPayload(AnalyticsEnvelope):
    orders: list[dict[str, Any]] = Field(default_factory=list)
    timeseries: list[dict[str, Any]] = Field(default_factory=list)
    page: int | None = None
    has_more: bool = Field(default=False, validation_alias=AliasChoices("hasMore", "has_more"))
