"""
shopgauge/domain/dashboard.py

View model for the analytics dashboard.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from shopgauge.schemas.analytics import TimeseriesPoint, TopProduct

DASHBOARD_CARDS: tuple[str, ...] = (
    "revenue",
    "products",
    "inventory",
    "new_products",
    "insights",
    "orders",
    "abandoned_carts",
)

CARD_LABELS: dict[str, str] = {
    "revenue": "revenue",
    "products": "products",
    "inventory": "inventory",
    "new_products": "new products",
    "insights": "insights",
    "orders": "orders",
    "abandoned_carts": "abandoned carts",
}

PERMISSION_DENIED_MESSAGE = "Permission denied – please re-authenticate with Shopify"


def card_failure_message(card: str) -> str:
    return f"Failed to load {CARD_LABELS.get(card, card)} data"


@dataclass
class DashboardInsights:
    """
    Figures rendered by the dashboard cards. Missing data stays at zero.
    """

    total_revenue: float = 0.0
    revenue_timeseries: list[TimeseriesPoint] = field(default_factory=list)
    top_products: list[TopProduct] = field(default_factory=list)
    low_inventory: int = 0
    new_products: int = 0
    conversion_rate: float = 0.0
    conversion_rate_delta: float = 0.0
    abandoned_carts: int = 0
    orders: list[dict[str, Any]] = field(default_factory=list)
    recent_orders: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class DashboardSnapshot:
    shop: str
    insights: DashboardInsights = field(default_factory=DashboardInsights)
    card_errors: dict[str, str] = field(default_factory=dict)
    has_rate_limit: bool = False
    needs_reauthentication: bool = False
    is_demo: bool = False
    last_updated_text: str = "Never updated"
    cache_warning: bool = False

    @property
    def has_errors(self) -> bool:
        return bool(self.card_errors)
