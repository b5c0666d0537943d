"""
shopgauge/demo.py

Static sample data shown when a store has no live data or the API is down.
Callers always receive fresh copies so page state can be mutated freely.
"""

from __future__ import annotations

from shopgauge.domain.dashboard import DashboardInsights, DashboardSnapshot
from shopgauge.schemas.analytics import TimeseriesPoint, TopProduct
from shopgauge.schemas.competitors import Competitor, CompetitorSuggestion

_DEMO_COMPETITOR_ROWS: tuple[dict, ...] = (
    {
        "id": "1",
        "url": "https://amazon.com/dp/B08N5WRWNW",
        "label": "Amazon - Echo Dot (4th Gen)",
        "price": 49.99,
        "inStock": True,
        "percentDiff": 0,
        "lastChecked": "2 hours ago",
    },
    {
        "id": "2",
        "url": "https://amazon.com/dp/B08C7W5L7D",
        "label": "Amazon - Fire TV Stick 4K",
        "price": 39.99,
        "inStock": True,
        "percentDiff": -15.2,
        "lastChecked": "1 hour ago",
    },
    {
        "id": "3",
        "url": "https://amazon.com/dp/B08N5KWB9H",
        "label": "Amazon - Echo Show 8",
        "price": 0,
        "inStock": False,
        "percentDiff": 0,
        "lastChecked": "30 minutes ago",
    },
    {
        "id": "4",
        "url": "https://amazon.com/dp/B07FZ8S74R",
        "label": "Amazon - Echo Plus (2nd Gen)",
        "price": 149.99,
        "inStock": True,
        "percentDiff": 8.5,
        "lastChecked": "15 minutes ago",
    },
)

_DEMO_SUGGESTION_ROWS: tuple[dict, ...] = (
    {
        "id": 1,
        "suggestedUrl": "https://amazon.com/dp/B09B9Y6Y7H",
        "title": "Amazon - Echo Dot (5th Gen) - Smart Speaker",
        "price": 49.99,
        "source": "GOOGLE_SHOPPING",
        "discoveredAt": "2024-01-15T10:30:00Z",
        "status": "NEW",
    },
    {
        "id": 2,
        "suggestedUrl": "https://amazon.com/dp/B08N5WRWNW",
        "title": "Amazon - Echo Dot (4th Gen) - Smart Speaker with Alexa",
        "price": 39.99,
        "source": "GOOGLE_SHOPPING",
        "discoveredAt": "2024-01-15T09:15:00Z",
        "status": "NEW",
    },
    {
        "id": 3,
        "suggestedUrl": "https://amazon.com/dp/B07FZ8S74R",
        "title": "Amazon - Echo Plus (2nd Gen) - Premium Smart Speaker",
        "price": 149.99,
        "source": "GOOGLE_SHOPPING",
        "discoveredAt": "2024-01-15T08:45:00Z",
        "status": "NEW",
    },
)

_DEMO_REVENUE = (
    ("2024-01-09", 1180.50, 14),
    ("2024-01-10", 1342.00, 17),
    ("2024-01-11", 980.25, 11),
    ("2024-01-12", 1511.75, 19),
    ("2024-01-13", 1720.40, 22),
    ("2024-01-14", 1405.10, 18),
    ("2024-01-15", 1630.90, 20),
)

_DEMO_PRODUCTS = (
    ("Wireless Earbuds", 2140.00, 12.5),
    ("Smart Speaker", 1675.50, 4.2),
    ("Phone Stand", 640.00, -3.1),
)


def demo_competitors() -> list[Competitor]:
    return [Competitor.model_validate(row) for row in _DEMO_COMPETITOR_ROWS]


def demo_suggestions() -> list[CompetitorSuggestion]:
    return [CompetitorSuggestion.model_validate(row) for row in _DEMO_SUGGESTION_ROWS]


def demo_suggestion_count() -> int:
    return len(_DEMO_SUGGESTION_ROWS)


def demo_dashboard(shop: str) -> DashboardSnapshot:
    """
    Sample dashboard used when every card failed to load.
    """

    timeseries = [
        TimeseriesPoint(created_at=day, total_price=revenue, orders_count=orders)
        for day, revenue, orders in _DEMO_REVENUE
    ]
    orders = [
        {
            "id": 1000 + index,
            "name": f"#{1000 + index}",
            "created_at": f"{point.created_at}T12:00:00Z",
            "total_price": round(point.total_price / max(point.orders_count or 1, 1), 2),
        }
        for index, point in enumerate(reversed(timeseries))
    ]
    return DashboardSnapshot(
        shop=shop,
        insights=DashboardInsights(
            total_revenue=round(sum(point.total_price for point in timeseries), 2),
            revenue_timeseries=timeseries,
            top_products=[
                TopProduct(title=title, sales=sales, delta=delta)
                for title, sales, delta in _DEMO_PRODUCTS
            ],
            low_inventory=3,
            new_products=2,
            conversion_rate=2.4,
            conversion_rate_delta=0.3,
            abandoned_carts=7,
            orders=orders,
            recent_orders=orders[:5],
        ),
        is_demo=True,
        last_updated_text="Demo data",
    )
