"""
shopgauge/domain/competitors.py

Summary figures shown above the competitor table.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from shopgauge.schemas.competitors import Competitor


@dataclass(frozen=True)
class CompetitorInsights:
    total: int = 0
    in_stock: int = 0
    out_of_stock: int = 0
    price_changes: int = 0
    price_increases: int = 0
    price_decreases: int = 0
    average_price: float = 0.0

    @classmethod
    def from_competitors(cls, competitors: Iterable[Competitor]) -> "CompetitorInsights":
        """
        Aggregate stock and price movement over the given competitors.

        The average price only counts competitors with a positive price;
        out-of-stock listings usually report 0.
        """

        rows = list(competitors)
        in_stock = sum(1 for row in rows if row.in_stock)
        priced = [row.price for row in rows if row.price > 0]
        return cls(
            total=len(rows),
            in_stock=in_stock,
            out_of_stock=len(rows) - in_stock,
            price_changes=sum(1 for row in rows if row.percent_diff != 0),
            price_increases=sum(1 for row in rows if row.percent_diff > 0),
            price_decreases=sum(1 for row in rows if row.percent_diff < 0),
            average_price=sum(priced) / len(priced) if priced else 0.0,
        )
