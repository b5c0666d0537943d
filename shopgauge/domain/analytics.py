"""
shopgauge/domain/analytics.py

Unified analytics: one daily history built from the dashboard's revenue and
orders timeseries, followed by a linear-trend forecast of up to 60 days.

The trend is an OLS line over the daily values:

    m = cov(x, y) / var(x)
    b = mean(y) - m * mean(x)

where x = [0, 1, ..., n-1]. Day k after the last observed day is projected
from the fitted value at the last position:

    day_k = max(0, (m * (n - 1) + b) + k * m)

Every prediction carries a confidence interval of -40% / +40% around the
projected revenue and order count.

No I/O and no logging happen in this module.
"""

from __future__ import annotations

import datetime as dt
import math
from dataclasses import asdict, dataclass, field
from typing import Any, Iterable, Mapping

MAX_PREDICTION_DAYS = 60
DEFAULT_PERIOD_DAYS = 60
DEFAULT_CONVERSION_RATE = 2.5
CONFIDENCE_LOW = 0.6
CONFIDENCE_HIGH = 1.4
MIN_TREND_POINTS = 2

UNIFIED_CACHE_PREFIX = "unified_analytics"


class AnalyticsDataError(ValueError):
    """
    Raised when stored unified analytics do not have the expected shape.
    """


def unified_cache_key(period_days: int, include_predictions: bool) -> str:
    suffix = "with_predictions" if include_predictions else "no_predictions"
    return f"{UNIFIED_CACHE_PREFIX}_{period_days}d_{suffix}"


@dataclass(frozen=True)
class HistoricalPoint:
    date: str
    revenue: float
    orders_count: int
    conversion_rate: float
    avg_order_value: float


@dataclass(frozen=True)
class ConfidenceInterval:
    revenue_min: float
    revenue_max: float
    orders_min: int
    orders_max: int


@dataclass(frozen=True)
class PredictionPoint:
    date: str
    revenue: float
    orders_count: int
    conversion_rate: float
    avg_order_value: float
    confidence_interval: ConfidenceInterval
    is_prediction: bool = True


@dataclass(frozen=True)
class TrendLine:
    """
    Fitted OLS line. `fitted_last` is the line's value at the last observed
    position, the anchor every projection starts from.
    """

    slope: float
    intercept: float
    fitted_last: float

    def project(self, steps: int) -> float:
        return self.fitted_last + steps * self.slope


@dataclass
class UnifiedAnalytics:
    historical: list[HistoricalPoint] = field(default_factory=list)
    predictions: list[PredictionPoint] = field(default_factory=list)
    period_days: int = DEFAULT_PERIOD_DAYS
    total_revenue: float = 0.0
    total_orders: int = 0

    @property
    def has_data(self) -> bool:
        return bool(self.historical)

    def horizon(self, days: int) -> list[PredictionPoint]:
        """
        Predictions for the first `days` days, capped at 60.
        """

        return self.predictions[: max(0, min(days, MAX_PREDICTION_DAYS))]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Trend fitting
# ---------------------------------------------------------------------------


def fit_trend(values: list[float]) -> TrendLine:
    """
    Fit an OLS line to `values` (oldest first).

    Parameters
    ----------
    values:
        Daily observations in chronological order.

    Returns
    -------
    TrendLine
        A flat line at the mean when fewer than two points are given.
    """

    n = len(values)
    if n == 0:
        return TrendLine(slope=0.0, intercept=0.0, fitted_last=0.0)

    mean_y = sum(values) / n
    if n < MIN_TREND_POINTS:
        return TrendLine(slope=0.0, intercept=mean_y, fitted_last=mean_y)

    mean_x = (n - 1) / 2
    cov_xy = sum((i - mean_x) * (y - mean_y) for i, y in enumerate(values))
    var_x = sum((i - mean_x) ** 2 for i in range(n))

    slope = cov_xy / var_x
    intercept = mean_y - slope * mean_x
    return TrendLine(slope=slope, intercept=intercept, fitted_last=slope * (n - 1) + intercept)


# ---------------------------------------------------------------------------
# Daily history
# ---------------------------------------------------------------------------


def _field(row: Any, *names: str) -> Any:
    for name in names:
        value = row.get(name) if isinstance(row, Mapping) else getattr(row, name, None)
        if value is not None and value != "":
            return value
    return None


def _day(row: Any) -> str | None:
    raw = _field(row, "created_at", "date")
    if raw is None:
        return None
    text = str(raw)[:10]
    try:
        dt.date.fromisoformat(text)
    except ValueError:
        return None
    return text


def _amount(row: Any) -> float | None:
    value = _field(row, "total_price", "revenue")
    if value is None:
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(amount) else amount


def _count(row: Any, default: int) -> int:
    value = _field(row, "orders_count", "count")
    if value is None:
        return default
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return default


def daily_history(
    revenue_rows: Iterable[Any],
    order_rows: Iterable[Any] = (),
    *,
    conversion_rate: float = 0.0,
) -> list[HistoricalPoint]:
    """
    Group revenue and orders by calendar day, oldest day first.

    Rows may be mappings or objects exposing `created_at`/`date` and
    `total_price`/`revenue`. Rows without a valid date or with a non-numeric
    amount are skipped. Order counts come from `order_rows` when any are
    given (`orders_count`, else `count`, else one per row); otherwise each
    revenue row with a positive amount or an id counts as one order. With no
    revenue rows at all, the order rows supply revenue too.
    """

    revenue_list = [row for row in revenue_rows if row is not None]
    order_list = [row for row in order_rows if row is not None]

    revenue_by_day: dict[str, float] = {}
    orders_by_day: dict[str, int] = {}

    for row in revenue_list or order_list:
        day = _day(row)
        amount = _amount(row)
        if day is None or amount is None:
            continue
        revenue_by_day[day] = revenue_by_day.get(day, 0.0) + amount
        if not order_list:
            has_id = _field(row, "id", "order_id") is not None
            orders_by_day[day] = orders_by_day.get(day, 0) + _count(
                row, 1 if amount > 0 or has_id else 0
            )

    for row in order_list:
        day = _day(row)
        if day is None:
            continue
        orders_by_day[day] = orders_by_day.get(day, 0) + _count(row, 1)
        revenue_by_day.setdefault(day, 0.0)

    rate = conversion_rate if conversion_rate > 0 else DEFAULT_CONVERSION_RATE
    history: list[HistoricalPoint] = []
    for day in sorted(revenue_by_day):
        revenue = round(revenue_by_day[day], 2)
        orders = orders_by_day.get(day, 0)
        history.append(
            HistoricalPoint(
                date=day,
                revenue=revenue,
                orders_count=orders,
                conversion_rate=rate,
                avg_order_value=round(revenue / orders, 2) if orders else 0.0,
            )
        )
    return history


def _within_period(history: list[HistoricalPoint], period_days: int) -> list[HistoricalPoint]:
    if not history or period_days <= 0:
        return history
    last = dt.date.fromisoformat(history[-1].date)
    cutoff = (last - dt.timedelta(days=period_days - 1)).isoformat()
    return [point for point in history if point.date >= cutoff]


# ---------------------------------------------------------------------------
# Forecast
# ---------------------------------------------------------------------------


def predict(history: list[HistoricalPoint], days: int = MAX_PREDICTION_DAYS) -> list[PredictionPoint]:
    """
    Project revenue and orders for `days` days after the last observed day.

    `days` is capped at 60. The conversion rate is held at the historical
    average.
    """

    days = max(0, min(days, MAX_PREDICTION_DAYS))
    if not history or days == 0:
        return []

    revenue_trend = fit_trend([point.revenue for point in history])
    orders_trend = fit_trend([float(point.orders_count) for point in history])
    conversion = round(sum(point.conversion_rate for point in history) / len(history), 2)
    last_day = dt.date.fromisoformat(history[-1].date)

    predictions: list[PredictionPoint] = []
    for step in range(1, days + 1):
        revenue = round(max(0.0, revenue_trend.project(step)), 2)
        orders = max(0, round(orders_trend.project(step)))
        predictions.append(
            PredictionPoint(
                date=(last_day + dt.timedelta(days=step)).isoformat(),
                revenue=revenue,
                orders_count=orders,
                conversion_rate=conversion,
                avg_order_value=round(revenue / orders, 2) if orders else 0.0,
                confidence_interval=ConfidenceInterval(
                    revenue_min=round(revenue * CONFIDENCE_LOW, 2),
                    revenue_max=round(revenue * CONFIDENCE_HIGH, 2),
                    orders_min=math.floor(orders * CONFIDENCE_LOW),
                    orders_max=math.ceil(orders * CONFIDENCE_HIGH),
                ),
            )
        )
    return predictions


def build_unified_analytics(
    revenue_rows: Iterable[Any],
    order_rows: Iterable[Any] = (),
    *,
    conversion_rate: float = 0.0,
    period_days: int = DEFAULT_PERIOD_DAYS,
    prediction_days: int = MAX_PREDICTION_DAYS,
    include_predictions: bool = True,
) -> UnifiedAnalytics:
    history = _within_period(
        daily_history(revenue_rows, order_rows, conversion_rate=conversion_rate),
        period_days,
    )
    return UnifiedAnalytics(
        historical=history,
        predictions=predict(history, prediction_days) if include_predictions else [],
        period_days=period_days,
        total_revenue=round(sum(point.revenue for point in history), 2),
        total_orders=sum(point.orders_count for point in history),
    )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and not math.isnan(value)


def validate_unified_analytics(payload: Any) -> UnifiedAnalytics:
    """
    Rebuild unified analytics from their dict form, e.g. a cache entry.

    `historical` and `predictions` must be lists of complete rows. Missing
    or non-numeric totals are recomputed from the historical rows and a
    missing `period_days` defaults to 60.

    Raises:
        AnalyticsDataError: If the payload cannot be turned back into rows.
    """

    if not isinstance(payload, Mapping):
        raise AnalyticsDataError("Unified analytics must be a mapping")

    historical = payload.get("historical")
    predictions = payload.get("predictions", [])
    if not isinstance(historical, list):
        raise AnalyticsDataError("Historical data must be a list")
    if not isinstance(predictions, list):
        raise AnalyticsDataError("Predictions data must be a list")

    try:
        history = [HistoricalPoint(**row) for row in historical]
        forecast = [
            PredictionPoint(
                **{
                    **row,
                    "confidence_interval": ConfidenceInterval(**row["confidence_interval"]),
                }
            )
            for row in predictions
        ]
    except (TypeError, KeyError) as exc:
        raise AnalyticsDataError(f"Malformed unified analytics row: {exc}") from exc

    total_revenue = payload.get("total_revenue")
    if not _is_number(total_revenue):
        total_revenue = round(sum(point.revenue for point in history), 2)
    total_orders = payload.get("total_orders")
    if not _is_number(total_orders):
        total_orders = sum(point.orders_count for point in history)
    period_days = payload.get("period_days")
    if not _is_number(period_days):
        period_days = DEFAULT_PERIOD_DAYS

    return UnifiedAnalytics(
        historical=history,
        predictions=forecast,
        period_days=int(period_days),
        total_revenue=float(total_revenue),
        total_orders=int(total_orders),
    )
