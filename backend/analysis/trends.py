"""
Trend Analyzer

Linear trend over daily revenue plus per-product, per-customer and
time-of-day breakdowns.
"""

import math
from calendar import day_name
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

import numpy as np
import polars as pl
from scipy import stats as scipy_stats

from api.schemas.responses import (
    CustomerStat,
    CustomerTrends,
    DailyBucket,
    ProductRanking,
    ProductStat,
    SalesTrend,
    TemporalTrends,
    WeeklyCustomers,
)
from config import get_settings
from core.coercion import safe_divide
from core.logging_config import analytics_logger as logger
from core.order_loader import Order, line_items_frame, orders_frame
from insights.formatting import format_currency


@dataclass
class RegressionResult:
    """Ordinary least squares fit of values against a 0-based index."""

    slope: float
    intercept: float
    r_squared: float
    n: int

    def predict(self, index: float) -> float:
        return self.slope * index + self.intercept


def linear_regression(values: Sequence[float]) -> RegressionResult:
    """
    Fit ``values[i] = slope * i + intercept``.

    Fewer than two points yield an all-zero fit. ``r_squared`` is clamped
    to [0, 1] and is 0 for a constant series.
    """
    y = np.asarray(values, dtype=np.float64)
    n = len(y)
    if n < 2:
        return RegressionResult(slope=0.0, intercept=float(y[0]) if n else 0.0, r_squared=0.0, n=n)

    x = np.arange(n, dtype=np.float64)
    if np.ptp(y) == 0:
        return RegressionResult(slope=0.0, intercept=float(y[0]), r_squared=0.0, n=n)

    fit = scipy_stats.linregress(x, y)
    r_squared = float(fit.rvalue) ** 2
    if not math.isfinite(r_squared):
        r_squared = 0.0

    return RegressionResult(
        slope=float(fit.slope),
        intercept=float(fit.intercept),
        r_squared=min(max(r_squared, 0.0), 1.0),
        n=n,
    )


def trend_direction(values: Sequence[float], deadband: Optional[float] = None) -> str:
    """
    Compare the mean of the first half of a series with the second half.

    Relative change inside +/- ``deadband`` percent is ``stable``.
    """
    if deadband is None:
        deadband = get_settings().analysis.trend_direction_deadband
    if len(values) < 2:
        return "stable"

    middle = len(values) // 2
    first_avg = float(np.mean(values[:middle]))
    second_avg = float(np.mean(values[middle:]))

    if first_avg == 0:
        return "increasing" if second_avg > 0 else "stable"

    change = (second_avg - first_avg) / abs(first_avg) * 100
    if change > deadband:
        return "increasing"
    if change < -deadband:
        return "decreasing"
    return "stable"


def week_key(moment: datetime) -> str:
    """Week-of-month bucket key, ``{year}-{month:02}-W{n}`` with Sunday-based weekdays."""
    sunday_based = (moment.weekday() + 1) % 7
    week = math.ceil((moment.day - sunday_based + 1) / 7)
    return f"{moment.year}-{moment.month:02d}-W{week}"


class TrendAnalyzer:
    """Trend analysis over canonical orders and their daily buckets."""

    def __init__(self):
        self.settings = get_settings()

    def analyze_sales_trend(self, daily_sales: dict[str, DailyBucket]) -> SalesTrend:
        """
        Classify the direction of daily revenue.

        ``change`` is the regression slope in currency per day;
        ``confidence`` is the fit quality, not a reliability score.
        """
        days = sorted(daily_sales)
        if len(days) < 2:
            return SalesTrend(
                trend="insufficient_data",
                change=0.0,
                description="Need more data for trend analysis",
                confidence=0.0,
                data_points=len(days),
            )

        revenues = [daily_sales[day].revenue for day in days]
        fit = linear_regression(revenues)
        threshold = self.settings.analysis.trend_slope_threshold

        if fit.slope > threshold:
            trend = "increasing"
            description = (
                "Sales are trending upward with an average daily increase of "
                f"{format_currency(fit.slope, decimals=2)}"
            )
        elif fit.slope < -threshold:
            trend = "decreasing"
            description = (
                "Sales are trending downward with an average daily decrease of "
                f"{format_currency(abs(fit.slope), decimals=2)}"
            )
        else:
            trend = "stable"
            description = "Sales are relatively stable with minimal day-to-day variation"

        logger.debug(f"Sales trend {trend}: slope {fit.slope:.4f}, r2 {fit.r_squared:.3f} over {fit.n} days")
        return SalesTrend(
            trend=trend,
            change=fit.slope,
            description=description,
            confidence=min(fit.r_squared, 1.0) if fit.n >= 3 else 0.0,
            r_squared=fit.r_squared,
            data_points=fit.n,
        )

    def analyze_product_trends(self, orders: list[Order], top_n: Optional[int] = None) -> ProductRanking:
        """Rank products by revenue with a top-20% concentration ratio."""
        top_n = top_n or self.settings.analysis.product_trend_limit
        products = self.product_stats(orders)
        if not products:
            return ProductRanking()

        total_revenue = sum(p.revenue for p in products)
        head_count = math.ceil(len(products) * self.settings.analysis.concentration_share)
        head_revenue = sum(p.revenue for p in products[:head_count])

        bottom = list(reversed(products[-top_n:])) if len(products) > 1 else []
        return ProductRanking(
            top=products[:top_n],
            bottom=bottom,
            total_products=len(products),
            total_revenue=total_revenue,
            concentration_ratio=safe_divide(head_revenue, total_revenue),
        )

    def product_stats(self, orders: list[Order]) -> list[ProductStat]:
        """Per-product quantity, revenue and line count, revenue descending."""
        items = line_items_frame(orders)
        if items.height == 0:
            return []

        grouped = (
            items.with_row_index("seen")
            .group_by("product_key")
            .agg(
                pl.col("product_name").first(),
                pl.col("quantity").sum(),
                pl.col("line_total").sum().alias("revenue"),
                pl.len().alias("orders"),
                pl.col("seen").min(),
            )
            .sort(["revenue", "seen"], descending=[True, False])
        )
        total_revenue = float(grouped["revenue"].sum())

        return [
            ProductStat(
                product_key=row["product_key"],
                product_name=row["product_name"],
                quantity=row["quantity"],
                revenue=row["revenue"],
                orders=row["orders"],
                revenue_share=safe_divide(row["revenue"], total_revenue),
            )
            for row in grouped.iter_rows(named=True)
        ]

    def customer_stats(self, orders: list[Order]) -> list[CustomerStat]:
        """Per-customer lifetime numbers within the order set, revenue descending."""
        frame = orders_frame(orders).filter(pl.col("customer_key").is_not_null())
        if frame.height == 0:
            return []

        grouped = (
            frame.group_by("customer_key", maintain_order=True)
            .agg(
                pl.col("customer_name").first(),
                pl.len().alias("orders"),
                pl.col("total_amount").sum().alias("revenue"),
                pl.col("timestamp").min().alias("first_order"),
                pl.col("timestamp").max().alias("last_order"),
            )
        )
        stats = [CustomerStat(**row) for row in grouped.iter_rows(named=True)]
        return sorted(stats, key=lambda c: c.revenue, reverse=True)

    def analyze_customer_trends(self, orders: list[Order]) -> CustomerTrends:
        """New vs returning customers and weekly acquisition."""
        customers = self.customer_stats(orders)

        weekly_frame = (
            orders_frame(orders)
            .with_columns(
                pl.col("timestamp").map_elements(week_key, return_dtype=pl.Utf8).alias("week")
            )
            .group_by("week")
            .agg(
                pl.col("customer_key").drop_nulls().n_unique().alias("unique_customers"),
                pl.len().alias("orders"),
                pl.col("total_amount").sum().alias("revenue"),
            )
            .sort("week")
        )
        weekly = [
            WeeklyCustomers(
                week=row["week"],
                unique_customers=row["unique_customers"],
                orders=row["orders"],
                revenue=row["revenue"],
                average_order_value=safe_divide(row["revenue"], row["orders"]),
            )
            for row in weekly_frame.iter_rows(named=True)
        ]

        new_customers = sum(1 for c in customers if c.orders == 1)
        returning = sum(1 for c in customers if c.orders > 1)
        loyal = sorted((c for c in customers if c.orders > 2), key=lambda c: c.orders, reverse=True)

        return CustomerTrends(
            total_customers=len(customers),
            new_customers=new_customers,
            returning_customers=returning,
            retention_rate=safe_divide(returning, len(customers)),
            average_lifetime_value=safe_divide(sum(c.revenue for c in customers), len(customers)),
            weekly=weekly,
            loyal_customers=loyal[: self.settings.analysis.top_customers_limit],
            acquisition_trend=trend_direction([w.unique_customers for w in weekly]),
        )

    def analyze_temporal_trends(self, orders: list[Order]) -> TemporalTrends:
        """Order counts by hour of day and by weekday."""
        by_hour: dict[int, int] = {}
        by_weekday: dict[str, int] = {}
        for order in orders:
            hour = order.timestamp.hour
            weekday = day_name[order.timestamp.weekday()]
            by_hour[hour] = by_hour.get(hour, 0) + 1
            by_weekday[weekday] = by_weekday.get(weekday, 0) + 1

        peak_hours = sorted(by_hour, key=lambda h: (-by_hour[h], h))[:3]
        peak_weekdays = sorted(by_weekday, key=lambda d: -by_weekday[d])[:3]

        return TemporalTrends(
            by_hour={str(hour): count for hour, count in sorted(by_hour.items())},
            by_weekday=by_weekday,
            peak_hours=peak_hours,
            peak_weekdays=peak_weekdays,
        )


# Global instance
trend_analyzer = TrendAnalyzer()
