"""
Metrics Calculator

Totals, averages, status breakdown, daily buckets and peak day over a
filtered order set.
"""

from datetime import datetime
from typing import Optional

import polars as pl

from api.schemas.responses import DailyBucket, DashboardSummary, Metrics, PeakDay
from core.coercion import safe_divide
from core.logging_config import analytics_logger as logger
from core.order_loader import (
    COMPLETED_STATUSES,
    CONVERSION_STATUSES,
    PENDING_STATUSES,
    Order,
    line_items_frame,
    orders_frame,
)


class MetricsCalculator:
    """Aggregates canonical orders into :class:`Metrics`."""

    def compute(
        self,
        orders: list[Order],
        previous_orders: Optional[list[Order]] = None,
    ) -> Metrics:
        """
        Compute metrics for one period.

        ``total_revenue`` counts every status; ``completed_revenue`` counts
        only confirmed, approved and delivered orders. When
        ``previous_orders`` is given, ``growth_rate`` compares against it.
        """
        frame = orders_frame(orders)
        total_orders = frame.height
        total_revenue = float(frame["total_amount"].sum())

        completed_revenue = float(
            frame.filter(pl.col("status").is_in(list(COMPLETED_STATUSES)))["total_amount"].sum()
        )
        converted = frame.filter(pl.col("status").is_in(list(CONVERSION_STATUSES))).height

        status_breakdown = {
            row["status"]: row["count"]
            for row in frame.group_by("status", maintain_order=True)
            .agg(pl.len().alias("count"))
            .iter_rows(named=True)
        }

        daily_sales = self.daily_buckets(frame)

        growth_rate = None
        previous_revenue = None
        if previous_orders is not None:
            previous_revenue = sum(o.total_amount for o in previous_orders)
            if previous_revenue > 0:
                growth_rate = (total_revenue - previous_revenue) / previous_revenue

        metrics = Metrics(
            total_orders=total_orders,
            total_revenue=total_revenue,
            average_order_value=safe_divide(total_revenue, total_orders),
            completed_revenue=completed_revenue,
            status_breakdown=status_breakdown,
            daily_sales=daily_sales,
            peak_day=self.peak_day(daily_sales),
            conversion_rate=safe_divide(converted, total_orders),
            growth_rate=growth_rate,
            previous_revenue=previous_revenue,
            last_order_at=frame["timestamp"].max() if total_orders else None,
        )
        logger.debug(f"Metrics: {total_orders} orders, revenue {total_revenue:.2f}")
        return metrics

    @staticmethod
    def daily_buckets(frame: pl.DataFrame) -> dict[str, DailyBucket]:
        """Group an orders frame by calendar day, chronologically."""
        daily = (
            frame.group_by("day")
            .agg(
                pl.len().alias("orders"),
                pl.col("total_amount").sum().alias("revenue"),
                pl.col("item_count").sum().alias("items"),
            )
            .sort("day")
        )
        return {
            row["day"]: DailyBucket(orders=row["orders"], revenue=row["revenue"], items=row["items"])
            for row in daily.iter_rows(named=True)
        }

    @staticmethod
    def peak_day(daily_sales: dict[str, DailyBucket]) -> Optional[PeakDay]:
        """
        Day with the most orders.

        Ties on order count go to the higher revenue, then to the earliest day.
        """
        best_day = None
        best: Optional[DailyBucket] = None
        for day, bucket in daily_sales.items():
            if bucket.orders == 0:
                continue
            if (
                best is None
                or bucket.orders > best.orders
                or (bucket.orders == best.orders and bucket.revenue > best.revenue)
            ):
                best_day, best = day, bucket

        if best is None:
            return None
        return PeakDay(date=best_day, orders=best.orders, revenue=best.revenue)

    def dashboard_summary(self, orders: list[Order], now: Optional[datetime] = None) -> DashboardSummary:
        """Headline numbers for the admin dashboard."""
        now = now or datetime.now()
        today = now.date().isoformat()
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

        frame = orders_frame(orders)
        completed = frame.filter(pl.col("status").is_in(list(COMPLETED_STATUSES)))

        items = line_items_frame(orders)
        top_product = None
        if items.height:
            ranked = (
                items.group_by("product_key")
                .agg(pl.col("product_name").first(), pl.col("line_total").sum())
                .sort(["line_total", "product_key"], descending=[True, False])
            )
            top_product = ranked["product_name"][0]

        return DashboardSummary(
            today_orders=frame.filter(pl.col("day") == today).height,
            today_revenue=float(completed.filter(pl.col("day") == today)["total_amount"].sum()),
            monthly_revenue=float(
                completed.filter(pl.col("timestamp") >= month_start)["total_amount"].sum()
            ),
            pending_orders=frame.filter(pl.col("status").is_in(list(PENDING_STATUSES))).height,
            total_orders=frame.height,
            total_revenue=float(frame["total_amount"].sum()),
            top_product=top_product,
        )


def compute_metrics(orders: list[Order], previous_orders: Optional[list[Order]] = None) -> Metrics:
    return metrics_calculator.compute(orders, previous_orders)


def compute_dashboard_summary(orders: list[Order], now: Optional[datetime] = None) -> DashboardSummary:
    return metrics_calculator.dashboard_summary(orders, now)


# Global instance
metrics_calculator = MetricsCalculator()
