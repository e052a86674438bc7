"""
Report Orchestrator

Runs every analysis stage over one filtered order set and assembles the
SalesReport. A failing stage is logged and replaced by its empty result,
so one bad aggregation never loses the whole report.
"""

from datetime import datetime
from typing import Callable, Optional, TypeVar

from analysis.anomalies import anomaly_detector
from analysis.customers import customer_analyzer
from analysis.metrics import compute_metrics
from analysis.seasonality import seasonality_analyzer
from analysis.trends import trend_analyzer
from api.schemas.responses import (
    CustomerInsights,
    CustomerTrends,
    DateRangeInfo,
    Metrics,
    ProductRanking,
    SalesReport,
    SalesTrend,
    Seasonality,
    TemporalTrends,
    Trends,
)
from config import get_settings
from core.date_ranges import DateRange
from core.logging_config import analytics_logger as logger
from core.order_loader import Order

T = TypeVar("T")

NO_TREND = SalesTrend(
    trend="insufficient_data",
    change=0.0,
    description="Need more data for trend analysis",
)


def make_report_id(now: datetime) -> str:
    return f"report_{int(now.timestamp() * 1000)}"


class ReportOrchestrator:
    """
    Orchestrates report construction in order.

    Flow:
    1. Metrics (daily buckets feed every later stage)
    2. Sales, product, customer and temporal trends
    3. Seasonality
    4. Anomaly detection
    5. Customer insights
    """

    def __init__(self):
        self.settings = get_settings()
        self.logger = logger

    def _stage(self, name: str, run: Callable[[], T], fallback: Callable[[], T]) -> T:
        try:
            return run()
        except Exception as e:
            self.logger.warning(f"{name} failed: {e}")
            return fallback()

    def build_report(
        self,
        orders: list[Order],
        date_range: DateRange,
        previous_orders: Optional[list[Order]] = None,
        now: Optional[datetime] = None,
    ) -> SalesReport:
        """Assemble a SalesReport from orders already filtered to ``date_range``."""
        now = now or datetime.now()
        analysis = self.settings.analysis
        self.logger.info(f"Building report for {date_range.key} over {len(orders)} orders")

        metrics = self._stage(
            "Metrics", lambda: compute_metrics(orders, previous_orders), Metrics
        )
        daily_sales = metrics.daily_sales

        sales_trend = self._stage(
            "Sales trend", lambda: trend_analyzer.analyze_sales_trend(daily_sales), lambda: NO_TREND
        )
        product_trends = self._stage(
            "Product trends",
            lambda: trend_analyzer.analyze_product_trends(orders, analysis.product_trend_limit),
            ProductRanking,
        )
        top_products = self._stage(
            "Top products",
            lambda: trend_analyzer.analyze_product_trends(orders, analysis.top_products_limit),
            ProductRanking,
        )
        customer_trends = self._stage(
            "Customer trends", lambda: trend_analyzer.analyze_customer_trends(orders), CustomerTrends
        )
        temporal_trends = self._stage(
            "Temporal trends", lambda: trend_analyzer.analyze_temporal_trends(orders), TemporalTrends
        )
        seasonality = self._stage(
            "Seasonality", lambda: seasonality_analyzer.analyze(daily_sales), Seasonality
        )
        anomalies = anomaly_detector.detect_all(orders, daily_sales, top_products)
        customer_insights = self._stage(
            "Customer insights", lambda: customer_analyzer.analyze(orders), CustomerInsights
        )

        report = SalesReport(
            report_id=make_report_id(now),
            date_range=DateRangeInfo.model_validate(date_range.to_dict()),
            generated_at=now,
            source="local",
            metrics=metrics,
            trends=Trends(
                sales_trend=sales_trend,
                product_trends=product_trends,
                customer_trends=customer_trends,
                temporal_trends=temporal_trends,
                seasonality=seasonality,
            ),
            anomalies=anomalies,
            top_products=top_products,
            customer_insights=customer_insights,
        )
        self.logger.success(
            f"Report {report.report_id}: {metrics.total_orders} orders, "
            f"{len(anomalies)} anomalies, trend {sales_trend.trend}"
        )
        return report

    def empty_report(
        self,
        date_range: Optional[DateRange],
        error: Optional[str] = None,
        now: Optional[datetime] = None,
        key: str = "unknown",
    ) -> SalesReport:
        """A zero report, used when the request itself cannot be served."""
        now = now or datetime.now()
        if date_range is not None:
            range_info = DateRangeInfo.model_validate(date_range.to_dict())
        else:
            range_info = DateRangeInfo(key=key, label=key, start_date=now, end_date=now)

        return SalesReport(
            report_id=make_report_id(now),
            date_range=range_info,
            generated_at=now,
            metrics=Metrics(),
            trends=Trends(
                sales_trend=NO_TREND,
                product_trends=ProductRanking(),
                customer_trends=CustomerTrends(),
                temporal_trends=TemporalTrends(),
                seasonality=Seasonality(),
            ),
            top_products=ProductRanking(),
            customer_insights=CustomerInsights(),
            error=error,
        )


# Global instance
report_orchestrator = ReportOrchestrator()
