"""
Sales Report Generator

Caller-facing surface of the analytics engine. Reports come from the
remote analytics API when it is enabled and healthy, otherwise they are
computed locally from the order snapshot.
"""

import asyncio
from datetime import datetime
from typing import Any, Callable, Iterable, Optional, Union

from pydantic import ValidationError

from analysis.forecast import sales_forecaster
from analysis.metrics import compute_dashboard_summary
from analysis.orchestrator import report_orchestrator
from api.schemas.responses import AISummary, DashboardSummary, Forecast, SalesReport
from core.date_ranges import filter_orders, resolve_date_range
from core.errors import InvalidDateRangeError, RemoteAnalyticsError
from core.logging_config import insights_logger as logger
from core.order_loader import Order, OrderLoader, order_loader
from core.remote_client import RemoteAnalyticsClient, remote_client
from insights.narrative_generator import narrative_generator

OrderSource = Callable[[], Iterable[Any]]

DATE_FILTER_KEYS = ("startDate", "endDate")


class SalesReportGenerator:
    """
    Public analytics surface over one order store.

    Args:
        order_source: Callable returning the raw order snapshot
        remote: Remote analytics client; skipped when disabled
        clock: Source of "now", injectable for tests
    """

    def __init__(
        self,
        order_source: Optional[OrderSource] = None,
        remote: Optional[RemoteAnalyticsClient] = None,
        loader: Optional[OrderLoader] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.order_source = order_source or list
        self.remote = remote or remote_client
        self.loader = loader or order_loader
        self.clock = clock
        self.logger = logger

    def load_orders(self, records: Optional[Iterable[Any]] = None) -> list[Order]:
        """Canonical orders from ``records`` or, when omitted, the order source."""
        if records is None:
            records = self.order_source()
        return self.loader.load(records)

    async def generate_sales_report(
        self,
        date_range: str = "month",
        filters: Optional[dict[str, Any]] = None,
        include_summary: bool = False,
        include_forecast: bool = False,
    ) -> SalesReport:
        """
        Generate a report for a date range.

        Never raises for bad input: an unknown range or unparsable custom
        dates yield an empty report with ``error`` set.
        """
        report = None
        if self.remote.enabled:
            report = await self._remote_report(date_range, filters)

        if report is None:
            report = await asyncio.to_thread(self.build_local_report, date_range, filters)

        if report.error:
            return report

        updates: dict[str, Any] = {}
        if include_summary and report.ai_summary is None:
            updates["ai_summary"] = self.generate_ai_summary(report)
        if include_forecast and report.forecast is None:
            period = "month" if date_range in ("month", "lastMonth") else "week"
            updates["forecast"] = self.generate_forecast(period=period)
        return report.model_copy(update=updates) if updates else report

    async def _remote_report(self, date_range: str, filters: Optional[dict[str, Any]]) -> Optional[SalesReport]:
        try:
            data = await self.remote.fetch_report(date_range, filters)
            report = SalesReport.model_validate({**data, "source": "remote"})
            self.logger.info(f"Using remote report for {date_range}")
            return report
        except RemoteAnalyticsError as e:
            self.logger.warning(f"Remote analytics unavailable, computing locally: {e}")
        except ValidationError as e:
            self.logger.warning(f"Remote report failed validation, computing locally: {e.error_count()} errors")
        return None

    def build_local_report(
        self,
        date_range: str = "month",
        filters: Optional[dict[str, Any]] = None,
        records: Optional[Iterable[Any]] = None,
    ) -> SalesReport:
        """Compute a report from the local snapshot."""
        now = self.clock()
        filters = filters or {}
        try:
            window = resolve_date_range(date_range, filters, now)
        except InvalidDateRangeError as e:
            self.logger.warning(f"Rejected date range {date_range!r}: {e}")
            return report_orchestrator.empty_report(None, error=str(e), now=now, key=str(date_range))

        orders = self.load_orders(records)
        current = filter_orders(orders, window, filters)

        # Same non-date filters over the preceding window of equal length
        other_filters = {k: v for k, v in filters.items() if k not in DATE_FILTER_KEYS}
        previous = filter_orders(orders, window.previous(), other_filters)

        return report_orchestrator.build_report(current, window, previous_orders=previous, now=now)

    def generate_ai_summary(self, report: Union[SalesReport, dict[str, Any]]) -> AISummary:
        return narrative_generator.generate_ai_summary(report, now=self.clock())

    def generate_forecast(
        self,
        historical_orders: Optional[Iterable[Any]] = None,
        period: str = "week",
    ) -> Forecast:
        """Forecast from raw or canonical orders; defaults to the full snapshot."""
        orders = self.load_orders(historical_orders)
        return sales_forecaster.generate_forecast(orders, period, now=self.clock())

    def dashboard_summary(self) -> DashboardSummary:
        return compute_dashboard_summary(self.load_orders(), now=self.clock())
