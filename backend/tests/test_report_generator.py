"""
Test Report Generation

Date-range resolution, local report assembly and the remote-first
fallback path of the caller-facing generator.
"""

from datetime import datetime

import httpx
import pytest

from config import RemoteAnalyticsSettings
from core.date_ranges import filter_orders, resolve_date_range
from core.errors import InvalidDateRangeError, RemoteAnalyticsError
from core.remote_client import RemoteAnalyticsClient
from insights.narrative_generator import NO_ORDERS_SUMMARY
from insights.report_generator import SalesReportGenerator


def remote_client_for(handler, **settings):
    options = {"enabled": True, "base_url": "http://analytics.test/api", "max_attempts": 2}
    options.update(settings)
    return RemoteAnalyticsClient(
        settings=RemoteAnalyticsSettings(**options),
        transport=httpx.MockTransport(handler),
        backoff_seconds=0,
    )


@pytest.fixture
def offline_generator(spike_records, clock):
    remote = RemoteAnalyticsClient(settings=RemoteAnalyticsSettings(enabled=False))
    return SalesReportGenerator(order_source=lambda: spike_records, remote=remote, clock=clock)


class TestDateRanges:
    @pytest.mark.parametrize("key, label, start", [
        ("today", "today", datetime(2024, 3, 20)),
        ("yesterday", "yesterday", datetime(2024, 3, 19)),
        ("week", "the past 7 days", datetime(2024, 3, 13, 12)),
        ("month", "this month", datetime(2024, 3, 1)),
        ("lastMonth", "last month", datetime(2024, 2, 1)),
        ("quarter", "this quarter", datetime(2024, 1, 1)),
        ("year", "this year", datetime(2024, 1, 1)),
    ])
    def test_named_ranges(self, now, key, label, start):
        window = resolve_date_range(key, now=now)
        assert window.label == label
        assert window.start == start

    def test_closed_windows_end_before_boundary(self, now):
        last_month = resolve_date_range("lastMonth", now=now)
        assert last_month.contains(datetime(2024, 2, 29, 23, 59, 59))
        assert not last_month.contains(datetime(2024, 3, 1))

    def test_custom_date_only_end_covers_day(self, now):
        window = resolve_date_range("custom", {"startDate": "2024-03-11", "endDate": "2024-03-12"}, now)

        assert window.label == "11 Mar 2024 to 12 Mar 2024"
        assert window.contains(datetime(2024, 3, 12, 23, 0))

    @pytest.mark.parametrize("key, filters", [
        ("fortnight", None),
        ("custom", {"startDate": "not-a-date"}),
        ("custom", {"startDate": "2024-03-12", "endDate": "2024-03-01"}),
    ])
    def test_invalid_ranges_raise(self, now, key, filters):
        with pytest.raises(InvalidDateRangeError):
            resolve_date_range(key, filters, now)

    def test_previous_window_has_equal_length(self, now):
        window = resolve_date_range("week", now=now)
        previous = window.previous()
        assert previous.length == window.length
        assert previous.end < window.start

    def test_filters(self, spike_orders, now):
        window = resolve_date_range("month", now=now)

        assert len(filter_orders(spike_orders, window, {"customerId": "cust-0"})) == 3
        assert len(filter_orders(spike_orders, window, {"productId": "paneer"})) == 3
        assert len(filter_orders(spike_orders, window, {"minAmount": "150"})) == 1
        assert filter_orders(spike_orders, window, {"status": "pending"}) == []


class TestLocalReports:
    def test_spike_report(self, offline_generator):
        report = offline_generator.build_local_report("month")

        assert report.source == "local"
        assert report.error is None
        assert report.metrics.total_orders == 7
        assert report.metrics.total_revenue == pytest.approx(1000)
        assert report.report_id.startswith("report_")
        assert [a.type for a in report.anomalies] == ["sales_anomaly"]
        assert report.top_products.top[0].product_name == "Full Cream Milk"

    def test_previous_period_drives_growth(self, offline_generator):
        report = offline_generator.build_local_report("custom", {"startDate": "2024-03-14", "endDate": "2024-03-17"})

        # 14-17 March against 10-13 March
        assert report.metrics.total_revenue == pytest.approx(700)
        assert report.metrics.previous_revenue == pytest.approx(300)
        assert report.metrics.growth_rate == pytest.approx(4 / 3)

    def test_invalid_range_is_an_empty_report(self, offline_generator):
        report = offline_generator.build_local_report("fortnight")

        assert report.error
        assert report.metrics.total_orders == 0
        assert report.date_range.key == "fortnight"

    def test_serializes_camel_case(self, offline_generator):
        payload = offline_generator.build_local_report("month").model_dump(by_alias=True, mode="json")

        assert {"reportId", "dateRange", "generatedAt", "topProducts", "customerInsights"} <= set(payload)
        assert payload["metrics"]["averageOrderValue"] == pytest.approx(142.857, abs=1e-3)


class TestGenerator:
    @pytest.mark.asyncio
    async def test_empty_snapshot(self, clock):
        remote = RemoteAnalyticsClient(settings=RemoteAnalyticsSettings(enabled=False))
        generator = SalesReportGenerator(order_source=list, remote=remote, clock=clock)

        report = await generator.generate_sales_report("month")
        summary = generator.generate_ai_summary(report)

        assert report.metrics.total_orders == 0
        assert summary.summary == NO_ORDERS_SUMMARY

    @pytest.mark.asyncio
    async def test_include_summary_and_forecast(self, offline_generator):
        report = await offline_generator.generate_sales_report(
            "month", include_summary=True, include_forecast=True
        )

        assert report.ai_summary is not None
        assert report.forecast is not None
        assert report.forecast.period == "month"

    @pytest.mark.asyncio
    async def test_invalid_range_skips_extras(self, offline_generator):
        report = await offline_generator.generate_sales_report("fortnight", include_summary=True)

        assert report.error
        assert report.ai_summary is None

    def test_dashboard_and_forecast(self, offline_generator):
        assert offline_generator.dashboard_summary().total_orders == 7
        assert offline_generator.generate_forecast(period="week").history_days == 7


class TestRemoteFallback:
    @pytest.mark.asyncio
    async def test_remote_report_is_used(self, offline_generator, spike_records, clock):
        remote_payload = offline_generator.build_local_report("month").model_dump(by_alias=True, mode="json")
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"success": True, "data": remote_payload})

        remote = remote_client_for(handler, api_key="secret")
        generator = SalesReportGenerator(order_source=lambda: spike_records, remote=remote, clock=clock)

        report = await generator.generate_sales_report("month", {"status": "delivered"})

        assert report.source == "remote"
        assert report.metrics.total_orders == 7
        assert seen[0].url.path == "/api/analytics/report"
        assert seen[0].url.params["dateRange"] == "month"
        assert seen[0].url.params["status"] == "delivered"
        assert seen[0].headers["Authorization"] == "Bearer secret"
        await remote.close()

    @pytest.mark.asyncio
    async def test_server_errors_retry_then_fall_back(self, spike_records, clock):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503)

        remote = remote_client_for(handler)
        generator = SalesReportGenerator(order_source=lambda: spike_records, remote=remote, clock=clock)

        report = await generator.generate_sales_report("month")

        assert len(calls) == 2
        assert report.source == "local"
        assert report.metrics.total_orders == 7
        await remote.close()

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(401)

        remote = remote_client_for(handler)
        with pytest.raises(RemoteAnalyticsError):
            await remote.fetch_report("week")
        assert len(calls) == 1
        await remote.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        {"success": False, "message": "disabled"},
        {"success": True, "data": None},
        ["not", "an", "envelope"],
    ])
    async def test_bad_envelope(self, body):
        remote = remote_client_for(lambda request: httpx.Response(200, json=body))
        with pytest.raises(RemoteAnalyticsError):
            await remote.fetch_report("week")
        await remote.close()

    @pytest.mark.asyncio
    async def test_invalid_remote_report_falls_back(self, spike_records, clock):
        remote = remote_client_for(
            lambda request: httpx.Response(200, json={"success": True, "data": {"metrics": "broken"}})
        )
        generator = SalesReportGenerator(order_source=lambda: spike_records, remote=remote, clock=clock)

        report = await generator.generate_sales_report("month")

        assert report.source == "local"
        await remote.close()

    @pytest.mark.asyncio
    async def test_no_backoff_after_last_attempt(self):
        waits = []

        async def record_backoff(attempt):
            waits.append(attempt)

        remote = remote_client_for(lambda request: httpx.Response(503), max_attempts=3)
        remote._backoff = record_backoff

        with pytest.raises(RemoteAnalyticsError):
            await remote.fetch_report("week")
        assert waits == [0, 1]
        await remote.close()

    @pytest.mark.asyncio
    async def test_connection_errors_are_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        remote = remote_client_for(handler, max_attempts=3)
        with pytest.raises(RemoteAnalyticsError):
            await remote.fetch_report("week")
        assert len(calls) == 1
        await remote.close()

    @pytest.mark.asyncio
    async def test_misconfigured_client_falls_back(self, spike_records, clock):
        remote = remote_client_for(lambda request: httpx.Response(200))

        async def broken_client():
            raise httpx.InvalidURL("Invalid port: 'abc'")

        remote.get_client = broken_client
        generator = SalesReportGenerator(order_source=lambda: spike_records, remote=remote, clock=clock)

        report = await generator.generate_sales_report("month")

        assert report.source == "local"
        assert report.metrics.total_orders == 7
