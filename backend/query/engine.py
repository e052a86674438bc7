"""
Query Engine

Answers free-text business questions: validates the question, classifies
its intent, resolves the matching report and formats a text answer with
the structured data behind it. One question is answered at a time per
engine; both the whole query and each handler are time-bounded.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

from analysis.forecast import forecast_days_for, sales_forecaster
from analysis.trends import trend_direction
from api.schemas.responses import QueryAnswer, SalesReport
from config import QuerySettings, get_settings
from core.cache import TTLCache
from core.logging_config import query_logger as logger
from insights.formatting import format_count, format_currency, format_percent
from insights.report_generator import SalesReportGenerator
from query.intents import Intent, classify_intent, normalize_query
from query.suggestions import QUERY_CATEGORIES, pick_suggestions

BUSY_TEXT = "Please wait for the current query to complete before asking another question."
EMPTY_TEXT = "Please ask a question about your sales, products, customers or forecasts."
TIMEOUT_TEXT = (
    "That question took too long to answer. Please try a simpler or narrower "
    'question, like "show sales for today" or "top products this week".'
)
FAILED_TEXT = (
    "I encountered an error processing your question. Please try a simpler "
    'question like "show sales" or "top products".'
)
HELP_TEXT = (
    "I can help you analyze your business data in many ways:\n\n"
    "- Sales: revenue, order counts, peak days\n"
    "- Products: best sellers and their revenue\n"
    "- Customers: top spenders and retention\n"
    "- Forecasting: expected sales for next week or month\n\n"
)

Handler = Callable[[Intent], Awaitable[QueryAnswer]]


def _dump(model: Any) -> Any:
    return model.model_dump(by_alias=True, mode="json")


class QueryEngine:
    """
    Natural language question answering over one report generator.

    Features:
    - Single-flight guard released on every exit path
    - Handler and overall timeouts
    - TTL report cache keyed by date range
    """

    def __init__(
        self,
        generator: SalesReportGenerator,
        settings: Optional[QuerySettings] = None,
        report_cache: Optional[TTLCache] = None,
    ):
        app_settings = get_settings()
        self.generator = generator
        self.settings = settings or app_settings.query
        self.cache_enabled = app_settings.cache.enabled
        self.report_cache = report_cache or TTLCache(
            maxsize=app_settings.cache.max_size,
            ttl_seconds=app_settings.cache.ttl_seconds,
        )
        self._in_flight = False
        self._handlers: dict[str, Handler] = {
            "top_products": self.handle_top_products,
            "sales_period": self.handle_sales_period,
            "customer_insights": self.handle_customer_insights,
            "revenue_analysis": self.handle_revenue,
            "forecast": self.handle_forecast,
        }

    @property
    def busy(self) -> bool:
        return self._in_flight

    async def process_query(self, text: Any) -> QueryAnswer:
        """
        Answer one question. Never raises.

        Input problems, a concurrent call, timeouts and handler failures
        all come back as ``type="error"`` answers with a distinct
        ``error_kind``.
        """
        if not isinstance(text, str) or not text.strip():
            return self._error("invalid_input", EMPTY_TEXT)
        if len(text) > self.settings.max_length:
            return self._error(
                "invalid_input",
                f"Please ask a shorter question (under {self.settings.max_length} characters).",
            )

        if self._in_flight:
            logger.info("Query rejected, another query is in flight")
            return self._error("busy", BUSY_TEXT)

        self._in_flight = True
        try:
            return await asyncio.wait_for(self._answer(text), timeout=self.settings.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(f"Query timed out: {text[:60]!r}")
            return self._error("timeout", TIMEOUT_TEXT)
        except Exception as e:
            logger.exception(f"Query failed: {e}")
            return self._error("failed", FAILED_TEXT)
        finally:
            self._in_flight = False

    async def _answer(self, text: str) -> QueryAnswer:
        query = normalize_query(text)
        intent = classify_intent(query)
        logger.info(f"Query intent {intent.type} params={intent.params}")

        handler = self._handlers.get(intent.type)
        if handler is None:
            return self.handle_unknown(query)

        answer = await asyncio.wait_for(handler(intent), timeout=self.settings.handler_timeout_seconds)
        return answer.model_copy(update={"intent": intent.type, "confidence": intent.confidence})

    @staticmethod
    def _error(kind: str, text: str) -> QueryAnswer:
        return QueryAnswer(type="error", text=text, error_kind=kind)

    async def report_for(self, period: str) -> SalesReport:
        """Report for a period, reused from the cache while fresh."""
        key = TTLCache.make_key("report", period)
        if self.cache_enabled:
            cached = self.report_cache.get(key)
            if cached is not None:
                logger.debug(f"Report cache hit for {period}")
                return cached

        report = await self.generator.generate_sales_report(period)
        if self.cache_enabled and not report.error:
            self.report_cache.set(key, report)
        return report

    # -----------------------------------------------------------------------
    # Handlers
    # -----------------------------------------------------------------------

    async def handle_top_products(self, intent: Intent) -> QueryAnswer:
        report = await self.report_for(intent.period or "month")
        limit = intent.number or self.settings.default_top_n
        limit = max(1, min(limit, self.settings.max_top_n))
        label = report.date_range.label

        products = report.top_products.top[:limit] if report.top_products else []
        if not products:
            return QueryAnswer(
                type="answer",
                text=f"No product sales found for {label}.",
                data={"products": []},
            )

        lines = [
            f"{rank}. {p.product_name}: {format_count(p.quantity)} units sold, "
            f"{format_currency(p.revenue)} revenue"
            for rank, p in enumerate(products, start=1)
        ]
        return QueryAnswer(
            type="answer",
            text=f"Here are the top {len(products)} products for {label}:\n\n" + "\n".join(lines),
            data={"products": [_dump(p) for p in products]},
        )

    async def handle_sales_period(self, intent: Intent) -> QueryAnswer:
        report = await self.report_for(intent.period or "week")
        metrics = report.metrics
        peak = metrics.peak_day
        peak_text = f"{peak.date} with {format_count(peak.orders)} orders" if peak else "No peak day data"

        text = (
            f"Sales summary for {report.date_range.label}:\n\n"
            f"Total Orders: {format_count(metrics.total_orders)}\n"
            f"Total Revenue: {format_currency(metrics.total_revenue)}\n"
            f"Average Order Value: {format_currency(metrics.average_order_value)}\n"
            f"Peak Day: {peak_text}"
        )
        return QueryAnswer(type="answer", text=text, data={"metrics": _dump(metrics)})

    async def handle_customer_insights(self, intent: Intent) -> QueryAnswer:
        report = await self.report_for(intent.period or "month")
        customers = report.customer_insights
        if customers is None or customers.total_customers == 0:
            return QueryAnswer(
                type="answer",
                text=(
                    "No customer data available for analysis. Please ensure you "
                    "have customer information in your orders."
                ),
                data={},
            )

        top = [
            f"{rank}. {c.customer_name or c.customer_key}: {format_count(c.orders)} orders, "
            f"{format_currency(c.revenue)}"
            for rank, c in enumerate(customers.top_spenders[:3], start=1)
        ]
        text = (
            f"Customer Insights for {report.date_range.label}:\n\n"
            f"Total Customers: {format_count(customers.total_customers)}\n"
            f"Repeat Customers: {format_count(customers.returning_customers)} "
            f"({format_percent(customers.retention_rate, 0)} retention)\n"
            f"Average Orders per Customer: {customers.average_orders_per_customer:.1f}\n\n"
            "Top Customers:\n" + "\n".join(top)
        )
        return QueryAnswer(type="answer", text=text, data={"customers": _dump(customers)})

    async def handle_revenue(self, intent: Intent) -> QueryAnswer:
        report = await self.report_for(intent.period or "month")
        metrics = report.metrics
        days = sorted(metrics.daily_sales)
        trend = (
            trend_direction([metrics.daily_sales[d].revenue for d in days])
            if len(days) > 1 else "stable"
        )

        text = (
            f"Revenue Analysis for {report.date_range.label}:\n\n"
            f"Total Revenue: {format_currency(metrics.total_revenue)}\n"
            f"Completed Revenue: {format_currency(metrics.completed_revenue)}\n"
            f"Average Order Value: {format_currency(metrics.average_order_value)}\n"
            f"Orders: {format_count(metrics.total_orders)}\n"
            f"Revenue Trend: {trend}"
        )
        return QueryAnswer(
            type="answer",
            text=text,
            data={"metrics": _dump(metrics), "trend": trend},
        )

    async def handle_forecast(self, intent: Intent) -> QueryAnswer:
        # Forecasts always use a month of history
        report = await self.report_for("month")
        period = "month" if intent.period in ("month", "lastMonth") else "week"
        daily_sales = report.metrics.daily_sales
        min_days = get_settings().analysis.forecast_min_days

        if len(daily_sales) < min_days:
            return QueryAnswer(
                type="answer",
                text=(
                    "I need at least a week of sales data to generate reliable forecasts. "
                    "Please check back when you have more historical data."
                ),
                data={"dataPoints": len(daily_sales)},
            )

        forecast = sales_forecaster.forecast_sales(daily_sales, period)
        text = (
            "Sales Forecast:\n\n"
            f"Predicted revenue for the next {forecast_days_for(period)} days: "
            f"{format_currency(forecast.value)} "
            f"(range {format_currency(forecast.range.low)} to {format_currency(forecast.range.high)})\n"
            f"Confidence Level: {forecast.confidence.capitalize()}\n\n"
            f"Based on {len(daily_sales)} days of historical data."
        )
        if forecast.confidence == "low":
            text += "\n\nMore data is needed for accurate predictions."

        return QueryAnswer(
            type="answer",
            text=text,
            data={"forecast": _dump(forecast), "period": period, "dataPoints": len(daily_sales)},
        )

    def handle_unknown(self, query: str) -> QueryAnswer:
        suggestions = pick_suggestions(query)
        if "help" in query or "what can you do" in query:
            intro = HELP_TEXT
        elif "example" in query or "sample" in query:
            intro = "Here are some example questions you can ask:\n\n"
        else:
            intro = f'I understand you\'re asking about "{query}", but I need more specific information.\n\n'

        text = intro + "Try these specific questions:\n\n" + "\n".join(f"- {s}" for s in suggestions)
        return QueryAnswer(
            type="answer",
            text=text,
            intent="unknown",
            confidence=classify_intent(query).confidence,
            data={
                "suggestedQueries": suggestions,
                "originalQuery": query,
                "categories": list(QUERY_CATEGORIES),
            },
        )
