"""
Narrative Generator

Turns a SalesReport into a summary paragraph, insights, recommendations
and a reliability score. The summary is rendered from a template table:
each sentence names the report fields it needs and is skipped, or falls
back to fixed text, when any of them is missing.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional, Union

from pydantic import BaseModel, ValidationError

from api.schemas.responses import (
    AISummary,
    Anomaly,
    CustomerInsights,
    CustomerTrends,
    DateRangeInfo,
    Metrics,
    ProductRanking,
    SalesReport,
    SalesTrend,
    Seasonality,
    Severity,
    TemporalTrends,
    Trends,
)
from core.coercion import safe_divide
from core.logging_config import insights_logger as logger
from insights.confidence import confidence_scorer
from insights.formatting import format_count, format_currency
from insights.rules import generate_insights, generate_recommendations, top_product

NO_ORDERS_SUMMARY = (
    "No orders were recorded in this period. Consider reviewing your "
    "marketing strategy or checking for technical issues."
)
NO_SUMMARY = "No insights available for this period."


@dataclass(frozen=True)
class SentenceTemplate:
    """One summary sentence: required context fields and how to render them."""

    key: str
    required: tuple[str, ...]
    render: Callable[[dict[str, Any]], str]
    fallback: Optional[str] = None


def _growth(ctx: dict[str, Any]) -> str:
    rate = ctx["growth_rate"]
    direction = "up" if rate > 0 else "down"
    return f"Sales are {direction} {abs(rate) * 100:.1f}% compared to the previous period."


SUMMARY_TEMPLATES: tuple[SentenceTemplate, ...] = (
    SentenceTemplate(
        key="overview",
        required=("period", "total_orders", "total_revenue", "average_order_value"),
        render=lambda ctx: (
            f"For {ctx['period']}, you processed {format_count(ctx['total_orders'])} orders "
            f"generating {format_currency(ctx['total_revenue'])} in total revenue, "
            f"with an average order value of {format_currency(ctx['average_order_value'])}."
        ),
    ),
    SentenceTemplate(key="growth", required=("growth_rate",), render=_growth),
    SentenceTemplate(
        key="top_product",
        required=("top_product_name", "top_product_quantity", "top_product_revenue"),
        render=lambda ctx: (
            f"{ctx['top_product_name']} was your best-selling product with "
            f"{format_count(ctx['top_product_quantity'])} units sold and "
            f"{format_currency(ctx['top_product_revenue'])} in revenue."
        ),
    ),
    SentenceTemplate(
        key="trend",
        required=("trend_description",),
        render=lambda ctx: ctx["trend_description"],
    ),
    SentenceTemplate(
        key="peak_day",
        required=("peak_day", "peak_orders", "peak_revenue"),
        render=lambda ctx: (
            f"{ctx['peak_day']} was your busiest day with {format_count(ctx['peak_orders'])} "
            f"orders and {format_currency(ctx['peak_revenue'])} in sales."
        ),
    ),
    SentenceTemplate(
        key="anomaly",
        required=("has_high_anomaly",),
        render=lambda ctx: f"Attention needed: {ctx['high_anomaly_message']}",
    ),
)


def summary_context(report: SalesReport) -> dict[str, Any]:
    """Flatten the report into the fields templates refer to. Absent data is None."""
    metrics = report.metrics
    product = top_product(report)
    peak = metrics.peak_day
    high = [a for a in report.anomalies if a.severity == Severity.HIGH]

    return {
        "period": report.date_range.label or "this period",
        "total_orders": metrics.total_orders,
        "total_revenue": metrics.total_revenue,
        "average_order_value": metrics.average_order_value,
        "growth_rate": metrics.growth_rate,
        "top_product_name": product.product_name if product else None,
        "top_product_quantity": product.quantity if product else None,
        "top_product_revenue": product.revenue if product else None,
        "trend_description": report.trends.sales_trend.description or None,
        "peak_day": peak.date if peak else None,
        "peak_orders": peak.orders if peak else None,
        "peak_revenue": peak.revenue if peak else None,
        "has_high_anomaly": True if high else None,
        "high_anomaly_message": (high[0].message or "Anomaly detected") if high else None,
    }


def build_summary(report: SalesReport) -> str:
    """Render the summary paragraph from :data:`SUMMARY_TEMPLATES`."""
    if report.metrics.total_orders == 0:
        return NO_ORDERS_SUMMARY

    ctx = summary_context(report)
    sentences = []
    for template in SUMMARY_TEMPLATES:
        if all(ctx.get(name) is not None for name in template.required):
            sentences.append(template.render(ctx))
        elif template.fallback:
            sentences.append(template.fallback)

    return " ".join(sentences) if sentences else NO_SUMMARY


def _section(data: dict, names: tuple[str, ...], model: type[BaseModel], default: Any) -> Any:
    """Validate one report section, replacing it with ``default`` when unusable."""
    for name in names:
        value = data.get(name)
        if value is None:
            continue
        if isinstance(default, list) and not isinstance(value, list):
            return default
        try:
            if isinstance(default, list):
                return [model.model_validate(item) for item in value]
            return model.model_validate(value)
        except ValidationError as e:
            logger.debug(f"Ignoring malformed report section {name}: {e.error_count()} errors")
            return default
    return default


def coerce_report(data: Union[SalesReport, dict[str, Any]], now: Optional[datetime] = None) -> SalesReport:
    """
    Accept a SalesReport or a partial report dict.

    Each section is validated on its own; malformed or missing sections are
    replaced by their empty defaults, so a damaged payload still summarizes.
    A missing average order value is derived from the order and revenue totals.
    """
    if isinstance(data, SalesReport):
        return data

    now = now or datetime.now()
    data = data if isinstance(data, dict) else {}
    raw_trends = data.get("trends") if isinstance(data.get("trends"), dict) else {}
    raw_metrics = data.get("metrics") if isinstance(data.get("metrics"), dict) else {}

    metrics = _section(data, ("metrics",), Metrics, Metrics())
    if all(raw_metrics.get(name) is None for name in ("averageOrderValue", "average_order_value")):
        metrics = metrics.model_copy(
            update={"average_order_value": safe_divide(metrics.total_revenue, metrics.total_orders)}
        )

    trends = Trends(
        sales_trend=_section(
            raw_trends, ("salesTrend", "sales_trend"), SalesTrend,
            SalesTrend(trend="insufficient_data", description=""),
        ),
        product_trends=_section(raw_trends, ("productTrends", "product_trends"), ProductRanking, ProductRanking()),
        customer_trends=_section(raw_trends, ("customerTrends", "customer_trends"), CustomerTrends, CustomerTrends()),
        temporal_trends=_section(raw_trends, ("temporalTrends", "temporal_trends"), TemporalTrends, TemporalTrends()),
        seasonality=_section(raw_trends, ("seasonality",), Seasonality, Seasonality()),
    )

    return SalesReport(
        report_id=str(data.get("reportId") or data.get("report_id") or f"report_{int(now.timestamp() * 1000)}"),
        date_range=_section(
            data, ("dateRange", "date_range"), DateRangeInfo,
            DateRangeInfo(key="unknown", label="this period", start_date=now, end_date=now),
        ),
        generated_at=now,
        metrics=metrics,
        trends=trends,
        anomalies=_section(data, ("anomalies",), Anomaly, []),
        top_products=_section(data, ("topProducts", "top_products"), ProductRanking, ProductRanking()),
        customer_insights=_section(
            data, ("customerInsights", "customer_insights"), CustomerInsights, CustomerInsights()
        ),
    )


class NarrativeGenerator:
    """Builds the AI summary for a report."""

    def __init__(self):
        self.logger = logger

    def generate_ai_summary(
        self,
        report: Union[SalesReport, dict[str, Any]],
        now: Optional[datetime] = None,
    ) -> AISummary:
        now = now or datetime.now()
        report = coerce_report(report, now)

        summary = AISummary(
            summary=build_summary(report),
            insights=generate_insights(report),
            recommendations=generate_recommendations(report),
            generated_at=now,
            confidence=confidence_scorer.score(report, now),
        )
        self.logger.info(
            f"Summary for {report.report_id}: {len(summary.insights)} insights, "
            f"{len(summary.recommendations)} recommendations, "
            f"confidence {summary.confidence.overall}"
        )
        return summary


# Global instance
narrative_generator = NarrativeGenerator()
