"""
Insight and Recommendation Rules

Independent rules evaluated over a report. Each rule returns a finding or
None; the lists always carry a fallback entry so they are never empty.
"""

from typing import Callable, Optional

from api.schemas.responses import (
    Insight,
    Priority,
    ProductStat,
    Recommendation,
    SalesReport,
    Severity,
)
from insights.formatting import format_currency, format_percent

InsightRule = Callable[[SalesReport], Optional[Insight]]
RecommendationRule = Callable[[SalesReport], Optional[Recommendation]]

PRIORITY_ORDER = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}

HIGH_AOV = 100.0
CONCENTRATION_WARNING = 0.8
REPEAT_RATE_GOOD = 0.6
TREND_CONFIDENCE = 0.7
LOW_DAY_SHARE = 0.5
LOW_DAYS_LISTED = 5


def top_product(report: SalesReport) -> Optional[ProductStat]:
    ranking = report.top_products
    return ranking.top[0] if ranking and ranking.top else None


# ---------------------------------------------------------------------------
# Insights
# ---------------------------------------------------------------------------

def _average_order_value(report: SalesReport) -> Optional[Insight]:
    aov = report.metrics.average_order_value
    if aov <= HIGH_AOV:
        return None
    return Insight(
        type="positive",
        category="revenue",
        title="Healthy order value",
        message=(
            f"Strong average order value of {format_currency(aov)} "
            "indicates good customer spending patterns."
        ),
    )


def _top_product(report: SalesReport) -> Optional[Insight]:
    product = top_product(report)
    if product is None:
        return None
    return Insight(
        type="positive",
        category="products",
        title="Top performer",
        message=f"{product.product_name} is performing well with {format_currency(product.revenue)} in revenue.",
    )


def _concentration(report: SalesReport) -> Optional[Insight]:
    ratio = report.top_products.concentration_ratio
    if ratio <= CONCENTRATION_WARNING:
        return None
    return Insight(
        type="warning",
        category="diversification",
        title="Revenue concentrated in few products",
        message=(
            f"Your top products generate {format_percent(ratio)} of revenue. "
            "Consider diversifying your product mix to reduce dependency."
        ),
    )


def _retention(report: SalesReport) -> Optional[Insight]:
    rate = report.customer_insights.retention_rate
    if rate <= REPEAT_RATE_GOOD:
        return None
    return Insight(
        type="positive",
        category="customers",
        title="Loyal customers",
        message=f"Excellent customer retention with {format_percent(rate)} of customers making repeat purchases.",
    )


def _momentum(report: SalesReport) -> Optional[Insight]:
    trend = report.trends.sales_trend
    if trend.confidence <= TREND_CONFIDENCE:
        return None
    if trend.trend == "increasing":
        return Insight(
            type="positive",
            category="trends",
            title="Upward momentum",
            message="Strong upward sales trend detected. This momentum suggests effective business strategies.",
        )
    if trend.trend == "decreasing":
        return Insight(
            type="warning",
            category="trends",
            title="Sales declining",
            message="Sales show a consistent downward trend. Consider reviewing pricing and promotions.",
        )
    return None


INSIGHT_RULES: tuple[InsightRule, ...] = (
    _average_order_value,
    _top_product,
    _concentration,
    _retention,
    _momentum,
)

FALLBACK_INSIGHT = Insight(
    type="info",
    category="general",
    title="Keep collecting data",
    message="Continue monitoring your sales data to generate more specific insights.",
)


def generate_insights(report: SalesReport) -> list[Insight]:
    insights = [i for i in (rule(report) for rule in INSIGHT_RULES) if i is not None]
    return insights or [FALLBACK_INSIGHT]


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------

def _stock_top_product(report: SalesReport) -> Optional[Recommendation]:
    product = top_product(report)
    if product is None:
        return None
    return Recommendation(
        priority=Priority.HIGH,
        category="inventory",
        action=f"Ensure adequate stock of {product.product_name}",
        reason="This is your top-selling product and stockouts could significantly impact revenue.",
    )


def _promote_low_days(report: SalesReport) -> Optional[Recommendation]:
    peak = report.metrics.peak_day
    if peak is None:
        return None

    cutoff = peak.orders * LOW_DAY_SHARE
    low_days = [
        day for day, bucket in report.metrics.daily_sales.items()
        if 0 < bucket.orders < cutoff
    ]
    if not low_days:
        return None

    listed = ", ".join(low_days[:LOW_DAYS_LISTED])
    if len(low_days) > LOW_DAYS_LISTED:
        listed += f" and {len(low_days) - LOW_DAYS_LISTED} more"
    return Recommendation(
        priority=Priority.MEDIUM,
        category="marketing",
        action="Run targeted promotions on low-sales days",
        reason=f"Sales on {listed} are significantly lower than peak days.",
    )


def _investigate_anomalies(report: SalesReport) -> Optional[Recommendation]:
    if not any(
        a.type == "sales_anomaly" and a.severity == Severity.HIGH for a in report.anomalies
    ):
        return None
    return Recommendation(
        priority=Priority.HIGH,
        category="operations",
        action="Investigate sales anomalies",
        reason="Unusual sales patterns detected that may indicate operational issues or opportunities.",
    )


RECOMMENDATION_RULES: tuple[RecommendationRule, ...] = (
    _stock_top_product,
    _promote_low_days,
    _investigate_anomalies,
)

FALLBACK_RECOMMENDATION = Recommendation(
    priority=Priority.LOW,
    category="general",
    action="Continue monitoring business metrics",
    reason="Regular monitoring helps identify opportunities for improvement.",
)


def generate_recommendations(report: SalesReport) -> list[Recommendation]:
    """Recommendations ordered high, medium, low; rule order within a priority."""
    found = [r for r in (rule(report) for rule in RECOMMENDATION_RULES) if r is not None]
    if not found:
        return [FALLBACK_RECOMMENDATION]
    return sorted(found, key=lambda r: PRIORITY_ORDER[r.priority])
