"""
API Response Schemas

Pydantic models for reports, summaries, forecasts and query answers.
Fields serialize with camelCase aliases.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serializing snake_case fields as camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Severity(str, Enum):
    """Anomaly severity."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Priority(str, Enum):
    """Recommendation priority."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

class DateRangeInfo(CamelModel):
    key: str
    label: str
    start_date: datetime
    end_date: datetime


class DailyBucket(CamelModel):
    orders: int = 0
    revenue: float = 0.0
    items: float = 0.0


class PeakDay(CamelModel):
    date: str
    orders: int
    revenue: float


class Metrics(CamelModel):
    """Aggregate metrics over the filtered order set."""

    total_orders: int = 0
    total_revenue: float = 0.0
    average_order_value: float = 0.0
    completed_revenue: float = 0.0
    status_breakdown: dict[str, int] = {}
    daily_sales: dict[str, DailyBucket] = {}
    peak_day: Optional[PeakDay] = None
    conversion_rate: float = 0.0
    growth_rate: Optional[float] = None
    previous_revenue: Optional[float] = None
    last_order_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Trends
# ---------------------------------------------------------------------------

class SalesTrend(CamelModel):
    """Direction of daily revenue; ``confidence`` is the regression fit."""

    trend: Literal["increasing", "decreasing", "stable", "insufficient_data"]
    change: float = 0.0
    description: str
    confidence: float = Field(default=0.0, ge=0, le=1)
    r_squared: float = 0.0
    data_points: int = 0


class ProductStat(CamelModel):
    product_key: str
    product_name: str
    quantity: float
    revenue: float
    orders: int
    revenue_share: float = 0.0


class ProductRanking(CamelModel):
    top: list[ProductStat] = []
    bottom: list[ProductStat] = []
    total_products: int = 0
    total_revenue: float = 0.0
    concentration_ratio: float = 0.0


class CustomerStat(CamelModel):
    customer_key: str
    customer_name: Optional[str] = None
    orders: int
    revenue: float
    first_order: datetime
    last_order: datetime


class WeeklyCustomers(CamelModel):
    week: str
    unique_customers: int
    orders: int
    revenue: float
    average_order_value: float


class CustomerTrends(CamelModel):
    total_customers: int = 0
    new_customers: int = 0
    returning_customers: int = 0
    retention_rate: float = 0.0
    average_lifetime_value: float = 0.0
    weekly: list[WeeklyCustomers] = []
    loyal_customers: list[CustomerStat] = []
    acquisition_trend: Literal["increasing", "decreasing", "stable"] = "stable"


class TemporalTrends(CamelModel):
    by_hour: dict[str, int] = {}
    by_weekday: dict[str, int] = {}
    peak_hours: list[int] = []
    peak_weekdays: list[str] = []


class Seasonality(CamelModel):
    avg_multiplier: float = 1.0
    strength: Literal["strong", "moderate", "weak", "none"] = "none"
    variance: float = 0.0
    pattern: dict[str, float] = {}


class Trends(CamelModel):
    sales_trend: SalesTrend
    product_trends: ProductRanking
    customer_trends: CustomerTrends
    temporal_trends: TemporalTrends
    seasonality: Seasonality


# ---------------------------------------------------------------------------
# Anomalies and customers
# ---------------------------------------------------------------------------

class Anomaly(CamelModel):
    """A typed anomaly finding."""

    type: Literal["sales_anomaly", "high_demand", "high_volume_customer"]
    severity: Severity
    message: str
    date: Optional[str] = None
    value: Optional[float] = None
    expected: Optional[float] = None
    z_score: Optional[float] = None
    product_key: Optional[str] = None
    customers: list[dict[str, Any]] = []


class CustomerInsights(CamelModel):
    total_customers: int = 0
    new_customers: int = 0
    returning_customers: int = 0
    retention_rate: float = 0.0
    average_orders_per_customer: float = 0.0
    top_spenders: list[CustomerStat] = []


# ---------------------------------------------------------------------------
# Narrative
# ---------------------------------------------------------------------------

class Insight(CamelModel):
    type: Literal["positive", "warning", "info"]
    category: str
    title: str
    message: str


class Recommendation(CamelModel):
    priority: Priority
    category: str
    action: str
    reason: str


class SummaryConfidence(CamelModel):
    """Reliability of a generated summary, distinct from trend fit."""

    overall: float = Field(ge=0, le=1)
    data_volume: float
    completeness: float
    consistency: float
    recency: float
    factors: dict[str, str] = {}
    recommendation: str


class AISummary(CamelModel):
    summary: str
    insights: list[Insight]
    recommendations: list[Recommendation]
    generated_at: datetime
    confidence: SummaryConfidence


# ---------------------------------------------------------------------------
# Forecast
# ---------------------------------------------------------------------------

class ForecastRange(CamelModel):
    low: float
    high: float


class SalesForecast(CamelModel):
    """
    Projected revenue over the forecast horizon.

    ``range`` is a fixed +/-20% band around ``value``, not a statistical
    confidence interval.
    """

    value: float = 0.0
    range: ForecastRange = ForecastRange(low=0.0, high=0.0)
    confidence: Literal["high", "medium", "low"] = "low"
    factors: dict[str, str] = {}
    forecast_days: int = 1
    note: Optional[str] = None


class ProductDemandForecast(CamelModel):
    product_key: str
    product_name: str
    estimated_demand: int
    confidence: Literal["high", "medium", "low"]
    observations: int


class ForecastPredictions(CamelModel):
    sales: SalesForecast
    products: list[ProductDemandForecast] = []


class Forecast(CamelModel):
    period: str
    predictions: ForecastPredictions
    confidence: Literal["high", "medium", "low"]
    methodology: str = "linear_regression_with_seasonal_adjustment"
    history_days: int = 0
    generated_at: datetime


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------

class SalesReport(CamelModel):
    """Complete report for one date range. Never mutated after construction."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    report_id: str
    date_range: DateRangeInfo
    generated_at: datetime
    source: Literal["local", "remote"] = "local"
    metrics: Metrics
    trends: Trends
    anomalies: list[Anomaly] = []
    top_products: ProductRanking
    customer_insights: CustomerInsights
    ai_summary: Optional[AISummary] = None
    forecast: Optional[Forecast] = None
    error: Optional[str] = None


class DashboardSummary(CamelModel):
    today_orders: int = 0
    today_revenue: float = 0.0
    monthly_revenue: float = 0.0
    pending_orders: int = 0
    total_orders: int = 0
    total_revenue: float = 0.0
    top_product: Optional[str] = None


# ---------------------------------------------------------------------------
# Query
# ---------------------------------------------------------------------------

class QueryAnswer(CamelModel):
    type: Literal["answer", "error"]
    text: str
    data: Optional[dict[str, Any]] = None
    intent: Optional[str] = None
    confidence: float = 0.0
    error_kind: Optional[Literal["invalid_input", "busy", "timeout", "failed"]] = None


class QuerySuggestions(CamelModel):
    categories: dict[str, list[str]]
    quick_actions: list[dict[str, str]]


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

class SessionInfo(CamelModel):
    session_id: str
    source: str
    created_at: datetime
    order_count: int
    first_order_at: Optional[datetime] = None
    last_order_at: Optional[datetime] = None


class UploadResponse(CamelModel):
    session_id: str
    source: str
    order_count: int
    skipped: int = 0
    message: str
