"""
Sales Forecaster

Projects revenue with the daily-revenue regression extended forward and
scaled by the weekly seasonal multiplier. Product demand is projected
from mean quantity per observation.
"""

import math
from datetime import datetime
from typing import Optional

import polars as pl

from analysis.metrics import metrics_calculator
from analysis.seasonality import seasonality_analyzer
from analysis.trends import linear_regression
from api.schemas.responses import (
    DailyBucket,
    Forecast,
    ForecastPredictions,
    ForecastRange,
    ProductDemandForecast,
    SalesForecast,
)
from config import get_settings
from core.logging_config import analytics_logger as logger
from core.order_loader import Order, line_items_frame, orders_frame

FORECAST_DAYS = {"week": 7, "month": 30}
METHODOLOGY = "linear_regression_with_seasonal_adjustment"


def forecast_days_for(period: str) -> int:
    return FORECAST_DAYS.get(period, 1)


def _fit_label(r_squared: float) -> str:
    if r_squared > 0.5:
        return "high"
    if r_squared > 0.3:
        return "medium"
    return "low"


def _observation_label(observations: int) -> str:
    if observations > 10:
        return "high"
    if observations > 5:
        return "medium"
    return "low"


class SalesForecaster:
    """Regression plus seasonal multiplier forecasting."""

    def __init__(self):
        self.settings = get_settings()

    def forecast_sales(self, daily_sales: dict[str, DailyBucket], period: str) -> SalesForecast:
        """
        Forecast revenue ``forecast_days`` steps past the last observed day.

        Below ``forecast_min_days`` of history the result is zero with low
        confidence. The range is a fixed band around the value, not a
        statistical interval.
        """
        analysis = self.settings.analysis
        horizon = forecast_days_for(period)
        days = sorted(daily_sales)

        if len(days) < analysis.forecast_min_days:
            return SalesForecast(
                value=0.0,
                range=ForecastRange(low=0.0, high=0.0),
                confidence="low",
                forecast_days=horizon,
                note="Insufficient historical data for accurate forecasting",
            )

        revenues = [daily_sales[day].revenue for day in days]
        fit = linear_regression(revenues)
        seasonal = seasonality_analyzer.analyze(daily_sales)

        base = fit.slope * (len(revenues) + horizon) + fit.intercept
        value = max(0.0, base * seasonal.avg_multiplier)
        band = analysis.forecast_band

        return SalesForecast(
            value=value,
            range=ForecastRange(low=value * (1 - band), high=value * (1 + band)),
            confidence=_fit_label(fit.r_squared),
            factors={
                "trend": "positive" if fit.slope > 0 else "negative",
                "seasonal": seasonal.strength,
            },
            forecast_days=horizon,
        )

    def forecast_product_demand(self, orders: list[Order], period: str) -> list[ProductDemandForecast]:
        """Per-product demand over the horizon, highest demand first."""
        horizon = forecast_days_for(period)
        items = line_items_frame(orders)
        if items.height == 0:
            return []

        grouped = (
            items.group_by("product_key", maintain_order=True)
            .agg(
                pl.col("product_name").first(),
                pl.col("quantity").mean().alias("mean_quantity"),
                pl.len().alias("observations"),
            )
        )
        forecasts = [
            ProductDemandForecast(
                product_key=row["product_key"],
                product_name=row["product_name"],
                estimated_demand=math.ceil(row["mean_quantity"] * horizon),
                confidence=_observation_label(row["observations"]),
                observations=row["observations"],
            )
            for row in grouped.iter_rows(named=True)
        ]
        return sorted(forecasts, key=lambda f: f.estimated_demand, reverse=True)

    def generate_forecast(
        self,
        orders: list[Order],
        period: str = "week",
        now: Optional[datetime] = None,
    ) -> Forecast:
        """Sales and product-demand forecast with a history-length confidence."""
        frame = orders_frame(orders)
        daily_sales = metrics_calculator.daily_buckets(frame)
        history_days = len(daily_sales)

        if history_days < 7:
            confidence = "low"
        elif history_days < 30:
            confidence = "medium"
        else:
            confidence = "high"

        forecast = Forecast(
            period=period,
            predictions=ForecastPredictions(
                sales=self.forecast_sales(daily_sales, period),
                products=self.forecast_product_demand(orders, period),
            ),
            confidence=confidence,
            methodology=METHODOLOGY,
            history_days=history_days,
            generated_at=now or datetime.now(),
        )
        logger.debug(f"Forecast for {period}: {forecast.predictions.sales.value:.2f}")
        return forecast


# Global instance
sales_forecaster = SalesForecaster()
