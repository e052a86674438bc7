"""
Seasonality Analyzer

Weekly seasonality from daily revenue: day-of-week means, their spread,
and the multiplier applied to forecasts.
"""

from calendar import day_name
from datetime import date

import numpy as np

from api.schemas.responses import DailyBucket, Seasonality
from config import get_settings


class SeasonalityAnalyzer:
    """Day-of-week seasonality detection."""

    def __init__(self):
        self.settings = get_settings()

    def analyze(self, daily_sales: dict[str, DailyBucket]) -> Seasonality:
        """
        Estimate weekly seasonality.

        Needs at least ``seasonality_min_days`` distinct days, otherwise
        returns a neutral multiplier of 1 with strength ``none``.

        Strength compares the population variance of the weekday means
        with the overall mean: above 10% strong, above 5% moderate.
        """
        days = sorted(daily_sales)
        if len(days) < self.settings.analysis.seasonality_min_days:
            return Seasonality(avg_multiplier=1.0, strength="none")

        by_weekday: dict[int, list[float]] = {}
        for day in days:
            weekday = date.fromisoformat(day).weekday()
            by_weekday.setdefault(weekday, []).append(daily_sales[day].revenue)

        weekdays = sorted(by_weekday)
        means = np.array([np.mean(by_weekday[w]) for w in weekdays], dtype=np.float64)
        overall = float(means.mean())
        variance = float(means.var())

        if variance > overall * 0.1:
            strength = "strong"
        elif variance > overall * 0.05:
            strength = "moderate"
        else:
            strength = "weak"

        return Seasonality(
            avg_multiplier=float(means.max()) / overall if overall > 0 else 1.0,
            strength=strength,
            variance=variance,
            pattern={day_name[w]: float(m) for w, m in zip(weekdays, means)},
        )


# Global instance
seasonality_analyzer = SeasonalityAnalyzer()
