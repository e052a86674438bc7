"""
Summary Confidence

Scores how far a generated summary can be trusted. This is a reliability
composite over data volume, completeness, consistency and recency, and is
unrelated to the regression fit reported on the sales trend.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from api.schemas.responses import SalesReport, SummaryConfidence


@dataclass
class ConfidenceWeights:
    """Share of the overall score contributed by each factor."""

    volume_weight: float = 0.40
    completeness_weight: float = 0.30
    consistency_weight: float = 0.20
    recency_weight: float = 0.10


# (minimum orders, fraction of the volume weight, label)
VOLUME_TIERS = (
    (30, 1.0, "excellent"),
    (10, 0.625, "good"),
    (5, 0.375, "fair"),
    (0, 0.125, "poor"),
)

# (maximum days since last order, fraction of the recency weight, label)
RECENCY_TIERS = (
    (1, 1.0, "fresh"),
    (7, 0.8, "recent"),
    (30, 0.5, "moderate"),
)
STALE_RECENCY = (0.2, "stale")

AOV_BAND = (10.0, 10_000.0)


class SummaryConfidenceScorer:
    """
    Scores summary reliability.

    Uses multiple weighted factors; sub-scores are reported already
    weighted so they add up to ``overall`` before clamping.
    """

    def __init__(self, weights: Optional[ConfidenceWeights] = None):
        self.weights = weights or ConfidenceWeights()

    def score(self, report: SalesReport, now: Optional[datetime] = None) -> SummaryConfidence:
        now = now or datetime.now()
        metrics = report.metrics
        factors: dict[str, str] = {}

        # Data volume
        for minimum, fraction, label in VOLUME_TIERS:
            if metrics.total_orders >= minimum:
                volume = fraction * self.weights.volume_weight
                factors["dataVolume"] = label
                break

        # Completeness
        has_orders = metrics.total_orders > 0
        has_revenue = metrics.total_revenue > 0
        has_trend = report.trends.sales_trend.trend != "insufficient_data"
        satisfied = sum([has_orders, has_revenue, has_trend]) / 3
        completeness = satisfied * self.weights.completeness_weight
        factors["completeness"] = "high" if satisfied > 0.8 else "medium" if satisfied > 0.5 else "low"

        # Consistency
        if has_orders and has_revenue:
            low, high = AOV_BAND
            reasonable = low < metrics.average_order_value < high
            consistency = self.weights.consistency_weight * (1.0 if reasonable else 0.5)
            factors["consistency"] = "high" if reasonable else "medium"
        else:
            consistency = self.weights.consistency_weight * 0.25
            factors["consistency"] = "low"

        # Recency
        recency, factors["recency"] = self._recency(metrics.last_order_at, now)

        overall = round(min(1.0, max(0.0, volume + completeness + consistency + recency)), 2)

        if overall > 0.7:
            recommendation = "Highly reliable insights"
        elif overall > 0.4:
            recommendation = "Moderately reliable insights"
        else:
            recommendation = "Insights have low reliability, more data needed"

        return SummaryConfidence(
            overall=overall,
            data_volume=round(volume, 4),
            completeness=round(completeness, 4),
            consistency=round(consistency, 4),
            recency=round(recency, 4),
            factors=factors,
            recommendation=recommendation,
        )

    def _recency(self, last_order_at: Optional[datetime], now: datetime) -> tuple[float, str]:
        if last_order_at is None:
            return 0.0, "none"

        days_since = (now - last_order_at).total_seconds() / 86400
        for max_days, fraction, label in RECENCY_TIERS:
            if days_since <= max_days:
                return fraction * self.weights.recency_weight, label
        fraction, label = STALE_RECENCY
        return fraction * self.weights.recency_weight, label


# Global instance
confidence_scorer = SummaryConfidenceScorer()
