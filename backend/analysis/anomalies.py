"""
Anomaly Detector

Three independent detectors whose findings are merged into one list:
daily revenue z-scores, high-demand products and high-volume customers.
"""

from collections import Counter
from typing import Optional

import numpy as np

from api.schemas.responses import Anomaly, DailyBucket, ProductRanking, Severity
from config import get_settings
from core.logging_config import analytics_logger as logger
from core.order_loader import Order
from insights.formatting import format_currency

# Relative tolerance under which a baseline counts as flat
FLAT_TOLERANCE = 1e-9


class AnomalyDetector:
    """Runs every detector; a detector without enough data adds nothing."""

    def __init__(self):
        self.settings = get_settings()
        self.logger = logger

    def detect_all(
        self,
        orders: list[Order],
        daily_sales: dict[str, DailyBucket],
        product_ranking: Optional[ProductRanking] = None,
    ) -> list[Anomaly]:
        """Run all detectors. Never raises; a failing detector is logged and skipped."""
        findings: list[Anomaly] = []
        detectors = (
            ("sales", lambda: self.detect_sales_anomalies(daily_sales)),
            ("product", lambda: self.detect_product_anomalies(product_ranking)),
            ("customer", lambda: self.detect_customer_anomalies(orders)),
        )
        for name, detector in detectors:
            try:
                findings.extend(detector())
            except Exception as e:
                self.logger.warning(f"{name} anomaly detection failed: {e}")

        if findings:
            self.logger.info(f"Detected {len(findings)} anomalies")
        return findings

    def detect_sales_anomalies(self, daily_sales: dict[str, DailyBucket]) -> list[Anomaly]:
        """
        Flag days whose revenue is far from the rest of the period.

        Each day is scored against the mean and population standard
        deviation of the other days, so a single spike cannot mask itself
        by inflating the deviation it is measured with. A day deviating
        from a perfectly flat baseline is reported as high severity
        without a z-score.
        """
        analysis = self.settings.analysis
        days = sorted(daily_sales)
        if len(days) < analysis.anomaly_min_days:
            return []

        revenues = np.array([daily_sales[d].revenue for d in days], dtype=np.float64)
        findings = []

        for i, day in enumerate(days):
            baseline = np.delete(revenues, i)
            mean = float(baseline.mean())
            std = float(baseline.std())
            value = float(revenues[i])
            scale = FLAT_TOLERANCE * max(1.0, abs(mean))

            if std <= scale:
                if abs(value - mean) <= scale:
                    continue
                z_score = None
                severity = Severity.HIGH
            else:
                z_score = abs(value - mean) / std
                if z_score <= analysis.anomaly_zscore_threshold:
                    continue
                severity = Severity.HIGH if z_score > analysis.anomaly_high_zscore else Severity.MEDIUM

            findings.append(
                Anomaly(
                    type="sales_anomaly",
                    severity=severity,
                    message=self._sales_message(day, value, mean),
                    date=day,
                    value=value,
                    expected=mean,
                    z_score=z_score,
                )
            )
        return findings

    @staticmethod
    def _sales_message(day: str, value: float, expected: float) -> str:
        direction = "high" if value > expected else "low"
        text = f"Unusually {direction} sales on {day}: {format_currency(value)}"
        if expected > 0:
            share = abs(value - expected) / expected * 100
            relation = "above" if value > expected else "below"
            text += f" ({share:.1f}% {relation} average)"
        return text

    def detect_product_anomalies(self, product_ranking: Optional[ProductRanking]) -> list[Anomaly]:
        """Top products with many orders but small quantities per order."""
        if product_ranking is None:
            return []

        analysis = self.settings.analysis
        findings = []
        for product in product_ranking.top:
            if product.orders <= analysis.high_demand_min_orders:
                continue
            if product.quantity / product.orders >= analysis.high_demand_max_avg_quantity:
                continue
            findings.append(
                Anomaly(
                    type="high_demand",
                    severity=Severity.MEDIUM,
                    message=(
                        f"High demand detected for {product.product_name}: "
                        f"{product.orders} orders with low average quantity per order"
                    ),
                    product_key=product.product_key,
                    value=product.quantity,
                )
            )
        return findings

    def detect_customer_anomalies(self, orders: list[Order]) -> list[Anomaly]:
        """One grouped finding when any customer ordered unusually often."""
        analysis = self.settings.analysis
        counts = Counter(o.customer_key for o in orders if o.customer_key)
        if not counts or max(counts.values()) <= analysis.high_volume_trigger_orders:
            return []

        names = {o.customer_key: o.customer_name for o in orders if o.customer_key}
        customers = [
            {"customerKey": key, "customerName": names.get(key), "orders": count}
            for key, count in counts.most_common()
            if count > analysis.high_volume_list_orders
        ]
        return [
            Anomaly(
                type="high_volume_customer",
                severity=Severity.LOW,
                message=(
                    f"{len(customers)} customer(s) placed more than "
                    f"{analysis.high_volume_list_orders} orders in this period"
                ),
                customers=customers,
            )
        ]


# Global instance
anomaly_detector = AnomalyDetector()
