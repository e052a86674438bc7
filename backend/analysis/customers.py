"""
Customer Insights

Customer counts, repeat behaviour and top spenders for a period.
"""

from api.schemas.responses import CustomerInsights
from analysis.trends import trend_analyzer
from config import get_settings
from core.coercion import safe_divide
from core.order_loader import Order


class CustomerAnalyzer:
    """Summarizes customer behaviour within one order set."""

    def __init__(self):
        self.settings = get_settings()

    def analyze(self, orders: list[Order]) -> CustomerInsights:
        customers = trend_analyzer.customer_stats(orders)
        total = len(customers)
        returning = sum(1 for c in customers if c.orders > 1)

        return CustomerInsights(
            total_customers=total,
            new_customers=total - returning,
            returning_customers=returning,
            retention_rate=safe_divide(returning, total),
            average_orders_per_customer=safe_divide(sum(c.orders for c in customers), total),
            top_spenders=customers[: self.settings.analysis.top_customers_limit],
        )


# Global instance
customer_analyzer = CustomerAnalyzer()
