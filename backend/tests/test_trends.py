"""
Test Trend Analysis

Unit tests for regression, trend classification, product and customer
breakdowns and weekly seasonality.
"""

from datetime import date, datetime, timedelta

import pytest

from analysis.seasonality import SeasonalityAnalyzer
from analysis.trends import TrendAnalyzer, linear_regression, trend_direction, week_key
from api.schemas.responses import DailyBucket
from conftest import make_order


def daily_series(revenues, start=date(2024, 3, 1)):
    return {
        (start + timedelta(days=i)).isoformat(): DailyBucket(orders=1, revenue=value)
        for i, value in enumerate(revenues)
    }


@pytest.fixture
def analyzer():
    return TrendAnalyzer()


class TestLinearRegression:
    def test_exact_line(self):
        fit = linear_regression([10, 12, 14, 16])
        assert fit.slope == pytest.approx(2)
        assert fit.intercept == pytest.approx(10)
        assert fit.r_squared == pytest.approx(1)
        assert fit.predict(5) == pytest.approx(20)

    def test_degenerate_inputs(self):
        assert linear_regression([]).n == 0
        assert linear_regression([5]).slope == 0
        constant = linear_regression([3, 3, 3])
        assert constant.slope == 0
        assert constant.r_squared == 0


class TestSalesTrend:
    @pytest.mark.parametrize("slope, expected", [
        (0.05, "stable"),
        (0.2, "increasing"),
        (-0.2, "decreasing"),
    ])
    def test_slope_classification(self, analyzer, slope, expected):
        series = daily_series([100 + slope * i for i in range(10)])
        trend = analyzer.analyze_sales_trend(series)

        assert trend.trend == expected
        assert trend.change == pytest.approx(slope)

    def test_description_uses_two_decimal_currency(self, analyzer):
        trend = analyzer.analyze_sales_trend(daily_series([100, 150, 200, 250]))
        assert trend.description == "Sales are trending upward with an average daily increase of ₹50.00"
        assert trend.confidence == pytest.approx(1)

    def test_single_day_is_insufficient(self, analyzer):
        trend = analyzer.analyze_sales_trend(daily_series([100]))
        assert trend.trend == "insufficient_data"
        assert trend.confidence == 0

    def test_two_points_have_no_fit_confidence(self, analyzer):
        trend = analyzer.analyze_sales_trend(daily_series([100, 200]))
        assert trend.trend == "increasing"
        assert trend.confidence == 0


class TestTrendDirection:
    def test_half_split(self):
        assert trend_direction([10, 10, 20, 20]) == "increasing"
        assert trend_direction([20, 20, 10, 10]) == "decreasing"
        assert trend_direction([100, 100, 105, 95]) == "stable"

    def test_zero_first_half(self):
        assert trend_direction([0, 0, 5, 5]) == "increasing"
        assert trend_direction([0, 0]) == "stable"


class TestProductTrends:
    def test_ranking_and_concentration(self, analyzer, loader):
        when = datetime(2024, 3, 15, 9)
        orders = loader.load([
            make_order(1, when, 600, product="Ghee", quantity=1),
            make_order(2, when, 300, product="Paneer", quantity=3),
            make_order(3, when, 100, product="Curd", quantity=5),
            make_order(4, when, 100, product="Ghee", quantity=1),
        ])

        ranking = analyzer.analyze_product_trends(orders, top_n=2)

        assert [p.product_name for p in ranking.top] == ["Ghee", "Paneer"]
        assert [p.product_name for p in ranking.bottom] == ["Curd", "Paneer"]
        assert ranking.total_products == 3
        assert ranking.total_revenue == pytest.approx(1100)
        # ceil(3 * 0.2) = 1 product in the head
        assert ranking.concentration_ratio == pytest.approx(700 / 1100)
        assert ranking.top[0].orders == 2

    def test_no_orders(self, analyzer):
        ranking = analyzer.analyze_product_trends([])
        assert ranking.top == []
        assert ranking.concentration_ratio == 0


class TestCustomerTrends:
    def test_new_and_returning(self, analyzer, loader):
        base = datetime(2024, 3, 4, 10)
        records = [make_order(i, base + timedelta(days=i), 100, customer="cust-a") for i in range(3)]
        records.append(make_order(9, base, 50, customer="cust-b"))

        trends = analyzer.analyze_customer_trends(loader.load(records))

        assert trends.total_customers == 2
        assert trends.new_customers == 1
        assert trends.returning_customers == 1
        assert trends.retention_rate == pytest.approx(0.5)
        assert trends.average_lifetime_value == pytest.approx(175)
        assert [c.customer_key for c in trends.loyal_customers] == ["cust-a"]

    def test_week_key_sunday_based(self):
        # 2024-03-03 is a Sunday; days before the first Sunday fall in week 0
        assert week_key(datetime(2024, 3, 2)) == "2024-03-W0"
        assert week_key(datetime(2024, 3, 3)) == "2024-03-W1"


class TestTemporalTrends:
    def test_hour_and_weekday_counts(self, analyzer, loader):
        orders = loader.load([
            make_order(1, datetime(2024, 3, 11, 9), 10),
            make_order(2, datetime(2024, 3, 11, 9, 30), 10),
            make_order(3, datetime(2024, 3, 12, 18), 10),
        ])

        temporal = analyzer.analyze_temporal_trends(orders)

        assert temporal.by_hour == {"9": 2, "18": 1}
        assert temporal.by_weekday == {"Monday": 2, "Tuesday": 1}
        assert temporal.peak_hours == [9, 18]
        assert temporal.peak_weekdays[0] == "Monday"


class TestSeasonality:
    def test_needs_a_week(self):
        result = SeasonalityAnalyzer().analyze(daily_series([100] * 6))
        assert result.avg_multiplier == 1
        assert result.strength == "none"

    def test_flat_week_is_weak(self):
        result = SeasonalityAnalyzer().analyze(daily_series([100] * 14))
        assert result.strength == "weak"
        assert result.avg_multiplier == pytest.approx(1)
        assert len(result.pattern) == 7

    def test_weekend_peak_is_strong(self):
        # 2024-03-02 is a Saturday
        revenues = [300 if (date(2024, 3, 1) + timedelta(days=i)).weekday() >= 5 else 100 for i in range(14)]
        result = SeasonalityAnalyzer().analyze(daily_series(revenues))

        assert result.strength == "strong"
        assert result.avg_multiplier > 1
        assert result.pattern["Saturday"] == pytest.approx(300)
