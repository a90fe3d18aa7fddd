"""
Unit Tests - Decision Gates
"""
import pytest

from adgate.decision.gates import (
    REASON_SEPARATOR,
    UNBOUNDED_COVERAGE_DAYS,
    UNBOUNDED_ROAS,
    DecisionFacts,
    DecisionState,
    evaluate,
)

# Passes every gate: coverage 15 days, rating 4.5, ROAS 10
HEALTHY = dict(
    units_sold_30d=20,
    sale_days_30d=10,
    seller_inventory=30,
    company_inventory=0,
    rating=4.5,
    ad_spend_30d=100.0,
    ad_revenue_30d=1000.0,
)


def facts(**overrides) -> DecisionFacts:
    return DecisionFacts(**{**HEALTHY, **overrides})


class TestDerivedMetrics:
    def test_average_uses_days_with_sales(self):
        assert facts(units_sold_30d=20, sale_days_30d=4).avg_daily_sales == 5.0

    def test_no_sales_means_unbounded_coverage(self):
        assert facts(units_sold_30d=0, sale_days_30d=0).stock_coverage_days == UNBOUNDED_COVERAGE_DAYS

    def test_zero_spend_means_unbounded_roas(self):
        assert facts(ad_spend_30d=0.0, ad_revenue_30d=0.0).roas == UNBOUNDED_ROAS


class TestInventoryGate:
    """Tests for the stock coverage threshold"""

    def test_exactly_seven_days_passes(self):
        result = evaluate(facts(units_sold_30d=10, sale_days_30d=10, seller_inventory=7))
        assert result.decision is True

    def test_just_under_seven_days_fails(self):
        result = evaluate(facts(units_sold_30d=1000, sale_days_30d=1, seller_inventory=6999))
        assert result.decision is False
        assert result.state == DecisionState.FAIL_INVENTORY
        assert result.reason == (
            "Inventory Gate FAILED: Seller stock coverage (7.0 days) < 7 days AND company inventory = 0"
        )

    def test_company_inventory_rescues_low_stock(self):
        result = evaluate(facts(seller_inventory=2, company_inventory=50))
        assert result.decision is True
        assert "but company inventory available (50 units)" in result.reason


class TestRatingGate:
    def test_missing_rating_fails(self):
        result = evaluate(facts(rating=None))
        assert result.state == DecisionState.FAIL_RATING
        assert result.reason == "Ratings Gate FAILED: Rating (0.00) < 4.0"

    @pytest.mark.parametrize("rating,passes", [(3.99, False), (4.0, True), (4.8, True)])
    def test_threshold(self, rating, passes):
        assert evaluate(facts(rating=rating)).decision is passes


class TestPerformanceGate:
    def test_roas_of_exactly_eight_fails(self):
        result = evaluate(facts(ad_spend_30d=100.0, ad_revenue_30d=800.0))
        assert result.state == DecisionState.FAIL_ROAS
        assert result.reason == "Performance Gate FAILED: ROAS (8.00) <= 8"

    def test_zero_spend_passes(self):
        result = evaluate(facts(ad_spend_30d=0.0, ad_revenue_30d=0.0))
        assert result.decision is True
        assert "ROAS (999.00) > 8" in result.reason


class TestEvaluate:
    def test_pass_reason_joins_every_gate(self):
        result = evaluate(facts())
        assert result.state == DecisionState.PASS
        assert result.reason.split(REASON_SEPARATOR) == [
            "Inventory Gate PASSED: Seller stock coverage (15.0 days) >= 7 days",
            "Ratings Gate PASSED: Rating (4.50) >= 4.0",
            "Performance Gate PASSED: ROAS (10.00) > 8",
        ]

    def test_stops_at_first_failure(self):
        result = evaluate(facts(seller_inventory=0, rating=1.0, ad_spend_30d=100.0, ad_revenue_30d=1.0))
        assert result.state == DecisionState.FAIL_INVENTORY
        assert "Ratings" not in result.reason

    def test_is_pure(self):
        assert evaluate(facts()) == evaluate(facts())
