"""
Ads Decision Gates

Three gates evaluated in order, stopping at the first failure:
1. Inventory: seller stock coverage >= 7 days OR company inventory > 0
2. Rating: latest rating >= 4.0
3. Performance: trailing ROAS > 8
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

TRAILING_WINDOW_DAYS = 30
MIN_STOCK_COVERAGE_DAYS = 7.0
MIN_RATING = 4.0
MIN_ROAS = 8.0

# Stand-ins for "infinite" when the denominator is zero
UNBOUNDED_COVERAGE_DAYS = 999.0
UNBOUNDED_ROAS = 999.0

REASON_SEPARATOR = " | "


class DecisionState(str, Enum):
    PASS = "PASS"
    FAIL_INVENTORY = "FAIL_INVENTORY"
    FAIL_RATING = "FAIL_RATING"
    FAIL_ROAS = "FAIL_ROAS"


@dataclass(frozen=True)
class DecisionFacts:
    """Aggregated facts for one product-platform-seller tuple."""
    units_sold_30d: int = 0
    sale_days_30d: int = 0
    seller_inventory: int = 0
    company_inventory: int = 0
    rating: Optional[float] = None
    ad_spend_30d: float = 0.0
    ad_revenue_30d: float = 0.0

    @property
    def avg_daily_sales(self) -> float:
        return self.units_sold_30d / max(self.sale_days_30d, 1)

    @property
    def stock_coverage_days(self) -> float:
        avg = self.avg_daily_sales
        if avg <= 0:
            return UNBOUNDED_COVERAGE_DAYS
        return self.seller_inventory / avg

    @property
    def roas(self) -> float:
        if self.ad_spend_30d <= 0:
            return UNBOUNDED_ROAS
        return self.ad_revenue_30d / self.ad_spend_30d


@dataclass(frozen=True)
class Evaluation:
    decision: bool
    state: DecisionState
    reason: str


def evaluate(facts: DecisionFacts) -> Evaluation:
    """Run the gates over `facts`. Pure; same facts, same result."""
    passed: List[str] = []

    coverage = facts.stock_coverage_days
    if coverage >= MIN_STOCK_COVERAGE_DAYS:
        passed.append(
            f"Inventory Gate PASSED: Seller stock coverage ({coverage:.1f} days) >= {MIN_STOCK_COVERAGE_DAYS:g} days"
        )
    elif facts.company_inventory > 0:
        passed.append(
            f"Inventory Gate PASSED: Seller stock low ({coverage:.1f} days) "
            f"but company inventory available ({facts.company_inventory} units)"
        )
    else:
        return Evaluation(
            False,
            DecisionState.FAIL_INVENTORY,
            f"Inventory Gate FAILED: Seller stock coverage ({coverage:.1f} days) "
            f"< {MIN_STOCK_COVERAGE_DAYS:g} days AND company inventory = 0",
        )

    rating = facts.rating or 0.0
    if rating < MIN_RATING:
        return Evaluation(
            False,
            DecisionState.FAIL_RATING,
            f"Ratings Gate FAILED: Rating ({rating:.2f}) < {MIN_RATING:.1f}",
        )
    passed.append(f"Ratings Gate PASSED: Rating ({rating:.2f}) >= {MIN_RATING:.1f}")

    roas = facts.roas
    if roas <= MIN_ROAS:
        return Evaluation(
            False,
            DecisionState.FAIL_ROAS,
            f"Performance Gate FAILED: ROAS ({roas:.2f}) <= {MIN_ROAS:g}",
        )
    passed.append(f"Performance Gate PASSED: ROAS ({roas:.2f}) > {MIN_ROAS:g}")

    return Evaluation(True, DecisionState.PASS, REASON_SEPARATOR.join(passed))
