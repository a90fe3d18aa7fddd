"""
Decision Module
Rule-based ads go/no-go per product, platform and seller
"""
from .gates import (
    MIN_RATING,
    MIN_ROAS,
    MIN_STOCK_COVERAGE_DAYS,
    TRAILING_WINDOW_DAYS,
    UNBOUNDED_COVERAGE_DAYS,
    UNBOUNDED_ROAS,
    DecisionFacts,
    DecisionState,
    Evaluation,
    evaluate,
)
from .loader import DecisionDataLoader
from .runner import DecisionRunSummary, UnknownSeller, run_decisions

__all__ = [
    "MIN_RATING",
    "MIN_ROAS",
    "MIN_STOCK_COVERAGE_DAYS",
    "TRAILING_WINDOW_DAYS",
    "UNBOUNDED_COVERAGE_DAYS",
    "UNBOUNDED_ROAS",
    "DecisionFacts",
    "DecisionState",
    "Evaluation",
    "evaluate",
    "DecisionDataLoader",
    "DecisionRunSummary",
    "UnknownSeller",
    "run_decisions",
]
