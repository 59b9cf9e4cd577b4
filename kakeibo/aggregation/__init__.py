"""Ledger aggregation package."""

from kakeibo.aggregation.engine import (
    BUDGET_NODE,
    INCOME_NODE,
    REMAINING_NODE,
    AggregationEngine,
)

__all__ = [
    "AggregationEngine",
    "BUDGET_NODE",
    "INCOME_NODE",
    "REMAINING_NODE",
]
