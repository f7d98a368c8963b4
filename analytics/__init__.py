"""
Execution-aware analytics for binary prediction markets.

Pure functions over order-book snapshots and normalized market quotes:
no I/O, no shared state, safe to call concurrently.
"""

from __future__ import annotations

from analytics.comparator import (
    ComparisonThresholds,
    compare_markets,
    exhaustion_point,
    market_efficiency,
)
from analytics.depth import analyze_book
from analytics.discrepancy import DiscrepancyEngine, arbitrage_opportunity
from analytics.execution import max_size_within_slippage, price_execution
from analytics.payoff import combined_payoff, compute_payoff, kelly_fraction

__all__ = [
    "ComparisonThresholds",
    "DiscrepancyEngine",
    "analyze_book",
    "arbitrage_opportunity",
    "combined_payoff",
    "compare_markets",
    "compute_payoff",
    "exhaustion_point",
    "kelly_fraction",
    "market_efficiency",
    "max_size_within_slippage",
    "price_execution",
]
