"""
Data models for the analytics core. Pure data, no behavior.

Every entity is a frozen value object: built fresh per computation, owned
by the caller, never mutated afterwards.
"""

from __future__ import annotations

import time
from enum import Enum
from dataclasses import dataclass, field


class Platform(Enum):
    POLYMARKET = "polymarket"
    KALSHI = "kalshi"
    PREDICTIT = "predictit"
    METACULUS = "metaculus"


class Side(Enum):
    BUY = "BUY"
    SELL = "SELL"


class Outcome(Enum):
    YES = "YES"
    NO = "NO"


# ---------------------------------------------------------------------------
# Order books
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PriceLevel:
    price: float
    size: float


@dataclass(frozen=True)
class OrderBook:
    """
    One outcome's book. Bids are sorted descending and asks ascending by the
    producing adapter; the walking code relies on that order and does not
    re-check it.
    """
    token_id: str
    bids: tuple[PriceLevel, ...]
    asks: tuple[PriceLevel, ...]
    market_id: str = ""
    timestamp: float = field(default_factory=time.time)

    @property
    def best_bid(self) -> PriceLevel | None:
        return self.bids[0] if self.bids else None

    @property
    def best_ask(self) -> PriceLevel | None:
        return self.asks[0] if self.asks else None

    def levels(self, side: Side) -> tuple[PriceLevel, ...]:
        """Levels a taker on *side* consumes: asks for BUY, bids for SELL."""
        return self.asks if side == Side.BUY else self.bids


@dataclass(frozen=True)
class MarketBooks:
    """YES and NO books of one binary market."""
    market_id: str
    question: str
    yes: OrderBook
    no: OrderBook
    fetched_at: float = field(default_factory=time.time)

    def book(self, outcome: Outcome) -> OrderBook:
        return self.yes if outcome == Outcome.YES else self.no


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TradeInput:
    side: Side
    outcome: Outcome
    size: float


@dataclass(frozen=True)
class Fill:
    price: float
    size: float
    cumulative_size: float


@dataclass(frozen=True)
class ExecutionResult:
    side: Side
    outcome: Outcome
    requested_size: float
    filled_size: float
    average_price: float
    total_cost: float          # paid for BUY, received for SELL
    best_price: float
    worst_price: float
    slippage_from_best: float  # positive = worse than best, for either side
    slippage_percent: float
    fills: tuple[Fill, ...]
    partial_fill: bool
    remaining_size: float


@dataclass(frozen=True)
class OrderBookAnalysis:
    best_bid: float
    best_ask: float
    spread: float
    spread_percent: float
    midpoint: float  # reference only, never used for execution pricing
    bid_depth_total: float
    ask_depth_total: float
    depth_imbalance: float  # (bids - asks) / (bids + asks)
    size_to_move_bid_1pct: float
    size_to_move_ask_1pct: float
    level_count: int
    average_level_size: float

    @property
    def total_depth(self) -> float:
        return self.bid_depth_total + self.ask_depth_total


@dataclass(frozen=True)
class SlippageBound:
    max_size: float
    price_at_max: float


@dataclass(frozen=True)
class SizePrice:
    """One rung of a price-vs-size ladder."""
    size: float
    price: float
    slippage_percent: float


# ---------------------------------------------------------------------------
# Payoff
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PayoffResult:
    side: Side
    outcome: Outcome
    contracts: float
    entry_price: float
    total_cost: float
    pnl_if_yes: float
    return_if_yes: float
    pnl_if_no: float
    return_if_no: float
    max_gain: float
    max_loss: float
    capital_at_risk: float
    implied_probability: float


@dataclass(frozen=True)
class CombinedPayoff:
    total_cost: float
    pnl_if_yes: float
    pnl_if_no: float
    max_gain: float
    max_loss: float


@dataclass(frozen=True)
class KellyResult:
    fraction: float  # never negative
    edge: float      # expected profit per contract, may be negative


# ---------------------------------------------------------------------------
# Cross-market comparison
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MarketSummary:
    market_id: str
    question: str
    execution_price_yes: float
    execution_price_no: float
    spread_width: float
    depth_at_size: float


@dataclass(frozen=True)
class MarketComparisonResult:
    market_a: MarketSummary
    market_b: MarketSummary
    price_difference_yes: float  # A - B
    price_difference_no: float   # A - B
    apparent_arbitrage: bool
    arbitrage_edge: float
    arbitrage_details: str
    max_viable_size: int
    slippage_at_size: float
    dominance_violation: bool
    dominance_details: str | None = None
    risk_signals: tuple[str, ...] = ()


@dataclass(frozen=True)
class MarketEfficiency:
    yes_price: float
    no_price: float
    sum: float
    vigorish: float  # (sum - 1) * 100; negative = underpriced
    is_efficient: bool
    signal: str


@dataclass(frozen=True)
class ExhaustionPoint:
    exhaustion_size: float
    edge_at_exhaustion: float


# ---------------------------------------------------------------------------
# Cross-venue discrepancies
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NormalizedMarket:
    """Canonical market record produced by venue adapters."""
    external_id: str
    platform: Platform
    question: str
    category: str
    yes_probability: float
    no_probability: float
    volume: float | None = None
    liquidity: float | None = None
    end_date: str = ""  # ISO 8601 (empty = unknown)
    last_updated: float = field(default_factory=time.time)
    description: str = ""


@dataclass(frozen=True)
class PlatformQuote:
    platform: Platform
    yes_probability: float
    volume: float | None = None
    liquidity: float | None = None


@dataclass(frozen=True)
class NewsCorrelation:
    title: str
    source: str
    url: str
    published_at: str
    sentiment: float        # -1 .. 1
    relevance_score: float  # 0 .. 1


@dataclass(frozen=True)
class DiscrepancyResult:
    event_slug: str
    event_title: str
    markets: tuple[PlatformQuote, ...]
    max_spread: float
    spread_percent: float
    confidence: float
    likely_drivers: tuple[NewsCorrelation, ...] = ()


@dataclass(frozen=True)
class ArbitrageSignal:
    exists: bool
    theoretical_return: float  # percent
    confidence: float
