"""
Unit tests for analytics/comparator.py -- cross-market comparison signals.
"""

import pytest

from analytics.comparator import (
    ComparisonThresholds,
    compare_markets,
    exhaustion_point,
    find_max_viable_size,
    market_efficiency,
)
from analytics.models import MarketBooks, OrderBook, PriceLevel, Side


def _make_book(token_id, bids=None, asks=None):
    return OrderBook(token_id=token_id, bids=tuple(bids or []), asks=tuple(asks or []))


def _make_market(market_id, yes_ask, no_ask, depth=1000.0, yes_asks=None, yes_bids=None):
    """Binary market with one deep level per side, bid one tick under the ask."""
    yes = _make_book(
        f"{market_id}-yes",
        bids=yes_bids or [PriceLevel(round(yes_ask - 0.01, 4), depth)],
        asks=yes_asks or [PriceLevel(yes_ask, depth)],
    )
    no = _make_book(
        f"{market_id}-no",
        bids=[PriceLevel(round(no_ask - 0.01, 4), depth)],
        asks=[PriceLevel(no_ask, depth)],
    )
    return MarketBooks(market_id=market_id, question=f"Question {market_id}", yes=yes, no=no)


class TestApparentArbitrage:
    def test_sum_below_threshold_flags_arbitrage(self):
        a = _make_market("A", 0.45, 0.50)
        b = _make_market("B", 0.46, 0.52)
        result = compare_markets(a, b, 100)
        assert result.apparent_arbitrage is True
        assert result.arbitrage_edge == pytest.approx(0.05)
        assert "Market A" in result.arbitrage_details
        assert "5.00% edge" in result.arbitrage_details

    def test_market_b_checked_when_a_is_fair(self):
        a = _make_market("A", 0.50, 0.51)
        b = _make_market("B", 0.48, 0.47)
        result = compare_markets(a, b, 100)
        assert result.apparent_arbitrage is True
        assert result.arbitrage_edge == pytest.approx(0.05)
        assert "Market B" in result.arbitrage_details

    def test_near_identical_books_no_signal(self):
        a = _make_market("A", 0.50, 0.51)
        b = _make_market("B", 0.505, 0.51)
        result = compare_markets(a, b, 100)
        assert result.apparent_arbitrage is False
        assert result.dominance_violation is False
        assert result.dominance_details is None
        assert result.arbitrage_edge == 0.0
        assert result.max_viable_size == 0
        assert result.arbitrage_details == "No significant arbitrage opportunity detected"

    def test_cross_market_gap_is_not_arbitrage(self):
        a = _make_market("A", 0.40, 0.61)
        b = _make_market("B", 0.50, 0.51)
        result = compare_markets(a, b, 100)
        assert result.apparent_arbitrage is False
        assert result.arbitrage_edge == pytest.approx(0.10)
        assert "Price discrepancy detected" in result.arbitrage_details
        assert result.max_viable_size == 0


class TestPriceDifferences:
    def test_signed_a_minus_b(self):
        a = _make_market("A", 0.40, 0.61)
        b = _make_market("B", 0.50, 0.51)
        result = compare_markets(a, b, 100)
        assert result.price_difference_yes == pytest.approx(-0.10)
        assert result.price_difference_no == pytest.approx(0.10)

    def test_summaries(self):
        a = _make_market("A", 0.40, 0.61)
        b = _make_market("B", 0.50, 0.51)
        result = compare_markets(a, b, 100)
        assert result.market_a.market_id == "A"
        assert result.market_a.question == "Question A"
        assert result.market_a.execution_price_yes == pytest.approx(0.40)
        assert result.market_b.execution_price_no == pytest.approx(0.51)
        assert result.market_a.spread_width == pytest.approx(0.01)
        assert result.market_a.depth_at_size == pytest.approx(100)


class TestDominance:
    def test_overpriced_market(self):
        a = _make_market("A", 0.55, 0.55)
        b = _make_market("B", 0.50, 0.51)
        result = compare_markets(a, b, 100)
        assert result.dominance_violation is True
        assert "Market A: YES + NO = 1.1000" in result.dominance_details

    def test_mild_vig_not_a_violation(self):
        a = _make_market("A", 0.51, 0.52)
        b = _make_market("B", 0.51, 0.52)
        assert compare_markets(a, b, 100).dominance_violation is False

    def test_price_above_one_flagged(self):
        # Sum stays under the overpricing threshold so only the range check fires
        a = _make_market("A", 1.02, 0.02)
        b = _make_market("B", 0.50, 0.51)
        result = compare_markets(a, b, 100)
        assert result.dominance_violation is True
        assert result.dominance_details == "Invalid price detected: 1.0200 (should be between 0 and 1)"

    def test_negative_price_flagged(self):
        a = _make_market("A", 0.50, 0.51)
        b = _make_market("B", -0.05, 0.50)
        result = compare_markets(a, b, 100)
        assert result.dominance_violation is True
        assert "Invalid price detected: -0.0500" in result.dominance_details


class TestMaxViableSize:
    def test_search_stops_where_slippage_eats_edge(self):
        # YES A: 100 @ 0.45 then deep at 0.60. Slippage% = 33.3 * (s - 100) / s,
        # which crosses the 5% edge between 117 and 118.
        a = _make_market(
            "A", 0.45, 0.50,
            yes_asks=[PriceLevel(0.45, 100), PriceLevel(0.60, 100_000)],
        )
        b = _make_market("B", 0.50, 0.51, depth=100_000)
        result = compare_markets(a, b, 100)
        assert result.apparent_arbitrage is True
        assert result.max_viable_size == 117

    def test_zero_edge_returns_zero(self):
        a = _make_market("A", 0.45, 0.50)
        assert find_max_viable_size(a, a, 0.0) == 0

    def test_bounded_by_max_size(self):
        a = _make_market("A", 0.45, 0.50, depth=1_000_000)
        assert find_max_viable_size(a, a, 0.05, max_size=500) == 499


class TestRiskSignals:
    def test_wide_spread(self):
        a = _make_market("A", 0.50, 0.51, yes_bids=[PriceLevel(0.40, 1000)])
        b = _make_market("B", 0.50, 0.51)
        signals = compare_markets(a, b, 100).risk_signals
        assert any(s.startswith("Wide spread detected") for s in signals)

    def test_large_size_relative_to_depth(self):
        a = _make_market("A", 0.50, 0.51, depth=1000)
        b = _make_market("B", 0.50, 0.51, depth=1000)
        signals = compare_markets(a, b, 1500).risk_signals
        assert any("large relative to book depth (2000)" in s for s in signals)

    def test_imbalance_names_book_and_direction(self):
        a = _make_market(
            "A", 0.50, 0.51,
            yes_bids=[PriceLevel(0.49, 100)],
            yes_asks=[PriceLevel(0.50, 900)],
        )
        b = _make_market("B", 0.50, 0.51)
        signals = compare_markets(a, b, 10).risk_signals
        assert "A-YES book is ask-heavy (imbalance: -80.0%)" in signals

    def test_quiet_books_no_signals(self):
        a = _make_market("A", 0.50, 0.51)
        b = _make_market("B", 0.50, 0.51)
        assert compare_markets(a, b, 100).risk_signals == ()

    def test_custom_thresholds(self):
        a = _make_market("A", 0.50, 0.51)
        b = _make_market("B", 0.50, 0.51)
        strict = ComparisonThresholds(wide_spread_pct=1.0)
        signals = compare_markets(a, b, 100, strict).risk_signals
        assert any(s.startswith("Wide spread detected") for s in signals)


class TestSlippageAtSize:
    def test_sums_four_legs(self):
        a = _make_market(
            "A", 0.50, 0.51,
            yes_asks=[PriceLevel(0.50, 50), PriceLevel(0.60, 1000)],
        )
        b = _make_market("B", 0.50, 0.51)
        result = compare_markets(a, b, 100)
        # YES A: avg 0.55, 10% above best; the other legs fill at the touch
        assert result.slippage_at_size == pytest.approx(10.0)


class TestMarketEfficiency:
    def test_underpriced(self):
        eff = market_efficiency(_make_market("A", 0.45, 0.50), 100)
        assert eff.sum == pytest.approx(0.95)
        assert eff.is_efficient is False
        assert eff.signal.startswith("Underpriced: Buy both YES and NO")
        assert eff.vigorish == pytest.approx(-5.0)

    def test_overpriced_is_efficient(self):
        eff = market_efficiency(_make_market("A", 0.52, 0.52), 100)
        assert eff.is_efficient is True
        assert eff.signal == "Overpriced: Market has 4.00% built-in vig"

    def test_fair(self):
        eff = market_efficiency(_make_market("A", 0.50, 0.50), 100)
        assert eff.is_efficient is True
        assert eff.signal == "Market is efficiently priced"


class TestExhaustionPoint:
    def test_no_edge(self):
        book = _make_book("t", asks=[PriceLevel(0.5, 100)])
        point = exhaustion_point(book, book, Side.BUY, 0.0)
        assert point.exhaustion_size == 0
        assert point.edge_at_exhaustion == 0.0

    def test_deep_books_reach_top_of_ladder(self):
        book = _make_book("t", asks=[PriceLevel(0.5, 1_000_000)])
        point = exhaustion_point(book, book, Side.BUY, 0.05)
        assert point.exhaustion_size == 10000
        assert point.edge_at_exhaustion == pytest.approx(0.05)

    def test_stops_before_slippage_consumes_edge(self):
        thin = _make_book("a", asks=[PriceLevel(0.50, 100), PriceLevel(0.60, 100_000)])
        deep = _make_book("b", asks=[PriceLevel(0.50, 1_000_000)])
        point = exhaustion_point(thin, deep, Side.BUY, 0.05)
        assert point.exhaustion_size == 100
        assert point.edge_at_exhaustion == pytest.approx(0.05)
