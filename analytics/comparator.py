"""
Cross-market comparison. Prices a BUY of the same size on both outcomes of
two related markets and turns the execution prices into inefficiency,
dominance and risk signals.

None of this is risk-free arbitrage detection. Two markets may cover
related-but-distinct events, so a cross-market price gap is reported as an
inefficiency signal, never as arbitrage. Only a single market whose YES+NO
execution sum sits below $1 (less a fee allowance) is flagged as apparent
arbitrage, and even that ignores settlement and execution risk.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from analytics.depth import analyze_book
from analytics.execution import price_execution
from analytics.models import (
    ExecutionResult,
    ExhaustionPoint,
    MarketBooks,
    MarketComparisonResult,
    MarketEfficiency,
    MarketSummary,
    OrderBook,
    OrderBookAnalysis,
    Outcome,
    Side,
    TradeInput,
)

logger = logging.getLogger(__name__)

# Sizes tried by exhaustion_point(), smallest first
EXHAUSTION_LADDER: tuple[int, ...] = (10, 50, 100, 250, 500, 1000, 2500, 5000, 10000)


@dataclass(frozen=True)
class ComparisonThresholds:
    """Heuristic cut-offs for comparison signals. Defaults are unvalidated rules of thumb."""
    arbitrage_sum: float = 0.98        # YES+NO below this = apparent arb (2% fee allowance)
    overpriced_sum: float = 1.02       # YES+NO above this = vig
    dominance_sum: float = 1.05        # YES+NO above this = dominance violation
    cross_market_gap: float = 0.05     # |A - B| above this = inefficiency signal
    max_search_size: int = 10000       # upper bound for the viable-size search
    wide_spread_pct: float = 5.0
    depth_fraction: float = 0.5        # trade size vs min total depth
    imbalance: float = 0.5


DEFAULT_THRESHOLDS = ComparisonThresholds()


@dataclass(frozen=True)
class _ArbitrageCheck:
    has_arbitrage: bool
    edge: float
    details: str


def _buy(book: OrderBook, outcome: Outcome, size: float) -> ExecutionResult:
    return price_execution(book, TradeInput(Side.BUY, outcome, size))


def _detect_apparent_arbitrage(
    a_yes: ExecutionResult,
    a_no: ExecutionResult,
    b_yes: ExecutionResult,
    b_no: ExecutionResult,
    thresholds: ComparisonThresholds,
) -> _ArbitrageCheck:
    sum_a = a_yes.average_price + a_no.average_price
    sum_b = b_yes.average_price + b_no.average_price

    for label, total in (("A", sum_a), ("B", sum_b)):
        if total < thresholds.arbitrage_sum:
            edge = 1.0 - total
            return _ArbitrageCheck(
                has_arbitrage=True,
                edge=edge,
                details=(
                    f"Market {label}: YES + NO = {total:.4f} < 1.00 "
                    f"(potential {edge * 100:.2f}% edge)"
                ),
            )

    yes_diff = abs(a_yes.average_price - b_yes.average_price)
    no_diff = abs(a_no.average_price - b_no.average_price)
    if yes_diff > thresholds.cross_market_gap or no_diff > thresholds.cross_market_gap:
        return _ArbitrageCheck(
            has_arbitrage=False,
            edge=max(yes_diff, no_diff),
            details=(
                f"Price discrepancy detected: YES diff {yes_diff * 100:.2f}%, "
                f"NO diff {no_diff * 100:.2f}%. May be inefficiency if markets are related."
            ),
        )

    return _ArbitrageCheck(False, 0.0, "No significant arbitrage opportunity detected")


def _check_dominance(
    a_yes: ExecutionResult,
    a_no: ExecutionResult,
    b_yes: ExecutionResult,
    b_no: ExecutionResult,
    thresholds: ComparisonThresholds,
) -> str | None:
    """Return a description of the first violation found, or None."""
    sum_a = a_yes.average_price + a_no.average_price
    sum_b = b_yes.average_price + b_no.average_price

    for label, total in (("A", sum_a), ("B", sum_b)):
        if total > thresholds.dominance_sum:
            return (
                f"Market {label}: YES + NO = {total:.4f} > 1.00 "
                f"(overpriced by {(total - 1) * 100:.2f}%)"
            )

    for execution in (a_yes, a_no, b_yes, b_no):
        price = execution.average_price
        if price < 0 or price > 1:
            return f"Invalid price detected: {price:.4f} (should be between 0 and 1)"

    return None


def find_max_viable_size(
    market_a: MarketBooks,
    market_b: MarketBooks,
    initial_edge: float,
    max_size: int = DEFAULT_THRESHOLDS.max_search_size,
) -> int:
    """
    Largest integer size in [0, max_size] at which
    edge*100 - (slippage% YES A + slippage% YES B) is still positive.

    Binary search assumes edge-minus-slippage falls monotonically with size.
    Irregular books (a thin level followed by a deep one at a better price)
    break that assumption, so treat the result as an approximation.
    """
    if initial_edge <= 0:
        return 0

    low, high = 0, max_size
    best = 0
    while high - low > 1:
        mid = (low + high) // 2
        slippage = (
            _buy(market_a.yes, Outcome.YES, mid).slippage_percent
            + _buy(market_b.yes, Outcome.YES, mid).slippage_percent
        )
        if initial_edge * 100 - slippage > 0:
            best = mid
            low = mid
        else:
            high = mid
    return best


def _risk_signals(
    analyses: dict[str, OrderBookAnalysis],
    trade_size: float,
    thresholds: ComparisonThresholds,
) -> list[str]:
    signals: list[str] = []

    max_spread = max(a.spread_percent for a in analyses.values())
    if max_spread > thresholds.wide_spread_pct:
        signals.append(
            f"Wide spread detected: {max_spread:.2f}% (execution costs may be high)"
        )

    min_depth = min(a.total_depth for a in analyses.values())
    if trade_size > min_depth * thresholds.depth_fraction:
        signals.append(
            f"Trade size ({trade_size:g}) is large relative to book depth ({min_depth:.0f})"
        )

    for name, analysis in analyses.items():
        imbalance = analysis.depth_imbalance
        if abs(imbalance) > thresholds.imbalance:
            direction = "bid-heavy" if imbalance > 0 else "ask-heavy"
            signals.append(
                f"{name} book is {direction} (imbalance: {imbalance * 100:.1f}%)"
            )

    return signals


def _summary(
    market: MarketBooks,
    yes: ExecutionResult,
    no: ExecutionResult,
    yes_analysis: OrderBookAnalysis,
) -> MarketSummary:
    return MarketSummary(
        market_id=market.market_id,
        question=market.question,
        execution_price_yes=yes.average_price,
        execution_price_no=no.average_price,
        spread_width=yes_analysis.spread,
        depth_at_size=min(yes.filled_size, no.filled_size),
    )


def compare_markets(
    market_a: MarketBooks,
    market_b: MarketBooks,
    trade_size: float,
    thresholds: ComparisonThresholds = DEFAULT_THRESHOLDS,
) -> MarketComparisonResult:
    """Execution-aware comparison of two related binary markets at *trade_size*."""
    analyses = {
        "A-YES": analyze_book(market_a.yes),
        "A-NO": analyze_book(market_a.no),
        "B-YES": analyze_book(market_b.yes),
        "B-NO": analyze_book(market_b.no),
    }

    a_yes = _buy(market_a.yes, Outcome.YES, trade_size)
    a_no = _buy(market_a.no, Outcome.NO, trade_size)
    b_yes = _buy(market_b.yes, Outcome.YES, trade_size)
    b_no = _buy(market_b.no, Outcome.NO, trade_size)

    arb = _detect_apparent_arbitrage(a_yes, a_no, b_yes, b_no, thresholds)
    dominance = _check_dominance(a_yes, a_no, b_yes, b_no, thresholds)

    max_viable = find_max_viable_size(
        market_a,
        market_b,
        abs(arb.edge) if arb.has_arbitrage else 0.0,
        max_size=thresholds.max_search_size,
    )

    slippage_at_size = (
        a_yes.slippage_percent
        + a_no.slippage_percent
        + b_yes.slippage_percent
        + b_no.slippage_percent
    )

    logger.debug(
        "Compared %s vs %s at size %g: arb=%s edge=%.4f viable=%d dominance=%s",
        market_a.market_id, market_b.market_id, trade_size,
        arb.has_arbitrage, arb.edge, max_viable, dominance is not None,
    )

    return MarketComparisonResult(
        market_a=_summary(market_a, a_yes, a_no, analyses["A-YES"]),
        market_b=_summary(market_b, b_yes, b_no, analyses["B-YES"]),
        price_difference_yes=a_yes.average_price - b_yes.average_price,
        price_difference_no=a_no.average_price - b_no.average_price,
        apparent_arbitrage=arb.has_arbitrage,
        arbitrage_edge=arb.edge,
        arbitrage_details=arb.details,
        max_viable_size=max_viable,
        slippage_at_size=slippage_at_size,
        dominance_violation=dominance is not None,
        dominance_details=dominance,
        risk_signals=tuple(_risk_signals(analyses, trade_size, thresholds)),
    )


def market_efficiency(
    market: MarketBooks,
    trade_size: float,
    thresholds: ComparisonThresholds = DEFAULT_THRESHOLDS,
) -> MarketEfficiency:
    """YES+NO execution-sum check on a single market."""
    yes_price = _buy(market.yes, Outcome.YES, trade_size).average_price
    no_price = _buy(market.no, Outcome.NO, trade_size).average_price
    total = yes_price + no_price
    vigorish = (total - 1) * 100

    if total < thresholds.arbitrage_sum:
        signal = (
            f"Underpriced: Buy both YES and NO for guaranteed profit of "
            f"{(1 - total) * 100:.2f}%"
        )
        efficient = False
    elif total > thresholds.overpriced_sum:
        # Overpriced is still efficient: the excess is the venue's vig.
        signal = f"Overpriced: Market has {vigorish:.2f}% built-in vig"
        efficient = True
    else:
        signal = "Market is efficiently priced"
        efficient = True

    return MarketEfficiency(
        yes_price=yes_price,
        no_price=no_price,
        sum=total,
        vigorish=vigorish,
        is_efficient=efficient,
        signal=signal,
    )


def exhaustion_point(
    book_a: OrderBook,
    book_b: OrderBook,
    side: Side,
    initial_edge: float,
    ladder: tuple[int, ...] = EXHAUSTION_LADDER,
) -> ExhaustionPoint:
    """
    Walk *ladder* and return the largest size at which combined slippage on
    both books has not yet consumed *initial_edge*, with the edge left there.
    """
    if initial_edge <= 0:
        return ExhaustionPoint(exhaustion_size=0, edge_at_exhaustion=0.0)

    last_size = 0
    last_edge = initial_edge
    for size in ladder:
        slippage = (
            price_execution(book_a, TradeInput(side, Outcome.YES, size)).slippage_percent
            + price_execution(book_b, TradeInput(side, Outcome.YES, size)).slippage_percent
        )
        remaining = initial_edge * 100 - slippage
        if remaining <= 0:
            break
        last_size = size
        last_edge = remaining / 100

    return ExhaustionPoint(exhaustion_size=last_size, edge_at_exhaustion=last_edge)
