"""
Scannable console output for the analytics CLI.

Pure formatting functions that emit structured log lines using box-drawing
characters. No side effects beyond logging. All data arrives via arguments.
"""

from __future__ import annotations

import logging

from analytics.depth import depth_profile
from analytics.models import DiscrepancyResult, OrderBook, OrderBookAnalysis, Side
from api.service import BookReport, ComparisonReport, MarketsOverview, TradeSimulation

logger = logging.getLogger(__name__)

# Box-drawing characters
_TOP = "\u250c"  # ┌
_MID = "\u2502"  # │
_BOT = "\u2514"  # └
_VERT_SEP = "\u2502"  # │ (inline separator)

_MAX_QUESTION_LEN = 50
_BOOK_LEVELS_SHOWN = 5
_MARKETS_SHOWN = 25


def _truncate(text: str, length: int = _MAX_QUESTION_LEN) -> str:
    """Truncate text to *length* chars, appending ellipsis if trimmed."""
    if len(text) <= length:
        return text
    return text[: length - 1] + "\u2026"


def _title(market_id: str, question: str) -> str:
    return _truncate(question) if question else market_id


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def print_execution(sim: TradeSimulation) -> None:
    """Boxed summary of a simulated taker order and its payoff."""
    ex, pay, bound = sim.execution, sim.payoff, sim.slippage_bound
    logger.info(
        "  %s %s %s %g %s %s",
        _TOP, sim.trade.side.value, sim.trade.outcome.value, sim.trade.size,
        _VERT_SEP, _title(sim.market_id, sim.question),
    )
    logger.info(
        "  %s  Filled %.2f / %.2f @ $%.4f  (best $%.4f, worst $%.4f)",
        _MID, ex.filled_size, ex.requested_size, ex.average_price, ex.best_price, ex.worst_price,
    )
    logger.info(
        "  %s  Cost $%.2f  Slippage %.2f%%  Levels %d",
        _MID, ex.total_cost, ex.slippage_percent, len(ex.fills),
    )
    if ex.partial_fill:
        logger.info("  %s  PARTIAL FILL: %.2f unfilled (book exhausted)", _MID, ex.remaining_size)
    logger.info(
        "  %s  If YES: $%.2f (%.1f%%)  If NO: $%.2f (%.1f%%)",
        _MID, pay.pnl_if_yes, pay.return_if_yes, pay.pnl_if_no, pay.return_if_no,
    )
    logger.info(
        "  %s  Max size within tolerance: %.2f @ $%.4f",
        _BOT, bound.max_size, bound.price_at_max,
    )


def _book_lines(label: str, book: OrderBook, analysis: OrderBookAnalysis) -> None:
    logger.info(
        "  %s  %s  bid $%.4f  ask $%.4f  spread %.2f%%  depth %.0f/%.0f  imbalance %+.2f",
        _MID, label, analysis.best_bid, analysis.best_ask, analysis.spread_percent,
        analysis.bid_depth_total, analysis.ask_depth_total, analysis.depth_imbalance,
    )
    logger.info("  %s      %19s %s %s", _MID, "cum size @ bid", _VERT_SEP, "ask x cum size")
    # (price, cumulative size) from the touch outward
    bids = depth_profile(book, Side.SELL)[:_BOOK_LEVELS_SHOWN]
    asks = depth_profile(book, Side.BUY)[:_BOOK_LEVELS_SHOWN]
    for i in range(max(len(bids), len(asks))):
        bid = f"{bids[i][1]:>10.2f} @ {bids[i][0]:.4f}" if i < len(bids) else " " * 19
        ask = f"{asks[i][0]:.4f} x {asks[i][1]:<10.2f}" if i < len(asks) else ""
        logger.info("  %s      %s %s %s", _MID, bid, _VERT_SEP, ask)


def print_book(report: BookReport) -> None:
    """Top of both outcome books with their depth analysis."""
    books = report.books
    logger.info("  %s %s", _TOP, _title(books.market_id, books.question))
    _book_lines("YES", books.yes, report.yes_analysis)
    _book_lines("NO ", books.no, report.no_analysis)
    logger.info("  %s", _BOT)


def print_comparison(report: ComparisonReport) -> None:
    """Side-by-side execution prices, arbitrage and risk signals."""
    c = report.comparison
    logger.info("  %s Market comparison", _TOP)
    for label, summary, eff in (("A", c.market_a, report.efficiency_a), ("B", c.market_b, report.efficiency_b)):
        logger.info(
            "  %s  %s %-50s YES $%.4f  NO $%.4f  sum %.4f",
            _MID, label, _title(summary.market_id, summary.question),
            summary.execution_price_yes, summary.execution_price_no, eff.sum,
        )
        logger.info("  %s      %s", _MID, eff.signal)
    logger.info(
        "  %s  Diff YES %+.4f  NO %+.4f  Slippage at size %.2f%%",
        _MID, c.price_difference_yes, c.price_difference_no, c.slippage_at_size,
    )
    if c.arbitrage_details:
        logger.info("  %s  %s", _MID, c.arbitrage_details)
    if c.apparent_arbitrage:
        logger.info("  %s  Max viable size: %d", _MID, c.max_viable_size)
    if c.dominance_violation:
        logger.info("  %s  DOMINANCE: %s", _MID, c.dominance_details)
    for signal in c.risk_signals:
        logger.info("  %s  RISK: %s", _MID, signal)
    logger.info("  %s", _BOT)


def print_discrepancies(results: list[DiscrepancyResult]) -> None:
    """Table of cross-venue discrepancies, widest spread first."""
    if not results:
        logger.info("  %s No discrepancies found", _TOP)
        return

    n = len(results)
    logger.info("  %s %d discrepanc%s found", _TOP, n, "y" if n == 1 else "ies")
    logger.info("  %s  %-3s %-50s %7s %6s %s", _MID, "#", "Event", "Spread", "Conf", "Venues")
    for idx, r in enumerate(results, 1):
        venues = " ".join(f"{q.platform.value}={q.yes_probability:.2f}" for q in r.markets)
        logger.info(
            "  %s  %-3d %-50s %6.1f%% %6.2f %s",
            _MID, idx, _truncate(r.event_title), r.max_spread * 100, r.confidence, venues,
        )
        for news in r.likely_drivers:
            logger.info("  %s        news: %s (%s)", _MID, _truncate(news.title, 60), news.source)
    logger.info("  %s", _BOT)


def print_markets(overview: MarketsOverview) -> None:
    """Headline stats, then the first markets by venue."""
    logger.info(
        "  %s %d markets  %s  %d discrepancies  %s  avg spread %.1f%%",
        _TOP, overview.total_markets, _VERT_SEP, overview.active_discrepancies,
        _VERT_SEP, overview.avg_spread * 100,
    )
    for m in overview.markets[:_MARKETS_SHOWN]:
        logger.info(
            "  %s  %-10s %-50s YES %.2f  NO %.2f  %s",
            _MID, m.platform.value, _truncate(m.question), m.yes_probability, m.no_probability, m.category,
        )
    hidden = overview.total_markets - _MARKETS_SHOWN
    if hidden > 0:
        logger.info("  %s  ... %d more", _MID, hidden)
    logger.info("  %s", _BOT)
