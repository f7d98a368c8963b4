"""
Execution pricing. Walks discrete book levels to compute the price a real
order would receive -- never the midpoint. Also solves for the largest size
that stays inside a slippage tolerance.
"""

from __future__ import annotations

import logging

from analytics.models import (
    ExecutionResult,
    Fill,
    OrderBook,
    Outcome,
    Side,
    SizePrice,
    SlippageBound,
    TradeInput,
)

logger = logging.getLogger(__name__)

# Float residue below this after walking the book counts as fully filled
_FILL_EPSILON = 1e-9


def _empty_result(trade: TradeInput) -> ExecutionResult:
    return ExecutionResult(
        side=trade.side,
        outcome=trade.outcome,
        requested_size=trade.size,
        filled_size=0.0,
        average_price=0.0,
        total_cost=0.0,
        best_price=0.0,
        worst_price=0.0,
        slippage_from_best=0.0,
        slippage_percent=0.0,
        fills=(),
        partial_fill=True,
        remaining_size=trade.size,
    )


def price_execution(book: OrderBook, trade: TradeInput) -> ExecutionResult:
    """
    Simulate filling *trade* against *book*.

    BUY consumes asks from the best (lowest) up, SELL consumes bids from the
    best (highest) down, so each step is at an equal or worse price. A side
    with no levels yields a zero fill rather than an error.
    """
    levels = book.levels(trade.side)
    if not levels:
        return _empty_result(trade)

    best_price = levels[0].price
    worst_price = best_price
    remaining = trade.size
    filled = 0.0
    total_cost = 0.0
    fills: list[Fill] = []

    for level in levels:
        if remaining <= 0:
            break
        fill = min(remaining, level.size)
        if fill <= 0:
            continue
        total_cost += fill * level.price
        filled += fill
        remaining -= fill
        worst_price = level.price
        fills.append(Fill(price=level.price, size=fill, cumulative_size=filled))

    if remaining <= _FILL_EPSILON:
        remaining = 0.0

    average_price = total_cost / filled if filled > 0 else 0.0

    if trade.side == Side.BUY:
        slippage = average_price - best_price
    else:
        slippage = best_price - average_price
    slippage_pct = slippage / best_price * 100 if best_price > 0 else 0.0

    return ExecutionResult(
        side=trade.side,
        outcome=trade.outcome,
        requested_size=trade.size,
        filled_size=filled,
        average_price=average_price,
        total_cost=total_cost,
        best_price=best_price,
        worst_price=worst_price,
        slippage_from_best=slippage,
        slippage_percent=slippage_pct,
        fills=tuple(fills),
        partial_fill=remaining > 0,
        remaining_size=remaining,
    )


def execution_price(book: OrderBook, side: Side, size: float) -> float:
    """Average execution price for *size*. Outcome does not affect pricing."""
    return price_execution(book, TradeInput(side, Outcome.YES, size)).average_price


def execution_price_at_sizes(
    book: OrderBook, side: Side, sizes: list[float],
) -> list[SizePrice]:
    """Price and slippage at each size, showing how price decays with size."""
    ladder = []
    for size in sizes:
        result = price_execution(book, TradeInput(side, Outcome.YES, size))
        ladder.append(SizePrice(
            size=size,
            price=result.average_price,
            slippage_percent=result.slippage_percent,
        ))
    return ladder


def max_size_within_slippage(
    book: OrderBook, side: Side, max_slippage_pct: float,
) -> SlippageBound:
    """
    Largest size tradeable before a level's price moves past
    best +/- best * max_slippage_pct / 100 (up for BUY, down for SELL).
    Levels exactly at the threshold are included.
    """
    levels = book.levels(side)
    if not levels:
        return SlippageBound(max_size=0.0, price_at_max=0.0)

    best_price = levels[0].price
    max_move = best_price * (max_slippage_pct / 100.0)
    threshold = best_price + max_move if side == Side.BUY else best_price - max_move

    cumulative = 0.0
    last_price = best_price
    for level in levels:
        if side == Side.BUY and level.price > threshold:
            break
        if side == Side.SELL and level.price < threshold:
            break
        cumulative += level.size
        last_price = level.price

    logger.debug(
        "%s %s within %.2f%% slippage: size=%.1f price=%.4f",
        book.token_id, side.value, max_slippage_pct, cumulative, last_price,
    )
    return SlippageBound(max_size=cumulative, price_at_max=last_price)
