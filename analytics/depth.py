"""
Multi-level orderbook analysis. Describes spread, depth, imbalance and how
much size it takes to push the touch by a given percentage. Purely
descriptive: nothing here simulates an order.
"""

from __future__ import annotations

import logging

from analytics.models import OrderBook, OrderBookAnalysis, Side

logger = logging.getLogger(__name__)

# Percentage move used for the "size to move" exhaustion metrics
PRICE_MOVE_PCT = 1.0


def size_to_move_price(book: OrderBook, side: Side, percent: float = PRICE_MOVE_PCT) -> float:
    """
    Size that can be taken on *side* before reaching a level priced
    *percent* away from the touch.

    For BUY: walks asks, target = best_ask * (1 + percent/100).
    For SELL: walks bids, target = best_bid * (1 - percent/100).
    Returns the size accumulated before the first level that reaches the
    target; that level itself is not counted.
    """
    levels = book.levels(side)
    if not levels:
        return 0.0

    start = levels[0].price
    if side == Side.BUY:
        target = start * (1.0 + percent / 100.0)
    else:
        target = start * (1.0 - percent / 100.0)

    size_needed = 0.0
    for level in levels:
        if side == Side.BUY and level.price >= target:
            break
        if side == Side.SELL and level.price <= target:
            break
        size_needed += level.size
    return size_needed


def analyze_book(book: OrderBook) -> OrderBookAnalysis:
    """
    Spread, depth and imbalance snapshot of one book.

    An empty bid side reads as best_bid = 0 and an empty ask side as
    best_ask = 1, the price floor and ceiling of a binary contract.
    """
    best_bid = book.bids[0].price if book.bids else 0.0
    best_ask = book.asks[0].price if book.asks else 1.0
    spread = best_ask - best_bid
    midpoint = (best_bid + best_ask) / 2.0

    bid_depth = sum(level.size for level in book.bids)
    ask_depth = sum(level.size for level in book.asks)
    total_depth = bid_depth + ask_depth
    imbalance = (bid_depth - ask_depth) / total_depth if total_depth > 0 else 0.0

    level_count = len(book.bids) + len(book.asks)

    return OrderBookAnalysis(
        best_bid=best_bid,
        best_ask=best_ask,
        spread=spread,
        spread_percent=spread / midpoint * 100 if midpoint > 0 else 0.0,
        midpoint=midpoint,
        bid_depth_total=bid_depth,
        ask_depth_total=ask_depth,
        depth_imbalance=imbalance,
        size_to_move_bid_1pct=size_to_move_price(book, Side.SELL),
        size_to_move_ask_1pct=size_to_move_price(book, Side.BUY),
        level_count=level_count,
        average_level_size=total_depth / max(level_count, 1),
    )


def depth_profile(book: OrderBook, side: Side) -> list[tuple[float, float]]:
    """
    Cumulative (price, cumulative_size) pairs for the given side.
    For BUY: ascending asks. For SELL: descending bids.
    """
    result: list[tuple[float, float]] = []
    cumulative = 0.0

    for level in book.levels(side):
        cumulative += level.size
        result.append((level.price, cumulative))

    return result
