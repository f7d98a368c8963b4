"""
Resolution payoffs for binary contracts, plus Kelly sizing.

A contract pays $1 if its outcome resolves true and $0 otherwise. Buying at
price p risks p to win 1 - p; selling at p collects p and owes 1 if the
outcome resolves true.
"""

from __future__ import annotations

import logging

from analytics.models import (
    CombinedPayoff,
    ExecutionResult,
    KellyResult,
    Outcome,
    PayoffResult,
    Side,
)

logger = logging.getLogger(__name__)

# Per-contract P&L at entry price p, as (slope, intercept) so pnl = slope*p + intercept.
#   (pnl if YES resolves, pnl if NO resolves)
RESOLUTION_PNL: dict[tuple[Side, Outcome], tuple[tuple[float, float], tuple[float, float]]] = {
    (Side.BUY, Outcome.YES): ((-1.0, 1.0), (-1.0, 0.0)),   # (1-p),  -p
    (Side.BUY, Outcome.NO): ((-1.0, 0.0), (-1.0, 1.0)),    # -p,     (1-p)
    (Side.SELL, Outcome.YES): ((1.0, -1.0), (1.0, 0.0)),   # (p-1),  p
    (Side.SELL, Outcome.NO): ((1.0, 0.0), (1.0, -1.0)),    # p,      (p-1)
}

# Whether the position profits when YES resolves.
WINS_ON_YES: dict[tuple[Side, Outcome], bool] = {
    (Side.BUY, Outcome.YES): True,
    (Side.BUY, Outcome.NO): False,
    (Side.SELL, Outcome.YES): False,
    (Side.SELL, Outcome.NO): True,
}


def resolution_pnl(
    side: Side, outcome: Outcome, contracts: float, price: float,
) -> tuple[float, float]:
    """(pnl_if_yes, pnl_if_no) for *contracts* entered at *price*."""
    (yes_slope, yes_icpt), (no_slope, no_icpt) = RESOLUTION_PNL[(side, outcome)]
    return (
        (yes_slope * price + yes_icpt) * contracts,
        (no_slope * price + no_icpt) * contracts,
    )


def _zero_payoff(execution: ExecutionResult) -> PayoffResult:
    return PayoffResult(
        side=execution.side,
        outcome=execution.outcome,
        contracts=0.0,
        entry_price=0.0,
        total_cost=0.0,
        pnl_if_yes=0.0,
        return_if_yes=0.0,
        pnl_if_no=0.0,
        return_if_no=0.0,
        max_gain=0.0,
        max_loss=0.0,
        capital_at_risk=0.0,
        implied_probability=0.0,
    )


def compute_payoff(execution: ExecutionResult) -> PayoffResult:
    """P&L and returns under both resolutions for a simulated fill."""
    if execution.filled_size == 0:
        return _zero_payoff(execution)

    pnl_yes, pnl_no = resolution_pnl(
        execution.side,
        execution.outcome,
        execution.filled_size,
        execution.average_price,
    )

    capital = abs(execution.total_cost)
    return_yes = pnl_yes / capital * 100 if capital > 0 else 0.0
    return_no = pnl_no / capital * 100 if capital > 0 else 0.0
    max_loss = min(pnl_yes, pnl_no)

    return PayoffResult(
        side=execution.side,
        outcome=execution.outcome,
        contracts=execution.filled_size,
        entry_price=execution.average_price,
        total_cost=execution.total_cost,
        pnl_if_yes=pnl_yes,
        return_if_yes=return_yes,
        pnl_if_no=pnl_no,
        return_if_no=return_no,
        max_gain=max(pnl_yes, pnl_no),
        max_loss=max_loss,
        capital_at_risk=abs(max_loss),
        implied_probability=execution.average_price,
    )


def combined_payoff(executions: list[ExecutionResult]) -> CombinedPayoff:
    """Sum cost and scenario P&L across the legs of a multi-leg position."""
    total_cost = 0.0
    pnl_yes = 0.0
    pnl_no = 0.0
    for execution in executions:
        payoff = compute_payoff(execution)
        total_cost += payoff.total_cost
        pnl_yes += payoff.pnl_if_yes
        pnl_no += payoff.pnl_if_no

    return CombinedPayoff(
        total_cost=total_cost,
        pnl_if_yes=pnl_yes,
        pnl_if_no=pnl_no,
        max_gain=max(pnl_yes, pnl_no),
        max_loss=min(pnl_yes, pnl_no),
    )


def breakeven_probability(side: Side, outcome: Outcome, entry_price: float) -> float:
    """Probability at which expected value is zero. Equals the entry price for binary contracts."""
    return entry_price


def kelly_fraction(
    true_prob: float, market_price: float, side: Side, outcome: Outcome,
) -> KellyResult:
    """
    Kelly criterion: f* = (b*p - q) / b
    where b = payoff_if_win / loss_if_lose, p = win probability, q = 1 - p.

    *true_prob* is the caller's estimate that YES resolves. Win/lose payoffs
    follow the resolution table: buyers win 1 - price and lose price,
    sellers win price and lose 1 - price.

    (b*p - q) / b reduces to edge / payoff_if_win, which is evaluated
    directly so a zero edge gives exactly zero.
    """
    if WINS_ON_YES[(side, outcome)]:
        win_prob, lose_prob = true_prob, 1.0 - true_prob
    else:
        win_prob, lose_prob = 1.0 - true_prob, true_prob

    if side == Side.BUY:
        payoff_if_win = 1.0 - market_price
        loss_if_lose = market_price
    else:
        payoff_if_win = market_price
        loss_if_lose = 1.0 - market_price

    edge = win_prob * payoff_if_win - lose_prob * loss_if_lose

    if payoff_if_win <= 0:
        fraction = 0.0
    elif loss_if_lose <= 0:
        # Nothing at risk: the limit of (b*p - q) / b as b grows is p.
        fraction = win_prob
    else:
        fraction = edge / payoff_if_win

    return KellyResult(fraction=max(0.0, fraction), edge=edge)
