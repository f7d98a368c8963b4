"""
Number checks for venue data at ingestion boundaries and for user-supplied
trade sizes.

The analytics core assumes well-formed inputs. Adapters pass raw upstream
values (strings, ints, floats) straight through these; anything that is not
a finite number in range raises ValueError, which adapters treat as "skip
this market" and the service surfaces as invalid input.
"""

from __future__ import annotations

import math


def _finite(value: object, context: str) -> float:
    """Coerce *value* to float, rejecting non-numeric, NaN and Inf."""
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ValueError(f"Invalid {context}: not a number ({value!r})") from None
    if math.isnan(number):
        raise ValueError(f"Invalid {context}: NaN")
    if math.isinf(number):
        raise ValueError(f"Invalid {context}: Inf")
    if number < 0.0:
        raise ValueError(f"Invalid {context}: negative value {number}")
    return number


def validate_price(p: object, context: str = "price") -> float:
    """Probability-scale price in [0.0, 1.0]."""
    price = _finite(p, context)
    if price > 1.0:
        raise ValueError(f"Invalid {context}: {price} out of range [0.0, 1.0]")
    return price


def validate_size(s: object, context: str = "size") -> float:
    """Non-negative quantity. Zero is allowed (empty level, no volume)."""
    return _finite(s, context)


def validate_trade_size(s: object, context: str = "trade size") -> float:
    size = _finite(s, context)
    if size == 0.0:
        raise ValueError(f"Invalid {context}: must be positive")
    return size
