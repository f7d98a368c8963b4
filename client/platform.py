"""
Adapter protocols. Thin interfaces the orchestration layer depends on.

Any venue client that satisfies these protocols can be injected into the
service with zero changes to analytics code.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from analytics.models import MarketBooks, NormalizedMarket


class UpstreamError(Exception):
    """Raised when a venue or news API call fails or returns unusable data."""
    pass


@runtime_checkable
class MarketSource(Protocol):
    """A venue that lists markets as normalized quotes."""

    @property
    def platform_name(self) -> str:
        """Short identifier: 'polymarket', 'kalshi', etc."""
        ...

    def fetch_markets(self, limit: int = 50) -> list[NormalizedMarket]:
        """Fetch active markets, normalized to probabilities in [0, 1]."""
        ...


@runtime_checkable
class BookSource(Protocol):
    """A venue that serves full YES/NO order books for a market."""

    def get_market_books(self, market_id: str) -> MarketBooks:
        """Fetch both outcome books of one binary market, levels sorted best-first."""
        ...
