"""
Orchestration layer between venue adapters and the analytics core.

All collaborators are constructor arguments; nothing here holds global
state. Each call fetches fresh books, then hands them to pure analytics
functions.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Sequence

from analytics.comparator import (
    DEFAULT_THRESHOLDS,
    ComparisonThresholds,
    compare_markets,
    market_efficiency,
)
from analytics.depth import analyze_book
from analytics.discrepancy import DiscrepancyEngine
from analytics.execution import max_size_within_slippage, price_execution
from analytics.models import (
    DiscrepancyResult,
    ExecutionResult,
    MarketBooks,
    MarketComparisonResult,
    MarketEfficiency,
    NormalizedMarket,
    OrderBookAnalysis,
    Outcome,
    PayoffResult,
    Side,
    SlippageBound,
    TradeInput,
)
from analytics.payoff import compute_payoff
from analytics.validation import validate_trade_size
from client.platform import BookSource, MarketSource, UpstreamError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TradeSimulation:
    market_id: str
    question: str
    trade: TradeInput
    execution: ExecutionResult
    payoff: PayoffResult
    slippage_bound: SlippageBound


@dataclass(frozen=True)
class BookReport:
    books: MarketBooks
    yes_analysis: OrderBookAnalysis
    no_analysis: OrderBookAnalysis


@dataclass(frozen=True)
class ComparisonReport:
    comparison: MarketComparisonResult
    efficiency_a: MarketEfficiency
    efficiency_b: MarketEfficiency


@dataclass(frozen=True)
class MarketsOverview:
    """Dashboard feed: normalized markets, their discrepancies and headline stats."""
    markets: tuple[NormalizedMarket, ...]
    discrepancies: tuple[DiscrepancyResult, ...]
    total_markets: int
    active_discrepancies: int
    avg_spread: float


class AnalyticsService:
    """
    Entry point for the CLI and HTTP surface.

    book_source serves order books for simulate/compare/book;
    market_sources feed discrepancy detection.
    """

    def __init__(
        self,
        book_source: BookSource,
        market_sources: Sequence[MarketSource] = (),
        discrepancy_engine: DiscrepancyEngine | None = None,
        thresholds: ComparisonThresholds = DEFAULT_THRESHOLDS,
        slippage_tolerance_pct: float = 1.0,
        market_fetch_limit: int = 50,
        max_workers: int = 4,
    ) -> None:
        self._books = book_source
        self._sources = tuple(market_sources)
        self._engine = discrepancy_engine or DiscrepancyEngine()
        self._thresholds = thresholds
        self._slippage_tolerance_pct = slippage_tolerance_pct
        self._fetch_limit = market_fetch_limit
        self._max_workers = max(1, max_workers)

    def simulate_trade(self, market_id: str, side: Side, outcome: Outcome, size: float) -> TradeSimulation:
        """Price a taker order against the live book and project its payoff."""
        validate_trade_size(size)
        books = self._books.get_market_books(market_id)
        book = books.book(outcome)
        trade = TradeInput(side=side, outcome=outcome, size=size)

        execution = price_execution(book, trade)
        payoff = compute_payoff(execution)
        bound = max_size_within_slippage(book, side, self._slippage_tolerance_pct)

        logger.info(
            "Simulated %s %s %g on %s: filled %.2f @ %.4f (slip %.2f%%)",
            side.value, outcome.value, size, market_id,
            execution.filled_size, execution.average_price, execution.slippage_percent,
            extra={"market_id": market_id},
        )
        return TradeSimulation(
            market_id=market_id,
            question=books.question,
            trade=trade,
            execution=execution,
            payoff=payoff,
            slippage_bound=bound,
        )

    def order_book(self, market_id: str) -> BookReport:
        books = self._books.get_market_books(market_id)
        logger.debug(
            "Book for %s: %d/%d YES levels, %d/%d NO levels", market_id,
            len(books.yes.bids), len(books.yes.asks), len(books.no.bids), len(books.no.asks),
            extra={"market_id": market_id},
        )
        return BookReport(
            books=books,
            yes_analysis=analyze_book(books.yes),
            no_analysis=analyze_book(books.no),
        )

    def compare(self, market_id_a: str, market_id_b: str, trade_size: float = 100.0) -> ComparisonReport:
        """Fetch both markets concurrently, then compare them at *trade_size*."""
        validate_trade_size(trade_size)
        with ThreadPoolExecutor(max_workers=min(2, self._max_workers)) as executor:
            future_a = executor.submit(self._books.get_market_books, market_id_a)
            future_b = executor.submit(self._books.get_market_books, market_id_b)
            books_a = future_a.result()
            books_b = future_b.result()

        comparison = compare_markets(books_a, books_b, trade_size, self._thresholds)
        report = ComparisonReport(
            comparison=comparison,
            efficiency_a=market_efficiency(books_a, trade_size, self._thresholds),
            efficiency_b=market_efficiency(books_b, trade_size, self._thresholds),
        )
        if comparison.apparent_arbitrage:
            logger.info(
                "Apparent arbitrage %s vs %s: %s", market_id_a, market_id_b, comparison.arbitrage_details,
                extra={"market_id": f"{market_id_a},{market_id_b}"},
            )
        return report

    def fetch_markets(self) -> list[NormalizedMarket]:
        """
        Markets from every configured source, fetched in parallel.

        A failing source is logged and skipped; if all of them fail the
        last error is raised.
        """
        if not self._sources:
            return []

        markets: list[NormalizedMarket] = []
        errors: list[UpstreamError] = []
        with ThreadPoolExecutor(max_workers=min(len(self._sources), self._max_workers)) as executor:
            futures = {
                executor.submit(source.fetch_markets, self._fetch_limit): source.platform_name
                for source in self._sources
            }
            for future, name in futures.items():
                try:
                    batch = future.result()
                except UpstreamError as exc:
                    logger.warning("Market fetch from %s failed: %s", name, exc, extra={"venue": name})
                    errors.append(exc)
                    continue
                logger.debug("Fetched %d markets from %s", len(batch), name, extra={"venue": name})
                markets.extend(batch)

        if errors and len(errors) == len(self._sources):
            raise errors[-1]
        return markets

    def discrepancies(self) -> list[DiscrepancyResult]:
        return self._engine.detect(self.fetch_markets())

    def markets_overview(self) -> MarketsOverview:
        """One market fetch feeding both the listing and the discrepancy stats."""
        markets = self.fetch_markets()
        results = self._engine.detect(markets)
        avg_spread = sum(r.max_spread for r in results) / len(results) if results else 0.0
        logger.info("Overview: %d markets, %d discrepancies", len(markets), len(results))
        return MarketsOverview(
            markets=tuple(markets),
            discrepancies=tuple(results),
            total_markets=len(markets),
            active_discrepancies=len(results),
            avg_spread=avg_spread,
        )
