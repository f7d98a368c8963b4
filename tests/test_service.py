"""
Unit tests for api/service.py -- orchestration over injected adapters.
"""

import httpx
import pytest
import respx

from analytics.discrepancy import DiscrepancyEngine
from analytics.models import (
    MarketBooks,
    NormalizedMarket,
    OrderBook,
    Outcome,
    Platform,
    PriceLevel,
    Side,
)
from api.service import AnalyticsService
from client.gamma import PolymarketSource
from client.platform import UpstreamError


def _make_book(token_id, bid, ask, depth=1000.0):
    return OrderBook(
        token_id=token_id,
        bids=(PriceLevel(bid, depth),),
        asks=(PriceLevel(ask, depth),),
    )


def _make_books(market_id, yes_ask=0.40, no_ask=0.62):
    return MarketBooks(
        market_id=market_id,
        question=f"Question {market_id}",
        yes=_make_book(f"{market_id}-yes", round(yes_ask - 0.02, 4), yes_ask),
        no=_make_book(f"{market_id}-no", round(no_ask - 0.02, 4), no_ask),
    )


def _make_market(question, platform, yes, external_id="m"):
    return NormalizedMarket(
        external_id=external_id,
        platform=platform,
        question=question,
        category="Politics",
        yes_probability=yes,
        no_probability=1 - yes,
    )


class _FakeBooks:
    def __init__(self, books):
        self.books = {b.market_id: b for b in books}
        self.requested: list[str] = []

    def get_market_books(self, market_id):
        self.requested.append(market_id)
        if market_id not in self.books:
            raise UpstreamError(f"unknown market {market_id}")
        return self.books[market_id]


class _FakeSource:
    def __init__(self, name, markets=None, error=None):
        self._name = name
        self._markets = markets or []
        self._error = error

    @property
    def platform_name(self):
        return self._name

    def fetch_markets(self, limit=50):
        if self._error:
            raise self._error
        return list(self._markets)


def _service(books=None, sources=()):
    return AnalyticsService(
        book_source=_FakeBooks(books or [_make_books("A"), _make_books("B", 0.45, 0.57)]),
        market_sources=sources,
    )


class TestSimulateTrade:
    def test_buy_yes(self):
        sim = _service().simulate_trade("A", Side.BUY, Outcome.YES, 100)
        assert sim.market_id == "A"
        assert sim.question == "Question A"
        assert sim.execution.average_price == pytest.approx(0.40)
        assert sim.payoff.pnl_if_yes == pytest.approx(60.0)
        assert sim.payoff.pnl_if_no == pytest.approx(-40.0)
        assert sim.slippage_bound.max_size == pytest.approx(1000)

    def test_uses_outcome_book(self):
        sim = _service().simulate_trade("A", Side.SELL, Outcome.NO, 10)
        assert sim.execution.best_price == pytest.approx(0.60)

    def test_rejects_non_positive_size(self):
        with pytest.raises(ValueError):
            _service().simulate_trade("A", Side.BUY, Outcome.YES, 0)

    def test_upstream_error_propagates(self):
        with pytest.raises(UpstreamError):
            _service().simulate_trade("missing", Side.BUY, Outcome.YES, 10)


class TestOrderBook:
    def test_analyses_both_books(self):
        report = _service().order_book("A")
        assert report.books.market_id == "A"
        assert report.yes_analysis.best_ask == pytest.approx(0.40)
        assert report.no_analysis.best_ask == pytest.approx(0.62)


class TestCompare:
    def test_fetches_both_and_compares(self):
        books = _FakeBooks([_make_books("A"), _make_books("B", 0.45, 0.57)])
        service = AnalyticsService(book_source=books)
        report = service.compare("A", "B", 100)
        assert sorted(books.requested) == ["A", "B"]
        assert report.comparison.market_a.market_id == "A"
        assert report.comparison.price_difference_yes == pytest.approx(-0.05)
        assert report.efficiency_a.sum == pytest.approx(1.02)
        assert report.efficiency_b.sum == pytest.approx(1.02)

    def test_rejects_non_positive_size(self):
        with pytest.raises(ValueError):
            _service().compare("A", "B", -1)


class TestDiscrepancies:
    def test_merges_sources(self):
        question = "Will the incumbent win the 2028 election?"
        sources = [
            _FakeSource("polymarket", [_make_market(question, Platform.POLYMARKET, 0.40)]),
            _FakeSource("kalshi", [_make_market(question, Platform.KALSHI, 0.50)]),
        ]
        service = AnalyticsService(book_source=_FakeBooks([]), market_sources=sources)
        results = service.discrepancies()
        assert len(results) == 1
        assert results[0].max_spread == pytest.approx(0.10)

    def test_failing_source_skipped(self):
        question = "Will the incumbent win the 2028 election?"
        sources = [
            _FakeSource("polymarket", [_make_market(question, Platform.POLYMARKET, 0.40)]),
            _FakeSource("kalshi", error=UpstreamError("down")),
        ]
        service = AnalyticsService(book_source=_FakeBooks([]), market_sources=sources)
        assert len(service.fetch_markets()) == 1
        assert service.discrepancies() == []

    @respx.mock
    def test_non_json_venue_skipped(self):
        respx.get("https://gamma.test/markets").mock(return_value=httpx.Response(200, text="<html>oops</html>"))
        question = "Will the incumbent win the 2028 election?"
        sources = [
            PolymarketSource("https://gamma.test"),
            _FakeSource("kalshi", [_make_market(question, Platform.KALSHI, 0.50)]),
        ]
        service = AnalyticsService(book_source=_FakeBooks([]), market_sources=sources)
        markets = service.fetch_markets()
        assert [m.platform for m in markets] == [Platform.KALSHI]

    def test_all_sources_failing_raises(self):
        sources = [_FakeSource("kalshi", error=UpstreamError("down"))]
        service = AnalyticsService(book_source=_FakeBooks([]), market_sources=sources)
        with pytest.raises(UpstreamError):
            service.discrepancies()

    def test_no_sources(self):
        assert _service().discrepancies() == []

    def test_uses_injected_engine(self):
        question = "Will the incumbent win the 2028 election?"
        sources = [
            _FakeSource("polymarket", [_make_market(question, Platform.POLYMARKET, 0.40)]),
            _FakeSource("kalshi", [_make_market(question, Platform.KALSHI, 0.42)]),
        ]
        service = AnalyticsService(
            book_source=_FakeBooks([]),
            market_sources=sources,
            discrepancy_engine=DiscrepancyEngine(min_spread=0.01),
        )
        assert len(service.discrepancies()) == 1


class TestMarketsOverview:
    def test_stats(self):
        sources = [
            _FakeSource("polymarket", [
                _make_market("Will the incumbent win the 2028 election?", Platform.POLYMARKET, 0.40, "p1"),
                _make_market("Will bitcoin close above 100k in December?", Platform.POLYMARKET, 0.30, "p2"),
            ]),
            _FakeSource("kalshi", [
                _make_market("Will the incumbent win the 2028 election?", Platform.KALSHI, 0.50, "k1"),
                _make_market("Will bitcoin close above 100k in December?", Platform.KALSHI, 0.36, "k2"),
            ]),
        ]
        overview = AnalyticsService(book_source=_FakeBooks([]), market_sources=sources).markets_overview()
        assert overview.total_markets == 4
        assert len(overview.markets) == 4
        assert overview.active_discrepancies == 2
        assert overview.avg_spread == pytest.approx(0.08)

    def test_no_discrepancies_zero_spread(self):
        sources = [_FakeSource("polymarket", [_make_market("Q one here?", Platform.POLYMARKET, 0.40)])]
        overview = AnalyticsService(book_source=_FakeBooks([]), market_sources=sources).markets_overview()
        assert overview.total_markets == 1
        assert overview.active_discrepancies == 0
        assert overview.avg_spread == 0.0
