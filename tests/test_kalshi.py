"""
Unit tests for client/kalshi.py -- Kalshi public market and orderbook reads.
"""

import httpx
import pytest
import respx

import client.kalshi as kalshi
from analytics.models import Platform
from client.kalshi import KalshiSource, cents_to_probability, map_category, normalize_market
from client.platform import BookSource, MarketSource, UpstreamError

HOST = "https://test.kalshi.com/trade-api/v2"


def _raw_market(**overrides):
    m = {
        "ticker": "FED-25MAR-CUT",
        "event_ticker": "FED-25MAR",
        "title": "Will the Fed cut rates in March?",
        "subtitle": "Federal funds target",
        "category": "Economics",
        "yes_bid": 40,
        "yes_ask": 44,
        "no_bid": 56,
        "no_ask": 60,
        "volume": 12000,
        "open_interest": 8000,
        "close_time": "2025-03-19T18:00:00Z",
    }
    m.update(overrides)
    return m


class TestConversion:
    def test_cents_to_probability(self):
        assert cents_to_probability(42) == pytest.approx(0.42)

    def test_out_of_range(self):
        with pytest.raises(ValueError):
            cents_to_probability(150)

    def test_category_map(self):
        assert map_category("Financials") == "Economics"
        assert map_category("climate") == "Science"
        assert map_category("politics") == "Politics"
        assert map_category("weather") == "Other"
        assert map_category(None) == "Other"


class TestNormalizeMarket:
    def test_midpoints(self):
        market = normalize_market(_raw_market())
        assert market.external_id == "FED-25MAR-CUT"
        assert market.platform == Platform.KALSHI
        assert market.yes_probability == pytest.approx(0.42)
        assert market.no_probability == pytest.approx(0.58)
        assert market.volume == 12000
        assert market.liquidity == 8000
        assert market.description == "Federal funds target"
        assert market.end_date == "2025-03-19T18:00:00Z"

    def test_one_sided_quote(self):
        market = normalize_market(_raw_market(yes_bid=0, yes_ask=30, no_bid=None, no_ask=None))
        assert market.yes_probability == pytest.approx(0.30)
        assert market.no_probability == pytest.approx(0.70)

    def test_falls_back_to_last_price(self):
        market = normalize_market(_raw_market(yes_bid=0, yes_ask=0, last_price=65))
        assert market.yes_probability == pytest.approx(0.65)


class TestKalshiSource:
    def test_protocols(self):
        source = KalshiSource(host=HOST)
        assert isinstance(source, MarketSource)
        assert isinstance(source, BookSource)
        assert source.platform_name == "kalshi"

    @respx.mock
    def test_fetch_markets(self):
        route = respx.get(f"{HOST}/markets").mock(
            return_value=httpx.Response(200, json={"markets": [_raw_market()], "cursor": ""})
        )
        markets = KalshiSource(host=HOST).fetch_markets(limit=20)
        assert len(markets) == 1
        params = route.calls[0].request.url.params
        assert params["status"] == "open"
        assert params["limit"] == "20"

    @respx.mock
    def test_non_json_body_wrapped(self):
        respx.get(f"{HOST}/markets").mock(return_value=httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(UpstreamError, match="invalid JSON"):
            KalshiSource(host=HOST).fetch_markets()

    @respx.mock
    def test_http_error_wrapped(self):
        respx.get(f"{HOST}/markets").mock(return_value=httpx.Response(503))
        with pytest.raises(UpstreamError):
            KalshiSource(host=HOST).fetch_markets()

    @respx.mock
    def test_retries_on_429(self, monkeypatch):
        monkeypatch.setattr(kalshi.time, "sleep", lambda _s: None)
        respx.get(f"{HOST}/markets").mock(side_effect=[
            httpx.Response(429, headers={"Retry-After": "1"}),
            httpx.Response(200, json={"markets": [_raw_market()]}),
        ])
        assert len(KalshiSource(host=HOST).fetch_markets()) == 1

    @respx.mock
    def test_persistent_429_raises(self, monkeypatch):
        monkeypatch.setattr(kalshi.time, "sleep", lambda _s: None)
        respx.get(f"{HOST}/markets").mock(return_value=httpx.Response(429))
        with pytest.raises(UpstreamError, match="rate limited"):
            KalshiSource(host=HOST).fetch_markets()


class TestMarketBooks:
    @respx.mock
    def test_bids_only_book_inverted(self):
        respx.get(f"{HOST}/markets/FED-25MAR-CUT").mock(
            return_value=httpx.Response(200, json={"market": _raw_market()})
        )
        respx.get(f"{HOST}/markets/FED-25MAR-CUT/orderbook").mock(
            return_value=httpx.Response(200, json={
                "orderbook": {
                    "yes": [[38, 100], [40, 50]],
                    "no": [[55, 200], [0, 0]],
                },
            })
        )
        books = KalshiSource(host=HOST).get_market_books("FED-25MAR-CUT")
        # YES bids sorted descending
        assert [lvl.price for lvl in books.yes.bids] == pytest.approx([0.40, 0.38])
        # NO bid at 55 -> YES ask at 45
        assert books.yes.best_ask.price == pytest.approx(0.45)
        assert books.yes.best_ask.size == 200
        # YES bid at 40 -> NO ask at 60
        assert books.no.best_bid.price == pytest.approx(0.55)
        assert books.no.best_ask.price == pytest.approx(0.60)
        assert books.market_id == "FED-25MAR-CUT"
        assert books.question == "Will the Fed cut rates in March?"

    @respx.mock
    def test_title_lookup_failure_keeps_books(self):
        respx.get(f"{HOST}/markets/FED-25MAR-CUT").mock(return_value=httpx.Response(404))
        respx.get(f"{HOST}/markets/FED-25MAR-CUT/orderbook").mock(
            return_value=httpx.Response(200, json={"orderbook": {"yes": [[40, 50]], "no": [[55, 200]]}})
        )
        books = KalshiSource(host=HOST).get_market_books("FED-25MAR-CUT")
        assert books.question == ""
        assert books.yes.best_bid.price == pytest.approx(0.40)
