"""
Kalshi REST API v2 client. Public market discovery and orderbook fetching.

Kalshi API docs: https://trading-api.readme.io/reference
All prices are in cents (1-99). We convert to probabilities (0.01-0.99) to
match our NormalizedMarket and OrderBook models.
"""

from __future__ import annotations

import logging
import random
import time

import httpx

from analytics.models import MarketBooks, NormalizedMarket, OrderBook, Platform, PriceLevel
from analytics.validation import validate_price, validate_size
from client.platform import UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
_429_MAX_RETRIES = 3
_429_BACKOFF_SEC = 5.0
_429_JITTER_FRAC = 0.15

_CATEGORY_MAP = {
    "politics": "Politics",
    "financials": "Economics",
    "economics": "Economics",
    "climate": "Science",
    "science": "Science",
    "tech": "Tech",
    "entertainment": "Entertainment",
    "sports": "Sports",
}


def cents_to_probability(cents: float, context: str = "Kalshi price") -> float:
    """Convert Kalshi cents (0-100) to a probability in [0, 1]. Fail-fast on out-of-range."""
    return validate_price(float(cents) / 100.0, context=context)


def map_category(raw: str | None) -> str:
    if not raw:
        return "Other"
    return _CATEGORY_MAP.get(raw.lower(), "Other")


def _mid_probability(bid, ask, context: str) -> float | None:
    """Midpoint of a cents bid/ask pair. One-sided quotes use the side present."""
    quotes = [float(q) for q in (bid, ask) if q]
    if not quotes:
        return None
    return cents_to_probability(sum(quotes) / len(quotes), context)


def normalize_market(m: dict) -> NormalizedMarket:
    """Convert one raw Kalshi market dict into a NormalizedMarket."""
    ticker = m.get("ticker", "")
    yes = _mid_probability(m.get("yes_bid"), m.get("yes_ask"), f"Kalshi {ticker} yes")
    if yes is None:
        last = m.get("last_price")
        yes = cents_to_probability(last, f"Kalshi {ticker} last") if last else 0.5
    no = _mid_probability(m.get("no_bid"), m.get("no_ask"), f"Kalshi {ticker} no")
    if no is None:
        no = 1.0 - yes

    volume = m.get("volume")
    open_interest = m.get("open_interest")
    return NormalizedMarket(
        external_id=ticker,
        platform=Platform.KALSHI,
        question=m.get("title", ""),
        category=map_category(m.get("category")),
        yes_probability=yes,
        no_probability=no,
        volume=validate_size(volume, "Kalshi volume") if volume is not None else None,
        liquidity=validate_size(open_interest, "Kalshi open interest") if open_interest is not None else None,
        end_date=m.get("close_time") or m.get("expiration_time") or "",
        description=m.get("subtitle") or "",
    )


def _book_side(raw: list, label: str, invert: bool) -> list[PriceLevel]:
    """Kalshi [price_cents, size] pairs -> PriceLevels. invert maps a bid on the
    opposite outcome to an ask at (100 - P)."""
    levels = []
    for price_cents, size in raw or []:
        if size <= 0:
            continue
        cents = 100 - price_cents if invert else price_cents
        levels.append(PriceLevel(
            price=cents_to_probability(cents, f"Kalshi {label} price"),
            size=validate_size(size, f"Kalshi {label} size"),
        ))
    return levels


class KalshiSource:
    """
    Read-only Kalshi REST client.

    Lists open markets as NormalizedMarket (satisfies MarketSource) and
    builds YES/NO books for a ticker (satisfies BookSource).
    """

    @property
    def platform_name(self) -> str:
        return Platform.KALSHI.value

    def __init__(
        self,
        host: str = "https://api.elections.kalshi.com/trade-api/v2",
        timeout: float = DEFAULT_TIMEOUT,
        http: httpx.Client | None = None,
    ) -> None:
        self._host = host.rstrip("/")
        self._http = http or httpx.Client(timeout=timeout)
        self._rate_limited_until: dict[str, float] = {}

    def _request(self, method: str, path: str, **kwargs) -> dict:
        """Make a request to Kalshi API. Retries on 429, wraps failures in UpstreamError."""
        url = f"{self._host}{path}"
        cooldown_key = f"{method}:{path}"

        now = time.time()
        blocked_until = self._rate_limited_until.get(cooldown_key, 0.0)
        if blocked_until > now:
            wait = blocked_until - now
            logger.debug("Kalshi cooldown active on %s %s, sleeping %.1fs", method, path, wait)
            time.sleep(wait)

        try:
            for attempt in range(_429_MAX_RETRIES + 1):
                resp = self._http.request(method, url, headers={"Accept": "application/json"}, **kwargs)
                if resp.status_code != 429:
                    self._rate_limited_until.pop(cooldown_key, None)
                    resp.raise_for_status()
                    return resp.json()

                if attempt == _429_MAX_RETRIES:
                    break
                retry_after = 0.0
                raw_retry_after = resp.headers.get("Retry-After")
                if raw_retry_after:
                    try:
                        retry_after = max(0.0, float(raw_retry_after))
                    except ValueError:
                        retry_after = 0.0
                wait = max(retry_after, _429_BACKOFF_SEC * (2 ** attempt))
                wait *= 1.0 + random.uniform(-_429_JITTER_FRAC, _429_JITTER_FRAC)
                wait = max(0.5, wait)
                self._rate_limited_until[cooldown_key] = time.time() + wait
                logger.warning(
                    "Kalshi 429 rate limited on %s %s (attempt %d/%d, waiting %.1fs)",
                    method, path, attempt + 1, _429_MAX_RETRIES + 1, wait,
                )
                time.sleep(wait)
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Kalshi {method} {path} failed: {exc}") from exc
        except ValueError as exc:
            raise UpstreamError(f"Kalshi {method} {path} returned invalid JSON: {exc}") from exc
        raise UpstreamError(f"Kalshi {method} {path} rate limited after {_429_MAX_RETRIES + 1} attempts")

    # -- Market Discovery --

    def fetch_markets(self, limit: int = 50) -> list[NormalizedMarket]:
        """Fetch open markets. Markets with unusable quotes are skipped."""
        data = self._request("GET", "/markets", params={"limit": limit, "status": "open"})
        markets = []
        for m in data.get("markets", []):
            try:
                markets.append(normalize_market(m))
            except ValueError as exc:
                logger.debug("Skipping Kalshi market %s: %s", m.get("ticker", "?"), exc)
        logger.debug("Kalshi returned %d markets", len(markets))
        return markets

    # -- Orderbook --

    def get_market_books(self, market_id: str) -> MarketBooks:
        """
        Build YES and NO books for a ticker.

        Kalshi publishes bids only: {"yes": [[cents, size]], "no": [[cents, size]]}.
        A NO bid at P is a YES ask at (100 - P), and vice versa.
        """
        data = self._request("GET", f"/markets/{market_id}/orderbook")
        ob = data.get("orderbook", data)
        yes_raw = ob.get("yes") or []
        no_raw = ob.get("no") or []

        def _book(bids_raw: list, asks_raw: list, label: str) -> OrderBook:
            bids = sorted(_book_side(bids_raw, f"{label} bid", invert=False), key=lambda lvl: lvl.price, reverse=True)
            asks = sorted(_book_side(asks_raw, f"{label} ask", invert=True), key=lambda lvl: lvl.price)
            return OrderBook(token_id=f"{market_id}:{label}", bids=tuple(bids), asks=tuple(asks), market_id=market_id)

        return MarketBooks(
            market_id=market_id,
            question=self._market_title(market_id),
            yes=_book(yes_raw, no_raw, "YES"),
            no=_book(no_raw, yes_raw, "NO"),
        )

    def _market_title(self, ticker: str) -> str:
        """Market title for display. The book is usable without it."""
        try:
            data = self._request("GET", f"/markets/{ticker}")
        except UpstreamError as exc:
            logger.warning("Kalshi title lookup failed for %s: %s", ticker, exc)
            return ""
        return (data.get("market", data).get("title") or "").strip()

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._http.close()
