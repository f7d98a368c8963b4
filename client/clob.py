"""
CLOB REST client wrapper. Thin layer converting SDK order books to our
domain models. Read-only: public book and market endpoints only.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor

from py_clob_client.client import ClobClient
from py_clob_client.exceptions import PolyApiException

from analytics.models import MarketBooks, OrderBook, PriceLevel
from analytics.validation import validate_price, validate_size
from client.platform import UpstreamError

logger = logging.getLogger(__name__)

# Retry config for flaky CLOB API (HTTP/2 connection resets, SSL errors)
_MAX_RETRIES = 3
_RETRY_BACKOFF_SEC = 1.0


def build_public_client(host: str, chain_id: int = 137) -> ClobClient:
    """Level-0 ClobClient: no key, no API creds, enough for books and markets."""
    return ClobClient(host=host, chain_id=chain_id)


def _sort_book_levels(
    raw_bids: list, raw_asks: list, token_id: str,
) -> tuple[tuple[PriceLevel, ...], tuple[PriceLevel, ...]]:
    """
    Convert raw SDK levels to sorted PriceLevel tuples, dropping empty levels.
    Asks: ascending by price (best/lowest first at index 0).
    Bids: descending by price (best/highest first at index 0).
    The SDK does NOT guarantee sort order -- we must enforce it.
    """
    def _levels(raw: list, label: str) -> list[PriceLevel]:
        levels = []
        for lvl in raw or []:
            price = validate_price(lvl.price, f"{token_id} {label} price")
            size = validate_size(lvl.size, f"{token_id} {label} size")
            if size > 0:
                levels.append(PriceLevel(price=price, size=size))
        return levels

    bids = tuple(sorted(_levels(raw_bids, "bid"), key=lambda lvl: lvl.price, reverse=True))
    asks = tuple(sorted(_levels(raw_asks, "ask"), key=lambda lvl: lvl.price))
    return bids, asks


def _parse_timestamp(raw: object) -> float:
    """CLOB timestamps are epoch milliseconds as strings."""
    try:
        return float(raw) / 1000.0
    except (TypeError, ValueError):
        return time.time()


def _retry_api_call(fn, *args, max_retries: int = _MAX_RETRIES, **kwargs):
    """
    Retry a py_clob_client call with exponential backoff on connection errors.
    HTTP errors are not retried. Final failures raise UpstreamError.
    """
    for attempt in range(max_retries):
        try:
            return fn(*args, **kwargs)
        except PolyApiException as exc:
            # Only retry on connection-level errors (status_code=None), not 4xx/5xx
            is_connection_error = getattr(exc, "status_code", None) is None
            if not is_connection_error or attempt == max_retries - 1:
                raise UpstreamError(f"CLOB request failed: {exc}") from exc
            wait = _RETRY_BACKOFF_SEC * (2 ** attempt)
            logger.debug("CLOB API retry %d/%d after %.1fs: %s", attempt + 1, max_retries, wait, exc)
            time.sleep(wait)
    raise UpstreamError("CLOB request failed: retries exhausted")


def get_orderbook(client: ClobClient, token_id: str) -> OrderBook:
    """Fetch full orderbook for a token and convert to our OrderBook model."""
    raw = _retry_api_call(client.get_order_book, token_id)
    bids, asks = _sort_book_levels(raw.bids, raw.asks, token_id)
    return OrderBook(
        token_id=token_id,
        bids=bids,
        asks=asks,
        market_id=getattr(raw, "market", "") or "",
        timestamp=_parse_timestamp(getattr(raw, "timestamp", None)),
    )


def _outcome_tokens(market: dict, condition_id: str) -> tuple[str, str]:
    """(yes_token_id, no_token_id) from a CLOB market payload."""
    yes_id = no_id = ""
    for token in market.get("tokens") or []:
        outcome = str(token.get("outcome", "")).lower()
        if outcome == "yes":
            yes_id = str(token.get("token_id", ""))
        elif outcome == "no":
            no_id = str(token.get("token_id", ""))
    if not yes_id or not no_id:
        raise ValueError(f"Market {condition_id} does not have YES/NO outcomes")
    return yes_id, no_id


class ClobBookSource:
    """
    Builds MarketBooks from the Polymarket CLOB. Satisfies BookSource.

    The YES and NO books are fetched concurrently and joined before the
    MarketBooks is returned.
    """

    def __init__(self, client: ClobClient, max_workers: int = 2) -> None:
        self._client = client
        self._max_workers = max(1, max_workers)

    def get_market_books(self, market_id: str) -> MarketBooks:
        market = _retry_api_call(self._client.get_market, market_id)
        if not isinstance(market, dict):
            raise UpstreamError(f"Unexpected market payload for {market_id}")
        yes_id, no_id = _outcome_tokens(market, market_id)

        with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
            yes_future = executor.submit(get_orderbook, self._client, yes_id)
            no_future = executor.submit(get_orderbook, self._client, no_id)
            yes_book = yes_future.result()
            no_book = no_future.result()

        logger.debug(
            "Fetched books for %s: YES %d/%d levels, NO %d/%d levels",
            market_id, len(yes_book.bids), len(yes_book.asks),
            len(no_book.bids), len(no_book.asks),
        )
        return MarketBooks(
            market_id=market_id,
            question=str(market.get("question", "")),
            yes=yes_book,
            no=no_book,
        )
