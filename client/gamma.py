"""
Gamma API client for market discovery. Pure REST, no SDK dependency.
"""

from __future__ import annotations

import json
import logging

import httpx

from analytics.models import NormalizedMarket, Platform
from analytics.validation import validate_price, validate_size
from client.platform import UpstreamError

logger = logging.getLogger(__name__)

_TIMEOUT = 30.0

_CATEGORY_MAP = {
    "politics": "Politics",
    "crypto": "Crypto",
    "sports": "Sports",
    "science": "Science",
    "entertainment": "Entertainment",
    "business": "Business",
    "economics": "Economics",
    "tech": "Tech",
}


def _get(base_url: str, path: str, params: dict | None = None, timeout: float = _TIMEOUT) -> dict | list:
    """Make a GET request to the Gamma API. Raises UpstreamError on failure."""
    url = f"{base_url}{path}"
    try:
        resp = httpx.get(url, params=params, timeout=timeout)
        resp.raise_for_status()
        return resp.json()
    except httpx.HTTPError as exc:
        raise UpstreamError(f"Gamma request {path} failed: {exc}") from exc
    except ValueError as exc:
        raise UpstreamError(f"Gamma request {path} returned invalid JSON: {exc}") from exc


def map_category(raw: str | None) -> str:
    """Map a Gamma category label onto our category names. Unknown -> 'Other'."""
    if not raw:
        return "Other"
    lowered = raw.lower()
    for key, name in _CATEGORY_MAP.items():
        if key in lowered:
            return name
    return "Other"


def _parse_outcome_prices(raw) -> tuple[float, float]:
    """outcomePrices is a JSON-encoded list of strings. Missing -> 0.5 each."""
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            raw = None
    if not raw or len(raw) < 2:
        return 0.5, 0.5
    yes = validate_price(raw[0] or 0.5, "gamma yes price")
    no = validate_price(raw[1] or 0.5, "gamma no price")
    return yes, no


def _optional_size(raw, context: str) -> float | None:
    if raw is None or raw == "":
        return None
    return validate_size(raw, context)


def normalize_market(m: dict) -> NormalizedMarket:
    """Convert one raw Gamma market dict into a NormalizedMarket."""
    yes, no = _parse_outcome_prices(m.get("outcomePrices"))
    end_date = str(
        m.get("endDateIso")
        or m.get("end_date_iso")
        or m.get("endDate")
        or m.get("end_date")
        or ""
    )
    return NormalizedMarket(
        external_id=str(m.get("conditionId", m.get("condition_id", m.get("id", "")))),
        platform=Platform.POLYMARKET,
        question=str(m.get("question", "")),
        category=map_category(m.get("category")),
        yes_probability=yes,
        no_probability=no,
        volume=_optional_size(m.get("volumeNum", m.get("volume")), "gamma volume"),
        liquidity=_optional_size(m.get("liquidityNum", m.get("liquidity")), "gamma liquidity"),
        end_date=end_date,
        description=str(m.get("description") or ""),
    )


def get_markets(gamma_host: str, limit: int = 50, offset: int = 0, timeout: float = _TIMEOUT) -> list[NormalizedMarket]:
    """Fetch active, open markets from Gamma and normalize them."""
    params = {"active": "true", "closed": "false", "limit": limit, "offset": offset}
    raw_markets = _get(gamma_host, "/markets", params, timeout=timeout)
    markets = []
    for m in raw_markets:
        try:
            markets.append(normalize_market(m))
        except ValueError as exc:
            logger.debug("Skipping Gamma market %s: %s", m.get("conditionId", "?"), exc)
    return markets


class PolymarketSource:
    """Polymarket market listing via Gamma. Satisfies MarketSource."""

    @property
    def platform_name(self) -> str:
        return Platform.POLYMARKET.value

    def __init__(self, gamma_host: str, timeout: float = _TIMEOUT) -> None:
        self._host = gamma_host.rstrip("/")
        self._timeout = timeout

    def fetch_markets(self, limit: int = 50) -> list[NormalizedMarket]:
        markets = get_markets(self._host, limit=limit, timeout=self._timeout)
        logger.debug("Gamma returned %d markets", len(markets))
        return markets
