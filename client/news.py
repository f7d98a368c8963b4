"""
News search client (newsapi.org compatible). Supplies likely-driver
annotations for discrepancies. Satisfies analytics.discrepancy.NewsSource.

Degrades to an empty list when no key is configured or the API fails;
news is an annotation, never a reason to fail a discrepancy scan.
"""

from __future__ import annotations

import logging
import re

import httpx

from analytics.models import NewsCorrelation

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
PAGE_SIZE = 10
MAX_KEYWORDS = 5
SENTIMENT_STEP = 0.2

STOP_WORDS = frozenset({
    "will", "the", "a", "an", "be", "by", "in", "on", "at", "to", "for",
    "of", "and", "or", "is", "are", "was", "were", "been", "being",
    "have", "has", "had", "do", "does", "did", "before", "after",
})

POSITIVE_WORDS = (
    "surge", "rise", "gain", "success", "win", "approve", "pass",
    "increase", "boost", "rally", "positive", "confident", "optimistic",
)

NEGATIVE_WORDS = (
    "fall", "drop", "decline", "fail", "lose", "reject", "block",
    "decrease", "crash", "plunge", "negative", "concern", "worry",
)

_PUNCT_RE = re.compile(r"[?.,!]")


def _words(text: str) -> list[str]:
    return _PUNCT_RE.sub("", text.lower()).split(" ")


def extract_keywords(question: str) -> str:
    """First five non-stop-words longer than two characters."""
    keywords = [w for w in _words(question) if w not in STOP_WORDS and len(w) > 2]
    return " ".join(keywords[:MAX_KEYWORDS])


def analyze_sentiment(text: str) -> float:
    """Keyword sentiment in [-1, 1]: +0.2 per positive word present, -0.2 per negative."""
    lower = text.lower()
    score = 0.0
    for word in POSITIVE_WORDS:
        if word in lower:
            score += SENTIMENT_STEP
    for word in NEGATIVE_WORDS:
        if word in lower:
            score -= SENTIMENT_STEP
    return max(-1.0, min(1.0, score))


def calculate_relevance(query: str, article_text: str) -> float:
    """Fraction of query words hit by article words, capped at 1."""
    query_words = set(_words(query))
    if not query_words:
        return 0.0
    matches = sum(1 for w in _words(article_text) if w in query_words)
    return min(1.0, matches / len(query_words))


class NewsClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = "https://newsapi.org/v2",
        timeout: float = DEFAULT_TIMEOUT,
        http: httpx.Client | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._http = http or httpx.Client(timeout=timeout)

    @property
    def enabled(self) -> bool:
        return bool(self._api_key)

    def search_news(self, query: str) -> list[NewsCorrelation]:
        """Articles related to a market question, newest first."""
        if not self.enabled:
            logger.debug("News API key not configured, skipping news for %r", query)
            return []

        params = {
            "q": extract_keywords(query),
            "sortBy": "publishedAt",
            "language": "en",
            "pageSize": PAGE_SIZE,
        }
        try:
            resp = self._http.get(
                f"{self._base_url}/everything",
                params=params,
                headers={"X-Api-Key": self._api_key},
            )
            resp.raise_for_status()
            articles = resp.json().get("articles") or []
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("News search failed for %r: %s", query, exc)
            return []

        results = []
        for article in articles:
            title = article.get("title") or ""
            text = f"{title} {article.get('description') or ''}"
            results.append(NewsCorrelation(
                title=title,
                source=(article.get("source") or {}).get("name", ""),
                url=article.get("url") or "",
                published_at=article.get("publishedAt") or "",
                sentiment=analyze_sentiment(text),
                relevance_score=calculate_relevance(query, text),
            ))
        return results

    def close(self) -> None:
        self._http.close()
