"""
Cross-venue discrepancy detection. Groups normalized markets that ask the
same question on different venues, keeps groups whose quoted YES
probabilities disagree by at least a minimum spread, and scores how much to
trust each disagreement.

Works on quoted probabilities, before any execution simulation. The
confidence model is additive and its tiers are heuristics, not fitted to data.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from analytics.matching import QuestionMatcher, SlugMatcher, generate_slug
from analytics.models import (
    ArbitrageSignal,
    DiscrepancyResult,
    NewsCorrelation,
    NormalizedMarket,
    PlatformQuote,
)

logger = logging.getLogger(__name__)

MIN_SPREAD_THRESHOLD = 0.03   # 3% minimum spread to report
HIGH_SPREAD_THRESHOLD = 0.05  # 5% spread earns the high base confidence
MAX_LIKELY_DRIVERS = 3


@runtime_checkable
class NewsSource(Protocol):
    """Free-text news search used to annotate discrepancies."""

    def search_news(self, query: str) -> list[NewsCorrelation]:
        ...


@dataclass(frozen=True)
class ConfidenceModel:
    """Additive confidence tiers, capped at 1.0."""
    high_spread: float = HIGH_SPREAD_THRESHOLD
    high_spread_score: float = 0.4
    low_spread_score: float = 0.2
    liquidity_reported_score: float = 0.2
    deep_liquidity: float = 100_000.0
    deep_liquidity_score: float = 0.2
    moderate_liquidity: float = 10_000.0
    moderate_liquidity_score: float = 0.1
    heavy_volume: float = 1_000_000.0
    heavy_volume_score: float = 0.2
    moderate_volume: float = 100_000.0
    moderate_volume_score: float = 0.1

    def score(self, markets: list[NormalizedMarket], spread: float) -> float:
        confidence = self.high_spread_score if spread >= self.high_spread else self.low_spread_score

        with_liquidity = [m for m in markets if m.liquidity and m.liquidity > 0]
        if len(with_liquidity) == len(markets):
            confidence += self.liquidity_reported_score
            avg_liquidity = sum(m.liquidity for m in with_liquidity) / len(with_liquidity)
            if avg_liquidity > self.deep_liquidity:
                confidence += self.deep_liquidity_score
            elif avg_liquidity > self.moderate_liquidity:
                confidence += self.moderate_liquidity_score

        with_volume = [m for m in markets if m.volume and m.volume > 0]
        if with_volume:
            avg_volume = sum(m.volume for m in with_volume) / len(with_volume)
            if avg_volume > self.heavy_volume:
                confidence += self.heavy_volume_score
            elif avg_volume > self.moderate_volume:
                confidence += self.moderate_volume_score

        return min(1.0, confidence)


@dataclass
class _MarketGroup:
    event_slug: str
    event_title: str
    markets: list[NormalizedMarket]


class DiscrepancyEngine:
    """
    Detects cross-venue pricing discrepancies.

    The question matcher and news source are injected; with no news source
    results carry no likely drivers.
    """

    def __init__(
        self,
        news_source: NewsSource | None = None,
        matcher: QuestionMatcher | None = None,
        min_spread: float = MIN_SPREAD_THRESHOLD,
        confidence_model: ConfidenceModel | None = None,
        max_drivers: int = MAX_LIKELY_DRIVERS,
    ) -> None:
        self._news = news_source
        self._matcher = matcher or SlugMatcher()
        self._min_spread = min_spread
        self._confidence = confidence_model or ConfidenceModel()
        self._max_drivers = max_drivers

    def detect(self, markets: list[NormalizedMarket]) -> list[DiscrepancyResult]:
        """Discrepancies across *markets*, widest spread first."""
        groups = self._group_similar(markets)
        logger.debug("Grouped %d markets into %d cross-venue groups", len(markets), len(groups))

        results: list[DiscrepancyResult] = []
        for group in groups:
            result = self._analyze_group(group)
            if result is not None:
                results.append(result)

        results.sort(key=lambda r: r.max_spread, reverse=True)
        logger.info("Found %d discrepancies across %d markets", len(results), len(markets))
        return results

    def _group_similar(self, markets: list[NormalizedMarket]) -> list[_MarketGroup]:
        """
        Greedy grouping: each market joins the first group whose
        representative (first member) it matches, else starts a new group.
        Groups with fewer than two markets are dropped.
        """
        groups: list[_MarketGroup] = []
        threshold = self._matcher.threshold
        for market in markets:
            for group in groups:
                if self._matcher.score(group.event_title, market.question) >= threshold:
                    group.markets.append(market)
                    break
            else:
                groups.append(_MarketGroup(
                    event_slug=self._slug(market.question),
                    event_title=market.question,
                    markets=[market],
                ))
        return [g for g in groups if len(g.markets) > 1]

    def _slug(self, question: str) -> str:
        if isinstance(self._matcher, SlugMatcher):
            return self._matcher.slug(question)
        return generate_slug(question)

    def _analyze_group(self, group: _MarketGroup) -> DiscrepancyResult | None:
        yes_prices = [m.yes_probability for m in group.markets]
        low = min(yes_prices)
        high = max(yes_prices)
        spread = high - low
        if spread < self._min_spread:
            return None

        midpoint = (high + low) / 2
        drivers: list[NewsCorrelation] = []
        if self._news is not None:
            drivers = self._news.search_news(group.event_title)[: self._max_drivers]

        logger.debug(
            "Discrepancy '%s': spread=%.4f across %d markets",
            group.event_title[:50], spread, len(group.markets),
        )
        return DiscrepancyResult(
            event_slug=group.event_slug,
            event_title=group.event_title,
            markets=tuple(
                PlatformQuote(
                    platform=m.platform,
                    yes_probability=m.yes_probability,
                    volume=m.volume,
                    liquidity=m.liquidity,
                )
                for m in group.markets
            ),
            max_spread=spread,
            spread_percent=spread / midpoint * 100 if midpoint > 0 else 0.0,
            confidence=self._confidence.score(group.markets, spread),
            likely_drivers=tuple(drivers),
        )


def arbitrage_opportunity(
    low_yes: float,
    high_yes: float,
    low_liquidity: float | None = None,
    high_liquidity: float | None = None,
) -> ArbitrageSignal:
    """
    Simplified cross-venue check: buy YES where it is cheap and NO where YES
    is expensive. A combined cost below $1 is a theoretical arbitrage; fees,
    execution and settlement differences are ignored.
    """
    total_cost = low_yes + (1.0 - high_yes)
    exists = total_cost < 1.0
    theoretical_return = (1.0 - total_cost) * 100 if exists else 0.0

    confidence = 0.5 if exists else 0.0
    if exists and low_liquidity and high_liquidity:
        min_liquidity = min(low_liquidity, high_liquidity)
        if min_liquidity > 50_000:
            confidence = 0.9
        elif min_liquidity > 10_000:
            confidence = 0.7

    return ArbitrageSignal(
        exists=exists,
        theoretical_return=theoretical_return,
        confidence=confidence,
    )
