"""
Configuration loaded from environment variables. Fail-fast on invalid values.
"""

from typing import Literal

from pydantic_settings import BaseSettings
from pydantic import Field

from analytics.comparator import ComparisonThresholds
from analytics.discrepancy import ConfidenceModel
from analytics.matching import FuzzyMatcher, QuestionMatcher, SlugMatcher


class Config(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "frozen": True, "extra": "ignore"}

    # Venue endpoints
    clob_host: str = "https://clob.polymarket.com"
    gamma_host: str = "https://gamma-api.polymarket.com"
    kalshi_host: str = "https://api.elections.kalshi.com/trade-api/v2"
    chain_id: int = 137  # Polygon mainnet

    # News search (newsapi.org compatible). Empty key = no likely-driver annotations.
    news_api_url: str = "https://newsapi.org/v2"
    news_api_key: str = Field(default="", description="News API key")

    # Fetching
    request_timeout_sec: float = Field(default=15.0, gt=0)
    market_fetch_limit: int = Field(default=50, ge=1, le=500)
    book_fetch_workers: int = Field(default=4, ge=1, le=32)
    kalshi_enabled: bool = True

    # Simulation defaults
    default_trade_size: float = Field(default=100.0, gt=0)
    slippage_tolerance_pct: float = Field(default=1.0, gt=0, le=100.0)

    # Comparator thresholds (heuristics)
    arbitrage_sum_threshold: float = Field(default=0.98, gt=0, le=1.0)
    overpriced_sum_threshold: float = Field(default=1.02, ge=1.0)
    dominance_sum_threshold: float = Field(default=1.05, ge=1.0)
    cross_market_gap: float = Field(default=0.05, gt=0, le=1.0)
    max_viable_search_size: int = Field(default=10000, ge=1)
    wide_spread_pct: float = Field(default=5.0, gt=0)
    depth_fraction_warning: float = Field(default=0.5, gt=0)
    imbalance_warning: float = Field(default=0.5, gt=0, le=1.0)

    # Discrepancy detection (heuristics)
    discrepancy_min_spread: float = Field(default=0.03, ge=0, le=1.0)
    discrepancy_high_spread: float = Field(default=0.05, ge=0, le=1.0)
    deep_liquidity: float = Field(default=100_000.0, ge=0)
    moderate_liquidity: float = Field(default=10_000.0, ge=0)
    heavy_volume: float = Field(default=1_000_000.0, ge=0)
    moderate_volume: float = Field(default=100_000.0, ge=0)
    max_likely_drivers: int = Field(default=3, ge=0, le=20)

    # Question matching
    matcher: Literal["slug", "fuzzy"] = "slug"
    slug_min_word_len: int = Field(default=4, ge=1)
    slug_max_len: int = Field(default=100, ge=10)
    fuzzy_threshold: float = Field(default=0.90, gt=0, le=1.0)

    # HTTP API
    api_host: str = "0.0.0.0"
    api_port: int = Field(default=8787, ge=1, le=65535)

    # Modes
    log_level: str = "INFO"

    def comparison_thresholds(self) -> ComparisonThresholds:
        return ComparisonThresholds(
            arbitrage_sum=self.arbitrage_sum_threshold,
            overpriced_sum=self.overpriced_sum_threshold,
            dominance_sum=self.dominance_sum_threshold,
            cross_market_gap=self.cross_market_gap,
            max_search_size=self.max_viable_search_size,
            wide_spread_pct=self.wide_spread_pct,
            depth_fraction=self.depth_fraction_warning,
            imbalance=self.imbalance_warning,
        )

    def confidence_model(self) -> ConfidenceModel:
        return ConfidenceModel(
            high_spread=self.discrepancy_high_spread,
            deep_liquidity=self.deep_liquidity,
            moderate_liquidity=self.moderate_liquidity,
            heavy_volume=self.heavy_volume,
            moderate_volume=self.moderate_volume,
        )


def build_matcher(cfg: Config) -> QuestionMatcher:
    """Question matcher selected by cfg.matcher."""
    if cfg.matcher == "fuzzy":
        return FuzzyMatcher(threshold=cfg.fuzzy_threshold)
    return SlugMatcher(min_word_len=cfg.slug_min_word_len, max_len=cfg.slug_max_len)


def load_config() -> Config:
    """Load and validate config from environment. Raises on invalid fields."""
    return Config()
