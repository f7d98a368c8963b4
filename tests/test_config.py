"""
Unit tests for config.py.
"""

import pytest
from pydantic import ValidationError

from analytics.comparator import DEFAULT_THRESHOLDS
from analytics.discrepancy import ConfidenceModel
from analytics.matching import FuzzyMatcher, SlugMatcher
from config import Config, build_matcher, load_config


class TestConfig:
    def test_defaults(self):
        cfg = Config(_env_file=None)
        assert cfg.clob_host == "https://clob.polymarket.com"
        assert cfg.chain_id == 137
        assert cfg.default_trade_size == 100.0
        assert cfg.matcher == "slug"
        assert cfg.news_api_key == ""
        assert cfg.api_port == 8787

    def test_frozen(self):
        cfg = Config(_env_file=None)
        with pytest.raises(ValidationError):
            cfg.default_trade_size = 5.0

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_TRADE_SIZE", "250")
        monkeypatch.setenv("MATCHER", "fuzzy")
        cfg = Config(_env_file=None)
        assert cfg.default_trade_size == 250.0
        assert cfg.matcher == "fuzzy"

    def test_rejects_non_positive_trade_size(self):
        with pytest.raises(ValidationError):
            Config(_env_file=None, default_trade_size=0)

    def test_rejects_unknown_matcher(self):
        with pytest.raises(ValidationError):
            Config(_env_file=None, matcher="embedding")

    def test_rejects_out_of_range_spread(self):
        with pytest.raises(ValidationError):
            Config(_env_file=None, discrepancy_min_spread=1.5)

    def test_load_config(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        assert load_config().log_level == "DEBUG"


class TestBuilders:
    def test_default_thresholds_match_core_defaults(self):
        assert Config(_env_file=None).comparison_thresholds() == DEFAULT_THRESHOLDS

    def test_thresholds_follow_config(self):
        cfg = Config(_env_file=None, arbitrage_sum_threshold=0.95, wide_spread_pct=3.0)
        thresholds = cfg.comparison_thresholds()
        assert thresholds.arbitrage_sum == 0.95
        assert thresholds.wide_spread_pct == 3.0

    def test_confidence_model_defaults(self):
        assert Config(_env_file=None).confidence_model() == ConfidenceModel()

    def test_build_slug_matcher(self):
        cfg = Config(_env_file=None, slug_min_word_len=3)
        matcher = build_matcher(cfg)
        assert isinstance(matcher, SlugMatcher)
        assert matcher.slug("Fed cut") == "cut-fed"

    def test_build_fuzzy_matcher(self):
        cfg = Config(_env_file=None, matcher="fuzzy", fuzzy_threshold=0.8)
        matcher = build_matcher(cfg)
        assert isinstance(matcher, FuzzyMatcher)
        assert matcher.threshold == 0.8
