#!/usr/bin/env python3
"""
Prediction market analytics -- command-line entry point.

Read-only: every command uses public venue endpoints, no wallet needed.

Usage:
  uv run python run.py simulate MARKET_ID --side BUY --outcome YES --size 100
  uv run python run.py compare MARKET_A MARKET_B --size 250
  uv run python run.py book MARKET_ID
  uv run python run.py book KXTICKER --venue kalshi
  uv run python run.py markets
  uv run python run.py discrepancies
  uv run python run.py serve --port 8787
"""

from __future__ import annotations

import argparse
import logging
import sys

from analytics.discrepancy import DiscrepancyEngine
from analytics.models import Outcome, Side
from api.service import AnalyticsService
from client.clob import ClobBookSource, build_public_client
from client.gamma import PolymarketSource
from client.kalshi import KalshiSource
from client.news import NewsClient
from client.platform import BookSource, MarketSource, UpstreamError
from config import Config, build_matcher, load_config
from monitor.display import print_book, print_comparison, print_discrepancies, print_execution, print_markets
from monitor.logger import setup_logging

logger = logging.getLogger(__name__)

_BANNER = """
+---------------------------------------------+
|      Prediction Market Analytics            |
+---------------------------------------------+
"""

EXIT_OK = 0
EXIT_INVALID_INPUT = 1
EXIT_UPSTREAM = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Execution-aware prediction market analytics")
    parser.add_argument("--json-log", type=str, default=None, help="Path to JSON log file for machine-readable output")
    parser.add_argument("--log-level", type=str, default=None, help="Override LOG_LEVEL (DEBUG, INFO, ...)")
    sub = parser.add_subparsers(dest="command", required=True)

    venue_help = "Venue serving the order books (default: polymarket)"

    sim = sub.add_parser("simulate", help="Price a taker order against the live book")
    sim.add_argument("market_id", help="Polymarket condition id or Kalshi ticker")
    sim.add_argument("--side", choices=[s.value for s in Side], default=Side.BUY.value)
    sim.add_argument("--outcome", choices=[o.value for o in Outcome], default=Outcome.YES.value)
    sim.add_argument("--size", type=float, default=None, help="Contracts (default: DEFAULT_TRADE_SIZE)")
    sim.add_argument("--venue", choices=["polymarket", "kalshi"], default="polymarket", help=venue_help)

    cmp_ = sub.add_parser("compare", help="Compare two related markets at a trade size")
    cmp_.add_argument("market_a")
    cmp_.add_argument("market_b")
    cmp_.add_argument("--size", type=float, default=None, help="Contracts (default: DEFAULT_TRADE_SIZE)")
    cmp_.add_argument("--venue", choices=["polymarket", "kalshi"], default="polymarket", help=venue_help)

    book = sub.add_parser("book", help="Show both outcome books with depth analysis")
    book.add_argument("market_id")
    book.add_argument("--venue", choices=["polymarket", "kalshi"], default="polymarket", help=venue_help)

    sub.add_parser("markets", help="List markets from configured venues with discrepancy stats")
    sub.add_parser("discrepancies", help="Scan configured venues for cross-venue price gaps")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", type=str, default=None, help="Bind address (default: API_HOST)")
    serve.add_argument("--port", type=int, default=None, help="Port (default: API_PORT)")

    return parser.parse_args(argv)


def build_book_source(cfg: Config, venue: str = "polymarket") -> BookSource:
    if venue == "kalshi":
        return KalshiSource(host=cfg.kalshi_host, timeout=cfg.request_timeout_sec)
    client = build_public_client(cfg.clob_host, cfg.chain_id)
    return ClobBookSource(client, max_workers=cfg.book_fetch_workers)


def build_market_sources(cfg: Config) -> list[MarketSource]:
    sources: list[MarketSource] = [PolymarketSource(cfg.gamma_host, timeout=cfg.request_timeout_sec)]
    if cfg.kalshi_enabled:
        sources.append(KalshiSource(host=cfg.kalshi_host, timeout=cfg.request_timeout_sec))
    return sources


def build_service(cfg: Config, venue: str = "polymarket") -> AnalyticsService:
    """Wire adapters, news and thresholds from config into an AnalyticsService."""
    news = NewsClient(cfg.news_api_key, base_url=cfg.news_api_url, timeout=cfg.request_timeout_sec)
    engine = DiscrepancyEngine(
        news_source=news if news.enabled else None,
        matcher=build_matcher(cfg),
        min_spread=cfg.discrepancy_min_spread,
        confidence_model=cfg.confidence_model(),
        max_drivers=cfg.max_likely_drivers,
    )
    return AnalyticsService(
        book_source=build_book_source(cfg, venue),
        market_sources=build_market_sources(cfg),
        discrepancy_engine=engine,
        thresholds=cfg.comparison_thresholds(),
        slippage_tolerance_pct=cfg.slippage_tolerance_pct,
        market_fetch_limit=cfg.market_fetch_limit,
        max_workers=cfg.book_fetch_workers,
    )


def run_command(args: argparse.Namespace, cfg: Config, service: AnalyticsService) -> None:
    if args.command == "simulate":
        size = args.size if args.size is not None else cfg.default_trade_size
        print_execution(service.simulate_trade(args.market_id, Side(args.side), Outcome(args.outcome), size))
    elif args.command == "compare":
        size = args.size if args.size is not None else cfg.default_trade_size
        print_comparison(service.compare(args.market_a, args.market_b, size))
    elif args.command == "book":
        print_book(service.order_book(args.market_id))
    elif args.command == "markets":
        print_markets(service.markets_overview())
    elif args.command == "discrepancies":
        print_discrepancies(service.discrepancies())
    elif args.command == "serve":
        from api.server import start_server
        start_server(service, host=args.host or cfg.api_host, port=args.port or cfg.api_port)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    cfg = load_config()

    log_file_path = setup_logging(args.log_level or cfg.log_level, json_log_file=args.json_log)
    logger.info(_BANNER.strip())
    logger.info("  Log file: %s", log_file_path)

    service = build_service(cfg, getattr(args, "venue", "polymarket"))
    try:
        run_command(args, cfg, service)
    except UpstreamError as exc:
        logger.error("Upstream API error: %s", exc)
        return EXIT_UPSTREAM
    except ValueError as exc:
        logger.error("Invalid input: %s", exc)
        return EXIT_INVALID_INPUT
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
