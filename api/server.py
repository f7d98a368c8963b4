"""
FastAPI server exposing trade simulation, market comparison, order books,
the market overview and cross-venue discrepancies over JSON.

Routes are thin: parse the request, call AnalyticsService, serialize the
frozen result dataclasses.
"""

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import BaseModel, Field

from analytics.models import Outcome, Side
from api.service import AnalyticsService, TradeSimulation
from client.platform import UpstreamError

logger = logging.getLogger(__name__)


class SimulateTradeRequest(BaseModel):
    market_id: str = Field(min_length=1)
    side: Literal["BUY", "SELL"]
    outcome: Literal["YES", "NO"]
    size: float = Field(gt=0)


class CompareMarketsRequest(BaseModel):
    market_id_a: str = Field(min_length=1)
    market_id_b: str = Field(min_length=1)
    trade_size: float = Field(default=100.0, gt=0)


def _formatted_simulation(sim: TradeSimulation) -> dict[str, str]:
    """Display strings for a simulation, matching the console output."""
    ex, pay = sim.execution, sim.payoff
    return {
        "average_price": f"${ex.average_price:.4f}",
        "total_cost": f"${ex.total_cost:.2f}",
        "slippage": f"{ex.slippage_percent:.2f}%",
        "pnl_if_yes": f"${pay.pnl_if_yes:.2f}",
        "pnl_if_no": f"${pay.pnl_if_no:.2f}",
        "return_if_yes": f"{pay.return_if_yes:.1f}%",
        "return_if_no": f"{pay.return_if_no:.1f}%",
    }


def create_app(service: AnalyticsService) -> Any:
    """Build and return the FastAPI application."""
    from fastapi import FastAPI
    from fastapi.encoders import jsonable_encoder
    from fastapi.responses import JSONResponse

    app = FastAPI(title="Prediction Market Analytics", docs_url="/docs")

    # ── Errors ──

    @app.exception_handler(UpstreamError)
    async def upstream_error(request, exc):
        logger.warning("Upstream failure on %s: %s", request.url.path, exc)
        return JSONResponse({"error": str(exc)}, status_code=502)

    @app.exception_handler(ValueError)
    async def value_error(request, exc):
        return JSONResponse({"error": str(exc)}, status_code=400)

    @app.exception_handler(Exception)
    async def unexpected_error(request, exc):
        logger.error("Unhandled error on %s", request.url.path, exc_info=exc)
        return JSONResponse({"error": "Internal server error"}, status_code=500)

    # ── Health ──

    @app.get("/api/health")
    async def health():
        return {"status": "ok"}

    # ── Simulation ──

    @app.post("/api/simulate-trade")
    def simulate_trade(body: SimulateTradeRequest):
        sim = service.simulate_trade(
            body.market_id, Side(body.side), Outcome(body.outcome), body.size,
        )
        out = jsonable_encoder(sim)
        out["formatted"] = _formatted_simulation(sim)
        return out

    # ── Comparison ──

    @app.post("/api/compare-markets")
    def compare_markets(body: CompareMarketsRequest):
        report = service.compare(body.market_id_a, body.market_id_b, body.trade_size)
        return jsonable_encoder(report)

    # ── Books ──

    @app.get("/api/orderbook/{market_id}")
    def orderbook(market_id: str):
        return jsonable_encoder(service.order_book(market_id))

    # ── Markets ──

    @app.get("/api/markets")
    def markets():
        overview = service.markets_overview()
        return {
            "markets": jsonable_encoder(overview.markets),
            "discrepancies": jsonable_encoder(overview.discrepancies),
            "stats": {
                "total_markets": overview.total_markets,
                "active_discrepancies": overview.active_discrepancies,
                "avg_spread": overview.avg_spread,
            },
        }

    # ── Discrepancies ──

    @app.get("/api/discrepancies")
    def discrepancies():
        results = service.discrepancies()
        return {"count": len(results), "discrepancies": jsonable_encoder(results)}

    return app


def start_server(service: AnalyticsService, host: str = "0.0.0.0", port: int = 8787) -> None:
    """Run the API with uvicorn. Blocks until interrupted."""
    import uvicorn

    app = create_app(service)
    logger.info("Analytics API listening on http://%s:%d", host, port)
    # log_config=None keeps uvicorn on the root handlers from setup_logging
    uvicorn.run(app, host=host, port=port, log_level="warning", access_log=False, log_config=None)
