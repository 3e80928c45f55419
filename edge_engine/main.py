"""
FastAPI application for the odds edge engine.
Serves scored boards, arbitrage and ad-hoc scoring; refreshes on a schedule.
"""

from fastapi import FastAPI, Depends, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime
from typing import List, Optional
import logging
import os

from dotenv import load_dotenv

from edge_engine import __version__
from edge_engine.core.engine_config import EngineConfig
from edge_engine.core.markets import market_label
from edge_engine.domain import ArbitrageResult, BestPick, Event
from edge_engine.services.cache import SnapshotCache
from edge_engine.services.odds_monitor import OddsMonitor, SportBoard, get_odds_monitor
from edge_engine.services.pipeline import build_board, sort_picks
from edge_engine.schemas import (
    ArbitrageLegOut,
    ArbitrageOut,
    ArbitrageResponse,
    HealthResponse,
    PickOut,
    PicksResponse,
    QuoteOut,
    ScoreRequest,
    ScoreResponse,
)
from edge_engine.utils.formatting import format_odds

load_dotenv()

# Logging setup
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Scheduler instance
scheduler = BackgroundScheduler()

# Filtered views of polled boards (books / markets / EV bars)
_view_cache = SnapshotCache()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info("Starting odds edge engine v%s", __version__)

    if os.getenv("THE_ODDS_API_KEY"):
        refresh_sec = int(os.getenv("ODDS_REFRESH_INTERVAL_SEC", "60"))
        scheduler.add_job(
            _odds_refresh_job,
            IntervalTrigger(seconds=refresh_sec),
            id="odds_refresh",
            name="Odds Board Refresh",
            replace_existing=True,
            next_run_time=datetime.now(),
        )
        scheduler.start()
        logger.info("Scheduler started: odds refresh every %ds", refresh_sec)
    else:
        logger.warning("THE_ODDS_API_KEY not set; odds refresh disabled")

    yield

    logger.info("Shutting down odds edge engine")
    if scheduler.running:
        scheduler.shutdown()


app = FastAPI(
    title="Odds Edge Engine",
    description="Cross-book de-vig, EV scoring, best price and arbitrage",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "http://localhost:3000").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# SCHEDULED JOB
# ============================================================================

def _odds_refresh_job():
    """Poll the odds feed and rebuild every sport's board."""
    try:
        result = get_odds_monitor().poll()
        if result.get("new_arbitrage", 0) > 0:
            logger.info("Odds refresh: %d new arbitrage opportunities", result["new_arbitrage"])
    except Exception as exc:
        logger.error("Odds refresh job failed: %s", exc, exc_info=True)


# ============================================================================
# DEPENDENCIES / CONVERTERS
# ============================================================================

def get_monitor() -> OddsMonitor:
    """The process-wide monitor; 503 when the feed is not configured."""
    try:
        return get_odds_monitor()
    except ValueError as exc:
        raise HTTPException(status_code=503, detail=str(exc))


def _split_csv(value: Optional[str]) -> Optional[List[str]]:
    if not value:
        return None
    items = [v.strip().lower() for v in value.split(",") if v.strip()]
    return items or None


def _pick_out(pick: BestPick, event: Optional[Event], odds_format: str) -> PickOut:
    return PickOut(
        event_id=pick.event_id,
        home_team=event.home_team if event else "",
        away_team=event.away_team if event else "",
        commence_time=event.commence_time if event else None,
        market=pick.market,
        market_label=market_label(pick.market),
        outcome=pick.outcome,
        participant=pick.participant,
        line=pick.line,
        ev=pick.ev,
        fair_probability=pick.fair_probability,
        fair_price=pick.fair_price,
        sample_size=pick.sample_size,
        method=pick.method,
        best_bookmaker=pick.best_bookmaker,
        best_price=pick.best_price,
        best_price_display=format_odds(pick.best_price, odds_format),
        breakdown=[
            QuoteOut(
                bookmaker=s.bookmaker_key,
                bookmaker_title=s.quote.bookmaker_title,
                price=s.price,
                price_display=format_odds(s.price, odds_format),
                listed_price=s.quote.listed_price,
                line=s.quote.line,
                implied_probability=s.implied_probability,
                ev=s.ev,
            )
            for s in pick.breakdown
        ],
    )


def _arb_out(result: ArbitrageResult) -> ArbitrageOut:
    calc = result.calc
    stakes = (calc.stake_a, calc.stake_b) if calc else (None, None)
    return ArbitrageOut(
        event_id=result.event_id,
        market=result.market,
        status=result.status,
        legs=[
            ArbitrageLegOut(
                outcome=leg.quote.outcome,
                participant=leg.quote.participant,
                line=leg.quote.line,
                bookmaker=leg.bookmaker_key,
                price=leg.price,
                decimal_odds=leg.quote.decimal_odds,
                stake=stakes[i] if i < len(stakes) else None,
            )
            for i, leg in enumerate(result.legs)
        ],
        total_implied=calc.total_implied if calc else None,
        total_stake=calc.total_stake if calc else None,
        guaranteed_payout=calc.guaranteed_payout if calc else None,
        profit=calc.profit if calc else None,
        roi_pct=calc.roi_pct if calc else None,
        reason=result.reason,
    )


def _sport_board(monitor: OddsMonitor, sport: str) -> SportBoard:
    sport_board = monitor.get_board(sport)
    if sport_board is None:
        raise HTTPException(status_code=404, detail=f"No board for sport '{sport}'")
    return sport_board


# ============================================================================
# PUBLIC ENDPOINTS
# ============================================================================

@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint"""
    health = {"status": "healthy", "scheduler": "running", "monitor": None}

    if not scheduler.running:
        health["status"] = "degraded"
        health["scheduler"] = "stopped"

    try:
        health["monitor"] = get_odds_monitor().get_status()
    except ValueError as e:
        logger.warning("Health check: odds monitor unavailable: %s", e)
        health["status"] = "degraded"

    return health


@app.get("/api/odds/{sport}/picks", response_model=PicksResponse)
def get_picks(
    sport: str,
    market: Optional[str] = Query(None, description="Comma-separated market keys"),
    books: Optional[str] = Query(None, description="Comma-separated bookmaker allowlist"),
    min_ev: Optional[float] = Query(None),
    positive_only: bool = Query(False),
    odds_format: str = Query("american", pattern="^(american|decimal|fractional)$"),
    limit: int = Query(200, ge=1, le=2000),
    monitor: OddsMonitor = Depends(get_monitor),
):
    """Best picks on the latest board, ranked by EV."""
    sport_board = _sport_board(monitor, sport)
    options = {
        "selected_books": _split_csv(books),
        "markets": _split_csv(market),
        "min_ev": min_ev,
        "positive_only": positive_only,
    }
    filtered = (
        options["selected_books"] or options["markets"]
        or min_ev is not None or positive_only
    )
    if filtered:
        key = SnapshotCache.key_for(sport_board.snapshot, monitor.config, **options)
        board = _view_cache.get_or_compute(
            key,
            lambda: build_board(
                sport_board.snapshot, monitor.config, as_of=sport_board.fetched_at, **options
            ),
        )
    else:
        board = sport_board.board

    ranked = sort_picks(board.all_picks())[:limit]
    return PicksResponse(
        sport=sport,
        fetched_at=sport_board.fetched_at,
        count=len(ranked),
        picks=[_pick_out(p, board.events.get(p.event_id), odds_format) for p in ranked],
        stats=board.stats,
    )


@app.get("/api/odds/{sport}/arbitrage", response_model=ArbitrageResponse)
async def get_arbitrage(
    sport: str,
    include_all: bool = Query(False, description="Also list non-arb and unevaluated pairs"),
    monitor: OddsMonitor = Depends(get_monitor),
):
    """Arbitrage opportunities on the latest board, best ROI first."""
    sport_board = _sport_board(monitor, sport)
    board = sport_board.board
    results = board.arbitrage if include_all else board.opportunities()
    results = sorted(
        results,
        key=lambda a: -(a.calc.roi_pct if a.calc and a.calc.roi_pct is not None else float("-inf")),
    )
    return ArbitrageResponse(
        sport=sport,
        fetched_at=sport_board.fetched_at,
        count=len(results),
        opportunities=[_arb_out(a) for a in results],
    )


@app.post("/api/score", response_model=ScoreResponse)
def score_snapshot(payload: ScoreRequest):
    """Score a posted snapshot with per-request config overrides. No fetching."""
    config = EngineConfig.sharp_weighted() if payload.sharp_weighted else EngineConfig.default()
    overrides = {
        name: getattr(payload, name)
        for name in (
            "min_sample_size", "point_tolerance", "arb_margin",
            "default_stake", "devig_method",
        )
        if getattr(payload, name) is not None
    }
    if payload.bookmaker_priority is not None:
        overrides["bookmaker_priority"] = tuple(payload.bookmaker_priority)
    try:
        config = replace(config, **overrides)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    board = build_board(
        payload.events,
        config,
        selected_books=payload.selected_books,
        markets=payload.markets,
        min_ev=payload.min_ev,
        positive_only=payload.positive_only,
    )
    ranked = sort_picks(board.all_picks())
    return ScoreResponse(
        count=len(ranked),
        picks=[_pick_out(p, board.events.get(p.event_id), payload.odds_format) for p in ranked],
        arbitrage=[_arb_out(a) for a in board.arbitrage],
        stats=board.stats,
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "edge_engine.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )
