"""
Pydantic request/response schemas for the odds edge API.

Engine records are frozen dataclasses; these schemas are the HTTP view of
them.  Undefined EV and fair prices travel as ``null``, never as zero.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


OddsFormat = Literal["american", "decimal", "fractional"]


# ---------------------------------------------------------------------------
# Picks
# ---------------------------------------------------------------------------

class QuoteOut(BaseModel):
    """One row of a pick's per-bookmaker breakdown."""

    bookmaker: str
    bookmaker_title: str
    price: int
    price_display: str
    listed_price: Optional[int] = Field(
        None, description="Feed price when a fixed-price rule overrode it"
    )
    line: Optional[float] = None
    implied_probability: float
    ev: Optional[float] = Field(None, description="EV % vs fair; null = insufficient sample")


class PickOut(BaseModel):
    """Best available quote for one outcome group."""

    event_id: str
    home_team: str
    away_team: str
    commence_time: Optional[datetime] = None
    market: str
    market_label: str
    outcome: str
    participant: Optional[str] = None
    line: Optional[float] = None
    ev: Optional[float] = None
    fair_probability: Optional[float] = None
    fair_price: Optional[int] = None
    sample_size: int = 0
    method: Optional[Literal["paired", "median"]] = None
    best_bookmaker: str
    best_price: int
    best_price_display: str
    breakdown: List[QuoteOut] = Field(default_factory=list)


class PicksResponse(BaseModel):
    sport: str
    fetched_at: Optional[datetime] = None
    count: int
    picks: List[PickOut]
    stats: Dict[str, int] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Arbitrage
# ---------------------------------------------------------------------------

class ArbitrageLegOut(BaseModel):
    outcome: str
    participant: Optional[str] = None
    line: Optional[float] = None
    bookmaker: str
    price: int
    decimal_odds: float
    stake: Optional[float] = None


class ArbitrageOut(BaseModel):
    event_id: str
    market: str
    status: Literal["opportunity", "none", "not_evaluated"]
    legs: List[ArbitrageLegOut]
    total_implied: Optional[float] = None
    total_stake: Optional[float] = None
    guaranteed_payout: Optional[float] = None
    profit: Optional[float] = None
    roi_pct: Optional[float] = None
    reason: Optional[str] = None


class ArbitrageResponse(BaseModel):
    sport: str
    fetched_at: Optional[datetime] = None
    count: int
    opportunities: List[ArbitrageOut]


# ---------------------------------------------------------------------------
# Ad-hoc scoring
# ---------------------------------------------------------------------------

class ScoreRequest(BaseModel):
    """
    Payload for POST /api/score.

    ``events`` is a raw snapshot in The Odds API v4 shape.  Every other
    field overrides one engine default for this request only.
    """

    events: List[Dict[str, Any]] = Field(..., description="Raw Odds API event records")

    bookmaker_priority: Optional[List[str]] = Field(
        None, description="Ordered best-price tie-break; unlisted books rank last"
    )
    min_sample_size: Optional[int] = Field(None, ge=0, le=50)
    point_tolerance: Optional[float] = Field(None, gt=0, le=1.0)
    arb_margin: Optional[float] = Field(None, ge=0, lt=1.0)
    default_stake: Optional[float] = Field(None, gt=0)
    devig_method: Optional[Literal["proportional", "shin"]] = None
    sharp_weighted: bool = Field(False, description="Weighted-median fallback consensus")

    selected_books: Optional[List[str]] = None
    markets: Optional[List[str]] = None
    min_ev: Optional[float] = None
    positive_only: bool = False
    odds_format: OddsFormat = "american"

    @field_validator("bookmaker_priority", "selected_books", "markets")
    @classmethod
    def normalise_keys(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return None
        return [item.strip().lower() for item in v if item and item.strip()]

    model_config = {
        "json_schema_extra": {
            "example": {
                "events": [
                    {
                        "id": "e1",
                        "home_team": "Boston Celtics",
                        "away_team": "Miami Heat",
                        "bookmakers": [
                            {
                                "key": "draftkings",
                                "title": "DraftKings",
                                "markets": [
                                    {
                                        "key": "h2h",
                                        "outcomes": [
                                            {"name": "Boston Celtics", "price": -150},
                                            {"name": "Miami Heat", "price": 130},
                                        ],
                                    }
                                ],
                            }
                        ],
                    }
                ],
                "min_sample_size": 0,
                "positive_only": False,
            }
        }
    }


class ScoreResponse(BaseModel):
    count: int
    picks: List[PickOut]
    arbitrage: List[ArbitrageOut]
    stats: Dict[str, int] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    status: str
    scheduler: str
    monitor: Optional[Dict[str, Any]] = None
