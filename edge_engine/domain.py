"""
Domain records passed between the engine stages.

All records are frozen dataclasses.  A refresh of the odds feed produces a
brand-new set of records; nothing here is mutated after construction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from edge_engine.core.odds_math import (
    american_to_decimal,
    american_to_probability,
    probability_to_american,
)


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Event:
    """A scheduled game as supplied by the odds feed."""

    event_id: str
    home_team: str
    away_team: str
    commence_time: Optional[datetime] = None
    sport_key: str = ""
    sport_title: str = ""

    @property
    def participants(self) -> Tuple[str, str]:
        return self.home_team, self.away_team


@dataclass(frozen=True)
class BookmakerQuote:
    """One (bookmaker, market, outcome, line) price at a point in time.

    ``participant`` carries the player or team name for props and team
    totals, where ``outcome`` is only the side ("Over"/"Under").
    ``listed_price`` keeps the feed's price when ``price`` was overridden
    by a fixed-price book rule.
    """

    event_id: str
    bookmaker_key: str
    bookmaker_title: str
    market: str
    outcome: str
    price: int
    line: Optional[float] = None
    participant: Optional[str] = None
    listed_price: Optional[int] = None
    last_update: Optional[datetime] = None

    @property
    def decimal_odds(self) -> float:
        return american_to_decimal(self.price)

    @property
    def implied_probability(self) -> float:
        return american_to_probability(self.price)

    @property
    def label(self) -> str:
        """Display label, e.g. ``"Over 47.5"`` or ``"J. Allen Over 1.5"``."""
        parts = [p for p in (self.participant, self.outcome) if p]
        if self.line is not None:
            parts.append(f"{self.line:g}")
        return " ".join(parts)


# ---------------------------------------------------------------------------
# Derived
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OutcomeKey:
    """Identity of a bettable proposition within one event and market.

    ``line`` is the anchor line of the group; members may differ from it
    by less than the configured tolerance.
    """

    market: str
    outcome: str
    participant: Optional[str] = None
    line: Optional[float] = None


@dataclass(frozen=True)
class OutcomeGroup:
    """All quotes judged to represent the same outcome, one per bookmaker."""

    event_id: str
    market: str
    kind: str
    key: OutcomeKey
    quotes: Tuple[BookmakerQuote, ...]

    @property
    def bookmakers(self) -> Tuple[str, ...]:
        return tuple(q.bookmaker_key for q in self.quotes)

    def quote_for(self, bookmaker_key: str) -> Optional[BookmakerQuote]:
        for quote in self.quotes:
            if quote.bookmaker_key == bookmaker_key:
                return quote
        return None

    def __len__(self) -> int:
        return len(self.quotes)


@dataclass(frozen=True)
class FairEstimate:
    """Consensus no-vig probability and how many books produced it.

    ``method`` is ``"paired"`` (per-book de-vig) or ``"median"`` (raw
    implied-probability consensus).
    """

    probability: float
    sample_size: int
    method: str

    def __post_init__(self) -> None:
        if not (0.0 < self.probability < 1.0):
            raise ValueError(
                f"Fair probability {self.probability!r} must lie strictly inside (0, 1)"
            )

    @property
    def fair_decimal(self) -> float:
        return 1.0 / self.probability

    @property
    def fair_price(self) -> int:
        return probability_to_american(self.probability)


@dataclass(frozen=True)
class ScoredQuote:
    """A quote with its implied probability and EV (``None`` = undefined)."""

    quote: BookmakerQuote
    implied_probability: float
    ev: Optional[float] = None

    @property
    def bookmaker_key(self) -> str:
        return self.quote.bookmaker_key

    @property
    def price(self) -> int:
        return self.quote.price


@dataclass(frozen=True)
class BestPick:
    """The surfaced quote of an outcome group plus the full breakdown."""

    event_id: str
    market: str
    outcome: str
    line: Optional[float]
    participant: Optional[str]
    best: ScoredQuote
    breakdown: Tuple[ScoredQuote, ...]
    fair: Optional[FairEstimate] = None

    @property
    def side(self) -> str:
        """Side label: the team for moneyline/spread, Over/Under for totals and props."""
        return self.outcome

    @property
    def ev(self) -> Optional[float]:
        return self.best.ev

    @property
    def fair_probability(self) -> Optional[float]:
        return self.fair.probability if self.fair else None

    @property
    def fair_price(self) -> Optional[int]:
        return self.fair.fair_price if self.fair else None

    @property
    def sample_size(self) -> int:
        return self.fair.sample_size if self.fair else 0

    @property
    def method(self) -> Optional[str]:
        return self.fair.method if self.fair else None

    @property
    def best_bookmaker(self) -> str:
        return self.best.quote.bookmaker_title or self.best.bookmaker_key

    @property
    def best_price(self) -> int:
        return self.best.price


# ---------------------------------------------------------------------------
# Arbitrage
# ---------------------------------------------------------------------------

ARB_OPPORTUNITY = "opportunity"
ARB_NONE = "none"
ARB_NOT_EVALUATED = "not_evaluated"


@dataclass(frozen=True)
class ArbitrageCalc:
    """Result of the two-way arbitrage test on two decimal prices."""

    decimal_a: float
    decimal_b: float
    total_implied: float
    is_arbitrage: bool
    total_stake: float
    stake_a: Optional[float] = None
    stake_b: Optional[float] = None
    guaranteed_payout: Optional[float] = None
    profit: Optional[float] = None
    roi_pct: Optional[float] = None


@dataclass(frozen=True)
class ArbitrageResult:
    """Arbitrage evaluation for one complementary pair of outcome groups."""

    event_id: str
    market: str
    status: str
    legs: Tuple[ScoredQuote, ...]
    calc: Optional[ArbitrageCalc] = None
    reason: Optional[str] = None


# ---------------------------------------------------------------------------
# Board
# ---------------------------------------------------------------------------

@dataclass
class Board:
    """Full output of one pipeline run over a snapshot."""

    events: Dict[str, Event] = field(default_factory=dict)
    picks: Dict[Tuple[str, str], List[BestPick]] = field(default_factory=dict)
    arbitrage: List[ArbitrageResult] = field(default_factory=list)
    stats: Dict[str, int] = field(default_factory=dict)

    def all_picks(self) -> List[BestPick]:
        return [pick for picks in self.picks.values() for pick in picks]

    def opportunities(self) -> List[ArbitrageResult]:
        return [a for a in self.arbitrage if a.status == ARB_OPPORTUNITY]
