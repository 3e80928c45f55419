"""
Scoring pipeline: raw feed snapshot → ranked, EV-scored best picks.

    raw events
      └─ ingest.extract_quotes        (tolerant parse, fixed prices, locks)
          └─ matching.group_quotes    (per event + market)
              └─ devig.estimate_fair  (paired → median fallback, sample gate)
                  └─ ev.score_quotes
                      └─ best_price.select_best / rank_quotes
                          └─ arbitrage.evaluate_pair (complementary groups)

The whole pipeline re-runs from scratch for every snapshot; there is no
incremental state.  Events are independent, so ``workers > 1`` fans them out
over a thread pool.  Results are re-assembled in input order and every
median sorts its inputs, so output does not depend on the worker count.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from edge_engine.core.engine_config import EngineConfig
from edge_engine.domain import (
    ArbitrageResult,
    BestPick,
    Board,
    BookmakerQuote,
    Event,
    OutcomeGroup,
    OutcomeKey,
)
from edge_engine.services.arbitrage import evaluate_pair, not_evaluated
from edge_engine.services.best_price import price_rank, rank_quotes, select_best
from edge_engine.services.devig import estimate_fair
from edge_engine.services.ev import ev_sort_value, score_quotes
from edge_engine.services.ingest import IngestStats, extract_quotes, split_by_market
from edge_engine.services.matching import NoComplementaryOutcome, find_complement, group_quotes

logger = logging.getLogger(__name__)


@dataclass
class MarketResult:
    """Picks and arbitrage verdicts for one event + market."""

    picks: List[BestPick] = field(default_factory=list)
    arbitrage: List[ArbitrageResult] = field(default_factory=list)
    groups: int = 0


# ---------------------------------------------------------------------------
# Ordering and filtering
# ---------------------------------------------------------------------------

def pick_sort_key(pick: BestPick) -> tuple:
    """EV descending (undefined last), then best price, outcome, line."""
    return (
        -ev_sort_value(pick.ev),
        -pick.best.quote.decimal_odds,
        price_rank(pick.best_price),
        pick.participant or "",
        pick.outcome,
        pick.line if pick.line is not None else 0.0,
    )


def sort_picks(picks: Iterable[BestPick]) -> List[BestPick]:
    return sorted(picks, key=pick_sort_key)


def filter_picks(
    picks: Iterable[BestPick],
    min_ev: Optional[float] = None,
    positive_only: bool = False,
) -> List[BestPick]:
    """Drop picks below an EV bar.  Any active bar also drops undefined EV."""
    if min_ev is None and not positive_only:
        return list(picks)
    kept = []
    for pick in picks:
        if pick.ev is None:
            continue
        if positive_only and pick.ev <= 0:
            continue
        if min_ev is not None and pick.ev < min_ev:
            continue
        kept.append(pick)
    return kept


# ---------------------------------------------------------------------------
# Per-market evaluation
# ---------------------------------------------------------------------------

def evaluate_market(
    quotes: Sequence[BookmakerQuote],
    config: EngineConfig,
    *,
    selected_books: Optional[Iterable[str]] = None,
) -> MarketResult:
    """Group, de-vig, score and select for one event's single market.

    Fair estimates always use every book.  ``selected_books`` only limits
    which book may be surfaced as the best quote; groups no selected book
    quotes produce no pick.
    """
    selected = list(selected_books or [])
    groups: List[OutcomeGroup] = list(group_quotes(quotes, config.point_tolerance).values())
    result = MarketResult(groups=len(groups))

    complements: Dict[OutcomeKey, Optional[OutcomeGroup]] = {}
    reasons: Dict[OutcomeKey, str] = {}
    best_by_key = {}

    for group in groups:
        try:
            complement = find_complement(group, groups, config.point_tolerance)
        except NoComplementaryOutcome as exc:
            complement = None
            reasons[group.key] = str(exc)
        complements[group.key] = complement

        fair = estimate_fair(group, complement, config)
        breakdown = rank_quotes(score_quotes(group.quotes, fair), config)
        best = select_best(breakdown, config, selected)
        if best is None:
            continue
        best_by_key[group.key] = best
        result.picks.append(
            BestPick(
                event_id=group.event_id,
                market=group.market,
                outcome=group.key.outcome,
                line=group.key.line,
                participant=group.key.participant,
                best=best,
                breakdown=tuple(breakdown),
                fair=fair,
            )
        )

    evaluated = set()
    for group in groups:
        best = best_by_key.get(group.key)
        if best is None or group.key in evaluated:
            continue
        evaluated.add(group.key)
        complement = complements[group.key]
        if complement is None:
            result.arbitrage.append(not_evaluated(best, reasons.get(group.key)))
            continue
        other = best_by_key.get(complement.key)
        if other is None:
            result.arbitrage.append(
                not_evaluated(best, "no eligible quote on the opposite side")
            )
            continue
        evaluated.add(complement.key)
        result.arbitrage.append(
            evaluate_pair(best, other, config.default_stake, config.arb_margin)
        )

    result.picks = sort_picks(result.picks)
    return result


# ---------------------------------------------------------------------------
# Per-event and snapshot evaluation
# ---------------------------------------------------------------------------

@dataclass
class _EventResult:
    event: Optional[Event]
    markets: Dict[str, MarketResult]
    stats: IngestStats


def _evaluate_event(
    raw_event: Dict[str, Any],
    config: EngineConfig,
    selected_books: Optional[List[str]],
    markets: Optional[frozenset],
    as_of: Optional[datetime],
) -> _EventResult:
    event, quotes, stats = extract_quotes(raw_event, config, as_of=as_of)
    results: Dict[str, MarketResult] = {}
    if event is None:
        return _EventResult(None, results, stats)
    for market_key, market_quotes in split_by_market(quotes).items():
        if markets and market_key not in markets:
            continue
        results[market_key] = evaluate_market(
            market_quotes, config, selected_books=selected_books,
        )
    return _EventResult(event, results, stats)


def build_board(
    raw_events: Iterable[Dict[str, Any]],
    config: Optional[EngineConfig] = None,
    *,
    selected_books: Optional[Iterable[str]] = None,
    markets: Optional[Iterable[str]] = None,
    min_ev: Optional[float] = None,
    positive_only: bool = False,
    as_of: Optional[datetime] = None,
    workers: int = 1,
) -> Board:
    """Run the full pipeline over a snapshot of raw feed events.

    Args:
        raw_events:     Event dicts in The Odds API shape.
        config:         Engine configuration (default :meth:`EngineConfig.default`).
        selected_books: Optional allowlist of books eligible as best quote.
        markets:        Optional allowlist of market keys to evaluate.
        min_ev:         Drop picks with EV below this percentage.
        positive_only:  Drop picks whose EV is not strictly positive.
        as_of:          Reference time for stale-quote detection.
        workers:        Thread count for per-event fan-out.

    Returns:
        :class:`Board` with picks keyed by ``(event_id, market)``, every
        arbitrage verdict, and run statistics.
    """
    config = config or EngineConfig.default()
    books = [b.strip().lower() for b in selected_books or [] if b] or None
    market_filter = frozenset(m.strip().lower() for m in markets) if markets else None
    events = list(raw_events or [])

    def run(raw: Dict[str, Any]) -> _EventResult:
        return _evaluate_event(raw, config, books, market_filter, as_of)

    if workers > 1 and len(events) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(run, events))
    else:
        results = [run(raw) for raw in events]

    board = Board()
    totals = IngestStats()
    groups = 0
    for item in results:
        totals.merge(item.stats)
        if item.event is None:
            continue
        board.events[item.event.event_id] = item.event
        for market_key, market_result in item.markets.items():
            groups += market_result.groups
            picks = filter_picks(market_result.picks, min_ev, positive_only)
            if picks:
                board.picks[(item.event.event_id, market_key)] = picks
            board.arbitrage.extend(market_result.arbitrage)

    board.stats = {
        "events": len(board.events),
        "quotes_kept": totals.kept,
        "quotes_dropped": totals.dropped_total,
        "groups": groups,
        "picks": len(board.all_picks()),
        "arbitrage_opportunities": len(board.opportunities()),
    }
    logger.info(
        "Board built: %d events, %d quotes (%d dropped), %d groups, %d picks, %d arbs",
        board.stats["events"], board.stats["quotes_kept"], board.stats["quotes_dropped"],
        groups, board.stats["picks"], board.stats["arbitrage_opportunities"],
    )
    return board


def top_picks(board: Board, limit: Optional[int] = None) -> List[Tuple[Event, BestPick]]:
    """Every pick on the board ranked by EV, paired with its event."""
    ranked = sort_picks(board.all_picks())
    if limit is not None:
        ranked = ranked[:limit]
    return [(board.events[p.event_id], p) for p in ranked]
