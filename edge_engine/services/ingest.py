"""
Ingest raw odds-feed events into engine records.

The feed payload follows The Odds API v4 shape::

    {
      "id": "...", "sport_key": "...", "commence_time": "2025-01-05T18:00:00Z",
      "home_team": "...", "away_team": "...",
      "bookmakers": [
        {"key": "draftkings", "title": "DraftKings", "last_update": "...",
         "markets": [
            {"key": "spreads", "last_update": "...",
             "outcomes": [{"name": "...", "price": -110, "point": -3.5,
                           "description": "..."}]}
         ]}
      ]
    }

Tolerance rules
---------------
Ingest never raises on bad data.  Bookmakers without markets, markets
without outcomes, outcomes with a zero / null / non-numeric price, and
outcomes of line-based markets with a missing or non-numeric point are
skipped and counted in :class:`IngestStats`.  Fixed-price books are
re-priced here, and locked or stale quotes are dropped here, so every later
stage sees only usable quotes.
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from edge_engine.core.engine_config import EngineConfig
from edge_engine.core.markets import PROP, classify_market, needs_line
from edge_engine.domain import BookmakerQuote, Event

logger = logging.getLogger(__name__)


@dataclass
class IngestStats:
    """Counts of quotes kept and dropped (by reason) for one event."""

    kept: int = 0
    dropped: Counter = field(default_factory=Counter)

    def drop(self, reason: str) -> None:
        self.dropped[reason] += 1

    @property
    def dropped_total(self) -> int:
        return sum(self.dropped.values())

    def merge(self, other: "IngestStats") -> None:
        self.kept += other.kept
        self.dropped.update(other.dropped)


# ---------------------------------------------------------------------------
# Field parsing
# ---------------------------------------------------------------------------

def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) to an aware datetime."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def parse_price(value: Any) -> Optional[int]:
    """American price as an int, or ``None`` for zero / null / non-numeric."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    price = int(round(number))
    return price or None


def parse_point(value: Any) -> Optional[float]:
    """Line value as a float, or ``None`` when absent or malformed."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_event(raw: Dict[str, Any]) -> Optional[Event]:
    """Build an :class:`Event` from a raw feed record, ``None`` if unusable."""
    if not isinstance(raw, dict):
        return None
    event_id = raw.get("id")
    if not event_id:
        return None
    return Event(
        event_id=str(event_id),
        home_team=str(raw.get("home_team") or ""),
        away_team=str(raw.get("away_team") or ""),
        commence_time=parse_timestamp(raw.get("commence_time")),
        sport_key=str(raw.get("sport_key") or ""),
        sport_title=str(raw.get("sport_title") or ""),
    )


# ---------------------------------------------------------------------------
# Locked-market detection
# ---------------------------------------------------------------------------

def is_locked(
    quote: BookmakerQuote,
    config: EngineConfig,
    as_of: Optional[datetime] = None,
) -> bool:
    """True when a quote looks like a pulled or frozen market.

    A price beyond ``config.max_abs_price`` is treated as a placeholder.
    Staleness is only judged when the caller supplies ``as_of`` and the
    quote carries a ``last_update``; fixed-price books go stale sooner.
    """
    reference = quote.listed_price if quote.listed_price is not None else quote.price
    if abs(reference) > config.max_abs_price:
        return True
    if as_of is None or quote.last_update is None:
        return False
    if as_of.tzinfo is None:
        as_of = as_of.replace(tzinfo=timezone.utc)
    threshold = (
        config.fixed_price_stale_after_minutes
        if config.fixed_price_for(quote.bookmaker_key) is not None
        else config.stale_after_minutes
    )
    return as_of - quote.last_update > timedelta(minutes=threshold)


# ---------------------------------------------------------------------------
# Quote extraction
# ---------------------------------------------------------------------------

def extract_quotes(
    raw_event: Dict[str, Any],
    config: EngineConfig,
    *,
    as_of: Optional[datetime] = None,
) -> Tuple[Optional[Event], List[BookmakerQuote], IngestStats]:
    """Flatten one raw event into usable :class:`BookmakerQuote` records.

    Args:
        raw_event: One event dict from the odds feed.
        config:    Engine configuration (fixed-price books, lock thresholds).
        as_of:     Reference time for staleness checks.  ``None`` disables
                   the staleness rule.

    Returns:
        ``(event, quotes, stats)``.  ``event`` is ``None`` and ``quotes``
        empty when the record has no id.
    """
    stats = IngestStats()
    event = parse_event(raw_event)
    if event is None:
        stats.drop("malformed_event")
        logger.debug("Skipping event without id: %r", raw_event)
        return None, [], stats

    quotes: List[BookmakerQuote] = []
    for bookmaker in raw_event.get("bookmakers") or []:
        if not isinstance(bookmaker, dict):
            stats.drop("malformed_bookmaker")
            continue
        book_key = str(bookmaker.get("key") or "").strip().lower()
        if not book_key:
            stats.drop("malformed_bookmaker")
            continue
        book_title = str(bookmaker.get("title") or book_key)
        book_updated = parse_timestamp(bookmaker.get("last_update"))
        fixed_price = config.fixed_price_for(book_key)

        markets = bookmaker.get("markets") or []
        if not markets:
            stats.drop("no_markets")
            continue

        for market in markets:
            if not isinstance(market, dict) or not market.get("key"):
                stats.drop("malformed_market")
                continue
            market_key = str(market["key"]).strip().lower()
            kind = classify_market(market_key)
            market_updated = parse_timestamp(market.get("last_update")) or book_updated

            outcomes = market.get("outcomes") or []
            if not outcomes:
                stats.drop("no_outcomes")
                continue

            for outcome in outcomes:
                if not isinstance(outcome, dict) or not outcome.get("name"):
                    stats.drop("malformed_outcome")
                    continue

                price = parse_price(outcome.get("price", outcome.get("odds")))
                if price is None:
                    stats.drop("zero_price")
                    continue

                raw_point = outcome.get("point", outcome.get("line"))
                line = parse_point(raw_point) if kind == PROP else None
                if needs_line(kind, str(outcome["name"])):
                    line = parse_point(raw_point)
                    if line is None:
                        stats.drop("malformed_point")
                        logger.debug(
                            "Dropping %s %s %s: point %r is not numeric",
                            book_key, market_key, outcome.get("name"),
                            raw_point,
                        )
                        continue

                participant = outcome.get("description") or None
                quote = BookmakerQuote(
                    event_id=event.event_id,
                    bookmaker_key=book_key,
                    bookmaker_title=book_title,
                    market=market_key,
                    outcome=str(outcome["name"]),
                    price=fixed_price if fixed_price is not None else price,
                    line=line,
                    participant=str(participant) if participant else None,
                    listed_price=price if fixed_price is not None else None,
                    last_update=parse_timestamp(outcome.get("last_update")) or market_updated,
                )

                if is_locked(quote, config, as_of):
                    stats.drop("locked")
                    logger.debug(
                        "Dropping locked quote %s %s %s (%s)",
                        book_key, market_key, quote.label, price,
                    )
                    continue

                quotes.append(quote)
                stats.kept += 1

    return event, quotes, stats


def split_by_market(quotes: List[BookmakerQuote]) -> Dict[str, List[BookmakerQuote]]:
    """Bucket quotes by market key, preserving first-seen market order."""
    buckets: Dict[str, List[BookmakerQuote]] = {}
    for quote in quotes:
        buckets.setdefault(quote.market, []).append(quote)
    return buckets
