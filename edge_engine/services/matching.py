"""
Outcome matcher: group one market's quotes into bettable outcomes.

Grouping rules
--------------
* Moneyline — the outcome label (participant name) is the whole key.
* Spread / total — label plus line.  Two lines are the same line when
  ``|a − b| < tolerance`` (default 0.051), so a book quoting −3.05 lands in
  the same group as the −3 majority.  The first line seen for a label
  becomes the group's anchor.
* Props and team totals — participant (player or team) plus side plus
  line, same tolerance.

Each group keeps at most one quote per bookmaker: the most favourable price,
first-seen on ties.  Input order is the feed's order, so grouping is
deterministic for a given snapshot.

Complements
-----------
:func:`find_complement` locates the opposite side of a group: the other team
of a two-way moneyline, Under for Over at the same total, the other team at
the negated spread.  It raises :class:`NoComplementaryOutcome` when no clean
opposite exists (three-way markets, one-sided data).
"""

import logging
from typing import Dict, Iterable, List, Optional

from edge_engine.core.markets import (
    MONEYLINE,
    PROP,
    SPREAD,
    TOTAL,
    classify_market,
    opposite_side,
)
from edge_engine.domain import BookmakerQuote, OutcomeGroup, OutcomeKey

logger = logging.getLogger(__name__)

#: Outcome labels that make a moneyline three-way.
DRAW_LABELS = frozenset({"draw", "tie", "x"})


class NoComplementaryOutcome(LookupError):
    """The opposite side of an outcome group is missing or ambiguous."""


def _norm(text: Optional[str]) -> str:
    return (text or "").strip().lower()


def _identity(quote: BookmakerQuote) -> tuple:
    return (quote.market, _norm(quote.participant), _norm(quote.outcome))


def _within(a: Optional[float], b: Optional[float], tolerance: float) -> bool:
    if a is None or b is None:
        return a is None and b is None
    return abs(a - b) < tolerance


def _better(candidate: BookmakerQuote, current: BookmakerQuote) -> bool:
    return candidate.decimal_odds > current.decimal_odds


def group_quotes(
    quotes: Iterable[BookmakerQuote],
    tolerance: float = 0.051,
) -> Dict[OutcomeKey, OutcomeGroup]:
    """Group one event+market's quotes into :class:`OutcomeGroup` records.

    Args:
        quotes:    Quotes for a single event and a single market key.
        tolerance: Line-matching tolerance for spread/total/prop markets.

    Returns:
        Mapping of group key to group, in first-seen order.  Groups with a
        single bookmaker are kept; the sample-size gate handles them later.
    """
    # identity -> list of [anchor_line, OutcomeKey, {book: quote}]
    buckets: Dict[tuple, List[list]] = {}
    order: List[tuple] = []
    meta: Dict[OutcomeKey, tuple] = {}

    for quote in quotes:
        if not quote.price:
            logger.debug("Skipping zero-priced quote from %s", quote.bookmaker_key)
            continue
        kind = classify_market(quote.market)
        line = None if kind == MONEYLINE else quote.line
        identity = _identity(quote)
        slots = buckets.setdefault(identity, [])

        slot = next((s for s in slots if _within(s[0], line, tolerance)), None)
        if slot is None:
            key = OutcomeKey(
                market=quote.market,
                outcome=quote.outcome,
                participant=quote.participant,
                line=line,
            )
            slot = [line, key, {}]
            slots.append(slot)
            order.append((identity, len(slots) - 1))
            meta[key] = (quote.event_id, kind)

        by_book: Dict[str, BookmakerQuote] = slot[2]
        current = by_book.get(quote.bookmaker_key)
        if current is None or _better(quote, current):
            by_book[quote.bookmaker_key] = quote
        else:
            logger.debug(
                "Duplicate %s quote for %s ignored (%s kept over %s)",
                quote.bookmaker_key, quote.label, current.price, quote.price,
            )

    groups: Dict[OutcomeKey, OutcomeGroup] = {}
    for identity, idx in order:
        _, key, by_book = buckets[identity][idx]
        event_id, kind = meta[key]
        groups[key] = OutcomeGroup(
            event_id=event_id,
            market=key.market,
            kind=kind,
            key=key,
            quotes=tuple(by_book.values()),
        )
    return groups


def find_complement(
    group: OutcomeGroup,
    groups: Iterable[OutcomeGroup],
    tolerance: float = 0.051,
) -> OutcomeGroup:
    """Return the group holding the opposite side of ``group``.

    Raises:
        NoComplementaryOutcome: When the market kind has no two-way
            structure, the opposite side was never quoted, or more than one
            candidate exists (three-way moneylines).
    """
    others = [g for g in groups if g.key != group.key and g.market == group.market]
    key = group.key

    if group.kind == MONEYLINE:
        labels = {_norm(g.key.outcome) for g in others} | {_norm(key.outcome)}
        if labels & DRAW_LABELS or len(labels) != 2:
            raise NoComplementaryOutcome(
                f"{group.market} for event {group.event_id} is not a two-way market"
            )
        return others[0]

    if group.kind in (TOTAL, PROP) or (group.kind == SPREAD and opposite_side(key.outcome)):
        side = opposite_side(key.outcome)
        if side is None:
            raise NoComplementaryOutcome(
                f"Outcome {key.outcome!r} in {group.market} has no opposite side"
            )
        candidates = [
            g for g in others
            if _norm(g.key.outcome) == side
            and _norm(g.key.participant) == _norm(key.participant)
            and _within(g.key.line, key.line, tolerance)
        ]
    elif group.kind == SPREAD:
        target = None if key.line is None else -key.line
        candidates = [
            g for g in others
            if _norm(g.key.outcome) != _norm(key.outcome)
            and _norm(g.key.participant) == _norm(key.participant)
            and _within(g.key.line, target, tolerance)
        ]
    else:
        raise NoComplementaryOutcome(
            f"Market {group.market!r} has no complementary structure"
        )

    if not candidates:
        raise NoComplementaryOutcome(
            f"No opposite side quoted for {key.outcome} {key.line} in {group.market}"
        )
    if len(candidates) > 1:
        raise NoComplementaryOutcome(
            f"Ambiguous opposite side for {key.outcome} {key.line} in {group.market}"
        )
    return candidates[0]
