"""
Expected-value scoring of quotes against a fair estimate.

    EV% = (candidate_decimal / fair_decimal − 1) × 100,   fair_decimal = 1 / p_fair

EV is ``None`` — undefined, not zero — when the price is missing or zero,
when no fair estimate exists (the sample gate failed), or when the fair
probability is outside (0, 1).  Sorting helpers rank undefined EV below
every defined value.
"""

import logging
from typing import Iterable, List, Optional, Union

from edge_engine.core.odds_math import InvalidOdds, american_to_decimal, american_to_probability
from edge_engine.domain import BookmakerQuote, FairEstimate, ScoredQuote

logger = logging.getLogger(__name__)

FairInput = Union[FairEstimate, float, None]


def _fair_probability(fair: FairInput) -> Optional[float]:
    if fair is None:
        return None
    p = fair.probability if isinstance(fair, FairEstimate) else float(fair)
    return p if 0.0 < p < 1.0 else None


def expected_value(price: Optional[int], fair: FairInput) -> Optional[float]:
    """EV percentage of an American ``price`` against ``fair``.

    ``fair`` may be a :class:`FairEstimate` or a bare probability.
    """
    if not price:
        return None
    p_fair = _fair_probability(fair)
    if p_fair is None:
        return None
    try:
        candidate = american_to_decimal(price)
    except InvalidOdds:
        return None
    return (candidate / (1.0 / p_fair) - 1.0) * 100.0


def score_quote(quote: BookmakerQuote, fair: FairInput) -> ScoredQuote:
    """Attach implied probability and EV to a quote.

    Raises:
        InvalidOdds: If the quote's price is not a valid American price.
    """
    return ScoredQuote(
        quote=quote,
        implied_probability=american_to_probability(quote.price),
        ev=expected_value(quote.price, fair),
    )


def score_quotes(quotes: Iterable[BookmakerQuote], fair: FairInput) -> List[ScoredQuote]:
    """Score every quote, excluding (and logging) any with an invalid price."""
    scored: List[ScoredQuote] = []
    for quote in quotes:
        try:
            scored.append(score_quote(quote, fair))
        except InvalidOdds as exc:
            logger.debug("Excluding %s from scoring: %s", quote.bookmaker_key, exc)
    return scored


def ev_sort_value(ev: Optional[float]) -> float:
    """Sort value that places undefined EV below every defined EV."""
    return float("-inf") if ev is None else ev
