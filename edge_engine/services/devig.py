"""
Consensus de-vig estimator.

Produces the "fair" probability of one outcome group from many bookmakers.

Two strategies are tried in order:

    1. Paired de-vig — for every bookmaker quoting *both* this outcome and
       its complement, remove that book's margin from the pair (proportional
       or Shin), keep this side's share, and take the median across books.
       Margin is stripped per book before aggregation, which is why this
       path is preferred.

    2. Median fallback — when no usable complement exists (or too few books
       quote both sides), take the median raw implied probability of this
       outcome across books.  A weighted median is used when the config
       carries book weights.

Both paths are gated: an estimate needs strictly more than
``config.min_sample_size`` contributing books.  Below the gate the result is
``None`` — "insufficient sample" — never a zero.

Median, not mean: one stale or mistyped book cannot drag the estimate.
"""

import logging
from typing import List, Optional

from edge_engine.core.engine_config import EngineConfig
from edge_engine.core.odds_math import (
    InvalidOdds,
    american_to_probability,
    median,
    normalize_pair,
    remove_vig_shin,
    weighted_median,
)
from edge_engine.domain import FairEstimate, OutcomeGroup

logger = logging.getLogger(__name__)

PAIRED = "paired"
MEDIAN = "median"


def paired_probabilities(
    group: OutcomeGroup,
    complement: OutcomeGroup,
    method: str = "proportional",
) -> List[float]:
    """Per-book no-vig probabilities of ``group``'s side.

    Only books present in both groups contribute.  Pairs with an invalid
    price or a normalised probability outside (0, 1) are skipped.
    Returned in the group's bookmaker order.
    """
    normalise = remove_vig_shin if method == "shin" else normalize_pair
    probs: List[float] = []
    for quote in group.quotes:
        other = complement.quote_for(quote.bookmaker_key)
        if other is None:
            continue
        try:
            p_side, _ = normalise(quote.price, other.price)
        except InvalidOdds as exc:
            logger.debug("Skipping %s pair: %s", quote.bookmaker_key, exc)
            continue
        if 0.0 < p_side < 1.0:
            probs.append(p_side)
    return probs


def implied_probabilities(group: OutcomeGroup) -> List[float]:
    """Raw implied probability of each book's quote, in group order."""
    probs: List[float] = []
    for quote in group.quotes:
        try:
            p = american_to_probability(quote.price)
        except InvalidOdds as exc:
            logger.debug("Skipping %s quote: %s", quote.bookmaker_key, exc)
            continue
        if 0.0 < p < 1.0:
            probs.append(p)
    return probs


def _consensus(group: OutcomeGroup, config: EngineConfig) -> Optional[float]:
    if not config.book_weights:
        return median(implied_probabilities(group))
    values: List[float] = []
    weights: List[float] = []
    for quote in group.quotes:
        try:
            p = american_to_probability(quote.price)
        except InvalidOdds:
            continue
        if 0.0 < p < 1.0:
            values.append(p)
            weights.append(config.weight_for(quote.bookmaker_key))
    return weighted_median(values, weights)


def _accept(value: Optional[float], sample: int, config: EngineConfig) -> bool:
    return value is not None and sample > config.min_sample_size and 0.0 < value < 1.0


def estimate_fair(
    group: OutcomeGroup,
    complement: Optional[OutcomeGroup],
    config: EngineConfig,
) -> Optional[FairEstimate]:
    """Fair probability for ``group`` or ``None`` when the sample is too thin.

    Args:
        group:      The outcome group to price.
        complement: Its opposite side, or ``None`` if none could be found.
        config:     Supplies the sample gate, de-vig method and weights.

    Returns:
        A :class:`FairEstimate` with ``method`` ``"paired"`` or
        ``"median"``, or ``None`` (insufficient sample).
    """
    if complement is not None:
        pairs = paired_probabilities(group, complement, config.devig_method)
        p_fair = median(pairs)
        if _accept(p_fair, len(pairs), config):
            return FairEstimate(probability=p_fair, sample_size=len(pairs), method=PAIRED)
        logger.debug(
            "Paired de-vig for %s: %d pairs, gate > %d",
            group.key.outcome, len(pairs), config.min_sample_size,
        )

    probs = implied_probabilities(group)
    p_fair = _consensus(group, config)
    if _accept(p_fair, len(probs), config):
        return FairEstimate(probability=p_fair, sample_size=len(probs), method=MEDIAN)

    logger.debug(
        "Insufficient sample for %s %s: %d books",
        group.market, group.key.outcome, len(probs),
    )
    return None
