"""
Two-way arbitrage detection and stake sizing.

Given the best decimal prices ``d1`` and ``d2`` on complementary outcomes::

    p_i            = 1 / d_i
    total_implied  = p1 + p2
    arbitrage     ⇔ total_implied < 1 − margin

When an arbitrage exists the total stake ``S`` is split in proportion to the
implied probabilities, which equalises the payout on either result::

    stake_i  = S · p_i / total_implied
    payout   = min(stake1 · d1, stake2 · d2)      (= S / total_implied)
    profit   = payout − S
    ROI %    = profit / S · 100

:func:`detect_arbitrage` is a pure function of two prices and a stake.
:func:`evaluate_pair` wraps it for two outcome groups' best quotes.
"""

import logging
from typing import Optional

from edge_engine.core.odds_math import InvalidOdds, american_to_decimal
from edge_engine.domain import (
    ARB_NONE,
    ARB_NOT_EVALUATED,
    ARB_OPPORTUNITY,
    ArbitrageCalc,
    ArbitrageResult,
    ScoredQuote,
)

logger = logging.getLogger(__name__)

#: Default safety margin: the books' combined implied probability must be at
#: least 2 percentage points under 100% before a pair counts as an arb.
DEFAULT_MARGIN = 0.02

DEFAULT_STAKE = 1000.0


def detect_arbitrage(
    decimal_a: float,
    decimal_b: float,
    total_stake: float = DEFAULT_STAKE,
    margin: float = DEFAULT_MARGIN,
) -> ArbitrageCalc:
    """Test two complementary decimal prices for a guaranteed profit.

    Args:
        decimal_a:   Best decimal price on side A (> 1.0).
        decimal_b:   Best decimal price on side B (> 1.0).
        total_stake: Amount to split across both legs.
        margin:      Required safety margin below a 100% book.

    Returns:
        :class:`ArbitrageCalc`.  Stake, payout, profit and ROI fields are
        populated only when ``is_arbitrage`` is true.

    Raises:
        InvalidOdds: If either decimal price is ≤ 1.0.
        ValueError:  If ``total_stake`` is not positive.
    """
    if decimal_a <= 1.0 or decimal_b <= 1.0:
        raise InvalidOdds(f"Decimal prices must exceed 1.0 (got {decimal_a}, {decimal_b})")
    if total_stake <= 0:
        raise ValueError("total_stake must be positive")

    p_a = 1.0 / decimal_a
    p_b = 1.0 / decimal_b
    total_implied = p_a + p_b

    if total_implied >= 1.0 - margin:
        return ArbitrageCalc(
            decimal_a=decimal_a,
            decimal_b=decimal_b,
            total_implied=total_implied,
            is_arbitrage=False,
            total_stake=total_stake,
        )

    stake_a = total_stake * (p_a / total_implied)
    stake_b = total_stake * (p_b / total_implied)
    payout = min(stake_a * decimal_a, stake_b * decimal_b)
    profit = payout - total_stake
    return ArbitrageCalc(
        decimal_a=decimal_a,
        decimal_b=decimal_b,
        total_implied=total_implied,
        is_arbitrage=True,
        total_stake=total_stake,
        stake_a=stake_a,
        stake_b=stake_b,
        guaranteed_payout=payout,
        profit=profit,
        roi_pct=profit / total_stake * 100.0,
    )


def detect_arbitrage_american(
    price_a: int,
    price_b: int,
    total_stake: float = DEFAULT_STAKE,
    margin: float = DEFAULT_MARGIN,
) -> ArbitrageCalc:
    """:func:`detect_arbitrage` for American prices."""
    return detect_arbitrage(
        american_to_decimal(price_a),
        american_to_decimal(price_b),
        total_stake=total_stake,
        margin=margin,
    )


def evaluate_pair(
    best_a: ScoredQuote,
    best_b: ScoredQuote,
    total_stake: float = DEFAULT_STAKE,
    margin: float = DEFAULT_MARGIN,
) -> ArbitrageResult:
    """Arbitrage verdict for the best quotes of two complementary groups."""
    quote = best_a.quote
    try:
        calc = detect_arbitrage_american(
            best_a.price, best_b.price, total_stake=total_stake, margin=margin,
        )
    except InvalidOdds as exc:
        logger.debug("Arbitrage skipped for %s: %s", quote.label, exc)
        return not_evaluated(best_a, str(exc))

    if calc.is_arbitrage:
        logger.info(
            "Arbitrage %s: %s %s @ %s / %s %s @ %s, ROI %.2f%%",
            quote.event_id,
            best_a.quote.label, best_a.quote.bookmaker_key, best_a.price,
            best_b.quote.label, best_b.quote.bookmaker_key, best_b.price,
            calc.roi_pct,
        )
    return ArbitrageResult(
        event_id=quote.event_id,
        market=quote.market,
        status=ARB_OPPORTUNITY if calc.is_arbitrage else ARB_NONE,
        legs=(best_a, best_b),
        calc=calc,
    )


def not_evaluated(best: ScoredQuote, reason: Optional[str] = None) -> ArbitrageResult:
    """Placeholder result for a group whose opposite side is unavailable."""
    return ArbitrageResult(
        event_id=best.quote.event_id,
        market=best.quote.market,
        status=ARB_NOT_EVALUATED,
        legs=(best,),
        reason=reason,
    )
