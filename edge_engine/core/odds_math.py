"""Fundamental odds mathematics — the single source of truth.

Every function here is **pure**: no I/O, no logging, no side effects.
Import from this module; never reimplement locally in services.

The pillars exposed are:

1. **Odds conversion** — American ↔ decimal ↔ fractional ↔ implied probability.
2. **Pair normalisation** — proportional or Shin (1993) removal of the
   bookmaker margin from a single book's two-sided quote.
3. **Robust aggregation** — median and weighted median over per-book
   probabilities.

Design decisions
----------------
* American odds are the working currency because The Odds API returns them
  when queried with ``oddsFormat=american``.  Zero is the only American
  value with no meaning and is rejected with :class:`InvalidOdds`.
* :func:`decimal_to_american` returns an **unrounded** float so that
  ``american_to_decimal(decimal_to_american(d)) == d`` to machine precision.
  Use :func:`round_american` when an integer is needed for display.
* Medians always sort their input first.  The result never depends on the
  order in which books were visited, which keeps parallel evaluation
  deterministic.

Run tests with::

    pytest tests/test_odds_math.py -v
"""

from __future__ import annotations

import math
from typing import Final, Sequence

import numpy as np

# ---------------------------------------------------------------------------
# Module-level constants
# ---------------------------------------------------------------------------

#: Divisor of the American convention: positive odds pay ``odds`` per 100
#: staked, negative odds require ``|odds|`` staked to win 100.
_AMERICAN_BASE: Final[float] = 100.0

#: Symmetry threshold for the Shin short-circuit.  Near even money the Shin
#: and proportional results coincide and the insider estimate is noise.
_SHIN_SYMMETRY_TOL: Final[float] = 1e-3

#: Bisection convergence tolerance for the Shin solve.
_SHIN_INNER_TOL: Final[float] = 1e-10

#: Maximum iterations for the Shin bisection.
_SHIN_MAX_ITER: Final[int] = 200

#: Overround floor below which a pair is treated as already margin-free.
_MIN_OVERROUND: Final[float] = 1.001


class InvalidOdds(ValueError):
    """A price, decimal or probability outside its valid domain."""


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _check_american(american: int | float) -> float:
    try:
        value = float(american)
    except (TypeError, ValueError) as exc:
        raise InvalidOdds(f"American odds {american!r} are not numeric") from exc
    if not math.isfinite(value) or value == 0.0:
        raise InvalidOdds(f"American odds {american!r} are undefined (zero or non-finite)")
    return value


def _check_decimal(decimal_odds: float) -> float:
    try:
        value = float(decimal_odds)
    except (TypeError, ValueError) as exc:
        raise InvalidOdds(f"Decimal odds {decimal_odds!r} are not numeric") from exc
    if not math.isfinite(value) or value <= 1.0:
        raise InvalidOdds(f"Decimal odds {decimal_odds!r} must be > 1.0")
    return value


def _check_probability(prob: float) -> float:
    try:
        value = float(prob)
    except (TypeError, ValueError) as exc:
        raise InvalidOdds(f"Probability {prob!r} is not numeric") from exc
    if not (0.0 < value < 1.0):
        raise InvalidOdds(f"Probability {prob!r} must lie strictly inside (0, 1)")
    return value


# ---------------------------------------------------------------------------
# Odds conversion
# ---------------------------------------------------------------------------


def american_to_probability(american: int | float) -> float:
    """Raw implied probability from American odds (vig-inclusive).

    Examples::

        american_to_probability(-110) → 0.5238
        american_to_probability(+150) → 0.4000

    Raises:
        InvalidOdds: If ``american`` is zero or non-finite.
    """
    value = _check_american(american)
    if value > 0:
        return _AMERICAN_BASE / (value + _AMERICAN_BASE)
    return -value / (-value + _AMERICAN_BASE)


def american_to_decimal(american: int | float) -> float:
    """Convert American odds to decimal (European) format.

    Decimal odds are the total payout per unit staked, stake included::

        american_to_decimal(-110) → 1.9091
        american_to_decimal(+150) → 2.5000

    Raises:
        InvalidOdds: If ``american`` is zero or non-finite.
    """
    value = _check_american(american)
    if value > 0:
        return value / _AMERICAN_BASE + 1.0
    return _AMERICAN_BASE / abs(value) + 1.0


def decimal_to_american(decimal_odds: float) -> float:
    """Convert decimal odds to (unrounded) American odds.

    Values ≥ 2.0 map to positive (underdog) odds, values below 2.0 to
    negative (favourite) odds.  Even money (decimal 2.0) is always returned
    as ``+100``, so ``-100`` comes back as ``+100`` after a round trip
    through :func:`american_to_decimal`; both denote the same price.

    Raises:
        InvalidOdds: If ``decimal_odds <= 1.0``; American odds have no
            representation for a payout that does not exceed the stake.
    """
    value = _check_decimal(decimal_odds)
    if value >= 2.0:
        return (value - 1.0) * _AMERICAN_BASE
    return -_AMERICAN_BASE / (value - 1.0)


def round_american(american: float) -> int:
    """Round an American price to the nearest integer for display.

    ``-100`` and ``+100`` are the same price; the positive form is returned.
    """
    rounded = int(round(american))
    return 100 if rounded == -100 else rounded


def probability_to_decimal(prob: float) -> float:
    """Fair decimal price for a probability in ``(0, 1)``."""
    return 1.0 / _check_probability(prob)


def decimal_to_probability(decimal_odds: float) -> float:
    """Implied probability of decimal odds."""
    return 1.0 / _check_decimal(decimal_odds)


def probability_to_american(prob: float) -> int:
    """Fair American price (rounded) for a probability in ``(0, 1)``."""
    return round_american(decimal_to_american(probability_to_decimal(prob)))


def american_to_fractional(american: int | float) -> str:
    """Convert American odds to a reduced fractional string.

    Examples::

        american_to_fractional(+150) → "3/2"
        american_to_fractional(-200) → "1/2"
        american_to_fractional(-110) → "10/11"
    """
    value = _check_american(american)
    if value > 0:
        num, den = int(round(value)), 100
    else:
        num, den = 100, int(round(abs(value)))
    divisor = math.gcd(num, den) or 1
    return f"{num // divisor}/{den // divisor}"


def fractional_to_decimal(fractional: str) -> float:
    """Convert a ``"num/den"`` fractional price to decimal odds.

    Raises:
        InvalidOdds: If the string is malformed or the fraction is not positive.
    """
    try:
        num_text, den_text = str(fractional).split("/")
        num, den = float(num_text), float(den_text)
    except ValueError as exc:
        raise InvalidOdds(f"Fractional odds {fractional!r} are malformed") from exc
    if den <= 0 or num <= 0:
        raise InvalidOdds(f"Fractional odds {fractional!r} must be positive")
    return num / den + 1.0


# ---------------------------------------------------------------------------
# Pair normalisation
# ---------------------------------------------------------------------------


def normalize_pair(
    odds_a: int | float,
    odds_b: int | float,
) -> tuple[float, float]:
    """Proportional no-vig probabilities for one book's two-sided quote.

    Each raw implied probability is divided by the overround
    ``K = p_a + p_b``, so the returned pair sums to exactly 1.0.

    Raises:
        InvalidOdds: If either price is zero or non-finite.
    """
    raw_a = american_to_probability(odds_a)
    raw_b = american_to_probability(odds_b)
    total = raw_a + raw_b
    return raw_a / total, raw_b / total


def _shin_probability(raw: float, overround: float, z: float) -> float:
    return (math.sqrt(z * z + 4.0 * (1.0 - z) * raw * raw / overround) - z) / (2.0 * (1.0 - z))


def remove_vig_shin(
    odds_a: int | float,
    odds_b: int | float,
    *,
    inner_tol: float = _SHIN_INNER_TOL,
    max_iter: int = _SHIN_MAX_ITER,
) -> tuple[float, float]:
    """No-vig probabilities for a two-way quote via the Shin (1993) method.

    Shin attributes the overround to a fraction ``z`` of informed volume.
    For raw implied probabilities ``π_i`` with overround ``K = Σ π_i``::

        p_i(z) = (√(z² + 4(1 − z)·π_i² / K) − z) / (2(1 − z))

    ``z`` is the root of ``Σ p_i(z) = 1`` on ``[0, 0.5)``, found by
    bisection (the sum falls monotonically from ``√K`` as ``z`` grows).
    Relative to proportional normalisation the favourite's probability is
    shaded up and the longshot's down.  Near-even markets and pairs with no
    measurable margin fall back to proportional normalisation.

    Returns:
        ``(true_prob_a, true_prob_b)`` summing to 1.0.

    Raises:
        InvalidOdds: If either price is zero or non-finite.
    """
    raw_a = american_to_probability(odds_a)
    raw_b = american_to_probability(odds_b)
    overround = raw_a + raw_b
    q_a = raw_a / overround
    q_b = raw_b / overround

    if overround < _MIN_OVERROUND or abs(q_a - 0.5) < _SHIN_SYMMETRY_TOL:
        return q_a, q_b

    lo, hi = 0.0, 0.499
    for _ in range(max_iter):
        z = (lo + hi) * 0.5
        total = _shin_probability(raw_a, overround, z) + _shin_probability(raw_b, overround, z)
        if total > 1.0:
            lo = z
        else:
            hi = z
        if (hi - lo) < inner_tol:
            break

    z = (lo + hi) * 0.5
    p_a = _shin_probability(raw_a, overround, z)
    p_b = _shin_probability(raw_b, overround, z)
    total = p_a + p_b
    return p_a / total, p_b / total


# ---------------------------------------------------------------------------
# Robust aggregation
# ---------------------------------------------------------------------------


def median(values: Sequence[float]) -> float | None:
    """Median of ``values`` or ``None`` when empty.

    Even-length inputs average the two central values.
    """
    if not values:
        return None
    return float(np.median(np.sort(np.asarray(values, dtype=float))))


def weighted_median(
    values: Sequence[float],
    weights: Sequence[float],
) -> float | None:
    """Weighted median: the first sorted value whose cumulative weight
    reaches half the total weight.

    When the cumulative weight lands exactly on the half the value is
    averaged with its successor, so equal weights reproduce :func:`median`.
    Mismatched ``weights`` fall back to the unweighted median.
    """
    if not values:
        return None
    if len(weights) != len(values):
        return median(values)

    order = np.argsort(np.asarray(values, dtype=float), kind="stable")
    sorted_values = np.asarray(values, dtype=float)[order]
    sorted_weights = np.asarray(weights, dtype=float)[order]
    half = sorted_weights.sum() / 2.0

    cumulative = 0.0
    for idx, (value, weight) in enumerate(zip(sorted_values, sorted_weights)):
        cumulative += weight
        if cumulative >= half:
            if math.isclose(cumulative, half) and idx < len(sorted_values) - 1:
                return float((value + sorted_values[idx + 1]) / 2.0)
            return float(value)
    return float(sorted_values[-1])
