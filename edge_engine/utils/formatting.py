"""
Display helpers for odds, lines and EV.

Undefined values render as an em dash, never as zero.
"""

from typing import Optional

from edge_engine.core.odds_math import (
    InvalidOdds,
    american_to_decimal,
    american_to_fractional,
)

MISSING = "—"
ODDS_FORMATS = ("american", "decimal", "fractional")


def format_american(price: Optional[int]) -> str:
    if not price:
        return MISSING
    return f"+{price}" if price > 0 else str(price)


def format_odds(price: Optional[int], odds_format: str = "american") -> str:
    """Render an American price in the chosen odds format.

    ``american`` shows an explicit ``+`` on positive prices, ``decimal``
    shows two places, ``fractional`` a reduced ``num/den``.
    """
    if odds_format not in ODDS_FORMATS:
        raise ValueError(f"Unknown odds format {odds_format!r}")
    if not price:
        return MISSING
    try:
        if odds_format == "decimal":
            return f"{american_to_decimal(price):.2f}"
        if odds_format == "fractional":
            return american_to_fractional(price)
    except InvalidOdds:
        return MISSING
    return format_american(price)


def format_line(line: Optional[float], signed: bool = True) -> str:
    """``-3.5``, ``+3.5``, ``47.5``; ``""`` for moneyline."""
    if line is None:
        return ""
    text = f"{line:g}"
    if signed and line > 0:
        text = "+" + text
    return text


def format_ev(ev: Optional[float], places: int = 2) -> str:
    if ev is None:
        return MISSING
    return f"{ev:+.{places}f}%"


def format_probability(prob: Optional[float], places: int = 1) -> str:
    if prob is None:
        return MISSING
    return f"{prob * 100:.{places}f}%"
