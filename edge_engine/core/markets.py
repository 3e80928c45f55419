"""Market classification and display labels.

The Odds API names markets with free-form keys (``h2h``, ``spreads_q1``,
``alternate_totals``, ``player_pass_yds`` …).  The engine only cares which
*kind* of market a key belongs to, because the kind decides how outcomes are
grouped and which outcome is the complement of which.
"""

from __future__ import annotations

from typing import Final

MONEYLINE: Final[str] = "moneyline"
SPREAD: Final[str] = "spread"
TOTAL: Final[str] = "total"
PROP: Final[str] = "prop"
OTHER: Final[str] = "other"

#: Key prefixes of per-player markets.
PROP_PREFIXES: Final[tuple[str, ...]] = ("player_", "batter_", "pitcher_")

#: Sides that form a complementary pair inside one total or prop line.
OPPOSITE_SIDES: Final[dict[str, str]] = {
    "over": "under",
    "under": "over",
    "yes": "no",
    "no": "yes",
}

#: Prop sides that are quoted against a line.
LINE_SIDES: Final[tuple[str, ...]] = ("over", "under")

MARKET_LABELS: Final[dict[str, str]] = {
    "h2h": "MONEYLINE",
    "spreads": "SPREAD",
    "totals": "TOTALS",
    "h2h_h1": "1H MONEYLINE",
    "spreads_h1": "1H SPREAD",
    "totals_h1": "1H TOTALS",
    "h2h_q1": "1Q MONEYLINE",
    "spreads_q1": "1Q SPREAD",
    "totals_q1": "1Q TOTALS",
    "alternate_spreads": "ALT SPREAD",
    "alternate_totals": "ALT TOTALS",
    "team_totals": "TEAM TOTALS",
}


def classify_market(market_key: str) -> str:
    """Return the market kind for an Odds API market key.

    Examples::

        classify_market("h2h")               → "moneyline"
        classify_market("spreads_q1")        → "spread"
        classify_market("alternate_totals")  → "total"
        classify_market("player_pass_yds")   → "prop"
    """
    key = (market_key or "").strip().lower()
    if key.startswith(PROP_PREFIXES):
        return PROP
    if key == "h2h" or key.startswith("h2h_"):
        return MONEYLINE
    if "spread" in key:
        return SPREAD
    if "total" in key:
        return TOTAL
    return OTHER


def needs_line(kind: str, outcome: str | None = None) -> bool:
    """True when an outcome is only meaningful with a line.

    Spreads and totals always carry one.  Props need one only on their
    Over/Under sides; Yes/No props (anytime scorer and the like) have none.
    """
    if kind in (SPREAD, TOTAL):
        return True
    if kind == PROP:
        return (outcome or "").strip().lower() in LINE_SIDES
    return False


def opposite_side(side: str) -> str | None:
    return OPPOSITE_SIDES.get((side or "").strip().lower())


def market_label(market_key: str) -> str:
    """Human-readable label for a market key.

    Unknown keys fall back to the key with any ``player_`` prefix stripped,
    upper-cased and with underscores as spaces.
    """
    key = (market_key or "").strip().lower()
    if key in MARKET_LABELS:
        return MARKET_LABELS[key]
    for prefix in PROP_PREFIXES:
        if key.startswith(prefix):
            key = key[len(prefix):]
            break
    return key.replace("_", " ").upper()
