"""
Best-price selection with a bookmaker-priority tie-break.

Ordering
--------
1. Most favourable price to the bettor.  Between two positive prices the
   higher wins; between two negative prices the one nearer zero wins; any
   positive price beats any negative price (so +100 beats −100 even though
   both pay 2.0).
2. Bookmaker priority from :attr:`EngineConfig.bookmaker_priority`.
   Unlisted books follow all listed ones, alphabetically by key.

The same ordering drives the drill-down breakdown, so the first row of the
breakdown is always the surfaced best quote.
"""

from typing import Iterable, List, Optional, Sequence

from edge_engine.core.engine_config import EngineConfig
from edge_engine.domain import ScoredQuote


def is_better_price(candidate: int, current: int) -> bool:
    """True if ``candidate`` pays the bettor strictly more than ``current``."""
    if candidate > 0 and current < 0:
        return True
    if candidate < 0 and current > 0:
        return False
    return candidate > current


def price_rank(price: int) -> tuple:
    """Sort key (ascending = better) for an American price."""
    if price > 0:
        return (0, -price)
    return (1, -price)


def rank_quotes(
    scored: Iterable[ScoredQuote],
    config: EngineConfig,
) -> List[ScoredQuote]:
    """Return ``scored`` ordered best-first by price, then bookmaker priority."""
    return sorted(
        scored,
        key=lambda s: (price_rank(s.price), config.priority_index(s.bookmaker_key)),
    )


def select_best(
    scored: Sequence[ScoredQuote],
    config: EngineConfig,
    selected_books: Optional[Iterable[str]] = None,
) -> Optional[ScoredQuote]:
    """Pick the single quote to surface for an outcome group.

    Args:
        scored:         Scored quotes of one group.
        config:         Supplies the bookmaker priority list.
        selected_books: Optional allowlist of bookmaker keys.  When given,
                        only those books are eligible; ``None`` or an empty
                        collection means every book is eligible.

    Returns:
        The best eligible quote, or ``None`` if no book is eligible.
    """
    allowed = {b.strip().lower() for b in selected_books or () if b}
    eligible = [s for s in scored if not allowed or s.bookmaker_key in allowed]
    if not eligible:
        return None
    return rank_quotes(eligible, config)[0]
