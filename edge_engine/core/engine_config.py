"""Engine configuration — every tunable of the scoring pipeline in one place.

Nowhere else in the codebase should bookmaker priority tables, sample-size
gates, or point tolerances be hard-coded.  Services receive an
:class:`EngineConfig` and read from it.

Architecture
------------
:class:`EngineConfig` is a frozen dataclass.  Named constructors
(:meth:`EngineConfig.default`, :meth:`EngineConfig.sharp_weighted`) return
pre-populated instances.  Single-field tweaks go through
:func:`dataclasses.replace`::

    from dataclasses import replace
    from edge_engine.core.engine_config import EngineConfig

    cfg = replace(EngineConfig.default(), min_sample_size=2)

The engine never reads environment variables; the HTTP layer builds a
config from request parameters and passes it in.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Final, Literal, Mapping

#: Books surfaced first in comparison views, in display order.
PRIMARY_BOOKS: Final[tuple[str, ...]] = (
    "draftkings",
    "fanduel",
    "caesars",
    "betmgm",
    "pinnacle",
    "novig",
    "prophetx",
)

#: Books that fill out comparison views after :data:`PRIMARY_BOOKS`.
SECONDARY_BOOKS: Final[tuple[str, ...]] = (
    "williamhill_us",
    "pointsbetus",
    "espnbet",
    "betrivers",
    "superbook",
    "wynnbet",
    "unibet_us",
    "twinspires",
    "lowvig",
    "betonlineag",
    "mybookieag",
    "betfair",
    "betfred_us",
    "bet365",
    "betway",
    "circasports",
    "hardrockbet",
    "fanatics",
    "bovada",
    "betus",
    "fliff",
)

#: DFS pick'em apps pay a fixed effective price regardless of the listed odds.
DFS_FIXED_PRICE: Final[int] = -119

DEFAULT_FIXED_PRICE_BOOKS: Final[Mapping[str, int]] = {
    "prizepicks": DFS_FIXED_PRICE,
    "underdog": DFS_FIXED_PRICE,
    "pick6": DFS_FIXED_PRICE,
    "draftkings_pick6": DFS_FIXED_PRICE,
    "dabble_au": DFS_FIXED_PRICE,
}

#: Consensus weights for :meth:`EngineConfig.sharp_weighted`.  Sharp and
#: low-vig books move the weighted median further than retail books.
SHARP_BOOK_WEIGHTS: Final[Mapping[str, float]] = {
    "pinnacle": 3.0,
    "circasports": 2.5,
    "novig": 2.5,
    "prophetx": 2.5,
    "lowvig": 2.0,
    "draftkings": 1.5,
    "fanduel": 1.5,
    "betmgm": 1.5,
    "caesars": 1.5,
    "betrivers": 1.5,
}

DevigMethod = Literal["proportional", "shin"]


@dataclass(frozen=True)
class EngineConfig:
    """Immutable parameter bundle for one pipeline run.

    Attributes:
        bookmaker_priority: Ordered bookmaker keys used as the best-price
            tie-break.  Earlier wins.  Books not listed rank after every
            listed book, alphabetically by key.
        min_sample_size: A fair estimate needs strictly more than this many
            contributing bookmakers.
        point_tolerance: Two lines closer than this are the same line
            (absorbs books quoting −3 against −3.05).
        arb_margin: Safety margin for arbitrage; the summed implied
            probability must fall below ``1 − arb_margin``.
        default_stake: Total stake used when sizing arbitrage legs.
        devig_method: ``"proportional"`` or ``"shin"`` normalisation of
            each book's two-sided quote.
        book_weights: Per-book weights for the unpaired consensus.  Empty
            means a plain median.  Unlisted books weigh 1.0.
        fixed_price_books: Books re-priced at a fixed American price on
            ingest (DFS pick'em apps).  Both mappings are stored read-only
            with lower-cased keys.
        max_abs_price: Prices beyond this magnitude mark a locked market.
        stale_after_minutes: Quotes older than this (relative to the
            caller's ``as_of``) are treated as locked.
        fixed_price_stale_after_minutes: Shorter staleness window for
            fixed-price books, which pull lines faster.
    """

    bookmaker_priority: tuple[str, ...] = PRIMARY_BOOKS + SECONDARY_BOOKS
    min_sample_size: int = 4
    point_tolerance: float = 0.051
    arb_margin: float = 0.02
    default_stake: float = 1000.0
    devig_method: DevigMethod = "proportional"
    book_weights: Mapping[str, float] = field(default_factory=dict)
    fixed_price_books: Mapping[str, int] = field(
        default_factory=lambda: dict(DEFAULT_FIXED_PRICE_BOOKS)
    )
    max_abs_price: int = 5000
    stale_after_minutes: float = 15.0
    fixed_price_stale_after_minutes: float = 5.0

    def __post_init__(self) -> None:
        if self.min_sample_size < 0:
            raise ValueError("min_sample_size must be non-negative")
        if self.point_tolerance <= 0:
            raise ValueError("point_tolerance must be positive")
        if not (0.0 <= self.arb_margin < 1.0):
            raise ValueError("arb_margin must lie in [0, 1)")
        if self.default_stake <= 0:
            raise ValueError("default_stake must be positive")
        if self.devig_method not in ("proportional", "shin"):
            raise ValueError(f"Unknown devig_method {self.devig_method!r}")
        # Normalise keys once so lookups are case-insensitive.
        object.__setattr__(
            self,
            "bookmaker_priority",
            tuple(book.strip().lower() for book in self.bookmaker_priority),
        )
        for name in ("book_weights", "fixed_price_books"):
            mapping = getattr(self, name)
            object.__setattr__(
                self,
                name,
                MappingProxyType({k.strip().lower(): v for k, v in mapping.items()}),
            )

    def __hash__(self) -> int:
        return hash(self.fingerprint())

    # ------------------------------------------------------------------ #
    #  Named constructors                                                  #
    # ------------------------------------------------------------------ #

    @classmethod
    def default(cls) -> EngineConfig:
        """Return the standard configuration (plain-median consensus)."""
        return cls()

    @classmethod
    def sharp_weighted(cls) -> EngineConfig:
        """Return a configuration whose fallback consensus is a weighted
        median favouring sharp and low-vig books."""
        return cls(book_weights=dict(SHARP_BOOK_WEIGHTS))

    # ------------------------------------------------------------------ #
    #  Resolvers                                                           #
    # ------------------------------------------------------------------ #

    def priority_index(self, bookmaker_key: str) -> tuple[int, str]:
        """Sort key for the bookmaker priority tie-break.

        Listed books sort by list position; unlisted books sort after all
        of them, alphabetically.
        """
        key = (bookmaker_key or "").strip().lower()
        try:
            return self.bookmaker_priority.index(key), ""
        except ValueError:
            return len(self.bookmaker_priority), key

    def weight_for(self, bookmaker_key: str) -> float:
        return float(self.book_weights.get((bookmaker_key or "").lower(), 1.0))

    def fixed_price_for(self, bookmaker_key: str) -> int | None:
        return self.fixed_price_books.get((bookmaker_key or "").lower())

    def fingerprint(self) -> str:
        """Stable text form used to key cached results."""
        return repr(
            (
                self.bookmaker_priority,
                self.min_sample_size,
                self.point_tolerance,
                self.arb_margin,
                self.default_stake,
                self.devig_method,
                sorted(self.book_weights.items()),
                sorted(self.fixed_price_books.items()),
                self.max_abs_price,
                self.stale_after_minutes,
                self.fixed_price_stale_after_minutes,
            )
        )

    def __repr__(self) -> str:
        return (
            f"EngineConfig(min_sample_size={self.min_sample_size}, "
            f"point_tolerance={self.point_tolerance}, "
            f"arb_margin={self.arb_margin}, "
            f"devig={self.devig_method!r}, "
            f"books={len(self.bookmaker_priority)})"
        )
