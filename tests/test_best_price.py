"""
Tests for best-price selection and the bookmaker priority tie-break.
Run with: pytest tests/test_best_price.py -v
"""

from edge_engine.core.engine_config import EngineConfig
from edge_engine.domain import BookmakerQuote, ScoredQuote
from edge_engine.services.best_price import (
    is_better_price,
    rank_quotes,
    select_best,
)


def _s(book, price, ev=None):
    quote = BookmakerQuote(
        event_id="evt1", bookmaker_key=book, bookmaker_title=book.title(),
        market="h2h", outcome="Heat", price=price,
    )
    return ScoredQuote(quote=quote, implied_probability=0.5, ev=ev)


class TestIsBetterPrice:
    """Most favourable to the bettor"""

    def test_positive_prices(self):
        assert is_better_price(150, 130)
        assert not is_better_price(130, 150)

    def test_negative_prices(self):
        assert is_better_price(-105, -110)
        assert not is_better_price(-110, -105)

    def test_positive_beats_negative(self):
        assert is_better_price(100, -100)
        assert is_better_price(101, -105)
        assert not is_better_price(-100, 100)

    def test_equal_is_not_better(self):
        assert not is_better_price(-110, -110)


class TestSelectBest:
    """Single quote surfaced per group"""

    def test_best_price_wins(self):
        cfg = EngineConfig()
        best = select_best([_s("draftkings", -110), _s("fanduel", -105), _s("betmgm", -115)], cfg)
        assert best.bookmaker_key == "fanduel"

    def test_tie_uses_priority(self):
        cfg = EngineConfig(bookmaker_priority=("fanduel", "draftkings"))
        scored = [_s("draftkings", -110), _s("fanduel", -110)]
        for _ in range(5):
            assert select_best(scored, cfg).bookmaker_key == "fanduel"
        assert select_best(scored[::-1], cfg).bookmaker_key == "fanduel"

    def test_priority_order_is_configurable(self):
        cfg = EngineConfig(bookmaker_priority=("draftkings", "fanduel"))
        scored = [_s("fanduel", -110), _s("draftkings", -110)]
        assert select_best(scored, cfg).bookmaker_key == "draftkings"

    def test_unlisted_books_after_listed(self):
        cfg = EngineConfig(bookmaker_priority=("fanduel",))
        scored = [_s("aaa", -110), _s("fanduel", -110), _s("zzz", -110)]
        ranked = rank_quotes(scored, cfg)
        assert [s.bookmaker_key for s in ranked] == ["fanduel", "aaa", "zzz"]

    def test_selected_books(self):
        cfg = EngineConfig()
        scored = [_s("draftkings", -105), _s("fanduel", -110)]
        assert select_best(scored, cfg, ["FanDuel"]).bookmaker_key == "fanduel"

    def test_no_eligible_book(self):
        cfg = EngineConfig()
        assert select_best([_s("draftkings", -105)], cfg, ["fanduel"]) is None
        assert select_best([], cfg) is None

    def test_empty_selection_means_all(self):
        cfg = EngineConfig()
        assert select_best([_s("draftkings", -105)], cfg, []).bookmaker_key == "draftkings"


class TestBreakdown:
    def test_breakdown_starts_with_best(self):
        cfg = EngineConfig()
        scored = [_s("betmgm", -120), _s("draftkings", 105), _s("fanduel", -110)]
        ranked = rank_quotes(scored, cfg)
        assert [s.price for s in ranked] == [105, -110, -120]
        assert ranked[0] is select_best(scored, cfg)
