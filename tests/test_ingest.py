"""
Tests for tolerant ingest of raw Odds API events.
Run with: pytest tests/test_ingest.py -v
"""

from datetime import datetime, timedelta, timezone

import pytest

from edge_engine.core.engine_config import EngineConfig
from edge_engine.services.ingest import (
    extract_quotes,
    is_locked,
    parse_point,
    parse_price,
    parse_timestamp,
    split_by_market,
)


NOW = datetime(2025, 1, 5, 18, 0, tzinfo=timezone.utc)


def _book(key, markets, title=None, last_update=None):
    book = {"key": key, "title": title or key.title(), "markets": markets}
    if last_update:
        book["last_update"] = last_update
    return book


def _event(bookmakers, event_id="evt1"):
    return {
        "id": event_id,
        "sport_key": "basketball_nba",
        "commence_time": "2025-01-05T20:00:00Z",
        "home_team": "Boston Celtics",
        "away_team": "Miami Heat",
        "bookmakers": bookmakers,
    }


def _h2h(home_price, away_price):
    return {"key": "h2h", "outcomes": [
        {"name": "Boston Celtics", "price": home_price},
        {"name": "Miami Heat", "price": away_price},
    ]}


class TestFieldParsing:
    """Scalar parsers never raise"""

    def test_price(self):
        assert parse_price(-110) == -110
        assert parse_price("150") == 150
        assert parse_price(-110.0) == -110

    @pytest.mark.parametrize("raw", [0, None, "", "abc", True, float("nan"), "0"])
    def test_unusable_price(self, raw):
        assert parse_price(raw) is None

    def test_point(self):
        assert parse_point(-3.5) == -3.5
        assert parse_point("47.5") == 47.5
        assert parse_point(0) == 0.0

    @pytest.mark.parametrize("raw", [None, "", "N/A", "pk", False])
    def test_malformed_point(self, raw):
        assert parse_point(raw) is None

    def test_timestamp_z_suffix(self):
        ts = parse_timestamp("2025-01-05T18:00:00Z")
        assert ts == NOW

    def test_timestamp_garbage(self):
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp(None) is None


class TestExtractQuotes:
    """Flattening one event"""

    def test_event_fields(self):
        event, quotes, stats = extract_quotes(_event([_book("draftkings", [_h2h(-150, 130)])]), EngineConfig())
        assert event.event_id == "evt1"
        assert event.participants == ("Boston Celtics", "Miami Heat")
        assert event.commence_time == datetime(2025, 1, 5, 20, 0, tzinfo=timezone.utc)
        assert len(quotes) == 2
        assert stats.kept == 2
        assert stats.dropped_total == 0

    def test_moneyline_has_no_line(self):
        _, quotes, _ = extract_quotes(_event([_book("draftkings", [_h2h(-150, 130)])]), EngineConfig())
        assert all(q.line is None for q in quotes)
        assert {q.outcome for q in quotes} == {"Boston Celtics", "Miami Heat"}

    def test_missing_id_is_skipped(self):
        raw = _event([_book("draftkings", [_h2h(-150, 130)])])
        del raw["id"]
        event, quotes, stats = extract_quotes(raw, EngineConfig())
        assert event is None
        assert quotes == []
        assert stats.dropped["malformed_event"] == 1

    def test_bookmaker_without_markets(self):
        raw = _event([_book("draftkings", []), _book("fanduel", [_h2h(-145, 125)])])
        _, quotes, stats = extract_quotes(raw, EngineConfig())
        assert {q.bookmaker_key for q in quotes} == {"fanduel"}
        assert stats.dropped["no_markets"] == 1

    def test_market_without_outcomes(self):
        raw = _event([_book("draftkings", [{"key": "totals", "outcomes": []}, _h2h(-150, 130)])])
        _, quotes, stats = extract_quotes(raw, EngineConfig())
        assert len(quotes) == 2
        assert stats.dropped["no_outcomes"] == 1

    def test_zero_and_null_prices(self):
        market = {"key": "h2h", "outcomes": [
            {"name": "Boston Celtics", "price": 0},
            {"name": "Miami Heat", "price": None},
        ]}
        _, quotes, stats = extract_quotes(_event([_book("draftkings", [market])]), EngineConfig())
        assert quotes == []
        assert stats.dropped["zero_price"] == 2

    def test_malformed_point(self):
        market = {"key": "totals", "outcomes": [
            {"name": "Over", "price": -110, "point": "forty"},
            {"name": "Under", "price": -110, "point": 221.5},
        ]}
        _, quotes, stats = extract_quotes(_event([_book("draftkings", [market])]), EngineConfig())
        assert [q.outcome for q in quotes] == ["Under"]
        assert quotes[0].line == 221.5
        assert stats.dropped["malformed_point"] == 1

    def test_prop_participant_from_description(self):
        market = {"key": "player_points", "outcomes": [
            {"name": "Over", "description": "Jayson Tatum", "price": -115, "point": 27.5},
            {"name": "Under", "description": "Jayson Tatum", "price": -105, "point": 27.5},
        ]}
        _, quotes, _ = extract_quotes(_event([_book("fanduel", [market])]), EngineConfig())
        assert all(q.participant == "Jayson Tatum" for q in quotes)
        assert quotes[0].label == "Jayson Tatum Over 27.5"

    def test_yes_no_prop_without_point(self):
        market = {"key": "player_anytime_td", "outcomes": [
            {"name": "Yes", "description": "J. Allen", "price": 150},
            {"name": "No", "description": "J. Allen", "price": -190},
        ]}
        _, quotes, stats = extract_quotes(_event([_book("fanduel", [market])]), EngineConfig())
        assert [q.outcome for q in quotes] == ["Yes", "No"]
        assert all(q.line is None and q.participant == "J. Allen" for q in quotes)
        assert stats.dropped_total == 0

    def test_over_under_prop_still_needs_point(self):
        market = {"key": "player_points", "outcomes": [
            {"name": "Over", "description": "Jayson Tatum", "price": -115},
            {"name": "Under", "description": "Jayson Tatum", "price": -105, "point": 27.5},
        ]}
        _, quotes, stats = extract_quotes(_event([_book("fanduel", [market])]), EngineConfig())
        assert [q.outcome for q in quotes] == ["Under"]
        assert stats.dropped["malformed_point"] == 1

    def test_bookmaker_keys_lowercased(self):
        _, quotes, _ = extract_quotes(_event([_book("DraftKings", [_h2h(-150, 130)])]), EngineConfig())
        assert quotes[0].bookmaker_key == "draftkings"

    def test_garbage_entries_do_not_raise(self):
        raw = _event(["nonsense", {"title": "No Key"}, _book("fanduel", [None, {"outcomes": []}])])
        event, quotes, stats = extract_quotes(raw, EngineConfig())
        assert event is not None
        assert quotes == []
        assert stats.dropped_total == 4


class TestFixedPriceBooks:
    """DFS apps are re-priced on ingest"""

    def test_reprice(self):
        market = {"key": "player_points", "outcomes": [
            {"name": "Over", "description": "Jayson Tatum", "price": 100, "point": 27.5},
        ]}
        _, quotes, _ = extract_quotes(_event([_book("prizepicks", [market])]), EngineConfig())
        assert quotes[0].price == -119
        assert quotes[0].listed_price == 100

    def test_regular_book_keeps_price(self):
        _, quotes, _ = extract_quotes(_event([_book("draftkings", [_h2h(-150, 130)])]), EngineConfig())
        assert quotes[0].price == -150
        assert quotes[0].listed_price is None


class TestLockedMarkets:
    """Placeholder prices and stale quotes"""

    def test_extreme_price_dropped(self):
        _, quotes, stats = extract_quotes(
            _event([_book("draftkings", [_h2h(-10000, 2500)])]), EngineConfig(),
        )
        assert [q.price for q in quotes] == [2500]
        assert stats.dropped["locked"] == 1

    def test_stale_quote_dropped_only_with_as_of(self):
        stale = (NOW - timedelta(minutes=20)).isoformat()
        raw = _event([_book("draftkings", [_h2h(-150, 130)], last_update=stale)])
        _, quotes, _ = extract_quotes(raw, EngineConfig())
        assert len(quotes) == 2
        _, quotes, stats = extract_quotes(raw, EngineConfig(), as_of=NOW)
        assert quotes == []
        assert stats.dropped["locked"] == 2

    def test_fixed_price_books_go_stale_sooner(self):
        updated = (NOW - timedelta(minutes=7)).isoformat()
        market = {"key": "player_points", "outcomes": [
            {"name": "Over", "description": "Jayson Tatum", "price": -119, "point": 27.5},
        ]}
        raw = _event([
            _book("prizepicks", [market], last_update=updated),
            _book("draftkings", [market], last_update=updated),
        ])
        _, quotes, _ = extract_quotes(raw, EngineConfig(), as_of=NOW)
        assert [q.bookmaker_key for q in quotes] == ["draftkings"]

    def test_is_locked_ignores_missing_timestamp(self):
        _, quotes, _ = extract_quotes(_event([_book("draftkings", [_h2h(-150, 130)])]), EngineConfig())
        assert not is_locked(quotes[0], EngineConfig(), as_of=NOW)


class TestSplitByMarket:
    def test_buckets_in_first_seen_order(self):
        totals = {"key": "totals", "outcomes": [
            {"name": "Over", "price": -110, "point": 221.5},
            {"name": "Under", "price": -110, "point": 221.5},
        ]}
        _, quotes, _ = extract_quotes(
            _event([_book("draftkings", [totals, _h2h(-150, 130)])]), EngineConfig(),
        )
        buckets = split_by_market(quotes)
        assert list(buckets) == ["totals", "h2h"]
        assert len(buckets["h2h"]) == 2
