"""
Tests for the snapshot cache.
Run with: pytest tests/test_cache.py -v
"""

from dataclasses import replace
from unittest.mock import MagicMock

import pytest

from edge_engine.core.engine_config import EngineConfig
from edge_engine.domain import Board
from edge_engine.services.cache import SnapshotCache, snapshot_digest


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


SNAPSHOT = [{"id": "evt1", "bookmakers": [{"key": "draftkings", "markets": []}]}]


class TestKeys:
    """Content-addressed cache keys"""

    def test_digest_ignores_key_order(self):
        a = [{"id": "evt1", "home_team": "A", "away_team": "B"}]
        b = [{"away_team": "B", "home_team": "A", "id": "evt1"}]
        assert snapshot_digest(a) == snapshot_digest(b)

    def test_digest_changes_with_prices(self):
        a = [{"id": "evt1", "price": -110}]
        b = [{"id": "evt1", "price": -105}]
        assert snapshot_digest(a) != snapshot_digest(b)

    def test_config_is_part_of_key(self):
        cfg = EngineConfig()
        assert SnapshotCache.key_for(SNAPSHOT, cfg) != SnapshotCache.key_for(
            SNAPSHOT, replace(cfg, min_sample_size=2)
        )

    def test_options_are_part_of_key(self):
        cfg = EngineConfig()
        assert SnapshotCache.key_for(SNAPSHOT, cfg) != SnapshotCache.key_for(
            SNAPSHOT, cfg, selected_books=["fanduel"]
        )


class TestGetOrCompute:
    def test_hit_skips_compute(self):
        cache = SnapshotCache()
        compute = MagicMock(return_value=Board())
        first = cache.get_or_compute("k", compute)
        second = cache.get_or_compute("k", compute)
        assert first is second
        assert compute.call_count == 1
        assert cache.hits == 1
        assert cache.misses == 1

    def test_ttl_expiry(self):
        clock = FakeClock()
        cache = SnapshotCache(ttl_seconds=30, clock=clock)
        compute = MagicMock(side_effect=lambda: Board())
        cache.get_or_compute("k", compute)
        clock.now += 29
        cache.get_or_compute("k", compute)
        assert compute.call_count == 1
        clock.now += 2
        cache.get_or_compute("k", compute)
        assert compute.call_count == 2

    def test_lru_bound(self):
        cache = SnapshotCache(max_entries=2)
        cache.set("a", Board())
        cache.set("b", Board())
        assert cache.get("a") is not None
        cache.set("c", Board())
        assert len(cache) == 2
        assert cache.get("b") is None
        assert cache.get("a") is not None

    def test_clear(self):
        cache = SnapshotCache()
        cache.set("a", Board())
        cache.clear()
        assert cache.get("a") is None

    def test_invalid_bound(self):
        with pytest.raises(ValueError):
            SnapshotCache(max_entries=0)
