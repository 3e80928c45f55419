"""
Snapshot memoisation for the scoring pipeline.

A board is a pure function of (raw snapshot, engine config, call options), so
it can be cached under a content hash of those inputs.  The key is the
SHA-256 of the snapshot serialised as canonical JSON (sorted keys, compact
separators) plus the config fingerprint and options.  Re-polling an
unchanged feed therefore costs one hash instead of a full pipeline run.

Entries expire after ``ttl_seconds`` and the cache holds at most
``max_entries`` boards, evicting the least recently used.
"""

import hashlib
import json
import logging
import os
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from edge_engine.core.engine_config import EngineConfig
from edge_engine.domain import Board

logger = logging.getLogger(__name__)

DEFAULT_TTL_SEC = float(os.getenv("CACHE_TTL_SEC", "60"))
DEFAULT_MAX_ENTRIES = 64


def snapshot_digest(raw_events: Iterable[Dict[str, Any]]) -> str:
    """SHA-256 of a snapshot's canonical JSON form."""
    payload = json.dumps(
        list(raw_events), sort_keys=True, separators=(",", ":"), default=str,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class SnapshotCache:
    """Thread-safe TTL + LRU cache of boards keyed by snapshot hash."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SEC,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._ttl = ttl_seconds
        self._max = max_entries
        self._clock = clock
        self._store: "OrderedDict[str, Tuple[float, Board]]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def key_for(
        raw_events: Iterable[Dict[str, Any]],
        config: EngineConfig,
        **options: Any,
    ) -> str:
        """Cache key for a snapshot, config and pipeline options."""
        digest = hashlib.sha256()
        digest.update(snapshot_digest(raw_events).encode("ascii"))
        digest.update(config.fingerprint().encode("utf-8"))
        digest.update(json.dumps(options, sort_keys=True, default=str).encode("utf-8"))
        return digest.hexdigest()

    def get(self, key: str) -> Optional[Board]:
        with self._lock:
            item = self._store.get(key)
            if item is None:
                return None
            expires, board = item
            if expires <= self._clock():
                del self._store[key]
                return None
            self._store.move_to_end(key)
            return board

    def set(self, key: str, board: Board) -> None:
        with self._lock:
            self._store[key] = (self._clock() + self._ttl, board)
            self._store.move_to_end(key)
            while len(self._store) > self._max:
                evicted, _ = self._store.popitem(last=False)
                logger.debug("Snapshot cache evicted %s", evicted[:12])

    def get_or_compute(self, key: str, compute: Callable[[], Board]) -> Board:
        """Return the cached board for ``key`` or build and store it.

        ``compute`` runs outside the lock; two threads missing on the same
        key may both compute, and the later result wins.
        """
        board = self.get(key)
        if board is not None:
            self.hits += 1
            return board
        self.misses += 1
        board = compute()
        self.set(key, board)
        return board

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
