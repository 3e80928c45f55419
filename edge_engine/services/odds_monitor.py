"""
Polling refresh loop: fetch each configured sport, re-run the pipeline and
keep the latest board in memory.

Design:
    - Runs as an APScheduler interval job (default: every 60 seconds).
    - Every poll rebuilds the board from scratch against the new snapshot;
      nothing carries over between polls except the boards themselves.
    - An unchanged snapshot is served from :class:`SnapshotCache` instead of
      being re-scored.
    - Fires ``on_arbitrage`` callbacks for opportunities not present in the
      previous board.
    - Respects API quota by tracking ``x-requests-remaining``.
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Set, Tuple

from edge_engine.core.engine_config import EngineConfig
from edge_engine.domain import ArbitrageResult, Board
from edge_engine.services.cache import SnapshotCache
from edge_engine.services.odds import OddsAPIClient
from edge_engine.services.pipeline import build_board

logger = logging.getLogger(__name__)

DEFAULT_SPORTS = "basketball_nba,basketball_ncaab,americanfootball_nfl"


def configured_sports() -> List[str]:
    raw = os.getenv("ODDS_SPORTS", DEFAULT_SPORTS)
    return [s.strip() for s in raw.split(",") if s.strip()]


@dataclass
class SportBoard:
    """Latest board for one sport plus the snapshot it was built from."""

    sport: str
    board: Board
    snapshot: List[Dict]
    fetched_at: datetime


def _arb_identity(result: ArbitrageResult) -> Tuple:
    return (result.event_id, result.market) + tuple(
        (leg.quote.outcome, leg.quote.participant, leg.quote.line, leg.bookmaker_key)
        for leg in result.legs
    )


class OddsMonitor:
    """
    Polls The Odds API and keeps a scored board per sport.

    Usage::

        monitor = OddsMonitor()
        monitor.on_arbitrage(my_callback)
        monitor.poll()   # call from APScheduler
    """

    MIN_API_QUOTA_RESERVE = 10    # Stop polling if quota drops below this

    def __init__(
        self,
        api_key: Optional[str] = None,
        sports: Optional[List[str]] = None,
        config: Optional[EngineConfig] = None,
        client: Optional[OddsAPIClient] = None,
        cache: Optional[SnapshotCache] = None,
    ):
        self._client = client or OddsAPIClient(api_key=api_key)
        self.sports = sports or configured_sports()
        self.config = config or EngineConfig.default()
        self._cache = cache or SnapshotCache()
        self._boards: Dict[str, SportBoard] = {}
        self._callbacks: List[Callable[[ArbitrageResult], None]] = []
        self._last_poll: Optional[datetime] = None

    # ------------------------------------------------------------------
    # Callback registration
    # ------------------------------------------------------------------

    def on_arbitrage(self, callback: Callable[[ArbitrageResult], None]) -> None:
        """Register a callback fired for each newly detected arbitrage."""
        self._callbacks.append(callback)

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    @property
    def polls_remaining(self) -> Optional[int]:
        return self._client.requests_remaining

    def poll(self) -> Dict:
        """
        Fetch every configured sport, rebuild boards and fire callbacks.

        Returns a summary dict for logging / the status endpoint.
        """
        now = datetime.now(timezone.utc)

        # Quota guard
        remaining = self.polls_remaining
        if remaining is not None and remaining < self.MIN_API_QUOTA_RESERVE:
            logger.warning(
                "Odds monitor paused, API quota low (%d remaining)", remaining,
            )
            return {"status": "quota_paused", "remaining": remaining}

        refreshed = 0
        new_arbs: List[ArbitrageResult] = []
        for sport in self.sports:
            events = self._client.get_odds(sport)
            if not events and sport in self._boards:
                logger.info("No events for %s this poll; keeping previous board", sport)
                continue

            key = SnapshotCache.key_for(events, self.config)
            board = self._cache.get_or_compute(
                key, lambda: build_board(events, self.config, as_of=now),
            )
            previous = self._boards.get(sport)
            seen: Set[Tuple] = (
                {_arb_identity(a) for a in previous.board.opportunities()}
                if previous else set()
            )
            new_arbs.extend(a for a in board.opportunities() if _arb_identity(a) not in seen)

            self._boards[sport] = SportBoard(
                sport=sport, board=board, snapshot=events, fetched_at=now,
            )
            refreshed += 1

        for arb in new_arbs:
            for cb in self._callbacks:
                try:
                    cb(arb)
                except Exception as exc:
                    logger.error("Odds monitor callback error: %s", exc)

        self._last_poll = now

        picks = sum(len(b.board.all_picks()) for b in self._boards.values())
        result = {
            "status": "ok",
            "sports_refreshed": refreshed,
            "picks": picks,
            "new_arbitrage": len(new_arbs),
            "timestamp": now.isoformat(),
        }
        logger.info(
            "Odds monitor: %d sports refreshed, %d picks, %d new arbs",
            refreshed, picks, len(new_arbs),
        )
        return result

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def get_board(self, sport: str) -> Optional[SportBoard]:
        """Latest board for ``sport``, or ``None`` before its first poll."""
        return self._boards.get(sport)

    def get_status(self) -> Dict:
        """Return monitor status for the health endpoint."""
        return {
            "active": True,
            "sports": list(self.sports),
            "boards": sorted(self._boards),
            "last_poll": self._last_poll.isoformat() if self._last_poll else None,
            "polls_remaining": self.polls_remaining,
            "cache_entries": len(self._cache),
        }


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_odds_monitor: Optional[OddsMonitor] = None


def get_odds_monitor() -> OddsMonitor:
    global _odds_monitor
    if _odds_monitor is None:
        _odds_monitor = OddsMonitor()
    return _odds_monitor
