"""
The Odds API integration: raw event snapshots for the scoring pipeline.
https://the-odds-api.com/

The client returns the feed's JSON untouched.  Parsing, grouping and
scoring all happen in the engine (:mod:`edge_engine.services.pipeline`), so
a snapshot fetched here can be replayed through :func:`build_board` or
posted to ``POST /api/score`` verbatim.

Featured markets (``h2h``, ``spreads``, ``totals``) come from the sport-wide
``/odds`` endpoint.  Player props and alternate lines are only served per
event, through ``/events/{id}/odds``.
"""

import logging
import os
from typing import Dict, List, Optional

import requests
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

BASE_URL = "https://api.the-odds-api.com/v4"
REQUEST_TIMEOUT_SEC = 10

DEFAULT_MARKETS = "h2h,spreads,totals"
DEFAULT_REGIONS = "us,us2,eu"


class OddsAPIClient:
    """Client for The Odds API"""

    def __init__(self, api_key: Optional[str] = None, session: Optional[requests.Session] = None):
        self.api_key = api_key or os.getenv("THE_ODDS_API_KEY")
        if not self.api_key:
            raise ValueError("THE_ODDS_API_KEY not set in environment")
        self._session = session or requests.Session()
        self.requests_remaining: Optional[int] = None
        self.requests_used: Optional[int] = None

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _get(self, path: str, params: Dict) -> Optional[object]:
        url = f"{BASE_URL}{path}"
        query = {"apiKey": self.api_key, **params}
        try:
            response = self._session.get(url, params=query, timeout=REQUEST_TIMEOUT_SEC)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            logger.error("Odds API error on %s: %s", path, e)
            return None
        except ValueError as e:
            logger.error("Odds API returned invalid JSON on %s: %s", path, e)
            return None

        self._record_quota(response.headers)
        return data

    def _record_quota(self, headers) -> None:
        remaining = headers.get("x-requests-remaining")
        used = headers.get("x-requests-used")
        try:
            self.requests_remaining = int(float(remaining)) if remaining is not None else None
            self.requests_used = int(float(used)) if used is not None else None
        except (TypeError, ValueError):
            logger.debug("Unparseable quota headers: used=%r remaining=%r", used, remaining)

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    def get_sports(self, include_inactive: bool = False) -> List[Dict]:
        """List sports the feed covers (does not count against quota)."""
        params = {"all": "true"} if include_inactive else {}
        data = self._get("/sports", params)
        return data if isinstance(data, list) else []

    def get_odds(
        self,
        sport: str,
        markets: str = os.getenv("ODDS_API_MARKETS", DEFAULT_MARKETS),
        regions: str = os.getenv("ODDS_API_REGIONS", DEFAULT_REGIONS),
        odds_format: str = "american",
        bookmakers: Optional[List[str]] = None,
    ) -> List[Dict]:
        """
        Fetch current odds for every upcoming event of ``sport``.

        Args:
            sport:      Sport key, e.g. ``"basketball_nba"``.
            markets:    Comma-separated market keys.
            regions:    Comma-separated bookmaker regions.
            odds_format: Always ``"american"`` for the engine.
            bookmakers: Optional explicit bookmaker keys (overrides regions).

        Returns:
            List of raw event dicts; empty on any HTTP or decode error.
        """
        params = {
            "regions": regions,
            "markets": markets,
            "oddsFormat": odds_format,
        }
        if bookmakers:
            params["bookmakers"] = ",".join(bookmakers)

        data = self._get(f"/sports/{sport}/odds", params)
        if not isinstance(data, list):
            return []
        logger.info(
            "Odds API: %d %s events fetched. Quota: %s used, %s remaining",
            len(data), sport, self.requests_used, self.requests_remaining,
        )
        return data

    def get_event_odds(
        self,
        sport: str,
        event_id: str,
        markets: str,
        regions: str = os.getenv("ODDS_API_REGIONS", DEFAULT_REGIONS),
        odds_format: str = "american",
    ) -> Optional[Dict]:
        """
        Fetch one event's odds for markets only served per event
        (player props, alternate lines, period markets).

        Returns the raw event dict, or ``None`` on error.
        """
        params = {
            "regions": regions,
            "markets": markets,
            "oddsFormat": odds_format,
        }
        data = self._get(f"/sports/{sport}/events/{event_id}/odds", params)
        if not isinstance(data, dict):
            return None
        logger.info(
            "Event odds %s: %d bookmakers. Remaining: %s",
            event_id, len(data.get("bookmakers") or []), self.requests_remaining,
        )
        return data
