"""
espn_client.py
--------------

Thin client for ESPN's (undocumented) Fantasy Football API.

Every call is a GET with the league cookies attached and, where the endpoint
supports it, an `x-fantasy-filter` header carrying a JSON filter payload.
Credentials and the rate limiter are passed in at construction so several
clients (one per user / league) can coexist in one process.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Dict, List, Optional

import requests  # type: ignore[import]

from config import (  # type: ignore[import]
    ESPN_BASE_URL,
    ESPN_NEWS_URL,
    ESPN_TIMEOUT,
)
from models import FreeAgentRecord  # type: ignore[import]


logger = logging.getLogger(__name__)


class EspnError(RuntimeError):
    """Raised when ESPN is unreachable or answers with something unusable."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimiter:
    """
    Enforce a minimum gap between consecutive upstream calls.

    `clock` and `sleep` are swappable so tests don't have to actually wait.
    """

    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.min_interval = max(0.0, float(min_interval))
        self._clock = clock
        self._sleep = sleep
        self._last_call: Optional[float] = None

    def wait(self) -> None:
        now = self._clock()
        if self._last_call is not None:
            remaining = self.min_interval - (now - self._last_call)
            if remaining > 0:
                self._sleep(remaining)
                now = self._clock()
        self._last_call = now


def free_agent_filter(
    position_slot_id: int, limit: int = 50, offset: int = 0, season: Optional[int] = None
) -> Dict[str, Any]:
    """
    Build the x-fantasy-filter payload for available players at one slot,
    most-rostered first.
    """
    players: Dict[str, Any] = {
        "filterStatus": {"value": ["FREEAGENT", "WAIVERS"]},
        "filterSlotIds": {"value": [position_slot_id]},
        "sortPercOwned": {"sortPriority": 1, "sortAsc": False},
        "limit": limit,
        "offset": offset,
    }
    if season is not None:
        # Season actuals ("00{season}") and projections ("10{season}").
        players["filterStatsForTopScoringPeriodIds"] = {
            "value": 2,
            "additionalValue": [f"00{season}", f"10{season}"],
        }
    return {"players": players}


class EspnClient:
    def __init__(
        self,
        espn_s2: str = "",
        swid: str = "",
        base_url: str = ESPN_BASE_URL,
        news_url: str = ESPN_NEWS_URL,
        timeout: float = ESPN_TIMEOUT,
        rate_limiter: Optional[RateLimiter] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.news_url = news_url
        self.timeout = timeout
        self.rate_limiter = rate_limiter
        self.has_credentials = bool(espn_s2 and swid)

        self.session = session or requests.Session()
        if espn_s2:
            self.session.cookies.set("espn_s2", espn_s2, domain=".espn.com")
        if swid:
            self.session.cookies.set("SWID", swid, domain=".espn.com")

    # ---------- core ----------

    def get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        filter: Optional[Dict[str, Any]] = None,
    ) -> Any:
        headers: Dict[str, str] = {}
        if filter is not None:
            headers["x-fantasy-filter"] = json.dumps(filter)

        if self.rate_limiter is not None:
            self.rate_limiter.wait()

        logger.debug("ESPN GET %s params=%s", url, params)
        try:
            resp = self.session.get(url, params=params, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise EspnError(f"ESPN request failed: {exc}") from exc

        if not resp.ok:
            raise EspnError(f"ESPN {resp.status_code}: {resp.text[:200]}", resp.status_code)

        try:
            return resp.json()
        except ValueError as exc:
            raise EspnError(
                f"ESPN returned non-JSON response ({resp.status_code})", resp.status_code
            ) from exc

    # ---------- proxied views ----------

    def league(self, season: int, league_id: str, view: Optional[str] = None) -> Any:
        url = f"{self.base_url}/seasons/{season}/segments/0/leagues/{league_id}"
        return self.get_json(url, params={"view": view or "mTeam,mRoster,mSettings,mNav"})

    def league_history(self, league_id: str, season: int, view: Optional[str] = None) -> Any:
        url = f"{self.base_url}/leagueHistory/{league_id}"
        return self.get_json(
            url, params={"seasonId": season, "view": view or "mTeam,mRoster,mSettings"}
        )

    def players(self, season: int, filter: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}/seasons/{season}/players"
        return self.get_json(url, params={"view": "players_wl"}, filter=filter)

    def player_info(
        self, season: int, filter: Optional[Dict[str, Any]] = None, ppr_id: int = 0
    ) -> Any:
        url = f"{self.base_url}/seasons/{season}/segments/0/leaguedefaults/{ppr_id}"
        return self.get_json(url, params={"view": "kona_player_info"}, filter=filter)

    def pro_team_schedules(self, season: int) -> Any:
        url = f"{self.base_url}/seasons/{season}"
        return self.get_json(url, params={"view": "proTeamSchedules_wl"})

    def news(self, player_id: int, limit: int = 10) -> Any:
        return self.get_json(self.news_url, params={"playerId": player_id, "limit": limit})

    # ---------- typed helpers ----------

    def get_free_agents(
        self, season: int, position_slot_id: int, limit: int = 50
    ) -> List[FreeAgentRecord]:
        """
        Available players at one lineup slot, with season + weekly stats.
        """
        data = self.player_info(
            season, filter=free_agent_filter(position_slot_id, limit=limit, season=season)
        )
        raw_players = extract_players(data)
        records = [FreeAgentRecord.from_espn(p) for p in raw_players if isinstance(p, dict)]
        logger.info(
            "Fetched %d free agents for slot %s (season %s)",
            len(records), position_slot_id, season,
        )
        return records

    def get_bye_weeks(self, season: int) -> Dict[str, int]:
        """
        Map team abbreviation -> bye week.
        """
        data = self.pro_team_schedules(season)
        bye_weeks: Dict[str, int] = {}
        teams = ((data or {}).get("settings") or {}).get("proTeams") or []
        for team in teams:
            abbrev = team.get("abbrev")
            bye = team.get("byeWeek")
            if abbrev and bye:
                bye_weeks[abbrev.upper()] = int(bye)
        return bye_weeks


def extract_players(data: Any) -> List[Any]:
    """
    ESPN answers either {"players": [...]} or a bare list depending on view.
    """
    if isinstance(data, dict):
        return list(data.get("players") or [])
    if isinstance(data, list):
        return data
    return []
