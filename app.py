# app.py
#
# FastAPI server for the fantasy helper.
# Exposes:
#   GET  /api/health
#   /api/espn/*            thin proxies onto ESPN's fantasy API
#   POST /api/espn/waiver-analysis
#   /api/players, /api/roster, /api/watchlist, /api/news   local store
#   POST /admin/migrate
#
# Start with:
#   uvicorn app:app --reload

import logging
import sqlite3
from dataclasses import asdict
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request  # type: ignore[import]
from fastapi.middleware.cors import CORSMiddleware  # type: ignore[import]
from pydantic import BaseModel  # type: ignore[import]

from config import (  # type: ignore[import]
    ESPN_LEAGUE_ID,
    ESPN_S2,
    ESPN_SWID,
    LOG_LEVEL,
    OFFLINE_MODE,
    POSITION_SLOT_IDS,
    ROSTER_SLOTS,
    SEASON_YEAR,
)
from espn_client import EspnClient, EspnError  # type: ignore[import]
from models import RosterEntry  # type: ignore[import]
from sample_data import sample_free_agents  # type: ignore[import]
from store import (  # type: ignore[import]
    MissingTableError,
    StoreError,
    add_news,
    add_to_roster,
    add_to_watchlist,
    database_status,
    get_roster,
    get_roster_for_position,
    get_watchlist,
    init_db,
    list_news,
    list_players,
    remove_from_roster,
    remove_from_watchlist,
    upsert_player,
    upsert_players,
)
from waiver_analysis import (  # type: ignore[import]
    analyze_free_agents,
    clamp_limit,
    normalize_position,
)

logger = logging.getLogger(__name__)

API_VERSION = "1.0"


# ---------------------------------------------------------------------------
# Pydantic request / response models
# ---------------------------------------------------------------------------

class WaiverAnalysisRequest(BaseModel):
    # position / limit accept any JSON value; the route maps bad ones to
    # RB / 25 via normalize_position and clamp_limit.
    season: Optional[int] = None
    position: Any = "RB"
    currentPlayerIds: List[int] = []
    limit: Any = 25


class RecommendationView(BaseModel):
    id: int
    name: str
    position: str
    team: str
    ownershipPct: float
    seasonProjection: float
    avgProjection: float
    priority: str                 # HIGH / MEDIUM / LOW
    faabBid: str                  # "25%"
    reasoning: str


class WaiverSummaryView(BaseModel):
    highPriority: int
    mediumPriority: int
    lowPriority: int
    totalAnalyzed: int
    rosterDepth: int


class WaiverAnalysisResponse(BaseModel):
    analysis: List[RecommendationView]
    summary: WaiverSummaryView


class EspnFilterRequest(BaseModel):
    season: Optional[int] = None
    filter: Optional[Dict[str, Any]] = None


class PlayerInfoRequest(EspnFilterRequest):
    pprId: int = 0


class PlayerIn(BaseModel):
    espn_id: int
    name: str
    position: Optional[str] = None
    team: Optional[str] = None
    bye_week: Optional[int] = None
    status: Optional[str] = "active"


class BulkPlayersRequest(BaseModel):
    players: List[PlayerIn] = []


class RosterAddRequest(BaseModel):
    player_id: Optional[int] = None
    position_slot: Optional[str] = None
    notes: Optional[str] = None


class WatchlistAddRequest(BaseModel):
    player_id: Optional[int] = None
    interest_level: int = 3
    notes: Optional[str] = None


class NewsItem(BaseModel):
    player_id: Optional[int] = None
    headline: str
    content: Optional[str] = None
    source: Optional[str] = None
    published_date: Optional[str] = None


class BulkNewsRequest(BaseModel):
    items: Optional[List[NewsItem]] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_espn_client() -> EspnClient:
    """
    Shared upstream client built from config. Overridden in tests.
    """
    return EspnClient(espn_s2=ESPN_S2, swid=ESPN_SWID)


def _espn_call(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    try:
        return fn(*args, **kwargs)
    except EspnError as exc:
        logger.error("ESPN call failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))


def _roster_context(position: str) -> Tuple[int, Set[int]]:
    """
    (depth, owned ESPN ids) for a position from the local roster.

    The local roster is a nice-to-have: if the table is missing or the DB is
    unreachable we carry on with an empty roster.
    """
    try:
        rows = get_roster_for_position(position)
    except (StoreError, sqlite3.Error) as exc:
        logger.warning("Roster lookup failed, continuing without roster context: %s", exc)
        return 0, set()

    entries = [RosterEntry.from_row(r) for r in rows]
    return len(entries), {e.espn_id for e in entries}


# ---------------------------------------------------------------------------
# FastAPI app + routes
# ---------------------------------------------------------------------------

app = FastAPI(title="Fantasy Helper API", version=API_VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def _log_requests(request: Request, call_next):
    logger.info("%s %s", request.method, request.url.path)
    return await call_next(request)


@app.on_event("startup")
def _on_startup():
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not (ESPN_S2 and ESPN_SWID):
        logger.warning("ESPN_S2 / ESPN_SWID not set; private leagues will be unavailable.")
    init_db()


@app.get("/")
def root():
    return {
        "message": "Fantasy Helper API",
        "status": "running",
        "endpoints": [
            "GET /api/health",
            "GET /api/roster",
            "GET /api/watchlist",
            "GET /api/players",
            "GET /api/news",
            "POST /api/espn/players",
            "POST /api/espn/waiver-analysis",
            "GET /api/espn/test",
        ],
    }


@app.get("/api")
def api_root():
    return {"message": f"Fantasy Helper API v{API_VERSION}", "status": "ok"}


@app.get("/health")
def health():
    return {"ok": True}


@app.get("/api/health")
def api_health(client: EspnClient = Depends(get_espn_client)):
    db = database_status()
    return {
        "status": "ok" if db["database"] == "connected" else "error",
        "database": db["database"],
        "timestamp": db["timestamp"],
        "espn_auth": client.has_credentials,
    }


@app.post("/admin/migrate")
def migrate():
    try:
        init_db()
    except sqlite3.Error as exc:
        logger.error("Migration failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))
    return {"ok": True, "message": "Migration completed"}


# ---------------------------------------------------------------------------
# ESPN proxy
# ---------------------------------------------------------------------------

espn = APIRouter(prefix="/api/espn")


@espn.get("/league")
def espn_league(
    season: int = SEASON_YEAR,
    league_id: str = Query(ESPN_LEAGUE_ID, alias="leagueId"),
    view: Optional[str] = None,
    client: EspnClient = Depends(get_espn_client),
):
    if not league_id:
        raise HTTPException(status_code=400, detail="leagueId required")
    return _espn_call(client.league, season, league_id, view)


@espn.get("/leagueHistory")
def espn_league_history(
    season: int = SEASON_YEAR,
    league_id: str = Query(ESPN_LEAGUE_ID, alias="leagueId"),
    view: Optional[str] = None,
    client: EspnClient = Depends(get_espn_client),
):
    if not league_id:
        raise HTTPException(status_code=400, detail="leagueId required")
    return _espn_call(client.league_history, league_id, season, view)


@espn.post("/players")
def espn_players(req: EspnFilterRequest, client: EspnClient = Depends(get_espn_client)):
    return _espn_call(client.players, req.season or SEASON_YEAR, req.filter)


@espn.post("/playerInfo")
def espn_player_info(req: PlayerInfoRequest, client: EspnClient = Depends(get_espn_client)):
    return _espn_call(client.player_info, req.season or SEASON_YEAR, req.filter, req.pprId)


@espn.get("/byeWeeks")
def espn_bye_weeks(season: int = SEASON_YEAR, client: EspnClient = Depends(get_espn_client)):
    return _espn_call(client.pro_team_schedules, season)


@espn.get("/news")
def espn_news(
    player_id: int = Query(..., alias="playerId"),
    limit: int = 10,
    client: EspnClient = Depends(get_espn_client),
):
    return _espn_call(client.news, player_id, limit)


@espn.get("/test")
def espn_test(client: EspnClient = Depends(get_espn_client)):
    data = _espn_call(client.pro_team_schedules, SEASON_YEAR)
    return {"status": "ok", "dataSize": len(str(data))}


@espn.post("/waiver-analysis", response_model=WaiverAnalysisResponse)
def waiver_analysis(req: WaiverAnalysisRequest, client: EspnClient = Depends(get_espn_client)):
    """
    Rank available players at one position with a priority tier and a
    suggested FAAB bid.

    Players on the local roster and any currentPlayerIds are excluded.
    """
    season = req.season or SEASON_YEAR
    position = normalize_position(req.position)
    limit = clamp_limit(req.limit)

    roster_depth, owned_ids = _roster_context(position)
    excluded = owned_ids | set(req.currentPlayerIds or [])

    # Over-fetch so exclusions don't leave us short of `limit`.
    fetch_size = limit + len(excluded)
    try:
        free_agents = client.get_free_agents(season, POSITION_SLOT_IDS[position], limit=fetch_size)
    except EspnError as exc:
        if not OFFLINE_MODE:
            logger.error("Free agent fetch failed for %s: %s", position, exc)
            raise HTTPException(status_code=500, detail=str(exc))
        logger.warning("Free agent fetch failed (%s); using offline sample data", exc)
        free_agents = sample_free_agents(position)

    result = analyze_free_agents(
        free_agents,
        position=position,
        roster_depth=roster_depth,
        excluded_ids=excluded,
        limit=limit,
    )
    return result.to_dict()


app.include_router(espn)


# ---------------------------------------------------------------------------
# Players
# ---------------------------------------------------------------------------

@app.get("/api/players")
def players_list(position: Optional[str] = None, team: Optional[str] = None, q: Optional[str] = None):
    try:
        return {"players": list_players(position=position, team=team, q=q)}
    except MissingTableError:
        return {"players": [], "message": "Players table not created yet"}


@app.post("/api/players")
def players_upsert_one(player: PlayerIn):
    try:
        return upsert_player(player.dict())
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except StoreError as exc:
        raise HTTPException(status_code=500, detail=str(exc))


def _bulk_upsert(req: BulkPlayersRequest) -> Dict[str, Any]:
    if not req.players:
        raise HTTPException(status_code=400, detail="players[] required")
    try:
        count = upsert_players([p.dict() for p in req.players])
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except StoreError as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    return {"ok": True, "upserted": count}


@app.post("/api/players/upsert")
def players_upsert(req: BulkPlayersRequest):
    return _bulk_upsert(req)


@app.post("/api/players/bulk")
def players_bulk(req: BulkPlayersRequest):
    result = _bulk_upsert(req)
    return {"success": True, "inserted": result["upserted"]}


# ---------------------------------------------------------------------------
# Roster
# ---------------------------------------------------------------------------

@app.get("/api/roster")
def roster_list():
    try:
        rows = get_roster()
    except MissingTableError:
        logger.warning("Roster tables missing, returning empty roster")
        return {"roster": [], "message": "Roster tables not created yet"}
    return {"roster": [asdict(RosterEntry.from_row(r)) for r in rows]}


@app.post("/api/roster")
def roster_add(req: RosterAddRequest):
    if req.player_id is None or not req.position_slot:
        raise HTTPException(status_code=400, detail="player_id, position_slot required")

    slot = req.position_slot.strip().upper()
    if slot not in ROSTER_SLOTS:
        raise HTTPException(
            status_code=400,
            detail=f"position_slot must be one of {', '.join(ROSTER_SLOTS)}",
        )

    try:
        item = add_to_roster(req.player_id, slot, req.notes)
    except sqlite3.IntegrityError:
        raise HTTPException(status_code=404, detail="Unknown player_id")
    except StoreError as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    return {"item": item}


@app.delete("/api/roster/{roster_id}")
def roster_remove(roster_id: int):
    try:
        remove_from_roster(roster_id)
    except StoreError as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    return {"ok": True}


# ---------------------------------------------------------------------------
# Watchlist
# ---------------------------------------------------------------------------

@app.get("/api/watchlist")
def watchlist_list():
    try:
        return {"watchlist": get_watchlist()}
    except MissingTableError:
        logger.warning("Watchlist table missing")
        return {"watchlist": [], "message": "Watchlist table not created yet"}


@app.post("/api/watchlist")
def watchlist_add(req: WatchlistAddRequest):
    if req.player_id is None:
        raise HTTPException(status_code=400, detail="player_id required")
    try:
        item = add_to_watchlist(req.player_id, req.interest_level, req.notes)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except sqlite3.IntegrityError:
        raise HTTPException(status_code=404, detail="Unknown player_id")
    except StoreError as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    return {"item": item}


@app.delete("/api/watchlist/{watch_id}")
def watchlist_remove(watch_id: int):
    try:
        remove_from_watchlist(watch_id)
    except StoreError as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    return {"ok": True}


# ---------------------------------------------------------------------------
# News
# ---------------------------------------------------------------------------

@app.get("/api/news")
def news_list(player_id: Optional[int] = None):
    try:
        return {"news": list_news(player_id=player_id)}
    except MissingTableError:
        return {"news": [], "message": "News table not created yet"}


@app.post("/api/news/bulk")
def news_bulk(req: BulkNewsRequest):
    if req.items is None:
        raise HTTPException(status_code=400, detail="items[] required")
    try:
        count = add_news([item.dict() for item in req.items])
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except StoreError as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    return {"ok": True, "inserted": count}
