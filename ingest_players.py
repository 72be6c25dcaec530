# ingest_players.py
#
# Pull every fantasy-relevant NFL player from ESPN, position by position, and
# upsert them into the local players table.
#
#   python ingest_players.py --season 2025
#
# Players listed under more than one slot keep the first position seen.

from __future__ import annotations

import argparse
import logging
from typing import Any, Dict, Iterator, List, Optional, Sequence

import pandas as pd  # type: ignore[import]

from config import (  # type: ignore[import]
    ESPN_S2,
    ESPN_SWID,
    INGEST_DELAY_SECONDS,
    LOG_LEVEL,
    SEASON_YEAR,
)
from espn_client import EspnClient, EspnError, RateLimiter, extract_players  # type: ignore[import]
from models import pro_team_abbrev  # type: ignore[import]
from store import init_db, upsert_players  # type: ignore[import]

logger = logging.getLogger(__name__)

# (label, ESPN slot id, how many to pull, most-rostered first)
POSITION_SLOTS: Sequence[tuple] = (
    ("QB", 0, 50),
    ("RB", 2, 100),
    ("WR", 4, 150),
    ("TE", 6, 50),
    ("D/ST", 16, 32),
    ("K", 17, 32),
)

PLAYER_COLUMNS = ["espn_id", "name", "position", "team", "bye_week", "status"]


def slot_filter(slot_id: int, limit: int, offset: int = 0) -> Dict[str, Any]:
    return {
        "players": {
            "filterSlotIds": {"value": [slot_id]},
            "sortPercOwned": {"sortPriority": 1, "sortAsc": False},
            "limit": limit,
            "offset": offset,
        }
    }


def normalize_player(raw: Dict[str, Any], position: str, bye_weeks: Dict[str, int]) -> Dict[str, Any]:
    player = raw.get("player") if isinstance(raw.get("player"), dict) else raw
    team = pro_team_abbrev(player)
    return {
        "espn_id": int(player["id"]),
        "name": player.get("fullName") or player.get("name") or "UNKNOWN",
        "position": position,
        "team": team,
        "bye_week": bye_weeks.get(team.upper()),
        "status": "active",
    }


def fetch_position(
    client: EspnClient,
    season: int,
    position: str,
    slot_id: int,
    limit: int,
    bye_weeks: Dict[str, int],
    page_size: int = 50,
) -> List[Dict[str, Any]]:
    """
    Page through one slot until `limit` players or ESPN runs dry.
    """
    players: List[Dict[str, Any]] = []
    offset = 0
    while offset < limit:
        size = min(page_size, limit - offset)
        page = extract_players(client.players(season, filter=slot_filter(slot_id, size, offset)))
        players.extend(
            normalize_player(p, position, bye_weeks)
            for p in page
            if isinstance(p, dict) and (p.get("id") is not None or isinstance(p.get("player"), dict))
        )
        if len(page) < size:
            break
        offset += size

    logger.info("Found %d %s players", len(players), position)
    return players


def dedupe_players(players: List[Dict[str, Any]]) -> pd.DataFrame:
    """
    One row per espn_id, keeping the first occurrence.
    """
    df = pd.DataFrame(players, columns=PLAYER_COLUMNS)
    before = len(df)
    df = df.drop_duplicates(subset="espn_id", keep="first").reset_index(drop=True)
    if before != len(df):
        logger.info("Dropped %d duplicate players", before - len(df))
    return df


def _records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    # NaN bye weeks (teams we couldn't map) go to the DB as NULL.
    out: List[Dict[str, Any]] = []
    for rec in df.to_dict(orient="records"):
        bye = rec.get("bye_week")
        rec["bye_week"] = None if bye is None or pd.isna(bye) else int(bye)
        rec["espn_id"] = int(rec["espn_id"])
        out.append(rec)
    return out


def chunked(items: List[Any], size: int) -> Iterator[List[Any]]:
    for i in range(0, len(items), size):
        yield items[i:i + size]


def run_ingest(
    client: EspnClient,
    season: int,
    batch_size: int = 50,
    dry_run: bool = False,
) -> pd.DataFrame:
    try:
        bye_weeks = client.get_bye_weeks(season)
        logger.info("Found bye weeks for %d teams", len(bye_weeks))
    except EspnError as exc:
        logger.error("Could not fetch bye weeks: %s", exc)
        bye_weeks = {}

    all_players: List[Dict[str, Any]] = []
    for position, slot_id, limit in POSITION_SLOTS:
        try:
            all_players.extend(
                fetch_position(client, season, position, slot_id, limit, bye_weeks)
            )
        except EspnError as exc:
            logger.error("Error fetching %s: %s", position, exc)

    df = dedupe_players(all_players)
    logger.info("Unique players: %d", len(df))

    if dry_run:
        logger.info("Dry run, skipping database writes")
    else:
        init_db()
        records = _records(df)
        batches = list(chunked(records, batch_size))
        for i, batch in enumerate(batches, start=1):
            count = upsert_players(batch)
            logger.info("Batch %d/%d: upserted %d players", i, len(batches), count)

    if not df.empty:
        for position, count in df.groupby("position", sort=False).size().items():
            logger.info("  %-5s %d players", position, count)

    return df


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Ingest ESPN players into the local store.")
    parser.add_argument("--season", type=int, default=SEASON_YEAR)
    parser.add_argument("--batch-size", type=int, default=50)
    parser.add_argument("--delay", type=float, default=INGEST_DELAY_SECONDS,
                        help="seconds between ESPN requests")
    parser.add_argument("--dry-run", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    client = EspnClient(
        espn_s2=ESPN_S2,
        swid=ESPN_SWID,
        rate_limiter=RateLimiter(args.delay),
    )

    logger.info("Starting player ingestion for %d", args.season)
    df = run_ingest(client, args.season, batch_size=args.batch_size, dry_run=args.dry_run)
    logger.info("Player ingestion complete: %d players processed", len(df))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
