from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Dict, Any, List, Iterable, Iterator
from datetime import datetime, timezone

import config  # type: ignore[import]

logger = logging.getLogger(__name__)

# Tests and hosted environments point this elsewhere (FANTASY_HELPER_DB_PATH).
DB_PATH: Path = config.DB_PATH

PLAYER_FIELDS = ("espn_id", "name", "position", "team", "bye_week", "status")

_SLOT_ORDER_SQL = """
    CASE r.position_slot
        WHEN 'QB' THEN 1
        WHEN 'RB' THEN 2
        WHEN 'WR' THEN 3
        WHEN 'TE' THEN 4
        WHEN 'FLEX' THEN 5
        WHEN 'D/ST' THEN 6
        WHEN 'K' THEN 7
        WHEN 'BENCH' THEN 8
        ELSE 9
    END
"""

_ROSTER_SELECT = """
    SELECT
        r.id,
        r.position_slot,
        r.added_date,
        r.notes AS roster_notes,
        p.id AS player_id,
        p.espn_id,
        p.name,
        p.position,
        p.team,
        p.bye_week,
        p.status
    FROM my_roster r
    JOIN players p ON p.id = r.player_id
"""


class StoreError(RuntimeError):
    pass


class MissingTableError(StoreError):
    """The backing table has not been created yet (run init_db / migrate)."""


def _get_conn() -> sqlite3.Connection:
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@contextmanager
def _connection() -> Iterator[sqlite3.Connection]:
    """
    Open a connection, translating sqlite's "no such table" into
    MissingTableError so callers can degrade instead of failing.
    """
    conn = _get_conn()
    try:
        yield conn
    except sqlite3.OperationalError as exc:
        if "no such table" in str(exc).lower():
            raise MissingTableError(str(exc)) from exc
        raise
    finally:
        conn.close()


def _query(sql: str, params: Iterable[Any] = ()) -> List[Dict[str, Any]]:
    with _connection() as conn:
        rows = conn.execute(sql, tuple(params)).fetchall()
    return [dict(r) for r in rows]


def _execute(sql: str, params: Iterable[Any] = ()) -> int:
    """Run a single write and return lastrowid."""
    with _connection() as conn:
        with conn:
            cur = conn.execute(sql, tuple(params))
        return int(cur.lastrowid or 0)


def init_db() -> None:
    conn = _get_conn()
    cur = conn.cursor()

    # Players cached from ESPN; espn_id is the upstream identity.
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS players (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            espn_id INTEGER UNIQUE NOT NULL,
            name TEXT NOT NULL,
            position TEXT,
            team TEXT,
            bye_week INTEGER,
            status TEXT DEFAULT 'active',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """
    )

    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS my_roster (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            player_id INTEGER NOT NULL,
            position_slot TEXT NOT NULL,
            added_date TEXT NOT NULL,
            notes TEXT,
            FOREIGN KEY(player_id) REFERENCES players(id) ON DELETE CASCADE
        )
        """
    )

    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS watchlist (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            player_id INTEGER UNIQUE NOT NULL,
            interest_level INTEGER DEFAULT 3
                CHECK (interest_level >= 1 AND interest_level <= 5),
            notes TEXT,
            added_date TEXT NOT NULL,
            FOREIGN KEY(player_id) REFERENCES players(id) ON DELETE CASCADE
        )
        """
    )

    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS player_news (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            player_id INTEGER,
            headline TEXT NOT NULL,
            content TEXT,
            source TEXT DEFAULT 'ESPN',
            published_date TEXT,
            created_at TEXT NOT NULL,
            FOREIGN KEY(player_id) REFERENCES players(id) ON DELETE CASCADE
        )
        """
    )

    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS waiver_claims (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            player_id INTEGER,
            claim_priority INTEGER,
            faab_bid INTEGER DEFAULT 0,
            claim_date TEXT NOT NULL,
            status TEXT DEFAULT 'pending',
            notes TEXT,
            FOREIGN KEY(player_id) REFERENCES players(id)
        )
        """
    )

    for stmt in (
        "CREATE INDEX IF NOT EXISTS idx_players_position ON players(position)",
        "CREATE INDEX IF NOT EXISTS idx_players_team ON players(team)",
        "CREATE INDEX IF NOT EXISTS idx_roster_player_id ON my_roster(player_id)",
        "CREATE INDEX IF NOT EXISTS idx_news_player_id ON player_news(player_id)",
        "CREATE INDEX IF NOT EXISTS idx_news_published_date ON player_news(published_date)",
    ):
        cur.execute(stmt)

    conn.commit()
    conn.close()
    logger.info("Database ready at %s", DB_PATH)


def database_status() -> Dict[str, Any]:
    """
    Connectivity check for /api/health.
    """
    try:
        rows = _query("SELECT datetime('now') AS now")
    except sqlite3.Error as exc:
        return {"database": "error", "timestamp": None, "error": str(exc)}
    return {"database": "connected", "timestamp": rows[0]["now"]}


# ---------------------------------------------------------------------------
# Players
# ---------------------------------------------------------------------------

def list_players(
    position: Optional[str] = None,
    team: Optional[str] = None,
    q: Optional[str] = None,
    limit: int = 200,
) -> List[Dict[str, Any]]:
    where: List[str] = []
    params: List[Any] = []
    if position:
        where.append("position = ?")
        params.append(position)
    if team:
        where.append("team = ?")
        params.append(team)
    if q:
        # LIKE is case-insensitive for ASCII in sqlite.
        where.append("name LIKE ?")
        params.append(f"%{q}%")

    sql = "SELECT * FROM players"
    if where:
        sql += " WHERE " + " AND ".join(where)
    sql += " ORDER BY name ASC LIMIT ?"
    params.append(limit)
    return _query(sql, params)


def get_player(espn_id: int) -> Optional[Dict[str, Any]]:
    rows = _query("SELECT * FROM players WHERE espn_id = ?", (espn_id,))
    return rows[0] if rows else None


_UPSERT_PLAYER_SQL = """
    INSERT INTO players (espn_id, name, position, team, bye_week, status, created_at, updated_at)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
    ON CONFLICT(espn_id) DO UPDATE SET
        name=excluded.name,
        position=excluded.position,
        team=excluded.team,
        bye_week=excluded.bye_week,
        status=excluded.status,
        updated_at=excluded.updated_at
"""


def _player_params(player: Dict[str, Any], now: str) -> tuple:
    if player.get("espn_id") is None or not player.get("name"):
        raise ValueError("player requires espn_id and name")
    return (
        int(player["espn_id"]),
        player["name"],
        player.get("position"),
        player.get("team"),
        player.get("bye_week"),
        player.get("status") or "active",
        now,
        now,
    )


def upsert_player(player: Dict[str, Any]) -> Dict[str, Any]:
    now = _now()
    _execute(_UPSERT_PLAYER_SQL, _player_params(player, now))
    row = get_player(int(player["espn_id"]))
    assert row is not None
    return row


def upsert_players(players: List[Dict[str, Any]]) -> int:
    """
    Upsert a batch in one transaction; either all rows land or none do.
    """
    now = _now()
    params = [_player_params(p, now) for p in players]
    with _connection() as conn:
        with conn:
            conn.executemany(_UPSERT_PLAYER_SQL, params)
    return len(params)


# ---------------------------------------------------------------------------
# Roster
# ---------------------------------------------------------------------------

def get_roster() -> List[Dict[str, Any]]:
    return _query(f"{_ROSTER_SELECT} ORDER BY {_SLOT_ORDER_SQL}, r.id")


def get_roster_for_position(position: str) -> List[Dict[str, Any]]:
    """
    Roster rows whose player plays `position` (regardless of slot).
    """
    return _query(
        f"{_ROSTER_SELECT} WHERE p.position = ? ORDER BY {_SLOT_ORDER_SQL}, r.id",
        (position,),
    )


def add_to_roster(player_id: int, position_slot: str, notes: Optional[str] = None) -> Dict[str, Any]:
    roster_id = _execute(
        "INSERT INTO my_roster (player_id, position_slot, added_date, notes) VALUES (?, ?, ?, ?)",
        (player_id, position_slot, _now(), notes),
    )
    return _query("SELECT * FROM my_roster WHERE id = ?", (roster_id,))[0]


def remove_from_roster(roster_id: int) -> None:
    _execute("DELETE FROM my_roster WHERE id = ?", (roster_id,))


# ---------------------------------------------------------------------------
# Watchlist
# ---------------------------------------------------------------------------

def get_watchlist() -> List[Dict[str, Any]]:
    return _query(
        """
        SELECT
            w.id,
            w.interest_level,
            w.notes,
            w.added_date,
            p.id AS player_id,
            p.espn_id,
            p.name,
            p.position,
            p.team,
            p.bye_week,
            p.status
        FROM watchlist w
        JOIN players p ON p.id = w.player_id
        ORDER BY w.interest_level DESC, w.added_date DESC, w.id DESC
        """
    )


def add_to_watchlist(
    player_id: int, interest_level: int = 3, notes: Optional[str] = None
) -> Dict[str, Any]:
    if not 1 <= int(interest_level) <= 5:
        raise ValueError("interest_level must be between 1 and 5")
    _execute(
        """
        INSERT INTO watchlist (player_id, interest_level, notes, added_date)
        VALUES (?, ?, ?, ?)
        ON CONFLICT(player_id) DO UPDATE SET
            interest_level=excluded.interest_level,
            notes=excluded.notes
        """,
        (player_id, int(interest_level), notes, _now()),
    )
    return _query("SELECT * FROM watchlist WHERE player_id = ?", (player_id,))[0]


def remove_from_watchlist(watch_id: int) -> None:
    _execute("DELETE FROM watchlist WHERE id = ?", (watch_id,))


# ---------------------------------------------------------------------------
# News
# ---------------------------------------------------------------------------

def list_news(player_id: Optional[int] = None, limit: int = 200) -> List[Dict[str, Any]]:
    sql = "SELECT * FROM player_news"
    params: List[Any] = []
    if player_id is not None:
        sql += " WHERE player_id = ?"
        params.append(player_id)
    sql += " ORDER BY published_date DESC, id DESC LIMIT ?"
    params.append(limit)
    return _query(sql, params)


def add_news(items: List[Dict[str, Any]]) -> int:
    now = _now()
    params = []
    for item in items:
        if not item.get("headline"):
            raise ValueError("news item requires a headline")
        params.append(
            (
                item.get("player_id"),
                item["headline"],
                item.get("content"),
                item.get("source") or "misc",
                item.get("published_date") or now,
                now,
            )
        )

    with _connection() as conn:
        with conn:
            conn.executemany(
                """
                INSERT INTO player_news (player_id, headline, content, source, published_date, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                params,
            )
    return len(params)
