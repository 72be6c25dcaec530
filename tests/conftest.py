"""
Shared fixtures for the fantasy helper tests.
"""

from typing import List, Optional

import pytest

import store
from models import FreeAgentRecord, StatEntry


@pytest.fixture
def tmp_db(tmp_path, monkeypatch):
    """Point the store at a throwaway sqlite file (tables NOT created)."""
    db_path = tmp_path / "fantasy_helper_test.db"
    monkeypatch.setattr(store, "DB_PATH", db_path)
    return db_path


@pytest.fixture
def ready_db(tmp_db):
    """Throwaway sqlite file with the schema in place."""
    store.init_db()
    return tmp_db


def make_record(
    player_id: int,
    owned: Optional[float] = 0.0,
    weekly: Optional[List[float]] = None,
    season: Optional[float] = None,
    change: Optional[float] = None,
    name: Optional[str] = None,
    team: str = "SF",
) -> FreeAgentRecord:
    """Free agent with projection-tagged weekly / season stats."""
    stats = []
    if season is not None:
        stats.append(StatEntry(scoring_period_id=0, stat_source_id=1, applied_total=season))
    for week, pts in enumerate(weekly or [], start=1):
        stats.append(StatEntry(scoring_period_id=week, stat_source_id=1, applied_total=pts))
    return FreeAgentRecord(
        id=player_id,
        name=name or f"Player {player_id}",
        position_id=2,
        pro_team=team,
        percent_owned=owned,
        percent_change=change,
        stats=stats,
    )
