# sample_data.py
#
# Canned ESPN-shaped free agents. Only used when OFFLINE_MODE is on and the
# live fetch fails, so the waiver view still has something to show in local
# dev / demos.

from typing import Any, Dict, List

from models import FreeAgentRecord  # type: ignore[import]


def _stats(season_proj: float, weekly: List[float]) -> List[Dict[str, Any]]:
    stats: List[Dict[str, Any]] = [
        {"scoringPeriodId": 0, "statSourceId": 1, "statSplitTypeId": 0, "appliedTotal": season_proj}
    ]
    for week, pts in enumerate(weekly, start=1):
        stats.append(
            {"scoringPeriodId": week, "statSourceId": 1, "statSplitTypeId": 1, "appliedTotal": pts}
        )
    return stats


def _player(
    espn_id: int,
    name: str,
    position_id: int,
    team: str,
    owned: float,
    change: float,
    season_proj: float,
    weekly: List[float],
) -> Dict[str, Any]:
    return {
        "id": espn_id,
        "fullName": name,
        "defaultPositionId": position_id,
        "proTeamAbbreviation": team,
        "ownership": {"percentOwned": owned, "percentChange": change},
        "stats": _stats(season_proj, weekly),
    }


SAMPLE_FREE_AGENTS: Dict[str, List[Dict[str, Any]]] = {
    "QB": [
        _player(4430692, "Brock Purdy", 1, "SF", 61.2, 3.4, 268.0, [17.1, 16.4]),
        _player(4038941, "Justin Fields", 1, "NYJ", 38.5, -1.2, 231.0, [15.2, 13.9]),
    ],
    "RB": [
        _player(4360569, "Jordan Mason", 2, "SF", 23.4, 12.8, 142.0, [16.8, 15.1]),
        _player(4426515, "Bucky Irving", 2, "TB", 41.0, 6.5, 128.0, [11.5, 10.9]),
        _player(4039359, "Tyler Allgeier", 2, "ATL", 34.1, 0.0, 97.0, [9.2, 8.4]),
    ],
    "WR": [
        _player(4686637, "Keon Coleman", 3, "BUF", 28.3, 4.1, 110.0, [8.7, 9.5]),
        _player(4426388, "Tank Dell", 3, "HOU", 52.0, 9.3, 150.0, [13.1, 12.6]),
        _player(4427366, "Demario Douglas", 3, "NE", 12.4, 1.1, 88.0, [7.4, 6.8]),
    ],
    "TE": [
        _player(4361307, "Cade Otton", 4, "TB", 18.9, 2.2, 96.0, [8.1, 7.7]),
    ],
    "D/ST": [
        _player(-16025, "49ers D/ST", 16, "SF", 47.5, -3.0, 118.0, [7.2, 6.5]),
    ],
    "K": [
        _player(3055899, "Jake Elliott", 5, "PHI", 44.6, 0.5, 141.0, [8.4, 8.0]),
    ],
}


def sample_free_agents(position: str) -> List[FreeAgentRecord]:
    return [FreeAgentRecord.from_espn(p) for p in SAMPLE_FREE_AGENTS.get(position, [])]
