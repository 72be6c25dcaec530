# models.py

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from espn_api.football.constant import PRO_TEAM_MAP  # type: ignore[import]

# ESPN statSourceId values
STAT_SOURCE_ACTUAL = 0
STAT_SOURCE_PROJECTED = 1


def _to_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def pro_team_abbrev(player: Dict[str, Any]) -> str:
    """
    Team label for an ESPN player payload.

    Prefers an explicit proTeamAbbreviation, then maps proTeamId through
    espn_api's table. Free agents without an NFL team come back as "FA".
    """
    abbrev = player.get("proTeamAbbreviation")
    if abbrev:
        return str(abbrev)

    team_id = player.get("proTeamId")
    if team_id is not None:
        mapped = PRO_TEAM_MAP.get(team_id)
        if mapped and mapped != "None":
            return mapped

    return "FA"


@dataclass(frozen=True)
class StatEntry:
    scoring_period_id: int        # 0 = season aggregate, >0 = week
    stat_source_id: int           # 0 = actual, 1 = projection
    applied_total: float
    stat_split_type_id: int = 0

    @property
    def is_projection(self) -> bool:
        return self.stat_source_id == STAT_SOURCE_PROJECTED

    @property
    def is_season(self) -> bool:
        return self.scoring_period_id == 0

    @classmethod
    def from_espn(cls, raw: Dict[str, Any]) -> "StatEntry":
        return cls(
            scoring_period_id=int(raw.get("scoringPeriodId") or 0),
            stat_source_id=int(raw.get("statSourceId") or 0),
            applied_total=_to_float(raw.get("appliedTotal")) or 0.0,
            stat_split_type_id=int(raw.get("statSplitTypeId") or 0),
        )


@dataclass(frozen=True)
class FreeAgentRecord:
    id: int
    name: str
    position_id: Optional[int] = None
    pro_team: Optional[str] = None
    percent_owned: Optional[float] = None
    percent_change: Optional[float] = None
    stats: List[StatEntry] = field(default_factory=list)

    @classmethod
    def from_espn(cls, raw: Dict[str, Any]) -> "FreeAgentRecord":
        """
        Build a record from an ESPN player payload.

        Accepts both the flat players_wl shape and the kona_player_info shape,
        where the interesting fields live under a nested "player" key.
        """
        player = raw.get("player") if isinstance(raw.get("player"), dict) else raw

        ownership = player.get("ownership") or raw.get("ownership") or {}
        percent_owned = _to_float(ownership.get("percentOwned"))
        if percent_owned is None:
            percent_owned = _to_float(player.get("percentOwned"))

        percent_change = _to_float(ownership.get("percentChange"))
        if percent_change is None:
            percent_change = _to_float(player.get("percentChange"))

        stats = [
            StatEntry.from_espn(s)
            for s in (player.get("stats") or [])
            if isinstance(s, dict)
        ]

        return cls(
            id=int(player.get("id", raw.get("id", 0))),
            name=player.get("fullName") or player.get("name") or "UNKNOWN",
            position_id=player.get("defaultPositionId"),
            pro_team=pro_team_abbrev(player),
            percent_owned=percent_owned,
            percent_change=percent_change,
            stats=stats,
        )


@dataclass
class RosterEntry:
    id: int                       # my_roster row id
    player_id: int                # players row id
    espn_id: int
    name: str
    position: str
    position_slot: str            # QB, RB, WR, TE, FLEX, D/ST, K, BENCH
    team: Optional[str] = None
    bye_week: Optional[int] = None
    status: str = "active"
    notes: Optional[str] = None
    added_date: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "RosterEntry":
        return cls(
            id=int(row["id"]),
            player_id=int(row["player_id"]),
            espn_id=int(row["espn_id"]),
            name=row["name"],
            position=row.get("position") or "",
            position_slot=row["position_slot"],
            team=row.get("team"),
            bye_week=row.get("bye_week"),
            status=row.get("status") or "active",
            notes=row.get("roster_notes"),
            added_date=row.get("added_date"),
        )


@dataclass
class Recommendation:
    id: int
    name: str
    position: str
    team: str
    ownership_pct: float
    season_projection: float
    avg_projection: float
    priority: str                 # HIGH, MEDIUM, LOW
    faab_bid: str                 # e.g. "25%"
    reasoning: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "position": self.position,
            "team": self.team,
            "ownershipPct": self.ownership_pct,
            "seasonProjection": self.season_projection,
            "avgProjection": self.avg_projection,
            "priority": self.priority,
            "faabBid": self.faab_bid,
            "reasoning": self.reasoning,
        }


@dataclass
class WaiverSummary:
    high_priority: int
    medium_priority: int
    low_priority: int
    total_analyzed: int
    roster_depth: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "highPriority": self.high_priority,
            "mediumPriority": self.medium_priority,
            "lowPriority": self.low_priority,
            "totalAnalyzed": self.total_analyzed,
            "rosterDepth": self.roster_depth,
        }


@dataclass
class WaiverAnalysis:
    analysis: List[Recommendation]
    summary: WaiverSummary

    def to_dict(self) -> Dict[str, Any]:
        return {
            "analysis": [r.to_dict() for r in self.analysis],
            "summary": self.summary.to_dict(),
        }
