# waiver_analysis.py
#
# Waiver-wire scoring for one position.
# - Pulls a season projection, an average weekly projection and ownership
#   out of each ESPN free-agent record
# - Scores each candidate on ownership, projection and roster need
# - Suggests a FAAB bid (% of budget) per priority tier
# - Ranks HIGH > MEDIUM > LOW, best weekly projection first within a tier
#
# Pure functions only: callers fetch free agents / roster context and hand
# them in. Same inputs always give the same output.

from __future__ import annotations

import math
from typing import Any, Iterable, List, Optional, Sequence

from config import (  # type: ignore[import]
    DEFAULT_POSITION,
    DEFAULT_WAIVER_LIMIT,
    MAX_WAIVER_LIMIT,
    TARGET_DEPTH,
)
from models import (  # type: ignore[import]
    FreeAgentRecord,
    Recommendation,
    StatEntry,
    WaiverAnalysis,
    WaiverSummary,
)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

HIGH = "HIGH"
MEDIUM = "MEDIUM"
LOW = "LOW"

TIER_ORDER = {HIGH: 0, MEDIUM: 1, LOW: 2}

POSITION_ALIASES = {
    "QB": "QB",
    "RB": "RB",
    "WR": "WR",
    "TE": "TE",
    "D/ST": "D/ST",
    "DST": "D/ST",
    "DEF": "D/ST",
    "D": "D/ST",
    "K": "K",
    "PK": "K",
}

# (min, max) percent of FAAB budget and multiplier on the baseline per tier.
BID_RULES = {
    HIGH: (1.0, 12, 40),
    MEDIUM: (0.7, 5, 25),
    LOW: (0.3, 0, 10),
}

REASON_SEPARATOR = " • "
FALLBACK_REASON = "Speculative add - limited ownership and projection data"


# ---------------------------------------------------------------------------
# Input normalisation
# ---------------------------------------------------------------------------

def normalize_position(raw: Any) -> str:
    """
    Canonical position label for a user-supplied position.

    Case and whitespace are ignored; unknown values fall back to RB rather
    than being rejected.
    """
    if not raw:
        return DEFAULT_POSITION
    key = str(raw).strip().upper().replace(" ", "")
    return POSITION_ALIASES.get(key, DEFAULT_POSITION)


def clamp_limit(limit: Any) -> int:
    """
    Result size in [1, 50]. Floats truncate; missing or non-numeric values
    give the default of 25.
    """
    if limit is None or isinstance(limit, bool):
        return DEFAULT_WAIVER_LIMIT
    try:
        value = int(float(limit))
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_WAIVER_LIMIT
    return max(1, min(MAX_WAIVER_LIMIT, value))


def target_depth(position: str) -> int:
    return TARGET_DEPTH.get(normalize_position(position), 0)


# ---------------------------------------------------------------------------
# Per-candidate derivations
# ---------------------------------------------------------------------------

def season_projection(stats: Sequence[StatEntry]) -> float:
    """
    Season-aggregate projection (scoring period 0).

    A projection-tagged entry wins; otherwise any period-0 entry is used.
    """
    season = [s for s in stats if s.is_season]
    for s in season:
        if s.is_projection:
            return s.applied_total
    if season:
        return season[0].applied_total
    return 0.0


def average_projection(stats: Sequence[StatEntry]) -> float:
    weekly = [s for s in stats if not s.is_season]
    projected = [s for s in weekly if s.is_projection]
    pool = projected or weekly
    if not pool:
        return 0.0
    return sum(s.applied_total for s in pool) / len(pool)


def ownership_pct(record: FreeAgentRecord) -> float:
    return float(record.percent_owned or 0.0)


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

def priority_score(ownership: float, avg_projection: float, roster_depth: int, target: int) -> int:
    score = 0

    if ownership >= 70:
        score += 2
    elif ownership >= 45:
        score += 1

    if avg_projection >= 14:
        score += 2
    elif avg_projection >= 10:
        score += 1

    if roster_depth < target:
        score += 1

    return score


def priority_tier(score: int) -> str:
    if score >= 4:
        return HIGH
    if score >= 2:
        return MEDIUM
    return LOW


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def faab_bid(tier: str, ownership: float, avg_projection: float) -> str:
    baseline = max(ownership / 3, avg_projection)
    multiplier, lo, hi = BID_RULES[tier]
    bid = _round_half_up(baseline * multiplier)
    return f"{max(lo, min(hi, bid))}%"


def build_reasoning(
    ownership: float,
    percent_change: Optional[float],
    avg_projection: float,
    season_total: float,
    needs_depth: bool,
) -> str:
    parts: List[str] = []
    if ownership > 0:
        parts.append(f"{ownership:.1f}% rostered")
    if percent_change:
        parts.append(f"{percent_change:+.1f}% week-over-week")
    if avg_projection > 0:
        parts.append(f"{avg_projection:.1f} projected pts")
    if season_total > 0:
        parts.append(f"{season_total:.1f} season outlook")
    if needs_depth:
        parts.append("Adds needed depth")
    return REASON_SEPARATOR.join(parts) if parts else FALLBACK_REASON


def score_free_agent(record: FreeAgentRecord, position: str, roster_depth: int) -> Recommendation:
    target = target_depth(position)
    ownership = ownership_pct(record)
    season_total = season_projection(record.stats)
    avg = average_projection(record.stats)

    tier = priority_tier(priority_score(ownership, avg, roster_depth, target))

    return Recommendation(
        id=record.id,
        name=record.name,
        position=position,
        team=record.pro_team or "FA",
        ownership_pct=ownership,
        season_projection=season_total,
        avg_projection=avg,
        priority=tier,
        faab_bid=faab_bid(tier, ownership, avg),
        reasoning=build_reasoning(
            ownership, record.percent_change, avg, season_total, roster_depth < target
        ),
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def analyze_free_agents(
    free_agents: Iterable[FreeAgentRecord],
    position: Optional[str] = None,
    roster_depth: int = 0,
    excluded_ids: Iterable[int] = (),
    limit: Optional[int] = None,
) -> WaiverAnalysis:
    """
    Rank available players at one position.

    excluded_ids is everything already owned (local roster + ids the caller
    passed in); those players never show up in the result.
    """
    label = normalize_position(position)
    depth = max(0, int(roster_depth or 0))
    owned = {int(i) for i in excluded_ids}

    recs = [
        score_free_agent(fa, label, depth)
        for fa in free_agents
        if fa.id not in owned
    ]

    # sort() is stable, so equal tier + projection keeps upstream order.
    recs.sort(key=lambda r: (TIER_ORDER[r.priority], -r.avg_projection))
    recs = recs[:clamp_limit(limit)]

    summary = WaiverSummary(
        high_priority=sum(1 for r in recs if r.priority == HIGH),
        medium_priority=sum(1 for r in recs if r.priority == MEDIUM),
        low_priority=sum(1 for r in recs if r.priority == LOW),
        total_analyzed=len(recs),
        roster_depth=depth,
    )
    return WaiverAnalysis(analysis=recs, summary=summary)
