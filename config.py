# config.py
from datetime import datetime
from pathlib import Path
from typing import Dict
import os

# ====== Season config ======
SEASON_YEAR: int = int(os.environ.get("SEASON_YEAR", datetime.now().year))

# ====== ESPN ======
# Cookies are read from the environment and handed to EspnClient explicitly;
# nothing else in the app reads them.
ESPN_S2: str = os.environ.get("ESPN_S2", "")
ESPN_SWID: str = os.environ.get("ESPN_SWID", "")
ESPN_LEAGUE_ID: str = os.environ.get("ESPN_LEAGUE_ID", "")

ESPN_BASE_URL: str = os.environ.get(
    "ESPN_BASE_URL", "https://fantasy.espn.com/apis/v3/games/ffl"
)
ESPN_NEWS_URL: str = "https://site.api.espn.com/apis/fantasy/v2/games/ffl/news/players"
ESPN_TIMEOUT: float = float(os.environ.get("ESPN_TIMEOUT", "15"))

# Seconds between upstream calls made by the ingestion script.
INGEST_DELAY_SECONDS: float = 1.0

# ====== Local store ======
DB_PATH = Path(os.environ.get("FANTASY_HELPER_DB_PATH", "data/fantasy_helper.db"))

# When set, a failed free-agent fetch is replaced by the fixtures in
# sample_data.py instead of surfacing a 500. Only for local dev / demos.
OFFLINE_MODE: bool = os.environ.get("FANTASY_HELPER_OFFLINE", "").lower() in ("1", "true", "yes")

LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")

# ====== Positions ======
# ESPN lineup slot ids used by filterSlotIds.
POSITION_SLOT_IDS: Dict[str, int] = {
    "QB": 0,
    "RB": 2,
    "WR": 4,
    "TE": 6,
    "D/ST": 16,
    "K": 17,
}

# How many players we want at each position before depth stops counting.
TARGET_DEPTH: Dict[str, int] = {
    "QB": 2,
    "RB": 4,
    "WR": 5,
    "TE": 2,
    "D/ST": 1,
    "K": 1,
}

ROSTER_SLOTS = ("QB", "RB", "WR", "TE", "FLEX", "D/ST", "K", "BENCH")

DEFAULT_POSITION: str = "RB"
DEFAULT_WAIVER_LIMIT: int = 25
MAX_WAIVER_LIMIT: int = 50
