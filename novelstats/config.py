"""
Settings for the novel stats viewer.

Everything is a plain module constant; the few values that depend on where the
viewer runs can be overridden from the environment:
    NOVELSTATS_DB         path of the local SQLite file
    NOVELSTATS_DB_URL     share link the viewer downloads the file from
    NOVELSTATS_LOG_LEVEL  logging level for the CLI (default INFO)
"""

import os
from pathlib import Path

DATA_DIR = Path(os.environ.get("NOVELSTATS_DATA_DIR", "./data")).resolve()
DB_FILE = "novelforge.db"
DB_PATH = Path(os.environ.get("NOVELSTATS_DB", DATA_DIR / DB_FILE))
DB_URL = os.environ.get("NOVELSTATS_DB_URL", "")

LOG_LEVEL = os.environ.get("NOVELSTATS_LOG_LEVEL", "INFO").upper()

# --- tiers: percent of the novel count, ranked by total views ---
TIER_BOUNDS = {
    "top20": (0, 20),
    "top40": (20, 40),
    "top60": (40, 60),
    "top80": (60, 80),
}

# --- surge: days back from the report date and search tolerance ---
HORIZONS = ("daily", "weekly", "monthly")
SURGE_TOLERANCE_DAYS = {
    "daily": 3,
    "weekly": 10,
    "monthly": 7,
}

# --- report limits ---
MAX_COMPARE = 3
ROOKIE_TOP_N = 20
RANKING_DATES_LIMIT = 90

# --- download ---
MAX_RETRIES = 5
BACKOFF_BASE = 0.5
BACKOFF_MAX = 8.0
DOWNLOAD_TIMEOUT = 60

# --- hall of fame / title patterns ---
HALL_OF_FAME_LIMIT = 25
HALL_OF_FAME_MAX_RANK = 100
TITLE_WINDOW_DAYS = 60
KEYWORD_LIMIT = 30
