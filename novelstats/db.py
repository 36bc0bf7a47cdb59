"""
Read-only access to the NovelForge SQLite file.

Tables used (fixed schema, written by the desktop collector):
    management_novels   id, title, author, publisher, platform, genre, launch_date, novel_url, created_at, ...
    daily_statistics    novel_id, date, views, revenue, detail_data, ...
    daily_rankings      ranking_date, platform, ranking_type, rank, title, author, views, novel_id, ...

The file is opened with mode=ro; nothing here writes to it.
download_db() fetches the file from a share link (Dropbox links are rewritten
to direct downloads).
"""

import logging
import re
import sqlite3
import time
from pathlib import Path
from typing import List, Optional

import pandas as pd
import requests

from novelstats.config import (
    BACKOFF_BASE,
    BACKOFF_MAX,
    DOWNLOAD_TIMEOUT,
    HALL_OF_FAME_LIMIT,
    HALL_OF_FAME_MAX_RANK,
    MAX_RETRIES,
    RANKING_DATES_LIMIT,
)

logger = logging.getLogger(__name__)

SQLITE_HEADER = b"SQLite format 3\x00"


def _coerce(df: pd.DataFrame, numeric: List[str]) -> pd.DataFrame:
    for c in numeric:
        if c in df.columns:
            df[c] = pd.to_numeric(df[c], errors="coerce")
    return df


class NovelDatabase:
    def __init__(self, conn: sqlite3.Connection, path: Optional[Path] = None):
        self.conn = conn
        self.path = path

    def close(self):
        self.conn.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def query(self, sql: str, params=()) -> pd.DataFrame:
        return pd.read_sql_query(sql, self.conn, params=params)

    # --- novels ---
    def novels(self) -> pd.DataFrame:
        df = self.query("SELECT * FROM management_novels ORDER BY created_at DESC")
        return _coerce(df, ["id"])

    def novels_with_launch_date(self) -> pd.DataFrame:
        df = self.query("SELECT * FROM management_novels WHERE launch_date IS NOT NULL")
        return _coerce(df, ["id"])

    def novel(self, novel_id: int) -> Optional[dict]:
        df = self.query("SELECT * FROM management_novels WHERE id = ?", (novel_id,))
        return None if df.empty else df.iloc[0].to_dict()

    # --- daily statistics ---
    def stats_for(self, novel_id: int) -> pd.DataFrame:
        df = self.query(
            "SELECT novel_id, date, views, detail_data FROM daily_statistics WHERE novel_id = ? ORDER BY date ASC",
            (novel_id,),
        )
        return _coerce(df, ["novel_id", "views"])

    def all_stats(self) -> pd.DataFrame:
        df = self.query("SELECT novel_id, date, views FROM daily_statistics ORDER BY novel_id, date")
        return _coerce(df, ["novel_id", "views"])

    def stat_on(self, novel_id: int, day: str) -> Optional[dict]:
        df = self.query(
            "SELECT novel_id, date, views, detail_data FROM daily_statistics WHERE novel_id = ? AND date = ?",
            (novel_id, day),
        )
        if df.empty:
            return None
        return _coerce(df, ["views"]).iloc[0].to_dict()

    # --- rankings ---
    def rankings_on(self, day: str) -> pd.DataFrame:
        df = self.query("SELECT * FROM daily_rankings WHERE ranking_date = ? ORDER BY platform, rank", (day,))
        return _coerce(df, ["rank", "views", "novel_id"])

    def latest_ranking_date(self) -> Optional[str]:
        df = self.query("SELECT MAX(ranking_date) AS ranking_date FROM daily_rankings")
        val = df["ranking_date"].iloc[0] if not df.empty else None
        return None if pd.isna(val) else str(val)

    def ranking_dates(self, limit: int = RANKING_DATES_LIMIT) -> List[str]:
        df = self.query(
            "SELECT DISTINCT ranking_date FROM daily_rankings ORDER BY ranking_date DESC LIMIT ?", (limit,)
        )
        return df["ranking_date"].astype(str).tolist()

    def ranking_days_for_types(self, ranking_types: List[str]) -> pd.DataFrame:
        """Distinct (ranking_date, platform) pairs holding rows of the given ranking types."""
        marks = ",".join("?" for _ in ranking_types)
        return self.query(
            f"SELECT DISTINCT ranking_date, platform FROM daily_rankings WHERE ranking_type IN ({marks})",
            tuple(ranking_types),
        )

    def ranking_platforms(self) -> List[str]:
        df = self.query(
            "SELECT DISTINCT platform FROM daily_rankings WHERE platform IS NOT NULL AND platform != '' "
            "ORDER BY platform"
        )
        return df["platform"].astype(str).tolist()

    def hall_of_fame(self, platform: Optional[str] = None, limit: int = HALL_OF_FAME_LIMIT,
                     max_rank: int = HALL_OF_FAME_MAX_RANK) -> pd.DataFrame:
        """Titles by number of distinct ranking days spent within the top max_rank."""
        where = "rank IS NOT NULL AND rank <= ? AND title IS NOT NULL"
        params = [max_rank]
        if platform:
            where += " AND platform = ?"
            params.append(platform)
        df = self.query(
            "SELECT title, author, platform, COUNT(DISTINCT ranking_date) AS days_in_top100, "
            "MIN(rank) AS best_rank FROM daily_rankings "
            f"WHERE {where} GROUP BY title, author, platform "
            "ORDER BY days_in_top100 DESC, best_rank ASC, title ASC LIMIT ?",
            tuple(params + [limit]),
        )
        return _coerce(df, ["days_in_top100", "best_rank"])

    def ranking_titles_between(self, start: str, end: str) -> pd.DataFrame:
        return self.query(
            "SELECT ranking_date, platform, title, genre, novel_id FROM daily_rankings "
            "WHERE ranking_date BETWEEN ? AND ? AND title IS NOT NULL ORDER BY ranking_date, platform, rank",
            (start, end),
        )

    def genre_counts_between(self, start: str, end: str) -> pd.DataFrame:
        """Distinct ranked titles per genre over [start, end]."""
        df = self.query(
            "SELECT genre, COUNT(DISTINCT title) AS cnt FROM daily_rankings "
            "WHERE ranking_date BETWEEN ? AND ? AND genre IS NOT NULL AND genre != '' "
            "GROUP BY genre ORDER BY genre",
            (start, end),
        )
        return _coerce(df, ["cnt"])


def open_db(path) -> NovelDatabase:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Could not find database file: {p}")
    conn = sqlite3.connect(f"{p.resolve().as_uri()}?mode=ro", uri=True, check_same_thread=False)
    return NovelDatabase(conn, p)


def to_direct_download(url: str) -> str:
    """Dropbox share link (dl=0) -> direct download link (dl=1)."""
    if "dropbox.com" not in url:
        return url
    dl = re.sub(r"([?&])dl=0", r"\1dl=1", url)
    if "dl=1" not in dl:
        dl += ("&" if "?" in dl else "?") + "dl=1"
    return dl


def _sleep_backoff(attempt: int):
    time.sleep(min(BACKOFF_MAX, BACKOFF_BASE * (2 ** attempt)))


def download_db(url: str, dest) -> Path:
    dest = Path(dest)
    dl_url = to_direct_download(url)
    for attempt in range(MAX_RETRIES):
        try:
            resp = requests.get(dl_url, timeout=DOWNLOAD_TIMEOUT)
            if resp.status_code in (429, 500, 502, 503, 504) and attempt < MAX_RETRIES - 1:
                logger.info("[download] HTTP %s, retrying (%d/%d)", resp.status_code, attempt + 1, MAX_RETRIES)
                _sleep_backoff(attempt)
                continue
            if resp.status_code >= 400:
                raise RuntimeError(f"DB download failed: HTTP {resp.status_code}")
            if not resp.content.startswith(SQLITE_HEADER):
                raise RuntimeError("DB download failed: response is not a SQLite file (check the share link)")
            dest.parent.mkdir(parents=True, exist_ok=True)
            tmp = dest.with_name(dest.name + ".part")
            tmp.write_bytes(resp.content)
            tmp.replace(dest)
            logger.info("[download] wrote %s bytes to %s", f"{len(resp.content):,}", dest)
            return dest
        except requests.RequestException:
            if attempt < MAX_RETRIES - 1:
                _sleep_backoff(attempt)
                continue
            raise
    raise RuntimeError(f"DB download failed after {MAX_RETRIES} attempts")
