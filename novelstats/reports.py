"""
Report assembly: today / by-date, aggregate by platform, compare, rookie monitor,
single-novel stats, dashboard, hall of fame and title patterns.

Each function reads what it needs from a NovelDatabase, runs the series /
tier / surge engine and returns plain objects for the viewer or the CLI.
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import timedelta
from typing import Dict, List, Optional, Sequence

import pandas as pd

from novelstats.config import (
    HALL_OF_FAME_LIMIT,
    HORIZONS,
    MAX_COMPARE,
    ROOKIE_TOP_N,
    TITLE_WINDOW_DAYS,
)
from novelstats.db import NovelDatabase
from novelstats.platform import SURGE_PLATFORMS, group_by_platform, normalize_platform, order_platforms
from novelstats.series import build_series, merge_series, parse_day
from novelstats.surge import ObservationIndex, positive_only, rank_surges, surge, surge_rate
from novelstats.tiers import PlatformAggregate, RankedNovel, aggregate
from novelstats.titles import counts_by_genre, extract_title_patterns, genre_growth, keyword_frequency, week_windows

logger = logging.getLogger(__name__)

ROOKIE_PLATFORM = "문피아"
ROOKIE_SECTIONS = {
    "rookie": "신인 베스트",
    "new_novel_today": "신규 베스트",
    "genre_heroism": "장르별 무협 베스트",
    "genre_fantasy": "장르별 판타지 베스트",
    "genre_fusion": "장르별 퓨전 베스트",
    "genre_game": "장르별 게임 베스트",
    "genre_newfantasy": "장르별 현대판타지 베스트",
    "genre_history": "장르별 대체역사 베스트",
}


@dataclass
class DailyReport:
    date: str
    rankings: Dict[str, List[dict]]
    surge: Dict[str, List[dict]]
    my_novel_ids: List[int]


@dataclass
class AggregateReport:
    by_platform: Dict[str, PlatformAggregate]
    platforms: List[str]


@dataclass
class CompareReport:
    novels: List[dict]
    merged: pd.DataFrame


@dataclass
class RookieReport:
    date: str
    new_rookie_today: List[dict] = field(default_factory=list)
    surge_by_section: Dict[str, dict] = field(default_factory=dict)
    top_read_through: List[dict] = field(default_factory=list)
    has_data: bool = False


def _day_before(day: str) -> str:
    ts = parse_day(day)
    if ts is None:
        raise ValueError(f"invalid report date: {day!r}")
    return (ts.date() - timedelta(days=1)).isoformat()


def _records(df: pd.DataFrame) -> List[dict]:
    return df.astype(object).where(df.notna(), None).to_dict("records")


def _rank(row: dict) -> Optional[int]:
    return None if row.get("rank") is None else int(row["rank"])


# ---------- today / by date ----------
def surge_lists(novels: pd.DataFrame, stats: pd.DataFrame, base_date: str) -> Dict[str, List[dict]]:
    """Positive surges per horizon for novels on surge platforms, biggest first."""
    out = {h: [] for h in HORIZONS}
    stats_by_novel = {nid: g for nid, g in stats.groupby("novel_id")} if not stats.empty else {}
    for novel in _records(novels):
        platform = normalize_platform(novel.get("platform"))
        if platform not in SURGE_PLATFORMS:
            continue
        rows = stats_by_novel.get(novel["id"])
        if rows is None or rows.empty:
            continue
        index = ObservationIndex(rows)
        for h in HORIZONS:
            out[h].append(surge(index, base_date, h, novel_id=int(novel["id"])))

    labels = {int(n["id"]): n for n in _records(novels)}
    for h in HORIZONS:
        ranked = rank_surges(positive_only(out[h]))
        out[h] = [
            {
                **asdict(it),
                "title": labels[it.novel_id].get("title") or "",
                "author": labels[it.novel_id].get("author") or "",
                "platform": normalize_platform(labels[it.novel_id].get("platform")),
            }
            for it in ranked
        ]
    return out


def report_for_date(db: NovelDatabase, day: str) -> DailyReport:
    if parse_day(day) is None:
        raise ValueError(f"invalid report date: {day!r}")
    rankings = group_by_platform(_records(db.rankings_on(day)))
    novels = db.novels()
    stats = db.all_stats()
    surges = surge_lists(novels, stats, day)
    logger.info("[report] %s: %d ranking platforms, %s surges", day, len(rankings),
                "/".join(str(len(surges[h])) for h in HORIZONS))
    return DailyReport(
        date=day,
        rankings=rankings,
        surge=surges,
        my_novel_ids=[int(i) for i in novels["id"].dropna()],
    )


def today_report(db: NovelDatabase) -> Optional[DailyReport]:
    latest = db.latest_ranking_date()
    if latest is None:
        return None
    return report_for_date(db, latest)


# ---------- aggregate ----------
def platform_series(novels: pd.DataFrame, stats: pd.DataFrame) -> Dict[str, List[RankedNovel]]:
    """Built series per canonical platform, for novels that have a launch date and data."""
    stats_by_novel = {nid: g for nid, g in stats.groupby("novel_id")} if not stats.empty else {}
    groups: Dict[str, List[RankedNovel]] = {}
    for platform, members in group_by_platform(_records(novels)).items():
        built = []
        for n in members:
            if not n.get("launch_date"):
                continue
            rows = stats_by_novel.get(n["id"])
            if rows is None or rows.empty:
                continue
            total, series = build_series(n["launch_date"], rows)
            built.append(RankedNovel(int(n["id"]), total, series))
        if built:
            groups[platform] = built
    return groups


def aggregate_report(db: NovelDatabase, my_novel_id: Optional[int] = None) -> AggregateReport:
    novels = db.novels_with_launch_date()
    if novels.empty:
        return AggregateReport(by_platform={}, platforms=[])
    groups = platform_series(novels, db.all_stats())
    by_platform = {p: aggregate(items, my_novel_id=my_novel_id) for p, items in groups.items()}
    return AggregateReport(by_platform=by_platform, platforms=order_platforms(by_platform))


# ---------- compare ----------
def compare_report(db: NovelDatabase, novel_ids: Sequence[int]) -> CompareReport:
    novels = _records(db.novels_with_launch_date())
    by_id = {int(n["id"]): n for n in novels}
    picked = []
    for nid in list(dict.fromkeys(novel_ids))[:MAX_COMPARE]:
        n = by_id.get(int(nid))
        if n is None:
            continue
        total, series = build_series(n["launch_date"], db.stats_for(n["id"]))
        picked.append({
            "id": int(n["id"]),
            "title": n.get("title") or "(제목 없음)",
            "platform": n.get("platform") or "",
            "launch_date": n["launch_date"],
            "total_views": total,
            "series": series,
        })
    merged = merge_series({f"views_{n['id']}": n["series"] for n in picked})
    return CompareReport(novels=picked, merged=merged)


# ---------- rookie monitor ----------
def parse_read_through(detail) -> Optional[float]:
    if not detail:
        return None
    try:
        obj = json.loads(detail) if isinstance(detail, str) else detail
    except (TypeError, ValueError):
        return None
    if not isinstance(obj, dict):
        return None
    v = obj.get("avg_read_through_rate")
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return None
    return float(v)


def _rookie_rankings(db: NovelDatabase, day: str) -> pd.DataFrame:
    df = db.rankings_on(day)
    if df.empty:
        return df
    mask = df["ranking_type"].isin(list(ROOKIE_SECTIONS)) & (
        df["platform"].map(normalize_platform) == ROOKIE_PLATFORM
    )
    return df[mask]


def latest_rookie_date(db: NovelDatabase) -> Optional[str]:
    days = db.ranking_days_for_types(list(ROOKIE_SECTIONS))
    if days.empty:
        return None
    days = days[days["platform"].map(normalize_platform) == ROOKIE_PLATFORM]
    return None if days.empty else str(days["ranking_date"].max())


def _section_item(db: NovelDatabase, novel_id: int, rank_row: dict, day: str, prev_day: str) -> dict:
    today = db.stat_on(novel_id, day)
    prev = db.stat_on(novel_id, prev_day)
    curr_views = float(today["views"]) if today and pd.notna(today.get("views")) else 0
    prev_views = float(prev["views"]) if prev and pd.notna(prev.get("views")) else 0
    delta = curr_views - prev_views
    return {
        "novel_id": novel_id,
        "title": rank_row.get("title") or "",
        "author": rank_row.get("author") or "",
        "novel_url": rank_row.get("novel_url") or "",
        "surge": delta,
        "surge_rate": surge_rate(delta, prev_views),
        "views_today": curr_views,
        "views_prev": prev_views,
        "avg_read_through_rate": parse_read_through(today.get("detail_data")) if today else None,
    }


def rookie_monitor_report(db: NovelDatabase, day: Optional[str] = None) -> RookieReport:
    day = day or latest_rookie_date(db)
    if not day:
        return RookieReport(date="")
    prev_day = _day_before(day)
    today_rows = _records(_rookie_rankings(db, day))
    prev_rows = _records(_rookie_rankings(db, prev_day))

    def rookie_ids(rows):
        return {int(r["novel_id"]) for r in rows if r["ranking_type"] == "rookie" and r.get("novel_id") is not None}

    new_ids = rookie_ids(today_rows) - rookie_ids(prev_rows)
    new_rookies = sorted(
        (r for r in today_rows
         if r["ranking_type"] == "rookie" and r.get("novel_id") is not None and int(r["novel_id"]) in new_ids),
        key=lambda r: (r["rank"] is None, r["rank"] or 0),
    )
    report = RookieReport(
        date=day,
        new_rookie_today=[
            {
                "rank": _rank(r),
                "title": r.get("title") or "",
                "author": r.get("author") or "",
                "genre": r.get("genre") or "",
                "novel_url": r.get("novel_url") or "",
                "novel_id": int(r["novel_id"]),
            }
            for r in new_rookies
        ],
        has_data=bool(today_rows),
    )

    first_row: Dict[int, dict] = {}
    for r in today_rows:
        if r.get("novel_id") is not None:
            first_row.setdefault(int(r["novel_id"]), r)

    for key, label in ROOKIE_SECTIONS.items():
        section = [r for r in today_rows if r["ranking_type"] == key and r.get("novel_id") is not None]
        ids = list(dict.fromkeys(int(r["novel_id"]) for r in section))
        rows_by_id = {}
        for r in section:
            rows_by_id.setdefault(int(r["novel_id"]), r)
        items = [_section_item(db, nid, rows_by_id[nid], day, prev_day) for nid in ids]
        items.sort(key=lambda it: it["surge_rate"], reverse=True)
        report.surge_by_section[key] = {"label": label, "items": items[:ROOKIE_TOP_N]}

    read_through = []
    for nid in first_row:
        stat = db.stat_on(nid, day)
        rate = parse_read_through(stat.get("detail_data")) if stat else None
        if rate is None:
            continue
        views = float(stat["views"]) if pd.notna(stat.get("views")) else None
        read_through.append({"novel_id": nid, "avg_read_through_rate": rate, "views": views})
    read_through.sort(key=lambda x: x["avg_read_through_rate"], reverse=True)
    report.top_read_through = [
        {
            **x,
            "title": first_row[x["novel_id"]].get("title") or "",
            "author": first_row[x["novel_id"]].get("author") or "",
            "novel_url": first_row[x["novel_id"]].get("novel_url") or "",
        }
        for x in read_through[:ROOKIE_TOP_N]
    ]
    return report


# ---------- single novel ----------
@dataclass
class NovelStatsReport:
    novel: dict
    rows: pd.DataFrame
    latest_views: Optional[float] = None
    latest_date: Optional[str] = None
    latest_delta: Optional[float] = None
    latest_delta_pct: Optional[float] = None
    latest_read_through: Optional[float] = None
    has_read_through: bool = False
    data_days: int = 0


def novel_stats_report(db: NovelDatabase, novel_id: int) -> Optional[NovelStatsReport]:
    """Daily views, day-over-day delta and read-through rate for one novel."""
    novel = db.novel(novel_id)
    if novel is None:
        return None
    novel = {k: (None if pd.isna(v) else v) for k, v in novel.items()}
    stats = db.stats_for(novel_id)
    views = stats["views"].fillna(0)
    rows = pd.DataFrame({
        "date": stats["date"].astype(str),
        "views": views,
        "delta": views.diff().fillna(0),
        "read_through_rate": stats["detail_data"].map(parse_read_through),
    })
    report = NovelStatsReport(novel=novel, rows=rows, data_days=len(rows))
    if rows.empty:
        return report

    report.latest_views = float(views.iloc[-1])
    report.latest_date = rows["date"].iloc[-1]
    last_rate = rows["read_through_rate"].iloc[-1]
    report.latest_read_through = None if pd.isna(last_rate) else float(last_rate)
    report.has_read_through = bool(rows["read_through_rate"].notna().any())
    if len(rows) >= 2:
        prev = float(views.iloc[-2])
        report.latest_delta = report.latest_views - prev
        report.latest_delta_pct = surge_rate(report.latest_delta, prev) if prev else None
    return report


# ---------- dashboard ----------
@dataclass
class DashboardReport:
    novels: List[dict]
    by_platform: Dict[str, dict]
    total_views: float
    latest_ranking_date: Optional[str]
    recent_ranking_dates: List[str]


def dashboard_report(db: NovelDatabase, recent_dates: int = 5) -> DashboardReport:
    """Latest views and daily delta per novel, with per-platform count and total."""
    stats = db.all_stats()
    stats_by_novel = {nid: g for nid, g in stats.groupby("novel_id")} if not stats.empty else {}
    summaries = []
    per_platform: Dict[str, dict] = {}
    total = 0.0
    for n in _records(db.novels()):
        if n.get("id") is None:
            continue
        rows = stats_by_novel.get(n["id"])
        views = rows["views"].fillna(0) if rows is not None else pd.Series(dtype="float64")
        latest = float(views.iloc[-1]) if len(views) else 0.0
        delta = float(views.iloc[-1] - views.iloc[-2]) if len(views) >= 2 else 0.0
        platform = normalize_platform(n.get("platform"))

        total += latest
        ps = per_platform.setdefault(platform, {"count": 0, "total_views": 0.0})
        ps["count"] += 1
        ps["total_views"] += latest
        summaries.append({
            "id": int(n["id"]),
            "title": n.get("title") or "",
            "author": n.get("author") or "",
            "platform": platform,
            "views": latest,
            "delta": delta,
            "latest_date": str(rows["date"].iloc[-1]) if rows is not None and len(rows) else None,
        })
    return DashboardReport(
        novels=summaries,
        by_platform={p: per_platform[p] for p in order_platforms(per_platform)},
        total_views=total,
        latest_ranking_date=db.latest_ranking_date(),
        recent_ranking_dates=db.ranking_dates(recent_dates),
    )


# ---------- hall of fame ----------
@dataclass
class HallOfFameReport:
    platform: Optional[str]
    platforms: List[str]
    items: List[dict]


def hall_of_fame_report(db: NovelDatabase, platform: Optional[str] = None,
                        limit: int = HALL_OF_FAME_LIMIT) -> HallOfFameReport:
    """Titles that stayed longest in a top-100 ranking, optionally for one ranking platform."""
    items = [
        {
            "title": r["title"],
            "author": r.get("author") or "",
            "platform": r.get("platform") or "",
            "days_in_top100": int(r["days_in_top100"]),
            "best_rank": _rank({"rank": r.get("best_rank")}),
        }
        for r in _records(db.hall_of_fame(platform, limit))
    ]
    return HallOfFameReport(platform=platform, platforms=db.ranking_platforms(), items=items)


# ---------- title patterns ----------
@dataclass
class TitlePatternReport:
    anchor: str
    total_titles: int = 0
    patterns: Dict[str, List[dict]] = field(default_factory=dict)
    keyword_freq: List[dict] = field(default_factory=list)
    genre_growth: List[dict] = field(default_factory=list)


def title_pattern_report(db: NovelDatabase, days: int = TITLE_WINDOW_DAYS,
                         anchor: Optional[str] = None) -> TitlePatternReport:
    """Keyword patterns of ranked titles over the `days` days up to anchor (default: latest ranking date)."""
    anchor = anchor or db.latest_ranking_date()
    if not anchor:
        return TitlePatternReport(anchor="")
    ts = parse_day(anchor)
    if ts is None:
        raise ValueError(f"invalid report date: {anchor!r}")
    end = ts.date()
    start = end - timedelta(days=days - 1)

    df = db.ranking_titles_between(start.isoformat(), end.isoformat())
    this_week, prev_week = week_windows(end)
    this_counts = counts_by_genre(db.genre_counts_between(*(d.isoformat() for d in this_week)))
    prev_counts = counts_by_genre(db.genre_counts_between(*(d.isoformat() for d in prev_week)))
    logger.info("[titles] %s: %d ranked titles over %d days", end, len(df), days)
    return TitlePatternReport(
        anchor=end.isoformat(),
        total_titles=len(df),
        patterns=extract_title_patterns(df["title"].tolist()),
        keyword_freq=keyword_frequency(zip(df["title"], df["platform"])),
        genre_growth=genre_growth(this_counts, prev_counts),
    )
