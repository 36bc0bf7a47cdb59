"""
Command-line reports over a NovelForge database file.

    novelstats fetch URL              download the DB from a share link
    novelstats today                  rankings + surges for the latest ranking date
    novelstats report 2025-03-01      same, for a given date
    novelstats aggregate --my-novel 12
    novelstats compare 3 7 12
    novelstats rookie [--date D]
    novelstats novel 12               daily views, delta and read-through for one novel
    novelstats dashboard
    novelstats halloffame [--platform P]
    novelstats titles [--days 60] [--date D]

--db defaults to $NOVELSTATS_DB (or ./data/novelforge.db).
"""

import argparse
import logging
import sys

import pandas as pd
import requests

from novelstats.config import DB_PATH, DB_URL, HALL_OF_FAME_LIMIT, HORIZONS, LOG_LEVEL, TITLE_WINDOW_DAYS
from novelstats.db import download_db, open_db
from novelstats.formatting import format_date_short, format_delta, format_percent, format_views
from novelstats.reports import (
    aggregate_report,
    compare_report,
    dashboard_report,
    hall_of_fame_report,
    novel_stats_report,
    report_for_date,
    rookie_monitor_report,
    title_pattern_report,
    today_report,
)

TOP_N = 10


def _fmt_rank(rank) -> str:
    return "-" if rank is None else str(int(rank))


def print_daily(report):
    print(f"=== Report for {report.date} ===")
    for platform, rows in report.rankings.items():
        print(f"\n[{platform}] TOP {TOP_N}")
        for r in rows[:TOP_N]:
            views = format_views(r["views"]) if r.get("views") is not None else "-"
            print(f"  #{_fmt_rank(r['rank']):<3} {r['title']}  ({r.get('author') or ''})  {views}")
    for h in HORIZONS:
        items = report.surge[h]
        print(f"\n[surge:{h}] {len(items)} novels")
        for it in items[:TOP_N]:
            print(f"  {it['title']:<30} {format_delta(it['surge']):>10}  {format_percent(it['surge_rate']):>8}"
                  f"  ({it['prior_date']} → {it['latest_date']})")


def cmd_fetch(args):
    url = args.url or DB_URL
    if not url:
        print("No URL given and NOVELSTATS_DB_URL is not set.", file=sys.stderr)
        return 2
    try:
        dest = download_db(url, args.db)
    except (RuntimeError, requests.RequestException) as e:
        print(f"[fetch] {e}", file=sys.stderr)
        return 1
    print(f"✓ DB → {dest.resolve()}")
    return 0


def cmd_today(args):
    with open_db(args.db) as db:
        report = today_report(db)
    if report is None:
        print("No ranking data in this DB.")
        return 1
    print_daily(report)
    return 0


def cmd_report(args):
    with open_db(args.db) as db:
        print_daily(report_for_date(db, args.date))
    return 0


def cmd_aggregate(args):
    with open_db(args.db) as db:
        report = aggregate_report(db, my_novel_id=args.my_novel)
    if not report.platforms:
        print("No novels with a launch date and statistics.")
        return 1
    for platform in report.platforms:
        agg = report.by_platform[platform]
        print(f"\n[{platform}] novels={agg.total_novels}")
        for tier, points in agg.tiers.items():
            last = points[-1] if points else None
            if last is None:
                print(f"  {tier:<6} -")
            else:
                print(f"  {tier:<6} n={len(agg.members.get(tier, [])):<4} day {last.days_since_launch:>5}"
                      f"  median {format_views(last.cumulative_views)}")
        if agg.percentile_top is not None:
            print(f"  my novel: top {format_percent(agg.percentile_top)}")
    return 0


def cmd_compare(args):
    with open_db(args.db) as db:
        report = compare_report(db, args.ids)
    if not report.novels:
        print("None of the given novels have a launch date.")
        return 1
    for n in report.novels:
        print(f"[{n['id']}] {n['title']} ({n['platform']}, launch {n['launch_date']}): "
              f"{format_views(n['total_views'])} over {max(len(n['series']) - 1, 0)} days")
    print(report.merged.tail(TOP_N).to_string(index=False))
    return 0


def cmd_rookie(args):
    with open_db(args.db) as db:
        report = rookie_monitor_report(db, args.date)
    if not report.has_data:
        print("No rookie monitor rankings in this DB.")
        return 1
    print(f"=== Rookie monitor {report.date} ===")
    print(f"\n[new rookies] {len(report.new_rookie_today)}")
    for r in report.new_rookie_today:
        print(f"  #{_fmt_rank(r['rank']):<3} {r['title']} ({r['author']})")
    for key, section in report.surge_by_section.items():
        if not section["items"]:
            continue
        print(f"\n[{section['label']}]")
        for it in section["items"]:
            print(f"  {it['title']:<30} {format_delta(it['surge']):>10}  {format_percent(it['surge_rate']):>8}")
    print(f"\n[read-through] top {len(report.top_read_through)}")
    for it in report.top_read_through:
        print(f"  {it['title']:<30} {format_percent(it['avg_read_through_rate'])}")
    return 0


def cmd_novel(args):
    with open_db(args.db) as db:
        report = novel_stats_report(db, args.id)
    if report is None:
        print(f"No novel with id {args.id}.")
        return 1
    n = report.novel
    print(f"=== {n.get('title') or '(제목 없음)'} ===")
    print(f"{n.get('author') or '작가 미상'} · {n.get('platform') or '플랫폼 미지정'}"
          + (f" · 런칭 {n['launch_date']}" if n.get("launch_date") else ""))
    if not report.data_days:
        print("No daily statistics for this novel.")
        return 0
    print(f"[latest] {format_views(report.latest_views)} ({report.latest_date})")
    if report.latest_delta is not None:
        pct = f" ({format_percent(report.latest_delta_pct)})" if report.latest_delta_pct is not None else ""
        print(f"[delta]  {format_delta(report.latest_delta)}{pct}")
    if report.has_read_through:
        rt = report.latest_read_through
        print(f"[read-through] {format_percent(rt) if rt is not None else '-'}")
    print(f"[span]   {report.data_days} days")
    for r in report.rows.tail(TOP_N).itertuples(index=False):
        rt = format_percent(r.read_through_rate) if pd.notna(r.read_through_rate) else "-"
        print(f"  {format_date_short(r.date)}  {format_views(r.views):>10}  {format_delta(r.delta):>10}  {rt:>7}")
    return 0


def cmd_dashboard(args):
    with open_db(args.db) as db:
        report = dashboard_report(db)
    print(f"=== Dashboard: {len(report.novels)} novels, {format_views(report.total_views)} views ===")
    print(f"latest ranking: {report.latest_ranking_date or '-'}")
    for platform, ps in report.by_platform.items():
        print(f"  [{platform}] {ps['count']} novels  {format_views(ps['total_views'])}")
    for n in report.novels:
        print(f"  {n['title'] or '-':<30} {format_views(n['views']):>10}  {format_delta(n['delta']):>10}"
              f"  ({format_date_short(n['latest_date'] or '')})")
    return 0


def cmd_halloffame(args):
    with open_db(args.db) as db:
        report = hall_of_fame_report(db, args.platform, args.limit)
    if not report.items:
        print("No ranking data in this DB.")
        return 1
    print(f"=== Hall of fame ({report.platform or 'all platforms'}) ===")
    for i, it in enumerate(report.items, 1):
        print(f"  {i:>3}. {it['title']:<30} {it['author'] or '-':<12} {it['days_in_top100']:>4} days"
              f"  best #{_fmt_rank(it['best_rank'])}")
    return 0


def cmd_titles(args):
    with open_db(args.db) as db:
        report = title_pattern_report(db, args.days, args.date)
    if not report.total_titles:
        print("No ranked titles in this window.")
        return 1
    print(f"=== Title patterns: {report.total_titles} ranked titles, {args.days} days to {report.anchor} ===")
    for key in ("modifiers", "jobs", "actions", "other_keywords"):
        top = report.patterns[key][:TOP_N]
        print(f"[{key}] " + ", ".join(f"{p['keyword']}({p['count']})" for p in top))
    print("[genre growth]")
    for g in report.genre_growth:
        print(f"  {g['genre']:<16} {g['prev_count']:>4} → {g['this_count']:<4} {format_percent(g['growth_rate'])}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="novelstats", description="Web-novel view statistics reports")
    ap.add_argument("--db", default=str(DB_PATH), help="Path of the NovelForge SQLite file.")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("fetch", help="Download the DB from a share link.")
    p.add_argument("url", nargs="?", default="", help="Share link (defaults to $NOVELSTATS_DB_URL).")
    p.set_defaults(func=cmd_fetch)

    p = sub.add_parser("today", help="Report for the latest ranking date.")
    p.set_defaults(func=cmd_today)

    p = sub.add_parser("report", help="Report for a given date.")
    p.add_argument("date", help="YYYY-MM-DD")
    p.set_defaults(func=cmd_report)

    p = sub.add_parser("aggregate", help="Tier median curves per platform.")
    p.add_argument("--my-novel", type=int, default=None, help="Novel id to place in the ranking.")
    p.set_defaults(func=cmd_aggregate)

    p = sub.add_parser("compare", help="Compare up to 3 novels by days since launch.")
    p.add_argument("ids", type=int, nargs="+")
    p.set_defaults(func=cmd_compare)

    p = sub.add_parser("rookie", help="Munpia rookie monitor.")
    p.add_argument("--date", default=None, help="YYYY-MM-DD (defaults to the latest)")
    p.set_defaults(func=cmd_rookie)

    p = sub.add_parser("novel", help="Daily statistics of one novel.")
    p.add_argument("id", type=int)
    p.set_defaults(func=cmd_novel)

    p = sub.add_parser("dashboard", help="Novel count and views per platform.")
    p.set_defaults(func=cmd_dashboard)

    p = sub.add_parser("halloffame", help="Longest stays in a TOP100 ranking.")
    p.add_argument("--platform", default=None, help="Ranking platform label (defaults to all).")
    p.add_argument("--limit", type=int, default=HALL_OF_FAME_LIMIT)
    p.set_defaults(func=cmd_halloffame)

    p = sub.add_parser("titles", help="Keyword patterns of ranked titles.")
    p.add_argument("--days", type=int, default=TITLE_WINDOW_DAYS)
    p.add_argument("--date", default=None, help="YYYY-MM-DD (defaults to the latest ranking date)")
    p.set_defaults(func=cmd_titles)
    return ap


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else LOG_LEVEL, format="%(message)s")
    try:
        return args.func(args)
    except (FileNotFoundError, ValueError) as e:
        print(str(e), file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
