"""
NovelForge web viewer (read-only).
- Loads the NovelForge SQLite file from a local path or a share link (Dropbox)
- Views:
    - Today / History: platform TOP 10 rankings + daily/weekly/monthly surges
    - Aggregate: per-platform tier median curves by days since launch (+ "my novel")
    - Compare: up to 3 novels on the same days-since-launch axis
    - Rookie monitor: Munpia rookie/new/genre best lists
    - Dashboard, single-novel stats, hall of fame, title keyword patterns
Run: streamlit run novelstats/app.py
"""

from pathlib import Path

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import requests
import streamlit as st

from novelstats.config import DB_PATH, DB_URL, HORIZONS, MAX_COMPARE, RANKING_DATES_LIMIT, TITLE_WINDOW_DAYS
from novelstats.db import download_db, open_db
from novelstats.formatting import format_date_short, format_delta, format_percent, format_views
from novelstats.platform import PLATFORM_COLORS
from novelstats.reports import (
    aggregate_report,
    compare_report,
    dashboard_report,
    hall_of_fame_report,
    novel_stats_report,
    report_for_date,
    rookie_monitor_report,
    title_pattern_report,
)
from novelstats.series import BUCKET_DAYS, DEFAULT_BUCKET_INDEX, bucket_series

HORIZON_LABELS = {"daily": "일간", "weekly": "주간", "monthly": "월간"}
TIER_LABELS = {"top20": "상위 20%", "top40": "상위 20~40%", "top60": "상위 40~60%", "top80": "상위 60~80%"}
TIER_COLORS = {"top20": "#1d4ed8", "top40": "#3b82f6", "top60": "#93c5fd", "top80": "#cbd5e1"}
COMPARE_COLORS = ["#2563eb", "#16a34a", "#dc2626"]


@st.cache_resource(show_spinner=False)
def load_db(path: str):
    return open_db(path)


def surge_table(items) -> pd.DataFrame:
    if not items:
        return pd.DataFrame()
    df = pd.DataFrame(items)[["title", "author", "platform", "latest_views", "surge", "surge_rate",
                              "prior_date", "latest_date"]]
    df["latest_views"] = df["latest_views"].map(format_views)
    df["surge"] = df["surge"].map(format_delta)
    df["surge_rate"] = df["surge_rate"].map(format_percent)
    return df


def show_daily(db, day: str):
    report = report_for_date(db, day)
    st.caption(report.date)
    for platform, rows in report.rankings.items():
        if not rows:
            continue
        st.subheader(f"{platform} TOP 10")
        tbl = pd.DataFrame(rows).head(10)[["rank", "title", "author", "publisher", "views"]]
        tbl["views"] = tbl["views"].map(lambda v: format_views(v) if pd.notna(v) else "-")
        st.dataframe(tbl, use_container_width=True, hide_index=True)

    st.subheader("조회수 급상승")
    tabs = st.tabs([HORIZON_LABELS[h] for h in HORIZONS])
    for tab, h in zip(tabs, HORIZONS):
        with tab:
            tbl = surge_table(report.surge[h])
            if tbl.empty:
                st.info("비교할 데이터가 없습니다.")
            else:
                st.dataframe(tbl, use_container_width=True, hide_index=True)


def show_aggregate(db):
    novels = db.novels_with_launch_date()
    options = [None] + novels["id"].astype(int).tolist()
    titles = dict(zip(novels["id"].astype(int), novels["title"].fillna("")))
    my_id = st.sidebar.selectbox("내 작품", options, format_func=lambda i: "-" if i is None else titles.get(i, str(i)))
    bucket_idx = st.sidebar.select_slider("X축 간격(일)", options=list(range(len(BUCKET_DAYS))),
                                          value=DEFAULT_BUCKET_INDEX, format_func=lambda i: str(BUCKET_DAYS[i]))
    report = aggregate_report(db, my_novel_id=my_id)
    if not report.platforms:
        st.info("런칭일과 통계가 있는 작품이 없습니다.")
        return
    for platform in report.platforms:
        agg = report.by_platform[platform]
        st.subheader(f"{platform} (작품 {agg.total_novels}개)")
        fig = go.Figure()
        for tier, points in agg.tiers.items():
            pts = bucket_series(points, BUCKET_DAYS[bucket_idx])
            fig.add_trace(go.Scatter(
                x=[p.days_since_launch for p in pts], y=[p.cumulative_views for p in pts],
                mode="lines", name=f"{TIER_LABELS.get(tier, tier)} ({len(agg.members.get(tier, []))})",
                line=dict(color=TIER_COLORS.get(tier)),
            ))
        if agg.my_series:
            pts = bucket_series(agg.my_series, BUCKET_DAYS[bucket_idx])
            fig.add_trace(go.Scatter(
                x=[p.days_since_launch for p in pts], y=[p.cumulative_views for p in pts],
                mode="lines+markers", name="내 작품",
                line=dict(color=PLATFORM_COLORS.get(platform, "#ef4444"), width=3),
            ))
        fig.update_layout(template="plotly_white", hovermode="x unified",
                          xaxis_title="런칭 후 경과일", yaxis_title="누적 조회수")
        st.plotly_chart(fig, use_container_width=True)
        if agg.percentile_top is not None:
            st.caption(f"내 작품: 상위 {format_percent(agg.percentile_top)}")


def show_compare(db):
    novels = db.novels_with_launch_date()
    titles = dict(zip(novels["id"].astype(int), novels["title"].fillna("")))
    picked = st.multiselect(f"작품 선택 (최대 {MAX_COMPARE}개)", list(titles), max_selections=MAX_COMPARE,
                            format_func=lambda i: titles.get(i, str(i)))
    if not picked:
        st.info("비교할 작품을 선택하세요.")
        return
    report = compare_report(db, picked)
    long_df = report.merged.melt(id_vars="days_since_launch", var_name="novel", value_name="views")
    names = {f"views_{n['id']}": n["title"] for n in report.novels}
    long_df["novel"] = long_df["novel"].map(names)
    fig = px.line(long_df, x="days_since_launch", y="views", color="novel",
                  color_discrete_sequence=COMPARE_COLORS,
                  labels={"days_since_launch": "런칭 후 경과일", "views": "누적 조회수", "novel": "작품"})
    fig.update_layout(template="plotly_white", hovermode="x unified")
    st.plotly_chart(fig, use_container_width=True)
    st.dataframe(pd.DataFrame([
        {"title": n["title"], "platform": n["platform"], "launch_date": n["launch_date"],
         "total_views": format_views(n["total_views"])}
        for n in report.novels
    ]), use_container_width=True, hide_index=True)


def show_rookie(db):
    report = rookie_monitor_report(db)
    if not report.has_data:
        st.info("신작 모니터링 데이터가 없습니다.")
        return
    st.caption(report.date)
    st.subheader("오늘 새로 진입한 신인 베스트")
    if report.new_rookie_today:
        st.dataframe(pd.DataFrame(report.new_rookie_today), use_container_width=True, hide_index=True)
    else:
        st.info("새로 진입한 작품이 없습니다.")
    for key, section in report.surge_by_section.items():
        if not section["items"]:
            continue
        with st.expander(section["label"]):
            tbl = pd.DataFrame(section["items"])[["title", "author", "views_today", "surge", "surge_rate"]]
            tbl["views_today"] = tbl["views_today"].map(format_views)
            tbl["surge"] = tbl["surge"].map(format_delta)
            tbl["surge_rate"] = tbl["surge_rate"].map(format_percent)
            st.dataframe(tbl, use_container_width=True, hide_index=True)
    if report.top_read_through:
        st.subheader("연독률 TOP 20")
        st.dataframe(pd.DataFrame(report.top_read_through), use_container_width=True, hide_index=True)


def show_novel(db):
    novels = db.novels()
    if novels.empty:
        st.info("등록된 작품이 없습니다.")
        return
    titles = dict(zip(novels["id"].astype(int), novels["title"].fillna("")))
    novel_id = st.sidebar.selectbox("작품", list(titles), format_func=lambda i: titles.get(i, str(i)))
    report = novel_stats_report(db, novel_id)
    if report is None:
        st.info("작품을 찾을 수 없습니다.")
        return
    n = report.novel
    st.subheader(n.get("title") or "(제목 없음)")
    st.caption(" · ".join(x for x in [
        n.get("author") or "작가 미상",
        n.get("platform") or "플랫폼 미지정",
        n.get("publisher") or "",
        f"런칭 {n['launch_date']}" if n.get("launch_date") else "",
    ] if x))
    if not report.data_days:
        st.info("일일 통계가 없습니다.")
        return

    cols = st.columns(4)
    cols[0].metric("최신 조회수", format_views(report.latest_views), report.latest_date, delta_color="off")
    if report.latest_delta is not None:
        pct = format_percent(report.latest_delta_pct) if report.latest_delta_pct is not None else None
        cols[1].metric("전일 대비", format_delta(report.latest_delta), pct)
    if report.has_read_through:
        rt = report.latest_read_through
        cols[2].metric("연독률", format_percent(rt) if rt is not None else "-")
    cols[3].metric("데이터 기간", f"{report.data_days}일")

    rows = report.rows.assign(label=report.rows["date"].map(format_date_short))
    st.plotly_chart(px.line(rows, x="date", y="views", labels={"date": "날짜", "views": "누적 조회수"},
                            template="plotly_white"), use_container_width=True)
    fig = px.bar(rows.iloc[1:], x="date", y="delta", labels={"date": "날짜", "delta": "일일 증감"},
                 template="plotly_white")
    st.plotly_chart(fig, use_container_width=True)
    if report.has_read_through:
        st.plotly_chart(px.line(rows.dropna(subset=["read_through_rate"]), x="date", y="read_through_rate",
                                labels={"date": "날짜", "read_through_rate": "연독률(%)"},
                                template="plotly_white"), use_container_width=True)
    tbl = rows.iloc[::-1].head(30)[["label", "views", "delta", "read_through_rate"]]
    tbl = tbl.assign(
        views=tbl["views"].map(format_views),
        delta=tbl["delta"].map(format_delta),
        read_through_rate=tbl["read_through_rate"].map(lambda v: format_percent(v) if pd.notna(v) else "-"),
    )
    st.dataframe(tbl, use_container_width=True, hide_index=True)


def show_dashboard(db):
    report = dashboard_report(db)
    cols = st.columns(3)
    cols[0].metric("총 작품", len(report.novels))
    cols[1].metric("총 조회수", format_views(report.total_views))
    cols[2].metric("최근 랭킹", report.latest_ranking_date or "-")
    if report.by_platform:
        pf = pd.DataFrame([{"platform": p, **ps} for p, ps in report.by_platform.items()])
        fig = px.bar(pf, x="platform", y="total_views", color="platform", text="count",
                     color_discrete_map=PLATFORM_COLORS, template="plotly_white",
                     labels={"platform": "플랫폼", "total_views": "조회수", "count": "작품 수"})
        st.plotly_chart(fig, use_container_width=True)
    if report.novels:
        tbl = pd.DataFrame(report.novels)[["title", "author", "platform", "views", "delta", "latest_date"]]
        tbl["views"] = tbl["views"].map(format_views)
        tbl["delta"] = tbl["delta"].map(format_delta)
        tbl["latest_date"] = tbl["latest_date"].map(lambda d: format_date_short(d) if d else "-")
        st.dataframe(tbl, use_container_width=True, hide_index=True)


def show_hall_of_fame(db):
    platforms = db.ranking_platforms()
    platform = st.sidebar.selectbox("플랫폼", [None] + platforms, format_func=lambda p: "전체" if p is None else p)
    report = hall_of_fame_report(db, platform)
    st.caption("TOP100 누적 체류일 순위 (랭킹에 가장 오래 등장한 작품)")
    if not report.items:
        st.info("랭킹 데이터가 없습니다.")
        return
    tbl = pd.DataFrame(report.items)
    tbl.insert(0, "#", range(1, len(tbl) + 1))
    st.dataframe(tbl, use_container_width=True, hide_index=True)


def show_titles(db):
    days = st.sidebar.slider("분석 기간(일)", min_value=7, max_value=180, value=TITLE_WINDOW_DAYS, step=7)
    report = title_pattern_report(db, days)
    if not report.total_titles:
        st.info("분석할 랭킹 제목이 없습니다.")
        return
    st.caption(f"{report.anchor}까지 {days}일, 랭킹 제목 {report.total_titles:,}개")
    labels = {"modifiers": "수식어", "jobs": "직업", "actions": "행동", "other_keywords": "기타 키워드"}
    cols = st.columns(2)
    for i, (key, label) in enumerate(labels.items()):
        items = report.patterns.get(key) or []
        with cols[i % 2]:
            st.subheader(label)
            if items:
                st.plotly_chart(px.bar(pd.DataFrame(items).head(15), x="count", y="keyword", orientation="h",
                                       template="plotly_white"), use_container_width=True)
            else:
                st.info("-")
    if report.genre_growth:
        st.subheader("장르 성장률 (이번 주 vs 지난 주)")
        tbl = pd.DataFrame(report.genre_growth)
        tbl["growth_rate"] = tbl["growth_rate"].map(format_percent)
        st.dataframe(tbl, use_container_width=True, hide_index=True)


def release_db(path: str):
    """Close the cached connection for path and drop it from the cache."""
    if Path(path).exists():
        load_db(path).close()
    load_db.clear()


st.set_page_config(page_title="NovelForge Viewer", layout="wide")
st.title("NovelForge Viewer")

with st.sidebar:
    st.header("DB")
    db_path = st.text_input("DB 파일 경로", value=str(DB_PATH))
    share_url = st.text_input("공유 링크 (Dropbox)", value=DB_URL)
    if st.button("링크에서 불러오기", disabled=not share_url):
        try:
            with st.spinner("다운로드 중..."):
                download_db(share_url, db_path)
        except (RuntimeError, requests.RequestException) as e:
            st.error(f"다운로드 실패: {e}")
        else:
            release_db(db_path)

try:
    db = load_db(db_path)
except FileNotFoundError as e:
    st.error(str(e))
    st.stop()

view = st.sidebar.radio(
    "보기", ["대시보드", "투데이", "역대 리포트", "작품 통계", "통합 통계", "비교", "신작 모니터링", "명예의 전당", "제목 패턴"]
)

if view == "대시보드":
    show_dashboard(db)
elif view == "투데이":
    latest = db.latest_ranking_date()
    if latest is None:
        st.info("랭킹 데이터가 없습니다.")
    else:
        show_daily(db, latest)
elif view == "역대 리포트":
    dates = db.ranking_dates(RANKING_DATES_LIMIT)
    if not dates:
        st.info("daily_rankings 테이블에 랭킹 데이터가 없습니다.")
    else:
        show_daily(db, st.sidebar.selectbox("날짜", dates))
elif view == "작품 통계":
    show_novel(db)
elif view == "통합 통계":
    show_aggregate(db)
elif view == "비교":
    show_compare(db)
elif view == "신작 모니터링":
    show_rookie(db)
elif view == "명예의 전당":
    show_hall_of_fame(db)
else:
    show_titles(db)

st.caption(f"Data: {Path(db_path).name} (read-only).")
