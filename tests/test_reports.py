"""
Report assembly over the fixture database (see conftest.py for the rows).
"""

import pytest

from novelstats.reports import (
    aggregate_report,
    compare_report,
    dashboard_report,
    hall_of_fame_report,
    novel_stats_report,
    parse_read_through,
    report_for_date,
    rookie_monitor_report,
    title_pattern_report,
    today_report,
)


def ids(items):
    return [it["novel_id"] for it in items]


class TestDailyReport:

    def test_today_uses_latest_ranking_date(self, db):
        report = today_report(db)
        assert report.date == "2024-01-10"
        assert set(report.rankings) == {"네이버", "카카오", "문피아"}
        assert [r["title"] for r in report.rankings["네이버"]] == ["A", "B"]
        assert sorted(report.my_novel_ids) == [1, 2, 3, 4, 5, 6]

    def test_daily_surges(self, db):
        daily = today_report(db).surge["daily"]
        # B and D have no observation near 01-09; E is on a non-surge platform
        assert ids(daily)[0] == 1
        assert set(ids(daily)) == {1, 3, 6}
        first = daily[0]
        assert first["surge"] == 100
        assert first["surge_rate"] == 11.1
        assert first["platform"] == "네이버"
        assert first["title"] == "A"

    def test_weekly_surges_sorted_by_size(self, db):
        weekly = today_report(db).surge["weekly"]
        assert ids(weekly) == [1, 2, 3, 6]
        assert [it["surge_rate"] for it in weekly] == [100.0, 200.0, 600.0, 400.0]

    def test_monthly_surges(self, db):
        monthly = today_report(db).surge["monthly"]
        assert ids(monthly) == [1, 2, 3]

    def test_history_date(self, db):
        report = report_for_date(db, "2024-01-09")
        assert [r["title"] for r in report.rankings["네이버"]] == ["A"]
        # the observation closest to 01-08 is 01-09 itself for every novel
        assert report.surge["daily"] == []
        weekly = report.surge["weekly"]
        assert ids(weekly) == [1, 3]
        assert weekly[0]["surge"] == 900

    def test_no_rankings(self, empty_db):
        assert today_report(empty_db) is None


class TestAggregateReport:

    def test_platforms_and_tiers(self, db):
        report = aggregate_report(db, my_novel_id=2)
        assert report.platforms == ["네이버", "문피아", "리디"]
        naver = report.by_platform["네이버"]
        assert naver.total_novels == 2
        top = naver.tiers["top20"]
        assert len(top) == 10
        assert top[0] == (0, 0)
        assert top[-1] == (9, 1000)
        assert naver.percentile_top == 100.0
        assert naver.my_series[1] == (1, 100)
        assert report.by_platform["문피아"].percentile_top is None

    def test_ramp_for_late_first_observation(self, db):
        ridi = aggregate_report(db).by_platform["리디"]
        values = [p.cumulative_views for p in ridi.tiers["top20"]]
        assert values == [0, 1, 2, 3, 5, 6, 7, 8, 10, 20]

    def test_empty_db(self, empty_db):
        report = aggregate_report(empty_db)
        assert report.platforms == []
        assert report.by_platform == {}


class TestCompareReport:

    def test_compare_skips_novels_without_launch_date(self, db):
        report = compare_report(db, [1, 3, 2, 5])
        assert [n["id"] for n in report.novels] == [1, 2]
        assert list(report.merged.columns) == ["days_since_launch", "views_1", "views_2"]
        assert report.merged["views_2"].iloc[-1] == 300
        assert len(report.merged) == 10

    def test_compare_nothing_selected(self, db):
        report = compare_report(db, [])
        assert report.novels == []
        assert report.merged.empty


class TestRookieMonitor:

    def test_defaults_to_latest_rookie_date(self, db):
        report = rookie_monitor_report(db)
        assert report.date == "2024-01-10"
        assert report.has_data

    def test_new_rookies(self, db):
        report = rookie_monitor_report(db, "2024-01-10")
        assert [r["novel_id"] for r in report.new_rookie_today] == [6]

    def test_section_surges_sorted_by_rate(self, db):
        section = rookie_monitor_report(db, "2024-01-10").surge_by_section["rookie"]
        assert section["label"] == "신인 베스트"
        items = section["items"]
        assert ids(items) == [6, 4]
        assert items[0]["surge_rate"] == 400.0
        # D has no row on 01-09: prior counts as zero
        assert items[1]["views_prev"] == 0
        assert items[1]["surge_rate"] == 100.0

    def test_read_through_ranking(self, db):
        top = rookie_monitor_report(db, "2024-01-10").top_read_through
        assert [(x["novel_id"], x["avg_read_through_rate"]) for x in top] == [(4, 80.0), (6, 72.5)]
        assert top[0]["title"] == "D"

    def test_no_data(self, empty_db):
        report = rookie_monitor_report(empty_db)
        assert report.date == ""
        assert not report.has_data


@pytest.mark.parametrize("detail, expected", [
    ('{"avg_read_through_rate": 55.5}', 55.5),
    ('{"avg_read_through_rate": "55"}', None),
    ('[1, 2]', None),
    ("not json", None),
    (None, None),
    ({"avg_read_through_rate": 12}, 12.0),
])
def test_parse_read_through(detail, expected):
    assert parse_read_through(detail) == expected


def test_rookie_rows_without_rank_sort_last(db_with):
    db = db_with([("2024-01-10", "문피아", "rookie", None, "G", 7, None)])
    report = rookie_monitor_report(db, "2024-01-10")
    assert [(r["novel_id"], r["rank"]) for r in report.new_rookie_today] == [(6, 1), (7, None)]
    assert ids(report.surge_by_section["rookie"]["items"]) == [6, 4, 7]


class TestNovelStats:

    def test_daily_rows_and_latest_summary(self, db):
        report = novel_stats_report(db, 6)
        assert report.novel["title"] == "F"
        assert report.rows["date"].tolist() == ["2024-01-09", "2024-01-10"]
        assert report.rows["delta"].tolist() == [0, 20]
        assert report.latest_views == 25
        assert report.latest_date == "2024-01-10"
        assert report.latest_delta == 20
        assert report.latest_delta_pct == 400.0
        assert report.latest_read_through == 72.5
        assert report.has_read_through
        assert report.data_days == 2

    def test_without_read_through(self, db):
        report = novel_stats_report(db, 1)
        assert report.rows["delta"].tolist() == [0, 500, 400, 100]
        assert report.latest_delta_pct == 11.1
        assert report.latest_read_through is None
        assert not report.has_read_through
        assert report.novel["launch_date"] == "2024-01-01"

    def test_missing_launch_date_is_none(self, db):
        assert novel_stats_report(db, 3).novel["launch_date"] is None

    def test_unknown_novel(self, db):
        assert novel_stats_report(db, 42) is None


class TestDashboard:

    def test_platform_totals(self, db):
        report = dashboard_report(db)
        assert list(report.by_platform) == ["카카오", "네이버", "문피아", "리디"]
        assert report.by_platform["네이버"] == {"count": 2, "total_views": 1300}
        assert report.by_platform["문피아"] == {"count": 2, "total_views": 65}
        assert report.total_views == 1455
        assert report.latest_ranking_date == "2024-01-10"
        assert report.recent_ranking_dates == ["2024-01-10", "2024-01-09"]

    def test_latest_delta_per_novel(self, db):
        novels = {n["id"]: n for n in dashboard_report(db).novels}
        assert [n["id"] for n in dashboard_report(db).novels] == [6, 5, 4, 3, 2, 1]
        assert novels[1]["delta"] == 100
        assert novels[2]["delta"] == 200
        assert novels[4]["delta"] == 0
        assert novels[3]["platform"] == "카카오"
        assert novels[5]["latest_date"] == "2024-01-10"

    def test_empty_db(self, empty_db):
        report = dashboard_report(empty_db)
        assert report.novels == []
        assert report.by_platform == {}
        assert report.latest_ranking_date is None


class TestHallOfFame:

    def test_days_in_top100(self, db):
        report = hall_of_fame_report(db)
        assert [it["title"] for it in report.items] == ["A", "D", "C", "F", "B"]
        assert report.items[0]["days_in_top100"] == 2
        assert report.items[-1]["best_rank"] == 2
        assert report.platforms == ["네이버시리즈", "문피아", "카카오페이지"]

    def test_platform_filter_and_limit(self, db):
        assert [it["title"] for it in hall_of_fame_report(db, "문피아").items] == ["D", "F"]
        assert len(hall_of_fame_report(db, limit=2).items) == 2

    def test_rows_outside_top100_or_without_rank(self, db_with):
        db = db_with([
            ("2024-01-08", "문피아", "rookie", 150, "D", 4, None),
            ("2024-01-08", "문피아", "rookie", None, "F", 6, None),
        ])
        items = {it["title"]: it for it in hall_of_fame_report(db).items}
        assert items["D"]["days_in_top100"] == 2
        assert items["F"]["days_in_top100"] == 1


TITLE_ROWS = [
    ("2024-01-10", "네이버시리즈", "daily", 3, "회귀한 헌터의 복수", None, "판타지"),
    ("2024-01-10", "카카오페이지", "daily", 2, "회귀한 마법사", None, "판타지"),
    ("2024-01-03", "문피아", "rookie", 5, "재벌집 막내", None, "현대판타지"),
    ("2024-01-02", "문피아", "rookie", 6, "무림 헌터", None, "무협"),
]


class TestTitlePatterns:

    def test_patterns_over_window(self, db_with):
        report = title_pattern_report(db_with(TITLE_ROWS))
        assert report.anchor == "2024-01-10"
        assert report.total_titles == 12
        counts = {k: {p["keyword"]: p["count"] for p in v} for k, v in report.patterns.items()}
        assert counts["modifiers"] == {"회귀한": 2, "회귀": 2}
        assert counts["jobs"] == {"헌터": 2, "마법사": 1, "재벌": 1}
        assert counts["actions"] == {"복수": 1}
        assert counts["other_keywords"] == {"헌터의": 1, "재벌집": 1, "막내": 1, "무림": 1}
        top = report.keyword_freq[0]
        assert top == {"keyword": "회귀한", "platforms": {"네이버": 1, "카카오": 1}, "total": 2}

    def test_genre_growth_week_over_week(self, db_with):
        growth = title_pattern_report(db_with(TITLE_ROWS)).genre_growth
        assert growth[0] == {"genre": "판타지", "prev_count": 0, "this_count": 2, "growth_rate": 100.0}
        assert {g["genre"]: g["growth_rate"] for g in growth[1:]} == {"무협": -100.0, "현대판타지": -100.0}

    def test_explicit_anchor_and_window(self, db):
        report = title_pattern_report(db, days=1, anchor="2024-01-09")
        assert report.total_titles == 2

    def test_invalid_anchor(self, db):
        with pytest.raises(ValueError):
            title_pattern_report(db, anchor="someday")

    def test_empty_db(self, empty_db):
        report = title_pattern_report(empty_db)
        assert report.anchor == ""
        assert report.total_titles == 0
