import pytest

from novelstats.platform import UNCLASSIFIED, group_by_platform, normalize_platform, order_platforms


@pytest.mark.parametrize("label", [None, "", "   "])
def test_blank_labels_are_unclassified(label):
    assert normalize_platform(label) == UNCLASSIFIED


@pytest.mark.parametrize("label, expected", [
    ("네이버 시리즈", "네이버"),
    ("NAVER", "네이버"),
    ("naver series", "네이버"),
    ("munpia.com", "문피아"),
    ("문피아닷컴", "문피아"),
    ("kakaopage", "카카오"),
    ("카카오 페이지", "카카오"),
    ("리디북스", "리디"),
    ("RIDI", "리디"),
    ("Novelpia", "노벨피아"),
])
def test_known_variants_collapse(label, expected):
    assert normalize_platform(label) == expected


def test_unknown_label_passes_through_trimmed():
    assert normalize_platform("  Joara ") == "Joara"


def test_first_table_entry_wins():
    # matches both munpia and naver variants; munpia comes first in the table
    assert normalize_platform("naver-munpia mirror") == "문피아"


def test_order_platforms_known_first_then_alphabetical():
    assert order_platforms(["Joara", "리디", "카카오", "Aaa"]) == ["카카오", "리디", "Aaa", "Joara"]


def test_group_by_platform_keeps_row_order():
    rows = [
        {"id": 1, "platform": "Naver"},
        {"id": 2, "platform": "문피아"},
        {"id": 3, "platform": "네이버시리즈"},
        {"id": 4, "platform": None},
    ]
    groups = group_by_platform(rows)
    assert [r["id"] for r in groups["네이버"]] == [1, 3]
    assert [r["id"] for r in groups["문피아"]] == [2]
    assert [r["id"] for r in groups[UNCLASSIFIED]] == [4]
