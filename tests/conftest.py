import json
import sqlite3

import pytest

from novelstats.db import open_db

SCHEMA = """
CREATE TABLE management_novels (
    id INTEGER PRIMARY KEY, title TEXT, author TEXT, publisher TEXT, platform TEXT, genre TEXT,
    keywords TEXT, launch_date TEXT, novel_url TEXT, created_at TEXT, updated_at TEXT
);
CREATE TABLE daily_statistics (
    id INTEGER PRIMARY KEY, novel_id INTEGER, date TEXT, views REAL, revenue REAL,
    promotion_active INTEGER, promotion_note TEXT, detail_data TEXT, promotion_tags TEXT
);
CREATE TABLE daily_rankings (
    id INTEGER PRIMARY KEY, ranking_date TEXT, platform TEXT, ranking_type TEXT, rank INTEGER,
    title TEXT, author TEXT, publisher TEXT, views REAL, novel_id INTEGER, novel_url TEXT,
    genre TEXT, extra_data TEXT
);
"""

# id, title, platform, launch_date
NOVELS = [
    (1, "A", "네이버 시리즈", "2024-01-01"),
    (2, "B", "Naver", "2024-01-01"),
    (3, "C", "kakaopage", None),
    (4, "D", "문피아", "2024-01-05"),
    (5, "E", "리디북스", "2024-01-01"),
    (6, "F", "문피아", "2024-01-08"),
]

# novel_id, date, views, detail_data
STATS = [
    (1, "2024-01-01", 0, None),
    (1, "2024-01-05", 500, None),
    (1, "2024-01-09", 900, None),
    (1, "2024-01-10", 1000, None),
    (2, "2024-01-02", 100, None),
    (2, "2024-01-10", 300, None),
    (3, "2024-01-03", 10, None),
    (3, "2024-01-09", 50, None),
    (3, "2024-01-10", 70, None),
    (4, "2024-01-06", 40, None),
    (4, "2024-01-10", 40, json.dumps({"avg_read_through_rate": 80.0})),
    (5, "2024-01-09", 10, None),
    (5, "2024-01-10", 20, None),
    (6, "2024-01-09", 5, "not json"),
    (6, "2024-01-10", 25, json.dumps({"avg_read_through_rate": 72.5})),
]

# ranking_date, platform, ranking_type, rank, title, novel_id, views
RANKINGS = [
    ("2024-01-09", "네이버시리즈", "daily", 1, "A", 1, 900),
    ("2024-01-09", "문피아", "rookie", 1, "D", 4, None),
    ("2024-01-10", "네이버시리즈", "daily", 1, "A", 1, 1000),
    ("2024-01-10", "네이버시리즈", "daily", 2, "B", 2, 300),
    ("2024-01-10", "카카오페이지", "daily", 1, "C", 3, 70),
    ("2024-01-10", "문피아", "rookie", 1, "F", 6, None),
    ("2024-01-10", "문피아", "rookie", 2, "D", 4, None),
    ("2024-01-10", "문피아", "genre_fantasy", 1, "D", 4, None),
]


def make_db(path):
    conn = sqlite3.connect(path)
    conn.executescript(SCHEMA)
    for i, (nid, title, platform, launch) in enumerate(NOVELS):
        conn.execute(
            "INSERT INTO management_novels (id, title, author, platform, launch_date, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (nid, title, f"author-{title}", platform, launch, f"2024-01-01 00:00:{i:02d}"),
        )
    for nid, day, views, detail in STATS:
        conn.execute(
            "INSERT INTO daily_statistics (novel_id, date, views, detail_data) VALUES (?, ?, ?, ?)",
            (nid, day, views, detail),
        )
    for day, platform, rtype, rank, title, nid, views in RANKINGS:
        conn.execute(
            "INSERT INTO daily_rankings (ranking_date, platform, ranking_type, rank, title, author, novel_id, views) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (day, platform, rtype, rank, title, f"author-{title}", nid, views),
        )
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def db_path(tmp_path):
    return make_db(tmp_path / "novelforge.db")


@pytest.fixture
def db(db_path):
    with open_db(db_path) as database:
        yield database


@pytest.fixture
def empty_db(tmp_path):
    path = tmp_path / "empty.db"
    conn = sqlite3.connect(path)
    conn.executescript(SCHEMA)
    conn.close()
    with open_db(path) as database:
        yield database


@pytest.fixture
def db_with(db_path):
    """Open the fixture DB after inserting extra daily_rankings rows
    (ranking_date, platform, ranking_type, rank, title, novel_id, genre)."""
    opened = []

    def _open(rankings):
        conn = sqlite3.connect(db_path)
        conn.executemany(
            "INSERT INTO daily_rankings (ranking_date, platform, ranking_type, rank, title, author, novel_id, genre) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            [(day, platform, rtype, rank, title, f"author-{title}", nid, genre)
             for day, platform, rtype, rank, title, nid, genre in rankings],
        )
        conn.commit()
        conn.close()
        database = open_db(db_path)
        opened.append(database)
        return database

    yield _open
    for database in opened:
        database.close()
