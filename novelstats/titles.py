"""
Rule-based keyword analysis of ranked titles.

Titles are matched against three fixed dictionaries (modifiers such as 회귀/빙의,
jobs such as 헌터/마법사, actions such as 복수/육성); every other word of two or
more Hangul/Latin letters is counted as an "other" keyword. Genre growth
compares distinct ranked titles per genre this week (Monday to the anchor day)
with the whole previous week.
"""

import re
from collections import Counter, defaultdict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from novelstats.config import KEYWORD_LIMIT
from novelstats.platform import normalize_platform
from novelstats.surge import surge_rate

MODIFIER_PATTERNS = [
    "회귀한", "회귀", "빙의한", "빙의", "환생한", "환생",
    "각성한", "각성", "먼치킨", "최강의", "무적의", "SSS급",
    "SS급", "S급", "A급", "전지적", "절대적", "초월한", "초월",
    "불멸의", "무한", "만렙", "레벨업", "랭커", "천재",
    "역대급", "전설의", "최고의", "유일한", "버린",
    "숨겨진", "잃어버린", "되돌아온", "살아남은", "깨어난",
    "선택받은", "추방된", "버려진", "소환된", "전이된",
    "포기한", "망한", "실패한", "다시", "두번째",
    "세번째", "미래의", "과거의", "평범한", "평균",
]

JOB_PATTERNS = [
    "감독", "플레이어", "기사", "마법사", "헌터", "CEO",
    "사장", "회장", "공작", "왕자", "황제", "여왕", "공주",
    "용사", "마왕", "성녀", "성기사", "검사", "궁수",
    "연금술사", "넥서스", "프로듀서", "작가", "교수",
    "학생", "의사", "변호사", "탐정", "요리사", "제왕",
    "튜터", "아이돌", "히어로", "재벌", "백수", "노비",
    "조련사", "테이머", "소환사", "치유사", "무당",
]

ACTION_PATTERNS = [
    "데뷔", "키우기", "생존", "복수", "사업", "경영",
    "레이드", "던전", "사냥", "탐험", "정복", "지배",
    "성장", "수련", "수행", "공략", "전쟁", "결투",
    "요리", "연애", "계약", "결혼", "이혼", "도망",
    "탈출", "귀환", "전생", "환생기", "육성",
]

ALL_PATTERNS = set(MODIFIER_PATTERNS) | set(JOB_PATTERNS) | set(ACTION_PATTERNS)
WORD_RE = re.compile(r"[가-힣a-zA-Z]{2,}")


def _top(counter: Counter, limit: int) -> List[dict]:
    # most_common keeps first-seen order among equal counts
    return [{"keyword": k, "count": c} for k, c in counter.most_common(limit)]


def title_words(title: str) -> List[str]:
    """Distinct words of a title, in order of first appearance."""
    return list(dict.fromkeys(WORD_RE.findall(title or "")))


def extract_title_patterns(titles: Iterable[Optional[str]], limit: int = KEYWORD_LIMIT) -> Dict[str, List[dict]]:
    """Counts of titles containing each dictionary pattern, plus other keywords."""
    mods, jobs, acts, other = Counter(), Counter(), Counter(), Counter()
    for title in titles:
        if not title:
            continue
        for patterns, counter in ((MODIFIER_PATTERNS, mods), (JOB_PATTERNS, jobs), (ACTION_PATTERNS, acts)):
            for p in patterns:
                if p in title:
                    counter[p] += 1
        for w in title_words(title):
            if w not in ALL_PATTERNS:
                other[w] += 1
    return {
        "modifiers": _top(mods, limit),
        "jobs": _top(jobs, limit),
        "actions": _top(acts, limit),
        "other_keywords": _top(other, limit),
    }


def keyword_frequency(rows: Iterable[Tuple[Optional[str], Optional[str]]], limit: int = KEYWORD_LIMIT) -> List[dict]:
    """Top words over (title, platform) rows, with a per-platform breakdown."""
    total = Counter()
    by_platform: Dict[str, Counter] = defaultdict(Counter)
    for title, platform in rows:
        if not title:
            continue
        for w in title_words(title):
            total[w] += 1
            by_platform[w][normalize_platform(platform)] += 1
    return [
        {"keyword": k, "platforms": dict(by_platform[k]), "total": c}
        for k, c in total.most_common(limit)
    ]


def week_windows(anchor: date) -> Tuple[Tuple[date, date], Tuple[date, date]]:
    """(this Monday .. anchor), (previous Monday .. previous Sunday)."""
    this_monday = anchor - timedelta(days=anchor.weekday())
    prev_monday = this_monday - timedelta(days=7)
    return (this_monday, anchor), (prev_monday, this_monday - timedelta(days=1))


def genre_growth(this_week: Dict[str, int], prev_week: Dict[str, int]) -> List[dict]:
    """Week-over-week change in ranked titles per genre, highest growth first."""
    out = []
    for genre, cnt in this_week.items():
        prev = prev_week.get(genre, 0)
        out.append({
            "genre": genre,
            "prev_count": prev,
            "this_count": cnt,
            "growth_rate": surge_rate(cnt - prev, prev),
        })
    for genre, cnt in prev_week.items():
        if genre not in this_week:
            out.append({"genre": genre, "prev_count": cnt, "this_count": 0, "growth_rate": -100.0})
    out.sort(key=lambda g: g["growth_rate"], reverse=True)
    return out


def counts_by_genre(df: pd.DataFrame) -> Dict[str, int]:
    if df.empty:
        return {}
    return {str(g): int(c) for g, c in zip(df["genre"], df["cnt"].fillna(0))}
