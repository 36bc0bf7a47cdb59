"""
Platform label normalization.

Novel and ranking rows carry the platform as free text ("네이버 시리즈",
"Naver", "kakaopage.com", ...). Grouping always goes through
normalize_platform() so that spelling variants of a known platform collapse
into one canonical name, while unknown platforms pass through untouched.
"""

from typing import Dict, Iterable, List, Optional

UNCLASSIFIED = "미분류"

# Order matters: the first canonical entry with a matching variant wins.
PLATFORM_CANONICAL = [
    ("문피아", ["문피아", "munpia", "문피아닷컴"]),
    ("네이버", ["네이버", "naver", "네이버시리즈", "네이버 시리즈"]),
    ("카카오", ["카카오", "kakao", "카카오페이지", "카카오 페이지"]),
    ("리디", ["리디", "ridi", "리디북스"]),
    ("노벨피아", ["노벨피아", "novelpia"]),
]

PLATFORM_ORDER = ["카카오", "네이버", "문피아", "리디", "노벨피아"]

SURGE_PLATFORMS = ["네이버", "카카오", "문피아", "노벨피아"]

PLATFORM_COLORS = {
    "네이버": "#22c55e",
    "카카오": "#eab308",
    "문피아": "#3b82f6",
    "리디": "#a855f7",
    "노벨피아": "#f97316",
    UNCLASSIFIED: "#9ca3af",
}


def normalize_platform(label: Optional[str]) -> str:
    if label is None:
        return UNCLASSIFIED
    s = str(label).strip()
    if not s:
        return UNCLASSIFIED
    lower = s.lower()
    for canonical, variants in PLATFORM_CANONICAL:
        for v in variants:
            if v.lower() in lower:
                return canonical
    return s


def order_platforms(platforms: Iterable[str]) -> List[str]:
    """Known platforms in display order, then the rest alphabetically."""
    seen = set(platforms)
    ordered = [p for p in PLATFORM_ORDER if p in seen]
    ordered.extend(sorted(p for p in seen if p not in PLATFORM_ORDER))
    return ordered


def group_by_platform(rows: Iterable[dict], key: str = "platform") -> Dict[str, List[dict]]:
    groups: Dict[str, List[dict]] = {}
    for row in rows:
        groups.setdefault(normalize_platform(row.get(key)), []).append(row)
    return groups
