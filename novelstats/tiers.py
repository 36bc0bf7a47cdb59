"""
Percentile tiers and per-day median curves for one platform.

Novels are ranked by total (final cumulative) views and cut into bands by
count: top20 = first 20% of the ranking, top40 = the next 20%, and so on.
Each band is reduced to a single curve: for every day since launch, the
median of the members' cumulative views on that day.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from novelstats.config import TIER_BOUNDS
from novelstats.series import SeriesPoint, fill_forward


class RankedNovel(NamedTuple):
    novel_id: int
    total_views: float
    series: List[SeriesPoint]


@dataclass
class PlatformAggregate:
    tiers: Dict[str, List[SeriesPoint]] = field(default_factory=dict)
    members: Dict[str, List[int]] = field(default_factory=dict)
    my_series: Optional[List[SeriesPoint]] = None
    percentile_top: Optional[float] = None
    total_novels: int = 0


def rank_novels(novels: Sequence[RankedNovel]) -> List[RankedNovel]:
    """Novels with positive totals, most viewed first (ties keep input order)."""
    eligible = [n for n in novels if n.total_views > 0]
    return sorted(eligible, key=lambda n: n.total_views, reverse=True)


def tier_slice(ranked: Sequence[RankedNovel], start_pct: float, end_pct: float) -> List[RankedNovel]:
    if not 0 <= start_pct < end_pct <= 100:
        raise ValueError(f"invalid tier bounds: ({start_pct}, {end_pct})")
    n = len(ranked)
    if n == 0:
        return []
    start = math.floor(n * start_pct / 100)
    end = max(start + 1, math.floor(n * end_pct / 100))
    return list(ranked[start:end])


def median_series(members: Sequence[RankedNovel]) -> List[SeriesPoint]:
    """Per-day upper median across members, forward-filled and non-decreasing."""
    last_day = max((p.days_since_launch for m in members for p in m.series), default=-1)
    if last_day < 0:
        return []
    grid = np.array([
        fill_forward({p.days_since_launch: p.cumulative_views for p in m.series}, last_day)
        for m in members
    ])
    med = np.sort(grid, axis=0)[len(members) // 2]
    med = np.maximum.accumulate(med)
    return [SeriesPoint(day, float(v)) for day, v in enumerate(med)]


def aggregate_tier(novels: Sequence[RankedNovel], bounds: Tuple[float, float]) -> List[SeriesPoint]:
    return median_series(tier_slice(rank_novels(novels), *bounds))


def percentile_top(ranked: Sequence[RankedNovel], novel_id) -> Optional[float]:
    """'Top X%' for novel_id among ranked novels, one decimal; None if absent."""
    n = len(ranked)
    mine = next((r for r in ranked if r.novel_id == novel_id), None)
    if mine is None or n == 0:
        return None
    better = sum(1 for r in ranked if r.total_views > mine.total_views)
    return math.floor((better + 1) / n * 1000 + 0.5) / 10


def aggregate(
    novels: Sequence[RankedNovel],
    tier_bounds: Optional[Dict[str, Tuple[float, float]]] = None,
    my_novel_id=None,
) -> PlatformAggregate:
    tier_bounds = tier_bounds or TIER_BOUNDS
    ranked = rank_novels(novels)
    out = PlatformAggregate(total_novels=len(ranked))
    for name, (start, end) in tier_bounds.items():
        members = tier_slice(ranked, start, end)
        out.tiers[name] = median_series(members)
        out.members[name] = [n.novel_id for n in members]

    if my_novel_id is not None:
        mine = next((r for r in ranked if r.novel_id == my_novel_id), None)
        if mine is not None:
            out.my_series = mine.series
            out.percentile_top = percentile_top(ranked, my_novel_id)
    return out
