"""
Short-horizon view surges.

A surge compares a novel's latest observation on the report date with the
observation closest to a lookback date:
    daily    report date - 1 day                   (+-3 days)
    weekly   report date - 7 days                  (+-10 days)
    monthly  last day of the previous month        (+-7 days)
Collection is not guaranteed every day, hence the tolerance windows.
"""

import logging
import math
from bisect import bisect_left, bisect_right
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, List, Optional

from novelstats.config import HORIZONS, SURGE_TOLERANCE_DAYS
from novelstats.series import iter_observations, parse_day, parse_views

logger = logging.getLogger(__name__)


@dataclass
class SurgeItem:
    novel_id: Optional[int]
    horizon: str
    latest_date: date
    latest_views: float
    prior_date: date
    prior_views: float
    surge: float
    surge_rate: float


class ObservationIndex:
    """One novel's observations sorted by calendar day for bisect lookups.

    Malformed rows are dropped; several rows on one day keep the largest value.
    """

    def __init__(self, observations):
        by_day = {}
        for raw_date, raw_views in iter_observations(observations):
            day = parse_day(raw_date)
            views = parse_views(raw_views)
            if day is None or views is None:
                logger.debug("skipping malformed observation date=%r views=%r", raw_date, raw_views)
                continue
            d = day.date()
            by_day[d] = max(by_day.get(d, views), views)
        self.days: List[date] = sorted(by_day)
        self.ordinals: List[int] = [d.toordinal() for d in self.days]
        self.views: List[float] = [by_day[d] for d in self.days]

    def __len__(self):
        return len(self.days)

    def latest_on_or_before(self, target: date, tolerance: int) -> Optional[int]:
        t = target.toordinal()
        i = bisect_right(self.ordinals, t) - 1
        if i < 0 or t - self.ordinals[i] > tolerance:
            return None
        return i

    def closest(self, target: date, tolerance: int, upto: Optional[date] = None) -> Optional[int]:
        """Index of the observation nearest to target within +-tolerance days."""
        t = target.toordinal()
        hi_ord = t + tolerance
        if upto is not None:
            hi_ord = min(hi_ord, upto.toordinal())
        lo = bisect_left(self.ordinals, t - tolerance)
        hi = bisect_right(self.ordinals, hi_ord)
        best, best_diff = None, None
        for i in range(lo, hi):
            diff = abs(self.ordinals[i] - t)
            if best_diff is None or diff < best_diff:
                best, best_diff = i, diff
        return best


def lookback_date(target: date, horizon: str) -> date:
    if horizon == "daily":
        return target - timedelta(days=1)
    if horizon == "weekly":
        return target - timedelta(days=7)
    if horizon == "monthly":
        return target.replace(day=1) - timedelta(days=1)
    raise ValueError(f"unknown surge horizon: {horizon!r} (expected one of {HORIZONS})")


def surge_rate(surge_value: float, prior_views: float) -> float:
    if prior_views > 0:
        rate = surge_value / prior_views * 100
    else:
        rate = 100 if surge_value > 0 else 0
    return math.floor(rate * 10 + 0.5) / 10


def _as_date(value) -> date:
    day = parse_day(value)
    if day is None:
        raise ValueError(f"invalid target date: {value!r}")
    return day.date()


def surge(observations, target_date, horizon: str, novel_id=None) -> Optional[SurgeItem]:
    """Signed surge for one novel, or None when there is nothing to compare."""
    target = _as_date(target_date)
    lookback = lookback_date(target, horizon)
    index = observations if isinstance(observations, ObservationIndex) else ObservationIndex(observations)
    if not len(index):
        return None

    i_latest = index.latest_on_or_before(target, SURGE_TOLERANCE_DAYS["daily"])
    if i_latest is None:
        return None
    i_prior = index.closest(lookback, SURGE_TOLERANCE_DAYS[horizon], upto=target)
    if i_prior is None or index.days[i_prior] == index.days[i_latest]:
        return None

    latest, prior = index.views[i_latest], index.views[i_prior]
    delta = latest - prior
    return SurgeItem(
        novel_id=novel_id,
        horizon=horizon,
        latest_date=index.days[i_latest],
        latest_views=latest,
        prior_date=index.days[i_prior],
        prior_views=prior,
        surge=delta,
        surge_rate=surge_rate(delta, prior),
    )


def positive_only(items: Iterable[Optional[SurgeItem]]) -> List[SurgeItem]:
    """Display policy for surge lists: drop missing, flat and declining entries."""
    return [it for it in items if it is not None and it.surge > 0]


def rank_surges(items: Iterable[SurgeItem]) -> List[SurgeItem]:
    return sorted(items, key=lambda it: it.surge, reverse=True)
