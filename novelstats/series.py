"""
Per-novel "days since launch" series.

Raw daily_statistics rows are (calendar date, cumulative views) snapshots that
start on different dates per novel, can skip days and can even go backwards
when a collector corrects itself. build_series() turns one novel's rows into a
dense, non-decreasing series indexed by days since the novel's launch, so that
series from different novels can be laid on the same x-axis.

    day 0                      always 0
    day 1 .. first_day-1       linear ramp from 0 to the first observed value
    observed day               max(observed, running max)
    any other day              previous day carried forward
"""

import logging
import math
from datetime import date, datetime
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

import pandas as pd

logger = logging.getLogger(__name__)

MIDDAY = pd.Timedelta(hours=12)

BUCKET_DAYS = (365, 200, 100, 30, 7, 1)
DEFAULT_BUCKET_INDEX = 3


class SeriesPoint(NamedTuple):
    days_since_launch: int
    cumulative_views: float


class BuiltSeries(NamedTuple):
    total_views: float
    series: List[SeriesPoint]


def parse_day(value) -> Optional[pd.Timestamp]:
    """Calendar day of `value` as a midday timestamp, or None if unparseable."""
    if isinstance(value, pd.Timestamp):
        ts = value
    elif isinstance(value, (str, date, datetime)):
        ts = pd.to_datetime(value, errors="coerce")
    else:
        return None
    if pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_localize(None)
    return ts.normalize() + MIDDAY


def parse_views(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        v = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(v) or math.isinf(v) or v < 0:
        return None
    return v


def iter_observations(observations) -> Iterable[Tuple[object, object]]:
    """Yield raw (date, views) pairs from a DataFrame, dict rows or tuples."""
    if isinstance(observations, pd.DataFrame):
        if observations.empty:
            return
        yield from zip(observations["date"], observations["views"])
        return
    for row in observations:
        if isinstance(row, dict):
            yield row.get("date"), row.get("views")
        else:
            yield row[0], row[1]


def fill_forward(day_values: Dict[int, float], last_day: Optional[int] = None) -> List[float]:
    """Dense values for days 0..last_day from a sparse {day: value} map.

    Missing days repeat the previous value (0 before the first one) and every
    value is clamped to the running maximum, so the result never decreases.
    """
    if last_day is None:
        if not day_values:
            return []
        last_day = max(day_values)
    if last_day < 0:
        return []
    s = pd.Series(day_values, dtype="float64").reindex(range(last_day + 1))
    return s.ffill().fillna(0).cummax().tolist()


def build_series(launch_date, observations) -> BuiltSeries:
    rows = list(iter_observations(observations))
    if not rows:
        return BuiltSeries(0, [])

    parsed = []
    for raw_date, raw_views in rows:
        day = parse_day(raw_date)
        views = parse_views(raw_views)
        if day is None or views is None:
            logger.debug("skipping malformed observation date=%r views=%r", raw_date, raw_views)
            continue
        parsed.append((day, views))
    if not parsed:
        return BuiltSeries(0, [])

    launch = parse_day(launch_date) if launch_date is not None else None
    if launch is None:
        if launch_date is not None:
            logger.debug("unparseable launch date %r; using first observation", launch_date)
        launch = min(d for d, _ in parsed)

    by_day: Dict[int, float] = {}
    for d, v in parsed:
        offset = (d - launch).days
        if offset < 0:
            continue
        by_day[offset] = max(by_day.get(offset, v), v)
    if not by_day:
        return BuiltSeries(0, [])

    first_day = min(by_day)
    first_value = by_day[first_day]
    by_day[0] = 0
    for day in range(1, first_day):
        by_day[day] = math.floor(first_value * day / first_day)

    values = fill_forward(by_day)
    series = [SeriesPoint(day, v) for day, v in enumerate(values)]
    return BuiltSeries(values[-1], series)


def merge_series(named_series: Dict[str, List[SeriesPoint]]) -> pd.DataFrame:
    """One row per day seen in any series, one column per name (missing -> 0)."""
    if not named_series:
        return pd.DataFrame(columns=["days_since_launch"])
    cols = {
        name: pd.Series({p.days_since_launch: p.cumulative_views for p in pts}, dtype="float64")
        for name, pts in named_series.items()
    }
    df = pd.DataFrame(cols).sort_index().fillna(0)
    df.index.name = "days_since_launch"
    return df.reset_index()


def bucket_series(points: List[SeriesPoint], bucket_days: int) -> List[SeriesPoint]:
    """Keep the day-0 point plus the latest point of every `bucket_days` bucket."""
    if bucket_days <= 0 or not points:
        return list(points)
    day0 = None
    by_bucket: Dict[int, SeriesPoint] = {}
    for p in points:
        if p.days_since_launch == 0:
            day0 = p
            continue
        bucket = (p.days_since_launch // bucket_days) * bucket_days
        cur = by_bucket.get(bucket)
        if cur is None or p.days_since_launch > cur.days_since_launch:
            by_bucket[bucket] = p
    out = sorted(by_bucket.values(), key=lambda p: p.days_since_launch)
    if day0 is not None:
        out.insert(0, day0)
    return out
