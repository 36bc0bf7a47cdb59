"""Read-only analytics over NovelForge web-novel view statistics."""

from novelstats.platform import normalize_platform
from novelstats.series import BuiltSeries, SeriesPoint, build_series, fill_forward
from novelstats.surge import SurgeItem, surge
from novelstats.tiers import PlatformAggregate, RankedNovel, aggregate, aggregate_tier

__version__ = "0.1.0"
