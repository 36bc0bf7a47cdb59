"""Display helpers shared by the viewer and the CLI."""

from typing import Optional


def format_views(v: Optional[float]) -> str:
    """1.2억, 14.3만, 3,500"""
    if v is None:
        return "-"
    if v >= 100_000_000:
        return f"{v / 100_000_000:.1f}억"
    if v >= 10_000:
        return f"{v / 10_000:.1f}만"
    return f"{int(v):,}"


def format_delta(v: float) -> str:
    sign = "+" if v >= 0 else "-"
    return f"{sign}{format_views(abs(v))}"


def format_percent(v: float, decimals: int = 1) -> str:
    return f"{v:.{decimals}f}%"


def format_date_short(day: str) -> str:
    """YYYY-MM-DD -> MM.DD"""
    if not day:
        return ""
    parts = day.split("-")
    return f"{parts[1]}.{parts[2]}" if len(parts) >= 3 else day
