"""Human-readable formatting of durations for reports and the CLI."""

from __future__ import annotations

from datetime import datetime


def format_session_duration(minutes: float) -> str:
    """Render *minutes* as ``"1h 5m"`` or ``"12m"`` (floored)."""
    hours, mins = divmod(int(max(minutes, 0)), 60)
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"


def format_watch_time_hours(hours: float) -> str:
    """Render *hours* as ``"2 hours 30 min"``, ``"1 hour"`` or ``"45 min"``."""
    whole = int(max(hours, 0))
    minutes = round((max(hours, 0) - whole) * 60)
    if minutes == 60:
        whole, minutes = whole + 1, 0

    if whole > 0:
        unit = "hour" if whole == 1 else "hours"
        text = f"{whole:,} {unit}"
        return f"{text} {minutes} min" if minutes > 0 else text
    return f"{minutes} min"


def format_time_of_day(ts: datetime) -> str:
    return ts.strftime("%H:%M")


def format_date(ts: datetime) -> str:
    return ts.strftime("%b %d, %Y")
