"""Timestamp parsing and calendar bucketing.

All stored timestamps are naive UTC datetimes.  Timezone-aware inputs are
converted to UTC on parse; local-time views are only produced when
bucketing by hour of day or weekday.
"""

from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from typing import Final
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

WEEKDAY_NAMES: Final[tuple[str, ...]] = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


def parse_timestamp(raw: str) -> datetime:
    """Parse an ISO-8601 timestamp into a naive-UTC datetime.

    Naive inputs are assumed to already be UTC.

    Raises:
        ValueError: If *raw* is not a valid ISO-8601 string.
    """
    return to_naive_utc(datetime.fromisoformat(raw))


def to_naive_utc(ts: datetime) -> datetime:
    """Convert an aware *ts* to naive UTC; naive values are returned as-is."""
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts


def resolve_timezone(name: str) -> tzinfo:
    """Look up an IANA timezone by *name*.

    ``"UTC"`` resolves without consulting the tz database.

    Raises:
        ValueError: If *name* is not a known timezone.
    """
    if name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone {name!r}") from exc


def to_local(ts: datetime, tz: tzinfo) -> datetime:
    """Convert a naive-UTC *ts* into an aware datetime in *tz*."""
    return ts.replace(tzinfo=timezone.utc).astimezone(tz)


def epoch_millis(ts: datetime) -> int:
    """Milliseconds since the Unix epoch for a naive-UTC *ts*."""
    return int(ts.replace(tzinfo=timezone.utc).timestamp() * 1000)


def weekday_name(ts: datetime) -> str:
    return WEEKDAY_NAMES[ts.weekday()]
