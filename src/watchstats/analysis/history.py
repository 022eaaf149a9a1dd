"""Descriptive statistics over a normalized watch history.

Counts are accumulated into insertion-ordered dicts so that a summary
built chunk by chunk and merged with :func:`merge_summaries` is equal to
one built in a single pass over the same events.

Category and duration totals are only populated for events that went
through :func:`~watchstats.adapters.youtube.client.enrich_events`.
"""

from __future__ import annotations

import math
from collections import Counter
from datetime import datetime, timedelta
from typing import Iterable, Literal, Sequence

from pydantic import BaseModel, Field

from watchstats.core.defaults import (
    DEFAULT_TIMEZONE,
    DEFAULT_TOP_CATEGORIES,
    DEFAULT_TOP_CHANNELS,
)
from watchstats.core.time import resolve_timezone, to_local
from watchstats.core.types import WatchEvent


class HistorySummary(BaseModel, frozen=True):
    """Channel, category and calendar breakdown of a watch history."""

    total_videos: int = Field(ge=0, description="Number of watch events.")
    unique_channels: dict[str, int] = Field(
        default_factory=dict, description="Channel name -> watch count."
    )
    watch_count_by_day: dict[str, int] = Field(
        default_factory=dict, description="YYYY-MM-DD -> watch count."
    )
    watch_count_by_month: dict[str, int] = Field(
        default_factory=dict, description="YYYY-MM -> watch count."
    )
    watch_count_by_hour: dict[int, int] = Field(
        default_factory=dict, description="Hour of day (0-23) -> watch count."
    )
    category_counts: dict[str, int] = Field(
        default_factory=dict, description="Category name -> watch count."
    )
    category_durations: dict[str, float] = Field(
        default_factory=dict, description="Category name -> summed video length in seconds."
    )
    known_duration_seconds: float = Field(
        default=0.0, ge=0, description="Summed length of videos with a known, non-zero duration."
    )
    videos_with_duration: int = Field(
        default=0, ge=0, description="Events contributing to known_duration_seconds."
    )
    first_watched: datetime | None = Field(default=None, description="Earliest event (UTC).")
    last_watched: datetime | None = Field(default=None, description="Latest event (UTC).")


class WatchTimeStats(BaseModel, frozen=True):
    """Whole-history watch time, extrapolated from enriched durations."""

    known_duration_seconds: float = Field(ge=0)
    videos_with_duration: int = Field(ge=0)
    estimated_total_seconds: float = Field(
        ge=0,
        description="Average known duration times total videos; the known total when nothing is known.",
    )
    span_days: int = Field(ge=1, description="Whole days from first to last watch, at least 1.")
    average_hours_per_day: float = Field(ge=0)


def summarize_history(
    events: Iterable[WatchEvent],
    *,
    timezone: str = DEFAULT_TIMEZONE,
) -> HistorySummary:
    """Count events per channel, category, day, month, and hour of day.

    Args:
        events: Watch events in any order.
        timezone: IANA zone used for the calendar keys.

    Returns:
        A :class:`HistorySummary`.  Events without a channel are counted
        in ``total_videos`` but not in ``unique_channels``; likewise for
        categories.  A categorized event without a duration adds zero to
        its category's duration.
    """
    tz = resolve_timezone(timezone)
    channels: Counter[str] = Counter()
    categories: Counter[str] = Counter()
    category_seconds: Counter[str] = Counter()
    by_day: Counter[str] = Counter()
    by_month: Counter[str] = Counter()
    by_hour: Counter[int] = Counter()
    known_seconds = 0.0
    with_duration = 0
    first: datetime | None = None
    last: datetime | None = None
    total = 0

    for ev in events:
        total += 1
        if ev.channel_name:
            channels[ev.channel_name] += 1
        if ev.category_name:
            categories[ev.category_name] += 1
            category_seconds[ev.category_name] += ev.duration_seconds or 0.0
        if ev.duration_seconds:
            known_seconds += ev.duration_seconds
            with_duration += 1
        local = to_local(ev.timestamp, tz)
        by_day[local.strftime("%Y-%m-%d")] += 1
        by_month[local.strftime("%Y-%m")] += 1
        by_hour[local.hour] += 1
        if first is None or ev.timestamp < first:
            first = ev.timestamp
        if last is None or ev.timestamp > last:
            last = ev.timestamp

    return HistorySummary(
        total_videos=total,
        unique_channels=dict(channels),
        watch_count_by_day=dict(by_day),
        watch_count_by_month=dict(by_month),
        watch_count_by_hour=dict(by_hour),
        category_counts=dict(categories),
        category_durations=dict(category_seconds),
        known_duration_seconds=known_seconds,
        videos_with_duration=with_duration,
        first_watched=first,
        last_watched=last,
    )


def _merge_counts(maps: Iterable[dict]) -> dict:
    merged: Counter = Counter()
    for m in maps:
        merged.update(m)
    return dict(merged)


def merge_summaries(parts: Sequence[HistorySummary]) -> HistorySummary:
    """Combine per-chunk summaries into one.

    Key order in each mapping follows first appearance across *parts*,
    matching what :func:`summarize_history` produces for the concatenated
    events.
    """
    firsts = [p.first_watched for p in parts if p.first_watched is not None]
    lasts = [p.last_watched for p in parts if p.last_watched is not None]
    return HistorySummary(
        total_videos=sum(p.total_videos for p in parts),
        unique_channels=_merge_counts(p.unique_channels for p in parts),
        watch_count_by_day=_merge_counts(p.watch_count_by_day for p in parts),
        watch_count_by_month=_merge_counts(p.watch_count_by_month for p in parts),
        watch_count_by_hour=_merge_counts(p.watch_count_by_hour for p in parts),
        category_counts=_merge_counts(p.category_counts for p in parts),
        category_durations=_merge_counts(p.category_durations for p in parts),
        known_duration_seconds=sum(p.known_duration_seconds for p in parts),
        videos_with_duration=sum(p.videos_with_duration for p in parts),
        first_watched=min(firsts) if firsts else None,
        last_watched=max(lasts) if lasts else None,
    )


def top_channels(summary: HistorySummary, n: int = DEFAULT_TOP_CHANNELS) -> list[tuple[str, int]]:
    """Return the *n* most-watched channels, ties broken by first appearance."""
    return Counter(summary.unique_channels).most_common(n)


def top_categories(
    summary: HistorySummary,
    n: int = DEFAULT_TOP_CATEGORIES,
    *,
    by: Literal["count", "duration"] = "count",
) -> list[tuple[str, int, float]]:
    """Return ``(category, count, duration_seconds)`` for the top *n* categories.

    Ranked by watch count or by summed duration; ties keep first appearance.

    Raises:
        ValueError: If *by* is not ``"count"`` or ``"duration"``.
    """
    if by not in ("count", "duration"):
        raise ValueError(f"by must be 'count' or 'duration', got {by!r}")
    rows = [
        (name, count, summary.category_durations.get(name, 0.0))
        for name, count in summary.category_counts.items()
    ]
    key_index = 1 if by == "count" else 2
    rows.sort(key=lambda row: row[key_index], reverse=True)
    return rows[:n]


def watch_time_stats(summary: HistorySummary) -> WatchTimeStats:
    """Estimate total and per-day watch time from the known durations.

    The average known duration is extrapolated to every watched video.
    The per-day average spans whole days from the first to the last
    watch, rounded up, and never fewer than one day.
    """
    estimated = summary.known_duration_seconds
    if summary.videos_with_duration > 0:
        average = summary.known_duration_seconds / summary.videos_with_duration
        estimated = average * summary.total_videos

    span_days = 1
    if summary.first_watched is not None and summary.last_watched is not None:
        span = summary.last_watched - summary.first_watched
        span_days = max(1, math.ceil(span / timedelta(days=1)))

    return WatchTimeStats(
        known_duration_seconds=summary.known_duration_seconds,
        videos_with_duration=summary.videos_with_duration,
        estimated_total_seconds=estimated,
        span_days=span_days,
        average_hours_per_day=estimated / span_days / 3600,
    )
