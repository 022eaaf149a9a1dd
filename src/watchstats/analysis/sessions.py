"""Watch-session segmentation and session statistics.

A *session* is a maximal run of watch events, in chronological order,
where every adjacent pair is at most ``max_gap_minutes`` apart.  Runs
with fewer than ``min_events_per_session`` events are discarded (not
merged into a neighbour).

:func:`analyze_sessions` is pure and deterministic: it sorts its own
copy of the input, owns no state between calls, and returns plain
serialisable models.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime
from typing import Sequence

from pydantic import BaseModel, Field

from watchstats.core.time import epoch_millis, resolve_timezone, to_local, weekday_name
from watchstats.core.types import SessionConfig, WatchEvent

logger = logging.getLogger(__name__)


class WatchSession(BaseModel, frozen=True):
    """One contiguous burst of viewing."""

    id: str = Field(description="'session-<epoch ms of first event>'; unique per analysis.")
    start_time: datetime = Field(description="Timestamp of the first event (UTC).")
    end_time: datetime = Field(description="Timestamp of the last event (UTC).")
    duration_minutes: float = Field(ge=0, description="end_time - start_time, in minutes.")
    events: list[WatchEvent] = Field(min_length=1, description="Events in chronological order.")
    channel_counts: dict[str, int] = Field(default_factory=dict)
    category_counts: dict[str, int] = Field(default_factory=dict)
    total_duration_seconds: float = Field(ge=0, description="Sum of known video durations.")
    average_event_duration: float = Field(ge=0, description="total_duration_seconds / len(events).")


class SessionAnalysisResult(BaseModel, frozen=True):
    """Aggregate statistics over the sessions of one analysis run.

    With zero sessions every count is ``0``, every histogram is empty and
    the session/start-time fields are ``None``.  That is a valid result,
    not an error.
    """

    sessions: list[WatchSession] = Field(default_factory=list)
    total_sessions: int = Field(default=0, ge=0)
    average_session_duration: float = Field(default=0.0, ge=0, description="Minutes.")
    longest_session: WatchSession | None = None
    most_events_session: WatchSession | None = None
    most_common_start_hour: int | None = Field(default=None, ge=0, le=23)
    most_common_day: str | None = None
    sessions_per_hour: dict[str, int] = Field(
        default_factory=dict, description="'H:00' -> sessions starting in that hour."
    )
    sessions_per_day: dict[str, int] = Field(
        default_factory=dict, description="Weekday name -> sessions starting that day."
    )
    average_events_per_session: float = Field(default=0.0, ge=0)
    total_watch_time_hours: float = Field(default=0.0, ge=0)
    total_events: int = Field(default=0, ge=0, description="Events passed to the analysis.")
    discarded_event_count: int = Field(
        default=0, ge=0, description="Events in runs shorter than the minimum session size."
    )


def _gap_minutes(prev: WatchEvent, cur: WatchEvent) -> float:
    return (cur.timestamp - prev.timestamp).total_seconds() / 60.0


def split_into_runs(
    events: Sequence[WatchEvent],
    max_gap_minutes: float,
) -> list[list[WatchEvent]]:
    """Partition *events* into chronological runs separated by idle gaps.

    The input is sorted by timestamp first (stable, so equal timestamps
    keep their input order).  An event joins the open run when it is at
    most *max_gap_minutes* after the previous event; otherwise it opens
    a new run.

    Args:
        events: Watch events in any order.
        max_gap_minutes: Largest gap that keeps a run open.

    Returns:
        Every run, in chronological order.  Empty if *events* is empty.
    """
    ordered = sorted(events, key=lambda e: e.timestamp)
    runs: list[list[WatchEvent]] = []
    current: list[WatchEvent] = []

    for ev in ordered:
        if current and _gap_minutes(current[-1], ev) <= max_gap_minutes:
            current.append(ev)
        else:
            if current:
                runs.append(current)
            current = [ev]

    if current:
        runs.append(current)
    return runs


def build_session(run: Sequence[WatchEvent]) -> WatchSession:
    """Build a :class:`WatchSession` from a chronological, non-empty *run*.

    Raises:
        ValueError: If *run* is empty.
    """
    if not run:
        raise ValueError("Cannot build a session from zero events")

    start = run[0].timestamp
    end = run[-1].timestamp
    channels: Counter[str] = Counter()
    categories: Counter[str] = Counter()
    total_seconds = 0.0

    for ev in run:
        if ev.channel_name:
            channels[ev.channel_name] += 1
        if ev.category_name:
            categories[ev.category_name] += 1
        if ev.duration_seconds:
            total_seconds += ev.duration_seconds

    return WatchSession(
        id=f"session-{epoch_millis(start)}",
        start_time=start,
        end_time=end,
        duration_minutes=(end - start).total_seconds() / 60.0,
        events=list(run),
        channel_counts=dict(channels),
        category_counts=dict(categories),
        total_duration_seconds=total_seconds,
        average_event_duration=total_seconds / len(run),
    )


def _first_max(counts: dict):
    """Key with the highest count; ties go to the first-inserted key."""
    best_key = None
    best = 0
    for key, count in counts.items():
        if count > best:
            best_key, best = key, count
    return best_key


def analyze_sessions(
    events: Sequence[WatchEvent],
    config: SessionConfig | None = None,
) -> SessionAnalysisResult:
    """Segment *events* into sessions and compute aggregate statistics.

    Args:
        events: Canonical watch events in any order.  Never mutated.
        config: Segmentation tunables; defaults to :class:`SessionConfig()`.

    Returns:
        A :class:`SessionAnalysisResult`.  ``longest_session`` and
        ``most_events_session`` resolve ties to the chronologically first
        session; ``most_common_start_hour`` / ``most_common_day`` resolve
        ties to the first-populated bucket.
    """
    cfg = config or SessionConfig()
    runs = split_into_runs(events, cfg.max_gap_minutes)

    sessions: list[WatchSession] = []
    discarded = 0
    for run in runs:
        if len(run) >= cfg.min_events_per_session:
            sessions.append(build_session(run))
        else:
            discarded += len(run)

    logger.debug(
        "Segmented %d events into %d runs, kept %d sessions (%d events discarded)",
        len(events), len(runs), len(sessions), discarded,
    )

    if not sessions:
        return SessionAnalysisResult(
            total_events=len(events),
            discarded_event_count=discarded,
        )

    total_minutes = sum(s.duration_minutes for s in sessions)
    total_session_events = sum(len(s.events) for s in sessions)

    # max() returns the first maximal element, i.e. the earliest session.
    longest = max(sessions, key=lambda s: s.duration_minutes)
    most_events = max(sessions, key=lambda s: len(s.events))

    tz = resolve_timezone(cfg.timezone)
    start_hours: dict[int, int] = {}
    per_hour: dict[str, int] = {}
    per_day: dict[str, int] = {}
    for session in sessions:
        local = to_local(session.start_time, tz)
        day = weekday_name(local)
        start_hours[local.hour] = start_hours.get(local.hour, 0) + 1
        per_hour[f"{local.hour}:00"] = per_hour.get(f"{local.hour}:00", 0) + 1
        per_day[day] = per_day.get(day, 0) + 1

    return SessionAnalysisResult(
        sessions=sessions,
        total_sessions=len(sessions),
        average_session_duration=total_minutes / len(sessions),
        longest_session=longest,
        most_events_session=most_events,
        most_common_start_hour=_first_max(start_hours),
        most_common_day=_first_max(per_day),
        sessions_per_hour=per_hour,
        sessions_per_day=per_day,
        average_events_per_session=total_session_events / len(sessions),
        total_watch_time_hours=total_minutes / 60.0,
        total_events=len(events),
        discarded_event_count=discarded,
    )
