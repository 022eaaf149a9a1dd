"""Shared fixtures for the watchstats test suite."""

from __future__ import annotations

import datetime as dt
from typing import Any, Callable

import pytest

from watchstats.core.types import WatchEvent


@pytest.fixture()
def base_ts() -> dt.datetime:
    return dt.datetime(2025, 6, 15, 10, 0, 0)


@pytest.fixture()
def make_event(base_ts: dt.datetime) -> Callable[..., WatchEvent]:
    """Factory for a WatchEvent *minutes* after ``base_ts``."""

    def _make(minutes: float = 0.0, **overrides: Any) -> WatchEvent:
        fields: dict[str, Any] = {
            "timestamp": base_ts + dt.timedelta(minutes=minutes),
            "title": f"Watched video at +{minutes:g}m",
            "channel_name": "Test Channel",
            "video_id": f"vid{int(minutes * 60)}",
        }
        fields.update(overrides)
        return WatchEvent(**fields)

    return _make


def takeout_record(
    video_id: str = "dQw4w9WgXcQ",
    *,
    time: str = "2025-06-15T10:00:00.000Z",
    title: str = "Watched Some Video",
    channel: str | None = "Some Channel",
    header: str = "YouTube",
) -> dict[str, Any]:
    record: dict[str, Any] = {
        "header": header,
        "title": title,
        "titleUrl": f"https://www.youtube.com/watch?v={video_id}",
        "time": time,
        "products": ["YouTube"],
        "activityControls": ["YouTube watch history"],
    }
    if channel is not None:
        record["subtitles"] = [
            {"name": channel, "url": "https://www.youtube.com/channel/UC123"}
        ]
    return record


@pytest.fixture()
def takeout_records() -> list[dict[str, Any]]:
    """Ten raw records: seven usable watch actions and three malformed ones."""
    good = [
        takeout_record(f"vid{i:08d}x", time=f"2025-06-15T10:{i * 5:02d}:00Z", channel=f"Channel {i % 3}")
        for i in range(7)
    ]
    missing_title = takeout_record("noTitle0001")
    del missing_title["title"]
    bad_time = takeout_record("badTime0001", time="not-a-time")
    not_a_dict = "garbage"
    return good[:3] + [missing_title] + good[3:5] + [bad_time, not_a_dict] + good[5:]


@pytest.fixture()
def make_takeout_record() -> Callable[..., dict[str, Any]]:
    return takeout_record
