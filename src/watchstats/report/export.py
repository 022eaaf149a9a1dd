"""Report export utilities: JSON, CSV, and Parquet output."""

from __future__ import annotations

import json
from pathlib import Path

import pandas as pd

from watchstats.analysis.sessions import SessionAnalysisResult
from watchstats.core.store import write_parquet

_SENSITIVE_KEYS = frozenset({
    "access_token",
    "refresh_token",
    "authorization",
    "api_key",
})

SESSION_COLUMNS = [
    "id",
    "start_time",
    "end_time",
    "duration_minutes",
    "event_count",
    "top_channel",
    "total_duration_seconds",
    "average_event_duration",
]


def _check_no_sensitive_fields(data: object) -> None:
    """Recursively check *data* for forbidden keys."""
    if isinstance(data, dict):
        for key, value in data.items():
            if key in _SENSITIVE_KEYS:
                raise ValueError(
                    f"Sensitive field {key!r} must not appear in report output"
                )
            _check_no_sensitive_fields(value)
    elif isinstance(data, list):
        for item in data:
            _check_no_sensitive_fields(item)


def export_analysis_json(
    result: SessionAnalysisResult,
    path: Path,
    *,
    include_events: bool = True,
) -> Path:
    """Write *result* to a JSON file.

    Args:
        result: Output of :func:`~watchstats.analysis.sessions.analyze_sessions`.
        path: Destination JSON file path.
        include_events: If ``False``, per-session event lists are omitted
            to keep the file small.

    Returns:
        The *path* that was written.
    """
    exclude = None
    if not include_events:
        exclude = {
            "sessions": {"__all__": {"events"}},
            "longest_session": {"events"},
            "most_events_session": {"events"},
        }
    data = result.model_dump(mode="json", exclude=exclude)
    _check_no_sensitive_fields(data)

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2))
    return path


def sessions_to_frame(result: SessionAnalysisResult) -> pd.DataFrame:
    """Flatten sessions into a DataFrame with one row per session.

    ``top_channel`` is the most frequent channel in the session (first
    seen wins a tie), or ``None`` when no event carries a channel.
    """
    rows: list[dict[str, object]] = []
    for s in result.sessions:
        top = max(s.channel_counts, key=s.channel_counts.__getitem__, default=None)
        rows.append({
            "id": s.id,
            "start_time": s.start_time,
            "end_time": s.end_time,
            "duration_minutes": round(s.duration_minutes, 2),
            "event_count": len(s.events),
            "top_channel": top,
            "total_duration_seconds": s.total_duration_seconds,
            "average_event_duration": round(s.average_event_duration, 2),
        })
    return pd.DataFrame(rows, columns=SESSION_COLUMNS)


def export_sessions_csv(result: SessionAnalysisResult, path: Path) -> Path:
    """Write one CSV row per session (columns: :data:`SESSION_COLUMNS`)."""
    df = sessions_to_frame(result)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    return path


def export_sessions_parquet(result: SessionAnalysisResult, path: Path) -> Path:
    """Write one Parquet row per session.  Schema matches :func:`export_sessions_csv`."""
    return write_parquet(sessions_to_frame(result), path)
