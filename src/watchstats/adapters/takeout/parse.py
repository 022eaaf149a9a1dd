"""Google Takeout watch-history ingestion.

Turns the raw ``watch-history.json`` array into canonical
:class:`~watchstats.core.types.WatchEvent` objects:

* records that are not YouTube watch actions, or that lack a string
  ``header`` / ``title`` / ``titleUrl`` or a parseable ``time``, are
  skipped (never a hard failure);
* the video identifier is extracted from ``titleUrl``;
* every other field is dropped so normalized items stay small.

Large inputs are processed in chunks.  :func:`normalize_records` reports
progress through a callback; :func:`normalize_records_async` additionally
yields to the event loop between chunks.  Both return the same result
for any chunk size.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from pathlib import Path
from typing import Any, Callable, Final, Sequence

from pydantic import BaseModel, Field, ValidationError

from watchstats.analysis.history import HistorySummary, merge_summaries, summarize_history
from watchstats.core.defaults import DEFAULT_CHUNK_SIZE, TAKEOUT_HEADER, WATCHED_PREFIX
from watchstats.core.time import parse_timestamp
from watchstats.core.types import WatchEvent

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]

_VIDEO_ID_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/)([^&\s?#]+)"),
    re.compile(r"youtube\.com/watch.*[?&]v=([^&\s]+)"),
    re.compile(r"youtube\.com/embed/([^/?&\s]+)"),
    re.compile(r"youtube\.com/v/([^/?&\s]+)"),
)

_TRAILING_COMMA_OBJ = re.compile(r",\s*}")
_TRAILING_COMMA_ARR = re.compile(r",\s*\]")

_PROGRESS_CAP: Final[float] = 0.99


class EmptyHistoryError(ValueError):
    """A non-empty export contained no usable watch records."""


class NormalizedHistory(BaseModel, frozen=True):
    """Result of normalizing one Takeout export."""

    events: list[WatchEvent] = Field(default_factory=list)
    summary: HistorySummary = Field(default_factory=lambda: HistorySummary(total_videos=0))
    total_items: int = Field(ge=0, description="Records present in the input.")
    processed_items: int = Field(ge=0, description="Records examined (after max_items).")
    skipped_items: int = Field(ge=0, description="Examined records that were not usable.")
    is_partial: bool = Field(description="True if max_items truncated the input.")


# ---------------------------------------------------------------------------
# Record-level helpers
# ---------------------------------------------------------------------------


def clean_json_string(text: str) -> str:
    """Strip a BOM and trailing commas that make an export invalid JSON."""
    cleaned = text.lstrip("\ufeff")
    cleaned = _TRAILING_COMMA_OBJ.sub("}", cleaned)
    cleaned = _TRAILING_COMMA_ARR.sub("]", cleaned)
    return cleaned.strip()


def extract_video_id(url: str | None) -> str | None:
    """Return the YouTube video ID embedded in *url*, or ``None``.

    Recognises ``watch?v=``, ``youtu.be/``, ``/embed/`` and ``/v/`` URLs;
    the first matching pattern wins.
    """
    if not url:
        return None
    for pattern in _VIDEO_ID_PATTERNS:
        match = pattern.search(url)
        if match and match.group(1):
            return match.group(1)
    return None


def is_valid_watch_record(record: Any) -> bool:
    """True if *record* is a dict carrying string ``header``, ``title`` and ``titleUrl``."""
    return (
        isinstance(record, dict)
        and isinstance(record.get("header"), str)
        and isinstance(record.get("title"), str)
        and isinstance(record.get("titleUrl"), str)
    )


def is_watch_action(record: dict[str, Any]) -> bool:
    """True if a structurally valid record is a YouTube *watch* (not search, music, ...)."""
    return record["header"] == TAKEOUT_HEADER and (
        record["title"].startswith(WATCHED_PREFIX)
        or "youtube.com/watch" in record["titleUrl"]
    )


def _channel_name(record: dict[str, Any]) -> str | None:
    subtitles = record.get("subtitles")
    if isinstance(subtitles, list) and subtitles:
        first = subtitles[0]
        if isinstance(first, dict) and isinstance(first.get("name"), str) and first["name"]:
            return first["name"]
    return None


def record_to_event(record: Any) -> WatchEvent | None:
    """Convert one raw Takeout record into a :class:`WatchEvent`.

    Returns ``None`` for anything that is not a usable watch action.
    """
    if not is_valid_watch_record(record) or not is_watch_action(record):
        return None

    raw_time = record.get("time")
    if not isinstance(raw_time, str):
        return None
    try:
        timestamp = parse_timestamp(raw_time)
    except ValueError:
        return None

    try:
        return WatchEvent(
            timestamp=timestamp,
            title=record["title"],
            channel_name=_channel_name(record),
            video_id=extract_video_id(record["titleUrl"]),
        )
    except ValidationError:
        return None


# ---------------------------------------------------------------------------
# Batch normalization
# ---------------------------------------------------------------------------


class _Accumulator:
    """Collects per-chunk events and partial summaries."""

    def __init__(self, records: Sequence[Any], max_items: int | None, chunk_size: int) -> None:
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
        if max_items is not None and max_items < 0:
            raise ValueError(f"max_items must be >= 0, got {max_items}")
        self.records = records
        self.chunk_size = chunk_size
        self.total = len(records)
        self.limit = self.total if max_items is None else min(self.total, max_items)
        self.events: list[WatchEvent] = []
        self.parts: list[HistorySummary] = []
        self.processed = 0
        self.skipped = 0

    def starts(self) -> range:
        return range(0, self.limit, self.chunk_size)

    def progress_at(self, start: int) -> float:
        return min(start / self.limit, _PROGRESS_CAP)

    def add_chunk(self, start: int) -> None:
        chunk = self.records[start:min(start + self.chunk_size, self.limit)]
        chunk_events: list[WatchEvent] = []
        for record in chunk:
            event = record_to_event(record)
            if event is None:
                self.skipped += 1
                continue
            chunk_events.append(event)
        self.events.extend(chunk_events)
        self.parts.append(summarize_history(chunk_events))
        self.processed += len(chunk)

    def finish(self, on_progress: ProgressCallback | None) -> NormalizedHistory:
        if self.limit > 0 and not self.events:
            raise EmptyHistoryError("No valid YouTube watch history items found")

        logger.info(
            "Normalized %d of %d records (%d skipped)",
            len(self.events), self.processed, self.skipped,
        )
        if on_progress is not None:
            on_progress(1.0)

        return NormalizedHistory(
            events=self.events,
            summary=merge_summaries(self.parts),
            total_items=self.total,
            processed_items=self.processed,
            skipped_items=self.skipped,
            is_partial=self.limit < self.total,
        )


def normalize_records(
    records: Sequence[Any],
    *,
    max_items: int | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    on_progress: ProgressCallback | None = None,
) -> NormalizedHistory:
    """Normalize raw Takeout records into canonical watch events.

    Args:
        records: Parsed JSON array from ``watch-history.json``.
        max_items: Only the first *max_items* records are examined.
        chunk_size: Records processed between progress reports.
        on_progress: Called with fractions in [0, 1], monotonically
            increasing, ending with exactly ``1.0``.

    Returns:
        A :class:`NormalizedHistory`.  Events keep input order.

    Raises:
        EmptyHistoryError: If records were examined but none were usable.
        ValueError: If *chunk_size* or *max_items* is out of range.
    """
    acc = _Accumulator(records, max_items, chunk_size)
    for start in acc.starts():
        if on_progress is not None:
            on_progress(acc.progress_at(start))
        acc.add_chunk(start)
    return acc.finish(on_progress)


async def normalize_records_async(
    records: Sequence[Any],
    *,
    max_items: int | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    on_progress: ProgressCallback | None = None,
) -> NormalizedHistory:
    """Cooperative variant of :func:`normalize_records`.

    Yields to the event loop before each chunk.  Cancelling the awaiting
    task stops further progress callbacks; partial results are dropped.
    """
    acc = _Accumulator(records, max_items, chunk_size)
    for start in acc.starts():
        if on_progress is not None:
            on_progress(acc.progress_at(start))
        await asyncio.sleep(0)
        acc.add_chunk(start)
    return acc.finish(on_progress)


# ---------------------------------------------------------------------------
# File-based ingestion
# ---------------------------------------------------------------------------


def load_takeout_json(text: str) -> list[Any]:
    """Parse the text of ``watch-history.json`` into a list of raw records.

    Falls back to :func:`clean_json_string` once if strict parsing fails.

    Raises:
        json.JSONDecodeError: If the text is not JSON even after cleaning.
        ValueError: If the top-level value is not an array.
    """
    try:
        data = json.loads(text.lstrip("\ufeff"))
    except json.JSONDecodeError:
        logger.debug("Strict JSON parse failed, retrying with cleaned text")
        data = json.loads(clean_json_string(text))

    if not isinstance(data, list):
        raise ValueError("The JSON file does not contain an array of watch history items")
    return data


def parse_takeout_export(
    path: Path,
    *,
    max_items: int | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    on_progress: ProgressCallback | None = None,
) -> NormalizedHistory:
    """Read and normalize a Takeout ``watch-history.json`` file.

    Raises:
        FileNotFoundError: If *path* does not exist.
        EmptyHistoryError: If the export holds no usable watch records.
        ValueError: If the file is not a JSON array.
    """
    records = load_takeout_json(path.read_text(encoding="utf-8"))
    logger.info("Loaded %d raw records from %s", len(records), path)
    return normalize_records(
        records,
        max_items=max_items,
        chunk_size=chunk_size,
        on_progress=on_progress,
    )
