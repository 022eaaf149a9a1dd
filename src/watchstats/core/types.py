"""Core data contracts: canonical watch events and session configuration."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from watchstats.core.defaults import (
    DEFAULT_MAX_GAP_MINUTES,
    DEFAULT_MIN_EVENTS_PER_SESSION,
    DEFAULT_TIMEZONE,
)
from watchstats.core.time import resolve_timezone, to_naive_utc


class WatchEvent(BaseModel, frozen=True):
    """A single observed watch action, stripped to the canonical fields.

    Produced by :func:`~watchstats.adapters.takeout.parse.normalize_records`,
    which guarantees a valid ``timestamp`` and a non-empty ``title``.
    Enrichment fields stay ``None`` until
    :func:`~watchstats.adapters.youtube.client.enrich_events` attaches
    them to a copy; an event is never mutated.
    """

    timestamp: datetime = Field(description="When the video was watched. Aware values are converted to naive UTC.")
    title: str = Field(min_length=1, description="Display title of the watch record.")
    channel_name: str | None = Field(default=None, description="Channel that published the video.")
    video_id: str | None = Field(default=None, description="YouTube video identifier.")
    duration_seconds: float | None = Field(default=None, ge=0, description="Video length in seconds.")
    category_name: str | None = Field(default=None, description="YouTube category title.")
    view_count: int | None = Field(default=None, ge=0, description="Public view count at fetch time.")

    @field_validator("timestamp")
    @classmethod
    def _timestamp_to_naive_utc(cls, value: datetime) -> datetime:
        return to_naive_utc(value)


class SessionConfig(BaseModel, frozen=True):
    """Tunables governing session segmentation.

    ``max_gap_minutes`` is the largest idle gap that keeps two adjacent
    events in the same session.  Runs shorter than
    ``min_events_per_session`` are discarded rather than merged.
    ``timezone`` only affects the hour/weekday histograms.

    Out-of-contract values fail at construction; clamping into the
    recommended UI bounds is the caller's job (see
    :func:`~watchstats.core.config.clamp_session_settings`).
    """

    max_gap_minutes: float = Field(default=DEFAULT_MAX_GAP_MINUTES, gt=0)
    min_events_per_session: int = Field(default=DEFAULT_MIN_EVENTS_PER_SESSION, ge=1)
    timezone: str = Field(default=DEFAULT_TIMEZONE)

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        resolve_timezone(value)
        return value
