"""Video metadata returned by the YouTube Data API enrichment path."""

from __future__ import annotations

from pydantic import BaseModel, Field


class VideoDetails(BaseModel, frozen=True):
    """Metadata for one video, flattened from a ``videos.list`` item.

    ``category_name`` is filled from a separate ``videoCategories``
    lookup and stays ``None`` if that lookup fails.
    """

    video_id: str = Field(description="YouTube video identifier.")
    title: str = Field(default="", description="Video title.")
    channel_title: str | None = Field(default=None, description="Publishing channel.")
    published_at: str | None = Field(default=None, description="ISO-8601 publish time.")
    description: str = Field(default="", description="Video description.")
    thumbnail: str | None = Field(default=None, description="Medium (or default) thumbnail URL.")
    duration: str = Field(default="Unknown", description="Formatted H:MM:SS / M:SS.")
    duration_seconds: int | None = Field(default=None, ge=0, description="Length in seconds.")
    view_count: int | None = Field(default=None, ge=0, description="Public view count.")
    like_count: int | None = Field(default=None, ge=0, description="Public like count.")
    category_id: str | None = Field(default=None, description="Numeric category ID as string.")
    category_name: str | None = Field(default=None, description="Category title.")
