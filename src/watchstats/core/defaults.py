"""Centralised default constants for watchstats.

Every project-wide magic number / string lives here.
Import these instead of hard-coding values in function signatures or CLI options.
"""

from __future__ import annotations

from typing import Final

# ── Sessions ──
DEFAULT_MAX_GAP_MINUTES: Final[float] = 30.0
DEFAULT_MIN_EVENTS_PER_SESSION: Final[int] = 2
DEFAULT_TIMEZONE: Final[str] = "UTC"

# Recommended bounds for the configuration surface (callers clamp).
MIN_GAP_MINUTES: Final[float] = 5.0
MAX_GAP_MINUTES: Final[float] = 120.0
MIN_SESSION_SIZE: Final[int] = 2
MAX_SESSION_SIZE: Final[int] = 10

# ── Ingestion ──
DEFAULT_CHUNK_SIZE: Final[int] = 1000
TAKEOUT_HEADER: Final[str] = "YouTube"
WATCHED_PREFIX: Final[str] = "Watched "

# ── Paths ──
DEFAULT_DATA_DIR: Final[str] = "data"

# ── YouTube Data API ──
YOUTUBE_API_BASE: Final[str] = "https://www.googleapis.com/youtube/v3"
DEFAULT_API_BATCH_SIZE: Final[int] = 50
DEFAULT_API_TIMEOUT_SECONDS: Final[int] = 10
DEFAULT_API_BATCH_DELAY_SECONDS: Final[float] = 0.1
DEFAULT_CACHE_EXPIRATION_DAYS: Final[int] = 30

# ── Reporting ──
DEFAULT_TOP_CHANNELS: Final[int] = 10
DEFAULT_TOP_CATEGORIES: Final[int] = 10
