"""Expiring cache of :class:`VideoDetails`, keyed by video ID.

The cache is an explicit object handed to
:func:`~watchstats.adapters.youtube.client.fetch_video_details`; there is
no module-level instance.  With a :class:`~watchstats.core.store.JsonStore`
it persists across runs, otherwise it lives in memory only.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Iterable

from pydantic import ValidationError

from watchstats.adapters.youtube.types import VideoDetails
from watchstats.core.store import JsonStore

logger = logging.getLogger(__name__)

_STORE_KEY = "video_details_cache"
_SECONDS_PER_DAY = 24 * 60 * 60


class VideoDetailsCache:
    """Video-ID -> details mapping with optional per-entry expiry.

    Entries are stored as ``{"details": ..., "cached_at": epoch,
    "expires_at": epoch | None}``.  Expired entries are invisible to
    :meth:`get` / :meth:`get_many` and removed by :meth:`clear_expired`.
    """

    def __init__(
        self,
        store: JsonStore | None = None,
        *,
        key: str = _STORE_KEY,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._key = key
        self._clock = clock
        self._entries: dict[str, dict[str, Any]] = self._load()

    def _load(self) -> dict[str, dict[str, Any]]:
        if self._store is None:
            return {}
        try:
            data = self._store.load(self._key, default={})
        except json.JSONDecodeError:
            logger.warning("Corrupt video details cache, starting empty")
            return {}
        return data if isinstance(data, dict) else {}

    def _persist(self) -> None:
        if self._store is not None:
            self._store.save(self._key, self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def _live_details(self, video_id: str, now: float) -> VideoDetails | None:
        entry = self._entries.get(video_id)
        if entry is None:
            return None
        expires_at = entry.get("expires_at")
        if expires_at is not None and expires_at < now:
            return None
        try:
            return VideoDetails.model_validate(entry["details"])
        except (KeyError, ValidationError):
            logger.debug("Dropping unreadable cache entry for %s", video_id)
            return None

    def get(self, video_id: str) -> VideoDetails | None:
        return self._live_details(video_id, self._clock())

    def get_many(self, video_ids: Iterable[str]) -> dict[str, VideoDetails]:
        """Return the live entries among *video_ids*; misses are omitted."""
        now = self._clock()
        found: dict[str, VideoDetails] = {}
        for vid in video_ids:
            details = self._live_details(vid, now)
            if details is not None:
                found[vid] = details
        return found

    def put(self, details: VideoDetails, *, expiration_days: float | None = None) -> None:
        self.put_many({details.video_id: details}, expiration_days=expiration_days)

    def put_many(
        self,
        details: dict[str, VideoDetails],
        *,
        expiration_days: float | None = None,
    ) -> None:
        """Store every entry of *details* and persist once."""
        now = self._clock()
        expires_at = now + expiration_days * _SECONDS_PER_DAY if expiration_days else None
        for vid, item in details.items():
            self._entries[vid] = {
                "details": item.model_dump(mode="json"),
                "cached_at": now,
                "expires_at": expires_at,
            }
        self._persist()

    def clear_expired(self) -> int:
        """Remove expired entries.  Returns how many were removed."""
        now = self._clock()
        expired = [
            vid for vid, entry in self._entries.items()
            if entry.get("expires_at") is not None and entry["expires_at"] < now
        ]
        for vid in expired:
            del self._entries[vid]
        if expired:
            self._persist()
        return len(expired)

    def clear(self) -> None:
        self._entries = {}
        self._persist()
