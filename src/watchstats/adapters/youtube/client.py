"""YouTube Data API v3 client for optional video enrichment.

Fetches duration, category, and view statistics for watched videos in
batches of at most 50 IDs (the API limit), consulting an explicit
:class:`~watchstats.adapters.youtube.cache.VideoDetailsCache` first.

Failure policy:

* HTTP 403 (quota exhausted) stops fetching; whatever was fetched so far
  is returned.
* Any other error on a batch is logged and the next batch is tried.
* A malformed item is logged and skipped; the rest of its batch is kept.
* A failed category lookup leaves ``category_name`` unset.

The analysis engine never depends on this module: enrichment only ever
produces new :class:`~watchstats.core.types.WatchEvent` copies with extra
optional fields via :func:`enrich_events`.
"""

from __future__ import annotations

import json
import logging
import time
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Callable, Iterable, Sequence

from pydantic import ValidationError

from watchstats.adapters.youtube.cache import VideoDetailsCache
from watchstats.adapters.youtube.duration import format_iso8601_duration, parse_iso8601_duration
from watchstats.adapters.youtube.types import VideoDetails
from watchstats.core.defaults import (
    DEFAULT_API_BATCH_DELAY_SECONDS,
    DEFAULT_API_BATCH_SIZE,
    DEFAULT_API_TIMEOUT_SECONDS,
    DEFAULT_CACHE_EXPIRATION_DAYS,
    YOUTUBE_API_BASE,
)
from watchstats.core.types import WatchEvent

logger = logging.getLogger(__name__)

BatchProgress = Callable[[int, int], None]

_QUOTA_EXCEEDED_STATUS = 403


# ---------------------------------------------------------------------------
# REST API helpers
# ---------------------------------------------------------------------------


def _api_get(url: str, access_token: str) -> Any:
    """Issue an authorised GET request and return the parsed JSON body."""
    req = urllib.request.Request(
        url,
        headers={
            "Accept": "application/json",
            "Authorization": f"Bearer {access_token}",
        },
    )
    with urllib.request.urlopen(req, timeout=DEFAULT_API_TIMEOUT_SECONDS) as resp:
        return json.loads(resp.read().decode("utf-8"))


def _endpoint(path: str, params: dict[str, str]) -> str:
    return f"{YOUTUBE_API_BASE}/{path}?{urllib.parse.urlencode(params)}"


def _to_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _item_to_details(item: dict[str, Any]) -> VideoDetails:
    """Flatten one ``videos.list`` item into :class:`VideoDetails`."""
    snippet = item.get("snippet", {})
    content = item.get("contentDetails", {})
    stats = item.get("statistics", {})
    thumbnails = snippet.get("thumbnails", {})
    thumb = thumbnails.get("medium") or thumbnails.get("default") or {}
    iso_duration = content.get("duration")

    return VideoDetails(
        video_id=item["id"],
        title=snippet.get("title", ""),
        channel_title=snippet.get("channelTitle"),
        published_at=snippet.get("publishedAt"),
        description=snippet.get("description", ""),
        thumbnail=thumb.get("url"),
        duration=format_iso8601_duration(iso_duration),
        duration_seconds=parse_iso8601_duration(iso_duration),
        view_count=_to_int(stats.get("viewCount")),
        like_count=_to_int(stats.get("likeCount")),
        category_id=snippet.get("categoryId"),
    )


def fetch_category_names(category_ids: Sequence[str], *, access_token: str) -> dict[str, str]:
    """Resolve category IDs to their titles via ``videoCategories.list``.

    Raises:
        urllib.error.URLError: On network or HTTP failure.
    """
    if not category_ids:
        return {}
    url = _endpoint("videoCategories", {"part": "snippet", "id": ",".join(category_ids)})
    data = _api_get(url, access_token)
    return {
        item["id"]: item["snippet"]["title"]
        for item in data.get("items", [])
        if "id" in item and "title" in item.get("snippet", {})
    }


# ---------------------------------------------------------------------------
# Batch fetch
# ---------------------------------------------------------------------------


def fetch_video_details(
    video_ids: Iterable[str],
    *,
    access_token: str | None,
    cache: VideoDetailsCache | None = None,
    batch_size: int = DEFAULT_API_BATCH_SIZE,
    force_refresh: bool = False,
    update_cache: bool = True,
    on_progress: BatchProgress | None = None,
    delay_seconds: float = DEFAULT_API_BATCH_DELAY_SECONDS,
) -> dict[str, VideoDetails]:
    """Fetch metadata for *video_ids*, using *cache* where possible.

    Args:
        video_ids: IDs to look up; duplicates and empty values are ignored.
        access_token: OAuth bearer token with YouTube read scope.
        cache: Optional cache consulted first and updated afterwards.
        batch_size: IDs per ``videos.list`` request (API maximum is 50).
        force_refresh: Skip cache reads (writes still happen).
        update_cache: Write freshly fetched details back to *cache*.
        on_progress: Called as ``(batches_done, batches_total)``.
        delay_seconds: Pause between batches to stay under rate limits.

    Returns:
        Mapping of video ID to details, for every ID that could be resolved.

    Raises:
        ValueError: If any ID needs fetching and *access_token* is empty,
            or *batch_size* is out of range.
    """
    if not 1 <= batch_size <= DEFAULT_API_BATCH_SIZE:
        raise ValueError(f"batch_size must be between 1 and {DEFAULT_API_BATCH_SIZE}")

    pending = list(dict.fromkeys(v for v in video_ids if v))
    results: dict[str, VideoDetails] = {}

    if cache is not None and not force_refresh:
        results.update(cache.get_many(pending))
        pending = [v for v in pending if v not in results]
        logger.info("Cache hit for %d videos, %d left to fetch", len(results), len(pending))
        if not pending:
            return results

    if not pending:
        return results
    if not access_token:
        raise ValueError("No access token available")

    batches = [pending[i:i + batch_size] for i in range(0, len(pending), batch_size)]
    fetched: dict[str, VideoDetails] = {}

    for i, batch in enumerate(batches):
        if on_progress is not None:
            on_progress(i, len(batches))

        url = _endpoint("videos", {
            "part": "snippet,contentDetails,statistics",
            "id": ",".join(batch),
        })
        try:
            data = _api_get(url, access_token)
        except urllib.error.HTTPError as exc:
            if exc.code == _QUOTA_EXCEEDED_STATUS:
                logger.error("YouTube API quota exceeded after %d of %d batches", i, len(batches))
                break
            logger.error("YouTube API error on batch %d: HTTP %d", i, exc.code)
            continue
        except (urllib.error.URLError, OSError, json.JSONDecodeError) as exc:
            logger.error("Error fetching batch %d: %s", i, exc)
            continue

        for item in data.get("items", []):
            try:
                details = _item_to_details(item)
            except (KeyError, AttributeError, ValidationError) as exc:
                logger.warning("Skipping malformed item in batch %d: %s", i, exc)
                continue
            fetched[details.video_id] = details

        if delay_seconds > 0 and i < len(batches) - 1:
            time.sleep(delay_seconds)

    fetched = _attach_category_names(fetched, access_token)

    if update_cache and cache is not None and fetched:
        cache.put_many(fetched, expiration_days=DEFAULT_CACHE_EXPIRATION_DAYS)

    results.update(fetched)
    if on_progress is not None:
        on_progress(len(batches), len(batches))
    return results


def _attach_category_names(
    fetched: dict[str, VideoDetails],
    access_token: str,
) -> dict[str, VideoDetails]:
    category_ids = list(dict.fromkeys(d.category_id for d in fetched.values() if d.category_id))
    if not category_ids:
        return fetched
    try:
        names = fetch_category_names(category_ids, access_token=access_token)
    except (urllib.error.URLError, OSError, json.JSONDecodeError) as exc:
        logger.warning("Failed to fetch category names: %s", exc)
        return fetched
    return {
        vid: d.model_copy(update={"category_name": names[d.category_id]})
        if d.category_id in names else d
        for vid, d in fetched.items()
    }


def enrich_events(
    events: Sequence[WatchEvent],
    details: dict[str, VideoDetails],
) -> list[WatchEvent]:
    """Return copies of *events* with enrichment fields from *details*.

    Events without a ``video_id`` or without a matching entry are
    returned unchanged.  Fields already set on an event are only
    overwritten by non-null values.
    """
    enriched: list[WatchEvent] = []
    for ev in events:
        d = details.get(ev.video_id) if ev.video_id else None
        if d is None:
            enriched.append(ev)
            continue
        update = {
            k: v for k, v in {
                "duration_seconds": d.duration_seconds,
                "category_name": d.category_name,
                "view_count": d.view_count,
                "channel_name": ev.channel_name or d.channel_title,
            }.items()
            if v is not None
        }
        enriched.append(ev.model_copy(update=update))
    return enriched
