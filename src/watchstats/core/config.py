"""User-level configuration persistence.

Stores per-install settings as a JSON file inside the data directory.
The file is created on first access with an auto-generated ``user_id``
(UUID) that never changes.

Typical location::

    data/config.json

Usage::

    from watchstats.core.config import UserConfig

    cfg = UserConfig(data_dir)
    cfg.max_gap_minutes          # 30.0 until changed
    cfg.max_gap_minutes = 45     # persists immediately
    cfg.session_config()         # clamped SessionConfig for analysis
"""

from __future__ import annotations

import json
import logging
import uuid
from pathlib import Path
from typing import Any

from watchstats.core.defaults import (
    DEFAULT_DATA_DIR,
    DEFAULT_MAX_GAP_MINUTES,
    DEFAULT_MIN_EVENTS_PER_SESSION,
    DEFAULT_TIMEZONE,
    MAX_GAP_MINUTES,
    MAX_SESSION_SIZE,
    MIN_GAP_MINUTES,
    MIN_SESSION_SIZE,
)
from watchstats.core.time import resolve_timezone
from watchstats.core.types import SessionConfig

logger = logging.getLogger(__name__)

_CONFIG_FILENAME = "config.json"
_SESSION_KEYS = ("max_gap_minutes", "min_events_per_session", "timezone")


def clamp_session_settings(max_gap_minutes: float, min_events_per_session: int) -> tuple[float, int]:
    """Clamp the two session tunables into their recommended bounds.

    Gap: 5–120 minutes.  Minimum session size: 2–10 events.
    """
    gap = min(max(float(max_gap_minutes), MIN_GAP_MINUTES), MAX_GAP_MINUTES)
    size = min(max(int(min_events_per_session), MIN_SESSION_SIZE), MAX_SESSION_SIZE)
    return gap, size


class UserConfig:
    """Read/write access to ``config.json`` in a data directory.

    On first instantiation (no config file yet) a random UUID
    ``user_id`` is generated and persisted.

    The session tunables are stored as entered; :meth:`session_config`
    clamps them when building the :class:`SessionConfig` used for
    analysis.  All mutations are persisted immediately.  The file is
    plain JSON so it can be hand-edited.
    """

    def __init__(self, data_dir: Path | str = DEFAULT_DATA_DIR) -> None:
        self._path = Path(data_dir) / _CONFIG_FILENAME
        self._data: dict[str, Any] = self._load()
        self._ensure_user_id()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        if self._path.exists():
            try:
                return json.loads(self._path.read_text("utf-8"))
            except (json.JSONDecodeError, OSError):
                logger.warning("Corrupt config at %s, using defaults", self._path)
        return {}

    def _ensure_user_id(self) -> None:
        """Generate and persist a stable ``user_id`` if one does not exist."""
        if "user_id" not in self._data:
            self._data["user_id"] = str(uuid.uuid4())
            self._persist()

    def _persist(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(self._data, indent=2) + "\n", "utf-8")

    # -- user_id (stable, read-only after creation) ----------------------------

    @property
    def user_id(self) -> str:
        """Stable UUID assigned to this install.  Never changes."""
        return self._data["user_id"]

    # -- session tunables ------------------------------------------------------

    @property
    def max_gap_minutes(self) -> float:
        return float(self._data.get("max_gap_minutes", DEFAULT_MAX_GAP_MINUTES))

    @max_gap_minutes.setter
    def max_gap_minutes(self, value: float) -> None:
        self._data["max_gap_minutes"] = _validate_gap(value)
        self._persist()

    @property
    def min_events_per_session(self) -> int:
        return int(self._data.get("min_events_per_session", DEFAULT_MIN_EVENTS_PER_SESSION))

    @min_events_per_session.setter
    def min_events_per_session(self, value: int) -> None:
        self._data["min_events_per_session"] = _validate_size(value)
        self._persist()

    @property
    def timezone(self) -> str:
        return self._data.get("timezone", DEFAULT_TIMEZONE)

    @timezone.setter
    def timezone(self, value: str) -> None:
        resolve_timezone(value)
        self._data["timezone"] = value
        self._persist()

    def session_config(self) -> SessionConfig:
        """Build a :class:`SessionConfig` with the tunables clamped."""
        gap, size = clamp_session_settings(self.max_gap_minutes, self.min_events_per_session)
        return SessionConfig(
            max_gap_minutes=gap,
            min_events_per_session=size,
            timezone=self.timezone,
        )

    # -- generic helpers -------------------------------------------------------

    def as_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "max_gap_minutes": self.max_gap_minutes,
            "min_events_per_session": self.min_events_per_session,
            "timezone": self.timezone,
            **{
                k: v for k, v in self._data.items()
                if k != "user_id" and k not in _SESSION_KEYS
            },
        }

    def update(self, patch: dict[str, Any]) -> dict[str, Any]:
        """Merge *patch* into the config and persist.  Returns the full config.

        ``user_id`` is ignored in *patch*; it is immutable after creation.
        Session tunables are validated before anything is written.
        """
        staged = dict(self._data)
        for key, val in patch.items():
            if key == "user_id":
                continue
            if key == "max_gap_minutes":
                val = _validate_gap(val)
            elif key == "min_events_per_session":
                val = _validate_size(val)
            elif key == "timezone":
                resolve_timezone(str(val))
            staged[key] = val
        self._data = staged
        self._persist()
        return self.as_dict()


def _validate_gap(value: Any) -> float:
    gap = float(value)
    if gap <= 0:
        raise ValueError(f"max_gap_minutes must be positive, got {value!r}")
    return gap


def _validate_size(value: Any) -> int:
    size = int(value)
    if size < 1:
        raise ValueError(f"min_events_per_session must be at least 1, got {value!r}")
    return size
