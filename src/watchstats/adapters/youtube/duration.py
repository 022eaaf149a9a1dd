"""ISO-8601 duration handling for ``contentDetails.duration`` values."""

from __future__ import annotations

import re
from typing import Final

_ISO_DURATION: Final[re.Pattern[str]] = re.compile(
    r"^P(?:(?P<days>\d+)D)?"
    r"(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$"
)


def parse_iso8601_duration(value: str | None) -> int | None:
    """Convert an ISO-8601 duration such as ``"PT1H2M3S"`` to seconds.

    Returns ``None`` if *value* is missing or not a duration.
    """
    if not value:
        return None
    match = _ISO_DURATION.match(value)
    if match is None or value in ("P", "PT") or value.endswith("T"):
        return None
    parts = {k: int(v) if v else 0 for k, v in match.groupdict().items()}
    return parts["days"] * 86400 + parts["hours"] * 3600 + parts["minutes"] * 60 + parts["seconds"]


def format_iso8601_duration(value: str | None) -> str:
    """Render an ISO-8601 duration as ``"H:MM:SS"`` or ``"M:SS"``.

    Unparseable values render as ``"Unknown"``.
    """
    total = parse_iso8601_duration(value)
    if total is None:
        return "Unknown"
    hours, rem = divmod(total, 3600)
    minutes, seconds = divmod(rem, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"
