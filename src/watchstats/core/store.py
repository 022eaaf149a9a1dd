"""Persistence primitives: a JSON key/value store and Parquet I/O.

Every write goes through a temporary file in the destination directory
followed by :func:`os.replace`, so readers never observe a partial file.
"""

from __future__ import annotations

import contextlib
import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any

import pandas as pd

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


def _atomic_write(path: Path, suffix: str, write: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, suffix=suffix)
    try:
        os.close(fd)
        write(tmp)
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp)
        raise
    return path


class JsonStore:
    """Directory-backed ``save(key, value)`` / ``load(key)`` store.

    Each key maps to ``<root>/<key>.json``.  Values must be
    JSON-serialisable; pydantic models should be dumped with
    ``model_dump(mode="json")`` first.
    """

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root)

    def _path_for(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid store key {key!r}")
        return self._root / f"{key}.json"

    def save(self, key: str, value: Any) -> Path:
        payload = json.dumps(value, indent=2)

        def _write(tmp: str) -> None:
            Path(tmp).write_text(payload + "\n", "utf-8")

        return _atomic_write(self._path_for(key), ".json.tmp", _write)

    def load(self, key: str, default: Any = None) -> Any:
        """Return the value stored under *key*, or *default* if absent.

        Raises:
            json.JSONDecodeError: If the stored file is corrupt.
        """
        path = self._path_for(key)
        if not path.exists():
            return default
        return json.loads(path.read_text("utf-8"))

    def delete(self, key: str) -> bool:
        path = self._path_for(key)
        if path.exists():
            path.unlink()
            return True
        return False


def write_parquet(df: pd.DataFrame, path: Path) -> Path:
    """Write *df* to a parquet file at *path* atomically.

    Args:
        df: DataFrame to persist.
        path: Destination file path.

    Returns:
        The *path* that was written, for convenient chaining.
    """
    return _atomic_write(
        path,
        ".parquet.tmp",
        lambda tmp: df.to_parquet(tmp, engine="pyarrow", index=False),
    )


def read_parquet(path: Path) -> pd.DataFrame:
    """Read a parquet file into a DataFrame."""
    return pd.read_parquet(path, engine="pyarrow")
