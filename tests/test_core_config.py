"""Tests for watchstats.core.config.UserConfig and setting clamps."""

from __future__ import annotations

import json
import uuid

import pytest

from watchstats.core.config import UserConfig, clamp_session_settings


def test_auto_generates_uuid_user_id(tmp_path):
    cfg = UserConfig(tmp_path)
    uuid.UUID(cfg.user_id)


def test_user_id_stable_across_reloads(tmp_path):
    assert UserConfig(tmp_path).user_id == UserConfig(tmp_path).user_id


def test_user_id_is_immutable_via_update(tmp_path):
    cfg = UserConfig(tmp_path)
    original = cfg.user_id
    cfg.update({"user_id": "should-be-ignored"})
    assert cfg.user_id == original


def test_defaults(tmp_path):
    cfg = UserConfig(tmp_path)
    assert cfg.max_gap_minutes == 30.0
    assert cfg.min_events_per_session == 2
    assert cfg.timezone == "UTC"


def test_setters_persist(tmp_path):
    cfg = UserConfig(tmp_path)
    cfg.max_gap_minutes = 45
    cfg.min_events_per_session = 4
    cfg.timezone = "Europe/Berlin"

    reloaded = UserConfig(tmp_path)
    assert reloaded.max_gap_minutes == 45.0
    assert reloaded.min_events_per_session == 4
    assert reloaded.timezone == "Europe/Berlin"


def test_invalid_values_rejected(tmp_path):
    cfg = UserConfig(tmp_path)
    with pytest.raises(ValueError, match="positive"):
        cfg.max_gap_minutes = 0
    with pytest.raises(ValueError, match="at least 1"):
        cfg.min_events_per_session = 0
    with pytest.raises(ValueError, match="Unknown timezone"):
        cfg.timezone = "Nowhere/Special"


def test_update_is_all_or_nothing(tmp_path):
    cfg = UserConfig(tmp_path)
    with pytest.raises(ValueError):
        cfg.update({"max_gap_minutes": 60, "min_events_per_session": -1})
    assert UserConfig(tmp_path).max_gap_minutes == 30.0


def test_update_returns_full_config(tmp_path):
    cfg = UserConfig(tmp_path)
    out = cfg.update({"max_gap_minutes": 60, "theme": "dark"})
    assert out["max_gap_minutes"] == 60.0
    assert out["theme"] == "dark"
    assert out["user_id"] == cfg.user_id


def test_session_config_is_clamped(tmp_path):
    cfg = UserConfig(tmp_path)
    cfg.update({"max_gap_minutes": 500, "min_events_per_session": 1})
    sc = cfg.session_config()
    assert sc.max_gap_minutes == 120.0
    assert sc.min_events_per_session == 2


def test_corrupt_file_falls_back_to_defaults(tmp_path):
    (tmp_path / "config.json").write_text("{not json")
    cfg = UserConfig(tmp_path)
    assert cfg.max_gap_minutes == 30.0
    assert json.loads((tmp_path / "config.json").read_text())["user_id"] == cfg.user_id


@pytest.mark.parametrize(
    ("gap", "size", "expected"),
    [
        (1, 1, (5.0, 2)),
        (30, 3, (30.0, 3)),
        (500, 50, (120.0, 10)),
    ],
)
def test_clamp_session_settings(gap, size, expected):
    assert clamp_session_settings(gap, size) == expected
