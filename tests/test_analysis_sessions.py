"""Tests for watch-session segmentation and session statistics.

Covers:
- split_into_runs: sorting, gap threshold (inclusive), tie stability
- build_session: counts, totals, averages, deterministic id
- analyze_sessions: single session, gap split, sub-minimum discard,
  empty input, single-event sessions, tie-breaks, histograms
- Properties: idempotence, order invariance, gap/size/conservation
"""

from __future__ import annotations

import datetime as dt
import random

import pytest

from watchstats.analysis.sessions import (
    SessionAnalysisResult,
    analyze_sessions,
    build_session,
    split_into_runs,
)
from watchstats.core.types import SessionConfig

# 2025-06-15 is a Sunday.
_CFG = SessionConfig(max_gap_minutes=30, min_events_per_session=2)


class TestSplitIntoRuns:
    def test_empty(self) -> None:
        assert split_into_runs([], 30) == []

    def test_sorts_before_scanning(self, make_event) -> None:
        events = [make_event(20), make_event(0), make_event(10)]
        runs = split_into_runs(events, 30)
        assert len(runs) == 1
        assert [e.timestamp for e in runs[0]] == sorted(e.timestamp for e in events)

    def test_gap_equal_to_threshold_stays_in_run(self, make_event) -> None:
        runs = split_into_runs([make_event(0), make_event(30)], 30)
        assert len(runs) == 1

    def test_gap_above_threshold_splits(self, make_event) -> None:
        runs = split_into_runs([make_event(0), make_event(30.5)], 30)
        assert [len(r) for r in runs] == [1, 1]

    def test_equal_timestamps_keep_input_order(self, make_event) -> None:
        a = make_event(5, title="first")
        b = make_event(5, title="second")
        c = make_event(0, title="zero")
        runs = split_into_runs([a, b, c], 30)
        assert [e.title for e in runs[0]] == ["zero", "first", "second"]

    def test_does_not_mutate_input(self, make_event) -> None:
        events = [make_event(20), make_event(0)]
        snapshot = list(events)
        split_into_runs(events, 30)
        assert events == snapshot


class TestBuildSession:
    def test_empty_run_rejected(self) -> None:
        with pytest.raises(ValueError, match="zero events"):
            build_session([])

    def test_counts_and_totals(self, make_event) -> None:
        run = [
            make_event(0, channel_name="A", category_name="Music", duration_seconds=120),
            make_event(5, channel_name="B", category_name="Music", duration_seconds=60),
            make_event(10, channel_name="A", category_name=None, duration_seconds=None),
            make_event(15, channel_name=None, category_name="Gaming", duration_seconds=0),
        ]
        s = build_session(run)
        assert s.channel_counts == {"A": 2, "B": 1}
        assert s.category_counts == {"Music": 2, "Gaming": 1}
        assert s.total_duration_seconds == 180
        assert s.average_event_duration == pytest.approx(45.0)
        assert s.duration_minutes == pytest.approx(15.0)
        assert s.start_time == run[0].timestamp
        assert s.end_time == run[-1].timestamp

    def test_id_derived_from_first_event(self, make_event, base_ts) -> None:
        s = build_session([make_event(0), make_event(1)])
        expected_ms = int(base_ts.replace(tzinfo=dt.timezone.utc).timestamp() * 1000)
        assert s.id == f"session-{expected_ms}"

    def test_no_enrichment_gives_zero_average(self, make_event) -> None:
        s = build_session([make_event(0), make_event(1)])
        assert s.total_duration_seconds == 0
        assert s.average_event_duration == 0


class TestAnalyzeScenarios:
    def test_single_session(self, make_event) -> None:
        """Events at T, T+10, T+20 form one 20-minute session."""
        result = analyze_sessions([make_event(0), make_event(10), make_event(20)], _CFG)
        assert result.total_sessions == 1
        session = result.sessions[0]
        assert len(session.events) == 3
        assert session.duration_minutes == pytest.approx(20.0)

    def test_gap_splits_sessions(self, make_event) -> None:
        """A 40-minute gap (> 30) splits T, T+10 from T+50, T+60."""
        result = analyze_sessions(
            [make_event(0), make_event(10), make_event(50), make_event(60)], _CFG,
        )
        assert result.total_sessions == 2
        assert [len(s.events) for s in result.sessions] == [2, 2]

    def test_below_minimum_discarded(self, make_event) -> None:
        result = analyze_sessions([make_event(0), make_event(200)], _CFG)
        assert result.total_sessions == 0
        assert result.discarded_event_count == 2

    def test_empty_input(self) -> None:
        result = analyze_sessions([], _CFG)
        assert result.total_sessions == 0
        assert result.sessions == []
        assert result.sessions_per_hour == {}
        assert result.sessions_per_day == {}
        assert result.longest_session is None
        assert result.most_events_session is None
        assert result.most_common_start_hour is None
        assert result.most_common_day is None
        assert result.average_session_duration == 0
        assert result.total_watch_time_hours == 0

    def test_default_config(self, make_event) -> None:
        result = analyze_sessions([make_event(0), make_event(10)])
        assert result.total_sessions == 1

    def test_single_event_session_when_minimum_is_one(self, make_event) -> None:
        cfg = SessionConfig(max_gap_minutes=30, min_events_per_session=1)
        result = analyze_sessions([make_event(0), make_event(200)], cfg)
        assert result.total_sessions == 2
        assert all(s.duration_minutes == 0 for s in result.sessions)

    def test_short_run_between_sessions_is_dropped_not_merged(self, make_event) -> None:
        events = [make_event(0), make_event(5), make_event(100), make_event(200), make_event(205)]
        result = analyze_sessions(events, _CFG)
        assert result.total_sessions == 2
        assert result.discarded_event_count == 1
        assert [len(s.events) for s in result.sessions] == [2, 2]


class TestAggregates:
    def test_totals_and_means(self, make_event) -> None:
        events = [make_event(0), make_event(30), make_event(120), make_event(130), make_event(140)]
        result = analyze_sessions(events, _CFG)
        assert result.total_sessions == 2
        assert result.average_session_duration == pytest.approx(25.0)
        assert result.total_watch_time_hours == pytest.approx(50 / 60)
        assert result.average_events_per_session == pytest.approx(2.5)

    def test_longest_and_most_events(self, make_event) -> None:
        events = [make_event(0), make_event(30), make_event(120), make_event(125), make_event(130)]
        result = analyze_sessions(events, _CFG)
        assert result.longest_session == result.sessions[0]
        assert result.most_events_session == result.sessions[1]

    def test_ties_go_to_first_session(self, make_event) -> None:
        events = [make_event(0), make_event(10), make_event(100), make_event(110)]
        result = analyze_sessions(events, _CFG)
        assert result.longest_session.id == result.sessions[0].id
        assert result.most_events_session.id == result.sessions[0].id

    def test_histograms(self, make_event) -> None:
        # Sessions start Sunday 10:00, Sunday 12:00, Monday 10:00 (UTC).
        events = [
            make_event(0), make_event(5),
            make_event(120), make_event(125),
            make_event(24 * 60), make_event(24 * 60 + 5),
        ]
        result = analyze_sessions(events, _CFG)
        assert result.sessions_per_hour == {"10:00": 2, "12:00": 1}
        assert result.sessions_per_day == {"Sunday": 2, "Monday": 1}
        assert result.most_common_start_hour == 10
        assert result.most_common_day == "Sunday"

    def test_hour_tie_goes_to_first_populated_bucket(self, make_event) -> None:
        # 12:00 session is chronologically first, then 10:00 next day.
        events = [
            make_event(120), make_event(125),
            make_event(24 * 60), make_event(24 * 60 + 5),
        ]
        result = analyze_sessions(events, _CFG)
        assert result.most_common_start_hour == 12
        assert result.most_common_day == "Sunday"

    def test_timezone_shifts_buckets(self, make_event) -> None:
        cfg = SessionConfig(max_gap_minutes=30, min_events_per_session=2, timezone="America/New_York")
        result = analyze_sessions([make_event(0), make_event(5)], cfg)
        # 10:00 UTC in June is 06:00 EDT.
        assert result.most_common_start_hour == 6
        assert result.sessions_per_hour == {"6:00": 1}

    def test_aware_timestamps_bucket_by_utc_instant(self, make_event, base_ts) -> None:
        plus5 = dt.timezone(dt.timedelta(hours=5))
        local = (base_ts + dt.timedelta(hours=5)).replace(tzinfo=plus5)
        events = [
            make_event(0, timestamp=local),
            make_event(5, timestamp=local + dt.timedelta(minutes=5)),
        ]
        result = analyze_sessions(events)
        assert result.most_common_start_hour == 10
        assert result.sessions[0].id == "session-1749981600000"

    def test_mixed_naive_and_aware_timestamps(self, make_event, base_ts) -> None:
        aware = (base_ts + dt.timedelta(minutes=5)).replace(tzinfo=dt.timezone.utc)
        result = analyze_sessions([make_event(0), make_event(5, timestamp=aware)])
        assert result.total_sessions == 1
        assert result.sessions[0].duration_minutes == pytest.approx(5.0)

    def test_result_is_plain_data(self, make_event) -> None:
        result = analyze_sessions([make_event(0), make_event(5)], _CFG)
        dumped = result.model_dump(mode="json")
        assert dumped["total_sessions"] == 1
        assert isinstance(dumped["sessions"][0]["start_time"], str)
        assert SessionAnalysisResult.model_validate(dumped) == result


class TestProperties:
    @pytest.fixture()
    def events(self, make_event):
        rng = random.Random(7)
        minutes = 0.0
        out = []
        for _ in range(60):
            minutes += rng.choice([1, 4, 12, 29, 31, 45, 90])
            out.append(make_event(minutes, channel_name=rng.choice(["A", "B", "C"])))
        return out

    def test_idempotent(self, events) -> None:
        assert analyze_sessions(events, _CFG) == analyze_sessions(events, _CFG)

    def test_order_invariant(self, events) -> None:
        shuffled = list(events)
        random.Random(3).shuffle(shuffled)
        assert analyze_sessions(shuffled, _CFG) == analyze_sessions(events, _CFG)

    def test_gap_and_size_invariants(self, events) -> None:
        cfg = SessionConfig(max_gap_minutes=30, min_events_per_session=3)
        result = analyze_sessions(events, cfg)
        assert result.total_sessions > 0
        for s in result.sessions:
            assert len(s.events) >= 3
            for prev, cur in zip(s.events, s.events[1:]):
                assert (cur.timestamp - prev.timestamp).total_seconds() / 60 <= 30
        for a, b in zip(result.sessions, result.sessions[1:]):
            assert (b.start_time - a.end_time).total_seconds() / 60 > 30
            between = [e for e in events if a.end_time < e.timestamp < b.start_time]
            # Anything between two sessions is a discarded run shorter than the minimum.
            for run in split_into_runs(between, 30):
                assert len(run) < 3

    def test_conservation(self, events) -> None:
        result = analyze_sessions(events, SessionConfig(max_gap_minutes=30, min_events_per_session=3))
        kept = sum(len(s.events) for s in result.sessions)
        assert kept + result.discarded_event_count == result.total_events == len(events)

    def test_session_ids_unique(self, events) -> None:
        cfg = SessionConfig(max_gap_minutes=30, min_events_per_session=1)
        result = analyze_sessions(events, cfg)
        ids = [s.id for s in result.sessions]
        assert len(ids) == len(set(ids))
