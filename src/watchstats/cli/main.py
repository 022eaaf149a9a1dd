"""Typer CLI entrypoint and command definitions for watchstats."""

import json
from pathlib import Path

import typer

from watchstats.core.defaults import DEFAULT_DATA_DIR, DEFAULT_TOP_CHANNELS

app = typer.Typer()

_HISTORY_KEY = "history"


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Watch-history statistics and session analysis."""
    from watchstats.core.logging import configure_logging

    configure_logging(verbose)


def _load_events(input_file: str | None, data_dir: str):
    """Normalize *input_file*, or fall back to the history saved by ``ingest``."""
    from pydantic import ValidationError

    from watchstats.adapters.takeout.parse import parse_takeout_export
    from watchstats.core.store import JsonStore
    from watchstats.core.types import WatchEvent

    if input_file is not None:
        path = Path(input_file)
        if not path.exists():
            typer.echo(f"File not found: {path}", err=True)
            raise typer.Exit(code=1)
        try:
            history = parse_takeout_export(path)
        except ValueError as exc:
            typer.echo(f"Could not read watch history: {exc}", err=True)
            raise typer.Exit(code=1) from exc
        return history.events

    try:
        stored = JsonStore(data_dir).load(_HISTORY_KEY)
    except json.JSONDecodeError as exc:
        typer.echo(f"Saved history is corrupt: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    if stored is None:
        typer.echo("No --input given and no ingested history found.", err=True)
        raise typer.Exit(code=1)
    try:
        return [WatchEvent.model_validate(e) for e in stored]
    except ValidationError as exc:
        typer.echo(f"Saved history has an invalid entry: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _stored_timezone(data_dir: str) -> str:
    """Return the configured timezone, exiting if config.json names an unknown one."""
    from watchstats.core.config import UserConfig
    from watchstats.core.time import resolve_timezone

    name = UserConfig(data_dir).timezone
    try:
        resolve_timezone(name)
    except ValueError as exc:
        typer.echo(f"Invalid timezone in config: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    return name


# -- ingest -------------------------------------------------------------------


@app.command("ingest")
def ingest_cmd(
    input_file: str = typer.Option(..., "--input", help="Path to Takeout watch-history.json"),
    data_dir: str = typer.Option(DEFAULT_DATA_DIR, help="Directory for saved history and config"),
    max_items: int = typer.Option(None, help="Only read the first N records"),
) -> None:
    """Normalize a Takeout export and save the events for later analysis."""
    from watchstats.adapters.takeout.parse import parse_takeout_export
    from watchstats.core.store import JsonStore

    path = Path(input_file)
    if not path.exists():
        typer.echo(f"File not found: {path}", err=True)
        raise typer.Exit(code=1)

    try:
        history = parse_takeout_export(path, max_items=max_items)
    except ValueError as exc:
        typer.echo(f"Could not read watch history: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    store = JsonStore(data_dir)
    store.save(_HISTORY_KEY, [e.model_dump(mode="json") for e in history.events])
    typer.echo(
        f"Normalized {len(history.events)} of {history.processed_items} records "
        f"({history.skipped_items} skipped)"
    )
    if history.is_partial:
        typer.echo(f"  partial: {history.total_items} records in file")
    typer.echo(f"Saved history to {Path(data_dir)}")


# -- summary ------------------------------------------------------------------


@app.command("summary")
def summary_cmd(
    input_file: str = typer.Option(None, "--input", help="Path to Takeout watch-history.json"),
    data_dir: str = typer.Option(DEFAULT_DATA_DIR, help="Directory for saved history and config"),
    top: int = typer.Option(DEFAULT_TOP_CHANNELS, help="Number of top channels and categories to list"),
    by: str = typer.Option("count", help="Rank categories by 'count' or 'duration'"),
) -> None:
    """Print channel, category, watch-time and calendar statistics."""
    from watchstats.analysis.history import (
        summarize_history,
        top_categories,
        top_channels,
        watch_time_stats,
    )
    from watchstats.report.format import format_watch_time_hours

    if by not in ("count", "duration"):
        typer.echo(f"Invalid --by {by!r}: expected 'count' or 'duration'", err=True)
        raise typer.Exit(code=1)

    timezone = _stored_timezone(data_dir)
    events = _load_events(input_file, data_dir)
    summary = summarize_history(events, timezone=timezone)

    typer.echo(f"Videos watched: {summary.total_videos}")
    typer.echo(f"Unique channels: {len(summary.unique_channels)}")
    if summary.first_watched is not None and summary.last_watched is not None:
        typer.echo(f"Range: {summary.first_watched.date()} to {summary.last_watched.date()}")
    typer.echo("Top channels:")
    for name, count in top_channels(summary, top):
        typer.echo(f"  {count:6d}  {name}")

    categories = top_categories(summary, top, by=by)
    if categories:
        typer.echo(f"Top categories (by {by}):")
        for name, count, seconds in categories:
            typer.echo(f"  {count:6d}  {format_watch_time_hours(seconds / 3600):>16}  {name}")

    if summary.videos_with_duration > 0:
        stats = watch_time_stats(summary)
        typer.echo(
            f"Known watch time: {format_watch_time_hours(stats.known_duration_seconds / 3600)} "
            f"across {stats.videos_with_duration} videos"
        )
        typer.echo(
            f"Estimated total: {format_watch_time_hours(stats.estimated_total_seconds / 3600)} "
            f"({stats.average_hours_per_day:.1f} hours/day over {stats.span_days} days)"
        )


# -- sessions -----------------------------------------------------------------


@app.command("sessions")
def sessions_cmd(
    input_file: str = typer.Option(None, "--input", help="Path to Takeout watch-history.json"),
    data_dir: str = typer.Option(DEFAULT_DATA_DIR, help="Directory for saved history and config"),
    max_gap: float = typer.Option(None, "--max-gap", help="Minutes of idle time that end a session"),
    min_events: int = typer.Option(None, "--min-events", help="Minimum videos per session"),
    timezone: str = typer.Option(None, help="IANA timezone for start-hour/day statistics"),
    out: str = typer.Option(None, help="Write the full analysis to this JSON file"),
    csv_out: str = typer.Option(None, "--csv", help="Write one row per session to this CSV file"),
) -> None:
    """Segment the history into watch sessions and print statistics."""
    from watchstats.analysis.sessions import analyze_sessions
    from watchstats.core.config import UserConfig, clamp_session_settings
    from watchstats.core.types import SessionConfig
    from watchstats.report.export import export_analysis_json, export_sessions_csv
    from watchstats.report.format import (
        format_date,
        format_session_duration,
        format_time_of_day,
        format_watch_time_hours,
    )

    user_cfg = UserConfig(data_dir)
    try:
        gap, size = clamp_session_settings(
            max_gap if max_gap is not None else user_cfg.max_gap_minutes,
            min_events if min_events is not None else user_cfg.min_events_per_session,
        )
        config = SessionConfig(
            max_gap_minutes=gap,
            min_events_per_session=size,
            timezone=timezone or user_cfg.timezone,
        )
    except ValueError as exc:
        typer.echo(f"Invalid session settings: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    events = _load_events(input_file, data_dir)
    result = analyze_sessions(events, config)

    typer.echo(f"Sessions: {result.total_sessions} (gap <= {gap:g} min, >= {size} videos)")
    if result.total_sessions == 0:
        typer.echo("No watch sessions found.")
    else:
        typer.echo(f"Average duration: {format_session_duration(result.average_session_duration)}")
        typer.echo(f"Average videos per session: {result.average_events_per_session:.1f}")
        typer.echo(f"Time in sessions: {format_watch_time_hours(result.total_watch_time_hours)}")
        typer.echo(f"Most common start: {result.most_common_day} at {result.most_common_start_hour}:00")
        longest = result.longest_session
        if longest is not None:
            typer.echo(
                f"Longest session: {format_session_duration(longest.duration_minutes)} "
                f"on {format_date(longest.start_time)} at {format_time_of_day(longest.start_time)} UTC"
            )

    if out:
        path = export_analysis_json(result, Path(out))
        typer.echo(f"Wrote analysis to {path}")
    if csv_out:
        path = export_sessions_csv(result, Path(csv_out))
        typer.echo(f"Wrote sessions to {path}")


# -- enrich -------------------------------------------------------------------


@app.command("enrich")
def enrich_cmd(
    input_file: str = typer.Option(None, "--input", help="Path to Takeout watch-history.json"),
    data_dir: str = typer.Option(DEFAULT_DATA_DIR, help="Directory for saved history, config and cache"),
    token: str = typer.Option(..., "--token", envvar="YOUTUBE_ACCESS_TOKEN", help="OAuth access token"),
    force_refresh: bool = typer.Option(False, "--force-refresh", help="Ignore cached video details"),
) -> None:
    """Attach duration and category metadata from the YouTube Data API."""
    from watchstats.adapters.youtube.cache import VideoDetailsCache
    from watchstats.adapters.youtube.client import enrich_events, fetch_video_details
    from watchstats.core.store import JsonStore

    events = _load_events(input_file, data_dir)
    store = JsonStore(data_dir)
    cache = VideoDetailsCache(store)

    def _progress(done: int, total: int) -> None:
        typer.echo(f"  batch {done}/{total}")

    try:
        details = fetch_video_details(
            (e.video_id for e in events if e.video_id),
            access_token=token,
            cache=cache,
            force_refresh=force_refresh,
            on_progress=_progress,
        )
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    enriched = enrich_events(events, details)
    store.save(_HISTORY_KEY, [e.model_dump(mode="json") for e in enriched])
    with_duration = sum(1 for e in enriched if e.duration_seconds is not None)
    typer.echo(f"Resolved {len(details)} videos; {with_duration}/{len(enriched)} events have durations")


# -- config -------------------------------------------------------------------
config_app = typer.Typer()
app.add_typer(config_app, name="config")


@config_app.command("show")
def config_show_cmd(
    data_dir: str = typer.Option(DEFAULT_DATA_DIR, help="Directory holding config.json"),
) -> None:
    """Print the stored configuration as JSON."""
    from watchstats.core.config import UserConfig

    typer.echo(json.dumps(UserConfig(data_dir).as_dict(), indent=2))


@config_app.command("set")
def config_set_cmd(
    data_dir: str = typer.Option(DEFAULT_DATA_DIR, help="Directory holding config.json"),
    max_gap: float = typer.Option(None, "--max-gap", help="Minutes of idle time that end a session"),
    min_events: int = typer.Option(None, "--min-events", help="Minimum videos per session"),
    timezone: str = typer.Option(None, help="IANA timezone for start-hour/day statistics"),
) -> None:
    """Update session settings in config.json."""
    from watchstats.core.config import UserConfig

    patch: dict[str, object] = {}
    if max_gap is not None:
        patch["max_gap_minutes"] = max_gap
    if min_events is not None:
        patch["min_events_per_session"] = min_events
    if timezone is not None:
        patch["timezone"] = timezone
    if not patch:
        typer.echo("Nothing to update.", err=True)
        raise typer.Exit(code=1)

    try:
        updated = UserConfig(data_dir).update(patch)
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(json.dumps(updated, indent=2))
