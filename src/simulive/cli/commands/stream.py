from __future__ import annotations

import json
from typing import Any, NoReturn

import typer

from ...adapters.mux import MuxAssetProvider
from ...infra.exceptions import SimuliveError
from ...infra.settings import settings
from ...infra.uow import session
from ...usecases import stream_add as _uc_stream_add
from ...usecases import stream_delete as _uc_stream_delete
from ...usecases import stream_list as _uc_stream_list
from ...usecases import stream_state as _uc_stream_state
from ...usecases import stream_update as _uc_stream_update

app = typer.Typer(name="stream", help="Stream record management operations")


def _echo_stream(result: dict[str, Any], heading: str) -> None:
    typer.echo(heading)
    typer.echo(f"  ID: {result['id']}")
    typer.echo(f"  Slug: {result['slug']}")
    typer.echo(f"  Title: {result['title']}")
    typer.echo(f"  Playback: {result['playbackId']} ({result['playbackPolicy']})")
    typer.echo(f"  Scheduled start: {result['scheduledStart']}")
    typer.echo(f"  Duration (s): {result['duration']}")
    typer.echo(f"  Sync interval (ms): {result['syncInterval']}")
    typer.echo(f"  Drift tolerance (s): {result['driftTolerance']}")
    typer.echo(f"  Active: {str(bool(result['isActive'])).lower()}")


def _fail(json_output: bool, message: str) -> NoReturn:
    if json_output:
        typer.echo(json.dumps({"status": "error", "error": message}, indent=2))
    else:
        typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1)


@app.command("add")
def add_stream(
    slug: str = typer.Option(..., "--slug", help="URL slug (lowercase letters, digits, hyphens)"),
    title: str = typer.Option(..., "--title", help="Display title"),
    asset_id: str = typer.Option(..., "--asset-id", help="Asset id at the video provider"),
    scheduled_start: str = typer.Option(..., "--start", help="ISO-8601 instant of position 0"),
    sync_interval: int | None = typer.Option(None, "--sync-interval", help="Re-sync period (ms)"),
    drift_tolerance: float | None = typer.Option(None, "--drift-tolerance", help="Tolerated drift (s)"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Create an (inactive) stream for a ready asset."""
    try:
        assets = MuxAssetProvider(settings.mux_token_id, settings.mux_token_secret, settings.mux_api_url)
        with session() as db:
            result = _uc_stream_add.add_stream(
                db,
                assets=assets,
                slug=slug,
                title=title,
                asset_id=asset_id,
                scheduled_start=scheduled_start,
                sync_interval=sync_interval,
                drift_tolerance=drift_tolerance,
            )
    except SimuliveError as e:
        _fail(json_output, str(e))

    if json_output:
        typer.echo(json.dumps({"status": "ok", "stream": result}, indent=2))
    else:
        _echo_stream(result, "Stream created:")


@app.command("list")
def list_streams(
    active_only: bool = typer.Option(False, "--active-only", help="Only active streams"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """List streams, latest scheduled start first."""
    with session() as db:
        streams = _uc_stream_list.list_streams(db, active_only=active_only)

    if json_output:
        typer.echo(json.dumps({"status": "ok", "streams": streams, "count": len(streams)}, indent=2))
        return
    if not streams:
        typer.echo("No streams found")
        return
    for s in streams:
        flag = "active" if s["isActive"] else "inactive"
        typer.echo(f"{s['slug']:<30} {s['scheduledStart']:<26} {s['duration']:>8.0f}s  {flag}")


@app.command("show")
def show_stream(
    identifier: str = typer.Argument(..., help="Stream id or slug"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Show one stream record."""
    try:
        with session() as db:
            result = _uc_stream_list.get_stream(db, identifier)
    except SimuliveError as e:
        _fail(json_output, str(e))

    if json_output:
        typer.echo(json.dumps({"status": "ok", "stream": result}, indent=2))
    else:
        _echo_stream(result, "Stream:")


@app.command("update")
def update_stream(
    identifier: str = typer.Argument(..., help="Stream id or slug"),
    title: str | None = typer.Option(None, "--title", help="New title"),
    slug: str | None = typer.Option(None, "--slug", help="New slug"),
    scheduled_start: str | None = typer.Option(None, "--start", help="New scheduled start (ISO-8601)"),
    active: bool | None = typer.Option(None, "--active/--inactive", help="Set active flag"),
    sync_interval: int | None = typer.Option(None, "--sync-interval", help="New re-sync period (ms)"),
    drift_tolerance: float | None = typer.Option(None, "--drift-tolerance", help="New drift tolerance (s)"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Update a stream. Viewers pick up changes on their next session."""
    try:
        with session() as db:
            result = _uc_stream_update.update_stream(
                db,
                identifier=identifier,
                title=title,
                slug=slug,
                scheduled_start=scheduled_start,
                is_active=active,
                sync_interval=sync_interval,
                drift_tolerance=drift_tolerance,
            )
    except SimuliveError as e:
        _fail(json_output, str(e))

    if json_output:
        typer.echo(json.dumps({"status": "ok", "stream": result}, indent=2))
    else:
        _echo_stream(result, "Stream updated:")


@app.command("delete")
def delete_stream(
    identifier: str = typer.Argument(..., help="Stream id or slug"),
    yes: bool = typer.Option(False, "--yes", help="Skip confirmation"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Delete a stream."""
    if not yes and not json_output:
        typer.confirm(f"Delete stream '{identifier}'?", abort=True)
    try:
        with session() as db:
            result = _uc_stream_delete.delete_stream(db, identifier=identifier)
    except SimuliveError as e:
        _fail(json_output, str(e))

    if json_output:
        typer.echo(json.dumps({"status": "ok", **result}, indent=2))
    else:
        typer.echo(f"Stream deleted: {result['id']}")


@app.command("state")
def stream_state(
    identifier: str = typer.Argument(..., help="Stream id or slug"),
    at: str | None = typer.Option(None, "--at", help="Evaluate at this ISO-8601 instant (default: now)"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Show where every viewer of a stream should be right now (or at --at)."""
    try:
        with session() as db:
            result = _uc_stream_state.stream_state(db, identifier=identifier, at=at)
    except SimuliveError as e:
        _fail(json_output, str(e))

    if json_output:
        typer.echo(json.dumps({"status": "ok", **result}, indent=2))
        return

    state = result["state"]
    typer.echo(f"Stream: {result['stream']['slug']}")
    typer.echo(f"  Phase: {state['phase']}")
    typer.echo(f"  Position (s): {state['currentPosition']:.3f}")
    typer.echo(f"  Remaining (s): {state['secondsRemaining']:.3f}")
    if result["countdown"]:
        typer.echo(f"  Starts in: {result['countdown']}")
