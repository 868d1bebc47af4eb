from __future__ import annotations

import asyncio
import json

import requests
import typer

from ...adapters.tokens import HttpTokenClient
from ...domain.schedule import StreamSchedule
from ...infra.db import init_db
from ...infra.exceptions import SimuliveError
from ...infra.logging import get_logger
from ...infra.settings import settings
from ...runtime.clock import ClockSynchronizer, HttpServerTimeSource
from ...runtime.player import SimulatedCursor
from ...runtime.runner import SessionRunner, build_runner

app = typer.Typer(name="runtime", help="API server, database setup and headless viewer sessions")


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes (development)"),
):
    """Run the HTTP API (clock endpoint, stream records, tokens, admin)."""
    from ...web.server import run_server

    run_server(host, port, reload=reload)


@app.command("init-db")
def init_database(
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Create the metadata store tables if they do not exist."""
    init_db()
    if json_output:
        typer.echo(json.dumps({"status": "ok", "database": settings.database_url}, indent=2))
    else:
        typer.echo(f"Database initialized: {settings.database_url}")


def _fetch_record(base_url: str, slug: str) -> dict:
    url = f"{base_url}/api/watch/{slug}"
    try:
        response = requests.get(url, timeout=settings.clock_timeout_s)
    except requests.RequestException as e:
        raise SimuliveError(f"Could not reach {url}: {e}") from e
    try:
        payload = response.json()
    except ValueError as e:
        raise SimuliveError(f"{url} returned a non-JSON response ({response.status_code})") from e
    if response.status_code != 200:
        raise SimuliveError(payload.get("error") or f"{url} returned {response.status_code}")
    return payload["stream"]


async def _watch(runner: SessionRunner, duration_s: float, status_interval_s: float) -> None:
    session = runner.session
    async with runner:
        if session.blocked:
            typer.echo(f"Playback blocked: {session.overlay.value} {session.error or ''}".rstrip())
            return
        loop = asyncio.get_running_loop()
        deadline = loop.time() + duration_s
        while loop.time() < deadline:
            await asyncio.sleep(min(status_interval_s, max(0.0, deadline - loop.time())))
            state = session.state
            if state is None:
                typer.echo("loading...")
                continue
            line = (
                f"[{session.overlay.value:<9}] expected={state.current_position:9.3f}s "
                f"cursor={session.cursor.current_time:9.3f}s "
                f"offset={session.clock.offset.offset_ms}ms corrections={session.corrections}"
            )
            if session.countdown_text:
                line += f" starts in {session.countdown_text}"
            typer.echo(line)


@app.command("watch")
def watch(
    slug: str = typer.Argument(..., help="Stream slug"),
    base_url: str = typer.Option("http://localhost:8000", "--base-url", help="Simulive API base URL"),
    clock_url: str | None = typer.Option(None, "--clock-url", help="Clock endpoint (default: <base-url>/api/time)"),
    duration_s: float = typer.Option(30.0, "--duration-s", help="How long to watch before tearing down"),
    rate: float = typer.Option(1.0, "--rate", help="Simulated player speed; not 1.0 to provoke drift"),
    status_interval_s: float = typer.Option(1.0, "--status-interval", help="Seconds between status lines"),
):
    """Run a headless viewer session against a running API.

    The simulated player is kept on the broadcast timeline exactly as a real
    viewer would be; status lines show the expected position, the cursor and
    the corrections applied so far.
    """
    base_url = base_url.rstrip("/")
    try:
        record = _fetch_record(base_url, slug)
        schedule = StreamSchedule.from_record(record)
    except SimuliveError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    source = HttpServerTimeSource(clock_url or f"{base_url}/api/time", timeout_s=settings.clock_timeout_s)
    runner = build_runner(
        schedule,
        ClockSynchronizer(source),
        SimulatedCursor(rate=rate, media_duration=schedule.video_duration),
        token_fetcher=HttpTokenClient(base_url) if schedule.requires_tokens else None,
        is_active=bool(record.get("isActive", True)),
        resume_settle_s=settings.resume_settle_s,
        recalibrate_interval_s=settings.recalibrate_interval_s,
        heartbeat_interval_s=settings.heartbeat_interval_s,
        heartbeat_threshold_s=settings.heartbeat_threshold_s,
    )

    typer.echo(f"Watching '{schedule.title or slug}' from {schedule.scheduled_start.isoformat()}")
    try:
        asyncio.run(_watch(runner, duration_s, status_interval_s))
    except KeyboardInterrupt:
        typer.echo("Interrupted")
    get_logger(__name__, slug=slug).info(
        "watch_finished",
        phase=runner.session.phase.value if runner.session.phase else None,
        corrections=runner.session.corrections,
    )
    typer.echo(f"Session ended: phase={runner.session.phase.value if runner.session.phase else None}")
