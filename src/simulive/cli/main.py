"""
Root Typer application for ``simulive``.

Usage::

    simulive stream add --slug launch --title "Launch" --asset-id abc --start 2024-01-01T00:00:00Z
    simulive stream state launch --at 2024-01-01T00:05:00Z
    simulive runtime serve --port 8000
    simulive runtime watch launch --duration-s 120
"""

from __future__ import annotations

import typer

from ..infra.logging import configure_logging
from .commands import runtime, stream
from .router import CliRouter

app = typer.Typer(help="Simulive operator CLI", no_args_is_help=True)
router = CliRouter(app)

router.register("stream", stream.app, help_text="Manage stream records and inspect playback state")
router.register("runtime", runtime.app, help_text="Run the API server, create tables, watch a stream")


@app.callback()
def main(
    log_level: str = typer.Option(None, "--log-level", help="Override LOG_LEVEL for this run"),
):
    """Simulated live broadcasts of pre-recorded video."""
    configure_logging(log_level)


def cli():
    app()


if __name__ == "__main__":
    cli()
