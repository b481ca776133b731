"""CLI command for running the task dispatcher.

Delivers due notification tasks from the configured task store without the
API server. Useful when the server runs with ``DISPATCHER_ENABLED=false``.

Usage:
    revent dispatch
    revent dispatch --once
    revent dispatch --interval 5
"""

from __future__ import annotations

import asyncio

import typer

from revent.config import settings
from revent.observability import configure_logging
from revent.runtime import Runtime

app = typer.Typer(help="Deliver due notification tasks")


async def _dispatch(once: bool, interval: float | None) -> int:
    config = settings
    if interval is not None:
        config = settings.model_copy(update={"dispatch_interval": interval})

    runtime = Runtime.from_settings(config)
    await runtime.start(dispatcher=False)
    try:
        if once:
            return await runtime.dispatcher.run_once()
        await runtime.dispatcher.run()
        return 0
    finally:
        await runtime.stop()


@app.callback(invoke_without_command=True)
def dispatch(
    once: bool = typer.Option(
        False, "--once", help="Deliver the tasks due now and exit"
    ),
    interval: float = typer.Option(
        None, "--interval", "-i", help="Polling interval in seconds"
    ),
) -> None:
    """Run the task dispatcher until interrupted."""
    configure_logging(json_format=settings.env != "dev", level=settings.log_level)

    delivered = asyncio.run(_dispatch(once, interval))
    if once:
        typer.echo(f"Delivered {delivered} task(s)")
