"""CLI command for running the API server.

Usage:
    revent serve
    revent serve --port 8080 --host 0.0.0.0
    revent serve --reload --log-level debug
"""

from __future__ import annotations

import typer

from revent.config import settings

app = typer.Typer(help="Run the revent API server")


@app.callback(invoke_without_command=True)
def serve(
    host: str = typer.Option(settings.host, "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(settings.port, "--port", "-p", help="Port to listen on"),
    reload: bool = typer.Option(
        False, "--reload", "-r", help="Enable auto-reload for development"
    ),
    log_level: str = typer.Option(
        "info", "--log-level", "-l", help="Log level: debug, info, warning, error"
    ),
) -> None:
    """Run the revent API server.

    Runs a single worker: the background runner and the task dispatcher live
    inside the server process.
    """
    import uvicorn

    typer.echo("Starting revent server...")
    typer.echo(f"  Host: {host}")
    typer.echo(f"  Port: {port}")
    typer.echo(f"  Storage: {settings.storage_backend}")
    typer.echo(f"  Dispatcher: {'enabled' if settings.dispatcher_enabled else 'disabled'}")
    typer.echo()

    uvicorn.run(
        app="revent.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=log_level.lower(),
    )
