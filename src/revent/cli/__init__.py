"""CLI commands for revent.

Provides command-line interface using Typer:
- revent serve: Run the API server
- revent dispatch: Run the task dispatcher standalone

Usage:
    revent --help
    revent serve --port 8080
    revent dispatch --once
"""

import typer

from revent.cli.dispatch import app as dispatch_app
from revent.cli.serve import app as serve_app

app = typer.Typer(
    name="revent",
    help="revent: campus events sync service",
    no_args_is_help=True,
)

app.add_typer(serve_app, name="serve")
app.add_typer(dispatch_app, name="dispatch")


@app.callback()
def callback() -> None:
    """revent: campus events sync service."""


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
