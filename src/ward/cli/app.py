"""Main CLI application."""

from pathlib import Path
from typing import Annotated

import typer

from ward.cli.commands import service

app = typer.Typer(
    name="ward",
    help="Ward - install and supervise init system services",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file",
        ),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            help="Log level (DEBUG, INFO, WARNING, ERROR)",
        ),
    ] = None,
) -> None:
    """Ward - install and supervise init system services."""
    ctx.obj = {"config_path": config, "log_level": log_level}


service.register(app)


if __name__ == "__main__":
    app()
