#!/usr/bin/env python
"""
smarthome_cli/cli/main.py

Entry point for the Smarthome CLI.
"""

import logging
from pathlib import Path
from typing import Optional

import typer

from smarthome_cli import __version__
from smarthome_cli.cli.commands.config import config_app
from smarthome_cli.cli.commands.hms import hms_app
from smarthome_cli.cli.commands.power import power_app
from smarthome_cli.cli.helpers import setup_app_context
from smarthome_cli.error_wrapper import handle_errors

logger = logging.getLogger(__name__)
app = typer.Typer(help="Smarthome: manage Homescripts and switches from the command line.")


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"smarthome {__version__}")
        raise typer.Exit()


@app.callback()
@handle_errors
def main(
    ctx: typer.Context,
    server: Optional[str] = typer.Option(
        None, "--server", "-s", help="Selects the target Smarthome server by its ID."
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config-path", "-c", help="Path of the configuration file."
    ),
    log_level: Optional[str] = typer.Option(
        None, help="Log level: DEBUG, INFO, WARNING or ERROR.", show_default=False
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Print more information to the console."
    ),
    version: bool = typer.Option(
        False, "--version", callback=version_callback, is_eager=True,
        help="Show the version and exit.",
    ),
):
    """
    Load the configuration and set up logging before any command runs.
    """
    setup_app_context(ctx, server, config_path, log_level, verbose)
    config_manager = ctx.obj["config_manager"]

    if config_manager.created and ctx.invoked_subcommand != "config":
        typer.echo(
            f"Created a new configuration file (at `{config_manager.config_file}`).\n"
            "HINT: To get started, edit this file to set up your server(s) "
            "and run this program again."
        )
        raise typer.Exit(code=0)


app.add_typer(config_app, name="config")
app.add_typer(hms_app, name="hms")
app.add_typer(power_app, name="power")

if __name__ == "__main__":
    app()
