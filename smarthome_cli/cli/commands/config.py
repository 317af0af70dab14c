#!/usr/bin/env python3
"""
smarthome_cli/cli/commands/config.py

Configuration Commands

Provides commands to set, get, reset, and show the current configuration settings.
"""

import json
import logging
from typing import List

import typer

from smarthome_cli.cli.helpers import get_config
from smarthome_cli.error_wrapper import handle_errors

logger = logging.getLogger(__name__)
config_app = typer.Typer(help="Configuration commands")


@config_app.command("path")
def config_path(ctx: typer.Context):
    """
    Display the file path of the configuration file.
    """
    typer.echo(f"Configuration file is located at `{get_config(ctx).config_file}`")


@config_app.command("set")
@handle_errors
def set_config(
    ctx: typer.Context,
    options: List[str] = typer.Argument(
        ..., help="Configuration options in KEY=VALUE format (e.g. lint_on_push=false)."
    ),
):
    """
    Update configuration settings by parsing KEY=VALUE pairs.
    """
    updates = get_config(ctx).update_config_from_list(options)
    logger.info("Updated configuration: %s", updates)
    for key, value in updates.items():
        typer.echo(f"{key}: {value}")


@config_app.command("get")
def get_config_values(ctx: typer.Context):
    """
    Display the current configuration in a line-by-line format.
    """
    config = get_config(ctx).to_dict()
    for key, value in config.items():
        if key == "servers":
            typer.echo(f"{key}: {', '.join(server['id'] for server in value)}")
        else:
            typer.echo(f"{key}: {value}")


@config_app.command("reset")
def reset_config(ctx: typer.Context):
    """
    Reset the configuration settings to their default values. Servers are kept.
    """
    get_config(ctx).reset()
    typer.echo("Configuration has been reset to default values.")


@config_app.command("show")
def show_config(ctx: typer.Context):
    """
    Display the current configuration as JSON. Credentials are masked.
    """
    config = json.loads(json.dumps(get_config(ctx).to_dict()))
    for server in config.get("servers", []):
        for secret in ("password", "token"):
            if server.get(secret):
                server[secret] = "*" * 8
    typer.echo(json.dumps(config, indent=4))
