#!/usr/bin/env python3
"""
smarthome_cli/cli/helpers.py

Helper functions for CLI initialization and common tasks.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import typer

from smarthome_cli.client import SmarthomeClient
from smarthome_cli.config_manager import ConfigManager
from smarthome_cli.errors import InvalidInput
from smarthome_cli.logger_manager import LoggerManager
from smarthome_cli.utils import parse_key_value

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def setup_app_context(
    ctx: typer.Context,
    server: Optional[str] = None,
    config_path: Optional[Path] = None,
    log_level: Optional[str] = None,
    verbose: bool = False,
) -> None:
    """
    Loads the configuration, configures logging and stores both in the
    Typer context for the commands.

    Errors are raised as exceptions so they can be handled by the commands.
    """
    if log_level and log_level.upper() not in VALID_LOG_LEVELS:
        logger.error("Invalid log level: %s.", log_level)
        raise InvalidInput("log level must be one of DEBUG, INFO, WARNING, or ERROR")

    runtime_config: Dict[str, Any] = {
        k: v
        for k, v in {
            "log_level": "DEBUG" if verbose else (log_level.upper() if log_level else None),
        }.items()
        if v is not None
    }

    config_manager = ConfigManager(runtime_config, config_file=config_path)
    effective_config = config_manager.to_dict()
    LoggerManager.from_dict(effective_config)

    logger.debug("Effective configuration loaded from %s", config_manager.config_file)

    ctx.obj = {
        "config_manager": config_manager,
        "config": effective_config,
        "server": server,
        "client": None,
    }


def get_config(ctx: typer.Context) -> ConfigManager:
    return ctx.obj["config_manager"]


def get_client(ctx: typer.Context) -> SmarthomeClient:
    """
    Returns a connected client for the selected server profile, creating it on first use.
    """
    client = ctx.obj.get("client")
    if client is None:
        profile = get_config(ctx).select_server(ctx.obj.get("server"))
        logger.debug("Connecting to server `%s` at %s", profile.id, profile.url)
        client = SmarthomeClient(profile).connect()
        ctx.obj["client"] = client
    return client


def parse_script_args(options: Optional[List[str]]) -> List[Tuple[str, str]]:
    """Parses KEY=VALUE script arguments."""
    args = []
    for option in options or []:
        try:
            args.append(parse_key_value(option))
        except ValueError as e:
            raise InvalidInput(str(e))
    return args
