#!/usr/bin/env python3
"""
smarthome_cli/error_wrapper.py

Error Handling Wrapper

Provides a decorator to catch and report classified errors in Typer commands.
"""

import functools
import logging
from typing import Any, Callable, TypeVar

import typer

from smarthome_cli import __version__
from smarthome_cli.client import ClientError
from smarthome_cli.errors import DiagnosticsError, SmarthomeCliError
from smarthome_cli.execution.diagnostics import render

T = TypeVar("T", bound=Callable[..., Any])
logger = logging.getLogger(__name__)


def report_error(err: SmarthomeCliError) -> None:
    """Print a classified error, including rendered diagnostics when it carries any."""
    if isinstance(err, DiagnosticsError):
        output = err.output.rstrip()
        if output:
            typer.echo(output)
        if err.diagnostics:
            typer.secho(
                render(err.diagnostics, err.code, err.file_contents),
                fg=typer.colors.RED,
                err=True,
            )
    typer.secho(str(err), fg=typer.colors.RED, bold=True, err=True)


def handle_errors(func: T) -> T:
    """Decorator for catching and handling exceptions in Typer commands."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except SmarthomeCliError as err:
            logger.debug("%s failed: %r", func.__name__, err)
            report_error(err)
            raise typer.Exit(code=1)
        except ClientError as err:
            logger.debug("%s failed: %r", func.__name__, err)
            typer.secho(f"Could not talk to Smarthome: {err}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)
        except Exception as err:
            if __version__ == "dev":
                raise err  # Show full traceback in dev mode
            logger.exception("An error occurred in %s:", func.__name__)
            raise typer.Exit(code=1)

    return wrapper  # type: ignore[return-value]
