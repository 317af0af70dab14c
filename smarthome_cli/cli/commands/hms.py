#!/usr/bin/env python3
"""
smarthome_cli/cli/commands/hms.py

Homescript Commands

Provides commands to create, clone, synchronize, run and lint Homescripts,
and to start the interactive Homescript REPL.
"""

import logging
from pathlib import Path
from typing import List, Optional

import typer
from typing_extensions import Annotated

from smarthome_cli.cli.helpers import get_client, get_config, parse_script_args
from smarthome_cli.constants import REPL_HISTORY_FILE
from smarthome_cli.error_wrapper import handle_errors, report_error
from smarthome_cli.errors import InvalidInput
from smarthome_cli.execution.diagnostics import describe_success, render
from smarthome_cli.execution.service import ExecutionService
from smarthome_cli.repl import ReplSession
from smarthome_cli.scripts import list_scripts
from smarthome_cli.utils import print_table
from smarthome_cli.workspace.sync import SyncEngine, SyncOutcome

hms_app = typer.Typer(help="Homescript commands")
logger = logging.getLogger(__name__)


@hms_app.command("repl")
@handle_errors
def repl(ctx: typer.Context):
    """
    Interactive Homescript live terminal.
    """
    client = get_client(ctx)
    use_history = get_config(ctx).get_config_value("use_repl_history", True)
    ReplSession(client, history_file=REPL_HISTORY_FILE if use_history else None).run()


@hms_app.command("ls")
@handle_errors
def list_personal(ctx: typer.Context):
    """
    Displays a list of personal Homescripts.
    """
    scripts = list_scripts(get_client(ctx))
    if not scripts:
        typer.echo("No Homescripts found.")
        return
    headers = ["ID", "Name", "Icon", "Workspace", "Quick Actions", "Selection"]
    rows = [
        [
            script.id,
            script.name,
            script.md_icon,
            script.workspace,
            "on" if script.quick_actions_enabled else "off",
            "shown" if script.scheduler_enabled else "hidden",
        ]
        for script in scripts
    ]
    print_table(headers, rows)


@hms_app.command("new")
@handle_errors
def new(
    ctx: typer.Context,
    script_id: str = typer.Argument(..., metavar="ID", help="A unique ID for the new script"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="A friendly name for the new script"),
    workspace: Optional[str] = typer.Option(
        None, "--workspace", "-w", help="A workspace to be associated with the new script"
    ),
):
    """
    Create a new Homescript locally and on the remote.
    """
    target = SyncEngine(get_client(ctx)).create(script_id, name, workspace)
    typer.echo(f"Created script `{script_id}` at `{target}`")


@hms_app.command("clone")
@handle_errors
def clone(
    ctx: typer.Context,
    ids: Annotated[
        Optional[List[str]], typer.Argument(help="The ID(s) of the script(s) to be cloned")
    ] = None,
    clone_all: bool = typer.Option(False, "--all", "-a", help="Clone all personal scripts"),
):
    """
    Clone existing scripts from the server to the local file system.
    """
    if ids and clone_all:
        raise InvalidInput("IDs cannot be combined with --all.")
    if not ids and not clone_all:
        raise InvalidInput("Provide at least one ID or use --all.")

    report = SyncEngine(get_client(ctx)).clone(ids or [], clone_all)
    for script_id in report.cloned:
        typer.echo(f"Cloned `{script_id}`")
    for err in report.failed.values():
        report_error(err)
    if not report.ok:
        raise typer.Exit(code=1)


@hms_app.command("del")
@handle_errors
def delete(
    ctx: typer.Context,
    ids: List[str] = typer.Argument(..., help="The ID(s) of the script(s) to be deleted"),
):
    """
    Delete scripts from the server and the local file system.
    """
    engine = SyncEngine(get_client(ctx))
    for script_id in ids:
        engine.delete(script_id)
        typer.echo(f"Deleted `{script_id}`")


@hms_app.command("pull")
@handle_errors
def pull(ctx: typer.Context):
    """
    Pull upstream changes of the current workspace.
    """
    outcome = SyncEngine(get_client(ctx)).pull(Path.cwd())
    if outcome is SyncOutcome.UP_TO_DATE:
        typer.echo("Already up to date.")
    else:
        typer.echo("Pulled upstream changes.")


@hms_app.command("push")
@handle_errors
def push(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", "-f", help="Push even if linting fails"),
    lint: Optional[bool] = typer.Option(
        None, "--lint/--no-lint", help="Lint before pushing (default: lint_on_push)", show_default=False
    ),
):
    """
    Push local changes of the current workspace to the server.
    """
    if lint is None:
        lint = get_config(ctx).get_config_value("lint_on_push", True)
    outcome = SyncEngine(get_client(ctx)).push(Path.cwd(), lint_on_push=lint, force=force)
    if outcome is SyncOutcome.UP_TO_DATE:
        typer.echo("Already up to date.")
    elif outcome is SyncOutcome.FORCE_PUSHED:
        typer.secho("Pushed changes despite lint errors.", fg=typer.colors.YELLOW)
    else:
        typer.echo("Pushed local changes.")


@hms_app.command("run")
@handle_errors
def run(
    ctx: typer.Context,
    script_id: Annotated[
        Optional[str],
        typer.Argument(metavar="[ID]", help="Run a stored script instead of the current workspace"),
    ] = None,
    arg: Optional[List[str]] = typer.Option(
        None, "--arg", help="Script argument in KEY=VALUE format (only with ID)"
    ),
):
    """
    Runs the code of the current workspace, or a stored script by its ID.
    """
    executor = ExecutionService(get_client(ctx))
    if script_id:
        result = executor.run_script(script_id, parse_script_args(arg))
        typer.echo(describe_success(result, lint_only=False))
        return
    if arg:
        raise InvalidInput("--arg requires a script ID.")
    code, result = executor.exec_workspace(Path.cwd(), lint_only=False)
    typer.echo(describe_success(result, lint_only=False, code=code))


@hms_app.command("lint")
@handle_errors
def lint(
    ctx: typer.Context,
    lint_all: bool = typer.Option(False, "--all", "-a", help="Lint every personal script"),
):
    """
    Lints the code of the current workspace, or of every personal script.
    """
    executor = ExecutionService(get_client(ctx))
    if not lint_all:
        code, result = executor.exec_workspace(Path.cwd(), lint_only=True)
        typer.echo(describe_success(result, lint_only=True, code=code))
        return

    config = get_config(ctx)
    report = executor.lint_all(
        abort_severity=config.lint_abort_severity,
        fail_fast=config.get_config_value("lint_fail_fast", True),
    )
    for script, result in report.results:
        if result.success and not result.diagnostics:
            typer.secho(f"{script.id}: ok", fg=typer.colors.GREEN)
            continue
        color = typer.colors.GREEN if result.success else typer.colors.RED
        typer.secho(f"{script.id}: {len(result.diagnostics)} diagnostic(s)", fg=color, bold=True)
        typer.echo(render(result.diagnostics, script.code, result.file_contents))
    if report.aborted_at:
        typer.secho(
            f"Stopped after `{report.aborted_at}`: severe diagnostics reported.",
            fg=typer.colors.YELLOW,
        )
    if report.failed:
        raise typer.Exit(code=1)
