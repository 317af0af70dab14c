#!/usr/bin/env python3
"""
smarthome_cli/cli/commands/power.py

Power Commands

Provides commands to list switches, change their power state and summarize
the power draw.
"""

import logging
from typing import List

import typer

from smarthome_cli.cli.helpers import get_client, get_config
from smarthome_cli.error_wrapper import handle_errors
from smarthome_cli.models import PowerSwitch
from smarthome_cli.power import (
    list_switches,
    power_draw,
    set_power_many,
    toggle_power,
)
from smarthome_cli.utils import print_table

power_app = typer.Typer(help="Power commands")
logger = logging.getLogger(__name__)


@power_app.command("switches")
@handle_errors
def switches(
    ctx: typer.Context,
    show_all: bool = typer.Option(
        False, "--all", "-a", help="Show all switches present on the server"
    ),
):
    """
    Shows the user's personal switches.
    """
    print_switches(list_switches(get_client(ctx), show_all))


@power_app.command("draw")
@handle_errors
def draw(
    ctx: typer.Context,
    simple: bool = typer.Option(
        False, "--simple", "-s", help="Only show the summary, not every switch"
    ),
):
    """
    Shows the current power draw and the metrics of the last 24 hours.
    """
    config = get_config(ctx)
    summary = power_draw(get_client(ctx), config.get_config_value("power_cost_per_kwh", 0.3))
    unit = config.get_config_value("power_unit_symbol", "€")

    if not simple:
        print_switches(summary.switches)
    typer.echo(
        "=== Current Power Draw ===\n"
        f"  Active  * {summary.active_watts:>4} W ({summary.active_percent:>3.0f} %)\n"
        f"  Passive . {summary.passive_watts:>4} W ({summary.passive_percent:>3.0f} %)\n"
        f"  Total   Σ {summary.total_watts:>4} W (100 %)\n"
    )
    typer.echo(
        "=== 24-Hour Metrics ===\n"
        f"  Used    Σ {summary.kwh:>3.2f} KWh\n"
        f"  Cost      {summary.cost:>3.2f} {unit}\n"
        f"  Peak      {summary.peak_watts:>3} W"
    )


@power_app.command("on")
@handle_errors
def power_on(
    ctx: typer.Context,
    switch_ids: List[str] = typer.Argument(..., help="Switch IDs to activate"),
):
    """
    Activates switches.
    """
    set_power_many(get_client(ctx), switch_ids, True)


@power_app.command("off")
@handle_errors
def power_off(
    ctx: typer.Context,
    switch_ids: List[str] = typer.Argument(..., help="Switch IDs to deactivate"),
):
    """
    Deactivates switches.
    """
    set_power_many(get_client(ctx), switch_ids, False)


@power_app.command("toggle")
@handle_errors
def toggle(
    ctx: typer.Context,
    switch_ids: List[str] = typer.Argument(..., help="Switch IDs to toggle (individually)"),
):
    """
    Toggles the power state of switches.
    """
    toggle_power(get_client(ctx), switch_ids)


def print_switches(switches: List[PowerSwitch]) -> None:
    rows = [
        [
            ("* " if switch.power_on else ". ") + switch.id,
            switch.name,
            switch.room_id,
            str(switch.watts),
            "on" if switch.power_on else "off",
        ]
        for switch in switches
    ]
    print_table(["ID", "Name", "Room ID", "Watts", "Power"], rows)
