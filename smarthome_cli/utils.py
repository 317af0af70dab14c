#!/usr/bin/env python3
"""
smarthome_cli/utils.py

Utility functions for the application.

Provides functions for loading and saving JSON files, merging configuration
layers and printing plain text tables.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import typer

logger = logging.getLogger(__name__)


def load_json(file_path: Path) -> dict:
    logger.debug("Loading JSON file: %s", file_path)
    with open(file_path, "r", encoding="utf-8") as file:
        data = json.load(file)
    logger.debug("Successfully loaded JSON from: %s", file_path)
    return data


def save_json(file_path: Path, data: dict, indent: Union[int, None] = 2) -> None:
    logger.debug("Saving JSON to file: %s", file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with open(file_path, "w", encoding="utf-8") as file:
        json.dump(data, file, indent=indent)
    logger.debug("JSON successfully saved to: %s", file_path)


def merge_configs(*configs: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge multiple dictionaries in order, where later values overwrite earlier ones.
    If both values for a key are dictionaries, merge them shallowly.
    """
    logger.debug("Merging %d configuration sources.", len(configs))
    result: Dict[str, Any] = {}
    for config in configs:
        if not config:
            continue
        for key, value in config.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                merged = result[key].copy()
                merged.update(value)
                result[key] = merged
            else:
                result[key] = value
    return result


def parse_key_value(option: str) -> tuple:
    """Split a KEY=VALUE string, raising ValueError on a missing separator."""
    if "=" not in option:
        raise ValueError(f"Invalid format: '{option}'. Expected KEY=VALUE.")
    key, value = option.split("=", 1)
    return key.strip(), value.strip()


def print_table(
    headers: List[str], rows: List[List[str]], max_field_length: int = 30
) -> None:
    logger.debug("Printing table with headers: %s", headers)

    def truncate_field(text: str, width: int) -> str:
        if len(text) > width:
            return text[: max(width - 3, 0)] + "..." if width > 3 else text[:width]
        return text

    # Calculate column widths but limit them to max_field_length
    col_widths = [
        min(
            max(len(headers[i]), max((len(row[i]) for row in rows), default=0)),
            max_field_length,
        )
        for i in range(len(headers))
    ]

    separator = "+" + "+".join("-" * (w + 2) for w in col_widths) + "+"
    header_line = (
        "|"
        + "|".join(
            f" {truncate_field(headers[i], col_widths[i]).ljust(col_widths[i])} "
            for i in range(len(headers))
        )
        + "|"
    )

    typer.echo(separator)
    typer.secho(header_line, fg=typer.colors.GREEN, bold=True)
    typer.echo(separator)

    for row in rows:
        row_line = (
            "|"
            + "|".join(
                f" {truncate_field(row[i], col_widths[i]).ljust(col_widths[i])} "
                for i in range(len(row))
            )
            + "|"
        )
        typer.echo(row_line)

    typer.echo(separator)
