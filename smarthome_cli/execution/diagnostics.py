#!/usr/bin/env python3
"""
smarthome_cli/execution/diagnostics.py

Diagnostic Renderer

Turns the diagnostics reported by a lint or run into readable text blocks.
Diagnostics are rendered in the order the server returned them.
"""

import logging
from typing import List, Mapping, Optional, Sequence

from smarthome_cli.models import Diagnostic, ExecutionResult

logger = logging.getLogger(__name__)


def select_source(
    diagnostic: Diagnostic,
    default_source: str,
    file_contents: Optional[Mapping[str, str]] = None,
) -> str:
    """Source text a diagnostic points into: its own file if known, else the submitted code."""
    if file_contents and diagnostic.span.filename in file_contents:
        return file_contents[diagnostic.span.filename]
    return default_source


def _excerpt(diagnostic: Diagnostic, source: str) -> List[str]:
    lines = source.splitlines()
    start, end = diagnostic.span.start, diagnostic.span.end
    if not 1 <= start.line <= len(lines):
        return []

    line = lines[start.line - 1]
    gutter = str(start.line)
    column = max(start.column, 1)
    if end.line == start.line and end.column >= column:
        width = end.column - column + 1
    else:
        width = max(len(line) - column + 1, 1)

    return [
        f" {gutter} | {line}",
        f" {' ' * len(gutter)} | {' ' * (column - 1)}{'^' * width}",
    ]


def render_diagnostic(diagnostic: Diagnostic, source: str) -> str:
    span = diagnostic.span
    block = [
        f"{diagnostic.severity.name.capitalize()} at "
        f"{span.filename or '<code>'}:{span.start.line}:{span.start.column}"
    ]
    block.extend(_excerpt(diagnostic, source))
    block.append(f"{diagnostic.kind}: {diagnostic.message}")
    block.extend(f"  - note: {note}" for note in diagnostic.notes)
    return "\n".join(block)


def render(
    diagnostics: Sequence[Diagnostic],
    default_source: str,
    file_contents: Optional[Mapping[str, str]] = None,
) -> str:
    """
    Render every diagnostic as its own block, separated by blank lines.

    Each block is rendered against the file the diagnostic names when that
    file's content was reported, otherwise against `default_source`.
    """
    logger.debug("Rendering %d diagnostic(s)", len(diagnostics))
    return "\n\n".join(
        render_diagnostic(d, select_source(d, default_source, file_contents))
        for d in diagnostics
    )


def describe_success(result: ExecutionResult, lint_only: bool, code: str = "") -> str:
    """Text shown for a successful run or lint."""
    if lint_only:
        parts = ["linting discovered no problems."]
        if result.diagnostics:
            parts.append(render(result.diagnostics, code, result.file_contents))
        return "\n".join(parts)

    parts = [f"program completed with exit-code {result.exit_code}."]
    output = result.output.rstrip()
    if output:
        parts.append(output)
    return "\n".join(parts)

