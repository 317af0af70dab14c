#!/usr/bin/env python3
"""
smarthome_cli/execution/service.py

Execution Service

Runs or lints Homescript code on the server and classifies the outcome:
a successful result is returned, lint findings raise LintErrors and a
faulted run raises RunErrors.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from smarthome_cli.client import ApiError, SmarthomeClient
from smarthome_cli.errors import (
    LintErrors,
    RunErrors,
    ScriptDoesNotExist,
    classify_api_error,
)
from smarthome_cli.models import ExecutionResult, HomescriptData, Severity
from smarthome_cli.scripts import find_script, list_scripts
from smarthome_cli.workspace.manifest import read_code, read_manifest

logger = logging.getLogger(__name__)

HomescriptArgs = Sequence[Tuple[str, str]]


def is_severe(result: ExecutionResult, threshold: Severity) -> bool:
    """True if any diagnostic is a syntax error or at/above `threshold`."""
    return any(
        d.is_syntax_error or d.severity >= threshold for d in result.diagnostics
    )


@dataclass
class LintReport:
    results: List[Tuple[HomescriptData, ExecutionResult]] = field(default_factory=list)
    aborted_at: Optional[str] = None

    @property
    def failed(self) -> List[Tuple[HomescriptData, ExecutionResult]]:
        return [(script, r) for script, r in self.results if not r.success]


class ExecutionService:
    def __init__(self, client: SmarthomeClient) -> None:
        self.client = client

    def execute(
        self, code: str, args: Optional[HomescriptArgs] = None, lint_only: bool = False
    ) -> ExecutionResult:
        """Submit code for execution (or lint-only analysis) and return the raw result."""
        logger.debug("Submitting %d characters of code (lint=%s)", len(code), lint_only)
        try:
            return self.client.exec_homescript_code(code, list(args or []), lint_only)
        except ApiError as err:
            raise classify_api_error(err, "homescript")

    def check(
        self, code: str, args: Optional[HomescriptArgs] = None, lint_only: bool = False
    ) -> ExecutionResult:
        """Like execute(), but raise LintErrors/RunErrors for an unsuccessful result."""
        result = self.execute(code, args, lint_only)
        if result.success:
            return result
        error_cls = LintErrors if lint_only else RunErrors
        raise error_cls(result.diagnostics, code, result.file_contents, result.output)

    def exec_workspace(self, workspace_dir: Path, lint_only: bool = False) -> Tuple[str, ExecutionResult]:
        """
        Run or lint the code of the workspace in `workspace_dir`.
        Returns the submitted code along with the successful result.
        """
        manifest = read_manifest(workspace_dir)
        code = read_code(workspace_dir, manifest.id)
        logger.debug("Found Homescript workspace `%s`. Executing...", manifest.id)
        return code, self.check(code, lint_only=lint_only)

    def run_script(self, script_id: str, args: Optional[HomescriptArgs] = None) -> ExecutionResult:
        """Run a script stored on the server by its id."""
        try:
            result = self.client.exec_homescript(script_id, list(args or []), False)
        except ApiError as err:
            raise classify_api_error(err, script_id, on_unprocessable=ScriptDoesNotExist)
        if result.success:
            return result

        # The server does not echo the code back, so fetch it for rendering.
        script = find_script(self.client, script_id)
        code = script.code if script else ""
        raise RunErrors(result.diagnostics, code, result.file_contents, result.output)

    def lint_all(
        self,
        abort_severity: Severity = Severity.ERROR,
        fail_fast: bool = True,
    ) -> LintReport:
        """
        Lint every personal script.

        With `fail_fast` the scan stops after the first script reporting a
        syntax error or a diagnostic at or above `abort_severity`: such
        errors usually have a systemic cause, e.g. an incompatible server.
        """
        report = LintReport()
        for script in list_scripts(self.client):
            logger.debug("Linting `%s`...", script.id)
            result = self.execute(script.code, lint_only=True)
            report.results.append((script, result))
            if fail_fast and is_severe(result, abort_severity):
                logger.warning(
                    "Stopping after `%s`: it reported severe diagnostics", script.id
                )
                report.aborted_at = script.id
                break
        return report
