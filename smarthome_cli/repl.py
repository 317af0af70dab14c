#!/usr/bin/env python3
"""
smarthome_cli/repl.py

REPL Session

An interactive loop that executes one line of Homescript at a time on the
server. Line editing is provided by prompt_toolkit; the session itself only
relies on a blocking `prompt()` call and keeps its own record of the lines
entered so they can be appended to the history file when the loop ends.
"""

import logging
from pathlib import Path
from typing import List, Optional

import typer
from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.history import FileHistory, InMemoryHistory

from smarthome_cli.client import ClientError, SmarthomeClient
from smarthome_cli.constants import REPL_HISTORY_FILE
from smarthome_cli.errors import SmarthomeCliError
from smarthome_cli.execution.diagnostics import render
from smarthome_cli.execution.service import ExecutionService

logger = logging.getLogger(__name__)


class ReplSession:
    def __init__(
        self,
        client: SmarthomeClient,
        executor: Optional[ExecutionService] = None,
        history_file: Optional[Path] = REPL_HISTORY_FILE,
        prompt_session=None,
    ) -> None:
        self.client = client
        self.executor = executor or ExecutionService(client)
        self.history_file = Path(history_file) if history_file else None
        self.entries: List[str] = []
        self._prompt_session = prompt_session

    @property
    def prompt_message(self) -> FormattedText:
        username = self.client.username or "e"
        return FormattedText(
            [
                ("bold ansigreen", username),
                ("", "@"),
                ("bold ansiblue", self.client.hostname),
                ("", "> "),
            ]
        )

    def load_history(self) -> List[str]:
        """Previously entered lines, oldest first. Failures only disable history."""
        if self.history_file is None:
            return []
        if not self.history_file.exists():
            typer.echo(f"Created new REPL history file at `{self.history_file}`")
            return []
        try:
            # FileHistory yields the newest entry first.
            return list(FileHistory(str(self.history_file)).load_history_strings())[::-1]
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Could not load REPL history from %s: %s", self.history_file, e)
            return []

    def save_history(self) -> None:
        """Append the lines entered during this session to the history file."""
        if self.history_file is None or not self.entries:
            return
        try:
            self.history_file.parent.mkdir(parents=True, exist_ok=True)
            history = FileHistory(str(self.history_file))
            for entry in self.entries:
                history.store_string(entry)
        except OSError as e:
            logger.warning("Could not save REPL history to %s: %s", self.history_file, e)

    @property
    def prompt_session(self):
        if self._prompt_session is None:
            self._prompt_session = PromptSession(
                history=InMemoryHistory(self.load_history()),
                auto_suggest=AutoSuggestFromHistory(),
                enable_history_search=True,
                vi_mode=True,
            )
        return self._prompt_session

    def handle_line(self, line: str) -> None:
        """Execute one line and print its output or diagnostics."""
        try:
            result = self.executor.execute(line, lint_only=False)
        except (SmarthomeCliError, ClientError) as err:
            typer.secho(str(err), fg=typer.colors.RED, err=True)
            return

        output = result.output.rstrip()
        if output:
            typer.echo(output)
        if not result.success:
            typer.secho(
                render(result.diagnostics, line, result.file_contents),
                fg=typer.colors.RED,
                err=True,
            )

    def run(self) -> None:
        """
        Read and execute lines until EOF or Ctrl-C. An interrupt while a line
        is executing also ends the session; history is saved either way.
        """
        session = self.prompt_session
        try:
            while True:
                try:
                    line = session.prompt(self.prompt_message)
                except (EOFError, KeyboardInterrupt):
                    typer.echo("Interrupted", err=True)
                    break
                except Exception as err:
                    typer.echo(f"Error: {err}", err=True)
                    break

                if not line.strip():
                    continue
                self.entries.append(line)
                try:
                    self.handle_line(line)
                except KeyboardInterrupt:
                    typer.echo("Interrupted", err=True)
                    break
        finally:
            self.save_history()
