#!/usr/bin/env python3
"""
smarthome_cli/workspace/sync.py

Synchronization Engine

Creates, deletes, clones, pulls and pushes Homescripts between the server
and local workspaces. The server is authoritative: local workspaces are a
cache that is compared to the remote copy by full content equality.
Two independent edits made since the last sync are therefore not detected
as a conflict; the last push wins.
"""
import dataclasses
import logging
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from smarthome_cli.client import ApiError, SmarthomeClient
from smarthome_cli.constants import (
    DEFAULT_SCRIPT_ICON,
    DEFAULT_SCRIPT_WORKSPACE,
    MAX_ID_LENGTH,
    MAX_NAME_LENGTH,
    MAX_WORKSPACE_LENGTH,
)
from smarthome_cli.errors import (
    HasDependentAutomations,
    InvalidInput,
    LintErrors,
    ScriptAlreadyExists,
    ScriptDoesNotExist,
    ScriptNoLongerAccessible,
    SmarthomeCliError,
    WorkspaceAlreadyExists,
    classify_api_error,
)
from smarthome_cli.execution.service import ExecutionService
from smarthome_cli.models import HomescriptData
from smarthome_cli.scripts import find_script, list_scripts
from smarthome_cli.workspace.manifest import (
    read_code,
    read_manifest,
    write_code,
    write_workspace,
)

logger = logging.getLogger(__name__)

# Ids must stay a single path component below the workspace root.
PATH_SEPARATORS = ("/", "\\")


class SyncOutcome(Enum):
    UPDATED = "updated"
    UP_TO_DATE = "up-to-date"
    FORCE_PUSHED = "force-pushed"


@dataclass
class CloneReport:
    cloned: List[str] = field(default_factory=list)
    failed: Dict[str, SmarthomeCliError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


def validate_new_script(script_id: str, name: str, workspace: str) -> None:
    """Reject input the server would refuse, or that cannot name a workspace directory."""
    if not script_id:
        raise InvalidInput("id must not be empty")
    if any(c.isspace() for c in script_id) or len(script_id) > MAX_ID_LENGTH:
        raise InvalidInput(
            f"id must not contain whitespaces and shall not exceed {MAX_ID_LENGTH} characters"
        )
    if any(sep in script_id for sep in PATH_SEPARATORS) or script_id in (".", ".."):
        raise InvalidInput("id must not contain path separators or be `.` or `..`")
    if len(name) > MAX_NAME_LENGTH:
        raise InvalidInput(f"name must not exceed {MAX_NAME_LENGTH} characters")
    if len(workspace) > MAX_WORKSPACE_LENGTH:
        raise InvalidInput(f"workspace must not exceed {MAX_WORKSPACE_LENGTH} characters")


class SyncEngine:
    def __init__(
        self,
        client: SmarthomeClient,
        root: Optional[Path] = None,
        executor: Optional[ExecutionService] = None,
    ) -> None:
        self.client = client
        self.root = Path(root) if root else Path.cwd()
        self.executor = executor or ExecutionService(client)

    def workspace_dir(self, script_id: str) -> Path:
        return self.root / script_id

    # -------------------------------------------
    # Create / Delete
    # -------------------------------------------

    def create(
        self,
        script_id: str,
        name: Optional[str] = None,
        workspace: Optional[str] = None,
    ) -> Path:
        """Create a script on the server and an empty local workspace for it."""
        name = name or script_id
        workspace = workspace or DEFAULT_SCRIPT_WORKSPACE

        validate_new_script(script_id, name, workspace)
        target = self.workspace_dir(script_id)
        if target.exists():
            raise WorkspaceAlreadyExists(script_id)

        logger.debug("Creating script `%s` at %s...", script_id, target)
        try:
            self.client.create_homescript(
                HomescriptData(
                    id=script_id,
                    name=name,
                    description="",
                    code="",
                    workspace=workspace,
                    quick_actions_enabled=False,
                    scheduler_enabled=False,
                    md_icon=DEFAULT_SCRIPT_ICON,
                )
            )
        except ApiError as err:
            raise classify_api_error(err, script_id, on_unprocessable=ScriptAlreadyExists)

        write_workspace(target, script_id, "")
        logger.info("Successfully created script `%s`", script_id)
        return target

    def delete(self, script_id: str) -> None:
        """Delete a script on the server, then remove its local workspace if present."""
        logger.debug("Deleting script `%s`...", script_id)
        try:
            self.client.delete_homescript(script_id)
        except ApiError as err:
            raise classify_api_error(
                err,
                script_id,
                on_unprocessable=ScriptDoesNotExist,
                on_conflict=HasDependentAutomations,
            )

        target = self.workspace_dir(script_id)
        if target.exists():
            try:
                shutil.rmtree(target)
            except OSError as e:
                # The remote record is already gone; a stale directory is harmless.
                logger.warning("Could not remove local workspace %s: %s", target, e)
        logger.info("Successfully deleted script `%s`", script_id)

    # -------------------------------------------
    # Clone / Pull / Push
    # -------------------------------------------

    def clone(self, script_ids: Sequence[str], clone_all: bool = False) -> CloneReport:
        """
        Clone scripts into fresh workspaces below the root directory.
        A missing id or an existing directory fails only that id.
        """
        scripts = {script.id: script for script in list_scripts(self.client)}
        wanted = list(scripts) if clone_all else list(script_ids)

        report = CloneReport()
        for script_id in wanted:
            script = scripts.get(script_id)
            if script is None:
                logger.debug("Script `%s` is not in the personal script list", script_id)
                report.failed[script_id] = ScriptDoesNotExist(script_id)
                continue
            try:
                write_workspace(self.workspace_dir(script_id), script_id, script.code)
            except WorkspaceAlreadyExists as err:
                report.failed[script_id] = err
                continue
            report.cloned.append(script_id)
            logger.info("Successfully cloned script `%s`", script_id)
        return report

    def _remote_for(self, script_id: str) -> HomescriptData:
        script = find_script(self.client, script_id)
        if script is None:
            raise ScriptNoLongerAccessible(script_id)
        return script

    def pull(self, workspace_dir: Optional[Path] = None) -> SyncOutcome:
        """Overwrite the local code with the remote code if they differ."""
        workspace_dir = Path(workspace_dir) if workspace_dir else self.root
        manifest = read_manifest(workspace_dir)
        local_code = read_code(workspace_dir, manifest.id)
        logger.debug("Found valid Homescript workspace. Pulling...")

        remote = self._remote_for(manifest.id)
        if remote.code == local_code:
            logger.info("Already up to date.")
            return SyncOutcome.UP_TO_DATE

        write_code(workspace_dir, manifest.id, remote.code)
        logger.info(
            "Successfully pulled changes of `%s` from %s", manifest.id, self.client.hostname
        )
        return SyncOutcome.UPDATED

    def push(
        self,
        workspace_dir: Optional[Path] = None,
        lint_on_push: bool = True,
        force: bool = False,
    ) -> SyncOutcome:
        """
        Replace the remote code with the local code if they differ.

        With `lint_on_push` the local code is linted first and lint findings
        block the push, unless `force` is set. The remote record is replaced
        as a whole, reusing every field of the fetched record except `code`.
        """
        workspace_dir = Path(workspace_dir) if workspace_dir else self.root
        manifest = read_manifest(workspace_dir)
        local_code = read_code(workspace_dir, manifest.id)
        logger.debug("Found valid Homescript workspace. Pushing...")

        remote = self._remote_for(manifest.id)
        if remote.code == local_code:
            logger.info("Already up to date.")
            return SyncOutcome.UP_TO_DATE

        outcome = SyncOutcome.UPDATED
        if lint_on_push:
            try:
                self.executor.check(local_code, lint_only=True)
                logger.debug("Linting discovered no problems")
            except LintErrors:
                if not force:
                    raise
                logger.warning("Linting discovered errors: force-pushing to remote")
                outcome = SyncOutcome.FORCE_PUSHED

        try:
            self.client.modify_homescript(dataclasses.replace(remote, code=local_code))
        except ApiError as err:
            raise classify_api_error(
                err, manifest.id, on_unprocessable=ScriptNoLongerAccessible
            )
        logger.info(
            "Successfully pushed script `%s` to %s", manifest.id, self.client.hostname
        )
        return outcome
