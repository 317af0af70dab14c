#!/usr/bin/env python3
"""
smarthome_cli/workspace/manifest.py

Manifest Store

A workspace is a directory holding exactly one manifest (`.hms.yaml`, which
records the script id) and the script's code file (`<id>.hms`). The
functions here are the only place that touches those files.
"""

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

import yaml
from jsonschema import ValidationError, validate

from smarthome_cli.constants import MANIFEST_FILE_NAME, SCRIPT_FILE_EXTENSION
from smarthome_cli.errors import (
    CorruptManifest,
    NotAWorkspace,
    WorkspaceAlreadyExists,
    WorkspaceIOError,
)

logger = logging.getLogger(__name__)

MANIFEST_SCHEMA = {
    "type": "object",
    "properties": {
        "id": {"type": "string", "minLength": 1},
    },
    "required": ["id"],
    "additionalProperties": False,
}


@dataclass(frozen=True)
class WorkspaceManifest:
    id: str


def manifest_path(workspace_dir: Path) -> Path:
    return Path(workspace_dir) / MANIFEST_FILE_NAME


def code_path(workspace_dir: Path, script_id: str) -> Path:
    return Path(workspace_dir) / f"{script_id}.{SCRIPT_FILE_EXTENSION}"


def read_manifest(workspace_dir: Path) -> WorkspaceManifest:
    """
    Load the manifest of a workspace directory.

    Raises NotAWorkspace if the manifest or the code file it names is missing,
    and CorruptManifest if the manifest exists but cannot be understood.
    """
    path = manifest_path(workspace_dir)
    if not path.is_file():
        logger.debug("No manifest found at %s", path)
        raise NotAWorkspace(workspace_dir)

    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise CorruptManifest(path, f"invalid YAML: {e}")
    except (OSError, UnicodeDecodeError) as e:
        raise WorkspaceIOError(path, e)

    try:
        validate(instance=data, schema=MANIFEST_SCHEMA)
    except ValidationError as e:
        raise CorruptManifest(path, e.message)

    manifest = WorkspaceManifest(id=data["id"])
    if not code_path(workspace_dir, manifest.id).is_file():
        logger.debug("Manifest names `%s` but its code file is missing", manifest.id)
        raise NotAWorkspace(workspace_dir)

    logger.debug("Found workspace for `%s` at %s", manifest.id, workspace_dir)
    return manifest


def _write_text(path: Path, text: str) -> None:
    # newline="" keeps line endings byte-identical to the remote copy.
    with path.open("w", encoding="utf-8", newline="") as f:
        f.write(text)


def _write_manifest(workspace_dir: Path, script_id: str) -> None:
    # Written through a temporary file so a crash never leaves a half-written manifest.
    fd, tmp_name = tempfile.mkstemp(dir=workspace_dir, prefix=".hms-", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            yaml.safe_dump({"id": script_id}, f, default_flow_style=False)
        os.replace(tmp_name, manifest_path(workspace_dir))
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def write_workspace(workspace_dir: Path, script_id: str, code: str) -> Path:
    """
    Create a new workspace directory containing the code file and the manifest.

    The manifest is written last: a directory without one is never mistaken
    for a workspace. A directory created here is removed again if writing fails.
    """
    workspace_dir = Path(workspace_dir)
    if workspace_dir.exists():
        raise WorkspaceAlreadyExists(script_id)

    try:
        workspace_dir.mkdir(parents=True)
    except FileExistsError:
        raise WorkspaceAlreadyExists(script_id)
    except OSError as e:
        raise WorkspaceIOError(workspace_dir, e)

    try:
        _write_text(code_path(workspace_dir, script_id), code)
        _write_manifest(workspace_dir, script_id)
    except OSError as e:
        logger.debug("Removing partially written workspace %s", workspace_dir)
        shutil.rmtree(workspace_dir, ignore_errors=True)
        raise WorkspaceIOError(workspace_dir, e)

    logger.debug("Wrote workspace for `%s` to %s", script_id, workspace_dir)
    return workspace_dir


def read_code(workspace_dir: Path, script_id: str) -> str:
    path = code_path(workspace_dir, script_id)
    try:
        with path.open("r", encoding="utf-8", newline="") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise WorkspaceIOError(path, e)


def write_code(workspace_dir: Path, script_id: str, code: str) -> None:
    path = code_path(workspace_dir, script_id)
    try:
        _write_text(path, code)
    except OSError as e:
        raise WorkspaceIOError(path, e)
