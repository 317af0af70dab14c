#!/usr/bin/env python3
"""
smarthome_cli/errors.py

Error Taxonomy

Every failure the workspace, execution and power layers can report is one of
the exceptions below. All of them derive from SmarthomeCliError so that the
command layer can handle them in one place; none of them terminate the
process on their own.
"""

import logging
from typing import Dict, List, Optional, Type

from smarthome_cli.client import ApiError

logger = logging.getLogger(__name__)

# HTTP status codes the Smarthome server uses to classify failures.
STATUS_FORBIDDEN = 403
STATUS_CONFLICT = 409
STATUS_UNPROCESSABLE_ENTITY = 422
STATUS_SERVICE_UNAVAILABLE = 503


class SmarthomeCliError(Exception):
    """Base class of all classified errors."""

    retryable = False


class InvalidConfig(SmarthomeCliError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"Invalid configuration: {reason}")
        self.reason = reason


class NotAWorkspace(SmarthomeCliError):
    def __init__(self, path=None) -> None:
        super().__init__(
            "The current directory is not a valid Homescript workspace. "
            "Use `hms clone` or `hms new` to create one."
        )
        self.path = path


class CorruptManifest(SmarthomeCliError):
    def __init__(self, path, cause: str) -> None:
        super().__init__(
            f"The workspace manifest `{path}` is corrupt ({cause}). "
            "Remove the workspace and clone it again."
        )
        self.path = path
        self.cause = cause


class WorkspaceIOError(SmarthomeCliError):
    def __init__(self, path, cause: Exception) -> None:
        super().__init__(f"Could not access `{path}`: {cause}")
        self.path = path
        self.cause = cause


class ScriptAlreadyExists(SmarthomeCliError):
    def __init__(self, script_id: str) -> None:
        super().__init__(f"A script with the id `{script_id}` already exists")
        self.script_id = script_id


class WorkspaceAlreadyExists(SmarthomeCliError):
    def __init__(self, script_id: str) -> None:
        super().__init__(
            f"Cannot use `{script_id}`: the directory `{script_id}` already exists"
        )
        self.script_id = script_id


class ScriptDoesNotExist(SmarthomeCliError):
    def __init__(self, script_id: str) -> None:
        super().__init__(f"The script `{script_id}` does not exist")
        self.script_id = script_id


class ScriptNoLongerAccessible(SmarthomeCliError):
    def __init__(self, script_id: str) -> None:
        super().__init__(
            f"The script `{script_id}` was deleted or you lost access to it"
        )
        self.script_id = script_id


class HasDependentAutomations(SmarthomeCliError):
    def __init__(self, script_id: str) -> None:
        super().__init__(
            f"The script `{script_id}` cannot be deleted: "
            "it is still used by one or more automations"
        )
        self.script_id = script_id


class InvalidInput(SmarthomeCliError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"Invalid input: {reason}")
        self.reason = reason


class InvalidSwitch(SmarthomeCliError):
    def __init__(self, switch_id: str, reason: Optional[str] = None) -> None:
        super().__init__(
            f"The switch `{switch_id}` {reason or 'does not exist'}"
        )
        self.switch_id = switch_id


class NotEnoughPowerDrawData(SmarthomeCliError):
    def __init__(self) -> None:
        super().__init__(
            "Not enough power draw data: averaging requires more power draw data: "
            "please wait a few hours"
        )


class DiagnosticsError(SmarthomeCliError):
    """Carries everything needed to render the diagnostics of a failed execution."""

    headline = "Homescript reported errors"

    def __init__(
        self,
        diagnostics: List,
        code: str,
        file_contents: Optional[Dict[str, str]] = None,
        output: str = "",
    ) -> None:
        super().__init__(f"{self.headline} ({len(diagnostics)} diagnostic(s))")
        self.diagnostics = list(diagnostics)
        self.code = code
        self.file_contents = dict(file_contents or {})
        self.output = output


class LintErrors(DiagnosticsError):
    headline = "Linting discovered problems"


class RunErrors(DiagnosticsError):
    headline = "Program terminated abnormally"


class PermissionDenied(SmarthomeCliError):
    def __init__(self, target: str) -> None:
        super().__init__(
            f"You are lacking permission to access `{target}`"
        )
        self.target = target


class ServerUnavailable(SmarthomeCliError):
    retryable = True

    def __init__(self) -> None:
        super().__init__(
            "Smarthome is currently unavailable: try again later"
        )


class UnknownRemoteError(SmarthomeCliError):
    def __init__(self, cause: Exception) -> None:
        super().__init__(f"Unknown Smarthome error: {cause}")
        self.cause = cause


def classify_api_error(
    err: ApiError,
    target: str,
    on_unprocessable: Optional[Type[SmarthomeCliError]] = None,
    on_conflict: Optional[Type[SmarthomeCliError]] = None,
) -> SmarthomeCliError:
    """
    Translate a failed API call into a domain error.

    The meaning of 422 and 409 depends on the operation, so callers pass the
    error kind (constructed with ``target``) those statuses stand for.
    """
    status = err.status
    if status == STATUS_UNPROCESSABLE_ENTITY and on_unprocessable is not None:
        classified = on_unprocessable(target)
    elif status == STATUS_CONFLICT and on_conflict is not None:
        classified = on_conflict(target)
    elif status == STATUS_FORBIDDEN:
        classified = PermissionDenied(target)
    elif status == STATUS_SERVICE_UNAVAILABLE:
        classified = ServerUnavailable()
    else:
        classified = UnknownRemoteError(err)
    logger.debug("Classified status %s for `%s` as %s", status, target, type(classified).__name__)
    return classified
