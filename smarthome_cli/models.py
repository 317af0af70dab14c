"""
smarthome_cli/models.py

Typed views of the data exchanged with the Smarthome server.
"""
import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

SYNTAX_ERROR_KIND = "SyntaxError"


@dataclass(frozen=True)
class ServerProfile:
    id: str
    url: str
    username: str = ""
    password: str = ""
    token: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServerProfile":
        return cls(
            id=data["id"],
            url=data["url"],
            username=data.get("username", ""),
            password=data.get("password", ""),
            token=data.get("token", ""),
        )


@dataclass(frozen=True)
class HomescriptData:
    """The server's full record of one script."""

    id: str
    name: str
    description: str = ""
    code: str = ""
    workspace: str = "default"
    quick_actions_enabled: bool = False
    scheduler_enabled: bool = False
    md_icon: str = "code"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HomescriptData":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            description=data.get("description", ""),
            code=data.get("code", ""),
            workspace=data.get("workspace", "default"),
            quick_actions_enabled=data.get("quickActionsEnabled", False),
            scheduler_enabled=data.get("schedulerEnabled", False),
            md_icon=data.get("mdIcon", "code"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "code": self.code,
            "workspace": self.workspace,
            "quickActionsEnabled": self.quick_actions_enabled,
            "schedulerEnabled": self.scheduler_enabled,
            "mdIcon": self.md_icon,
        }


class Severity(IntEnum):
    HINT = 0
    INFO = 1
    WARNING = 2
    ERROR = 3

    @classmethod
    def parse(cls, value: Any) -> "Severity":
        """Accept either the numeric level or the (case-insensitive) name."""
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(f"Unknown severity: '{value}'")
        return cls(int(value))


@dataclass(frozen=True)
class SourcePosition:
    line: int
    column: int

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SourcePosition":
        data = data or {}
        return cls(line=int(data.get("line", 1)), column=int(data.get("column", 1)))


@dataclass(frozen=True)
class SourceSpan:
    filename: str
    start: SourcePosition
    end: SourcePosition

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SourceSpan":
        start = SourcePosition.from_dict(data.get("start"))
        end = SourcePosition.from_dict(data.get("end") or data.get("start"))
        return cls(filename=data.get("filename", ""), start=start, end=end)


@dataclass(frozen=True)
class Diagnostic:
    span: SourceSpan
    severity: Severity
    message: str
    kind: str = "Error"
    notes: List[str] = field(default_factory=list)

    @property
    def is_syntax_error(self) -> bool:
        return self.kind == SYNTAX_ERROR_KIND

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Diagnostic":
        kind = data.get("kind") or data.get("errorType") or "Error"
        # Older servers only report errors, without a severity.
        severity = Severity.parse(data.get("severity", Severity.ERROR))
        return cls(
            span=SourceSpan.from_dict(data.get("span") or {}),
            severity=severity,
            message=data.get("message", ""),
            kind=kind,
            notes=list(data.get("notes") or []),
        )


@dataclass(frozen=True)
class ExecutionResult:
    success: bool
    exit_code: int
    output: str
    diagnostics: List[Diagnostic] = field(default_factory=list)
    file_contents: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExecutionResult":
        return cls(
            success=bool(data.get("success", False)),
            exit_code=int(data.get("exitCode", 0)),
            output=data.get("output", ""),
            diagnostics=[Diagnostic.from_dict(d) for d in data.get("errors") or []],
            file_contents=dict(data.get("fileContents") or {}),
        )


@dataclass(frozen=True)
class PowerSwitch:
    id: str
    name: str
    room_id: str
    power_on: bool
    watts: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PowerSwitch":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            room_id=data.get("roomId", ""),
            power_on=bool(data.get("powerOn", False)),
            watts=int(data.get("watts", 0)),
        )


@dataclass(frozen=True)
class PowerDrawData:
    switch_count: int
    watts: int
    percent: float

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "PowerDrawData":
        data = data or {}
        return cls(
            switch_count=int(data.get("switchCount", 0)),
            watts=int(data.get("watts", 0)),
            percent=float(data.get("percent", 0.0)),
        )


@dataclass(frozen=True)
class PowerDrawPoint:
    """One power usage measurement; `time` is a Unix timestamp in milliseconds."""

    time: int
    on: PowerDrawData
    off: PowerDrawData

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PowerDrawPoint":
        return cls(
            time=int(data["time"]),
            on=PowerDrawData.from_dict(data.get("on")),
            off=PowerDrawData.from_dict(data.get("off")),
        )
