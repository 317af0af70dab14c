import dataclasses
import logging
import pytest
from pathlib import Path
from typing import Dict, List
from unittest.mock import MagicMock

from smarthome_cli.client import ApiError
from smarthome_cli.errors import (
    HasDependentAutomations,
    InvalidInput,
    LintErrors,
    NotAWorkspace,
    ScriptAlreadyExists,
    ScriptDoesNotExist,
    ScriptNoLongerAccessible,
    WorkspaceAlreadyExists,
)
from smarthome_cli.execution.service import ExecutionService
from smarthome_cli.models import HomescriptData
from smarthome_cli.workspace.manifest import code_path, read_code, write_code
from smarthome_cli.workspace.sync import SyncEngine, SyncOutcome, validate_new_script


class FakeServer:
    """
    In-memory stand-in for the Homescript endpoints of SmarthomeClient.
    """

    hostname = "smarthome.box"
    username = "alice"

    def __init__(self, scripts: List[HomescriptData] = ()):
        self.scripts: Dict[str, HomescriptData] = {s.id: s for s in scripts}
        self.dependents = set()
        self.calls: List[str] = []

    def list_personal_homescripts(self) -> List[HomescriptData]:
        self.calls.append("list")
        return list(self.scripts.values())

    def create_homescript(self, script: HomescriptData) -> None:
        self.calls.append("create")
        if script.id in self.scripts:
            raise ApiError(422, "POST", "/api/homescript/add")
        self.scripts[script.id] = script

    def modify_homescript(self, script: HomescriptData) -> None:
        self.calls.append("modify")
        if script.id not in self.scripts:
            raise ApiError(422, "PUT", "/api/homescript/modify")
        self.scripts[script.id] = script

    def delete_homescript(self, script_id: str) -> None:
        self.calls.append("delete")
        if script_id not in self.scripts:
            raise ApiError(422, "DELETE", "/api/homescript/delete")
        if script_id in self.dependents:
            raise ApiError(409, "DELETE", "/api/homescript/delete")
        del self.scripts[script_id]


def make_script(script_id: str, code: str = "") -> HomescriptData:
    return HomescriptData(
        id=script_id,
        name=script_id.title(),
        description="A test script",
        code=code,
        workspace="living-room",
        quick_actions_enabled=True,
        scheduler_enabled=True,
        md_icon="lightbulb",
    )


@pytest.fixture
def server() -> FakeServer:
    return FakeServer(
        [
            make_script("lamp", "println('lamp');\n"),
            make_script("heater", "println('heater');\n"),
        ]
    )


@pytest.fixture
def executor() -> MagicMock:
    return MagicMock(spec=ExecutionService)


@pytest.fixture
def engine(server: FakeServer, executor: MagicMock, tmp_path: Path) -> SyncEngine:
    return SyncEngine(server, root=tmp_path, executor=executor)


# -------------------------------------------
# Create
# -------------------------------------------


def test_create_registers_script_and_writes_workspace(engine: SyncEngine, server: FakeServer):
    target = engine.create("fan")
    assert target == engine.workspace_dir("fan")
    assert read_code(target, "fan") == ""

    created = server.scripts["fan"]
    assert created.name == "fan"
    assert created.workspace == "default"
    assert created.md_icon == "code"
    assert created.code == ""
    assert not created.quick_actions_enabled
    assert not created.scheduler_enabled


def test_create_with_name_and_workspace(engine: SyncEngine, server: FakeServer):
    engine.create("fan", name="Ceiling Fan", workspace="bedroom")
    assert server.scripts["fan"].name == "Ceiling Fan"
    assert server.scripts["fan"].workspace == "bedroom"


@pytest.mark.parametrize(
    "script_id, name, workspace",
    [
        ("has space", "ok", "ok"),
        ("x" * 31, "ok", "ok"),
        ("ok", "n" * 31, "ok"),
        ("ok", "ok", "w" * 51),
        ("", "ok", "ok"),
        ("../escape", "ok", "ok"),
        ("nested/id", "ok", "ok"),
        ("back\\slash", "ok", "ok"),
        ("..", "ok", "ok"),
    ],
)
def test_create_rejects_invalid_input_before_any_remote_call(
    engine: SyncEngine, server: FakeServer, tmp_path: Path, script_id, name, workspace
):
    with pytest.raises(InvalidInput):
        engine.create(script_id, name=name, workspace=workspace)
    assert server.calls == []
    assert list(tmp_path.iterdir()) == []


def test_validate_new_script_accepts_limits():
    validate_new_script("x" * 30, "n" * 30, "w" * 50)


def test_create_empty_id_is_invalid_input(engine: SyncEngine):
    with pytest.raises(InvalidInput) as excinfo:
        engine.create("")
    assert "id must not be empty" in str(excinfo.value)


def test_create_existing_remote_script(engine: SyncEngine, tmp_path: Path):
    with pytest.raises(ScriptAlreadyExists):
        engine.create("lamp")
    assert not (tmp_path / "lamp").exists()


def test_create_existing_directory(engine: SyncEngine, server: FakeServer, tmp_path: Path):
    (tmp_path / "fan").mkdir()
    with pytest.raises(WorkspaceAlreadyExists):
        engine.create("fan")
    assert "fan" not in server.scripts
    assert server.calls == []


# -------------------------------------------
# Delete
# -------------------------------------------


def test_delete_removes_remote_and_workspace(engine: SyncEngine, server: FakeServer):
    report = engine.clone(["lamp"])
    assert report.ok

    engine.delete("lamp")
    assert "lamp" not in server.scripts
    assert not engine.workspace_dir("lamp").exists()


def test_delete_without_local_workspace(engine: SyncEngine, server: FakeServer):
    engine.delete("heater")
    assert "heater" not in server.scripts


def test_delete_unknown_script(engine: SyncEngine):
    with pytest.raises(ScriptDoesNotExist):
        engine.delete("ghost")


def test_delete_with_dependent_automations_keeps_everything(
    engine: SyncEngine, server: FakeServer
):
    engine.clone(["lamp"])
    server.dependents.add("lamp")

    with pytest.raises(HasDependentAutomations):
        engine.delete("lamp")
    assert "lamp" in server.scripts
    assert read_code(engine.workspace_dir("lamp"), "lamp") == "println('lamp');\n"


# -------------------------------------------
# Clone
# -------------------------------------------


def test_clone_selected(engine: SyncEngine, tmp_path: Path):
    report = engine.clone(["heater"])
    assert report.cloned == ["heater"]
    assert report.ok
    assert [p.name for p in tmp_path.iterdir()] == ["heater"]
    assert read_code(tmp_path / "heater", "heater") == "println('heater');\n"


def test_clone_all(engine: SyncEngine, tmp_path: Path):
    report = engine.clone([], clone_all=True)
    assert sorted(report.cloned) == ["heater", "lamp"]
    assert sorted(p.name for p in tmp_path.iterdir()) == ["heater", "lamp"]


def test_clone_partial_failure(engine: SyncEngine, tmp_path: Path):
    (tmp_path / "heater").mkdir()
    report = engine.clone(["lamp", "ghost", "heater"])

    assert report.cloned == ["lamp"]
    assert not report.ok
    assert isinstance(report.failed["ghost"], ScriptDoesNotExist)
    assert isinstance(report.failed["heater"], WorkspaceAlreadyExists)
    assert not (tmp_path / "ghost").exists()


# -------------------------------------------
# Pull / Push
# -------------------------------------------


def test_pull_after_clone_is_up_to_date(engine: SyncEngine):
    engine.clone(["lamp"])
    assert engine.pull(engine.workspace_dir("lamp")) is SyncOutcome.UP_TO_DATE


def test_pull_overwrites_local_code(engine: SyncEngine, server: FakeServer):
    engine.clone(["lamp"])
    workspace = engine.workspace_dir("lamp")
    write_code(workspace, "lamp", "local edit")
    server.scripts["lamp"] = dataclasses.replace(server.scripts["lamp"], code="remote edit")

    assert engine.pull(workspace) is SyncOutcome.UPDATED
    assert read_code(workspace, "lamp") == "remote edit"


def test_pull_outside_workspace(engine: SyncEngine, tmp_path: Path):
    with pytest.raises(NotAWorkspace):
        engine.pull(tmp_path)


def test_pull_script_gone(engine: SyncEngine, server: FakeServer):
    engine.clone(["lamp"])
    del server.scripts["lamp"]
    with pytest.raises(ScriptNoLongerAccessible):
        engine.pull(engine.workspace_dir("lamp"))


def test_push_replaces_only_code(engine: SyncEngine, server: FakeServer, executor: MagicMock):
    engine.clone(["lamp"])
    workspace = engine.workspace_dir("lamp")
    before = server.scripts["lamp"]
    write_code(workspace, "lamp", "println('new');")

    assert engine.push(workspace) is SyncOutcome.UPDATED
    executor.check.assert_called_once_with("println('new');", lint_only=True)
    assert server.scripts["lamp"] == dataclasses.replace(before, code="println('new');")


def test_push_twice_is_idempotent(engine: SyncEngine, server: FakeServer):
    engine.clone(["lamp"])
    workspace = engine.workspace_dir("lamp")
    write_code(workspace, "lamp", "println('new');")

    assert engine.push(workspace) is SyncOutcome.UPDATED
    server.calls.clear()
    assert engine.push(workspace) is SyncOutcome.UP_TO_DATE
    assert "modify" not in server.calls


def test_push_up_to_date_skips_lint(engine: SyncEngine, executor: MagicMock):
    engine.clone(["lamp"])
    assert engine.push(engine.workspace_dir("lamp")) is SyncOutcome.UP_TO_DATE
    executor.check.assert_not_called()


def test_push_blocked_by_lint_errors(engine: SyncEngine, server: FakeServer, executor: MagicMock):
    engine.clone(["lamp"])
    workspace = engine.workspace_dir("lamp")
    write_code(workspace, "lamp", "broken(")
    executor.check.side_effect = LintErrors([], "broken(")

    with pytest.raises(LintErrors):
        engine.push(workspace)
    assert server.scripts["lamp"].code == "println('lamp');\n"
    assert "modify" not in server.calls


def test_force_push_despite_lint_errors(
    engine: SyncEngine, server: FakeServer, executor: MagicMock, caplog
):
    engine.clone(["lamp"])
    workspace = engine.workspace_dir("lamp")
    write_code(workspace, "lamp", "broken(")
    executor.check.side_effect = LintErrors([], "broken(")

    with caplog.at_level(logging.WARNING, logger="smarthome_cli.workspace.sync"):
        assert engine.push(workspace, force=True) is SyncOutcome.FORCE_PUSHED
    assert server.scripts["lamp"].code == "broken("

    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert [r.getMessage() for r in warnings] == [
        "Linting discovered errors: force-pushing to remote"
    ]
    assert not [r for r in caplog.records if r.levelno >= logging.ERROR]


def test_push_without_lint(engine: SyncEngine, server: FakeServer, executor: MagicMock):
    engine.clone(["lamp"])
    workspace = engine.workspace_dir("lamp")
    write_code(workspace, "lamp", "broken(")

    assert engine.push(workspace, lint_on_push=False) is SyncOutcome.UPDATED
    executor.check.assert_not_called()
    assert server.scripts["lamp"].code == "broken("


def test_push_script_gone(engine: SyncEngine, server: FakeServer):
    engine.clone(["lamp"])
    workspace = engine.workspace_dir("lamp")
    write_code(workspace, "lamp", "println('new');")
    del server.scripts["lamp"]

    with pytest.raises(ScriptNoLongerAccessible):
        engine.push(workspace)
    assert code_path(workspace, "lamp").is_file()
