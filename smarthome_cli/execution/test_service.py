import pytest
from pathlib import Path
from unittest.mock import MagicMock

from smarthome_cli.client import ApiError, SmarthomeClient
from smarthome_cli.errors import (
    LintErrors,
    NotAWorkspace,
    PermissionDenied,
    RunErrors,
    ScriptDoesNotExist,
    ServerUnavailable,
)
from smarthome_cli.execution.service import ExecutionService, is_severe
from smarthome_cli.models import (
    Diagnostic,
    ExecutionResult,
    HomescriptData,
    Severity,
    SourcePosition,
    SourceSpan,
)
from smarthome_cli.workspace.manifest import write_workspace


def diagnostic(severity: Severity, kind: str = "Error") -> Diagnostic:
    position = SourcePosition(1, 1)
    return Diagnostic(
        span=SourceSpan("main", position, position),
        severity=severity,
        message="something",
        kind=kind,
    )


def ok(*diagnostics: Diagnostic, output: str = "") -> ExecutionResult:
    return ExecutionResult(success=True, exit_code=0, output=output, diagnostics=list(diagnostics))


def failed(*diagnostics: Diagnostic, output: str = "") -> ExecutionResult:
    return ExecutionResult(
        success=False,
        exit_code=1,
        output=output,
        diagnostics=list(diagnostics),
        file_contents={"main": "broken("},
    )


@pytest.fixture
def client() -> MagicMock:
    return MagicMock(spec=SmarthomeClient)


@pytest.fixture
def service(client: MagicMock) -> ExecutionService:
    return ExecutionService(client)


def test_execute_returns_raw_result(service: ExecutionService, client: MagicMock):
    client.exec_homescript_code.return_value = failed(diagnostic(Severity.ERROR))
    result = service.execute("broken(", [("room", "kitchen")], lint_only=True)

    assert not result.success
    client.exec_homescript_code.assert_called_once_with("broken(", [("room", "kitchen")], True)


@pytest.mark.parametrize("status, error", [(403, PermissionDenied), (503, ServerUnavailable)])
def test_execute_classifies_api_errors(service: ExecutionService, client: MagicMock, status, error):
    client.exec_homescript_code.side_effect = ApiError(status)
    with pytest.raises(error):
        service.execute("println(1);")


def test_check_lint_errors(service: ExecutionService, client: MagicMock):
    client.exec_homescript_code.return_value = failed(diagnostic(Severity.ERROR))
    with pytest.raises(LintErrors) as excinfo:
        service.check("broken(", lint_only=True)

    assert excinfo.value.code == "broken("
    assert len(excinfo.value.diagnostics) == 1
    assert excinfo.value.file_contents == {"main": "broken("}


def test_check_run_errors_keep_output(service: ExecutionService, client: MagicMock):
    client.exec_homescript_code.return_value = failed(diagnostic(Severity.ERROR), output="partial")
    with pytest.raises(RunErrors) as excinfo:
        service.check("broken(")
    assert excinfo.value.output == "partial"


def test_exec_workspace(service: ExecutionService, client: MagicMock, tmp_path: Path):
    workspace = write_workspace(tmp_path / "lamp", "lamp", "println('hi');")
    client.exec_homescript_code.return_value = ok(output="hi")

    code, result = service.exec_workspace(workspace, lint_only=False)
    assert code == "println('hi');"
    assert result.output == "hi"


def test_exec_workspace_outside_workspace(service: ExecutionService, client: MagicMock, tmp_path: Path):
    with pytest.raises(NotAWorkspace):
        service.exec_workspace(tmp_path)
    client.exec_homescript_code.assert_not_called()


def test_run_script_unknown_id(service: ExecutionService, client: MagicMock):
    client.exec_homescript.side_effect = ApiError(422)
    with pytest.raises(ScriptDoesNotExist):
        service.run_script("ghost")


def test_run_script_failure_renders_against_stored_code(service: ExecutionService, client: MagicMock):
    client.exec_homescript.return_value = failed(diagnostic(Severity.ERROR))
    client.list_personal_homescripts.return_value = [HomescriptData(id="lamp", name="Lamp", code="broken(")]

    with pytest.raises(RunErrors) as excinfo:
        service.run_script("lamp", [("a", "1")])
    assert excinfo.value.code == "broken("
    client.exec_homescript.assert_called_once_with("lamp", [("a", "1")], False)


@pytest.mark.parametrize(
    "diagnostics, threshold, expected",
    [
        ([], Severity.ERROR, False),
        ([diagnostic(Severity.WARNING)], Severity.ERROR, False),
        ([diagnostic(Severity.WARNING)], Severity.WARNING, True),
        ([diagnostic(Severity.HINT, kind="SyntaxError")], Severity.ERROR, True),
    ],
)
def test_is_severe(diagnostics, threshold, expected):
    result = ExecutionResult(success=True, exit_code=0, output="", diagnostics=diagnostics)
    assert is_severe(result, threshold) is expected


def scripts(*ids: str):
    return [HomescriptData(id=script_id, name=script_id, code=f"// {script_id}") for script_id in ids]


def test_lint_all_aborts_after_first_severe_script(service: ExecutionService, client: MagicMock):
    client.list_personal_homescripts.return_value = scripts("a", "b", "c")
    client.exec_homescript_code.side_effect = [
        ok(diagnostic(Severity.WARNING)),
        failed(diagnostic(Severity.ERROR)),
        ok(),
    ]

    report = service.lint_all()
    assert [script.id for script, _ in report.results] == ["a", "b"]
    assert report.aborted_at == "b"
    assert [script.id for script, _ in report.failed] == ["b"]
    assert client.exec_homescript_code.call_count == 2


def test_lint_all_without_fail_fast(service: ExecutionService, client: MagicMock):
    client.list_personal_homescripts.return_value = scripts("a", "b", "c")
    client.exec_homescript_code.side_effect = [
        failed(diagnostic(Severity.ERROR)),
        ok(),
        failed(diagnostic(Severity.ERROR, kind="SyntaxError")),
    ]

    report = service.lint_all(fail_fast=False)
    assert len(report.results) == 3
    assert report.aborted_at is None
    assert [script.id for script, _ in report.failed] == ["a", "c"]


def test_lint_all_with_lower_threshold(service: ExecutionService, client: MagicMock):
    client.list_personal_homescripts.return_value = scripts("a", "b")
    client.exec_homescript_code.side_effect = [ok(diagnostic(Severity.WARNING)), ok()]

    report = service.lint_all(abort_severity=Severity.WARNING)
    assert report.aborted_at == "a"
    assert report.failed == []
