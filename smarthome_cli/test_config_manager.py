import json
import pytest
from pathlib import Path

from smarthome_cli.config_manager import ConfigManager, validate_servers
from smarthome_cli.errors import InvalidConfig
from smarthome_cli.models import Severity

TOKEN = "a" * 32


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "lint_on_push": False,
                "servers": [
                    {"id": "home", "url": "http://home.box", "token": TOKEN},
                    {"id": "office", "url": "https://office.box", "username": "bob", "password": "pw"},
                ],
            }
        ),
        encoding="utf-8",
    )
    return path


def test_creates_default_config(tmp_path: Path):
    path = tmp_path / "nested" / "config.json"
    manager = ConfigManager(config_file=path)

    assert manager.created
    assert path.is_file()
    assert manager.get_config_value("lint_on_push") is True
    assert manager.select_server().id == "default"


def test_loads_and_merges_defaults(config_file: Path):
    manager = ConfigManager(config_file=config_file)
    assert not manager.created
    assert manager.get_config_value("lint_on_push") is False
    assert manager.get_config_value("use_repl_history") is True
    assert manager.lint_abort_severity is Severity.ERROR


def test_runtime_options_override(config_file: Path):
    manager = ConfigManager({"log_level": "DEBUG"}, config_file=config_file)
    assert manager.get_config_value("log_level") == "DEBUG"
    assert "DEBUG" not in config_file.read_text(encoding="utf-8")


def test_select_server(config_file: Path):
    manager = ConfigManager(config_file=config_file)
    assert manager.select_server().id == "home"
    office = manager.select_server("office")
    assert office.username == "bob"
    assert office.token == ""
    with pytest.raises(InvalidConfig):
        manager.select_server("ghost")


@pytest.mark.parametrize("content", ["{not json", json.dumps({"lint_on_push": "yes"})])
def test_invalid_config_file(tmp_path: Path, content: str):
    path = tmp_path / "config.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(InvalidConfig):
        ConfigManager(config_file=path)


@pytest.mark.parametrize(
    "servers",
    [
        [],
        [{"id": "a", "url": "u", "token": TOKEN}, {"id": "a", "url": "u", "token": TOKEN}],
        [{"id": "a", "url": "u"}],
        [{"id": "a", "url": "u", "token": "short"}],
        [{"id": "a", "url": "u", "token": " " * 32}],
        [{"id": "a", "url": "u", "token": TOKEN, "username": "bob"}],
    ],
)
def test_validate_servers_rejects(servers):
    with pytest.raises(InvalidConfig):
        validate_servers(servers)


def test_validate_servers_accepts_credentials():
    validate_servers([{"id": "a", "url": "u", "username": "bob", "password": ""}])


def test_update_config_from_list(config_file: Path):
    manager = ConfigManager(config_file=config_file)
    updates = manager.update_config_from_list(["lint_on_push=yes", "lint_abort_severity=warning"])

    assert updates == {"lint_on_push": True, "lint_abort_severity": "warning"}
    assert manager.lint_abort_severity is Severity.WARNING
    saved = json.loads(config_file.read_text(encoding="utf-8"))
    assert saved["lint_on_push"] is True


@pytest.mark.parametrize(
    "option",
    [
        "lint_on_push",
        "unknown=1",
        "servers=[]",
        "lint_on_push=maybe",
        "lint_abort_severity=fatal",
        "power_cost_per_kwh=cheap",
        "power_cost_per_kwh=-1",
        "power_unit_symbol=",
    ],
)
def test_update_config_from_list_rejects(config_file: Path, option: str):
    manager = ConfigManager(config_file=config_file)
    with pytest.raises(InvalidConfig):
        manager.update_config_from_list([option])


def test_reset_keeps_servers(config_file: Path):
    manager = ConfigManager(config_file=config_file)
    manager.reset()
    assert manager.get_config_value("lint_on_push") is True
    assert [s["id"] for s in manager.get_config_value("servers")] == ["home", "office"]


def test_power_settings(config_file: Path):
    manager = ConfigManager(config_file=config_file)
    assert manager.get_config_value("power_cost_per_kwh") == 0.3
    assert manager.get_config_value("power_unit_symbol") == "€"

    updates = manager.update_config_from_list(["power_cost_per_kwh=0.42", "power_unit_symbol=$"])
    assert updates == {"power_cost_per_kwh": 0.42, "power_unit_symbol": "$"}
    saved = json.loads(config_file.read_text(encoding="utf-8"))
    assert saved["power_cost_per_kwh"] == 0.42


def test_power_cost_must_be_a_number_in_file(tmp_path: Path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"power_cost_per_kwh": "0.3"}), encoding="utf-8")
    with pytest.raises(InvalidConfig):
        ConfigManager(config_file=path)
