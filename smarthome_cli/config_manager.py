#!/usr/bin/env python3
"""
smarthome_cli/config_manager.py

Configuration Manager

Provides a class to manage the persistent user configuration, including the
list of Smarthome server profiles.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from jsonschema import ValidationError, validate

from smarthome_cli.constants import USER_CONFIG_FILE
from smarthome_cli.errors import InvalidConfig
from smarthome_cli.models import ServerProfile, Severity
from smarthome_cli.utils import load_json, merge_configs, parse_key_value, save_json

logger = logging.getLogger(__name__)

TOKEN_LENGTH = 32

SERVER_SCHEMA = {
    "type": "object",
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "url": {"type": "string", "minLength": 1},
        "username": {"type": "string"},
        "password": {"type": "string"},
        "token": {"type": "string"},
    },
    "required": ["id", "url"],
}

CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "log_level": {"type": "string"},
        "log_format": {"type": "string"},
        "lint_on_push": {"type": "boolean"},
        "use_repl_history": {"type": "boolean"},
        "lint_fail_fast": {"type": "boolean"},
        "lint_abort_severity": {"type": "string"},
        "power_cost_per_kwh": {"type": "number", "minimum": 0},
        "power_unit_symbol": {"type": "string", "minLength": 1},
        "servers": {"type": "array", "items": SERVER_SCHEMA},
    },
}


def validate_servers(servers: List[Dict[str, Any]]) -> None:
    """
    Check the server profiles for consistency.
    Raises InvalidConfig describing the first problem found.
    """
    if not servers:
        raise InvalidConfig(
            "no servers specified: at least one (default) server must be specified"
        )
    seen = set()
    for server in servers:
        server_id = server["id"]
        if server_id in seen:
            raise InvalidConfig(f"duplicate server ID: the ID `{server_id}` must be unique")
        seen.add(server_id)

        token = server.get("token", "")
        username = server.get("username", "")
        password = server.get("password", "")
        if not token:
            if not username:
                raise InvalidConfig(
                    f"no authentication provided for server `{server_id}`: "
                    "token and username are both empty"
                )
            continue
        if len(token) != TOKEN_LENGTH:
            raise InvalidConfig(
                f"malformed access token at server `{server_id}`: "
                f"the token must have a length of {TOKEN_LENGTH} characters"
            )
        if not token.isascii() or any(c.isspace() for c in token):
            raise InvalidConfig(
                f"malformed access token at server `{server_id}`: "
                "the token may not contain whitespaces or non-ASCII characters"
            )
        if username or password:
            raise InvalidConfig(
                f"ambiguous authentication at server `{server_id}`: "
                "username or password specified whilst token is not empty"
            )


class ConfigManager:
    DEFAULT_CONFIG: Dict[str, Any] = {
        "log_level": "WARNING",
        "log_format": "default",
        "lint_on_push": True,
        "use_repl_history": True,
        "lint_fail_fast": True,
        "lint_abort_severity": "error",
        "power_cost_per_kwh": 0.3,
        "power_unit_symbol": "€",
        "servers": [
            {
                "id": "default",
                "url": "http://smarthome.box",
                "username": "",
                "password": "",
                "token": "-" * TOKEN_LENGTH,
            }
        ],
    }

    def __init__(
        self,
        runtime_options: Optional[Dict[str, Any]] = None,
        config_file: Optional[Path] = None,
    ):
        self.config_file = Path(config_file) if config_file else USER_CONFIG_FILE
        self.runtime_options = runtime_options or {}
        self.created = False
        self.user_config = self.load_user_config()
        self._update_effective_config()

    def to_dict(self) -> Dict[str, Any]:
        """
        Returns the effective configuration dictionary.
        """
        return self.effective_config

    def load_user_config(self) -> Dict[str, Any]:
        """
        Loads the persistent user configuration.
        If the configuration file does not exist, creates it using DEFAULT_CONFIG.
        Missing keys are filled in from DEFAULT_CONFIG.
        """
        if not self.config_file.exists():
            save_json(self.config_file, self.DEFAULT_CONFIG)
            self.created = True
            logger.debug("Created configuration file at %s", self.config_file)
            return copy.deepcopy(self.DEFAULT_CONFIG)

        try:
            config = load_json(self.config_file)
        except json.JSONDecodeError as e:
            raise InvalidConfig(f"invalid JSON in `{self.config_file}`: {e}")
        except OSError as e:
            raise InvalidConfig(f"could not read `{self.config_file}`: {e}")

        try:
            validate(instance=config, schema=CONFIG_SCHEMA)
        except ValidationError as e:
            raise InvalidConfig(e.message)

        merged = merge_configs(copy.deepcopy(self.DEFAULT_CONFIG), config)
        validate_servers(merged["servers"])
        logger.debug("Loaded configuration file at %s", self.config_file)
        return merged

    def _update_effective_config(self) -> None:
        """
        Updates the effective configuration by merging the user config and runtime options.
        """
        self.effective_config = merge_configs(self.user_config, self.runtime_options)

    def _save_user_config(self) -> None:
        save_json(self.config_file, self.user_config)
        self._update_effective_config()

    def get_config_value(self, key: str, default: Any = None) -> Any:
        """
        Retrieves a configuration value by key, with an optional default if not set.
        """
        return self.effective_config.get(key, default)

    @property
    def lint_abort_severity(self) -> Severity:
        return Severity.parse(self.get_config_value("lint_abort_severity", "error"))

    def select_server(self, server_id: Optional[str] = None) -> ServerProfile:
        """
        Returns the profile with the given id, or the first (default) profile.
        """
        servers = self.effective_config["servers"]
        if server_id is None:
            return ServerProfile.from_dict(servers[0])
        for server in servers:
            if server["id"] == server_id:
                return ServerProfile.from_dict(server)
        raise InvalidConfig(
            f"invalid server id: the id `{server_id}` was not found in the server list"
        )

    def set_config_value(self, key: str, value: Any) -> None:
        """
        Sets a single configuration value and persists the change.
        """
        self.user_config[key] = value
        self._save_user_config()
        logger.debug("Set config key '%s' to '%s'.", key, value)

    def update_config_from_list(self, options: List[str]) -> Dict[str, Any]:
        """
        Parses and updates configuration from a list of KEY=VALUE strings.
        Returns a dictionary of updated configuration options.
        Raises InvalidConfig on parsing or validation errors.
        """
        updates = {}
        for option in options:
            try:
                key, value = parse_key_value(option)
            except ValueError as e:
                raise InvalidConfig(str(e))

            if key not in self.DEFAULT_CONFIG or key == "servers":
                valid_keys = ", ".join(
                    f"'{k}'" for k in self.DEFAULT_CONFIG.keys() if k != "servers"
                )
                raise InvalidConfig(
                    f"unknown configuration key: '{key}'. Valid keys are: {valid_keys}"
                )

            default_val = self.DEFAULT_CONFIG[key]
            if isinstance(default_val, bool):
                value_lower = value.lower()
                if value_lower in ["true", "1", "yes"]:
                    value = True
                elif value_lower in ["false", "0", "no"]:
                    value = False
                else:
                    raise InvalidConfig(
                        f"error converting value for '{key}': expected a boolean value (true/false)"
                    )
            elif key == "lint_abort_severity":
                try:
                    Severity.parse(value)
                except ValueError as e:
                    raise InvalidConfig(str(e))
            elif key == "power_cost_per_kwh":
                try:
                    value = float(value)
                except ValueError:
                    raise InvalidConfig(
                        f"error converting value for '{key}': expected a number"
                    )
                if value < 0:
                    raise InvalidConfig(f"'{key}' must not be negative")
            elif key == "power_unit_symbol" and not value:
                raise InvalidConfig(f"'{key}' must not be empty")

            updates[key] = value

        for key, value in updates.items():
            self.set_config_value(key, value)
        return updates

    def reset(self) -> None:
        """
        Resets the user configuration to its default values, keeping the server list.
        """
        servers = self.user_config.get("servers", self.DEFAULT_CONFIG["servers"])
        self.user_config = copy.deepcopy(self.DEFAULT_CONFIG)
        self.user_config["servers"] = servers
        self._save_user_config()
        logger.debug("Configuration reset to default values.")
