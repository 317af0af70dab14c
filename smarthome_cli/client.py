#!/usr/bin/env python3
"""
smarthome_cli/client.py

Smarthome API Client

A thin JSON-over-HTTP client for the Smarthome server. It only knows about
transport and response typing; classifying failed calls into domain errors
is done by the callers (see smarthome_cli.errors).
"""

import json
import logging
import ssl
from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlencode, urlparse

import truststore
import urllib3
from packaging.specifiers import SpecifierSet
from packaging.version import InvalidVersion, Version

from smarthome_cli.constants import SERVER_VERSION_REQUIREMENT
from smarthome_cli.models import (
    ExecutionResult,
    HomescriptData,
    PowerDrawPoint,
    PowerSwitch,
    ServerProfile,
)

logger = logging.getLogger(__name__)

TIMEOUT_CONNECT: float = 10.0
TIMEOUT_READ: float = 30.0


class ClientError(Exception):
    """Base class for failures raised by the API client."""


class ApiError(ClientError):
    """The server answered with a non-success status code."""

    def __init__(self, status: int, method: str = "", path: str = "", body: str = "") -> None:
        super().__init__(f"{method} {path} failed with status {status}".strip())
        self.status = status
        self.method = method
        self.path = path
        self.body = body


class ConnectionFailed(ClientError):
    def __init__(self, url: str, cause: Exception) -> None:
        super().__init__(f"Could not connect to `{url}`: {cause}")
        self.url = url
        self.cause = cause


class InvalidResponse(ClientError):
    """The server answered with a success status but a body that is not valid JSON."""

    def __init__(self, method: str, path: str, cause: Exception) -> None:
        super().__init__(f"Invalid response to {method} {path}: {cause}")
        self.method = method
        self.path = path
        self.cause = cause


class IncompatibleVersion(ClientError):
    def __init__(self, server_version: str) -> None:
        super().__init__(
            f"Incompatible server version: the server version is `{server_version}` "
            f"but this program requires `{SERVER_VERSION_REQUIREMENT}`"
        )
        self.server_version = server_version


def create_pool_manager() -> urllib3.PoolManager:
    """Create an HTTP pool manager that verifies TLS against the system trust store."""
    ssl_context = truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    return urllib3.PoolManager(ssl_context=ssl_context)


class SmarthomeClient:
    """
    Authenticated client bound to one server profile.

    Authentication is sent with every request as query parameters: either the
    profile's access token or its username/password pair.
    """

    def __init__(
        self,
        profile: ServerProfile,
        http: Optional[urllib3.PoolManager] = None,
    ) -> None:
        self.profile = profile
        self.base_url = profile.url.rstrip("/")
        self.http = http or create_pool_manager()

    @property
    def username(self) -> Optional[str]:
        return self.profile.username or None

    @property
    def hostname(self) -> str:
        return urlparse(self.base_url).hostname or self.base_url

    def _auth_query(self) -> List[Tuple[str, str]]:
        if self.profile.token:
            return [("token", self.profile.token)]
        return [
            ("username", self.profile.username),
            ("password", self.profile.password),
        ]

    def request(
        self,
        method: str,
        path: str,
        payload: Optional[Any] = None,
        authenticated: bool = True,
    ) -> Any:
        query = urlencode(self._auth_query()) if authenticated else ""
        url = f"{self.base_url}{path}" + (f"?{query}" if query else "")
        body = None
        headers = {"Accept": "application/json"}
        if payload is not None:
            body = json.dumps(payload).encode("utf-8")
            headers["Content-Type"] = "application/json"

        logger.debug("%s %s%s", method, self.base_url, path)
        try:
            response = self.http.request(
                method,
                url,
                body=body,
                headers=headers,
                timeout=urllib3.Timeout(connect=TIMEOUT_CONNECT, read=TIMEOUT_READ),
            )
        except urllib3.exceptions.HTTPError as err:
            logger.debug("Transport error for %s %s: %s", method, path, err)
            raise ConnectionFailed(self.base_url, err) from err

        data = response.data or b""
        if not 200 <= response.status < 300:
            text = data.decode("utf-8", errors="replace")
            logger.debug("%s %s returned %s: %s", method, path, response.status, text)
            raise ApiError(response.status, method, path, text)
        if not data:
            return None
        try:
            return json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as err:
            logger.debug("Undecodable response to %s %s: %s", method, path, err)
            raise InvalidResponse(method, path, err) from err

    # -------------------------------------------
    # Server
    # -------------------------------------------

    def version(self) -> str:
        data = self.request("GET", "/api/version", authenticated=False)
        return data["version"]

    def connect(self) -> "SmarthomeClient":
        """Check that the server speaks a compatible API version."""
        server_version = self.version()
        try:
            compatible = Version(server_version) in SpecifierSet(SERVER_VERSION_REQUIREMENT)
        except InvalidVersion:
            compatible = False
        if not compatible:
            raise IncompatibleVersion(server_version)
        logger.debug("Connected to %s (server version %s)", self.hostname, server_version)
        return self

    # -------------------------------------------
    # Homescript
    # -------------------------------------------

    def list_personal_homescripts(self) -> List[HomescriptData]:
        data = self.request("GET", "/api/homescript/list/personal") or []
        return [HomescriptData.from_dict(item["data"]) for item in data]

    def create_homescript(self, script: HomescriptData) -> None:
        self.request("POST", "/api/homescript/add", script.to_dict())

    def modify_homescript(self, script: HomescriptData) -> None:
        self.request("PUT", "/api/homescript/modify", script.to_dict())

    def delete_homescript(self, script_id: str) -> None:
        self.request("DELETE", "/api/homescript/delete", {"id": script_id})

    def exec_homescript_code(
        self,
        code: str,
        args: Sequence[Tuple[str, str]] = (),
        lint: bool = False,
    ) -> ExecutionResult:
        path = "/api/homescript/lint/live" if lint else "/api/homescript/run/live"
        payload = {"code": code, "args": _encode_args(args)}
        return ExecutionResult.from_dict(self.request("POST", path, payload))

    def exec_homescript(
        self,
        script_id: str,
        args: Sequence[Tuple[str, str]] = (),
        lint: bool = False,
    ) -> ExecutionResult:
        path = "/api/homescript/lint" if lint else "/api/homescript/run"
        payload = {"id": script_id, "args": _encode_args(args)}
        return ExecutionResult.from_dict(self.request("POST", path, payload))

    # -------------------------------------------
    # Power
    # -------------------------------------------

    def personal_switches(self) -> List[PowerSwitch]:
        data = self.request("GET", "/api/switch/list/personal") or []
        return [PowerSwitch.from_dict(item) for item in data]

    def all_switches(self) -> List[PowerSwitch]:
        data = self.request("GET", "/api/switch/list/all") or []
        return [PowerSwitch.from_dict(item) for item in data]

    def set_power(self, switch_id: str, power_on: bool) -> None:
        self.request("POST", "/api/power/set", {"switch": switch_id, "powerOn": power_on})

    def power_usage(self) -> List[PowerDrawPoint]:
        """Power draw measurements of the last 24 hours, oldest first."""
        data = self.request("GET", "/api/power/usage/day") or []
        return [PowerDrawPoint.from_dict(item) for item in data]


def _encode_args(args: Sequence[Tuple[str, str]]) -> List[Dict[str, str]]:
    return [{"key": key, "value": value} for key, value in args]
