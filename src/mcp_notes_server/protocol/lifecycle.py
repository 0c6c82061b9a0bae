"""MCP lifecycle management.

Handles the initialize/initialized handshake and tracks per-session
protocol state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from mcp_notes_server.protocol.jsonrpc import INVALID_PARAMS, JsonRpcError

# Supported MCP protocol versions (oldest first)
SUPPORTED_PROTOCOL_VERSIONS = ["2024-11-05", "2025-03-26"]
# Version advertised when the client asks for one we do not know
MCP_PROTOCOL_VERSION = "2024-11-05"


class LifecycleState(Enum):
    """MCP session lifecycle states."""

    AWAITING_INITIALIZE = "awaiting_initialize"
    INITIALIZED = "initialized"
    READY = "ready"


class ProtocolError(Exception):
    """Raised when protocol constraints are violated."""

    pass


def _check_param_type(params: dict[str, Any], key: str, expected: type, label: str) -> None:
    value = params.get(key)
    if value is not None and not isinstance(value, expected):
        raise JsonRpcError(INVALID_PARAMS, f"Invalid params: {key} must be {label}")


def default_capabilities() -> dict[str, Any]:
    """Capabilities advertised in the initialize result."""
    return {
        "tools": {"listChanged": False},
        "prompts": {},
        "resources": {},
    }


@dataclass
class LifecycleManager:
    """Manages the MCP handshake for one session.

    ``initialize`` moves the session to INITIALIZED, the
    ``notifications/initialized`` acknowledgment moves it to READY.
    """

    server_info: dict[str, str] = field(
        default_factory=lambda: {"name": "notes-server", "version": "1.0.0"}
    )
    capabilities: dict[str, Any] = field(default_factory=default_capabilities)
    state: LifecycleState = LifecycleState.AWAITING_INITIALIZE
    protocol_version: str | None = None
    client_info: dict[str, str] | None = None
    client_capabilities: dict[str, Any] | None = None

    @property
    def is_initialized(self) -> bool:
        """Whether initialize has completed (the handshake may still be open)."""
        return self.state != LifecycleState.AWAITING_INITIALIZE

    @property
    def is_ready(self) -> bool:
        """Check if the handshake has been acknowledged by the client."""
        return self.state == LifecycleState.READY

    def require_initialized(self) -> None:
        """Assert that initialize has been handled.

        Raises:
            ProtocolError: If the session has not been initialized.
        """
        if not self.is_initialized:
            raise ProtocolError("Session not initialized")

    def handle_initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        """Handle initialize request.

        Args:
            params: Initialize request parameters.

        Returns:
            Initialize response result.

        Raises:
            ProtocolError: If this session was already initialized.
            JsonRpcError: If a known parameter has the wrong type.
        """
        if self.state != LifecycleState.AWAITING_INITIALIZE:
            raise ProtocolError("Session already initialized")

        _check_param_type(params, "protocolVersion", str, "a string")
        _check_param_type(params, "clientInfo", dict, "an object")
        _check_param_type(params, "capabilities", dict, "an object")

        requested_version = params.get("protocolVersion")
        if requested_version in SUPPORTED_PROTOCOL_VERSIONS:
            self.protocol_version = requested_version
        else:
            self.protocol_version = MCP_PROTOCOL_VERSION

        self.client_info = params.get("clientInfo")
        self.client_capabilities = params.get("capabilities", {})
        self.state = LifecycleState.INITIALIZED

        return {
            "protocolVersion": self.protocol_version,
            "capabilities": self.capabilities,
            "serverInfo": self.server_info,
        }

    def handle_initialized(self) -> None:
        """Handle initialized notification.

        Raises:
            ProtocolError: If initialize has not been handled yet.
        """
        if self.state == LifecycleState.AWAITING_INITIALIZE:
            raise ProtocolError("Initialized notification before initialize")

        self.state = LifecycleState.READY
