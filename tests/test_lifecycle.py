"""Tests for the MCP initialize/initialized handshake."""

import pytest

from mcp_notes_server.protocol.jsonrpc import INVALID_PARAMS, JsonRpcError
from mcp_notes_server.protocol.lifecycle import (
    MCP_PROTOCOL_VERSION,
    LifecycleManager,
    LifecycleState,
    ProtocolError,
)


class TestLifecycleManager:
    """Tests for per-session protocol state."""

    def test_starts_awaiting_initialize(self):
        """Should start before the handshake."""
        lifecycle = LifecycleManager()

        assert lifecycle.state == LifecycleState.AWAITING_INITIALIZE
        assert not lifecycle.is_initialized
        assert not lifecycle.is_ready

    def test_initialize_returns_server_info(self):
        """Should answer with version, capabilities and server info."""
        lifecycle = LifecycleManager(server_info={"name": "notes", "version": "2.0.0"})

        result = lifecycle.handle_initialize(
            {
                "protocolVersion": "2024-11-05",
                "clientInfo": {"name": "client", "version": "1.0"},
                "capabilities": {"sampling": {}},
            }
        )

        assert result["protocolVersion"] == "2024-11-05"
        assert result["serverInfo"] == {"name": "notes", "version": "2.0.0"}
        assert result["capabilities"]["tools"] == {"listChanged": False}
        assert lifecycle.state == LifecycleState.INITIALIZED
        assert lifecycle.client_info == {"name": "client", "version": "1.0"}
        assert lifecycle.client_capabilities == {"sampling": {}}

    def test_echoes_supported_version(self):
        """Should agree to a newer supported protocol version."""
        lifecycle = LifecycleManager()

        result = lifecycle.handle_initialize({"protocolVersion": "2025-03-26"})

        assert result["protocolVersion"] == "2025-03-26"

    def test_falls_back_for_unknown_version(self):
        """Should offer the default version when the client's is unknown."""
        lifecycle = LifecycleManager()

        result = lifecycle.handle_initialize({"protocolVersion": "1999-01-01"})

        assert result["protocolVersion"] == MCP_PROTOCOL_VERSION

    @pytest.mark.parametrize(
        "params",
        [
            {"clientInfo": "x"},
            {"capabilities": []},
            {"protocolVersion": 20241105},
        ],
    )
    def test_rejects_mistyped_params(self, params):
        """Should reject wrongly typed params without changing state."""
        lifecycle = LifecycleManager()

        with pytest.raises(JsonRpcError) as exc_info:
            lifecycle.handle_initialize(params)

        assert exc_info.value.code == INVALID_PARAMS
        assert lifecycle.state == LifecycleState.AWAITING_INITIALIZE
        assert lifecycle.client_info is None

    def test_rejects_second_initialize(self):
        """Should refuse to initialize a session twice."""
        lifecycle = LifecycleManager()
        lifecycle.handle_initialize({})

        with pytest.raises(ProtocolError, match="already initialized"):
            lifecycle.handle_initialize({})

    def test_initialized_moves_to_ready(self):
        """Should become ready after the acknowledgment."""
        lifecycle = LifecycleManager()
        lifecycle.handle_initialize({})

        lifecycle.handle_initialized()

        assert lifecycle.is_ready
        assert lifecycle.is_initialized

    def test_initialized_before_initialize_fails(self):
        """Should reject the acknowledgment before initialize."""
        lifecycle = LifecycleManager()

        with pytest.raises(ProtocolError):
            lifecycle.handle_initialized()

    def test_require_initialized(self):
        """Should only pass once initialize has been handled."""
        lifecycle = LifecycleManager()

        with pytest.raises(ProtocolError, match="not initialized"):
            lifecycle.require_initialized()

        lifecycle.handle_initialize({})
        lifecycle.require_initialized()
