"""JSON-RPC framing, MCP lifecycle and request dispatch."""

from mcp_notes_server.protocol.dispatcher import ProtocolDispatcher
from mcp_notes_server.protocol.jsonrpc import (
    JsonRpcError,
    JsonRpcNotification,
    JsonRpcRequest,
    McpMethod,
    parse_message,
)
from mcp_notes_server.protocol.lifecycle import LifecycleManager, LifecycleState, ProtocolError

__all__ = [
    "JsonRpcError",
    "JsonRpcNotification",
    "JsonRpcRequest",
    "LifecycleManager",
    "LifecycleState",
    "McpMethod",
    "ProtocolDispatcher",
    "ProtocolError",
    "parse_message",
]
