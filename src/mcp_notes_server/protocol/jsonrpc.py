"""JSON-RPC 2.0 message parsing and formatting.

Implements the subset of JSON-RPC 2.0 that MCP uses over HTTP: single
request/notification objects in, single response objects out.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Standard JSON-RPC 2.0 error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

# Maximum message size (1 MB)
MAX_MESSAGE_SIZE = 1_048_576


class McpMethod(Enum):
    """The closed set of MCP methods this server understands."""

    INITIALIZE = "initialize"
    INITIALIZED = "notifications/initialized"
    TOOLS_LIST = "tools/list"
    TOOLS_CALL = "tools/call"

    @classmethod
    def resolve(cls, name: str) -> McpMethod | None:
        """Resolve a wire method name, or None if it is not supported."""
        try:
            return cls(name)
        except ValueError:
            return None


class JsonRpcError(Exception):
    """JSON-RPC error with code and message."""

    def __init__(self, code: int, message: str, data: Any | None = None) -> None:
        """Initialize the error.

        Args:
            code: JSON-RPC error code.
            message: Human-readable error message.
            data: Optional additional error data.
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data


@dataclass
class JsonRpcRequest:
    """Represents a JSON-RPC request (has id)."""

    id: int | float | str
    method: str
    params: dict[str, Any] | None = None
    kind: McpMethod | None = field(default=None, compare=False)


@dataclass
class JsonRpcNotification:
    """Represents a JSON-RPC notification (no id)."""

    method: str
    params: dict[str, Any] | None = None
    kind: McpMethod | None = field(default=None, compare=False)


JsonRpcMessage = JsonRpcRequest | JsonRpcNotification


def parse_message(raw: str | bytes, max_size: int = MAX_MESSAGE_SIZE) -> JsonRpcMessage:
    """Parse a JSON-RPC message from a string.

    Args:
        raw: Raw JSON text (str or UTF-8 bytes).
        max_size: Maximum accepted message size in bytes.

    Returns:
        Parsed request or notification, with its MCP method resolved.

    Raises:
        JsonRpcError: If the message is invalid.
    """
    # Size is checked before decoding
    if len(raw) > max_size:
        raise JsonRpcError(
            PARSE_ERROR, f"Message too large: {len(raw)} bytes exceeds {max_size} limit"
        )

    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise JsonRpcError(PARSE_ERROR, f"Parse error: {e}") from e

    return parse_payload(data)


def parse_payload(data: Any) -> JsonRpcMessage:
    """Validate an already-decoded JSON value as a JSON-RPC message.

    Args:
        data: Decoded JSON value.

    Returns:
        Parsed request or notification.

    Raises:
        JsonRpcError: If the envelope is invalid.
    """
    if not isinstance(data, dict):
        raise JsonRpcError(INVALID_REQUEST, "Invalid Request: message must be an object")

    if data.get("jsonrpc") != "2.0":
        raise JsonRpcError(INVALID_REQUEST, "Invalid Request: jsonrpc must be '2.0'")

    method = data.get("method")
    if not isinstance(method, str) or not method:
        raise JsonRpcError(INVALID_REQUEST, "Invalid Request: method must be a string")

    params = data.get("params")
    if params is not None and not isinstance(params, dict):
        raise JsonRpcError(INVALID_REQUEST, "Invalid Request: params must be an object")

    kind = McpMethod.resolve(method)

    # A null id is treated the same as an absent one
    msg_id = data.get("id")
    if msg_id is None:
        return JsonRpcNotification(method=method, params=params, kind=kind)

    # bool is a subclass of int but is not a valid id
    if isinstance(msg_id, bool) or not isinstance(msg_id, int | float | str):
        raise JsonRpcError(INVALID_REQUEST, "Invalid Request: id must be a number or string")
    # NaN and Infinity cannot be echoed back as JSON
    if isinstance(msg_id, float) and not math.isfinite(msg_id):
        raise JsonRpcError(INVALID_REQUEST, "Invalid Request: id must be a finite number")
    return JsonRpcRequest(id=msg_id, method=method, params=params, kind=kind)


def build_response(msg_id: int | float | str, result: Any) -> dict[str, Any]:
    """Build a successful JSON-RPC response object."""
    return {
        "jsonrpc": "2.0",
        "id": msg_id,
        "result": result,
    }


def build_error(
    msg_id: int | float | str | None,
    code: int,
    message: str,
    data: Any | None = None,
) -> dict[str, Any]:
    """Build a JSON-RPC error response object."""
    error_obj: dict[str, Any] = {
        "code": code,
        "message": message,
    }
    if data is not None:
        error_obj["data"] = data

    return {
        "jsonrpc": "2.0",
        "id": msg_id,
        "error": error_obj,
    }


def format_notification(method: str, params: dict[str, Any] | None = None) -> str:
    """Format a JSON-RPC notification (server to client).

    Args:
        method: Notification method name.
        params: Optional parameters.

    Returns:
        JSON string.
    """
    notification: dict[str, Any] = {
        "jsonrpc": "2.0",
        "method": method,
    }
    if params is not None:
        notification["params"] = params

    return json.dumps(notification)
