"""Protocol dispatcher - routes JSON-RPC messages to MCP method handlers.

The dispatcher knows nothing about HTTP: it takes a parsed message and the
lifecycle of the session it arrived on, and returns the response object (or
None for notifications).
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from mcp_notes_server.audit import AuditLogger
from mcp_notes_server.protocol.jsonrpc import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    JsonRpcError,
    JsonRpcMessage,
    JsonRpcNotification,
    JsonRpcRequest,
    McpMethod,
    build_error,
    build_response,
)
from mcp_notes_server.protocol.lifecycle import LifecycleManager, ProtocolError
from mcp_notes_server.tools.registry import (
    InvalidToolArguments,
    ToolNotFoundError,
    ToolRegistry,
)

logger = logging.getLogger(__name__)

RequestHandler = Callable[[dict[str, Any], LifecycleManager, str], Any]


class ProtocolDispatcher:
    """Dispatches MCP requests for any number of sessions.

    Handles:
    - The initialize/initialized handshake
    - tools/list and tools/call against a ToolRegistry
    - JSON-RPC error mapping
    """

    def __init__(
        self,
        registry: ToolRegistry,
        server_info: dict[str, str] | None = None,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            registry: Tool registry serving tools/list and tools/call.
            server_info: ``{"name", "version"}`` reported by initialize.
            audit_logger: Optional audit log for tool executions.
        """
        self._registry = registry
        self._server_info = dict(server_info or {"name": "notes-server", "version": "1.0.0"})
        self._audit_logger = audit_logger
        self._handlers: dict[McpMethod, RequestHandler] = {
            McpMethod.INITIALIZE: self._handle_initialize,
            McpMethod.TOOLS_LIST: self._handle_tools_list,
            McpMethod.TOOLS_CALL: self._handle_tools_call,
        }

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    def new_lifecycle(self) -> LifecycleManager:
        """Create the lifecycle state for a new session."""
        return LifecycleManager(server_info=dict(self._server_info))

    def dispatch(
        self,
        message: JsonRpcMessage,
        lifecycle: LifecycleManager,
        session_id: str = "",
    ) -> dict[str, Any] | None:
        """Handle one parsed JSON-RPC message.

        Args:
            message: Parsed request or notification.
            lifecycle: Lifecycle state of the session the message belongs to.
            session_id: Session identifier, used for logging and auditing.

        Returns:
            JSON-RPC response object, or None for notifications.
        """
        # The initialized acknowledgment never carries a response, even with an id
        if isinstance(message, JsonRpcNotification) or message.kind is McpMethod.INITIALIZED:
            self._handle_notification(message, lifecycle, session_id)
            return None
        return self._handle_request(message, lifecycle, session_id)

    def _handle_notification(
        self,
        notification: JsonRpcMessage,
        lifecycle: LifecycleManager,
        session_id: str,
    ) -> None:
        if notification.kind is McpMethod.INITIALIZED:
            try:
                lifecycle.handle_initialized()
                logger.info("Session %s ready", session_id)
            except ProtocolError as e:
                logger.warning("Ignoring initialized notification on %s: %s", session_id, e)
            return
        logger.debug("Ignoring notification %s on %s", notification.method, session_id)

    def _handle_request(
        self,
        request: JsonRpcRequest,
        lifecycle: LifecycleManager,
        session_id: str,
    ) -> dict[str, Any]:
        msg_id = request.id
        if request.kind is None:
            return build_error(msg_id, METHOD_NOT_FOUND, f"Method not found: {request.method}")

        handler = self._handlers[request.kind]
        try:
            result = handler(request.params or {}, lifecycle, session_id)
        except JsonRpcError as e:
            return build_error(msg_id, e.code, e.message, e.data)
        except ProtocolError as e:
            return build_error(msg_id, INVALID_REQUEST, str(e))
        except Exception as e:
            logger.exception("Internal error handling %s on %s", request.method, session_id)
            return build_error(msg_id, INTERNAL_ERROR, f"Internal error: {e}")

        return build_response(msg_id, result)

    def _handle_initialize(
        self, params: dict[str, Any], lifecycle: LifecycleManager, session_id: str
    ) -> dict[str, Any]:
        result = lifecycle.handle_initialize(params)
        client = lifecycle.client_info or {}
        logger.info(
            "Session %s initialized by %s %s (protocol %s)",
            session_id,
            client.get("name", "unknown"),
            client.get("version", ""),
            result["protocolVersion"],
        )
        return result

    def _handle_tools_list(
        self, params: dict[str, Any], lifecycle: LifecycleManager, session_id: str
    ) -> dict[str, Any]:
        lifecycle.require_initialized()
        return {"tools": self._registry.list_tools()}

    def _handle_tools_call(
        self, params: dict[str, Any], lifecycle: LifecycleManager, session_id: str
    ) -> dict[str, Any]:
        lifecycle.require_initialized()

        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise JsonRpcError(INVALID_PARAMS, "Invalid params: tool name is required")

        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise JsonRpcError(INVALID_PARAMS, "Invalid params: arguments must be an object")

        request_id = f"{session_id}:{time.monotonic_ns()}"
        if self._audit_logger:
            self._audit_logger.log_request(request_id, name, arguments)

        start = time.perf_counter()
        status = "invalid"
        try:
            result = self._registry.invoke(name, arguments)
            status = "error" if result.is_error else "success"
        except (ToolNotFoundError, InvalidToolArguments) as e:
            raise JsonRpcError(INVALID_PARAMS, f"Invalid params: {e}") from e
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            if self._audit_logger:
                self._audit_logger.log_response(request_id, status, duration_ms)
            logger.info("Tool %s on %s: %s (%.1f ms)", name, session_id, status, duration_ms)

        return result.to_dict()
