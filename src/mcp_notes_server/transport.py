"""Streamable HTTP transport.

Maps the three HTTP interactions on the MCP endpoint onto the session
manager and the protocol dispatcher:

- POST   client-to-server JSON-RPC messages
- GET    server-to-client messages as a Server-Sent Events stream
- DELETE explicit session termination
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

from sse_starlette import EventSourceResponse
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from mcp_notes_server.audit import AuditLogger
from mcp_notes_server.protocol.dispatcher import ProtocolDispatcher
from mcp_notes_server.protocol.jsonrpc import (
    MAX_MESSAGE_SIZE,
    JsonRpcError,
    JsonRpcRequest,
    McpMethod,
    build_error,
    parse_message,
)
from mcp_notes_server.session import Session, SessionManager

logger = logging.getLogger(__name__)

# Starlette header lookups are case-insensitive
MCP_SESSION_ID_HEADER = "mcp-session-id"
# Response header name as sent to clients
MCP_SESSION_ID_RESPONSE_HEADER = "Mcp-Session-Id"

INVALID_SESSION_MESSAGE = "Invalid or missing session ID"


def _status_body(status_code: int, **fields: Any) -> JSONResponse:
    return JSONResponse({**fields, "statusCode": status_code}, status_code=status_code)


class McpTransport:
    """HTTP handlers for one MCP endpoint."""

    def __init__(
        self,
        sessions: SessionManager,
        dispatcher: ProtocolDispatcher,
        path: str = "/mcp",
        max_message_size: int = MAX_MESSAGE_SIZE,
        allowed_origins: list[str] | None = None,
        allowed_hosts: list[str] | None = None,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            sessions: Session manager owning all sessions.
            dispatcher: Dispatcher that executes JSON-RPC messages.
            path: URL path of the MCP endpoint.
            max_message_size: Maximum accepted POST body size in bytes.
            allowed_origins: If non-empty, requests with an Origin header
                outside this list are rejected.
            allowed_hosts: If non-empty, requests whose Host header is
                outside this list are rejected. Entries match either the
                full ``host:port`` value or the bare host name.
            audit_logger: Optional audit log for rejected requests.
        """
        self._sessions = sessions
        self._dispatcher = dispatcher
        self._path = path
        self._max_message_size = max_message_size
        self._allowed_origins = set(allowed_origins or [])
        self._allowed_hosts = set(allowed_hosts or [])
        self._audit_logger = audit_logger

    @property
    def path(self) -> str:
        return self._path

    def routes(self) -> list[Route]:
        """The POST/GET/DELETE handler triple for the host application."""
        return [
            Route(self._path, self.handle_post, methods=["POST"]),
            Route(self._path, self.handle_get, methods=["GET"]),
            Route(self._path, self.handle_delete, methods=["DELETE"]),
        ]

    async def handle_post(self, request: Request) -> Response:
        """Handle a client-to-server JSON-RPC message."""
        rejected = self._check_request(request)
        if rejected is not None:
            return rejected

        body = await request.body()
        try:
            message = parse_message(body, self._max_message_size)
        except JsonRpcError as e:
            logger.info("Rejected malformed message: %s", e.message)
            return JSONResponse(build_error(None, e.code, e.message), status_code=400)

        created = False
        session_id = request.headers.get(MCP_SESSION_ID_HEADER)
        if session_id:
            session = self._sessions.get_session(session_id)
            if session is None:
                return self._invalid_session(request, session_id)
        elif isinstance(message, JsonRpcRequest) and message.kind is McpMethod.INITIALIZE:
            session = self._sessions.create_session()
            created = True
        else:
            return self._invalid_session(request, None)

        async with session.lock:
            # Terminated while this request waited for the lock
            if not session.is_open:
                return self._invalid_session(request, session.session_id)
            session.touch()
            response = await run_in_threadpool(
                self._dispatcher.dispatch, message, session.lifecycle, session.session_id
            )

        headers: dict[str, str] = {}
        if created:
            if response is not None and "error" in response:
                # Failed handshake must not leave an orphaned session behind
                await self._sessions.terminate_session(session.session_id)
            else:
                headers[MCP_SESSION_ID_RESPONSE_HEADER] = session.session_id
                logger.info(
                    "New MCP session established",
                    extra={"session_id": session.session_id},
                )

        if response is None:
            return Response(status_code=200, headers=headers)
        return JSONResponse(response, headers=headers)

    async def handle_get(self, request: Request) -> Response:
        """Open the server-to-client event stream for a session."""
        rejected = self._check_request(request)
        if rejected is not None:
            return rejected

        session = self._resolve_session(request)
        if session is None:
            return self._invalid_session(request, request.headers.get(MCP_SESSION_ID_HEADER))

        if not session.stream.attach():
            return _status_body(409, error="An event stream is already open for this session")

        logger.debug("Event stream opened", extra={"session_id": session.session_id})
        return EventSourceResponse(self.stream_events(session))

    async def stream_events(self, session: Session) -> AsyncIterator[dict[str, str]]:
        """Relay a session's outbound messages as SSE events.

        Ends when the session is terminated; a client disconnect cancels the
        iteration. Either way the stream is detached but the session lives on.
        """
        try:
            async for message in session.stream:
                session.touch()
                yield {"event": "message", "data": message}
        finally:
            session.stream.detach()
            logger.debug("Event stream closed", extra={"session_id": session.session_id})

    async def handle_delete(self, request: Request) -> Response:
        """Terminate a session."""
        rejected = self._check_request(request)
        if rejected is not None:
            return rejected

        session_id = request.headers.get(MCP_SESSION_ID_HEADER)
        if not session_id or not await self._sessions.terminate_session(session_id):
            return self._invalid_session(request, session_id)

        return _status_body(200, message="MCP session terminated successfully")

    def _resolve_session(self, request: Request) -> Session | None:
        session_id = request.headers.get(MCP_SESSION_ID_HEADER)
        if not session_id:
            return None
        return self._sessions.get_session(session_id)

    def _check_request(self, request: Request) -> Response | None:
        return self._check_host(request) or self._check_origin(request)

    def _check_host(self, request: Request) -> Response | None:
        if not self._allowed_hosts:
            return None
        host = request.headers.get("host", "")
        # Entries may name a bare host or a host:port pair
        if host in self._allowed_hosts or host.rsplit(":", 1)[0] in self._allowed_hosts:
            return None

        logger.warning("Rejected %s for disallowed host %s", request.method, host)
        if self._audit_logger:
            self._audit_logger.log_security_event(
                "host_rejected", {"host": host, "method": request.method}
            )
        return _status_body(403, error="Host not allowed")

    def _check_origin(self, request: Request) -> Response | None:
        if not self._allowed_origins:
            return None
        origin = request.headers.get("origin")
        if origin is None or origin in self._allowed_origins:
            return None

        logger.warning("Rejected %s from disallowed origin %s", request.method, origin)
        if self._audit_logger:
            self._audit_logger.log_security_event(
                "origin_rejected", {"origin": origin, "method": request.method}
            )
        return _status_body(403, error="Origin not allowed")

    def _invalid_session(self, request: Request, session_id: str | None) -> Response:
        logger.info("Rejected %s with invalid session id %r", request.method, session_id)
        if self._audit_logger:
            self._audit_logger.log_security_event(
                "invalid_session", {"session_id": session_id, "method": request.method}
            )
        return _status_body(400, error=INVALID_SESSION_MESSAGE)
