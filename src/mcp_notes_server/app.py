"""Starlette application factory.

Wires configuration, note storage, the tool registry, the protocol
dispatcher, the session manager and the HTTP transport together.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncIterator
from pathlib import Path

import anyio
from starlette.applications import Starlette

from mcp_notes_server.audit import AuditLogger
from mcp_notes_server.config import ServerConfig
from mcp_notes_server.notes.service import FileNoteService, InMemoryNoteService, NoteService
from mcp_notes_server.protocol.dispatcher import ProtocolDispatcher
from mcp_notes_server.session import SessionManager
from mcp_notes_server.tools.notes import register_note_tools
from mcp_notes_server.tools.registry import ToolRegistry
from mcp_notes_server.transport import McpTransport

logger = logging.getLogger(__name__)


def build_note_service(config: ServerConfig) -> NoteService:
    """Create the Note Service selected by ``storage.backend``."""
    if config.storage_backend == "file":
        logger.info("Storing notes in %s", config.notes_dir)
        return FileNoteService(Path(config.notes_dir))
    return InMemoryNoteService()


def create_app(
    config: ServerConfig | None = None,
    note_service: NoteService | None = None,
) -> Starlette:
    """Build the MCP notes application.

    Args:
        config: Server configuration (defaults apply when omitted).
        note_service: Note Service override; built from the config otherwise.

    Returns:
        Starlette app exposing the MCP endpoint. Components are available on
        ``app.state`` (``registry``, ``dispatcher``, ``sessions``, ``transport``).
    """
    config = config or ServerConfig()
    notes = note_service if note_service is not None else build_note_service(config)

    registry = ToolRegistry()
    register_note_tools(registry, notes)

    audit_logger = AuditLogger(Path(config.audit_log_file)) if config.audit_log_file else None

    dispatcher = ProtocolDispatcher(
        registry,
        server_info=config.server_info,
        audit_logger=audit_logger,
    )
    sessions = SessionManager(
        new_lifecycle=dispatcher.new_lifecycle,
        idle_timeout=config.session_idle_timeout,
    )
    transport = McpTransport(
        sessions,
        dispatcher,
        path=config.mcp_path,
        max_message_size=config.max_message_size,
        allowed_origins=config.allowed_origins,
        allowed_hosts=config.allowed_hosts,
        audit_logger=audit_logger,
    )

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        try:
            async with anyio.create_task_group() as tg:
                if sessions.idle_timeout is not None:
                    tg.start_soon(sessions.run_reaper, config.session_reap_interval)
                logger.info("MCP endpoint ready at %s (%d tools)", transport.path, len(registry))
                yield
                tg.cancel_scope.cancel()
        finally:
            # Outside the cancelled scope so session locks can still be acquired
            await sessions.shutdown()
            if audit_logger:
                audit_logger.close()

    app = Starlette(routes=transport.routes(), lifespan=lifespan)
    app.state.config = config
    app.state.registry = registry
    app.state.dispatcher = dispatcher
    app.state.sessions = sessions
    app.state.transport = transport
    return app
