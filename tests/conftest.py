"""Pytest configuration and shared fixtures."""

import logging

import pytest

from mcp_notes_server.notes.service import InMemoryNoteService
from mcp_notes_server.protocol.dispatcher import ProtocolDispatcher
from mcp_notes_server.tools.notes import register_note_tools
from mcp_notes_server.tools.registry import ToolRegistry


@pytest.fixture
def anyio_backend():
    """Run async tests on asyncio only."""
    return "asyncio"


@pytest.fixture
def note_service():
    return InMemoryNoteService()


@pytest.fixture
def registry(note_service):
    """Registry populated with the four note tools."""
    registry = ToolRegistry()
    register_note_tools(registry, note_service)
    return registry


@pytest.fixture
def dispatcher(registry):
    return ProtocolDispatcher(registry, server_info={"name": "test-server", "version": "9.9.9"})


@pytest.fixture
def restore_root_logger():
    """Undo configure_logging changes to the root logger."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
