"""Tool registry and the note tools."""

from mcp_notes_server.tools.base import ToolDefinition, ToolResult, text_block
from mcp_notes_server.tools.notes import register_note_tools
from mcp_notes_server.tools.registry import (
    InvalidToolArguments,
    ToolExecutionError,
    ToolNotFoundError,
    ToolRegistrationError,
    ToolRegistry,
)

__all__ = [
    "InvalidToolArguments",
    "ToolDefinition",
    "ToolExecutionError",
    "ToolNotFoundError",
    "ToolRegistrationError",
    "ToolRegistry",
    "ToolResult",
    "register_note_tools",
    "text_block",
]
