"""Tool definitions and results.

Defines the data structures exchanged between the tool registry and the
protocol dispatcher.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any


def text_block(text: str) -> dict[str, str]:
    """Build a single MCP text content block."""
    return {"type": "text", "text": text}


@dataclass(frozen=True)
class ToolDefinition:
    """Definition of a registered tool."""

    name: str
    description: str
    input_schema: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        """Convert to MCP tool format.

        Returns:
            Dictionary in MCP tools/list format.
        """
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


@dataclass
class ToolResult:
    """Result of a tool execution."""

    content: list[dict[str, Any]] = field(default_factory=list)
    is_error: bool = False

    @classmethod
    def text(cls, text: str) -> ToolResult:
        """Successful result carrying one text block."""
        return cls(content=[text_block(text)])

    @classmethod
    def error(cls, text: str) -> ToolResult:
        """Error-flagged result carrying one text block."""
        return cls(content=[text_block(text)], is_error=True)

    def to_dict(self) -> dict[str, Any]:
        """Convert to MCP result format.

        Returns:
            Dictionary in MCP tools/call result format.
        """
        return {
            "content": self.content,
            "isError": self.is_error,
        }


# A handler receives validated arguments and returns either a ToolResult or
# plain text, which the registry wraps in a single text block.
ToolHandler = Callable[[dict[str, Any]], "ToolResult | str"]
