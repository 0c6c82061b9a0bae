"""Tool registry - validates arguments and routes calls to tool handlers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError, best_match

from mcp_notes_server.tools.base import ToolDefinition, ToolHandler, ToolResult

logger = logging.getLogger(__name__)


class ToolRegistrationError(Exception):
    """Raised when a tool cannot be registered (duplicate name, bad schema)."""

    pass


class ToolNotFoundError(Exception):
    """Raised when a tool is not found."""

    pass


class InvalidToolArguments(Exception):
    """Raised when tool arguments do not satisfy the tool's input schema."""

    pass


class ToolExecutionError(Exception):
    """Business-rule failure raised by a tool handler.

    The message is shown to the client verbatim in an error-flagged result.
    """

    pass


@dataclass(frozen=True)
class _RegisteredTool:
    definition: ToolDefinition
    validator: Draft202012Validator
    handler: ToolHandler


class ToolRegistry:
    """Catalog of invocable tools.

    Each entry pairs a JSON Schema for its arguments with a handler. Tools
    are listed in registration order.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._tools: dict[str, _RegisteredTool] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def register(
        self,
        name: str,
        description: str,
        schema: dict[str, Any],
        handler: ToolHandler,
    ) -> ToolDefinition:
        """Register a tool.

        Args:
            name: Unique tool name.
            description: Human-readable description shown to clients.
            schema: JSON Schema (Draft 2020-12) for the tool arguments.
            handler: Callable receiving the validated arguments.

        Returns:
            The registered ToolDefinition.

        Raises:
            ToolRegistrationError: If the name is taken or the schema is invalid.
        """
        if name in self._tools:
            raise ToolRegistrationError(f"Tool already registered: {name}")

        try:
            Draft202012Validator.check_schema(schema)
        except SchemaError as e:
            raise ToolRegistrationError(f"Invalid schema for tool {name}: {e.message}") from e

        definition = ToolDefinition(name=name, description=description, input_schema=schema)
        validator = Draft202012Validator(schema, format_checker=Draft202012Validator.FORMAT_CHECKER)
        self._tools[name] = _RegisteredTool(definition, validator, handler)
        logger.debug("Registered tool %s", name)
        return definition

    def list_tools(self) -> list[dict[str, Any]]:
        """List all registered tools in MCP format.

        Returns:
            List of tool definitions in MCP format.
        """
        return [tool.definition.to_dict() for tool in self._tools.values()]

    def validate_arguments(self, name: str, arguments: dict[str, Any]) -> None:
        """Validate arguments against a tool's schema.

        Raises:
            ToolNotFoundError: If the tool is not registered.
            InvalidToolArguments: If the arguments violate the schema.
        """
        tool = self._lookup(name)
        error = best_match(tool.validator.iter_errors(arguments))
        if error is not None:
            path = ".".join(str(p) for p in error.path) if error.path else "root"
            raise InvalidToolArguments(f"Invalid arguments for {name} at '{path}': {error.message}")

    def invoke(self, name: str, arguments: dict[str, Any]) -> ToolResult:
        """Validate arguments and call a tool.

        Args:
            name: Name of the tool to call.
            arguments: Arguments to pass to the tool.

        Returns:
            ToolResult from the handler. Handler failures are returned as
            error-flagged results rather than raised.

        Raises:
            ToolNotFoundError: If the tool is not registered.
            InvalidToolArguments: If the arguments violate the schema.
        """
        self.validate_arguments(name, arguments)
        tool = self._tools[name]

        try:
            outcome = tool.handler(arguments)
        except ToolExecutionError as e:
            logger.info("Tool %s reported failure: %s", name, e)
            return ToolResult.error(str(e))
        except Exception as e:
            logger.exception("Tool %s raised an unexpected error", name)
            return ToolResult.error(f"Tool '{name}' execution failed: {e}")

        if isinstance(outcome, ToolResult):
            return outcome
        return ToolResult.text(str(outcome))

    def _lookup(self, name: str) -> _RegisteredTool:
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(f"Unknown tool: {name}")
        return tool
