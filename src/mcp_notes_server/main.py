"""MCP Notes Server - main entry point.

Serves the note tools over the MCP streamable HTTP transport.

================================================================================
DEVELOPER GUIDE: Adding Tools
================================================================================

1. WRITE A HANDLER
   A handler takes the validated ``arguments`` dict and returns text or a
   ToolResult. Raise ToolExecutionError for failures the client should see.

2. REGISTER IT
   Call ``registry.register(name, description, schema, handler)`` in
   ``create_app`` (see mcp_notes_server/app.py), next to
   ``register_note_tools``. The schema is JSON Schema Draft 2020-12 and is
   enforced before the handler runs.

EXAMPLE
-------

    def word_count(arguments):
        return str(len(arguments["text"].split()))

    registry.register(
        "word_count",
        "Count the words in a text",
        {
            "type": "object",
            "properties": {"text": {"type": "string"}},
            "required": ["text"],
        },
        word_count,
    )

The tool appears in tools/list for every session from then on.

================================================================================
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import uvicorn

from mcp_notes_server.app import create_app
from mcp_notes_server.config import ConfigLoadError, ServerConfig, load_config
from mcp_notes_server.logging_config import configure_logging
from mcp_notes_server.notes.service import NoteStorageError

logger = logging.getLogger("mcp_notes_server")


def main(argv: list[str] | None = None) -> int:
    """Run the MCP notes server.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        description="MCP Notes Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Path to server configuration YAML file (defaults apply when omitted)",
    )
    parser.add_argument("--host", default=None, help="Override server.host")
    parser.add_argument("--port", type=int, default=None, help="Override server.port")
    parser.add_argument(
        "--version",
        "-v",
        action="version",
        version="mcp-notes-server 1.0.0",
    )

    args = parser.parse_args(argv)

    try:
        config = load_config(args.config) if args.config else ServerConfig()
    except ConfigLoadError as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1

    if args.host:
        config.host = args.host
    if args.port is not None:
        config.port = args.port

    configure_logging(config.log_level, config.log_format)

    try:
        app = create_app(config)
    except (NoteStorageError, OSError) as e:
        logger.error("Error starting server: %s", e)
        return 1

    logger.info(
        "MCP Notes Server starting on http://%s:%d%s", config.host, config.port, config.mcp_path
    )
    if args.config:
        logger.info("Configuration loaded from: %s", args.config)

    try:
        uvicorn.run(
            app,
            host=config.host,
            port=config.port,
            log_level=config.log_level.lower(),
            log_config=None,
            access_log=False,
        )
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
        return 130  # Standard exit code for SIGINT

    return 0


if __name__ == "__main__":
    sys.exit(main())
