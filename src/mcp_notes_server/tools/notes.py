"""Note tools: create_note, get_note, list_notes, delete_note."""

from __future__ import annotations

import logging
from typing import Any

from mcp_notes_server.notes.models import (
    MAX_CONTENT_LENGTH,
    MAX_TITLE_LENGTH,
    NOTE_ID_PATTERN,
    InvalidNoteError,
    Note,
    format_timestamp,
)
from mcp_notes_server.notes.service import NoteService, NoteStorageError
from mcp_notes_server.tools.registry import ToolExecutionError, ToolRegistry

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 80

CREATE_NOTE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "title": {
            "type": "string",
            "minLength": 1,
            "maxLength": MAX_TITLE_LENGTH,
            "not": {"pattern": "[\\r\\n]"},
            "description": "The title of the note (a single line)",
        },
        "content": {
            "type": "string",
            "maxLength": MAX_CONTENT_LENGTH,
            "description": "The content/body of the note",
        },
    },
    "required": ["title", "content"],
    "additionalProperties": False,
}

NOTE_ID_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "id": {
            "type": "string",
            "pattern": NOTE_ID_PATTERN,
            "description": "The unique identifier of the note",
        },
    },
    "required": ["id"],
    "additionalProperties": False,
}

LIST_NOTES_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {},
    "additionalProperties": False,
}


def _preview(content: str) -> str:
    if len(content) > PREVIEW_LENGTH:
        return content[:PREVIEW_LENGTH] + "..."
    return content


class NoteTools:
    """Tool handlers bound to a Note Service."""

    def __init__(self, notes: NoteService) -> None:
        self._notes = notes

    def create_note(self, arguments: dict[str, Any]) -> str:
        try:
            note = self._notes.create_note(arguments["title"], arguments["content"])
        except (InvalidNoteError, NoteStorageError) as e:
            raise ToolExecutionError(f"Failed to create note: {e}") from e

        return (
            "Note created successfully!\n\n"
            f"Title: {note.title}\n"
            f"ID: {note.id}\n"
            f"Created: {format_timestamp(note.created_at)}\n\n"
            f"The note can be retrieved with get_note using ID: {note.id}"
        )

    def get_note(self, arguments: dict[str, Any]) -> str:
        note = self._fetch(arguments["id"])
        return (
            "Note Details\n\n"
            f"Title: {note.title}\n"
            f"ID: {note.id}\n"
            f"Created: {format_timestamp(note.created_at)}\n\n"
            f"Content:\n{note.content}"
        )

    def list_notes(self, arguments: dict[str, Any]) -> str:
        try:
            notes = self._notes.get_all_notes()
        except NoteStorageError as e:
            raise ToolExecutionError(f"Failed to list notes: {e}") from e

        if not notes:
            return "No notes found. Create your first note using the create_note tool!"

        entries = [
            f"{index}. {note.title} (ID: {note.id})\n"
            f"   Created: {format_timestamp(note.created_at)}\n"
            f"   Preview: {_preview(note.content)}"
            for index, note in enumerate(notes, start=1)
        ]
        listing = "\n\n".join(entries)
        return (
            f"Found {len(notes)} note(s):\n\n{listing}\n\n"
            "Use get_note with an ID to view the full content of any note."
        )

    def delete_note(self, arguments: dict[str, Any]) -> str:
        note_id = arguments["id"]
        try:
            deleted = self._notes.delete_by_id(note_id)
        except NoteStorageError as e:
            raise ToolExecutionError(f"Failed to delete note: {e}") from e

        if not deleted:
            raise ToolExecutionError(f"Note not found: {note_id}")
        return f"Note deleted successfully!\n\nID: {note_id}"

    def _fetch(self, note_id: str) -> Note:
        try:
            note = self._notes.get_note_by_id(note_id)
        except NoteStorageError as e:
            raise ToolExecutionError(f"Failed to retrieve note: {e}") from e
        if note is None:
            raise ToolExecutionError(f"Note not found: {note_id}")
        return note


def register_note_tools(registry: ToolRegistry, notes: NoteService) -> None:
    """Register the note tools on a registry.

    Args:
        registry: Registry to populate.
        notes: Note Service the handlers call into.

    Raises:
        ToolRegistrationError: If any of the names is already registered.
    """
    tools = NoteTools(notes)
    registry.register(
        "create_note",
        "Create a new note with title and content",
        CREATE_NOTE_SCHEMA,
        tools.create_note,
    )
    registry.register(
        "get_note",
        "Retrieve a note by its unique ID",
        NOTE_ID_SCHEMA,
        tools.get_note,
    )
    registry.register(
        "list_notes",
        "List all available notes with their metadata",
        LIST_NOTES_SCHEMA,
        tools.list_notes,
    )
    registry.register(
        "delete_note",
        "Delete a note by its unique ID",
        NOTE_ID_SCHEMA,
        tools.delete_note,
    )
    logger.info("Note tools registered (%d tools total)", len(registry))
