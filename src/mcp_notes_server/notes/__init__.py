"""Note storage collaborators."""

from mcp_notes_server.notes.models import InvalidNoteError, Note
from mcp_notes_server.notes.service import (
    FileNoteService,
    InMemoryNoteService,
    NoteService,
    NoteStorageError,
)

__all__ = [
    "FileNoteService",
    "InMemoryNoteService",
    "InvalidNoteError",
    "Note",
    "NoteService",
    "NoteStorageError",
]
