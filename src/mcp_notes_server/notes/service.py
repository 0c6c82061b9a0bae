"""Note Service collaborators.

The protocol engine only talks to notes through the ``NoteService``
interface; these implementations keep notes in memory or as text files.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Protocol

from mcp_notes_server.notes.models import InvalidNoteError, Note

logger = logging.getLogger(__name__)


class NoteStorageError(Exception):
    """Raised when the storage backend fails."""

    pass


class NoteService(Protocol):
    """Interface consumed by the note tools."""

    def create_note(self, title: str, content: str) -> Note: ...

    def get_note_by_id(self, note_id: str) -> Note | None: ...

    def get_all_notes(self) -> list[Note]: ...

    def delete_by_id(self, note_id: str) -> bool: ...


class InMemoryNoteService:
    """Keeps notes in a dictionary. Used for tests and the ``memory`` backend."""

    def __init__(self) -> None:
        self._notes: dict[str, Note] = {}
        self._lock = threading.Lock()

    def create_note(self, title: str, content: str) -> Note:
        note = Note(title=title, content=content)
        note.validate()
        with self._lock:
            self._notes[note.id] = note
        logger.info("Note created: %s", note.id)
        return note

    def get_note_by_id(self, note_id: str) -> Note | None:
        with self._lock:
            return self._notes.get(note_id)

    def get_all_notes(self) -> list[Note]:
        """All notes, newest first."""
        with self._lock:
            notes = list(self._notes.values())
        return sorted(notes, key=lambda n: n.created_at, reverse=True)

    def delete_by_id(self, note_id: str) -> bool:
        with self._lock:
            removed = self._notes.pop(note_id, None)
        if removed is not None:
            logger.info("Note deleted: %s", note_id)
        return removed is not None


class FileNoteService:
    """Stores one text file per note in a directory.

    Files are named ``<id>_<sanitised title>.txt``; the header carries the
    id, title and creation time, followed by the note body.
    """

    def __init__(self, notes_dir: Path) -> None:
        """Initialize the service.

        Args:
            notes_dir: Directory holding the note files (created if missing).

        Raises:
            NoteStorageError: If the directory cannot be created.
        """
        self._notes_dir = Path(notes_dir)
        self._lock = threading.Lock()
        try:
            self._notes_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise NoteStorageError(f"Cannot create notes directory {notes_dir}: {e}") from e

    @property
    def notes_dir(self) -> Path:
        return self._notes_dir

    def _find_file(self, note_id: str) -> Path | None:
        matches = sorted(self._notes_dir.glob(f"{note_id}_*.txt"))
        return matches[0] if matches else None

    def _read(self, path: Path) -> Note:
        try:
            return Note.from_file_content(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise NoteStorageError(f"Failed to read note file {path.name}: {e}") from e

    def create_note(self, title: str, content: str) -> Note:
        note = Note(title=title, content=content)
        note.validate()
        path = self._notes_dir / note.filename()
        try:
            with self._lock:
                path.write_text(note.to_file_content(), encoding="utf-8")
        except OSError as e:
            raise NoteStorageError(f"Failed to write note file {path.name}: {e}") from e
        logger.info("Note created: %s (%s)", note.id, path.name)
        return note

    def get_note_by_id(self, note_id: str) -> Note | None:
        with self._lock:
            path = self._find_file(note_id)
            if path is None:
                logger.debug("Note not found: %s", note_id)
                return None
            note = self._read(path)
        # Guard against an id that is a prefix of another id
        return note if note.id == note_id else None

    def get_all_notes(self) -> list[Note]:
        """All readable notes, newest first. Corrupt files are skipped."""
        notes: list[Note] = []
        with self._lock:
            for path in sorted(self._notes_dir.glob("*.txt")):
                try:
                    notes.append(self._read(path))
                except (InvalidNoteError, NoteStorageError) as e:
                    logger.warning("Skipping corrupted note file %s: %s", path.name, e)
        notes.sort(key=lambda n: n.created_at, reverse=True)
        return notes

    def delete_by_id(self, note_id: str) -> bool:
        with self._lock:
            path = self._find_file(note_id)
            if path is None:
                return False
            try:
                path.unlink()
            except FileNotFoundError:
                return False
            except OSError as e:
                raise NoteStorageError(f"Failed to delete note file {path.name}: {e}") from e
        logger.info("Note deleted: %s", note_id)
        return True
