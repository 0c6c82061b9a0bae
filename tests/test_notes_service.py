"""Tests for the note model and the Note Service implementations."""

import re
from datetime import UTC, datetime

import pytest

from mcp_notes_server.notes.models import (
    NOTE_ID_PATTERN,
    InvalidNoteError,
    Note,
    format_timestamp,
    generate_note_id,
    parse_timestamp,
)
from mcp_notes_server.notes.service import FileNoteService, InMemoryNoteService


class TestNoteModel:
    """Tests for the Note dataclass."""

    def test_generated_ids_match_pattern(self):
        """Should generate ids in the published format."""
        ids = {generate_note_id() for _ in range(50)}

        assert len(ids) == 50
        assert all(re.match(NOTE_ID_PATTERN, note_id) for note_id in ids)

    def test_timestamp_format(self):
        """Should format UTC timestamps with milliseconds and Z."""
        value = datetime(2024, 1, 15, 10, 30, 0, 123456, tzinfo=UTC)

        assert format_timestamp(value) == "2024-01-15T10:30:00.123Z"
        assert parse_timestamp("2024-01-15T10:30:00.123Z") == value.replace(microsecond=123000)

    def test_validate_rejects_bad_titles(self):
        """Should reject empty and overlong titles."""
        with pytest.raises(InvalidNoteError):
            Note(title="", content="").validate()
        with pytest.raises(InvalidNoteError):
            Note(title="x" * 256, content="").validate()

    def test_validate_rejects_line_breaks_in_title(self):
        """Should reject titles that would split the file header."""
        for title in ("a\n---", "a\r\nb", "trailing\n"):
            with pytest.raises(InvalidNoteError, match="line breaks"):
                Note(title=title, content="").validate()

    def test_filename_is_sanitised(self):
        """Should build the file name from id and cleaned title."""
        note = Note(title="Hello, World! / 2024", content="", id="note_1_abc")

        assert note.filename() == "note_1_abc_hello_world_2024.txt"

    def test_filename_for_symbol_only_title(self):
        """Should fall back to a placeholder title."""
        note = Note(title="!!!", content="", id="note_1_abc")

        assert note.filename() == "note_1_abc_untitled.txt"

    def test_file_content_round_trip(self):
        """Should parse what it writes, including multi-line content."""
        note = Note(title="Multi", content="line 1\n---\nline 3")

        parsed = Note.from_file_content(note.to_file_content())

        assert parsed.id == note.id
        assert parsed.title == "Multi"
        assert parsed.content == "line 1\n---\nline 3"
        assert format_timestamp(parsed.created_at) == format_timestamp(note.created_at)

    def test_rejects_file_without_header(self):
        """Should reject text without a header separator."""
        with pytest.raises(InvalidNoteError):
            Note.from_file_content("just some text")

    def test_rejects_incomplete_header(self):
        """Should reject a header missing a field."""
        with pytest.raises(InvalidNoteError, match="TITLE"):
            Note.from_file_content("ID: note_1_a\nCREATED: 2024-01-15T10:30:00.000Z\n---\nbody")


class TestInMemoryNoteService:
    """Tests for the in-memory Note Service."""

    def test_create_get_delete(self):
        """Should store, find and remove notes."""
        service = InMemoryNoteService()
        note = service.create_note("Title", "Body")

        assert service.get_note_by_id(note.id) is note
        assert service.delete_by_id(note.id) is True
        assert service.get_note_by_id(note.id) is None
        assert service.delete_by_id(note.id) is False

    def test_rejects_invalid_note(self):
        """Should validate before storing."""
        service = InMemoryNoteService()

        with pytest.raises(InvalidNoteError):
            service.create_note("", "Body")
        assert service.get_all_notes() == []

    def test_lists_newest_first(self):
        """Should order notes by creation time, newest first."""
        service = InMemoryNoteService()
        old = service.create_note("Old", "")
        new = service.create_note("New", "")
        old.created_at = datetime(2020, 1, 1, tzinfo=UTC)

        assert [n.id for n in service.get_all_notes()] == [new.id, old.id]


class TestFileNoteService:
    """Tests for the file-backed Note Service."""

    def test_creates_directory(self, tmp_path):
        """Should create the notes directory if missing."""
        notes_dir = tmp_path / "nested" / "notes"

        FileNoteService(notes_dir)

        assert notes_dir.is_dir()

    def test_writes_one_file_per_note(self, tmp_path):
        """Should write the note as a text file."""
        service = FileNoteService(tmp_path)
        note = service.create_note("Shopping List", "eggs")

        path = tmp_path / note.filename()
        assert path.exists()
        assert path.read_text(encoding="utf-8").startswith(f"ID: {note.id}\nTITLE: Shopping List\n")

    def test_reads_back_after_restart(self, tmp_path):
        """Should find notes written by a previous instance."""
        note = FileNoteService(tmp_path).create_note("Persist", "body")

        loaded = FileNoteService(tmp_path).get_note_by_id(note.id)

        assert loaded is not None
        assert loaded.title == "Persist"
        assert loaded.content == "body"

    def test_unknown_id(self, tmp_path):
        """Should return None for unknown ids."""
        assert FileNoteService(tmp_path).get_note_by_id("note_1_missing") is None

    def test_delete_removes_file(self, tmp_path):
        """Should remove the note file."""
        service = FileNoteService(tmp_path)
        note = service.create_note("Gone", "")

        assert service.delete_by_id(note.id) is True
        assert list(tmp_path.glob("*.txt")) == []
        assert service.delete_by_id(note.id) is False

    def test_skips_corrupt_files(self, tmp_path):
        """Should list readable notes and skip corrupt files."""
        service = FileNoteService(tmp_path)
        good = service.create_note("Good", "")
        (tmp_path / "note_1_bad_broken.txt").write_text("garbage", encoding="utf-8")

        assert [n.id for n in service.get_all_notes()] == [good.id]

    def test_rejects_title_with_line_break(self, tmp_path):
        """Should not write a note whose title would corrupt the header."""
        service = FileNoteService(tmp_path)

        with pytest.raises(InvalidNoteError):
            service.create_note("a\n---", "body")
        assert list(tmp_path.glob("*.txt")) == []
