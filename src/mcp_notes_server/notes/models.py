"""Note data model and its text-file representation."""

from __future__ import annotations

import re
import secrets
import string
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime

NOTE_ID_PATTERN = r"^note_\d+_[a-z0-9]+$"
MAX_TITLE_LENGTH = 255
MAX_CONTENT_LENGTH = 10_000

_ID_ALPHABET = string.ascii_lowercase + string.digits
_HEADER_SEPARATOR = "---"


class InvalidNoteError(ValueError):
    """Raised when note data is invalid or a note file cannot be parsed."""

    pass


def generate_note_id() -> str:
    """Generate an id of the form ``note_<epoch millis>_<9 random chars>``."""
    millis = time.time_ns() // 1_000_000
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"note_{millis}_{suffix}"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def format_timestamp(value: datetime) -> str:
    """ISO 8601 in UTC with millisecond precision and a trailing Z."""
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse a timestamp written by format_timestamp."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@dataclass
class Note:
    """A single note."""

    title: str
    content: str
    id: str = field(default_factory=generate_note_id)
    created_at: datetime = field(default_factory=_utcnow)

    def validate(self) -> None:
        """Check title and content constraints.

        Raises:
            InvalidNoteError: If a constraint is violated.
        """
        if not isinstance(self.title, str) or not self.title:
            raise InvalidNoteError("Title is required and must be a string")
        if len(self.title) > MAX_TITLE_LENGTH:
            raise InvalidNoteError(f"Title cannot exceed {MAX_TITLE_LENGTH} characters")
        # The title is stored on a single header line
        if "\n" in self.title or "\r" in self.title:
            raise InvalidNoteError("Title cannot contain line breaks")
        if not isinstance(self.content, str):
            raise InvalidNoteError("Content must be a string")
        if len(self.content) > MAX_CONTENT_LENGTH:
            raise InvalidNoteError(f"Content cannot exceed {MAX_CONTENT_LENGTH} characters")

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "createdAt": format_timestamp(self.created_at),
        }

    def filename(self) -> str:
        """File name for this note: ``<id>_<sanitised title>.txt``."""
        sanitized = re.sub(r"[^a-zA-Z0-9\s]", "", self.title)
        sanitized = re.sub(r"\s+", "_", sanitized).lower()[:50]
        return f"{self.id}_{sanitized or 'untitled'}.txt"

    def to_file_content(self) -> str:
        header = "\n".join(
            [
                f"ID: {self.id}",
                f"TITLE: {self.title}",
                f"CREATED: {format_timestamp(self.created_at)}",
                _HEADER_SEPARATOR,
            ]
        )
        return f"{header}\n{self.content}"

    @classmethod
    def from_file_content(cls, text: str) -> Note:
        """Parse the text-file representation of a note.

        Raises:
            InvalidNoteError: If the header is missing or malformed.
        """
        lines = text.split("\n")
        try:
            separator = lines.index(_HEADER_SEPARATOR)
        except ValueError:
            raise InvalidNoteError("Note file has no header separator") from None

        header: dict[str, str] = {}
        for line in lines[:separator]:
            key, sep, value = line.partition(": ")
            if sep:
                header[key] = value

        try:
            return cls(
                id=header["ID"],
                title=header["TITLE"],
                created_at=parse_timestamp(header["CREATED"]),
                content="\n".join(lines[separator + 1 :]),
            )
        except KeyError as e:
            raise InvalidNoteError(f"Note file header is missing {e.args[0]}") from e
        except ValueError as e:
            raise InvalidNoteError(f"Note file has an invalid timestamp: {e}") from e
