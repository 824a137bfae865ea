"""
Edit model — positional edits and the per-file hunk structures they are
derived from.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional, Union

_DEV_NULL = "/dev/null"
_VCS_PREFIXES = ("a/", "b/")


class EditKind(enum.Enum):
    DELETE = "delete"
    INSERT = "insert"
    REPLACE = "replace"


class LineTag(enum.Enum):
    """Marker of a line inside a hunk."""
    CONTEXT = " "
    ADDED = "+"
    REMOVED = "-"


class EolPolicy(enum.Enum):
    """Line terminator used for inserted text.

    ``LF`` always terminates inserted lines with ``"\\n"``.  ``PRESERVE``
    switches to ``"\\r\\n"`` when the original document used CRLF endings.
    """
    LF = "lf"
    PRESERVE = "preserve"


@dataclass(frozen=True, order=True)
class Position:
    """Zero-based (line, character) coordinate in a document."""
    line: int
    character: int = 0

    def __post_init__(self) -> None:
        if self.line < 0 or self.character < 0:
            raise ValueError(
                f"Position must be non-negative, got ({self.line}, {self.character})"
            )

    def __str__(self) -> str:
        return f"{self.line}:{self.character}"


@dataclass(frozen=True)
class Edit:
    """One atomic change to a document.

    Build edits with :meth:`delete`, :meth:`insert` or :meth:`replace`;
    the field combination is checked on construction.
    """
    kind: EditKind
    start: Position
    end: Optional[Position] = None
    text: str = ""

    def __post_init__(self) -> None:
        if self.kind is EditKind.INSERT:
            if self.end is not None:
                raise ValueError("Insert edits carry no end position")
            return
        if self.end is None:
            raise ValueError(f"{self.kind.value} edits need an end position")
        if self.end < self.start:
            raise ValueError(f"Edit end {self.end} precedes start {self.start}")
        if self.kind is EditKind.DELETE and self.text:
            raise ValueError("Delete edits carry no text")

    @classmethod
    def delete(cls, start: Position, end: Position) -> "Edit":
        return cls(EditKind.DELETE, start, end)

    @classmethod
    def insert(cls, at: Position, text: str) -> "Edit":
        return cls(EditKind.INSERT, at, None, text)

    @classmethod
    def replace(cls, start: Position, end: Position, text: str) -> "Edit":
        return cls(EditKind.REPLACE, start, end, text)

    @property
    def range(self) -> tuple[Position, Position]:
        """The (start, end) range replaced by this edit; empty for inserts."""
        return self.start, self.end if self.end is not None else self.start

    def to_dict(self) -> dict:
        data: dict = {
            "kind": self.kind.value,
            "start": [self.start.line, self.start.character],
        }
        if self.end is not None:
            data["end"] = [self.end.line, self.end.character]
        if self.kind is not EditKind.DELETE:
            data["text"] = self.text
        return data


@dataclass
class TaggedLine:
    """A single hunk line without its marker and without its terminator.

    ``tag`` is a :class:`LineTag` for the three recognised markers and the
    raw marker string for anything else the diff engine reported.
    ``eol`` is empty when the line is the last line of a file that does not
    end with a newline.
    """
    tag: Union[LineTag, str]
    content: str
    eol: str = "\n"


@dataclass
class Hunk:
    """One contiguous change region of a file."""
    old_start: int             # 1-indexed
    old_length: int = 0
    new_start: int = 0
    new_length: int = 0
    lines: list[TaggedLine] = field(default_factory=list)

    @property
    def added(self) -> int:
        return sum(1 for line in self.lines if line.tag is LineTag.ADDED)

    @property
    def removed(self) -> int:
        return sum(1 for line in self.lines if line.tag is LineTag.REMOVED)


@dataclass
class FileDiff:
    """All hunks of a single file."""
    old_file_name: str
    new_file_name: str
    hunks: list[Hunk] = field(default_factory=list)

    @property
    def file_name(self) -> str:
        """Name of the file the hunks apply to, without VCS prefixes."""
        name = self.old_file_name
        if not name or name == _DEV_NULL:
            name = self.new_file_name
        if name.startswith(_VCS_PREFIXES):
            name = name[2:]
        return name


@dataclass
class FilePatch:
    """The edits for one file, in ascending document order."""
    file_name: str
    edits: list[Edit] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.edits)

    @property
    def is_empty(self) -> bool:
        return not self.edits

    def to_dict(self) -> dict:
        return {
            "file": self.file_name,
            "edits": [edit.to_dict() for edit in self.edits],
        }
