"""
Appliers — hand an :class:`Edit` to one of the three editing surfaces:
a single-document edit, a batched edit builder, or a multi-file
workspace change set.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from .models import Edit, EditKind, Position


@dataclass(frozen=True)
class TextEdit:
    """Primitive single-document edit: replace ``[start, end)`` by text."""
    start: Position
    end: Position
    new_text: str = ""

    @classmethod
    def insert(cls, at: Position, text: str) -> "TextEdit":
        return cls(at, at, text)

    @classmethod
    def delete(cls, start: Position, end: Position) -> "TextEdit":
        return cls(start, end, "")

    @classmethod
    def replace(cls, start: Position, end: Position, text: str) -> "TextEdit":
        return cls(start, end, text)


class EditBuilder(Protocol):
    """An open batched edit transaction on one document."""

    def insert(self, position: Position, text: str) -> None: ...

    def delete(self, start: Position, end: Position) -> None: ...

    def replace(self, start: Position, end: Position, text: str) -> None: ...


class WorkspaceEditSink(Protocol):
    """A change set spanning several files, keyed by file identifier."""

    def insert(self, file_id: str, position: Position, text: str) -> None: ...

    def delete(self, file_id: str, start: Position, end: Position) -> None: ...

    def replace(self, file_id: str, start: Position, end: Position, text: str) -> None: ...


def apply_single(edit: Edit) -> TextEdit:
    """Return the primitive text edit for *edit*."""
    if edit.kind is EditKind.INSERT:
        return TextEdit.insert(edit.start, edit.text)
    if edit.kind is EditKind.DELETE:
        return TextEdit.delete(edit.start, edit.end)
    return TextEdit.replace(edit.start, edit.end, edit.text)


def apply_via_builder(edit: Edit, builder: EditBuilder) -> None:
    """Record *edit* in an open edit transaction."""
    if edit.kind is EditKind.INSERT:
        builder.insert(edit.start, edit.text)
    elif edit.kind is EditKind.DELETE:
        builder.delete(edit.start, edit.end)
    else:
        builder.replace(edit.start, edit.end, edit.text)


def apply_via_workspace(edit: Edit, workspace_edit: WorkspaceEditSink, file_id: str) -> None:
    """Append *edit* to a multi-file change set under *file_id*."""
    if edit.kind is EditKind.INSERT:
        workspace_edit.insert(file_id, edit.start, edit.text)
    elif edit.kind is EditKind.DELETE:
        workspace_edit.delete(file_id, edit.start, edit.end)
    else:
        workspace_edit.replace(file_id, edit.start, edit.end, edit.text)
