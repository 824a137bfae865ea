"""
In-memory documents and change sets — apply positional edits to text
and, transactionally, to files on disk.
"""

from __future__ import annotations

import bisect
import logging
import os
import shutil
from contextlib import contextmanager
from typing import Iterable, Iterator, Mapping, Optional

from tqdm import tqdm

from .appliers import TextEdit
from .models import Position

logger = logging.getLogger(__name__)

_TMP_SUFFIX = ".saverunner_tmp"


class WorkspaceApplyError(Exception):
    """Raised when a change set cannot be applied to its files."""


class TextDocument:
    """A text buffer addressed by zero-based (line, character) positions.

    Lines are separated by ``"\\n"``; a ``"\\r"`` before it belongs to the
    terminator.  Positions past the end of a line or of the document are
    clamped, the way editors treat them.
    """

    def __init__(self, uri: str, text: str = "") -> None:
        self.uri = uri
        self._set_text(text)

    @classmethod
    def from_file(cls, path: str) -> "TextDocument":
        with open(path, "r", encoding="utf-8", newline="") as f:
            return cls(path, f.read())

    @property
    def text(self) -> str:
        return self._text

    @property
    def line_count(self) -> int:
        return len(self._line_starts)

    def offset_at(self, position: Position) -> int:
        """Character offset of *position* in the text."""
        if position.line >= len(self._line_starts):
            return len(self._text)
        start = self._line_starts[position.line]
        if position.line + 1 < len(self._line_starts):
            content_end = self._line_starts[position.line + 1] - 1
            if content_end > start and self._text[content_end - 1] == "\r":
                content_end -= 1
        else:
            content_end = len(self._text)
        return min(start + position.character, content_end)

    def position_at(self, offset: int) -> Position:
        offset = max(0, min(offset, len(self._text)))
        line = bisect.bisect_right(self._line_starts, offset) - 1
        return Position(line, offset - self._line_starts[line])

    def preview(self, edits: Iterable[TextEdit]) -> str:
        """Text after applying *edits*, without changing the document.

        All positions refer to the current text.  Inserts at the same
        offset keep their order; overlapping ranges raise ``ValueError``.
        """
        spans = []
        for index, edit in enumerate(edits):
            start = self.offset_at(edit.start)
            end = self.offset_at(edit.end)
            spans.append((start, end, index, edit.new_text))
        spans.sort(key=lambda span: (span[0], span[2]))

        pieces: list[str] = []
        cursor = 0
        for start, end, _, new_text in spans:
            if start < cursor:
                raise ValueError(
                    f"Overlapping edits in {self.uri} at {self.position_at(start)}"
                )
            pieces.append(self._text[cursor:start])
            pieces.append(new_text)
            cursor = max(cursor, end)
        pieces.append(self._text[cursor:])
        return "".join(pieces)

    def apply_text_edits(self, edits: Iterable[TextEdit]) -> None:
        self._set_text(self.preview(edits))

    @contextmanager
    def edit(self) -> Iterator["DocumentEditBuilder"]:
        """Open a batched edit; the edits apply together when the block exits.

        Nothing is applied if the block raises.
        """
        builder = DocumentEditBuilder()
        yield builder
        self.apply_text_edits(builder.edits)

    def save(self, path: Optional[str] = None) -> None:
        _safe_write(path or self.uri, self._text)

    def _set_text(self, text: str) -> None:
        self._text = text
        self._line_starts = [0]
        self._line_starts.extend(
            index + 1 for index, char in enumerate(text) if char == "\n"
        )


class DocumentEditBuilder:
    """Collects edits for :meth:`TextDocument.edit`."""

    def __init__(self) -> None:
        self.edits: list[TextEdit] = []

    def insert(self, position: Position, text: str) -> None:
        self.edits.append(TextEdit.insert(position, text))

    def delete(self, start: Position, end: Position) -> None:
        self.edits.append(TextEdit.delete(start, end))

    def replace(self, start: Position, end: Position, text: str) -> None:
        self.edits.append(TextEdit.replace(start, end, text))


class WorkspaceEdit:
    """Edits for several files, applied together."""

    def __init__(self) -> None:
        self._edits: dict[str, list[TextEdit]] = {}

    def insert(self, file_id: str, position: Position, text: str) -> None:
        self._edits.setdefault(file_id, []).append(TextEdit.insert(position, text))

    def delete(self, file_id: str, start: Position, end: Position) -> None:
        self._edits.setdefault(file_id, []).append(TextEdit.delete(start, end))

    def replace(self, file_id: str, start: Position, end: Position, text: str) -> None:
        self._edits.setdefault(file_id, []).append(TextEdit.replace(start, end, text))

    def files(self) -> list[str]:
        return list(self._edits)

    def edits_for(self, file_id: str) -> list[TextEdit]:
        return list(self._edits.get(file_id, []))

    def __len__(self) -> int:
        return sum(len(edits) for edits in self._edits.values())

    def apply(self, documents: Mapping[str, TextDocument]) -> None:
        """Apply to open documents; no document changes if any file fails."""
        new_texts: dict[str, str] = {}
        for file_id, edits in self._edits.items():
            document = documents.get(file_id)
            if document is None:
                raise WorkspaceApplyError(f"No open document for {file_id}")
            try:
                new_texts[file_id] = document.preview(edits)
            except ValueError as exc:
                raise WorkspaceApplyError(str(exc)) from exc

        for file_id, text in new_texts.items():
            documents[file_id]._set_text(text)

    def apply_to_disk(self, root: str = ".", progress: bool = False) -> list[str]:
        """Apply every file's edits to the files under *root*.

        New contents are computed for all files before anything is
        written.  If a write fails, files already written are restored.
        Files that resolve outside *root* are refused before anything is
        written.

        Returns
        -------
        list[str]
            Paths of the files written.
        """
        # Phase 1: compute all patched contents without writing
        planned: dict[str, tuple[str, str]] = {}  # path → (new, old)
        root_dir = os.path.realpath(root)
        for file_id, edits in self._edits.items():
            path = os.path.join(root, file_id)
            if not _is_within(root_dir, path):
                logger.warning("[Workspace] Refusing %s: outside %s", file_id, root_dir)
                raise WorkspaceApplyError(f"Path escapes the root directory: {file_id}")
            try:
                document = self._open_for_edits(path, edits)
                planned[path] = (document.preview(edits), document.text)
            except (OSError, ValueError) as exc:
                logger.warning("[Workspace] Cannot patch %s: %s", path, exc)
                raise WorkspaceApplyError(f"Patch failed for {file_id}: {exc}") from exc

        # Phase 2: write all files
        written: list[str] = []
        items = tqdm(planned.items(), unit="file", desc="Applying", disable=not progress)
        try:
            for path, (new_text, _) in items:
                _safe_write(path, new_text)
                written.append(path)
        except OSError as exc:
            logger.error(
                "[Workspace] Write failed for %s, rolling back %d files: %s",
                path, len(written), exc,
            )
            for rollback_path in written:
                try:
                    _safe_write(rollback_path, planned[rollback_path][1])
                except OSError as rb_exc:
                    logger.error(
                        "[Workspace] Rollback failed for %s: %s",
                        rollback_path, rb_exc,
                    )
            raise WorkspaceApplyError(f"Write failed: {exc}") from exc
        finally:
            items.close()

        return written

    @staticmethod
    def _open_for_edits(path: str, edits: list[TextEdit]) -> TextDocument:
        """Open *path*; a missing file counts as empty for pure creations."""
        if not os.path.exists(path):
            origin = Position(0, 0)
            if all(e.start == origin and e.end == origin for e in edits):
                return TextDocument(path, "")
        return TextDocument.from_file(path)


def _is_within(root_dir: str, path: str) -> bool:
    """True if *path* resolves to *root_dir* or somewhere below it."""
    resolved = os.path.realpath(path)
    try:
        return os.path.commonpath([root_dir, resolved]) == root_dir
    except ValueError:
        # Different drives on Windows
        return False


def _safe_write(file_path: str, content: str) -> None:
    """Write content to file atomically via temp file + rename."""
    abs_path = os.path.abspath(file_path)
    tmp_path = abs_path + _TMP_SUFFIX
    directory = os.path.dirname(abs_path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    try:
        with open(tmp_path, "w", encoding="utf-8", newline="") as f:
            f.write(content)

        # On Windows, os.rename fails if destination exists
        if os.path.exists(abs_path):
            shutil.move(tmp_path, abs_path)
        else:
            os.rename(tmp_path, abs_path)
    except OSError:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
