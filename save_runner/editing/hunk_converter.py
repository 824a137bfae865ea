"""
Hunk converter — walks the tagged lines of a file diff and emits
positional edits against the original document.
"""

from __future__ import annotations

import logging

from .models import Edit, FileDiff, FilePatch, Hunk, LineTag, Position

logger = logging.getLogger(__name__)


class HunkToEditConverter:
    """Convert a :class:`FileDiff` into a :class:`FilePatch`.

    Each removed line becomes a delete of the whole line, each added line
    an insert before the current original line.  Context lines only move
    the cursor.  Lines with an unknown tag are skipped.
    """

    def convert(self, file_diff: FileDiff, newline: str = "\n") -> FilePatch:
        """Convert every hunk of *file_diff*, in order.

        Parameters
        ----------
        file_diff:
            Hunks of a single file.
        newline:
            Terminator appended to inserted lines that had one.

        Returns
        -------
        FilePatch
            Edits in ascending original-document order.
        """
        patch = FilePatch(file_name=file_diff.file_name)
        for hunk in file_diff.hunks:
            patch.edits.extend(self._convert_hunk(hunk, newline))
        return patch

    @staticmethod
    def _convert_hunk(hunk: Hunk, newline: str) -> list[Edit]:
        edits: list[Edit] = []
        cursor = max(hunk.old_start, 1)  # 1-indexed original line

        for line in hunk.lines:
            if line.tag is LineTag.REMOVED:
                edits.append(Edit.delete(Position(cursor - 1, 0), Position(cursor, 0)))
                cursor += 1
            elif line.tag is LineTag.ADDED:
                text = line.content + (newline if line.eol else "")
                edits.append(Edit.insert(Position(cursor - 1, 0), text))
            elif line.tag is LineTag.CONTEXT:
                cursor += 1
            else:
                logger.debug(
                    "[Edits] Ignoring hunk line with tag %r at original line %d",
                    line.tag, cursor,
                )

        return edits
