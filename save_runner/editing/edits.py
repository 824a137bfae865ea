"""
Edit computation — the two public entry points that turn a before/after
pair or a unified diff into :class:`FilePatch` records.
"""

from __future__ import annotations

import logging

from .diff_parser import UnifiedDiffParser
from .hunk_converter import HunkToEditConverter
from .models import Edit, EditKind, EolPolicy, FilePatch

logger = logging.getLogger(__name__)

_converter = HunkToEditConverter()


def compute_edits(
    file_id: str,
    old_text: str,
    new_text: str,
    eol_policy: EolPolicy = EolPolicy.LF,
    context_lines: int = 3,
) -> FilePatch:
    """Compute the edits that turn *old_text* into *new_text*.

    Parameters
    ----------
    file_id:
        Identifier of the document; becomes ``FilePatch.file_name``.
    old_text, new_text:
        Full document text before and after the transformation.
    eol_policy:
        Terminator used for inserted lines.  With ``EolPolicy.PRESERVE``
        inserts end in CRLF when *old_text* does.
    context_lines:
        Unchanged lines kept around each hunk.

    Returns
    -------
    FilePatch
        Always a patch, with no edits when the texts are equal.
    """
    file_diff = UnifiedDiffParser(context_lines).compute_file_diff(
        file_id, old_text, new_text
    )
    newline = "\n"
    if eol_policy is EolPolicy.PRESERVE and "\r\n" in old_text:
        newline = "\r\n"

    patch = _converter.convert(file_diff, newline=newline)
    patch.file_name = file_id
    logger.debug("[Edits] %s: %d edit(s)", file_id, len(patch.edits))
    return patch


def parse_patch_text(diff_text: str) -> list[FilePatch]:
    """Convert a (possibly multi-file) unified diff into file patches.

    Returns one patch per recognised file section, in input order.
    Unparseable input gives an empty list.
    """
    file_diffs = UnifiedDiffParser().parse_unified_text(diff_text)
    patches = [_converter.convert(file_diff) for file_diff in file_diffs]
    logger.debug(
        "[Edits] Parsed %d file patch(es) with %d edit(s)",
        len(patches), sum(len(p.edits) for p in patches),
    )
    return patches


def coalesce_replacements(patch: FilePatch) -> FilePatch:
    """Fold delete runs followed by inserts at their end into replaces.

    ``delete [n, n+k)`` followed by inserts anchored at ``n+k`` becomes one
    ``replace [n, n+k)`` with the concatenated insert text.  The result
    applies to the same final text as *patch*.
    """
    edits = patch.edits
    merged: list[Edit] = []
    i = 0
    while i < len(edits):
        edit = edits[i]
        if edit.kind is not EditKind.DELETE or edit.start.character or edit.end.character:
            merged.append(edit)
            i += 1
            continue

        # Gather the contiguous block of whole-line deletes.
        j = i + 1
        block_end = edit.end
        while (
            j < len(edits)
            and edits[j].kind is EditKind.DELETE
            and edits[j].start == block_end
            and edits[j].end.character == 0
        ):
            block_end = edits[j].end
            j += 1

        inserted: list[str] = []
        while (
            j < len(edits)
            and edits[j].kind is EditKind.INSERT
            and edits[j].start == block_end
        ):
            inserted.append(edits[j].text)
            j += 1

        if inserted:
            merged.append(Edit.replace(edit.start, block_end, "".join(inserted)))
        else:
            merged.extend(edits[i:j])
        i = j

    return FilePatch(file_name=patch.file_name, edits=merged)
