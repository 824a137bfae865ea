"""Diff-to-edit translation — positional edits from text pairs or unified diffs."""

from .models import (
    EditKind, EolPolicy, Position, Edit, LineTag, TaggedLine, Hunk, FileDiff, FilePatch,
)
from .diff_parser import UnifiedDiffParser
from .hunk_converter import HunkToEditConverter
from .edits import compute_edits, parse_patch_text, coalesce_replacements
from .appliers import (
    TextEdit, EditBuilder, WorkspaceEditSink,
    apply_single, apply_via_builder, apply_via_workspace,
)
from .document import TextDocument, DocumentEditBuilder, WorkspaceEdit, WorkspaceApplyError

__all__ = [
    "EditKind", "EolPolicy", "Position", "Edit", "LineTag", "TaggedLine",
    "Hunk", "FileDiff", "FilePatch",
    "UnifiedDiffParser", "HunkToEditConverter",
    "compute_edits", "parse_patch_text", "coalesce_replacements",
    "TextEdit", "EditBuilder", "WorkspaceEditSink",
    "apply_single", "apply_via_builder", "apply_via_workspace",
    "TextDocument", "DocumentEditBuilder", "WorkspaceEdit", "WorkspaceApplyError",
]
