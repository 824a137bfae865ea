"""
save_runner — minimal line edits from text transformations.

Public API for library usage::

    from save_runner import compute_edits, parse_patch_text

    patch = compute_edits("main.py", old_text, new_text)
    for edit in patch.edits:
        print(edit.kind, edit.start, edit.end, repr(edit.text))
"""

from .editing import (
    Edit, EditKind, EolPolicy, FilePatch, Position,
    compute_edits, parse_patch_text, coalesce_replacements,
)

__version__ = "0.1.0"

__all__ = [
    "Edit", "EditKind", "EolPolicy", "FilePatch", "Position",
    "compute_edits", "parse_patch_text", "coalesce_replacements",
]
