"""
Diff parser — turns unified diff text, or a pair of texts, into
per-file hunk lists.
"""

from __future__ import annotations

import difflib
import logging
import re

from unidiff import PatchSet, UnidiffParseError
from unidiff.patch import PatchedFile

from .models import FileDiff, Hunk, LineTag, TaggedLine

logger = logging.getLogger(__name__)

# Patterns
_GIT_HEADER = "diff --git "
_SOURCE_HEADER = "--- "
_TARGET_HEADER = "+++ "
_HUNK_HEADER = re.compile(r"^@@ -\d+(?:,(\d+))? \+\d+(?:,(\d+))? @@")

_NO_NEWLINE = "\\"
_TAGS = {tag.value: tag for tag in LineTag}


def split_lines(text: str) -> list[str]:
    """Split *text* on ``"\\n"`` only, keeping terminators.

    Unlike ``str.splitlines`` this does not break on form feeds or Unicode
    line separators.  The last line may lack a terminator.
    """
    lines = [line + "\n" for line in text.split("\n")]
    lines[-1] = lines[-1][:-1]
    if not lines[-1]:
        lines.pop()
    return lines


def normalize_eol(text: str) -> str:
    """Collapse CRLF line endings to LF."""
    return text.replace("\r\n", "\n")


def _strip_eol(value: str) -> str:
    if value.endswith("\n"):
        value = value[:-1]
    if value.endswith("\r"):
        value = value[:-1]
    return value


def _tagged(tag: LineTag, line: str) -> TaggedLine:
    content = line[:-1] if line.endswith("\n") else line
    return TaggedLine(tag=tag, content=content, eol="\n" if line.endswith("\n") else "")


class UnifiedDiffParser:
    """Produce :class:`FileDiff` records from diff text or from two texts."""

    def __init__(self, context_lines: int = 3) -> None:
        self._context_lines = context_lines

    def parse_unified_text(self, diff_text: str) -> list[FileDiff]:
        """Parse a unified diff that may cover several files.

        Parameters
        ----------
        diff_text:
            Unified diff text (GNU diffutils or git flavour).

        Returns
        -------
        list[FileDiff]
            One entry per well-formed file section, in input order.  A
            section without hunks (binary change, rename, mode change)
            gives an entry with no hunks.  Sections the diff library
            rejects are skipped, so malformed or headerless input gives an
            empty list.
        """
        if not diff_text or not diff_text.strip():
            return []

        file_diffs: list[FileDiff] = []
        for index, section in enumerate(self._split_sections(diff_text), start=1):
            try:
                patch_set = PatchSet.from_string(section)
            except UnidiffParseError as exc:
                logger.warning(
                    "[DiffParse] Skipping malformed diff section %d: %s",
                    index, exc,
                )
                continue

            for patched_file in patch_set:
                if not len(patched_file):
                    logger.debug("[DiffParse] No hunks for %s", patched_file.path)
                file_diffs.append(self._convert_patched_file(patched_file))

        return file_diffs

    def compute_file_diff(self, file_id: str, old_text: str, new_text: str) -> FileDiff:
        """Diff two texts line by line.

        Both texts have CRLF collapsed to LF first.  A changed line shows up
        as a removed line followed by an added line; there is no
        intra-line diffing.
        """
        old_lines = split_lines(normalize_eol(old_text))
        new_lines = split_lines(normalize_eol(new_text))
        file_diff = FileDiff(old_file_name=file_id, new_file_name=file_id)

        matcher = difflib.SequenceMatcher(None, old_lines, new_lines, autojunk=False)
        for group in matcher.get_grouped_opcodes(self._context_lines):
            first, last = group[0], group[-1]
            hunk = Hunk(
                old_start=first[1] + 1,
                old_length=last[2] - first[1],
                new_start=first[3] + 1,
                new_length=last[4] - first[3],
            )
            for tag, i1, i2, j1, j2 in group:
                if tag == "equal":
                    hunk.lines.extend(_tagged(LineTag.CONTEXT, l) for l in old_lines[i1:i2])
                    continue
                if tag in ("replace", "delete"):
                    hunk.lines.extend(_tagged(LineTag.REMOVED, l) for l in old_lines[i1:i2])
                if tag in ("replace", "insert"):
                    hunk.lines.extend(_tagged(LineTag.ADDED, l) for l in new_lines[j1:j2])
            file_diff.hunks.append(hunk)

        logger.debug(
            "[DiffParse] %s: %d hunk(s) between %d and %d lines",
            file_id, len(file_diff.hunks), len(old_lines), len(new_lines),
        )
        return file_diff

    # ------------------------------------------------------------------
    # Internal parsing
    # ------------------------------------------------------------------

    def _split_sections(self, diff_text: str) -> list[str]:
        """Cut the diff into one chunk of text per file.

        CRLF is collapsed first.  Hunk bodies are skipped by their declared
        line counts so that a removed ``--- x`` line followed by an added
        ``+++ y`` line is not mistaken for a file header.
        """
        lines = split_lines(normalize_eol(diff_text))
        sections: list[list[str]] = []
        current: list[str] = []
        has_file_header = False
        old_left = new_left = 0

        for index, line in enumerate(lines):
            if old_left > 0 or new_left > 0:
                counts = self._body_line_counts(line)
                if counts is not None and not self._starts_file(lines, index):
                    old_left -= counts[0]
                    new_left -= counts[1]
                    current.append(line)
                    continue
                # Hunk ended early; the library reports it for this section.
                old_left = new_left = 0

            starts_git = line.startswith(_GIT_HEADER)
            starts_plain = (
                line.startswith(_SOURCE_HEADER)
                and index + 1 < len(lines)
                and lines[index + 1].startswith(_TARGET_HEADER)
            )
            if starts_git or (starts_plain and has_file_header):
                if current:
                    sections.append(current)
                current = []
                has_file_header = False
            if starts_plain:
                has_file_header = True

            hunk_header = _HUNK_HEADER.match(line)
            if hunk_header:
                old_left = int(hunk_header.group(1) or 1)
                new_left = int(hunk_header.group(2) or 1)

            current.append(line)

        if current:
            sections.append(current)
        return ["".join(section) for section in sections]

    @staticmethod
    def _starts_file(lines: list[str], index: int) -> bool:
        """True if a ``---``/``+++``/``@@`` triple begins at *index*.

        A hunk body line never starts with ``@@``, so the triple ends a
        hunk that is shorter than its header claims.
        """
        return (
            index + 2 < len(lines)
            and lines[index].startswith(_SOURCE_HEADER)
            and lines[index + 1].startswith(_TARGET_HEADER)
            and _HUNK_HEADER.match(lines[index + 2]) is not None
        )

    @staticmethod
    def _body_line_counts(line: str) -> tuple[int, int] | None:
        """(old, new) lines consumed by a hunk body line, None if not one."""
        marker = line[:1]
        if marker == "-":
            return 1, 0
        if marker == "+":
            return 0, 1
        if marker in (" ", "\n", "\r"):
            return 1, 1
        if marker == _NO_NEWLINE:
            return 0, 0
        return None

    @staticmethod
    def _convert_patched_file(patched_file: PatchedFile) -> FileDiff:
        file_diff = FileDiff(
            old_file_name=patched_file.source_file,
            new_file_name=patched_file.target_file,
        )
        for source_hunk in patched_file:
            old_start = source_hunk.source_start
            # An empty old range names the line *before* the change.
            if source_hunk.source_length == 0:
                old_start += 1
            hunk = Hunk(
                old_start=old_start,
                old_length=source_hunk.source_length,
                new_start=source_hunk.target_start,
                new_length=source_hunk.target_length,
            )
            for line in source_hunk:
                if line.line_type == _NO_NEWLINE:
                    if hunk.lines:
                        hunk.lines[-1].eol = ""
                    continue
                hunk.lines.append(TaggedLine(
                    tag=_TAGS.get(line.line_type, line.line_type),
                    content=_strip_eol(line.value),
                ))
            file_diff.hunks.append(hunk)
        return file_diff
