"""Tests for the UnifiedDiffParser."""

import pytest

from save_runner.editing.diff_parser import UnifiedDiffParser, split_lines
from save_runner.editing.models import LineTag


MULTI_FILE_DIFF = """\
--- a/src/one.txt
+++ b/src/one.txt
@@ -1,3 +1,3 @@
 alpha
-beta
+BETA
 gamma
--- a/src/two.txt
+++ b/src/two.txt
@@ -2,2 +2,3 @@
 second
+inserted
 third
"""

GIT_DIFF = """\
diff --git a/app.py b/app.py
index 83db48f..bf269f4 100644
--- a/app.py
+++ b/app.py
@@ -1,2 +1,2 @@
-print("hi")
+print("hello")
 exit()
diff --git a/logo.png b/logo.png
index 1111111..2222222 100644
Binary files a/logo.png and b/logo.png differ
"""

GARBLED_SECOND_SECTION = """\
--- a/good.txt
+++ b/good.txt
@@ -1,2 +1,2 @@
-old
+new
 keep
--- a/bad.txt
+++ b/bad.txt
@@ -1,3 +1,3 @@
-x
garbage line
"""

# The first hunk is shorter than its header says.
GARBLED_FIRST_SECTION = """\
--- a/bad.txt
+++ b/bad.txt
@@ -1,4 +1,4 @@
 only one line
--- a/fine.txt
+++ b/fine.txt
@@ -1 +1,2 @@
 fine
+added
"""

NO_NEWLINE_DIFF = """\
--- a/x.txt
+++ b/x.txt
@@ -1 +1 @@
-old
\\ No newline at end of file
+new
\\ No newline at end of file
"""

# A removed "-- x" line followed by an added "++ y" line looks like a
# file header pair once the hunk markers are prepended.
HEADER_LOOKALIKE_DIFF = """\
--- a/notes.md
+++ b/notes.md
@@ -1,2 +1,2 @@
--- x
+++ y
 tail
"""

MULTI_HUNK_DIFF = """\
--- a/long.txt
+++ b/long.txt
@@ -2,3 +2,3 @@
 2
-3
+three
 4
@@ -20,0 +21,1 @@
+appended
"""


class TestSplitLines:
    def test_keeps_terminators(self):
        assert split_lines("a\nb\n") == ["a\n", "b\n"]

    def test_last_line_without_terminator(self):
        assert split_lines("a\nb") == ["a\n", "b"]

    def test_empty(self):
        assert split_lines("") == []

    def test_does_not_split_on_form_feed(self):
        assert split_lines("a\x0cb\n") == ["a\x0cb\n"]


class TestParseUnifiedText:
    def test_multi_file(self):
        diffs = UnifiedDiffParser().parse_unified_text(MULTI_FILE_DIFF)

        assert [d.file_name for d in diffs] == ["src/one.txt", "src/two.txt"]
        first = diffs[0]
        assert first.old_file_name == "a/src/one.txt"
        assert first.new_file_name == "b/src/one.txt"
        assert len(first.hunks) == 1

        hunk = first.hunks[0]
        assert hunk.old_start == 1
        assert [line.tag for line in hunk.lines] == [
            LineTag.CONTEXT, LineTag.REMOVED, LineTag.ADDED, LineTag.CONTEXT,
        ]
        assert [line.content for line in hunk.lines] == ["alpha", "beta", "BETA", "gamma"]
        assert diffs[1].hunks[0].old_start == 2

    def test_git_diff_keeps_files_without_hunks(self):
        diffs = UnifiedDiffParser().parse_unified_text(GIT_DIFF)

        assert [d.file_name for d in diffs] == ["app.py", "logo.png"]
        assert diffs[0].hunks[0].added == 1
        assert diffs[0].hunks[0].removed == 1
        assert diffs[1].hunks == []

    def test_garbled_section_skipped(self):
        diffs = UnifiedDiffParser().parse_unified_text(GARBLED_SECOND_SECTION)

        assert [d.file_name for d in diffs] == ["good.txt"]

    def test_short_hunk_does_not_swallow_next_file(self):
        diffs = UnifiedDiffParser().parse_unified_text(GARBLED_FIRST_SECTION)

        assert [d.file_name for d in diffs] == ["fine.txt"]
        assert [(l.tag, l.content) for l in diffs[0].hunks[0].lines] == [
            (LineTag.CONTEXT, "fine"),
            (LineTag.ADDED, "added"),
        ]

    def test_crlf_diff(self):
        diffs = UnifiedDiffParser().parse_unified_text(
            "--- a/x.txt\r\n+++ b/x.txt\r\n@@ -1,2 +1,2 @@\r\n-a\r\n+A\r\n b\r\n"
        )

        assert diffs[0].file_name == "x.txt"
        assert diffs[0].old_file_name == "a/x.txt"
        assert [(l.tag, l.content, l.eol) for l in diffs[0].hunks[0].lines] == [
            (LineTag.REMOVED, "a", "\n"),
            (LineTag.ADDED, "A", "\n"),
            (LineTag.CONTEXT, "b", "\n"),
        ]

    @pytest.mark.parametrize("text", [
        "",
        "   \n\n",
        "just some words\nno diff here\n",
        "@@ -1 +1 @@\n-a\n+b\n",
    ])
    def test_headerless_or_empty_input(self, text):
        assert UnifiedDiffParser().parse_unified_text(text) == []

    def test_no_newline_marker_folded_into_line(self):
        diffs = UnifiedDiffParser().parse_unified_text(NO_NEWLINE_DIFF)

        lines = diffs[0].hunks[0].lines
        assert [(l.tag, l.content, l.eol) for l in lines] == [
            (LineTag.REMOVED, "old", ""),
            (LineTag.ADDED, "new", ""),
        ]

    def test_header_lookalike_lines_stay_in_hunk(self):
        diffs = UnifiedDiffParser().parse_unified_text(HEADER_LOOKALIKE_DIFF)

        assert len(diffs) == 1
        lines = diffs[0].hunks[0].lines
        assert [(l.tag, l.content) for l in lines] == [
            (LineTag.REMOVED, "-- x"),
            (LineTag.ADDED, "++ y"),
            (LineTag.CONTEXT, "tail"),
        ]

    def test_empty_old_range_points_past_preceding_line(self):
        diffs = UnifiedDiffParser().parse_unified_text(MULTI_HUNK_DIFF)

        hunks = diffs[0].hunks
        assert [h.old_start for h in hunks] == [2, 21]


class TestComputeFileDiff:
    def test_identical_texts_have_no_hunks(self):
        diff = UnifiedDiffParser().compute_file_diff("f.txt", "a\nb\n", "a\nb\n")

        assert diff.hunks == []
        assert diff.file_name == "f.txt"

    def test_changed_line_is_removed_then_added(self):
        diff = UnifiedDiffParser().compute_file_diff("f.txt", "a\nb\nc\n", "a\nB\nc\n")

        assert len(diff.hunks) == 1
        hunk = diff.hunks[0]
        assert hunk.old_start == 1
        assert [(l.tag, l.content) for l in hunk.lines] == [
            (LineTag.CONTEXT, "a"),
            (LineTag.REMOVED, "b"),
            (LineTag.ADDED, "B"),
            (LineTag.CONTEXT, "c"),
        ]

    def test_crlf_is_normalised(self):
        diff = UnifiedDiffParser().compute_file_diff("f.txt", "a\r\nb\r\n", "a\nb\n")

        assert diff.hunks == []

    def test_whole_line_granularity(self):
        diff = UnifiedDiffParser().compute_file_diff("f.txt", "a\x0cb\n", "a\x0cc\n")

        lines = diff.hunks[0].lines
        assert [(l.tag, l.content) for l in lines] == [
            (LineTag.REMOVED, "a\x0cb"),
            (LineTag.ADDED, "a\x0cc"),
        ]

    def test_distant_changes_make_separate_hunks(self):
        old = "".join(f"{n}\n" for n in range(1, 11))
        new = old.replace("1\n", "X\n", 1).replace("10\n", "Y\n")

        diff = UnifiedDiffParser(context_lines=1).compute_file_diff("f.txt", old, new)

        assert [h.old_start for h in diff.hunks] == [1, 9]

    def test_missing_final_newline_tracked(self):
        diff = UnifiedDiffParser().compute_file_diff("f.txt", "a\nb", "a\nb\n")

        lines = diff.hunks[0].lines
        assert [(l.tag, l.content, l.eol) for l in lines] == [
            (LineTag.CONTEXT, "a", "\n"),
            (LineTag.REMOVED, "b", ""),
            (LineTag.ADDED, "b", "\n"),
        ]
