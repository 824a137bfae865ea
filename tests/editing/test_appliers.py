"""Tests for the three edit application surfaces."""

from save_runner.editing.appliers import (
    TextEdit, apply_single, apply_via_builder, apply_via_workspace,
)
from save_runner.editing.models import Edit, Position


INSERT = Edit.insert(Position(2), "new\n")
DELETE = Edit.delete(Position(0), Position(1))
REPLACE = Edit.replace(Position(3), Position(5), "x\n")


class RecordingBuilder:
    def __init__(self):
        self.calls = []

    def insert(self, position, text):
        self.calls.append(("insert", position, text))

    def delete(self, start, end):
        self.calls.append(("delete", start, end))

    def replace(self, start, end, text):
        self.calls.append(("replace", start, end, text))


class RecordingWorkspace:
    def __init__(self):
        self.calls = []

    def insert(self, file_id, position, text):
        self.calls.append(("insert", file_id, position, text))

    def delete(self, file_id, start, end):
        self.calls.append(("delete", file_id, start, end))

    def replace(self, file_id, start, end, text):
        self.calls.append(("replace", file_id, start, end, text))


class TestApplySingle:
    def test_insert_is_empty_range(self):
        assert apply_single(INSERT) == TextEdit(Position(2), Position(2), "new\n")

    def test_delete_has_no_text(self):
        assert apply_single(DELETE) == TextEdit(Position(0), Position(1), "")

    def test_replace(self):
        assert apply_single(REPLACE) == TextEdit(Position(3), Position(5), "x\n")


class TestApplyViaBuilder:
    def test_dispatch_on_kind(self):
        builder = RecordingBuilder()

        for edit in (INSERT, DELETE, REPLACE):
            apply_via_builder(edit, builder)

        assert builder.calls == [
            ("insert", Position(2), "new\n"),
            ("delete", Position(0), Position(1)),
            ("replace", Position(3), Position(5), "x\n"),
        ]


class TestApplyViaWorkspace:
    def test_dispatch_keyed_by_file(self):
        workspace = RecordingWorkspace()

        apply_via_workspace(INSERT, workspace, "a.py")
        apply_via_workspace(DELETE, workspace, "b.py")
        apply_via_workspace(REPLACE, workspace, "a.py")

        assert workspace.calls == [
            ("insert", "a.py", Position(2), "new\n"),
            ("delete", "b.py", Position(0), Position(1)),
            ("replace", "a.py", Position(3), Position(5), "x\n"),
        ]
