"""Tests for sync/differ.py -- LCS line diff and base-anchored changes."""

from draftsync.sync.differ import (
    changes_from_diff,
    diff_changes,
    diff_lines,
    join_lines,
    split_lines,
)
from draftsync.sync.models import Change, DiffKind, DiffOp


class TestSplitJoin:
    def test_empty_text_has_no_lines(self):
        assert split_lines("") == []

    def test_crlf_is_normalised(self):
        assert split_lines("a\r\nb") == ["a", "b"]

    def test_join_drops_trailing_whitespace(self):
        assert join_lines(["a", "b", "", ""]) == "a\nb"


class TestDiffLines:
    """Tests for diff_lines()."""

    def test_identical_sequences(self):
        ops = diff_lines(["a", "b"], ["a", "b"])
        assert ops == [DiffOp(DiffKind.EQUAL, ["a", "b"])]

    def test_runs_are_compacted(self):
        ops = diff_lines([], ["x", "y"])
        assert ops == [DiffOp(DiffKind.INSERT, ["x", "y"])]

    def test_replacement_emits_delete_then_insert(self):
        ops = diff_lines(["a", "b", "c"], ["a", "X", "c"])
        assert [op.kind for op in ops] == [
            DiffKind.EQUAL,
            DiffKind.DELETE,
            DiffKind.INSERT,
            DiffKind.EQUAL,
        ]

    def test_covers_every_line(self):
        old = ["a", "b", "c", "d"]
        new = ["b", "c", "e"]
        ops = diff_lines(old, new)
        rebuilt_old = [
            line for op in ops if op.kind != DiffKind.INSERT for line in op.lines
        ]
        rebuilt_new = [
            line for op in ops if op.kind != DiffKind.DELETE for line in op.lines
        ]
        assert rebuilt_old == old
        assert rebuilt_new == new

    def test_deterministic(self):
        old = ["x", "y", "x"]
        new = ["y", "x", "y"]
        assert diff_lines(old, new) == diff_lines(old, new)


class TestChangesFromDiff:
    """Tests for changes_from_diff() / diff_changes()."""

    def test_insert_is_zero_width(self):
        assert diff_changes(["a", "b"], ["a", "N", "b"]) == [
            Change(1, 1, ("N",))
        ]

    def test_delete_followed_by_insert_collapses(self):
        assert diff_changes(["a", "b", "c"], ["a", "X", "c"]) == [
            Change(1, 2, ("X",))
        ]

    def test_pure_delete(self):
        assert diff_changes(["a", "b", "c"], ["a", "c"]) == [Change(1, 2, ())]

    def test_no_changes(self):
        assert changes_from_diff(diff_lines(["a"], ["a"])) == []

    def test_insert_flag(self):
        assert Change(2, 2, ("x",)).is_insert
        assert not Change(2, 3, ()).is_insert
