"""Tests for sync/merger.py -- three-way merge and diff utilities.

Covers:
- three_way_merge() shortcuts, clean merges and conflict detection
- generate_diff() with additions, removals, and no-change scenarios
"""

from draftsync.sync.merger import (
    OVERLAP_REASON,
    SAME_REGION_REASON,
    generate_diff,
    three_way_merge,
)
from draftsync.sync.models import MergeStatus

# ---------------------------------------------------------------------------
# three_way_merge tests
# ---------------------------------------------------------------------------


class TestThreeWayMergeShortcuts:
    """Cases decided without diffing."""

    def test_identical_sides(self):
        result = three_way_merge("base", "same", "same")
        assert result.is_clean
        assert result.merged == "same"

    def test_only_remote_changed(self):
        result = three_way_merge("base", "base", "remote")
        assert result.merged == "remote"

    def test_only_local_changed(self):
        result = three_way_merge("base", "local", "base")
        assert result.merged == "local"

    def test_empty_base_takes_the_non_empty_side(self):
        assert three_way_merge("", "", "remote").merged == "remote"


class TestThreeWayMergeClean:
    """Non-overlapping edits merge."""

    def test_edits_in_different_places(self):
        result = three_way_merge(
            "a\nb\nc", "local\na\nb\nc", "a\nb\nc\nremote"
        )
        assert result.status == MergeStatus.CLEAN
        assert result.merged == "local\na\nb\nc\nremote"

    def test_adjacent_line_edits(self):
        result = three_way_merge("a\nb\nc", "A\nb\nc", "a\nB\nc")
        assert result.is_clean
        assert result.merged == "A\nB\nc"

    def test_identical_edit_applied_once(self):
        result = three_way_merge(
            "a\nb\nc", "a\nX\nc\nend", "start\na\nX\nc"
        )
        assert result.is_clean
        assert result.merged == "start\na\nX\nc\nend"

    def test_same_position_inserts_local_first(self):
        result = three_way_merge("a\nb", "a\nL\nb", "a\nR\nb")
        assert result.is_clean
        assert result.merged == "a\nL\nR\nb"

    def test_trailing_whitespace_trimmed(self):
        result = three_way_merge("a\nb", "A\nb", "a\nb\n\n")
        assert result.merged == "A\nb"

    def test_merging_a_merge_with_itself_is_stable(self):
        first = three_way_merge(
            "a\nb\nc\nd", "A\nb\nc\nd\nlocal", "a\nb\nC\nd"
        )
        assert first.is_clean
        merged = first.merged

        again = three_way_merge(merged, merged, merged)
        assert again.is_clean
        assert again.merged == merged


class TestThreeWayMergeConflicts:
    """Overlapping edits are never auto-resolved."""

    def test_same_line_changed_differently(self):
        result = three_way_merge("a\nb\nc", "a\nX\nc", "a\nY\nc")
        assert result.status == MergeStatus.CONFLICT
        assert result.reason == SAME_REGION_REASON

    def test_delete_overlaps_edit(self):
        result = three_way_merge("a\nb\nc\nd", "a\nd", "a\nb\nC\nd")
        assert result.status == MergeStatus.CONFLICT
        assert result.reason == OVERLAP_REASON

    def test_insert_inside_replaced_range(self):
        result = three_way_merge(
            "a\nb\nc\nd", "a\nX\nd", "a\nb\nR\nc\nd"
        )
        assert result.status == MergeStatus.CONFLICT

    def test_conflict_carries_local_text(self):
        result = three_way_merge("a\nb\nc", "a\nX\nc", "a\nY\nc")
        assert result.merged == "a\nX\nc"

    def test_inputs_not_mutated(self):
        base, local, remote = "a\nb", "a\nX", "a\nY"
        three_way_merge(base, local, remote)
        assert (base, local, remote) == ("a\nb", "a\nX", "a\nY")


# ---------------------------------------------------------------------------
# generate_diff tests
# ---------------------------------------------------------------------------


class TestGenerateDiff:
    """Tests for generate_diff()."""

    def test_diff_shows_additions(self):
        diff = generate_diff("line1\n", "line1\nline2\n")
        assert "+line2" in diff

    def test_diff_shows_removals(self):
        diff = generate_diff("line1\nline2\n", "line1\n")
        assert "-line2" in diff

    def test_diff_empty_when_identical(self):
        assert generate_diff("same\n", "same\n") == ""

    def test_diff_uses_labels(self):
        diff = generate_diff("a\n", "b\n", label_old="dropbox", label_new="local")
        assert "--- dropbox" in diff
        assert "+++ local" in diff
