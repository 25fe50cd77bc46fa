"""Three-way merge and diff utilities for the sync engine.

``three_way_merge`` combines local and remote edits made against a common
base.  Both sides are diffed against the base with
:func:`~draftsync.sync.differ.diff_lines` and the resulting ``Change``
lists are walked in base order.

Key design choices:

* Overlapping edits are never auto-resolved.  Any overlap, or an insertion
  strictly inside the other side's replaced range, is a conflict.
* Identical edits at the same position are applied once.
* Two zero-width insertions at the same base position are concatenated,
  local first.  This ordering is a convention, not a contract.
* The function is pure: inputs are never mutated and nothing is persisted.
* ``generate_diff`` is a thin wrapper around ``difflib.unified_diff``
  for display purposes (reports, conflict review).
"""

from __future__ import annotations

import difflib

from .differ import diff_changes, join_lines, split_lines
from .models import Change, MergeResult, MergeStatus

OVERLAP_REASON = "Overlapping edits detected."
SAME_REGION_REASON = "Changes modify the same region."


def _overlaps(a: Change, b: Change) -> bool:
    return a.start < b.end and b.start < a.end


def _insert_inside(insert: Change, edit: Change) -> bool:
    """True if zero-width *insert* falls strictly inside non-empty *edit*."""
    if not insert.is_insert or edit.is_insert:
        return False
    return edit.start < insert.start < edit.end


def _collides(first: Change, other: Change) -> bool:
    return (
        _overlaps(first, other)
        or _insert_inside(first, other)
        or _insert_inside(other, first)
    )


def _apply(
    base: list[str], output: list[str], cursor: int, change: Change
) -> int:
    """Copy untouched base lines up to *change*, then its replacement."""
    output.extend(base[cursor : change.start])
    output.extend(change.insert_lines)
    return change.end


def three_way_merge(
    base_text: str,
    local_text: str,
    remote_text: str,
) -> MergeResult:
    """Merge local and remote edits made against *base_text*.

    Args:
        base_text: Last text both sides agreed on.
        local_text: Current local text.
        remote_text: Current remote text.

    Returns:
        A clean ``MergeResult`` with the merged text, or a conflict result
        carrying the unmerged local text and a reason.
    """
    if local_text == remote_text:
        return MergeResult(status=MergeStatus.CLEAN, merged=local_text)
    if base_text == local_text:
        return MergeResult(status=MergeStatus.CLEAN, merged=remote_text)
    if base_text == remote_text:
        return MergeResult(status=MergeStatus.CLEAN, merged=local_text)

    base = split_lines(base_text)
    local_changes = diff_changes(base, split_lines(local_text))
    remote_changes = diff_changes(base, split_lines(remote_text))

    merged: list[str] = []
    cursor = 0
    li = 0
    ri = 0

    def conflict(reason: str) -> MergeResult:
        return MergeResult(
            status=MergeStatus.CONFLICT, merged=local_text, reason=reason
        )

    while li < len(local_changes) or ri < len(remote_changes):
        local = local_changes[li] if li < len(local_changes) else None
        remote = remote_changes[ri] if ri < len(remote_changes) else None

        if remote is None or (
            local is not None and local.start < remote.start
        ):
            if remote is not None and _collides(local, remote):
                return conflict(OVERLAP_REASON)
            cursor = _apply(base, merged, cursor, local)
            li += 1
            continue

        if local is None or remote.start < local.start:
            if local is not None and _collides(remote, local):
                return conflict(OVERLAP_REASON)
            cursor = _apply(base, merged, cursor, remote)
            ri += 1
            continue

        # Both changes start at the same base position.
        if local == remote:
            cursor = _apply(base, merged, cursor, local)
            li += 1
            ri += 1
            continue

        if local.is_insert and remote.is_insert:
            merged.extend(base[cursor : local.start])
            merged.extend(local.insert_lines)
            merged.extend(remote.insert_lines)
            cursor = local.end
            li += 1
            ri += 1
            continue

        return conflict(SAME_REGION_REASON)

    merged.extend(base[cursor:])
    return MergeResult(status=MergeStatus.CLEAN, merged=join_lines(merged))


def generate_diff(
    old_content: str,
    new_content: str,
    label_old: str = "old",
    label_new: str = "new",
) -> str:
    """Generate a unified diff between two strings.

    Args:
        old_content: The original content.
        new_content: The modified content.
        label_old: Label for the old file in the diff header.
        label_new: Label for the new file in the diff header.

    Returns:
        A unified diff string.  Empty string if the contents are identical.
    """
    diff_lines = difflib.unified_diff(
        old_content.splitlines(True),
        new_content.splitlines(True),
        fromfile=label_old,
        tofile=label_new,
    )
    return "".join(diff_lines)
