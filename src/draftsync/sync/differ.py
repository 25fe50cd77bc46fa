"""Line-level diff for the merge engine.

``diff_lines`` computes a minimal edit script between two line sequences
with the classic LCS dynamic program (O(n*m) time and space).  Lines are
compared by exact string equality.

Key design choices:

* When the LCS table is tied during backtracking, ``insert`` is preferred
  over ``delete``.  This gives a deterministic script for identical inputs.
* Adjacent ops of the same kind are compacted into one run.
* ``changes_from_diff`` derives base-anchored ``Change`` records, the
  coarser view used by the three-way merger.
"""

from __future__ import annotations

from collections.abc import Sequence

from .models import Change, DiffKind, DiffOp


def split_lines(text: str) -> list[str]:
    """Split *text* into lines, normalising CRLF.  Empty text has no lines."""
    if not text:
        return []
    return text.replace("\r\n", "\n").split("\n")


def join_lines(lines: Sequence[str]) -> str:
    """Join *lines* with LF and drop trailing whitespace."""
    return "\n".join(lines).rstrip()


def diff_lines(old: Sequence[str], new: Sequence[str]) -> list[DiffOp]:
    """Return the compacted edit script transforming *old* into *new*.

    Args:
        old: Source line sequence.
        new: Target line sequence.

    Returns:
        Ordered ``DiffOp`` runs covering every line of both sequences.
    """
    rows = len(old)
    cols = len(new)

    lcs = [[0] * (cols + 1) for _ in range(rows + 1)]
    for i in range(1, rows + 1):
        row = lcs[i]
        prev = lcs[i - 1]
        source_line = old[i - 1]
        for j in range(1, cols + 1):
            if source_line == new[j - 1]:
                row[j] = prev[j - 1] + 1
            else:
                row[j] = max(prev[j], row[j - 1])

    reversed_ops: list[tuple[DiffKind, str]] = []
    i, j = rows, cols
    while i > 0 or j > 0:
        if i > 0 and j > 0 and old[i - 1] == new[j - 1]:
            reversed_ops.append((DiffKind.EQUAL, old[i - 1]))
            i -= 1
            j -= 1
        elif j > 0 and (i == 0 or lcs[i][j - 1] >= lcs[i - 1][j]):
            reversed_ops.append((DiffKind.INSERT, new[j - 1]))
            j -= 1
        else:
            reversed_ops.append((DiffKind.DELETE, old[i - 1]))
            i -= 1

    compacted: list[DiffOp] = []
    for kind, line in reversed(reversed_ops):
        if compacted and compacted[-1].kind == kind:
            compacted[-1].lines.append(line)
        else:
            compacted.append(DiffOp(kind, [line]))
    return compacted


def changes_from_diff(ops: Sequence[DiffOp]) -> list[Change]:
    """Convert diff runs into ``Change`` records in base coordinates.

    * equal runs advance the base cursor and are dropped;
    * insert runs become zero-width changes at the cursor;
    * delete runs become ``[start, end)`` removals;
    * a delete immediately followed by an insert collapses into a single
      replacement.
    """
    changes: list[Change] = []
    cursor = 0
    index = 0
    while index < len(ops):
        op = ops[index]

        if op.kind == DiffKind.EQUAL:
            cursor += len(op.lines)
            index += 1
            continue

        if op.kind == DiffKind.INSERT:
            changes.append(Change(cursor, cursor, tuple(op.lines)))
            index += 1
            continue

        end = cursor + len(op.lines)
        following = ops[index + 1] if index + 1 < len(ops) else None
        if following is not None and following.kind == DiffKind.INSERT:
            changes.append(Change(cursor, end, tuple(following.lines)))
            index += 2
        else:
            changes.append(Change(cursor, end, ()))
            index += 1
        cursor = end

    return changes


def diff_changes(base: Sequence[str], other: Sequence[str]) -> list[Change]:
    """Shortcut for ``changes_from_diff(diff_lines(base, other))``."""
    return changes_from_diff(diff_lines(base, other))
