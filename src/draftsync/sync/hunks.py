"""Interactive conflict review: hunk building and resolution composing.

This path diffs the remote text directly against the local text for
presentation.  It is independent of the base-anchored three-way merge.

- ``build_diff_hunks`` groups the line diff into ``equal`` hunks
  (verbatim, not choosable) and ``change`` hunks carrying both sides.
- ``compose_resolved_from_hunks`` reassembles a final text from per-hunk
  choices.  Unspecified hunks default to the local side.
- ``build_side_by_side_rows`` produces a row-per-line view for renderers
  that show the two versions in parallel columns.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from enum import Enum

from .differ import diff_lines, split_lines
from .models import DiffKind, DiffRow, Hunk, HunkKind


class HunkChoice(str, Enum):
    """How a change hunk is resolved."""

    INCOMING = "incoming"
    LOCAL = "local"
    BOTH_INCOMING_FIRST = "both_incoming_first"
    BOTH_LOCAL_FIRST = "both_local_first"


DEFAULT_CHOICE = HunkChoice.LOCAL


def build_diff_hunks(remote_text: str, local_text: str) -> list[Hunk]:
    """Group the remote->local line diff into display hunks.

    Args:
        remote_text: Incoming (remote) text.
        local_text: Local text.

    Returns:
        Hunks in document order.  Ids are ``hunk-1``, ``hunk-2``, ...
    """
    ops = diff_lines(split_lines(remote_text), split_lines(local_text))

    hunks: list[Hunk] = []
    local_number = 1
    incoming_number = 1

    pending_local: list[str] = []
    pending_incoming: list[str] = []
    pending_local_start = 1
    pending_incoming_start = 1

    def flush_change() -> None:
        if not pending_local and not pending_incoming:
            return
        hunks.append(
            Hunk(
                id=f"hunk-{len(hunks) + 1}",
                kind=HunkKind.CHANGE,
                local_lines=tuple(pending_local),
                local_start=pending_local_start,
                incoming_lines=tuple(pending_incoming),
                incoming_start=pending_incoming_start,
            )
        )
        pending_local.clear()
        pending_incoming.clear()

    for op in ops:
        if op.kind == DiffKind.EQUAL:
            flush_change()
            hunks.append(
                Hunk(
                    id=f"hunk-{len(hunks) + 1}",
                    kind=HunkKind.EQUAL,
                    local_lines=tuple(op.lines),
                    local_start=local_number,
                    incoming_lines=tuple(op.lines),
                    incoming_start=incoming_number,
                )
            )
            local_number += len(op.lines)
            incoming_number += len(op.lines)
            continue

        if not pending_local and not pending_incoming:
            pending_local_start = local_number
            pending_incoming_start = incoming_number

        if op.kind == DiffKind.DELETE:
            pending_incoming.extend(op.lines)
            incoming_number += len(op.lines)
        else:
            pending_local.extend(op.lines)
            local_number += len(op.lines)

    flush_change()
    return hunks


def change_hunks(hunks: Iterable[Hunk]) -> list[Hunk]:
    """Return only the choosable hunks."""
    return [h for h in hunks if h.kind == HunkKind.CHANGE]


def make_choice_map(
    hunks: Iterable[Hunk], choice: HunkChoice | str
) -> dict[str, HunkChoice]:
    """Apply one *choice* to every change hunk ("use all incoming/local")."""
    resolved = HunkChoice(choice)
    return {h.id: resolved for h in change_hunks(hunks)}


def _lines_for_choice(hunk: Hunk, choice: HunkChoice) -> Sequence[str]:
    match choice:
        case HunkChoice.INCOMING:
            return hunk.incoming_lines
        case HunkChoice.BOTH_INCOMING_FIRST:
            return hunk.incoming_lines + hunk.local_lines
        case HunkChoice.BOTH_LOCAL_FIRST:
            return hunk.local_lines + hunk.incoming_lines
        case _:
            return hunk.local_lines


def compose_resolved_from_hunks(
    hunks: Sequence[Hunk],
    choices: Mapping[str, HunkChoice | str] | None = None,
) -> str:
    """Reassemble the resolved text from per-hunk choices.

    Args:
        hunks: Output of :func:`build_diff_hunks`.
        choices: Hunk id -> choice.  Missing ids resolve to ``local``.

    Returns:
        The composed text, lines joined with LF.

    Raises:
        ValueError: If a choice string is not a valid ``HunkChoice``.
    """
    selected = choices or {}
    lines: list[str] = []
    for hunk in hunks:
        if hunk.kind == HunkKind.EQUAL:
            lines.extend(hunk.local_lines)
            continue
        choice = HunkChoice(selected.get(hunk.id, DEFAULT_CHOICE))
        lines.extend(_lines_for_choice(hunk, choice))
    return "\n".join(lines)


def build_side_by_side_rows(
    local_text: str, remote_text: str
) -> list[DiffRow]:
    """Build a side-by-side local/remote diff, one row per displayed line."""
    ops = diff_lines(split_lines(local_text), split_lines(remote_text))

    rows: list[DiffRow] = []
    local_number = 1
    remote_number = 1

    for op in ops:
        for line in op.lines:
            if op.kind == DiffKind.EQUAL:
                rows.append(
                    DiffRow(
                        local_number, remote_number, line, line,
                        "equal", "equal",
                    )
                )
                local_number += 1
                remote_number += 1
            elif op.kind == DiffKind.DELETE:
                rows.append(
                    DiffRow(local_number, None, line, "", "removed", "empty")
                )
                local_number += 1
            else:
                rows.append(
                    DiffRow(None, remote_number, "", line, "empty", "added")
                )
                remote_number += 1

    return rows
