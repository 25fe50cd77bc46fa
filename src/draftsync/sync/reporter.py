"""Sync result formatting functions.

Provides human-readable and machine-readable output for orchestrator
results:

- ``format_sync_result`` -- one-call summary (notice plus details).
- ``format_status`` -- session status block.
- ``format_file_list`` -- the document catalog.
- ``format_conflict`` -- unified diff plus numbered hunks for review.
- ``result_to_json`` / ``conflict_to_json`` / ``status_to_json`` --
  structured dicts for MCP ``structuredContent`` output.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from .hunks import build_diff_hunks, change_hunks
from .merger import generate_diff
from .models import HunkKind, SyncStatus

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .models import ConflictState, EngineStatus, FileMeta, Hunk, SyncResult

_PREVIEW_LINES = 20


def _format_timestamp(value: int | None) -> str:
    if not value:
        return "never"
    moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return moment.strftime("%Y-%m-%d %H:%M:%S UTC")


# ------------------------------------------------------------------
# Human-readable output
# ------------------------------------------------------------------


def format_sync_result(result: SyncResult) -> str:
    """Format an orchestrator result as text.

    Conflicts include the full review block from ``format_conflict``.
    """
    lines = [result.notice]
    if result.authorize_url:
        lines.append("")
        lines.append(result.authorize_url)
    if result.status == SyncStatus.CLEAN and result.uploaded:
        lines.append("Changes were written to Dropbox.")
    if result.conflict is not None:
        lines.append("")
        lines.append(format_conflict(result.conflict))
    return "\n".join(lines).rstrip()


def format_status(status: EngineStatus) -> str:
    lines = [
        f"State: {status.state.value}",
        f"Dropbox: {'connected' if status.connected else 'not connected'}",
        f"Network: {'online' if status.online else 'offline'}",
        f"Active: {status.active_file_name or '(none)'}"
        + (f" [{status.active_file_id}]" if status.active_file_id else ""),
        f"Last synced: {_format_timestamp(status.last_synced_at)}",
        f"Documents: {status.file_count}",
    ]
    if status.remote_ahead_at:
        lines.append(
            "Dropbox has newer changes from "
            f"{_format_timestamp(status.remote_ahead_at)}; sync to merge them."
        )
    if status.has_conflict:
        lines.append("A conflict is waiting to be resolved.")
    if status.notice:
        lines.append(f"Last notice: {status.notice}")
    return "\n".join(lines)


def format_file_list(
    files: Sequence[FileMeta],
    active_file_id: str | None = None,
    remote_ahead: dict[str, int] | None = None,
) -> str:
    """Format the catalog, marking the active document with ``*``."""
    if not files:
        return "No documents."
    ahead = remote_ahead or {}
    lines = [f"Documents ({len(files)}):"]
    for meta in files:
        marker = "*" if meta.id == active_file_id else " "
        line = f"{marker} {meta.name} [{meta.id}]"
        if meta.id in ahead:
            line += " (newer in Dropbox)"
        lines.append(line)
    return "\n".join(lines)


def format_hunk(hunk: Hunk) -> str:
    """Format one change hunk with both sides, numbered by line."""
    lines = [
        f"[{hunk.id}] local line {hunk.local_start}, "
        f"Dropbox line {hunk.incoming_start}"
    ]
    for text in hunk.incoming_lines:
        lines.append(f"  - {text}")
    for text in hunk.local_lines:
        lines.append(f"  + {text}")
    return "\n".join(lines)


def format_conflict(conflict: ConflictState) -> str:
    """Format a conflict for interactive review.

    Shows the reason, a unified diff from Dropbox to local, each change
    hunk with its id, and a preview of the current resolution.
    """
    lines = [f'Conflict in "{conflict.file_name}" [{conflict.file_id}]']
    if conflict.reason:
        lines.append(f"Reason: {conflict.reason}")
    lines.append("")

    diff_text = generate_diff(
        conflict.remote,
        conflict.local,
        label_old="dropbox",
        label_new="local",
    )
    lines.append(diff_text.rstrip() if diff_text else "(no textual differences)")
    lines.append("")

    hunks = change_hunks(build_diff_hunks(conflict.remote, conflict.local))
    if hunks:
        lines.append(f"Change hunks ({len(hunks)}):")
        for hunk in hunks:
            lines.append(format_hunk(hunk))
        lines.append("")

    lines.append("--- Current resolution preview ---")
    preview = conflict.resolved.splitlines()
    for text in preview[:_PREVIEW_LINES]:
        lines.append(f"  {text}")
    if len(preview) > _PREVIEW_LINES:
        lines.append(f"  ... ({len(preview) - _PREVIEW_LINES} more lines)")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def file_to_json(meta: FileMeta) -> dict:
    return meta.model_dump()


def conflict_to_json(conflict: ConflictState) -> dict:
    """Conflict plus its hunks, for structured clients."""
    hunks = build_diff_hunks(conflict.remote, conflict.local)
    return {
        "file_id": conflict.file_id,
        "file_name": conflict.file_name,
        "reason": conflict.reason,
        "base": conflict.base,
        "local": conflict.local,
        "remote": conflict.remote,
        "resolved": conflict.resolved,
        "hunks": [
            {
                "id": h.id,
                "kind": h.kind.value,
                "local_lines": list(h.local_lines),
                "local_start": h.local_start,
                "incoming_lines": list(h.incoming_lines),
                "incoming_start": h.incoming_start,
            }
            for h in hunks
        ],
        "change_hunk_count": sum(
            1 for h in hunks if h.kind == HunkKind.CHANGE
        ),
    }


def result_to_json(result: SyncResult) -> dict:
    """Convert a ``SyncResult`` to a dict for JSON serialisation."""
    payload: dict = {
        "status": result.status.value,
        "ok": result.ok,
        "notice": result.notice,
        "file_id": result.file_id,
        "uploaded": result.uploaded,
    }
    if result.files:
        payload["files"] = [file_to_json(f) for f in result.files]
    if result.conflict is not None:
        payload["conflict"] = conflict_to_json(result.conflict)
    if result.authorize_url:
        payload["authorize_url"] = result.authorize_url
    return payload


def status_to_json(status: EngineStatus) -> dict:
    payload = status.model_dump()
    payload["state"] = status.state.value
    return payload
