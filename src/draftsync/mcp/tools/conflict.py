"""MCP tool handlers for interactive conflict resolution.

- ``conflict_show`` -- the pending conflict as hunks or side-by-side rows.
- ``conflict_resolve`` -- resolve with full text, one choice for every
  hunk, or a per-hunk choice map, then upload the result.
"""

from __future__ import annotations

from typing import Any

import mcp.types as types

from ...sync.engine import SyncOrchestrator
from ...sync.hunks import (
    HunkChoice,
    build_diff_hunks,
    build_side_by_side_rows,
    compose_resolved_from_hunks,
    make_choice_map,
)
from ...sync.reporter import conflict_to_json, format_conflict
from ...validators import validate_document_text
from .errors import build_error_response, sync_result_response, text_response
from .registry import ToolSpec

_CHOICE_VALUES = [c.value for c in HunkChoice]
_ROW_MARKERS = {"equal": " ", "empty": " ", "removed": "-", "added": "+"}


CONFLICT_TOOLS: list[types.Tool] = [
    types.Tool(
        name="conflict_show",
        description=(
            "Show the pending conflict. 'hunks' (default) lists each "
            "changed block with an id usable in conflict_resolve; "
            "'side_by_side' returns one row per line."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "view": {
                    "type": "string",
                    "enum": ["hunks", "side_by_side"],
                    "default": "hunks",
                },
            },
            "required": [],
        },
    ),
    types.Tool(
        name="conflict_resolve",
        description=(
            "Resolve the pending conflict and upload the result to Dropbox. "
            "Provide 'text' for a hand-merged version, or 'choice' to apply "
            "one side to every hunk, optionally refined per hunk with "
            "'choices'. Hunks without a choice keep the local side."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=True,
            idempotentHint=False,
            openWorldHint=True,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "text": {
                    "type": "string",
                    "description": "Complete resolved document text",
                },
                "choice": {
                    "type": "string",
                    "enum": _CHOICE_VALUES,
                    "description": "Default choice for every change hunk",
                },
                "choices": {
                    "type": "object",
                    "additionalProperties": {
                        "type": "string",
                        "enum": _CHOICE_VALUES,
                    },
                    "description": "Hunk id (e.g. 'hunk-2') -> choice",
                },
            },
            "required": [],
        },
    ),
]


def _no_conflict() -> types.CallToolResult:
    return build_error_response(
        "not_found",
        "There is no conflict to resolve.",
        "Run doc_sync; conflicts appear there.",
    )


async def _handle_show(
    orchestrator: SyncOrchestrator, args: dict[str, Any]
) -> types.CallToolResult:
    conflict = orchestrator.conflict
    if conflict is None:
        return _no_conflict()

    view = args.get("view", "hunks")
    match view:
        case "hunks":
            return text_response(
                format_conflict(conflict), conflict_to_json(conflict)
            )
        case "side_by_side":
            rows = build_side_by_side_rows(conflict.local, conflict.remote)
            lines = [
                f"{row.local_number or '':>4} {_ROW_MARKERS[row.local_status]} "
                f"{row.local_text:<40} | "
                f"{row.remote_number or '':>4} {_ROW_MARKERS[row.remote_status]} "
                f"{row.remote_text}"
                for row in rows
            ]
            return text_response(
                "\n".join(lines) or "(both sides are empty)",
                {
                    "file_id": conflict.file_id,
                    "rows": [
                        {
                            "local_number": r.local_number,
                            "remote_number": r.remote_number,
                            "local_text": r.local_text,
                            "remote_text": r.remote_text,
                            "local_status": r.local_status,
                            "remote_status": r.remote_status,
                        }
                        for r in rows
                    ],
                },
            )
        case _:
            raise ValueError(f"Unknown view '{view}'")


async def _handle_resolve(
    orchestrator: SyncOrchestrator, args: dict[str, Any]
) -> types.CallToolResult:
    conflict = orchestrator.conflict
    if conflict is None:
        return _no_conflict()

    text = args.get("text")
    if text is not None:
        is_valid, error = validate_document_text(text)
        if not is_valid:
            raise ValueError(error)
        resolved = text
    else:
        hunks = build_diff_hunks(conflict.remote, conflict.local)
        choices: dict[str, Any] = {}
        if args.get("choice"):
            choices.update(make_choice_map(hunks, args["choice"]))
        per_hunk = args.get("choices") or {}
        known = {h.id for h in hunks}
        unknown = sorted(set(per_hunk) - known)
        if unknown:
            raise ValueError(f"Unknown hunk ids: {', '.join(unknown)}")
        choices.update(per_hunk)
        resolved = compose_resolved_from_hunks(hunks, choices)

    orchestrator.update_resolution(resolved)
    return sync_result_response(await orchestrator.resolve_conflict(resolved))


CONFLICT_SPECS: list[ToolSpec] = [
    ToolSpec(tool=CONFLICT_TOOLS[0], writes=False, handler=_handle_show),
    ToolSpec(tool=CONFLICT_TOOLS[1], writes=True, handler=_handle_resolve),
]
