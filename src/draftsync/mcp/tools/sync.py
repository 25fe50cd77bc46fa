"""MCP tool handlers for Dropbox sync.

Defines four tools:

- ``doc_sync`` -- sync the active document with Dropbox.
- ``doc_pull`` -- reconcile the document catalog with Dropbox.
- ``doc_status`` -- session status (connection, active document, conflict).
- ``network_set`` -- report connectivity; going online triggers a sync.
"""

from __future__ import annotations

import logging
from typing import Any

import mcp.types as types

from ...sync.engine import SyncOrchestrator
from ...sync.reporter import format_status, status_to_json
from .errors import sync_result_response, text_response
from .registry import ToolSpec

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------


SYNC_TOOLS: list[types.Tool] = [
    types.Tool(
        name="doc_sync",
        description=(
            "Synchronize the active document with Dropbox using a "
            "three-way merge. Overlapping edits are returned as a conflict "
            "for conflict_show / conflict_resolve; nothing is overwritten."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=True,
        ),
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    types.Tool(
        name="doc_pull",
        description=(
            "Pull the document list from Dropbox, merge it with the local "
            "list, download new documents and flag documents that changed "
            "in Dropbox."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=True,
        ),
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    types.Tool(
        name="doc_status",
        description=(
            "Show connection state, the active document, last sync time "
            "and whether a conflict is pending."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    types.Tool(
        name="network_set",
        description=(
            "Tell the server whether the network is available. Switching "
            "from offline to online syncs the active document once."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=True,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "online": {
                    "type": "boolean",
                    "description": "true when connectivity is available",
                },
            },
            "required": ["online"],
        },
    ),
]


# ---------------------------------------------------------------------------
# Individual handlers
# ---------------------------------------------------------------------------


async def _handle_doc_sync(
    orchestrator: SyncOrchestrator, args: dict[str, Any]
) -> types.CallToolResult:
    return sync_result_response(await orchestrator.sync())


async def _handle_doc_pull(
    orchestrator: SyncOrchestrator, args: dict[str, Any]
) -> types.CallToolResult:
    return sync_result_response(await orchestrator.pull_file_catalog())


async def _handle_doc_status(
    orchestrator: SyncOrchestrator, args: dict[str, Any]
) -> types.CallToolResult:
    status = orchestrator.status()
    return text_response(format_status(status), status_to_json(status))


async def _handle_network_set(
    orchestrator: SyncOrchestrator, args: dict[str, Any]
) -> types.CallToolResult:
    online = args.get("online")
    if not isinstance(online, bool):
        raise ValueError("online must be true or false")

    result = await orchestrator.set_online(online)
    if result is not None:
        return sync_result_response(result)
    state = "online" if online else "offline"
    return text_response(
        f"Network marked {state}.", {"online": online, "synced": False}
    )


SYNC_SPECS: list[ToolSpec] = [
    ToolSpec(tool=SYNC_TOOLS[0], writes=True, handler=_handle_doc_sync),
    ToolSpec(tool=SYNC_TOOLS[1], writes=True, handler=_handle_doc_pull),
    ToolSpec(tool=SYNC_TOOLS[2], writes=False, handler=_handle_doc_status),
    ToolSpec(tool=SYNC_TOOLS[3], writes=True, handler=_handle_network_set),
]
