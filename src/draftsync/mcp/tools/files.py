"""MCP tool handlers for the local documents and their catalog.

Defines seven tools:

- ``doc_read`` / ``doc_write`` -- read or replace the active document.
- ``file_list`` -- list the catalog, marking the active document.
- ``file_create`` / ``file_rename`` / ``file_select`` / ``file_delete`` --
  manage documents.  Only delete reaches Dropbox directly.
"""

from __future__ import annotations

from typing import Any

import mcp.types as types

from ...sync.engine import SyncOrchestrator
from ...sync.reporter import file_to_json, format_file_list
from ...validators import (
    validate_document_text,
    validate_file_id,
    validate_file_name,
)
from .errors import build_error_response, sync_result_response, text_response
from .registry import ToolSpec

_NO_ARGS = {"type": "object", "properties": {}, "required": []}


FILES_TOOLS: list[types.Tool] = [
    types.Tool(
        name="doc_read",
        description="Read the text of the active document.",
        annotations=types.ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema=_NO_ARGS,
    ),
    types.Tool(
        name="doc_write",
        description=(
            "Replace the text of the active document. Saved locally only; "
            "call doc_sync to push the change to Dropbox."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=True,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "text": {
                    "type": "string",
                    "description": "Full document text (may be empty)",
                },
            },
            "required": ["text"],
        },
    ),
    types.Tool(
        name="file_list",
        description=(
            "List documents. The active one is marked with '*'; documents "
            "with newer copies in Dropbox are flagged."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema=_NO_ARGS,
    ),
    types.Tool(
        name="file_create",
        description="Create an empty document and make it active.",
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=False,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "name": {"type": "string", "description": "Display name"},
            },
            "required": ["name"],
        },
    ),
    types.Tool(
        name="file_rename",
        description=(
            "Rename the active document. The new name reaches Dropbox on "
            "the next doc_pull or doc_sync."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "name": {"type": "string", "description": "New display name"},
            },
            "required": ["name"],
        },
    ),
    types.Tool(
        name="file_select",
        description=(
            "Make another document active. A document not yet cached "
            "locally is downloaded from Dropbox when connected."
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
                "file_id": {
                    "type": "string",
                    "description": "Document id from file_list",
                },
            },
            "required": ["file_id"],
        },
    ),
    types.Tool(
        name="file_delete",
        description=(
            "Delete the active document locally and, when connected and "
            "online, from Dropbox. Cannot be undone."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=True,
            idempotentHint=False,
            openWorldHint=True,
        ),
        inputSchema=_NO_ARGS,
    ),
]


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_doc_read(
    orchestrator: SyncOrchestrator, args: dict[str, Any]
) -> types.CallToolResult:
    document = orchestrator.document
    if document is None:
        return build_error_response(
            "not_found",
            "No active document.",
            "Call file_create or file_select first.",
        )
    status = orchestrator.status()
    return text_response(
        document.text,
        {
            "file_id": document.file_id,
            "name": status.active_file_name,
            "text": document.text,
            "updated_at": document.updated_at,
            "last_synced_at": document.last_synced_at,
            "has_conflict": status.has_conflict,
            "remote_ahead_at": status.remote_ahead_at,
        },
    )


async def _handle_doc_write(
    orchestrator: SyncOrchestrator, args: dict[str, Any]
) -> types.CallToolResult:
    text = args.get("text")
    is_valid, error = validate_document_text(text)
    if not is_valid:
        raise ValueError(error)
    return sync_result_response(orchestrator.edit(text))


async def _handle_file_list(
    orchestrator: SyncOrchestrator, args: dict[str, Any]
) -> types.CallToolResult:
    return text_response(
        format_file_list(
            orchestrator.files,
            orchestrator.active_file_id,
            orchestrator.remote_ahead,
        ),
        {
            "active_file_id": orchestrator.active_file_id,
            "files": [file_to_json(f) for f in orchestrator.files],
            "remote_ahead": dict(orchestrator.remote_ahead),
        },
    )


async def _handle_file_create(
    orchestrator: SyncOrchestrator, args: dict[str, Any]
) -> types.CallToolResult:
    name = args.get("name")
    is_valid, error = validate_file_name(name)
    if not is_valid:
        raise ValueError(error)
    return sync_result_response(orchestrator.create_file(name))


async def _handle_file_rename(
    orchestrator: SyncOrchestrator, args: dict[str, Any]
) -> types.CallToolResult:
    name = args.get("name")
    is_valid, error = validate_file_name(name)
    if not is_valid:
        raise ValueError(error)
    return sync_result_response(orchestrator.rename_active_file(name))


async def _handle_file_select(
    orchestrator: SyncOrchestrator, args: dict[str, Any]
) -> types.CallToolResult:
    file_id = args.get("file_id")
    is_valid, error = validate_file_id(file_id)
    if not is_valid:
        raise ValueError(error)
    return sync_result_response(await orchestrator.select_file(file_id))


async def _handle_file_delete(
    orchestrator: SyncOrchestrator, args: dict[str, Any]
) -> types.CallToolResult:
    return sync_result_response(await orchestrator.delete_active_file())


FILES_SPECS: list[ToolSpec] = [
    ToolSpec(tool=FILES_TOOLS[0], writes=False, handler=_handle_doc_read),
    ToolSpec(tool=FILES_TOOLS[1], writes=True, handler=_handle_doc_write),
    ToolSpec(tool=FILES_TOOLS[2], writes=False, handler=_handle_file_list),
    ToolSpec(tool=FILES_TOOLS[3], writes=True, handler=_handle_file_create),
    ToolSpec(tool=FILES_TOOLS[4], writes=True, handler=_handle_file_rename),
    ToolSpec(tool=FILES_TOOLS[5], writes=False, handler=_handle_file_select),
    ToolSpec(tool=FILES_TOOLS[6], writes=True, handler=_handle_file_delete),
]
