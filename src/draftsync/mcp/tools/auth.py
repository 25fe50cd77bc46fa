"""MCP tool handlers for connecting Dropbox.

The OAuth flow is split across two calls because a human has to open the
consent page in a browser:

1. ``auth_start`` returns the authorization URL.
2. ``auth_finish`` takes the URL the browser was redirected to.

``auth_disconnect`` forgets the token locally.
"""

from __future__ import annotations

from typing import Any

import mcp.types as types

from ...sync.engine import SyncOrchestrator
from .errors import sync_result_response
from .registry import ToolSpec

AUTH_TOOLS: list[types.Tool] = [
    types.Tool(
        name="auth_start",
        description=(
            "Start connecting Dropbox. Returns a URL the user must open in "
            "a browser; pass the URL they are redirected to to auth_finish."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=False,
            openWorldHint=False,
        ),
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    types.Tool(
        name="auth_finish",
        description=(
            "Finish connecting Dropbox with the full redirect URL "
            "(including ?code=...&state=...)."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=False,
            openWorldHint=True,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "callback_url": {
                    "type": "string",
                    "description": "URL the browser was redirected to",
                },
            },
            "required": ["callback_url"],
        },
    ),
    types.Tool(
        name="auth_disconnect",
        description=(
            "Forget the Dropbox token on this machine. Documents stay "
            "local; nothing is deleted from Dropbox."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
]


async def _handle_auth_start(
    orchestrator: SyncOrchestrator, args: dict[str, Any]
) -> types.CallToolResult:
    return sync_result_response(orchestrator.start_authorization())


async def _handle_auth_finish(
    orchestrator: SyncOrchestrator, args: dict[str, Any]
) -> types.CallToolResult:
    callback_url = args.get("callback_url")
    if not isinstance(callback_url, str) or not callback_url.strip():
        raise ValueError("callback_url cannot be empty")
    return sync_result_response(
        await orchestrator.finish_authorization(callback_url.strip())
    )


async def _handle_auth_disconnect(
    orchestrator: SyncOrchestrator, args: dict[str, Any]
) -> types.CallToolResult:
    return sync_result_response(orchestrator.disconnect())


AUTH_SPECS: list[ToolSpec] = [
    ToolSpec(tool=AUTH_TOOLS[0], writes=True, handler=_handle_auth_start),
    ToolSpec(tool=AUTH_TOOLS[1], writes=True, handler=_handle_auth_finish),
    ToolSpec(tool=AUTH_TOOLS[2], writes=True, handler=_handle_auth_disconnect),
]
