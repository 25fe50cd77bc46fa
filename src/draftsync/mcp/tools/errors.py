"""Error response builders and shared utilities for MCP tool handlers.

Structured error responses carry a corrective action so an agent can
recover without human help.  ``sync_result_response`` is the common path
that turns an orchestrator ``SyncResult`` into tool output.
"""

from typing import Any

import mcp.types as types

from ...sync.models import SyncResult, SyncStatus
from ...sync.reporter import format_sync_result, result_to_json

# Follow-up hint per notice, keyed on a stable fragment of the text.
_NOTICE_ACTIONS: dict[str, str] = {
    "Connect Dropbox first": "Call auth_start, open the URL, then auth_finish.",
    "session expired": "Call auth_start to reconnect Dropbox.",
    "app key": "Set DRAFTSYNC_APP_KEY and restart the server.",
    "Offline": "Call network_set with online=true once connectivity returns.",
    "already in progress": "Wait for the running sync to finish, then retry.",
    "Create a manuscript first": "Call file_create to add a document.",
    "not found": "Use file_list to see available documents.",
}


def build_error_response(
    error_type: str, message: str, corrective_action: str
) -> types.CallToolResult:
    """Build a structured error response with corrective action.

    Args:
        error_type: Error category (not_found, validation_error,
            sync_error, not_connected, server_error)
        message: Human-readable error description
        corrective_action: Specific action the agent can take

    Returns:
        CallToolResult with isError=True

    Examples:
        >>> build_error_response("not_found", "Document abc not found", "Use file_list.")
        CallToolResult(content=[TextContent(...)], isError=True)
    """
    error_text = f"Error ({error_type}): {message}\n\nAction: {corrective_action}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=error_text)],
        isError=True,
    )


def corrective_action_for(notice: str) -> str | None:
    for fragment, action in _NOTICE_ACTIONS.items():
        if fragment.lower() in notice.lower():
            return action
    return None


def text_response(
    text: str, structured: dict[str, Any] | None = None
) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent=structured,
    )


def sync_result_response(result: SyncResult) -> types.CallToolResult:
    """Render a ``SyncResult``; ``ERROR`` results are flagged ``isError``."""
    text = format_sync_result(result)
    action = corrective_action_for(result.notice)
    if result.status in (SyncStatus.ERROR, SyncStatus.SKIPPED) and action:
        text += f"\n\nAction: {action}"
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent=result_to_json(result),
        isError=result.status == SyncStatus.ERROR,
    )
