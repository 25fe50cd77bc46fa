"""MCP tool handlers for draftsync.

Each module defines its ``types.Tool`` list and a parallel ``ToolSpec``
list binding every tool to an async handler taking the orchestrator.
"""

from .auth import AUTH_SPECS, AUTH_TOOLS
from .conflict import CONFLICT_SPECS, CONFLICT_TOOLS
from .errors import build_error_response
from .files import FILES_SPECS, FILES_TOOLS
from .registry import ToolRegistry, ToolSpec
from .sync import SYNC_SPECS, SYNC_TOOLS

ALL_SPECS: list[ToolSpec] = (
    FILES_SPECS + SYNC_SPECS + CONFLICT_SPECS + AUTH_SPECS
)

__all__ = [
    "build_error_response",
    # Registry
    "ToolSpec",
    "ToolRegistry",
    # Spec lists
    "ALL_SPECS",
    "AUTH_SPECS",
    "CONFLICT_SPECS",
    "FILES_SPECS",
    "SYNC_SPECS",
    # Tool lists
    "AUTH_TOOLS",
    "CONFLICT_TOOLS",
    "FILES_TOOLS",
    "SYNC_TOOLS",
]
