"""ToolSpec and ToolRegistry for MCP tool dispatch.

Key concepts:
- ToolSpec: Immutable dataclass linking a Tool definition, whether the tool
  changes local or remote state, and an async handler with the standard
  signature (orchestrator, args) -> CallToolResult.
- ToolRegistry: Filters specs at construction time (``read_only`` drops
  every tool that writes), then provides list_tools() and call_tool()
  dispatch with error translation.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import mcp.types as types

from ...sync.engine import SyncOrchestrator
from ...sync.errors import SyncError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """Immutable specification for a single MCP tool.

    Attributes:
        tool: The MCP Tool definition (name, description, inputSchema).
        writes: ``True`` if the tool changes documents, the catalog, the
            token or the remote store.
        handler: Async handler with signature (orchestrator, args) ->
            CallToolResult.
    """

    tool: types.Tool
    writes: bool
    handler: Callable[
        [SyncOrchestrator, dict], Awaitable[types.CallToolResult]
    ]


class ToolRegistry:
    """Registry of ToolSpecs.

    With ``read_only=True`` only specs with ``writes=False`` are exposed.
    """

    def __init__(self, specs: list[ToolSpec], read_only: bool = False):
        self._specs: dict[str, ToolSpec] = {
            spec.tool.name: spec
            for spec in specs
            if not (read_only and spec.writes)
        }

    def list_tools(self) -> list[types.Tool]:
        """Return the Tool definitions of all registered specs."""
        return [spec.tool for spec in self._specs.values()]

    def tool_count(self) -> int:
        return len(self._specs)

    async def call_tool(
        self,
        name: str,
        arguments: dict | None,
        orchestrator: SyncOrchestrator,
    ) -> types.CallToolResult:
        """Dispatch a tool call to its handler.

        Sync failures, validation errors and unexpected exceptions are
        translated into structured CallToolResult responses.

        Raises:
            ValueError: If the tool name is not registered.
        """
        from .errors import build_error_response

        spec = self._specs.get(name)
        if spec is None:
            raise ValueError(f"Unknown tool: {name}")
        args = arguments or {}
        try:
            return await spec.handler(orchestrator, args)
        except SyncError as e:
            logger.warning("Sync failure in %s: %s", name, e)
            return build_error_response(
                "sync_error",
                str(e),
                "Check connectivity with doc_status, then retry.",
            )
        except ValueError as e:
            return build_error_response(
                "validation_error",
                str(e),
                "Check parameter values and retry.",
            )
        except Exception as e:
            logger.exception("Unexpected error in tool %s", name)
            return build_error_response(
                "server_error",
                str(e),
                "Retry later or inspect the server log.",
            )
