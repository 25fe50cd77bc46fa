"""MCP server for draftsync using stdio transport.

Exposes the local documents and their Dropbox sync as MCP tools so an
agent can read, edit, sync and resolve conflicts on a writer's drafts.

Transport: stdio (for Claude Desktop/Code integration)
Protocol: JSON-RPC 2.0 over MCP
"""

import argparse
import asyncio
import logging
import sys

import mcp.server.stdio
import mcp.types as types
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from .. import __version__
from ..config_loader import ensure_config
from ..logger import DEFAULT_MCP_LOG_FILE, setup_logging
from ..sync.engine import SyncOrchestrator
from .lifespan import server_lifespan
from .tools import ALL_SPECS, ToolRegistry, build_error_response

logger = logging.getLogger(__name__)

server = Server("draftsync")

# Global orchestrator instance (initialized in main)
_orchestrator: SyncOrchestrator | None = None

# Global registry instance (initialized in main)
_registry: ToolRegistry | None = None


# ---------------------------------------------------------------------------
# Global accessors
# ---------------------------------------------------------------------------


def get_orchestrator() -> SyncOrchestrator:
    """Get the global SyncOrchestrator instance.

    Raises:
        RuntimeError: If the orchestrator is not initialized
    """
    if _orchestrator is None:
        raise RuntimeError(
            "SyncOrchestrator not initialized. Server lifespan not started."
        )
    return _orchestrator


def set_orchestrator(orchestrator: SyncOrchestrator | None) -> None:
    global _orchestrator
    _orchestrator = orchestrator


def get_registry() -> ToolRegistry:
    """Get the global ToolRegistry instance.

    Raises:
        RuntimeError: If registry is not initialized
    """
    if _registry is None:
        raise RuntimeError("ToolRegistry not initialized.")
    return _registry


def set_registry(registry: ToolRegistry | None) -> None:
    global _registry
    _registry = registry


# ---------------------------------------------------------------------------
# MCP protocol handlers
# ---------------------------------------------------------------------------


@server.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    """List the registered tools (write tools are hidden in read-only mode)."""
    return get_registry().list_tools()


@server.call_tool()
async def handle_call_tool(
    name: str, arguments: dict | None
) -> types.CallToolResult:
    """Handle tool execution via ToolRegistry dispatch."""
    orchestrator = get_orchestrator()
    try:
        return await get_registry().call_tool(name, arguments, orchestrator)
    except ValueError as e:
        # Unknown or filtered-out tool name
        return build_error_response(
            "unknown_tool",
            str(e),
            "Use list_tools to see available tools.",
        )


# ---------------------------------------------------------------------------
# Server lifecycle
# ---------------------------------------------------------------------------


async def main(config_overrides: dict | None = None):
    """Run the MCP server with stdio transport.

    Args:
        config_overrides: Optional dict with values from the command line
            (app_key, redirect_uri, state_dir, debug, log_file, read_only)
    """
    overrides = dict(config_overrides or {})
    log_file = overrides.pop("log_file", None)
    read_only = overrides.pop("read_only", False)

    # Must run before stdio_server so nothing reaches stdout
    setup_logging(
        mode="mcp", debug=overrides.get("debug", False), log_file=log_file
    )

    registry = ToolRegistry(ALL_SPECS, read_only=read_only)
    logger.info(
        "Registered %d tools (of %d total, read_only=%s)",
        registry.tool_count(),
        len(ALL_SPECS),
        read_only,
    )
    if read_only:
        print(
            f"Read-only mode: {registry.tool_count()} of "
            f"{len(ALL_SPECS)} tools enabled",
            file=sys.stderr,
        )
    set_registry(registry)

    # set_orchestrator() is called here rather than in the lifespan so that
    # running this file as __main__ updates the module the handlers see.
    async with server_lifespan(config_overrides=overrides or None) as ctx:
        set_orchestrator(ctx["orchestrator"])
        try:
            async with mcp.server.stdio.stdio_server() as (
                read_stream,
                write_stream,
            ):
                init_options = InitializationOptions(
                    server_name="draftsync",
                    server_version=__version__,
                    capabilities=server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                )
                await server.run(read_stream, write_stream, init_options)
        finally:
            set_orchestrator(None)
            set_registry(None)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="draftsync-mcp",
        description="draftsync MCP server - offline-first documents synced with Dropbox",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with default config (from .env or .draftsync/config.yml)
  draftsync-mcp

  # Use a specific Dropbox app and state directory
  draftsync-mcp --app-key abc123 --state-dir ~/drafts/.state

  # Only expose tools that do not change documents or Dropbox
  draftsync-mcp --read-only

  # Write a commented starter config (.draftsync/config.yml) and exit
  draftsync-mcp --init-config

Note: This server uses stdio transport for JSON-RPC communication with MCP clients.
All user-facing messages are written to stderr.
        """,
    )
    parser.add_argument(
        "--app-key",
        help="Dropbox app key (takes precedence over DRAFTSYNC_APP_KEY and config files)",
    )
    parser.add_argument(
        "--redirect-uri",
        help="OAuth redirect URI registered for the Dropbox app",
    )
    parser.add_argument(
        "--state-dir",
        help="Directory for local documents, catalog and token",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log at DEBUG level",
    )
    parser.add_argument(
        "--log-file",
        default=DEFAULT_MCP_LOG_FILE,
        help=f"Log file path (default: {DEFAULT_MCP_LOG_FILE})",
    )
    parser.add_argument(
        "--read-only",
        action="store_true",
        help="Hide every tool that changes documents, the token or Dropbox",
    )
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Create a starter config file if none exists, print its path and exit",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"draftsync version {__version__}",
    )
    return parser


def run(argv: list[str] | None = None) -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    args = build_parser().parse_args(argv)

    if args.init_config:
        print(f"Config file: {ensure_config()}", file=sys.stderr)
        return

    config_overrides: dict = {}
    if args.app_key:
        config_overrides["app_key"] = args.app_key
    if args.redirect_uri:
        config_overrides["redirect_uri"] = args.redirect_uri
    if args.state_dir:
        config_overrides["state_dir"] = args.state_dir
    if args.debug:
        config_overrides["debug"] = True
    if args.log_file:
        config_overrides["log_file"] = args.log_file
    if args.read_only:
        config_overrides["read_only"] = True

    try:
        asyncio.run(main(config_overrides=config_overrides or None))
    except RuntimeError:
        # Error already printed to stderr by lifespan manager
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
