"""Lifespan management for MCP server startup and shutdown."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from ..config import load_config
from ..config_loader import (
    discover_config_files,
    load_hierarchical_config,
)
from ..config_schema import build_config, yaml_fallbacks as flatten_yaml
from ..core.async_utils import init_semaphore
from ..core.client import DropboxClient
from ..core.oauth import TokenLifecycle
from ..sync.engine import SyncOrchestrator
from ..sync.state import JsonFileStore

logger = logging.getLogger(__name__)


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback (safe in MCP mode)."""
    print(msg, file=sys.stderr, flush=True)


@asynccontextmanager
async def server_lifespan(
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """
    Manage server startup and shutdown lifecycle.

    On startup:
    - Load .env file (so values are available for env var lookups and YAML interpolation)
    - Load YAML config files if present (as fallback values)
    - Merge all sources via load_config(): CLI > env vars > .env > YAML > defaults
    - Open the local state store and load the workspace
    - Build the Dropbox client and, when an app key is set, the token lifecycle

    Startup never touches the network: documents are usable offline, and
    Dropbox is only contacted by sync tools.

    Args:
        config_overrides: Optional dict with config values from CLI
            (app_key, redirect_uri, state_dir, debug)

    Yields:
        Dict with 'orchestrator' key containing the loaded SyncOrchestrator

    Raises:
        RuntimeError: If configuration is invalid or the state directory
            cannot be read.
    """
    logger.info("MCP server starting...")
    _stderr_print("draftsync MCP server starting...")

    try:
        # 1. Load .env early (before YAML, so ${VAR} interpolation can use .env values)
        load_dotenv()

        # 2. YAML config as fallbacks
        fallbacks: dict[str, Any] | None = None
        config_files = discover_config_files()
        sources = []

        if config_files:
            unified = build_config(load_hierarchical_config())
            fallbacks = flatten_yaml(unified)
            sources.append(f"config file: {config_files[0]}")

        # 3. Single call to load_config with all sources merged
        overrides = config_overrides or {}
        config = load_config(
            app_key=overrides.get("app_key"),
            redirect_uri=overrides.get("redirect_uri"),
            state_dir=overrides.get("state_dir"),
            debug=overrides.get("debug", False),
            yaml_fallbacks=fallbacks,
        )

        if overrides:
            sources.append("CLI arguments")
        sources.append("environment variables")
        source_desc = ", ".join(sources)
        logger.info("Configuration loaded from: %s", source_desc)
        _stderr_print(f"  Configuration loaded from: {source_desc}")
    except (ValueError, OSError, yaml.YAMLError) as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        raise RuntimeError(f"Configuration error: {e}") from e

    state_dir = Path(config.state_dir)
    _stderr_print(f"  State directory: {state_dir}")

    remote = DropboxClient(
        timeout=(10, config.api_timeout),
        document_prefix=config.document_prefix,
        document_suffix=config.document_suffix,
        index_path=config.index_path,
    )
    auth = None
    if config.app_key:
        auth = TokenLifecycle(
            config.app_key,
            config.redirect_uri,
            refresh_margin_seconds=config.refresh_margin_seconds,
            timeout=(10, config.api_timeout),
        )
    else:
        _stderr_print(
            "  No Dropbox app key configured; documents stay local only."
        )

    orchestrator = SyncOrchestrator(
        store=JsonFileStore(state_dir),
        remote=remote,
        auth=auth,
        clock_skew_tolerance_ms=config.clock_skew_tolerance_ms,
    )
    try:
        orchestrator.load()
    except OSError as e:
        logger.error("Failed to load local state from %s: %s", state_dir, e)
        _stderr_print(f"ERROR: Cannot use state directory {state_dir}: {e}")
        raise RuntimeError(
            f"Cannot use state directory {state_dir}: {e}"
        ) from e

    init_semaphore(config.max_parallel_downloads)
    status = orchestrator.status()
    _stderr_print(
        f"  Documents: {status.file_count}, "
        f"Dropbox {'connected' if status.connected else 'not connected'}"
    )
    _stderr_print("Server ready. Waiting for MCP client connection...")

    yield {"orchestrator": orchestrator, "config": config}

    # Shutdown
    logger.info("MCP server shutting down")
    _stderr_print("draftsync MCP server shutting down.")
