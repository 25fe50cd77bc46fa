"""Unified configuration schema for draftsync.

Defines Pydantic models for the YAML config structure with dedicated
sections for the Dropbox app, sync tuning and logging. Includes an adapter
that flattens it into the fallback dict consumed by ``load_config()``.

Usage:
    from draftsync.config_schema import build_config, yaml_fallbacks

    unified = build_config(load_hierarchical_config())
    config = load_config(cli_overrides, yaml_fallbacks=yaml_fallbacks(unified))
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from .core.client import (
    DEFAULT_DOCUMENT_PREFIX,
    DEFAULT_DOCUMENT_SUFFIX,
    DEFAULT_INDEX_PATH,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class DropboxConfig(BaseModel):
    """Dropbox app settings.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    app_key: str | None = Field(default=None, description="Dropbox app key")
    redirect_uri: str | None = Field(
        default=None, description="OAuth redirect URI registered for the app"
    )
    api_timeout: int = Field(
        default=60,
        ge=1,
        le=600,
        description="Read timeout for Dropbox requests, in seconds",
    )
    refresh_margin_seconds: int = Field(
        default=60,
        ge=0,
        le=3600,
        description="Refresh the access token this long before it expires",
    )

    model_config = {"frozen": True}


class SyncSettings(BaseModel):
    """Sync tuning and remote layout."""

    state_dir: str | None = Field(
        default=None, description="Local state directory"
    )
    debug: bool = Field(default=False, description="Enable debug mode")
    clock_skew_tolerance_ms: int = Field(
        default=1000,
        ge=0,
        le=3_600_000,
        description="Slack before a newer Dropbox copy is flagged",
    )
    max_parallel_downloads: int = Field(
        default=4,
        ge=1,
        le=32,
        description="Concurrent downloads during catalog hydration (1-32)",
    )
    document_prefix: str = Field(default=DEFAULT_DOCUMENT_PREFIX)
    document_suffix: str = Field(default=DEFAULT_DOCUMENT_SUFFIX)
    index_path: str = Field(default=DEFAULT_INDEX_PATH)

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has sensible defaults, so ``UnifiedConfig()``
    (zero-config) is always valid.
    """

    dropbox: DropboxConfig = Field(default_factory=DropboxConfig)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Missing sections get defaults.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


def yaml_fallbacks(unified: UnifiedConfig) -> dict:
    """Flatten the ``dropbox`` and ``sync`` sections, dropping ``None``s."""
    merged = {**unified.dropbox.model_dump(), **unified.sync.model_dump()}
    return {k: v for k, v in merged.items() if v is not None}

