"""Runtime configuration for the sync server.

Reads Dropbox and sync settings from CLI args, environment variables,
.env files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    DRAFTSYNC_APP_KEY: Dropbox app key (optional; sync is disabled without it)
    DRAFTSYNC_REDIRECT_URI: OAuth redirect URI (optional)
    DRAFTSYNC_STATE_DIR: Local state directory (optional)
    DRAFTSYNC_DEBUG: Enable debug logging (optional, default: false)
    DRAFTSYNC_MAX_PARALLEL_DOWNLOADS: Concurrent catalog downloads (optional, default: 4)
    DRAFTSYNC_CLOCK_SKEW_MS: Remote-ahead clock skew tolerance (optional, default: 1000)
"""

import logging
import os
from dataclasses import dataclass
from urllib.parse import urlparse

from .core.client import (
    DEFAULT_DOCUMENT_PREFIX,
    DEFAULT_DOCUMENT_SUFFIX,
    DEFAULT_INDEX_PATH,
)

logger = logging.getLogger(__name__)

DEFAULT_REDIRECT_URI = "http://localhost:53682/callback"
DEFAULT_STATE_DIR = "~/.local/state/draftsync"


@dataclass
class Config:
    app_key: str | None = None
    redirect_uri: str = DEFAULT_REDIRECT_URI
    state_dir: str = DEFAULT_STATE_DIR
    debug: bool = False
    refresh_margin_seconds: int = 60
    clock_skew_tolerance_ms: int = 1000
    max_parallel_downloads: int = 4
    api_timeout: int = 60
    document_prefix: str = DEFAULT_DOCUMENT_PREFIX
    document_suffix: str = DEFAULT_DOCUMENT_SUFFIX
    index_path: str = DEFAULT_INDEX_PATH


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Raises:
        ValueError: If the redirect URI or a remote path is malformed.
    """
    config.redirect_uri = config.redirect_uri.strip()
    if not config.redirect_uri.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid redirect URI '{config.redirect_uri}': must start with http:// or https://"
        )
    if not urlparse(config.redirect_uri).hostname:
        raise ValueError(
            f"Invalid redirect URI '{config.redirect_uri}': URL must include a hostname"
        )

    for name in ("document_prefix", "index_path"):
        value = getattr(config, name)
        if not value.startswith("/"):
            raise ValueError(
                f"Invalid {name} '{value}': Dropbox paths must start with '/'"
            )

    if config.app_key is not None:
        config.app_key = config.app_key.strip() or None
    if config.app_key is None:
        logger.warning(
            "No Dropbox app key configured; documents stay local only. "
            "Set DRAFTSYNC_APP_KEY to enable sync."
        )


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def _get_int(
    env_key: str, fb: dict, fb_key: str, default: int, low: int, high: int
) -> int:
    raw = os.getenv(env_key)
    if raw is None:
        return int(fb.get(fb_key, default))
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(
            f"Invalid {env_key} '{raw}': must be a number between {low} and {high}"
        ) from None
    if not (low <= value <= high):
        raise ValueError(
            f"Invalid {env_key} '{raw}': must be a number between {low} and {high}"
        )
    return value


def load_config(
    app_key: str | None = None,
    redirect_uri: str | None = None,
    state_dir: str | None = None,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        app_key: Override Dropbox app key.
        redirect_uri: Override OAuth redirect URI.
        state_dir: Override the local state directory.
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Flat dict of values from the YAML ``dropbox`` and
            ``sync`` sections (see ``config_schema.yaml_fallbacks``).

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If a value is out of range or malformed.
    """
    fb = yaml_fallbacks or {}

    final_app_key = (
        app_key or os.getenv("DRAFTSYNC_APP_KEY") or fb.get("app_key")
    )
    final_redirect = (
        redirect_uri
        or os.getenv("DRAFTSYNC_REDIRECT_URI")
        or fb.get("redirect_uri")
        or DEFAULT_REDIRECT_URI
    )
    final_state_dir = (
        state_dir
        or os.getenv("DRAFTSYNC_STATE_DIR")
        or fb.get("state_dir")
        or DEFAULT_STATE_DIR
    )

    if debug:
        final_debug = True
    else:
        env_debug = _get_bool_env("DRAFTSYNC_DEBUG")
        if env_debug is not None:
            final_debug = env_debug
        else:
            final_debug = bool(fb.get("debug", False))

    # --- Numeric fields: env > YAML > default ---

    config = Config(
        app_key=final_app_key,
        redirect_uri=final_redirect,
        state_dir=os.path.expanduser(final_state_dir),
        debug=final_debug,
        refresh_margin_seconds=int(fb.get("refresh_margin_seconds", 60)),
        clock_skew_tolerance_ms=_get_int(
            "DRAFTSYNC_CLOCK_SKEW_MS",
            fb,
            "clock_skew_tolerance_ms",
            1000,
            0,
            3_600_000,
        ),
        max_parallel_downloads=_get_int(
            "DRAFTSYNC_MAX_PARALLEL_DOWNLOADS",
            fb,
            "max_parallel_downloads",
            4,
            1,
            32,
        ),
        api_timeout=int(fb.get("api_timeout", 60)),
        document_prefix=fb.get("document_prefix", DEFAULT_DOCUMENT_PREFIX),
        document_suffix=fb.get("document_suffix", DEFAULT_DOCUMENT_SUFFIX),
        index_path=fb.get("index_path", DEFAULT_INDEX_PATH),
    )

    validate_config(config)

    return config
