"""Dropbox transport, OAuth lifecycle and async bridging."""

from .async_utils import run_sync
from .client import DropboxClient
from .oauth import TokenLifecycle

__all__ = ["DropboxClient", "TokenLifecycle", "run_sync"]
