"""Offline-first document sync engine.

Public API for keeping local drafts in step with copies stored in Dropbox.

Architecture
------------
Each document carries a **base text**: the last text both sides agreed
on.  A sync diffs the local text and the remote text against that base
and merges the two edit scripts; edits that touch the same region are
returned as a ``ConflictState`` for the user to arbitrate hunk by hunk.
The document catalog is reconciled separately through a JSON manifest
stored next to the documents.

Modules:

- ``engine``    -- ``SyncOrchestrator``: sequences token refresh,
  download, merge, upload and local persistence.
- ``differ``    -- LCS line diff and base-anchored change lists.
- ``merger``    -- ``three_way_merge`` and unified diff helper.
- ``hunks``     -- hunk building and resolution composing for review.
- ``catalog``   -- catalog normalisation, merging and manifest codec.
- ``documents`` -- meaningful-content checks and record normalisation.
- ``state``     -- ``LocalStore`` contract and ``JsonFileStore``.
- ``models``    -- data contracts.
- ``errors``    -- ``SyncError`` taxonomy.
- ``reporter``  -- human-readable and JSON formatting.

Usage example
-------------
::

    from pathlib import Path
    from draftsync.core import DropboxClient, TokenLifecycle
    from draftsync.sync import JsonFileStore, SyncOrchestrator

    orchestrator = SyncOrchestrator(
        store=JsonFileStore(Path("~/.local/state/draftsync").expanduser()),
        remote=DropboxClient(),
        auth=TokenLifecycle(app_key, "http://localhost:53682/callback"),
    )
    orchestrator.load()
    orchestrator.edit("# Chapter one\\n\\nIt was a dark night.")
    result = await orchestrator.sync()
    print(result.notice)
"""

from .catalog import merge_file_catalogs
from .engine import SyncOrchestrator
from .errors import AuthError, CatalogError, NetworkError, SyncError
from .hunks import (
    HunkChoice,
    build_diff_hunks,
    compose_resolved_from_hunks,
)
from .merger import three_way_merge
from .models import (
    ConflictState,
    DocumentRecord,
    FileMeta,
    SyncResult,
    SyncStatus,
    TokenState,
    WorkspaceManifest,
)
from .reporter import format_conflict, format_sync_result, result_to_json
from .state import JsonFileStore, LocalStore

__all__ = [
    "AuthError",
    "CatalogError",
    "ConflictState",
    "DocumentRecord",
    "FileMeta",
    "HunkChoice",
    "JsonFileStore",
    "LocalStore",
    "NetworkError",
    "SyncError",
    "SyncOrchestrator",
    "SyncResult",
    "SyncStatus",
    "TokenState",
    "WorkspaceManifest",
    "build_diff_hunks",
    "compose_resolved_from_hunks",
    "format_conflict",
    "format_sync_result",
    "merge_file_catalogs",
    "result_to_json",
    "three_way_merge",
]
