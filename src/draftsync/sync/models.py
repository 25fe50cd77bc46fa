"""Data contracts for the sync engine.

Persisted and user-facing records are frozen Pydantic models:

- ``DocumentRecord``: local cache entry for one document body.
- ``FileMeta`` / ``WorkspaceManifest``: the multi-document catalog.
- ``TokenState`` / ``PendingAuthorization``: OAuth lifecycle state.
- ``ConflictState``: an unresolved merge awaiting user arbitration.
- ``MergeResult`` / ``SyncResult``: explicit outcomes returned to callers.
- ``RemoteFile`` / ``UploadResult`` / ``RemoteMetadata``: remote store replies.

Algorithmic records used only inside the diff/merge code (``DiffOp``,
``Change``, ``Hunk``, ``DiffRow``) are lightweight frozen dataclasses.

All timestamps are epoch milliseconds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel

# ---------------------------------------------------------------------------
# Local persistence
# ---------------------------------------------------------------------------


class DocumentRecord(BaseModel):
    """Local state of one document.

    Attributes:
        file_id: Catalog id of the document.
        text: Current local text (editor boundary is plain text).
        updated_at: Bumped on every local mutation.
        last_synced_at: Time of the last successful sync, or ``None``.
        base_text: Last text both sides agreed on (merge ancestor).
        remote_revision: Remote revision matching ``base_text``.
    """

    file_id: str
    text: str = ""
    updated_at: int
    last_synced_at: int | None = None
    base_text: str = ""
    remote_revision: str | None = None

    model_config = {"frozen": True}

    @property
    def has_sync_state(self) -> bool:
        """``True`` once the document has been synced at least once."""
        return (
            self.remote_revision is not None
            or self.last_synced_at is not None
        )

    @property
    def is_first_sync(self) -> bool:
        """``True`` when no prior base exists for this document."""
        return (
            self.last_synced_at is None
            and self.remote_revision is None
            and self.base_text.strip() == ""
        )


class FileMeta(BaseModel):
    """Catalog entry for one document.  Identity is ``id``."""

    id: str
    name: str
    created_at: int
    updated_at: int
    renamed_at: int

    model_config = {"frozen": True}


class WorkspaceManifest(BaseModel):
    """Catalog of all known documents plus the active selection."""

    files: list[FileMeta] = []
    active_file_id: str | None = None

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# OAuth
# ---------------------------------------------------------------------------


class TokenState(BaseModel):
    """Persisted OAuth token set."""

    access_token: str
    refresh_token: str
    expires_at: int
    account_id: str | None = None

    model_config = {"frozen": True}


class PendingAuthorization(BaseModel):
    """PKCE values kept between redirecting the user and the callback."""

    state: str
    code_verifier: str
    created_at: int

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Remote store replies
# ---------------------------------------------------------------------------


class RemoteFile(BaseModel):
    content: str
    revision: str

    model_config = {"frozen": True}


class UploadResult(BaseModel):
    revision: str

    model_config = {"frozen": True}


class RemoteMetadata(BaseModel):
    revision: str | None = None
    server_modified_at: int | None = None

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Merge / conflict outcomes
# ---------------------------------------------------------------------------


class MergeStatus(str, Enum):
    CLEAN = "clean"
    CONFLICT = "conflict"


class MergeResult(BaseModel):
    """Outcome of a three-way merge.

    On conflict, ``merged`` holds the unmerged local text.
    """

    status: MergeStatus
    merged: str
    reason: str | None = None

    model_config = {"frozen": True}

    @property
    def is_clean(self) -> bool:
        return self.status == MergeStatus.CLEAN


class ConflictState(BaseModel):
    """A merge that needs user arbitration.

    Attributes:
        file_id: Document the conflict belongs to.
        file_name: Display name at the time the conflict was raised.
        base: Merge ancestor (empty for first-sync conflicts).
        local: Local text that took part in the merge.
        remote: Remote text that took part in the merge.
        resolved: Candidate resolution (defaults to ``local``).
        reason: Human-readable explanation.
    """

    file_id: str
    file_name: str
    base: str
    local: str
    remote: str
    resolved: str
    reason: str | None = None

    model_config = {"frozen": True}


class SyncStatus(str, Enum):
    """Orchestrator states and terminal outcomes."""

    IDLE = "idle"
    SYNCING = "syncing"
    CLEAN = "clean"
    CONFLICT = "conflict"
    ERROR = "error"
    SKIPPED = "skipped"


class SyncResult(BaseModel):
    """Explicit result of an orchestrator call.

    Attributes:
        status: Terminal outcome of the call.
        notice: Short human-readable notice for the user.
        file_id: Document the call acted on, when applicable.
        conflict: Populated when ``status`` is ``CONFLICT``.
        uploaded: Whether anything was written to the remote store.
        files: Catalog after the call, when the call touched it.
        authorize_url: Dropbox consent URL returned by ``start_authorization``.
    """

    status: SyncStatus
    notice: str
    file_id: str | None = None
    conflict: ConflictState | None = None
    uploaded: bool = False
    files: list[FileMeta] = []
    authorize_url: str | None = None

    model_config = {"frozen": True}

    @property
    def ok(self) -> bool:
        return self.status == SyncStatus.CLEAN


class EngineStatus(BaseModel):
    """Snapshot of the orchestrator for status displays."""

    state: SyncStatus
    connected: bool
    online: bool
    active_file_id: str | None = None
    active_file_name: str | None = None
    last_synced_at: int | None = None
    has_sync_state: bool = False
    remote_ahead_at: int | None = None
    has_conflict: bool = False
    file_count: int = 0
    notice: str = ""

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Diff records
# ---------------------------------------------------------------------------


class DiffKind(str, Enum):
    EQUAL = "equal"
    INSERT = "insert"
    DELETE = "delete"


@dataclass(slots=True)
class DiffOp:
    """A run of lines sharing one edit kind."""

    kind: DiffKind
    lines: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class Change:
    """A replacement of base lines ``[start, end)`` by ``insert_lines``.

    ``start == end`` denotes a zero-width insertion.
    """

    start: int
    end: int
    insert_lines: tuple[str, ...] = ()

    @property
    def is_insert(self) -> bool:
        return self.start == self.end


class HunkKind(str, Enum):
    EQUAL = "equal"
    CHANGE = "change"


@dataclass(frozen=True, slots=True)
class Hunk:
    """A maximal block of equal or differing lines between two texts.

    ``local_start``/``incoming_start`` are 1-based line numbers of the
    first line of the block on each side.
    """

    id: str
    kind: HunkKind
    local_lines: tuple[str, ...]
    local_start: int
    incoming_lines: tuple[str, ...]
    incoming_start: int


@dataclass(frozen=True, slots=True)
class DiffRow:
    """One row of a side-by-side diff view."""

    local_number: int | None
    remote_number: int | None
    local_text: str
    remote_text: str
    local_status: str
    remote_status: str
