"""Sync orchestrator: the only component with side effects.

``SyncOrchestrator`` owns the mutable session state (catalog, active
document, conflict, token, online flag, in-flight flags) and sequences the
pure components against the local store and the remote store:

1. Reject re-entrant calls (a second sync/pull while one runs).
2. Require a token, connectivity and an active document; otherwise return
   a notice without touching state.
3. Refresh the token if it is about to expire.
4. Download the remote document (missing == empty).
5. Reduce both sides to "meaningful" text.
6. First-sync protection: with no prior base, two independent drafts
   always conflict.
7. Three-way merge; a conflict is stored in memory only.
8. On a clean merge, upload if needed, persist, then update memory.

Every public coroutine returns a ``SyncResult``.  Remote failures never
escape: ``SyncError`` is caught at this boundary and turned into a notice,
and an ``AuthError`` also clears the stored token.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol

from ..core.async_utils import gather_limited, run_sync, run_sync_limited
from ..core.clock import now_ms
from .catalog import (
    DEFAULT_CLOCK_SKEW_TOLERANCE_MS,
    DEFAULT_FILE_NAME,
    DEFAULT_FIRST_FILE_NAME,
    detect_remote_ahead,
    file_lists_equal,
    find_file,
    merge_file_catalogs,
    normalize_files,
    parse_remote_files_index,
    resolve_active_file_id,
    sanitize_file_name,
    select_local_files_for_merge,
    serialize_remote_files_index,
    sort_files,
)
from .documents import create_empty_document, meaningful_text
from .errors import AuthError, SyncError, is_auth_error
from .merger import three_way_merge
from .models import (
    ConflictState,
    DocumentRecord,
    EngineStatus,
    FileMeta,
    RemoteFile,
    RemoteMetadata,
    SyncResult,
    SyncStatus,
    TokenState,
    UploadResult,
    WorkspaceManifest,
)
from .state import LocalStore

if TYPE_CHECKING:
    from ..core.oauth import TokenLifecycle

logger = logging.getLogger(__name__)

NOTICE_MISSING_APP_KEY = (
    "Add a Dropbox app key (DRAFTSYNC_APP_KEY) before connecting Dropbox."
)
NOTICE_NOT_CONNECTED = "Connect Dropbox first."
NOTICE_OFFLINE_SYNC = "Offline. Changes stay local until reconnect."
NOTICE_OFFLINE_PULL = (
    "Offline. Reconnect to pull manuscript updates from Dropbox."
)
NOTICE_BUSY = "A Dropbox sync is already in progress."
NOTICE_NO_ACTIVE_FILE = "Create a manuscript first."
NOTICE_ACTIVE_FILE_MISSING = "Current manuscript was not found."
NOTICE_SESSION_EXPIRED = "Dropbox session expired. Please reconnect Dropbox."
NOTICE_PULLED = "Pulled latest manuscript list from Dropbox."
NOTICE_DISCONNECTED = "Dropbox disconnected locally."
NOTICE_CONNECTED = "Dropbox connected."
NOTICE_NO_CONFLICT = "There is no conflict to resolve."

FIRST_SYNC_REASON = (
    "This manuscript has local and Dropbox drafts. "
    "Choose one or merge manually."
)


class RemoteStore(Protocol):
    """Remote blob store consumed by the orchestrator."""

    index_path: str

    def document_path(self, file_id: str) -> str: ...

    def download(self, token: str, path: str) -> RemoteFile | None: ...

    def upload(
        self, token: str, path: str, content: str, mode: str = "overwrite"
    ) -> UploadResult: ...

    def delete(self, token: str, path: str) -> None: ...

    def get_metadata(
        self, token: str, path: str
    ) -> RemoteMetadata | None: ...


def _same_text(left: str, right: str) -> bool:
    return left.replace("\r\n", "\n").strip() == right.replace(
        "\r\n", "\n"
    ).strip()


class SyncOrchestrator:
    """Sequence local edits, catalog reconciliation and Dropbox sync.

    Args:
        store: Local persistent store.
        remote: Remote blob store (``DropboxClient`` in production).
        auth: Token lifecycle; ``None`` when no app key is configured.
        clock_skew_tolerance_ms: Slack used by the remote-ahead detector.
        clock: Returns the current time in epoch milliseconds.
        id_factory: Produces ids for new documents.
    """

    def __init__(
        self,
        store: LocalStore,
        remote: RemoteStore,
        auth: TokenLifecycle | None = None,
        clock_skew_tolerance_ms: int = DEFAULT_CLOCK_SKEW_TOLERANCE_MS,
        clock: Callable[[], int] = now_ms,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self.store = store
        self.remote = remote
        self.auth = auth
        self.clock_skew_tolerance_ms = clock_skew_tolerance_ms
        self._clock = clock
        self._new_id = id_factory or (lambda: str(uuid.uuid4()))

        self.files: list[FileMeta] = []
        self.active_file_id: str | None = None
        self.document: DocumentRecord | None = None
        self.conflict: ConflictState | None = None
        self.token: TokenState | None = None
        self.online = True
        self.syncing = False
        self.pulling = False
        self.remote_ahead: dict[str, int] = {}
        self.notice = ""

    # ------------------------------------------------------------------
    # Bootstrap and local edits
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Load the workspace, token and active document from the store.

        A workspace with no documents gets a fresh bootstrap document.
        """
        now = self._clock()
        workspace = self.store.get_workspace()
        files = normalize_files(workspace.files if workspace else [], now)
        active_id = resolve_active_file_id(
            workspace.active_file_id if workspace else None, files
        )

        if not files:
            first = self._new_file_meta(DEFAULT_FIRST_FILE_NAME, now)
            files = [first]
            active_id = first.id
            self.store.put_document(create_empty_document(first.id, now))
            logger.info("Created bootstrap document %s", first.id)

        self.files = files
        self.active_file_id = active_id
        self._persist_workspace()
        self.document = (
            self._get_or_create_document(active_id) if active_id else None
        )
        self.token = self.store.get_token()
        logger.debug(
            "Loaded workspace: %d files, active=%s, connected=%s",
            len(self.files),
            self.active_file_id,
            self.token is not None,
        )

    def edit(self, text: str) -> SyncResult:
        """Replace the active document's text and persist it locally."""
        if self.document is None or self.active_file_id is None:
            return self._finish(SyncStatus.SKIPPED, NOTICE_NO_ACTIVE_FILE)

        self.document = self.document.model_copy(
            update={"text": text, "updated_at": self._clock()}
        )
        self.store.put_document(self.document)
        return self._finish(
            SyncStatus.CLEAN,
            f'Saved "{self._active_name()}" locally.',
            file_id=self.active_file_id,
        )

    # ------------------------------------------------------------------
    # Document sync
    # ------------------------------------------------------------------

    async def sync(self) -> SyncResult:
        """Synchronize the active document with Dropbox."""
        blocked = self._precheck(NOTICE_OFFLINE_SYNC)
        if blocked is not None:
            return blocked

        file_id = self.active_file_id
        if file_id is None or self.document is None:
            return self._finish(SyncStatus.SKIPPED, NOTICE_NO_ACTIVE_FILE)
        meta = find_file(self.files, file_id)
        if meta is None:
            return self._finish(
                SyncStatus.SKIPPED, NOTICE_ACTIVE_FILE_MISSING
            )

        self.syncing = True
        try:
            token = await self._fresh_token()
            document = self.document
            path = self.remote.document_path(file_id)
            remote = await run_sync(
                self.remote.download, token.access_token, path
            )

            local_text = meaningful_text(document.text)
            remote_text = meaningful_text(remote.content) if remote else ""

            if (
                document.is_first_sync
                and remote is not None
                and local_text
                and remote_text
                and local_text != remote_text
            ):
                logger.info("First sync of %s found two drafts", file_id)
                return self._raise_conflict(
                    meta, "", local_text, remote_text, FIRST_SYNC_REASON
                )

            result = three_way_merge(
                document.base_text, local_text, remote_text
            )
            if not result.is_clean:
                return self._raise_conflict(
                    meta,
                    document.base_text,
                    local_text,
                    remote_text,
                    result.reason,
                )

            revision = remote.revision if remote else document.remote_revision
            uploaded = False
            if remote is None or result.merged != remote_text:
                upload = await run_sync(
                    self.remote.upload,
                    token.access_token,
                    path,
                    result.merged,
                )
                revision = upload.revision
                uploaded = True

            self._commit_synced_text(
                file_id, result.merged, revision, local_source=document.text
            )
            self.conflict = None
            self.remote_ahead.pop(file_id, None)
            logger.info(
                "Synced %s (uploaded=%s, rev=%s)", file_id, uploaded, revision
            )

            await self._refresh_catalog_quietly(token)
            return self._finish(
                SyncStatus.CLEAN,
                f'Dropbox sync complete for "{meta.name}".',
                file_id=file_id,
                uploaded=uploaded,
                files=list(self.files),
            )
        except SyncError as exc:
            return self._fail(exc, file_id)
        finally:
            self.syncing = False

    async def resolve_conflict(self, resolved: str | None = None) -> SyncResult:
        """Upload the chosen resolution and make it the new base.

        Args:
            resolved: Final text.  Defaults to the conflict's current
                ``resolved`` candidate.
        """
        conflict = self.conflict
        if conflict is None:
            return self._finish(SyncStatus.SKIPPED, NOTICE_NO_CONFLICT)
        blocked = self._precheck(NOTICE_OFFLINE_SYNC)
        if blocked is not None:
            return blocked

        text = conflict.resolved if resolved is None else resolved
        self.syncing = True
        try:
            token = await self._fresh_token()
            upload = await run_sync(
                self.remote.upload,
                token.access_token,
                self.remote.document_path(conflict.file_id),
                text,
            )
            self._commit_synced_text(conflict.file_id, text, upload.revision)
            self.conflict = None
            self.remote_ahead.pop(conflict.file_id, None)
            logger.info(
                "Resolved conflict in %s (rev=%s)",
                conflict.file_id,
                upload.revision,
            )
            return self._finish(
                SyncStatus.CLEAN,
                f'Conflict resolved for "{conflict.file_name}".',
                file_id=conflict.file_id,
                uploaded=True,
            )
        except SyncError as exc:
            return self._fail(exc, conflict.file_id)
        finally:
            self.syncing = False

    def update_resolution(self, resolved: str) -> ConflictState | None:
        """Replace the candidate resolution of the pending conflict."""
        if self.conflict is not None:
            self.conflict = self.conflict.model_copy(
                update={"resolved": resolved}
            )
        return self.conflict

    async def set_online(self, online: bool) -> SyncResult | None:
        """Record connectivity; an offline->online edge triggers a sync.

        Returns:
            The result of the triggered sync, or ``None`` if none ran.
        """
        was_online = self.online
        self.online = online
        if online and not was_online and self.token is not None:
            logger.info("Connectivity restored, starting sync")
            return await self.sync()
        return None

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    async def pull_file_catalog(self) -> SyncResult:
        """Reconcile the document catalog with Dropbox."""
        blocked = self._precheck(NOTICE_OFFLINE_PULL)
        if blocked is not None:
            return blocked

        self.pulling = True
        try:
            token = await self._fresh_token()
            self._persist_active_snapshot()
            await self._reconcile_catalog(token)
            return self._finish(
                SyncStatus.CLEAN, NOTICE_PULLED, files=list(self.files)
            )
        except SyncError as exc:
            return self._fail(exc)
        finally:
            self.pulling = False

    async def _reconcile_catalog(self, token: TokenState) -> list[FileMeta]:
        access = token.access_token
        local_snapshot = list(self.files)
        index = await run_sync(
            self.remote.download, access, self.remote.index_path
        )
        remote_files = parse_remote_files_index(index.content) if index else []

        local_for_merge = select_local_files_for_merge(
            local_snapshot, remote_files, self._lookup_document
        )
        # The catalog may have changed locally while the download ran.
        if not file_lists_equal(local_snapshot, self.files):
            local_for_merge = select_local_files_for_merge(
                self.files, remote_files, self._lookup_document
            )

        merged = merge_file_catalogs(
            local_for_merge, remote_files, self._clock()
        )
        serialized = serialize_remote_files_index(merged)
        if index is None or not _same_text(index.content, serialized):
            await run_sync(
                self.remote.upload, access, self.remote.index_path, serialized
            )
            logger.debug("Uploaded catalog with %d entries", len(merged))

        local_ids = {f.id for f in local_for_merge}
        remote_only = [f for f in remote_files if f.id not in local_ids]
        shared = [f for f in remote_files if f.id in local_ids]

        if remote_only:
            await gather_limited(
                [self._hydrate_document(access, f.id) for f in remote_only]
            )

        ahead = await gather_limited(
            [self._check_remote_ahead(access, f.id) for f in shared]
        )
        merged_ids = {f.id for f in merged}
        self.remote_ahead = {
            file_id: ts
            for file_id, ts in self.remote_ahead.items()
            if file_id in merged_ids
        }
        for file_id, timestamp in ahead:
            if timestamp is None:
                self.remote_ahead.pop(file_id, None)
            else:
                self.remote_ahead[file_id] = timestamp

        if not file_lists_equal(merged, self.files):
            self._apply_catalog(merged)
        return merged

    async def _refresh_catalog_quietly(self, token: TokenState) -> None:
        try:
            await self._reconcile_catalog(token)
        except SyncError as exc:
            logger.warning("Background catalog refresh failed: %s", exc)

    async def _hydrate_document(self, access: str, file_id: str) -> None:
        try:
            remote = await run_sync_limited(
                self.remote.download,
                access,
                self.remote.document_path(file_id),
            )
        except SyncError as exc:
            logger.warning("Could not download %s: %s", file_id, exc)
            return
        if remote is not None:
            self.store.put_document(self._document_from_remote(file_id, remote))

    async def _check_remote_ahead(
        self, access: str, file_id: str
    ) -> tuple[str, int | None]:
        try:
            metadata = await run_sync_limited(
                self.remote.get_metadata,
                access,
                self.remote.document_path(file_id),
            )
        except SyncError as exc:
            logger.debug("Metadata lookup for %s failed: %s", file_id, exc)
            return file_id, None
        return file_id, detect_remote_ahead(
            metadata,
            self._lookup_document(file_id),
            self.clock_skew_tolerance_ms,
        )

    def _apply_catalog(self, files: list[FileMeta]) -> None:
        self.files = files
        active_id = resolve_active_file_id(self.active_file_id, files)
        if active_id != self.active_file_id:
            logger.info(
                "Active document %s left the catalog, switching to %s",
                self.active_file_id,
                active_id,
            )
            self.active_file_id = active_id
            self.document = (
                self._get_or_create_document(active_id) if active_id else None
            )
            self.conflict = None
        self._persist_workspace()

    # ------------------------------------------------------------------
    # Document management
    # ------------------------------------------------------------------

    async def select_file(self, file_id: str) -> SyncResult:
        """Make *file_id* the active document.

        The outgoing document is persisted first.  The incoming one is read
        from the store, else downloaded when connected, else created empty.
        """
        meta = find_file(self.files, file_id)
        if meta is None:
            return self._finish(
                SyncStatus.ERROR, f'Manuscript "{file_id}" was not found.'
            )
        if file_id == self.active_file_id:
            return self._finish(
                SyncStatus.CLEAN, f'Editing "{meta.name}".', file_id=file_id
            )

        self._persist_active_snapshot()
        document = self.store.get_document(file_id)

        if (
            document is None
            and self.token is not None
            and self.auth is not None
            and self.online
        ):
            try:
                token = await self._fresh_token()
                remote = await run_sync(
                    self.remote.download,
                    token.access_token,
                    self.remote.document_path(file_id),
                )
            except SyncError as exc:
                logger.warning("Could not load %s from Dropbox: %s", file_id, exc)
            else:
                if remote is not None:
                    document = self._document_from_remote(file_id, remote)
                    self.store.put_document(document)

        if document is None:
            document = create_empty_document(file_id, self._clock())
            self.store.put_document(document)

        self.active_file_id = file_id
        self.document = document
        self.conflict = None
        self._persist_workspace()
        return self._finish(
            SyncStatus.CLEAN, f'Editing "{meta.name}".', file_id=file_id
        )

    def create_file(self, name: str) -> SyncResult:
        """Create an empty document and make it active."""
        self._persist_active_snapshot()
        now = self._clock()
        meta = self._new_file_meta(
            sanitize_file_name(name) or DEFAULT_FILE_NAME, now
        )
        document = create_empty_document(meta.id, now)
        self.store.put_document(document)

        self.files = sort_files([*self.files, meta])
        self.active_file_id = meta.id
        self.document = document
        self.conflict = None
        self._persist_workspace()
        return self._finish(
            SyncStatus.CLEAN,
            f'Created "{meta.name}".',
            file_id=meta.id,
            files=list(self.files),
        )

    def rename_active_file(self, name: str) -> SyncResult:
        """Rename the active document; bumps ``renamed_at``."""
        meta = (
            find_file(self.files, self.active_file_id)
            if self.active_file_id
            else None
        )
        if meta is None:
            return self._finish(SyncStatus.SKIPPED, NOTICE_NO_ACTIVE_FILE)

        next_name = sanitize_file_name(name) or DEFAULT_FILE_NAME
        if next_name == meta.name:
            return self._finish(
                SyncStatus.CLEAN,
                f'Current manuscript is already named "{next_name}".',
                file_id=meta.id,
            )

        now = self._clock()
        renamed = meta.model_copy(
            update={"name": next_name, "updated_at": now, "renamed_at": now}
        )
        self.files = [renamed if f.id == meta.id else f for f in self.files]
        self._persist_workspace()
        return self._finish(
            SyncStatus.CLEAN,
            f'Renamed current manuscript to "{next_name}".',
            file_id=meta.id,
            files=list(self.files),
        )

    async def delete_active_file(self) -> SyncResult:
        """Delete the active document locally and, when connected, remotely.

        Deleting the last document recreates a bootstrap document.
        """
        if self.syncing or self.pulling:
            return self._finish(SyncStatus.SKIPPED, NOTICE_BUSY)

        file_id = self.active_file_id
        meta = find_file(self.files, file_id) if file_id else None
        if file_id is None or meta is None:
            return self._finish(SyncStatus.SKIPPED, NOTICE_NO_ACTIVE_FILE)

        had_sync_state = bool(self.document and self.document.has_sync_state)
        delete_remote = (
            self.token is not None and self.auth is not None and self.online
        )

        if delete_remote:
            self.syncing = True
            try:
                token = await self._fresh_token()
                await self._delete_remote(token.access_token, file_id)
            except SyncError as exc:
                return self._fail(exc, file_id)
            finally:
                self.syncing = False

        index = next(i for i, f in enumerate(self.files) if f.id == file_id)
        remaining = [f for f in self.files if f.id != file_id]
        self.store.delete_document(file_id)

        if remaining:
            next_id = remaining[min(index, len(remaining) - 1)].id
            next_document = self._get_or_create_document(next_id)
        else:
            now = self._clock()
            first = self._new_file_meta(DEFAULT_FIRST_FILE_NAME, now)
            remaining = [first]
            next_id = first.id
            next_document = create_empty_document(first.id, now)
            self.store.put_document(next_document)

        self.files = remaining
        self.active_file_id = next_id
        self.document = next_document
        if self.conflict is not None and self.conflict.file_id == file_id:
            self.conflict = None
        self.remote_ahead.pop(file_id, None)
        self._persist_workspace()

        if not self.online and had_sync_state:
            notice = (
                f'Deleted "{meta.name}" locally. You\'re offline, so Dropbox '
                "still has it and it can reappear after Pull."
            )
        elif delete_remote:
            notice = f'Deleted "{meta.name}" locally and from Dropbox.'
        else:
            notice = f'Deleted "{meta.name}" locally.'
        return self._finish(
            SyncStatus.CLEAN,
            notice,
            file_id=next_id,
            uploaded=delete_remote,
            files=list(self.files),
        )

    async def _delete_remote(self, access: str, file_id: str) -> None:
        await run_sync(
            self.remote.delete, access, self.remote.document_path(file_id)
        )
        index = await run_sync(
            self.remote.download, access, self.remote.index_path
        )
        remote_files = parse_remote_files_index(index.content) if index else []
        serialized = serialize_remote_files_index(
            [f for f in remote_files if f.id != file_id]
        )
        if index is None or not _same_text(index.content, serialized):
            await run_sync(
                self.remote.upload, access, self.remote.index_path, serialized
            )

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def start_authorization(self) -> SyncResult:
        """Begin the OAuth flow; the consent URL is in ``authorize_url``."""
        if self.auth is None:
            return self._finish(SyncStatus.ERROR, NOTICE_MISSING_APP_KEY)

        url, pending = self.auth.start_authorization(now=self._clock())
        self.store.put_pending_authorization(pending)
        return self._finish(
            SyncStatus.CLEAN,
            "Open the authorization URL to connect Dropbox.",
            authorize_url=url,
        )

    async def finish_authorization(self, callback_url: str) -> SyncResult:
        """Complete the OAuth flow from the redirect URL."""
        if self.auth is None:
            return self._finish(SyncStatus.ERROR, NOTICE_MISSING_APP_KEY)

        pending = self.store.get_pending_authorization()
        try:
            token = await run_sync(
                self.auth.finish_authorization,
                callback_url,
                pending,
                self._clock(),
            )
        except SyncError as exc:
            return self._finish(SyncStatus.ERROR, str(exc))

        if token is None:
            return self._finish(
                SyncStatus.SKIPPED,
                "The callback URL does not contain an authorization code.",
            )

        self.token = token
        self.store.put_token(token)
        self.store.put_pending_authorization(None)
        if self.online:
            await self._refresh_catalog_quietly(token)
        return self._finish(
            SyncStatus.CLEAN, NOTICE_CONNECTED, files=list(self.files)
        )

    def disconnect(self) -> SyncResult:
        """Forget the token locally.  Nothing is revoked remotely."""
        self.token = None
        self.store.put_token(None)
        self.conflict = None
        self.remote_ahead = {}
        return self._finish(SyncStatus.CLEAN, NOTICE_DISCONNECTED)

    def status(self) -> EngineStatus:
        meta = (
            find_file(self.files, self.active_file_id)
            if self.active_file_id
            else None
        )
        if self.syncing or self.pulling:
            state = SyncStatus.SYNCING
        elif self.conflict is not None:
            state = SyncStatus.CONFLICT
        else:
            state = SyncStatus.IDLE
        return EngineStatus(
            state=state,
            connected=self.token is not None,
            online=self.online,
            active_file_id=self.active_file_id,
            active_file_name=meta.name if meta else None,
            last_synced_at=self.document.last_synced_at
            if self.document
            else None,
            has_sync_state=bool(self.document and self.document.has_sync_state),
            remote_ahead_at=self.remote_ahead.get(self.active_file_id or ""),
            has_conflict=self.conflict is not None,
            file_count=len(self.files),
            notice=self.notice,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _precheck(self, offline_notice: str) -> SyncResult | None:
        if self.syncing or self.pulling:
            return self._finish(SyncStatus.SKIPPED, NOTICE_BUSY)
        if self.auth is None:
            return self._finish(SyncStatus.SKIPPED, NOTICE_MISSING_APP_KEY)
        if self.token is None:
            return self._finish(SyncStatus.SKIPPED, NOTICE_NOT_CONNECTED)
        if not self.online:
            return self._finish(SyncStatus.SKIPPED, offline_notice)
        return None

    async def _fresh_token(self) -> TokenState:
        if self.auth is None or self.token is None:
            raise AuthError(NOTICE_NOT_CONNECTED)
        current = self.token
        token = await run_sync(self.auth.ensure_valid_token, current)
        # Only replace if nobody disconnected while the refresh ran.
        if token != current and self.token is current:
            self.token = token
            self.store.put_token(token)
        return token

    def _raise_conflict(
        self,
        meta: FileMeta,
        base: str,
        local: str,
        remote: str,
        reason: str | None,
    ) -> SyncResult:
        self.conflict = ConflictState(
            file_id=meta.id,
            file_name=meta.name,
            base=base,
            local=local,
            remote=remote,
            resolved=local,
            reason=reason,
        )
        return self._finish(
            SyncStatus.CONFLICT,
            f'Conflict in "{meta.name}".',
            file_id=meta.id,
            conflict=self.conflict,
        )

    def _commit_synced_text(
        self,
        file_id: str,
        text: str,
        revision: str | None,
        local_source: str | None = None,
    ) -> None:
        """Persist *text* as the new agreed base, then update memory.

        Edits made while the network calls ran are kept as the working text
        on top of the new base, whether the document is still active or was
        switched away from and saved to the store.
        """
        now = self._clock()
        record = DocumentRecord(
            file_id=file_id,
            text=text,
            updated_at=now,
            last_synced_at=now,
            base_text=text,
            remote_revision=revision,
        )
        active = file_id == self.active_file_id
        current = self.document if active else self.store.get_document(file_id)
        if (
            current is not None
            and local_source is not None
            and current.text != local_source
        ):
            logger.info("Keeping edits made to %s during sync", file_id)
            record = record.model_copy(
                update={"text": current.text, "updated_at": current.updated_at}
            )

        self.store.put_document(record)
        if active and current is not None:
            self.document = record

    def _document_from_remote(
        self, file_id: str, remote: RemoteFile
    ) -> DocumentRecord:
        now = self._clock()
        return DocumentRecord(
            file_id=file_id,
            text=remote.content,
            updated_at=now,
            last_synced_at=now,
            base_text=remote.content,
            remote_revision=remote.revision,
        )

    def _fail(self, exc: SyncError, file_id: str | None = None) -> SyncResult:
        if isinstance(exc, AuthError) or is_auth_error(str(exc)):
            logger.warning("Dropbox rejected the token: %s", exc)
            self.token = None
            self.store.put_token(None)
            return self._finish(
                SyncStatus.ERROR, NOTICE_SESSION_EXPIRED, file_id=file_id
            )
        logger.error("Dropbox operation failed: %s", exc)
        return self._finish(
            SyncStatus.ERROR, str(exc) or "Unknown Dropbox error.", file_id=file_id
        )

    def _finish(self, status: SyncStatus, notice: str, **fields) -> SyncResult:
        self.notice = notice
        return SyncResult(status=status, notice=notice, **fields)

    def _lookup_document(self, file_id: str) -> DocumentRecord | None:
        if file_id == self.active_file_id and self.document is not None:
            return self.document
        return self.store.get_document(file_id)

    def _get_or_create_document(self, file_id: str) -> DocumentRecord:
        document = self.store.get_document(file_id)
        if document is None:
            document = create_empty_document(file_id, self._clock())
            self.store.put_document(document)
        return document

    def _persist_active_snapshot(self) -> None:
        if self.document is not None:
            self.store.put_document(self.document)

    def _persist_workspace(self) -> None:
        self.store.put_workspace(
            WorkspaceManifest(
                files=self.files, active_file_id=self.active_file_id
            )
        )

    def _new_file_meta(self, name: str, now: int) -> FileMeta:
        return FileMeta(
            id=self._new_id(),
            name=name,
            created_at=now,
            updated_at=now,
            renamed_at=now,
        )

    def _active_name(self) -> str:
        meta = (
            find_file(self.files, self.active_file_id)
            if self.active_file_id
            else None
        )
        return meta.name if meta else DEFAULT_FILE_NAME
