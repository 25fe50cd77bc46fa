"""Local persistence layer.

``LocalStore`` is the read/write contract the orchestrator consumes; any
key-value engine satisfying it can be plugged in.  ``JsonFileStore`` is the
bundled implementation, keeping one JSON file per record under a state
directory (typically ``~/.local/state/draftsync``)::

    workspace.json          WorkspaceManifest
    token.json              TokenState
    oauth_pending.json      PendingAuthorization
    documents/<id>.json     DocumentRecord

Key design choices:

* **Atomic writes** -- ``_write_json()`` writes to a temp file then calls
  ``os.replace()`` so readers never see partial data.
* **Validate on read** -- records are re-validated through the Pydantic
  models; documents additionally pass through ``normalize_document`` so a
  hand-edited or older file degrades to sensible defaults.
* **None clears** -- ``put_token(None)`` removes the token file.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import ValidationError

from .documents import normalize_document
from .models import (
    DocumentRecord,
    PendingAuthorization,
    TokenState,
    WorkspaceManifest,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class LocalStore(Protocol):
    """Persistent store consumed by the orchestrator."""

    def get_document(self, file_id: str) -> DocumentRecord | None: ...

    def put_document(self, document: DocumentRecord) -> None: ...

    def delete_document(self, file_id: str) -> None: ...

    def get_workspace(self) -> WorkspaceManifest | None: ...

    def put_workspace(self, workspace: WorkspaceManifest) -> None: ...

    def get_token(self) -> TokenState | None: ...

    def put_token(self, token: TokenState | None) -> None: ...

    def get_pending_authorization(self) -> PendingAuthorization | None: ...

    def put_pending_authorization(
        self, pending: PendingAuthorization | None
    ) -> None: ...


class JsonFileStore:
    """``LocalStore`` backed by JSON files in *state_dir*.

    Args:
        state_dir: Directory holding the store.  Created on first write.
    """

    def __init__(self, state_dir: Path) -> None:
        self._state_dir = Path(state_dir)

    @property
    def state_dir(self) -> Path:
        return self._state_dir

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def get_document(self, file_id: str) -> DocumentRecord | None:
        raw = self._read_json(self._document_path(file_id))
        if not isinstance(raw, dict):
            return None
        return normalize_document(raw, file_id)

    def put_document(self, document: DocumentRecord) -> None:
        self._write_json(
            self._document_path(document.file_id), document.model_dump()
        )

    def delete_document(self, file_id: str) -> None:
        self._remove(self._document_path(file_id))

    # ------------------------------------------------------------------
    # Workspace
    # ------------------------------------------------------------------

    def get_workspace(self) -> WorkspaceManifest | None:
        return self._read_model(self._workspace_path, WorkspaceManifest)

    def put_workspace(self, workspace: WorkspaceManifest) -> None:
        self._write_json(self._workspace_path, workspace.model_dump())

    # ------------------------------------------------------------------
    # OAuth
    # ------------------------------------------------------------------

    def get_token(self) -> TokenState | None:
        return self._read_model(self._token_path, TokenState)

    def put_token(self, token: TokenState | None) -> None:
        if token is None:
            self._remove(self._token_path)
            return
        self._write_json(self._token_path, token.model_dump())

    def get_pending_authorization(self) -> PendingAuthorization | None:
        return self._read_model(self._pending_path, PendingAuthorization)

    def put_pending_authorization(
        self, pending: PendingAuthorization | None
    ) -> None:
        if pending is None:
            self._remove(self._pending_path)
            return
        self._write_json(self._pending_path, pending.model_dump())

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @property
    def _workspace_path(self) -> Path:
        return self._state_dir / "workspace.json"

    @property
    def _token_path(self) -> Path:
        return self._state_dir / "token.json"

    @property
    def _pending_path(self) -> Path:
        return self._state_dir / "oauth_pending.json"

    def _document_path(self, file_id: str) -> Path:
        return self._state_dir / "documents" / f"{file_id}.json"

    def _read_model(self, path: Path, model: Any) -> Any:
        raw = self._read_json(path)
        if raw is None:
            return None
        try:
            return model.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Ignoring invalid %s: %s", path.name, exc)
            return None

    def _read_json(self, path: Path) -> Any:
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as fh:
                return json.load(fh)
        except json.JSONDecodeError as exc:
            logger.warning("Ignoring unreadable %s: %s", path, exc)
            return None

    def _write_json(self, path: Path, payload: Any) -> None:
        """Write *payload* to *path* atomically.

        Writes to a temporary file in the same directory then atomically
        replaces the target.
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, indent=2)
            os.replace(tmp_path, path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    @staticmethod
    def _remove(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
