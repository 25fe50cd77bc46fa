"""Shared pytest fixtures for draftsync tests."""

from __future__ import annotations

import pytest

from draftsync.sync.engine import SyncOrchestrator
from draftsync.sync.errors import SyncError
from draftsync.sync.models import (
    PendingAuthorization,
    RemoteFile,
    RemoteMetadata,
    TokenState,
    UploadResult,
)
from draftsync.sync.state import JsonFileStore

NOW = 1_700_000_000_000


class FakeRemoteStore:
    """In-memory stand-in for ``DropboxClient``.

    Files are kept as ``path -> (content, revision, modified_at)``.  Set
    ``fail_on[method] = exc`` to make every call to that method raise.
    """

    index_path = "/.mini-author-files.json"

    def __init__(self) -> None:
        self.files: dict[str, tuple[str, str, int]] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_on: dict[str, SyncError] = {}
        self._rev = 0
        self.modified_at = NOW

    def document_path(self, file_id: str) -> str:
        return f"/mini-author-{file_id}.md"

    def put(self, path: str, content: str) -> str:
        self._rev += 1
        revision = f"rev{self._rev}"
        self.files[path] = (content, revision, self.modified_at)
        return revision

    def _record(self, method: str, path: str) -> None:
        self.calls.append((method, path))
        if method in self.fail_on:
            raise self.fail_on[method]

    def download(self, token: str, path: str) -> RemoteFile | None:
        self._record("download", path)
        if path not in self.files:
            return None
        content, revision, _ = self.files[path]
        return RemoteFile(content=content, revision=revision)

    def upload(
        self, token: str, path: str, content: str, mode: str = "overwrite"
    ) -> UploadResult:
        self._record("upload", path)
        return UploadResult(revision=self.put(path, content))

    def delete(self, token: str, path: str) -> None:
        self._record("delete", path)
        self.files.pop(path, None)

    def get_metadata(self, token: str, path: str) -> RemoteMetadata | None:
        self._record("metadata", path)
        if path not in self.files:
            return None
        _, revision, modified_at = self.files[path]
        return RemoteMetadata(revision=revision, server_modified_at=modified_at)

    def uploads(self) -> list[str]:
        return [path for method, path in self.calls if method == "upload"]


class FakeAuth:
    """Token lifecycle that never touches the network."""

    def ensure_valid_token(self, token: TokenState) -> TokenState:
        return token

    def start_authorization(self, now=None):
        pending = PendingAuthorization(
            state="state-1", code_verifier="v" * 64, created_at=now or NOW
        )
        return "https://www.dropbox.com/oauth2/authorize?state=state-1", pending

    def finish_authorization(self, callback_url, pending, now=None):
        if "code=" not in callback_url:
            return None
        return TokenState(
            access_token="new-access",
            refresh_token="new-refresh",
            expires_at=(now or NOW) + 3_600_000,
        )


class Clock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: int = NOW) -> None:
        self.value = start

    def __call__(self) -> int:
        return self.value

    def advance(self, ms: int = 1000) -> int:
        self.value += ms
        return self.value


def _ids():
    counter = 0

    def factory() -> str:
        nonlocal counter
        counter += 1
        return f"doc-{counter}"

    return factory


@pytest.fixture
def token() -> TokenState:
    return TokenState(
        access_token="access",
        refresh_token="refresh",
        expires_at=NOW + 4 * 3_600_000,
        account_id="dbid:1",
    )


@pytest.fixture
def store(tmp_path) -> JsonFileStore:
    return JsonFileStore(tmp_path / "state")


@pytest.fixture
def remote() -> FakeRemoteStore:
    return FakeRemoteStore()


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def make_orchestrator(store, remote, clock):
    """Factory for a loaded orchestrator; pass ``token`` to connect it."""

    def _make(token: TokenState | None = None, auth=True) -> SyncOrchestrator:
        if token is not None:
            store.put_token(token)
        orchestrator = SyncOrchestrator(
            store=store,
            remote=remote,
            auth=FakeAuth() if auth else None,
            clock=clock,
            id_factory=_ids(),
        )
        orchestrator.load()
        return orchestrator

    return _make


@pytest.fixture
def orchestrator(make_orchestrator, token) -> SyncOrchestrator:
    """Connected orchestrator with one bootstrap document (``doc-1``)."""
    return make_orchestrator(token)


@pytest.fixture(autouse=True)
def _reset_download_semaphore(monkeypatch):
    """Each test's event loop starts without a shared semaphore."""
    monkeypatch.setattr("draftsync.core.async_utils._semaphore", None)
