import json
import logging
import threading
from datetime import datetime
from typing import Any

import requests

from ..sync.errors import NetworkError, classify_remote_error
from ..sync.models import RemoteFile, RemoteMetadata, UploadResult

logger = logging.getLogger(__name__)

CONTENT_API_URL = "https://content.dropboxapi.com/2"
RPC_API_URL = "https://api.dropboxapi.com/2"

DEFAULT_DOCUMENT_PREFIX = "/mini-author-"
DEFAULT_DOCUMENT_SUFFIX = ".md"
DEFAULT_INDEX_PATH = "/.mini-author-files.json"

# Dropbox reports path errors (including "not found") as HTTP 409.
_NOT_FOUND_STATUSES = (404, 409)


def _parse_server_time(value: Any) -> int | None:
    """Convert Dropbox's ``server_modified`` ISO string to epoch ms."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return int(parsed.timestamp() * 1000)


class DropboxClient:
    """Thin blocking client for the Dropbox files API.

    Every method takes the bearer access token explicitly; token refresh is
    the caller's job (see ``core.oauth.TokenLifecycle``).  Failures raise
    ``AuthError`` when the message matches an invalid/expired grant and
    ``NetworkError`` otherwise.
    """

    def __init__(
        self,
        timeout: tuple[float, float] = (10, 60),
        document_prefix: str = DEFAULT_DOCUMENT_PREFIX,
        document_suffix: str = DEFAULT_DOCUMENT_SUFFIX,
        index_path: str = DEFAULT_INDEX_PATH,
    ):
        self.timeout = timeout
        self.document_prefix = document_prefix
        self.document_suffix = document_suffix
        self.index_path = index_path
        self._thread_local = threading.local()

    @property
    def session(self) -> requests.Session:
        """Current thread's session."""
        return self._get_session()

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            self._thread_local.session = requests.Session()
        return self._thread_local.session

    def document_path(self, file_id: str) -> str:
        return f"{self.document_prefix}{file_id}{self.document_suffix}"

    def _post(
        self,
        action: str,
        url: str,
        token: str,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> requests.Response:
        all_headers = {"Authorization": f"Bearer {token}"}
        all_headers.update(headers or {})
        try:
            return self._get_session().post(
                url, headers=all_headers, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as exc:
            raise NetworkError(f"Dropbox {action} failed: {exc}") from exc

    @staticmethod
    def _fail(action: str, response: requests.Response) -> Exception:
        detail = response.text
        logger.debug(
            "Dropbox %s returned HTTP %d: %s",
            action,
            response.status_code,
            detail,
        )
        return classify_remote_error(
            f"Dropbox {action} failed ({response.status_code}): {detail}"
        )

    @staticmethod
    def _json(action: str, response: requests.Response) -> dict:
        try:
            payload = response.json()
        except ValueError as exc:
            raise NetworkError(
                f"Dropbox {action} returned invalid JSON: {exc}"
            ) from exc
        if not isinstance(payload, dict):
            raise NetworkError(f"Dropbox {action} returned an unexpected reply.")
        return payload

    def download(self, token: str, path: str) -> RemoteFile | None:
        """Download *path*.

        Returns:
            The file content and revision, or ``None`` if it does not exist.
        """
        response = self._post(
            "download",
            f"{CONTENT_API_URL}/files/download",
            token,
            headers={"Dropbox-API-Arg": json.dumps({"path": path})},
        )
        if response.status_code in _NOT_FOUND_STATUSES:
            return None
        if not response.ok:
            raise self._fail("download", response)

        metadata = response.headers.get("dropbox-api-result")
        if not metadata:
            raise NetworkError(
                "Dropbox response was missing file metadata."
            )
        try:
            revision = json.loads(metadata)["rev"]
        except (ValueError, KeyError, TypeError) as exc:
            raise NetworkError(
                f"Dropbox returned unreadable file metadata: {exc}"
            ) from exc

        response.encoding = "utf-8"
        return RemoteFile(content=response.text, revision=revision)

    def upload(
        self, token: str, path: str, content: str, mode: str = "overwrite"
    ) -> UploadResult:
        """Upload *content* to *path*, replacing any existing file."""
        arg = {"path": path, "mode": mode, "autorename": False, "mute": True}
        response = self._post(
            "upload",
            f"{CONTENT_API_URL}/files/upload",
            token,
            headers={
                "Content-Type": "application/octet-stream",
                "Dropbox-API-Arg": json.dumps(arg),
            },
            data=content.encode("utf-8"),
        )
        if not response.ok:
            raise self._fail("upload", response)
        revision = self._json("upload", response).get("rev")
        if not revision:
            raise NetworkError("Dropbox upload reply did not include a revision.")
        return UploadResult(revision=revision)

    def delete(self, token: str, path: str) -> None:
        """Delete *path*.  Deleting a missing file is not an error."""
        response = self._post(
            "delete",
            f"{RPC_API_URL}/files/delete_v2",
            token,
            json={"path": path},
        )
        if response.status_code in _NOT_FOUND_STATUSES:
            logger.debug("Dropbox delete: %s already absent", path)
            return
        if not response.ok:
            raise self._fail("delete", response)

    def get_metadata(self, token: str, path: str) -> RemoteMetadata | None:
        """Return revision and server modification time, or ``None``."""
        response = self._post(
            "metadata",
            f"{RPC_API_URL}/files/get_metadata",
            token,
            json={"path": path},
        )
        if response.status_code in _NOT_FOUND_STATUSES:
            return None
        if not response.ok:
            raise self._fail("metadata", response)

        payload = self._json("metadata", response)
        return RemoteMetadata(
            revision=payload.get("rev"),
            server_modified_at=_parse_server_time(
                payload.get("server_modified")
            ),
        )
