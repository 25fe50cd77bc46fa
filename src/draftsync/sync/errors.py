"""Error taxonomy for the sync engine.

- ``NetworkError``: any failed remote-store call.
- ``AuthError``: the remote rejected the token or grant.  The orchestrator
  clears the stored token when it sees one.
- ``CatalogError``: the remote catalog manifest could not be decoded.

Conflicts are *not* exceptions; they are returned as ``ConflictState``
values from the orchestrator.
"""

from __future__ import annotations

import re

_AUTH_ERROR_PATTERN = re.compile(
    r"invalid_grant|invalid_access_token|expired_access_token|401",
    re.IGNORECASE,
)


class SyncError(Exception):
    """Base class for all recoverable sync failures."""


class NetworkError(SyncError):
    """A remote-store request failed."""


class AuthError(SyncError):
    """The OAuth grant or access token is no longer valid."""


class CatalogError(SyncError):
    """The remote catalog manifest is malformed."""


def is_auth_error(message: str) -> bool:
    """Return ``True`` if *message* indicates an invalid or expired grant."""
    return bool(_AUTH_ERROR_PATTERN.search(message or ""))


def classify_remote_error(message: str) -> SyncError:
    """Build the right exception type for a failed remote call."""
    if is_auth_error(message):
        return AuthError(message)
    return NetworkError(message)
