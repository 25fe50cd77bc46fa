"""Dropbox OAuth 2 (PKCE) token lifecycle.

Covers the three phases of a public-client grant:

1. ``start_authorization()`` builds the authorize URL and the
   ``PendingAuthorization`` (state + code verifier) the caller must keep
   until the redirect comes back.
2. ``finish_authorization()`` validates the returned ``state`` (anti-CSRF)
   and exchanges the code for a ``TokenState``.  Offline access is
   mandatory: a response without a refresh token is rejected.
3. ``ensure_valid_token()`` refreshes proactively when the access token is
   within ``refresh_margin_seconds`` of expiry.

All calls are blocking; async callers go through ``core.async_utils``.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import secrets
import string
import uuid
from urllib.parse import parse_qs, urlencode, urlparse

import requests

from ..sync.errors import AuthError, NetworkError, classify_remote_error
from ..sync.models import PendingAuthorization, TokenState
from .clock import now_ms

logger = logging.getLogger(__name__)

AUTH_URL = "https://www.dropbox.com/oauth2/authorize"
TOKEN_URL = "https://api.dropboxapi.com/oauth2/token"
SCOPES = "files.content.read files.content.write"

CODE_VERIFIER_LENGTH = 64
_VERIFIER_ALPHABET = string.ascii_letters + string.digits + "-._~"

DEFAULT_REFRESH_MARGIN_SECONDS = 60


def create_code_verifier(length: int = CODE_VERIFIER_LENGTH) -> str:
    return "".join(
        secrets.choice(_VERIFIER_ALPHABET) for _ in range(length)
    )


def create_code_challenge(verifier: str) -> str:
    """S256 challenge: base64url(sha256(verifier)) without padding."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


class TokenLifecycle:
    """Authorize, exchange and refresh Dropbox tokens.

    Args:
        app_key: Dropbox app key (OAuth ``client_id``).
        redirect_uri: Redirect URI registered for the app.
        session: Optional ``requests.Session`` (injected in tests).
        refresh_margin_seconds: Refresh when this close to expiry.
        timeout: ``(connect, read)`` timeout for token requests.
    """

    def __init__(
        self,
        app_key: str,
        redirect_uri: str,
        session: requests.Session | None = None,
        refresh_margin_seconds: int = DEFAULT_REFRESH_MARGIN_SECONDS,
        timeout: tuple[float, float] = (10, 60),
    ) -> None:
        self.app_key = app_key
        self.redirect_uri = redirect_uri
        self.session = session or requests.Session()
        self.refresh_margin_seconds = refresh_margin_seconds
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Authorization
    # ------------------------------------------------------------------

    def start_authorization(
        self, now: int | None = None
    ) -> tuple[str, PendingAuthorization]:
        """Return the authorize URL and the values to keep for the callback."""
        pending = PendingAuthorization(
            state=str(uuid.uuid4()),
            code_verifier=create_code_verifier(),
            created_at=now if now is not None else now_ms(),
        )
        params = {
            "client_id": self.app_key,
            "response_type": "code",
            "redirect_uri": self.redirect_uri,
            "token_access_type": "offline",
            "code_challenge": create_code_challenge(pending.code_verifier),
            "code_challenge_method": "S256",
            "scope": SCOPES,
            "state": pending.state,
        }
        return f"{AUTH_URL}?{urlencode(params)}", pending

    def finish_authorization(
        self,
        callback_url: str,
        pending: PendingAuthorization | None,
        now: int | None = None,
    ) -> TokenState | None:
        """Complete the flow from the redirect URL.

        Returns:
            The new token, or ``None`` if *callback_url* carries no code.

        Raises:
            AuthError: If the ``state`` does not match the pending
                authorization, or the exchange is rejected.
        """
        query = parse_qs(urlparse(callback_url).query)
        code = query.get("code", [None])[0]
        if not code:
            return None

        state = query.get("state", [None])[0]
        if pending is None or state != pending.state:
            raise AuthError(
                "Dropbox OAuth state mismatch. Please try connecting again."
            )
        return self.exchange_code(code, pending.code_verifier, now=now)

    # ------------------------------------------------------------------
    # Token endpoint
    # ------------------------------------------------------------------

    def exchange_code(
        self, code: str, verifier: str, now: int | None = None
    ) -> TokenState:
        payload = self._post_token(
            "exchange",
            {
                "code": code,
                "grant_type": "authorization_code",
                "client_id": self.app_key,
                "redirect_uri": self.redirect_uri,
                "code_verifier": verifier,
            },
        )
        if not payload.get("refresh_token"):
            raise AuthError(
                "Dropbox did not return a refresh token. "
                "Verify offline access is enabled."
            )
        issued = now if now is not None else now_ms()
        logger.info("Dropbox authorization completed")
        return TokenState(
            access_token=payload["access_token"],
            refresh_token=payload["refresh_token"],
            expires_at=issued + int(payload["expires_in"]) * 1000,
            account_id=payload.get("account_id"),
        )

    def refresh(self, token: TokenState, now: int | None = None) -> TokenState:
        """Exchange the refresh token for a new access token.

        The refresh token and account id are kept unless the server returns
        new values.
        """
        payload = self._post_token(
            "refresh",
            {
                "grant_type": "refresh_token",
                "refresh_token": token.refresh_token,
                "client_id": self.app_key,
            },
        )
        issued = now if now is not None else now_ms()
        logger.debug("Dropbox access token refreshed")
        return token.model_copy(
            update={
                "access_token": payload["access_token"],
                "expires_at": issued + int(payload["expires_in"]) * 1000,
                "refresh_token": payload.get("refresh_token")
                or token.refresh_token,
                "account_id": payload.get("account_id") or token.account_id,
            }
        )

    def ensure_valid_token(
        self, token: TokenState, now: int | None = None
    ) -> TokenState:
        """Return *token*, refreshed first if it is about to expire."""
        current = now if now is not None else now_ms()
        if current < token.expires_at - self.refresh_margin_seconds * 1000:
            return token
        return self.refresh(token, now=current)

    def _post_token(self, action: str, data: dict[str, str]) -> dict:
        try:
            response = self.session.post(
                TOKEN_URL,
                data=data,
                headers={
                    "Content-Type": "application/x-www-form-urlencoded"
                },
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise NetworkError(
                f"Dropbox token {action} failed: {exc}"
            ) from exc

        if not response.ok:
            raise classify_remote_error(
                f"Dropbox token {action} failed ({response.status_code}): "
                f"{response.text}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise NetworkError(
                f"Dropbox token {action} returned invalid JSON: {exc}"
            ) from exc
        if "access_token" not in payload or "expires_in" not in payload:
            raise NetworkError(
                f"Dropbox token {action} reply is missing the access token."
            )
        return payload
