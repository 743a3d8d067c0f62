"""Authentication state machine owning the session and refresh tokens."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from mdloader.client.transport import ApiTransport
from mdloader.domain.models import SessionTokens
from mdloader.errors import (
    ApiError,
    AuthError,
    AuthRequiredError,
    MangaDexError,
    ServersUnreachableError,
    TransportError,
)
from mdloader.types import SettingsStore

log = logging.getLogger(__name__)

REFRESH_TOKEN_KEY = "refreshToken"
USERNAME_KEY = "username"
AUTH_REJECTED_STATUSES = frozenset({401, 403})
LOGIN_REJECTED_STATUSES = frozenset({400, 401, 403})


class AuthState(Enum):
    """Represents the session lifecycle states."""
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    REFRESHING = "refreshing"


def _parse_tokens(payload: Any) -> SessionTokens:
    """Extract the ``token.session``/``token.refresh`` pair from an auth response."""
    try:
        token = payload["token"]
        return SessionTokens(session_token=token["session"], refresh_token=token["refresh"])
    except (KeyError, TypeError) as exc:
        raise ApiError(200, "Malformed authentication response") from exc


class SessionManager:
    """
    Own the session token (memory only) and the refresh token (persisted).

    The bearer header installed on the transport always mirrors the session
    token held here.
    """

    def __init__(self, transport: ApiTransport, settings: SettingsStore) -> None:
        self.transport = transport
        self.settings = settings
        self.state = AuthState.UNAUTHENTICATED
        self._session_token: str | None = None

    @property
    def is_authenticated(self) -> bool:
        """Return whether a session token is currently held."""
        return self.state is AuthState.AUTHENTICATED

    @property
    def stored_refresh_token(self) -> str:
        """Return the persisted refresh token, or an empty string."""
        return self.settings.get(REFRESH_TOKEN_KEY) or ""

    def _establish(self, tokens: SessionTokens) -> None:
        """Adopt a new token pair and mark the session authenticated."""
        self._session_token = tokens.session_token
        self.settings.set(REFRESH_TOKEN_KEY, tokens.refresh_token)
        self.transport.set_bearer_token(tokens.session_token)
        self.state = AuthState.AUTHENTICATED

    def _clear(self, *, forget_refresh_token: bool) -> None:
        """Drop the in-memory session and optionally the persisted refresh token."""
        self._session_token = None
        self.transport.set_bearer_token(None)
        if forget_refresh_token:
            self.settings.set(REFRESH_TOKEN_KEY, "")
        self.state = AuthState.UNAUTHENTICATED

    async def login(self, username: str, password: str) -> None:
        """Authenticate with credentials and install the new session."""
        self.state = AuthState.AUTHENTICATING
        try:
            payload = await self.transport.request_json(
                "POST",
                "/auth/login",
                body={"username": username, "password": password},
            )
            tokens = _parse_tokens(payload)
        except ApiError as exc:
            self._clear(forget_refresh_token=False)
            if exc.status in LOGIN_REJECTED_STATUSES:
                log.info("Login rejected for user %s", username)
                raise AuthError(exc.status, exc.details) from exc
            raise
        except MangaDexError:
            self._clear(forget_refresh_token=False)
            raise

        self._establish(tokens)
        self.settings.set(USERNAME_KEY, username)
        log.info("Logged in as %s", username)

    async def refresh(self) -> None:
        """
        Exchange the stored refresh token for a new token pair.

        Raises ``AuthRequiredError`` when no token is stored or the API rejects
        it (local state is cleared), and ``ServersUnreachableError`` for any
        other failure (the refresh token is kept for a later retry).
        """
        refresh_token = self.stored_refresh_token
        if not refresh_token:
            self._clear(forget_refresh_token=False)
            raise AuthRequiredError(401, "Login required")

        self.state = AuthState.REFRESHING
        try:
            payload = await self.transport.request_json(
                "POST",
                "/auth/refresh",
                body={"token": refresh_token},
            )
            tokens = _parse_tokens(payload)
        except ApiError as exc:
            if exc.status in AUTH_REJECTED_STATUSES:
                self._clear(forget_refresh_token=True)
                log.info("Refresh token rejected (%s); login required", exc.status)
                raise AuthRequiredError(exc.status, "Login required") from exc
            self._clear(forget_refresh_token=False)
            raise ServersUnreachableError(
                exc.status, "Unable to contact authentication servers"
            ) from exc
        except TransportError as exc:
            self._clear(forget_refresh_token=False)
            raise ServersUnreachableError(
                exc.status, "Unable to contact authentication servers"
            ) from exc

        self._establish(tokens)
        log.info("Session token refreshed")

    async def check_authentication(self) -> bool:
        """Ask the API whether the current session token is accepted."""
        try:
            payload = await self.transport.request_json("GET", "/auth/check")
        except ApiError as exc:
            if exc.status in AUTH_REJECTED_STATUSES:
                return False
            raise
        return bool(payload.get("isAuthenticated", False)) if isinstance(payload, dict) else False

    async def logout(self) -> None:
        """Invalidate the session remotely (best effort) and always clear it locally."""
        try:
            await self.transport.request_json("POST", "/auth/logout")
        except MangaDexError as exc:
            log.warning("Remote logout failed: %s", exc)
        finally:
            self._clear(forget_refresh_token=True)
        log.info("Logged out")

    async def restore(self) -> bool:
        """
        Re-establish a session at startup from the persisted refresh token.

        Returns ``False`` without any network call when no token is stored.
        Errors from ``refresh`` propagate.
        """
        if not self.stored_refresh_token:
            self._clear(forget_refresh_token=False)
            log.info("No stored refresh token; starting unauthenticated")
            return False
        await self.refresh()
        return True
