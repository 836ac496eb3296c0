"""Authenticated session handle and its renewal."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from services.spotify_auth import (
    SpotifyAuthError,
    SpotifyOAuthClient,
    TokenResponse,
)

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_MARGIN = 10


class AuthFailure(SpotifyAuthError):
    """Raised when the credential exchange yields no usable token."""


@dataclass(frozen=True)
class Session:
    """Access token plus the absolute time after which it must not be used."""

    access_token: str
    expires_at: float
    refresh_token: Optional[str] = None

    def is_valid(self, now: Optional[float] = None) -> bool:
        current = time.time() if now is None else now
        return current < self.expires_at


class SessionManager:
    """Owns the current session and replaces it on refresh.

    ``expires_at`` is the server-reported lifetime minus ``expiry_margin``
    seconds, so any caller that checks ``now < expires_at`` never presents a
    token the service already considers expired.

    When no refresh token is known, ``authorize`` is awaited to obtain one
    interactively (the browser PKCE flow at runtime, a fake in tests).
    """

    def __init__(
        self,
        oauth: SpotifyOAuthClient,
        refresh_token: Optional[str] = None,
        *,
        expiry_margin: int = DEFAULT_EXPIRY_MARGIN,
        authorize: Optional[Callable[[], Awaitable[TokenResponse]]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._oauth = oauth
        self._refresh_token = refresh_token
        self._expiry_margin = expiry_margin
        self._authorize = authorize
        self._clock = clock
        self._session: Optional[Session] = None
        self._lock = asyncio.Lock()

    @property
    def session(self) -> Optional[Session]:
        return self._session

    async def refresh(self) -> Session:
        """Exchange credentials for a fresh session and install it."""
        async with self._lock:
            return await self._refresh_locked()

    async def access_token(self) -> str:
        """Return a token valid right now, refreshing lazily if needed."""
        session = self._session
        if session is not None and session.is_valid(self._clock()):
            return session.access_token
        async with self._lock:
            # Another task may have refreshed while we waited on the lock.
            session = self._session
            if session is not None and session.is_valid(self._clock()):
                return session.access_token
            logger.info("Access token missing or expired; refreshing")
            session = await self._refresh_locked()
            return session.access_token

    async def authorization_header(self) -> str:
        return f"Bearer {await self.access_token()}"

    async def _refresh_locked(self) -> Session:
        token = await self._exchange()
        if not token.access_token:
            raise AuthFailure("auth failed: token exchange returned no access token")

        now = self._clock()
        session = Session(
            access_token=token.access_token,
            expires_at=now + token.expires_in - self._expiry_margin,
            refresh_token=token.refresh_token or self._refresh_token,
        )
        self._refresh_token = session.refresh_token
        self._session = session
        logger.info(
            "Session refreshed; valid for %.0f seconds",
            session.expires_at - now,
        )
        return session

    async def _exchange(self) -> TokenResponse:
        try:
            if self._refresh_token:
                return await self._oauth.refresh_token(self._refresh_token)
            if self._authorize is None:
                raise AuthFailure("auth failed: no refresh token and no interactive sign-in")
            return await self._authorize()
        except AuthFailure:
            raise
        except SpotifyAuthError as exc:
            raise AuthFailure(f"auth failed: {exc}") from exc
