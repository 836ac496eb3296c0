"""Controller that runs the interactive Spotify sign-in in the browser."""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
import webbrowser
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Optional
from urllib.parse import parse_qs, urlparse

from config.settings import Settings
from services.spotify_auth import (
    SpotifyAuthError,
    SpotifyOAuthClient,
    TokenResponse,
)

logger = logging.getLogger(__name__)


@dataclass
class _AuthResult:
    code: Optional[str] = None
    error: Optional[str] = None
    state: Optional[str] = None


class AuthController:
    """Obtains tokens through the Authorization Code with PKCE flow."""

    CALLBACK_TIMEOUT = 300  # 5 minutes

    def __init__(self, oauth: SpotifyOAuthClient, settings: Settings):
        self._oauth = oauth
        self._settings = settings

    async def authorize(self) -> TokenResponse:
        """Open the browser, wait for the redirect and exchange the code."""
        redirect_uri = self._settings.redirect_uri
        expected_state = secrets.token_urlsafe(16)
        authorize_url, verifier = self._oauth.build_authorize_url(
            redirect_uri,
            state=expected_state,
        )
        logger.info("Waiting for Spotify authorization on %s", redirect_uri)
        result = await asyncio.to_thread(self._await_browser_callback, authorize_url)
        code = self._validate_callback(result, expected_state)
        return await self._oauth.exchange_code(code, verifier, redirect_uri)

    @staticmethod
    def _validate_callback(result: _AuthResult, expected_state: str) -> str:
        """Return the authorization code of a redirect issued for this request."""
        if result.error:
            raise SpotifyAuthError(f"Spotify returned error: {result.error}")
        if result.state != expected_state:
            raise SpotifyAuthError("Authorization state mismatch; ignoring redirect")
        if not result.code:
            raise SpotifyAuthError("Authorization code not received")
        return result.code

    def _await_browser_callback(self, authorize_url: str) -> _AuthResult:
        """Open the browser and wait for the Spotify redirect."""
        result = _AuthResult()

        class _Handler(BaseHTTPRequestHandler):  # type: ignore[misc]
            def do_GET(self):  # type: ignore[override]
                parsed = urlparse(self.path)
                if parsed.path != "/callback":
                    self.send_error(404, "Not Found")
                    return
                params = parse_qs(parsed.query)
                result.code = params.get("code", [None])[0]
                result.error = params.get("error", [None])[0]
                result.state = params.get("state", [None])[0]
                self.send_response(200)
                self.send_header("Content-Type", "text/html; charset=utf-8")
                self.end_headers()
                self.wfile.write(
                    b"<html><body><h1>Authorization received.</h1>"
                    b"<p>You may close this window and return to the player.</p>"
                    b"</body></html>"
                )

            def log_message(self, format, *args):  # type: ignore[override]
                return

        server = HTTPServer(("127.0.0.1", self._settings.redirect_port), _Handler)
        server.timeout = 1.0
        if not webbrowser.open(authorize_url):
            print(f"Open this URL to sign in to Spotify:\n{authorize_url}")
        timeout_at = time.time() + self.CALLBACK_TIMEOUT
        try:
            while (
                time.time() < timeout_at
                and not result.code
                and not result.error
            ):
                server.handle_request()
            if not result.code and not result.error:
                raise SpotifyAuthError(
                    "Timed out waiting for Spotify authorization"
                )
            return result
        finally:
            server.server_close()
