"""Session wiring for the Spotify player engine."""

from __future__ import annotations

import asyncio
import logging
import sys
import threading
import time
from typing import List, Optional

import httpx

from app.controllers.auth_controller import AuthController
from app.controllers.command_controller import CommandController
from app.controllers.event_controller import EventController
from app.state.app_state import SharedState
from app.state.ui_state import SharedUIState, UIState
from config.settings import Settings
from core import events
from core.commands import Command
from core.search_filter import matcher_from_settings
from services.session import Session, SessionManager
from services.spotify_auth import SpotifyOAuthClient
from services.spotify_client import SpotifyClient

logger = logging.getLogger(__name__)


class PlayerRuntime:
    """Owns every per-session resource and the background tasks feeding events."""

    TOKEN_RETRY_DELAY = 10.0

    def __init__(
        self,
        settings: Settings,
        *,
        oauth: Optional[SpotifyOAuthClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        oauth = oauth or SpotifyOAuthClient(
            settings.client_id,
            scopes=settings.scopes,
            timeout=settings.http_timeout,
        )
        self.auth_controller = AuthController(oauth, settings)
        self.session_manager = SessionManager(
            oauth,
            settings.refresh_token,
            expiry_margin=settings.token_expiry_margin,
            authorize=self.auth_controller.authorize,
        )
        self.client = SpotifyClient(
            self.session_manager,
            timeout=settings.http_timeout,
            transport=transport,
        )
        self.state = SharedState()
        self.ui = SharedUIState(UIState(matcher=matcher_from_settings(settings)))
        self.event_controller = EventController(
            self.client,
            self.session_manager,
            self.state,
        )
        self.command_controller = CommandController(self.state, self.ui, self.emit)
        self._queue: Optional[asyncio.Queue] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def emit(self, event: events.Event) -> None:
        if self._queue is None:
            raise RuntimeError("runtime is not running")
        self._queue.put_nowait(event)

    def handle_input(self, line: str) -> None:
        """Apply one line of user input: a command name or ``/query``."""
        text = line.strip()
        if not text:
            return
        if text.startswith("/"):
            self.command_controller.set_search_query(text[1:])
            return
        try:
            command = Command.parse(text)
        except ValueError as exc:
            logger.warning("%s", exc)
            return
        self.command_controller.handle_command(command)

    async def run(self) -> None:
        """Authenticate, start background tasks and process events until quit."""
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()

        await self.session_manager.refresh()
        await self._load_default_playlist()
        self.emit(events.GetCurrentPlaybackContext())

        background: List[asyncio.Task] = [
            asyncio.ensure_future(self._watch_token()),
            asyncio.ensure_future(self._poll_playback()),
        ]
        self._start_input_thread()
        try:
            await self.event_controller.run(self._queue)
        finally:
            for task in background:
                task.cancel()
            await asyncio.gather(*background, return_exceptions=True)
            await self.client.aclose()
            logger.info("Player runtime stopped")

    async def _load_default_playlist(self) -> None:
        playlist_id = self.settings.default_playlist_id
        if not playlist_id:
            return
        # Awaited in sequence: the track listing needs the playlist committed first.
        await self.event_controller.dispatch(events.GetPlaylist(playlist_id))
        self.emit(events.GetCurrentPlaylistTracks())

    async def _watch_token(self) -> None:
        while self.state.is_running:
            await asyncio.sleep(self.refresh_delay(self.session_manager.session))
            await self.event_controller.dispatch(events.RefreshToken())

    def refresh_delay(self, session: Optional[Session], now: Optional[float] = None) -> float:
        """Seconds to wait before the next proactive refresh.

        A missing or already-expired session means the last refresh failed or the
        service grants lifetimes shorter than the margin; either way retry
        after ``TOKEN_RETRY_DELAY`` instead of spinning.
        """
        current = time.time() if now is None else now
        if session is None or not session.is_valid(current):
            return self.TOKEN_RETRY_DELAY
        return session.expires_at - current

    async def _poll_playback(self) -> None:
        while self.state.is_running:
            await asyncio.sleep(self.settings.playback_refresh_interval)
            self.emit(events.GetCurrentPlaybackContext())

    def _start_input_thread(self) -> None:
        thread = threading.Thread(target=self._read_input, daemon=True)
        thread.start()

    def _read_input(self) -> None:
        loop = self._loop
        for line in sys.stdin:
            if loop is None:
                return
            try:
                loop.call_soon_threadsafe(self.handle_input, line)
            except RuntimeError:
                # Event loop already closed.
                return
