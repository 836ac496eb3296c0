"""Controller that turns client events into Spotify calls and state updates."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Set

from app.state.app_state import SharedState
from core import events
from services.session import SessionManager
from services.spotify_client import PlaybackContext, SpotifyClient

logger = logging.getLogger(__name__)


class PreconditionError(RuntimeError):
    """Raised when an event needs state that has not been loaded."""


class EventController:
    """Dispatches events, one task each, against the shared state.

    State is read and written under the store's locks, and those locks are
    always released before awaiting the remote service.
    """

    def __init__(
        self,
        client: SpotifyClient,
        session_manager: SessionManager,
        state: SharedState,
    ):
        self._client = client
        self._sessions = session_manager
        self._state = state
        self._tasks: Set[asyncio.Task] = set()

    @property
    def state(self) -> SharedState:
        return self._state

    async def handle_event(self, event: events.Event) -> None:
        """Perform the single action associated with ``event``."""
        if isinstance(event, events.RefreshToken):
            await self._sessions.refresh()
        elif isinstance(event, events.GetCurrentPlaybackContext):
            ticket = self._state.ticket("playback_context")
            context = await self._client.get_current_playback()
            self._state.commit("playback_context", context, ticket)
        elif isinstance(event, events.NextSong):
            await self._client.next_track()
        elif isinstance(event, events.PreviousSong):
            await self._client.previous_track()
        elif isinstance(event, events.ResumePause):
            if self._current_playback().is_playing:
                await self._client.pause()
            else:
                await self._client.resume()
        elif isinstance(event, events.Shuffle):
            await self._client.toggle_shuffle(not self._current_playback().shuffle_state)
        elif isinstance(event, events.Repeat):
            await self._client.set_repeat(self._current_playback().repeat_state.next())
        elif isinstance(event, events.Quit):
            self._state.stop()
        elif isinstance(event, events.GetPlaylist):
            ticket = self._state.ticket("current_playlist")
            playlist = await self._client.get_playlist(event.playlist_id)
            self._state.commit("current_playlist", playlist, ticket)
        elif isinstance(event, events.GetCurrentPlaylistTracks):
            ticket = self._state.ticket("current_playlist_tracks")
            with self._state.read() as state:
                playlist = state.current_playlist
            if playlist is None:
                raise PreconditionError("no current playlist")
            tracks = await self._client.get_full_playlist_tracks(playlist)
            self._state.commit("current_playlist_tracks", tracks, ticket)
        else:
            raise TypeError(f"unsupported event: {event!r}")

    def handle_error(self, event: events.Event, error: BaseException) -> None:
        """Report a failed event; the event is dropped."""
        logger.warning("client error while handling %r: %s", event, error, exc_info=error)

    def dispatch(self, event: events.Event) -> asyncio.Task:
        """Schedule ``event`` concurrently with any others in flight."""
        task = asyncio.ensure_future(self._guarded(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def run(self, queue: "asyncio.Queue[Optional[events.Event]]") -> None:
        """Consume events until the queue yields ``None`` or the app stops."""
        try:
            while self._state.is_running:
                event = await queue.get()
                if event is None:
                    break
                self.dispatch(event)
                # Let a just-dispatched Quit take effect before waiting again.
                await asyncio.sleep(0)
        finally:
            await self.drain()

    async def drain(self) -> None:
        """Wait for every in-flight event task to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def _guarded(self, event: events.Event) -> None:
        try:
            await self.handle_event(event)
        except Exception as error:  # pylint: disable=broad-except
            self.handle_error(event, error)

    def _current_playback(self) -> PlaybackContext:
        with self._state.read() as state:
            context = state.playback_context
        if context is None:
            raise PreconditionError("no active playback context")
        return context
