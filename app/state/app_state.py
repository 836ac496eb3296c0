"""Application state shared between event handlers and readers."""

from __future__ import annotations

import contextlib
import enum
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

from services.spotify_client import PlaybackContext, Playlist, PlaylistTrack

logger = logging.getLogger(__name__)


@dataclass
class AppState:
    """Aggregate runtime state for one session."""

    playback_context: Optional[PlaybackContext] = None
    current_playlist: Optional[Playlist] = None
    current_playlist_tracks: Optional[List[PlaylistTrack]] = None
    is_running: bool = True


class TrackOrder(enum.Enum):
    """Orderings available for the loaded playlist tracks."""

    TRACK = "track"
    ARTISTS = "artists"
    ALBUM = "album"
    DURATION = "duration"
    ADDED_DATE = "added_date"
    REVERSE = "reverse"


def _sort_key(order: TrackOrder):
    def key(entry: PlaylistTrack) -> Any:
        track = entry.track
        if order is TrackOrder.ADDED_DATE:
            return entry.added_at
        if track is None:
            return 0 if order is TrackOrder.DURATION else ""
        if order is TrackOrder.TRACK:
            return track.name.lower()
        if order is TrackOrder.ARTISTS:
            return ", ".join(track.artists).lower()
        if order is TrackOrder.ALBUM:
            return track.album.lower()
        return track.duration_ms

    return key


class ReadWriteLock:
    """Many concurrent readers or a single writer, never both."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False

    @contextlib.contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextlib.contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            while self._writing or self._readers:
                self._cond.wait()
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


class SharedState:
    """Handle to the single :class:`AppState` of a running session.

    Locks guard in-memory field access only. Callers must leave the ``read``
    or ``write`` block before awaiting network I/O.

    Writes coming back from the network go through :meth:`commit` with a
    ticket taken when the request was dispatched, so a slow response cannot
    overwrite a newer one for the same field.
    """

    FIELDS = ("playback_context", "current_playlist", "current_playlist_tracks")

    def __init__(self, state: Optional[AppState] = None):
        self._state = state or AppState()
        self._lock = ReadWriteLock()
        self._ticket_lock = threading.Lock()
        self._issued: Dict[str, int] = dict.fromkeys(self.FIELDS, 0)
        self._committed: Dict[str, int] = dict.fromkeys(self.FIELDS, 0)

    @contextlib.contextmanager
    def read(self) -> Iterator[AppState]:
        with self._lock.read():
            yield self._state

    @contextlib.contextmanager
    def write(self) -> Iterator[AppState]:
        with self._lock.write():
            yield self._state

    @property
    def is_running(self) -> bool:
        with self.read() as state:
            return state.is_running

    def ticket(self, field_name: str) -> int:
        """Issue the next generation number for ``field_name``."""
        self._check_field(field_name)
        with self._ticket_lock:
            self._issued[field_name] += 1
            return self._issued[field_name]

    def commit(self, field_name: str, value: Any, ticket: int) -> bool:
        """Store ``value`` unless a newer ticket already committed."""
        self._check_field(field_name)
        with self.write() as state:
            if ticket <= self._committed[field_name]:
                logger.debug(
                    "Dropping stale %s update (ticket %d <= %d)",
                    field_name,
                    ticket,
                    self._committed[field_name],
                )
                return False
            self._committed[field_name] = ticket
            setattr(state, field_name, value)
            return True

    def stop(self) -> None:
        """Mark the session as finished. There is no way back."""
        with self.write() as state:
            state.is_running = False

    def sort_playlist_tracks(self, order: TrackOrder) -> None:
        """Reorder the loaded playlist tracks in place."""
        with self.write() as state:
            tracks = state.current_playlist_tracks
            if not tracks:
                return
            if order is TrackOrder.REVERSE:
                tracks.reverse()
            else:
                tracks.sort(key=_sort_key(order))

    def _check_field(self, field_name: str) -> None:
        if field_name not in self.FIELDS:
            raise ValueError(f"unknown state field: {field_name}")
