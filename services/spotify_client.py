"""Spotify Web API wrapper used by the player engine."""

from __future__ import annotations

from dataclasses import dataclass, field
import enum
import logging
from typing import Any, List, Optional

import httpx

from services.session import SessionManager

logger = logging.getLogger(__name__)


class RemoteError(RuntimeError):
    """Raised when Spotify API calls fail, whatever the underlying cause."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RepeatState(enum.Enum):
    """Repeat mode, valued with the strings the Web API uses."""

    OFF = "off"
    TRACK = "track"
    CONTEXT = "context"

    def next(self) -> "RepeatState":
        """Return the mode that follows in the Off -> Track -> Context cycle."""
        order = list(RepeatState)
        return order[(order.index(self) + 1) % len(order)]


@dataclass
class Device:
    """Playback device summary."""

    id: Optional[str]
    name: str
    type: str = ""
    volume_percent: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: dict) -> "Device":
        return cls(
            id=payload.get("id"),
            name=payload.get("name", ""),
            type=payload.get("type", ""),
            volume_percent=payload.get("volume_percent"),
        )


@dataclass
class Track:
    """Minimal track representation."""

    id: str
    name: str
    uri: str = ""
    artists: List[str] = field(default_factory=list)
    album: str = ""
    duration_ms: int = 0

    def __str__(self) -> str:
        return " ".join(part for part in (self.name, ", ".join(self.artists), self.album) if part)

    @classmethod
    def from_payload(cls, payload: dict) -> "Track":
        artists = [
            artist.get("name", "")
            for artist in payload.get("artists", [])
            if artist.get("name")
        ]
        album = payload.get("album") or {}
        return cls(
            id=payload.get("id") or "",
            name=payload.get("name", ""),
            uri=payload.get("uri", ""),
            artists=artists,
            album=album.get("name", ""),
            duration_ms=payload.get("duration_ms", 0),
        )


@dataclass
class PlaylistTrack:
    """A playlist entry; ``track`` is absent for removed or local items."""

    added_at: str = ""
    track: Optional[Track] = None

    def __str__(self) -> str:
        return str(self.track) if self.track else ""

    @classmethod
    def from_payload(cls, payload: dict) -> "PlaylistTrack":
        track = payload.get("track")
        return cls(
            added_at=payload.get("added_at") or "",
            track=Track.from_payload(track) if track else None,
        )


@dataclass
class Page:
    """One chunk of a paginated listing."""

    items: List[PlaylistTrack] = field(default_factory=list)
    next: Optional[str] = None
    total: int = 0

    @classmethod
    def from_payload(cls, payload: dict) -> "Page":
        items = [PlaylistTrack.from_payload(item) for item in payload.get("items", [])]
        return cls(
            items=items,
            next=payload.get("next"),
            total=payload.get("total", len(items)),
        )


@dataclass
class Playlist:
    """Playlist metadata with the first page of its tracks."""

    id: str
    name: str
    owner_id: str = ""
    description: str = ""
    tracks: Page = field(default_factory=Page)

    @classmethod
    def from_payload(cls, payload: dict) -> "Playlist":
        owner = payload.get("owner") or {}
        return cls(
            id=payload.get("id", ""),
            name=payload.get("name", ""),
            owner_id=owner.get("id", ""),
            description=payload.get("description") or "",
            tracks=Page.from_payload(payload.get("tracks") or {}),
        )


@dataclass
class PlaybackContext:
    """Snapshot of what is playing and under which settings."""

    is_playing: bool
    shuffle_state: bool
    repeat_state: RepeatState
    progress_ms: Optional[int] = None
    device: Optional[Device] = None
    context_type: Optional[str] = None
    context_uri: Optional[str] = None
    item: Optional[Track] = None

    @classmethod
    def from_payload(cls, payload: dict) -> "PlaybackContext":
        device = payload.get("device")
        context = payload.get("context") or {}
        item = payload.get("item")
        return cls(
            is_playing=bool(payload.get("is_playing", False)),
            shuffle_state=bool(payload.get("shuffle_state", False)),
            repeat_state=RepeatState(payload.get("repeat_state", "off")),
            progress_ms=payload.get("progress_ms"),
            device=Device.from_payload(device) if device else None,
            context_type=context.get("type"),
            context_uri=context.get("uri"),
            item=Track.from_payload(item) if item else None,
        )


class SpotifyClient:
    """Async HTTPX-based Spotify Web API client.

    Each request asks the session manager for a currently valid token, so an
    expired session is renewed before it is ever presented to the service.
    Every failure leaves this class as a :class:`RemoteError`.
    """

    API_BASE = "https://api.spotify.com/v1"

    def __init__(
        self,
        session_manager: SessionManager,
        *,
        timeout: float = 20,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._sessions = session_manager
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
    ) -> Any:
        if not url.startswith("http"):
            url = f"{self.API_BASE}{url}"
        headers = {"Authorization": await self._sessions.authorization_header()}
        try:
            response = await self._client.request(
                method,
                url,
                params=params,
                json=json,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            raise RemoteError(f"{method} {url} failed: {exc}") from exc
        if response.status_code >= 400:
            message = (
                f"{method} {url} failed: {response.status_code}"
                f" {response.text}"
            )
            raise RemoteError(message)
        if response.status_code == 204 or not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteError(f"{method} {url} returned invalid JSON: {exc}") from exc

    async def _get(self, url: str, params: Optional[dict] = None) -> dict:
        data = await self._request("GET", url, params=params)
        if not isinstance(data, dict):
            raise RemoteError(f"GET {url} returned an unexpected payload")
        return data

    async def get_current_playback(self) -> Optional[PlaybackContext]:
        """Return the current playback context, or ``None`` when idle."""
        data = await self._get("/me/player")
        if not data:
            return None
        try:
            return PlaybackContext.from_payload(data)
        except (AttributeError, KeyError, ValueError, TypeError) as exc:
            raise RemoteError(f"malformed playback payload: {exc}") from exc

    async def next_track(self) -> None:
        """Skip to the next track."""
        await self._request("POST", "/me/player/next")

    async def previous_track(self) -> None:
        """Skip to the previous track."""
        await self._request("POST", "/me/player/previous")

    async def resume(self) -> None:
        """Resume a previously paused track."""
        await self._request("PUT", "/me/player/play")

    async def pause(self) -> None:
        """Pause the currently playing track."""
        await self._request("PUT", "/me/player/pause")

    async def toggle_shuffle(self, state: bool) -> None:
        """Set shuffle to ``state``."""
        await self._request(
            "PUT",
            "/me/player/shuffle",
            params={"state": "true" if state else "false"},
        )

    async def set_repeat(self, state: RepeatState) -> None:
        """Set the repeat mode."""
        await self._request(
            "PUT",
            "/me/player/repeat",
            params={"state": state.value},
        )

    async def get_playlist(self, playlist_id: str) -> Playlist:
        """Fetch a playlist with the first page of its tracks."""
        data = await self._get(f"/playlists/{playlist_id}")
        try:
            return Playlist.from_payload(data)
        except (AttributeError, KeyError, ValueError, TypeError) as exc:
            raise RemoteError(f"malformed playlist payload: {exc}") from exc

    async def get_full_playlist_tracks(self, seed: Playlist) -> List[PlaylistTrack]:
        """Drain every page of ``seed``'s tracks, preserving response order."""
        tracks: List[PlaylistTrack] = list(seed.tracks.items)
        next_url = seed.tracks.next
        while next_url:
            logger.debug("Fetching playlist page %s", next_url)
            data = await self._get(next_url)
            try:
                page = Page.from_payload(data)
            except (AttributeError, KeyError, ValueError, TypeError) as exc:
                raise RemoteError(f"malformed page payload: {exc}") from exc
            tracks.extend(page.items)
            next_url = page.next
        return tracks
