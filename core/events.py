"""Events consumed by the client event controller."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class RefreshToken:
    pass


@dataclass(frozen=True)
class GetCurrentPlaybackContext:
    pass


@dataclass(frozen=True)
class NextSong:
    pass


@dataclass(frozen=True)
class PreviousSong:
    pass


@dataclass(frozen=True)
class ResumePause:
    pass


@dataclass(frozen=True)
class Shuffle:
    pass


@dataclass(frozen=True)
class Repeat:
    pass


@dataclass(frozen=True)
class Quit:
    pass


@dataclass(frozen=True)
class GetPlaylist:
    playlist_id: str


@dataclass(frozen=True)
class GetCurrentPlaylistTracks:
    pass


Event = Union[
    RefreshToken,
    GetCurrentPlaybackContext,
    NextSong,
    PreviousSong,
    ResumePause,
    Shuffle,
    Repeat,
    Quit,
    GetPlaylist,
    GetCurrentPlaylistTracks,
]
