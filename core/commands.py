"""User-facing commands and their translation to client events."""

from __future__ import annotations

import enum
import re
from typing import Optional

from core import events


class Command(enum.Enum):
    NEXT_TRACK = "next_track"
    PREVIOUS_TRACK = "previous_track"
    RESUME_PAUSE = "resume_pause"
    REPEAT = "repeat"
    SHUFFLE = "shuffle"
    QUIT = "quit"
    OPEN_COMMAND_HELP = "open_command_help"
    CLOSE_POPUP = "close_popup"
    SELECT_NEXT = "select_next"
    SELECT_PREVIOUS = "select_previous"
    SEARCH_CONTEXT_TRACKS = "search_context_tracks"
    SORT_BY_TRACK = "sort_by_track"
    SORT_BY_ARTISTS = "sort_by_artists"
    SORT_BY_ALBUM = "sort_by_album"
    SORT_BY_DURATION = "sort_by_duration"
    SORT_BY_ADDED_DATE = "sort_by_added_date"
    REVERSE_ORDER = "reverse_order"

    @classmethod
    def parse(cls, name: str) -> "Command":
        """Accept ``next_track``, ``next-track`` or ``NextTrack``."""
        cleaned = name.strip()
        snake = re.sub(r"(?<!^)(?=[A-Z])", "_", cleaned).lower().replace("-", "_")
        try:
            return cls(snake)
        except ValueError:
            raise ValueError(f"unknown command: {name!r}") from None


_COMMAND_EVENTS = {
    Command.NEXT_TRACK: events.NextSong,
    Command.PREVIOUS_TRACK: events.PreviousSong,
    Command.RESUME_PAUSE: events.ResumePause,
    Command.REPEAT: events.Repeat,
    Command.SHUFFLE: events.Shuffle,
    Command.QUIT: events.Quit,
}


def event_for_command(command: Command) -> Optional[events.Event]:
    """Return the client event a command triggers, if any."""
    factory = _COMMAND_EVENTS.get(command)
    return factory() if factory else None
