"""Controller that applies user commands to UI state or forwards them as events."""

from __future__ import annotations

import logging
from typing import Callable

from app.state.app_state import SharedState, TrackOrder
from app.state.ui_state import SharedUIState
from core import events
from core.commands import Command, event_for_command

logger = logging.getLogger(__name__)

_SORT_ORDERS = {
    Command.SORT_BY_TRACK: TrackOrder.TRACK,
    Command.SORT_BY_ARTISTS: TrackOrder.ARTISTS,
    Command.SORT_BY_ALBUM: TrackOrder.ALBUM,
    Command.SORT_BY_DURATION: TrackOrder.DURATION,
    Command.SORT_BY_ADDED_DATE: TrackOrder.ADDED_DATE,
    Command.REVERSE_ORDER: TrackOrder.REVERSE,
}


class CommandController:
    """Handles commands coming from the input layer."""

    def __init__(
        self,
        state: SharedState,
        ui: SharedUIState,
        emit: Callable[[events.Event], None],
    ):
        self._state = state
        self._ui = ui
        self._emit = emit

    def handle_command(self, command: Command) -> None:
        event = event_for_command(command)
        if event is not None:
            if command is Command.QUIT:
                with self._ui.lock() as ui:
                    ui.is_running = False
            self._emit(event)
            return

        if command is Command.OPEN_COMMAND_HELP:
            with self._ui.lock() as ui:
                ui.open_command_help()
        elif command is Command.CLOSE_POPUP:
            with self._ui.lock() as ui:
                ui.close_popup()
        elif command is Command.SEARCH_CONTEXT_TRACKS:
            with self._ui.lock() as ui:
                ui.open_search_popup()
        elif command in (Command.SELECT_NEXT, Command.SELECT_PREVIOUS):
            self._move_selection(1 if command is Command.SELECT_NEXT else -1)
        elif command in _SORT_ORDERS:
            self._state.sort_playlist_tracks(_SORT_ORDERS[command])
        else:
            logger.warning("Unhandled command: %s", command)

    def set_search_query(self, query: str) -> None:
        with self._ui.lock() as ui:
            if not ui.set_search_query(query):
                logger.info("Ignoring search query; search popup is not open")

    def _move_selection(self, step: int) -> None:
        # The two lock domains are entered one after the other, never nested.
        with self._state.read() as state:
            tracks = list(state.current_playlist_tracks or [])
        with self._ui.lock() as ui:
            if ui.is_popup_focused():
                return
            count = len(ui.filter_items(tracks))
            if count == 0:
                return
            page = ui.current_page()
            page.select(max(0, min(count - 1, page.selected + step)))
