"""UI navigation state: page history, the active popup and search filtering."""

from __future__ import annotations

import contextlib
import enum
import threading
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, TypeVar, Union

from core.search_filter import Matcher, TokenMatcher

T = TypeVar("T")


@dataclass
class LibraryPage:
    """The user's library overview."""

    selected: int = 0

    def select(self, index: int) -> None:
        self.selected = index


class ContextPageType(enum.Enum):
    CURRENT_PLAYING = "current_playing"
    BROWSING = "browsing"


@dataclass
class TrackTableState:
    """Cursor into a context's track table."""

    selected: int = 0


@dataclass
class ContextPage:
    """A playlist/album/artist context; ``state`` exists once it is interacted with."""

    context_id: Optional[str] = None
    page_type: ContextPageType = ContextPageType.CURRENT_PLAYING
    state: Optional[TrackTableState] = None

    @property
    def selected(self) -> int:
        return self.state.selected if self.state else 0

    def select(self, index: int) -> None:
        if self.state is None:
            self.state = TrackTableState()
        self.state.selected = index


PageState = Union[LibraryPage, ContextPage]


@dataclass
class SearchPopup:
    query: str = ""


@dataclass
class CommandHelpPopup:
    offset: int = 0


PopupState = Union[SearchPopup, CommandHelpPopup]


@dataclass
class UIState:
    """Navigation state read by rendering code.

    ``history`` always holds at least the initial library page; only its last
    element is shown. At most one popup is open at a time.
    """

    history: List[PageState] = field(default_factory=lambda: [LibraryPage()])
    popup: Optional[PopupState] = None
    is_running: bool = True
    matcher: Matcher = field(default_factory=TokenMatcher)

    def __post_init__(self) -> None:
        if not self.history:
            raise ValueError("page history must start with at least one page")

    def current_page(self) -> PageState:
        return self.history[-1]

    def push_page(self, page: PageState) -> None:
        """Navigate to ``page``; any open popup is dismissed."""
        self.history.append(page)
        self.popup = None

    def open_search_popup(self) -> None:
        self.current_page().select(0)
        self.popup = SearchPopup(query="")

    def open_command_help(self) -> None:
        self.popup = CommandHelpPopup()

    def close_popup(self) -> None:
        self.popup = None

    def is_popup_focused(self) -> bool:
        """Return whether an open popup takes input away from the page.

        The search popup is the only one that is not focused: navigation keys
        keep reaching the page underneath while it is open.
        """
        if self.popup is None:
            return False
        return not isinstance(self.popup, SearchPopup)

    @property
    def search_query(self) -> Optional[str]:
        if isinstance(self.popup, SearchPopup):
            return self.popup.query
        return None

    def set_search_query(self, query: str) -> bool:
        """Replace the query of the open search popup; no-op otherwise."""
        if not isinstance(self.popup, SearchPopup):
            return False
        self.popup.query = query
        self.current_page().select(0)
        return True

    def filter_items(self, items: Sequence[T]) -> List[T]:
        """Return the items matching the search query, in their original order.

        The returned list holds the same objects as ``items``.
        """
        query = self.search_query
        if not query:
            return list(items)
        return [item for item in items if self.matcher.matches(str(item), query)]


class SharedUIState:
    """Lock-guarded handle to the session's :class:`UIState`.

    Kept apart from the application state lock; code must not hold both.
    """

    def __init__(self, state: Optional[UIState] = None):
        self._state = state or UIState()
        self._lock = threading.Lock()

    @contextlib.contextmanager
    def lock(self) -> Iterator[UIState]:
        with self._lock:
            yield self._state
