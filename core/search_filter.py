"""Search matching strategies for filtering item lists."""

from __future__ import annotations

import difflib as _dif
from typing import Optional, Protocol


class Matcher(Protocol):
    def matches(self, text: str, query: str) -> bool:
        ...


class TokenMatcher:
    """Match when any space-separated query token is a substring of the text."""

    def matches(self, text: str, query: str) -> bool:
        text = text.lower()
        return any(token and token in text for token in query.lower().split(" "))


class FuzzyMatcher:
    """Match when the query's characters appear in order within the text.

    Candidates passing that test are scored with ``difflib`` similarity and
    must reach ``min_score``.
    """

    def __init__(self, min_score: float = 0.0):
        self.min_score = min_score

    def score(self, text: str, query: str) -> Optional[float]:
        """Return a similarity in ``(0, 1]``, or ``None`` if ``query`` does not fit."""
        text = text.lower()
        query = query.lower().replace(" ", "")
        remaining = iter(text)
        if not all(char in remaining for char in query):
            return None
        return _dif.SequenceMatcher(None, query, text, autojunk=False).ratio()

    def matches(self, text: str, query: str) -> bool:
        score = self.score(text, query)
        return score is not None and score >= self.min_score


def matcher_from_settings(settings) -> Matcher:  # type: ignore[no-untyped-def]
    """Pick the matching strategy configured for this session."""
    if settings.fuzzy_search:
        return FuzzyMatcher(min_score=settings.fuzzy_min_score)
    return TokenMatcher()
