"""Spotify player engine application package."""

from .runtime import PlayerRuntime

__all__ = ["PlayerRuntime"]
