"""Controller layer for the Spotify player engine."""

from .auth_controller import AuthController
from .command_controller import CommandController
from .event_controller import EventController, PreconditionError

__all__ = [
    "AuthController",
    "CommandController",
    "EventController",
    "PreconditionError",
]
