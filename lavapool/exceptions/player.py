from __future__ import annotations

from lavapool.exceptions.base import LavaPoolException
from lavapool.exceptions.client import InvalidArgumentsException


class PlayerException(LavaPoolException):
    """Base exception for Player errors"""


class OutOfRangeException(PlayerException, InvalidArgumentsException):
    """Raised when a queue operation targets more entries than the queue holds"""


class UnknownEventException(PlayerException):
    """Raised when a player receives a node message it does not know how to handle"""

    def __init__(self, event: object, *args) -> None:
        super().__init__(f"Unknown event received: {event!r}", *args)
        self.event = event
