from __future__ import annotations

from lavapool.exceptions.base import LavaPoolException


class NodeException(LavaPoolException):
    """Base exception for Node errors"""


class NoNodeAvailableException(NodeException):
    """Raised when no node is available"""


class TransportException(NodeException):
    """Raised when the node transport fails to connect or to deliver a message.

    This is never raised to command callers, it is carried by :class:`NodeErrorEvent`.

    Attributes
    ----------
    message: :class:`str`
        A human-readable description of the failure.
    fatal: :class:`bool`
        Whether the node gave up reconnecting.
    """

    def __init__(self, message: str, *args, fatal: bool = False) -> None:
        super().__init__(message, *args)
        self.message = message
        self.fatal = fatal
