from __future__ import annotations

from lavapool.exceptions.base import LavaPoolException


class InvalidArgumentsException(LavaPoolException):
    """Base Exception for when invalid arguments are passed to a method"""


class ConfigurationException(LavaPoolException):
    """Raised when the client or a node is configured with missing or invalid options"""


class NotFoundException(LavaPoolException):
    """Raised when a lookup by key does not match any registered entry"""
