from __future__ import annotations

from lavapool.exceptions.base import LavaPoolException


class HTTPException(LavaPoolException):
    """Base exception for HTTP request errors"""

    def __init__(self, status: int, message: str | None = None) -> None:
        super().__init__(f"{status}: {message}" if message else str(status))
        self.status = status
        self.message = message

    def __bool__(self):
        return False


class UnauthorizedException(HTTPException):
    """Raised when a REST request fails due to an incorrect password"""

    def __bool__(self):
        return False
