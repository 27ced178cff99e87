from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import ClassVar

import aiohttp

from lavapool.__version__ import __version__
from lavapool.compat import json
from lavapool.constants.config import CLIENT_NAME, REQUEST_TIMEOUT
from lavapool.logging import getLogger
from lavapool.nodes.api.responses.rest_api import LoadResult


class CatalogResolver(ABC):
    """A resolver for links of an external music catalog.

    Resolvers turn catalog URLs into unresolved tracks, which players look up on a
    node right before playing them. Subclasses set :attr:`name` and :attr:`pattern`.
    """

    name: ClassVar[str]
    pattern: ClassVar[re.Pattern[str]]

    def __init__(self) -> None:
        self._session: aiohttp.ClientSession | None = None
        self._logger = getLogger(f"LavaPool.Catalog-{self.name}")

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r}>"

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT),
                json_serialize=json.dumps,
                headers={"User-Agent": f"{CLIENT_NAME}/{__version__}"},
            )
        return self._session

    def check(self, query: str) -> bool:
        """Whether ``query`` is a link this resolver handles"""
        return self.pattern.match(query) is not None

    @abstractmethod
    async def resolve(self, url: str) -> LoadResult:
        """|coro|
        Loads the tracks behind a catalog link.

        Failures are returned as ``LOAD_FAILED`` results.
        """
        raise NotImplementedError

    @abstractmethod
    async def search(self, query: str) -> LoadResult:
        """|coro|
        Searches the catalog for ``query``.
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
