from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from dacite import from_dict

from lavapool.logging import getLogger
from lavapool.nodes.api.responses.track import Info
from lavapool.nodes.api.responses.track import Track as APITrack
from lavapool.type_hints import JSON_DICT_TYPE

if TYPE_CHECKING:
    from lavapool.nodes.node import Node

LOGGER = getLogger("LavaPool.Track")


class Track:
    """A track as held by a player queue.

    A track is *unresolved* while it has no encoded blob, which is the case for
    tracks built from external catalogs. Unresolved tracks are looked up on a
    node with :meth:`resolve` before they are played.
    """

    __slots__ = ("_data", "_requester", "_unique_id")

    def __init__(self, data: APITrack, requester: str | None = None) -> None:
        self._data = data
        self._requester = requester
        self._unique_id = uuid.uuid4().hex

    def __repr__(self) -> str:
        return (
            f"<Track title={self.title!r} author={self.author!r} "
            f"source={self.source_name!r} resolved={self.is_resolved}>"
        )

    @classmethod
    def from_lavalink(cls, data: APITrack | JSON_DICT_TYPE, requester: str | None = None) -> Track:
        """Builds a track from a node payload (``{"track"|"encoded": ..., "info": {...}}``)."""
        if not isinstance(data, APITrack):
            data = from_dict(data_class=APITrack, data=data)
        return cls(data, requester=requester)

    @classmethod
    def unresolved(
        cls,
        *,
        title: str,
        author: str,
        identifier: str,
        length: int = 0,
        uri: str | None = None,
        source_name: str | None = None,
        artwork_url: str | None = None,
        isrc: str | None = None,
        requester: str | None = None,
    ) -> Track:
        """Builds a track that still has to be looked up on a node before it can be played."""
        info = Info(
            identifier=identifier,
            author=author,
            length=length,
            title=title,
            uri=uri,
            sourceName=source_name,
            artworkUrl=artwork_url,
            isrc=isrc,
        )
        return cls(APITrack(info=info), requester=requester)

    @property
    def unique_id(self) -> str:
        return self._unique_id

    @property
    def data(self) -> APITrack:
        return self._data

    @property
    def encoded(self) -> str | None:
        """The encoded track blob, ``None`` while the track is unresolved"""
        return self._data.encoded

    @property
    def is_resolved(self) -> bool:
        return bool(self._data.encoded)

    @property
    def info(self) -> Info:
        return self._data.info

    @property
    def title(self) -> str:
        return self._data.info.title

    @property
    def author(self) -> str:
        return self._data.info.author

    @property
    def identifier(self) -> str:
        return self._data.info.identifier

    @property
    def duration(self) -> int:
        """The track length in milliseconds"""
        return self._data.info.length

    @property
    def uri(self) -> str | None:
        return self._data.info.uri

    @property
    def source_name(self) -> str | None:
        return self._data.info.sourceName

    @property
    def artwork_url(self) -> str | None:
        return self._data.info.artworkUrl

    @property
    def is_stream(self) -> bool:
        return self._data.info.isStream

    @property
    def is_seekable(self) -> bool:
        return self._data.info.isSeekable

    @property
    def requester(self) -> str | None:
        return self._requester

    @requester.setter
    def requester(self, value: str | None) -> None:
        self._requester = value

    @property
    def search_query(self) -> str:
        """The query used to find a playable version of this track"""
        return f"{self.author} - {self.title}"

    async def resolve(self, node: Node, source: str) -> bool:
        """|coro|
        Looks the track up on ``node`` and adopts the best match.

        Results whose author matches are preferred, otherwise the first result is used.
        The track keeps its identity, only its payload is replaced.

        Returns
        -------
        bool
            Whether a playable version was found.
        """
        if self.is_resolved:
            return True
        result = await node.fetch_loadtracks(f"{source}:{self.search_query}")
        candidates = [t for t in result.tracks if t.encoded]
        if not candidates:
            LOGGER.debug("No playable match for %r (%s)", self, result.loadType)
            return False
        author = self.author.lower()
        best = next((t for t in candidates if author and author in t.info.author.lower()), candidates[0])
        LOGGER.trace("Resolved %r to %s", self, best.info.uri)
        self._data = best
        return True

    def to_dict(self) -> JSON_DICT_TYPE:
        return {**self._data.to_dict(), "requester": self._requester}
