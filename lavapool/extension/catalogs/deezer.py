from __future__ import annotations

import asyncio
from typing import Any

import aiohttp
from yarl import URL

from lavapool.compat import json
from lavapool.constants.regex import DEEZER_REGEX
from lavapool.exceptions.request import HTTPException
from lavapool.extension.catalogs.base import CatalogResolver
from lavapool.nodes.api.responses.rest_api import LoadResult, PlaylistInfo
from lavapool.nodes.api.responses.track import Info, Track
from lavapool.type_hints import JSON_DICT_TYPE

PAGE_SIZE = 100


class DeezerResolver(CatalogResolver):
    """Resolves Deezer tracks, albums, playlists and artists through the public Deezer API.

    Limits are expressed in pages of 100 tracks, ``None`` loads everything.

    Parameters
    ----------
    playlist_limit: :class:`int`
        Maximum number of pages loaded from a playlist.
    album_limit: :class:`int`
        Maximum number of pages loaded from an album.
    artist_limit: :class:`int`
        Maximum number of pages loaded from an artist's top tracks.
    """

    name = "deezer"
    pattern = DEEZER_REGEX

    def __init__(
        self,
        *,
        playlist_limit: int | None = None,
        album_limit: int | None = None,
        artist_limit: int | None = None,
        base_url: str = "https://api.deezer.com",
    ) -> None:
        super().__init__()
        self._base_url = URL(base_url)
        self.playlist_limit = playlist_limit
        self.album_limit = album_limit
        self.artist_limit = artist_limit

    @staticmethod
    def _limit(data: list[Any], pages: int | None) -> list[Any]:
        return data[: pages * PAGE_SIZE] if pages else data

    async def _request(self, url: URL | str, **params: Any) -> JSON_DICT_TYPE:
        async with self.session.get(url, params=params or None) as response:
            if response.status != 200:
                raise HTTPException(response.status, await response.text())
            data = await response.json(loads=json.loads, content_type=None)
        # The API reports errors with a 200 and an ``error`` object
        if isinstance(data, dict) and (error := data.get("error")):
            raise HTTPException(error.get("code", 400), error.get("message"))
        return data

    @staticmethod
    def build_unresolved(track: JSON_DICT_TYPE) -> Track:
        """Converts a Deezer track object into a track that still has to be looked up on a node."""
        artist = track.get("artist") or {}
        album = track.get("album") or {}
        return Track(
            info=Info(
                identifier=str(track["id"]),
                author=artist.get("name") or "Unknown",
                length=int(track.get("duration") or 0) * 1000,
                title=track["title"],
                uri=track.get("link"),
                sourceName="deezer",
                artworkUrl=album.get("cover_medium"),
                isrc=track.get("isrc"),
            )
        )

    async def resolve(self, url: str) -> LoadResult:
        if (parsed := self.pattern.match(url)) is None:
            return LoadResult.no_matches()
        identifier = parsed.group("identifier")
        try:
            match parsed.group("type"):
                case "track":
                    return await self.fetch_track(identifier)
                case "album":
                    return await self.fetch_album(identifier)
                case "playlist":
                    return await self.fetch_playlist(identifier)
                case "artist":
                    return await self.fetch_artist(identifier)
        except (aiohttp.ClientError, asyncio.TimeoutError, HTTPException, KeyError, TypeError, ValueError) as e:
            self._logger.debug("Failed to resolve %s: %s", url, e)
            return LoadResult.load_failed(str(e) or type(e).__name__)
        return LoadResult.no_matches()

    async def fetch_track(self, identifier: str) -> LoadResult:
        track = await self._request(self._base_url / "track" / identifier)
        return LoadResult(loadType="TRACK_LOADED", tracks=[self.build_unresolved(track)])

    async def fetch_album(self, identifier: str) -> LoadResult:
        album = await self._request(self._base_url / "album" / identifier)
        tracks = self._limit(album["tracks"]["data"], self.album_limit)
        return LoadResult(
            loadType="PLAYLIST_LOADED",
            tracks=[self.build_unresolved({**t, "album": t.get("album") or album}) for t in tracks],
            playlistInfo=PlaylistInfo(name=album.get("title")),
        )

    async def fetch_playlist(self, identifier: str) -> LoadResult:
        playlist = await self._request(self._base_url / "playlist" / identifier)
        tracks = self._limit(playlist["tracks"]["data"], self.playlist_limit)
        return LoadResult(
            loadType="PLAYLIST_LOADED",
            tracks=[self.build_unresolved(t) for t in tracks],
            playlistInfo=PlaylistInfo(name=playlist.get("title")),
        )

    async def fetch_artist(self, identifier: str) -> LoadResult:
        artist = await self._request(self._base_url / "artist" / identifier)
        page = await self._request(self._base_url / "artist" / identifier / "top", limit=PAGE_SIZE)
        tracks = list(page["data"])
        maximum = self.artist_limit * PAGE_SIZE if self.artist_limit else None
        while (next_page := page.get("next")) and (maximum is None or len(tracks) < maximum):
            page = await self._request(next_page)
            tracks.extend(page["data"])
        return LoadResult(
            loadType="PLAYLIST_LOADED",
            tracks=[self.build_unresolved(t) for t in self._limit(tracks, self.artist_limit)],
            playlistInfo=PlaylistInfo(name=artist.get("name")),
        )

    async def search(self, query: str) -> LoadResult:
        """|coro|
        Searches Deezer and returns the best match as a single track.
        """
        if self.check(query):
            return await self.resolve(query)
        try:
            result = await self._request(self._base_url / "search", q=query)
        except (aiohttp.ClientError, asyncio.TimeoutError, HTTPException, ValueError) as e:
            self._logger.debug("Search for %r failed: %s", query, e)
            return LoadResult.load_failed(str(e) or type(e).__name__)
        if not (data := result.get("data")):
            return LoadResult.no_matches()
        return LoadResult(loadType="TRACK_LOADED", tracks=[self.build_unresolved(data[0])])
