from __future__ import annotations

import dataclasses
from typing import Literal

from dacite import from_dict

from lavapool.nodes.api.responses.track import Track
from lavapool.type_hints import JSON_DICT_TYPE

LoadType = Literal["TRACK_LOADED", "PLAYLIST_LOADED", "SEARCH_RESULT", "NO_MATCHES", "LOAD_FAILED"]


@dataclasses.dataclass(repr=True, frozen=True, kw_only=True, slots=True)
class PlaylistInfo:
    name: str | None = None
    selectedTrack: int = -1


@dataclasses.dataclass(repr=True, frozen=True, kw_only=True, slots=True)
class LoadException:
    message: str | None = None
    severity: str = "COMMON"


@dataclasses.dataclass(repr=True, frozen=True, kw_only=True, slots=True)
class LoadResult:
    """The canonical load result returned by nodes and catalog resolvers alike."""

    loadType: LoadType
    tracks: list[Track] = dataclasses.field(default_factory=list)
    playlistInfo: PlaylistInfo | None = None
    exception: LoadException | None = None

    def __bool__(self) -> bool:
        return self.loadType not in ("NO_MATCHES", "LOAD_FAILED")

    @property
    def failed(self) -> bool:
        return self.loadType == "LOAD_FAILED"

    @classmethod
    def from_node(cls, data: JSON_DICT_TYPE) -> LoadResult:
        return from_dict(data_class=cls, data=data)

    @classmethod
    def load_failed(cls, message: str | None, severity: str = "COMMON") -> LoadResult:
        return cls(loadType="LOAD_FAILED", exception=LoadException(message=message, severity=severity))

    @classmethod
    def no_matches(cls) -> LoadResult:
        return cls(loadType="NO_MATCHES")

    def to_dict(self) -> JSON_DICT_TYPE:
        return {
            "loadType": self.loadType,
            "tracks": [t.to_dict() for t in self.tracks],
            "playlistInfo": dataclasses.asdict(self.playlistInfo) if self.playlistInfo else None,
            "exception": dataclasses.asdict(self.exception) if self.exception else None,
        }
