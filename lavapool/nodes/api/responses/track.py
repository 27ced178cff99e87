from __future__ import annotations

import dataclasses

from lavapool.type_hints import JSON_DICT_TYPE


@dataclasses.dataclass(repr=True, frozen=True, kw_only=True, slots=True)
class Info:
    identifier: str
    isSeekable: bool = True
    author: str
    length: int
    isStream: bool = False
    position: int = 0
    title: str
    uri: str | None = None
    sourceName: str | None = None
    artworkUrl: str | None = None
    isrc: str | None = None

    def to_dict(self) -> JSON_DICT_TYPE:
        return dataclasses.asdict(self)


@dataclasses.dataclass(repr=True, frozen=True, kw_only=True, slots=True)
class Track:
    info: Info
    encoded: str | None = None
    # Older nodes send the encoded blob under ``track``
    track: str | None = dataclasses.field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.encoded is None and self.track is not None:
            object.__setattr__(self, "encoded", self.track)

    def to_dict(self) -> JSON_DICT_TYPE:
        return {"encoded": self.encoded, "info": self.info.to_dict()}
