from __future__ import annotations

import dataclasses
from typing import Literal, TypeAlias

from dacite import from_dict

from lavapool.type_hints import JSON_DICT_TYPE


@dataclasses.dataclass(repr=True, frozen=True, kw_only=True, slots=True)
class CPU:
    cores: int
    systemLoad: float
    lavalinkLoad: float


@dataclasses.dataclass(repr=True, frozen=True, kw_only=True, slots=True)
class Memory:
    free: int
    allocated: int
    reservable: int
    used: int


@dataclasses.dataclass(repr=True, frozen=True, kw_only=True, slots=True)
class Frame:
    sent: int
    nulled: int
    deficit: int


@dataclasses.dataclass(repr=True, frozen=True, kw_only=True, slots=True)
class Message:
    op: str


@dataclasses.dataclass(repr=True, frozen=True, kw_only=True, slots=True)
class Stats(Message):
    op: Literal["stats"]
    players: int = 0
    playingPlayers: int = 0
    uptime: int = 0
    memory: Memory | None = None
    cpu: CPU | None = None
    frameStats: Frame | None = None


@dataclasses.dataclass(repr=True, frozen=True, kw_only=True, slots=True)
class State:
    time: int = 0
    position: int = 0
    connected: bool = False
    ping: int = -1


@dataclasses.dataclass(repr=True, frozen=True, kw_only=True, slots=True)
class PlayerUpdate(Message):
    op: Literal["playerUpdate"]
    guildId: str
    state: State


@dataclasses.dataclass(repr=True, frozen=True, kw_only=True, slots=True)
class TrackStart(Message):
    op: Literal["event"]
    type: Literal["TrackStartEvent"]
    guildId: str
    track: str | None = None


@dataclasses.dataclass(repr=True, frozen=True, kw_only=True, slots=True)
class TrackStuck(Message):
    op: Literal["event"]
    type: Literal["TrackStuckEvent"]
    guildId: str
    track: str | None = None
    thresholdMs: int = 0


@dataclasses.dataclass(repr=True, frozen=True, kw_only=True, slots=True)
class TrackEnd(Message):
    op: Literal["event"]
    type: Literal["TrackEndEvent"]
    guildId: str
    track: str | None = None
    reason: str = "FINISHED"

    @property
    def replaced(self) -> bool:
        """Whether the track ended because another one was started in its place."""
        return self.reason.upper() == "REPLACED"


@dataclasses.dataclass(repr=True, frozen=True, kw_only=True, slots=True)
class TrackExceptionDetails:
    message: str | None = None
    severity: str = "COMMON"
    cause: str | None = None


@dataclasses.dataclass(repr=True, frozen=True, kw_only=True, slots=True)
class TrackException(Message):
    op: Literal["event"]
    type: Literal["TrackExceptionEvent"]
    guildId: str
    track: str | None = None
    exception: TrackExceptionDetails | None = None
    error: str | None = None

    @property
    def message(self) -> str | None:
        if self.exception is not None:
            return self.exception.message or self.exception.cause
        return self.error


@dataclasses.dataclass(repr=True, frozen=True, kw_only=True, slots=True)
class Closed(Message):
    op: Literal["event"]
    type: Literal["WebSocketClosedEvent"]
    guildId: str
    code: int
    reason: str | None = None
    byRemote: bool = False


@dataclasses.dataclass(repr=True, frozen=True, kw_only=True, slots=True)
class UnknownEvent(Message):
    guildId: str
    type: str | None = None
    data: JSON_DICT_TYPE = dataclasses.field(default_factory=dict, repr=False)


PlayerMessage: TypeAlias = PlayerUpdate | TrackStart | TrackEnd | TrackStuck | TrackException | Closed | UnknownEvent


def parse_player_message(data: JSON_DICT_TYPE) -> PlayerMessage:
    """Converts a guild scoped node message into its typed representation.

    Parameters
    ----------
    data: :class:`dict`
        The decoded JSON message, it must carry a ``guildId``.

    Returns
    -------
    PlayerMessage
        The typed message, :class:`UnknownEvent` when the op or event type is not recognised.

    Raises
    ------
    dacite.DaciteError
        If a recognised message is missing required fields.
    """
    match data.get("op"), data.get("type"):
        case "playerUpdate", _:
            return from_dict(data_class=PlayerUpdate, data=data)
        case "event", "TrackStartEvent":
            return from_dict(data_class=TrackStart, data=data)
        case "event", "TrackEndEvent":
            return from_dict(data_class=TrackEnd, data=data)
        case "event", "TrackStuckEvent":
            return from_dict(data_class=TrackStuck, data=data)
        case "event", "TrackExceptionEvent":
            return from_dict(data_class=TrackException, data=data)
        case "event", "WebSocketClosedEvent":
            return from_dict(data_class=Closed, data=data)
        case op, event_type:
            return UnknownEvent(op=str(op), guildId=str(data["guildId"]), type=event_type, data=data)
