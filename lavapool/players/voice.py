from __future__ import annotations

import dataclasses

from lavapool.type_hints import JSON_DICT_TYPE


@dataclasses.dataclass(repr=True, frozen=True, kw_only=True, slots=True)
class VoiceServer:
    guild_id: str
    token: str
    endpoint: str | None = None

    @classmethod
    def from_payload(cls, data: JSON_DICT_TYPE) -> VoiceServer:
        """Builds the voice server half from a ``VOICE_SERVER_UPDATE`` payload."""
        return cls(guild_id=str(data["guild_id"]), token=str(data["token"]), endpoint=data.get("endpoint"))

    def to_event(self) -> JSON_DICT_TYPE:
        """The ``event`` object of a ``voiceUpdate`` op."""
        return {"token": self.token, "guild_id": self.guild_id, "endpoint": self.endpoint}


@dataclasses.dataclass(repr=True, frozen=True, kw_only=True, slots=True)
class VoiceState:
    guild_id: str
    user_id: str
    session_id: str
    channel_id: str | None = None

    @classmethod
    def from_payload(cls, data: JSON_DICT_TYPE) -> VoiceState:
        """Builds the voice state half from a ``VOICE_STATE_UPDATE`` payload."""
        channel_id = data.get("channel_id")
        return cls(
            guild_id=str(data["guild_id"]),
            user_id=str(data["user_id"]),
            session_id=str(data["session_id"]),
            channel_id=str(channel_id) if channel_id is not None else None,
        )


class VoiceStateTracker:
    """Buffers both halves of a voice credential until they can be paired.

    The halves arrive independently and in any order; a pair is only complete
    once both are present and the state holds a channel.
    """

    __slots__ = ("_servers", "_states")

    def __init__(self) -> None:
        self._servers: dict[str, VoiceServer] = {}
        self._states: dict[str, VoiceState] = {}

    def __contains__(self, guild_id: str) -> bool:
        return guild_id in self._servers or guild_id in self._states

    def get_server(self, guild_id: str) -> VoiceServer | None:
        return self._servers.get(guild_id)

    def get_state(self, guild_id: str) -> VoiceState | None:
        return self._states.get(guild_id)

    def store_server(self, server: VoiceServer) -> None:
        self._servers[server.guild_id] = server

    def store_state(self, state: VoiceState) -> None:
        self._states[state.guild_id] = state

    def clear(self, guild_id: str) -> None:
        """Forgets both halves for ``guild_id``"""
        self._servers.pop(guild_id, None)
        self._states.pop(guild_id, None)

    def pair(self, guild_id: str) -> tuple[VoiceState, VoiceServer] | None:
        """Returns the complete credential pair for ``guild_id``, ``None`` while a half is missing"""
        state = self._states.get(guild_id)
        server = self._servers.get(guild_id)
        if state is None or server is None or state.channel_id is None:
            return None
        return state, server
