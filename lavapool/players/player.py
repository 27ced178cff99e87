from __future__ import annotations

import datetime
from typing import TYPE_CHECKING

from lavapool.constants.node import GATEWAY_VOICE_STATE_OP, VOICE_RENEGOTIATION_CODES
from lavapool.events.node import NodeChangedEvent, WebSocketClosedEvent
from lavapool.events.player import (
    PlayerDestroyedEvent,
    PlayerLoopModeChangedEvent,
    PlayerPausedEvent,
    PlayerResumedEvent,
    PlayerUpdateEvent,
    PlayerVoiceSessionUpdatedEvent,
    PlayerVolumeChangedEvent,
)
from lavapool.events.queue import QueueEndEvent
from lavapool.events.track import (
    TrackAutoPlayEvent,
    TrackEndEvent,
    TrackExceptionEvent,
    TrackSeekEvent,
    TrackSkippedEvent,
    TrackStartEvent,
    TrackStuckEvent,
)
from lavapool.exceptions.client import InvalidArgumentsException
from lavapool.exceptions.player import OutOfRangeException, UnknownEventException
from lavapool.helpers.time import get_now_utc
from lavapool.logging import getLogger
from lavapool.nodes.api.responses.websocket import (
    Closed,
    PlayerMessage,
    PlayerUpdate,
    TrackEnd,
    TrackException,
    TrackStart,
    TrackStuck,
)
from lavapool.players.utils import LoopMode, PlayerQueue, validate_non_negative_number, validate_snowflake
from lavapool.type_hints import JSON_DICT_TYPE

if TYPE_CHECKING:
    from lavapool.client import Client
    from lavapool.nodes.node import Node
    from lavapool.players.autoplay import AutoplayPolicy
    from lavapool.players.tracks.obj import Track


class Player:
    """The playback state of one guild.

    Commands are sent to the owning node without waiting for an acknowledgement,
    the node reports the outcome back through events handled by :meth:`_handle_event`.
    Every command validates its arguments before touching any state.
    """

    __slots__ = (
        "_client",
        "_node",
        "_guild_id",
        "_voice_channel_id",
        "_text_channel_id",
        "_self_deaf",
        "_self_mute",
        "_connected",
        "_playing",
        "_paused",
        "_position",
        "_position_synced",
        "_volume",
        "_loop",
        "_last_update",
        "_voice_state",
        "_destroyed",
        "_logger",
        "current",
        "previous",
        "queue",
        "autoplay",
        "connected_at",
    )

    def __init__(
        self,
        *,
        client: Client,
        node: Node,
        guild_id: str,
        voice_channel_id: str | None = None,
        text_channel_id: str | None = None,
        self_deaf: bool = False,
        self_mute: bool = False,
        autoplay: AutoplayPolicy | None = None,
    ) -> None:
        self._client = client
        self._node = node
        self._guild_id = validate_snowflake(guild_id, "Guild ID")
        self._voice_channel_id = voice_channel_id
        self._text_channel_id = text_channel_id
        self._self_deaf = self_deaf
        self._self_mute = self_mute
        self._logger = getLogger(f"LavaPool.Player-{guild_id}")

        self._connected = False
        self._playing = False
        self._paused = False
        self._position: float = 0
        self._position_synced = False
        self._volume: float = 100
        self._loop = LoopMode.DISABLED
        self._last_update: datetime.datetime | None = None
        self._voice_state: JSON_DICT_TYPE | None = None
        self._destroyed = False

        self.current: Track | None = None
        self.previous: Track | None = None
        self.queue = PlayerQueue()
        self.autoplay = autoplay
        self.connected_at = get_now_utc()

    def __repr__(self) -> str:
        return (
            f"<Player guild={self._guild_id} node={self._node.name!r} playing={self._playing} "
            f"paused={self._paused} queue={self.queue.size()}>"
        )

    @property
    def client(self) -> Client:
        return self._client

    @property
    def node(self) -> Node:
        """The node that currently owns this player"""
        return self._node

    @property
    def guild_id(self) -> str:
        return self._guild_id

    @property
    def voice_channel_id(self) -> str | None:
        return self._voice_channel_id

    @property
    def text_channel_id(self) -> str | None:
        return self._text_channel_id

    @property
    def connected(self) -> bool:
        """Whether the node reported its voice connection as established"""
        return self._connected

    @property
    def playing(self) -> bool:
        return self._playing

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def is_active(self) -> bool:
        return self._playing and not self._paused

    @property
    def position(self) -> float:
        """The position of the current track in milliseconds"""
        return self._position

    @property
    def position_synced(self) -> bool:
        """Whether :attr:`position` was reported by the node since the last play"""
        return self._position_synced

    @property
    def last_update(self) -> datetime.datetime | None:
        """When the node last reported the player state"""
        return self._last_update

    @property
    def volume(self) -> float:
        return self._volume

    @property
    def loop(self) -> LoopMode:
        return self._loop

    @property
    def voice_session(self) -> JSON_DICT_TYPE | None:
        """The last ``{sessionId, event}`` pair forwarded to the node"""
        return self._voice_state

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def _voice_payload(self, channel_id: str | None) -> JSON_DICT_TYPE:
        return {
            "op": GATEWAY_VOICE_STATE_OP,
            "d": {
                "guild_id": self._guild_id,
                "channel_id": channel_id,
                "self_mute": self._self_mute,
                "self_deaf": self._self_deaf,
            },
        }

    async def play(self, *, no_replace: bool = True, start_time: int = 0) -> Track | None:
        """|coro|
        Plays the track at the head of the queue.

        Unresolved tracks are looked up on the owning node first, tracks without a
        playable match are skipped.

        Parameters
        ----------
        no_replace: :class:`bool`
            Whether the node should ignore the request while a track is playing. Defaults to `True`.
        start_time: :class:`int`
            The position to start the track at, in milliseconds.

        Returns
        -------
        :class:`Track` | None
            The track that was sent to the node, ``None`` when there was nothing to play.
        """
        validate_non_negative_number(start_time, "Start time")
        while True:
            if self.queue.empty():
                self._logger.debug("Nothing to play, the queue is empty")
                return None
            track = self.queue.get_nowait()
            if track.is_resolved or await track.resolve(self._node, self._client.default_search_source):
                break
            self._logger.warning("Skipping %r, no playable version was found", track)

        self.current = track
        self._playing = True
        self._position = start_time
        self._position_synced = False
        payload = {"op": "play", "guildId": self._guild_id, "track": track.encoded, "noReplace": no_replace}
        if start_time:
            payload["startTime"] = int(start_time)
        await self._node.send(**payload)
        self._logger.debug("Started playing %r", track)
        return track

    async def pause(self, value: bool = True) -> None:
        """|coro|
        Pauses or resumes playback.

        Raises
        ------
        InvalidArgumentsException
            If ``value`` is not a boolean.
        """
        if not isinstance(value, bool):
            raise InvalidArgumentsException(f"Pause expects a boolean, got {type(value).__name__}")
        await self._node.send(op="pause", guildId=self._guild_id, pause=value)
        self._playing = not value
        self._paused = value
        self._client.dispatch_event(PlayerPausedEvent(self) if value else PlayerResumedEvent(self))

    async def seek(self, position: float) -> None:
        """|coro|
        Moves the current track to ``position`` milliseconds.

        Raises
        ------
        InvalidArgumentsException
            If ``position`` is not a finite non-negative number.
        """
        validate_non_negative_number(position, "Position")
        before = self._position
        self._position = position
        await self._node.send(op="seek", guildId=self._guild_id, position=int(position))
        self._client.dispatch_event(TrackSeekEvent(self, self.current, before, position))

    async def set_volume(self, volume: float) -> None:
        """|coro|
        Sets the player volume, 100 being the unaltered volume.

        Raises
        ------
        InvalidArgumentsException
            If ``volume`` is not a finite non-negative number.
        """
        validate_non_negative_number(volume, "Volume")
        before = self._volume
        self._volume = volume
        await self._node.send(op="volume", guildId=self._guild_id, volume=int(volume))
        self._client.dispatch_event(PlayerVolumeChangedEvent(self, before, volume))

    def set_loop_mode(self, mode: LoopMode | str) -> None:
        """Sets the loop mode, one of ``disabled``, ``track`` or ``queue``.

        Raises
        ------
        InvalidArgumentsException
            If ``mode`` is not a valid loop mode.
        """
        mode = LoopMode.parse(mode)
        before, self._loop = self._loop, mode
        if before is not mode:
            self._client.dispatch_event(PlayerLoopModeChangedEvent(self, before, mode))

    async def skip(self, amount: int = 1) -> None:
        """|coro|
        Skips the current track and ``amount - 1`` queued tracks.

        Playback advances when the node reports the end of the stopped track.

        Raises
        ------
        InvalidArgumentsException
            If ``amount`` is not a positive integer.
        OutOfRangeException
            If ``amount`` exceeds the queue length.
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 1:
            raise InvalidArgumentsException(f"Skip amount must be a positive integer, got {amount!r}")
        if amount > self.queue.size():
            raise OutOfRangeException(f"Can't skip {amount} tracks, the queue holds {self.queue.size()}")
        self.queue.drop(amount - 1)
        skipped = self.current
        await self.stop()
        self._client.dispatch_event(TrackSkippedEvent(self, skipped, amount))

    async def stop(self) -> None:
        """|coro|
        Stops the current track.
        """
        await self._node.send(op="stop", guildId=self._guild_id)

    async def set_text_channel(self, channel_id: str) -> None:
        """|coro|
        Sets the channel notifications for this player should go to.
        """
        self._text_channel_id = validate_snowflake(channel_id, "Text channel ID")

    async def set_voice_channel(self, channel_id: str) -> None:
        """|coro|
        Moves the player to another voice channel.
        """
        self._voice_channel_id = validate_snowflake(channel_id, "Voice channel ID")
        await self.connect()

    async def connect(self) -> None:
        """|coro|
        Asks the gateway to join the player's voice channel.

        Raises
        ------
        InvalidArgumentsException
            If the player has no voice channel.
        """
        if self._voice_channel_id is None:
            raise InvalidArgumentsException("The player has no voice channel to connect to")
        self.connected_at = get_now_utc()
        await self._client.send_gateway_payload(self._guild_id, self._voice_payload(self._voice_channel_id))

    async def reconnect(self) -> None:
        """|coro|
        Re-issues the voice join request, forcing the gateway to hand out fresh credentials.
        """
        if self._voice_channel_id is None:
            self._logger.debug("Not reconnecting, the player has no voice channel")
            return
        await self._client.send_gateway_payload(self._guild_id, self._voice_payload(self._voice_channel_id))

    async def disconnect(self) -> None:
        """|coro|
        Leaves the voice channel, pausing playback first.
        """
        if self._voice_channel_id is None:
            return
        if self.current is not None:
            await self.pause(True)
        self._connected = False
        self._voice_channel_id = None
        await self._client.send_gateway_payload(self._guild_id, self._voice_payload(None))

    async def destroy(self) -> None:
        """|coro|
        Leaves voice, tells the node to drop the player and unregisters it.

        Calling this more than once does nothing.
        """
        if self._destroyed:
            return
        self._destroyed = True
        try:
            await self.disconnect()
        finally:
            await self._node.send(op="destroy", guildId=self._guild_id)
            self._client.player_manager.remove(self._guild_id)
            self._client.voice_tracker.clear(self._guild_id)
            self._playing = False
            self.queue.clear()
        self._logger.debug("Player destroyed")
        self._client.dispatch_event(PlayerDestroyedEvent(self))

    async def update_session(self, voice: JSON_DICT_TYPE) -> None:
        """|coro|
        Stores the voice credentials and forwards them to the node.

        Parameters
        ----------
        voice: :class:`dict`
            ``{"sessionId": str, "event": {"token", "guild_id", "endpoint"}}``
        """
        self._voice_state = {"sessionId": voice["sessionId"], "event": voice["event"]}
        await self._node.send(op="voiceUpdate", guildId=self._guild_id, **self._voice_state)
        self._client.dispatch_event(
            PlayerVoiceSessionUpdatedEvent(self, voice["sessionId"], voice["event"].get("endpoint"))
        )

    def _on_voice_channel_update(self, channel_id: str | None) -> None:
        """Follows the bot's voice channel as reported by the gateway"""
        if channel_id != self._voice_channel_id:
            self._logger.debug("Voice channel changed from %s to %s", self._voice_channel_id, channel_id)
        self._voice_channel_id = channel_id
        if channel_id is None:
            self._connected = False

    async def restart(self) -> None:
        """|coro|
        Re-establishes playback on the owning node.

        The stored voice session is sent again and the current track is replayed
        from the last known position.
        """
        if self._voice_state is not None:
            await self._node.send(op="voiceUpdate", guildId=self._guild_id, **self._voice_state)
        if self.current is None or not self.current.is_resolved:
            return
        payload = {
            "op": "play",
            "guildId": self._guild_id,
            "track": self.current.encoded,
            "noReplace": False,
            "pause": self._paused,
        }
        if self._position:
            payload["startTime"] = int(self._position)
        await self._node.send(**payload)
        if self._volume != 100:
            await self._node.send(op="volume", guildId=self._guild_id, volume=int(self._volume))
        self._position_synced = False

    async def change_node(self, node: Node) -> None:
        """|coro|
        Moves the player to another node and resumes playback there.
        """
        if node is self._node:
            return
        old_node = self._node
        if old_node.connected:
            await old_node.send(op="destroy", guildId=self._guild_id)
        self._node = node
        await self.restart()
        self._logger.info("Moved from %s to %s", old_node.name, node.name)
        self._client.dispatch_event(NodeChangedEvent(self, old_node, node))

    async def _handle_event(self, event: PlayerMessage) -> None:
        """|coro|
        Applies a message received from the owning node.

        Raises
        ------
        UnknownEventException
            If the message is not one the player knows about.
        """
        match event:
            case PlayerUpdate():
                self._connected = event.state.connected
                self._position = event.state.position
                self._position_synced = True
                self._last_update = get_now_utc()
                self._client.dispatch_event(PlayerUpdateEvent(self, event))
            case TrackStart():
                self._playing = True
                self._paused = False
                self._client.dispatch_event(TrackStartEvent(self, self.current, self._node, event))
            case TrackEnd():
                await self._on_track_end(event)
            case TrackStuck():
                self._client.dispatch_event(TrackStuckEvent(self, self.current, self._node, event))
                await self.stop()
            case TrackException():
                self._client.dispatch_event(TrackExceptionEvent(self, self.current, self._node, event))
                await self.stop()
            case Closed():
                if event.code in VOICE_RENEGOTIATION_CODES:
                    self._logger.debug("Voice connection closed with %s, rejoining", event.code)
                    await self.reconnect()
                self._client.dispatch_event(WebSocketClosedEvent(self, self._node, event))
            case _:
                raise UnknownEventException(event)

    async def _on_track_end(self, event: TrackEnd) -> None:
        if event.replaced:
            self._client.dispatch_event(TrackEndEvent(self, None, self._node, event))
            return
        ended = self.current
        self.previous = ended
        self.current = None
        self._client.dispatch_event(TrackEndEvent(self, ended, self._node, event))

        if ended is not None and self._loop is LoopMode.TRACK:
            self.queue.put_front(ended)
        elif ended is not None and self._loop is LoopMode.QUEUE:
            self.queue.put(ended)
        if not self.queue.empty() and await self.play() is not None:
            return
        if self.autoplay is not None and await self._autoplay(ended):
            return
        self._playing = False
        self._client.dispatch_event(QueueEndEvent(self, ended))

    async def _autoplay(self, previous: Track | None) -> bool:
        try:
            track = await self.autoplay.next_track(self, previous)
        except Exception:  # noqa
            self._logger.exception("Autoplay policy failed")
            return False
        if track is None:
            return False
        self.queue.put(track)
        if await self.play() is None:
            return False
        self._client.dispatch_event(TrackAutoPlayEvent(self, track))
        return True
