from __future__ import annotations

from typing import TYPE_CHECKING

from lavapool.events.base import LavaPoolEvent

if TYPE_CHECKING:
    from lavapool.nodes.api.responses.websocket import PlayerUpdate
    from lavapool.players.player import Player
    from lavapool.players.utils import LoopMode


class PlayerCreatedEvent(LavaPoolEvent):
    """This event is dispatched when a new player is registered.

    Event can be listened to by adding a listener with the name `lavapool_player_created_event`.

    Attributes
    ----------
    player: :class:`Player`
        The player that was created.
    """

    __slots__ = ("player",)

    def __init__(self, player: Player) -> None:
        self.player = player


class PlayerDestroyedEvent(LavaPoolEvent):
    """This event is dispatched when a player is destroyed and removed from the registry.

    Event can be listened to by adding a listener with the name `lavapool_player_destroyed_event`.

    Attributes
    ----------
    player: :class:`Player`
        The player that was destroyed.
    """

    __slots__ = ("player",)

    def __init__(self, player: Player) -> None:
        self.player = player


class PlayerUpdateEvent(LavaPoolEvent):
    """This event is dispatched when the node reports the player state.

    Event can be listened to by adding a listener with the name `lavapool_player_update_event`.

    Attributes
    ----------
    player: :class:`Player`
        The player that was updated.
    position: :class:`int`
        The position of the current track in milliseconds.
    connected: :class:`bool`
        Whether the node is connected to the voice gateway.
    event: :class:`PlayerUpdate`
        The raw event object.
    """

    __slots__ = ("player", "position", "connected", "event")

    def __init__(self, player: Player, event_object: PlayerUpdate) -> None:
        self.player = player
        self.position = event_object.state.position
        self.connected = event_object.state.connected
        self.event = event_object


class PlayerPausedEvent(LavaPoolEvent):
    """This event is dispatched when a player is paused.

    Event can be listened to by adding a listener with the name `lavapool_player_paused_event`.
    """

    __slots__ = ("player",)

    def __init__(self, player: Player) -> None:
        self.player = player


class PlayerResumedEvent(LavaPoolEvent):
    """This event is dispatched when a player is resumed.

    Event can be listened to by adding a listener with the name `lavapool_player_resumed_event`.
    """

    __slots__ = ("player",)

    def __init__(self, player: Player) -> None:
        self.player = player


class PlayerVolumeChangedEvent(LavaPoolEvent):
    """This event is dispatched when the volume of a player changes.

    Event can be listened to by adding a listener with the name `lavapool_player_volume_changed_event`.

    Attributes
    ----------
    player: :class:`Player`
        The player whose volume changed.
    before: :class:`int`
        The volume before the change.
    after: :class:`int`
        The volume after the change.
    """

    __slots__ = ("player", "before", "after")

    def __init__(self, player: Player, before: int, after: int) -> None:
        self.player = player
        self.before = before
        self.after = after


class PlayerLoopModeChangedEvent(LavaPoolEvent):
    """This event is dispatched when the loop mode of a player changes.

    Event can be listened to by adding a listener with the name `lavapool_player_loop_mode_changed_event`.
    """

    __slots__ = ("player", "before", "after")

    def __init__(self, player: Player, before: LoopMode, after: LoopMode) -> None:
        self.player = player
        self.before = before
        self.after = after


class PlayerVoiceSessionUpdatedEvent(LavaPoolEvent):
    """This event is dispatched when a player forwards new voice credentials to its node.

    Event can be listened to by adding a listener with the name `lavapool_player_voice_session_updated_event`.

    Attributes
    ----------
    player: :class:`Player`
        The player that received the credentials.
    session_id: :class:`str`
        The voice session id of the bot user.
    endpoint: :class:`str`
        The voice server endpoint.
    """

    __slots__ = ("player", "session_id", "endpoint")

    def __init__(self, player: Player, session_id: str, endpoint: str | None) -> None:
        self.player = player
        self.session_id = session_id
        self.endpoint = endpoint
