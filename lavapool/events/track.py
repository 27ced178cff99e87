from __future__ import annotations

from typing import TYPE_CHECKING

from lavapool.events.base import LavaPoolEvent

if TYPE_CHECKING:
    from lavapool.nodes.api.responses.websocket import TrackEnd, TrackException, TrackStart, TrackStuck
    from lavapool.nodes.node import Node
    from lavapool.players.player import Player
    from lavapool.players.tracks.obj import Track


class TrackStartEvent(LavaPoolEvent):
    """This event is dispatched when the player starts to play a track.

    Event can be listened to by adding a listener with the name `lavapool_track_start_event`.

    Attributes
    ----------
    player: :class:`Player`
        The player that started to play a track.
    track: :class:`Track`
        The track that started playing.
    node: :class:`Node`
        The node that dispatched the event.
    event: :class:`TrackStart`
        The raw event object.
    """

    __slots__ = ("player", "track", "node", "event")

    def __init__(self, player: Player, track: Track | None, node: Node, event_object: TrackStart) -> None:
        self.player = player
        self.track = track
        self.node = node
        self.event = event_object


class TrackEndEvent(LavaPoolEvent):
    """This event is dispatched when the player finished playing a track.

    Event can be listened to by adding a listener with the name `lavapool_track_end_event`.

    Attributes
    ----------
    player: :class:`Player`
        The player that finished playing a track.
    track: :class:`Track`
        The track that finished playing.
    reason: :class:`str`
        The reason why the track stopped playing.
    node: :class:`Node`
        The node that dispatched the event.
    event: :class:`TrackEnd`
        The raw event object.
    """

    __slots__ = ("player", "track", "reason", "node", "event")

    def __init__(self, player: Player, track: Track | None, node: Node, event_object: TrackEnd) -> None:
        self.player = player
        self.track = track
        self.reason = event_object.reason
        self.node = node
        self.event = event_object


class TrackStuckEvent(LavaPoolEvent):
    """This event is dispatched when the currently playing track is stuck.
    This normally has something to do with the stream you are playing
    and not Lavalink itself.

    Event can be listened to by adding a listener with the name `lavapool_track_stuck_event`.

    Attributes
    ----------
    player: :class:`Player`
        The player that is stuck.
    track: :class:`Track`
        The track that is stuck.
    threshold: :class:`int`
        The threshold in milliseconds.
    node: :class:`Node`
        The node that dispatched the event.
    event: :class:`TrackStuck`
        The raw event object.
    """

    __slots__ = ("player", "track", "threshold", "node", "event")

    def __init__(self, player: Player, track: Track | None, node: Node, event_object: TrackStuck) -> None:
        self.player = player
        self.track = track
        self.threshold = event_object.thresholdMs
        self.node = node
        self.event = event_object


class TrackExceptionEvent(LavaPoolEvent):
    """This event is dispatched when an exception occurs while playing a track.

    Event can be listened to by adding a listener with the name `lavapool_track_exception_event`.

    Attributes
    ----------
    player: :class:`Player`
        The player that encountered the exception.
    track: :class:`Track`
        The track that encountered the exception.
    exception: :class:`str`
        The exception message reported by the node.
    node: :class:`Node`
        The node that dispatched the event.
    event: :class:`TrackException`
        The raw event object.
    """

    __slots__ = ("player", "track", "exception", "node", "event")

    def __init__(self, player: Player, track: Track | None, node: Node, event_object: TrackException) -> None:
        self.player = player
        self.track = track
        self.exception = event_object.message
        self.node = node
        self.event = event_object


class TrackSkippedEvent(LavaPoolEvent):
    """This event is dispatched when a track is skipped.

    Event can be listened to by adding a listener with the name `lavapool_track_skipped_event`.

    Attributes
    ----------
    player: :class:`Player`
        The player that skipped the track.
    track: :class:`Track`
        The track that was playing when the skip was requested.
    amount: :class:`int`
        How many tracks were skipped, the playing one included.
    """

    __slots__ = ("player", "track", "amount")

    def __init__(self, player: Player, track: Track | None, amount: int) -> None:
        self.player = player
        self.track = track
        self.amount = amount


class TrackSeekEvent(LavaPoolEvent):
    """This event is dispatched when the player is moved to another position in the current track.

    Event can be listened to by adding a listener with the name `lavapool_track_seek_event`.

    Attributes
    ----------
    player: :class:`Player`
        The player that was moved.
    track: :class:`Track`
        The track that was seeked.
    before: :class:`float`
        The position before the seek in milliseconds.
    after: :class:`float`
        The position after the seek in milliseconds.
    """

    __slots__ = ("player", "track", "before", "after")

    def __init__(self, player: Player, track: Track | None, before: float, after: float) -> None:
        self.player = player
        self.track = track
        self.before = before
        self.after = after


class TrackAutoPlayEvent(LavaPoolEvent):
    """This event is dispatched when the autoplay policy queued a track after the queue ran dry.

    Event can be listened to by adding a listener with the name `lavapool_track_auto_play_event`.

    Attributes
    ----------
    player: :class:`Player`
        The player that started auto playing.
    track: :class:`Track`
        The track picked by the policy.
    """

    __slots__ = ("player", "track")

    def __init__(self, player: Player, track: Track) -> None:
        self.player = player
        self.track = track
