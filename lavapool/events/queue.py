from __future__ import annotations

from typing import TYPE_CHECKING

from lavapool.events.base import LavaPoolEvent

if TYPE_CHECKING:
    from lavapool.players.player import Player
    from lavapool.players.tracks.obj import Track


class QueueEndEvent(LavaPoolEvent):
    """This event is dispatched when there are no more songs in the queue.

    Event can be listened to by adding a listener with the name `lavapool_queue_end_event`.

    Attributes
    ----------
    player: :class:`Player`
        The player that has no more songs in queue.
    previous: :class:`Track`
        The last track that was played.
    """

    __slots__ = ("player", "previous")

    def __init__(self, player: Player, previous: Track | None = None) -> None:
        self.player = player
        self.previous = previous
