from __future__ import annotations

from typing import TYPE_CHECKING

from lavapool.events.base import LavaPoolEvent

if TYPE_CHECKING:
    from lavapool.nodes.api.responses.websocket import Closed
    from lavapool.nodes.node import Node
    from lavapool.players.player import Player


class NodeDisconnectedEvent(LavaPoolEvent):
    """This event is dispatched when a node disconnects and becomes unavailable.

    Event can be listened to by adding a listener with the name `lavapool_node_disconnected_event`.

    Attributes
    ----------
    node: :class:`Node`
        The node that disconnected.
    code: :class:`int`
        The close code, `None` when the connection attempt itself failed.
    reason: :class:`str`
        The close reason.

    """

    __slots__ = ("node", "code", "reason")

    def __init__(self, node: Node, code: int | None, reason: str | None) -> None:
        self.node = node
        self.code = code
        self.reason = reason


class NodeConnectedEvent(LavaPoolEvent):
    """This event is dispatched when a connection to a node is established.

    Event can be listened to by adding a listener with the name `lavapool_node_connected_event`.

    Attributes
    ----------
    node: :class:`Node`
        The node that connected.
    reconnected: :class:`bool`
        Whether this connection follows a previous disconnect.
    """

    __slots__ = ("node", "reconnected")

    def __init__(self, node: Node, reconnected: bool = False) -> None:
        self.node = node
        self.reconnected = reconnected


class NodeReconnectingEvent(LavaPoolEvent):
    """This event is dispatched right before a reconnect attempt is made.

    Event can be listened to by adding a listener with the name `lavapool_node_reconnecting_event`.

    Attributes
    ----------
    node: :class:`Node`
        The node that is reconnecting.
    attempt: :class:`int`
        The attempt number, starting at 1.
    """

    __slots__ = ("node", "attempt")

    def __init__(self, node: Node, attempt: int) -> None:
        self.node = node
        self.attempt = attempt


class NodeErrorEvent(LavaPoolEvent):
    """This event is dispatched when a node transport fails.

    When ``error.fatal`` is set the node gave up reconnecting and stays disconnected
    until :meth:`Node.connect` is called again.

    Event can be listened to by adding a listener with the name `lavapool_node_error_event`.

    Attributes
    ----------
    node: :class:`Node`
        The node that errored.
    error: :class:`Exception`
        The error raised by the transport.
    """

    __slots__ = ("node", "error")

    def __init__(self, node: Node, error: Exception) -> None:
        self.node = node
        self.error = error


class NodeDestroyedEvent(LavaPoolEvent):
    """This event is dispatched once a node has been destroyed and removed from the pool.

    Event can be listened to by adding a listener with the name `lavapool_node_destroyed_event`.

    Attributes
    ----------
    node: :class:`Node`
        The node that was destroyed.
    """

    __slots__ = ("node",)

    def __init__(self, node: Node) -> None:
        self.node = node


class NodeChangedEvent(LavaPoolEvent):
    """This event is dispatched when a player changes to another node.

    Event can be listened to by adding a listener with the name `lavapool_node_changed_event`.

    Attributes
    ----------
    player: :class:`Player`
        The player that changed nodes.
    old_node: :class:`Node`
        The node the player was on before the change.
    new_node: :class:`Node`
        The node the player is on after the change.
    """

    __slots__ = ("player", "old_node", "new_node")

    def __init__(self, player: Player, old_node: Node, new_node: Node) -> None:
        self.player = player
        self.old_node = old_node
        self.new_node = new_node


class WebSocketClosedEvent(LavaPoolEvent):
    """This event is dispatched when the voice websocket between the node and Discord is closed.

    Event can be listened to by adding a listener with the name `lavapool_web_socket_closed_event`.

    Attributes
    ----------
    player: :class:`Player`
        The player whose voice connection was closed.
    node: :class:`Node`
        The node that dispatched the event.
    code: :class:`int`
        The close code.
    reason: :class:`str`
        The close reason.
    by_remote: :class:`bool`
        Whether the websocket was closed remotely.
    event: :class:`Closed`
        The raw event object.
    """

    __slots__ = ("player", "node", "code", "reason", "by_remote", "event")

    def __init__(self, player: Player, node: Node, event_object: Closed) -> None:
        self.player = player
        self.node = node
        self.code = event_object.code
        self.reason = event_object.reason
        self.by_remote = event_object.byRemote
        self.event = event_object
