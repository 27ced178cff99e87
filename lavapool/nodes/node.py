from __future__ import annotations

import asyncio
import typing
from typing import Any

import aiohttp
from dacite import Config, DaciteError, from_dict
from yarl import URL

from lavapool.compat import json
from lavapool.constants.config import CLIENT_NAME
from lavapool.constants.node import GOOD_RESPONSE_RANGE, NOT_DECODABLE_STATUS
from lavapool.events.base import LavaPoolEvent
from lavapool.events.node import NodeDestroyedEvent, NodeErrorEvent
from lavapool.exceptions.player import UnknownEventException
from lavapool.exceptions.request import HTTPException, UnauthorizedException
from lavapool.logging import getLogger
from lavapool.nodes.api.responses.rest_api import LoadResult
from lavapool.nodes.api.responses.track import Info
from lavapool.nodes.api.responses.track import Track as APITrack
from lavapool.nodes.api.responses.websocket import Stats as StatsMessage
from lavapool.nodes.api.responses.websocket import parse_player_message
from lavapool.nodes.config import NodeConfig
from lavapool.nodes.utils import Stats
from lavapool.nodes.websocket import NodeState, WebSocket
from lavapool.type_hints import JSON_DICT_TYPE

if typing.TYPE_CHECKING:
    from lavapool.client import Client
    from lavapool.nodes.manager import NodeManager
    from lavapool.players.player import Player


class Node:
    """Represents a Node connection with Lavalink.

    Note
    ----
    Nodes are **NOT** meant to be added manually, but rather with :func:`NodeManager.add_node`.
    """

    __slots__ = (
        "_manager",
        "_config",
        "_name",
        "_stats",
        "_ws",
        "_destroyed",
        "_logger",
    )

    def __init__(self, manager: NodeManager, config: NodeConfig) -> None:
        self._manager = manager
        self._config = config
        self._name = config.key
        self._logger = getLogger(f"LavaPool.Node-{self._name}")
        self._stats = Stats(self)
        self._destroyed = False
        self._ws = WebSocket(node=self, config=config)

    def __repr__(self) -> str:
        return f"<Node name={self._name!r} host={self.host}:{self.port} state={self.state.value}>"

    @property
    def name(self) -> str:
        """The name of the :class:`Node`, the host when no name was given"""
        return self._name

    @property
    def identifier(self) -> str:
        """The key the :class:`Node` is registered under"""
        return self._name

    @property
    def config(self) -> NodeConfig:
        return self._config

    @property
    def host(self) -> str:
        """The host of the :class:`Node`"""
        return self._config.host

    @property
    def port(self) -> int:
        """The port of the :class:`Node`"""
        return self._config.port

    @property
    def password(self) -> str:
        """The password of the :class:`Node`"""
        return self._config.password

    @property
    def secure(self) -> bool:
        """Whether the :class:`Node` uses TLS"""
        return self._config.secure

    @property
    def connection_protocol(self) -> str:
        return "https" if self.secure else "http"

    @property
    def socket_protocol(self) -> str:
        """The protocol used for the socket connection"""
        return "wss" if self.secure else "ws"

    @property
    def node_manager(self) -> NodeManager:
        """The :class:`NodeManager` this :class:`Node` belongs to"""
        return self._manager

    @property
    def client(self) -> Client:
        return self._manager.client

    @property
    def websocket(self) -> WebSocket:
        """The :class:`WebSocket` of the :class:`Node`"""
        return self._ws

    @property
    def state(self) -> NodeState:
        return self._ws.state

    @property
    def connected(self) -> bool:
        """Whether the :class:`Node` is connected to Lavalink"""
        return self._ws.connected

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def available(self) -> bool:
        """Whether the :class:`Node` can be picked for new players"""
        return not self._destroyed and self.connected

    @property
    def stats(self) -> Stats:
        """The last stats snapshot reported by the :class:`Node`"""
        return self._stats

    @property
    def players(self) -> list[Player]:
        """The players currently owned by this :class:`Node`"""
        return [p for p in self.client.player_manager.players.values() if p.node is self]

    @property
    def headers(self) -> dict[str, str]:
        """The headers sent when opening the websocket"""
        headers = {
            "Authorization": self.password,
            "User-Id": str(self.client.user_id),
            "Num-Shards": str(self.client.shards),
            "Client-Name": f"{CLIENT_NAME}/{self.client.lib_version}",
        }
        if self._config.resume_key:
            headers["Resume-Key"] = self._config.resume_key
        return headers

    @property
    def base_url(self) -> URL:
        """Returns the base URL of the target node."""
        return URL(f"{self.connection_protocol}://{self.host}:{self.port}")

    @property
    def base_ws_url(self) -> URL:
        """Returns the base WebSocket URL of the target node."""
        return URL(f"{self.socket_protocol}://{self.host}:{self.port}")

    def get_endpoint_websocket(self) -> URL:
        """Returns the WebSocket endpoint of the target node."""
        return self.base_ws_url

    def get_endpoint_loadtracks(self) -> URL:
        """Returns the loadtracks endpoint of the target node."""
        return self.base_url / "loadtracks"

    def get_endpoint_decodetrack(self) -> URL:
        """Returns the decodetrack endpoint of the target node."""
        return self.base_url / "decodetrack"

    def dispatch_event(self, event: LavaPoolEvent) -> None:
        """Dispatches the given event through the client the node belongs to."""
        self.client.dispatch_event(event)

    def dispatch_error(self, error: Exception) -> None:
        """Reports a transport level error through :class:`NodeErrorEvent`."""
        self.dispatch_event(NodeErrorEvent(self, error))

    async def connect(self) -> None:
        """|coro|
        Opens the websocket connection, see :meth:`WebSocket.connect`.
        """
        await self._ws.connect()

    async def disconnect(self) -> None:
        """|coro|
        Closes the websocket with a clean close code, no reconnect is scheduled.
        """
        await self._ws.close()

    async def send(self, **data: Any) -> None:
        """|coro|
        Sends the passed data to the node via the websocket connection.

        Parameters
        ----------
        data: class:`any`
            The dict to send to Lavalink.
        """
        await self._ws.send(**data)

    async def handle_message(self, raw: str | bytes | JSON_DICT_TYPE) -> None:
        """|coro|
        Handles a message received from the node websocket.

        ``stats`` messages replace the stats snapshot, guild scoped messages are routed to
        the player owning that guild on this node. Anything else is logged and dropped.
        """
        if isinstance(raw, (str, bytes, bytearray)):
            try:
                data = json.loads(raw)
            except ValueError:
                self._logger.warning("Dropping message that is not valid JSON: %r", raw)
                return
        else:
            data = raw
        if not isinstance(data, dict):
            self._logger.warning("Dropping message that is not a JSON object: %r", data)
            return

        if data.get("op") == "stats":
            try:
                self._stats = Stats(self, from_dict(data_class=StatsMessage, data=data, config=Config(cast=[float])))
            except DaciteError as e:
                self._logger.warning("Dropping malformed stats message: %s", e)
            return

        if (guild_id := data.get("guildId")) is None:
            self._logger.debug("Dropping unrouted message with op %s", data.get("op"))
            return
        player = self.client.player_manager.get(str(guild_id))
        if player is None or player.node is not self:
            self._logger.debug("Received %s for a guild without a player on this node: %s", data.get("op"), guild_id)
            return
        try:
            message = parse_player_message(data)
        except DaciteError as e:
            self._logger.warning("Dropping malformed %s message: %s", data.get("op"), e)
            return
        try:
            await player._handle_event(message)
        except UnknownEventException as e:
            self._logger.warning("%s - ignoring it", e)

    async def fetch_loadtracks(self, identifier: str) -> LoadResult:
        """|coro|
        Fetches the loadtracks response from the target node.

        Failures are returned as a ``LOAD_FAILED`` result rather than raised.

        Raises
        ------
        UnauthorizedException
            If the node rejected the password.
        """
        try:
            async with self.node_manager.session.get(
                self.get_endpoint_loadtracks(),
                headers={"Authorization": self.password, "Client-Name": f"{CLIENT_NAME}/{self.client.lib_version}"},
                params={"identifier": identifier},
            ) as res:
                if res.status in GOOD_RESPONSE_RANGE:
                    return LoadResult.from_node(await res.json(loads=json.loads))
                if res.status in [401, 403]:
                    raise UnauthorizedException(res.status, await res.text())
                self._logger.trace("Failed to load tracks for %s: %d", identifier, res.status)
                return LoadResult.load_failed(f"Node responded with HTTP {res.status}", severity="FAULT")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._logger.debug("Failed to load tracks for %s: %s", identifier, e)
            return LoadResult.load_failed(str(e), severity="FAULT")
        except DaciteError as e:
            self._logger.warning("Node returned a malformed load result for %s: %s", identifier, e)
            return LoadResult.load_failed(f"Malformed load result: {e}", severity="FAULT")

    async def fetch_decodetrack(self, encoded_track: str) -> APITrack | None:
        """|coro|
        Fetches the decodetrack response from the target node.

        Returns
        -------
        :class:`Track` | None
            The decoded track, ``None`` when the node could not decode it.

        Raises
        ------
        UnauthorizedException
            If the node rejected the password.
        HTTPException
            For any other unexpected response.
        """
        async with self.node_manager.session.get(
            self.get_endpoint_decodetrack(),
            headers={"Authorization": self.password, "Client-Name": f"{CLIENT_NAME}/{self.client.lib_version}"},
            params={"track": encoded_track},
        ) as res:
            if res.status in GOOD_RESPONSE_RANGE:
                info = await res.json(loads=json.loads)
                # Nodes answer with either the bare info object or a full track
                if "info" in info:
                    return from_dict(data_class=APITrack, data=info)
                return APITrack(info=from_dict(data_class=Info, data=info), encoded=encoded_track)
            if res.status == NOT_DECODABLE_STATUS:
                self._logger.trace("Track is not decodable: %s", encoded_track)
                return None
            if res.status in [401, 403]:
                raise UnauthorizedException(res.status, await res.text())
            raise HTTPException(res.status, await res.text())

    async def destroy(self) -> None:
        """|coro|
        Destroys the node.

        Every player owned by the node is destroyed first, then the websocket is
        closed with code 1000 and the node is removed from the pool.
        Calling this more than once does nothing.
        """
        if self._destroyed:
            return
        self._destroyed = True
        self._logger.info("Destroying node")
        try:
            for player in self.players:
                try:
                    await player.destroy()
                except Exception:  # noqa
                    self._logger.exception("Failed to destroy player %s", player.guild_id)
        finally:
            try:
                await self._ws.destroy()
            finally:
                self._manager.unregister(self)
        self.dispatch_event(NodeDestroyedEvent(self))
