from __future__ import annotations

import inspect
from collections.abc import Iterable
from typing import TYPE_CHECKING

from packaging.version import Version

from lavapool import VERSION
from lavapool.constants.config import DEFAULT_SEARCH_SOURCE
from lavapool.constants.node import BEST_NODE_KEY, VOICE_SERVER_UPDATE, VOICE_STATE_UPDATE
from lavapool.constants.regex import BASIC_URL_REGEX
from lavapool.events.base import LavaPoolEvent
from lavapool.events.manager import DispatchManager, Listener
from lavapool.exceptions.client import ConfigurationException, InvalidArgumentsException
from lavapool.extension.catalogs.base import CatalogResolver
from lavapool.extension.catalogs.deezer import DeezerResolver
from lavapool.logging import getLogger
from lavapool.nodes.api.responses.rest_api import LoadResult
from lavapool.nodes.api.responses.track import Track as APITrack
from lavapool.nodes.config import NodeConfig
from lavapool.nodes.manager import NodeManager
from lavapool.players.manager import PlayerController
from lavapool.players.player import Player
from lavapool.players.voice import VoiceServer, VoiceState, VoiceStateTracker
from lavapool.type_hints import JSON_DICT_TYPE, GatewaySender

if TYPE_CHECKING:
    from lavapool.nodes.node import Node
    from lavapool.players.autoplay import AutoplayPolicy

LOGGER = getLogger("LavaPool.Client")


class Client:
    """
    Represents a Lavalink client used to manage nodes and connections.

    Parameters
    ----------
    user_id: :class:`str`
        The id of the bot user, voice state updates of other users are ignored.
    send_gateway: Callable[[str, dict], Awaitable[None] | None]
        Called with ``(guild_id, payload)`` to send a voice state update through the host gateway.
        May be a plain function or a coroutine function.
    nodes: list[:class:`dict` | :class:`NodeConfig`]
        The nodes registered by :meth:`initialize`.
    default_search_source: Optional[:class:`str`]
        The search prefix used for plain text queries. Defaults to ``ytsearch``.
    resolvers: Optional[list[:class:`CatalogResolver`]]
        External catalog resolvers, checked in order. Defaults to a :class:`DeezerResolver`.
    shards: :class:`int`
        The number of gateway shards of the bot. Defaults to `1`.
    player: Optional[:class:`Player`]
        The class that should be used for the player. Defaults to ``Player``.

    Raises
    ------
    ConfigurationException
        If one of the options is missing or invalid.
    """

    __slots__ = (
        "_user_id",
        "_send_gateway",
        "_node_configs",
        "_default_search_source",
        "_resolvers",
        "_shards",
        "_node_manager",
        "_player_manager",
        "_dispatch_manager",
        "_voice_tracker",
        "_initialized",
    )

    def __init__(
        self,
        *,
        user_id: str | int,
        send_gateway: GatewaySender,
        nodes: Iterable[JSON_DICT_TYPE | NodeConfig] = (),
        default_search_source: str | None = None,
        resolvers: Iterable[CatalogResolver] | None = None,
        shards: int = 1,
        player: type[Player] = Player,
    ) -> None:
        if isinstance(user_id, bool) or not isinstance(user_id, (str, int)) or not str(user_id):
            raise ConfigurationException("A user ID must be provided")
        if not callable(send_gateway):
            raise ConfigurationException("send_gateway must be a callable")
        if isinstance(shards, bool) or not isinstance(shards, int) or shards < 1:
            raise ConfigurationException(f"shards must be a positive integer, got {shards!r}")
        if default_search_source is not None and not (isinstance(default_search_source, str) and default_search_source):
            raise ConfigurationException("default_search_source must be a non-empty string")
        resolvers = [DeezerResolver()] if resolvers is None else list(resolvers)
        if not all(isinstance(r, CatalogResolver) for r in resolvers):
            raise ConfigurationException("Resolvers must be CatalogResolver instances")

        self._user_id = str(user_id)
        self._send_gateway = send_gateway
        self._node_configs = [NodeConfig.from_dict(n) for n in nodes]
        self._default_search_source = default_search_source or DEFAULT_SEARCH_SOURCE
        self._resolvers = resolvers
        self._shards = shards
        self._initialized = False

        self._dispatch_manager = DispatchManager(self)
        self._node_manager = NodeManager(self)
        self._player_manager = PlayerController(self, player)
        self._voice_tracker = VoiceStateTracker()

    def __repr__(self) -> str:
        return f"<Client user_id={self._user_id} nodes={len(self._node_manager)} players={len(self._player_manager)}>"

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def lib_version(self) -> Version:
        return VERSION

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def shards(self) -> int:
        return self._shards

    @property
    def default_search_source(self) -> str:
        return self._default_search_source

    @property
    def resolvers(self) -> list[CatalogResolver]:
        """The catalog resolvers, in the order URLs are checked against them"""
        return list(self._resolvers)

    @property
    def dispatch_manager(self) -> DispatchManager:
        return self._dispatch_manager

    @property
    def node_manager(self) -> NodeManager:
        return self._node_manager

    @property
    def player_manager(self) -> PlayerController:
        return self._player_manager

    @property
    def voice_tracker(self) -> VoiceStateTracker:
        return self._voice_tracker

    async def initialize(self) -> None:
        """|coro|
        Registers the configured nodes, calling it again does nothing.
        """
        if self._initialized:
            return
        self._initialized = True
        for config in self._node_configs:
            await self._node_manager.add_node(config)
        LOGGER.info("Client initialized with %s node(s)", len(self._node_configs))

    async def add_node(self, config: JSON_DICT_TYPE | NodeConfig) -> Node:
        """|coro|
        Registers an additional node, see :meth:`NodeManager.add_node`.
        """
        return await self._node_manager.add_node(config)

    async def send_gateway_payload(self, guild_id: str, payload: JSON_DICT_TYPE) -> None:
        """|coro|
        Hands a gateway payload to the host.
        """
        LOGGER.trace("Sending gateway payload for %s: %s", guild_id, payload)
        result = self._send_gateway(guild_id, payload)
        if inspect.isawaitable(result):
            await result

    async def create_player(
        self,
        guild_id: str,
        voice_channel_id: str,
        text_channel_id: str | None = None,
        *,
        node: Node | None = None,
        node_key: str = BEST_NODE_KEY,
        self_deaf: bool = False,
        self_mute: bool = False,
        autoplay: AutoplayPolicy | None = None,
    ) -> Player:
        """|coro|
        Returns the player of ``guild_id``, creating it on the least-loaded node when needed.

        See :meth:`PlayerController.create`.
        """
        return await self._player_manager.create(
            guild_id,
            voice_channel_id,
            text_channel_id,
            node=node,
            node_key=node_key,
            self_deaf=self_deaf,
            self_mute=self_mute,
            autoplay=autoplay,
        )

    def get(self, guild_id: str) -> Player | None:
        return self._player_manager.get(guild_id)

    async def remove_connection(self, guild_id: str) -> None:
        """|coro|
        Destroys the player of ``guild_id`` if there is one.
        """
        if (player := self._player_manager.get(guild_id)) is not None:
            await player.destroy()

    def get_resolver(self, name: str) -> CatalogResolver | None:
        return next((r for r in self._resolvers if r.name == name), None)

    async def resolve(self, query: str, source: str | None = None) -> LoadResult:
        """|coro|
        Loads the tracks for ``query``.

        URLs are handed to the first catalog resolver that recognises them, other URLs are
        loaded on the least-loaded node. Text queries are searched with the resolver named by
        ``source``, or on the least-loaded node with the ``source`` (or default) search prefix.

        Parameters
        ----------
        query: :class:`str`
            A URL or a search query.
        source: Optional[:class:`str`]
            A resolver name or a node search prefix such as ``scsearch``.

        Returns
        -------
        :class:`LoadResult`
            Tracks coming from a catalog resolver are unresolved.

        Raises
        ------
        InvalidArgumentsException
            If ``query`` is empty.
        NoNodeAvailableException
            If the query has to be loaded on a node and none is connected.
        """
        if not isinstance(query, str) or not query.strip():
            raise InvalidArgumentsException("Query must be a non-empty string")
        query = query.strip()
        if BASIC_URL_REGEX.match(query):
            for resolver in self._resolvers:
                if resolver.check(query):
                    LOGGER.trace("Resolving %s with %r", query, resolver)
                    return await resolver.resolve(query)
            return await self._node_manager.find_best_node().fetch_loadtracks(query)
        if source is not None and (resolver := self.get_resolver(source)) is not None:
            return await resolver.search(query)
        node = self._node_manager.find_best_node()
        return await node.fetch_loadtracks(f"{source or self._default_search_source}:{query}")

    async def decode_track(self, encoded_track: str) -> APITrack | None:
        """|coro|
        Decodes a base64-encoded track on the least-loaded node.

        Returns
        -------
        :class:`Track` | None
            ``None`` when the node could not decode the track.

        Raises
        ------
        NoNodeAvailableException
            If no node is connected.
        """
        return await self._node_manager.find_best_node().fetch_decodetrack(encoded_track)

    async def packet_update(self, packet: JSON_DICT_TYPE) -> None:
        """|coro|
        Feeds a raw gateway packet to the client.

        Only voice packets for guilds that have a player are processed.
        """
        if packet.get("t") not in (VOICE_STATE_UPDATE, VOICE_SERVER_UPDATE):
            return
        data = packet.get("d") or {}
        if data.get("guild_id") is None or self._player_manager.get(str(data["guild_id"])) is None:
            return
        if packet["t"] == VOICE_SERVER_UPDATE:
            await self.on_voice_server_update(data)
        else:
            await self.on_voice_state_update(data)

    async def on_voice_server_update(self, data: JSON_DICT_TYPE) -> bool:
        """|coro|
        Stores the voice server half and forwards the credentials once both halves are present.

        Returns
        -------
        bool
            Whether the credentials were forwarded to a player.
        """
        server = VoiceServer.from_payload(data)
        self._voice_tracker.store_server(server)
        return await self._forward_voice_session(server.guild_id)

    async def on_voice_state_update(self, data: JSON_DICT_TYPE) -> bool:
        """|coro|
        Stores the voice state half of the bot user.

        A state without a channel means the bot left voice, both halves are then dropped.

        Returns
        -------
        bool
            Whether the credentials were forwarded to a player.
        """
        if str(data.get("user_id")) != self._user_id:
            return False
        state = VoiceState.from_payload(data)
        player = self._player_manager.get(state.guild_id)
        if player is not None:
            # noinspection PyProtectedMember
            player._on_voice_channel_update(state.channel_id)
        if state.channel_id is None:
            self._voice_tracker.clear(state.guild_id)
            return False
        self._voice_tracker.store_state(state)
        return await self._forward_voice_session(state.guild_id)

    async def _forward_voice_session(self, guild_id: str) -> bool:
        if (pair := self._voice_tracker.pair(guild_id)) is None:
            return False
        if (player := self._player_manager.get(guild_id)) is None:
            return False
        state, server = pair
        await player.update_session({"sessionId": state.session_id, "event": server.to_event()})
        return True

    def add_listener(self, event: type[LavaPoolEvent] | str, callback: Listener) -> None:
        """Registers ``callback`` for ``event``, see :class:`DispatchManager`."""
        self._dispatch_manager.add_listener(event, callback)

    def remove_listener(self, event: type[LavaPoolEvent] | str, callback: Listener) -> None:
        self._dispatch_manager.remove_listener(event, callback)

    def dispatch_event(self, event: LavaPoolEvent) -> None:
        """Dispatches the given event to all registered listeners."""
        self._dispatch_manager.dispatch(event)

    async def close(self) -> None:
        """|coro|
        Destroys every player and node and closes all HTTP sessions.
        """
        LOGGER.info("Shutting down")
        await self._player_manager.shutdown()
        await self._node_manager.close()
        for resolver in self._resolvers:
            await resolver.close()
        self._initialized = False
