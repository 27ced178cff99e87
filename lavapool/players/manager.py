from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING

from lavapool.constants.node import BEST_NODE_KEY
from lavapool.events.player import PlayerCreatedEvent
from lavapool.exceptions.client import NotFoundException
from lavapool.logging import getLogger
from lavapool.players.player import Player
from lavapool.players.utils import validate_snowflake

if TYPE_CHECKING:
    from lavapool.client import Client
    from lavapool.nodes.node import Node
    from lavapool.players.autoplay import AutoplayPolicy

LOGGER = getLogger("LavaPool.PlayerController")


class PlayerController:
    """Represents the player manager that contains all the players.

    len(x):
        Returns the total amount of cached players.
    iter(x):
        Returns an iterator of all the players cached.

    Attributes
    ----------
    default_player_class: :class:`Player`
        The player class new players are created with.
    client: :class:`Client`
        The client that the player manager is initialized with.
    """

    __slots__ = ("_players", "default_player_class", "client")

    def __init__(self, client: Client, player: type[Player] = Player):
        if not issubclass(player, Player):
            raise ValueError("Player must implement Player")

        self.client = client
        self._players: dict[str, Player] = {}
        self.default_player_class = player

    def __len__(self):
        return len(self._players)

    def __iter__(self) -> Iterator[tuple[str, Player]]:
        """Returns an iterator that yields a tuple of (guild_id, player)"""
        yield from self.players.items()

    def __contains__(self, guild_id: str) -> bool:
        return guild_id in self._players

    @property
    def players(self) -> dict[str, Player]:
        """Returns a dictionary of all players in manager."""
        return self._players

    @property
    def connected_players(self) -> list[Player]:
        """Returns a list of all the connected players"""
        return [p for p in self.players.values() if p.connected]

    @property
    def playing_players(self) -> list[Player]:
        """Returns a list of all the playing players"""
        return [p for p in self.players.values() if p.is_active]

    @property
    def paused_players(self) -> list[Player]:
        """Returns a list of all the paused players"""
        return [p for p in self.players.values() if p.paused]

    def find_all(self, predicate: Callable[[Player], bool] | None = None) -> list[Player]:
        """Returns a list of players that match the given predicate.

        Parameters
        ----------
        predicate: Optional[:class:`function`]
            A predicate to return specific players. Defaults to `None`.
        Returns
        -------
        List[:class:`Player`]
        """
        return [p for p in self.players.values() if bool(predicate(p))] if predicate else list(self.players.values())

    def get(self, guild_id: str) -> Player | None:
        """
        Gets a player from cache.
        Parameters
        ----------
        guild_id: str
            The guild_id associated with the player to get.
        Returns
        -------
        Optional[:class:`Player`]
        """
        return self.players.get(guild_id)

    def remove(self, guild_id: str) -> Player | None:
        """Removes a player from the internal cache without destroying it.

        Parameters
        ----------
        guild_id: :class:`str`
            The player that will be removed.
        """
        return self.players.pop(guild_id, None)

    async def create(
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
        """
        Creates a player if one doesn't exist with the given information.

        If node is provided, a player will be created on that node, otherwise the node
        is picked with ``node_key`` (the least-loaded node by default).
        The voice join request is sent before the player is returned.

        Parameters
        ----------
        guild_id: :class:`str`
            The guild the player belongs to.
        voice_channel_id: :class:`str`
            The voice channel to connect to.
        text_channel_id: :class:`str`
            The channel notifications go to. Defaults to `None`.
        node: :class:`Node`
            The node to put the player on. Defaults to `None`.
        node_key: :class:`str`
            The key of the node to use when ``node`` is not given. Defaults to ``"best"``.
        self_deaf: :class:`bool`
            Whether the player should deafen itself. Defaults to `False`.
        self_mute: :class:`bool`
            Whether the player should mute itself. Defaults to `False`.
        autoplay: :class:`AutoplayPolicy`
            The policy consulted when the queue runs out. Defaults to `None`.

        Returns
        -------
        :class:`Player`

        Raises
        ------
        InvalidArgumentsException
            If one of the ids is not a non-empty string.
        NoNodeAvailableException
            If no node can take the player.
        """
        validate_snowflake(guild_id, "Guild ID")
        validate_snowflake(voice_channel_id, "Voice channel ID")
        if text_channel_id is not None:
            validate_snowflake(text_channel_id, "Text channel ID")

        if p := self.players.get(guild_id):
            if voice_channel_id != p.voice_channel_id:
                await p.set_voice_channel(voice_channel_id)
            return p

        best_node = node or await self.client.node_manager.select_node(node_key)
        player = self.default_player_class(
            client=self.client,
            node=best_node,
            guild_id=guild_id,
            voice_channel_id=voice_channel_id,
            text_channel_id=text_channel_id,
            self_deaf=self_deaf,
            self_mute=self_mute,
            autoplay=autoplay,
        )
        self.players[guild_id] = player
        try:
            await player.connect()
        except Exception:
            LOGGER.error("Failed to create player for %s", guild_id)
            LOGGER.debug("Error in create player for %s", guild_id, exc_info=True)
            self.players.pop(guild_id, None)
            raise
        # noinspection PyProtectedMember
        best_node._logger.debug("Successfully created player for %s", guild_id)
        self.client.dispatch_event(PlayerCreatedEvent(player))
        return player

    async def destroy(self, guild_id: str) -> None:
        """
        Destroys the player of ``guild_id``, leaving voice and removing it from the node.

        Raises
        ------
        NotFoundException
            If the guild has no player.
        """
        if (player := self.players.get(guild_id)) is None:
            raise NotFoundException(f"No player exists for guild {guild_id}")
        await player.destroy()

    async def shutdown(self) -> None:
        LOGGER.info("Shutting down all players")
        tasks = [asyncio.create_task(player.destroy()) for player in list(self.players.values())]
        for result in await asyncio.gather(*tasks, return_exceptions=True):
            if isinstance(result, Exception):
                LOGGER.error("Error while shutting down a player", exc_info=result)
