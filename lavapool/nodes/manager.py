from __future__ import annotations

import asyncio
import contextlib
import operator
from typing import TYPE_CHECKING, Any

import aiohttp

from lavapool.compat import json
from lavapool.constants.config import REQUEST_TIMEOUT
from lavapool.constants.node import BEST_NODE_KEY
from lavapool.events.node import NodeConnectedEvent, NodeDisconnectedEvent
from lavapool.exceptions.client import NotFoundException
from lavapool.exceptions.node import NoNodeAvailableException
from lavapool.logging import getLogger
from lavapool.nodes.config import NodeConfig
from lavapool.nodes.node import Node
from lavapool.nodes.utils import sort_key_nodes

if TYPE_CHECKING:
    from lavapool.client import Client

LOGGER = getLogger("LavaPool.NodeManager")


class NodeManager:
    """Manages nodes and their connections to the client.

    Nodes are kept in registration order, which is also the tie-break order of
    least-loaded selection.
    """

    __slots__ = (
        "_client",
        "_session",
        "_nodes",
        "_connect_tasks",
    )

    def __init__(self, client: Client):
        self._client = client
        self._session: aiohttp.ClientSession | None = None
        self._nodes: dict[str, Node] = {}
        self._connect_tasks: set[asyncio.Task] = set()

    def __iter__(self):
        yield from self._nodes.values()

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, key: str) -> bool:
        return key in self._nodes

    @property
    def session(self) -> aiohttp.ClientSession:
        """Returns the aiohttp session used for REST calls"""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT), json_serialize=json.dumps
            )
        return self._session

    @property
    def client(self) -> Client:
        """Returns the client"""
        return self._client

    @property
    def nodes(self) -> list[Node]:
        """Returns a list of all nodes"""
        return list(self._nodes.values())

    @property
    def available_nodes(self) -> list[Node]:
        """Returns a list of available nodes"""
        return list(filter(operator.attrgetter("available"), self.nodes))

    @property
    def least_used_nodes(self) -> list[Node]:
        """Returns the available nodes sorted by load, registration order breaking ties"""
        return sorted(self.available_nodes, key=sort_key_nodes)

    def get_node(self, key: str) -> Node | None:
        """Returns the node registered under ``key`` if any"""
        return self._nodes.get(key)

    async def add_node(self, config: NodeConfig | dict[str, Any]) -> Node:
        """
        Adds a node to the pool and starts connecting to it.

        A node already registered under the same key is destroyed and replaced.
        The connection is attempted in the background; failures surface as
        :class:`NodeErrorEvent` and never propagate from this call.

        Parameters
        ----------
        config: :class:`NodeConfig` | :class:`dict`
            The node options, a registration mapping is converted with :meth:`NodeConfig.from_dict`.

        Returns
        -------
        :class:`Node`
            The node that was added.

        Raises
        ------
        ConfigurationException
            If the config is missing required options or holds invalid ones.
        """
        config = NodeConfig.from_dict(config)
        if (previous := self._nodes.get(config.key)) is not None:
            LOGGER.info("Replacing node %s", config.key)
            await previous.destroy()
        node = Node(manager=self, config=config)
        self._nodes[config.key] = node

        # noinspection PyProtectedMember
        node._logger.info("Successfully added to Node Manager")
        # noinspection PyProtectedMember
        node._logger.verbose("Successfully added to Node Manager -- %r", config)

        task = asyncio.create_task(node.connect())
        self._connect_tasks.add(task)
        task.add_done_callback(self._connect_done)
        return node

    def _connect_done(self, task: asyncio.Task) -> None:
        self._connect_tasks.discard(task)
        with contextlib.suppress(asyncio.CancelledError):
            if (exc := task.exception()) is not None:
                LOGGER.error("Error in node connect task", exc_info=exc)

    async def remove_node(self, key: str) -> None:
        """
        Destroys the node registered under ``key`` and removes it from the pool.

        Raises
        ------
        NotFoundException
            If no node is registered under ``key``.
        """
        if (node := self._nodes.get(key)) is None:
            raise NotFoundException(f"No node registered under {key!r}")
        await node.destroy()
        self.unregister(node)

    def unregister(self, node: Node) -> None:
        """Removes ``node`` from the pool without destroying it"""
        if self._nodes.get(node.identifier) is node:
            del self._nodes[node.identifier]
            LOGGER.debug("Node %s removed from the pool", node.identifier)

    def find_best_node(self) -> Node:
        """Finds the connected node with the lowest load.

        The load is ``(systemLoad / cores) * 100``, nodes without CPU stats count as ``0``.
        Ties are won by the node registered first.

        Raises
        ------
        NoNodeAvailableException
            If the pool is empty or no node is connected.
        """
        if not self._nodes:
            raise NoNodeAvailableException("No nodes have been registered")
        if not (available := self.available_nodes):
            raise NoNodeAvailableException("None of the registered nodes are connected")
        return min(available, key=sort_key_nodes)

    async def select_node(self, key: str = BEST_NODE_KEY) -> Node:
        """Returns the node to use for ``key``.

        ``"best"`` picks the least-loaded connected node. Any other key returns
        that node, reconnecting it first if it is not connected.

        Raises
        ------
        NotFoundException
            If ``key`` does not match a registered node.
        NoNodeAvailableException
            If no suitable node is connected.
        """
        if key == BEST_NODE_KEY:
            return self.find_best_node()
        if (node := self._nodes.get(key)) is None:
            raise NotFoundException(f"No node registered under {key!r}")
        if not node.connected:
            await node.connect()
        if not node.available:
            raise NoNodeAvailableException(f"Node {key!r} is not connected")
        return node

    async def node_connect(self, node: Node, reconnected: bool = False) -> None:
        """Called when a node connects"""
        LOGGER.info("Successfully established connection to %s", node.name)
        self._client.dispatch_event(NodeConnectedEvent(node, reconnected))

    async def node_disconnect(self, node: Node, code: int | None, reason: str | None) -> None:
        """Called when a node disconnects"""
        LOGGER.warning("Disconnected from node %s (%s, %s)", node.name, code, reason)
        self._client.dispatch_event(NodeDisconnectedEvent(node, code, reason))

    async def close(self) -> None:
        """Destroys every node and closes the REST session"""
        for task in list(self._connect_tasks):
            task.cancel()
        for node in self.nodes:
            await node.destroy()
        if self._session is not None and not self._session.closed:
            await self._session.close()
