from __future__ import annotations

import asyncio
import contextlib
import enum
import typing
from typing import Any

import aiohttp

from lavapool.compat import json
from lavapool.constants.config import REQUEST_TIMEOUT
from lavapool.constants.node import CLEAN_CLOSE_CODE
from lavapool.events.node import NodeReconnectingEvent
from lavapool.exceptions.node import TransportException
from lavapool.logging import getLogger

if typing.TYPE_CHECKING:
    from lavapool.nodes.config import NodeConfig
    from lavapool.nodes.node import Node


class NodeState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DESTROYED = "destroyed"


class WebSocket:
    """Represents the WebSocket connection with Lavalink.

    Every explicit :meth:`connect`, :meth:`close` or :meth:`destroy` advances the
    connection generation; a pending reconnect or listener bound to an older
    generation exits without touching the connection.
    """

    __slots__ = (
        "_node",
        "_config",
        "_session",
        "_ws",
        "_state",
        "_generation",
        "_attempts",
        "_has_connected",
        "_reconnect_task",
        "_listener_task",
        "_logger",
    )

    def __init__(self, *, node: Node, config: NodeConfig):
        self._node = node
        self._config = config
        self._logger = getLogger(f"LavaPool.WebSocket-{node.name}")

        self._session: aiohttp.ClientSession | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._state = NodeState.DISCONNECTED
        self._generation = 0
        self._attempts = 0
        self._has_connected = False
        self._reconnect_task: asyncio.Task | None = None
        self._listener_task: asyncio.Task | None = None

    @property
    def node(self) -> Node:
        """Returns the :class:`Node` instance"""
        return self._node

    @property
    def state(self) -> NodeState:
        """Returns the current connection state"""
        return self._state

    @property
    def connected(self) -> bool:
        """Returns whether the websocket is connected to Lavalink"""
        return self._state is NodeState.CONNECTED and self._ws is not None and not self._ws.closed

    @property
    def destroyed(self) -> bool:
        return self._state is NodeState.DESTROYED

    @property
    def reconnect_attempts(self) -> int:
        """Returns how many reconnects were attempted since the last successful connection"""
        return self._attempts

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT), json_serialize=json.dumps
            )
        return self._session

    async def connect(self) -> None:
        """Attempts to establish a connection to Lavalink.

        Cancels any pending reconnect and resets the attempt counter.
        Failures are reported through :class:`NodeErrorEvent` and the reconnect flow, never raised.
        """
        if self._state is NodeState.DESTROYED:
            self._logger.warning("Ignoring connect request, the node has been destroyed")
            return
        if self.connected or self._state is NodeState.CONNECTING:
            self._logger.debug("Ignoring connect request, already %s", self._state.value)
            return
        self._generation += 1
        self._cancel_reconnect()
        self._attempts = 0
        await self._open(self._generation)

    async def _open(self, generation: int) -> None:
        self._state = NodeState.CONNECTING
        max_attempts_str = self._config.reconnect_tries if self._config.reconnect_tries != -1 else "inf"
        self._logger.info(
            "Attempting to establish WebSocket connection (%s/%s)",
            self._attempts,
            max_attempts_str,
        )
        ws_uri = self._node.get_endpoint_websocket()
        try:
            ws = await self.session.ws_connect(url=ws_uri, headers=self._node.headers, heartbeat=60)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as ce:
            if generation != self._generation or self._state is NodeState.DESTROYED:
                return
            if isinstance(ce, aiohttp.WSServerHandshakeError) and ce.status in (401, 403):
                self._logger.warning("Authentication failed while trying to establish a connection to the node")
                self._state = NodeState.DISCONNECTED
                self._node.dispatch_error(TransportException("Authentication failed", fatal=True))
                return
            self._logger.warning("Failed to connect to %s: %s", ws_uri, ce)
            self._node.dispatch_error(TransportException(f"Failed to connect to {ws_uri}: {ce}"))
            await self._websocket_closed(None, str(ce))
            return

        if generation != self._generation or self._state is NodeState.DESTROYED:
            with contextlib.suppress(Exception):
                await ws.close(code=CLEAN_CLOSE_CODE, message=b"Stale connection")
            return

        self._ws = ws
        self._state = NodeState.CONNECTED
        reconnected = self._has_connected
        self._has_connected = True
        self._attempts = 0
        self._logger.info("Node connected")
        if self._config.resume_key:
            await self.send(op="configureResuming", key=self._config.resume_key, timeout=self._config.resume_timeout)
        self._listener_task = asyncio.create_task(self._listen(ws, generation))
        self._listener_task.add_done_callback(self._done_callback)
        await self._node.node_manager.node_connect(self._node, reconnected)
        if reconnected and self._config.resume_key:
            for player in self._node.players:
                await player.restart()

    def _done_callback(self, task: asyncio.Task) -> None:
        with contextlib.suppress(asyncio.CancelledError):
            exc = task.exception()
            if exc is not None:
                self._logger.error("Error in websocket task", exc_info=exc)

    async def _listen(self, ws: aiohttp.ClientWebSocketResponse, generation: int) -> None:
        """Listens for websocket messages, one at a time in arrival order"""
        async for msg in ws:
            if generation != self._generation:
                return
            self._logger.trace("Received WebSocket message: %s", msg.data)
            if msg.type == aiohttp.WSMsgType.TEXT:
                try:
                    await self._node.handle_message(msg.data)
                except Exception:  # noqa
                    self._logger.exception("Failed to handle message: %s", msg.data)
            elif msg.type == aiohttp.WSMsgType.ERROR:
                self._logger.warning("Exception in WebSocket! %s", ws.exception())
                break
        if generation == self._generation and self._ws is ws:
            await self._websocket_closed(ws.close_code, None)

    async def _websocket_closed(self, code: int | None = None, reason: str | None = None) -> None:
        """
        Handles when the websocket is closed.

        Parameters
        ----------
        code: :class:`int`
            The close code, `None` when the connection could not be opened.
        reason: :class:`str`
            Reason why the websocket was closed. Defaults to `None`
        """
        self._logger.info(
            "WebSocket disconnected with the following: code=%s reason=%s",
            code,
            reason,
        )
        self._ws = None
        if self._state is NodeState.DESTROYED:
            return
        was_connected = self._state is NodeState.CONNECTED
        self._state = NodeState.DISCONNECTED
        if was_connected:
            await self._node.node_manager.node_disconnect(self._node, code, reason)
        if code != CLEAN_CLOSE_CODE:
            self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        max_attempts = self._config.reconnect_tries
        if max_attempts != -1 and self._attempts >= max_attempts:
            self._logger.error(
                "A WebSocket connection could not be established within %s attempts",
                self._attempts,
            )
            self._node.dispatch_error(
                TransportException(f"Gave up reconnecting after {self._attempts} attempts", fatal=True)
            )
            return
        self._cancel_reconnect()
        self._reconnect_task = asyncio.create_task(self._reconnect(self._generation))
        self._reconnect_task.add_done_callback(self._done_callback)

    async def _reconnect(self, generation: int) -> None:
        await asyncio.sleep(self._config.reconnect_interval)
        if generation != self._generation or self._state is not NodeState.DISCONNECTED:
            return
        self._attempts += 1
        self._node.dispatch_event(NodeReconnectingEvent(self._node, self._attempts))
        await self._open(generation)

    def _cancel_reconnect(self) -> None:
        task = self._reconnect_task
        self._reconnect_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _cancel_listener(self) -> None:
        task = self._listener_task
        self._listener_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def send(self, **data: Any) -> None:
        """
        Sends a payload to Lavalink.

        Errors are reported through :class:`NodeErrorEvent`; a dead socket is
        detected by the listener, so a failed send leaves the state untouched.

        Parameters
        ----------
        data: :class:`dict`
            The data sent to Lavalink.
        """
        if not self.connected:
            self._logger.debug("Send called before WebSocket ready! op=%s", data.get("op"))
            self._node.dispatch_error(TransportException(f"Can't send {data.get('op')}, the node is not connected"))
            return
        self._logger.trace("Sending payload %s", data)
        try:
            await self._ws.send_json(data, dumps=json.dumps)
        except (ConnectionResetError, RuntimeError, aiohttp.ClientError) as e:
            self._logger.debug("Failed to send payload: %s", e)
            self._node.dispatch_error(TransportException(f"Failed to send {data.get('op')}: {e}"))

    async def close(self, code: int = CLEAN_CLOSE_CODE, reason: str = "Closed by client") -> None:
        """Closes the websocket connection without scheduling a reconnect."""
        self._generation += 1
        self._cancel_reconnect()
        self._cancel_listener()
        ws, self._ws = self._ws, None
        if ws is not None and not ws.closed:
            with contextlib.suppress(Exception):
                await ws.close(code=code, message=reason.encode())
        if self._state is NodeState.DESTROYED:
            return
        was_connected = self._state is NodeState.CONNECTED
        self._state = NodeState.DISCONNECTED
        if was_connected:
            await self._node.node_manager.node_disconnect(self._node, code, reason)

    async def destroy(self) -> None:
        """Closes the connection for good, the websocket can't be reopened afterwards."""
        await self.close(CLEAN_CLOSE_CODE, "Node destroyed")
        self._state = NodeState.DESTROYED
        if self._session is not None and not self._session.closed:
            await self._session.close()
