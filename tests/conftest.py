from __future__ import annotations

import asyncio
import types
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest
import pytest_asyncio

from lavapool.client import Client
from lavapool.compat import json
from lavapool.nodes.config import NodeConfig
from lavapool.nodes.node import Node
from lavapool.nodes.websocket import NodeState
from lavapool.players.tracks.obj import Track

USER_ID = "1000"
GUILD_ID = "100"
VOICE_CHANNEL_ID = "200"


class FakeWebSocket:
    """Stands in for :class:`aiohttp.ClientWebSocketResponse`.

    Frames pushed with :meth:`push` are yielded by ``async for``; pushing ``None`` ends the stream.
    """

    def __init__(self) -> None:
        self._frames: asyncio.Queue = asyncio.Queue()
        self.closed = False
        self.close_code: int | None = None
        self.send_json = AsyncMock()

    def __aiter__(self):
        return self

    async def __anext__(self):
        frame = await self._frames.get()
        if frame is None:
            self.closed = True
            raise StopAsyncIteration
        return frame

    def push(self, payload: Any) -> None:
        if payload is None:
            self._frames.put_nowait(None)
            return
        data = payload if isinstance(payload, str) else json.dumps(payload)
        self._frames.put_nowait(types.SimpleNamespace(type=aiohttp.WSMsgType.TEXT, data=data))

    def drop(self, code: int | None) -> None:
        """Simulates the remote end closing the connection."""
        self.close_code = code
        self._frames.put_nowait(None)

    async def close(self, *, code: int = 1000, message: bytes = b"") -> bool:
        self.closed = True
        self.close_code = code
        self._frames.put_nowait(None)
        return True

    def exception(self) -> None:
        return None

    @property
    def sent(self) -> list[dict]:
        return [c.args[0] for c in self.send_json.call_args_list]

    def sent_ops(self, op: str) -> list[dict]:
        return [p for p in self.sent if p.get("op") == op]


class FakeResponse:
    """An ``async with`` compatible stand-in for an aiohttp response."""

    def __init__(self, status: int = 200, payload: Any = None, text: str = "") -> None:
        self.status = status
        self._payload = payload
        self._text = text

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        return None

    async def json(self, **kwargs) -> Any:
        return self._payload

    async def text(self) -> str:
        return self._text


def make_session(*responses: FakeResponse) -> MagicMock:
    session = MagicMock(closed=False)
    session.get = MagicMock(side_effect=list(responses))
    session.close = AsyncMock()
    return session


def make_track(encoded: str | None = "T1", identifier: str = "id1", **info: Any) -> Track:
    data = {
        "encoded": encoded,
        "info": {
            "identifier": identifier,
            "author": info.pop("author", "Author"),
            "length": info.pop("length", 180000),
            "title": info.pop("title", f"Title {identifier}"),
            **info,
        },
    }
    return Track.from_lavalink(data)


def register_node(client: Client, name: str, **options: Any) -> Node:
    """Registers a node without connecting it."""
    host = options.pop("host", f"{name}.local")
    config = NodeConfig(host=host, port=2333, password="youshallnotpass", name=name, **options)
    node = Node(manager=client.node_manager, config=config)
    # noinspection PyProtectedMember
    client.node_manager._nodes[node.identifier] = node
    return node


def attach_socket(node: Node) -> FakeWebSocket:
    """Marks ``node`` as connected through a fake socket."""
    ws = FakeWebSocket()
    # noinspection PyProtectedMember
    node.websocket._ws = ws
    # noinspection PyProtectedMember
    node.websocket._state = NodeState.CONNECTED
    return ws


def stats_payload(system_load: float, cores: int = 1, players: int = 0) -> dict:
    return {
        "op": "stats",
        "players": players,
        "playingPlayers": 0,
        "uptime": 1000,
        "memory": {"free": 1, "allocated": 2, "reservable": 3, "used": 1},
        "cpu": {"cores": cores, "systemLoad": system_load, "lavalinkLoad": 0.01},
    }


async def wait_until(predicate, timeout: float = 2.0) -> None:
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.01)


@pytest.fixture
def gateway() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def client(gateway: AsyncMock) -> Client:
    return Client(user_id=USER_ID, send_gateway=gateway, resolvers=[])


@pytest.fixture
def events(client: Client) -> list:
    """Every event dispatched by ``client``, in order."""
    received = []
    for event_class in client.dispatch_manager.mapping:
        client.add_listener(event_class, received.append)
    return received


@pytest.fixture
def node(client: Client) -> Node:
    return register_node(client, "main")


@pytest.fixture
def socket(node: Node) -> FakeWebSocket:
    return attach_socket(node)


@pytest_asyncio.fixture
async def player(client: Client, node: Node, socket: FakeWebSocket):
    player = await client.create_player(GUILD_ID, VOICE_CHANNEL_ID)
    socket.send_json.reset_mock()
    return player
