from __future__ import annotations

import datetime
from typing import TYPE_CHECKING

from lavapool.helpers.time import get_now_utc
from lavapool.nodes.api.responses.websocket import Stats as StatsMessage

if TYPE_CHECKING:
    from lavapool.nodes.node import Node


def sort_key_nodes(node: Node) -> float:
    """The sort key for nodes."""
    return node.stats.load


class Stats:
    """Represents the stats of a Lavalink node.

    A fresh instance replaces the previous one on every ``stats`` message,
    values are never merged across snapshots.
    """

    __slots__ = (
        "_node",
        "_data",
        "_memory",
        "_cpu",
        "_frame_stats",
        "_received_at",
    )

    def __init__(self, node: Node, data: StatsMessage | None = None) -> None:
        self._node = node
        self._data = data or StatsMessage(op="stats")
        self._memory = self._data.memory
        self._cpu = self._data.cpu
        self._frame_stats = self._data.frameStats
        self._received_at = get_now_utc() if data is not None else None

    @property
    def received_at(self) -> datetime.datetime | None:
        """When this snapshot was received, ``None`` for the empty default snapshot"""
        return self._received_at

    @property
    def uptime(self) -> int:
        """How long the node has been running for in milliseconds"""
        return self._data.uptime

    @property
    def uptime_seconds(self) -> float:
        """How long the node has been running for in seconds"""
        return self.uptime / 1000

    @property
    def players(self) -> int:
        """The amount of players connected to the node"""
        return self._data.players

    @property
    def playing_players(self) -> int:
        """The amount of players that are playing in the node"""
        return self._data.playingPlayers

    @property
    def memory_free(self) -> int:
        """The amount of memory free to the node"""
        return self._memory.free if self._memory else 0

    @property
    def memory_used(self) -> int:
        """The amount of memory that is used by the node"""
        return self._memory.used if self._memory else 0

    @property
    def memory_allocated(self) -> int:
        """The amount of memory allocated to the node"""
        return self._memory.allocated if self._memory else 0

    @property
    def memory_reservable(self) -> int:
        """The amount of memory reservable to the node"""
        return self._memory.reservable if self._memory else 0

    @property
    def has_cpu_stats(self) -> bool:
        return self._cpu is not None and self._cpu.cores > 0

    @property
    def cpu_cores(self) -> int:
        """The amount of cpu cores the system of the node has"""
        return self._cpu.cores if self._cpu else 0

    @property
    def system_load(self) -> float:
        """The overall CPU load of the system"""
        return self._cpu.systemLoad if self._cpu else 0.0

    @property
    def lavalink_load(self) -> float:
        """The CPU load generated by Lavalink"""
        return self._cpu.lavalinkLoad if self._cpu else 0.0

    @property
    def frames_sent(self) -> int:
        """The number of frames sent to Discord.

        Warning
        -------
        Given that audio packets are sent via UDP, this number may not be 100% accurate due to dropped packets.
        """
        return self._frame_stats.sent if self._frame_stats else -1

    @property
    def frames_nulled(self) -> int:
        """The number of frames that yielded null, rather than actual data"""
        return self._frame_stats.nulled if self._frame_stats else -1

    @property
    def frames_deficit(self) -> int:
        """The number of missing frames"""
        return self._frame_stats.deficit if self._frame_stats else -1

    @property
    def load(self) -> float:
        """The load of the node used for least-loaded selection.

        This is ``(systemLoad / cores) * 100``, or ``0`` when the node has not reported CPU stats.
        """
        if not self.has_cpu_stats:
            return 0.0
        return (self.system_load / self.cpu_cores) * 100

    def __repr__(self) -> str:
        return (
            f"<Stats node={self._node.name!r} players={self.players} "
            f"playing={self.playing_players} load={self.load:.2f}>"
        )
