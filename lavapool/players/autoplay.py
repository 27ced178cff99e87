from __future__ import annotations

import random
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from lavapool.logging import getLogger
from lavapool.players.tracks.obj import Track

if TYPE_CHECKING:
    from lavapool.players.player import Player

LOGGER = getLogger("LavaPool.Autoplay")


class AutoplayPolicy(ABC):
    """Decides what a player plays once its queue has been exhausted."""

    __slots__ = ()

    @abstractmethod
    async def next_track(self, player: Player, previous: Track | None) -> Track | None:
        """Returns the track to play next, or ``None`` to let the queue end."""
        raise NotImplementedError


class RadioAutoplay(AutoplayPolicy):
    """Picks a random entry of the YouTube radio mix seeded with the last played track.

    Tracks from other sources have no radio mix, the queue ends for them.
    """

    __slots__ = ("_rng",)

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    @staticmethod
    def radio_url(identifier: str) -> str:
        return f"https://www.youtube.com/watch?v={identifier}&list=RD{identifier}"

    async def next_track(self, player: Player, previous: Track | None) -> Track | None:
        if previous is None or (previous.source_name or "youtube").lower() != "youtube":
            return None
        result = await player.node.fetch_loadtracks(self.radio_url(previous.identifier))
        candidates = [t for t in result.tracks if t.encoded and t.info.identifier != previous.identifier]
        if not candidates:
            LOGGER.debug("No radio candidates for %s (%s)", previous.identifier, result.loadType)
            return None
        return Track(self._rng.choice(candidates), requester=previous.requester)
