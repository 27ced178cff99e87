from __future__ import annotations

import collections
import enum
import math
import random
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

from lavapool.exceptions.client import InvalidArgumentsException

if TYPE_CHECKING:
    from lavapool.players.tracks.obj import Track


class LoopMode(enum.Enum):
    DISABLED = "disabled"
    TRACK = "track"
    QUEUE = "queue"

    @classmethod
    def parse(cls, value: LoopMode | str) -> LoopMode:
        """Returns the loop mode for ``value``.

        Raises
        ------
        InvalidArgumentsException
            If ``value`` is not one of ``disabled``, ``track`` or ``queue``.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError as e:
            raise InvalidArgumentsException(
                f"Loop mode must be one of {', '.join(m.value for m in cls)}, got {value!r}"
            ) from e


def validate_non_negative_number(value: object, name: str) -> float | int:
    """Ensures ``value`` is a finite number greater than or equal to 0.

    Booleans are rejected even though they are integers.

    Raises
    ------
    InvalidArgumentsException
        If the value is not a finite non-negative number.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidArgumentsException(f"{name} must be a number, got {type(value).__name__}")
    if not math.isfinite(value) or value < 0:
        raise InvalidArgumentsException(f"{name} must be a finite number greater than or equal to 0, got {value}")
    return value


def validate_snowflake(value: object, name: str) -> str:
    """Ensures ``value`` is a non-empty string identifier."""
    if not isinstance(value, str) or not value:
        raise InvalidArgumentsException(f"{name} must be a non-empty string, got {value!r}")
    return value


class PlayerQueue:
    """The ordered sequence of tracks waiting to be played.

    Entries are taken from the head, looping re-inserts at either end.
    """

    __slots__ = ("_queue",)

    def __init__(self, tracks: Iterable[Track] = ()) -> None:
        self._queue: collections.deque[Track] = collections.deque(tracks)

    def __len__(self) -> int:
        return len(self._queue)

    def __iter__(self) -> Iterator[Track]:
        return iter(self._queue.copy())

    def __contains__(self, item: Track) -> bool:
        return item in self._queue

    def __getitem__(self, index: int) -> Track:
        return self._queue[index]

    def __repr__(self) -> str:
        return f"<PlayerQueue size={len(self._queue)}>"

    @property
    def raw_queue(self) -> collections.deque[Track]:
        return self._queue.copy()

    def size(self) -> int:
        """Number of tracks in the queue."""
        return len(self._queue)

    def empty(self) -> bool:
        """Return True if the queue is empty, False otherwise."""
        return not self._queue

    def put(self, tracks: Track | Iterable[Track]) -> None:
        """Appends one or more tracks at the tail of the queue."""
        if isinstance(tracks, Iterable):
            self._queue.extend(tracks)
        else:
            self._queue.append(tracks)

    def put_front(self, track: Track) -> None:
        """Inserts a track at the head of the queue, it will be the next one played."""
        self._queue.appendleft(track)

    def get_nowait(self) -> Track:
        """Removes and returns the head of the queue.

        Raises
        ------
        IndexError
            If the queue is empty.
        """
        return self._queue.popleft()

    def drop(self, amount: int) -> list[Track]:
        """Removes up to ``amount`` tracks from the head of the queue and returns them."""
        return [self._queue.popleft() for _ in range(min(amount, len(self._queue)))]

    def popindex(self, index: int) -> Track:
        value = self._queue[index]
        del self._queue[index]
        return value

    def remove(self, value: Track, duplicates: bool = False) -> int:
        """Removes the first occurrence of a value from the queue.

        If duplicates is True, all occurrences of the value are removed.
        Returns the number of occurrences removed.
        """
        if value not in self._queue:
            raise IndexError("Value not in queue")
        count = 0
        while value in self._queue:
            self._queue.remove(value)
            count += 1
            if not duplicates:
                break
        return count

    def clear(self) -> None:
        """Remove all items from the queue"""
        self._queue.clear()

    def shuffle(self) -> None:
        """Shuffle the queue"""
        random.shuffle(self._queue)
