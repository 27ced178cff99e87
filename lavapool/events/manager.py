from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from lavapool.events import base, node, player, queue, track
from lavapool.events.utils import get_event_name, get_simple_event_name
from lavapool.exceptions.client import InvalidArgumentsException
from lavapool.logging import getLogger

if TYPE_CHECKING:
    from lavapool.client import Client

LOGGER = getLogger("LavaPool.DispatchManager")

Listener = Callable[[base.LavaPoolEvent], Any]


class DispatchManager:
    """
    The Dispatcher is responsible for dispatching events to the listeners
    registered on one :class:`Client`.

    Listeners can be registered under the event class, its full name
    (``lavapool_track_end_event``) or its simple name (``track_end_event``).
    Plain callables are invoked inline, coroutine functions are scheduled as tasks.

    Examples
    --------
    >>> async def on_queue_end(event: queue.QueueEndEvent):
    >>>    print(f"Queue ended: {event.player.guild_id}")

    >>> client.add_listener(queue.QueueEndEvent, on_queue_end)

    """

    __slots__ = ("_client", "mapping", "_simple_mapping", "_listeners", "_tasks")

    def __init__(self, client: Client) -> None:
        self._client = client

        self.mapping: dict[type[base.LavaPoolEvent], str] = {}
        self._update_mapper(player)
        self._update_mapper(node)
        self._update_mapper(queue)
        self._update_mapper(track)
        self._simple_mapping = {get_simple_event_name(c): n for c, n in self.mapping.items()}
        self._listeners: dict[str, list[Listener]] = {}
        self._tasks: set[asyncio.Task] = set()

    def _update_mapper(self, module: node | player | queue | track) -> None:  # type: ignore
        """Updates the mapping with the events from the given module."""
        self.mapping.update(
            {
                c: get_event_name(c)
                for _, c in inspect.getmembers(module, inspect.isclass)
                if issubclass(c, base.LavaPoolEvent) and c is not base.LavaPoolEvent
            }
        )

    def _resolve_name(self, event: type[base.LavaPoolEvent] | str) -> str:
        if isinstance(event, type):
            if event not in self.mapping:
                raise InvalidArgumentsException(f"{event!r} is not a known event class")
            return self.mapping[event]
        if event in self._simple_mapping:
            return self._simple_mapping[event]
        if event in self._simple_mapping.values():
            return event
        raise InvalidArgumentsException(f"{event!r} is not a known event name")

    def add_listener(self, event: type[base.LavaPoolEvent] | str, callback: Listener) -> None:
        """Registers ``callback`` to be called every time ``event`` is dispatched."""
        if not callable(callback):
            raise InvalidArgumentsException("Listener callback must be callable")
        self._listeners.setdefault(self._resolve_name(event), []).append(callback)

    def remove_listener(self, event: type[base.LavaPoolEvent] | str, callback: Listener) -> None:
        """Unregisters ``callback`` for ``event``, does nothing if it was not registered."""
        listeners = self._listeners.get(self._resolve_name(event), [])
        if callback in listeners:
            listeners.remove(callback)

    def dispatch(self, event: base.LavaPoolEvent) -> None:
        """Dispatches an event to the registered listeners"""
        event_name = self.mapping[type(event)]
        LOGGER.trace("Dispatching %s", event)
        for callback in list(self._listeners.get(event_name, ())):
            try:
                result = callback(event)
            except Exception:  # noqa
                LOGGER.exception("Listener %r raised while handling %s", callback, event_name)
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(self._done_callback)

    def _done_callback(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        if (exc := task.exception()) is not None:
            LOGGER.error("Error in event listener", exc_info=exc)

    async def wait_for_listeners(self) -> None:
        """Waits until every scheduled coroutine listener has finished"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def get_event_names(self) -> set[str]:
        """Returns a set of all event names

        Returns
        -------
        set[str]
            A set of all event names prefixed with `lavapool_`
        """
        return set(self.mapping.values())

    def simple_event_names(self) -> set[str]:
        """Returns a set of all event names without the `lavapool_` prefix"""
        return set(self._simple_mapping)
