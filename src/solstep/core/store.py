"""
Process-wide state store.

State lives in slices owned by the components (trace cursor, call stack,
bindings, function depth). A slice only changes inside its own ``reduce``,
which the store calls for every event passed to ``put``. After the reducers,
``put`` runs the synchronous listeners for the event type and then wakes the
coroutines waiting on it, so a waiter always observes fully processed state.
"""

import asyncio
from collections import defaultdict
from typing import Callable, Dict, Iterable, List, Tuple

from ..utils.logging import get_logger, log_trace
from .events import Event

logger = get_logger('store')


class StateStore:
    """Explicit state container with event-driven transitions."""

    def __init__(self):
        self._slices: Dict[str, object] = {}
        self._listeners: Dict[str, List[Callable[[Event], None]]] = defaultdict(list)
        self._takers: List[Tuple[frozenset, asyncio.Future]] = []
        self._channels: List[Tuple[frozenset, asyncio.Queue]] = []

    def register(self, name: str, state_slice) -> None:
        """Attach a slice; it must provide ``reduce(event)``."""
        self._slices[name] = state_slice

    def slice(self, name: str):
        return self._slices[name]

    def listen(self, event_types: Iterable[str], listener: Callable[[Event], None]) -> None:
        """Run ``listener`` synchronously inside every ``put`` of these types."""
        for event_type in event_types:
            self._listeners[event_type].append(listener)

    def take(self, *event_types: str) -> asyncio.Future:
        """
        One-shot wait for the next event of any of the given types.

        The wait is registered immediately, so an event published after this
        call and before the future is awaited is not missed.
        """
        future = asyncio.get_running_loop().create_future()
        self._takers.append((frozenset(event_types), future))
        return future

    def subscribe(self, *event_types: str) -> asyncio.Queue:
        """Buffered delivery of every later event of the given types."""
        queue = asyncio.Queue()
        self._channels.append((frozenset(event_types), queue))
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._channels = [(types, q) for types, q in self._channels if q is not queue]

    def put(self, event: Event) -> None:
        log_trace(logger, "put %s %s", event.type, event.payload or "")

        for state_slice in self._slices.values():
            state_slice.reduce(event)

        for listener in list(self._listeners.get(event.type, ())):
            listener(event)

        waiting = []
        for types, future in self._takers:
            if future.done():
                continue
            if event.type in types:
                future.set_result(event)
            else:
                waiting.append((types, future))
        self._takers = waiting

        for types, queue in self._channels:
            if event.type in types:
                queue.put_nowait(event)
