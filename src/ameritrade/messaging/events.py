import asyncio
import inspect
import logging
from collections import defaultdict
from enum import Enum
from typing import Any, Callable, Union

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]
EventName = Union[str, Enum]


def event_key(event: EventName) -> str:
    return event.value if isinstance(event, Enum) else str(event)


class EventEmitter:
    """Named-signal fan-out to registered listeners.

    ``emit`` calls listeners synchronously in registration order. A listener that
    returns an awaitable has it scheduled on the running loop. A listener that
    raises is logged and the remaining listeners still run.
    """

    def __init__(self) -> None:
        self.listeners: dict[str, list[tuple[Listener, bool]]] = defaultdict(list)
        self.pending: set[asyncio.Future] = set()

    def on(self, event: EventName, listener: Listener) -> Listener:
        self.listeners[event_key(event)].append((listener, False))
        return listener

    def once(self, event: EventName, listener: Listener) -> Listener:
        self.listeners[event_key(event)].append((listener, True))
        return listener

    def off(self, event: EventName, listener: Listener) -> None:
        key = event_key(event)
        self.listeners[key] = [
            (registered, once) for registered, once in self.listeners[key] if registered != listener
        ]

    def remove_all_listeners(self, event: EventName) -> None:
        self.listeners.pop(event_key(event), None)

    def listener_count(self, event: EventName) -> int:
        return len(self.listeners.get(event_key(event), []))

    def emit(self, event: EventName, *args: Any) -> int:
        """Call every listener of ``event`` with ``args``; returns how many were called."""
        key = event_key(event)
        registered = self.listeners.get(key)
        if not registered:
            return 0

        # Snapshot so listeners can register or remove others while we iterate
        snapshot = list(registered)
        self.listeners[key] = [(listener, once) for listener, once in registered if not once]

        for listener, _ in snapshot:
            try:
                result = listener(*args)
                if inspect.isawaitable(result):
                    self.schedule(key, result)
            except Exception:
                logger.exception("Listener %r for '%s' raised", listener, key)

        return len(snapshot)

    def schedule(self, key: str, awaitable: Any) -> None:
        future = asyncio.ensure_future(awaitable)
        self.pending.add(future)

        def done(f: asyncio.Future) -> None:
            self.pending.discard(f)
            if not f.cancelled() and f.exception() is not None:
                logger.error("Async listener for '%s' raised", key, exc_info=f.exception())

        future.add_done_callback(done)
