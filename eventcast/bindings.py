"""
Lifecycle helpers for code that owns a subscription for a bounded time.

Components subscribe when they start ("mount") and keep a ``Subscription``
whose ``close`` is safe to call any number of times when they stop
("unmount"), even after the underlying bus entry is gone.

Example:
    with listen("counter", lambda count: print(count)):
        emitter()("counter", 1)

    state = EventState("counter", 0)
    get_event_bus().emit("counter", 5)
    assert state.value == 5
    state.close()
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from eventcast.broadcast.bus import BroadcastBus, get_broadcast_bus
from eventcast.events.bus import Event, EventBus, get_event_bus

T = TypeVar("T")


class Subscription:
    """Handle returned by the ``listen*`` helpers."""

    def __init__(self, unsubscribe: Callable[[], None]):
        self._unsubscribe: Callable[[], None] | None = unsubscribe
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        return self._unsubscribe is not None

    def close(self) -> None:
        """Unsubscribe. Further calls do nothing."""
        with self._lock:
            unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


def listen(
    name: str,
    callback: Callable[[T], Any],
    bus: EventBus | None = None,
) -> Subscription:
    """
    Call ``callback`` with the payload of every ``name`` event.

    Each call registers its own listener, so the same callback subscribed
    twice is delivered twice and unsubscribed independently.
    """
    bus = bus or get_event_bus()

    def listener(event: Event[T]) -> None:
        callback(event.payload)

    bus.on(name, listener)
    return Subscription(lambda: bus.off(name, listener))


def emitter(bus: EventBus | None = None) -> Callable[[str, Any], None]:
    """Return an ``emit(name, payload)`` function bound to ``bus``."""
    bus = bus or get_event_bus()

    def emit(name: str, payload: Any = None) -> None:
        bus.emit(name, payload)

    return emit


class EventState(Generic[T]):
    """
    Value that tracks the latest payload emitted under ``name``.

    Args:
        name: Event name to follow
        initial: Value before the first event
        bus: Event bus (defaults to the process-wide bus)
    """

    def __init__(self, name: str, initial: T, bus: EventBus | None = None):
        self.name = name
        self._value = initial
        self._lock = threading.Lock()
        self._subscription = listen(name, self._update, bus)

    @property
    def value(self) -> T:
        with self._lock:
            return self._value

    def _update(self, payload: T) -> None:
        with self._lock:
            self._value = payload

    def close(self) -> None:
        self._subscription.close()

    def __enter__(self) -> EventState[T]:
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


def broadcaster(bus: BroadcastBus | None = None) -> Callable[..., None]:
    """Return a ``broadcast(channel, payload=None)`` function bound to ``bus``."""
    bus = bus or get_broadcast_bus()

    def broadcast(channel: str, payload: Any = None) -> None:
        bus.broadcast(channel, payload)

    return broadcast


def listen_broadcast(
    channel: str,
    callback: Callable[[Any], Any],
    bus: BroadcastBus | None = None,
) -> Subscription:
    """Subscribe ``callback`` to ``channel`` until the returned handle is closed."""
    bus = bus or get_broadcast_bus()
    listener_id = bus.subscribe(channel, callback)
    return Subscription(lambda: bus.unsubscribe(channel, listener_id))
