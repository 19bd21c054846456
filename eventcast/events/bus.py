"""
In-process event bus.

Provides:
- Synchronous fan-out to every listener registered for an event name
- Per-listener failure isolation (a failing listener is logged, never raised)
- Automatic cleanup of names whose last listener is removed
- A process-wide default bus plus independently constructed instances
"""

from __future__ import annotations

import inspect
import threading
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from functools import wraps
from typing import Any, Generic, TypeVar

from eventcast.events.isolation import call_isolated
from eventcast.events.registry import ListenerRegistry
from eventcast.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


# =============================================================================
# Types
# =============================================================================


@dataclass(frozen=True)
class Event(Generic[T]):
    """
    Envelope handed to every listener.

    Attributes:
        name: Event name the payload was emitted under
        payload: Caller-chosen payload, never inspected by the bus
    """

    name: str
    payload: T


Listener = Callable[[Event[T]], Any]


def listener_key(listener: Callable[..., Any]) -> Hashable:
    """
    Identity key for a listener.

    Plain callables are keyed by ``id``. A bound method is keyed by its
    instance and function, since ``obj.method`` builds a new object on each
    access. The registry keeps the listener itself as the value, so the ids
    stay valid while it is registered.
    """
    if inspect.ismethod(listener):
        return (id(listener.__self__), id(listener.__func__))
    return id(listener)


# =============================================================================
# Event Bus
# =============================================================================


class EventBus:
    """
    Synchronous, in-process publish/subscribe bus.

    Listeners are deduplicated per event name by identity, so registering the
    same function (or the same bound method) twice has no extra effect, while
    distinct callables are always kept apart even if they compare equal.
    Dispatch iterates a snapshot taken when ``emit`` starts: listeners added
    mid-dispatch run from the next ``emit`` onward.

    Safe to share between threads. Listeners run on the emitting thread,
    outside the bus lock, so they may call back into the bus.

    Example:
        bus = EventBus()

        def on_login(event):
            print(event.name, event.payload["user"])

        bus.on("user:login", on_login)
        bus.emit("user:login", {"user": "ada"})
        bus.off("user:login", on_login)
    """

    def __init__(self) -> None:
        self._registry: ListenerRegistry[Hashable, Listener[Any]] = ListenerRegistry(
            prune_empty=True
        )
        self._lock = threading.RLock()

    # -------------------------------------------------------------------------
    # Subscription
    # -------------------------------------------------------------------------

    def on(self, name: str, listener: Listener[T]) -> None:
        """
        Register ``listener`` for ``name``.

        Args:
            name: Event name
            listener: Callable receiving an ``Event``
        """
        with self._lock:
            added = self._registry.add(name, listener_key(listener), listener)
        if added:
            logger.debug("event_subscribed", name=name)

    def off(self, name: str, listener: Listener[T]) -> None:
        """Remove ``listener`` from ``name``. Unknown names or listeners are ignored."""
        with self._lock:
            removed = self._registry.discard(name, listener_key(listener))
        if removed is not None:
            logger.debug("event_unsubscribed", name=name)

    def once(self, name: str, listener: Listener[T]) -> Listener[T]:
        """
        Register ``listener`` for a single delivery.

        The wrapper removes itself before calling ``listener``, so a re-entrant
        emit from inside the listener does not deliver twice.

        Returns:
            The registered wrapper, usable with ``off`` to cancel
        """

        @wraps(listener)
        def wrapper(event: Event[T]) -> Any:
            with self._lock:
                pending = self._registry.discard(name, listener_key(wrapper)) is not None
            if pending:
                return listener(event)
            return None

        self.on(name, wrapper)
        return wrapper

    def clear(self, name: str) -> None:
        """Remove every listener for ``name``."""
        with self._lock:
            self._registry.pop(name)

    def clear_all(self) -> None:
        """Remove every listener for every name."""
        with self._lock:
            self._registry.clear()

    # -------------------------------------------------------------------------
    # Publishing
    # -------------------------------------------------------------------------

    def emit(self, name: str, payload: T) -> None:
        """
        Deliver ``payload`` to every listener registered for ``name``.

        Args:
            name: Event name
            payload: Value wrapped in an ``Event`` for each listener
        """
        with self._lock:
            listeners = self._registry.snapshot(name)
        if not listeners:
            return

        event = Event(name=name, payload=payload)
        failures = 0
        for listener in listeners:
            if not call_isolated(listener, event, source="event", name=name):
                failures += 1

        logger.debug(
            "event_dispatched",
            name=name,
            listeners=len(listeners),
            failures=failures,
        )

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def listener_count(self, name: str) -> int:
        with self._lock:
            return self._registry.count(name)

    def event_names(self) -> list[str]:
        """Names that currently have at least one listener."""
        with self._lock:
            return self._registry.names()


# =============================================================================
# Global Instance
# =============================================================================

_event_bus = EventBus()


def get_event_bus() -> EventBus:
    """Get the process-wide default event bus."""
    return _event_bus


# =============================================================================
# Convenience Functions
# =============================================================================


def on(name: str, listener: Listener[T] | None = None):
    """
    Register a listener on the default bus (can be used as decorator).

    Usage:
        @on("user:login")
        def handle_login(event):
            ...

        # Or:
        on("user:logout", handler)
    """
    bus = get_event_bus()

    if listener is not None:
        bus.on(name, listener)
        return listener

    def decorator(fn: Listener[T]) -> Listener[T]:
        bus.on(name, fn)
        return fn

    return decorator


def off(name: str, listener: Listener[T]) -> None:
    """Remove a listener from the default bus."""
    get_event_bus().off(name, listener)


def emit(name: str, payload: Any = None) -> None:
    """Emit an event on the default bus."""
    get_event_bus().emit(name, payload)
