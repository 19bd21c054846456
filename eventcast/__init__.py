"""
eventcast: lightweight publish/subscribe buses.

This package contains:
- EventBus (synchronous, in-process fan-out)
- BroadcastBus (fire-and-forget messaging between contexts over a transport)
- Transports (in-process hub, Redis pub/sub)
- Lifecycle bindings for subscriptions with a bounded lifetime
"""

from eventcast.bindings import (
    EventState,
    Subscription,
    broadcaster,
    emitter,
    listen,
    listen_broadcast,
)
from eventcast.broadcast import (
    BroadcastBus,
    MemoryTransport,
    RedisTransport,
    Transport,
    TransportError,
    get_broadcast_bus,
)
from eventcast.config import BusSettings
from eventcast.events import Event, EventBus, ListenerRegistry, get_event_bus

__version__ = "0.1.0"

__all__ = [
    "BroadcastBus",
    "BusSettings",
    "Event",
    "EventBus",
    "EventState",
    "ListenerRegistry",
    "MemoryTransport",
    "RedisTransport",
    "Subscription",
    "Transport",
    "TransportError",
    "broadcaster",
    "emitter",
    "get_broadcast_bus",
    "get_event_bus",
    "listen",
    "listen_broadcast",
]
