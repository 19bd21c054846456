"""
In-process event bus and the listener primitives shared with the broadcast bus.
"""

from eventcast.events.bus import (
    Event,
    EventBus,
    Listener,
    emit,
    get_event_bus,
    off,
    on,
)
from eventcast.events.isolation import call_isolated
from eventcast.events.registry import ListenerRegistry

__all__ = [
    "Event",
    "EventBus",
    "Listener",
    "ListenerRegistry",
    "call_isolated",
    "emit",
    "get_event_bus",
    "off",
    "on",
]
