"""
Cross-context broadcast bus and its transports.
"""

from eventcast.broadcast.bus import (
    BroadcastBus,
    broadcast,
    get_broadcast_bus,
    subscribe,
    unsubscribe,
)
from eventcast.broadcast.memory import MemoryChannel, MemoryTransport
from eventcast.broadcast.redis_transport import RedisChannel, RedisTransport
from eventcast.broadcast.transport import (
    ChannelHandle,
    PayloadNotSerializableError,
    Transport,
    TransportClosedError,
    TransportError,
)

__all__ = [
    "BroadcastBus",
    "ChannelHandle",
    "MemoryChannel",
    "MemoryTransport",
    "PayloadNotSerializableError",
    "RedisChannel",
    "RedisTransport",
    "Transport",
    "TransportClosedError",
    "TransportError",
    "broadcast",
    "get_broadcast_bus",
    "subscribe",
    "unsubscribe",
]
