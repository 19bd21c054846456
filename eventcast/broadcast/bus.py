"""
Cross-context broadcast bus.

Provides:
- Lazily opened channels, one transport handle per channel name
- Listener ids for later removal, unique per bus instance
- Error-isolated adapters between the transport and caller callbacks
- Fire-and-forget broadcasting that never raises to the caller
"""

from __future__ import annotations

import itertools
import threading
from collections.abc import Callable
from typing import Any

from eventcast.broadcast.memory import MemoryTransport
from eventcast.broadcast.transport import ChannelHandle, MessageCallback, Transport
from eventcast.config import BusSettings, build_transport
from eventcast.events.isolation import call_isolated, describe_listener
from eventcast.events.registry import ListenerRegistry
from eventcast.logging_config import get_logger

logger = get_logger(__name__)


class BroadcastBus:
    """
    Publish/subscribe across execution contexts through a ``Transport``.

    Channel lifecycle: a channel is opened on the first ``subscribe`` or
    ``broadcast`` for its name and stays open until ``close``. Removing the
    last listener does not close it.

    Delivery is asynchronous and transport-defined: a message may reach
    subscribers (including ones on this bus) after ``broadcast`` returns.

    Example:
        bus = BroadcastBus(transport)

        listener_id = bus.subscribe("cart", lambda data: print(data))
        bus.broadcast("cart", {"items": 3})
        bus.unsubscribe("cart", listener_id)
        bus.close("cart")
    """

    def __init__(
        self,
        transport: Transport | None = None,
        *,
        listener_prefix: str = "listener_",
    ):
        """
        Initialize broadcast bus.

        Args:
            transport: Channel transport; a private MemoryTransport if omitted
            listener_prefix: Prefix for generated listener ids
        """
        self.transport = transport if transport is not None else MemoryTransport()
        self.listener_prefix = listener_prefix
        self._channels: dict[str, ChannelHandle] = {}
        self._listeners: ListenerRegistry[str, MessageCallback] = ListenerRegistry(
            prune_empty=False
        )
        self._ids = itertools.count(1)
        self._lock = threading.RLock()

    @classmethod
    def from_settings(cls, settings: BusSettings) -> BroadcastBus:
        return cls(build_transport(settings), listener_prefix=settings.listener_prefix)

    # -------------------------------------------------------------------------
    # Channels
    # -------------------------------------------------------------------------

    def _ensure_channel(self, channel: str) -> ChannelHandle:
        handle = self._channels.get(channel)
        if handle is None:
            handle = self.transport.open(channel)
            self._channels[channel] = handle
            self._listeners.ensure(channel)
            logger.debug(
                "channel_opened",
                channel=channel,
                transport=type(self.transport).__name__,
            )
        return handle

    def _adapter(self, channel: str, callback: Callable[[Any], Any]) -> MessageCallback:
        def adapter(data: Any) -> None:
            call_isolated(callback, data, source="broadcast", name=channel)

        adapter.__qualname__ = f"broadcast_adapter[{describe_listener(callback)}]"
        return adapter

    # -------------------------------------------------------------------------
    # Subscription
    # -------------------------------------------------------------------------

    def subscribe(self, channel: str, callback: Callable[[Any], Any]) -> str:
        """
        Subscribe ``callback`` to ``channel``.

        Args:
            channel: Channel name
            callback: Callable receiving each message payload

        Returns:
            Listener id for ``unsubscribe``

        Raises:
            TransportError: If the channel could not be opened
        """
        adapter = self._adapter(channel, callback)
        with self._lock:
            handle = self._ensure_channel(channel)
            listener_id = f"{self.listener_prefix}{next(self._ids)}"
            handle.add_listener(adapter)
            self._listeners.add(channel, listener_id, adapter)

        logger.debug("broadcast_subscribed", channel=channel, listener_id=listener_id)
        return listener_id

    def unsubscribe(self, channel: str, listener_id: str) -> None:
        """Remove one listener. Unknown channels or ids are ignored."""
        with self._lock:
            handle = self._channels.get(channel)
            if handle is None:
                return
            adapter = self._listeners.discard(channel, listener_id)
            if adapter is not None:
                handle.remove_listener(adapter)

    # -------------------------------------------------------------------------
    # Publishing
    # -------------------------------------------------------------------------

    def broadcast(self, channel: str, payload: Any = None) -> None:
        """
        Send ``payload`` to every subscriber of ``channel`` in every context.

        Failures (opening the channel, serializing, a closed handle) are
        logged and swallowed.

        Args:
            channel: Channel name
            payload: Message data; omitted means None
        """
        try:
            with self._lock:
                handle = self._ensure_channel(channel)
            handle.post(payload)
        except Exception:
            logger.exception("broadcast_failed", channel=channel)

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------

    def close(self, channel: str) -> None:
        """Detach all listeners, release the transport handle and forget the channel."""
        with self._lock:
            handle = self._channels.pop(channel, None)
            adapters = self._listeners.pop(channel)
        if handle is None:
            return

        try:
            for adapter in adapters.values():
                handle.remove_listener(adapter)
            handle.close()
        except Exception:
            logger.exception("channel_close_failed", channel=channel)
        else:
            logger.debug("channel_closed", channel=channel, listeners=len(adapters))

    def close_all(self) -> None:
        """Close every open channel."""
        with self._lock:
            channels = list(self._channels)
        for channel in channels:
            self.close(channel)

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def get_active_channels(self) -> list[str]:
        with self._lock:
            return list(self._channels)

    def is_channel_active(self, channel: str) -> bool:
        with self._lock:
            return channel in self._channels

    def listener_count(self, channel: str) -> int:
        with self._lock:
            return self._listeners.count(channel)


# =============================================================================
# Global Instance
# =============================================================================

_broadcast_bus: BroadcastBus | None = None
_broadcast_bus_lock = threading.Lock()


def get_broadcast_bus() -> BroadcastBus:
    """
    Get or create the process-wide default broadcast bus.

    Built from ``BusSettings.from_env()`` on first use, so a bad setting
    surfaces here rather than at import time.
    """
    global _broadcast_bus
    with _broadcast_bus_lock:
        if _broadcast_bus is None:
            _broadcast_bus = BroadcastBus.from_settings(BusSettings.from_env())
        return _broadcast_bus


# =============================================================================
# Convenience Functions
# =============================================================================


def subscribe(channel: str, callback: Callable[[Any], Any]) -> str:
    """Subscribe on the default broadcast bus."""
    return get_broadcast_bus().subscribe(channel, callback)


def unsubscribe(channel: str, listener_id: str) -> None:
    """Unsubscribe from the default broadcast bus."""
    get_broadcast_bus().unsubscribe(channel, listener_id)


def broadcast(channel: str, payload: Any = None) -> None:
    """Broadcast on the default broadcast bus."""
    get_broadcast_bus().broadcast(channel, payload)
