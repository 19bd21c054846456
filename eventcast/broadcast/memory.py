"""
In-process broadcast transport.

``MemoryTransport`` is a named channel hub: every bus attached to the same
hub behaves like a separate context of the same origin. Payloads are cloned
with pickle on post, so receivers never share memory with the sender and
unpicklable payloads fail the way a structured clone would. Delivery happens
on a daemon worker thread, never on the posting thread.

Example:
    hub = MemoryTransport()
    tab_a = BroadcastBus(hub)
    tab_b = BroadcastBus(hub)

    tab_b.subscribe("session", print)
    tab_a.broadcast("session", {"state": "logged_out"})
    hub.flush()
"""

from __future__ import annotations

import pickle
import queue
import threading
import time
from typing import Any

from eventcast.broadcast.transport import (
    MessageCallback,
    PayloadNotSerializableError,
    TransportClosedError,
)
from eventcast.events.isolation import call_isolated
from eventcast.logging_config import get_logger

logger = get_logger(__name__)


def _clone(name: str, payload: Any) -> bytes:
    try:
        return pickle.dumps(payload, protocol=pickle.HIGHEST_PROTOCOL)
    except Exception as exc:
        raise PayloadNotSerializableError(name, str(exc)) from exc


class MemoryChannel:
    """Channel handle issued by ``MemoryTransport``."""

    def __init__(self, hub: MemoryTransport, name: str):
        self.name = name
        self._hub = hub
        self._listeners: list[MessageCallback] = []
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def post(self, payload: Any) -> None:
        if self._closed:
            raise TransportClosedError(self.name)
        self._hub._publish(self.name, _clone(self.name, payload))

    def add_listener(self, callback: MessageCallback) -> None:
        with self._lock:
            if callback not in self._listeners:
                self._listeners.append(callback)

    def remove_listener(self, callback: MessageCallback) -> None:
        with self._lock:
            if callback in self._listeners:
                self._listeners.remove(callback)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        with self._lock:
            self._listeners.clear()
        self._hub._detach(self)

    def _deliver(self, data: bytes) -> None:
        if self._closed:
            return
        with self._lock:
            listeners = list(self._listeners)
        for callback in listeners:
            call_isolated(callback, pickle.loads(data), source="transport", name=self.name)

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<MemoryChannel {self.name!r} {state}>"


class MemoryTransport:
    """
    Named channel hub delivering messages asynchronously.

    Thread-safe. A worker thread is started on the first post and stops once
    the last handle is closed, after draining what was already queued.
    """

    def __init__(self) -> None:
        self._channels: dict[str, list[MemoryChannel]] = {}
        self._lock = threading.Lock()
        self._queue: queue.Queue[tuple[MemoryChannel, bytes] | None] = queue.Queue()
        self._pending = 0
        self._idle = threading.Condition(self._lock)
        self._worker: threading.Thread | None = None

    def open(self, name: str) -> MemoryChannel:
        channel = MemoryChannel(self, name)
        with self._lock:
            self._channels.setdefault(name, []).append(channel)
        return channel

    def flush(self, timeout: float | None = 1.0) -> bool:
        """
        Wait until every queued delivery has run.

        Args:
            timeout: Maximum seconds to wait (None waits indefinitely)

        Returns:
            True if the queue drained, False on timeout
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._idle:
            while self._pending:
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    return False
                self._idle.wait(remaining)
        return True

    @property
    def running(self) -> bool:
        """Whether a delivery worker is currently alive."""
        with self._lock:
            return self._worker is not None

    def _publish(self, name: str, data: bytes) -> None:
        with self._lock:
            targets = list(self._channels.get(name, ()))
            if not targets:
                return
            self._pending += len(targets)
            if self._worker is None:
                self._queue = queue.Queue()
                self._worker = threading.Thread(
                    target=self._run,
                    args=(self._queue,),
                    name="eventcast-memory-transport",
                    daemon=True,
                )
                self._worker.start()
            for target in targets:
                self._queue.put((target, data))

    def _detach(self, channel: MemoryChannel) -> None:
        worker = None
        with self._lock:
            handles = self._channels.get(channel.name)
            if handles and channel in handles:
                handles.remove(channel)
                if not handles:
                    del self._channels[channel.name]
            if not self._channels and self._worker is not None:
                worker, self._worker = self._worker, None
                self._queue.put(None)
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout=1.0)

    def _run(self, deliveries: queue.Queue[tuple[MemoryChannel, bytes] | None]) -> None:
        while True:
            item = deliveries.get()
            if item is None:
                return
            target, data = item
            try:
                target._deliver(data)
            except Exception:
                logger.exception("transport_message_dropped", channel=target.name)
            finally:
                with self._idle:
                    self._pending -= 1
                    if not self._pending:
                        self._idle.notify_all()
