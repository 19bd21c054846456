"""
Redis pub/sub broadcast transport.

Lets buses in separate processes (or hosts) share channels. Each open handle
owns a Redis ``PubSub`` subscribed to ``<prefix><name>`` and a background
worker thread. Payloads travel as JSON.
"""

from __future__ import annotations

import json
import threading
from typing import Any

from eventcast.broadcast.transport import (
    MessageCallback,
    PayloadNotSerializableError,
    TransportClosedError,
    TransportError,
)
from eventcast.config import get_redis_url
from eventcast.events.isolation import call_isolated
from eventcast.logging_config import get_logger

logger = get_logger(__name__)


class RedisChannel:
    """Channel handle backed by a Redis subscription."""

    def __init__(self, client: Any, name: str, key: str, poll_interval: float = 0.01):
        self.name = name
        self.key = key
        self._client = client
        self._listeners: list[MessageCallback] = []
        self._lock = threading.Lock()
        self._closed = False
        self._pubsub = client.pubsub(ignore_subscribe_messages=True)
        try:
            self._pubsub.subscribe(**{key: self._on_message})
            self._worker = self._pubsub.run_in_thread(sleep_time=poll_interval, daemon=True)
        except Exception:
            self._pubsub.close()
            raise

    @property
    def closed(self) -> bool:
        return self._closed

    def post(self, payload: Any) -> None:
        if self._closed:
            raise TransportClosedError(self.name)
        try:
            message = json.dumps(payload)
        except (TypeError, ValueError) as exc:
            raise PayloadNotSerializableError(self.name, str(exc)) from exc
        self._client.publish(self.key, message)

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
        try:
            self._worker.stop()
            self._pubsub.close()
        except Exception as exc:
            raise TransportError(f"Failed to close channel '{self.name}': {exc}") from exc

    def _on_message(self, message: dict[str, Any]) -> None:
        if self._closed:
            return
        raw = message.get("data")
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            payload = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("transport_message_dropped", channel=self.name, reason="invalid_json")
            return
        with self._lock:
            listeners = list(self._listeners)
        for callback in listeners:
            call_isolated(callback, payload, source="transport", name=self.name)

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<RedisChannel {self.key!r} {state}>"


class RedisTransport:
    """
    Transport publishing through a Redis server.

    Args:
        url: Redis URL (defaults to ``REDIS_URL``)
        prefix: Prefix applied to every channel key
        client: Pre-built Redis client; created lazily from ``url`` otherwise
        poll_interval: Sleep between polls of each subscription worker
    """

    def __init__(
        self,
        url: str | None = None,
        *,
        prefix: str = "eventcast:",
        client: Any | None = None,
        poll_interval: float = 0.01,
    ):
        self.url = url or get_redis_url()
        self.prefix = prefix
        self.poll_interval = poll_interval
        self._client = client
        self._lock = threading.Lock()

    @property
    def client(self) -> Any:
        with self._lock:
            if self._client is None:
                from redis import Redis

                self._client = Redis.from_url(self.url)
            return self._client

    def open(self, name: str) -> RedisChannel:
        try:
            return RedisChannel(
                self.client,
                name,
                f"{self.prefix}{name}",
                poll_interval=self.poll_interval,
            )
        except TransportError:
            raise
        except Exception as exc:
            raise TransportError(f"Failed to open channel '{name}': {exc}") from exc
