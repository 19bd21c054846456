"""
Transport interface consumed by the broadcast bus.

A transport opens named, duplex channel handles. Every open handle for the
same name, in any context attached to the same transport namespace, receives
what any of them posts. The bus never implements delivery itself.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

MessageCallback = Callable[[Any], None]


class TransportError(Exception):
    """Base error raised by broadcast transports."""


class TransportClosedError(TransportError):
    """Raised when posting through a handle that has been closed."""

    def __init__(self, name: str, message: str | None = None):
        self.name = name
        self.message = message or f"Channel '{name}' is closed"
        super().__init__(self.message)


class PayloadNotSerializableError(TransportError):
    """Raised when a payload cannot cross the transport boundary."""

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Payload for channel '{name}' is not serializable: {reason}")


@runtime_checkable
class ChannelHandle(Protocol):
    """An open endpoint of a named channel."""

    name: str

    @property
    def closed(self) -> bool: ...

    def post(self, payload: Any) -> None: ...

    def add_listener(self, callback: MessageCallback) -> None: ...

    def remove_listener(self, callback: MessageCallback) -> None: ...

    def close(self) -> None: ...


@runtime_checkable
class Transport(Protocol):
    """Factory for channel handles."""

    def open(self, name: str) -> ChannelHandle: ...
