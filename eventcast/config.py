"""Environment-driven configuration for eventcast.

Provides the settings used to build the default broadcast bus and its
transport.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from eventcast.broadcast.transport import Transport

TRANSPORT_KINDS = ("memory", "redis")


def get_redis_url() -> str:
    return os.environ.get("REDIS_URL", "redis://127.0.0.1:6379/0")


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes")


@dataclass
class BusSettings:
    """Settings for the buses and their transport.

    Attributes:
        transport: Broadcast transport kind ("memory" or "redis")
        redis_url: Redis connection URL (redis transport only)
        channel_prefix: Prefix for Redis channel keys
        listener_prefix: Prefix for generated listener ids
        log_level: Level passed to ``configure_logging``
        log_json: Emit JSON logs instead of console output
    """

    transport: str = "memory"
    redis_url: str = "redis://127.0.0.1:6379/0"
    channel_prefix: str = "eventcast:"
    listener_prefix: str = "listener_"
    log_level: str = "INFO"
    log_json: bool = False

    def __post_init__(self):
        self.transport = self.transport.strip().lower()
        if self.transport not in TRANSPORT_KINDS:
            raise ValueError(
                f"transport must be one of {', '.join(TRANSPORT_KINDS)}, got {self.transport!r}"
            )
        if not self.listener_prefix:
            raise ValueError("listener_prefix must not be empty")

    @classmethod
    def from_env(cls) -> BusSettings:
        """Load settings from environment variables.

        Returns:
            BusSettings instance
        """
        return cls(
            transport=os.environ.get("EVENTCAST_TRANSPORT", "memory"),
            redis_url=get_redis_url(),
            channel_prefix=os.environ.get("EVENTCAST_CHANNEL_PREFIX", "eventcast:"),
            listener_prefix=os.environ.get("EVENTCAST_LISTENER_PREFIX", "listener_"),
            log_level=os.environ.get("EVENTCAST_LOG_LEVEL", "INFO"),
            log_json=_env_flag("EVENTCAST_LOG_JSON"),
        )


def build_transport(settings: BusSettings) -> Transport:
    """Create the broadcast transport described by ``settings``."""
    if settings.transport == "redis":
        from eventcast.broadcast.redis_transport import RedisTransport

        return RedisTransport(settings.redis_url, prefix=settings.channel_prefix)

    from eventcast.broadcast.memory import MemoryTransport

    return MemoryTransport()
