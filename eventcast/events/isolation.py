"""
Per-listener failure isolation.

A failing listener is logged with the name it was dispatched for and never
stops its siblings or reaches the emitter.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from eventcast.logging_config import get_logger

logger = get_logger(__name__)


def describe_listener(listener: Callable[..., Any]) -> str:
    """Readable name for a callable (function, bound method, partial, instance)."""
    name = getattr(listener, "__qualname__", None) or getattr(listener, "__name__", None)
    if name is None:
        func = getattr(listener, "func", None)
        if func is not None:
            return describe_listener(func)
        return type(listener).__name__
    return name


def call_isolated(
    listener: Callable[[Any], Any],
    argument: Any,
    *,
    source: str,
    name: str,
) -> bool:
    """
    Invoke one listener, absorbing any exception it raises.

    Args:
        listener: Callback to invoke
        argument: Single argument passed to the callback
        source: Dispatch origin ("event", "broadcast" or "transport")
        name: Event or channel name the dispatch is for

    Returns:
        True if the listener returned normally, False if it raised
    """
    try:
        listener(argument)
    except Exception:
        logger.exception(
            "listener_failed",
            source=source,
            name=name,
            listener=describe_listener(listener),
        )
        return False
    return True
