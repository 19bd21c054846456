"""Pytest configuration and shared fixtures."""
import os

import pytest

from eventcast.broadcast.bus import BroadcastBus
from eventcast.broadcast.memory import MemoryTransport
from eventcast.events.bus import EventBus


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "integration: mark test as needing a live Redis server")


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless EVENTCAST_INTEGRATION=1."""
    if os.environ.get("EVENTCAST_INTEGRATION") in ("1", "true", "True"):
        return
    skip = pytest.mark.skip(reason="Set EVENTCAST_INTEGRATION=1 to run integration tests")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip)


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def hub():
    return MemoryTransport()


@pytest.fixture
def broadcast_bus(hub):
    bus = BroadcastBus(hub)
    yield bus
    bus.close_all()
