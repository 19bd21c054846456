"""Tests for subscription lifecycle helpers."""
from eventcast.bindings import (
    EventState,
    Subscription,
    broadcaster,
    emitter,
    listen,
    listen_broadcast,
)
from eventcast.broadcast.bus import BroadcastBus


def test_listen_passes_payload_only(bus):
    received = []
    subscription = listen("counter", received.append, bus)

    bus.emit("counter", {"count": 1})

    assert received == [{"count": 1}]
    assert subscription.active


def test_subscription_close_is_idempotent(bus):
    received = []
    subscription = listen("counter", received.append, bus)

    subscription.close()
    subscription.close()
    bus.emit("counter", 1)

    assert received == []
    assert not subscription.active
    assert bus.event_names() == []


def test_close_after_bus_cleared_does_not_fail(bus):
    subscription = listen("counter", lambda payload: None, bus)
    bus.clear_all()
    subscription.close()


def test_same_callback_listened_twice_is_independent(bus):
    received = []
    first = listen("x", received.append, bus)
    second = listen("x", received.append, bus)

    bus.emit("x", "a")
    first.close()
    bus.emit("x", "b")
    second.close()

    assert received == ["a", "a", "b"]


def test_subscription_as_context_manager(bus):
    received = []
    with listen("x", received.append, bus) as subscription:
        bus.emit("x", 1)
    bus.emit("x", 2)

    assert received == [1]
    assert not subscription.active


def test_subscription_runs_unsubscribe_once():
    calls = []
    subscription = Subscription(lambda: calls.append(1))
    subscription.close()
    subscription.close()
    assert calls == [1]


def test_emitter_binds_bus(bus):
    received = []
    bus.on("x", lambda event: received.append(event.payload))

    emit = emitter(bus)
    emit("x", 3)
    emit("x")

    assert received == [3, None]


def test_event_state_tracks_latest_payload(bus):
    state = EventState("counter", {"count": 0}, bus)
    assert state.value == {"count": 0}

    bus.emit("counter", {"count": 5})
    assert state.value == {"count": 5}

    state.close()
    bus.emit("counter", {"count": 9})
    assert state.value == {"count": 5}
    state.close()


def test_event_state_context_manager(bus):
    with EventState("mode", "light", bus) as state:
        bus.emit("mode", "dark")
        assert state.value == "dark"
    assert bus.listener_count("mode") == 0


def test_broadcaster_and_listen_broadcast(broadcast_bus, hub):
    received = []
    subscription = listen_broadcast("chan", received.append, broadcast_bus)
    send = broadcaster(broadcast_bus)

    send("chan", {"message": "hello"})
    assert hub.flush()
    subscription.close()
    send("chan", "ignored")
    assert hub.flush()

    assert received == [{"message": "hello"}]
    assert broadcast_bus.is_channel_active("chan")


def test_listen_broadcast_close_after_channel_closed(hub):
    bus = BroadcastBus(hub)
    subscription = listen_broadcast("chan", lambda data: None, bus)
    bus.close("chan")

    subscription.close()
    subscription.close()

    assert not bus.is_channel_active("chan")
