"""Tests for the in-process channel hub."""
import threading

import pytest

from eventcast.broadcast.memory import MemoryTransport
from eventcast.broadcast.transport import (
    ChannelHandle,
    PayloadNotSerializableError,
    Transport,
    TransportClosedError,
)


def test_implements_transport_protocols(hub):
    channel = hub.open("chan")
    assert isinstance(hub, Transport)
    assert isinstance(channel, ChannelHandle)
    channel.close()


def test_delivery_reaches_every_handle_including_sender(hub):
    sender, receiver = hub.open("chan"), hub.open("chan")
    seen_sender, seen_receiver = [], []
    sender.add_listener(seen_sender.append)
    receiver.add_listener(seen_receiver.append)

    sender.post({"n": 1})
    assert hub.flush()

    assert seen_sender == [{"n": 1}]
    assert seen_receiver == [{"n": 1}]


def test_delivery_happens_off_the_posting_thread(hub):
    channel = hub.open("chan")
    threads = []
    channel.add_listener(lambda data: threads.append(threading.current_thread()))

    channel.post("x")
    assert hub.flush()

    assert threads and threads[0] is not threading.current_thread()


def test_payload_is_cloned(hub):
    channel = hub.open("chan")
    received = []
    channel.add_listener(received.append)
    payload = {"items": [1, 2]}

    channel.post(payload)
    payload["items"].append(3)
    assert hub.flush()

    assert received == [{"items": [1, 2]}]
    assert received[0] is not payload


def test_unpicklable_payload_raises(hub):
    channel = hub.open("chan")
    with pytest.raises(PayloadNotSerializableError):
        channel.post(lambda: None)


def test_post_after_close_raises(hub):
    channel = hub.open("chan")
    channel.close()
    assert channel.closed
    with pytest.raises(TransportClosedError):
        channel.post(1)


def test_closed_handle_stops_receiving(hub):
    sender, receiver = hub.open("chan"), hub.open("chan")
    received = []
    receiver.add_listener(received.append)
    receiver.close()

    sender.post("late")
    assert hub.flush()

    assert received == []
    assert hub.running
    sender.close()
    assert not hub.running


def test_remove_listener(hub):
    channel = hub.open("chan")
    received = []
    channel.add_listener(received.append)
    channel.remove_listener(received.append)
    channel.remove_listener(received.append)

    channel.post(1)
    assert hub.flush()

    assert received == []


def test_listener_failure_does_not_stop_worker(hub):
    channel = hub.open("chan")
    received = []

    def broken(data):
        raise RuntimeError("boom")

    channel.add_listener(broken)
    channel.add_listener(received.append)

    channel.post(1)
    channel.post(2)
    assert hub.flush()

    assert received == [1, 2]


def test_messages_keep_post_order(hub):
    channel = hub.open("chan")
    received = []
    channel.add_listener(received.append)

    for i in range(100):
        channel.post(i)
    assert hub.flush()

    assert received == list(range(100))


def test_flush_times_out_when_delivery_blocks(hub):
    channel = hub.open("chan")
    release = threading.Event()
    channel.add_listener(lambda data: release.wait(2))

    channel.post(1)
    assert hub.flush(timeout=0.05) is False

    release.set()
    assert hub.flush()


def test_flush_without_traffic_returns_immediately():
    assert MemoryTransport().flush(timeout=0)


def test_worker_stops_when_last_handle_closes(hub):
    baseline = threading.active_count()
    channel = hub.open("chan")
    received = []
    channel.add_listener(received.append)

    channel.post(1)
    assert hub.flush()
    assert hub.running

    channel.close()

    assert not hub.running
    assert threading.active_count() == baseline
    assert received == [1]


def test_worker_restarts_after_stopping(hub):
    first = hub.open("chan")
    first.post("warm-up")
    first.close()

    second = hub.open("chan")
    received = []
    second.add_listener(received.append)
    second.post("again")
    assert hub.flush()

    assert received == ["again"]
    second.close()
    assert not hub.running


def test_open_and_close_without_traffic_starts_no_worker():
    hub = MemoryTransport()
    hub.open("a").close()
    assert not hub.running
