from __future__ import annotations

import re
import threading

import pytest

from mtsics_sim.core.events import EventBus
from mtsics_sim.core.model import Event, EventKind


def test_events_reach_every_subscriber_in_order() -> None:
    bus = EventBus()
    first: list[str] = []
    second: list[str] = []
    bus.subscribe("tx", lambda e: first.append(e.payload))
    bus.subscribe(EventKind.TX, lambda e: second.append(e.payload))

    for n in range(20):
        bus.publish(EventKind.TX, f"msg {n}")

    assert bus.flush(timeout=2.0)
    assert first == [f"msg {n}" for n in range(20)]
    assert second == first
    bus.close()


def test_event_carries_utc_timestamp() -> None:
    bus = EventBus()
    received: list[Event] = []
    bus.subscribe(EventKind.STATE, received.append)

    bus.publish(EventKind.STATE, "Offline")

    assert bus.flush(timeout=2.0)
    assert received[0].kind is EventKind.STATE
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", received[0].utc)
    bus.close()


def test_failing_subscriber_does_not_stop_delivery() -> None:
    bus = EventBus()
    received: list[str] = []

    def _boom(_: Event) -> None:
        raise RuntimeError("subscriber bug")

    bus.subscribe(EventKind.RX, _boom)
    bus.subscribe(EventKind.RX, lambda e: received.append(e.payload))

    bus.publish(EventKind.RX, "S")
    bus.publish(EventKind.RX, "I4")

    assert bus.flush(timeout=2.0)
    assert received == ["S", "I4"]
    bus.close()


def test_publish_does_not_wait_for_slow_subscriber() -> None:
    bus = EventBus()
    release = threading.Event()
    bus.subscribe(EventKind.TX, lambda _: release.wait(5.0))

    bus.publish(EventKind.TX, "one")
    bus.publish(EventKind.TX, "two")

    assert not bus.flush(timeout=0.05)
    release.set()
    assert bus.flush(timeout=2.0)
    bus.close()


def test_unsubscribe_stops_delivery() -> None:
    bus = EventBus()
    received: list[str] = []
    unsubscribe = bus.subscribe(EventKind.ERROR, lambda e: received.append(e.payload))

    bus.publish(EventKind.ERROR, "first")
    assert bus.flush(timeout=2.0)
    unsubscribe()
    bus.publish(EventKind.ERROR, "second")
    assert bus.flush(timeout=2.0)

    assert received == ["first"]
    bus.close()


def test_unknown_kind_rejected() -> None:
    bus = EventBus()
    with pytest.raises(ValueError):
        bus.subscribe("weight", lambda _: None)


def test_timed_out_flush_leaves_no_threads_behind() -> None:
    bus = EventBus()
    release = threading.Event()
    bus.subscribe(EventKind.TX, lambda _: release.wait(5.0))
    bus.publish(EventKind.TX, "blocked")
    baseline = threading.active_count()

    for _ in range(5):
        assert not bus.flush(timeout=0.01)

    assert threading.active_count() == baseline
    release.set()
    assert bus.flush(timeout=2.0)
    bus.close()
