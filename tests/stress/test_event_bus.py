"""
Unit and stress tests for evasoil.runtime.event_bus.EventBus.

Unit tests validate:
- publish enqueues events in order when capacity is available
- a LiveInsert published into a full queue is dropped and counted
- control events are never dropped

Stress tests validate:
- publish is safe under concurrent calls from multiple threads
- the bus stays bounded and does not deadlock under high contention

Notes
-----
Thread stress tests are probabilistic: passing increases confidence but does not
prove the absence of races. Run repeatedly for higher confidence.
"""

from __future__ import annotations

import threading
from datetime import datetime
from queue import Empty, Queue
from typing import List

import pytest

from evasoil.domain.events import LiveInsert, QueryCompleted, ThresholdsChanged
from evasoil.domain.models import Reading
from evasoil.runtime.event_bus import EventBus


def _insert(i: int) -> LiveInsert:
    return LiveInsert(Reading("d", 50.0, 20.0, 300.0, datetime(2026, 1, 1, 0, 0, 0), id=i))


def _drain(q, limit: int = 10_000) -> list:
    out = []
    for _ in range(limit):
        try:
            out.append(q.get_nowait())
        except Empty:
            break
    return out


def test_publish_preserves_order() -> None:
    bus = EventBus()
    events = [_insert(1), QueryCompleted(generation=1, readings=()), _insert(2), ThresholdsChanged()]

    for ev in events:
        bus.publish(ev)

    assert _drain(bus.events_q) == events


def test_live_insert_dropped_when_full() -> None:
    bus = EventBus(events_q=Queue(maxsize=3))
    for i in range(3):
        bus.publish(_insert(i))

    bus.publish(_insert(99))

    assert bus.dropped == 1
    assert [ev.reading.id for ev in _drain(bus.events_q)] == [0, 1, 2]


def test_control_event_waits_for_room() -> None:
    bus = EventBus(events_q=Queue(maxsize=1))
    bus.publish(_insert(0))

    t = threading.Thread(target=bus.publish, args=(QueryCompleted(generation=1, readings=()),))
    t.start()
    t.join(0.1)
    assert t.is_alive()

    bus.events_q.get_nowait()
    t.join(2.0)
    assert not t.is_alive()
    assert isinstance(bus.events_q.get_nowait(), QueryCompleted)
    assert bus.dropped == 0


@pytest.mark.stress
def test_event_bus_concurrent_live_producers() -> None:
    """
    Stress-test publish from multiple threads concurrently.

    Every published LiveInsert is either queued or counted as dropped.
    """
    bus = EventBus(events_q=Queue(maxsize=1000))
    n_threads, per_thread = 16, 3000
    start = threading.Barrier(n_threads)
    errors: List[BaseException] = []

    def producer(tid: int) -> None:
        try:
            start.wait()
            for k in range(per_thread):
                bus.publish(_insert(tid * 1_000_000 + k))
        except BaseException as e:
            errors.append(e)

    threads = [threading.Thread(target=producer, args=(t,)) for t in range(n_threads)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert all(not t.is_alive() for t in threads), "A producer thread did not finish (possible deadlock)"
    if errors:
        raise AssertionError(f"Concurrency test caught exceptions: {errors!r}")

    queued = _drain(bus.events_q)
    assert len(queued) <= 1000
    assert len(queued) + bus.dropped == n_threads * per_thread
    assert all(isinstance(e, LiveInsert) for e in queued)
