"""
Unit tests for evasoil.store.memory_store.InMemoryReadingStore.

Validates:
- ids are monotonically increasing and created_at comes from the clock
- range queries are inclusive of both ends and ascending
- latest() is newest first
- subscribers are notified after insert; a failing subscriber does not
  break the insert or other subscribers
- clear_all / clear_device
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import List

from evasoil.domain.models import Reading
from evasoil.store.memory_store import InMemoryReadingStore

T0 = datetime(2026, 1, 1, 0, 0, 0)


class FakeClock:
    """Clock advancing one minute per call."""

    def __init__(self) -> None:
        self.t = T0

    def __call__(self) -> datetime:
        now = self.t
        self.t += timedelta(minutes=1)
        return now


def _store() -> InMemoryReadingStore:
    return InMemoryReadingStore(clock=FakeClock())


def test_insert_assigns_increasing_ids_and_timestamps() -> None:
    s = _store()
    a = s.insert("d", 10, 20, 30)
    b = s.insert("d", 11, 21, 31)

    assert b.id > a.id
    assert a.created_at == T0
    assert b.created_at == T0 + timedelta(minutes=1)
    assert len(s) == 2


def test_query_is_inclusive_and_ascending() -> None:
    s = _store()
    rows = [s.insert("d", i, 20, 30) for i in range(5)]  # t = 0..4 min

    got = s.query(T0 + timedelta(minutes=1), T0 + timedelta(minutes=3))
    assert [r.id for r in got] == [rows[1].id, rows[2].id, rows[3].id]


def test_query_with_explicit_out_of_order_timestamps() -> None:
    s = _store()
    late = s.insert("d", 1, 1, 1, created_at=T0 + timedelta(hours=2))
    early = s.insert("d", 2, 2, 2, created_at=T0 + timedelta(hours=1))

    got = s.query(T0, T0 + timedelta(hours=3))
    assert [r.id for r in got] == [early.id, late.id]


def test_latest_newest_first_and_limit() -> None:
    s = _store()
    rows = [s.insert("d", i, 20, 30) for i in range(5)]

    assert [r.id for r in s.latest(3)] == [rows[4].id, rows[3].id, rows[2].id]
    assert s.latest(0) == []


def test_subscribers_notified_and_isolated() -> None:
    s = _store()
    seen: List[Reading] = []

    def broken(_: Reading) -> None:
        raise RuntimeError("subscriber bug")

    s.subscribe(broken)
    handle = s.subscribe(seen.append)

    r = s.insert("d", 1, 2, 3)
    assert seen == [r]

    s.unsubscribe(handle)
    s.insert("d", 1, 2, 3)
    assert seen == [r]


def test_unsubscribe_unknown_handle_is_ignored() -> None:
    s = _store()
    seen: List[Reading] = []
    s.subscribe(seen.append)

    s.unsubscribe(12345)
    r = s.insert("d", 1, 2, 3)

    assert seen == [r]


def test_clear_all_and_clear_device() -> None:
    s = _store()
    s.insert("a", 1, 1, 1)
    s.insert("b", 1, 1, 1)
    s.insert("a", 1, 1, 1)

    assert s.clear_device("a") is True
    assert [r.device_id for r in s.latest()] == ["b"]

    assert s.clear_all() is True
    assert len(s) == 0
    assert s.query(T0, T0 + timedelta(days=1)) == []
