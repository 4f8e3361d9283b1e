"""
Unit tests for evasoil.runtime.live_subscription.LiveSubscription.

The subscription must reach ``store.subscribe`` once and
``store.unsubscribe`` exactly once, however it is released.
"""

from __future__ import annotations

import threading
from typing import List

import pytest

from evasoil.runtime.live_subscription import LiveSubscription


class CountingStore:
    """Fake store counting subscribe/unsubscribe calls."""

    def __init__(self) -> None:
        self.subscribed: List[object] = []
        self.unsubscribed: List[object] = []

    def subscribe(self, callback) -> int:
        self.subscribed.append(callback)
        return 42

    def unsubscribe(self, handle) -> None:
        self.unsubscribed.append(handle)


def test_context_manager_subscribes_and_releases_once() -> None:
    store = CountingStore()
    cb = lambda r: None  # noqa: E731

    with LiveSubscription(store, cb) as sub:
        assert sub.active
        assert store.subscribed == [cb]

    assert store.unsubscribed == [42]
    assert not sub.active


def test_release_is_idempotent() -> None:
    store = CountingStore()
    sub = LiveSubscription(store, lambda r: None).acquire()
    sub.release()
    sub.release()
    assert store.unsubscribed == [42]


def test_release_on_exception() -> None:
    store = CountingStore()
    with pytest.raises(RuntimeError):
        with LiveSubscription(store, lambda r: None):
            raise RuntimeError("session crashed")
    assert store.unsubscribed == [42]


def test_release_before_acquire_does_nothing() -> None:
    store = CountingStore()
    LiveSubscription(store, lambda r: None).release()
    assert store.unsubscribed == []


def test_cannot_acquire_twice() -> None:
    store = CountingStore()
    sub = LiveSubscription(store, lambda r: None).acquire()
    with pytest.raises(RuntimeError):
        sub.acquire()
    assert len(store.subscribed) == 1


def test_concurrent_release_unsubscribes_once() -> None:
    store = CountingStore()
    sub = LiveSubscription(store, lambda r: None).acquire()

    threads = [threading.Thread(target=sub.release) for _ in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert store.unsubscribed == [42]


class GatedStore(CountingStore):
    """subscribe() blocks until `gate` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.entered = threading.Event()
        self.gate = threading.Event()

    def subscribe(self, callback) -> int:
        self.entered.set()
        self.gate.wait(5.0)
        return super().subscribe(callback)


def test_release_during_subscribe_unsubscribes_real_handle() -> None:
    store = GatedStore()
    sub = LiveSubscription(store, lambda r: None)

    acquirer = threading.Thread(target=sub.acquire)
    acquirer.start()
    assert store.entered.wait(2.0)

    releaser = threading.Thread(target=sub.release)
    releaser.start()
    releaser.join(0.1)
    assert store.unsubscribed == []

    store.gate.set()
    acquirer.join(2.0)
    releaser.join(2.0)

    assert store.unsubscribed == [42]
    assert not sub.active


def test_failed_subscribe_can_be_retried() -> None:
    class FlakyStore(CountingStore):
        calls = 0

        def subscribe(self, callback) -> int:
            self.calls += 1
            if self.calls == 1:
                raise ConnectionError("push server down")
            return super().subscribe(callback)

    store = FlakyStore()
    sub = LiveSubscription(store, lambda r: None)
    with pytest.raises(ConnectionError):
        sub.acquire()
    assert not sub.active

    sub.acquire()
    assert sub.active
