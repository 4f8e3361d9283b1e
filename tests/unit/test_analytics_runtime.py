"""
Unit tests for evasoil.runtime.analytics_runtime.AnalyticsRuntime lifecycle.

Validates:
- stop() on a runtime that was never started is a no-op
- stop() releases the live subscription and waits for in-flight range queries
"""

from __future__ import annotations

import threading

from evasoil.runtime.analytics_runtime import AnalyticsRuntime
from evasoil.services.controller import AnalyticsController
from evasoil.store.memory_store import InMemoryReadingStore


class GatedStore(InMemoryReadingStore):
    """Range queries block until `gate` is set."""

    def query(self, start, end):
        self.entered.set()
        self.gate.wait(5.0)
        return super().query(start, end)


def _gated_store() -> GatedStore:
    store = GatedStore()
    store.entered = threading.Event()
    store.gate = threading.Event()
    return store


class RecordingStore(InMemoryReadingStore):
    def __init__(self) -> None:
        super().__init__()
        self.unsubscribed = []

    def unsubscribe(self, handle: int) -> None:
        self.unsubscribed.append(handle)
        super().unsubscribe(handle)


def test_stop_without_start_is_noop() -> None:
    store = RecordingStore()
    runtime = AnalyticsRuntime(AnalyticsController(), store)

    runtime.stop()
    runtime.stop()

    assert store.unsubscribed == []
    assert runtime.subscription.active is False


def test_stop_releases_subscription_and_waits_for_queries() -> None:
    store = _gated_store()
    runtime = AnalyticsRuntime(AnalyticsController(), store)
    runtime.start(initial_token="1h")
    assert runtime.subscription.active
    assert store.entered.wait(2.0)

    threading.Timer(0.1, store.gate.set).start()
    runtime.stop()

    assert runtime.subscription.active is False
    assert runtime.dispatcher.join_all(timeout=0) is True
