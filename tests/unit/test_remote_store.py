"""
Unit tests for evasoil.store.remote_store.HttpReadingStore.

HTTP calls are served by a fake `requests.Session`; the live push receiver
is replaced by a fake thread class. No network I/O is performed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytest
import requests

from evasoil.domain.errors import QueryFailure
from evasoil.domain.models import Reading
from evasoil.store.remote_store import HttpReadingStore, HttpStoreConfig
from evasoil.transport.ndjson import reading_to_obj

START = datetime(2026, 1, 1, 0, 0, 0)
END = datetime(2026, 1, 1, 6, 0, 0)


@dataclass
class FakeResponse:
    body: Any
    status: int = 200

    def raise_for_status(self) -> None:
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")

    def json(self) -> Any:
        if isinstance(self.body, Exception):
            raise self.body
        return self.body


@dataclass
class FakeSession:
    """Records calls and returns queued responses (or raises queued exceptions)."""

    responses: List[Any] = field(default_factory=list)
    calls: List[Dict[str, Any]] = field(default_factory=list)

    def _next(self, method: str, url: str, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def get(self, url: str, **kwargs):
        return self._next("GET", url, **kwargs)

    def delete(self, url: str, **kwargs):
        return self._next("DELETE", url, **kwargs)


def _r(i: int, hour: int) -> Reading:
    return Reading("d", 40.0 + i, 20.0, 300.0, datetime(2026, 1, 1, hour, 0, 0), id=i)


def _store(session: FakeSession) -> HttpReadingStore:
    return HttpReadingStore(HttpStoreConfig(base_url="http://ingest:8000/", timeout_s=1.5), session=session)


def test_query_sends_iso_range_and_decodes_sorted() -> None:
    session = FakeSession(
        responses=[FakeResponse({"success": True, "data": [reading_to_obj(_r(2, 3)), reading_to_obj(_r(1, 1))]})]
    )
    store = _store(session)

    got = store.query(START, END)

    assert [r.id for r in got] == [1, 2]
    call = session.calls[0]
    assert call["method"] == "GET"
    assert call["url"] == "http://ingest:8000/api/sensor-data"
    assert call["params"] == {"from": "2026-01-01T00:00:00", "to": "2026-01-01T06:00:00"}
    assert call["timeout"] == 1.5


@pytest.mark.parametrize(
    "response",
    [
        requests.ConnectionError("refused"),
        FakeResponse({"success": False}, status=500),
        FakeResponse(ValueError("not json")),
        FakeResponse({"success": True}),
        FakeResponse({"success": True, "data": [{"id": 1}]}),
    ],
)
def test_query_failures_raise_query_failure(response) -> None:
    store = _store(FakeSession(responses=[response]))
    with pytest.raises(QueryFailure):
        store.query(START, END)


def test_clear_all_and_clear_device() -> None:
    session = FakeSession(responses=[FakeResponse({"success": True}), FakeResponse({"success": True})])
    store = _store(session)

    assert store.clear_all() is True
    assert store.clear_device("ESP32") is True
    assert session.calls[0]["params"] == {"action": "clear_all"}
    assert session.calls[1]["params"] == {"action": "clear_device", "device_id": "ESP32"}


def test_clear_returns_false_on_error() -> None:
    store = _store(FakeSession(responses=[requests.Timeout("slow"), FakeResponse({"success": False}, status=400)]))
    assert store.clear_all() is False
    assert store.clear_device("") is False


class FakeReceiver:
    """Stands in for LivePushReceiverThread and records lifecycle calls."""

    instances: List["FakeReceiver"] = []

    def __init__(self, cfg, callback, stop_event: Optional[object] = None):
        self.cfg = cfg
        self.callback = callback
        self.started = False
        self.stopped = False
        self.joined = False
        FakeReceiver.instances.append(self)

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def join(self, timeout: float | None = 2.0) -> None:
        self.joined = True


def test_subscribe_starts_receiver_and_unsubscribe_stops_it(monkeypatch) -> None:
    FakeReceiver.instances = []
    monkeypatch.setattr("evasoil.store.remote_store.LivePushReceiverThread", FakeReceiver)

    store = HttpReadingStore(HttpStoreConfig(push_host="10.0.0.2", push_port=9100), session=FakeSession())
    seen: List[Reading] = []
    handle = store.subscribe(seen.append)

    rx = FakeReceiver.instances[0]
    assert rx.started
    assert (rx.cfg.host, rx.cfg.port) == ("10.0.0.2", 9100)

    rx.callback(_r(1, 1))
    assert [r.id for r in seen] == [1]

    store.unsubscribe(handle)
    assert rx.stopped and rx.joined

    # second release of the same handle is a no-op
    rx.stopped = rx.joined = False
    store.unsubscribe(handle)
    assert not rx.stopped and not rx.joined
