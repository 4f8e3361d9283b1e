"""
Unit tests for ingest_server.ingest_server.create_app.

Uses Flask's test client against an in-memory store with a fixed clock.

Validates:
- POST coerces fields (aliases, defaults, non-numeric values) and echoes the row
- POST rejects a body that is not a JSON object
- GET without params returns the latest rows, newest first
- GET with a range is inclusive and validates timestamps
- DELETE actions and their error responses
- a given push server is subscribed to inserts
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import List

import pytest

from evasoil.domain.models import Reading
from evasoil.store.memory_store import InMemoryReadingStore
from ingest_server.ingest_server import LATEST_LIMIT, create_app

T0 = datetime(2026, 1, 1, 0, 0, 0)


class StepClock:
    def __init__(self) -> None:
        self.t = T0

    def __call__(self) -> datetime:
        now = self.t
        self.t += timedelta(minutes=1)
        return now


class FakePushServer:
    def __init__(self) -> None:
        self.sent: List[Reading] = []

    def send(self, reading: Reading) -> None:
        self.sent.append(reading)


@pytest.fixture()
def store() -> InMemoryReadingStore:
    return InMemoryReadingStore(clock=StepClock())


@pytest.fixture()
def client(store):
    return create_app(store).test_client()


def test_post_stores_coerced_reading(client, store) -> None:
    resp = client.post(
        "/api/sensor-data",
        json={"device_id": "ESP32_A", "soil": "41.5", "temperature": 22, "light_lux": "abc"},
    )

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["success"] is True
    assert body["data"]["device_id"] == "ESP32_A"
    assert body["data"]["moisture"] == 41.5
    assert body["data"]["light_lux"] == 0.0
    assert body["data"]["created_at"] == T0.isoformat()
    assert len(store) == 1


@pytest.mark.parametrize(
    "data, content_type",
    [
        ("garbage", "text/plain"),
        ("{not json", "application/json"),
        ("[1, 2]", "application/json"),
        ("", "application/json"),
    ],
)
def test_post_rejects_body_that_is_not_a_json_object(client, store, data, content_type) -> None:
    resp = client.post("/api/sensor-data", data=data, content_type=content_type)

    assert resp.status_code == 400
    assert resp.get_json()["success"] is False
    assert len(store) == 0


def test_post_empty_object_uses_defaults(client, store) -> None:
    resp = client.post("/api/sensor-data", data="{}", content_type="text/plain")

    assert resp.status_code == 200
    r = store.latest(1)[0]
    assert r.device_id == "ESP32_PlantGuard_01"
    assert (r.moisture, r.temperature, r.light_lux) == (0.0, 0.0, 0.0)


def test_post_insert_failure_returns_500() -> None:
    class BrokenStore(InMemoryReadingStore):
        def insert(self, *args, **kwargs):
            raise RuntimeError("disk full")

    resp = create_app(BrokenStore()).test_client().post("/api/sensor-data", json={"soil": 1})
    assert resp.status_code == 500
    assert resp.get_json() == {"success": False, "error": "disk full"}


def test_get_latest_is_newest_first_and_capped(client, store) -> None:
    for i in range(LATEST_LIMIT + 5):
        store.insert("d", i, 20, 100)

    data = client.get("/api/sensor-data").get_json()["data"]

    assert len(data) == LATEST_LIMIT
    assert data[0]["moisture"] == LATEST_LIMIT + 4
    assert data[0]["id"] > data[-1]["id"]


def test_get_range_is_inclusive_and_ascending(client, store) -> None:
    for i in range(5):
        store.insert("d", i, 20, 100)  # T0 .. T0+4min

    resp = client.get(
        "/api/sensor-data",
        query_string={"from": (T0 + timedelta(minutes=1)).isoformat(), "to": (T0 + timedelta(minutes=3)).isoformat()},
    )

    assert resp.status_code == 200
    assert [row["moisture"] for row in resp.get_json()["data"]] == [1.0, 2.0, 3.0]


def test_get_range_without_to_defaults_to_now(client, store) -> None:
    store.insert("d", 1, 20, 100)
    resp = client.get("/api/sensor-data", query_string={"from": T0.isoformat()})
    assert [row["moisture"] for row in resp.get_json()["data"]] == [1.0]


@pytest.mark.parametrize(
    "params",
    [
        {"from": "yesterday", "to": "2026-01-01T00:00:00"},
        {"from": "2026-01-01T00:00:00", "to": "soon"},
        {"to": "2026-01-01T00:00:00"},
    ],
)
def test_get_bad_range_params_return_400(client, params) -> None:
    resp = client.get("/api/sensor-data", query_string=params)
    assert resp.status_code == 400
    assert resp.get_json()["success"] is False


def test_delete_clear_all(client, store) -> None:
    store.insert("a", 1, 1, 1)
    resp = client.delete("/api/sensor-data", query_string={"action": "clear_all"})

    assert resp.status_code == 200
    assert resp.get_json()["message"] == "All history cleared"
    assert len(store) == 0


def test_delete_clear_device(client, store) -> None:
    store.insert("a", 1, 1, 1)
    store.insert("b", 1, 1, 1)
    resp = client.delete("/api/sensor-data", query_string={"action": "clear_device", "device_id": "a"})

    assert resp.status_code == 200
    assert resp.get_json()["message"] == "History cleared for a"
    assert [r.device_id for r in store.latest()] == ["b"]


@pytest.mark.parametrize(
    "params, error",
    [
        ({"action": "clear_device"}, "Device ID required"),
        ({"action": "drop_tables"}, "Invalid action"),
        ({}, "Invalid action"),
    ],
)
def test_delete_errors(client, params, error) -> None:
    resp = client.delete("/api/sensor-data", query_string=params)
    assert resp.status_code == 400
    assert resp.get_json() == {"success": False, "error": error}


def test_health_reports_row_count(client, store) -> None:
    store.insert("a", 1, 1, 1)
    assert client.get("/health").get_json() == {"status": "ok", "readings": 1}


def test_push_server_receives_inserts(store) -> None:
    push = FakePushServer()
    client = create_app(store, push_server=push).test_client()

    client.post("/api/sensor-data", json={"moisture": 55})

    assert [r.moisture for r in push.sent] == [55.0]
