from __future__ import annotations

import argparse
import logging
import math
import random
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import requests

from evasoil.ingest.coercion import DEFAULT_DEVICE_ID, coerce_submission
from evasoil.logging_config import setup_logging
from evasoil.store.memory_store import InMemoryReadingStore

LOGGER = logging.getLogger(__name__)

Payload = Dict[str, Any]
PayloadSink = Callable[[Payload], None]


@dataclass
class FakeDevice:
    """
    Stand-in for the ESP32 plant monitor.

    Behavior
    --------
    - Soil moisture dries slowly and jumps back up when "watered"
    - Temperature follows a slow sine around 22 °C with noise
    - Light follows a clipped sine (day/night), occasionally dim

    Each :meth:`next_payload` call advances one sample and returns the JSON
    body the real firmware POSTs (``soil`` / ``temperature`` / ``light_lux``).

    Parameters
    ----------
    device_id
        Reported device id.
    period_samples
        Samples per simulated day (controls sine speed).
    seed
        RNG seed for deterministic runs.
    """

    device_id: str = DEFAULT_DEVICE_ID
    period_samples: int = 360
    seed: Optional[int] = 123

    _rng: random.Random = field(init=False, repr=False)
    _moisture: float = field(default=65.0, init=False)
    _k: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self._rng = random.Random(self.seed)

    def next_payload(self) -> Payload:
        self._k += 1
        phase = 2.0 * math.pi * (self._k % self.period_samples) / self.period_samples

        # drying, with a watering event once moisture gets low
        self._moisture -= 0.15 + self._rng.random() * 0.1
        if self._moisture < 18.0 and self._rng.random() < 0.2:
            self._moisture = 70.0 + self._rng.gauss(0.0, 3.0)
        moisture = min(100.0, max(0.0, self._moisture + self._rng.gauss(0.0, 0.5)))

        temperature = 22.0 + 6.0 * math.sin(phase) + self._rng.gauss(0.0, 0.3)

        light = max(0.0, 1400.0 * math.sin(phase)) + self._rng.gauss(0.0, 20.0)
        if self._rng.random() < 0.05:
            light *= 0.1  # cloud
        light = max(0.0, light)

        return {
            "device_id": self.device_id,
            "soil": round(moisture, 1),
            "temperature": round(temperature, 2),
            "light_lux": round(light, 1),
        }


def http_sink(base_url: str, timeout_s: float = 3.0) -> PayloadSink:
    """Sink that POSTs payloads to the ingest server."""
    url = base_url.rstrip("/") + "/api/sensor-data"

    def _post(payload: Payload) -> None:
        r = requests.post(url, json=payload, timeout=timeout_s)
        r.raise_for_status()

    return _post


def store_sink(store: InMemoryReadingStore) -> PayloadSink:
    """Sink that inserts payloads directly into an in-process store."""

    def _insert(payload: Payload) -> None:
        store.insert(**coerce_submission(payload).as_insert_kwargs())

    return _insert


class FakeDeviceThread:
    """
    Background thread feeding a :class:`FakeDevice` into a sink at a fixed interval.

    Sink errors are logged; the thread keeps running.
    """

    def __init__(
        self,
        device: FakeDevice,
        sink: PayloadSink,
        interval_s: float = 2.0,
        stop_event: Optional[threading.Event] = None,
    ):
        self._device = device
        self._sink = sink
        self._interval_s = interval_s
        self._stop = stop_event or threading.Event()
        self._thread = threading.Thread(target=self._run, name="fake-device", daemon=True)
        self.sent = 0

    def start(self) -> None:
        if not self._thread.is_alive():
            self._thread.start()

    def stop(self) -> None:
        self._stop.set()

    def join(self, timeout: float | None = 2.0) -> None:
        self._thread.join(timeout=timeout)

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop.is_set():
            payload = self._device.next_payload()
            try:
                self._sink(payload)
                self.sent += 1
            except Exception as e:
                LOGGER.warning("Fake device send failed: %r", e)
            self._stop.wait(self._interval_s)


def main() -> None:
    """
    POST fake readings to a running ingest server.

    Usage::

        python -m evasoil.dev.fake_device --url http://127.0.0.1:8000 --interval 2
    """
    parser = argparse.ArgumentParser(description="Fake ESP32 soil sensor")
    parser.add_argument("--url", default="http://127.0.0.1:8000")
    parser.add_argument("--interval", type=float, default=2.0)
    parser.add_argument("--device-id", default=DEFAULT_DEVICE_ID)
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args()

    setup_logging("INFO")

    feeder = FakeDeviceThread(
        FakeDevice(device_id=args.device_id, seed=args.seed),
        http_sink(args.url),
        interval_s=args.interval,
    )
    feeder.start()
    LOGGER.info("Posting to %s every %.1fs (Ctrl+C to stop)", args.url, args.interval)
    try:
        while feeder.is_alive():
            feeder.join(timeout=1.0)
    except KeyboardInterrupt:
        pass
    finally:
        feeder.stop()
        feeder.join()


if __name__ == "__main__":
    main()
