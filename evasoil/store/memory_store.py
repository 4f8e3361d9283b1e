from __future__ import annotations

import itertools
import logging
import threading
from bisect import bisect_left, bisect_right
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from evasoil.domain.models import Reading
from evasoil.store.base import InsertCallback

LOGGER = logging.getLogger(__name__)


@dataclass
class InMemoryReadingStore:
    """
    Thread-safe, append-only, in-memory readings store.

    This store backs the ingest server and the tests. It keeps every reading
    sorted by ``(created_at, id)``, assigns monotonically increasing integer
    ids, and notifies subscribers after each insert.

    Concurrency Model
    -----------------
    Reads and writes are guarded by one re-entrant lock. Subscriber callbacks
    run on the inserting thread *after* the lock is released, so a slow or
    re-entrant subscriber cannot block other writers.

    Parameters
    ----------
    clock
        Zero-argument callable used to stamp ``created_at`` at insert time.
    """

    clock: Callable[[], datetime] = datetime.now

    _rows: List[Reading] = field(default_factory=list, init=False, repr=False)
    _keys: List[Tuple[datetime, int]] = field(default_factory=list, init=False, repr=False)
    _subscribers: Dict[int, InsertCallback] = field(default_factory=dict, init=False, repr=False)
    _ids: "itertools.count[int]" = field(default_factory=lambda: itertools.count(1), init=False, repr=False)
    _sub_ids: "itertools.count[int]" = field(default_factory=lambda: itertools.count(1), init=False, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)

    def insert(
        self,
        device_id: str,
        moisture: float,
        temperature: float,
        light_lux: float,
        created_at: Optional[datetime] = None,
    ) -> Reading:
        """
        Persist a new reading and notify subscribers.

        Parameters
        ----------
        device_id, moisture, temperature, light_lux
            Reading fields (already coerced by the ingest boundary).
        created_at
            Optional explicit timestamp; defaults to ``clock()``.

        Returns
        -------
        Reading
            The stored reading with its assigned id.
        """
        with self._lock:
            reading = Reading(
                device_id=device_id,
                moisture=float(moisture),
                temperature=float(temperature),
                light_lux=float(light_lux),
                created_at=created_at or self.clock(),
                id=next(self._ids),
            )
            i = bisect_right(self._keys, reading.sort_key)
            self._rows.insert(i, reading)
            self._keys.insert(i, reading.sort_key)
            callbacks = list(self._subscribers.values())

        for cb in callbacks:
            try:
                cb(reading)
            except Exception:
                LOGGER.exception("Insert subscriber failed for reading %s", reading.id)
        return reading

    def query(self, start: datetime, end: datetime) -> List[Reading]:
        """
        Return readings with ``start <= created_at <= end``, ascending.
        """
        with self._lock:
            lo = bisect_left(self._keys, (start,))
            hi = bisect_right(self._keys, (end, float("inf")))
            return self._rows[lo:hi]

    def latest(self, limit: int = 100) -> List[Reading]:
        """
        Return the newest `limit` readings, newest first.
        """
        with self._lock:
            return list(reversed(self._rows[-limit:])) if limit > 0 else []

    def subscribe(self, callback: InsertCallback) -> int:
        """
        Register an insert callback.

        Returns
        -------
        int
            Handle to pass to :meth:`unsubscribe`.
        """
        with self._lock:
            handle = next(self._sub_ids)
            self._subscribers[handle] = callback
            return handle

    def unsubscribe(self, handle: int) -> None:
        """Release a subscription; unknown handles are ignored."""
        with self._lock:
            self._subscribers.pop(handle, None)

    def clear_all(self) -> bool:
        with self._lock:
            self._rows.clear()
            self._keys.clear()
        LOGGER.info("Cleared all readings")
        return True

    def clear_device(self, device_id: str) -> bool:
        with self._lock:
            kept = [r for r in self._rows if r.device_id != device_id]
            self._rows = kept
            self._keys = [r.sort_key for r in kept]
        LOGGER.info("Cleared readings for device %s", device_id)
        return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)
