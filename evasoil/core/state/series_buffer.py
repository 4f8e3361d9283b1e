from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Set, Tuple

from evasoil.domain.models import MergeOutcome, Reading

DEFAULT_CAPACITY = 1000


@dataclass
class SeriesBuffer:
    """
    Bounded, ordered, de-duplicated sequence of readings for the visible window.

    The buffer is seeded from a range-query result and then extended by live
    pushes. It always holds at most `capacity` readings, keeping the most
    recent ones.

    Invariants
    ----------
    - Entries are ascending by ``(created_at, id)``.
    - No two entries share an ``id``.
    - ``len(buffer) <= capacity``; the oldest entries are evicted first.

    Notes
    -----
    - Thread-safety is not handled here; the buffer is only mutated from the
      controller's single execution context.
    - Live readings that arrive out of order are inserted in sorted position
      rather than appended.

    Attributes
    ----------
    capacity
        Maximum number of readings retained.
    """

    capacity: int = DEFAULT_CAPACITY

    _items: List[Reading] = field(default_factory=list, init=False, repr=False)
    _keys: List[Tuple[datetime, int]] = field(default_factory=list, init=False, repr=False)
    _ids: Set[int] = field(default_factory=set, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.capacity < 1:
            raise ValueError("capacity must be >= 1")

    def __len__(self) -> int:
        return len(self._items)

    def seed(self, readings: Iterable[Reading]) -> None:
        """
        Replace the buffer contents with an already-ordered sequence.

        Parameters
        ----------
        readings
            Readings ascending by ``(created_at, id)``. Ordering is the
            caller's responsibility (the store returns range-ascending rows).
            Repeated ids keep their first occurrence.

        Notes
        -----
        If more than `capacity` readings are given, only the most recent
        `capacity` entries are kept.
        """
        items: List[Reading] = []
        seen: Set[int] = set()
        for r in readings:
            if r.id in seen:
                continue
            seen.add(r.id)
            items.append(r)

        if len(items) > self.capacity:
            items = items[-self.capacity:]

        self._items = items
        self._keys = [r.sort_key for r in items]
        self._ids = {r.id for r in items}

    def merge(self, reading: Reading) -> MergeOutcome:
        """
        Insert one newly arrived reading.

        Parameters
        ----------
        reading
            Live reading pushed by the store.

        Returns
        -------
        MergeOutcome
            - DUPLICATE if the id is already buffered (no-op)
            - OUT_OF_WINDOW if the buffer is full and the reading sorts before
              the current head (dropped; recency wins over completeness)
            - APPLIED otherwise
        """
        if reading.id in self._ids:
            return MergeOutcome.DUPLICATE

        key = reading.sort_key
        if len(self._items) >= self.capacity and key < self._keys[0]:
            return MergeOutcome.OUT_OF_WINDOW

        # Fast path: in-order live insert.
        if not self._keys or key >= self._keys[-1]:
            self._items.append(reading)
            self._keys.append(key)
        else:
            i = bisect_right(self._keys, key)
            self._items.insert(i, reading)
            self._keys.insert(i, key)
        self._ids.add(reading.id)

        overflow = len(self._items) - self.capacity
        if overflow > 0:
            for r in self._items[:overflow]:
                self._ids.discard(r.id)
            del self._items[:overflow]
            del self._keys[:overflow]

        return MergeOutcome.APPLIED

    def snapshot(self) -> Tuple[Reading, ...]:
        """
        Return an immutable copy of the buffered readings, oldest first.

        Returns
        -------
        tuple of Reading
            Snapshot safe to hand to the stats engine or the UI.
        """
        return tuple(self._items)

    def latest(self) -> Optional[Reading]:
        """Most recent reading, or None when empty."""
        return self._items[-1] if self._items else None
