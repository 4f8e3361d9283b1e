from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from queue import Full, Queue

from evasoil.domain.events import ControllerEvent, LiveInsert

LOGGER = logging.getLogger(__name__)


@dataclass
class EventBus:
    """
    In-process event channel feeding the controller's single execution context.

    The bus provides a simple producer/consumer mechanism:
    - Producers (the live subscription callback, range-query threads, the UI)
      publish :mod:`~evasoil.domain.events` objects via :meth:`publish`.
    - The controller worker thread drains :attr:`events_q` in arrival order.

    Concurrency Model
    -----------------
    Python's :class:`queue.Queue` is thread-safe. Multiple producers may call
    :meth:`publish` concurrently without additional locking.

    Backpressure Policy
    -------------------
    Live inserts are best-effort: if the queue is full they are dropped so a
    burst of pushes cannot block the store's notifier. Control events (window
    selections and query completions) block until there is room, because
    dropping one would leave the controller stuck in LOADING.

    Attributes
    ----------
    events_q
        Bounded queue of controller events.
    """

    events_q: "Queue[ControllerEvent]" = field(default_factory=lambda: Queue(maxsize=5000))
    dropped: int = 0

    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def publish(self, ev: ControllerEvent) -> None:
        """
        Publish an event to the controller queue.

        Parameters
        ----------
        ev
            Controller event to enqueue.
        """
        if isinstance(ev, LiveInsert):
            try:
                self.events_q.put_nowait(ev)
            except Full:
                with self._lock:
                    self.dropped += 1
                LOGGER.warning("Event queue full; dropped live reading %s", ev.reading.id)
            return

        self.events_q.put(ev)
