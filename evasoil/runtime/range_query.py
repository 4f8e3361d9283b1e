from __future__ import annotations

import logging
import threading
import time
from typing import List

from evasoil.domain.errors import QueryFailure
from evasoil.domain.events import QueryCompleted, QueryFailed, QueryRequest
from evasoil.runtime.event_bus import EventBus
from evasoil.store.base import ReadingStore

LOGGER = logging.getLogger(__name__)


class RangeQueryDispatcher:
    """
    Run store range queries off the controller thread.

    Each :class:`~evasoil.domain.events.QueryRequest` gets its own short-lived
    daemon thread. The outcome is posted back onto the event bus as
    `QueryCompleted` or `QueryFailed`, tagged with the request generation, so
    the controller can discard results of superseded windows.

    Queries are never aborted; a stale one simply finishes and is ignored.

    Parameters
    ----------
    store
        Readings store to query.
    bus
        Event bus feeding the controller worker.
    """

    def __init__(self, store: ReadingStore, bus: EventBus):
        self._store = store
        self._bus = bus
        self._threads: List[threading.Thread] = []
        self._lock = threading.Lock()

    def dispatch(self, request: QueryRequest) -> threading.Thread:
        """
        Start the query thread for `request`.

        Returns
        -------
        threading.Thread
            The started thread (useful for joining in tests).
        """
        t = threading.Thread(
            target=self._run,
            args=(request,),
            name=f"range-query-{request.generation}",
            daemon=True,
        )
        with self._lock:
            self._threads = [x for x in self._threads if x.is_alive()]
            self._threads.append(t)
        t.start()
        return t

    def join_all(self, timeout: float | None = 2.0) -> bool:
        """
        Join every query thread that is still running.

        `timeout` bounds the whole call, not each thread.

        Returns
        -------
        bool
            True if no query thread is left running.
        """
        with self._lock:
            threads = list(self._threads)
        deadline = None if timeout is None else time.monotonic() + timeout
        for t in threads:
            t.join(timeout=None if deadline is None else max(0.0, deadline - time.monotonic()))
        return not any(t.is_alive() for t in threads)

    def _run(self, request: QueryRequest) -> None:
        w = request.window
        try:
            readings = self._store.query(w.start, w.end)
        except Exception as e:
            failure = e if isinstance(e, QueryFailure) else QueryFailure(f"{type(e).__name__}: {e}")
            LOGGER.warning("Range query %s failed: %s", request.generation, failure)
            self._bus.publish(QueryFailed(generation=request.generation, error=str(failure)))
            return

        LOGGER.debug("Range query %s returned %d readings", request.generation, len(readings))
        self._bus.publish(QueryCompleted(generation=request.generation, readings=tuple(readings)))
