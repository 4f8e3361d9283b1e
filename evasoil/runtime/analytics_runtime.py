from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Optional, Union

from evasoil.core.window_selector import parse_token
from evasoil.domain.events import LiveInsert, ThresholdsChanged, WindowSelected
from evasoil.domain.models import RangeToken, Reading
from evasoil.runtime.controller_worker_thread import ControllerWorkerThread
from evasoil.runtime.event_bus import EventBus
from evasoil.runtime.live_subscription import LiveSubscription
from evasoil.runtime.range_query import RangeQueryDispatcher
from evasoil.services.controller import AnalyticsController
from evasoil.store.base import ReadingStore

LOGGER = logging.getLogger(__name__)

QUERY_GRACE_S = 1.0


class AnalyticsRuntime:
    """
    Thread supervisor for one dashboard session.

    This class owns:
    - a shared stop event
    - the controller worker thread
    - the range query dispatcher
    - the session's single live subscription

    Thread Topology
    ---------------
    1) Live push (store notifier or `LivePushReceiverThread`)
       - calls the subscription callback, which only enqueues `LiveInsert`

    2) RangeQueryDispatcher threads (blocking I/O)
       - one per window selection
       - post `QueryCompleted` / `QueryFailed`

    3) ControllerWorkerThread (business logic)
       - drains the bus and is the only caller of `AnalyticsController`

    Notes
    -----
    - The UI thread talks to the runtime through :meth:`select_window` and
      :meth:`thresholds_changed`, both of which only enqueue events.
    - Usable as a context manager: ``with runtime: ...`` starts and stops it.
    """

    def __init__(
        self,
        controller: AnalyticsController,
        store: ReadingStore,
        bus: Optional[EventBus] = None,
    ):
        self._controller = controller
        self._store = store
        self._bus = bus or EventBus()
        self._stop = threading.Event()
        self._started = False

        self.dispatcher = RangeQueryDispatcher(store=store, bus=self._bus)
        self._worker = ControllerWorkerThread(
            controller=controller,
            bus=self._bus,
            dispatcher=self.dispatcher,
            stop_event=self._stop,
        )
        self._subscription = LiveSubscription(store, self._on_insert)

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def subscription(self) -> LiveSubscription:
        return self._subscription

    def _on_insert(self, reading: Reading) -> None:
        self._bus.publish(LiveInsert(reading))

    def start(self, initial_token: Union[RangeToken, str, None] = None) -> None:
        """
        Start the worker, subscribe to live inserts, and optionally select a
        first window.
        """
        if self._started:
            return
        self._started = True
        self._worker.start()
        self._subscription.acquire()
        if initial_token is not None:
            self.select_window(initial_token)

    def select_window(self, token: Union[RangeToken, str], now: Optional[datetime] = None) -> None:
        """
        Request a window change.

        Raises
        ------
        InvalidRangeToken
            Immediately, on the calling thread, if `token` is unknown.
        """
        self._bus.publish(WindowSelected(token=parse_token(token), now=now))

    def thresholds_changed(self) -> None:
        self._bus.publish(ThresholdsChanged())

    def stop(self) -> None:
        """
        Release the live subscription and stop the worker.

        A runtime that was never started has nothing to stop.

        Notes
        -----
        Stop is cooperative. In-flight range queries get a short grace period
        to finish; their results are never applied.
        """
        if not self._started:
            return
        self._subscription.release()
        self._worker.stop()
        self._worker.join(timeout=2.0)
        if not self.dispatcher.join_all(timeout=QUERY_GRACE_S):
            LOGGER.warning("Range queries still running at shutdown")
        LOGGER.info("Analytics runtime stopped")

    def __enter__(self) -> "AnalyticsRuntime":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
