from __future__ import annotations

import logging
import threading
from queue import Empty

from evasoil.domain.events import (
    ControllerEvent,
    LiveInsert,
    QueryCompleted,
    QueryFailed,
    ThresholdsChanged,
    WindowSelected,
)
from evasoil.runtime.event_bus import EventBus
from evasoil.runtime.range_query import RangeQueryDispatcher
from evasoil.services.controller import AnalyticsController

LOGGER = logging.getLogger(__name__)


class ControllerWorkerThread:
    """
    The controller's single execution context.

    Responsibilities
    ----------------
    - Drain controller events from `EventBus.events_q` in arrival order.
    - Delegate each event to :class:`AnalyticsController`.
    - Hand the `QueryRequest` produced by a window selection to the
      :class:`RangeQueryDispatcher`.

    Concurrency Model
    -----------------
    - The thread polls the queue with a timeout to remain responsive to stop signals.
    - Exceptions while handling one event are logged and the loop continues.

    Parameters
    ----------
    controller
        Analytics controller. Only this thread may call it.
    bus
        Event bus to drain.
    dispatcher
        Runs range queries off this thread.
    stop_event
        Thread stop signal.
    """

    def __init__(
        self,
        controller: AnalyticsController,
        bus: EventBus,
        dispatcher: RangeQueryDispatcher,
        stop_event: threading.Event,
    ):
        self._controller = controller
        self._bus = bus
        self._dispatcher = dispatcher
        self._stop = stop_event
        self._thread = threading.Thread(target=self._run, name="controller-worker", daemon=True)
        self.handled = 0

    def start(self) -> None:
        if not self._thread.is_alive():
            self._thread.start()

    def stop(self) -> None:
        self._stop.set()

    def join(self, timeout: float | None = 2.0) -> None:
        self._thread.join(timeout=timeout)

    def handle(self, ev: ControllerEvent) -> None:
        """
        Apply one event to the controller.

        Exposed for tests; at runtime it is only called from :meth:`_run`.
        """
        if isinstance(ev, LiveInsert):
            self._controller.handle_live(ev.reading)
        elif isinstance(ev, WindowSelected):
            request = self._controller.select_window(ev.token, ev.now)
            self._dispatcher.dispatch(request)
        elif isinstance(ev, QueryCompleted):
            self._controller.apply_query_result(ev.generation, ev.readings)
        elif isinstance(ev, QueryFailed):
            self._controller.apply_query_failure(ev.generation, ev.error)
        elif isinstance(ev, ThresholdsChanged):
            self._controller.reevaluate_alerts()
        else:
            LOGGER.warning("Unknown controller event: %r", ev)

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                ev = self._bus.events_q.get(timeout=0.5)
            except Empty:
                continue

            try:
                self.handle(ev)
            except Exception:
                LOGGER.exception("Controller failed to handle %s", type(ev).__name__)
            finally:
                self.handled += 1
