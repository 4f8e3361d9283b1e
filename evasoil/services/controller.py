from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Protocol, Sequence, Union

from evasoil.core.analytics.alert_evaluator import AlertEvaluator
from evasoil.core.analytics.stats_engine import StatsEngine
from evasoil.core.state.series_buffer import DEFAULT_CAPACITY, SeriesBuffer
from evasoil.core.window_selector import parse_token, resolve
from evasoil.domain.events import QueryRequest
from evasoil.domain.models import (
    AlertState,
    AnalyticsView,
    ControllerPhase,
    InsufficientData,
    MergeOutcome,
    RangeToken,
    Reading,
    StatsResult,
    ThresholdConfig,
    WindowSpec,
)

LOGGER = logging.getLogger(__name__)

ThresholdProvider = Callable[[], ThresholdConfig]


class ViewSink(Protocol):
    """Anything that accepts published views (e.g., `ViewStore`)."""

    def publish(self, view: AnalyticsView) -> None:
        ...


@dataclass(frozen=True)
class _ReadySnapshot:
    """Last data set that reached READY; restored when a later load fails."""

    window: WindowSpec
    buffer: SeriesBuffer
    stats: StatsResult
    alerts: AlertState


@dataclass
class AnalyticsController:
    """
    Orchestrate window loads, live merges, statistics and alert evaluation.

    Responsibilities
    ----------------
    - Resolve a selected range token into a window and hand back the range
      query the runtime must execute.
    - Seed a fresh `SeriesBuffer` from the query result, discarding results
      that belong to a superseded window generation.
    - Merge live readings into the buffer.
    - Recompute `Statistics` and `AlertState` after every applied mutation and
      publish an `AnalyticsView` to the optional sink.

    State Machine
    -------------
    IDLE -> LOADING -> READY, with READY re-entered on each window change or
    applied live reading. LOADING -> ERROR on query failure; the last READY
    data is restored (flagged as degraded) and the controller returns to IDLE
    so the next window selection retries.

    Notes
    -----
    This controller performs no I/O and no locking. All calls must come from
    one execution context (the controller worker thread); asynchronous
    sources reach it through the event bus.

    Parameters
    ----------
    thresholds
        Zero-argument provider of the current alert thresholds. Read on every
        evaluation and never mutated.
    stats_engine
        Statistics calculator.
    alert_evaluator
        Threshold evaluator.
    capacity
        Series buffer capacity.
    sink
        Optional view sink. If None, publishing is skipped.
    """

    thresholds: ThresholdProvider = ThresholdConfig
    stats_engine: StatsEngine = field(default_factory=StatsEngine)
    alert_evaluator: AlertEvaluator = field(default_factory=AlertEvaluator)
    capacity: int = DEFAULT_CAPACITY
    sink: Optional[ViewSink] = None

    _phase: ControllerPhase = field(default=ControllerPhase.IDLE, init=False)
    _generation: int = field(default=0, init=False)
    _window: Optional[WindowSpec] = field(default=None, init=False)
    _requested: Optional[RangeToken] = field(default=None, init=False)
    _buffer: SeriesBuffer = field(init=False)
    _stats: StatsResult = field(default=InsufficientData(count=0), init=False)
    _alerts: AlertState = field(default_factory=AlertState, init=False)
    _pending: List[Reading] = field(default_factory=list, init=False)
    _last_ready: Optional[_ReadySnapshot] = field(default=None, init=False)
    _degraded: bool = field(default=False, init=False)
    _error: Optional[str] = field(default=None, init=False)

    def __post_init__(self) -> None:
        self._buffer = SeriesBuffer(capacity=self.capacity)

    @property
    def phase(self) -> ControllerPhase:
        return self._phase

    @property
    def generation(self) -> int:
        return self._generation

    # --- Window lifecycle ---
    def select_window(self, token: Union[RangeToken, str], now: Optional[datetime] = None) -> QueryRequest:
        """
        Start loading a new window.

        Parameters
        ----------
        token
            Selected range token.
        now
            Selection time. If None, uses local current time.

        Returns
        -------
        QueryRequest
            Range query to execute, tagged with the new window generation.

        Raises
        ------
        InvalidRangeToken
            If `token` is unknown. The controller state is left untouched.
        """
        tok = parse_token(token)
        window = resolve(tok, now or datetime.now())

        # Remember the data currently on screen so a failed load can fall back to it.
        if self._phase in (ControllerPhase.READY, ControllerPhase.IDLE) and self._window is not None:
            self._last_ready = _ReadySnapshot(
                window=self._window,
                buffer=self._buffer,
                stats=self._stats,
                alerts=self._alerts,
            )

        self._generation += 1
        self._phase = ControllerPhase.LOADING
        self._requested = tok
        self._window = window
        self._buffer = SeriesBuffer(capacity=self.capacity)
        self._pending = []
        self._degraded = False
        self._error = None
        self._recompute()

        LOGGER.info("Loading window %s (generation %d) from %s", tok.value, self._generation, window.start.isoformat())
        self._publish()
        return QueryRequest(generation=self._generation, window=window)

    def apply_query_result(self, generation: int, readings: Sequence[Reading]) -> bool:
        """
        Seed the buffer from a range-query result.

        Parameters
        ----------
        generation
            Generation the query was issued for.
        readings
            Query result, ascending by creation time.

        Returns
        -------
        bool
            False if the result belongs to a superseded window and was discarded.
        """
        if not self._is_current(generation):
            LOGGER.debug("Discarding stale query result (generation %d, current %d)", generation, self._generation)
            return False

        self._buffer.seed(readings)
        for r in self._pending:
            self._buffer.merge(r)
        self._pending = []

        self._phase = ControllerPhase.READY
        self._last_ready = None
        self._recompute()

        LOGGER.info("Window %s ready with %d readings", self._requested.value if self._requested else "?", len(self._buffer))
        self._publish()
        return True

    def apply_query_failure(self, generation: int, error: str) -> bool:
        """
        Handle a failed range query.

        The last READY data (if any) is restored and published with the
        degraded flag set, then the controller returns to IDLE.

        Parameters
        ----------
        generation
            Generation the query was issued for.
        error
            Failure description surfaced to the display layer.

        Returns
        -------
        bool
            False if the failure belongs to a superseded window and was ignored.
        """
        if not self._is_current(generation):
            LOGGER.debug("Ignoring stale query failure (generation %d, current %d)", generation, self._generation)
            return False

        LOGGER.warning("Range query for generation %d failed: %s", generation, error)

        if self._last_ready is not None:
            self._window = self._last_ready.window
            self._buffer = self._last_ready.buffer
            self._last_ready = None

        for r in self._pending:
            self._buffer.merge(r)
        self._pending = []

        self._phase = ControllerPhase.ERROR
        self._degraded = True
        self._error = error
        self._recompute()
        self._publish()

        self._phase = ControllerPhase.IDLE
        return True

    # --- Live updates ---
    def handle_live(self, reading: Reading) -> MergeOutcome:
        """
        Merge one live reading pushed by the store.

        Parameters
        ----------
        reading
            Newly persisted reading.

        Returns
        -------
        MergeOutcome
            PENDING while a window load is in flight; otherwise the buffer's
            merge outcome. Only APPLIED triggers recomputation and publishing.
        """
        if self._phase is ControllerPhase.LOADING:
            self._pending.append(reading)
            if len(self._pending) > self.capacity:
                del self._pending[0]
            return MergeOutcome.PENDING

        outcome = self._buffer.merge(reading)
        if outcome is MergeOutcome.APPLIED:
            self._recompute()
            self._publish()
        else:
            LOGGER.debug("Live reading %s dropped: %s", reading.id, outcome.value)
        return outcome

    def reevaluate_alerts(self) -> AlertState:
        """
        Re-run alert evaluation, e.g. after thresholds were edited.

        Returns
        -------
        AlertState
            Freshly evaluated alert flags.
        """
        self._alerts = self._evaluate_alerts()
        self._publish()
        return self._alerts

    # --- Views ---
    def view(self) -> AnalyticsView:
        """
        Build an immutable view of the current session state.

        Returns
        -------
        AnalyticsView
            Snapshot for the display layer.
        """
        return AnalyticsView(
            phase=self._phase,
            generation=self._generation,
            window=self._window,
            requested_token=self._requested,
            series=self._buffer.snapshot(),
            stats=self._stats,
            alerts=self._alerts,
            latest=self._buffer.latest(),
            degraded=self._degraded,
            error=self._error,
        )

    # --- Internals ---
    def _is_current(self, generation: int) -> bool:
        return generation == self._generation and self._phase is ControllerPhase.LOADING

    def _evaluate_alerts(self) -> AlertState:
        latest = self._buffer.latest()
        if latest is None:
            return AlertState()
        return self.alert_evaluator.evaluate(latest, self.thresholds())

    def _recompute(self) -> None:
        self._stats = self.stats_engine.compute(self._buffer.snapshot())
        self._alerts = self._evaluate_alerts()

    def _publish(self) -> None:
        if self.sink is not None:
            self.sink.publish(self.view())
