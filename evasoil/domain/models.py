"""
Domain models and enums.

This module defines the core domain-level types used across the system:
- Sensor readings as persisted by the readings store
- Range tokens and the concrete time window they resolve to
- Per-metric statistics and the "insufficient data" result
- Alert thresholds and the derived alert flags

These are designed as immutable (frozen) dataclasses where appropriate to
support safe sharing across layers and threads.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple, Union


class RangeToken(str, Enum):
    """
    Coarse time range selectable from the dashboard.

    Members
    -------
    H1 : str
        Last hour.
    H6 : str
        Last 6 hours.
    H24 : str
        Last 24 hours.
    D7 : str
        Last 7 days.
    D30 : str
        Last 30 days.
    """

    H1 = "1h"
    H6 = "6h"
    H24 = "24h"
    D7 = "7d"
    D30 = "30d"


class MergeOutcome(str, Enum):
    """
    Result of merging one live reading into a series buffer.

    Members
    -------
    APPLIED : str
        The reading was inserted in sorted position.
    DUPLICATE : str
        A reading with the same id is already buffered; nothing changed.
    OUT_OF_WINDOW : str
        The buffer is full and the reading is older than everything kept.
    PENDING : str
        A window query is in flight; the reading is held and merged once
        the query result seeds the new buffer.
    """

    APPLIED = "applied"
    DUPLICATE = "duplicate"
    OUT_OF_WINDOW = "out-of-window"
    PENDING = "pending"


class ControllerPhase(str, Enum):
    """
    Lifecycle phase of the analytics controller.

    Members
    -------
    IDLE : str
        No window loaded yet, or a failed load awaiting the next selection.
    LOADING : str
        A range query for the current window generation is in flight.
    READY : str
        Buffer, statistics and alerts reflect the current window.
    ERROR : str
        The last range query failed; last good data is shown as degraded.
    """

    IDLE = "IDLE"
    LOADING = "LOADING"
    READY = "READY"
    ERROR = "ERROR"


@dataclass(frozen=True)
class Reading:
    """
    One persisted sensor sample.

    Parameters
    ----------
    device_id
        Identifier of the reporting device (e.g., "ESP32_PlantGuard_01").
    moisture
        Soil moisture in percent, nominally within [0, 100].
    temperature
        Air temperature in degrees Celsius.
    light_lux
        Illuminance in lux (>= 0).
    created_at
        Timestamp stamped by the ingest boundary at receipt.
    id
        Store-assigned ordering key; breaks ties between equal timestamps.

    Notes
    -----
    Readings are totally ordered by ``(created_at, id)``; see :attr:`sort_key`.
    """

    device_id: str
    moisture: float
    temperature: float
    light_lux: float
    created_at: datetime
    id: int

    @property
    def sort_key(self) -> Tuple[datetime, int]:
        """Ordering key used by buffers and stores."""
        return (self.created_at, self.id)


@dataclass(frozen=True)
class WindowSpec:
    """
    Concrete time interval resolved from a range token.

    Parameters
    ----------
    token
        Range token the window was resolved from.
    start
        Inclusive lower bound (``to - duration(token)``).
    end
        Upper bound; "now" at selection time.
    """

    token: RangeToken
    start: datetime
    end: datetime


@dataclass(frozen=True)
class MetricStats:
    """
    Aggregate statistics for a single metric over the visible series.

    Parameters
    ----------
    average
        Arithmetic mean over all values.
    trend
        Mean of the most recent tail window minus mean of the window just
        before it (0 when there is no preceding window).
    min, max
        Extrema over all values.
    count
        Number of values aggregated.
    """

    average: float
    trend: float
    min: float
    max: float
    count: int


@dataclass(frozen=True)
class Statistics:
    """
    Statistics for all three metrics of a series snapshot.
    """

    moisture: MetricStats
    temperature: MetricStats
    light: MetricStats

    @property
    def count(self) -> int:
        return self.moisture.count


@dataclass(frozen=True)
class InsufficientData:
    """
    Explicit engine result when fewer than two readings are available.

    Parameters
    ----------
    count
        Number of readings that were available (0 or 1).
    """

    count: int


StatsResult = Union[Statistics, InsufficientData]


@dataclass(frozen=True)
class ThresholdConfig:
    """
    Alert thresholds owned by the settings subsystem.

    The analytics engine reads these but never mutates them.

    Parameters
    ----------
    moisture_low
        Moisture (%) below which the low-moisture alert is raised.
    temp_low, temp_high
        Acceptable temperature band (°C); outside it the range alert is raised.
    light_low
        Illuminance (lx) below which the low-light alert is raised.
    """

    moisture_low: float = 30.0
    temp_low: float = 15.0
    temp_high: float = 28.0
    light_low: float = 100.0


@dataclass(frozen=True)
class AlertState:
    """
    Alert flags derived from the latest reading.
    """

    low_moisture: bool = False
    low_light: bool = False
    temp_out_of_range: bool = False

    @property
    def any_active(self) -> bool:
        return self.low_moisture or self.low_light or self.temp_out_of_range

    def active_names(self) -> Tuple[str, ...]:
        """
        Names of the active flags, in a stable order.

        Returns
        -------
        tuple of str
            Subset of ``("low_moisture", "temp_out_of_range", "low_light")``.
        """
        names = []
        if self.low_moisture:
            names.append("low_moisture")
        if self.temp_out_of_range:
            names.append("temp_out_of_range")
        if self.low_light:
            names.append("low_light")
        return tuple(names)


@dataclass(frozen=True)
class AnalyticsView:
    """
    Immutable snapshot of everything the display layer renders.

    'AnalyticsView' represents "what is true now" for one controller session,
    and is republished after every window load and every applied live reading.

    Parameters
    ----------
    phase
        Controller phase at publication time.
    generation
        Window generation the data belongs to.
    window
        Window whose data is shown (None before the first successful load).
    requested_token
        Token most recently selected by the user; differs from
        ``window.token`` while loading or after a failed load.
    series
        Ordered snapshot of the visible readings.
    stats
        Statistics for ``series`` (or an InsufficientData result).
    alerts
        Alert flags for the latest reading.
    latest
        Most recent reading of ``series``, if any.
    degraded
        True when the shown data is stale because the last load failed.
    error
        Human-readable description of the last load failure.
    """

    phase: ControllerPhase
    generation: int
    window: Optional[WindowSpec]
    requested_token: Optional[RangeToken]
    series: Tuple[Reading, ...]
    stats: StatsResult
    alerts: AlertState
    latest: Optional[Reading] = None
    degraded: bool = False
    error: Optional[str] = None
