"""
Windowed statistics over a series snapshot.

The engine computes, per metric (moisture, temperature, light):
- the arithmetic mean and the extrema over the whole visible series
- a short-horizon trend: mean of the last `trend_window` values minus the
  mean of the (up to) `trend_window` values immediately before them

The trend is a cheap momentum indicator, not a regression. With fewer than
two readings no statistics are produced and an `InsufficientData` result is
returned instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Sequence

from evasoil.domain.models import InsufficientData, MetricStats, Reading, Statistics, StatsResult

DEFAULT_TREND_WINDOW = 10
MIN_READINGS = 2


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def tail_trend(values: Sequence[float], window: int = DEFAULT_TREND_WINDOW) -> float:
    """
    Difference between the means of two adjacent tail windows.

    Parameters
    ----------
    values
        Metric values in series order.
    window
        Size of each sub-window.

    Returns
    -------
    float
        ``mean(values[-w:]) - mean(values[-2w:-w])``, or 0.0 when there is no
        preceding window (``len(values) <= window``) or no values at all.

    Examples
    --------
    >>> tail_trend([float(v) for v in range(1, 21)])
    10.0
    """
    n = len(values)
    if n == 0:
        return 0.0

    recent = values[max(0, n - window):]
    preceding = values[max(0, n - 2 * window):max(0, n - window)]
    if not preceding:
        return 0.0
    return _mean(recent) - _mean(preceding)


def _metric_stats(values: List[float], window: int) -> MetricStats:
    return MetricStats(
        average=_mean(values),
        trend=tail_trend(values, window),
        min=min(values),
        max=max(values),
        count=len(values),
    )


_METRICS: Sequence[Callable[[Reading], float]] = (
    lambda r: r.moisture,
    lambda r: r.temperature,
    lambda r: r.light_lux,
)


@dataclass(frozen=True)
class StatsEngine:
    """
    Pure statistics calculator.

    Identical input snapshots always yield identical output, which makes it
    safe to recompute from scratch on every buffer mutation (the buffer is
    bounded, so recomputation stays cheap).

    Parameters
    ----------
    trend_window
        Number of points in each of the two trend sub-windows.
    """

    trend_window: int = DEFAULT_TREND_WINDOW

    def __post_init__(self) -> None:
        if self.trend_window < 1:
            raise ValueError("trend_window must be >= 1")

    def compute(self, series: Sequence[Reading]) -> StatsResult:
        """
        Compute statistics for an ordered series snapshot.

        Parameters
        ----------
        series
            Readings ascending by creation time.

        Returns
        -------
        Statistics or InsufficientData
            InsufficientData when ``len(series) < 2``.
        """
        if len(series) < MIN_READINGS:
            return InsufficientData(count=len(series))

        moisture, temperature, light = (
            _metric_stats([float(get(r)) for r in series], self.trend_window)
            for get in _METRICS
        )
        return Statistics(moisture=moisture, temperature=temperature, light=light)
