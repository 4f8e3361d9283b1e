"""
Unit tests for evasoil.core.analytics.stats_engine.

Covers:
- InsufficientData for fewer than two readings
- scenario A (two readings: mean/min/max, trend 0)
- scenario B (values 1..20: trend 10)
- partial preceding window and custom trend windows
- determinism
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import List

import pytest

from evasoil.core.analytics.stats_engine import StatsEngine, tail_trend
from evasoil.domain.models import InsufficientData, Reading, Statistics

T0 = datetime(2026, 1, 1, 0, 0, 0)


def _series(moistures: List[float]) -> List[Reading]:
    return [
        Reading(
            device_id="dev",
            moisture=m,
            temperature=20.0 + i,
            light_lux=100.0 * (i + 1),
            created_at=T0 + timedelta(minutes=i),
            id=i + 1,
        )
        for i, m in enumerate(moistures)
    ]


@pytest.mark.parametrize("n", [0, 1])
def test_insufficient_data(n: int) -> None:
    result = StatsEngine().compute(_series([50.0] * n))
    assert result == InsufficientData(count=n)


def test_scenario_a_two_readings() -> None:
    result = StatsEngine().compute(_series([50.0, 30.0]))

    assert isinstance(result, Statistics)
    m = result.moisture
    assert m.average == pytest.approx(40.0)
    assert m.min == 30.0
    assert m.max == 50.0
    assert m.trend == 0.0
    assert m.count == 2
    assert result.count == 2


def test_scenario_b_trend_over_20_readings() -> None:
    result = StatsEngine().compute(_series([float(v) for v in range(1, 21)]))

    assert isinstance(result, Statistics)
    assert result.moisture.trend == pytest.approx(10.0)
    assert result.moisture.average == pytest.approx(10.5)


def test_trend_uses_partial_preceding_window() -> None:
    # 13 values, w=10: last 10 = 4..13 (mean 8.5), preceding 3 = 1..3 (mean 2)
    values = [float(v) for v in range(1, 14)]
    assert tail_trend(values, 10) == pytest.approx(6.5)


def test_trend_only_looks_at_two_tail_windows() -> None:
    # leading outliers beyond 2w do not influence the trend
    values = [1000.0] * 5 + [1.0] * 10 + [3.0] * 10
    assert tail_trend(values, 10) == pytest.approx(2.0)


def test_custom_trend_window() -> None:
    result = StatsEngine(trend_window=2).compute(_series([1.0, 2.0, 3.0, 4.0]))
    assert isinstance(result, Statistics)
    assert result.moisture.trend == pytest.approx(2.0)


def test_each_metric_computed_independently() -> None:
    result = StatsEngine().compute(_series([10.0, 20.0, 30.0]))
    assert isinstance(result, Statistics)
    assert result.temperature.min == 20.0
    assert result.temperature.max == 22.0
    assert result.light.average == pytest.approx(200.0)


def test_invalid_trend_window() -> None:
    with pytest.raises(ValueError):
        StatsEngine(trend_window=0)


def test_compute_is_deterministic() -> None:
    engine = StatsEngine()
    series = tuple(_series([float(v % 7) for v in range(57)]))
    assert engine.compute(series) == engine.compute(series)
    assert engine.compute(series) == StatsEngine().compute(list(series))
