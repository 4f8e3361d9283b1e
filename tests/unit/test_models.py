"""
Unit tests for evasoil.domain.models.

Validates:
- frozen dataclasses reject mutation
- enum string values match the wire/UI values
- Reading ordering key and AlertState helpers
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import datetime

import pytest

from evasoil.domain.models import AlertState, MergeOutcome, RangeToken, Reading, ThresholdConfig


def test_reading_is_frozen() -> None:
    r = Reading(device_id="d", moisture=1.0, temperature=2.0, light_lux=3.0, created_at=datetime(2026, 1, 1), id=1)
    with pytest.raises(FrozenInstanceError):
        r.moisture = 5.0  # type: ignore[misc]


def test_sort_key_orders_by_time_then_id() -> None:
    t = datetime(2026, 1, 1)
    a = Reading("d", 0, 0, 0, t, id=2)
    b = Reading("d", 0, 0, 0, t, id=1)
    assert sorted([a, b], key=lambda r: r.sort_key) == [b, a]


def test_enum_values() -> None:
    assert [t.value for t in RangeToken] == ["1h", "6h", "24h", "7d", "30d"]
    assert MergeOutcome.OUT_OF_WINDOW.value == "out-of-window"
    assert MergeOutcome("pending") is MergeOutcome.PENDING


def test_threshold_defaults() -> None:
    t = ThresholdConfig()
    assert (t.moisture_low, t.temp_low, t.temp_high, t.light_low) == (30.0, 15.0, 28.0, 100.0)


def test_alert_state_helpers() -> None:
    s = AlertState(low_light=True)
    assert s.any_active
    assert s.active_names() == ("low_light",)
    assert not AlertState().any_active
