"""
Controller event domain models.

This module defines the events consumed by the analytics controller's single
execution context. Each event represents *what happened* (a window was
selected, a range query finished, a new reading was persisted), while
`AnalyticsView` (in models.py) represents *what is currently true*.

Two asynchronous sources produce these events:
- the range-query threads (`QueryCompleted` / `QueryFailed`)
- the live subscription callback (`LiveInsert`)

They are funnelled through one queue so they are applied in arrival order.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple, Union

from evasoil.domain.models import RangeToken, Reading, WindowSpec


@dataclass(frozen=True)
class WindowSelected:
    """
    The user picked a range token.

    Parameters
    ----------
    token
        Selected range token.
    now
        Optional selection time; the worker uses local time when None.
    """

    token: RangeToken
    now: Optional[datetime] = None


@dataclass(frozen=True)
class QueryRequest:
    """
    Range query the runtime must execute on behalf of the controller.

    Parameters
    ----------
    generation
        Window generation the result must be tagged with.
    window
        Concrete interval to query.
    """

    generation: int
    window: WindowSpec


@dataclass(frozen=True)
class QueryCompleted:
    """
    A range query returned readings.

    Parameters
    ----------
    generation
        Window generation the query was issued for.
    readings
        Readings ascending by ``(created_at, id)``.
    """

    generation: int
    readings: Tuple[Reading, ...]


@dataclass(frozen=True)
class QueryFailed:
    """
    A range query raised.

    Parameters
    ----------
    generation
        Window generation the query was issued for.
    error
        Human-readable failure description.
    """

    generation: int
    error: str


@dataclass(frozen=True)
class LiveInsert:
    """
    The readings store pushed a newly persisted reading.
    """

    reading: Reading


@dataclass(frozen=True)
class ThresholdsChanged:
    """
    Alert thresholds were edited; alerts must be re-evaluated.
    """


ControllerEvent = Union[WindowSelected, QueryCompleted, QueryFailed, LiveInsert, ThresholdsChanged]
