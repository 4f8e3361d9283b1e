"""
Window selection: map a coarse range token onto a concrete time interval.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, Union

from evasoil.domain.errors import InvalidRangeToken
from evasoil.domain.models import RangeToken, WindowSpec

RANGE_DURATIONS: Dict[RangeToken, timedelta] = {
    RangeToken.H1: timedelta(hours=1),
    RangeToken.H6: timedelta(hours=6),
    RangeToken.H24: timedelta(hours=24),
    RangeToken.D7: timedelta(days=7),
    RangeToken.D30: timedelta(days=30),
}


def parse_token(token: Union[RangeToken, str]) -> RangeToken:
    """
    Normalize a token given as enum member or string ("6h", "6H").

    Raises
    ------
    InvalidRangeToken
        If the token is not one of the supported ranges.
    """
    if isinstance(token, RangeToken):
        return token
    try:
        return RangeToken(str(token).strip().lower())
    except ValueError:
        raise InvalidRangeToken(f"Unknown range token: {token!r}") from None


def resolve(token: Union[RangeToken, str], now: datetime) -> WindowSpec:
    """
    Resolve a range token into ``[now - duration(token), now]``.

    Parameters
    ----------
    token
        Range token (enum member or its string value).
    now
        Selection time; becomes the window's upper bound.

    Returns
    -------
    WindowSpec
        Resolved window.

    Raises
    ------
    InvalidRangeToken
        If the token is unknown.
    """
    tok = parse_token(token)
    return WindowSpec(token=tok, start=now - RANGE_DURATIONS[tok], end=now)
