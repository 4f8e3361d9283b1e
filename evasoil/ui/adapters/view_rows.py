from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from evasoil.domain.models import (
    AlertState,
    AnalyticsView,
    ControllerPhase,
    MetricStats,
    Reading,
    Statistics,
)

# label, latest, average, min-max, trend, level
StatRow = Tuple[str, str, str, str, str, str]
# epoch seconds, HH:MM label, moisture, temperature, light_lux
ChartPoint = Tuple[float, str, float, float, float]

EMPTY_TEXT = "Waiting for sensor data..."

ALERT_MESSAGES = {
    "low_moisture": "Low Moisture Alert: your plant needs water",
    "temp_out_of_range": "Temperature out of range",
    "low_light": "Low Light Alert: consider moving your plant to a brighter location",
}

# metric key -> (label, unit, Reading attribute)
METRICS: Tuple[Tuple[str, str, str, str], ...] = (
    ("moisture", "Soil Moisture", "%", "moisture"),
    ("temperature", "Temperature", "°C", "temperature"),
    ("light", "Light", "lx", "light_lux"),
)


def status_level(metric: str, value: float) -> str:
    """
    Colour band of a value as shown on the stat cards.

    Bands (lower bounds are exclusive):

    - moisture: ``good`` > 60, ``ok`` > 40, ``warn`` > 20, else ``critical``
    - temperature: ``hot`` > 28, ``good`` > 22, ``ok`` > 15, else ``cold``
    - light: ``bright`` > 1000, ``moderate`` > 500, ``low`` > 200, else ``dim``

    Raises
    ------
    ValueError
        If `metric` is unknown.
    """
    if metric == "moisture":
        if value > 60:
            return "good"
        if value > 40:
            return "ok"
        if value > 20:
            return "warn"
        return "critical"
    if metric == "temperature":
        if value > 28:
            return "hot"
        if value > 22:
            return "good"
        if value > 15:
            return "ok"
        return "cold"
    if metric == "light":
        if value > 1000:
            return "bright"
        if value > 500:
            return "moderate"
        if value > 200:
            return "low"
        return "dim"
    raise ValueError(f"Unknown metric: {metric!r}")


def _fmt(v: float, unit: str) -> str:
    return f"{v:.0f} {unit}" if unit == "lx" else f"{v:.1f} {unit}"


def _fmt_trend(v: float) -> str:
    return f"{v:+.2f}"


def _metric_stats(stats: Statistics, key: str) -> MetricStats:
    return getattr(stats, key)


def stat_rows(view: Optional[AnalyticsView]) -> List[StatRow]:
    """
    One row per metric for the stats table.

    With no latest reading every value cell is ``-``. With a latest reading
    but fewer than two readings, only the latest value is shown.
    """
    rows: List[StatRow] = []
    latest = view.latest if view is not None else None
    stats = view.stats if view is not None else None

    for key, label, unit, attr in METRICS:
        if latest is None:
            rows.append((label, "-", "-", "-", "-", ""))
            continue

        value = float(getattr(latest, attr))
        level = status_level(key, value)
        if isinstance(stats, Statistics):
            m = _metric_stats(stats, key)
            rows.append(
                (
                    label,
                    _fmt(value, unit),
                    _fmt(m.average, unit),
                    f"{_fmt(m.min, unit)} - {_fmt(m.max, unit)}",
                    _fmt_trend(m.trend),
                    level,
                )
            )
        else:
            rows.append((label, _fmt(value, unit), "-", "-", "-", level))
    return rows


def alert_messages(alerts: AlertState) -> List[str]:
    """Banner texts for the active alerts, in display order."""
    return [ALERT_MESSAGES[name] for name in alerts.active_names()]


def chart_points(snapshot: Sequence[Reading]) -> List[ChartPoint]:
    """
    Chart-ready tuples in snapshot order.

    Each point is ``(x, HH:MM, moisture, temperature, light_lux)`` where ``x``
    is the POSIX timestamp used by the plot's date axis.
    """
    return [
        (r.created_at.timestamp(), r.created_at.strftime("%H:%M"), r.moisture, r.temperature, r.light_lux)
        for r in snapshot
    ]


def status_text(view: Optional[AnalyticsView]) -> Tuple[str, str]:
    """
    Global status indicator level and text.

    Returns
    -------
    tuple
        ``(level, text)`` with level in ``OK`` / ``WARNING`` / ``CRITICAL``.
    """
    if view is None:
        return "WARNING", "Starting..."

    token = view.requested_token.value if view.requested_token else "-"

    if view.phase is ControllerPhase.LOADING:
        return "WARNING", f"Loading {token}..."

    if view.degraded:
        shown = view.window.token.value if view.window else "no data"
        return "CRITICAL", f"Degraded ({shown}): {view.error or 'load failed'}"

    if view.latest is None:
        return "OK", EMPTY_TEXT

    return "OK", f"Ready: {token}, {len(view.series)} readings"
