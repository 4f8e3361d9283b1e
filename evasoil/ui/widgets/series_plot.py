from __future__ import annotations

from typing import Dict, Sequence

import pyqtgraph as pg
from PySide6.QtWidgets import QFrame, QHBoxLayout, QLabel, QVBoxLayout

from evasoil.domain.models import Reading
from evasoil.ui.adapters.view_rows import METRICS, chart_points
from evasoil.ui.theme import METRIC_PENS

# metric values start after (x, label) in a chart point
_FIRST_METRIC_COL = 2


class SeriesPlotPanel(QFrame):
    """
    Stacked time plots, one per metric, sharing a date x-axis.

    The panel is redrawn from a full series snapshot; it keeps no history of
    its own.
    """

    def __init__(self, parent=None) -> None:
        super().__init__(parent)
        self.setObjectName("Panel")

        self._title = QLabel("History")
        self._title.setStyleSheet("font-size: 14px; font-weight: 700;")
        self._span = QLabel("")
        self._span.setObjectName("Muted")

        header = QHBoxLayout()
        header.addWidget(self._title)
        header.addStretch(1)
        header.addWidget(self._span)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(12, 12, 12, 12)
        layout.setSpacing(8)
        layout.addLayout(header)

        pg.setConfigOptions(antialias=True)

        self.plots: Dict[str, pg.PlotWidget] = {}
        self.curves: Dict[str, pg.PlotDataItem] = {}

        first = None
        for key, label, unit, _attr in METRICS:
            plot = pg.PlotWidget(axisItems={"bottom": pg.DateAxisItem()})
            plot.setBackground(None)
            plot.showGrid(x=True, y=True, alpha=0.2)
            plot.setTitle(f"{label} ({unit})", size="10pt")
            if first is None:
                first = plot
            else:
                plot.setXLink(first)
            self.plots[key] = plot
            self.curves[key] = plot.plot([], [], pen=pg.mkPen(METRIC_PENS[key], width=2))
            layout.addWidget(plot, stretch=1)

    def set_title(self, text: str) -> None:
        self._title.setText(text)

    def set_series(self, series: Sequence[Reading]) -> None:
        """
        Redraw all curves from `series` (ascending).
        """
        points = chart_points(series)
        xs = [p[0] for p in points]
        for col, (key, _label, _unit, _attr) in enumerate(METRICS, start=_FIRST_METRIC_COL):
            self.curves[key].setData(xs, [float(p[col]) for p in points])
        self._span.setText(f"{points[0][1]} - {points[-1][1]}" if points else "")
