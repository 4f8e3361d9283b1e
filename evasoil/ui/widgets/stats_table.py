from __future__ import annotations

from typing import List

from PySide6.QtCore import Qt
from PySide6.QtGui import QColor
from PySide6.QtWidgets import QFrame, QHeaderView, QLabel, QTableWidget, QTableWidgetItem, QVBoxLayout

from evasoil.ui.adapters.view_rows import StatRow
from evasoil.ui.theme import LEVEL_COLORS, TEXT

COLUMNS = ("Metric", "Latest", "Average", "Min - Max", "Trend")
LATEST_COL = 1


class StatsTable(QFrame):
    """
    Per-metric statistics: latest, average, min-max and trend.

    The "Latest" cell is tinted with its band colour (see ``status_level``)
    and carries the band name as tooltip.
    """

    def __init__(self, parent=None) -> None:
        super().__init__(parent)
        self.setObjectName("Panel")

        heading = QLabel("Statistics")
        heading.setStyleSheet("font-size: 14px; font-weight: 700;")

        self.table = QTableWidget(0, len(COLUMNS))
        self.table.setHorizontalHeaderLabels(list(COLUMNS))
        self.table.setAlternatingRowColors(True)
        self.table.verticalHeader().hide()
        self.table.horizontalHeader().setSectionResizeMode(QHeaderView.Stretch)
        self.table.setEditTriggers(QTableWidget.NoEditTriggers)
        self.table.setSelectionMode(QTableWidget.NoSelection)
        self.table.setFocusPolicy(Qt.NoFocus)

        box = QVBoxLayout(self)
        box.setContentsMargins(10, 10, 10, 10)
        box.addWidget(heading)
        box.addWidget(self.table)

    def set_rows(self, rows: List[StatRow]) -> None:
        self.table.setRowCount(len(rows))
        for r, row in enumerate(rows):
            level = row[-1]
            for c, text in enumerate(row[:-1]):
                cell = QTableWidgetItem(text)
                if c == LATEST_COL and level:
                    cell.setForeground(QColor(LEVEL_COLORS.get(level, TEXT)))
                    cell.setToolTip(level)
                if c > 0:
                    cell.setTextAlignment(Qt.AlignRight | Qt.AlignVCenter)
                self.table.setItem(r, c, cell)
