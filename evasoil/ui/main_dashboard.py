from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict

from PySide6.QtCore import QTimer
from PySide6.QtWidgets import (
    QButtonGroup,
    QFileDialog,
    QFrame,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QSplitter,
    QVBoxLayout,
    QWidget,
)

from evasoil.bootstrap import AppWiring
from evasoil.domain.models import RangeToken
from evasoil.export.csv_export import default_backup_name, default_export_name, write_csv, write_settings_backup
from evasoil.ui.adapters.view_rows import EMPTY_TEXT, alert_messages, stat_rows, status_text
from evasoil.ui.widgets.series_plot import SeriesPlotPanel
from evasoil.ui.widgets.settings_dialog import SettingsDialog
from evasoil.ui.widgets.stats_table import StatsTable
from evasoil.ui.widgets.status_indicator import StatusIndicator

LOGGER = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    """
    Main dashboard window.
    - Top: range buttons, status indicator, actions
    - Alert banner (hidden when no alert is active)
    - Middle: metric plots + statistics table
    """

    def __init__(self, wiring: AppWiring) -> None:
        super().__init__()
        self.setWindowTitle("EvaSoil Dashboard")
        self.resize(1300, 820)

        self.wiring = wiring
        self.views = wiring.views
        self.runtime = wiring.runtime
        self._token = wiring.config.analytics.default_range
        self._seen_revision = -1

        root = QWidget()
        self.setCentralWidget(root)
        layout = QVBoxLayout(root)
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(12)

        # Top bar
        top = QHBoxLayout()
        self.range_group = QButtonGroup(self)
        self.range_group.setExclusive(True)
        self.range_buttons: Dict[RangeToken, QPushButton] = {}
        for tok in RangeToken:
            b = QPushButton(tok.value.upper())
            b.setCheckable(True)
            b.setChecked(tok is self._token)
            b.clicked.connect(lambda _checked=False, t=tok: self.select_range(t))
            self.range_group.addButton(b)
            self.range_buttons[tok] = b
            top.addWidget(b)

        self.status = StatusIndicator()
        top.addWidget(self.status, stretch=1)

        self.export_btn = QPushButton("Export CSV")
        self.export_btn.clicked.connect(self.export_csv)
        self.backup_btn = QPushButton("Backup Settings")
        self.backup_btn.clicked.connect(self.backup_settings)
        self.clear_btn = QPushButton("Clear History")
        self.clear_btn.setObjectName("Danger")
        self.clear_btn.clicked.connect(self.clear_history)
        self.settings_btn = QPushButton("Settings")
        self.settings_btn.clicked.connect(self.open_settings)
        for b in (self.export_btn, self.backup_btn, self.clear_btn, self.settings_btn):
            top.addWidget(b)
        layout.addLayout(top)

        # Alert banner
        self.alert_banner = QFrame()
        self.alert_banner.setObjectName("AlertBanner")
        banner_layout = QVBoxLayout(self.alert_banner)
        banner_layout.setContentsMargins(12, 8, 12, 8)
        self.alert_label = QLabel("")
        self.alert_label.setStyleSheet("font-weight: 700;")
        banner_layout.addWidget(self.alert_label)
        self.alert_banner.hide()
        layout.addWidget(self.alert_banner)

        self.empty_label = QLabel(EMPTY_TEXT)
        self.empty_label.setStyleSheet("font-size: 16px;")
        layout.addWidget(self.empty_label)

        # Middle: plots + stats (splitter)
        splitter = QSplitter()
        splitter.setChildrenCollapsible(False)
        self.plots = SeriesPlotPanel()
        self.stats_table = StatsTable()
        splitter.addWidget(self.plots)
        splitter.addWidget(self.stats_table)
        splitter.setStretchFactor(0, 3)
        splitter.setStretchFactor(1, 2)
        layout.addWidget(splitter, stretch=1)

        # UI refresh timer
        hz = wiring.config.ui.refresh_hz
        self.timer = QTimer(self)
        self.timer.setInterval(max(1, int(1000 / hz)))
        self.timer.timeout.connect(self.refresh_ui)
        self.timer.start()

    # --- actions ---
    def select_range(self, token: RangeToken) -> None:
        self._token = token
        self.range_buttons[token].setChecked(True)
        self.runtime.select_window(token)

    def export_csv(self) -> None:
        view = self.views.current
        series = view.series if view is not None else ()
        default = str(Path(self.wiring.config.ui.export_dir) / default_export_name())
        path, _ = QFileDialog.getSaveFileName(self, "Export CSV", default, "CSV files (*.csv)")
        if not path:
            return
        try:
            out = write_csv(path, series)
        except OSError as e:
            QMessageBox.warning(self, "Export failed", str(e))
            return
        LOGGER.info("Exported %d readings to %s", len(series), out)

    def backup_settings(self) -> None:
        default = str(Path(self.wiring.config.ui.export_dir) / default_backup_name())
        path, _ = QFileDialog.getSaveFileName(self, "Backup Settings", default, "JSON files (*.json)")
        if not path:
            return
        try:
            write_settings_backup(path, self.wiring.config.ui.device_id, self.wiring.settings.thresholds())
        except OSError as e:
            QMessageBox.warning(self, "Backup failed", str(e))

    def clear_history(self) -> None:
        answer = QMessageBox.question(
            self,
            "Clear History",
            "Delete all stored readings? This cannot be undone.",
        )
        if answer != QMessageBox.Yes:
            return
        if not self.wiring.store.clear_all():
            QMessageBox.warning(self, "Clear History", "Error clearing history")
            return
        self.runtime.select_window(self._token)

    def open_settings(self) -> None:
        dlg = SettingsDialog(self.wiring.settings, parent=self)
        if dlg.exec():
            self.runtime.thresholds_changed()

    # --- refresh ---
    def refresh_ui(self) -> None:
        revision, view = self.views.read()
        if revision == self._seen_revision:
            return
        self._seen_revision = revision

        level, text = status_text(view)
        self.status.set_level(level, text, detail=view.error if view is not None else None)

        if view is None:
            return

        has_data = view.latest is not None
        self.empty_label.setVisible(not has_data)

        shown = view.window.token.value.upper() if view.window else "-"
        self.plots.set_title(f"History ({shown})")
        self.plots.set_series(view.series)
        self.stats_table.set_rows(stat_rows(view))

        msgs = alert_messages(view.alerts)
        self.alert_label.setText("\n".join(msgs))
        self.alert_banner.setVisible(bool(msgs))
