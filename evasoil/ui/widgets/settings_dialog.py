from __future__ import annotations

from PySide6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QDoubleSpinBox,
    QFormLayout,
    QLabel,
    QMessageBox,
    QVBoxLayout,
)

from evasoil.config.settings_store import ThresholdSettingsStore
from evasoil.domain.errors import ConfigError
from evasoil.domain.models import ThresholdConfig


def _spin(lo: float, hi: float, value: float, suffix: str) -> QDoubleSpinBox:
    s = QDoubleSpinBox()
    s.setRange(lo, hi)
    s.setDecimals(1)
    s.setValue(value)
    s.setSuffix(f" {suffix}")
    return s


class SettingsDialog(QDialog):
    """
    Edit and persist the alert thresholds.

    On accept the values are validated and saved through the
    `ThresholdSettingsStore`; invalid input keeps the dialog open.
    """

    def __init__(self, settings: ThresholdSettingsStore, parent=None) -> None:
        super().__init__(parent)
        self.setWindowTitle("Alert Settings")
        self._settings = settings

        t = settings.thresholds()
        self.moisture = _spin(0.0, 100.0, t.moisture_low, "%")
        self.temp_low = _spin(-40.0, 80.0, t.temp_low, "°C")
        self.temp_high = _spin(-40.0, 80.0, t.temp_high, "°C")
        self.light = _spin(0.0, 200000.0, t.light_low, "lx")

        form = QFormLayout()
        form.addRow("Low moisture below", self.moisture)
        form.addRow("Temperature min", self.temp_low)
        form.addRow("Temperature max", self.temp_high)
        form.addRow("Low light below", self.light)

        buttons = QDialogButtonBox(
            QDialogButtonBox.Save | QDialogButtonBox.Cancel | QDialogButtonBox.RestoreDefaults
        )
        buttons.accepted.connect(self._save)
        buttons.rejected.connect(self.reject)
        buttons.button(QDialogButtonBox.RestoreDefaults).clicked.connect(self._restore_defaults)

        layout = QVBoxLayout(self)
        layout.addWidget(QLabel("Alerts are evaluated against the latest reading."))
        layout.addLayout(form)
        layout.addWidget(buttons)

    def values(self) -> ThresholdConfig:
        return ThresholdConfig(
            moisture_low=self.moisture.value(),
            temp_low=self.temp_low.value(),
            temp_high=self.temp_high.value(),
            light_low=self.light.value(),
        )

    def _restore_defaults(self) -> None:
        d = ThresholdConfig()
        self.moisture.setValue(d.moisture_low)
        self.temp_low.setValue(d.temp_low)
        self.temp_high.setValue(d.temp_high)
        self.light.setValue(d.light_low)

    def _save(self) -> None:
        try:
            self._settings.save(self.values())
        except (ConfigError, OSError) as e:
            QMessageBox.warning(self, "Invalid settings", str(e))
            return
        self.accept()
