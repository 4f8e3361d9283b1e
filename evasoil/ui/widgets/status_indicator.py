from __future__ import annotations

from typing import Optional

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QFrame, QHBoxLayout, QLabel

from evasoil.ui.theme import STATUS_COLORS


class StatusIndicator(QFrame):
    """
    Window status pill: a coloured badge plus the line from ``status_text``.

    The badge shows the level name, so a degraded session reads ``CRITICAL``
    even when the text is truncated. `detail` goes into the tooltip.
    """

    def __init__(self, parent=None) -> None:
        super().__init__(parent)
        self.setObjectName("Panel")

        self._badge = QLabel()
        self._badge.setAlignment(Qt.AlignCenter)
        self._badge.setMinimumWidth(84)
        self._text = QLabel()
        self._text.setObjectName("Muted")

        row = QHBoxLayout(self)
        row.setContentsMargins(8, 4, 8, 4)
        row.addWidget(self._badge)
        row.addWidget(self._text, 1)

        self.level = ""
        self.set_level("WARNING", "Starting...")

    def set_level(self, level: str, text: str, detail: Optional[str] = None) -> None:
        color = STATUS_COLORS.get(level, STATUS_COLORS["WARNING"])
        self.level = level
        self._badge.setText(level)
        self._badge.setStyleSheet(
            f"background: {color}; color: #1c1917; border-radius: 4px; padding: 2px 6px; font-weight: 700;"
        )
        self._text.setText(text)
        self.setToolTip(detail or text)
