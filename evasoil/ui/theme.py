from __future__ import annotations

# Dark "soil" palette: warm browns for surfaces, leaf green for actions.
BG = "#1c1917"        # stone-900
SURFACE = "#292524"   # stone-800
BORDER = "#44403c"    # stone-700
TEXT = "#f5f5f4"      # stone-100
TEXT_MUTED = "#a8a29e"  # stone-400
LEAF = "#4d7c0f"      # lime-800
LEAF_HOVER = "#65a30d"
SKY = "#0369a1"       # sky-700

APP_QSS = f"""
QMainWindow, QDialog {{
    background: {BG};
    color: {TEXT};
    font-family: "Segoe UI", "Noto Sans", sans-serif;
    font-size: 12px;
}}
QLabel {{ color: {TEXT}; }}
QLabel#Muted {{ color: {TEXT_MUTED}; }}

QFrame#Panel {{
    background: {SURFACE};
    border: 1px solid {BORDER};
    border-radius: 8px;
}}
QFrame#AlertBanner {{
    background: #78350f;
    border-left: 4px solid #f59e0b;
    border-radius: 4px;
}}

QTableWidget {{
    background: {BG};
    alternate-background-color: {SURFACE};
    border: none;
    gridline-color: {BORDER};
    color: {TEXT};
}}
QHeaderView::section {{
    background: {SURFACE};
    color: {TEXT_MUTED};
    border: none;
    border-bottom: 1px solid {BORDER};
    padding: 4px 8px;
}}

QPushButton {{
    background: {LEAF};
    color: {TEXT};
    border: none;
    border-radius: 6px;
    padding: 6px 14px;
}}
QPushButton:hover {{ background: {LEAF_HOVER}; }}
QPushButton:checked {{ background: {SKY}; font-weight: 700; }}
QPushButton#Danger {{ background: #991b1b; }}

QDoubleSpinBox {{
    background: {BG};
    color: {TEXT};
    border: 1px solid {BORDER};
    border-radius: 4px;
    padding: 2px 6px;
}}
"""

# status_text() level -> indicator colour
STATUS_COLORS = {
    "OK": "#84cc16",
    "WARNING": "#f59e0b",
    "CRITICAL": "#dc2626",
}

# status_level() band -> colour of the "Latest" cell
LEVEL_COLORS = {
    "good": "#84cc16",
    "ok": "#38bdf8",
    "warn": "#fb923c",
    "critical": "#dc2626",
    "hot": "#dc2626",
    "cold": "#22d3ee",
    "bright": "#facc15",
    "moderate": "#fb923c",
    "low": "#38bdf8",
    "dim": "#78716c",
}

METRIC_PENS = {
    "moisture": "#38bdf8",
    "temperature": "#f87171",
    "light": "#facc15",
}
