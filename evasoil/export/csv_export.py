from __future__ import annotations

import csv
import io
import json
import time
from pathlib import Path
from typing import Optional, Sequence, Union

from evasoil.config.settings_store import thresholds_to_json_obj
from evasoil.domain.models import Reading, ThresholdConfig

CSV_HEADER = ("Timestamp", "Device ID", "Moisture %", "Temperature °C", "Light lux")


def _epoch_ms() -> int:
    return int(time.time() * 1000)


def default_export_name(epoch_ms: Optional[int] = None) -> str:
    return f"evasoil-export-{_epoch_ms() if epoch_ms is None else epoch_ms}.csv"


def default_backup_name(epoch_ms: Optional[int] = None) -> str:
    return f"evasoil-backup-{_epoch_ms() if epoch_ms is None else epoch_ms}.json"


def export_csv(snapshot: Sequence[Reading]) -> str:
    """
    Render a series snapshot as CSV text.

    One header row, then one row per reading in snapshot order. Lines are
    separated by ``\\n``.
    """
    buf = io.StringIO()
    w = csv.writer(buf, lineterminator="\n")
    w.writerow(CSV_HEADER)
    for r in snapshot:
        w.writerow([r.created_at.isoformat(), r.device_id, r.moisture, r.temperature, r.light_lux])
    return buf.getvalue()


def write_csv(path: Union[str, Path], snapshot: Sequence[Reading]) -> Path:
    """
    Write :func:`export_csv` output to `path`.

    If `path` is a directory, a file named ``evasoil-export-<epoch-ms>.csv``
    is created inside it.

    Returns
    -------
    Path
        The written file.
    """
    p = Path(path)
    if p.is_dir():
        p = p / default_export_name()
    p.write_text(export_csv(snapshot), encoding="utf-8")
    return p


def settings_backup_json(device_id: str, thresholds: ThresholdConfig) -> str:
    """
    Settings backup document: ``{"deviceId": ..., "settings": {...}}``.
    """
    return json.dumps({"deviceId": device_id, "settings": thresholds_to_json_obj(thresholds)}, indent=2)


def write_settings_backup(path: Union[str, Path], device_id: str, thresholds: ThresholdConfig) -> Path:
    p = Path(path)
    if p.is_dir():
        p = p / default_backup_name()
    p.write_text(settings_backup_json(device_id, thresholds), encoding="utf-8")
    return p
