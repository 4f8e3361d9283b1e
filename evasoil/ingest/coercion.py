from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

DEFAULT_DEVICE_ID = "ESP32_PlantGuard_01"

# Accepted body keys per field, first match wins.
FIELD_ALIASES: Dict[str, tuple] = {
    "moisture": ("soil", "soilMoisture", "moisture"),
    "temperature": ("temperature",),
    "light_lux": ("light_lux", "lightLux"),
}


@dataclass(frozen=True)
class Submission:
    """A device POST after coercion, ready for `store.insert(...)`."""
    device_id: str
    moisture: float
    temperature: float
    light_lux: float

    def as_insert_kwargs(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "moisture": self.moisture,
            "temperature": self.temperature,
            "light_lux": self.light_lux,
        }


def coerce_number(value: Any) -> float:
    """
    Lenient float conversion used at the ingest boundary.

    Missing, non-numeric and non-finite values become ``0.0``. Booleans are
    not numbers here.

    >>> coerce_number("21.5"), coerce_number(None), coerce_number("abc")
    (21.5, 0.0, 0.0)
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        f = float(value)
    except (TypeError, ValueError):
        return 0.0
    return f if math.isfinite(f) else 0.0


def _first_present(body: Mapping[str, Any], keys: tuple) -> Optional[Any]:
    for k in keys:
        if k in body and body[k] is not None:
            return body[k]
    return None


def coerce_submission(body: Any) -> Submission:
    """
    Turn a raw JSON body from a device into a :class:`Submission`.

    Parameters
    ----------
    body
        Decoded JSON. Anything that is not an object is treated as empty.

    Returns
    -------
    Submission
        Coerced values; `device_id` falls back to ``ESP32_PlantGuard_01``.
    """
    if not isinstance(body, dict):
        body = {}

    device_id = body.get("device_id")
    device_id = str(device_id).strip() if device_id not in (None, "") else ""

    return Submission(
        device_id=device_id or DEFAULT_DEVICE_ID,
        moisture=coerce_number(_first_present(body, FIELD_ALIASES["moisture"])),
        temperature=coerce_number(_first_present(body, FIELD_ALIASES["temperature"])),
        light_lux=coerce_number(_first_present(body, FIELD_ALIASES["light_lux"])),
    )
