"""
Wire format shared by the ingest HTTP API and the live push stream.

A reading travels as one flat JSON object::

    {"type": "sensor_reading", "id": 7, "device_id": "ESP32_PlantGuard_01",
     "moisture": 41.5, "temperature": 22.25, "light_lux": 830.0,
     "created_at": "2026-01-01T10:00:00"}

On the push stream each object is followed by ``\\n`` (NDJSON).
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, Iterator

from evasoil.domain.models import Reading

MESSAGE_TYPE = "sensor_reading"

_DECODER = json.JSONDecoder()


def reading_to_obj(reading: Reading) -> Dict[str, Any]:
    return {
        "type": MESSAGE_TYPE,
        "id": reading.id,
        "device_id": reading.device_id,
        "moisture": reading.moisture,
        "temperature": reading.temperature,
        "light_lux": reading.light_lux,
        "created_at": reading.created_at.isoformat(),
    }


def reading_from_obj(obj: Dict[str, Any]) -> Reading:
    """
    Build a :class:`Reading` from its wire object.

    A missing ``type`` is accepted; any other value than ``sensor_reading``
    is rejected.

    Raises
    ------
    KeyError
        If a field is missing.
    ValueError
        On an unknown ``type`` or a value that does not convert.
    """
    kind = obj.get("type", MESSAGE_TYPE)
    if kind != MESSAGE_TYPE:
        raise ValueError(f"Unknown message type: {kind}")

    return Reading(
        device_id=str(obj["device_id"]),
        moisture=float(obj["moisture"]),
        temperature=float(obj["temperature"]),
        light_lux=float(obj["light_lux"]),
        created_at=datetime.fromisoformat(str(obj["created_at"])),
        id=int(obj["id"]),
    )


def encode_message(reading: Reading) -> str:
    """One push line, without the trailing newline."""
    return json.dumps(reading_to_obj(reading))


def iter_json_objects(text: str) -> Iterator[Dict[str, Any]]:
    """
    Yield every JSON object in `text`, including objects written back to
    back without a separator (``'{"a": 1}{"b": 2}'``).

    Top-level values that are not objects are skipped.

    Raises
    ------
    ValueError
        At the first position that is not valid JSON.
    """
    pos, end = 0, len(text)
    while True:
        while pos < end and text[pos].isspace():
            pos += 1
        if pos >= end:
            return
        value, pos = _DECODER.raw_decode(text, pos)
        if isinstance(value, dict):
            yield value


def decode_message(line: str) -> Reading:
    """
    Decode one push line. Only the first object of a concatenated line is used.

    Raises
    ------
    ValueError
        If the line holds no JSON object or the object is not a reading.
    """
    for obj in iter_json_objects(line):
        return reading_from_obj(obj)
    raise ValueError("No JSON object found in line")
