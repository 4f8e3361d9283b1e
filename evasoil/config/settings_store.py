from __future__ import annotations

import json
import logging
import math
import threading
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Optional, Union

from evasoil.domain.errors import ConfigError
from evasoil.domain.models import ThresholdConfig

LOGGER = logging.getLogger(__name__)

# JSON key -> ThresholdConfig field
SETTINGS_KEYS: Dict[str, str] = {
    "moistureThreshold": "moisture_low",
    "tempThresholdLow": "temp_low",
    "tempThresholdHigh": "temp_high",
    "lightThreshold": "light_low",
}


def thresholds_to_json_obj(t: ThresholdConfig) -> Dict[str, float]:
    return {key: getattr(t, attr) for key, attr in SETTINGS_KEYS.items()}


def validate_thresholds(t: ThresholdConfig) -> ThresholdConfig:
    """
    Check a threshold set before it is used or persisted.

    Raises
    ------
    ConfigError
        If a value is not finite, or ``temp_low > temp_high``.
    """
    for attr in SETTINGS_KEYS.values():
        v = getattr(t, attr)
        if not isinstance(v, (int, float)) or not math.isfinite(v):
            raise ConfigError(f"{attr} must be a finite number, got {v!r}")
    if t.temp_low > t.temp_high:
        raise ConfigError(f"temp_low ({t.temp_low}) must be <= temp_high ({t.temp_high})")
    return t


class ThresholdSettingsStore:
    """
    Persisted alert thresholds edited from the settings dialog.

    The file holds the same keys as the original browser settings
    (``moistureThreshold``, ``tempThresholdLow``, ``tempThresholdHigh``,
    ``lightThreshold``). Missing keys fall back to `defaults`.

    The analytics engine never sees this object; it receives
    :meth:`thresholds` as a zero-argument provider and reads it on every
    evaluation.

    Parameters
    ----------
    path
        JSON file location.
    defaults
        Values used for missing keys and when the file does not exist.
    """

    def __init__(self, path: Union[str, Path], defaults: Optional[ThresholdConfig] = None):
        self._path = Path(path)
        self._defaults = defaults or ThresholdConfig()
        self._lock = threading.Lock()
        self._current = self._defaults

    @property
    def path(self) -> Path:
        return self._path

    def thresholds(self) -> ThresholdConfig:
        with self._lock:
            return self._current

    def load(self) -> ThresholdConfig:
        """
        Read the settings file; a missing file leaves the defaults in place.

        Raises
        ------
        ConfigError
            If the file is not a JSON object or holds invalid values.
        """
        if not self._path.exists():
            LOGGER.info("No settings file at %s; using default thresholds", self._path)
            return self.thresholds()

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigError(f"{self._path} is not valid JSON: {e}") from e
        t = self.from_json_obj(raw, self._defaults)

        with self._lock:
            self._current = t
        return t

    @staticmethod
    def from_json_obj(raw: Any, defaults: ThresholdConfig) -> ThresholdConfig:
        if not isinstance(raw, dict):
            raise ConfigError("settings file must contain a JSON object")
        values: Dict[str, float] = {}
        for key, attr in SETTINGS_KEYS.items():
            if key not in raw:
                continue
            try:
                values[attr] = float(raw[key])
            except (TypeError, ValueError):
                raise ConfigError(f"{key} must be a number, got {raw[key]!r}") from None
        return validate_thresholds(replace(defaults, **values))

    def save(self, thresholds: ThresholdConfig) -> None:
        """
        Validate, persist and activate a new threshold set.

        Raises
        ------
        ConfigError
            If the thresholds are invalid; nothing is written in that case.
        """
        validate_thresholds(thresholds)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(thresholds_to_json_obj(thresholds), indent=2), encoding="utf-8")
        with self._lock:
            self._current = thresholds
        LOGGER.info("Saved thresholds to %s", self._path)

    def reset(self) -> ThresholdConfig:
        """Persist and activate the defaults."""
        self.save(self._defaults)
        return self._defaults
