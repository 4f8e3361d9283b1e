from __future__ import annotations

from dataclasses import dataclass

from evasoil.domain.models import AlertState, Reading, ThresholdConfig


@dataclass(frozen=True)
class AlertEvaluator:
    """
    Stateless threshold evaluator for the latest reading.

    Each evaluation is independent: there is no hysteresis or debounce, so a
    single noisy sample can toggle a flag. Updates are sensor-driven and
    low-frequency.

    Rules
    -----
    - low_moisture:      moisture < moisture_low
    - temp_out_of_range: temperature < temp_low or temperature > temp_high
    - low_light:         light_lux < light_low
    """

    def evaluate(self, latest: Reading, thresholds: ThresholdConfig) -> AlertState:
        """
        Derive alert flags for one reading.

        Parameters
        ----------
        latest
            Most recent reading of the visible series.
        thresholds
            Read-only thresholds supplied by the settings subsystem.

        Returns
        -------
        AlertState
            Alert flags for `latest`.
        """
        return AlertState(
            low_moisture=latest.moisture < thresholds.moisture_low,
            low_light=latest.light_lux < thresholds.light_low,
            temp_out_of_range=(
                latest.temperature < thresholds.temp_low
                or latest.temperature > thresholds.temp_high
            ),
        )
