from __future__ import annotations

import json
import logging
import re
import subprocess
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class SensorReading:
    """One feature reported by a hardware monitoring chip."""

    chip: str
    label: str
    value: float

    @property
    def name(self) -> str:
        return f"{self.chip}:{self.label}"


class SensorsReader:
    """Reads chip/feature values via lm-sensors (`sensors -j`)."""

    def __init__(self, logger: logging.Logger | None = None, command: Sequence[str] = ('sensors', '-j'), timeout: float = 10):
        self.logger = logger or logging.getLogger(__name__)
        self.command = list(command)
        self.timeout = timeout

    def get_sensors_json(self) -> Optional[Dict]:
        """Run `sensors -j` and parse JSON, handling common failures."""
        try:
            proc = subprocess.run(
                self.command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            self.logger.error("sensors command not found")
            return None
        except subprocess.TimeoutExpired:
            self.logger.error("sensors command timed out")
            return None
        except OSError as exc:
            self.logger.error(f"Failed to start sensors command: {exc}")
            return None

        if proc.returncode != 0:
            detail = f": {proc.stderr.strip()}" if proc.stderr else ""
            self.logger.error(f"sensors command failed with code {proc.returncode}{detail}")
            return None

        try:
            return json.loads(proc.stdout)
        except json.JSONDecodeError as exc:
            self.logger.error(f"Failed to parse sensors JSON output: {exc}")
            return None

    def read_features(self) -> Optional[List[SensorReading]]:
        """Return every detected feature, or None if the provider failed."""
        sensors_data = self.get_sensors_json()
        if sensors_data is None:
            return None
        return self.extract_readings(sensors_data)

    @staticmethod
    def extract_readings(sensors_data: Dict) -> List[SensorReading]:
        """Flatten `sensors -j` output into one reading per chip feature.

        A feature's value is its first `*_input` subfeature. Features
        without one (alarms, limits only) are skipped.
        """
        readings: List[SensorReading] = []
        if not isinstance(sensors_data, dict):
            return readings
        for chip, features in sensors_data.items():
            if not isinstance(features, dict):
                continue
            for label, feature in features.items():
                if label == 'Adapter':
                    continue
                value = _feature_value(feature)
                if value is not None:
                    readings.append(SensorReading(chip, label, value))
        return readings


def _feature_value(feature) -> Optional[float]:
    if isinstance(feature, bool):
        return None
    if isinstance(feature, (int, float)):
        return float(feature)
    if isinstance(feature, dict):
        for key, value in feature.items():
            if key.endswith('_input') and isinstance(value, (int, float)) and not isinstance(value, bool):
                return float(value)
    return None


def classify_readings(
    readings: Iterable[SensorReading],
    fan: str,
    patterns: Sequence[re.Pattern] = (),
) -> Tuple[Dict[str, float], int]:
    """Split provider output into the temperature snapshot and the fan RPM.

    The reading named exactly `fan` (after trimming whitespace) supplies the
    RPM and never enters the snapshot. Every other reading is kept when no
    patterns are configured, or when any pattern matches its name.
    """
    temperatures: Dict[str, float] = {}
    fan_rpm = 0
    for reading in readings:
        name = reading.name
        if name.strip() == fan:
            fan_rpm = int(reading.value)
            continue
        if patterns and not any(p.search(name) for p in patterns):
            continue
        temperatures[name] = reading.value
    return temperatures, fan_rpm
