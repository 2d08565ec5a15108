from __future__ import annotations

import enum
from typing import Iterable

from .errors import InvalidModeError


class AggregationMode(enum.Enum):
    """How a cycle's temperature readings collapse into one control value."""

    MEAN = "mean"
    MAX = "max"

    @classmethod
    def parse(cls, text) -> "AggregationMode":
        """Resolve a configured mode string or raise InvalidModeError."""
        if isinstance(text, cls):
            return text
        if not isinstance(text, str):
            raise InvalidModeError(text)
        try:
            return cls(text)
        except ValueError:
            raise InvalidModeError(text) from None


def aggregate(values: Iterable[float], mode: AggregationMode) -> float:
    """Reduce temperature readings to a single control value.

    The caller owns the emptiness check; an empty input raises ValueError
    instead of producing NaN. `mode` must already be parsed.
    """
    if not isinstance(mode, AggregationMode):
        raise InvalidModeError(mode)
    temps = [float(v) for v in values]
    if not temps:
        raise ValueError("no temperature readings to aggregate")
    if mode is AggregationMode.MAX:
        return max(temps)
    return sum(temps) / len(temps)


def compute_fan_speed(min_speed: int, max_speed: int, high_temp: float, normal_temp: float, value: float) -> int:
    """Linear ramp from (normal_temp, min_speed) to (high_temp, max_speed).

    The result is truncated toward zero and is not clamped: temperatures
    outside [normal_temp, high_temp] extrapolate past the speed bounds.
    """
    slope = (max_speed - min_speed) / (high_temp - normal_temp)
    return int(min_speed + slope * (value - normal_temp))
