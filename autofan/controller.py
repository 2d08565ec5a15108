from __future__ import annotations

import enum
import logging

from .config import AutofanConfig
from .errors import InvalidModeError
from .fan_io import FanIO
from .policy import AggregationMode, aggregate, compute_fan_speed
from .sensors import SensorsReader, classify_readings


class CycleOutcome(enum.Enum):
    SUCCESS = "success"
    SKIP = "skip"
    FAIL = "fail"


class FanController:
    """Runs one fetch/classify/aggregate/map/write control cycle at a time.

    The controller owns the only state that survives between cycles,
    `last_applied_value`: the control value behind the last successful
    actuator write. A cycle whose control value equals it writes nothing.

    Dependencies are injectable to support testing; when not provided,
    the lm-sensors reader and a file-backed FanIO are constructed.
    """

    def __init__(
        self,
        config: AutofanConfig,
        *,
        logger: logging.Logger | None = None,
        sensors: SensorsReader | None = None,
        fan_io: FanIO | None = None,
    ):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.sensors = sensors or SensorsReader(self.logger)
        self.fan_io = fan_io or FanIO(config.output, self.logger)
        self.last_applied_value = 0.0

    def run_cycle(self) -> CycleOutcome:
        """Execute one control loop iteration. Never raises."""
        cfg = self.config
        try:
            readings = self.sensors.read_features()
            if readings is None:
                self.logger.error("Failed to get sensor data, skipping cycle")
                return CycleOutcome.FAIL

            temperatures, fan_rpm = classify_readings(readings, cfg.fan, cfg.sensors)
            if not temperatures:
                self.logger.warning("got no temperature values. check your configuration")
                return CycleOutcome.SKIP

            mode = cfg.mode
            if not isinstance(mode, AggregationMode):
                self.logger.error(str(InvalidModeError(mode)))
                return CycleOutcome.FAIL
            value = aggregate(temperatures.values(), mode)

            # exact comparison, no tolerance
            if value == self.last_applied_value:
                return CycleOutcome.SKIP

            new_speed = compute_fan_speed(cfg.min_speed, cfg.max_speed, cfg.high_temp, cfg.normal_temp, value)
            if not cfg.min_speed <= new_speed <= cfg.max_speed:
                self.logger.debug(
                    f"Set-point {new_speed} RPM is outside [{cfg.min_speed}, {cfg.max_speed}] "
                    f"for {value:.1f}°C; not clamped"
                )

            if not self.fan_io.set_fan_speed(new_speed):
                return CycleOutcome.FAIL

            self.logger.info(
                f"{temperatures} -- {mode.value}:{value:.1f} -- "
                f"from {fan_rpm} RPM to {new_speed} RPM"
            )
            self.last_applied_value = value
            return CycleOutcome.SUCCESS

        except Exception as e:
            self.logger.error(f"Unexpected error in run cycle: {e}")
            return CycleOutcome.FAIL
