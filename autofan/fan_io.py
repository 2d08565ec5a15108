from __future__ import annotations

import logging


class FanIO:
    """Writes fan set-points to the actuator file (e.g. applesmc fanN_output).

    Kept to I/O only: the controller decides what to write and when.
    """

    def __init__(self, output_path: str, logger: logging.Logger | None = None):
        self.output_path = output_path
        self.logger = logger or logging.getLogger(__name__)

    def set_fan_speed(self, speed: int) -> bool:
        """Write `speed` as a decimal string. Returns False on failure."""
        try:
            with open(self.output_path, 'w') as f:
                f.write(str(int(speed)))
        except OSError as e:
            self.logger.error(f"setting fan speed: {e}")
            return False
        return True
