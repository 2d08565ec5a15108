from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

try:  # Python 3.11+
    import tomllib as _toml
except ModuleNotFoundError:  # Python <=3.10
    import tomli as _toml  # type: ignore

from .errors import ConfigError
from .policy import AggregationMode

CONFIG_ENV_VAR = "AUTOFAN_CONFIG"
DEFAULT_CONFIG_PATH = "~/.autofan.toml"

DEFAULTS: Dict[str, Any] = {
    "mode": "mean",
    "interval": "3s",
    "minSpeed": 1500,
    "maxSpeed": 5000,
    "highTemp": 70.0,
    "normalTemp": 40.0,
    "fan": "applesmc-isa-0300:Master",
    "output": "/sys/devices/platform/applesmc.768/fan1_output",
    "sensors": ["coretemp-isa-0000:Core .*"],
    "logFile": None,
}

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(text) -> float:
    """Parse a duration such as "3s", "250ms" or "1m30s" into seconds.

    Bare numbers (TOML ints/floats) are taken as seconds.
    """
    if isinstance(text, bool):
        raise ConfigError(f"invalid duration {text!r}")
    if isinstance(text, (int, float)):
        return float(text)
    if not isinstance(text, str):
        raise ConfigError(f"invalid duration {text!r}")
    s = text.strip()
    sign = 1.0
    if s[:1] in ("+", "-"):
        sign = -1.0 if s[0] == "-" else 1.0
        s = s[1:]
    if s == "0":
        return 0.0
    if not s:
        raise ConfigError(f"invalid duration {text!r}")

    total = 0.0
    pos = 0
    while pos < len(s):
        m = _DURATION_PART.match(s, pos)
        if not m:
            raise ConfigError(f"invalid duration {text!r}")
        total += float(m.group(1)) * _DURATION_UNITS[m.group(2)]
        pos = m.end()
    return sign * total


def default_config_path() -> str:
    return os.environ.get(CONFIG_ENV_VAR) or os.path.expanduser(DEFAULT_CONFIG_PATH)


@dataclass(frozen=True)
class AutofanConfig:
    """Validated, read-only controller settings."""

    mode: AggregationMode = AggregationMode.MEAN
    interval: float = 3.0
    min_speed: int = 1500
    max_speed: int = 5000
    high_temp: float = 70.0
    normal_temp: float = 40.0
    fan: str = DEFAULTS["fan"]
    output: str = DEFAULTS["output"]
    sensors: Tuple[re.Pattern, ...] = ()
    log_file: Optional[str] = None


class ConfigManager:
    """Loads and validates controller configuration from TOML file."""
    def __init__(self, path: str):
        self.path = path
        self.config: Dict[str, Any] = {}

    def load(self) -> Dict[str, Any]:
        """Load TOML config from `self.path` or raise ConfigError."""
        try:
            with open(self.path, 'rb') as f:
                self.config = _toml.load(f)
        except OSError as e:
            raise ConfigError(f"reading config file: {e}") from e
        except _toml.TOMLDecodeError as e:
            raise ConfigError(f"reading toml: {e}") from e
        return self.config

    def validate(self, logger: logging.Logger | None = None) -> AutofanConfig:
        """Merge defaults, check every field and build an AutofanConfig."""
        logger = logger or logging.getLogger(__name__)
        unknown = sorted(set(self.config) - set(DEFAULTS))
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {', '.join(unknown)}")
        cfg = {**DEFAULTS, **self.config}

        mode = AggregationMode.parse(cfg["mode"])

        interval = parse_duration(cfg["interval"])
        if interval <= 0:
            raise ConfigError(f"parsing interval: must be positive, got {cfg['interval']!r}")

        min_speed = _as_int("minSpeed", cfg["minSpeed"])
        max_speed = _as_int("maxSpeed", cfg["maxSpeed"])
        if min_speed > max_speed:
            raise ConfigError(f"minSpeed ({min_speed}) must not exceed maxSpeed ({max_speed})")

        high_temp = _as_float("highTemp", cfg["highTemp"])
        normal_temp = _as_float("normalTemp", cfg["normalTemp"])
        if high_temp <= normal_temp:
            raise ConfigError(f"highTemp ({high_temp}) must be greater than normalTemp ({normal_temp})")

        fan = _as_str("fan", cfg["fan"]).strip()
        output = _as_str("output", cfg["output"])

        raw_sensors = cfg["sensors"]
        if not isinstance(raw_sensors, list):
            raise ConfigError("'sensors' must be a list of patterns")
        patterns = []
        for sensor in raw_sensors:
            sensor = _as_str("sensors", sensor)
            try:
                patterns.append(re.compile(sensor))
            except re.error as e:
                raise ConfigError(f"build regex ({sensor}): {e}") from e

        log_file = cfg["logFile"]
        if log_file is not None:
            log_file = _as_str("logFile", log_file)

        if not Path(output).exists():
            logger.warning(f"Fan output not found: {output}")
        if not patterns:
            logger.info("No sensor patterns configured; every non-fan reading is used")

        return AutofanConfig(
            mode=mode,
            interval=interval,
            min_speed=min_speed,
            max_speed=max_speed,
            high_temp=high_temp,
            normal_temp=normal_temp,
            fan=fan,
            output=output,
            sensors=tuple(patterns),
            log_file=log_file,
        )


def load_config(path: str | None = None, logger: logging.Logger | None = None) -> AutofanConfig:
    """Read and validate the config file at `path` (default discovery otherwise)."""
    cfg_mgr = ConfigManager(path or default_config_path())
    cfg_mgr.load()
    return cfg_mgr.validate(logger)


def _as_int(key: str, value) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"'{key}' must be an integer, got {value!r}")
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if not isinstance(value, int):
        raise ConfigError(f"'{key}' must be an integer, got {value!r}")
    return value


def _as_float(key: str, value) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"'{key}' must be a number, got {value!r}")
    return float(value)


def _as_str(key: str, value) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"'{key}' must be a string, got {value!r}")
    return value
