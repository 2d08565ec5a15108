from __future__ import annotations


class ConfigError(Exception):
    """Configuration could not be loaded or is inconsistent. Fatal at startup."""


class InvalidModeError(ConfigError):
    """Aggregation mode is neither 'mean' nor 'max'."""

    def __init__(self, mode):
        self.mode = mode
        super().__init__(f"unrecognized mode '{mode}'. should be 'max' or 'mean'")
