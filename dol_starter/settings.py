"""
Configuration Loading

Reads config/settings.json next to this module (or an explicit path).
Missing file -> built-in defaults. File keys override defaults.
"""

import json
import logging
import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

logger = logging.getLogger("Settings")

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "config", "settings.json")

# Fallback Defaults
DEFAULTS: Dict[str, Any] = {
    "rated_rpm": 1480.0,
    "system_voltage": 400.0,
    "ramp_duration_ms": 2000.0,
    "stop_duration_ratio": 0.8,
    "ramp_sample_interval_ms": 50.0,
    "stop_sample_interval_ms": 30.0,
    "runtime_interval_ms": 1000.0,
    "thermal_trip_c": None,
    "transition_log_size": 200,
    "api_host": "127.0.0.1",
    "api_port": 8000,
    "log_level": "INFO",
}


def _is_number(value: Any) -> bool:
    # bool is an int subclass, but true/false in the JSON is a mistake
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class StarterConfig:
    """Validated starter/session configuration."""

    rated_rpm: float = DEFAULTS["rated_rpm"]
    system_voltage: float = DEFAULTS["system_voltage"]
    ramp_duration_ms: float = DEFAULTS["ramp_duration_ms"]
    stop_duration_ratio: float = DEFAULTS["stop_duration_ratio"]
    ramp_sample_interval_ms: float = DEFAULTS["ramp_sample_interval_ms"]
    stop_sample_interval_ms: float = DEFAULTS["stop_sample_interval_ms"]
    runtime_interval_ms: float = DEFAULTS["runtime_interval_ms"]
    thermal_trip_c: Optional[float] = DEFAULTS["thermal_trip_c"]
    transition_log_size: int = DEFAULTS["transition_log_size"]
    api_host: str = DEFAULTS["api_host"]
    api_port: int = DEFAULTS["api_port"]
    log_level: str = DEFAULTS["log_level"]

    def __post_init__(self) -> None:
        numeric = [
            "rated_rpm",
            "system_voltage",
            "ramp_duration_ms",
            "stop_duration_ratio",
            "ramp_sample_interval_ms",
            "stop_sample_interval_ms",
            "runtime_interval_ms",
        ]
        for name in numeric:
            if not _is_number(getattr(self, name)):
                raise ValueError(f"{name} must be a number, got {getattr(self, name)!r}")
        for name in ("transition_log_size", "api_port"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
        for name in ("api_host", "log_level"):
            if not isinstance(getattr(self, name), str):
                raise ValueError(f"{name} must be a string, got {getattr(self, name)!r}")
        if self.thermal_trip_c is not None and not _is_number(self.thermal_trip_c):
            raise ValueError(f"thermal_trip_c must be a number or null, got {self.thermal_trip_c!r}")

        positive = [
            "rated_rpm",
            "ramp_duration_ms",
            "stop_duration_ratio",
            "ramp_sample_interval_ms",
            "stop_sample_interval_ms",
            "runtime_interval_ms",
            "transition_log_size",
        ]
        for name in positive:
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0")
        if self.system_voltage < 0:
            raise ValueError("system_voltage must be >= 0")

    @property
    def stop_duration_ms(self) -> float:
        return self.ramp_duration_ms * self.stop_duration_ratio

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StarterConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {', '.join(unknown)}")
        return cls(**{k: v for k, v in data.items() if k in known})


def load_config(path: Optional[str] = None) -> StarterConfig:
    """Load settings JSON, falling back to defaults for anything missing."""
    config_path = path or DEFAULT_CONFIG_PATH
    merged = dict(DEFAULTS)
    try:
        with open(config_path, "r") as f:
            merged.update(json.load(f))
    except FileNotFoundError:
        logger.warning(f"Config file not found at {config_path}, using defaults")
    return StarterConfig.from_dict(merged)
